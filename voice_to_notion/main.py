"""voice-to-notion command-line entry point.

Arguments are parsed once into an immutable CLIOptions before any
fallible work starts; success and error reporting both close over it.
This is the only place typed errors become process exit codes.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from voice_to_notion import __version__
from voice_to_notion.config import PROVIDERS, load_config
from voice_to_notion.observability.logger import LogConfig, configure_logging
from voice_to_notion.pipeline import PipelineRequest, run_pipeline
from voice_to_notion.utils.errors import InvalidArgumentError, PipelineError

logger = logging.getLogger(__name__)

UNEXPECTED_ERROR_EXIT_CODE = 1

EPILOG = """\
Environment Variables:
  ANTHROPIC_API_KEY       Required - Anthropic API key for Claude
  NOTION_API_KEY          Required - Notion integration token
  NOTION_DATABASE_ID      Required - Default Notion database ID
  GROQ_API_KEY            Required if using Groq (default provider)
  OPENAI_API_KEY          Required if using OpenAI
  TRANSCRIPTION_PROVIDER  Optional - Default transcription provider
  GROQ_MAX_FILE_SIZE_MB   Optional - Groq upload limit (developer tier)
"""


@dataclass(frozen=True)
class CLIOptions:
    """Parsed command-line options."""

    audio_file: str
    provider: str | None = None
    title: str | None = None
    database_id: str | None = None
    dry_run: bool = False
    verbose: bool = False
    json: bool = False

    def to_request(self) -> PipelineRequest:
        return PipelineRequest(
            audio_file=self.audio_file,
            provider=self.provider,
            title=self.title,
            database_id=self.database_id,
            dry_run=self.dry_run,
        )


class _ArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that raises instead of exiting with status 2.

    Exit code 2 belongs to file-not-found in the error taxonomy.
    """

    def error(self, message: str) -> None:  # type: ignore[override]
        raise InvalidArgumentError(message)


def build_parser() -> argparse.ArgumentParser:
    parser = _ArgumentParser(
        prog="voice-to-notion",
        description="Transcribe audio files and create Notion pages with summaries.",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "audio_file",
        metavar="audio-file",
        help="Path to audio file (mp3, wav, m4a, etc.)",
    )
    parser.add_argument(
        "-t",
        "--transcription",
        dest="provider",
        default=None,
        help='Transcription provider: "groq" | "openai" (default: from env or "groq")',
    )
    parser.add_argument("--title", default=None, help="Custom title for Notion page")
    parser.add_argument(
        "--database-id", default=None, help="Override Notion database ID"
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Process but don't create Notion page",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable verbose logging to stderr"
    )
    parser.add_argument(
        "--json", action="store_true", help="Output result as JSON to stdout"
    )
    parser.add_argument("--version", action="version", version=__version__)
    return parser


def parse_args(argv: Sequence[str]) -> CLIOptions:
    """Parse argv into CLIOptions.

    Raises:
        InvalidArgumentError: For unknown flags, a missing audio file
            argument or an unsupported provider.
    """
    args = build_parser().parse_args(list(argv))

    provider = args.provider.lower() if args.provider else None
    if provider is not None and provider not in PROVIDERS:
        raise InvalidArgumentError(
            f'Invalid transcription provider: {args.provider}. Must be "groq" or "openai".'
        )

    return CLIOptions(
        audio_file=args.audio_file,
        provider=provider,
        title=args.title,
        database_id=args.database_id,
        dry_run=args.dry_run,
        verbose=args.verbose,
        json=args.json,
    )


def _print_json(payload: dict[str, Any]) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False))


def report_failure(exc: BaseException, audio_file: str, json_output: bool) -> int:
    """Log a failure, optionally print the JSON payload, return the exit code."""
    if isinstance(exc, PipelineError):
        logger.error(
            "%s: %s",
            exc.category,
            exc.message,
            extra=exc.to_dict(),
        )
        exit_code = exc.exit_code
    else:
        logger.error("Unexpected error: %s", exc, exc_info=exc)
        exit_code = UNEXPECTED_ERROR_EXIT_CODE

    if json_output:
        _print_json({"success": False, "audioFile": audio_file, "error": str(exc)})
    return exit_code


async def run_cli(options: CLIOptions) -> int:
    """Run the pipeline for parsed options and report the outcome.

    Returns:
        Process exit code.
    """
    logger.debug("CLI options: %s", options)
    try:
        config = load_config()
        outcome = await run_pipeline(options.to_request(), config)
    except Exception as exc:
        return report_failure(exc, options.audio_file, options.json)

    if options.json:
        _print_json(outcome.to_json_dict())
    elif outcome.preview is not None:
        print("\n--- Preview ---\n")
        print(outcome.preview)
        print("\n--- End Preview ---\n")
    elif outcome.notion is not None:
        logger.info("Done!")
        print(f"\nNotion page: {outcome.notion.url}")
    return 0


def main(argv: Sequence[str] | None = None) -> None:
    """Parse arguments, run the pipeline and exit with its status."""
    args = list(sys.argv[1:] if argv is None else argv)

    try:
        options = parse_args(args)
    except InvalidArgumentError as exc:
        configure_logging(LogConfig())
        # No parsed options exist yet
        sys.exit(report_failure(exc, "unknown", "--json" in args))

    configure_logging(LogConfig(verbose=options.verbose))
    sys.exit(asyncio.run(run_cli(options)))


if __name__ == "__main__":
    main()
