"""voice-to-notion-harness: run pipeline steps one at a time.

Commands:
    audio <file>              Run audio processing
    transcription [options]   Run transcription (--from-cache or --audio)
    summarization [options]   Run summarization (--from-cache or --text)
    notion [options]          Run Notion creation (--from-cache, --dry-run)
    pipeline <file> [opts]    Run full pipeline
    cache list|show|clear     Manage cache

Exits 0 when every executed step succeeds, otherwise 1.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from collections.abc import Sequence

from voice_to_notion.config import PROVIDERS, Config, load_config
from voice_to_notion.harness import reporter
from voice_to_notion.harness.cache import STEPS, StepCache
from voice_to_notion.harness.steps import (
    run_all_steps,
    run_audio_step,
    run_notion_step,
    run_summarization_step,
    run_transcription_step,
)
from voice_to_notion.observability.logger import LogConfig, configure_logging

logger = logging.getLogger(__name__)

EPILOG = """\
Examples:
  voice-to-notion-harness audio ./sample.mp3
  voice-to-notion-harness transcription --from-cache
  voice-to-notion-harness summarization --from-cache
  voice-to-notion-harness notion --from-cache --dry-run
  voice-to-notion-harness pipeline ./sample.mp3 --dry-run
  voice-to-notion-harness cache list
  voice-to-notion-harness cache clear audio
"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="voice-to-notion-harness",
        description="Voice-to-Notion test harness",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging to stderr"
    )
    commands = parser.add_subparsers(dest="command", required=True, metavar="command")

    audio = commands.add_parser("audio", help="Run audio processing step")
    audio.add_argument("file", help="Audio file to process")

    transcription = commands.add_parser("transcription", help="Run transcription step")
    transcription.add_argument(
        "--from-cache", action="store_true", help="Use cached audio result"
    )
    transcription.add_argument("--audio", help="Process audio file first")
    transcription.add_argument(
        "--provider", choices=PROVIDERS, help="Use specific provider"
    )

    summarization = commands.add_parser("summarization", help="Run summarization step")
    summarization.add_argument(
        "--from-cache", action="store_true", help="Use cached transcription result"
    )
    summarization.add_argument("--text", help="Summarize specific text")

    notion = commands.add_parser("notion", help="Run Notion page creation step")
    notion.add_argument(
        "--from-cache",
        action="store_true",
        help="Use cached summary and transcription",
    )
    notion.add_argument(
        "--dry-run", action="store_true", help="Show preview instead of creating page"
    )

    pipeline = commands.add_parser("pipeline", help="Run full pipeline")
    pipeline.add_argument("file", help="Audio file to process")
    pipeline.add_argument(
        "--no-cache", action="store_true", help="Don't use cached intermediate results"
    )
    pipeline.add_argument(
        "--dry-run", action="store_true", help="Preview Notion page without creating"
    )

    cache = commands.add_parser("cache", help="Manage cache")
    cache_commands = cache.add_subparsers(
        dest="cache_command", required=True, metavar="action"
    )
    cache_commands.add_parser("list", help="Show all cached steps")
    show = cache_commands.add_parser("show", help="Show details for a specific step")
    show.add_argument("step", choices=STEPS)
    clear = cache_commands.add_parser("clear", help="Clear cache (all or specific step)")
    clear.add_argument("step", nargs="?", choices=STEPS)

    return parser


async def _run_transcription(
    args: argparse.Namespace, cache: StepCache, config: Config
) -> bool:
    if args.audio:
        audio = await run_audio_step(
            args.audio, cache=cache, provider=args.provider, config=config
        )
        if not audio.success:
            return False
    result = await run_transcription_step(
        cache=cache, provider=args.provider, from_cache=args.from_cache, config=config
    )
    return result.success


async def _run_pipeline(
    args: argparse.Namespace, cache: StepCache, config: Config
) -> bool:
    reporter.print_banner("VOICE-TO-NOTION PIPELINE")
    print(f"Input: {args.file}")
    print(f"Cache: {'disabled' if args.no_cache else 'enabled'}")
    print(f"Mode: {'dry-run' if args.dry_run else 'live'}")

    results = await run_all_steps(
        args.file,
        cache=cache,
        use_cache=not args.no_cache,
        dry_run=args.dry_run,
        config=config,
    )
    reporter.print_pipeline_summary(results)
    return all(result.success for result in results)


def _run_cache_command(args: argparse.Namespace, cache: StepCache) -> bool:
    if args.cache_command == "list":
        reporter.print_cache_list(cache.list())
    elif args.cache_command == "show":
        reporter.print_cache_entry(
            args.step,
            cache.path_for(args.step),
            cache.read(args.step),
            cache.display_output(args.step),
        )
    else:
        cleared = cache.clear(args.step)
        if cleared:
            print(f"Cleared cache: {', '.join(cleared)}")
        else:
            print("No cache entries to clear")
    return True


async def run_command(args: argparse.Namespace, config: Config) -> bool:
    """Dispatch a parsed command. Returns True when every step succeeded."""
    cache = StepCache(config.cache_dir)

    if args.command == "audio":
        return (await run_audio_step(args.file, cache=cache, config=config)).success
    if args.command == "transcription":
        return await _run_transcription(args, cache, config)
    if args.command == "summarization":
        result = await run_summarization_step(
            cache=cache, text=args.text, from_cache=args.from_cache, config=config
        )
        return result.success
    if args.command == "notion":
        result = await run_notion_step(
            cache=cache, from_cache=args.from_cache, dry_run=args.dry_run, config=config
        )
        return result.success
    if args.command == "pipeline":
        return await _run_pipeline(args, cache, config)
    return _run_cache_command(args, cache)


def main(argv: Sequence[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    configure_logging(LogConfig(verbose=args.verbose))

    # Each step checks the variables it needs
    config = load_config(required=())
    try:
        ok = asyncio.run(run_command(args, config))
    except Exception:
        logger.exception("Harness command failed")
        ok = False
    sys.exit(0 if ok else 1)


if __name__ == "__main__":
    main()
