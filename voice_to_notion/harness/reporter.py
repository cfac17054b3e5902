"""Verbose console output for harness runs.

Writes to stdout with print(); structured logs keep going to stderr.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import UTC, datetime
from typing import Any

SEPARATOR = "═" * 64
THIN_SEPARATOR = "─" * 64


def format_value(value: Any, max_length: int = 80) -> str:
    """Render a value on one line, shortening long strings and lists."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, str):
        if len(value) > max_length:
            return f'"{value[:max_length]}..." ({len(value)} chars)'
        return f'"{value}"'
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, (list, tuple)):
        if not value:
            return "[]"
        if len(value) <= 3:
            return "[" + ", ".join(format_value(v, 30) for v in value) + "]"
        return f"[{len(value)} items]"
    if isinstance(value, Mapping):
        if not value:
            return "{}"
        return "{" + ", ".join(str(k) for k in value) + "}"
    return str(value)


def time_ago(timestamp: str, now: datetime | None = None) -> str:
    """Describe an ISO-8601 timestamp relative to now, e.g. "5m ago"."""
    try:
        then = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
    except ValueError:
        return timestamp
    if then.tzinfo is None:
        then = then.replace(tzinfo=UTC)
    elapsed = ((now or datetime.now(UTC)) - then).total_seconds()

    minutes = int(elapsed // 60)
    if minutes < 1:
        return "just now"
    if minutes < 60:
        return f"{minutes}m ago"
    hours = minutes // 60
    if hours < 24:
        return f"{hours}h ago"
    return f"{hours // 24}d ago"


def print_banner(title: str) -> None:
    print()
    print(SEPARATOR)
    print(f" {title}")
    print(SEPARATOR)
    print()


def print_step_header(number: int, name: str) -> None:
    print_banner(f"STEP {number}: {name}")


def print_input(data: Mapping[str, Any]) -> None:
    print("Input:")
    for key, value in data.items():
        print(f"  {key}: {format_value(value)}")
    print()


def print_progress(message: str, success: bool | None = None) -> None:
    if success is None:
        indicator = "..."
    else:
        indicator = "✓" if success else "✗"
    print(f"  {indicator} {message}")


def print_output(data: Mapping[str, Any]) -> None:
    print()
    print("Output:")
    for key, value in data.items():
        print(f"  {key}: {format_value(value, 100)}")


def print_result(
    success: bool, duration_ms: int, cached: bool, cache_path: str | None = None
) -> None:
    print()
    status = "SUCCESS" if success else "FAILED"
    source = " (from cache)" if cached else ""
    print(f"Result: {status}{source} ({duration_ms}ms)")
    if cache_path and not cached:
        print(f"Cached to: {cache_path}")


def print_error(error: BaseException | str) -> None:
    print()
    print("Error:")
    if isinstance(error, BaseException):
        print(f"  {type(error).__name__}: {error}")
    else:
        print(f"  {error}")


def print_dry_run_preview(content: str) -> None:
    print()
    print("DRY RUN PREVIEW:")
    print(THIN_SEPARATOR)
    print(content)
    print(THIN_SEPARATOR)


def print_pipeline_summary(results: Sequence[Any]) -> None:
    """Print one line per executed step and the overall total.

    Args:
        results: StepResult-like objects with step, success, duration_ms,
            cached and error attributes.
    """
    print_banner("PIPELINE SUMMARY")

    total = sum(result.duration_ms for result in results)
    passed = sum(1 for result in results if result.success)

    for result in results:
        status = "✓" if result.success else "✗"
        cached = " (cached)" if result.cached else ""
        print(f"  {status} {result.step:<15} {result.duration_ms}ms{cached}")
        if result.error:
            print(f"      Error: {result.error}")

    print()
    print(THIN_SEPARATOR)
    print(f"  Total: {passed}/{len(results)} steps passed in {total}ms")
    print()


def print_cache_list(listings: Sequence[Any]) -> None:
    print()
    print("Cache Status:")
    print(THIN_SEPARATOR)
    for listing in listings:
        if listing.entry is None:
            print(f"  {listing.step:<15} (not cached)")
        else:
            age = time_ago(listing.entry.timestamp)
            print(f"  {listing.step:<15} {age:<20} ({listing.entry.duration_ms}ms)")
    print()


def _print_nested(value: Any, indent: int) -> None:
    pad = " " * indent
    if not isinstance(value, Mapping):
        print(f"{pad}{format_value(value)}")
        return
    for key, item in value.items():
        if isinstance(item, Mapping):
            print(f"{pad}{key}:")
            _print_nested(item, indent + 2)
        else:
            print(f"{pad}{key}: {format_value(item, 60)}")


def print_cache_entry(step: str, path: str, entry: Any, output: Any) -> None:
    """Print the detail view of one cache entry.

    Args:
        step: Step name.
        path: Cache file path.
        entry: CacheEntry or None when nothing is cached.
        output: Display form of the entry output.
    """
    print()
    print(f"Cache: {step}")
    print(f"Path: {path}")
    print(THIN_SEPARATOR)

    if entry is None:
        print("  (not cached)")
        print()
        return

    print(f"  Timestamp: {entry.timestamp}")
    print(f"  Duration: {entry.duration_ms}ms")
    print()
    print("  Input:")
    _print_nested(entry.input, 4)
    print()
    print("  Output:")
    _print_nested(output, 4)
    print()
