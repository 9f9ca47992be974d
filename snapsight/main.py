"""Command-line entry point for snapsight."""

import argparse
import asyncio
import sys
from pathlib import Path

from snapsight.capture.file_loader import FileLoader
from snapsight.config.settings import Settings
from snapsight.config.store import ConfigKey, ConfigStore
from snapsight.errors import ConfigurationError, SnapsightError
from snapsight.logging.logger import Log
from snapsight.pipeline.orchestrator import LazyAnalyzer, build_orchestrator
from snapsight.storage.uploader import UploadClient

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_CONFIG = 2


async def cmd_config(args: argparse.Namespace, settings: Settings) -> int:
    """Read, write, or check stored credentials."""
    store = ConfigStore(settings.config_store_path)
    if args.action == "set":
        await store.set(ConfigKey(args.key), args.value)
        print(f"Saved {args.key}")
        return EXIT_OK
    if args.action == "get":
        value = await store.get(ConfigKey(args.key))
        print(value if value is not None else "(not set)")
        return EXIT_OK

    missing = await store.missing()
    if missing:
        print(f"Configuration incomplete, missing: {', '.join(missing)}")
        return EXIT_CONFIG
    print(f"Configuration complete ({store.path})")
    return EXIT_OK


async def cmd_capture(args: argparse.Namespace, settings: Settings) -> int:
    """Capture the screen, upload the image, and print the analysis."""
    orchestrator, uploader, analyzer = build_orchestrator(settings)
    try:
        await orchestrator.capture()
        result = await orchestrator.analyze_screenshot(args.instructions)
        _print_result(result, uploader if args.stats else None)
    finally:
        await _close(uploader, analyzer)
    return EXIT_OK


async def cmd_analyze(args: argparse.Namespace, settings: Settings) -> int:
    """Upload an existing PNG and print the analysis."""
    orchestrator, uploader, analyzer = build_orchestrator(settings)
    try:
        image = await FileLoader().load(Path(args.path))
        orchestrator.accept_image(image)
        result = await orchestrator.analyze_screenshot(args.instructions)
        _print_result(result, uploader if args.stats else None)
    finally:
        await _close(uploader, analyzer)
    return EXIT_OK


async def cmd_ask(args: argparse.Namespace, settings: Settings) -> int:
    """Analyze a problem given as text."""
    orchestrator, uploader, analyzer = build_orchestrator(settings)
    try:
        result = await orchestrator.analyze_text(args.prompt)
        _print_result(result, None)
    finally:
        await _close(uploader, analyzer)
    return EXIT_OK


async def cmd_cleanup(args: argparse.Namespace, settings: Settings) -> int:
    """Delete uploads older than the given number of days."""
    uploader = UploadClient(
        settings=settings,
        config_store=ConfigStore(settings.config_store_path),
    )
    try:
        removed = await uploader.cleanup_old_files(args.days)
    finally:
        await uploader.aclose()
    print(f"Removed {removed} old screenshot(s)")
    return EXIT_OK


def _print_result(result: str | None, uploader: UploadClient | None) -> None:
    print(result or "")
    if uploader is None:
        return
    metrics = uploader.metrics()
    print("\nUpload statistics")
    print("=" * 40)
    print(f"Total uploads: {metrics.total_uploads}")
    print(f"Successful: {metrics.successful_uploads}")
    print(f"Failed: {metrics.failed_uploads}")
    print(f"Average upload time: {metrics.average_upload_time_ms:.0f} ms")
    for record in uploader.recent_uploads():
        print(f"  {record.file_name} ({record.created_at:%Y-%m-%d %H:%M:%S})")


async def _close(uploader: UploadClient, analyzer: LazyAnalyzer) -> None:
    await uploader.aclose()
    await analyzer.aclose()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="snapsight",
        description="Capture the screen and get an AI analysis of what is on it",
    )
    parser.add_argument("--log-level", help="Override LOG_LEVEL (DEBUG, INFO, ...)")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    config_parser = subparsers.add_parser("config", help="Manage stored credentials")
    config_sub = config_parser.add_subparsers(dest="action", required=True)
    keys = [key.value for key in ConfigKey]
    get_parser = config_sub.add_parser("get", help="Show a stored value")
    get_parser.add_argument("key", choices=keys)
    set_parser = config_sub.add_parser("set", help="Store a value")
    set_parser.add_argument("key", choices=keys)
    set_parser.add_argument("value")
    config_sub.add_parser("check", help="Report missing credentials")
    config_parser.set_defaults(func=cmd_config)

    capture_parser = subparsers.add_parser("capture", help="Capture and analyze the screen")
    capture_parser.add_argument("-i", "--instructions", default="", help="Extra instructions")
    capture_parser.add_argument("--stats", action="store_true", help="Print upload statistics")
    capture_parser.set_defaults(func=cmd_capture)

    analyze_parser = subparsers.add_parser("analyze", help="Upload and analyze a PNG file")
    analyze_parser.add_argument("path", help="PNG file to analyze")
    analyze_parser.add_argument("-i", "--instructions", default="", help="Extra instructions")
    analyze_parser.add_argument("--stats", action="store_true", help="Print upload statistics")
    analyze_parser.set_defaults(func=cmd_analyze)

    ask_parser = subparsers.add_parser("ask", help="Analyze a problem given as text")
    ask_parser.add_argument("prompt", help="Problem text")
    ask_parser.set_defaults(func=cmd_ask)

    cleanup_parser = subparsers.add_parser("cleanup", help="Delete old uploads")
    cleanup_parser.add_argument("-d", "--days", type=int, default=None, help="Age in days")
    cleanup_parser.set_defaults(func=cmd_cleanup)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Entry point: settings -> logging -> dispatch the sub-command."""
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = Settings()
    Log.configure(args.log_level or settings.log_level, settings.log_file)

    if args.command is None:
        parser.print_help()
        return EXIT_OK

    try:
        return asyncio.run(args.func(args, settings))
    except ConfigurationError as exc:
        print(str(exc), file=sys.stderr)
        print("Set credentials with: snapsight config set <key> <value>", file=sys.stderr)
        return EXIT_CONFIG
    except SnapsightError as exc:
        print(str(exc), file=sys.stderr)
        return EXIT_ERROR
    except KeyboardInterrupt:
        Log.info("Interrupted")
        return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
