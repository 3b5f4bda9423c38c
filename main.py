#!/usr/bin/env python3
"""Trendwire: AI trend digest relay for Telegram channels.

This CLI tool watches a markdown trend feed, summarizes each new revision
into a short ranked digest with an LLM, and posts it to a Telegram channel.

Commands:
    run         Scheduled path: deliver only when the feed changed
    trigger     Manual path: always summarize and deliver
    health      Probe every external dependency and print a report
    preview     Fetch, summarize, and format without sending anything
    send-test   Post a short test message to the channel
    state       Show or clear the stored digest

Examples:
    python main.py run                    # Single run
    python main.py run -c                 # Continuous polling
    python main.py trigger --lang en      # Forced run, English output
    python main.py health                 # Exit 1 when degraded
    python main.py preview --mode truncate

Environment:
    TELEGRAM_BOT_TOKEN, TELEGRAM_CHANNEL_ID, OPENROUTER_API_KEY, SOURCE_URL
    See config.py for all configuration options
"""

import argparse
import asyncio
import json
import logging
import sys
from datetime import datetime

from config import SUPPORTED_LANGUAGES, MESSAGE_MODES, Config
from errors import TrendwireError
from observability.logging import setup_logging

logger = logging.getLogger(__name__)

TEST_MESSAGES = {
    "ru": "✅ <b>Тестовое сообщение Trendwire</b>\nБот подключён к каналу. {timestamp}",
    "en": "✅ <b>Trendwire test message</b>\nThe bot is connected to the channel. {timestamp}",
}


def _run_pipeline(config: Config, force: bool) -> int:
    from pipeline import build_pipeline
    from state import SqliteDigestStore

    with SqliteDigestStore(config.state_db_path) as store:
        pipeline = build_pipeline(config, store)
        try:
            record = asyncio.run(pipeline.run(force=force))
        except TrendwireError as e:
            run = e.run_record.to_dict() if e.run_record else {}
            logger.error("Pipeline failed | type=%s error=%s", type(e).__name__, e.message)
            print(json.dumps(run, indent=2, ensure_ascii=False))
            return 1
        except KeyboardInterrupt:
            logger.info("Stopped by user (Ctrl+C)")
            return 130
        except Exception as e:
            logger.error("Pipeline failed | error=%s type=%s", e, type(e).__name__, exc_info=True)
            return 1

    print(json.dumps(record.to_dict(), indent=2, ensure_ascii=False))
    return 0


def cmd_run(args: argparse.Namespace, config: Config) -> int:
    """Execute the pipeline, skipping delivery when the feed is unchanged.

    Returns:
        Exit code (0 for success or no change)
    """
    from pipeline import build_pipeline
    from state import SqliteDigestStore

    if args.interval:
        config.poll_interval_seconds = args.interval

    if not args.continuous:
        return _run_pipeline(config, force=False)

    with SqliteDigestStore(config.state_db_path) as store:
        pipeline = build_pipeline(config, store)
        try:
            asyncio.run(pipeline.run_continuous(config.poll_interval_seconds))
        except KeyboardInterrupt:
            logger.info("Stopped by user (Ctrl+C)")
    return 0


def cmd_trigger(args: argparse.Namespace, config: Config) -> int:
    """Execute the pipeline unconditionally (manual trigger)."""
    return _run_pipeline(config, force=True)


def cmd_health(args: argparse.Namespace, config: Config) -> int:
    """Print the health report; exit 1 when any probe failed."""
    from health import HealthAggregator, build_probes

    report = asyncio.run(HealthAggregator(build_probes(config)).check_all())
    print(report.model_dump_json(indent=2))
    return 0 if not report.failed else 1


def cmd_preview(args: argparse.Namespace, config: Config) -> int:
    """Show the chunks a run would send, without sending or committing."""
    from pipeline import build_pipeline
    from state import MemoryDigestStore

    pipeline = build_pipeline(config, MemoryDigestStore(), mode=args.mode)
    try:
        chunks = asyncio.run(pipeline.preview())
    except TrendwireError as e:
        print(f"Preview failed: {e.message}", file=sys.stderr)
        return 1

    for chunk in chunks:
        print(f"----- chunk {chunk.label} ({len(chunk.render())} chars) -----")
        print(chunk.render())
    print(f"----- {len(chunks)} chunk(s), mode={pipeline.formatter.mode} -----")
    return 0


def cmd_send_test(args: argparse.Namespace, config: Config) -> int:
    """Post a short test message to the configured channel."""
    from channel import TelegramChannel

    template = TEST_MESSAGES.get(config.language, TEST_MESSAGES["en"])
    text = template.format(timestamp=datetime.now().strftime("%d.%m.%Y %H:%M"))
    try:
        message = asyncio.run(TelegramChannel.from_config(config).send_message(text))
    except TrendwireError as e:
        print(f"Test message failed: {e.message}", file=sys.stderr)
        return 1
    print(f"Test message sent (message_id={message.get('message_id')})")
    return 0


def cmd_state(args: argparse.Namespace, config: Config) -> int:
    """Show or clear the stored digest."""
    from state import SqliteDigestStore

    with SqliteDigestStore(config.state_db_path) as store:
        if args.clear:
            store.clear()
            print(f"Stored digest cleared ({config.state_db_path})")
            return 0
        info = store.info()

    status = {
        "path": str(config.state_db_path),
        "last_digest": info["digest"] if info else None,
        "updated_at": datetime.fromtimestamp(info["updated_at"]).isoformat() if info else None,
    }
    print(json.dumps(status, indent=2))
    return 0


def main() -> int:
    """Main entry point.

    Returns:
        Exit code
    """
    parser = argparse.ArgumentParser(
        description="Trendwire: AI trend digest relay for Telegram",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    run_parser = subparsers.add_parser("run", help="Run the pipeline (dedup enabled)")
    run_parser.add_argument(
        "-c", "--continuous",
        action="store_true",
        help="Run continuously with polling",
    )
    run_parser.add_argument(
        "--interval",
        type=int,
        help="Poll interval in seconds (continuous mode)",
    )

    trigger_parser = subparsers.add_parser("trigger", help="Run the pipeline, bypassing dedup")

    subparsers.add_parser("health", help="Check connectivity of all dependencies")

    preview_parser = subparsers.add_parser("preview", help="Print the formatted digest without sending")
    preview_parser.add_argument(
        "--mode",
        choices=MESSAGE_MODES,
        help="Override MESSAGE_MODE",
    )

    send_test_parser = subparsers.add_parser("send-test", help="Send a test message to the channel")

    state_parser = subparsers.add_parser("state", help="Show the stored digest")
    state_parser.add_argument(
        "--clear",
        action="store_true",
        help="Forget the stored digest so the next run delivers",
    )

    for sub in (run_parser, trigger_parser, preview_parser, send_test_parser):
        sub.add_argument(
            "--lang",
            choices=SUPPORTED_LANGUAGES,
            help="Output language (default: LANGUAGE or ru)",
        )

    args = parser.parse_args()

    config = Config.load()
    if getattr(args, "lang", None):
        config.language = args.lang

    setup_logging(config, verbose=args.verbose)

    # health reports configuration problems itself
    if args.command in ("run", "trigger", "preview", "send-test"):
        error = config.validate()
        if error:
            print(f"Configuration error: {error}", file=sys.stderr)
            return 1

    commands = {
        "run": cmd_run,
        "trigger": cmd_trigger,
        "health": cmd_health,
        "preview": cmd_preview,
        "send-test": cmd_send_test,
        "state": cmd_state,
    }

    if args.command in commands:
        return commands[args.command](args, config)

    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
