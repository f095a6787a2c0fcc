"""
wordsync CLI - inspect and sync the local word-set cache.

Usage:
    wordsync status [--json]
    wordsync sync [--json]
    wordsync show [--challenges] [--active] [--json]
    wordsync pending [--json]
    wordsync clear --yes
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import List, Optional

from wordsync.config import Settings, get_settings
from wordsync.core import WordSync
from wordsync.logging_config import setup_wordsync_logging

logger = logging.getLogger(__name__)


def _print_json(data) -> None:
    print(json.dumps(data, indent=2, default=str))


async def cmd_status(args, ws: WordSync) -> int:
    """Show local cache and queue status."""
    status = await ws.status()
    if args.json:
        _print_json(status)
        return 0

    print(f"Themes:            {status['themes']}")
    print(f"Challenges:        {status['challenges']}")
    print(f"Pending actions:   {status['pending']}")
    print(f"Pending feedback:  {status['pending_feedback']}")
    print(f"Last sync:         {status['last_sync'] or 'never'}")
    if status["empty"]:
        print("Cache is empty; gameplay will use the bundled word bank.")
    return 0


async def cmd_sync(args, ws: WordSync) -> int:
    """Flush queued edits and pull remote word sets."""
    result = await ws.sync()
    sent = await ws.submit_pending_feedback()

    if args.json:
        data = result.to_dict()
        data["feedback_sent"] = sent
        _print_json(data)
    else:
        print(f"Flushed {result.flushed} pending action(s), {result.still_pending} still queued")
        if result.fetched:
            print(
                f"Pulled {result.pulled} stage update(s), removed {result.removed}, "
                f"{result.challenges} challenge(s) cached"
            )
        else:
            print("Could not reach the server; local cache kept as is")
        if sent:
            print(f"Submitted {sent} queued feedback item(s)")
        for error in result.errors:
            print(f"  ! {error}")
    return 0 if result.fetched else 1


async def cmd_show(args, ws: WordSync) -> int:
    """Print cached stages or challenges."""
    if args.challenges:
        if args.active:
            challenges = await ws.get_active_challenges()
        else:
            challenges = await ws.get_challenges_cache()
        if args.json:
            _print_json([c.to_dict() for c in challenges])
            return 0
        if not challenges:
            print("No challenges cached.")
        for c in challenges:
            window = "always"
            if c.active_from and c.active_to:
                window = f"{c.active_from} - {c.active_to}"
            print(f"{c.name} v{c.version} ({window}): {', '.join(c.words)}")
        return 0

    cache = await ws.get_cache()
    if args.json:
        _print_json(cache.to_dict())
        return 0
    if cache.is_empty:
        print("No stages cached.")
    for theme in cache.themes:
        words = cache.bank.get(theme, [])
        print(f"{theme} v{cache.versions.get(theme, 0)}: {', '.join(words)}")
    return 0


async def cmd_pending(args, ws: WordSync) -> int:
    """List queued edits."""
    actions = await ws.get_pending_actions()
    if args.json:
        _print_json([a.to_dict() for a in actions])
        return 0
    if not actions:
        print("No pending actions.")
    for action in actions:
        print(f"{action.timestamp}  {action.intent.value:<6} {action.kind.value:<9} {action.name}")
    return 0


async def cmd_clear(args, ws: WordSync) -> int:
    """Remove the cache, last-sync marker and pending queue."""
    if not args.yes:
        print("Refusing to clear without --yes (queued edits would be lost).")
        return 1
    await ws.clear_word_sets_cache()
    print("Word sets cache cleared.")
    return 0


COMMANDS = {
    "status": cmd_status,
    "sync": cmd_sync,
    "show": cmd_show,
    "pending": cmd_pending,
    "clear": cmd_clear,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="wordsync", description="Offline-tolerant word set cache and sync"
    )
    parser.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING, ...")
    subparsers = parser.add_subparsers(dest="command", required=True)

    p_status = subparsers.add_parser("status", help="Show cache and queue status")
    p_status.add_argument("--json", action="store_true")

    p_sync = subparsers.add_parser("sync", help="Flush queued edits and pull from the server")
    p_sync.add_argument("--json", action="store_true")

    p_show = subparsers.add_parser("show", help="Print cached word sets")
    p_show.add_argument("--challenges", action="store_true", help="Show challenges, not stages")
    p_show.add_argument("--active", action="store_true", help="Only currently active challenges")
    p_show.add_argument("--json", action="store_true")

    p_pending = subparsers.add_parser("pending", help="List queued edits")
    p_pending.add_argument("--json", action="store_true")

    p_clear = subparsers.add_parser("clear", help="Delete the local cache and queue")
    p_clear.add_argument("--yes", action="store_true", help="Confirm")

    return parser


async def _run(args, settings: Settings) -> int:
    ws = await WordSync.from_settings(settings)
    try:
        await ws.initialize_cache()
        return await COMMANDS[args.command](args, ws)
    finally:
        await ws.close()


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = get_settings()
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    setup_wordsync_logging(args.log_level or settings.log_level, settings.data_dir)
    return asyncio.run(_run(args, settings))


if __name__ == "__main__":
    sys.exit(main())
