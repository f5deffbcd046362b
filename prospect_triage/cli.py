"""Command line interface for the prospect triage workflow."""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Awaitable, Callable, List, Optional

from .config import DEFAULT_STORE_CLASS, ConfigurationError, TriageSettings, load_settings
from .factory import build_controller, build_feed, build_store
from .feed import ProspectFeed
from .ingestion import export_prospects
from .merge import ProspectList
from .models import ProspectStatus, TriageAction
from .stats import format_price, status_label
from .triage import TriageController
from .ui.presenter import SORT_KEYS, counter_text, describe_result, filter_prospects, sort_prospects

LOGGER = logging.getLogger(__name__)

Handler = Callable[[argparse.Namespace, ProspectFeed, TriageController], Awaitable[int]]

_ACTION_COMMANDS = {
    "approve": TriageAction.APPROVE,
    "audit": TriageAction.VIDEO_AUDIT,
    "reject": TriageAction.REJECT,
}


def build_parser(prog: Optional[str] = None) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog=prog, description="Triage scraped prospect properties and queue outreach")
    parser.add_argument(
        "--config",
        default=None,
        help="Path to the configuration file (YAML or JSON); defaults to $PROSPECT_TRIAGE_CONFIG",
    )
    parser.add_argument(
        "--seed",
        default=None,
        help="CSV/XLSX file of prospects to load into the in-memory store",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (e.g. DEBUG, INFO, WARNING)",
    )
    commands = parser.add_subparsers(dest="command", metavar="COMMAND")
    commands.required = True

    list_parser = commands.add_parser("list", help="Show the most recent prospects and counters")
    list_parser.add_argument(
        "--status",
        choices=[status.value for status in ProspectStatus],
        default=None,
        help="Only show prospects with this status",
    )
    list_parser.add_argument("--search", default="", help="Free-text filter over address, owner, and source")
    list_parser.add_argument("--sort", choices=sorted(SORT_KEYS), default="newest", help="Sort order")

    for name, action in _ACTION_COMMANDS.items():
        action_parser = commands.add_parser(name, help=f"Mark a prospect as {action.target_status.value}")
        action_parser.add_argument("prospect_id", help="Identifier of the prospect")

    requeue_parser = commands.add_parser("requeue", help="Queue outreach again for a qualified prospect")
    requeue_parser.add_argument("prospect_id", help="Identifier of the prospect")

    export_parser = commands.add_parser("export", help="Export the prospect list to CSV or Excel")
    export_parser.add_argument("output", help="Destination file (.csv, .tsv or .xlsx)")
    export_parser.add_argument("--formatted-prices", action="store_true", help="Write prices as currency text")

    watch_parser = commands.add_parser("watch", help="Log prospects as the scraper inserts them")
    watch_parser.add_argument("--seconds", type=float, default=None, help="Stop after this many seconds")

    commands.add_parser("ui", help="Open the desktop triage window")
    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    return build_parser().parse_args(argv)


def _resolve_settings(args: argparse.Namespace) -> TriageSettings:
    settings = load_settings(args.config)
    if args.seed:
        if settings.store_class != DEFAULT_STORE_CLASS:
            raise ConfigurationError("--seed can only be used with the in-memory store")
        settings.store_options["seed_path"] = args.seed
    return settings


# ----------------------------------------------------------------------
async def _list(args: argparse.Namespace, feed: ProspectFeed, controller: TriageController) -> int:
    prospects = feed.prospects.snapshot()
    if args.status:
        prospects = [prospect for prospect in prospects if prospect.status.value == args.status]
    prospects = filter_prospects(prospects, args.search)
    if args.sort != "newest":
        prospects = sort_prospects(prospects, args.sort)

    for label, value, _ in counter_text(feed.counts()):
        print(f"{label}: {value}")
    print()
    for prospect in prospects:
        print(
            f"{prospect.id}\t{prospect.quality_score:>3}\t{status_label(prospect.status):<10}\t"
            f"{format_price(prospect.listed_price):>14}\t{prospect.address}"
        )
    print(f"\nShowing {len(prospects)} of {len(feed.prospects)} prospects")
    return 0


def _action_handler(action: Optional[TriageAction]) -> Handler:
    async def handle(args: argparse.Namespace, feed: ProspectFeed, controller: TriageController) -> int:
        if action is None:
            result = await controller.requeue_outreach(args.prospect_id)
        else:
            result = await controller.perform(args.prospect_id, action)
        message = describe_result(result)
        if result.ok:
            print(message)
            return 0
        LOGGER.error(message)
        return 1

    return handle


async def _export(args: argparse.Namespace, feed: ProspectFeed, controller: TriageController) -> int:
    destination = export_prospects(feed.prospects.snapshot(), args.output, formatted_prices=args.formatted_prices)
    LOGGER.info("Exported %s prospects to %s", len(feed.prospects), Path(destination).resolve())
    return 0


async def _watch(args: argparse.Namespace, feed: ProspectFeed, controller: TriageController) -> int:
    seen = set(feed.prospects.ids())

    def report(prospects: ProspectList) -> None:
        for prospect in prospects:
            if prospect.id not in seen:
                seen.add(prospect.id)
                LOGGER.info(
                    "New prospect %s: %s (%s, score %s)",
                    prospect.id, prospect.address, format_price(prospect.listed_price), prospect.quality_score,
                )

    remove = feed.add_listener(report)
    try:
        if args.seconds is None:
            await asyncio.Event().wait()
        else:
            await asyncio.sleep(args.seconds)
    finally:
        remove()
    return 0


def _handler_for(command: str) -> Handler:
    if command == "list":
        return _list
    if command in _ACTION_COMMANDS:
        return _action_handler(_ACTION_COMMANDS[command])
    if command == "requeue":
        return _action_handler(None)
    if command == "export":
        return _export
    if command == "watch":
        return _watch
    raise ValueError(f"Unknown command '{command}'")


async def run_command(args: argparse.Namespace, settings: TriageSettings) -> int:
    """Connect the store, load the feed, run one command, then release everything."""

    handler = _handler_for(args.command)
    store = build_store(settings)
    await store.connect()
    try:
        async with build_feed(store, settings) as feed:
            if feed.load_error is not None:
                LOGGER.warning("Continuing without the initial prospect page")
            controller = build_controller(store, feed, settings)
            return await handler(args, feed, controller)
    finally:
        await store.close()


def main(argv: List[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.INFO))

    try:
        settings = _resolve_settings(args)
    except ConfigurationError as exc:
        logging.error("%s", exc)
        return 2

    if args.command == "ui":
        from .ui.app import main as run_ui

        run_ui(settings)
        return 0

    try:
        return asyncio.run(run_command(args, settings))
    except ConfigurationError as exc:
        logging.error("%s", exc)
        return 2
    except KeyboardInterrupt:  # pragma: no cover - interactive stop
        logging.info("Interrupted")
        return 130


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    sys.exit(main())
