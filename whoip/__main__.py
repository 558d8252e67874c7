"""
Entry point for whoip: which published network ranges contain an address.
"""

import argparse
import asyncio
import json
import logging
import sys
from importlib import metadata
from typing import Any, Dict, List, Optional

from .application.exceptions import WhoipError
from .application.registry import CATEGORIES
from .application.service import RefreshReport, WhoipService
from .infrastructure.containers import Container

logger = logging.getLogger(__name__)


def setup_logging(level: str):
    """Applies basic logging configuration; logs go to stderr."""
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )


def get_version() -> str:
    try:
        return metadata.version("whoip")
    except metadata.PackageNotFoundError:
        return "dev"


def _dump(data: Any):
    print(json.dumps(data, indent=2))


def render_report(
    service: WhoipService, report: RefreshReport
) -> Dict[str, Any]:
    """Summarize a refresh per source for printing."""
    summary = {}
    for source in service.registry.all_sources():
        outcome = report.outcomes[source.key]
        snapshot = source.snapshot
        summary[source.key] = {
            "ok": outcome.ok,
            "prefixes": len(snapshot.prefixes),
            "last_update": snapshot.last_update.isoformat(),
            "error": None if outcome.ok else str(outcome.error),
        }
    return summary


async def run_application(args: argparse.Namespace, container: Container) -> int:
    """Wires and runs the application using the DI container."""

    container.cli_args.from_dict(vars(args))
    service = container.whoip_service()

    try:
        if args.refresh:
            report = await service.refresh(show_progress=True)
            _dump(render_report(service, report))
            return 0 if report.ok else 1

        refresh = False if args.no_refresh else None
        matches = await service.find_ip(args.ip, refresh=refresh)
        _dump([match.as_dict() for match in matches])
        return 0
    finally:
        await container.http_client().aclose()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="whoip",
        description="Find which published IP ranges (cloud providers, "
        "crawlers) contain an IP address.",
    )

    parser.add_argument("ip", nargs="?", help="The IP address to look up.")

    parser.add_argument(
        "--version",
        action="store_true",
        help="Show version information and exit.",
    )

    parser.add_argument(
        "--categories",
        action="store_true",
        help="Show the available categories and exit.",
    )

    parser.add_argument(
        "--refresh",
        action="store_true",
        help="Refresh every source now and print a summary.",
    )

    parser.add_argument(
        "--no-refresh",
        action="store_true",
        help="Answer from the cached data without refreshing first.",
    )

    parser.add_argument(
        "--data-dir",
        default=None,
        help="Directory holding the cached feeds.",
    )

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(f"whoip {get_version()}")
        return 0

    if args.categories:
        _dump([category.as_dict() for category in CATEGORIES.values()])
        return 0

    if not args.refresh and not args.ip:
        parser.print_usage(sys.stderr)
        return 1

    container = Container()
    setup_logging(level=container.config().logging.level)

    try:
        return asyncio.run(run_application(args, container))
    except WhoipError as e:
        logger.error(f"An application error occurred: {e}")
        print(f"whoip: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
