"""
The core application services, containing pure business logic.

This module defines the refresh orchestrator (RefreshOrchestrator) that
brings every source up to date concurrently, and the lookup service
(WhoipService) that answers which published ranges contain an address.
"""

import asyncio
import dataclasses
import ipaddress
import logging
from typing import Dict, List, Optional, Union

from tqdm.contrib.logging import logging_redirect_tqdm
from tqdm.asyncio import tqdm_asyncio

from .domain import Category, IPAddress, Match
from .exceptions import InvalidAddressError
from .registry import Registry
from .source import Source

logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class RefreshOutcome:
    """The terminal state of one source's refresh attempt."""

    source_key: str
    downloaded: bool = False
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclasses.dataclass(frozen=True)
class RefreshReport:
    """Per-source outcomes of a refresh_all call, in registry order."""

    outcomes: Dict[str, RefreshOutcome]

    @property
    def failures(self) -> List[RefreshOutcome]:
        return [o for o in self.outcomes.values() if not o.ok]

    @property
    def ok(self) -> bool:
        return not self.failures


class RefreshOrchestrator:
    """Refreshes every registered source concurrently."""

    def __init__(self, registry: Registry, show_progress: bool = False):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.registry = registry
        self.show_progress = show_progress

    async def _refresh_one(self, source: Source) -> RefreshOutcome:
        """Wrapper turning a source's failure into an outcome."""
        try:
            downloaded = await source.refresh()
        except Exception as e:
            self.logger.warning(
                f"Failure updating source '{source.name}': "
                f"{type(e).__name__}: {e}"
            )
            return RefreshOutcome(source.key, error=e)
        return RefreshOutcome(source.key, downloaded=downloaded)

    async def refresh_all(
        self, show_progress: Optional[bool] = None
    ) -> RefreshReport:
        """
        Refresh all sources and wait until each one is done.

        A failing source never prevents the others from refreshing; its
        error is logged and recorded in the returned report.
        """

        if show_progress is None:
            show_progress = self.show_progress

        sources = self.registry.all_sources()
        tasks = [
            asyncio.create_task(self._refresh_one(source))
            for source in sources
        ]

        with logging_redirect_tqdm():
            outcomes = await tqdm_asyncio.gather(
                *tasks,
                desc="Refreshing sources",
                unit="source",
                disable=not show_progress,
            )

        report = RefreshReport(
            outcomes={outcome.source_key: outcome for outcome in outcomes}
        )
        if report.failures:
            failed = ", ".join(o.source_key for o in report.failures)
            self.logger.warning(
                f"{len(report.failures)} of {len(sources)} sources failed "
                f"to refresh: {failed}"
            )
        return report

    async def warm_all(self):
        """Load every source's cache file without going to the network."""
        await asyncio.gather(
            *(source.warm() for source in self.registry.all_sources())
        )


def parse_address(value: Union[str, IPAddress]) -> IPAddress:
    """
    Parse an IP address, folding IPv4-mapped IPv6 addresses to IPv4.

    Raises:
        InvalidAddressError: If `value` is not an IP address.
    """
    try:
        address = ipaddress.ip_address(value)
    except ValueError as e:
        raise InvalidAddressError(f"Invalid IP address: {value}") from e

    if isinstance(address, ipaddress.IPv6Address) and address.ipv4_mapped:
        return address.ipv4_mapped
    return address


class WhoipService:
    """Answers which published ranges contain a given address."""

    def __init__(
        self,
        registry: Registry,
        orchestrator: RefreshOrchestrator,
        refresh_before_lookup: bool = True,
    ):
        self.registry = registry
        self.orchestrator = orchestrator
        self.refresh_before_lookup = refresh_before_lookup

    async def refresh(
        self, show_progress: Optional[bool] = None
    ) -> RefreshReport:
        return await self.orchestrator.refresh_all(show_progress=show_progress)

    async def find_ip(
        self, value: Union[str, IPAddress], refresh: Optional[bool] = None
    ) -> List[Match]:
        """
        Find, for every source, the first prefix containing the address.

        Args:
            value: The address to look up.
            refresh: Refresh all sources first. Defaults to the service's
                     `refresh_before_lookup` setting.

        Returns:
            At most one match per source, in registry order.

        Raises:
            InvalidAddressError: If `value` is not an IP address.
        """

        address = parse_address(value)

        if refresh is None:
            refresh = self.refresh_before_lookup
        if refresh:
            await self.orchestrator.refresh_all()
        else:
            await self.orchestrator.warm_all()

        matches = []
        for source in self.registry.all_sources():
            prefix = source.find(address)
            if prefix is None:
                continue
            matches.append(
                Match(
                    source_key=source.key,
                    name=source.name,
                    url=source.url,
                    description=source.description,
                    categories=prefix.categories or source.categories,
                    prefix=prefix,
                )
            )

        logger.debug(f"{address} matched {len(matches)} sources")
        return matches

    def categories(self) -> List[Category]:
        return self.registry.categories()
