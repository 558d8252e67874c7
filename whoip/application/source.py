"""
The Source entity: one published IP range feed and its cached snapshot.

A Source keeps its snapshot fresh with a fixed protocol run under its own
lock: in-memory freshness check, then the cache file, then the network.
Lookups read the current snapshot without taking the lock; snapshots are
immutable and replaced in a single assignment, so a reader always sees either
the old or the new one in full.
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Optional, Sequence

from .domain import (
    Category,
    FeedFetcher,
    FeedParser,
    IPAddress,
    Prefix,
    Snapshot,
    SnapshotStore,
)
from .exceptions import DecodeError, SnapshotIOError, WhoipError


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Source:
    """A named IP range feed with a refresh cadence and an on-disk cache."""

    def __init__(
        self,
        key: str,
        url: str,
        name: str,
        description: str,
        categories: Sequence[Category],
        refresh_interval: timedelta,
        cache_path: Path,
        parser: FeedParser,
        fetcher: FeedFetcher,
        store: SnapshotStore,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.key = key
        self.url = url
        self.name = name
        self.description = description
        self.categories = tuple(categories)
        self.refresh_interval = refresh_interval
        self.cache_path = Path(cache_path)
        self.parser = parser
        self.fetcher = fetcher
        self.store = store
        self.clock = clock
        self.logger = logging.getLogger(f"{self.__class__.__name__}[{key}]")
        self._snapshot = Snapshot.empty()
        self._lock = asyncio.Lock()

    def __repr__(self):
        return f"Source(key={self.key!r}, url={self.url!r})"

    @property
    def snapshot(self) -> Snapshot:
        """The snapshot currently serving lookups."""
        return self._snapshot

    def is_fresh(self, snapshot: Snapshot) -> bool:
        return self.clock() - snapshot.last_update < self.refresh_interval

    def find(self, address: IPAddress) -> Optional[Prefix]:
        """
        Return the first prefix, in feed order, that contains `address`.

        Overlapping prefixes are not ranked: if a feed lists both a /16 and a
        /24 covering the address, whichever comes first in the document wins.
        """
        snapshot = self._snapshot
        for prefix in snapshot.prefixes:
            if address in prefix:
                return prefix
        return None

    async def _load_cached(self) -> Optional[Snapshot]:
        """Read the cache file, returning None when it is missing or unusable."""
        try:
            return await self.store.load(self.cache_path)
        except (SnapshotIOError, DecodeError) as e:
            self.logger.info(f"No usable cached snapshot: {e}")
            return None

    async def _commit(self, prefixes: Sequence[Prefix]):
        """Swap in a new snapshot and persist it."""
        self._snapshot = Snapshot(last_update=self.clock(), prefixes=prefixes)
        try:
            await self.store.save(self.cache_path, self._snapshot)
        except SnapshotIOError as e:
            self.logger.error(f"Keeping refreshed data in memory only: {e}")

    async def warm(self) -> bool:
        """
        Adopt the cached snapshot, however old, if it is newer than ours.

        Used when lookups are served without refreshing; never touches the
        network.
        """

        async with self._lock:
            if self.is_fresh(self._snapshot):
                return False
            cached = await self._load_cached()
            if cached is None:
                return False
            if cached.last_update <= self._snapshot.last_update:
                return False
            self._snapshot = cached
            return True

    async def refresh(self) -> bool:
        """
        Guarantee the snapshot is fresh, going to the network only if needed.

        Concurrent callers are serialized on the source's lock; whoever waits
        finds the snapshot fresh once the first caller is done and returns
        without any I/O.

        Returns:
            True if this call downloaded the feed, False if the in-memory or
            cached snapshot was already fresh.

        Raises:
            TransportError, HTTPStatusError: If the download fails.
            DecodeError: If the downloaded document cannot be decoded.
        """

        async with self._lock:
            if self.is_fresh(self._snapshot):
                return False

            cached = await self._load_cached()
            if cached is not None and self.is_fresh(cached):
                self.logger.info(
                    "Adopted cached snapshot from "
                    f"{cached.last_update:%Y-%m-%d %H:%M:%S} "
                    f"({len(cached.prefixes)} prefixes)."
                )
                self._snapshot = cached
                return False

            try:
                self.logger.info(f"Downloading {self.url}...")
                raw = await self.fetcher.fetch(self.url)
                prefixes = self.parser(raw)
            except WhoipError:
                # Serve an outdated cache rather than nothing at all.
                if (
                    cached is not None
                    and cached.last_update > self._snapshot.last_update
                ):
                    self.logger.warning(
                        f"Refresh failed, serving stale cached snapshot from "
                        f"{cached.last_update:%Y-%m-%d %H:%M:%S}."
                    )
                    self._snapshot = cached
                raise

            await self._commit(prefixes)
            self.logger.info(f"Refreshed with {len(prefixes)} prefixes.")
            return True
