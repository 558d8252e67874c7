"""Tests for the Source refresh protocol."""

import asyncio
import ipaddress
from datetime import timedelta
from unittest.mock import AsyncMock

import pytest
import zstandard

from whoip.application.domain import Snapshot
from whoip.application.exceptions import (
    DecodeError,
    HTTPStatusError,
    SnapshotIOError,
    TransportError,
)
from whoip.infrastructure.parsers import parse_aws

from conftest import FAKE_URL, FakeFetcher


def ip(value):
    return ipaddress.ip_address(value)


class TestRefresh:
    """Tests for Source.refresh."""

    @pytest.mark.asyncio
    async def test_first_refresh_downloads_and_parses(self, make_source, clock):
        fetcher = FakeFetcher()
        source = make_source(fetcher)

        assert await source.refresh() is True

        assert fetcher.calls == [FAKE_URL]
        assert len(source.snapshot.prefixes) == 2
        assert source.snapshot.last_update == clock.now

    @pytest.mark.asyncio
    async def test_lookup_after_refresh(self, make_source):
        source = make_source(FakeFetcher())
        await source.refresh()

        prefix = source.find(ip("192.168.1.5"))

        assert prefix is not None
        assert prefix.details["Service"] == "FakeService1"
        assert source.find(ip("8.8.8.8")) is None

    @pytest.mark.asyncio
    async def test_second_refresh_within_interval_is_a_no_op(
        self, make_source, clock
    ):
        fetcher = FakeFetcher()
        source = make_source(fetcher)

        await source.refresh()
        clock.advance(timedelta(seconds=59))

        assert await source.refresh() is False
        assert len(fetcher.calls) == 1

    @pytest.mark.asyncio
    async def test_refresh_after_interval_downloads_again(
        self, make_source, clock
    ):
        fetcher = FakeFetcher()
        source = make_source(fetcher)

        await source.refresh()
        clock.advance(timedelta(minutes=1))

        assert await source.refresh() is True
        assert len(fetcher.calls) == 2
        assert len(source.snapshot.prefixes) == 2

    @pytest.mark.asyncio
    async def test_concurrent_refreshes_download_once(self, make_source):
        fetcher = FakeFetcher(delay=0.05)
        source = make_source(fetcher)

        results = await asyncio.gather(*(source.refresh() for _ in range(5)))

        assert sorted(results) == [False, False, False, False, True]
        assert len(fetcher.calls) == 1
        assert len(source.snapshot.prefixes) == 2

    @pytest.mark.asyncio
    async def test_persists_snapshot(self, make_source, store):
        source = make_source(FakeFetcher())
        await source.refresh()

        cached = await store.load(source.cache_path)

        assert cached.last_update == source.snapshot.last_update
        assert len(cached.prefixes) == 2


class TestCacheFallback:
    """Tests for the cache file step of the refresh protocol."""

    @pytest.mark.asyncio
    async def test_fresh_cache_file_avoids_the_network(self, make_source):
        await make_source(FakeFetcher()).refresh()

        # A second process sharing the same data directory.
        fetcher = FakeFetcher()
        source = make_source(fetcher)

        assert await source.refresh() is False
        assert fetcher.calls == []
        assert source.find(ip("10.1.2.3")).details["Service"] == "FakeService2"

    @pytest.mark.asyncio
    async def test_stale_cache_file_is_not_adopted(self, make_source, clock):
        await make_source(FakeFetcher()).refresh()
        clock.advance(timedelta(minutes=5))

        fetcher = FakeFetcher()
        source = make_source(fetcher)

        assert await source.refresh() is True
        assert len(fetcher.calls) == 1

    @pytest.mark.asyncio
    async def test_corrupt_cache_file_falls_through_to_the_network(
        self, make_source, store
    ):
        fetcher = FakeFetcher()
        source = make_source(fetcher)
        source.cache_path.write_bytes(b"truncated garbage")

        assert await source.refresh() is True

        assert len(fetcher.calls) == 1
        assert len((await store.load(source.cache_path)).prefixes) == 2

    @pytest.mark.asyncio
    async def test_cache_without_timezone_falls_through_to_the_network(
        self, make_source, store
    ):
        fetcher = FakeFetcher()
        source = make_source(fetcher)
        payload = b'{"version": 1, "last_update": "2024-06-01T12:00:00"}'
        blob = zstandard.ZstdCompressor().compress(payload)
        source.cache_path.write_bytes(blob)

        assert await source.refresh() is True

        assert len(fetcher.calls) == 1
        assert (await store.load(source.cache_path)).last_update.tzinfo

    @pytest.mark.asyncio
    async def test_stale_cache_serves_when_the_network_fails(
        self, make_source, clock
    ):
        await make_source(FakeFetcher()).refresh()
        clock.advance(timedelta(hours=1))

        source = make_source(FakeFetcher(error=TransportError("unreachable")))

        with pytest.raises(TransportError):
            await source.refresh()

        assert len(source.snapshot.prefixes) == 2
        assert not source.is_fresh(source.snapshot)

    @pytest.mark.asyncio
    async def test_warm_adopts_any_cache_without_the_network(
        self, make_source, clock
    ):
        await make_source(FakeFetcher()).refresh()
        clock.advance(timedelta(days=3))

        fetcher = FakeFetcher()
        source = make_source(fetcher)

        assert await source.warm() is True
        assert await source.warm() is False
        assert fetcher.calls == []
        assert len(source.snapshot.prefixes) == 2


class TestFailures:
    """Tests for refresh failures."""

    @pytest.mark.asyncio
    async def test_http_error_leaves_empty_snapshot_untouched(self, make_source):
        source = make_source(FakeFetcher(error=HTTPStatusError(FAKE_URL, 500)))

        with pytest.raises(HTTPStatusError):
            await source.refresh()

        assert source.snapshot == Snapshot.empty()
        assert source.find(ip("192.168.1.5")) is None
        assert not source.cache_path.exists()

    @pytest.mark.asyncio
    async def test_http_error_keeps_last_known_good_data(
        self, make_source, clock
    ):
        fetcher = FakeFetcher()
        source = make_source(fetcher)
        await source.refresh()
        before = source.snapshot

        clock.advance(timedelta(minutes=2))
        source.cache_path.unlink()
        fetcher.error = HTTPStatusError(FAKE_URL, 503)

        with pytest.raises(HTTPStatusError):
            await source.refresh()

        assert source.snapshot is before
        assert source.find(ip("192.168.1.5")) is not None

    @pytest.mark.asyncio
    async def test_failed_refresh_is_retried_next_time(self, make_source):
        fetcher = FakeFetcher(error=TransportError("timeout"))
        source = make_source(fetcher)

        with pytest.raises(TransportError):
            await source.refresh()
        fetcher.error = None

        assert await source.refresh() is True
        assert len(fetcher.calls) == 2

    @pytest.mark.asyncio
    async def test_undecodable_document_fails_the_refresh(self, make_source):
        source = make_source(
            FakeFetcher(body=b"<html></html>"), parser=parse_aws
        )

        with pytest.raises(DecodeError):
            await source.refresh()

        assert source.snapshot.prefixes == ()

    @pytest.mark.asyncio
    async def test_persistence_failure_keeps_data_in_memory(self, make_source):
        store = AsyncMock()
        store.load.side_effect = SnapshotIOError("no cache")
        store.save.side_effect = SnapshotIOError("disk full")
        source = make_source(FakeFetcher(), store=store)

        assert await source.refresh() is True

        store.save.assert_awaited_once()
        assert len(source.snapshot.prefixes) == 2
