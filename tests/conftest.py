"""Pytest fixtures for whoip tests."""

import asyncio
import ipaddress
import json
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, List, Optional

import pytest

from whoip.application.domain import Category, FeedFetcher, Prefix
from whoip.application.registry import CATEGORIES
from whoip.application.source import Source
from whoip.infrastructure.snapshot_store import ZstdSnapshotStore

FAKE_URL = "https://www.example.com/ranges.json"


class FakeClock:
    """A controllable replacement for datetime.now(timezone.utc)."""

    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta):
        self.now += delta


class FakeFetcher(FeedFetcher):
    """Counts downloads and returns a fixed body or raises a fixed error."""

    def __init__(
        self,
        body: bytes = b"{}",
        error: Optional[Exception] = None,
        delay: float = 0,
    ):
        self.body = body
        self.error = error
        self.delay = delay
        self.calls: List[str] = []

    async def fetch(self, url: str) -> bytes:
        self.calls.append(url)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.body


def fake_parser(raw: bytes) -> List[Prefix]:
    """Always yields the same two prefixes, whatever the body."""
    return [
        Prefix(
            network=ipaddress.ip_network("192.168.1.0/24"),
            details={"Service": "FakeService1", "Region": "us-west-1"},
        ),
        Prefix(
            network=ipaddress.ip_network("10.0.0.0/8"),
            details={"Service": "FakeService2", "Region": "us-east-1"},
        ),
    ]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> ZstdSnapshotStore:
    return ZstdSnapshotStore()


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture
def make_source(
    tmp_path: Path, store: ZstdSnapshotStore, clock: FakeClock
) -> Callable[..., Source]:
    """Factory for fake sources writing their cache under tmp_path."""

    def _make(
        fetcher: FeedFetcher,
        key: str = "fake",
        url: str = FAKE_URL,
        parser=fake_parser,
        refresh_interval: timedelta = timedelta(minutes=1),
        categories: Optional[List[Category]] = None,
        store=store,
    ) -> Source:
        return Source(
            key=key,
            url=url,
            name="Fake Source",
            description="A fake source for testing purposes",
            categories=categories or [CATEGORIES["datacenter"]],
            refresh_interval=refresh_interval,
            cache_path=tmp_path / f"{key}.bin",
            parser=parser,
            fetcher=fetcher,
            store=store,
            clock=clock,
        )

    return _make


@pytest.fixture
def aws_document() -> bytes:
    """A trimmed ip-ranges.amazonaws.com document."""
    return json.dumps({
        "syncToken": "1717000000",
        "createDate": "2024-05-29-17-13-05",
        "prefixes": [
            {
                "ip_prefix": "3.5.140.0/22",
                "region": "ap-northeast-2",
                "service": "AMAZON",
                "network_border_group": "ap-northeast-2",
            },
            {
                "ip_prefix": "not-a-network",
                "region": "us-east-1",
                "service": "EC2",
                "network_border_group": "us-east-1",
            },
            "garbage",
            {
                "ip_prefix": "52.94.76.0/22",
                "region": "us-west-2",
                "service": "EC2",
                "network_border_group": "us-west-2",
            },
        ],
        "ipv6_prefixes": [
            {
                "ipv6_prefix": "2600:1f14::/35",
                "region": "us-west-2",
                "service": "EC2",
                "network_border_group": "us-west-2",
            },
        ],
    }).encode()


@pytest.fixture
def google_cloud_document() -> bytes:
    """A trimmed www.gstatic.com/ipranges/cloud.json document."""
    return json.dumps({
        "syncToken": "1717000000000",
        "creationTime": "2024-05-29T10:00:00.000000",
        "prefixes": [
            {
                "ipv4Prefix": "34.1.208.0/20",
                "service": "Google Cloud",
                "scope": "africa-south1",
            },
            {
                "ipv6Prefix": "2600:1900:8000::/44",
                "service": "Google Cloud",
                "scope": "us-east4",
            },
            {
                "ipv4Prefix": "bogus",
                "ipv6Prefix": "2600:1901::/48",
                "service": "Google Cloud",
                "scope": "global",
            },
            {
                "ipv4Prefix": "bogus",
                "service": "Google Cloud",
                "scope": "global",
            },
        ],
    }).encode()


@pytest.fixture
def googlebot_document() -> bytes:
    """A trimmed googlebot.json / bingbot.json document."""
    return json.dumps({
        "creationTime": "2024-05-29T10:00:00.000000",
        "prefixes": [
            {"ipv6Prefix": "2001:4860:4801:10::/64"},
            {"ipv4Prefix": "66.249.64.0/27"},
            {"ipv4Prefix": "157.55.39.1/24"},
            {"ipv4Prefix": "40.77.167.0"},
            {},
        ],
    }).encode()
