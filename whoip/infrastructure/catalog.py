"""
The fixed table of published IP range feeds known to whoip.

Each definition names its feed parser and the ids of its default categories;
`build_registry` turns the table into live Source objects bound to a fetcher,
a snapshot store and the data directory.
"""

import dataclasses
from datetime import timedelta
from pathlib import Path
from typing import Sequence, Tuple

from ..application.domain import FeedFetcher, FeedParser, SnapshotStore
from ..application.registry import Registry, categories_by_id
from ..application.source import Source

from .parsers import parse_aws, parse_dual_prefix, parse_google_cloud

_GOOGLEBOT_BASE_URL = "https://developers.google.com/static/search/apis/ipranges"


@dataclasses.dataclass(frozen=True)
class SourceDefinition:
    """Static configuration of one source."""

    key: str
    url: str
    name: str
    description: str
    category_ids: Tuple[str, ...]
    refresh_interval: timedelta
    parser: FeedParser

    @property
    def data_filename(self) -> str:
        return f"{self.key}.bin"


SOURCE_DEFINITIONS: Tuple[SourceDefinition, ...] = (
    SourceDefinition(
        key="aws",
        url="https://ip-ranges.amazonaws.com/ip-ranges.json",
        name="Amazon AWS",
        description="Amazon AWS IP Ranges",
        category_ids=("datacenter",),
        refresh_interval=timedelta(hours=48),
        parser=parse_aws,
    ),
    SourceDefinition(
        key="google",
        url="https://www.gstatic.com/ipranges/cloud.json",
        name="Google Cloud",
        description="Google Cloud IP Ranges",
        category_ids=("datacenter",),
        refresh_interval=timedelta(hours=48),
        parser=parse_google_cloud,
    ),
    SourceDefinition(
        key="google-bot",
        url=f"{_GOOGLEBOT_BASE_URL}/googlebot.json",
        name="GoogleBot",
        description="GoogleBot IP Ranges of the main crawlers",
        category_ids=("crawler",),
        refresh_interval=timedelta(hours=24),
        parser=parse_dual_prefix,
    ),
    SourceDefinition(
        key="google-bot-special",
        url=f"{_GOOGLEBOT_BASE_URL}/special-crawlers.json",
        name="GoogleBot Special Crawlers",
        description="GoogleBot IP Ranges of the special crawlers",
        category_ids=("crawler",),
        refresh_interval=timedelta(hours=24),
        parser=parse_dual_prefix,
    ),
    SourceDefinition(
        key="google-user-triggered-fetchers-google",
        url=f"{_GOOGLEBOT_BASE_URL}/user-triggered-fetchers-google.json",
        name="GoogleBot Users Triggered (Google)",
        description=(
            "GoogleBot IP Ranges of the user triggered crawlers (google IPs)"
        ),
        category_ids=("crawler",),
        refresh_interval=timedelta(hours=24),
        parser=parse_dual_prefix,
    ),
    SourceDefinition(
        key="bingbot",
        url="https://www.bing.com/toolbox/bingbot.json",
        name="BingBot",
        description="BingBot IP Ranges",
        category_ids=("crawler",),
        refresh_interval=timedelta(hours=24),
        parser=parse_dual_prefix,
    ),
)


def build_registry(
    fetcher: FeedFetcher,
    store: SnapshotStore,
    data_dir: Path,
    definitions: Sequence[SourceDefinition] = SOURCE_DEFINITIONS,
) -> Registry:
    """
    Instantiate every defined source.

    Raises:
        ConfigurationError: On unknown category ids, or on two definitions
                            sharing a URL or a data file.
    """
    sources = [
        Source(
            key=definition.key,
            url=definition.url,
            name=definition.name,
            description=definition.description,
            categories=categories_by_id(definition.category_ids),
            refresh_interval=definition.refresh_interval,
            cache_path=Path(data_dir) / definition.data_filename,
            parser=definition.parser,
            fetcher=fetcher,
            store=store,
        )
        for definition in definitions
    ]
    return Registry(sources)
