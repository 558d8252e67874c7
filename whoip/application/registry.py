"""The fixed category catalog and the read-only registry of sources."""

from collections import OrderedDict
from typing import Dict, Iterable, List, Mapping, Sequence

from .domain import Category
from .exceptions import ConfigurationError
from .source import Source

CATEGORIES: Mapping[str, Category] = OrderedDict(
    (category.id, category)
    for category in (
        Category("crawler", "IP ranges used by web crawlers and bots"),
        Category(
            "residential",
            "IP ranges assigned to residential users by ISPs",
        ),
        Category("business", "IP ranges assigned to businesses"),
        Category(
            "mobile",
            "IP ranges used by mobile carriers for their data services",
        ),
        Category(
            "datacenter",
            "IP ranges belonging to data centers and hosting providers",
        ),
        Category("education", "IP ranges assigned to educational institutions"),
        Category("government", "IP ranges used by government agencies"),
        Category("healthcare", "IP ranges used by healthcare providers"),
        Category("cdn", "IP ranges used by content delivery networks"),
        Category("isp", "IP ranges owned by internet service providers"),
        Category("vpn", "IP ranges used by VPN and proxy services"),
        Category("spam", "IP ranges identified as sources of spam activity"),
        Category(
            "malicious",
            "IP ranges identified as sources of malicious activity",
        ),
        Category("private", "Non-routable IP ranges used for private networks"),
        Category("iot", "IP ranges used by Internet of Things devices"),
        Category("telecom", "IP ranges used by telecommunications companies"),
        Category("rnd", "IP ranges used by research and development networks"),
        Category("social", "IP ranges belonging to social media platforms"),
        Category("gaming", "IP ranges used by online gaming platforms"),
    )
)


def categories_by_id(ids: Iterable[str]) -> List[Category]:
    """Resolve category ids against the catalog."""
    try:
        return [CATEGORIES[category_id] for category_id in ids]
    except KeyError as e:
        raise ConfigurationError(f"Unknown category {e.args[0]!r}") from e


class Registry:
    """
    The set of known sources, keyed by source key, in definition order.

    Built once at startup and never modified. Construction fails if two
    sources share a URL or a cache file, since they would then fight over
    the same snapshot.
    """

    def __init__(
        self,
        sources: Sequence[Source],
        categories: Mapping[str, Category] = CATEGORIES,
    ):
        self._sources: Dict[str, Source] = {}
        seen_urls: Dict[str, str] = {}
        seen_paths: Dict[str, str] = {}

        for source in sources:
            if source.key in self._sources:
                raise ConfigurationError(f"Duplicate source key {source.key!r}")
            if source.url in seen_urls:
                raise ConfigurationError(
                    f"Sources {seen_urls[source.url]!r} and {source.key!r} "
                    f"share the URL {source.url}"
                )
            cache_path = str(source.cache_path.resolve())
            if cache_path in seen_paths:
                raise ConfigurationError(
                    f"Sources {seen_paths[cache_path]!r} and {source.key!r} "
                    f"share the cache file {cache_path}"
                )
            for category in source.categories:
                if not category.id:
                    raise ConfigurationError(
                        f"Source {source.key!r} has a category without an id"
                    )

            self._sources[source.key] = source
            seen_urls[source.url] = source.key
            seen_paths[cache_path] = source.key

        self._categories = OrderedDict(categories)

    def __len__(self):
        return len(self._sources)

    def __contains__(self, key: str) -> bool:
        return key in self._sources

    def get(self, key: str) -> Source:
        return self._sources[key]

    def all_sources(self) -> List[Source]:
        return list(self._sources.values())

    def categories(self) -> List[Category]:
        return list(self._categories.values())
