"""
This module defines the core domain models for the application.

These classes represent the pure, technology-agnostic entities and data
structures that the application's business logic operates on.
"""

import dataclasses
import ipaddress
from datetime import datetime, timezone
from pathlib import Path
from types import MappingProxyType

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Mapping, Tuple, Union

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]
IPNetwork = Union[ipaddress.IPv4Network, ipaddress.IPv6Network]

EPOCH = datetime.fromtimestamp(0, tz=timezone.utc)


# --- Domain Models ---

@dataclasses.dataclass(frozen=True)
class Category:
    """A classification tag such as 'datacenter' or 'crawler'."""

    id: str
    description: str

    def as_dict(self) -> Dict[str, str]:
        return {"id": self.id, "description": self.description}


@dataclasses.dataclass(frozen=True)
class Prefix:
    """
    A single published network range with its descriptive metadata.

    `categories` is empty unless the feed overrides the owning source's
    default categories for this particular range.
    """

    network: IPNetwork
    details: Mapping[str, str] = dataclasses.field(default_factory=dict)
    categories: Tuple[Category, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "details", MappingProxyType(dict(self.details)))
        object.__setattr__(self, "categories", tuple(self.categories))

    def __contains__(self, address: IPAddress) -> bool:
        return address in self.network


@dataclasses.dataclass(frozen=True)
class Snapshot:
    """
    The prefixes of one source as of `last_update`.

    A snapshot is never edited; a refresh builds a new one and swaps it in.
    """

    last_update: datetime
    prefixes: Tuple[Prefix, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "prefixes", tuple(self.prefixes))

    @classmethod
    def empty(cls) -> "Snapshot":
        return cls(last_update=EPOCH)


@dataclasses.dataclass(frozen=True)
class Match:
    """One source's answer to a lookup."""

    source_key: str
    name: str
    url: str
    description: str
    categories: Tuple[Category, ...]
    prefix: Prefix

    def as_dict(self) -> Dict[str, Any]:
        """Project the match into the shape printed by the CLI."""
        return {
            "url": self.url,
            "name": self.name,
            "description": self.description,
            "categories": [category.as_dict() for category in self.categories],
            "prefix": {
                "network": str(self.prefix.network),
                "details": dict(self.prefix.details),
            },
        }


# A feed parser turns the raw body of a feed into prefixes in document order.
FeedParser = Callable[[bytes], List[Prefix]]


# --- Ports (Interfaces) ---

class FeedFetcher(ABC):
    """A port for anything able to download a feed document."""

    @abstractmethod
    async def fetch(self, url: str) -> bytes:
        """
        Downloads the document published at `url`.
        Raises TransportError or HTTPStatusError on failure.
        """
        pass


class SnapshotStore(ABC):
    """A port for persisting one snapshot per file."""

    @abstractmethod
    async def save(self, path: Path, snapshot: Snapshot):
        """Persists a snapshot. Raises SnapshotIOError on failure."""
        pass

    @abstractmethod
    async def load(self, path: Path) -> Snapshot:
        """
        Restores a snapshot.
        Raises SnapshotIOError or DecodeError; a corrupt file is removed.
        """
        pass
