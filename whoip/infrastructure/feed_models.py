"""
Pydantic models for validating the structure of the published IP range feeds.

The envelope models only require the top level to be an object; entries are
kept raw and validated one by one with the entry models, so a single
malformed entry is dropped without failing the whole document.
"""

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict


class FeedEntry(BaseModel):
    """Base for feed entries; unknown keys are ignored."""

    model_config = ConfigDict(extra="ignore")


class AwsPrefixEntry(FeedEntry):
    """An entry of the `prefixes` list of ip-ranges.amazonaws.com."""

    ip_prefix: Optional[str] = None
    region: Optional[str] = None
    service: Optional[str] = None
    network_border_group: Optional[str] = None


class AwsIPv6PrefixEntry(FeedEntry):
    """An entry of the `ipv6_prefixes` list of ip-ranges.amazonaws.com."""

    ipv6_prefix: Optional[str] = None
    region: Optional[str] = None
    service: Optional[str] = None
    network_border_group: Optional[str] = None


class AwsFeed(BaseModel):
    """
    Represents the top-level AWS document.

    `syncToken` and `createDate` are published too but carry nothing we
    keep.
    """

    prefixes: List[Any] = []
    ipv6_prefixes: List[Any] = []


class DualPrefixEntry(FeedEntry):
    """
    An entry carrying either an `ipv4Prefix` or an `ipv6Prefix`.

    This is the shape shared by the Google Cloud, GoogleBot and BingBot
    feeds; only Google Cloud fills in `service` and `scope`.
    """

    ipv4Prefix: Optional[str] = None
    ipv6Prefix: Optional[str] = None
    service: Optional[str] = None
    scope: Optional[str] = None


class DualPrefixFeed(BaseModel):
    """Represents the top-level Google/Bing document."""

    prefixes: List[Any] = []
