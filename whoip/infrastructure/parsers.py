"""
Feed parsers turning published IP range documents into domain prefixes.

Every parser is a pure function of the raw response body. Entries that do not
carry a valid network are skipped and counted; a body that is not a JSON
object of the expected shape raises DecodeError.
"""

import ipaddress
import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from ..application.domain import IPNetwork, Prefix
from ..application.exceptions import DecodeError, EntryParseError

from .feed_models import (
    AwsFeed,
    AwsIPv6PrefixEntry,
    AwsPrefixEntry,
    DualPrefixEntry,
    DualPrefixFeed,
    FeedEntry,
)

logger = logging.getLogger(__name__)

FeedT = TypeVar("FeedT", bound=BaseModel)
EntryT = TypeVar("EntryT", bound=FeedEntry)


def parse_network(value: Optional[str]) -> IPNetwork:
    """
    Parse a CIDR string, tolerating host bits like "10.0.0.1/8".

    Raises:
        EntryParseError: If `value` is empty or not a CIDR block.
    """
    if not value:
        raise EntryParseError("missing network")
    if "/" not in value:
        raise EntryParseError(f"{value!r} has no prefix length")
    try:
        return ipaddress.ip_network(value.strip(), strict=False)
    except ValueError as e:
        raise EntryParseError(f"{value!r} is not a network: {e}") from e


def _decode_envelope(raw: bytes, model: Type[FeedT]) -> FeedT:
    try:
        return model.model_validate_json(raw)
    except ValidationError as e:
        raise DecodeError(
            f"Feed document does not match {model.__name__}: "
            f"{e.error_count()} errors"
        ) from e


def _collect(
    feed_name: str,
    entries: Iterable[Any],
    model: Type[EntryT],
    to_prefix: Callable[[EntryT], Prefix],
) -> List[Prefix]:
    """Validate and convert entries in document order, skipping bad ones."""

    prefixes = []
    skipped = 0
    for position, raw_entry in enumerate(entries):
        try:
            try:
                entry = model.model_validate(raw_entry)
            except ValidationError as e:
                raise EntryParseError(
                    f"malformed entry: {e.error_count()} errors"
                ) from e
            prefixes.append(to_prefix(entry))
        except EntryParseError as e:
            skipped += 1
            logger.debug(f"{feed_name}: skipping entry #{position}: {e}")

    if skipped:
        logger.warning(
            f"{feed_name}: skipped {skipped} invalid entries, "
            f"kept {len(prefixes)}."
        )
    return prefixes


def _aws_details(entry) -> Dict[str, str]:
    return {
        "Region": entry.region or "",
        "Service": entry.service or "",
        "NetworkBorderGroup": entry.network_border_group or "",
    }


def parse_aws(raw: bytes) -> List[Prefix]:
    """Parse ip-ranges.amazonaws.com: IPv4 `prefixes`, then `ipv6_prefixes`."""

    feed = _decode_envelope(raw, AwsFeed)

    ipv4 = _collect(
        "aws",
        feed.prefixes,
        AwsPrefixEntry,
        lambda entry: Prefix(
            network=parse_network(entry.ip_prefix),
            details=_aws_details(entry),
        ),
    )
    ipv6 = _collect(
        "aws",
        feed.ipv6_prefixes,
        AwsIPv6PrefixEntry,
        lambda entry: Prefix(
            network=parse_network(entry.ipv6_prefix),
            details=_aws_details(entry),
        ),
    )
    return ipv4 + ipv6


def _dual_network(entry: DualPrefixEntry) -> IPNetwork:
    """Use the IPv4 field if it parses, else the IPv6 field."""
    try:
        return parse_network(entry.ipv4Prefix)
    except EntryParseError:
        return parse_network(entry.ipv6Prefix)


def parse_google_cloud(raw: bytes) -> List[Prefix]:
    """Parse www.gstatic.com/ipranges/cloud.json, keeping service and scope."""

    feed = _decode_envelope(raw, DualPrefixFeed)
    return _collect(
        "google-cloud",
        feed.prefixes,
        DualPrefixEntry,
        lambda entry: Prefix(
            network=_dual_network(entry),
            details={"Service": entry.service or "", "Scope": entry.scope or ""},
        ),
    )


def parse_dual_prefix(raw: bytes) -> List[Prefix]:
    """Parse the GoogleBot and BingBot lists, which carry no details."""

    feed = _decode_envelope(raw, DualPrefixFeed)
    return _collect(
        "crawler",
        feed.prefixes,
        DualPrefixEntry,
        lambda entry: Prefix(network=_dual_network(entry)),
    )
