"""
Infrastructure adapter persisting source snapshots to disk.

Each snapshot is written as one Zstandard-compressed JSON document validated
by the pydantic records below. Writes go to a '.part' file that is renamed
into place, so a crash never leaves a half-written cache behind.
"""

import asyncio
import contextlib
import logging
from pathlib import Path
from typing import Dict, Generator, List

import zstandard
from pydantic import AwareDatetime, BaseModel, IPvAnyNetwork, ValidationError

from ..application.domain import Category, Prefix, Snapshot, SnapshotStore
from ..application.exceptions import DecodeError, SnapshotIOError

_FORMAT_VERSION = 1


class CategoryRecord(BaseModel):
    id: str
    description: str


class PrefixRecord(BaseModel):
    network: IPvAnyNetwork
    details: Dict[str, str] = {}
    categories: List[CategoryRecord] = []


class SnapshotRecord(BaseModel):
    """The on-disk form of a Snapshot."""

    version: int = _FORMAT_VERSION
    last_update: AwareDatetime
    prefixes: List[PrefixRecord] = []

    @classmethod
    def from_domain(cls, snapshot: Snapshot) -> "SnapshotRecord":
        return cls(
            last_update=snapshot.last_update,
            prefixes=[
                PrefixRecord(
                    network=prefix.network,
                    details=dict(prefix.details),
                    categories=[
                        CategoryRecord(id=c.id, description=c.description)
                        for c in prefix.categories
                    ],
                )
                for prefix in snapshot.prefixes
            ],
        )

    def to_domain(self) -> Snapshot:
        return Snapshot(
            last_update=self.last_update,
            prefixes=[
                Prefix(
                    network=record.network,
                    details=record.details,
                    categories=[
                        Category(c.id, c.description) for c in record.categories
                    ],
                )
                for record in self.prefixes
            ],
        )


class ZstdSnapshotStore(SnapshotStore):
    """An adapter that implements the SnapshotStore port with zstd files."""

    def __init__(self, compression_level: int = 3):
        """Initializes the store."""
        self.logger = logging.getLogger(self.__class__.__name__)
        self.compression_level = compression_level

    @contextlib.contextmanager
    def _atomic_target(self, destination: Path) -> Generator[Path, None, None]:
        """Provides a temporary '.part' path and ensures cleanup."""
        part_path = destination.with_suffix(destination.suffix + ".part")
        try:
            yield part_path
        finally:
            part_path.unlink(missing_ok=True)

    def _blocking_save(self, path: Path, snapshot: Snapshot):
        payload = SnapshotRecord.from_domain(snapshot).model_dump_json().encode()
        compressor = zstandard.ZstdCompressor(level=self.compression_level)
        blob = compressor.compress(payload)
        try:
            with self._atomic_target(path) as part_path:
                part_path.write_bytes(blob)
                part_path.replace(path)
        except OSError as e:
            raise SnapshotIOError(f"Failed to write {path}: {e}") from e

    def _discard(self, path: Path):
        """Best-effort removal of an unusable cache file."""
        try:
            path.unlink(missing_ok=True)
            self.logger.warning(f"Removed unusable cache file {path}")
        except OSError as e:
            self.logger.error(
                f"Failed to remove unusable cache file {path}: {e}"
            )

    def _blocking_load(self, path: Path) -> Snapshot:
        try:
            blob = path.read_bytes()
        except FileNotFoundError as e:
            raise SnapshotIOError(f"No cache file at {path}") from e
        except OSError as e:
            self._discard(path)
            raise SnapshotIOError(f"Failed to read {path}: {e}") from e

        try:
            payload = zstandard.ZstdDecompressor().decompress(blob)
            record = SnapshotRecord.model_validate_json(payload)
        except (zstandard.ZstdError, ValidationError) as e:
            self._discard(path)
            raise DecodeError(f"Corrupt cache file {path}: {e}") from e

        if record.version != _FORMAT_VERSION:
            self._discard(path)
            raise DecodeError(
                f"Cache file {path} has format version {record.version}, "
                f"expected {_FORMAT_VERSION}"
            )

        return record.to_domain()

    async def save(self, path: Path, snapshot: Snapshot):
        """
        Persist a snapshot, replacing any previous file atomically.

        Raises:
            SnapshotIOError: If the file cannot be created or written.
        """
        await asyncio.to_thread(self._blocking_save, Path(path), snapshot)
        self.logger.debug(
            f"Saved {len(snapshot.prefixes)} prefixes to {Path(path).name}"
        )

    async def load(self, path: Path) -> Snapshot:
        """
        Restore a snapshot written by `save`.

        A file that exists but cannot be read or decoded is deleted so the
        next refresh goes to the network instead of failing on it again.

        Raises:
            SnapshotIOError: If the file is missing or unreadable.
            DecodeError: If the file is corrupt.
        """
        return await asyncio.to_thread(self._blocking_load, Path(path))
