"""Interface definitions for upload pipeline collaborators."""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from stowage.models.storage import LedgerEntry, StoreAck, StoredObjectInfo


class Shutdownable(ABC):
    """Async shutdown interface for managed components."""

    @abstractmethod
    async def shutdown(self, timeout: float | None = None) -> None:
        """Release resources and stop background work."""
        raise NotImplementedError


class ObjectStore(Shutdownable, ABC):
    """Remote object store holding uploaded media."""

    @abstractmethod
    async def put(self, container: str, path: str, data: bytes, content_type: str) -> StoreAck:
        """Write bytes to container/path.

        Must overwrite an existing object at the same path so that retried
        writes stay idempotent.
        """
        raise NotImplementedError

    @abstractmethod
    async def create_signed_url(self, container: str, path: str, ttl_s: int) -> str:
        """Return a time-limited access URL for an uploaded object."""
        raise NotImplementedError

    @abstractmethod
    async def remove(self, container: str, paths: list[str]) -> None:
        """Delete objects. Missing objects are ignored."""
        raise NotImplementedError

    @abstractmethod
    async def list(
        self, container: str, prefix: str, search: str | None = None
    ) -> list[StoredObjectInfo]:
        """List objects directly under prefix, optionally filtered by name."""
        raise NotImplementedError

    @abstractmethod
    async def download(self, container: str, path: str) -> bytes:
        """Fetch object bytes."""
        raise NotImplementedError

    @abstractmethod
    async def ping(self) -> bool:
        """Health check. Returns True if the store is reachable."""
        raise NotImplementedError


class UsageLedger(Shutdownable, ABC):
    """Queryable source of per-owner stored byte sizes."""

    @abstractmethod
    async def total_bytes(self, owner_id: str) -> int:
        """Sum byte sizes of all objects attributed to owner_id, read live."""
        raise NotImplementedError

    @abstractmethod
    async def record(self, entry: LedgerEntry) -> None:
        """Insert or replace a ledger row."""
        raise NotImplementedError

    @abstractmethod
    async def get(self, object_id: str) -> LedgerEntry | None:
        """Return a ledger row, or None if unknown."""
        raise NotImplementedError

    @abstractmethod
    async def list_for_owner(self, owner_id: str) -> list[LedgerEntry]:
        """Return all rows for owner_id."""
        raise NotImplementedError

    @abstractmethod
    async def list_unsized(self, owner_id: str) -> list[LedgerEntry]:
        """Return rows for owner_id whose byte size was never recorded (0)."""
        raise NotImplementedError

    @abstractmethod
    async def update_size(self, object_id: str, byte_size: int) -> None:
        """Set the byte size of an existing row."""
        raise NotImplementedError

    @abstractmethod
    async def delete(self, object_id: str) -> bool:
        """Delete a row. Returns True if a row was removed."""
        raise NotImplementedError

    @abstractmethod
    async def ping(self) -> bool:
        """Health check. Returns True if the ledger is reachable."""
        raise NotImplementedError


class ImageCodec(ABC):
    """Blocking image primitives. Callers run these off the event loop."""

    @abstractmethod
    def probe(self, source: Path) -> tuple[int, int]:
        """Return intrinsic (width, height)."""
        raise NotImplementedError

    @abstractmethod
    def reencode(
        self, source: Path, dest: Path, size: tuple[int, int] | None, quality: float
    ) -> tuple[int, int]:
        """Optionally resize, then write JPEG at quality (0-1). Returns output size."""
        raise NotImplementedError

    @abstractmethod
    def rotate(self, source: Path, dest: Path, degrees: float, quality: float = 0.9) -> None:
        """Rotate clockwise by degrees and write JPEG."""
        raise NotImplementedError

    @abstractmethod
    def thumbnail(self, source: Path, dest: Path, size: int = 200, quality: float = 0.7) -> None:
        """Write a size x size JPEG thumbnail."""
        raise NotImplementedError


class BinaryEncoder(ABC):
    """Produces a transport-ready byte buffer from a local file."""

    name: str = "encoder"

    @abstractmethod
    async def encode(self, source: Path) -> bytes:
        """Read source into bytes for the transport layer."""
        raise NotImplementedError
