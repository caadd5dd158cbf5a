"""Storage-related data models."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class StoreAck(BaseModel):
    """Acknowledgement of a successful object store write."""

    container: str
    path: str
    storage_uri: str


class StoredObjectInfo(BaseModel):
    """One row of an object store listing."""

    name: str
    size: int | None = None


class LedgerEntry(BaseModel):
    """Usage ledger row attributing stored bytes to an owner."""

    object_id: str
    owner_id: str
    container: str
    path: str
    byte_size: int = Field(default=0, ge=0)
    created_at: datetime | None = None
