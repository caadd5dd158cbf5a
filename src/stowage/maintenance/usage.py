"""Per-owner storage usage reporting."""

from __future__ import annotations

from pydantic import BaseModel

from stowage.interfaces import UsageLedger
from stowage.models.config import QuotaConfig
from stowage.units import format_bytes, format_storage_message, usage_percent


class UsageSummary(BaseModel):
    owner_id: str
    object_count: int
    used_bytes: int
    limit_bytes: int
    percent: float
    message: str
    used_human: str


async def usage_summary(owner_id: str, ledger: UsageLedger, quota: QuotaConfig) -> UsageSummary:
    entries = await ledger.list_for_owner(owner_id)
    used = sum(entry.byte_size for entry in entries)
    limit = quota.max_total_bytes
    return UsageSummary(
        owner_id=owner_id,
        object_count=len(entries),
        used_bytes=used,
        limit_bytes=limit,
        percent=usage_percent(used, limit),
        message=format_storage_message(used, limit),
        used_human=format_bytes(used),
    )
