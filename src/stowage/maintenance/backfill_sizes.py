"""Fill in byte sizes for ledger rows recorded without one.

Intended to be run via the Stowage CLI (`stowage backfill`).
"""

from __future__ import annotations

import logging
from posixpath import basename, dirname

from pydantic import BaseModel, Field

from stowage.interfaces import ObjectStore, UsageLedger
from stowage.models.storage import LedgerEntry

logger = logging.getLogger("stowage.backfill_sizes")


class BackfillReport(BaseModel):
    """Outcome of a backfill run. Per-row failures are collected, not raised."""

    updated: int = 0
    errors: list[str] = Field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors


async def backfill_sizes(
    owner_id: str,
    store: ObjectStore,
    ledger: UsageLedger,
    container: str | None = None,
) -> BackfillReport:
    """Look up the stored size of every zero-sized row for owner_id."""
    report = BackfillReport()
    try:
        rows = await ledger.list_unsized(owner_id)
    except Exception as exc:
        logger.error("Failed to query unsized rows for %s: %s", owner_id, exc, exc_info=exc)
        report.errors.append(f"Failed to query ledger: {exc}")
        return report

    if not rows:
        logger.info("No unsized rows for %s", owner_id)
        return report

    for row in rows:
        size = await _resolve_size(row, store, container or row.container, report)
        if size is None:
            continue
        try:
            await ledger.update_size(row.object_id, size)
        except Exception as exc:
            report.errors.append(f"Failed to update {row.object_id}: {exc}")
            continue
        report.updated += 1

    logger.info(
        "Backfill finished for %s: updated=%d errors=%d",
        owner_id,
        report.updated,
        len(report.errors),
    )
    return report


async def _resolve_size(
    row: LedgerEntry, store: ObjectStore, container: str, report: BackfillReport
) -> int | None:
    name = basename(row.path)
    try:
        listed = await store.list(container, dirname(row.path), search=name)
    except Exception as exc:
        report.errors.append(f"Failed to list file {row.path}: {exc}")
        return None

    for info in listed:
        if info.name == name and info.size:
            return info.size

    try:
        data = await store.download(container, row.path)
    except Exception as exc:
        logger.warning("Download failed for %s: %s", row.path, exc)
        report.errors.append(f"Could not get size for {row.path}")
        return None
    return len(data)
