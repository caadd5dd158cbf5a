"""Remove stored objects together with their ledger rows."""

from __future__ import annotations

import logging

from pydantic import BaseModel, Field

from stowage.interfaces import ObjectStore, UsageLedger

logger = logging.getLogger("stowage.delete_objects")


class DeleteReport(BaseModel):
    succeeded: int = 0
    failed: int = 0
    errors: list[str] = Field(default_factory=list)


async def delete_object(object_id: str, store: ObjectStore, ledger: UsageLedger) -> bool:
    """Delete one object.

    The store removal is best-effort: a failure is logged and the ledger row is
    still removed so usage stops counting it.

    Raises:
        KeyError: If object_id has no ledger row
    """
    entry = await ledger.get(object_id)
    if entry is None:
        raise KeyError(f"Object {object_id} not found")

    try:
        await store.remove(entry.container, [entry.path])
    except Exception as exc:
        logger.warning(
            "Failed to delete %s/%s from store: %s", entry.container, entry.path, exc
        )
    else:
        logger.info("Deleted %s/%s from store", entry.container, entry.path)

    removed = await ledger.delete(object_id)
    logger.info("Deleted ledger row %s", object_id)
    return removed


async def delete_objects(
    object_ids: list[str], store: ObjectStore, ledger: UsageLedger
) -> DeleteReport:
    report = DeleteReport()
    for object_id in object_ids:
        try:
            await delete_object(object_id, store, ledger)
        except KeyError:
            report.failed += 1
            report.errors.append(f"Object {object_id} not found")
            continue
        except Exception as exc:
            report.failed += 1
            report.errors.append(f"Failed to delete {object_id}: {exc}")
            continue
        report.succeeded += 1
    return report
