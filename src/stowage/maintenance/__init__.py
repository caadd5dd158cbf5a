"""Maintenance workflows run from the CLI."""

from stowage.maintenance.backfill_sizes import BackfillReport, backfill_sizes
from stowage.maintenance.delete_objects import DeleteReport, delete_object, delete_objects
from stowage.maintenance.usage import UsageSummary, usage_summary

__all__ = [
    "BackfillReport",
    "DeleteReport",
    "UsageSummary",
    "backfill_sizes",
    "delete_object",
    "delete_objects",
    "usage_summary",
]
