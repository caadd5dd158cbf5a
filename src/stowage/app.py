"""Application that wires the upload pipeline to its configured backends."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING

from stowage.config import load_config
from stowage.errors import ReferenceIssuanceFailed
from stowage.imaging import PillowCodec
from stowage.logging_setup import owner_scope
from stowage.maintenance import (
    BackfillReport,
    DeleteReport,
    UsageSummary,
    backfill_sizes,
    delete_objects,
    usage_summary,
)
from stowage.models.storage import LedgerEntry
from stowage.models.upload import UploadRequest, UploadResult
from stowage.pipeline import UploadPipeline
from stowage.plugins import discover_all_plugins
from stowage.plugins.ledger import load_ledger_plugin
from stowage.plugins.storage import load_storage_plugin

if TYPE_CHECKING:
    from stowage.interfaces import ObjectStore, UsageLedger
    from stowage.models.config import Config

logger = logging.getLogger(__name__)


class Application:
    """Owns the object store, usage ledger and pipeline for one process.

    Use as an async context manager so backends are shut down on exit.
    """

    def __init__(self, config: Config) -> None:
        self._config = config
        self._store: ObjectStore | None = None
        self._ledger: UsageLedger | None = None
        self._pipeline: UploadPipeline | None = None

    @classmethod
    def from_path(cls, config_path: Path) -> Application:
        return cls(load_config(config_path))

    async def __aenter__(self) -> Application:
        self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.shutdown()

    def start(self) -> None:
        """Create components based on config."""
        discover_all_plugins()
        self._store = load_storage_plugin(self._config.storage)
        self._ledger = load_ledger_plugin(self._config.ledger)
        self._pipeline = UploadPipeline(self._config, self._store, self._ledger, PillowCodec())
        logger.info(
            "Application started: storage=%s ledger=%s",
            self._config.storage.backend,
            self._config.ledger.backend,
        )

    @property
    def config(self) -> Config:
        return self._config

    @property
    def store(self) -> ObjectStore:
        if self._store is None:
            raise RuntimeError("Application not started")
        return self._store

    @property
    def ledger(self) -> UsageLedger:
        if self._ledger is None:
            raise RuntimeError("Application not started")
        return self._ledger

    @property
    def pipeline(self) -> UploadPipeline:
        if self._pipeline is None:
            raise RuntimeError("Application not started")
        return self._pipeline

    async def upload(self, request: UploadRequest) -> UploadResult:
        """Run the pipeline and record the stored object in the ledger."""
        with owner_scope(request.owner_id):
            try:
                result = await self.pipeline.upload(request)
            except ReferenceIssuanceFailed as exc:
                # The object is stored; count it before surfacing the error.
                await self._record(request.owner_id, exc.container, exc.path, exc.byte_size or 0)
                raise
            await self._record(request.owner_id, result.container, result.path, result.byte_size)
        return result

    async def _record(self, owner_id: str, container: str, path: str, byte_size: int) -> None:
        await self.ledger.record(
            LedgerEntry(
                object_id=f"{container}/{path}",
                owner_id=owner_id,
                container=container,
                path=path,
                byte_size=byte_size,
                created_at=datetime.now(UTC),
            )
        )

    async def usage(self, owner_id: str) -> UsageSummary:
        return await usage_summary(owner_id, self.ledger, self._config.quota)

    async def backfill(self, owner_id: str) -> BackfillReport:
        return await backfill_sizes(owner_id, self.store, self.ledger)

    async def delete(self, object_ids: list[str]) -> DeleteReport:
        return await delete_objects(object_ids, self.store, self.ledger)

    async def shutdown(self) -> None:
        """Graceful shutdown of all components."""
        if self._ledger is not None:
            await self._ledger.shutdown()
        if self._store is not None:
            await self._store.shutdown()
        logger.info("Application shutdown complete")
