"""In-process usage ledger."""

from __future__ import annotations

from datetime import UTC, datetime

from stowage.interfaces import UsageLedger
from stowage.models.config import MemoryLedgerConfig
from stowage.models.storage import LedgerEntry
from stowage.plugins.registry import PluginType, plugin


@plugin(plugin_type=PluginType.LEDGER, name="memory")
class MemoryUsageLedger(UsageLedger):
    """Dict-backed ledger for development and tests. Not shared across processes."""

    config_cls = MemoryLedgerConfig

    @classmethod
    def create(cls, config: MemoryLedgerConfig) -> UsageLedger:
        _ = config
        return cls()

    def __init__(self) -> None:
        self._rows: dict[str, LedgerEntry] = {}

    async def total_bytes(self, owner_id: str) -> int:
        return sum(row.byte_size for row in self._rows.values() if row.owner_id == owner_id)

    async def record(self, entry: LedgerEntry) -> None:
        if entry.created_at is None:
            entry = entry.model_copy(update={"created_at": datetime.now(UTC)})
        self._rows[entry.object_id] = entry

    async def get(self, object_id: str) -> LedgerEntry | None:
        return self._rows.get(object_id)

    async def list_for_owner(self, owner_id: str) -> list[LedgerEntry]:
        return [row for row in self._rows.values() if row.owner_id == owner_id]

    async def list_unsized(self, owner_id: str) -> list[LedgerEntry]:
        return [
            row
            for row in self._rows.values()
            if row.owner_id == owner_id and row.byte_size == 0
        ]

    async def update_size(self, object_id: str, byte_size: int) -> None:
        row = self._rows.get(object_id)
        if row is None:
            raise KeyError(f"Unknown object: {object_id}")
        self._rows[object_id] = row.model_copy(update={"byte_size": byte_size})

    async def delete(self, object_id: str) -> bool:
        return self._rows.pop(object_id, None) is not None

    async def ping(self) -> bool:
        return True

    async def shutdown(self, timeout: float | None = None) -> None:
        _ = timeout
