"""Mock usage ledger for testing."""

from __future__ import annotations

from stowage.interfaces import UsageLedger
from stowage.models.storage import LedgerEntry


class MockLedger(UsageLedger):
    """Ledger with a fixed per-owner total and optional read failure."""

    def __init__(
        self,
        totals: dict[str, int] | None = None,
        simulate_failure: bool = False,
    ) -> None:
        self.totals = dict(totals or {})
        self.simulate_failure = simulate_failure
        self.entries: dict[str, LedgerEntry] = {}
        self.total_calls = 0
        self.shutdown_called = False

    async def total_bytes(self, owner_id: str) -> int:
        self.total_calls += 1
        if self.simulate_failure:
            raise ConnectionError("Simulated ledger outage")
        recorded = sum(e.byte_size for e in self.entries.values() if e.owner_id == owner_id)
        return self.totals.get(owner_id, 0) + recorded

    async def record(self, entry: LedgerEntry) -> None:
        self.entries[entry.object_id] = entry

    async def get(self, object_id: str) -> LedgerEntry | None:
        return self.entries.get(object_id)

    async def list_for_owner(self, owner_id: str) -> list[LedgerEntry]:
        return [e for e in self.entries.values() if e.owner_id == owner_id]

    async def list_unsized(self, owner_id: str) -> list[LedgerEntry]:
        return [e for e in self.entries.values() if e.owner_id == owner_id and e.byte_size == 0]

    async def update_size(self, object_id: str, byte_size: int) -> None:
        entry = self.entries[object_id]
        self.entries[object_id] = entry.model_copy(update={"byte_size": byte_size})

    async def delete(self, object_id: str) -> bool:
        return self.entries.pop(object_id, None) is not None

    async def ping(self) -> bool:
        return not self.simulate_failure

    async def shutdown(self, timeout: float | None = None) -> None:
        self.shutdown_called = True
