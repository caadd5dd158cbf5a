"""SQLAlchemy implementation of UsageLedger (SQLite or PostgreSQL)."""

from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime

from sqlalchemy import BigInteger, DateTime, Index, Text, delete, func, insert, select, update
from sqlalchemy.ext.asyncio import AsyncEngine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from stowage.config.loader import resolve_env_var
from stowage.db import create_async_engine_for_dsn
from stowage.interfaces import UsageLedger
from stowage.models.config import SqlLedgerConfig
from stowage.models.storage import LedgerEntry
from stowage.plugins.registry import PluginType, plugin

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


class StoredObject(Base):
    """One stored object attributed to an owner."""

    __tablename__ = "stored_objects"

    object_id: Mapped[str] = mapped_column(Text, primary_key=True)
    owner_id: Mapped[str] = mapped_column(Text, nullable=False)
    container: Mapped[str] = mapped_column(Text, nullable=False)
    path: Mapped[str] = mapped_column(Text, nullable=False)
    byte_size: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (Index("idx_stored_objects_owner", "owner_id"),)


_STORED_OBJECTS = StoredObject.__table__


@plugin(plugin_type=PluginType.LEDGER, name="sql")
class SqlUsageLedger(UsageLedger):
    """Usage ledger stored in a `stored_objects` table.

    The engine is created on first use. Totals are always summed in the
    database at call time.
    """

    config_cls = SqlLedgerConfig

    @classmethod
    def create(cls, config: SqlLedgerConfig) -> UsageLedger:
        dsn = config.dsn
        if config.dsn_env:
            dsn = resolve_env_var(config.dsn_env)
        if not dsn:
            raise ValueError("SQL ledger requires a DSN")
        return cls(dsn, create_tables=config.create_tables)

    def __init__(self, dsn: str, *, create_tables: bool = True) -> None:
        self._dsn = dsn
        self._create_tables = create_tables
        self._engine: AsyncEngine | None = None
        self._init_lock = asyncio.Lock()

    async def _get_engine(self) -> AsyncEngine:
        if self._engine is not None:
            return self._engine
        async with self._init_lock:
            if self._engine is None:
                engine = create_async_engine_for_dsn(self._dsn)
                if self._create_tables:
                    async with engine.begin() as conn:
                        await conn.run_sync(Base.metadata.create_all)
                self._engine = engine
                logger.info("SqlUsageLedger initialized")
        return self._engine

    async def total_bytes(self, owner_id: str) -> int:
        engine = await self._get_engine()
        stmt = select(func.coalesce(func.sum(StoredObject.byte_size), 0)).where(
            StoredObject.owner_id == owner_id
        )
        async with engine.connect() as conn:
            total = (await conn.execute(stmt)).scalar_one()
        return int(total)

    async def record(self, entry: LedgerEntry) -> None:
        engine = await self._get_engine()
        values = {
            "object_id": entry.object_id,
            "owner_id": entry.owner_id,
            "container": entry.container,
            "path": entry.path,
            "byte_size": entry.byte_size,
            "created_at": entry.created_at or datetime.now(UTC),
        }
        async with engine.begin() as conn:
            await conn.execute(delete(StoredObject).where(StoredObject.object_id == entry.object_id))
            await conn.execute(insert(StoredObject).values(**values))

    async def get(self, object_id: str) -> LedgerEntry | None:
        engine = await self._get_engine()
        stmt = select(_STORED_OBJECTS).where(StoredObject.object_id == object_id)
        async with engine.connect() as conn:
            row = (await conn.execute(stmt)).first()
        if row is None:
            return None
        return _entry_from_row(row)

    async def list_for_owner(self, owner_id: str) -> list[LedgerEntry]:
        stmt = (
            select(_STORED_OBJECTS)
            .where(StoredObject.owner_id == owner_id)
            .order_by(StoredObject.created_at, StoredObject.object_id)
        )
        return await self._fetch_entries(stmt)

    async def list_unsized(self, owner_id: str) -> list[LedgerEntry]:
        stmt = (
            select(_STORED_OBJECTS)
            .where(StoredObject.owner_id == owner_id, StoredObject.byte_size == 0)
            .order_by(StoredObject.created_at, StoredObject.object_id)
        )
        return await self._fetch_entries(stmt)

    async def update_size(self, object_id: str, byte_size: int) -> None:
        engine = await self._get_engine()
        stmt = (
            update(StoredObject)
            .where(StoredObject.object_id == object_id)
            .values(byte_size=byte_size)
        )
        async with engine.begin() as conn:
            result = await conn.execute(stmt)
        if result.rowcount == 0:
            raise KeyError(f"Unknown object: {object_id}")

    async def delete(self, object_id: str) -> bool:
        engine = await self._get_engine()
        async with engine.begin() as conn:
            result = await conn.execute(
                delete(StoredObject).where(StoredObject.object_id == object_id)
            )
        return bool(result.rowcount)

    async def ping(self) -> bool:
        try:
            engine = await self._get_engine()
            async with engine.connect() as conn:
                await conn.execute(select(1))
        except Exception as exc:
            logger.warning("Usage ledger ping failed: %s", exc)
            return False
        return True

    async def shutdown(self, timeout: float | None = None) -> None:
        _ = timeout
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None

    async def _fetch_entries(self, stmt: object) -> list[LedgerEntry]:
        engine = await self._get_engine()
        async with engine.connect() as conn:
            rows = (await conn.execute(stmt)).all()  # type: ignore[call-overload]
        return [_entry_from_row(row) for row in rows]


def _entry_from_row(row: object) -> LedgerEntry:
    mapping = row._mapping  # type: ignore[attr-defined]
    return LedgerEntry(
        object_id=mapping["object_id"],
        owner_id=mapping["owner_id"],
        container=mapping["container"],
        path=mapping["path"],
        byte_size=mapping["byte_size"],
        created_at=mapping["created_at"],
    )
