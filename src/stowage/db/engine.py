"""Database engine factory for the SQL usage ledger.

Supports PostgreSQL (asyncpg) and SQLite (aiosqlite) through one code path.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import StaticPool


def detect_dialect(dsn: str) -> str:
    """Detect database dialect from a DSN string.

    Returns:
        Dialect name ("postgresql" or "sqlite")

    Raises:
        ValueError: If dialect cannot be detected from DSN
    """
    dsn_lower = dsn.lower()
    if dsn_lower.startswith(("postgresql://", "postgres://", "postgresql+asyncpg://")):
        return "postgresql"
    if dsn_lower.startswith(("sqlite://", "sqlite+aiosqlite://")):
        return "sqlite"
    raise ValueError(f"Cannot detect dialect from DSN: {dsn}")


def normalize_dsn(dsn: str) -> str:
    """Normalize DSN to include the appropriate async driver."""
    if dsn.startswith("postgresql://") and "+asyncpg" not in dsn:
        return dsn.replace("postgresql://", "postgresql+asyncpg://", 1)
    if dsn.startswith("postgres://") and "+asyncpg" not in dsn:
        return dsn.replace("postgres://", "postgresql+asyncpg://", 1)
    if dsn.startswith("sqlite://") and "+aiosqlite" not in dsn:
        return dsn.replace("sqlite://", "sqlite+aiosqlite://", 1)
    return dsn


def engine_kwargs_for(dsn: str) -> dict[str, Any]:
    """Return dialect-appropriate engine configuration."""
    if detect_dialect(dsn) == "postgresql":
        return {
            "pool_size": 5,
            "max_overflow": 0,
            "pool_pre_ping": True,
        }
    # In-memory SQLite needs a single shared connection.
    kwargs: dict[str, Any] = {"pool_pre_ping": True}
    if ":memory:" in dsn:
        kwargs.update(
            {
                "poolclass": StaticPool,
                "connect_args": {"check_same_thread": False},
            }
        )
    return kwargs


def create_async_engine_for_dsn(dsn: str, **extra_kwargs: object) -> AsyncEngine:
    """Create an async SQLAlchemy engine with dialect-appropriate configuration.

    Args:
        dsn: Database connection string (PostgreSQL or SQLite)
        **extra_kwargs: Override the dialect defaults

    Raises:
        ValueError: If DSN dialect is not supported

    Example:
        engine = create_async_engine_for_dsn("sqlite:///:memory:")
    """
    normalized = normalize_dsn(dsn)
    engine_kwargs = engine_kwargs_for(normalized)
    engine_kwargs.update(extra_kwargs)
    return create_async_engine(normalized, **engine_kwargs)
