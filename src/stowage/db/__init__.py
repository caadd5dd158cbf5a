"""Database helpers shared by SQL-backed components."""

from stowage.db.engine import create_async_engine_for_dsn, detect_dialect, normalize_dsn

__all__ = [
    "create_async_engine_for_dsn",
    "detect_dialect",
    "normalize_dsn",
]
