"""Database layer - engine, base classes, column types."""

from production_kernel.db.base import Base, TrackedBase
from production_kernel.db.engine import (
    create_database_engine,
    create_tables,
    drop_tables,
    get_engine,
    get_session,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
    session_scope,
)
from production_kernel.db.types import CatchNumber, IsoDate, LotNumber, Quantity, Share

__all__ = [
    "init_engine_from_url",
    "create_database_engine",
    "get_engine",
    "get_session",
    "get_session_factory",
    "session_scope",
    "create_tables",
    "drop_tables",
    "reset_engine",
    "Base",
    "TrackedBase",
    "Quantity",
    "Share",
    "LotNumber",
    "CatchNumber",
    "IsoDate",
]
