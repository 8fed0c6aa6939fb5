"""Database infrastructure: declarative base, engine, immutability listeners."""

from collateral_kernel.db.base import Base, TrackedBase
from collateral_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_engine,
    get_session,
    init_engine_from_url,
    reset_engine,
    session_scope,
)
from collateral_kernel.db.immutability import (
    register_immutability_listeners,
    unregister_immutability_listeners,
)

__all__ = [
    "Base",
    "TrackedBase",
    "create_tables",
    "drop_tables",
    "get_engine",
    "get_session",
    "init_engine_from_url",
    "register_immutability_listeners",
    "reset_engine",
    "session_scope",
    "unregister_immutability_listeners",
]
