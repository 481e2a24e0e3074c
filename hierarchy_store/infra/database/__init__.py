"""Database infrastructure: engine/session lifecycle and the SQLAlchemy store."""

from hierarchy_store.infra.database.session import (
    close_database,
    create_engine_from_settings,
    get_async_session,
    get_engine,
    get_session_factory,
    init_database,
)
from hierarchy_store.infra.database.store import SQLAlchemyStore, build_tree

__all__ = [
    "SQLAlchemyStore",
    "build_tree",
    "close_database",
    "create_engine_from_settings",
    "get_async_session",
    "get_engine",
    "get_session_factory",
    "init_database",
]
