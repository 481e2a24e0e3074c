"""Modular Pydantic Settings v2 configuration.

Settings are split by domain (db/tree/logging), read from environment
variables (and an optional .env file), frozen, and cached by the loaders:

    from hierarchy_store.core.settings import get_tree_settings

    tree_settings = get_tree_settings()
    print(tree_settings.table_name)

Configuration precedence (highest to lowest):
    1. init kwargs (testing/overrides)
    2. Environment variables
    3. .env file
"""

from __future__ import annotations

from .database import DatabaseSettings
from .loader import (
    clear_all_caches,
    get_db_settings,
    get_logging_settings,
    get_tree_settings,
)
from .logs import LoggingSettings
from .tree import TreeSettings

__all__ = [
    "DatabaseSettings",
    "LoggingSettings",
    "TreeSettings",
    "clear_all_caches",
    "get_db_settings",
    "get_logging_settings",
    "get_tree_settings",
]
