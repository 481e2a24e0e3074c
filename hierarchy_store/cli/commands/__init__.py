"""CLI command modules."""

from hierarchy_store.cli.commands import tree

__all__ = [
    "tree",
]
