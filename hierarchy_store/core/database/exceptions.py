"""Database repository exceptions.

Custom exceptions for tree and store operations that provide better
error messages and typing than raw SQLAlchemy exceptions.

Errors raised by the database driver itself are never wrapped: a failed
write rolls back and re-raises the original SQLAlchemy exception.
"""
from __future__ import annotations

from typing import Any


class RepositoryError(Exception):
    """Base exception for repository operations.

    Raised when a repository operation fails due to programming
    errors, configuration issues, or unexpected states.

    This is distinct from data-related errors (NotFoundError) and
    indicates a problem with the repository itself.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        """Initialize repository error.

        Args:
            message: Error description
            details: Additional context about the error
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Format error message with details."""
        if self.details:
            details_str = ", ".join(f"{k}={v!r}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class NotFoundError(RepositoryError):
    """Node not found in the tree table.

    Raised by write operations that need an existing row, e.g. inserting
    under a parent that doesn't exist or isn't positioned in the index.

    Attributes:
        model_name: Name of the table or model that was searched
        identifier: The key/value that was searched for
    """

    def __init__(self, model_name: str, identifier: dict[str, Any]):
        """Initialize not found error.

        Args:
            model_name: Name of the table (e.g., "categories")
            identifier: Key-value pairs used in the search (e.g., {"id": 123})
        """
        self.model_name = model_name
        self.identifier = identifier

        id_str = ", ".join(f"{k}={v!r}" for k, v in identifier.items())
        message = f"{model_name} not found with {id_str}"

        super().__init__(message, details={"model": model_name, **identifier})

    def __repr__(self) -> str:
        """Repr for debugging."""
        return f"NotFoundError(model={self.model_name!r}, identifier={self.identifier!r})"


class InvalidMoveError(RepositoryError):
    """Requested move would place a subtree inside itself.

    Raised before any statement is issued, so the tree is untouched.
    """

    def __init__(self, node_id: Any, parent_id: Any):
        """Initialize invalid move error.

        Args:
            node_id: Node that was asked to move
            parent_id: Requested new parent (the node itself or a descendant)
        """
        self.node_id = node_id
        self.parent_id = parent_id
        super().__init__(
            "Cannot move a node under itself or one of its descendants",
            details={"node_id": node_id, "parent_id": parent_id},
        )


class TransactionError(RepositoryError):
    """Transaction control used out of order.

    Raised by a relational store when begin() is called inside an explicit
    transaction, or commit()/rollback() is called outside of one.
    """


__all__ = [
    "InvalidMoveError",
    "NotFoundError",
    "RepositoryError",
    "TransactionError",
]
