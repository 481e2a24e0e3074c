"""Database core: declarative base, store interface and nested-set trees.

Example:
    from hierarchy_store.core.database import Base, IntegerPKMixin, NestedSetMixin

    class Category(Base, IntegerPKMixin, NestedSetMixin):
        __tablename__ = "categories"
        name: Mapped[str] = mapped_column(String(255))
"""

from hierarchy_store.core.database.base import (
    NAMING_CONVENTION,
    Base,
    IntegerPKMixin,
    StringPKMixin,
)
from hierarchy_store.core.database.exceptions import (
    InvalidMoveError,
    NotFoundError,
    RepositoryError,
    TransactionError,
)
from hierarchy_store.core.database.hierarchy import (
    DescendantNode,
    NestedSetMixin,
    NestedSetTree,
    TreeEntry,
    TreeNode,
    TreeViolation,
    find_violations,
)
from hierarchy_store.core.database.store import RelationalStore
from hierarchy_store.core.database.validation import (
    IdentifierValidationError,
    validate_identifier,
    validate_tree_columns,
)

__all__ = [
    "NAMING_CONVENTION",
    "Base",
    "DescendantNode",
    "IdentifierValidationError",
    "IntegerPKMixin",
    "InvalidMoveError",
    "NestedSetMixin",
    "NestedSetTree",
    "NotFoundError",
    "RelationalStore",
    "RepositoryError",
    "StringPKMixin",
    "TransactionError",
    "TreeEntry",
    "TreeNode",
    "TreeViolation",
    "find_violations",
    "validate_identifier",
    "validate_tree_columns",
]
