"""Hierarchical data support using the nested-set model.

This package keeps a tree (categories, org charts, taxonomies) in a flat
table by giving every row an integer interval [lft, rgt]. A node's
descendants are the rows whose intervals nest inside its own.

Components:
    - NestedSetTree: Queries, insert/move/remove, rebuild and tree views
    - NestedSetMixin: Declarative columns for nested-set models
    - find_violations: Read-only consistency report

Example:
    >>> from hierarchy_store.core.database import Base, IntegerPKMixin
    >>> from hierarchy_store.core.database.hierarchy import NestedSetMixin
    >>>
    >>> class Category(Base, IntegerPKMixin, NestedSetMixin):
    ...     __tablename__ = "categories"
    ...     name: Mapped[str] = mapped_column(String(255))
    >>>
    >>> tree = Category.nested_set_tree(SQLAlchemyStore(session))
    >>> await tree.insert_node(2, parent_id=1)
    >>> await tree.get_ancestors(2)
    [TreeNode(id=1, name='electronics')]

Note:
    - The tree maintains lft/rgt only; rows are created and deleted by the caller
    - Concurrent writers need serializable isolation or range locks on the table
"""

from hierarchy_store.core.database.hierarchy.integrity import (
    TreeViolation,
    ViolationKind,
    check_positions,
    find_violations,
)
from hierarchy_store.core.database.hierarchy.mixins import NestedSetMixin
from hierarchy_store.core.database.hierarchy.nested_set import NestedSetTree
from hierarchy_store.core.database.hierarchy.nodes import (
    DescendantNode,
    Interval,
    NodePosition,
    TreeEntry,
    TreeNode,
)

__all__ = [
    "DescendantNode",
    "Interval",
    "NestedSetMixin",
    "NestedSetTree",
    "NodePosition",
    "TreeEntry",
    "TreeNode",
    "TreeViolation",
    "ViolationKind",
    "check_positions",
    "find_violations",
]
