"""Mixin for models stored as a nested set.

Adds the adjacency and boundary columns a NestedSetTree maintains, plus
cheap instance properties computed from the loaded values. Tree-shape
queries and mutations go through ``nested_set_tree()``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, ClassVar

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, declared_attr, mapped_column

from hierarchy_store.core.database.base import StringPKMixin
from hierarchy_store.core.database.hierarchy.nested_set import NestedSetTree

if TYPE_CHECKING:
    from sqlalchemy.types import TypeEngine

    from hierarchy_store.core.database.store import RelationalStore


class NestedSetMixin:
    """Mixin for models with ``parent_id``/``lft``/``rgt`` columns.

    New rows default to ``lft = rgt = 0`` (outside the index) until the
    tree positions them.

    Example:
        >>> class Category(Base, IntegerPKMixin, NestedSetMixin):
        ...     __tablename__ = "categories"
        ...     name: Mapped[str] = mapped_column(String(255))
        >>>
        >>> session.add(Category(id=1, name="electronics"))
        >>> await session.flush()
        >>> tree = Category.nested_set_tree(SQLAlchemyStore(session))
        >>> await tree.insert_node(1)

    Note:
        - The label column defaults to ``name`` (override ``__tree_label__``)
        - ``parent_id`` takes the key type: ``String(64)`` next to StringPKMixin,
          ``Integer`` otherwise (override ``__tree_key_type__`` for other keys)
        - ``parent_id`` has no foreign key: row lifecycle belongs to the caller
    """

    __allow_unmapped__ = True

    # Override in subclass to use a different label column
    __tree_label__: ClassVar[str] = "name"
    # Override when the primary key is neither Integer nor StringPKMixin
    __tree_key_type__: ClassVar[TypeEngine[Any] | None] = None

    @declared_attr
    def parent_id(cls) -> Mapped[Any]:
        """Adjacency pointer typed like the primary key."""
        key_type = cls.__tree_key_type__
        if key_type is None:
            key_type = String(64) if issubclass(cls, StringPKMixin) else Integer()
        return mapped_column(
            key_type,
            nullable=True,
            index=True,
            comment="Adjacency pointer, NULL for roots",
        )

    lft: Mapped[int] = mapped_column(
        default=0,
        server_default="0",
        index=True,
        comment="Nested-set left boundary (0 = not in the index)",
    )
    rgt: Mapped[int] = mapped_column(
        default=0,
        server_default="0",
        index=True,
        comment="Nested-set right boundary (0 = not in the index)",
    )

    @property
    def is_root(self) -> bool:
        """Whether this row has no parent. Does NOT query the database."""
        return self.parent_id is None

    @property
    def is_positioned(self) -> bool:
        """Whether the tree has assigned this row an interval."""
        return (self.rgt or 0) > 0

    @property
    def is_leaf(self) -> bool:
        """Whether the loaded interval encloses no descendants."""
        return self.is_positioned and self.rgt - self.lft == 1

    @property
    def descendant_count(self) -> int:
        """Descendants encoded by the loaded interval (may be stale)."""
        if not self.is_positioned:
            return 0
        return (self.rgt - self.lft - 1) // 2

    @classmethod
    def nested_set_tree(cls, store: RelationalStore) -> NestedSetTree[Any]:
        """Build a NestedSetTree bound to this model's table.

        Args:
            store: Relational store to issue statements through
        """
        table_name = getattr(cls, "__table__").name  # noqa: B009
        return NestedSetTree(store, table_name, cls.__tree_label__)


__all__ = [
    "NestedSetMixin",
]
