"""Base database model classes.

Provides the declarative base shared by tree models and the primary key
mixins they combine with NestedSetMixin.

Examples:
    Integer keys:
    class Category(Base, IntegerPKMixin, NestedSetMixin):
        __tablename__ = "categories"
        name: Mapped[str] = mapped_column(String(255))

    Caller-assigned string keys:
    class OrgUnit(Base, StringPKMixin, NestedSetMixin):
        __tablename__ = "org_units"
        name: Mapped[str] = mapped_column(String(255))
"""

from __future__ import annotations

from sqlalchemy import MetaData, String
from sqlalchemy.orm import DeclarativeBase, Mapped, declared_attr, mapped_column

# Consistent naming convention for database constraints
# Ensures predictable names for indexes on lft/rgt/parent_id
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    """Declarative base with automatic table naming.

    The automatic table naming can be overridden by setting __tablename__
    explicitly on the model class.
    """

    metadata = MetaData(naming_convention=NAMING_CONVENTION)

    @declared_attr.directive
    def __tablename__(cls) -> str:
        """Auto-derive table name from class name (lowercase)."""
        return cls.__name__.lower()


class IntegerPKMixin:
    """Integer primary key.

    Node keys are assigned by the caller or by autoincrement; the tree
    never generates them.
    """

    __allow_unmapped__ = True

    id: Mapped[int] = mapped_column(
        primary_key=True,
        autoincrement=True,
        comment="Integer primary key",
    )


class StringPKMixin:
    """Caller-assigned string primary key (slugs, codes, external ids)."""

    __allow_unmapped__ = True

    id: Mapped[str] = mapped_column(
        String(64),
        primary_key=True,
        comment="Caller-assigned string key",
    )


__all__ = [
    "NAMING_CONVENTION",
    "Base",
    "IntegerPKMixin",
    "StringPKMixin",
]
