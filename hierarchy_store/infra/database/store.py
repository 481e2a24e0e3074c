"""SQLAlchemy AsyncSession adapter for the RelationalStore interface."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from hierarchy_store.core.database.exceptions import TransactionError
from hierarchy_store.core.database.hierarchy import NestedSetTree
from hierarchy_store.core.settings import get_tree_settings

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession
    from sqlalchemy.sql import Executable

    from hierarchy_store.core.database.store import Params
    from hierarchy_store.core.settings import TreeSettings

logger = logging.getLogger(__name__)


class SQLAlchemyStore:
    """Run tree statements through an AsyncSession.

    The store never closes the session; whoever opened it does. Explicit
    transactions map onto the session's own transaction: ``begin`` joins
    one the session already auto-began for earlier reads.

    Example:
        async with get_async_session() as session:
            store = SQLAlchemyStore(session)
            await store.begin()
            await store.execute(update(categories).values(lft=0, rgt=0))
            await store.commit()
    """

    __slots__ = ("_explicit", "_session")

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._explicit = False

    @property
    def session(self) -> AsyncSession:
        """Underlying session."""
        return self._session

    @property
    def in_transaction(self) -> bool:
        """Whether an explicit begin() is waiting for commit or rollback."""
        return self._explicit

    async def scalar(self, query: Executable, params: Params = None) -> Any:
        result = await self._session.execute(query, params)
        return result.scalar()

    async def row(self, query: Executable, params: Params = None) -> dict[str, Any] | None:
        result = await self._session.execute(query, params)
        mapping = result.mappings().first()
        return dict(mapping) if mapping is not None else None

    async def rows(self, query: Executable, params: Params = None) -> list[dict[str, Any]]:
        result = await self._session.execute(query, params)
        return [dict(mapping) for mapping in result.mappings().all()]

    async def column(self, query: Executable, params: Params = None) -> list[Any]:
        result = await self._session.execute(query, params)
        return list(result.scalars().all())

    async def execute(self, query: Executable, params: Params = None) -> int:
        result = await self._session.execute(query, params)
        return getattr(result, "rowcount", -1)

    async def begin(self) -> None:
        """Start an explicit transaction.

        Raises:
            TransactionError: If an explicit transaction is already open
        """
        if self._explicit:
            raise TransactionError(
                "Transaction already in progress",
                details={"operation": "begin"},
            )
        if not self._session.in_transaction():
            await self._session.begin()
        self._explicit = True

    async def commit(self) -> None:
        """Commit the explicit transaction.

        The transaction stays open if the commit itself fails, so the
        caller can still roll back.

        Raises:
            TransactionError: If no explicit transaction is open
        """
        if not self._explicit:
            raise TransactionError("No transaction to commit", details={"operation": "commit"})
        await self._session.commit()
        self._explicit = False

    async def rollback(self) -> None:
        """Roll back the explicit transaction.

        Raises:
            TransactionError: If no explicit transaction is open
        """
        if not self._explicit:
            raise TransactionError(
                "No transaction to roll back", details={"operation": "rollback"}
            )
        try:
            await self._session.rollback()
        finally:
            self._explicit = False
        logger.debug("Store transaction rolled back")


def build_tree(session: AsyncSession, settings: TreeSettings | None = None) -> NestedSetTree[Any]:
    """Create a NestedSetTree over ``session`` for the configured table.

    Args:
        session: Session the tree issues statements through
        settings: Table and column names; loaded via get_tree_settings() when omitted
    """
    tree_settings = settings or get_tree_settings()
    return NestedSetTree(
        SQLAlchemyStore(session),
        tree_settings.table_name,
        tree_settings.name_field,
        **tree_settings.tree_kwargs(),
    )


__all__ = [
    "SQLAlchemyStore",
    "build_tree",
]
