"""Relational store interface consumed by the tree algorithms.

The tree never talks to a driver directly. It hands SQLAlchemy Core
statements to an object satisfying ``RelationalStore`` and reads back
shaped results. ``hierarchy_store.infra.database.SQLAlchemyStore`` is the
production implementation; tests may substitute their own.

Example:
    from hierarchy_store.infra.database import SQLAlchemyStore, get_async_session

    async with get_async_session() as session:
        store = SQLAlchemyStore(session)
        total = await store.scalar(select(func.count()).select_from(categories))
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Mapping

    from sqlalchemy.sql import Executable

type Params = Mapping[str, Any] | None


@runtime_checkable
class RelationalStore(Protocol):
    """Minimal query/transaction surface used by NestedSetTree.

    Result shaping:
        - scalar: first column of the first row, or None
        - row: first row as a field -> value dict, or None
        - rows: every row as a dict, in result order
        - column: first column of every row
        - execute: affected row count of a mutation

    Transactions are explicit and flat: begin() inside an active explicit
    transaction and commit()/rollback() outside of one are errors.
    """

    async def scalar(self, query: Executable, params: Params = None) -> Any: ...

    async def row(self, query: Executable, params: Params = None) -> dict[str, Any] | None: ...

    async def rows(self, query: Executable, params: Params = None) -> list[dict[str, Any]]: ...

    async def column(self, query: Executable, params: Params = None) -> list[Any]: ...

    async def execute(self, query: Executable, params: Params = None) -> int: ...

    async def begin(self) -> None: ...

    async def commit(self) -> None: ...

    async def rollback(self) -> None: ...

    @property
    def in_transaction(self) -> bool: ...


__all__ = [
    "Params",
    "RelationalStore",
]
