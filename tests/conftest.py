"""Pytest configuration and shared fixtures.

Organization:
    - Models: declarative tree tables shared by the database tests
    - Database Fixtures: in-memory aiosqlite engine, session, store and tree
    - Tree Fixtures: factories that seed rows and read boundaries back
    - Settings Fixtures: environment isolation for pydantic-settings loaders

Every test gets a fresh in-memory database, so tests may mutate freely.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Awaitable, Callable, Iterator
from typing import Any

import pytest
from sqlalchemy import String, insert, select
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import Mapped, mapped_column

from hierarchy_store.core.database import Base, IntegerPKMixin, NestedSetMixin, NestedSetTree
from hierarchy_store.core.settings import clear_all_caches
from hierarchy_store.infra.database import SQLAlchemyStore

type Row = tuple[int, int | None, str]

# ============================================================================
# Models
# ============================================================================


class Category(Base, IntegerPKMixin, NestedSetMixin):
    """Tree table with the default column names."""

    __tablename__ = "categories"

    name: Mapped[str] = mapped_column(String(255))


# Insertion order matters: siblings end up in this order, and ids ascend
# within each parent so a rebuild by id reproduces the same intervals.
#
#   electronics (1)          garden (7)
#   |-- computers (2)
#   |   |-- laptops (4)
#   |   |-- desktops (5)
#   |-- phones (3)
#       |-- android (6)
SAMPLE_TREE: list[Row] = [
    (1, None, "electronics"),
    (2, 1, "computers"),
    (3, 1, "phones"),
    (4, 2, "laptops"),
    (5, 2, "desktops"),
    (6, 3, "android"),
    (7, None, "garden"),
]

SAMPLE_INTERVALS: dict[int, tuple[int, int]] = {
    1: (0, 11),
    2: (1, 6),
    3: (7, 10),
    4: (2, 3),
    5: (4, 5),
    6: (8, 9),
    7: (12, 13),
}


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture
async def async_engine():
    """Create async SQLite engine for testing.

    Returns:
        SQLAlchemy async engine configured for in-memory SQLite.
    """
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
async def session(async_engine) -> AsyncGenerator[AsyncSession]:
    """Create async database session for testing."""
    async with AsyncSession(async_engine, expire_on_commit=False) as session:
        yield session


@pytest.fixture
def store(session: AsyncSession) -> SQLAlchemyStore:
    """Relational store over the test session."""
    return SQLAlchemyStore(session)


@pytest.fixture
def tree(store: SQLAlchemyStore) -> NestedSetTree[int]:
    """Nested-set tree over the categories table."""
    return Category.nested_set_tree(store)


# ============================================================================
# Tree Fixtures
# ============================================================================


@pytest.fixture
def add_categories(session: AsyncSession) -> Callable[..., Awaitable[None]]:
    """Factory inserting unpositioned category rows.

    Example:
        await add_categories((1, None, "electronics"), (2, 1, "computers"))
    """

    async def _add(*rows: Row) -> None:
        await session.execute(
            insert(Category),
            [
                {"id": node_id, "parent_id": parent_id, "name": name}
                for node_id, parent_id, name in rows
            ],
        )
        await session.commit()

    return _add


@pytest.fixture
def grow(
    add_categories: Callable[..., Awaitable[None]],
    tree: NestedSetTree[int],
) -> Callable[..., Awaitable[None]]:
    """Factory creating rows and positioning them one by one with insert_node."""

    async def _grow(*rows: Row) -> None:
        await add_categories(*((node_id, None, name) for node_id, _, name in rows))
        for node_id, parent_id, _ in rows:
            await tree.insert_node(node_id, parent_id)

    return _grow


@pytest.fixture
async def sample_tree(grow, tree: NestedSetTree[int]) -> NestedSetTree[int]:
    """The SAMPLE_TREE hierarchy built through insert_node."""
    await grow(*SAMPLE_TREE)
    return tree


@pytest.fixture
def sample_intervals() -> dict[int, tuple[int, int]]:
    """Boundaries SAMPLE_TREE ends up with after the inserts."""
    return dict(SAMPLE_INTERVALS)


@pytest.fixture
def intervals(session: AsyncSession) -> Callable[[], Awaitable[dict[int, tuple[int, int]]]]:
    """Factory reading every row's (lft, rgt) straight from the table."""

    async def _intervals() -> dict[int, tuple[int, int]]:
        result = await session.execute(select(Category.id, Category.lft, Category.rgt))
        return {row.id: (row.lft, row.rgt) for row in result}

    return _intervals


@pytest.fixture
def parents(session: AsyncSession) -> Callable[[], Awaitable[dict[int, Any]]]:
    """Factory reading every row's parent_id straight from the table."""

    async def _parents() -> dict[int, Any]:
        result = await session.execute(select(Category.id, Category.parent_id))
        return {row.id: row.parent_id for row in result}

    return _parents


# ============================================================================
# Settings Fixtures
# ============================================================================


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch: pytest.MonkeyPatch, tmp_path) -> Iterator[None]:
    """Run every test with fresh settings caches and no stray .env file."""
    monkeypatch.chdir(tmp_path)
    for var in (
        "DATABASE_URL",
        "TREE_TABLE_NAME",
        "TREE_NAME_FIELD",
        "TREE_ID_TYPE",
        "LOG_LEVEL",
        "LOG_JSON_LOGS",
    ):
        monkeypatch.delenv(var, raising=False)
    clear_all_caches()
    yield
    clear_all_caches()
