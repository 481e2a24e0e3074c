"""Tests for NestedSetTree mutations.

Covers:
- insert_node under a parent and as a new root
- remove_node closing the gap and leaving rows at 0/0
- move_node between parents, to the root level, and illegal targets
- Transaction handling: rollback on failure (insert, remove, move, rebuild),
  original exception re-raised
"""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import OperationalError

from hierarchy_store.core.database import (
    InvalidMoveError,
    NestedSetTree,
    NotFoundError,
    RepositoryError,
)
from hierarchy_store.core.database.hierarchy import check_positions
from hierarchy_store.infra.database import SQLAlchemyStore

pytestmark = pytest.mark.unit


class FailingStore(SQLAlchemyStore):
    """SQLAlchemyStore whose Nth mutation raises like a dropped connection."""

    __slots__ = ("calls", "fail_at")

    def __init__(self, session, fail_at: int) -> None:
        super().__init__(session)
        self.calls = 0
        self.fail_at = fail_at

    async def execute(self, query, params=None) -> int:
        self.calls += 1
        if self.calls == self.fail_at:
            raise OperationalError("UPDATE categories", {}, Exception("disk I/O error"))
        return await super().execute(query, params)


def _db_error() -> OperationalError:
    return OperationalError("UPDATE categories", {}, Exception("connection lost"))


class TestInsertNode:
    """insert_node."""

    async def test_first_root_starts_at_zero(self, tree, add_categories, intervals):
        await add_categories((1, None, "electronics"))

        await tree.insert_node(1)

        assert (await intervals())[1] == (0, 1)

    async def test_builds_expected_intervals(self, sample_tree, intervals, sample_intervals):
        assert await intervals() == sample_intervals

    async def test_insert_widens_ancestors_only(
        self, sample_tree, add_categories, intervals, sample_intervals
    ):
        await add_categories((8, None, "tablets"))

        await sample_tree.insert_node(8, 3)

        after = await intervals()
        assert after[8] == (10, 11)
        assert after[3] == (7, 12)
        assert after[1] == (0, 13)
        assert after[7] == (14, 15)
        for untouched in (2, 4, 5, 6):
            assert after[untouched] == sample_intervals[untouched]

    async def test_insert_counts(self, sample_tree, add_categories):
        await add_categories((8, None, "tablets"))
        children_before = await sample_tree.count_children(3)
        descendants_before = {
            node_id: await sample_tree.count_descendants(node_id) for node_id in (1, 2, 3)
        }

        await sample_tree.insert_node(8, 3)

        assert await sample_tree.count_children(3) == children_before + 1
        assert await sample_tree.count_descendants(3) == descendants_before[3] + 1
        assert await sample_tree.count_descendants(1) == descendants_before[1] + 1
        assert await sample_tree.count_descendants(2) == descendants_before[2]

    async def test_insert_sets_parent_column(self, sample_tree, add_categories, parents):
        await add_categories((8, 7, "tools"))

        await sample_tree.insert_node(8, 3)

        assert (await parents())[8] == 3

    async def test_new_root_appended_after_last_right(self, sample_tree, add_categories, intervals):
        await add_categories((8, None, "toys"))

        await sample_tree.insert_node(8)

        assert (await intervals())[8] == (14, 15)

    async def test_missing_parent_rolls_back(
        self, sample_tree, add_categories, intervals, sample_intervals
    ):
        await add_categories((8, None, "tablets"))

        with pytest.raises(NotFoundError) as exc_info:
            await sample_tree.insert_node(8, 99)

        assert exc_info.value.identifier == {"id": 99}
        after = await intervals()
        assert after[8] == (0, 0)
        assert {k: v for k, v in after.items() if k != 8} == sample_intervals

    async def test_unpositioned_parent_is_not_found(self, sample_tree, add_categories):
        await add_categories((8, None, "tablets"), (9, None, "e-readers"))

        with pytest.raises(NotFoundError):
            await sample_tree.insert_node(9, 8)

    async def test_missing_row(self, sample_tree):
        with pytest.raises(NotFoundError):
            await sample_tree.insert_node(99, 1)

    async def test_already_positioned(self, sample_tree, intervals, sample_intervals):
        with pytest.raises(RepositoryError, match="already positioned"):
            await sample_tree.insert_node(4, 3)

        assert await intervals() == sample_intervals


class TestRemoveNode:
    """remove_node."""

    async def test_remove_subtree_closes_gap(self, sample_tree, intervals):
        await sample_tree.remove_node(2)

        assert await intervals() == {
            1: (0, 5),
            2: (0, 0),
            3: (1, 4),
            4: (0, 0),
            5: (0, 0),
            6: (2, 3),
            7: (6, 7),
        }
        assert check_positions(await sample_tree.positions()) == []

    async def test_remove_leaf(self, sample_tree):
        await sample_tree.remove_node(6)

        assert await sample_tree.count_descendants(3) == 0
        assert await sample_tree.count_descendants(1) == 4
        assert check_positions(await sample_tree.positions()) == []

    async def test_remove_root(self, sample_tree, intervals):
        await sample_tree.remove_node(1)

        after = await intervals()
        assert after[7] == (0, 1)
        assert all(after[node_id] == (0, 0) for node_id in range(1, 7))

    async def test_unknown_node_is_noop(self, sample_tree, intervals, sample_intervals):
        await sample_tree.remove_node(99)

        assert await intervals() == sample_intervals

    async def test_removed_node_can_be_reinserted(self, sample_tree):
        await sample_tree.remove_node(6)

        await sample_tree.insert_node(6, 7)

        assert [node.id for node in await sample_tree.get_descendants(7)] == [6]
        assert check_positions(await sample_tree.positions()) == []


class TestMoveNode:
    """move_node."""

    async def test_move_leaf_to_other_parent(self, sample_tree, intervals, parents):
        await sample_tree.move_node(4, 3)

        assert await intervals() == {
            1: (0, 11),
            2: (1, 4),
            3: (5, 10),
            4: (8, 9),
            5: (2, 3),
            6: (6, 7),
            7: (12, 13),
        }
        assert (await parents())[4] == 3

    async def test_move_subtree_across_roots(self, sample_tree, intervals):
        await sample_tree.move_node(2, 7)

        assert await intervals() == {
            1: (0, 5),
            2: (7, 12),
            3: (1, 4),
            4: (8, 9),
            5: (10, 11),
            6: (2, 3),
            7: (6, 13),
        }
        assert await sample_tree.get_ancestors(5) == await sample_tree.get_ancestors(4)
        assert [node.id for node in await sample_tree.get_ancestors(4)] == [7, 2]

    async def test_move_under_current_parent_makes_last_child(self, sample_tree):
        await sample_tree.move_node(4, 2)

        assert [node.id for node in await sample_tree.get_descendants(2)] == [5, 4]
        assert check_positions(await sample_tree.positions()) == []

    async def test_move_to_root(self, sample_tree, intervals, parents):
        await sample_tree.move_node(3, None)

        after = await intervals()
        assert after[3] == (10, 13)
        assert after[6] == (11, 12)
        assert after[1] == (0, 7)
        assert (await parents())[3] is None
        assert await sample_tree.count_children(None) == 3
        assert check_positions(await sample_tree.positions()) == []

    async def test_move_preserves_subtree_shape(self, sample_tree):
        before = [(e.id, e.depth) for e in await sample_tree.get_tree(2)]

        await sample_tree.move_node(2, 6)

        after = [(e.id, e.depth) for e in await sample_tree.get_tree(2)]
        assert [node_id for node_id, _ in after] == [node_id for node_id, _ in before]
        assert [depth - after[0][1] for _, depth in after] == [
            depth - before[0][1] for _, depth in before
        ]

    @pytest.mark.parametrize("target", [2, 4, 5])
    async def test_move_into_own_subtree_rejected(
        self, sample_tree, intervals, sample_intervals, target
    ):
        with pytest.raises(InvalidMoveError) as exc_info:
            await sample_tree.move_node(2, target)

        assert exc_info.value.parent_id == target
        assert await intervals() == sample_intervals

    @pytest.mark.parametrize(("node_id", "parent_id"), [(99, 1), (2, 99)])
    async def test_unknown_node_or_parent_is_noop(
        self, sample_tree, intervals, sample_intervals, node_id, parent_id
    ):
        await sample_tree.move_node(node_id, parent_id)

        assert await intervals() == sample_intervals


class TestTransactions:
    """All-or-nothing writes."""

    async def test_failed_statement_rolls_back_insert(
        self, sample_tree, session, add_categories, intervals, sample_intervals
    ):
        await add_categories((8, None, "tablets"))
        failing = NestedSetTree(FailingStore(session, fail_at=2), "categories")

        with pytest.raises(OperationalError):
            await failing.insert_node(8, 3)

        after = await intervals()
        assert after[8] == (0, 0)
        assert {k: v for k, v in after.items() if k != 8} == sample_intervals

    @pytest.mark.parametrize("fail_at", [1, 3, 5, 7])
    async def test_failed_statement_rolls_back_move(
        self, sample_tree, session, intervals, sample_intervals, fail_at
    ):
        failing = NestedSetTree(FailingStore(session, fail_at=fail_at), "categories")

        with pytest.raises(OperationalError):
            await failing.move_node(4, 3)

        assert await intervals() == sample_intervals

    async def test_failed_statement_rolls_back_remove(
        self, sample_tree, session, intervals, sample_intervals
    ):
        failing = NestedSetTree(FailingStore(session, fail_at=3), "categories")

        with pytest.raises(OperationalError):
            await failing.remove_node(2)

        assert await intervals() == sample_intervals

    # 1 clears every interval; 2..8 number the nodes bottom-up
    @pytest.mark.parametrize("fail_at", [1, 2, 5, 8])
    async def test_failed_statement_rolls_back_rebuild(
        self, sample_tree, session, intervals, sample_intervals, fail_at
    ):
        failing = NestedSetTree(FailingStore(session, fail_at=fail_at), "categories")

        with pytest.raises(OperationalError):
            await failing.rebuild()

        assert await intervals() == sample_intervals

    async def test_store_calls_on_failure(self):
        store = AsyncMock(spec=SQLAlchemyStore)
        store.row.side_effect = [{"rgt": 0}, {"lft": 1, "rgt": 2}]
        error = _db_error()
        store.execute.side_effect = [1, error]
        tree = NestedSetTree(store, "categories")

        with pytest.raises(OperationalError) as exc_info:
            await tree.insert_node(5, 1)

        assert exc_info.value is error
        store.begin.assert_awaited_once()
        store.rollback.assert_awaited_once()
        store.commit.assert_not_awaited()

    async def test_failed_commit_rolls_back(self):
        store = AsyncMock(spec=SQLAlchemyStore)
        store.row.side_effect = [{"rgt": 0}]
        store.scalar.return_value = None
        store.commit.side_effect = _db_error()
        tree = NestedSetTree(store, "categories")

        with pytest.raises(OperationalError):
            await tree.insert_node(1)

        store.rollback.assert_awaited_once()

    async def test_commit_logged(self, tree, add_categories, caplog):
        await add_categories((1, None, "electronics"))

        with caplog.at_level("INFO", logger="hierarchy_store.core.database.hierarchy.nested_set"):
            await tree.insert_node(1)

        record = next(r for r in caplog.records if r.message == "Tree operation committed")
        assert record.operation == "tree.insert_node"
        assert record.table == "categories"
        assert record.node_id == 1

    async def test_rollback_logged(self, sample_tree, caplog):
        with pytest.raises(NotFoundError):
            await sample_tree.insert_node(99)

        record = next(r for r in caplog.records if r.message == "Tree operation rolled back")
        assert record.levelname == "WARNING"
        assert record.error_type == "NotFoundError"
