"""Nested-set positional index over a flat adjacency table.

Each row carries ``parent_id`` (the adjacency list, ground truth for
``rebuild``) and two integer boundaries, ``lft`` and ``rgt``. A node's
descendants are exactly the rows whose interval nests inside its own, so
ancestor/descendant queries are single range scans instead of recursive
lookups.

The tree never inserts or deletes rows. Callers create a row (with
``lft = rgt = 0``, meaning "not in the index") and then position it with
``insert_node``; ``remove_node`` takes a subtree out of the index and leaves
deleting the rows to the caller.

Every multi-statement mutation runs inside one store transaction: begin,
issue all statements, commit; on failure roll back and re-raise the
original exception. Concurrent writers against the same table must be
serialized by the database's isolation level.

Example:
    >>> async with get_async_session() as session:
    ...     tree = NestedSetTree(SQLAlchemyStore(session), "categories")
    ...     await tree.insert_node(1)               # root
    ...     await tree.insert_node(2, parent_id=1)  # last child of 1
    ...     await tree.visualise(1)
    {1: 'electronics', 2: '|-- computers'}
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from sqlalchemy import Integer, column, func, select, table, update

from hierarchy_store.core.database.exceptions import (
    InvalidMoveError,
    NotFoundError,
    RepositoryError,
)
from hierarchy_store.core.database.hierarchy.nodes import (
    DescendantNode,
    Interval,
    NodePosition,
    TreeEntry,
    TreeNode,
)
from hierarchy_store.core.database.validation import (
    validate_identifier,
    validate_tree_columns,
)
from hierarchy_store.infra.logging import get_lazy_logger

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from sqlalchemy.sql import ColumnElement, TableClause

    from hierarchy_store.core.database.store import RelationalStore

logger = logging.getLogger(__name__)

_EXHAUSTED = object()


class NestedSetTree[K]:
    """Tree-shape algorithms for one nested-set table.

    Read operations never raise for missing data: unknown nodes (or nodes
    outside the index) yield ``0`` counts and empty sequences. Write
    operations on an unknown node are no-ops, except ``insert_node``
    which needs an existing row and parent.

    Args:
        store: Relational store used for every query and transaction
        table_name: Name of the tree table
        name_field: Label column used for ordering and display
        id_field: Primary key column
        parent_field: Adjacency column (NULL for roots)
        left_field: Left boundary column
        right_field: Right boundary column

    Raises:
        IdentifierValidationError: If any table or column name is invalid, or two
            structural columns share a name
    """

    __slots__ = (
        "_id",
        "_lazy",
        "_left",
        "_name",
        "_parent",
        "_right",
        "_store",
        "_table",
        "_table_name",
    )

    def __init__(
        self,
        store: RelationalStore,
        table_name: str,
        name_field: str = "name",
        *,
        id_field: str = "id",
        parent_field: str = "parent_id",
        left_field: str = "lft",
        right_field: str = "rgt",
    ) -> None:
        self._store = store
        self._table_name = validate_identifier(table_name, identifier_type="table")
        validate_tree_columns(
            id_field=id_field,
            parent_field=parent_field,
            left_field=left_field,
            right_field=right_field,
        )
        self._table: TableClause = table(
            self._table_name,
            column(id_field),
            column(parent_field),
            column(left_field, Integer),
            column(right_field, Integer),
            column(validate_identifier(name_field, identifier_type="column")),
        )
        self._id = self._table.c[id_field]
        self._parent = self._table.c[parent_field]
        self._left = self._table.c[left_field]
        self._right = self._table.c[right_field]
        self._name = self._table.c[name_field]
        self._lazy = get_lazy_logger(__name__, table=self._table_name)

    def __repr__(self) -> str:
        return f"NestedSetTree(table={self._table_name!r})"

    @property
    def table_name(self) -> str:
        """Name of the backing table."""
        return self._table_name

    @property
    def store(self) -> RelationalStore:
        """Relational store this tree issues statements through."""
        return self._store

    # ------------------------------------------------------------------
    # Ancestors
    # ------------------------------------------------------------------

    async def count_ancestors(self, node_id: K) -> int:
        """Count nodes whose interval strictly contains ``node_id``'s."""
        node = await self._find_node(node_id)
        if node is None:
            return 0
        stmt = (
            select(func.count())
            .select_from(self._table)
            .where(self._left < node.left, self._right > node.right)
        )
        return int(await self._store.scalar(stmt) or 0)

    async def get_ancestors(self, node_id: K) -> list[TreeNode[K]]:
        """List ancestors from the root down to the immediate parent."""
        node = await self._find_node(node_id)
        if node is None:
            return []
        stmt = (
            select(self._id.label("id"), self._name.label("name"))
            .where(self._left < node.left, self._right > node.right)
            .order_by(self._left)
        )
        return [TreeNode(id=row["id"], name=row["name"]) for row in await self._store.rows(stmt)]

    # ------------------------------------------------------------------
    # Siblings and children (adjacency based)
    # ------------------------------------------------------------------

    async def count_siblings(self, node_id: K) -> int:
        """Count other nodes sharing ``node_id``'s parent.

        Roots are siblings of each other. Unknown nodes have no siblings.
        """
        row = await self._store.row(
            select(self._parent.label("parent_id")).where(self._id == node_id)
        )
        if row is None:
            return 0
        stmt = (
            select(func.count())
            .select_from(self._table)
            .where(self._parent_clause(row["parent_id"]))
        )
        return max(int(await self._store.scalar(stmt) or 0) - 1, 0)

    async def get_siblings(
        self,
        node_id: K,
        *,
        include_self: bool = True,
    ) -> list[TreeNode[K]]:
        """List nodes sharing ``node_id``'s parent, sorted by name.

        Args:
            node_id: Node whose siblings to list
            include_self: Keep ``node_id`` itself in the result (default: True)
        """
        row = await self._store.row(
            select(self._parent.label("parent_id")).where(self._id == node_id)
        )
        if row is None:
            return []
        stmt = select(self._id.label("id"), self._name.label("name")).where(
            self._parent_clause(row["parent_id"])
        )
        if not include_self:
            stmt = stmt.where(self._id != node_id)
        stmt = stmt.order_by(self._name, self._id)
        return [TreeNode(id=r["id"], name=r["name"]) for r in await self._store.rows(stmt)]

    async def count_children(self, node_id: K | None) -> int:
        """Count direct children. ``None`` counts the roots."""
        stmt = select(func.count()).select_from(self._table).where(self._parent_clause(node_id))
        return int(await self._store.scalar(stmt) or 0)

    async def get_children(self, node_id: K | None) -> list[TreeNode[K]]:
        """List direct children sorted by name. ``None`` lists the roots."""
        stmt = (
            select(self._id.label("id"), self._name.label("name"))
            .where(self._parent_clause(node_id))
            .order_by(self._name, self._id)
        )
        return [TreeNode(id=row["id"], name=row["name"]) for row in await self._store.rows(stmt)]

    # ------------------------------------------------------------------
    # Descendants
    # ------------------------------------------------------------------

    async def count_descendants(self, node_id: K) -> int:
        """Count descendants from the interval width alone."""
        node = await self._find_node(node_id)
        return node.descendant_count if node is not None else 0

    async def get_descendants(
        self,
        node_id: K,
        absolute_depth: bool = False,
    ) -> list[DescendantNode[K]]:
        """List descendants in left-to-right order with their depth.

        Depth comes from a single ordered pass: a stack holds the right
        boundaries of subtrees that are still open, so its size is the
        number of enclosing descendants of the current row.

        Args:
            node_id: Subtree root
            absolute_depth: Offset depths by the subtree root's ancestor
                count instead of starting children at 1

        Returns:
            Descendants ordered by ascending left boundary
        """
        node = await self._find_node(node_id)
        if node is None:
            return []

        stmt = (
            select(
                self._id.label("id"),
                self._name.label("name"),
                self._left.label("lft"),
                self._right.label("rgt"),
            )
            .where(self._left.between(node.left + 1, node.right - 1))
            .order_by(self._left)
        )
        rows = await self._store.rows(stmt)
        offset = await self.count_ancestors(node_id) if absolute_depth else 0

        descendants: list[DescendantNode[K]] = []
        open_rights: list[int] = []
        for row in rows:
            left, right = int(row["lft"]), int(row["rgt"])
            # past the right edge of the enclosing subtree: it has closed
            while open_rights and left > open_rights[-1]:
                open_rights.pop()
            descendants.append(
                DescendantNode(id=row["id"], name=row["name"], depth=offset + len(open_rights) + 1)
            )
            if right - left > 1:
                open_rights.append(right)

        self._lazy.debug(
            lambda: f"tree.get_descendants: {node_id!r} -> {len(descendants)} nodes"
        )
        return descendants

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def insert_node(self, node_id: K, parent_id: K | None = None) -> NestedSetTree[K]:
        """Position an existing, unpositioned row in the index.

        With a parent, the node becomes the parent's last child: every
        boundary at or past the parent's right edge moves up by 2 and the
        node takes the two freed positions. Without a parent the node is
        appended as the last root. The node's parent column is set to
        ``parent_id`` either way.

        Raises:
            NotFoundError: If the row or the parent doesn't exist (or the
                parent isn't positioned)
            RepositoryError: If the node is already positioned
        """
        async with self._transaction("insert_node", node_id=node_id, parent_id=parent_id):
            current = await self._store.row(
                select(self._right.label("rgt")).where(self._id == node_id)
            )
            if current is None:
                raise NotFoundError(self._table_name, {"id": node_id})
            if (current["rgt"] or 0) > 0:
                raise RepositoryError(
                    "Node is already positioned in the tree; use move_node",
                    details={"table": self._table_name, "id": node_id},
                )

            if parent_id is not None:
                parent = await self._find_node(parent_id)
                if parent is None:
                    raise NotFoundError(self._table_name, {"id": parent_id})
                boundary = parent.right
                # both updates compare against the pre-shift boundary
                await self._store.execute(
                    update(self._table)
                    .where(self._right >= boundary)
                    .values({self._right: self._right + 2})
                )
                await self._store.execute(
                    update(self._table)
                    .where(self._left >= boundary)
                    .values({self._left: self._left + 2})
                )
            else:
                boundary = await self._next_root_left()

            await self._store.execute(
                update(self._table)
                .where(self._id == node_id)
                .values(
                    {self._left: boundary, self._right: boundary + 1, self._parent: parent_id}
                )
            )
        return self

    async def remove_node(self, node_id: K) -> NestedSetTree[K]:
        """Take ``node_id`` and its whole subtree out of the index.

        Rows are kept with ``lft = rgt = 0``; deleting them is up to the
        caller. Everything to the right closes the gap.
        """
        node = await self._find_node(node_id)
        if node is None:
            return self

        async with self._transaction("remove_node", node_id=node_id):
            diff = node.width
            await self._store.execute(
                update(self._table)
                .where(self._left.between(node.left, node.right))
                .values({self._left: 0, self._right: 0})
            )
            # strict comparisons keep the freshly zeroed rows out of the shift
            await self._store.execute(
                update(self._table)
                .where(self._left > node.right)
                .values({self._left: self._left - diff})
            )
            await self._store.execute(
                update(self._table)
                .where(self._right > node.right)
                .values({self._right: self._right - diff})
            )
        return self

    async def move_node(self, node_id: K, parent_id: K | None) -> NestedSetTree[K]:
        """Re-attach ``node_id``'s subtree as the last child of ``parent_id``.

        ``parent_id=None`` makes the subtree the last root. The move is a
        no-op when the node, or a non-None parent, is unknown.

        Steps, all in one transaction:
            1. detach: map the subtree onto negative markers keeping its shape
            2. collapse the vacated gap
            3. re-read the new parent (it may have shifted in step 2)
            4. open a gap of the subtree's width at the parent's right edge
            5. re-read the new parent again
            6. map the markers back into the gap
            7. point the node's ``parent_id`` at the new parent

        Raises:
            InvalidMoveError: If ``parent_id`` is the node or one of its descendants
        """
        node = await self._find_node(node_id)
        if node is None:
            return self
        if parent_id is not None:
            target = await self._find_node(parent_id)
            if target is None:
                return self
            if node.left <= target.left and target.right <= node.right:
                raise InvalidMoveError(node_id, parent_id)

        async with self._transaction("move_node", node_id=node_id, parent_id=parent_id):
            diff = node.width

            # marker = -(offset within subtree + 1), always <= -1
            await self._store.execute(
                update(self._table)
                .where(
                    self._left >= node.left,
                    self._right <= node.right,
                    self._right > 0,
                )
                .values(
                    {
                        self._left: (node.left - 1) - self._left,
                        self._right: (node.left - 1) - self._right,
                    }
                )
            )

            await self._store.execute(
                update(self._table)
                .where(self._left > node.left)
                .values({self._left: self._left - diff})
            )
            await self._store.execute(
                update(self._table)
                .where(self._right > node.right)
                .values({self._right: self._right - diff})
            )

            if parent_id is None:
                base = await self._next_root_left()
            else:
                parent = await self._require_node(parent_id)
                await self._store.execute(
                    update(self._table)
                    .where(self._left > parent.right)
                    .values({self._left: self._left + diff})
                )
                await self._store.execute(
                    update(self._table)
                    .where(self._right >= parent.right)
                    .values({self._right: self._right + diff})
                )
                parent = await self._require_node(parent_id)
                base = parent.right - diff

            # offset o was stored as -(o + 1); new boundary is base + o
            await self._store.execute(
                update(self._table)
                .where(self._left < 0)
                .values({self._left: (base - 1) - self._left})
            )
            await self._store.execute(
                update(self._table)
                .where(self._right < 0)
                .values({self._right: (base - 1) - self._right})
            )

            await self._store.execute(
                update(self._table)
                .where(self._id == node_id)
                .values({self._parent: parent_id})
            )
        return self

    async def rebuild(self, sort: bool = False) -> NestedSetTree[K]:
        """Recompute every interval from ``parent_id`` alone.

        The repair tool for a corrupted index. Roots start at 0 and each
        level is visited depth-first with an explicit stack; siblings are
        visited by name when ``sort`` is set, otherwise by id. Rows that
        can't be reached from a root (orphans, cycles) stay at 0/0.
        """
        async with self._transaction("rebuild", sort=sort):
            await self._store.execute(
                update(self._table).values({self._left: 0, self._right: 0})
            )
            position = 0
            for root_id in await self._child_ids(None, sort):
                position = await self._rebuild_subtree(root_id, position, sort)
        return self

    # ------------------------------------------------------------------
    # Derived views
    # ------------------------------------------------------------------

    async def get_tree(
        self,
        node_id: K,
        max_depth: int = 0,
        sort: bool = False,
    ) -> list[TreeEntry[K]]:
        """List ``node_id``'s subtree with depths and materialized paths.

        Depth is derived in one query by self-joining each row against the
        intervals that contain it.

        Args:
            node_id: Subtree root (included in the result)
            max_depth: Levels below ``node_id`` to include, 0 for unlimited
            sort: Order entries by path instead of by left boundary

        Returns:
            Entries whose ``path`` joins labels with dots, starting at
            ``node_id``'s own label
        """
        node = await self._find_node(node_id)
        if node is None:
            return []

        n = self._table.alias("n")
        p = self._table.alias("p")
        n_left = n.c[self._left.name]
        p_id, p_left, p_right = p.c[self._id.name], p.c[self._left.name], p.c[self._right.name]
        stmt = (
            select(
                n.c[self._id.name].label("id"),
                n.c[self._name.name].label("name"),
                (func.count(p_id) - 1).label("depth"),
            )
            .where(
                n_left.between(p_left, p_right),
                n_left.between(node.left, node.right),
                n.c[self._right.name] > 0,
                p_right > 0,
            )
            .group_by(n.c[self._id.name], n.c[self._name.name], n_left)
            .order_by(n_left)
        )
        rows = await self._store.rows(stmt)
        if not rows:
            return []

        base_depth = int(rows[0]["depth"])
        limit = base_depth + max_depth if max_depth > 0 else None

        entries: list[TreeEntry[K]] = []
        path: list[str] = []
        for row in rows:
            depth = int(row["depth"])
            if limit is not None and depth > limit:
                continue
            del path[depth - base_depth :]
            path.append(str(row["name"]))
            entries.append(
                TreeEntry(id=row["id"], name=row["name"], depth=depth, path=".".join(path))
            )

        if sort:
            entries.sort(key=lambda entry: entry.path)
        return entries

    async def visualise(
        self,
        node_id: K,
        max_depth: int = 0,
        sort: bool = False,
    ) -> dict[K, str]:
        """Render ``get_tree`` output as indented lines keyed by node id.

        Example:
            >>> await tree.visualise(1)
            {1: 'electronics', 2: '|-- computers', 3: '|-- |-- laptops'}
        """
        entries = await self.get_tree(node_id, max_depth, sort)
        if not entries:
            return {}
        offset = min(entry.depth for entry in entries)
        return {entry.id: "|-- " * (entry.depth - offset) + str(entry.name) for entry in entries}

    async def interval(self, node_id: K) -> Interval | None:
        """``node_id``'s current boundaries, or None when it isn't positioned."""
        return await self._find_node(node_id)

    async def positions(self) -> list[NodePosition[K]]:
        """Every positioned row with its parent and boundaries, by left."""
        stmt = (
            select(
                self._id.label("id"),
                self._parent.label("parent_id"),
                self._left.label("lft"),
                self._right.label("rgt"),
            )
            .where(self._right > 0)
            .order_by(self._left)
        )
        return [
            NodePosition(
                id=row["id"],
                parent_id=row["parent_id"],
                left=int(row["lft"]),
                right=int(row["rgt"]),
            )
            for row in await self._store.rows(stmt)
        ]

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def _transaction(self, operation: str, **context: Any) -> AsyncIterator[None]:
        extra = {"table": self._table_name, "operation": f"tree.{operation}", **context}
        self._lazy.debug(lambda: f"tree.{operation}: begin {context}")
        await self._store.begin()
        try:
            yield
            await self._store.commit()
        except Exception as exc:
            await self._store.rollback()
            logger.warning(
                "Tree operation rolled back",
                extra={**extra, "error": str(exc), "error_type": type(exc).__name__},
            )
            raise
        logger.info("Tree operation committed", extra=extra)

    async def _find_node(self, node_id: K) -> Interval | None:
        row = await self._store.row(
            select(self._left.label("lft"), self._right.label("rgt")).where(self._id == node_id)
        )
        if row is None or row["rgt"] is None or int(row["rgt"]) <= 0:
            return None
        return Interval(left=int(row["lft"]), right=int(row["rgt"]))

    async def _require_node(self, node_id: K) -> Interval:
        node = await self._find_node(node_id)
        if node is None:
            raise NotFoundError(self._table_name, {"id": node_id})
        return node

    async def _next_root_left(self) -> int:
        top = await self._store.scalar(select(func.max(self._right)).where(self._right > 0))
        return 0 if top is None else int(top) + 1

    def _parent_clause(self, parent_id: K | None) -> ColumnElement[bool]:
        if parent_id is None:
            return self._parent.is_(None)
        return self._parent == parent_id

    async def _child_ids(self, parent_id: K | None, sort: bool) -> list[K]:
        stmt = select(self._id).where(self._parent_clause(parent_id))
        stmt = stmt.order_by(self._name, self._id) if sort else stmt.order_by(self._id)
        return await self._store.column(stmt)

    async def _rebuild_subtree(self, root_id: K, left: int, sort: bool) -> int:
        """Number ``root_id``'s subtree from ``left``; return the next free value."""
        stack: list[tuple[K, int, Any]] = [
            (root_id, left, iter(await self._child_ids(root_id, sort)))
        ]
        position = left + 1
        while stack:
            current_id, current_left, children = stack[-1]
            child_id = next(children, _EXHAUSTED)
            if child_id is _EXHAUSTED:
                stack.pop()
                await self._store.execute(
                    update(self._table)
                    .where(self._id == current_id)
                    .values({self._left: current_left, self._right: position})
                )
                position += 1
            else:
                stack.append((child_id, position, iter(await self._child_ids(child_id, sort))))
                position += 1
        return position


__all__ = [
    "NestedSetTree",
]
