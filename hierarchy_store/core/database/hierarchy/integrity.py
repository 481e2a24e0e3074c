"""Read-only consistency report for a nested-set table.

Tree operations assume a valid index and never look for corruption. This
module reads every positioned row once and reports where the intervals
disagree with each other or with ``parent_id``; ``NestedSetTree.rebuild``
is the repair.

Example:
    >>> violations = await find_violations(tree)
    >>> if violations:
    ...     await tree.rebuild()
"""

from __future__ import annotations

import logging
from bisect import bisect_left
from collections import Counter
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from hierarchy_store.core.database.hierarchy.nested_set import NestedSetTree
    from hierarchy_store.core.database.hierarchy.nodes import NodePosition

logger = logging.getLogger(__name__)


class ViolationKind(StrEnum):
    """Kinds of index corruption."""

    INVERTED = "inverted"
    ODD_WIDTH = "odd_width"
    DUPLICATE_BOUNDARY = "duplicate_boundary"
    PARTIAL_OVERLAP = "partial_overlap"
    DESCENDANT_COUNT = "descendant_count"
    PARENT_MISMATCH = "parent_mismatch"


@dataclass(slots=True, frozen=True)
class TreeViolation:
    """One problem found in the index.

    Attributes:
        node_id: Row the problem was found on
        kind: Category of the problem
        detail: Human-readable description
    """

    node_id: Any
    kind: ViolationKind
    detail: str


def check_positions(positions: list[NodePosition[Any]]) -> list[TreeViolation]:
    """Check boundary rows already loaded in ascending left order.

    Args:
        positions: Positioned rows, as returned by ``NestedSetTree.positions()``

    Returns:
        Every violation found, in scan order
    """
    violations: list[TreeViolation] = []

    boundaries = Counter(
        value for position in positions for value in (position.left, position.right)
    )
    for position in positions:
        if position.left >= position.right:
            violations.append(
                TreeViolation(
                    position.id,
                    ViolationKind.INVERTED,
                    f"left {position.left} is not below right {position.right}",
                )
            )
            continue
        if (position.right - position.left) % 2 == 0:
            violations.append(
                TreeViolation(
                    position.id,
                    ViolationKind.ODD_WIDTH,
                    f"interval [{position.left}, {position.right}] has an odd width",
                )
            )
        for value in (position.left, position.right):
            if boundaries[value] > 1:
                violations.append(
                    TreeViolation(
                        position.id,
                        ViolationKind.DUPLICATE_BOUNDARY,
                        f"boundary {value} is used {boundaries[value]} times",
                    )
                )

    lefts = [position.left for position in positions]
    open_nodes: list[NodePosition[Any]] = []
    for position in positions:
        if position.left >= position.right:
            continue
        while open_nodes and open_nodes[-1].right < position.left:
            open_nodes.pop()
        enclosing = open_nodes[-1] if open_nodes else None

        if enclosing is not None and position.right > enclosing.right:
            violations.append(
                TreeViolation(
                    position.id,
                    ViolationKind.PARTIAL_OVERLAP,
                    f"[{position.left}, {position.right}] overlaps "
                    f"[{enclosing.left}, {enclosing.right}] of {enclosing.id!r}",
                )
            )

        expected_parent = enclosing.id if enclosing is not None else None
        if position.parent_id != expected_parent:
            violations.append(
                TreeViolation(
                    position.id,
                    ViolationKind.PARENT_MISMATCH,
                    f"parent_id is {position.parent_id!r} but the nearest "
                    f"enclosing node is {expected_parent!r}",
                )
            )

        nested = bisect_left(lefts, position.right) - bisect_left(lefts, position.left) - 1
        if position.right - position.left - 1 != 2 * nested:
            violations.append(
                TreeViolation(
                    position.id,
                    ViolationKind.DESCENDANT_COUNT,
                    f"width encodes {(position.right - position.left - 1) // 2} "
                    f"descendants but {nested} rows nest inside",
                )
            )

        open_nodes.append(position)

    return violations


async def find_violations(tree: NestedSetTree[Any]) -> list[TreeViolation]:
    """Load ``tree``'s positioned rows and check them.

    Args:
        tree: Tree whose table to inspect

    Returns:
        Every violation found; an empty list means invariants hold
    """
    positions = await tree.positions()
    violations = check_positions(positions)
    if violations:
        logger.warning(
            "Nested-set index is inconsistent",
            extra={
                "table": tree.table_name,
                "violations": len(violations),
                "rows": len(positions),
                "operation": "tree.find_violations",
            },
        )
    return violations


__all__ = [
    "TreeViolation",
    "ViolationKind",
    "check_positions",
    "find_violations",
]
