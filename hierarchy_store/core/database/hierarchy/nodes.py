"""Result types returned by NestedSetTree read operations."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class TreeNode[K]:
    """A node identifier with its display label.

    Attributes:
        id: Caller-assigned node key
        name: Value of the tree's label column
    """

    id: K
    name: str


@dataclass(slots=True, frozen=True)
class DescendantNode[K]:
    """A descendant with its nesting depth.

    Attributes:
        id: Caller-assigned node key
        name: Value of the tree's label column
        depth: 1 for direct children of the queried node, or the absolute
            depth when requested with ``absolute_depth=True``
    """

    id: K
    name: str
    depth: int


@dataclass(slots=True, frozen=True)
class TreeEntry[K]:
    """A row of a subtree listing with its materialized path.

    Attributes:
        id: Caller-assigned node key
        name: Value of the tree's label column
        depth: Absolute depth (number of containing ancestors)
        path: Dot-separated labels from the listed subtree's root to this node

    Example:
        >>> entry = TreeEntry(id=3, name="laptops", depth=2, path="electronics.computers.laptops")
        >>> entry.path.split(".")[-1]
        'laptops'
    """

    id: K
    name: str
    depth: int
    path: str


@dataclass(slots=True, frozen=True)
class NodePosition[K]:
    """A positioned row as stored: adjacency plus boundaries."""

    id: K
    parent_id: K | None
    left: int
    right: int


@dataclass(slots=True, frozen=True)
class Interval:
    """Boundary values of one positioned node."""

    left: int
    right: int

    @property
    def width(self) -> int:
        """Positions consumed by the node and all of its descendants."""
        return self.right - self.left + 1

    @property
    def descendant_count(self) -> int:
        """Number of descendants encoded by the interval."""
        return max((self.right - self.left - 1) // 2, 0)


__all__ = [
    "DescendantNode",
    "Interval",
    "NodePosition",
    "TreeEntry",
    "TreeNode",
]
