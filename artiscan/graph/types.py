"""Shared data structures for the graph module.

Architecture:
- DepTreeNode: one entry of the flat ``id -> {types, children}`` map a resolver adapter produces
- GraphNode: a vertex of the rooted tree built from that map
- UniqueSet: canonical id -> merged type tags, collected while the tree is built
"""

from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any

UniqueSet = dict[str, set[str]]


@dataclass
class DepTreeNode:
    """Children and dependency-kind tags of one package in a resolver's output."""

    types: list[str] = field(default_factory=list)
    children: list[str] = field(default_factory=list)


DependencyMap = dict[str, DepTreeNode]


@dataclass(eq=False)
class GraphNode:
    """A vertex in a dependency tree.

    ``parent`` only exists while the tree is built and is what cycle detection
    walks; it is never serialized.
    """

    id: str
    types: list[str] = field(default_factory=list)
    nodes: list["GraphNode"] = field(default_factory=list)
    parent: "GraphNode | None" = field(default=None, repr=False)

    def ancestors(self) -> Iterator["GraphNode"]:
        current = self.parent
        while current is not None:
            yield current
            current = current.parent

    def has_loop(self) -> bool:
        """True when this node's id already appears on the path from the root."""
        return any(ancestor.id == self.id for ancestor in self.ancestors())

    def path(self) -> list[str]:
        """Ids from the root down to this node."""
        ids = [a.id for a in self.ancestors()]
        ids.reverse()
        ids.append(self.id)
        return ids

    def walk(self, depth: int = 0) -> Iterator[tuple["GraphNode", int]]:
        """Depth-first (node, depth) pairs, root first."""
        yield self, depth
        for child in self.nodes:
            yield from child.walk(depth + 1)

    def to_dict(self) -> dict[str, Any]:
        """Wire form used by the graph scan service."""
        data: dict[str, Any] = {"component_id": self.id}
        if self.nodes:
            data["nodes"] = [child.to_dict() for child in self.nodes]
        return data
