"""Tree construction, flattening and unique-set bookkeeping.

Every ecosystem adapter reduces its resolver output to a ``DependencyMap``
and hands it to ``build_tree``. Two rules keep the result finite:

- a child whose id is already on the path from the root is not expanded
  again (cycle suppression), so every root-to-leaf path has distinct ids;
- a single id is expanded at most ``MAX_UNIQUE_APPEARANCES`` times, which
  bounds trees where one popular package is reachable through many parents.
"""

from collections import Counter
from collections.abc import Iterable

from .types import DependencyMap, DepTreeNode, GraphNode, UniqueSet

MAX_UNIQUE_APPEARANCES = 10

FLAT_ROOT_ID = "root"


def build_tree(dep_map: DependencyMap, root_id: str) -> tuple[GraphNode, UniqueSet]:
    """Build the tree rooted at ``root_id`` and the unique set it reaches."""
    unique: UniqueSet = {}
    appearances: Counter[str] = Counter()
    root_entry = dep_map.get(root_id) or DepTreeNode()
    root = GraphNode(id=root_id, types=list(root_entry.types))
    _populate(root, dep_map, unique, appearances)
    return root, unique


def _populate(node: GraphNode, dep_map: DependencyMap, unique: UniqueSet, appearances: Counter) -> None:
    appearances[node.id] += 1
    entry = dep_map.get(node.id) or DepTreeNode()
    unique.setdefault(node.id, set()).update(entry.types)

    for child_id in entry.children:
        child_entry = dep_map.get(child_id) or DepTreeNode()
        child = GraphNode(id=child_id, types=list(child_entry.types), parent=node)
        if appearances[child_id] >= MAX_UNIQUE_APPEARANCES or child.has_loop():
            unique.setdefault(child_id, set()).update(child_entry.types)
            continue
        node.nodes.append(child)
        _populate(child, dep_map, unique, appearances)


def tree_unique_set(tree: GraphNode) -> UniqueSet:
    """Unique set of an already-built tree (ids and the tags seen on them)."""
    unique: UniqueSet = {}
    for node, _depth in tree.walk():
        unique.setdefault(node.id, set()).update(node.types)
    return unique


def merge_unique_sets(sets: Iterable[UniqueSet]) -> UniqueSet:
    """Union several per-module unique sets into one."""
    merged: UniqueSet = {}
    for unique in sets:
        for dep_id, tags in unique.items():
            merged.setdefault(dep_id, set()).update(tags)
    return merged


def flatten_graph(trees: GraphNode | Iterable[GraphNode]) -> GraphNode:
    """One-hop graph: a virtual root whose children are every distinct id.

    Ids keep first-seen depth-first order so the scan payload is stable.
    """
    if isinstance(trees, GraphNode):
        trees = [trees]
    seen: dict[str, set[str]] = {}
    for tree in trees:
        for node, _depth in tree.walk():
            seen.setdefault(node.id, set()).update(node.types)
    return GraphNode(
        id=FLAT_ROOT_ID,
        nodes=[GraphNode(id=dep_id, types=sorted(tags)) for dep_id, tags in seen.items()],
    )


def flat_graph_from_unique(unique: UniqueSet) -> GraphNode:
    """Same shape as ``flatten_graph`` but from an already-merged unique set."""
    return GraphNode(
        id=FLAT_ROOT_ID,
        nodes=[GraphNode(id=dep_id, types=sorted(tags)) for dep_id, tags in unique.items()],
    )


def map_from_edges(edges: Iterable[tuple[str, str]], types: dict[str, Iterable[str]] | None = None) -> DependencyMap:
    """Build a ``DependencyMap`` from ``(parent, child)`` pairs, keeping child order and dropping duplicates."""
    dep_map: DependencyMap = {}
    for parent, child in edges:
        entry = dep_map.setdefault(parent, DepTreeNode())
        if child not in entry.children:
            entry.children.append(child)
        dep_map.setdefault(child, DepTreeNode())
    for dep_id, tags in (types or {}).items():
        entry = dep_map.setdefault(dep_id, DepTreeNode())
        for tag in tags:
            if tag not in entry.types:
                entry.types.append(tag)
    return dep_map
