"""Graph package - canonical dependency trees.

- types: GraphNode, DepTreeNode and the DependencyMap / UniqueSet aliases
- builder: cycle-safe tree construction, flattening and unique-set merging
"""

from .builder import (
    MAX_UNIQUE_APPEARANCES,
    build_tree,
    flat_graph_from_unique,
    flatten_graph,
    map_from_edges,
    merge_unique_sets,
    tree_unique_set,
)
from .types import DependencyMap, DepTreeNode, GraphNode, UniqueSet

__all__ = [
    "MAX_UNIQUE_APPEARANCES",
    "DependencyMap",
    "DepTreeNode",
    "GraphNode",
    "UniqueSet",
    "build_tree",
    "flat_graph_from_unique",
    "flatten_graph",
    "map_from_edges",
    "merge_unique_sets",
    "tree_unique_set",
]
