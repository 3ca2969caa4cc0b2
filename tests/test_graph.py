"""Tests for dependency tree construction and flattening."""

from artiscan.graph import (
    MAX_UNIQUE_APPEARANCES,
    DepTreeNode,
    GraphNode,
    build_tree,
    flat_graph_from_unique,
    flatten_graph,
    map_from_edges,
    merge_unique_sets,
    tree_unique_set,
)


def ids_by_depth(tree: GraphNode) -> list[tuple[str, int]]:
    return [(node.id, depth) for node, depth in tree.walk()]


def all_paths(tree: GraphNode) -> list[list[str]]:
    return [node.path() for node, _depth in tree.walk() if not node.nodes]


class TestBuildTree:
    """Cycle suppression and expansion limits."""

    def test_two_node_cycle(self):
        dep_map = {"a": DepTreeNode(children=["b"]), "b": DepTreeNode(children=["a"])}
        tree, unique = build_tree(dep_map, "a")
        assert ids_by_depth(tree) == [("a", 0), ("b", 1)]
        assert tree.nodes[0].nodes == []
        assert set(unique) == {"a", "b"}

    def test_paths_have_distinct_ids(self):
        edges = [("r", "a"), ("a", "b"), ("b", "c"), ("c", "a"), ("c", "r"), ("b", "d")]
        tree, _ = build_tree(map_from_edges(edges), "r")
        for path in all_paths(tree):
            assert len(path) == len(set(path))

    def test_shared_child_under_several_parents(self):
        edges = [("r", "a"), ("r", "b"), ("a", "c"), ("b", "c")]
        tree, unique = build_tree(map_from_edges(edges), "r")
        assert ids_by_depth(tree) == [("r", 0), ("a", 1), ("c", 2), ("b", 1), ("c", 2)]
        assert set(unique) == {"r", "a", "b", "c"}

    def test_max_unique_appearances(self):
        parents = [f"p{i}" for i in range(MAX_UNIQUE_APPEARANCES + 5)]
        edges = [("r", p) for p in parents] + [(p, "x") for p in parents]
        tree, unique = build_tree(map_from_edges(edges), "r")
        occurrences = [node for node, _ in tree.walk() if node.id == "x"]
        assert len(occurrences) == MAX_UNIQUE_APPEARANCES
        # Every parent is still present, the later ones just without "x"
        assert [child.id for child in tree.nodes] == parents
        assert "x" in unique

    def test_unknown_root(self):
        tree, unique = build_tree({}, "lonely")
        assert tree.id == "lonely"
        assert tree.nodes == []
        assert unique == {"lonely": set()}

    def test_parent_is_not_serialized(self):
        tree, _ = build_tree(map_from_edges([("r", "a")]), "r")
        assert tree.to_dict() == {"component_id": "r", "nodes": [{"component_id": "a"}]}


class TestUniqueSet:
    """The unique set is the union of ids and tags over all paths."""

    def test_tags_union_across_occurrences(self):
        dep_map = map_from_edges(
            [("r", "a"), ("r", "b"), ("a", "c"), ("b", "c")],
            types={"c": ["compile"], "a": ["test"]},
        )
        dep_map["c"].types.append("runtime")
        tree, unique = build_tree(dep_map, "r")
        assert unique["c"] == {"compile", "runtime"}
        assert unique["a"] == {"test"}
        assert tree_unique_set(tree) == unique

    def test_union_law(self):
        edges = [("r", "a"), ("a", "b"), ("b", "a"), ("r", "c"), ("c", "b"), ("b", "d")]
        tree, unique = build_tree(map_from_edges(edges), "r")
        on_paths = {node_id for path in all_paths(tree) for node_id in path}
        assert set(unique) == on_paths

    def test_merge(self):
        merged = merge_unique_sets([{"a": {"x"}}, {"a": {"y"}, "b": set()}])
        assert merged == {"a": {"x", "y"}, "b": set()}


class TestFlatten:
    def test_one_hop_graph_keeps_first_seen_order(self):
        edges = [("r", "a"), ("a", "b"), ("r", "b")]
        tree, _ = build_tree(map_from_edges(edges), "r")
        flat = flatten_graph(tree)
        assert flat.id == "root"
        assert [n.id for n in flat.nodes] == ["r", "a", "b"]
        assert all(not n.nodes for n in flat.nodes)

    def test_several_trees(self):
        first, _ = build_tree(map_from_edges([("m1", "x")]), "m1")
        second, _ = build_tree(map_from_edges([("m2", "x"), ("m2", "y")]), "m2")
        assert [n.id for n in flatten_graph([first, second]).nodes] == ["m1", "x", "m2", "y"]

    def test_from_unique_sorts_tags(self):
        flat = flat_graph_from_unique({"a": {"z", "b"}})
        assert flat.nodes[0].types == ["b", "z"]


class TestMapFromEdges:
    def test_duplicate_edges_collapse(self):
        dep_map = map_from_edges([("a", "b"), ("a", "b"), ("a", "c")])
        assert dep_map["a"].children == ["b", "c"]
        assert dep_map["b"].children == []
