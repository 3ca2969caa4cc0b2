"""Go modules tree builder.

``go mod graph`` over-reports (it includes modules pruned from the build
list), so its edges are filtered by the modules ``go list all`` reports.
The toolchain itself is appended as ``go://github.com/golang/go:v<version>``
so it gets scanned like any other dependency.
"""

import re

from artiscan.errors import ParseError
from artiscan.graph.types import DependencyMap, DepTreeNode
from artiscan.utils.constants import GO_PREFIX, GO_TOOLCHAIN_PREFIX

from .base import BaseTreeBuilder, BuildResult, TreeParams
from .resolver import run_resolver
from .settings import go_proxy

GO_SOURCE_PREFIX = GO_TOOLCHAIN_PREFIX.removeprefix(GO_PREFIX)
LIST_FORMAT = "{{with .Module}}{{.Path}} {{.Version}}{{end}}"
GO_VERSION_PATTERN = re.compile(r"go version go(\d+(?:\.\d+)*)")


def to_node_name(module: str) -> str:
    """``path@version`` -> ``path:version``."""
    return module.replace("@", ":", 1)


def parse_mod_graph(output: str) -> dict[str, list[str]]:
    """``parent child`` lines into parent -> children, names as ``path:version``."""
    graph: dict[str, list[str]] = {}
    for line in output.splitlines():
        parts = line.split()
        if len(parts) != 2:
            continue
        parent, child = to_node_name(parts[0]), to_node_name(parts[1])
        children = graph.setdefault(parent, [])
        if child not in children:
            children.append(child)
    return graph


def parse_mod_list(output: str) -> set[str]:
    """``path version`` lines into a set of ``path:version`` names."""
    modules = set()
    for line in output.splitlines():
        parts = line.split()
        if len(parts) == 2:
            modules.add(f"{parts[0]}:{parts[1]}")
    return modules


def parse_go_version(output: str) -> str:
    match = GO_VERSION_PATTERN.search(output)
    if not match:
        raise ParseError(f"could not parse go version from {output.strip()!r}")
    return match.group(1)


def build_go_map(graph: dict[str, list[str]], listed: set[str], module_name: str) -> DependencyMap:
    """Filter the raw graph to listed modules and key it with ``go://`` ids."""
    dep_map: DependencyMap = {}
    for parent, children in graph.items():
        parent_id = GO_PREFIX + parent
        if parent != module_name and parent not in listed:
            continue
        node = dep_map.setdefault(parent_id, DepTreeNode())
        for child in children:
            if child in listed:
                node.children.append(GO_PREFIX + child)
    dep_map.setdefault(GO_PREFIX + module_name, DepTreeNode())
    return dep_map


class GoTreeBuilder(BaseTreeBuilder):
    """Go modules (go.mod)."""

    @property
    def tech_name(self) -> str:
        return "go"

    @property
    def package_type_identifier(self) -> str:
        return GO_PREFIX

    def build(self, params: TreeParams) -> BuildResult:
        project_dir = params.working_dir
        env = {}
        if params.resolves_through_server:
            env["GOPROXY"] = go_proxy(params.server, params.deps_repo)

        module_lines = run_resolver(["go", "list", "-m"], project_dir, env).stdout.split()
        if not module_lines:
            raise ParseError(f"could not determine the main module of {project_dir}")
        module_name = module_lines[0]
        graph = parse_mod_graph(run_resolver(["go", "mod", "graph"], project_dir, env).stdout)
        listed = parse_mod_list(
            run_resolver(["go", "list", "-mod=mod", "-f", LIST_FORMAT, "all"], project_dir, env).stdout
        )
        go_version = parse_go_version(run_resolver(["go", "version"], project_dir, env).stdout)

        dep_map = build_go_map(graph, listed, module_name)
        root = GO_PREFIX + module_name
        toolchain = GO_PREFIX + GO_SOURCE_PREFIX + go_version
        dep_map[root].children.append(toolchain)
        dep_map.setdefault(toolchain, DepTreeNode())
        return self.trees_from_maps([(dep_map, root)])
