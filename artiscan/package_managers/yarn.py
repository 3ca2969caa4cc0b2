"""Yarn tree builder for both Yarn Classic (v1) and Yarn Berry (v2+).

- Berry: ``yarn info --all --recursive --json`` prints one JSON object per
  package, dependencies referenced by locator
- Classic: ``yarn list --json`` prints the hoisted tree; children marked
  ``shadow`` are references to a hoisted top-level entry
"""

import json
from contextlib import ExitStack
from typing import Any

from artiscan.errors import ParseError
from artiscan.graph.types import DependencyMap, DepTreeNode
from artiscan.utils.constants import NPM_PREFIX
from artiscan.utils.logging import logger

from .base import BaseTreeBuilder, BuildResult, TreeParams
from .npm import direct_dependency_tags, npm_id, read_package_json, root_id
from .resolver import ConfigBackup, accept_partial, resolver_version, run_resolver
from .settings import yarnrc_berry, yarnrc_v1

V1_INSTALL_FLAGS = ["--ignore-scripts", "--silent", "--non-interactive"]


def split_name(spec: str) -> tuple[str, str]:
    """``@scope/name@rest`` -> (``@scope/name``, ``rest``)."""
    index = spec.find("@", 1)
    if index == -1:
        return spec, ""
    return spec[:index], spec[index + 1:]


def locator_key(locator: str) -> str:
    """Drop Berry's ``virtual:<hash>#`` indirection so peers share one key."""
    name, reference = split_name(locator)
    if "#" in reference:
        reference = reference.rsplit("#", 1)[1]
    return f"{name}@{reference}"


def is_berry(version: str) -> bool:
    major = version.strip().split(".", 1)[0]
    return major.isdigit() and int(major) >= 2


def parse_berry_info(output: str) -> tuple[DependencyMap, str]:
    """Map plus root id from ``yarn info --all --recursive --json``."""
    packages: dict[str, dict[str, Any]] = {}
    root_key = ""
    for line in output.splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            entry = json.loads(line)
        except json.JSONDecodeError as e:
            raise ParseError(f"could not parse yarn info output line {line[:80]!r}: {e}") from e
        value = entry.get("value", "")
        key = locator_key(value)
        packages[key] = entry.get("children") or {}
        if "@workspace:." in value:
            root_key = key
    if not root_key:
        raise ParseError("yarn info output does not contain the root workspace")

    def to_id(key: str) -> str:
        name, _ = split_name(key)
        version = (packages.get(key) or {}).get("Version", "")
        return npm_id(name, version)

    dep_map: DependencyMap = {}
    for key, details in packages.items():
        node = dep_map.setdefault(to_id(key), DepTreeNode())
        for dependency in details.get("Dependencies") or []:
            child_key = locator_key(dependency.get("locator", ""))
            if child_key not in packages:
                continue
            child_id = to_id(child_key)
            if child_id not in node.children:
                node.children.append(child_id)
    return dep_map, to_id(root_key)


def parse_classic_list(output: str, root: str, direct: dict[str, str]) -> DependencyMap:
    """Map from ``yarn list --json``; the root's children come from package.json."""
    trees = []
    for line in output.splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            entry = json.loads(line)
        except json.JSONDecodeError as e:
            raise ParseError(f"could not parse yarn list output: {e}") from e
        if entry.get("type") == "tree":
            trees = (entry.get("data") or {}).get("trees") or []

    hoisted: dict[str, str] = {}
    for tree in trees:
        name, version = split_name(tree.get("name", ""))
        hoisted.setdefault(name, version)

    dep_map: DependencyMap = {root: DepTreeNode()}

    def resolve(child: dict[str, Any]) -> str:
        name, version = split_name(child.get("name", ""))
        if child.get("shadow") and name in hoisted:
            version = hoisted[name]
        return npm_id(name, version)

    def visit(node_id: str, children: list[dict[str, Any]]) -> None:
        node = dep_map.setdefault(node_id, DepTreeNode())
        for child in children or []:
            child_id = resolve(child)
            if child_id not in node.children:
                node.children.append(child_id)
            dep_map.setdefault(child_id, DepTreeNode())
            if child.get("children"):
                visit(child_id, child["children"])

    for tree in trees:
        visit(resolve(tree), tree.get("children"))

    for name, tag in direct.items():
        if name not in hoisted:
            continue
        child_id = npm_id(name, hoisted[name])
        dep_map[root].children.append(child_id)
        node = dep_map.setdefault(child_id, DepTreeNode())
        if tag not in node.types:
            node.types.append(tag)
    return dep_map


class YarnTreeBuilder(BaseTreeBuilder):
    """Yarn projects (yarn.lock, .yarnrc.yml or .yarn)."""

    @property
    def tech_name(self) -> str:
        return "yarn"

    @property
    def package_type_identifier(self) -> str:
        return NPM_PREFIX

    def build(self, params: TreeParams) -> BuildResult:
        project_dir = params.working_dir
        berry = is_berry(resolver_version("yarn", project_dir))
        package = read_package_json(project_dir)

        with ExitStack() as stack:
            if params.resolves_through_server:
                name, content = (".yarnrc.yml", yarnrc_berry) if berry else (".yarnrc", yarnrc_v1)
                backup = stack.enter_context(ConfigBackup(project_dir / name))
                backup.write(content(params.server, params.deps_repo))
                logger.info(f"Resolving dependencies from '{params.server.url}' from repo '{params.deps_repo}'")

            if params.install_command_args or not (project_dir / "yarn.lock").is_file():
                install = ["yarn", *(params.install_command_args or ["install"])]
                if not berry and not params.install_command_args:
                    install += V1_INSTALL_FLAGS
                run_resolver(install, project_dir)

            if berry:
                result = run_resolver(["yarn", "info", "--all", "--recursive", "--json"], project_dir)
            else:
                result = run_resolver(["yarn", "list", "--json"], project_dir, check=False)

        if berry:
            dep_map, root = parse_berry_info(result.stdout)
        else:
            root = root_id(package, project_dir)
            tags = direct_dependency_tags(package)
            if not params.include_dev:
                tags = {name: tag for name, tag in tags.items() if tag != "dev"}
            dep_map = parse_classic_list(result.stdout, root, tags)
            accept_partial(result, len(dep_map) - 1)
        return self.trees_from_maps([(dep_map, root)])
