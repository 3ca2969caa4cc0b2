"""npm tree builder: parses ``npm ls --all --json``."""

import json
from contextlib import ExitStack
from pathlib import Path
from typing import Any

from artiscan.errors import ParseError
from artiscan.graph.types import DependencyMap, DepTreeNode
from artiscan.utils.constants import NPM_PREFIX
from artiscan.utils.logging import logger

from .base import BaseTreeBuilder, BuildResult, TreeParams
from .resolver import ConfigBackup, accept_partial, run_resolver
from .settings import npmrc

IGNORE_SCRIPTS_FLAG = "--ignore-scripts"


def read_package_json(project_dir: Path) -> dict[str, Any]:
    path = project_dir / "package.json"
    try:
        with open(path, encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError:
        return {}
    except json.JSONDecodeError as e:
        raise ParseError(f"could not parse {path}: {e}") from e


def npm_id(name: str, version: str) -> str:
    return f"{NPM_PREFIX}{name}:{version}" if version else f"{NPM_PREFIX}{name}"


def root_id(package: dict[str, Any], project_dir: Path) -> str:
    """``npm://name:version`` of the project itself."""
    return npm_id(package.get("name") or project_dir.name, package.get("version", ""))


def direct_dependency_tags(package: dict[str, Any]) -> dict[str, str]:
    """Direct dependency name -> scope tag declared in package.json."""
    tags = {}
    for section, tag in (
        ("dependencies", "prod"),
        ("optionalDependencies", "optional"),
        ("peerDependencies", "peer"),
        ("devDependencies", "dev"),
    ):
        for name in package.get(section) or {}:
            tags.setdefault(name, tag)
    return tags


def parse_npm_ls(output: str, root: str, tags: dict[str, str] | None = None) -> DependencyMap:
    """Fold the nested ``npm ls`` JSON into a flat map.

    A package that npm reports as deduped appears several times; its children
    are the union of every occurrence. Missing packages are dropped.
    """
    try:
        data = json.loads(output or "{}")
    except json.JSONDecodeError as e:
        raise ParseError(f"could not parse npm ls output: {e}") from e
    tags = tags or {}
    dep_map: DependencyMap = {root: DepTreeNode()}

    def visit(parent_id: str, dependencies: dict[str, Any], direct: bool) -> None:
        for name, info in (dependencies or {}).items():
            info = info or {}
            version = info.get("version")
            if not version or info.get("missing"):
                continue
            child_id = npm_id(name, version)
            parent = dep_map[parent_id]
            if child_id not in parent.children:
                parent.children.append(child_id)
            child = dep_map.setdefault(child_id, DepTreeNode())
            if direct and name in tags and tags[name] not in child.types:
                child.types.append(tags[name])
            visit(child_id, info.get("dependencies"), False)

    visit(root, data.get("dependencies"), True)
    return dep_map


class NpmTreeBuilder(BaseTreeBuilder):
    """npm projects (package.json)."""

    @property
    def tech_name(self) -> str:
        return "npm"

    @property
    def package_type_identifier(self) -> str:
        return NPM_PREFIX

    def install_args(self, params: TreeParams) -> list[str] | None:
        """Install command to run first, or None when the project is already installed."""
        if params.install_command_args:
            args = ["npm", *params.install_command_args]
        elif not (params.working_dir / "node_modules").is_dir():
            args = ["npm", "install"]
        else:
            return None
        if IGNORE_SCRIPTS_FLAG not in args:
            args.append(IGNORE_SCRIPTS_FLAG)
        return args

    def build(self, params: TreeParams) -> BuildResult:
        project_dir = params.working_dir
        package = read_package_json(project_dir)
        root = root_id(package, project_dir)

        with ExitStack() as stack:
            if params.resolves_through_server:
                backup = stack.enter_context(ConfigBackup(project_dir / ".npmrc"))
                backup.write(npmrc(params.server, params.deps_repo))
                logger.info(f"Resolving dependencies from '{params.server.url}' from repo '{params.deps_repo}'")

            install = self.install_args(params)
            if install:
                run_resolver(install, project_dir)

            ls_args = ["npm", "ls", "--all", "--json"]
            if not params.include_dev:
                ls_args.append("--omit=dev")
            result = run_resolver(ls_args, project_dir, check=False)

        try:
            dep_map = parse_npm_ls(result.stdout, root, direct_dependency_tags(package))
        except ParseError:
            accept_partial(result, 0)
            raise
        accept_partial(result, len(dep_map) - 1)
        return self.trees_from_maps([(dep_map, root)])
