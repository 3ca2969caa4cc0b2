"""NuGet tree builder: ``dotnet restore`` then ``obj/project.assets.json``."""

import json
from pathlib import Path
from typing import Any

from artiscan.errors import ParseError
from artiscan.graph.types import DependencyMap, DepTreeNode
from artiscan.utils.constants import NUGET_PREFIX
from artiscan.utils.logging import logger
from artiscan.utils.temp_manager import TempManager, scratch_dir

from .base import BaseTreeBuilder, BuildResult, TreeParams
from .resolver import run_resolver
from .settings import nuget_config

ASSETS_FILE = "project.assets.json"
NUGET_CONFIG_FILE = "NuGet.Config"


def nuget_id(name: str, version: str = "") -> str:
    return f"{NUGET_PREFIX}{name}:{version}" if version else f"{NUGET_PREFIX}{name}"


def parse_assets(assets: dict[str, Any]) -> tuple[DependencyMap, str]:
    """One project's assets file as a ``(map, root id)`` pair.

    Every target framework contributes; packages are keyed case-insensitively
    the way NuGet resolves them.
    """
    project = assets.get("project") or {}
    name = (project.get("restore") or {}).get("projectName")
    if not name:
        raise ParseError("project.assets.json has no restore.projectName")
    root = nuget_id(name)
    dep_map: DependencyMap = {root: DepTreeNode()}

    resolved: dict[str, str] = {}
    for libraries in (assets.get("targets") or {}).values():
        for key, library in (libraries or {}).items():
            if (library or {}).get("type") != "package":
                continue
            package, _, version = key.partition("/")
            resolved[package.lower()] = nuget_id(package, version)

    for libraries in (assets.get("targets") or {}).values():
        for key, library in (libraries or {}).items():
            if (library or {}).get("type") != "package":
                continue
            package, _, version = key.partition("/")
            node = dep_map.setdefault(nuget_id(package, version), DepTreeNode())
            for child in (library.get("dependencies") or {}):
                child_id = resolved.get(child.lower())
                if child_id and child_id not in node.children:
                    node.children.append(child_id)

    for framework in (project.get("frameworks") or {}).values():
        for package in (framework or {}).get("dependencies") or {}:
            child_id = resolved.get(package.lower())
            if child_id is None:
                logger.debug(f"{package} is declared by {name} but was not restored")
                continue
            if child_id not in dep_map[root].children:
                dep_map[root].children.append(child_id)
    return dep_map, root


def find_assets_files(project_dir: Path) -> list[Path]:
    return sorted(p for p in project_dir.rglob(ASSETS_FILE) if p.parent.name == "obj")


class NugetTreeBuilder(BaseTreeBuilder):
    """.NET projects (.sln or .csproj), one tree per project."""

    @property
    def tech_name(self) -> str:
        return "nuget"

    @property
    def package_type_identifier(self) -> str:
        return NUGET_PREFIX

    def build(self, params: TreeParams) -> BuildResult:
        with scratch_dir("artiscan-nuget") as scratch:
            project = TempManager.copy_project(params.working_dir, scratch / "project")
            restore = ["dotnet", "restore"]
            if params.resolves_through_server:
                config = TempManager.write_private_file(
                    scratch, NUGET_CONFIG_FILE, nuget_config(params.server, params.deps_repo)
                )
                restore += ["--configfile", str(config)]
            run_resolver(restore, project)

            modules = []
            for assets_file in find_assets_files(project):
                try:
                    with open(assets_file, encoding="utf-8") as f:
                        modules.append(parse_assets(json.load(f)))
                except json.JSONDecodeError as e:
                    raise ParseError(f"could not parse {assets_file}: {e}") from e
        if not modules:
            raise ParseError(f"'dotnet restore' produced no {ASSETS_FILE} in {params.working_dir}")
        return self.trees_from_maps(modules)
