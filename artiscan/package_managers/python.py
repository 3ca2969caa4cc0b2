"""Python tree builders for pip, pipenv and poetry.

All three work on a copy of the project so installs never touch the user's
tree. pip and pipenv report their installed graph as pipdeptree-style JSON;
poetry's graph is read from ``poetry.lock``. Python trees have a synthetic
``root`` node whose children are the direct dependencies.
"""

import json
import platform
import re
import tomllib
from abc import abstractmethod
from pathlib import Path
from typing import Any

from artiscan.errors import ParseError, ResolverError
from artiscan.graph.types import DependencyMap, DepTreeNode
from artiscan.utils.constants import PYPI_PREFIX
from artiscan.utils.logging import logger
from artiscan.utils.temp_manager import TempManager, scratch_dir

from .base import BaseTreeBuilder, BuildResult, TreeParams
from .resolver import run_resolver
from .settings import ARTISCAN_SERVER_ID, pypi_index_url

IS_WINDOWS = platform.system() == "Windows"

PYTHON_ROOT_ID = "root"
VENV_DIR = "venvdir"
DEFAULT_REQUIREMENTS = "requirements.txt"
TOOLING_PACKAGES = frozenset({"pip", "setuptools", "wheel", "pipdeptree"})
REQUIREMENT_NAME = re.compile(r"^\s*([A-Za-z0-9][A-Za-z0-9._-]*)")


def normalize_name(name: str) -> str:
    """PEP 503 normalized project name."""
    return re.sub(r"[-_.]+", "-", name).lower()


def pypi_id(name: str, version: str) -> str:
    return f"{PYPI_PREFIX}{normalize_name(name)}:{version}"


def parse_pipdeptree(output: str) -> DependencyMap:
    """``pipdeptree --json`` / ``pipenv graph --json`` into a map under ``root``.

    Direct dependencies are the installed packages no other package requires.
    Packaging tooling is left out of the root.
    """
    try:
        entries = json.loads(output or "[]")
    except json.JSONDecodeError as e:
        raise ParseError(f"could not parse dependency graph JSON: {e}") from e

    versions: dict[str, str] = {}
    for entry in entries:
        package = entry.get("package") or {}
        versions[normalize_name(package.get("key") or package.get("package_name", ""))] = package.get(
            "installed_version", ""
        )

    dep_map: DependencyMap = {PYTHON_ROOT_ID: DepTreeNode()}
    required: set[str] = set()
    for entry in entries:
        package = entry.get("package") or {}
        name = normalize_name(package.get("key") or package.get("package_name", ""))
        node = dep_map.setdefault(pypi_id(name, versions[name]), DepTreeNode())
        for dependency in entry.get("dependencies") or []:
            child = normalize_name(dependency.get("key") or dependency.get("package_name", ""))
            required.add(child)
            version = dependency.get("installed_version") or versions.get(child, "")
            child_id = pypi_id(child, version)
            if child_id not in node.children:
                node.children.append(child_id)
            dep_map.setdefault(child_id, DepTreeNode())

    for name in sorted(versions):
        if name in required or name in TOOLING_PACKAGES:
            continue
        dep_map[PYTHON_ROOT_ID].children.append(pypi_id(name, versions[name]))
    return dep_map


def _requirement_names(requirements: list[str]) -> list[str]:
    names = []
    for requirement in requirements:
        match = REQUIREMENT_NAME.match(requirement)
        if match:
            names.append(match.group(1))
    return names


def poetry_direct_dependencies(pyproject: dict[str, Any], include_dev: bool) -> dict[str, str]:
    """Direct dependency name -> scope tag from pyproject.toml."""
    poetry = (pyproject.get("tool") or {}).get("poetry") or {}
    direct: dict[str, str] = {}
    for name in poetry.get("dependencies") or {}:
        if name.lower() != "python":
            direct[normalize_name(name)] = "main"
    for name in _requirement_names((pyproject.get("project") or {}).get("dependencies") or []):
        direct.setdefault(normalize_name(name), "main")
    if include_dev:
        for name in poetry.get("dev-dependencies") or {}:
            direct.setdefault(normalize_name(name), "dev")
        for group, content in (poetry.get("group") or {}).items():
            for name in (content or {}).get("dependencies") or {}:
                direct.setdefault(normalize_name(name), group)
    return direct


def parse_poetry_lock(lock: dict[str, Any], direct: dict[str, str]) -> DependencyMap:
    versions = {normalize_name(p["name"]): p.get("version", "") for p in lock.get("package") or []}
    dep_map: DependencyMap = {PYTHON_ROOT_ID: DepTreeNode()}
    for package in lock.get("package") or []:
        name = normalize_name(package["name"])
        node = dep_map.setdefault(pypi_id(name, versions[name]), DepTreeNode())
        for child in package.get("dependencies") or {}:
            child = normalize_name(child)
            if child not in versions:
                # Marker-excluded extras never made it into the lock
                continue
            child_id = pypi_id(child, versions[child])
            if child_id not in node.children:
                node.children.append(child_id)
    for name, tag in direct.items():
        if name not in versions:
            logger.debug(f"{name} is declared in pyproject.toml but missing from poetry.lock")
            continue
        child_id = pypi_id(name, versions[name])
        dep_map[PYTHON_ROOT_ID].children.append(child_id)
        node = dep_map.setdefault(child_id, DepTreeNode())
        if tag not in node.types:
            node.types.append(tag)
    return dep_map


def read_toml(path: Path) -> dict[str, Any]:
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except FileNotFoundError:
        return {}
    except tomllib.TOMLDecodeError as e:
        raise ParseError(f"could not parse {path}: {e}") from e


def system_python() -> str:
    return "python" if IS_WINDOWS else "python3"


def venv_python(venv: Path) -> Path:
    if IS_WINDOWS:
        return venv / "Scripts" / "python.exe"
    return venv / "bin" / "python"


class _PythonTreeBuilder(BaseTreeBuilder):
    @property
    def package_type_identifier(self) -> str:
        return PYPI_PREFIX

    def index_url(self, params: TreeParams) -> str:
        if not params.resolves_through_server:
            return ""
        return pypi_index_url(params.server, params.deps_repo)

    def build(self, params: TreeParams) -> BuildResult:
        with scratch_dir(f"artiscan-{self.tech_name}") as scratch:
            project = TempManager.copy_project(params.working_dir, scratch / "project")
            dep_map = self.resolve(project, params)
        return self.trees_from_maps([(dep_map, PYTHON_ROOT_ID)])

    @abstractmethod
    def resolve(self, project: Path, params: TreeParams) -> DependencyMap:
        """Install the copied project and return its dependency map."""
        ...


class PipTreeBuilder(_PythonTreeBuilder):
    """pip projects (setup.py or requirements.txt) installed into a throwaway venv."""

    @property
    def tech_name(self) -> str:
        return "pip"

    def install_args(self, python: Path, requirements_file: str, index_url: str) -> list[str]:
        args = [str(python), "-m", "pip", "install"]
        if requirements_file:
            args += ["-r", requirements_file]
        else:
            args.append(".")
        if index_url:
            args += ["-i", index_url]
        return args

    def resolve(self, project: Path, params: TreeParams) -> DependencyMap:
        run_resolver([system_python(), "-m", "venv", VENV_DIR], project)
        python = venv_python(project / VENV_DIR)
        index_url = self.index_url(params)

        try:
            run_resolver(self.install_args(python, params.pip_requirements_file, index_url), project)
        except ResolverError:
            if params.pip_requirements_file or not (project / DEFAULT_REQUIREMENTS).is_file():
                raise
            logger.debug(f"'pip install .' failed, falling back to {DEFAULT_REQUIREMENTS}")
            run_resolver(self.install_args(python, DEFAULT_REQUIREMENTS, index_url), project)

        tool_install = [str(python), "-m", "pip", "install", "pipdeptree"]
        if index_url:
            tool_install += ["-i", index_url]
        run_resolver(tool_install, project)
        result = run_resolver([str(python), "-m", "pipdeptree", "--json"], project)
        return parse_pipdeptree(result.stdout)


class PipenvTreeBuilder(_PythonTreeBuilder):
    """pipenv projects (Pipfile)."""

    @property
    def tech_name(self) -> str:
        return "pipenv"

    def resolve(self, project: Path, params: TreeParams) -> DependencyMap:
        env = {"WORKON_HOME": str(project / ".venvs"), "PIPENV_VENV_IN_PROJECT": "0"}
        index_url = self.index_url(params)
        install = ["pipenv", "install"]
        if params.include_dev:
            install.append("-d")
        if index_url:
            install += ["--pypi-mirror", index_url]
        run_resolver(install, project, env)
        result = run_resolver(["pipenv", "graph", "--json"], project, env)
        return parse_pipdeptree(result.stdout)


class PoetryTreeBuilder(_PythonTreeBuilder):
    """poetry projects (pyproject.toml with poetry.lock)."""

    @property
    def tech_name(self) -> str:
        return "poetry"

    def resolve(self, project: Path, params: TreeParams) -> DependencyMap:
        env = {}
        if params.resolves_through_server:
            source_url = pypi_index_url(params.server, params.deps_repo, with_credentials=False)
            run_resolver(["poetry", "source", "add", "--priority=primary", ARTISCAN_SERVER_ID, source_url], project)
            user, secret = params.server.resolver_credentials()
            key = ARTISCAN_SERVER_ID.upper()
            env[f"POETRY_HTTP_BASIC_{key}_USERNAME"] = user
            env[f"POETRY_HTTP_BASIC_{key}_PASSWORD"] = secret
        run_resolver(["poetry", "install", "--no-root"], project, env)

        direct = poetry_direct_dependencies(read_toml(project / "pyproject.toml"), params.include_dev)
        lock = read_toml(project / "poetry.lock")
        if not lock:
            raise ParseError(f"poetry.lock was not found in {params.working_dir}")
        return parse_poetry_lock(lock, direct)
