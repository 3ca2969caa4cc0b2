"""Technology detection from indicator files in a project directory."""

import os
from dataclasses import dataclass, field
from pathlib import Path

from artiscan.utils.logging import logger


@dataclass(frozen=True)
class TechIndicators:
    """Files whose presence marks a technology, and files that veto it.

    Entries starting with ``.`` that are not dot-files themselves (``.gradle``,
    ``.csproj``) match by suffix; everything else matches the exact name.
    """

    name: str
    indicators: tuple[str, ...]
    exclusions: tuple[str, ...] = field(default_factory=tuple)


SUFFIX_INDICATORS = frozenset({".gradle", ".gradle.kts", ".sln", ".csproj"})

TECHNOLOGIES = (
    TechIndicators("maven", ("pom.xml",)),
    TechIndicators("gradle", (".gradle", ".gradle.kts")),
    TechIndicators(
        "npm",
        ("package.json", "package-lock.json", "npm-shrinkwrap.json"),
        (".yarnrc.yml", "yarn.lock", ".yarn"),
    ),
    TechIndicators("yarn", (".yarnrc.yml", "yarn.lock", ".yarn")),
    TechIndicators("go", ("go.mod",)),
    TechIndicators(
        "pip",
        ("setup.py", "requirements.txt"),
        ("Pipfile", "Pipfile.lock", "pyproject.toml", "poetry.lock"),
    ),
    TechIndicators("pipenv", ("Pipfile", "Pipfile.lock")),
    TechIndicators("poetry", ("poetry.lock",)),
    TechIndicators("nuget", (".sln", ".csproj")),
)


def _matches(file_name: str, indicator: str) -> bool:
    if indicator in SUFFIX_INDICATORS:
        return file_name.endswith(indicator)
    return file_name == indicator


def _is_poetry_pyproject(path: Path) -> bool:
    try:
        return "[tool.poetry]" in path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return False


def _list_names(path: Path, recursive: bool) -> set[str]:
    if not recursive:
        return {entry.name for entry in os.scandir(path)}
    names = set()
    for root, dirs, files in os.walk(path):
        dirs[:] = [d for d in dirs if d not in {".git", "node_modules", ".venv", "venv"}]
        names.update(files)
        names.update(dirs)
    return names


def detect_technologies(path: str | Path, recursive: bool = False) -> list[str]:
    """Technologies present in ``path``, in registry order."""
    path = Path(path)
    names = _list_names(path, recursive)
    detected = []
    for tech in TECHNOLOGIES:
        present = any(_matches(n, i) for n in names for i in tech.indicators)
        if tech.name == "poetry" and not present and "pyproject.toml" in names:
            present = _is_poetry_pyproject(path / "pyproject.toml")
        if not present:
            continue
        if any(_matches(n, e) for n in names for e in tech.exclusions):
            logger.debug(f"{tech.name} indicators found in {path} but excluded by another technology")
            continue
        detected.append(tech.name)
    logger.debug(f"Detected technologies in {path}: {detected}")
    return detected
