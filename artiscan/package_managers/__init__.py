"""Package managers module - dependency trees across ecosystems.

Provides a registry of tree builders, one per technology:
- maven, gradle (gav://) via the dep-tree plugins
- npm, yarn (npm://)
- go (go://)
- pip, pipenv, poetry (pypi://)
- nuget (nuget://)

Usage:
    from artiscan.package_managers import build_dependency_tree, TreeParams

    trees, unique = build_dependency_tree("npm", TreeParams(working_dir=Path(".")))
"""

from __future__ import annotations

from artiscan.errors import UnsupportedTechnologyError
from artiscan.utils.logging import logger

from .base import BaseTreeBuilder, BuildResult, TreeParams
from .detect import detect_technologies

# Lazy imports to avoid circular dependencies
_REGISTRY: dict[str, type[BaseTreeBuilder]] | None = None


def _init_registry() -> dict[str, type[BaseTreeBuilder]]:
    """Initialize the registry with all tree builder implementations."""
    global _REGISTRY
    if _REGISTRY is not None:
        return _REGISTRY

    from .go import GoTreeBuilder
    from .gradle import GradleTreeBuilder
    from .maven import MavenTreeBuilder
    from .npm import NpmTreeBuilder
    from .nuget import NugetTreeBuilder
    from .python import PipenvTreeBuilder, PipTreeBuilder, PoetryTreeBuilder
    from .yarn import YarnTreeBuilder

    _REGISTRY = {
        "maven": MavenTreeBuilder,
        "gradle": GradleTreeBuilder,
        "npm": NpmTreeBuilder,
        "yarn": YarnTreeBuilder,
        "go": GoTreeBuilder,
        "pip": PipTreeBuilder,
        "pipenv": PipenvTreeBuilder,
        "poetry": PoetryTreeBuilder,
        "nuget": NugetTreeBuilder,
    }
    return _REGISTRY


def supported_technologies() -> list[str]:
    return list(_init_registry())


def get_builder(tech: str) -> BaseTreeBuilder:
    """Builder instance for ``tech``.

    Raises:
        UnsupportedTechnologyError: no builder is registered under that name
    """
    cls = _init_registry().get(tech.lower())
    if cls is None:
        raise UnsupportedTechnologyError(tech)
    return cls()


def build_dependency_tree(tech: str, params: TreeParams) -> BuildResult:
    """Run the resolver for ``tech`` and return (trees, merged unique set).

    Log lines emitted while resolving carry ``tech`` in their extra fields.
    """
    builder = get_builder(tech)
    with logger.contextualize(tech=tech.lower()):
        return builder.build(params)


__all__ = [
    "BaseTreeBuilder",
    "BuildResult",
    "TreeParams",
    "build_dependency_tree",
    "detect_technologies",
    "get_builder",
    "supported_technologies",
]
