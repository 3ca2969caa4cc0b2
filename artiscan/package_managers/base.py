"""Abstract base class for dependency-tree builders.

Every builder runs its ecosystem's native resolver, reduces the output to a
``DependencyMap`` and hands it to ``artiscan.graph.build_tree``. Builders
never talk to the scan or curation services.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path

from artiscan.config import ServerDetails
from artiscan.graph import GraphNode, UniqueSet, build_tree, merge_unique_sets
from artiscan.graph.types import DependencyMap


@dataclass
class TreeParams:
    """Inputs shared by every builder.

    ``deps_repo`` names the remote repository dependencies are resolved
    through; when empty the resolver uses its own default registry.
    """

    server: ServerDetails | None = None
    deps_repo: str = ""
    working_dir: Path = field(default_factory=Path.cwd)
    use_wrapper: bool = True
    include_dev: bool = True
    pip_requirements_file: str = ""
    install_command_args: list[str] = field(default_factory=list)

    def __post_init__(self):
        self.working_dir = Path(self.working_dir)

    @property
    def resolves_through_server(self) -> bool:
        return bool(self.deps_repo) and self.server is not None and not self.server.is_empty()


BuildResult = tuple[list[GraphNode], UniqueSet]


class BaseTreeBuilder(ABC):
    """Abstract base class for all tree builders.

    Implementations must provide:
    - tech_name: registry key (e.g. 'maven', 'npm')
    - package_type_identifier: id scheme prefix (e.g. 'gav://')
    - build(): run the resolver and return (trees, unique set)
    """

    @property
    @abstractmethod
    def tech_name(self) -> str:
        ...

    @property
    @abstractmethod
    def package_type_identifier(self) -> str:
        ...

    @abstractmethod
    def build(self, params: TreeParams) -> BuildResult:
        """Resolve ``params.working_dir`` into one tree per module plus their unique set."""
        ...

    def to_id(self, name: str) -> str:
        return f"{self.package_type_identifier}{name}"

    def trees_from_maps(self, modules: list[tuple[DependencyMap, str]]) -> BuildResult:
        """Build one tree per ``(map, root id)`` pair and merge their unique sets."""
        trees = []
        sets = []
        for dep_map, root_id in modules:
            tree, unique = build_tree(dep_map, root_id)
            trees.append(tree)
            sets.append(unique)
        return trees, merge_unique_sets(sets)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} tech_name={self.tech_name!r}>"
