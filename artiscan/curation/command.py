"""``curation-audit``: which packages of a project a curated repository blocks."""

from dataclasses import dataclass, field
from pathlib import Path

import httpx

from artiscan.config import ServerDetails, load_resolver_config
from artiscan.config_runtime import load_runtime_config
from artiscan.errors import ConfigMissingError, CurationError
from artiscan.graph import GraphNode, flat_graph_from_unique
from artiscan.package_managers import TreeParams, build_dependency_tree, detect_technologies
from artiscan.summary.markdown import MarkdownConfig
from artiscan.summary.store import CommandSummary
from artiscan.utils.logging import logger

from .analyzer import TreeAnalyzer
from .formatter import CurationSummaryRenderer, curation_record, print_results, sort_statuses
from .models import PackageStatus
from .urls import CURATION_SUPPORTED_TECHS, coordinates_for

CURATION_COMMAND = "curation-audit"

CurationResults = dict[str, list[PackageStatus]]


@dataclass
class CurationAuditCommand:
    """Detects, resolves and probes every working directory in turn.

    Per-package probe failures do not stop the run: they are reported after
    every directory has been printed and recorded.
    """

    server: ServerDetails
    working_dirs: list[Path] = field(default_factory=lambda: [Path.cwd()])
    repo: str = ""
    output_format: str = "table"
    parallel: int = 0
    use_wrapper: bool = True
    markdown_config: MarkdownConfig = field(default_factory=MarkdownConfig)
    transport: httpx.AsyncBaseTransport | None = None

    def __post_init__(self):
        runtime = load_runtime_config()["http"]
        self.http = runtime
        if self.parallel <= 0:
            self.parallel = runtime["threads"]

    def run(self) -> CurationResults:
        results: CurationResults = {}
        errors: list[Exception] = []
        for working_dir in self.working_dirs:
            working_dir = Path(working_dir).resolve()
            logger.info(f"Running curation audit on project '{working_dir}'")
            errors.extend(self.audit_tree(working_dir, results))

        for project, statuses in results.items():
            print_results(self.output_format, project, statuses)
        self.record(results)

        if errors:
            raise CurationError(f"{len(errors)} packages could not be checked", errors)
        return results

    def resolve_repo(self, tech: str, working_dir: Path) -> str:
        if self.repo:
            return self.repo
        config = load_resolver_config(tech, working_dir)
        if config is None:
            raise ConfigMissingError(
                f"No curated repository for '{tech}' in {working_dir}. "
                f"Pass --repo or add resolver.repo to .artiscan/projects/{tech}.yaml"
            )
        return config.repo

    def audit_tree(self, working_dir: Path, results: CurationResults) -> list[Exception]:
        errors: list[Exception] = []
        for tech in detect_technologies(working_dir):
            if tech not in CURATION_SUPPORTED_TECHS:
                logger.info(f"It looks like this project uses '{tech}' which isn't supported by curation-audit, skipping")
                continue
            base_url = self.server.require_artifactory()
            repo = self.resolve_repo(tech, working_dir)
            params = TreeParams(
                server=self.server,
                deps_repo=repo,
                working_dir=working_dir,
                use_wrapper=self.use_wrapper,
            )
            trees, unique = build_dependency_tree(tech, params)
            if not trees:
                continue
            root = trees[0]
            project = project_key(tech, root)

            analyzer = TreeAnalyzer(
                tech,
                base_url,
                repo,
                server=self.server,
                parallel=self.parallel,
                head_timeout=self.http["head_timeout"],
                get_timeout=self.http["get_timeout"],
                retries=self.http["retries"],
                transport=self.transport,
            )
            # Sibling module roots are the project's own artifacts, not packages to probe
            module_roots = {tree.id for tree in trees[1:]}
            flat = flat_graph_from_unique({k: v for k, v in unique.items() if k not in module_roots})
            logger.info(f"Found {len(flat.nodes)} unique {tech} packages for project {project}")
            statuses, tech_errors = analyzer.fetch_nodes_status(flat, root.id)
            errors.extend(tech_errors)

            packages: list[PackageStatus] = []
            for tree in trees:
                packages.extend(analyzer.fill_graph_relations(tree, statuses))
            results.setdefault(project, []).extend(sort_statuses(packages))
        return errors

    def record(self, results: CurationResults) -> None:
        summary = CommandSummary.new(CURATION_COMMAND, CurationSummaryRenderer(self.markdown_config))
        if summary is None:
            return
        summary.record(curation_record(results))


def project_key(tech: str, root: GraphNode) -> str:
    """``name:version`` of the project, used to group results."""
    coords = coordinates_for(tech, root.id)
    if coords.version:
        return f"{coords.full_name}:{coords.version}"
    return coords.full_name
