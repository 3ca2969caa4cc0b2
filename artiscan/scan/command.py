"""``audit``: resolve every detected project and scan its dependency graph."""

from dataclasses import dataclass, field
from pathlib import Path

import httpx

from artiscan.config import ServerDetails, load_resolver_config
from artiscan.config_runtime import load_runtime_config
from artiscan.graph import flatten_graph
from artiscan.package_managers import TreeParams, build_dependency_tree, detect_technologies
from artiscan.summary.scans import AUDIT_COMMAND, ScanSummaryRenderer, audit_record
from artiscan.summary.store import CommandSummary, SummaryIndex
from artiscan.utils.logging import logger

from .formatter import print_scan_results, to_sarif
from .graph_scan import GraphScanner, filter_results
from .models import ScanResponse


@dataclass
class AuditCommand:
    """Builds one graph per (working dir, technology) and scans each of them."""

    server: ServerDetails
    working_dirs: list[Path] = field(default_factory=lambda: [Path.cwd()])
    repo: str = ""
    output_format: str = "table"
    min_severity: str = ""
    fixable_only: bool = False
    include_licenses: bool = False
    project_key: str = ""
    watches: tuple[str, ...] = ()
    use_wrapper: bool = True
    transport: httpx.BaseTransport | None = None
    responses: list[ScanResponse] = field(default_factory=list, init=False)

    def __post_init__(self):
        runtime = load_runtime_config()
        self.scanner = GraphScanner(
            self.server,
            poll_interval=runtime["scan"]["poll_interval"],
            poll_attempts=runtime["scan"]["poll_attempts"],
            post_timeout=runtime["scan"]["post_timeout"],
            retries=runtime["http"]["retries"],
            transport=self.transport,
        )

    def resolve_repo(self, tech: str, working_dir: Path) -> str:
        """--repo wins; otherwise the project's resolver config, if any."""
        if self.repo:
            return self.repo
        config = load_resolver_config(tech, working_dir)
        return config.repo if config else ""

    def scan_dir(self, working_dir: Path) -> list[ScanResponse]:
        responses = []
        for tech in detect_technologies(working_dir):
            params = TreeParams(
                server=self.server,
                deps_repo=self.resolve_repo(tech, working_dir),
                working_dir=working_dir,
                use_wrapper=self.use_wrapper,
            )
            trees, _ = build_dependency_tree(tech, params)
            if not trees:
                logger.info(f"No {tech} dependencies found in {working_dir}")
                continue
            graph = flatten_graph(trees)
            response = self.scanner.scan(
                graph,
                technology=tech,
                project_key=self.project_key,
                watches=self.watches,
                include_licenses=self.include_licenses,
            )
            responses.append(filter_results(response, self.min_severity, self.fixable_only))
        return responses

    def run(self) -> list[ScanResponse]:
        self.responses = []
        for working_dir in self.working_dirs:
            working_dir = Path(working_dir).resolve()
            logger.info(f"Running audit on project '{working_dir}'")
            self.responses.extend(self.scan_dir(working_dir))

        if self.responses:
            print_scan_results(self.output_format, self.responses, self.include_licenses)
            self.record()
        return self.responses

    @property
    def fails_build(self) -> bool:
        return any(r.fails_build for r in self.responses)

    def record(self) -> None:
        summary = CommandSummary.new(AUDIT_COMMAND, ScanSummaryRenderer())
        if summary is None:
            return
        summary.record(audit_record(self.responses))
        summary.record_with_index(to_sarif(self.responses), SummaryIndex.SARIF_REPORTS)
