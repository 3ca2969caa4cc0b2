"""Rendering of curation results: terminal table, JSON and Markdown."""

import json
from pathlib import Path

from rich.table import Table

from artiscan.config import get_build_provenance
from artiscan.pipeline.ui import console
from artiscan.summary.markdown import MarkdownConfig, markdown_table, wrap_collapsible
from artiscan.summary.store import load_json

from .models import PackageStatus

TABLE_COLUMNS = [
    "Action",
    "Direct\nDependency\nPackage\nName",
    "Direct\nDependency\nPackage\nVersion",
    "Blocked\nPackage\nURL",
    "Blocked\nPackage\nName",
    "Blocked\nPackage\nVersion",
    "Blocking Reason",
    "Package\nType",
    "Violated\nPolicy\nName",
    "Violated Condition\nName",
    "Explanation",
    "Recommendation",
]

CURATION_SUMMARY_TITLE = "🚫 Curation Audit"


def sort_statuses(statuses: list[PackageStatus]) -> list[PackageStatus]:
    return sorted(statuses, key=lambda s: s.parent_name)


def status_rows(statuses: list[PackageStatus]) -> list[list[str]]:
    """One row per violated policy; a record without policies still gets one row."""
    rows = []
    for status in statuses:
        base = [
            status.action,
            status.parent_name,
            status.parent_version,
            status.blocked_package_url,
            status.package_name,
            status.package_version,
            status.blocking_reason,
            status.pkg_type,
        ]
        if not status.policies:
            rows.append(base + ["", "", "", ""])
            continue
        for index, policy in enumerate(status.policies):
            # Later policy rows of the same record leave the shared columns blank
            prefix = base if index == 0 else [""] * len(base)
            rows.append(prefix + [policy.policy, policy.condition, policy.explanation, policy.recommendation])
    return rows


def build_table(project: str, statuses: list[PackageStatus]) -> Table:
    table = Table(title=f"Curation - {project}", show_lines=True)
    for column in TABLE_COLUMNS:
        style = "blocked" if column == "Action" else None
        table.add_column(column, style=style, overflow="fold")
    for row in status_rows(statuses):
        table.add_row(*row)
    return table


def statuses_to_json(statuses: list[PackageStatus]) -> str:
    return json.dumps([s.to_dict() for s in statuses], indent=2, ensure_ascii=False)


def print_results(output_format: str, project: str, statuses: list[PackageStatus]) -> None:
    """Print one project's results in ``table`` or ``json`` form."""
    console.print(f"Found {len(statuses)} blocked packages for project {project}")
    if output_format == "json":
        if statuses:
            # Plain print so the JSON is never re-wrapped by the terminal width
            print(statuses_to_json(statuses))
        return
    if not statuses:
        console.print("[success]Found 0 blocked packages[/success]")
        return
    console.print(build_table(project, statuses))


def curation_record(results: dict[str, list[PackageStatus]]) -> dict:
    """Summary store payload for one curation run.

    Each status carries the build name, number and project from the
    environment, when set.
    """
    provenance = get_build_provenance()
    return {project: [{**s.to_dict(), **provenance} for s in statuses] for project, statuses in results.items()}


class CurationSummaryRenderer:
    """Markdown for the ``curation-audit`` command store."""

    def __init__(self, config: MarkdownConfig):
        self.config = config

    def __call__(self, files: list[Path]) -> str:
        merged: dict[str, list[PackageStatus]] = {}
        for path in files:
            for project, records in load_json(path).items():
                merged.setdefault(project, []).extend(PackageStatus.from_dict(r) for r in records)

        sections = []
        for project in sorted(merged):
            statuses = sort_statuses(merged[project])
            if not statuses:
                sections.append(f"\n\n**{project}**: no blocked packages\n")
                continue
            rows = []
            for row in status_rows(statuses):
                url = row[3]
                if url and self.config.extended:
                    row[3] = f"<a href='{url}' target=\"_blank\">link</a>"
                rows.append(row[:3] + row[4:10] if not self.config.extended else row[:10])
            headers = [h.replace("\n", " ") for h in TABLE_COLUMNS[:10]]
            if not self.config.extended:
                headers = headers[:3] + headers[4:10]
            sections.append(f"\n\n**{project}**: {len(statuses)} blocked packages\n\n" + markdown_table(headers, rows))
        return wrap_collapsible(CURATION_SUMMARY_TITLE, "".join(sections))
