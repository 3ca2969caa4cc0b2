"""Audit summary: severity counts per technology across every recorded scan."""

from collections import Counter
from pathlib import Path

from artiscan.config import get_build_provenance

from .markdown import markdown_table, wrap_collapsible
from .store import load_json

AUDIT_COMMAND = "audit"
AUDIT_TITLE = "🛡️ Security scans"
SEVERITY_ORDER = ("Critical", "High", "Medium", "Low", "Unknown")


def audit_record(responses) -> dict:
    return {"scans": [r.to_dict() for r in responses], **get_build_provenance()}


def count_severities(files: list[Path]) -> dict[str, Counter]:
    """Per technology, how many (issue, component) pairs each severity has."""
    counts: dict[str, Counter] = {}
    for path in files:
        for scan in load_json(path).get("scans") or []:
            tech = scan.get("technology") or "unknown"
            counter = counts.setdefault(tech, Counter())
            for issue in (scan.get("violations") or []) + (scan.get("vulnerabilities") or []):
                counter[issue.get("severity") or "Unknown"] += max(len(issue.get("components") or {}), 1)
    return counts


class ScanSummaryRenderer:
    """Renderer for the ``audit`` command store."""

    def __call__(self, files: list[Path]) -> str:
        counts = count_severities(files)
        if not counts:
            return wrap_collapsible(AUDIT_TITLE, "\n\nNo scans were recorded\n")
        rows = []
        for tech in sorted(counts):
            counter = counts[tech]
            rows.append([tech] + [str(counter.get(s, 0)) for s in SEVERITY_ORDER] + [str(sum(counter.values()))])
        table = markdown_table(["Technology", *SEVERITY_ORDER, "Total"], rows)
        return wrap_collapsible(AUDIT_TITLE, "\n\n" + table)
