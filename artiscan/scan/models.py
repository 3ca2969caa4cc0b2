"""Graph scan response model.

The service answers with three lists: ``violations`` (policy matches from
watches), ``vulnerabilities`` (raw security issues) and ``licenses``. Each
issue names the components it affects as ``{component_id: {fixed_versions}}``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

SEVERITY_LEVELS = {
    "unknown": 0,
    "low": 1,
    "medium": 2,
    "high": 3,
    "critical": 4,
}

SEVERITY_NAMES = ("Unknown", "Low", "Medium", "High", "Critical")


def severity_level(severity: str) -> int:
    return SEVERITY_LEVELS.get((severity or "").lower(), 0)


def parse_component_id(component_id: str) -> tuple[str, str, str]:
    """``npm://name:1.0`` -> (``npm``, ``name``, ``1.0``); Maven keeps ``group:artifact`` as the name."""
    scheme, _, rest = component_id.partition("://")
    if not rest:
        return "", component_id, ""
    name, _, version = rest.rpartition(":")
    if not name:
        return scheme, rest, ""
    return scheme, name, version


@dataclass
class Component:
    component_id: str
    fixed_versions: list[str] = field(default_factory=list)

    @property
    def parts(self) -> tuple[str, str, str]:
        return parse_component_id(self.component_id)


@dataclass
class Issue:
    """A vulnerability or a violation."""

    issue_id: str
    summary: str = ""
    severity: str = "Unknown"
    issue_type: str = "security"
    components: list[Component] = field(default_factory=list)
    cves: list[dict[str, str]] = field(default_factory=list)
    references: list[str] = field(default_factory=list)
    fail_build: bool = False
    license_key: str = ""
    watch_name: str = ""
    technology: str = ""

    @property
    def level(self) -> int:
        return severity_level(self.severity)

    @property
    def fixable(self) -> bool:
        return any(c.fixed_versions for c in self.components)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Issue:
        components = [
            Component(component_id=cid, fixed_versions=list((info or {}).get("fixed_versions") or []))
            for cid, info in (data.get("components") or {}).items()
        ]
        return cls(
            issue_id=data.get("issue_id", ""),
            summary=data.get("summary", ""),
            severity=data.get("severity", "Unknown"),
            issue_type=data.get("type", "security"),
            components=components,
            cves=[
                {"id": c.get("cve", ""), "cvss_v2_score": c.get("cvss_v2_score", ""), "cvss_v3_score": c.get("cvss_v3_score", "")}
                for c in data.get("cves") or []
            ],
            references=list(data.get("references") or []),
            fail_build=bool(data.get("fail_build", False)),
            license_key=data.get("license_key", ""),
            watch_name=data.get("watch_name", ""),
            technology=data.get("technology", ""),
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "issue_id": self.issue_id,
            "summary": self.summary,
            "severity": self.severity,
            "type": self.issue_type,
            "components": {c.component_id: {"fixed_versions": c.fixed_versions} for c in self.components},
        }
        if self.cves:
            data["cves"] = [
                {"cve": c["id"], "cvss_v2_score": c["cvss_v2_score"], "cvss_v3_score": c["cvss_v3_score"]}
                for c in self.cves
            ]
        if self.references:
            data["references"] = self.references
        if self.fail_build:
            data["fail_build"] = True
        if self.license_key:
            data["license_key"] = self.license_key
        if self.watch_name:
            data["watch_name"] = self.watch_name
        if self.technology:
            data["technology"] = self.technology
        return data


@dataclass
class License:
    key: str
    name: str = ""
    components: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> License:
        return cls(
            key=data.get("license_key", ""),
            name=data.get("license_name", ""),
            components=list(data.get("components") or {}),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "license_key": self.key,
            "license_name": self.name,
            "components": {cid: {} for cid in self.components},
        }


@dataclass
class ScanResponse:
    scan_id: str = ""
    technology: str = ""
    violations: list[Issue] = field(default_factory=list)
    vulnerabilities: list[Issue] = field(default_factory=list)
    licenses: list[License] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any], technology: str = "") -> ScanResponse:
        response = cls(
            scan_id=data.get("scan_id", ""),
            technology=technology or data.get("technology", ""),
            violations=[Issue.from_dict(v) for v in data.get("violations") or []],
            vulnerabilities=[Issue.from_dict(v) for v in data.get("vulnerabilities") or []],
            licenses=[License.from_dict(lic) for lic in data.get("licenses") or []],
        )
        if response.technology:
            for issue in response.violations + response.vulnerabilities:
                issue.technology = response.technology
        return response

    def to_dict(self) -> dict[str, Any]:
        return {
            "scan_id": self.scan_id,
            "technology": self.technology,
            "violations": [v.to_dict() for v in self.violations],
            "vulnerabilities": [v.to_dict() for v in self.vulnerabilities],
            "licenses": [lic.to_dict() for lic in self.licenses],
        }

    @property
    def fails_build(self) -> bool:
        return any(v.fail_build for v in self.violations)
