"""Curation status records and their JSON form."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any

BLOCKED = "blocked"
ALLOWED = "allowed"
UNKNOWN = "unknown"

BLOCKING_REASON_POLICY = "Policy violations"
BLOCKING_REASON_NOT_FOUND = "Package pending update"

DIRECT = "direct"
INDIRECT = "indirect"

BLOCK_MESSAGE_KEY = "packages curation"
NOT_BEING_FOUND_KEY = "not being found"


@dataclass
class Policy:
    policy: str
    condition: str
    explanation: str = ""
    recommendation: str = ""

    def to_dict(self) -> dict[str, str]:
        return {
            "policy": self.policy,
            "condition": self.condition,
            "explanation": self.explanation,
            "recommendation": self.recommendation,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Policy:
        return cls(
            policy=data.get("policy", ""),
            condition=data.get("condition", ""),
            explanation=data.get("explanation", ""),
            recommendation=data.get("recommendation", ""),
        )


@dataclass
class PackageStatus:
    """Outcome of probing one package, optionally tied to a direct dependency."""

    action: str
    package_name: str
    package_version: str
    blocking_reason: str = ""
    blocked_package_url: str = ""
    parent_name: str = ""
    parent_version: str = ""
    dep_relation: str = ""
    pkg_type: str = ""
    policies: list[Policy] = field(default_factory=list)

    def __post_init__(self):
        if self.action == BLOCKED and not self.blocking_reason:
            raise ValueError(f"blocked status for {self.package_name}:{self.package_version} needs a blocking reason")
        if self.action == ALLOWED and self.policies:
            raise ValueError(f"allowed status for {self.package_name}:{self.package_version} cannot carry policies")

    def clone(self) -> PackageStatus:
        return copy.deepcopy(self)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "action": self.action,
            "direct_dependency_package_name": self.parent_name,
            "direct_dependency_package_version": self.parent_version,
        }
        if self.blocked_package_url:
            data["blocked_package_url"] = self.blocked_package_url
        data.update({
            "blocked_package_name": self.package_name,
            "blocked_package_version": self.package_version,
            "blocking_reason": self.blocking_reason,
            "dependency_relation": self.dep_relation,
            "type": self.pkg_type,
        })
        if self.policies:
            data["policies"] = [p.to_dict() for p in self.policies]
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PackageStatus:
        return cls(
            action=data.get("action", UNKNOWN),
            parent_name=data.get("direct_dependency_package_name", ""),
            parent_version=data.get("direct_dependency_package_version", ""),
            blocked_package_url=data.get("blocked_package_url", ""),
            package_name=data.get("blocked_package_name", ""),
            package_version=data.get("blocked_package_version", ""),
            blocking_reason=data.get("blocking_reason", ""),
            dep_relation=data.get("dependency_relation", ""),
            pkg_type=data.get("type", ""),
            policies=[Policy.from_dict(p) for p in data.get("policies") or []],
        )
