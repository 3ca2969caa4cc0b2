"""Output formats for graph scan results: table, json, simple-json and sarif."""

import json
from typing import Any

from rich.table import Table

from artiscan import __version__
from artiscan.pipeline.ui import console, severity_markup

from .models import Issue, ScanResponse, parse_component_id

OUTPUT_FORMATS = ("table", "json", "simple-json", "sarif")

SARIF_SCHEMA = "https://json.schemastore.org/sarif-2.1.0.json"
SARIF_LEVELS = {4: "error", 3: "error", 2: "warning", 1: "note", 0: "none"}

# Manifest reported as the SARIF location for each id scheme
DESCRIPTORS = {
    "gav": "pom.xml",
    "npm": "package.json",
    "go": "go.mod",
    "pypi": "requirements.txt",
    "nuget": "packages.config",
}


def issue_rows(issues: list[Issue]) -> list[dict[str, Any]]:
    """One row per (issue, component), most severe first."""
    rows = []
    for issue in issues:
        for component in issue.components:
            scheme, name, version = component.parts
            rows.append({
                "summary": issue.summary,
                "severity": issue.severity,
                "severityNumValue": issue.level,
                "impactedPackageName": name,
                "impactedPackageVersion": version,
                "impactedPackageType": scheme,
                "fixedVersions": component.fixed_versions,
                "cves": [{"id": c["id"], "cvssV2": c["cvss_v2_score"], "cvssV3": c["cvss_v3_score"]} for c in issue.cves],
                "issueId": issue.issue_id,
                "references": issue.references,
                "licenseKey": issue.license_key,
                "technology": issue.technology,
            })
    rows.sort(key=lambda r: (-r["severityNumValue"], r["impactedPackageName"]))
    return rows


def license_rows(responses: list[ScanResponse]) -> list[dict[str, Any]]:
    rows = []
    for response in responses:
        for lic in response.licenses:
            for component_id in lic.components:
                scheme, name, version = parse_component_id(component_id)
                rows.append({
                    "licenseKey": lic.key,
                    "impactedPackageName": name,
                    "impactedPackageVersion": version,
                    "impactedPackageType": scheme,
                })
    return rows


def _split(responses: list[ScanResponse]) -> dict[str, list[Issue]]:
    vulnerabilities, security, licenses, operational = [], [], [], []
    for response in responses:
        vulnerabilities.extend(response.vulnerabilities)
        for violation in response.violations:
            if violation.issue_type == "license":
                licenses.append(violation)
            elif violation.issue_type == "operational_risk":
                operational.append(violation)
            else:
                security.append(violation)
    return {
        "vulnerabilities": vulnerabilities,
        "securityViolations": security,
        "licensesViolations": licenses,
        "operationalRiskViolations": operational,
    }


def _public(row: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in row.items() if k not in ("severityNumValue", "technology")}


def to_simple_json(responses: list[ScanResponse], errors: list[dict[str, str]] | None = None) -> dict[str, Any]:
    """Flat, sorted rows per issue kind; the keys are a stable output contract."""
    split = _split(responses)
    result = {key: [_public(r) for r in issue_rows(issues)] for key, issues in split.items()}
    result["licenses"] = license_rows(responses)
    result["errors"] = errors or []
    return {
        "vulnerabilities": result["vulnerabilities"],
        "securityViolations": result["securityViolations"],
        "licensesViolations": result["licensesViolations"],
        "licenses": result["licenses"],
        "operationalRiskViolations": result["operationalRiskViolations"],
        "errors": result["errors"],
    }


def to_sarif(responses: list[ScanResponse]) -> dict[str, Any]:
    rules: dict[str, dict[str, Any]] = {}
    results = []
    for key, issues in _split(responses).items():
        for row in issue_rows(issues):
            rule_id = row["issueId"] or row["licenseKey"] or key
            cve_ids = [c["id"] for c in row["cves"] if c["id"]]
            title = ", ".join(cve_ids) or rule_id
            rules.setdefault(rule_id, {
                "id": rule_id,
                "shortDescription": {"text": f"[{title}] {row['impactedPackageName']} {row['impactedPackageVersion']}"},
                "help": {"text": row["summary"] or title},
                "properties": {"security-severity": str(row["severityNumValue"] * 2.5)},
            })
            fix = ", ".join(row["fixedVersions"]) or "no fixed version"
            results.append({
                "ruleId": rule_id,
                "level": SARIF_LEVELS.get(row["severityNumValue"], "none"),
                "message": {
                    "text": (
                        f"[{title}] {row['impactedPackageName']} {row['impactedPackageVersion']} "
                        f"({row['severity']}). Fixed versions: {fix}"
                    )
                },
                "locations": [{
                    "physicalLocation": {
                        "artifactLocation": {"uri": DESCRIPTORS.get(row["impactedPackageType"], "")}
                    }
                }],
            })
    return {
        "$schema": SARIF_SCHEMA,
        "version": "2.1.0",
        "runs": [{
            "tool": {"driver": {"name": "artiscan", "version": __version__, "rules": list(rules.values())}},
            "results": results,
        }],
    }


def build_table(title: str, rows: list[dict[str, Any]]) -> Table:
    table = Table(title=title, show_lines=False)
    table.add_column("Severity")
    table.add_column("Impacted Package")
    table.add_column("Version")
    table.add_column("Type")
    table.add_column("Fixed Versions")
    table.add_column("CVEs")
    table.add_column("Issue ID")
    for row in rows:
        table.add_row(
            severity_markup(row["severity"]),
            row["impactedPackageName"],
            row["impactedPackageVersion"],
            row["impactedPackageType"],
            ", ".join(row["fixedVersions"]),
            ", ".join(c["id"] for c in row["cves"] if c["id"]),
            row["issueId"],
        )
    return table


def print_scan_results(output_format: str, responses: list[ScanResponse], include_licenses: bool = False) -> None:
    if output_format == "json":
        print(json.dumps([r.to_dict() for r in responses], indent=2, ensure_ascii=False))
        return
    if output_format == "simple-json":
        print(json.dumps(to_simple_json(responses), indent=2, ensure_ascii=False))
        return
    if output_format == "sarif":
        print(json.dumps(to_sarif(responses), indent=2, ensure_ascii=False))
        return

    split = _split(responses)
    titles = {
        "securityViolations": "Security Violations",
        "licensesViolations": "License Compliance Violations",
        "operationalRiskViolations": "Operational Risk Violations",
        "vulnerabilities": "Vulnerabilities",
    }
    printed = False
    for key, title in titles.items():
        rows = issue_rows(split[key])
        if rows:
            console.print(build_table(title, rows))
            printed = True
    if include_licenses:
        rows = license_rows(responses)
        if rows:
            table = Table(title="Licenses")
            for column in ("License", "Impacted Package", "Version", "Type"):
                table.add_column(column)
            for row in rows:
                table.add_row(row["licenseKey"], row["impactedPackageName"], row["impactedPackageVersion"], row["impactedPackageType"])
            console.print(table)
    if not printed:
        console.print("[success]No vulnerable components were found[/success]")
