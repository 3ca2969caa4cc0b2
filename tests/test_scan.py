"""Tests for the graph scan client, result filtering and output formats."""

import json

import httpx
import pytest

from artiscan.errors import HttpStatusError, ParseError, ScanTimeoutError
from artiscan.graph import GraphNode, flatten_graph
from artiscan.scan import (
    AuditCommand,
    GraphScanner,
    ScanResponse,
    filter_results,
    severity_level,
    to_sarif,
    to_simple_json,
)
from artiscan.summary.scans import AUDIT_COMMAND
from artiscan.summary.store import summary_base_dir

SCAN_URL = "https://host/xray/api/v1/scan/graph"

RESULT = {
    "scan_id": "s1",
    "violations": [
        {
            "issue_id": "XRAY-1",
            "summary": "Prototype pollution",
            "severity": "High",
            "type": "security",
            "components": {"npm://lodash:4.17.20": {"fixed_versions": ["[4.17.21]"]}},
            "cves": [{"cve": "CVE-2021-23337", "cvss_v3_score": "7.2"}],
            "fail_build": True,
            "watch_name": "prod-watch",
        }
    ],
    "vulnerabilities": [
        {
            "issue_id": "XRAY-2",
            "summary": "ReDoS",
            "severity": "Medium",
            "components": {"npm://minimist:1.2.0": {}},
        },
        {
            "issue_id": "XRAY-3",
            "summary": "Path traversal",
            "severity": "Low",
            "components": {"gav://org.acme:lib:1.0": {"fixed_versions": ["1.1"]}},
        },
    ],
    "licenses": [
        {"license_key": "MIT", "license_name": "MIT License", "components": {"npm://lodash:4.17.20": {}}}
    ],
}


def sample_graph():
    root = GraphNode(id="npm://app:1.0.0")
    root.nodes = [GraphNode(id="npm://lodash:4.17.20", parent=root), GraphNode(id="npm://minimist:1.2.0", parent=root)]
    return flatten_graph([root])


class ScanService:
    """In-memory scan service: answers ``pending`` times with 202 before the results."""

    def __init__(self, result=None, pending=1, post_status=201):
        self.result = RESULT if result is None else result
        self.pending = pending
        self.post_status = post_status
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        if request.method == "POST":
            return httpx.Response(self.post_status, json={"scan_id": "s1"})
        if self.pending:
            self.pending -= 1
            return httpx.Response(202, json={"status": "in progress"})
        return httpx.Response(200, json=self.result)

    def transport(self):
        return httpx.MockTransport(self)


def scanner(server, service, **kwargs):
    return GraphScanner(server, poll_interval=0, retries=0, transport=service.transport(), **kwargs)


class TestGraphScanner:
    def test_submit_and_poll(self, server):
        service = ScanService(pending=2)
        response = scanner(server, service).scan(
            sample_graph(), technology="npm", project_key="acme", watches=("w1", "w2")
        )

        post = service.requests[0]
        assert str(post.url).startswith(SCAN_URL + "?")
        assert post.url.params["project"] == "acme"
        assert post.url.params.get_list("watch") == ["w1", "w2"]
        body = json.loads(post.content)
        assert body["component_id"] == "root"
        assert [n["component_id"] for n in body["nodes"]] == [
            "npm://app:1.0.0", "npm://lodash:4.17.20", "npm://minimist:1.2.0",
        ]

        polls = service.requests[1:]
        assert len(polls) == 3
        assert polls[0].url.path == "/xray/api/v1/scan/graph/s1"
        assert polls[0].url.params["include_licenses"] == "true"

        assert response.scan_id == "s1"
        assert response.technology == "npm"
        assert [v.issue_id for v in response.vulnerabilities] == ["XRAY-2", "XRAY-3"]
        assert response.vulnerabilities[0].technology == "npm"
        assert response.fails_build

    def test_licenses_not_requested(self, server):
        service = ScanService(pending=0)
        scanner(server, service).scan(sample_graph(), include_licenses=False)
        assert "include_licenses" not in service.requests[1].url.params

    def test_rejected_graph(self, server):
        with pytest.raises(HttpStatusError) as exc:
            scanner(server, ScanService(post_status=400)).scan(sample_graph())
        assert exc.value.status_code == 400

    def test_missing_scan_id(self, server):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json={}))
        with pytest.raises(ParseError):
            GraphScanner(server, retries=0, transport=transport).scan(sample_graph())

    def test_poll_error(self, server):
        def handler(request):
            if request.method == "POST":
                return httpx.Response(200, json={"scan_id": "s1"})
            return httpx.Response(404, text="not found")

        with pytest.raises(HttpStatusError, match="HTTP 404"):
            GraphScanner(server, retries=0, transport=httpx.MockTransport(handler)).scan(sample_graph())

    def test_timeout(self, server):
        service = ScanService(pending=10)
        with pytest.raises(ScanTimeoutError):
            scanner(server, service, poll_attempts=3).scan(sample_graph())
        assert len(service.requests) == 4


class TestFiltering:
    def test_severity_levels(self):
        assert severity_level("critical") == 4
        assert severity_level("Low") == 1
        assert severity_level("") == 0

    def test_min_severity(self):
        response = filter_results(ScanResponse.from_dict(RESULT), min_severity="Medium")
        assert [v.issue_id for v in response.vulnerabilities] == ["XRAY-2"]
        assert [v.issue_id for v in response.violations] == ["XRAY-1"]

    def test_fixable_only(self):
        response = filter_results(ScanResponse.from_dict(RESULT), fixable_only=True)
        assert [v.issue_id for v in response.vulnerabilities] == ["XRAY-3"]

    def test_no_filters_is_identity(self):
        response = ScanResponse.from_dict(RESULT)
        assert filter_results(response) is response
        assert len(response.vulnerabilities) == 2

    def test_fails_build_only_from_violations(self):
        data = dict(RESULT, violations=[])
        assert not ScanResponse.from_dict(data).fails_build


class TestFormats:
    def test_simple_json(self):
        result = to_simple_json([ScanResponse.from_dict(RESULT, "npm")])
        assert list(result) == [
            "vulnerabilities",
            "securityViolations",
            "licensesViolations",
            "licenses",
            "operationalRiskViolations",
            "errors",
        ]
        assert [r["issueId"] for r in result["vulnerabilities"]] == ["XRAY-2", "XRAY-3"]
        violation = result["securityViolations"][0]
        assert violation["impactedPackageName"] == "lodash"
        assert violation["impactedPackageVersion"] == "4.17.20"
        assert violation["fixedVersions"] == ["[4.17.21]"]
        assert violation["cves"] == [{"id": "CVE-2021-23337", "cvssV2": "", "cvssV3": "7.2"}]
        assert "severityNumValue" not in violation
        assert result["vulnerabilities"][1]["impactedPackageName"] == "org.acme:lib"
        assert result["licenses"] == [{
            "licenseKey": "MIT",
            "impactedPackageName": "lodash",
            "impactedPackageVersion": "4.17.20",
            "impactedPackageType": "npm",
        }]

    def test_sarif(self):
        sarif = to_sarif([ScanResponse.from_dict(RESULT, "npm")])
        run = sarif["runs"][0]
        assert sarif["version"] == "2.1.0"
        assert run["tool"]["driver"]["name"] == "artiscan"
        by_rule = {r["ruleId"]: r for r in run["results"]}
        assert by_rule["XRAY-1"]["level"] == "error"
        assert by_rule["XRAY-2"]["level"] == "warning"
        assert by_rule["XRAY-3"]["level"] == "note"
        uri = by_rule["XRAY-3"]["locations"][0]["physicalLocation"]["artifactLocation"]["uri"]
        assert uri == "pom.xml"
        assert "CVE-2021-23337" in by_rule["XRAY-1"]["message"]["text"]
        assert {r["id"] for r in run["tool"]["driver"]["rules"]} == {"XRAY-1", "XRAY-2", "XRAY-3"}


class TestAuditCommand:
    @pytest.fixture
    def npm_project(self, project_dir, fake_run, monkeypatch):
        monkeypatch.setenv("ARTISCAN_SCAN_POLL_INTERVAL", "0")
        (project_dir / "package.json").write_text(json.dumps({"name": "app", "version": "1.0.0"}))
        (project_dir / "node_modules").mkdir()
        fake_run.outputs["npm ls"] = json.dumps({
            "dependencies": {"lodash": {"version": "4.17.20"}, "minimist": {"version": "1.2.0"}}
        })
        return project_dir

    def test_scans_and_records(self, server, npm_project, summary_dir, capsys):
        service = ScanService()
        command = AuditCommand(
            server=server, working_dirs=[npm_project], output_format="json", transport=service.transport()
        )
        responses = command.run()

        assert len(responses) == 1
        assert responses[0].technology == "npm"
        assert command.fails_build
        printed = json.loads(capsys.readouterr().out)
        assert printed[0]["scan_id"] == "s1"

        store = summary_base_dir(summary_dir) / AUDIT_COMMAND
        data_files = [p for p in store.iterdir() if p.is_file()]
        assert len(data_files) == 1
        assert data_files[0].name.endswith("-data")
        assert json.loads(data_files[0].read_text())["scans"][0]["technology"] == "npm"
        sarif_files = list((store / "sarif-reports").iterdir())
        assert len(sarif_files) == 1
        assert sarif_files[0].suffix == ".sarif"

    def test_min_severity_applies(self, server, npm_project):
        command = AuditCommand(
            server=server,
            working_dirs=[npm_project],
            output_format="simple-json",
            min_severity="Critical",
            transport=ScanService().transport(),
        )
        responses = command.run()
        assert responses[0].vulnerabilities == []
        assert not command.fails_build

    def test_nothing_detected(self, server, project_dir, summary_dir):
        command = AuditCommand(server=server, working_dirs=[project_dir], transport=ScanService().transport())
        assert command.run() == []
        assert not (summary_base_dir(summary_dir) / AUDIT_COMMAND).exists()
