"""Tests for Markdown rendering of upload and audit summaries."""

import json

import httpx

from artiscan.summary.filetree import FileTree
from artiscan.summary.markdown import (
    MarkdownConfig,
    markdown_table,
    probe_markdown_config,
    wrap_collapsible,
)
from artiscan.summary.scans import ScanSummaryRenderer, audit_record, count_severities
from artiscan.summary.store import CommandSummary
from artiscan.summary.upload import (
    UPLOAD_COMMAND,
    UploadResult,
    UploadSummaryRenderer,
    merge_upload_results,
    upload_record,
)


class TestFileTree:
    """Uploaded paths rendered like ``tree``."""

    def test_single_repo(self):
        tree = FileTree()
        tree.add_file("libs-release/org/app/app-1.0.jar")
        tree.add_file("libs-release/org/app/app-1.0.pom")
        assert str(tree) == (
            "📦 libs-release\n"
            "└── 📁 org\n"
            "    └── 📁 app\n"
            "        ├── 📄 app-1.0.jar\n"
            "        └── 📄 app-1.0.pom\n\n"
        )

    def test_duplicate_paths_count_once(self):
        tree = FileTree(max_files=2)
        tree.add_file("repo/a.txt")
        tree.add_file("repo/a.txt")
        tree.add_file("repo/b.txt")
        assert tree.size == 2
        assert not tree.exceeds_max

    def test_exceeding_max_renders_empty(self):
        tree = FileTree(max_files=1)
        tree.add_file("repo/a.txt")
        tree.add_file("repo/b.txt")
        assert tree.exceeds_max
        assert str(tree) == ""

    def test_links_when_url_given(self):
        tree = FileTree()
        tree.add_file("repo/a.txt", "https://host/ui/a")
        assert "<a href='https://host/ui/a' target=\"_blank\">a.txt</a>" in str(tree)


class TestMarkdownHelpers:
    def test_table_escapes_pipes(self):
        table = markdown_table(["a", "b"], [["x|y", "line\nbreak"]])
        assert table.splitlines() == ["| a | b |", "| --- | --- |", "| x\\|y | line<br>break |"]

    def test_collapsible(self):
        assert wrap_collapsible("T", "body") == "<details open><summary> <h4> T </h4></summary>body</details>"

    def test_config_adds_trailing_slash(self):
        assert MarkdownConfig.create("https://host", True).platform_url == "https://host/"

    def test_probe_enterprise_is_extended(self):
        def footer(request):
            assert request.url.path == "/ui/api/v1/system/auth/screen/footer"
            return httpx.Response(200, json={"platformId": "Enterprise-Plus"})

        config = probe_markdown_config("https://host/", transport=httpx.MockTransport(footer))
        assert config.extended
        assert config.platform_url == "https://host/"

    def test_probe_error_status_is_not_extended(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(404))
        assert not probe_markdown_config("https://host/", transport=transport).extended

    def test_footer_non_json_body_is_not_extended(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, content=b"<html>maintenance</html>"))
        assert probe_markdown_config("https://host/", transport=transport) == MarkdownConfig.create("https://host/", False)

    def test_footer_non_object_body_is_not_extended(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json=["enterprise"]))
        assert not probe_markdown_config("https://host/", transport=transport).extended

    def test_probe_without_url(self):
        assert probe_markdown_config("") == MarkdownConfig()


class TestUploadSummary:
    """Upload records merge into one tree."""

    def test_merge_across_records(self, summary_dir):
        store = CommandSummary(UPLOAD_COMMAND, UploadSummaryRenderer(MarkdownConfig()), summary_dir)
        store.record(upload_record([UploadResult("a.jar", "repo/a.jar")]))
        store.record(upload_record([UploadResult("b.jar", "repo/b.jar")]))
        merged = merge_upload_results(store.data_files())
        assert sorted(r.target_path for r in merged) == ["repo/a.jar", "repo/b.jar"]

        markdown = store.generate_markdown().read_text(encoding="utf-8")
        assert markdown.startswith("<details open><summary> <h4> 📁 Files uploaded")
        assert "📄 a.jar" in markdown
        assert "📄 b.jar" in markdown

    def test_extended_links_to_ui(self, tmp_path):
        config = MarkdownConfig.create("https://host/", extended=True)
        renderer = UploadSummaryRenderer(config, project_key="proj")
        record = tmp_path / "r-data"
        record.write_text(json.dumps(upload_record([UploadResult("a", "repo/dir/a")])), encoding="utf-8")
        markdown = renderer([record])
        assert "https://host/ui/repos/tree/General/repo/dir/a/?projectKey=proj" in markdown

    def test_empty_results(self, tmp_path):
        record = tmp_path / "r-data"
        record.write_text('{"results": []}', encoding="utf-8")
        assert UploadSummaryRenderer(MarkdownConfig())([record]).endswith("</summary></details>")


class TestScanSummary:
    def _record(self, tmp_path, name, scans):
        path = tmp_path / name
        path.write_text(json.dumps({"scans": scans}), encoding="utf-8")
        return path

    def test_counts_per_technology(self, tmp_path):
        first = self._record(tmp_path, "1-data", [{
            "technology": "npm",
            "violations": [{"severity": "High", "components": {"npm://a:1": {}, "npm://b:1": {}}}],
            "vulnerabilities": [{"severity": "Low", "components": {"npm://a:1": {}}}],
        }])
        second = self._record(tmp_path, "2-data", [{
            "technology": "go",
            "vulnerabilities": [{"severity": "Critical", "components": {"go://m:v1": {}}}],
        }])
        counts = count_severities([first, second])
        assert counts["npm"]["High"] == 2
        assert counts["npm"]["Low"] == 1
        assert counts["go"]["Critical"] == 1

        markdown = ScanSummaryRenderer()([first, second])
        assert "| go | 1 | 0 | 0 | 0 | 0 | 1 |" in markdown
        assert "| npm | 0 | 2 | 0 | 1 | 0 | 3 |" in markdown

    def test_no_scans(self, tmp_path):
        assert "No scans were recorded" in ScanSummaryRenderer()([self._record(tmp_path, "1-data", [])])

    def test_record_carries_build_provenance(self, monkeypatch):
        monkeypatch.setenv("ARTISCAN_BUILD_NAME", "nightly")
        monkeypatch.setenv("ARTISCAN_BUILD_NUMBER", "7")
        assert audit_record([]) == {"scans": [], "build_name": "nightly", "build_number": "7"}

    def test_record_without_provenance(self):
        assert audit_record([]) == {"scans": []}
