"""End-to-end tests of the ``ascan`` command line through click's CliRunner."""

import json

import pytest
from click.testing import CliRunner

from artiscan import __version__
from artiscan.cli import VerboseGroup, cli
from artiscan.summary.scans import AUDIT_COMMAND
from artiscan.summary.store import summary_base_dir
from artiscan.utils.exit_codes import ExitCodes


@pytest.fixture
def runner():
    return CliRunner()


def test_help_lists_categories(runner):
    result = runner.invoke(cli, ["--help"])
    assert result.exit_code == 0
    for name in ("SECURITY", "DEPENDENCIES", "REPORTING", "curation-audit", "dep-tree", "ENVIRONMENT", "ARTISCAN_URL", "EXIT CODES"):
        assert name in result.output


def test_category_help_uses_first_sentence():
    assert VerboseGroup._category_help(cli.commands["summary"]) != ""
    assert VerboseGroup._category_help(cli.commands["detect"]) == "Show which technologies artiscan detects in..."


def test_version(runner):
    result = runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_detect_json(runner, project_dir):
    (project_dir / "pom.xml").write_text("<project/>")
    (project_dir / "go.mod").write_text("module example.com/app\n")
    result = runner.invoke(cli, ["detect", "--working-dirs", str(project_dir), "--json"])
    assert result.exit_code == 0
    assert json.loads(result.stdout) == {str(project_dir): ["maven", "go"]}


def test_detect_rejects_missing_directory(runner, tmp_path):
    result = runner.invoke(cli, ["detect", "--working-dirs", str(tmp_path / "missing")])
    assert result.exit_code == 2
    assert "is not a directory" in result.output


def test_dep_tree_json(runner, project_dir, fake_run):
    (project_dir / "package.json").write_text(json.dumps({"name": "app", "version": "1.0.0"}))
    (project_dir / "node_modules").mkdir()
    fake_run.outputs["npm ls"] = json.dumps({"dependencies": {"lodash": {"version": "4.17.21"}}})
    result = runner.invoke(cli, ["dep-tree", "--tech", "npm", "--working-dirs", str(project_dir), "--json"])
    assert result.exit_code == 0, result.output
    assert "npm://lodash:4.17.21" in result.stdout


def test_audit_without_project_exits_no_op(runner, project_dir, monkeypatch):
    monkeypatch.setenv("ARTISCAN_URL", "https://host/")
    result = runner.invoke(cli, ["audit", "--working-dirs", str(project_dir)])
    assert result.exit_code == ExitCodes.FAIL_NO_OP
    assert "No supported project" in result.output


def test_audit_without_server(runner, project_dir):
    result = runner.invoke(cli, ["audit", "--working-dirs", str(project_dir)])
    assert result.exit_code == ExitCodes.ERROR
    assert "ConfigMissingError" in result.output


def test_curation_audit_needs_repo(runner, project_dir, fake_run, monkeypatch):
    monkeypatch.setenv("ARTISCAN_URL", "https://host/")
    (project_dir / "package.json").write_text("{}")
    result = runner.invoke(cli, ["curation-audit", "--working-dirs", str(project_dir)])
    assert result.exit_code == ExitCodes.ERROR
    assert "No curated repository for 'npm'" in result.output
    assert fake_run.calls == []


def test_curation_audit_skips_unsupported(runner, project_dir, fake_run, monkeypatch):
    monkeypatch.setenv("ARTISCAN_URL", "https://host/")
    (project_dir / "Web.csproj").write_text("<Project/>")
    result = runner.invoke(cli, ["curation-audit", "--working-dirs", str(project_dir), "--repo", "r"])
    assert result.exit_code == 0, result.output
    assert fake_run.calls == []


class TestSummaryCommands:
    def test_record_requires_output_dir(self, runner, tmp_path):
        data = tmp_path / "data.json"
        data.write_text("{}")
        result = runner.invoke(cli, ["summary", "record", "audit", str(data)])
        assert result.exit_code == ExitCodes.ERROR
        assert "ARTISCAN_SUMMARY_OUTPUT_DIR is not set" in result.output

    def test_record_and_generate(self, runner, tmp_path, summary_dir):
        data = tmp_path / "data.json"
        data.write_text(json.dumps({"scans": [{
            "technology": "npm",
            "vulnerabilities": [{"severity": "High", "components": {"npm://a:1": {}, "npm://b:1": {}}}],
            "violations": [],
        }]}))
        result = runner.invoke(cli, ["summary", "record", AUDIT_COMMAND, str(data)])
        assert result.exit_code == 0, result.output

        result = runner.invoke(cli, ["summary", "generate-markdown"])
        assert result.exit_code == 0, result.output
        markdown = (summary_base_dir(summary_dir) / AUDIT_COMMAND / "markdown.md").read_text()
        assert "Security scans" in markdown
        assert "| npm | 0 | 2 | 0 | 0 | 0 | 2 |" in markdown

    def test_indexed_records_overwrite(self, runner, tmp_path, summary_dir):
        first = tmp_path / "first.json"
        first.write_text('{"n": 1}')
        second = tmp_path / "second.json"
        second.write_text('{"n": 2}')
        for path in (first, second):
            result = runner.invoke(
                cli, ["summary", "record", "build-publish", str(path), "--index", "build-scans", "--arg", "build", "--arg", "3"]
            )
            assert result.exit_code == 0, result.output

        result = runner.invoke(cli, ["summary", "list-indexed"])
        assert result.exit_code == 0
        listed = json.loads(result.stdout)
        assert list(listed["build-scans"]) == ["45649617ff166a3000efa077067a13c043fc0c39"]
        stored = listed["build-scans"]["45649617ff166a3000efa077067a13c043fc0c39"]
        with open(stored) as f:
            assert json.load(f) == {"n": 2}

    def test_unknown_index_rejected(self, runner, tmp_path, summary_dir):
        data = tmp_path / "data.json"
        data.write_text("{}")
        result = runner.invoke(cli, ["summary", "record", "x", str(data), "--index", "nope"])
        assert result.exit_code == 2

    def test_record_upload(self, runner, tmp_path, summary_dir):
        results = tmp_path / "upload.json"
        results.write_text(json.dumps({"results": [
            {"sourcePath": "dist/app.tgz", "targetPath": "generic-local/app/app.tgz", "rtUrl": "https://host/artifactory/"}
        ]}))
        result = runner.invoke(cli, ["summary", "record-upload", str(results)])
        assert result.exit_code == 0, result.output
        result = runner.invoke(cli, ["summary", "generate-markdown", "--command", "upload"])
        assert result.exit_code == 0, result.output
        markdown = (summary_base_dir(summary_dir) / "upload" / "markdown.md").read_text()
        assert "app.tgz" in markdown
