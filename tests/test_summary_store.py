"""Tests for the file-backed command summary store."""

import json
import multiprocessing
import os

import pytest

from artiscan.errors import InvalidIndexError
from artiscan.summary.store import (
    CommandSummary,
    SummaryIndex,
    args_to_sha1,
    determine_filename,
    list_indexed,
    serialize,
)
from artiscan.utils.constants import SUMMARY_BASE_DIR_NAME, SUMMARY_LOCK_DIR_NAME


def concat_renderer(files):
    return "|".join(f.read_text(encoding="utf-8") for f in files)


def _record_in_child(output_dir, payload):
    store = CommandSummary("build-info", concat_renderer, output_dir)
    store.record_with_index({"payload": payload}, "build-scans", ["b", "n"])


class TestFilenames:
    """Deterministic names for indexed records."""

    def test_build_scan_name_is_sha1_of_joined_args(self):
        assert determine_filename("build-scans", ["build", "3"]) == "45649617ff166a3000efa077067a13c043fc0c39"

    def test_sha1_helper(self):
        assert args_to_sha1(["build", "3"]) == "45649617ff166a3000efa077067a13c043fc0c39"

    def test_no_args_gets_random_data_name(self):
        first = determine_filename(None, None)
        second = determine_filename(None, None)
        assert first.endswith("-data")
        assert first != second

    def test_sarif_gets_random_sarif_name(self):
        name = determine_filename(SummaryIndex.SARIF_REPORTS, ["ignored"])
        assert name.endswith(".sarif")

    def test_unknown_index(self):
        with pytest.raises(InvalidIndexError):
            determine_filename("not-an-index", ["a"])


class TestSerialize:
    def test_bytes_pass_through(self):
        assert serialize(b"\x00raw") == b"\x00raw"

    def test_json_is_not_ascii_or_html_escaped(self):
        assert serialize({"name": "<ü>"}).decode("utf-8") == '{"name": "<ü>"}'


class TestCommandSummary:
    """Recording and rendering."""

    def test_new_without_output_dir_returns_none(self):
        assert CommandSummary.new("upload", concat_renderer) is None

    def test_new_uses_env_output_dir(self, summary_dir):
        store = CommandSummary.new("upload", concat_renderer)
        assert store.summary_dir == summary_dir / SUMMARY_BASE_DIR_NAME / "upload"
        assert store.summary_dir.is_dir()

    def test_record_with_index_is_idempotent(self, summary_dir):
        store = CommandSummary("build-info", concat_renderer, summary_dir)
        first = store.record_with_index({"a": 1}, "build-scans", ["build", "3"])
        second = store.record_with_index({"a": 1}, "build-scans", ["build", "3"])
        assert first == second
        files = os.listdir(first.parent)
        assert files == ["45649617ff166a3000efa077067a13c043fc0c39"]
        assert json.loads(first.read_text(encoding="utf-8")) == {"a": 1}

    def test_same_args_overwrite(self, summary_dir):
        store = CommandSummary("build-info", concat_renderer, summary_dir)
        store.record_with_index({"v": 1}, "build-scans", ["b"])
        path = store.record_with_index({"v": 2}, "build-scans", ["b"])
        assert json.loads(path.read_text(encoding="utf-8")) == {"v": 2}

    def test_generate_markdown_renders_data_files_in_order(self, summary_dir):
        store = CommandSummary("upload", concat_renderer, summary_dir)
        first = store.record({"n": 1})
        store.record({"n": 2})
        os.utime(first, ns=(1_000_000_000, 1_000_000_000))
        store.record_with_index({"n": 3}, "build-scans", ["x"])
        path = store.generate_markdown()
        assert path == store.markdown_path
        assert path.read_text(encoding="utf-8") == '{"n": 1}|{"n": 2}'

    def test_generate_markdown_without_data(self, summary_dir):
        store = CommandSummary("upload", concat_renderer, summary_dir)
        assert store.generate_markdown() is None
        assert not store.markdown_path.exists()

    def test_lock_dir_is_empty_after_record(self, summary_dir):
        store = CommandSummary("upload", concat_renderer, summary_dir)
        store.record({"n": 1})
        assert os.listdir(store.summary_dir / SUMMARY_LOCK_DIR_NAME) == []

    def test_failed_write_leaves_no_temp_file(self, summary_dir, monkeypatch):
        store = CommandSummary("upload", concat_renderer, summary_dir)

        def fail(src, dst):
            raise OSError("disk full")

        monkeypatch.setattr(os, "replace", fail)
        with pytest.raises(OSError, match="disk full"):
            store.record({"n": 1})
        assert [p.name for p in store.summary_dir.iterdir() if p.is_file()] == []

    def test_list_indexed_across_commands(self, summary_dir):
        CommandSummary("build-info", concat_renderer, summary_dir).record_with_index({}, "build-scans", ["a"])
        CommandSummary("audit", concat_renderer, summary_dir).record_with_index({}, "sarif-reports")
        indexed = list_indexed(summary_dir)
        assert set(indexed) == {SummaryIndex.BUILD_SCANS, SummaryIndex.SARIF_REPORTS}
        assert list(indexed[SummaryIndex.BUILD_SCANS]) == [args_to_sha1(["a"])]
        assert next(iter(indexed[SummaryIndex.SARIF_REPORTS])).endswith(".sarif")

    def test_list_indexed_without_output_dir(self):
        assert list_indexed() == {}


class TestConcurrentWriters:
    def test_processes_leave_one_file_and_no_tokens(self, summary_dir):
        ctx = multiprocessing.get_context("spawn")
        procs = [ctx.Process(target=_record_in_child, args=(str(summary_dir), i)) for i in range(8)]
        for p in procs:
            p.start()
        for p in procs:
            p.join(timeout=60)
            assert p.exitcode == 0

        store_dir = summary_dir / SUMMARY_BASE_DIR_NAME / "build-info"
        files = os.listdir(store_dir / "build-scans")
        assert files == [args_to_sha1(["b", "n"])]
        content = json.loads((store_dir / "build-scans" / files[0]).read_text(encoding="utf-8"))
        assert content["payload"] in range(8)
        assert os.listdir(store_dir / SUMMARY_LOCK_DIR_NAME) == []
