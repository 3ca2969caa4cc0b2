"""Pytest configuration and fixtures."""

import subprocess
from pathlib import Path

import pytest

from artiscan.config import ServerDetails


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """Keep locks, logs and plugin caches out of the real home directory."""
    home = tmp_path / "artiscan-home"
    monkeypatch.setenv("ARTISCAN_HOME_DIR", str(home))
    monkeypatch.delenv("ARTISCAN_SUMMARY_OUTPUT_DIR", raising=False)
    for name in ("ARTISCAN_URL", "ARTISCAN_ARTIFACTORY_URL", "ARTISCAN_XRAY_URL", "ARTISCAN_USER",
                 "ARTISCAN_PASSWORD", "ARTISCAN_ACCESS_TOKEN", "ARTISCAN_BUILD_NAME", "ARTISCAN_BUILD_NUMBER",
                 "ARTISCAN_PROJECT"):
        monkeypatch.delenv(name, raising=False)
    return home


@pytest.fixture
def summary_dir(tmp_path, monkeypatch):
    """Enable summary recording into a temporary directory."""
    output = tmp_path / "summaries"
    output.mkdir()
    monkeypatch.setenv("ARTISCAN_SUMMARY_OUTPUT_DIR", str(output))
    return output


@pytest.fixture
def server():
    return ServerDetails(url="https://host/", user="admin", password="secret")


@pytest.fixture
def project_dir(tmp_path):
    """Empty project directory; tests drop manifest files into it."""
    path = tmp_path / "project"
    path.mkdir()
    return path


class FakeRun:
    """Stands in for subprocess.run, answering by the first words of the command."""

    def __init__(self, outputs: dict[str, str] | None = None, returncode: int = 0):
        self.outputs = outputs or {}
        self.returncode = returncode
        self.calls: list[list[str]] = []

    def __call__(self, args, **kwargs):
        args = [str(a) for a in args]
        self.calls.append(args)
        command = " ".join(Path(args[0]).name.split() + args[1:])
        stdout = ""
        for prefix, output in self.outputs.items():
            if command.startswith(prefix):
                stdout = output
                break
        return subprocess.CompletedProcess(args, self.returncode, stdout=stdout, stderr="")


@pytest.fixture
def fake_run(monkeypatch):
    """Install a FakeRun in place of subprocess.run; fill ``.outputs`` per test."""
    runner = FakeRun()
    monkeypatch.setattr(subprocess, "run", runner)
    return runner
