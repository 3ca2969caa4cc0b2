"""File-backed command summary store.

Layout::

    <ARTISCAN_SUMMARY_OUTPUT_DIR>/artiscan-command-summary/<command>/
        <random>-data            un-indexed records
        <index>/<sha1(args)>     indexed records
        sarif-reports/<random>.sarif
        markdown.md              rendered by generate_markdown()

Several processes (parallel CI steps, repeated invocations) may write into the
same command directory, so every mutation runs under the directory lock in
``<command>/.lock``.
"""

from __future__ import annotations

import hashlib
import json
import os
import uuid
from collections.abc import Callable, Iterable
from dataclasses import asdict, is_dataclass
from enum import Enum
from pathlib import Path
from typing import Any

from artiscan.config import get_summary_output_dir
from artiscan.errors import InvalidIndexError
from artiscan.utils.constants import (
    SUMMARY_BASE_DIR_NAME,
    SUMMARY_DATA_SUFFIX,
    SUMMARY_LOCK_DIR_NAME,
    SUMMARY_MARKDOWN_FILE,
    SUMMARY_SARIF_SUFFIX,
)
from artiscan.utils.lock import lock_dir
from artiscan.utils.logging import logger


class SummaryIndex(str, Enum):
    """Subdirectories an indexed record may live in."""

    BUILD_SCANS = "build-scans"
    DOCKER_SCANS = "docker-scans"
    BINARIES_SCANS = "binaries-scans"
    SARIF_REPORTS = "sarif-reports"

    @classmethod
    def parse(cls, value: "SummaryIndex | str") -> "SummaryIndex":
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError as e:
            allowed = ", ".join(i.value for i in cls)
            raise InvalidIndexError(f"Unknown summary index '{value}'. Allowed: {allowed}") from e


ALLOWED_INDEX_DIRS = frozenset(i.value for i in SummaryIndex)

Renderer = Callable[[list[Path]], str]
IndexedFiles = dict[SummaryIndex, dict[str, Path]]


def _default(obj: Any) -> Any:
    if is_dataclass(obj) and not isinstance(obj, type):
        if hasattr(obj, "to_dict"):
            return obj.to_dict()
        return asdict(obj)
    if isinstance(obj, (set, frozenset)):
        return sorted(obj)
    if isinstance(obj, Path):
        return str(obj)
    if isinstance(obj, Enum):
        return obj.value
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def serialize(data: Any) -> bytes:
    """Bytes pass through; anything else becomes UTF-8 JSON (no ASCII or HTML escaping)."""
    if isinstance(data, (bytes, bytearray)):
        return bytes(data)
    return json.dumps(data, ensure_ascii=False, default=_default).encode("utf-8")


def args_to_sha1(args: Iterable[str]) -> str:
    return hashlib.sha1(" ".join(args).encode("utf-8")).hexdigest()


def determine_filename(index: SummaryIndex | str | None, args: list[str] | None) -> str:
    """File name for a record.

    - ``sarif-reports``: random name ending in ``.sarif``
    - no args: random name ending in ``-data``
    - otherwise: SHA-1 of the space-joined args, so the same (index, args)
      always lands in the same file
    """
    index = SummaryIndex.parse(index) if index else None
    if index is SummaryIndex.SARIF_REPORTS:
        return f"{uuid.uuid4().hex}{SUMMARY_SARIF_SUFFIX}"
    if not args:
        return f"{uuid.uuid4().hex}{SUMMARY_DATA_SUFFIX}"
    return args_to_sha1(args)


def _atomic_write(target: Path, content: bytes) -> None:
    tmp = target.with_name(f".{target.name}.{uuid.uuid4().hex[:8]}.tmp")
    try:
        with open(tmp, "wb") as f:
            f.write(content)
        os.replace(tmp, target)
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise


def summary_base_dir(output_dir: Path) -> Path:
    return Path(output_dir) / SUMMARY_BASE_DIR_NAME


class CommandSummary:
    """Per-command record store with a pluggable Markdown renderer."""

    def __init__(self, command: str, renderer: Renderer, output_dir: Path, **lock_options):
        self.command = command
        self.renderer = renderer
        self.output_dir = Path(output_dir)
        self.summary_dir = summary_base_dir(self.output_dir) / command
        self.lock_path = self.summary_dir / SUMMARY_LOCK_DIR_NAME
        self._lock_options = lock_options
        self.summary_dir.mkdir(mode=0o755, parents=True, exist_ok=True)

    @classmethod
    def new(cls, command: str, renderer: Renderer, output_dir: Path | None = None, **lock_options) -> CommandSummary | None:
        """Store for ``command``, or None when no summary output dir is configured."""
        output_dir = output_dir or get_summary_output_dir()
        if output_dir is None:
            logger.debug(f"Summary output dir is not set, '{command}' results will not be recorded")
            return None
        return cls(command, renderer, output_dir, **lock_options)

    @property
    def markdown_path(self) -> Path:
        return self.summary_dir / SUMMARY_MARKDOWN_FILE

    def record(self, data: Any) -> Path:
        """Store an un-indexed record under a random ``-data`` name."""
        return self.record_with_index(data, None, None)

    def record_with_index(self, data: Any, index: SummaryIndex | str | None, args: list[str] | None = None) -> Path:
        """Store ``data`` under ``index``; identical (index, args) overwrite each other."""
        index = SummaryIndex.parse(index) if index else None
        content = serialize(data)
        with lock_dir(self.lock_path, **self._lock_options):
            target_dir = self.summary_dir / index.value if index else self.summary_dir
            target_dir.mkdir(mode=0o755, parents=True, exist_ok=True)
            target = target_dir / determine_filename(index, args)
            _atomic_write(target, content)
        logger.debug(f"Recorded {len(content)} bytes for '{self.command}' at {target}")
        return target

    def data_files(self) -> list[Path]:
        """Un-indexed records, oldest first."""
        files = [
            Path(entry.path)
            for entry in os.scandir(self.summary_dir)
            if entry.is_file() and not entry.name.endswith(".md") and not entry.name.startswith(".")
        ]
        files.sort(key=lambda p: (p.stat().st_mtime_ns, p.name))
        return files

    def generate_markdown(self) -> Path | None:
        """Render every un-indexed record into ``markdown.md``."""
        with lock_dir(self.lock_path, **self._lock_options):
            files = self.data_files()
            if not files:
                logger.debug(f"No recorded data for '{self.command}', skipping Markdown generation")
                return None
            markdown = self.renderer(files)
            _atomic_write(self.markdown_path, markdown.encode("utf-8"))
        logger.info(f"Summary for '{self.command}' written to {self.markdown_path}")
        return self.markdown_path

    def list_indexed(self) -> IndexedFiles:
        """Indexed records of this command."""
        return _collect_indexed([self.summary_dir])


def _collect_indexed(command_dirs: Iterable[Path]) -> IndexedFiles:
    indexed: IndexedFiles = {}
    for command_dir in command_dirs:
        for entry in os.scandir(command_dir):
            if not entry.is_dir() or entry.name not in ALLOWED_INDEX_DIRS:
                continue
            index = SummaryIndex(entry.name)
            files = indexed.setdefault(index, {})
            for item in os.scandir(entry.path):
                if item.is_file() and not item.name.startswith("."):
                    files[item.name] = Path(item.path)
    return indexed


def list_indexed(output_dir: Path | None = None) -> IndexedFiles:
    """Indexed records across every command under the summary root."""
    output_dir = output_dir or get_summary_output_dir()
    if output_dir is None:
        return {}
    base = summary_base_dir(output_dir)
    if not base.is_dir():
        return {}
    command_dirs = sorted(Path(entry.path) for entry in os.scandir(base) if entry.is_dir())
    return _collect_indexed(command_dirs)


def load_json(path: Path) -> Any:
    with open(path, encoding="utf-8") as f:
        return json.load(f)
