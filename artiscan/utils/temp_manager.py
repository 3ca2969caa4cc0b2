"""Scratch directory and private file management for resolver runs."""

import os
import shutil
import tempfile
import uuid
from contextlib import contextmanager
from pathlib import Path

from .logging import logger


class TempManager:
    """Creates scratch areas for resolver invocations and cleans them up."""

    @staticmethod
    def create_scratch_dir(prefix: str = "artiscan") -> Path:
        """Create a fresh private scratch directory."""
        return Path(tempfile.mkdtemp(prefix=f"{prefix}-"))

    @staticmethod
    def remove_scratch_dir(path: Path) -> None:
        """Remove a scratch directory and everything in it."""
        if not path.exists():
            return
        shutil.rmtree(path)
        logger.debug(f"Removed scratch directory {path}")

    @staticmethod
    def write_private_file(directory: Path, name: str, content: str) -> Path:
        """Write ``content`` to ``directory/name`` with mode 0600.

        Settings files carry credentials, so they are created exclusively and
        never readable by other users.
        """
        file_path = directory / name
        fd = os.open(str(file_path), os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        return file_path

    @staticmethod
    def unique_name(prefix: str = "tmp", suffix: str = "") -> str:
        """Random file name with the given prefix and suffix."""
        return f"{prefix}_{uuid.uuid4().hex[:12]}{suffix}"

    @staticmethod
    def copy_project(source: Path, destination: Path) -> Path:
        """Copy a project tree into ``destination`` so resolvers can mutate it freely."""
        shutil.copytree(
            source,
            destination,
            symlinks=True,
            dirs_exist_ok=True,
            ignore=shutil.ignore_patterns(".git", "node_modules", "__pycache__", ".venv", "venv"),
        )
        return destination


@contextmanager
def scratch_dir(prefix: str = "artiscan"):
    """Yield a scratch directory that is removed on every exit path."""
    path = TempManager.create_scratch_dir(prefix)
    try:
        yield path
    finally:
        TempManager.remove_scratch_dir(path)
