"""Subprocess execution and config file swapping for native resolvers."""

import os
import subprocess
from collections.abc import Sequence
from pathlib import Path

from artiscan.errors import ResolverError
from artiscan.security import masked_command
from artiscan.utils.constants import CONFIG_BACKUP_SUFFIX
from artiscan.utils.logging import get_subprocess_env, logger


def run_resolver(
    args: Sequence[str],
    cwd: Path,
    env: dict[str, str] | None = None,
    check: bool = True,
) -> subprocess.CompletedProcess:
    """Run a resolver and capture its output.

    With ``check`` a non-zero exit raises ResolverError carrying the combined
    output. Without it the caller decides (see ``accept_partial``).
    """
    args = [str(a) for a in args]
    command = masked_command(args)
    logger.info(f"Running {command}")
    try:
        result = subprocess.run(
            args,
            cwd=str(cwd),
            env=get_subprocess_env(env),
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
        )
    except FileNotFoundError as e:
        raise ResolverError(command, None, f"executable '{args[0]}' was not found in PATH") from e

    if check and result.returncode != 0:
        raise ResolverError(command, result.returncode, combined_output(result))
    return result


def combined_output(result: subprocess.CompletedProcess) -> str:
    parts = [p for p in (result.stdout, result.stderr) if p]
    return "\n".join(parts)


def accept_partial(result: subprocess.CompletedProcess, parsed_nodes: int) -> None:
    """A failed resolver run is kept only when its output still produced a graph."""
    if result.returncode == 0:
        return
    command = masked_command(result.args)
    if parsed_nodes > 0:
        logger.warning(
            f"'{command}' exited with code {result.returncode}; "
            f"continuing with the {parsed_nodes} dependencies it reported"
        )
        return
    raise ResolverError(command, result.returncode, combined_output(result))


def resolver_version(executable: str, cwd: Path) -> str:
    """``<executable> --version`` output, stripped."""
    return run_resolver([executable, "--version"], cwd).stdout.strip()


class ConfigBackup:
    """Moves a user's resolver config aside while a generated one is in place.

    On exit the generated file is removed and the original restored, whether
    or not the resolver succeeded.

        with ConfigBackup(project / ".npmrc") as backup:
            backup.write(npmrc_content)
            run_resolver(["npm", "install"], project)
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self.backup_path = self.path.with_name(self.path.name + CONFIG_BACKUP_SUFFIX)
        self.backed_up = False

    def __enter__(self) -> "ConfigBackup":
        if self.path.exists():
            os.replace(self.path, self.backup_path)
            self.backed_up = True
            logger.debug(f"Moved {self.path} aside to {self.backup_path}")
        return self

    def write(self, content: str) -> Path:
        fd = os.open(str(self.path), os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        return self.path

    def restore(self) -> None:
        if self.path.exists():
            self.path.unlink()
        if self.backed_up:
            os.replace(self.backup_path, self.path)
            self.backed_up = False
            logger.debug(f"Restored {self.path}")

    def __exit__(self, exc_type, exc, tb) -> None:
        self.restore()
