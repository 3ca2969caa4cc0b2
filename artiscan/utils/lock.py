"""Cross-process directory lock built from timestamp/pid token files.

Every contender drops an empty file named ``<prefix>.<pid>.<nanos>`` into the
lock directory. The token with the smallest ``(nanos, pid)`` pair owns the
lock. Tokens left behind by dead processes are reaped by whoever notices.

Usage:
    from artiscan.utils.lock import lock_dir

    with lock_dir(store_path / ".lock"):
        ...  # exclusive across processes and threads

The file protocol is not reentrant, so each directory also gets a
process-local ``threading.Lock`` that is taken before the token is written.
"""

import os
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

from .constants import LOCK_FILE_PREFIX, LOCK_MAX_RETRIES, LOCK_RETRY_INTERVAL, LOCK_TOKEN_SEGMENTS
from .logging import logger
from .process import is_process_alive
from ..errors import LockTokenError, LockUnavailableError

_process_locks: dict[str, threading.Lock] = {}
_process_locks_guard = threading.Lock()


def _process_lock_for(path: Path) -> threading.Lock:
    key = os.path.normcase(os.path.abspath(path))
    with _process_locks_guard:
        lock = _process_locks.get(key)
        if lock is None:
            lock = threading.Lock()
            _process_locks[key] = lock
        return lock


@dataclass(frozen=True, order=True)
class LockToken:
    """A parsed token file. Ordering is (nanos, pid)."""

    nanos: int
    pid: int
    name: str = ""

    @classmethod
    def parse(cls, name: str) -> "LockToken":
        parts = name.split(".")
        if len(parts) != LOCK_TOKEN_SEGMENTS:
            raise LockTokenError(
                f"Failed while parsing the lock file name '{name}': "
                f"expected {LOCK_TOKEN_SEGMENTS} dot-separated segments, got {len(parts)}"
            )
        try:
            pid = int(parts[-2])
            nanos = int(parts[-1])
        except ValueError as e:
            raise LockTokenError(f"Failed while parsing the lock file name '{name}': {e}") from e
        return cls(nanos=nanos, pid=pid, name=name)


def list_tokens(directory: Path) -> list[LockToken]:
    """Parse every file in ``directory`` as a token, sorted oldest first."""
    tokens = [LockToken.parse(entry.name) for entry in os.scandir(directory) if entry.is_file()]
    tokens.sort()
    return tokens


class Lock:
    """One acquisition of a lock directory."""

    def __init__(
        self,
        directory: str | Path,
        max_retries: int = LOCK_MAX_RETRIES,
        retry_interval: float = LOCK_RETRY_INTERVAL,
    ):
        self.directory = Path(directory)
        self.max_retries = max_retries
        self.retry_interval = retry_interval
        self.token: LockToken | None = None
        self._local = _process_lock_for(self.directory)

    @property
    def token_path(self) -> Path | None:
        return self.directory / self.token.name if self.token else None

    def _create_token(self) -> LockToken:
        self.directory.mkdir(mode=0o777, parents=True, exist_ok=True)
        pid = os.getpid()
        while True:
            nanos = time.time_ns()
            name = f"{LOCK_FILE_PREFIX}.{pid}.{nanos}"
            try:
                fd = os.open(str(self.directory / name), os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o666)
            except FileExistsError:
                # Coarse clocks can repeat a nanosecond value
                continue
            os.close(fd)
            return LockToken(nanos=nanos, pid=pid, name=name)

    def acquire(self) -> "Lock":
        """Block until this process owns the directory."""
        self._local.acquire()
        try:
            self.token = self._create_token()
            logger.debug(f"Lock token {self.token.name} created in {self.directory}")
            self._wait_for_ownership()
        except BaseException:
            self._discard_token()
            self._local.release()
            raise
        return self

    def _wait_for_ownership(self) -> None:
        for _ in range(self.max_retries):
            tokens = list_tokens(self.directory)
            first = tokens[0] if tokens else None
            if first is None or first == self.token:
                logger.debug(f"Lock acquired for {self.directory}")
                return

            if not (self.directory / first.name).exists():
                # Released between listing and now
                continue

            if not is_process_alive(first.pid):
                logger.debug(
                    f"Removing lock file {first.name} since the creating process is no longer running"
                )
                try:
                    (self.directory / first.name).unlink()
                except FileNotFoundError:
                    pass
                continue

            time.sleep(self.retry_interval)

        raise LockUnavailableError(
            f"Lock on {self.directory} hasn't been acquired after {self.max_retries} attempts"
        )

    def _discard_token(self) -> None:
        path = self.token_path
        self.token = None
        if path is not None:
            try:
                path.unlink()
            except FileNotFoundError:
                pass

    def release(self) -> None:
        """Remove our token and let the next contender in."""
        if self.token is None:
            return
        logger.debug(f"Releasing lock {self.token.name}")
        try:
            self._discard_token()
        finally:
            self._local.release()

    def __enter__(self) -> "Lock":
        return self.acquire()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()


@contextmanager
def lock_dir(directory: str | Path, **kwargs):
    """Hold the lock on ``directory`` for the duration of the block."""
    lock = Lock(directory, **kwargs).acquire()
    try:
        yield lock
    finally:
        lock.release()


def last_timestamp(directory: str | Path) -> int:
    """Nanos of the newest token if its creator is still alive, else 0."""
    directory = Path(directory)
    if not directory.is_dir():
        return 0
    tokens = list_tokens(directory)
    if not tokens:
        return 0
    newest = tokens[-1]
    if not is_process_alive(newest.pid):
        return 0
    return newest.nanos
