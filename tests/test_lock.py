"""Tests for the token-file directory lock."""

import os
import threading
import time

import pytest

from artiscan.errors import LockTokenError, LockUnavailableError
from artiscan.utils.constants import LOCK_FILE_PREFIX
from artiscan.utils.lock import Lock, LockToken, last_timestamp, list_tokens, lock_dir
from artiscan.utils.process import is_process_alive

DEAD_PID = 2**31 - 1


class TestLockToken:
    """Token file name grammar and ordering."""

    def test_parse(self):
        token = LockToken.parse(f"{LOCK_FILE_PREFIX}.123.456")
        assert token.pid == 123
        assert token.nanos == 456

    def test_parse_rejects_wrong_segment_count(self):
        with pytest.raises(LockTokenError):
            LockToken.parse("artiscan.lck.1.2")

    def test_parse_rejects_non_numeric(self):
        with pytest.raises(LockTokenError):
            LockToken.parse(f"{LOCK_FILE_PREFIX}.abc.456")

    def test_ordering_is_nanos_then_pid(self):
        a = LockToken(nanos=10, pid=99)
        b = LockToken(nanos=11, pid=1)
        c = LockToken(nanos=10, pid=100)
        assert sorted([b, c, a]) == [a, c, b]

    def test_list_tokens_sorted(self, tmp_path):
        for name in (f"{LOCK_FILE_PREFIX}.5.300", f"{LOCK_FILE_PREFIX}.7.100", f"{LOCK_FILE_PREFIX}.1.200"):
            (tmp_path / name).touch()
        assert [t.nanos for t in list_tokens(tmp_path)] == [100, 200, 300]

    def test_list_tokens_fails_on_foreign_file(self, tmp_path):
        (tmp_path / "README").touch()
        with pytest.raises(LockTokenError):
            list_tokens(tmp_path)


class TestLock:
    """Acquisition, release and reaping."""

    def test_acquire_and_release_leaves_no_tokens(self, tmp_path):
        directory = tmp_path / "lock"
        with lock_dir(directory) as lock:
            assert lock.token is not None
            assert lock.token_path.exists()
            assert lock.token.pid == os.getpid()
        assert os.listdir(directory) == []

    def test_release_is_idempotent(self, tmp_path):
        lock = Lock(tmp_path / "lock").acquire()
        lock.release()
        lock.release()

    def test_stale_token_is_reaped(self, tmp_path):
        """A token whose creator is gone does not block a live acquirer."""
        directory = tmp_path / "lock"
        directory.mkdir()
        stale = directory / f"{LOCK_FILE_PREFIX}.{DEAD_PID}.{time.time_ns() - 1_000_000_000}"
        stale.touch()

        start = time.monotonic()
        with lock_dir(directory, retry_interval=0.1):
            assert not stale.exists()
        assert time.monotonic() - start < 0.2
        assert os.listdir(directory) == []

    def test_live_older_token_blocks_until_retries_run_out(self, tmp_path):
        directory = tmp_path / "lock"
        directory.mkdir()
        # Our own pid is alive and the token is older than any new one
        (directory / f"{LOCK_FILE_PREFIX}.{os.getpid()}.1").touch()
        with pytest.raises(LockUnavailableError):
            Lock(directory, max_retries=3, retry_interval=0.01).acquire()
        # The failed acquirer removed its own token
        assert os.listdir(directory) == [f"{LOCK_FILE_PREFIX}.{os.getpid()}.1"]

    def test_threads_are_mutually_exclusive(self, tmp_path):
        directory = tmp_path / "lock"
        inside = []
        overlaps = []

        def worker():
            for _ in range(20):
                with lock_dir(directory, retry_interval=0.001):
                    inside.append(1)
                    if len(inside) > 1:
                        overlaps.append(True)
                    inside.pop()

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert overlaps == []
        assert os.listdir(directory) == []


class TestLastTimestamp:
    def test_missing_dir(self, tmp_path):
        assert last_timestamp(tmp_path / "nope") == 0

    def test_live_newest_token(self, tmp_path):
        (tmp_path / f"{LOCK_FILE_PREFIX}.{os.getpid()}.42").touch()
        assert last_timestamp(tmp_path) == 42

    def test_dead_newest_token(self, tmp_path):
        (tmp_path / f"{LOCK_FILE_PREFIX}.{DEAD_PID}.42").touch()
        assert last_timestamp(tmp_path) == 0


class TestProcessAlive:
    def test_self_is_alive(self):
        assert is_process_alive(os.getpid())

    def test_invalid_pids(self):
        assert not is_process_alive(0)
        assert not is_process_alive(-1)
        assert not is_process_alive(DEAD_PID)
