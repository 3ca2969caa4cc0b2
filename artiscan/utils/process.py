"""Process liveness probing.

Lock tokens carry the pid of their creator. Reaping a token is only safe when
the creator is known to be gone, so anything the platform cannot answer
definitively is reported as alive.
"""

import os
import platform

from .logging import logger

IS_WINDOWS = platform.system() == "Windows"

if IS_WINDOWS:
    import ctypes
    from ctypes import wintypes

    PROCESS_QUERY_LIMITED_INFORMATION = 0x1000
    STILL_ACTIVE = 259
    ERROR_INVALID_PARAMETER = 87
else:
    ctypes = None
    wintypes = None


def is_process_alive(pid: int) -> bool:
    """Return True unless the platform says the pid is definitely not running."""
    if pid <= 0:
        return False
    if IS_WINDOWS:
        return _is_alive_windows(pid)
    return _is_alive_posix(pid)


def _is_alive_posix(pid: int) -> bool:
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        # Exists but belongs to another user
        return True
    except (OverflowError, ValueError):
        # pid outside the platform's pid_t range can never be a live process
        return False
    except OSError as e:
        logger.debug(f"Liveness of pid {pid} is indeterminate: {e}")
        return True
    return True


def _is_alive_windows(pid: int) -> bool:
    kernel32 = ctypes.WinDLL("kernel32", use_last_error=True)
    kernel32.OpenProcess.restype = wintypes.HANDLE
    try:
        handle = kernel32.OpenProcess(PROCESS_QUERY_LIMITED_INFORMATION, False, pid)
    except OverflowError:
        return False
    if not handle:
        error = ctypes.get_last_error()
        if error == ERROR_INVALID_PARAMETER:
            return False
        logger.debug(f"OpenProcess({pid}) failed with error {error}")
        return True
    try:
        exit_code = wintypes.DWORD()
        if not kernel32.GetExitCodeProcess(handle, ctypes.byref(exit_code)):
            return True
        return exit_code.value == STILL_ACTIVE
    finally:
        kernel32.CloseHandle(handle)
