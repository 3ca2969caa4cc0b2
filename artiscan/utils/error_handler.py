"""Error handling shared by every ``ascan`` command."""

import traceback
from collections.abc import Callable
from datetime import datetime
from functools import wraps
from pathlib import Path
from typing import Any

import click

from artiscan.config import get_logs_dir
from artiscan.errors import ArtiscanError
from artiscan.utils.logging import logger

from .constants import ERROR_LOG_NAME


def describe_error(error: BaseException) -> str:
    """``Type: message``, with one line per member of an exception group."""
    lines = [f"{type(error).__name__}: {error.message if isinstance(error, BaseExceptionGroup) else error}"]
    if isinstance(error, BaseExceptionGroup):
        for member in error.exceptions:
            lines.append(f"  - {describe_error(member)}")
    return "\n".join(lines)


def append_error_log(command: str, error: BaseException) -> Path:
    """Append the failure and its traceback to ``<home>/logs/error.log``."""
    logs_dir = get_logs_dir()
    logs_dir.mkdir(parents=True, exist_ok=True)
    path = logs_dir / ERROR_LOG_NAME
    separator = "=" * 80
    with open(path, "a", encoding="utf-8") as f:
        f.write(f"\n{separator}\n[{datetime.now().isoformat()}] ascan {command}\n{separator}\n")
        f.write(describe_error(error) + "\n\n")
        f.write("".join(traceback.format_exception(error)))
        f.write(f"{separator}\n\n")
    return path


def handle_exceptions(func: Callable[..., Any]) -> Callable[..., Any]:
    """Turn failures of a click command into ``click.ClickException`` (exit 1).

    Errors artiscan raises on purpose (bad config, resolver failures, blocked
    probes) are reported by message; anything else also points at the
    traceback in the error log.
    """

    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except (click.exceptions.Exit, click.ClickException, click.Abort):
            raise
        except Exception as e:
            command = func.__name__.replace("_", "-")
            log_path = append_error_log(command, e)
            message = describe_error(e)
            if isinstance(e, ArtiscanError):
                logger.debug(f"'{command}' failed: {e}")
                raise click.ClickException(message) from e
            logger.opt(exception=True).error(f"'{command}' failed unexpectedly: {e}")
            raise click.ClickException(f"{message}\n\nFull traceback logged to: {log_path}") from e

    return wrapper
