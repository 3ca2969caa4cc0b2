"""Loguru setup for artiscan.

Everything logs through the one ``logger``; command output (tables, JSON
results, Markdown) goes to stdout, logs always go to stderr.

Environment Variables:
    ARTISCAN_LOG_LEVEL: DEBUG|INFO|WARNING|ERROR (default: INFO)
    ARTISCAN_LOG_JSON: 0|1, one JSON object per line on stderr (default: 0)
    ARTISCAN_LOG_FILE: also write JSON lines to this file at DEBUG, rotated at 10 MB
    ARTISCAN_REQUEST_ID: correlation ID, inherited by resolver subprocesses
"""

import json
import os
import sys
import uuid

from loguru import logger

# Loguru level numbers rescaled so INFO is 30, as in most JSON log consumers
SEVERITY_NUMBERS = {
    "TRACE": 10,
    "DEBUG": 20,
    "INFO": 30,
    "SUCCESS": 30,
    "WARNING": 40,
    "ERROR": 50,
    "CRITICAL": 60,
}

HUMAN_FORMAT = (
    "<green>{time:HH:mm:ss}</green> "
    "<level>{level.name:<7}</level> "
    "<dim>{name}</dim> "
    "{extra[tech_tag]}<level>{message}</level>"
)

REQUEST_ID = os.environ.get("ARTISCAN_REQUEST_ID") or uuid.uuid4().hex


def as_json_line(record) -> str:
    """One log record as a compact JSON object (no trailing newline)."""
    extra = {k: v for k, v in record["extra"].items() if not k.startswith("_") and k != "tech_tag"}
    entry = {
        "time": record["time"].isoformat(timespec="milliseconds"),
        "level": SEVERITY_NUMBERS.get(record["level"].name, 30),
        "module": record["name"],
        "msg": record["message"],
        "request_id": REQUEST_ID,
        **extra,
    }
    if record["exception"] is not None and record["exception"].type is not None:
        entry["error"] = {
            "type": record["exception"].type.__name__,
            "message": str(record["exception"].value),
        }
    return json.dumps(entry, default=str)


def _json_format(record) -> str:
    # Loguru formats the returned template again, so the line travels through extra
    record["extra"]["_json"] = as_json_line(record)
    return "{extra[_json]}\n"


def _tag_tech(record) -> None:
    tech = record["extra"].get("tech")
    record["extra"]["tech_tag"] = f"[{tech}] " if tech else ""


def configure(level: str | None = None, json_lines: bool | None = None, log_file: str | None = None) -> None:
    """(Re)install the sinks; arguments left as None come from the environment."""
    level = (level or os.environ.get("ARTISCAN_LOG_LEVEL", "INFO")).upper()
    if json_lines is None:
        json_lines = os.environ.get("ARTISCAN_LOG_JSON", "0") == "1"
    if log_file is None:
        log_file = os.environ.get("ARTISCAN_LOG_FILE")

    logger.remove()
    logger.configure(patcher=_tag_tech, extra={"tech_tag": ""})
    if json_lines:
        logger.add(sys.stderr, level=level, format=_json_format, colorize=False)
    else:
        logger.add(sys.stderr, level=level, format=HUMAN_FORMAT, colorize=None)
    if log_file:
        logger.add(log_file, level="DEBUG", format=_json_format, rotation="10 MB", encoding="utf-8")


def get_subprocess_env(extra: dict[str, str] | None = None) -> dict[str, str]:
    """Environment for a resolver subprocess.

    Carries the request ID, and ``CI=true`` so package managers never stop
    to prompt; ``extra`` (GOPROXY, NUGET_PACKAGES, ...) is applied last.
    """
    env = os.environ.copy()
    env["ARTISCAN_REQUEST_ID"] = REQUEST_ID
    env.setdefault("CI", "true")
    if extra:
        env.update(extra)
    return env


configure()

__all__ = [
    "logger",
    "REQUEST_ID",
    "configure",
    "get_subprocess_env",
]
