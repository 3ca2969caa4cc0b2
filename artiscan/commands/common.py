"""Options and helpers shared by several commands."""

from pathlib import Path

import click

from artiscan.config import ServerDetails, get_summary_output_dir
from artiscan.summary.markdown import MarkdownConfig, probe_markdown_config


def working_dirs_option(func):
    return click.option(
        "--working-dirs",
        default="",
        help="Comma-separated project directories to audit (default: current directory)",
    )(func)


def threads_option(func):
    return click.option(
        "--threads",
        type=int,
        default=0,
        help="Parallel HTTP requests (default: ARTISCAN_HTTP_THREADS or 10)",
    )(func)


def repo_option(func):
    return click.option(
        "--repo",
        default="",
        help="Remote repository to resolve through (overrides .artiscan/projects/<tech>.yaml)",
    )(func)


def parse_working_dirs(value: str) -> list[Path]:
    """``a, b`` -> [Path("a"), Path("b")]; empty means the current directory."""
    dirs = [Path(part.strip()) for part in value.split(",") if part.strip()]
    for path in dirs:
        if not path.is_dir():
            raise click.BadParameter(f"'{path}' is not a directory", param_hint="--working-dirs")
    return dirs or [Path.cwd()]


def markdown_config_for(server: ServerDetails) -> MarkdownConfig:
    """Probe the platform for extended summaries only when summaries are recorded."""
    if get_summary_output_dir() is None or not server.url:
        return MarkdownConfig()
    return probe_markdown_config(server.url)
