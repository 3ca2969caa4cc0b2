"""Shared Rich console and the styles every command prints with.

Commands import ``console`` from here rather than building their own, so
the theme names used in markup (``[blocked]``, ``[path]``, ``[high]``) mean
the same thing everywhere:

    from artiscan.pipeline.ui import console, print_header

    print_header("CURATION AUDIT")
    console.print("[blocked]blocked[/blocked] lodash 4.17.20")
"""

import sys

from rich.console import Console
from rich.theme import Theme

ARTISCAN_THEME = Theme({
    # message kinds
    "info": "bold cyan",
    "warning": "bold yellow",
    "error": "bold red",
    "success": "bold green",
    # scan severities
    "critical": "bold red",
    "high": "bold yellow",
    "medium": "bold blue",
    "low": "cyan",
    # curation actions
    "blocked": "bold red",
    # help and locations
    "cmd": "bold magenta",
    "path": "bold cyan",
    "dim": "dim white",
})

console = Console(theme=ARTISCAN_THEME, force_terminal=sys.stdout.isatty())

SEVERITY_STYLES = frozenset({"critical", "high", "medium", "low"})


def print_header(title: str) -> None:
    console.rule(f"[bold]{title}[/bold]")


def print_warning(msg: str) -> None:
    console.print(f"[warning]WARNING:[/warning] {msg}")


def print_success(msg: str) -> None:
    console.print(f"[success]OK:[/success] {msg}")


def severity_markup(severity: str) -> str:
    """``High`` -> ``[high]High[/high]``; unknown severities stay unstyled."""
    style = (severity or "").lower()
    if style not in SEVERITY_STYLES:
        return severity
    return f"[{style}]{severity}[/{style}]"
