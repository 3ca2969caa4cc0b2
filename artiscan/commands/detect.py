"""List the package managers a directory uses."""

import json

import click

from artiscan.package_managers import detect_technologies
from artiscan.pipeline.ui import console
from artiscan.utils.error_handler import handle_exceptions

from .common import parse_working_dirs, working_dirs_option


@click.command()
@handle_exceptions
@working_dirs_option
@click.option("--recursive", is_flag=True, help="Also look in subdirectories")
@click.option("--json", "as_json", is_flag=True, help="Print {dir: [techs]} as JSON")
def detect(working_dirs, recursive, as_json):
    """Show which technologies artiscan detects in each directory."""
    found = {str(d): detect_technologies(d, recursive=recursive) for d in parse_working_dirs(working_dirs)}
    if as_json:
        click.echo(json.dumps(found, indent=2))
        return
    for directory, techs in found.items():
        console.print(f"[path]{directory}[/path]: {', '.join(techs) or 'nothing detected'}")
