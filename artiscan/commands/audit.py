"""Scan a project's dependency graph for vulnerabilities and violations."""

import sys

import click

from artiscan.config import ServerDetails
from artiscan.pipeline.ui import console, print_header, print_warning
from artiscan.scan import OUTPUT_FORMATS, AuditCommand
from artiscan.utils.error_handler import handle_exceptions
from artiscan.utils.exit_codes import ExitCodes

from .common import parse_working_dirs, repo_option, working_dirs_option


@click.command()
@handle_exceptions
@click.option("--format", "output_format", type=click.Choice(OUTPUT_FORMATS), default="table", help="Output format")
@working_dirs_option
@repo_option
@click.option(
    "--min-severity",
    type=click.Choice(["Low", "Medium", "High", "Critical"], case_sensitive=False),
    default=None,
    help="Hide issues below this severity",
)
@click.option("--fixable-only", is_flag=True, help="Only show issues that have a fixed version")
@click.option("--licenses", "include_licenses", is_flag=True, help="Also list the licenses of every component")
@click.option("--project", "project_key", default="", help="Project key whose watches apply")
@click.option("--watches", default="", help="Comma-separated watch names")
@click.option("--no-wrapper", is_flag=True, help="Use the system mvn/gradle instead of the project wrapper")
def audit(output_format, working_dirs, repo, min_severity, fixable_only, include_licenses, project_key, watches, no_wrapper):
    """Scan project dependencies with the graph scan service.

    Builds the dependency tree of every detected technology, submits its
    flattened graph, and prints the vulnerabilities and policy violations.

    Examples:
      ascan audit
      ascan audit --format sarif > results.sarif
      ascan audit --min-severity high --fixable-only

    Exit Codes:
      0 = Success
      1 = Error
      2 = No supported project was found
      3 = A violation marked fail_build was found"""
    if output_format == "table":
        print_header("AUDIT")
    command = AuditCommand(
        server=ServerDetails.from_env(),
        working_dirs=parse_working_dirs(working_dirs),
        repo=repo,
        output_format=output_format,
        min_severity=min_severity or "",
        fixable_only=fixable_only,
        include_licenses=include_licenses,
        project_key=project_key,
        watches=tuple(w.strip() for w in watches.split(",") if w.strip()),
        use_wrapper=not no_wrapper,
    )
    responses = command.run()
    if not responses:
        print_warning("No supported project was found to scan")
        sys.exit(ExitCodes.FAIL_NO_OP)
    if command.fails_build:
        console.print("[error]Violations that fail the build were found[/error]")
        sys.exit(ExitCodes.VULNERABLE_BUILD)
