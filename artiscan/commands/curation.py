"""Audit a project's dependencies against a curated remote repository."""

import click

from artiscan.config import ServerDetails
from artiscan.curation import CurationAuditCommand
from artiscan.pipeline.ui import print_header
from artiscan.utils.error_handler import handle_exceptions

from .common import markdown_config_for, parse_working_dirs, repo_option, threads_option, working_dirs_option


@click.command("curation-audit")
@handle_exceptions
@click.option("--format", "output_format", type=click.Choice(["table", "json"]), default="table", help="Output format")
@threads_option
@working_dirs_option
@repo_option
@click.option("--no-wrapper", is_flag=True, help="Use the system mvn/gradle instead of the project wrapper")
def curation_audit(output_format, threads, working_dirs, repo, no_wrapper):
    """Find the packages a curated repository would block.

    Resolves every detected project (npm, yarn, maven, gradle, go) through
    the curated repository and probes each unique package. Blocked packages
    are shown with their direct dependency and the violated policies.

    Server details come from ARTISCAN_URL / ARTISCAN_ARTIFACTORY_URL plus
    ARTISCAN_USER + ARTISCAN_PASSWORD or ARTISCAN_ACCESS_TOKEN.

    Examples:
      ascan curation-audit --repo npm-curated
      ascan curation-audit --working-dirs ui,backend --format json

    Exit Codes:
      0 = Success (blocked packages are reported, not failures)
      1 = Resolution failed or some packages could not be checked"""
    server = ServerDetails.from_env()
    if output_format == "table":
        print_header("CURATION AUDIT")
    command = CurationAuditCommand(
        server=server,
        working_dirs=parse_working_dirs(working_dirs),
        repo=repo,
        output_format=output_format,
        parallel=threads,
        use_wrapper=not no_wrapper,
        markdown_config=markdown_config_for(server),
    )
    command.run()
