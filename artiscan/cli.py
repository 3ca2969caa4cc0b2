"""ascan command line: command registration and categorized help."""
# ruff: noqa: E402 - commands are imported after the cli group exists

import click
from rich.table import Table

from artiscan import __version__
from artiscan.pipeline.ui import console
from artiscan.utils.constants import (
    ENV_ACCESS_TOKEN,
    ENV_PASSWORD,
    ENV_SUMMARY_OUTPUT_DIR,
    ENV_URL,
    ENV_USER,
)
from artiscan.utils.exit_codes import ExitCodes

HELP_ENVIRONMENT = (
    (ENV_URL, "Platform URL (Artifactory and Xray URLs are derived from it)"),
    (f"{ENV_USER} / {ENV_PASSWORD}", "Basic credentials"),
    (ENV_ACCESS_TOKEN, "Access token, used instead of user and password"),
    (ENV_SUMMARY_OUTPUT_DIR, "Record results for CI job summaries"),
)


class VerboseGroup(click.Group):
    """Group whose help lists commands by category, then environment and exit codes."""

    COMMAND_CATEGORIES = {
        "SECURITY": {
            "description": "Scan and curate project dependencies",
            "commands": {
                "audit": "USE: vulnerabilities and policy violations of dependencies",
                "curation-audit": "USE: which packages a curated repository blocks",
            },
        },
        "DEPENDENCIES": {
            "description": "Detection and dependency trees",
            "commands": {
                "detect": "USE: which package managers a project uses",
                "dep-tree": "USE: inspect the resolved tree before scanning",
            },
        },
        "REPORTING": {
            "description": "CI job summaries",
            "commands": {
                "summary": "RUN: at the end of a CI job to render Markdown",
            },
        },
    }

    def format_commands(self, ctx, formatter):
        """Replaced by the categorized listing printed in format_help."""

    @staticmethod
    def _category_help(cmd: click.Command) -> str:
        first_line = (cmd.help or "").strip().split("\n")[0]
        text = first_line.split(".")[0]
        if len(text) > 45:
            text = text[:45].rsplit(" ", 1)[0] + "..."
        return text

    def format_help(self, ctx, formatter):
        super().format_help(ctx, formatter)
        visible = {name: cmd for name, cmd in self.commands.items() if not cmd.hidden}

        console.print()
        console.rule("[bold]COMMANDS[/bold]")
        for title, category in self.COMMAND_CATEGORIES.items():
            console.print(f"\n[bold cyan]{title}[/bold cyan] [dim]{category['description']}[/dim]")
            table = Table(show_header=False, box=None, padding=(0, 2, 0, 0))
            table.add_column("Command", style="cmd", width=16)
            table.add_column("Description", style="white")
            table.add_column("When", style="dim", width=48)
            for name, hint in category["commands"].items():
                if name in visible:
                    table.add_row(name, self._category_help(visible[name]), hint)
            console.print(table)

        console.print()
        console.rule("[bold]ENVIRONMENT[/bold]")
        env_table = Table(show_header=False, box=None, padding=(0, 2, 0, 0))
        env_table.add_column("Variable", style="path")
        env_table.add_column("Meaning", style="white")
        for name, meaning in HELP_ENVIRONMENT:
            env_table.add_row(name, meaning)
        console.print(env_table)

        console.print()
        console.rule("[bold]EXIT CODES[/bold]")
        for code in (ExitCodes.SUCCESS, ExitCodes.ERROR, ExitCodes.FAIL_NO_OP, ExitCodes.VULNERABLE_BUILD):
            console.print(f"  {code}  {ExitCodes.get_description(code)}")
        console.print("\nFor detailed options: [cmd]ascan <command> --help[/cmd]")


@click.group(cls=VerboseGroup)
@click.version_option(version=__version__, prog_name="ascan")
@click.help_option("-h", "--help")
def cli():
    """artiscan - dependency trees, curation and security scans

    \b
    QUICK START:
      ascan detect                       # Which package managers are used
      ascan audit                        # Scan dependencies
      ascan curation-audit --repo REPO   # Packages a curated repo blocks

    \b
    For detailed options: ascan <command> --help"""
    pass


from artiscan.commands.audit import audit
from artiscan.commands.curation import curation_audit
from artiscan.commands.deptree import dep_tree
from artiscan.commands.detect import detect
from artiscan.commands.summary import summary

cli.add_command(audit)
cli.add_command(curation_audit)
cli.add_command(detect)
cli.add_command(dep_tree)
cli.add_command(summary)


def main():
    """Main entry point for console script."""
    cli()


if __name__ == "__main__":
    main()
