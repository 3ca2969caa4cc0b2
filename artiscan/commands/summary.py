"""Record command results and render them as Markdown job summaries."""

import json
import os
from pathlib import Path

import click

from artiscan.config import ServerDetails, get_summary_output_dir
from artiscan.curation.command import CURATION_COMMAND
from artiscan.curation.formatter import CurationSummaryRenderer
from artiscan.errors import ConfigMissingError
from artiscan.pipeline.ui import console, print_success, print_warning
from artiscan.summary.markdown import MarkdownConfig
from artiscan.summary.scans import AUDIT_COMMAND, ScanSummaryRenderer
from artiscan.summary.store import ALLOWED_INDEX_DIRS, CommandSummary, list_indexed, load_json, summary_base_dir
from artiscan.summary.upload import UPLOAD_COMMAND, UploadResult, UploadSummaryRenderer, upload_record
from artiscan.utils.constants import ENV_PROJECT, ENV_SUMMARY_OUTPUT_DIR
from artiscan.utils.error_handler import handle_exceptions

from .common import markdown_config_for


def renderer_for(command: str, config: MarkdownConfig):
    """Markdown renderer of a known command, or None."""
    if command == CURATION_COMMAND:
        return CurationSummaryRenderer(config)
    if command == UPLOAD_COMMAND:
        return UploadSummaryRenderer(config, project_key=os.environ.get(ENV_PROJECT, ""))
    if command == AUDIT_COMMAND:
        return ScanSummaryRenderer()
    return None


def _require_output_dir() -> Path:
    output_dir = get_summary_output_dir()
    if output_dir is None:
        raise ConfigMissingError(f"{ENV_SUMMARY_OUTPUT_DIR} is not set")
    return output_dir


def _raw_renderer(files: list[Path]) -> str:
    return "\n".join(json.dumps(load_json(f), indent=2, ensure_ascii=False) for f in files)


@click.group()
def summary():
    """Command summaries for CI job pages.

    Records live under $ARTISCAN_SUMMARY_OUTPUT_DIR/artiscan-command-summary."""


@summary.command("record")
@handle_exceptions
@click.argument("command")
@click.argument("data_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--index", default=None, type=click.Choice(sorted(ALLOWED_INDEX_DIRS)), help="Store as an indexed record")
@click.option("--arg", "args", multiple=True, help="Identifying argument; repeat for several")
def record(command, data_file, index, args):
    """Store DATA_FILE as a record of COMMAND."""
    output_dir = _require_output_dir()
    content = data_file.read_bytes()
    store = CommandSummary(command, _raw_renderer, output_dir)
    if index:
        path = store.record_with_index(content, index, list(args))
    else:
        path = store.record(content)
    print_success(f"Recorded {data_file} at {path}")


@summary.command("record-upload")
@handle_exceptions
@click.argument("results_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def record_upload(results_file):
    """Record an upload result file ({"results": [{sourcePath, targetPath, rtUrl}]})."""
    output_dir = _require_output_dir()
    content = load_json(results_file)
    entries = content.get("results") if isinstance(content, dict) else content
    results = [UploadResult.from_dict(entry) for entry in entries or []]
    store = CommandSummary(UPLOAD_COMMAND, _raw_renderer, output_dir)
    path = store.record(upload_record(results))
    print_success(f"Recorded {len(results)} uploaded files at {path}")


@summary.command("generate-markdown")
@handle_exceptions
@click.option("--command", "commands", multiple=True, help="Only these commands (default: every recorded command)")
def generate_markdown(commands):
    """Render markdown.md for every recorded command."""
    output_dir = _require_output_dir()
    base = summary_base_dir(output_dir)
    if not commands:
        commands = sorted(entry.name for entry in os.scandir(base) if entry.is_dir()) if base.is_dir() else []
    config = markdown_config_for(ServerDetails.from_env())
    for command in commands:
        renderer = renderer_for(command, config)
        if renderer is None:
            print_warning(f"No Markdown renderer for '{command}', skipping")
            continue
        path = CommandSummary(command, renderer, output_dir).generate_markdown()
        if path is not None:
            console.print(f"[cmd]{command}[/cmd]: [path]{path}[/path]")


@summary.command("list-indexed")
@handle_exceptions
def list_indexed_command():
    """List indexed records (build scans, SARIF reports, ...) as JSON."""
    indexed = list_indexed(_require_output_dir())
    click.echo(json.dumps({index.value: {name: str(p) for name, p in files.items()} for index, files in indexed.items()}, indent=2))
