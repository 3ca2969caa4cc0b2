"""Summary package - per-command result records and their Markdown rendering.

- store: CommandSummary, the locked file-backed record store
- markdown: MarkdownConfig and table / collapsible helpers
- filetree: uploaded-files tree
- upload: upload results renderer
- scans: audit results renderer
"""

from .markdown import MarkdownConfig, probe_markdown_config
from .store import CommandSummary, SummaryIndex, list_indexed

__all__ = [
    "CommandSummary",
    "MarkdownConfig",
    "SummaryIndex",
    "list_indexed",
    "probe_markdown_config",
]
