"""artiscan - dependency curation, graph scanning and command summaries."""

__version__ = "0.4.0"
