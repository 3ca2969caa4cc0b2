"""Scan package - submitting dependency graphs to the scan service.

- models: ScanResponse, Issue, License
- graph_scan: the submit/poll client and result filtering
- formatter: table, json, simple-json and sarif output
- command: the audit flow
"""

from .command import AuditCommand
from .formatter import OUTPUT_FORMATS, print_scan_results, to_sarif, to_simple_json
from .graph_scan import GraphScanner, filter_results
from .models import Issue, License, ScanResponse, severity_level

__all__ = [
    "OUTPUT_FORMATS",
    "AuditCommand",
    "GraphScanner",
    "Issue",
    "License",
    "ScanResponse",
    "filter_results",
    "print_scan_results",
    "severity_level",
    "to_sarif",
    "to_simple_json",
]
