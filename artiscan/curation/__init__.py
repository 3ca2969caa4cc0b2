"""Curation package - probing curated remote repositories.

- models: PackageStatus / Policy records
- urls: canonical id to download URL formulas
- analyzer: bounded-parallel HEAD/GET probing and relation annotation
- formatter: table, JSON and Markdown output
- command: the curation-audit flow
"""

from .analyzer import TreeAnalyzer, extract_policies, parse_curation_error
from .command import CurationAuditCommand
from .models import PackageStatus, Policy
from .urls import CURATION_SUPPORTED_TECHS, coordinates_for

__all__ = [
    "CURATION_SUPPORTED_TECHS",
    "CurationAuditCommand",
    "PackageStatus",
    "Policy",
    "TreeAnalyzer",
    "coordinates_for",
    "extract_policies",
    "parse_curation_error",
]
