"""Shared parsing of the maven-dep-tree / gradle-dep-tree plugin output.

Both plugins write a text file listing one JSON file per module::

    {"root": "g:a:v", "nodes": {"g:a:v": {"children": ["g2:a2:v2"], "types": ["compile"]}}}

Gradle calls the tag list ``configurations``; both spellings are accepted.
"""

import json
from pathlib import Path

from artiscan.errors import ParseError
from artiscan.graph.types import DependencyMap, DepTreeNode
from artiscan.utils.constants import GAV_PREFIX


def read_module_files(output_file: Path) -> list[dict]:
    """Load every module JSON listed in a plugin output file."""
    try:
        listing = output_file.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise ParseError(f"dependency tree output {output_file} was not created") from e
    modules = []
    for line in listing.strip().splitlines():
        path = line.strip()
        if not path:
            continue
        try:
            with open(path, encoding="utf-8") as f:
                modules.append(json.load(f))
        except (OSError, json.JSONDecodeError) as e:
            raise ParseError(f"could not read dependency tree file {path}: {e}") from e
    return modules


def module_to_map(module: dict) -> tuple[DependencyMap, str]:
    """One module JSON as a ``(DependencyMap, root id)`` pair with ``gav://`` ids."""
    root = module.get("root")
    if not root:
        raise ParseError("dependency tree module has no root")
    dep_map: DependencyMap = {}
    for name, node in (module.get("nodes") or {}).items():
        node = node or {}
        tags = node.get("types") or node.get("configurations") or []
        dep_map[GAV_PREFIX + name] = DepTreeNode(
            types=list(tags),
            children=[GAV_PREFIX + child for child in node.get("children") or []],
        )
    return dep_map, GAV_PREFIX + root


def parse_dep_tree_output(output_file: Path) -> list[tuple[DependencyMap, str]]:
    return [module_to_map(m) for m in read_module_files(output_file)]
