"""Print the resolved dependency tree of a project."""

import json

import click
from rich.tree import Tree

from artiscan.config import ServerDetails
from artiscan.graph import GraphNode, flatten_graph
from artiscan.package_managers import TreeParams, build_dependency_tree, detect_technologies, supported_technologies
from artiscan.pipeline.ui import console, print_warning
from artiscan.utils.error_handler import handle_exceptions

from .common import parse_working_dirs, repo_option, working_dirs_option


def _rich_tree(node: GraphNode, branch: Tree | None = None) -> Tree:
    label = node.id if not node.types else f"{node.id} [dim]({', '.join(node.types)})[/dim]"
    branch = Tree(label) if branch is None else branch.add(label)
    for child in node.nodes:
        _rich_tree(child, branch)
    return branch


@click.command("dep-tree")
@handle_exceptions
@click.option("--tech", type=click.Choice(supported_technologies()), default=None, help="Technology (default: detected)")
@working_dirs_option
@repo_option
@click.option("--flat", is_flag=True, help="Print the one-hop graph submitted for scanning")
@click.option("--json", "as_json", is_flag=True, help="Print the graph in its wire form")
@click.option("--no-wrapper", is_flag=True, help="Use the system mvn/gradle instead of the project wrapper")
def dep_tree(tech, working_dirs, repo, flat, as_json, no_wrapper):
    """Resolve and print dependency trees.

    Examples:
      ascan dep-tree
      ascan dep-tree --tech npm --json
      ascan dep-tree --flat"""
    server = ServerDetails.from_env()
    for working_dir in parse_working_dirs(working_dirs):
        techs = [tech] if tech else detect_technologies(working_dir)
        if not techs:
            print_warning(f"No supported technology detected in {working_dir}")
        for current in techs:
            params = TreeParams(server=server, deps_repo=repo, working_dir=working_dir, use_wrapper=not no_wrapper)
            trees, unique = build_dependency_tree(current, params)
            graphs = [flatten_graph(trees)] if flat else trees
            if as_json:
                click.echo(json.dumps([g.to_dict() for g in graphs], indent=2))
                continue
            console.print(f"[info]{current}[/info] in [path]{working_dir}[/path]: {len(unique)} unique packages")
            for graph in graphs:
                console.print(_rich_tree(graph))
