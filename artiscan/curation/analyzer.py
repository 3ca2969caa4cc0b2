"""Curation probing of a flattened dependency graph.

For every unique package a HEAD request is sent to the download URL in the
curated remote repository:

- 2xx: the package is allowed, nothing is recorded
- 403: a GET fetches the error envelope; a message mentioning the curation
  service turns into a blocked PackageStatus, anything else is treated as an
  unrelated authorization filter (allowed)
- any other status >= 400: a per-package error

Probes run concurrently, at most ``parallel`` at a time, over one shared
``httpx.AsyncClient``. A failing probe never stops its siblings; failures are
returned next to the statuses that were gathered.
"""

from __future__ import annotations

import asyncio
import json
import re

import httpx

from artiscan.config import ServerDetails
from artiscan.errors import HttpStatusError, ParseError
from artiscan.graph.types import GraphNode
from artiscan.http_client import create_async_client
from artiscan.utils.constants import (
    DEFAULT_GET_TIMEOUT,
    DEFAULT_HEAD_TIMEOUT,
    DEFAULT_HTTP_RETRIES,
    DEFAULT_PARALLEL_REQUESTS,
    GO_TOOLCHAIN_PREFIX,
)
from artiscan.utils.logging import logger

from .models import (
    BLOCK_MESSAGE_KEY,
    BLOCKED,
    BLOCKING_REASON_NOT_FOUND,
    BLOCKING_REASON_POLICY,
    DIRECT,
    INDIRECT,
    NOT_BEING_FOUND_KEY,
    PackageStatus,
    Policy,
)
from .urls import coordinates_for, package_type

POLICIES_PATTERN = re.compile(r"({.*?})")

HEAD_ERROR_TEMPLATE = (
    "failed sending HEAD request to {url} for package '{name}:{version}'. Status-code: {status}. Cause: {cause}"
)

StatusMap = dict[str, PackageStatus]


def make_legible(text: str) -> str:
    """Headline on its own line, ``|`` separated items one per line."""
    return text.replace(": ", ":\n", 1).replace(" | ", "\n")


def extract_policies(message: str) -> list[Policy]:
    """Pull ``{policy, condition[, explanation, recommendation]}`` tuples out of a 403 message."""
    policies = []
    for match in POLICIES_PATTERN.findall(message):
        parts = match.removeprefix("{").removesuffix("}").split(",")
        if len(parts) < 2:
            continue
        policy, condition = parts[0].strip(), parts[1].strip()
        if len(parts) == 4:
            policies.append(Policy(
                policy=policy,
                condition=condition,
                explanation=make_legible(parts[2]).strip(),
                recommendation=make_legible(parts[3]).strip(),
            ))
            continue
        policies.append(Policy(policy=policy, condition=condition))
    return policies


def parse_curation_error(body: bytes | str, url: str, name: str, version: str, pkg_type: str) -> PackageStatus | None:
    """Decode a 403 body. None means the 403 did not come from the curation service."""
    try:
        envelope = json.loads(body or b"{}")
    except json.JSONDecodeError as e:
        raise ParseError(f"Could not parse the 403 response of {url}: {e}") from e
    errors = envelope.get("errors") if isinstance(envelope, dict) else None
    if not errors:
        raise ParseError(
            "received 403 for unknown reason, no curation status will be presented for this package. "
            f"package name: {name}, version: {version}, download url: {url}"
        )
    message = str(errors[0].get("message", ""))
    lowered = message.lower()
    if BLOCK_MESSAGE_KEY not in lowered:
        return None
    reason = BLOCKING_REASON_NOT_FOUND if NOT_BEING_FOUND_KEY in lowered else BLOCKING_REASON_POLICY
    return PackageStatus(
        action=BLOCKED,
        package_name=name,
        package_version=version,
        blocked_package_url=url,
        blocking_reason=reason,
        pkg_type=pkg_type,
        policies=extract_policies(message),
    )


def is_probed(node_id: str) -> bool:
    """False for nodes with no package behind them in a remote repository."""
    return not node_id.startswith(GO_TOOLCHAIN_PREFIX)


class TreeAnalyzer:
    """Probes packages of one technology against one curated repository."""

    def __init__(
        self,
        tech: str,
        base_url: str,
        repo: str,
        server: ServerDetails | None = None,
        parallel: int = DEFAULT_PARALLEL_REQUESTS,
        head_timeout: float = DEFAULT_HEAD_TIMEOUT,
        get_timeout: float = DEFAULT_GET_TIMEOUT,
        retries: int = DEFAULT_HTTP_RETRIES,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.tech = tech
        self.base_url = base_url
        self.repo = repo
        self.server = server
        self.parallel = parallel if parallel > 0 else DEFAULT_PARALLEL_REQUESTS
        self.head_timeout = head_timeout
        self.get_timeout = get_timeout
        self.retries = retries
        self.transport = transport
        self.pkg_type = package_type(tech)

    async def fetch_node_status(self, client: httpx.AsyncClient, node_id: str, statuses: StatusMap) -> None:
        coords = coordinates_for(self.tech, node_id, self.base_url, self.repo)
        name, version, url = coords.full_name, coords.version, coords.url

        response = await client.head(url, timeout=self.head_timeout)
        if response.status_code != 403:
            if response.status_code >= 400:
                raise HttpStatusError(
                    HEAD_ERROR_TEMPLATE.format(
                        url=url, name=name, version=version,
                        status=response.status_code, cause=response.reason_phrase,
                    ),
                    response.status_code,
                )
            return

        response = await client.get(url, timeout=self.get_timeout)
        if response.status_code != 403:
            if response.status_code >= 400:
                raise HttpStatusError(
                    HEAD_ERROR_TEMPLATE.format(
                        url=url, name=name, version=version,
                        status=response.status_code, cause=response.reason_phrase,
                    ),
                    response.status_code,
                )
            return

        status = parse_curation_error(response.content, url, name, version, self.pkg_type)
        if status is None:
            logger.debug(f"403 for {url} did not come from the curation service, treating as allowed")
            return
        statuses.setdefault(status.blocked_package_url, status)

    async def _fetch_all(self, node_ids: list[str]) -> tuple[StatusMap, list[Exception]]:
        statuses: StatusMap = {}
        errors: list[Exception] = []
        semaphore = asyncio.Semaphore(self.parallel)

        async with create_async_client(
            self.server,
            retries=self.retries,
            timeout=self.get_timeout,
            transport=self.transport,
            max_connections=self.parallel,
        ) as client:

            async def probe(node_id: str) -> None:
                async with semaphore:
                    try:
                        await self.fetch_node_status(client, node_id, statuses)
                    except Exception as e:
                        logger.debug(f"Curation probe for {node_id} failed: {e}")
                        errors.append(e)

            await asyncio.gather(*(probe(node_id) for node_id in node_ids))

        return statuses, errors

    def fetch_nodes_status(self, flat_graph: GraphNode, root_id: str) -> tuple[StatusMap, list[Exception]]:
        """Probe every child of ``flat_graph`` except the project root and the Go toolchain."""
        node_ids = [node.id for node in flat_graph.nodes if node.id != root_id and is_probed(node.id)]
        logger.debug(f"Probing {len(node_ids)} {self.tech} packages with {self.parallel} parallel requests")
        return asyncio.run(self._fetch_all(node_ids))

    def fill_graph_relations(self, tree: GraphNode, statuses: StatusMap) -> list[PackageStatus]:
        """Re-project probe results onto the original tree.

        Every occurrence of a blocked package yields one record naming the
        direct dependency (child of the root) it was reached through.
        """
        results: list[PackageStatus] = []
        visited: set[str] = set()
        self._fill(tree, statuses, results, "", "", visited, True)
        return results

    def _fill(
        self,
        node: GraphNode,
        statuses: StatusMap,
        results: list[PackageStatus],
        parent: str,
        parent_version: str,
        visited: set[str],
        is_root: bool,
    ) -> None:
        for child in node.nodes:
            if not is_probed(child.id):
                continue
            coords = coordinates_for(self.tech, child.id, self.base_url, self.repo)
            if is_root:
                parent = coords.full_name
                parent_version = coords.version
            key = f"{coords.scope}{coords.name}{coords.version}-{parent}{parent_version}"
            if key in visited:
                continue
            visited.add(key)

            status = statuses.get(coords.url)
            if status is not None:
                record = status.clone()
                record.dep_relation = DIRECT if is_root else INDIRECT
                record.parent_name = parent
                record.parent_version = parent_version
                results.append(record)
            self._fill(child, statuses, results, parent, parent_version, visited, False)
