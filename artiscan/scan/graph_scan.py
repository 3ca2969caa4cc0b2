"""Graph scan client: submit a flattened graph, poll for its results."""

import time

import httpx

from artiscan.config import ServerDetails
from artiscan.errors import HttpStatusError, ParseError, ScanTimeoutError
from artiscan.graph import GraphNode
from artiscan.http_client import create_client
from artiscan.utils.constants import DEFAULT_HTTP_RETRIES
from artiscan.utils.logging import logger

from .models import Issue, ScanResponse, severity_level

SCAN_GRAPH_ENDPOINT = "api/v1/scan/graph"


class GraphScanner:
    """Client for one scan service.

    ``scan`` blocks until the service reports the scan complete: 202 means
    still running, 200 carries the results.
    """

    def __init__(
        self,
        server: ServerDetails,
        poll_interval: float = 5.0,
        poll_attempts: int = 120,
        post_timeout: float = 120.0,
        retries: int = DEFAULT_HTTP_RETRIES,
        transport: httpx.BaseTransport | None = None,
    ):
        self.server = server
        self.base_url = server.require_xray()
        self.poll_interval = poll_interval
        self.poll_attempts = poll_attempts
        self.post_timeout = post_timeout
        self.retries = retries
        self.transport = transport

    def submit(self, client: httpx.Client, graph: GraphNode, project_key: str = "", watches: tuple[str, ...] = ()) -> str:
        params = {}
        if project_key:
            params["project"] = project_key
        if watches:
            params["watch"] = list(watches)
        response = client.post(
            f"{self.base_url}{SCAN_GRAPH_ENDPOINT}",
            json=graph.to_dict(),
            params=params,
            timeout=self.post_timeout,
        )
        if response.status_code not in (200, 201):
            raise HttpStatusError(
                f"scan graph request failed with HTTP {response.status_code}: {response.text[:500]}",
                response.status_code,
            )
        scan_id = response.json().get("scan_id")
        if not scan_id:
            raise ParseError("scan graph response carries no scan_id")
        return scan_id

    def wait_for_results(self, client: httpx.Client, scan_id: str, include_licenses: bool = True) -> dict:
        url = f"{self.base_url}{SCAN_GRAPH_ENDPOINT}/{scan_id}"
        params = {"include_vulnerabilities": "true"}
        if include_licenses:
            params["include_licenses"] = "true"
        for attempt in range(self.poll_attempts):
            response = client.get(url, params=params)
            if response.status_code == 200:
                return response.json()
            if response.status_code != 202:
                raise HttpStatusError(
                    f"getting results of scan {scan_id} failed with HTTP {response.status_code}",
                    response.status_code,
                )
            logger.debug(f"Scan {scan_id} still in progress (attempt {attempt + 1}/{self.poll_attempts})")
            time.sleep(self.poll_interval)
        raise ScanTimeoutError(f"scan {scan_id} did not complete after {self.poll_attempts} attempts")

    def scan(
        self,
        graph: GraphNode,
        technology: str = "",
        project_key: str = "",
        watches: tuple[str, ...] = (),
        include_licenses: bool = True,
    ) -> ScanResponse:
        logger.info(f"Scanning {len(graph.nodes)} {technology} dependencies")
        with create_client(self.server, retries=self.retries, transport=self.transport) as client:
            scan_id = self.submit(client, graph, project_key, watches)
            data = self.wait_for_results(client, scan_id, include_licenses)
        data.setdefault("scan_id", scan_id)
        return ScanResponse.from_dict(data, technology)


def _filter_issues(issues: list[Issue], min_level: int, fixable_only: bool) -> list[Issue]:
    kept = []
    for issue in issues:
        if fixable_only:
            issue.components = [c for c in issue.components if c.fixed_versions]
            if not issue.components:
                continue
        if issue.level >= min_level:
            kept.append(issue)
    return kept


def filter_results(response: ScanResponse, min_severity: str = "", fixable_only: bool = False) -> ScanResponse:
    """Drop issues below ``min_severity`` and, with ``fixable_only``, components without a fix."""
    if not min_severity and not fixable_only:
        return response
    min_level = severity_level(min_severity)
    response.violations = _filter_issues(response.violations, min_level, fixable_only)
    response.vulnerabilities = _filter_issues(response.vulnerabilities, min_level, fixable_only)
    return response
