"""Markdown presentation settings and shared fragments."""

from dataclasses import dataclass

import httpx

from artiscan.http_client import create_client
from artiscan.utils.logging import logger

EXTENDED_SUMMARY_LANDING_PAGE = "https://jfrog.com/help/access?xinfo:appid=csh-gen-gitbook"
FOOTER_ENDPOINT = "ui/api/v1/system/auth/screen/footer"


@dataclass(frozen=True)
class MarkdownConfig:
    """Presentation flags for rendered summaries.

    ``extended`` only decides whether entries become links; it never changes
    which entries are emitted.
    """

    extended: bool = False
    platform_url: str = ""
    platform_major_version: int = 0

    @classmethod
    def create(cls, platform_url: str, extended: bool, platform_major_version: int = 0) -> "MarkdownConfig":
        if platform_url and not platform_url.endswith("/"):
            platform_url += "/"
        return cls(extended=extended, platform_url=platform_url, platform_major_version=platform_major_version)


def check_extended_summary_entitled(platform_url: str, transport: httpx.BaseTransport | None = None, timeout: float = 5.0) -> bool:
    """Ask the platform footer endpoint whether this is an enterprise installation."""
    parsed = httpx.URL(platform_url)
    if not parsed.is_absolute_url:
        raise ValueError(f"invalid server URL: {platform_url}")
    if not platform_url.endswith("/"):
        platform_url += "/"
    with create_client(timeout=timeout, transport=transport) as client:
        response = client.get(f"{platform_url}{FOOTER_ENDPOINT}")
    if response.status_code != 200:
        logger.debug(f"Footer probe returned HTTP {response.status_code}, using the basic summary")
        return False
    try:
        body = response.json()
    except ValueError:
        logger.debug("Footer probe returned a non-JSON body, using the basic summary")
        return False
    if not isinstance(body, dict):
        logger.debug("Footer probe returned unexpected JSON, using the basic summary")
        return False
    platform_id = body.get("platformId", "")
    return "enterprise" in str(platform_id).lower()


def probe_markdown_config(platform_url: str, platform_major_version: int = 0, transport: httpx.BaseTransport | None = None) -> MarkdownConfig:
    """Build the config once at startup. Network trouble yields a basic config."""
    if not platform_url:
        return MarkdownConfig()
    try:
        extended = check_extended_summary_entitled(platform_url, transport=transport)
    except httpx.HTTPError as e:
        logger.warning(f"Could not determine summary entitlement for {platform_url}: {e}")
        extended = False
    return MarkdownConfig.create(platform_url, extended, platform_major_version)


def wrap_collapsible(title: str, body: str) -> str:
    """Collapsible section used around every rendered summary."""
    return f"<details open><summary> <h4> {title} </h4></summary>{body}</details>"


def markdown_table(headers: list[str], rows: list[list[str]]) -> str:
    """Plain GitHub-flavored table; pipes inside cells are escaped."""

    def cell(value: str) -> str:
        return str(value).replace("|", "\\|").replace("\n", "<br>")

    lines = [
        "| " + " | ".join(cell(h) for h in headers) + " |",
        "|" + "|".join(" --- " for _ in headers) + "|",
    ]
    for row in rows:
        lines.append("| " + " | ".join(cell(v) for v in row) + " |")
    return "\n".join(lines) + "\n"
