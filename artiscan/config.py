"""Server details, directories and per-project resolver configuration."""

import os
from dataclasses import dataclass
from pathlib import Path

import yaml

from artiscan.errors import ConfigMissingError
from artiscan.utils.constants import (
    DEPENDENCIES_DIR_NAME,
    ENV_ACCESS_TOKEN,
    ENV_ARTIFACTORY_URL,
    ENV_BUILD_NAME,
    ENV_BUILD_NUMBER,
    ENV_DEPENDENCIES_DIR,
    ENV_HOME_DIR,
    ENV_PASSWORD,
    ENV_PROJECT,
    ENV_SUMMARY_OUTPUT_DIR,
    ENV_URL,
    ENV_USER,
    ENV_XRAY_URL,
    HOME_DIR_NAME,
    LOCKS_DIR_NAME,
    LOGS_DIR_NAME,
    PROJECT_CONFIG_DIR,
)
from artiscan.utils.logging import logger


def _with_slash(url: str) -> str:
    if url and not url.endswith("/"):
        return url + "/"
    return url


@dataclass
class ServerDetails:
    """Platform URL plus credentials.

    ``url`` is the platform root (``https://host/``). The Artifactory and Xray
    URLs default to ``<url>artifactory/`` and ``<url>xray/``.
    """

    url: str = ""
    artifactory_url: str = ""
    xray_url: str = ""
    user: str = ""
    password: str = ""
    access_token: str = ""

    def __post_init__(self):
        self.url = _with_slash(self.url)
        if self.url and not self.artifactory_url:
            self.artifactory_url = self.url + "artifactory/"
        if self.url and not self.xray_url:
            self.xray_url = self.url + "xray/"
        self.artifactory_url = _with_slash(self.artifactory_url)
        self.xray_url = _with_slash(self.xray_url)

    @classmethod
    def from_env(cls) -> "ServerDetails":
        return cls(
            url=os.environ.get(ENV_URL, ""),
            artifactory_url=os.environ.get(ENV_ARTIFACTORY_URL, ""),
            xray_url=os.environ.get(ENV_XRAY_URL, ""),
            user=os.environ.get(ENV_USER, ""),
            password=os.environ.get(ENV_PASSWORD, ""),
            access_token=os.environ.get(ENV_ACCESS_TOKEN, ""),
        )

    def is_empty(self) -> bool:
        return not (self.url or self.artifactory_url or self.xray_url)

    def has_credentials(self) -> bool:
        return bool(self.access_token or (self.user and self.password))

    def resolver_credentials(self) -> tuple[str, str]:
        """(user, secret) pair for settings files. Tokens win over passwords."""
        secret = self.access_token or self.password
        if not self.user and not secret:
            raise ConfigMissingError(
                f"either username/password or access token must be set for {self.url or self.artifactory_url}"
            )
        return self.user, secret

    def auth_headers(self) -> dict[str, str]:
        if self.access_token:
            return {"Authorization": f"Bearer {self.access_token}"}
        return {}

    def basic_auth(self) -> tuple[str, str] | None:
        if not self.access_token and self.user:
            return (self.user, self.password)
        return None

    def require_artifactory(self) -> str:
        if not self.artifactory_url:
            raise ConfigMissingError(
                f"Artifactory URL is not configured. Set {ENV_URL} or {ENV_ARTIFACTORY_URL}."
            )
        return self.artifactory_url

    def require_xray(self) -> str:
        if not self.xray_url:
            raise ConfigMissingError(f"Xray URL is not configured. Set {ENV_URL} or {ENV_XRAY_URL}.")
        return self.xray_url


@dataclass
class RepositoryConfig:
    """Resolver repository read from ``.artiscan/projects/<tech>.yaml``."""

    repo: str
    source: Path | None = None


def get_home_dir() -> Path:
    override = os.environ.get(ENV_HOME_DIR)
    if override:
        return Path(override)
    return Path.home() / HOME_DIR_NAME


def get_locks_dir(name: str) -> Path:
    return get_home_dir() / LOCKS_DIR_NAME / name


def get_logs_dir() -> Path:
    return get_home_dir() / LOGS_DIR_NAME


def get_dependencies_dir() -> Path:
    override = os.environ.get(ENV_DEPENDENCIES_DIR)
    if override:
        return Path(override)
    return get_home_dir() / DEPENDENCIES_DIR_NAME


def get_summary_output_dir() -> Path | None:
    """Parent of the summary store, or None when recording is disabled."""
    value = os.environ.get(ENV_SUMMARY_OUTPUT_DIR)
    return Path(value) if value else None


def get_build_provenance() -> dict[str, str]:
    """Build name/number/project from the environment, only the ones set."""
    provenance = {
        "build_name": os.environ.get(ENV_BUILD_NAME, ""),
        "build_number": os.environ.get(ENV_BUILD_NUMBER, ""),
        "project": os.environ.get(ENV_PROJECT, ""),
    }
    return {k: v for k, v in provenance.items() if v}


def get_project_config_path(tech: str, project_dir: Path) -> Path | None:
    """Find ``.artiscan/projects/<tech>.yaml`` in the project or any parent."""
    current = project_dir.resolve()
    while True:
        for suffix in (".yaml", ".yml"):
            candidate = current / PROJECT_CONFIG_DIR / f"{tech}{suffix}"
            if candidate.is_file():
                return candidate
        if current == current.parent:
            return None
        current = current.parent


def load_resolver_config(tech: str, project_dir: Path) -> RepositoryConfig | None:
    """Read ``resolver.repo`` for a technology; other resolver keys are ignored."""
    path = get_project_config_path(tech, project_dir)
    if path is None:
        return None
    with open(path, encoding="utf-8") as f:
        content = yaml.safe_load(f) or {}
    resolver = content.get("resolver") or {}
    repo = resolver.get("repo")
    if not repo:
        logger.debug(f"{path} has no resolver.repo entry")
        return None
    logger.debug(f"Using resolver config from {path}")
    return RepositoryConfig(repo=str(repo), source=path)
