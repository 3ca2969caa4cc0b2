"""Cache of resolver helper jars (maven-dep-tree, gradle-dep-tree).

Jars live in ``<dependencies dir>/<name>/<version>/<name>-<version>.jar``.
Downloads happen under the cross-process lock so concurrent CI steps never
see a half-written jar.
"""

import os
from dataclasses import dataclass
from pathlib import Path

import httpx

from artiscan.config import get_dependencies_dir, get_locks_dir
from artiscan.errors import HttpStatusError
from artiscan.http_client import create_client
from artiscan.utils.constants import DEFAULT_RELEASES_URL, ENV_RELEASES_URL, PLUGINS_LOCK_NAME
from artiscan.utils.lock import lock_dir
from artiscan.utils.logging import logger


@dataclass(frozen=True)
class PluginSpec:
    name: str
    version: str
    group_path: str = "com/jfrog"

    @property
    def file_name(self) -> str:
        return f"{self.name}-{self.version}.jar"

    @property
    def remote_path(self) -> str:
        return f"{self.group_path}/{self.name}/{self.version}/{self.file_name}"


MAVEN_DEP_TREE = PluginSpec("maven-dep-tree", "1.0.0")
GRADLE_DEP_TREE = PluginSpec("gradle-dep-tree", "2.2.0")


def plugin_path(spec: PluginSpec) -> Path:
    return get_dependencies_dir() / spec.name / spec.version / spec.file_name


def releases_url() -> str:
    return os.environ.get(ENV_RELEASES_URL, DEFAULT_RELEASES_URL).rstrip("/")


def ensure_plugin(spec: PluginSpec, transport: httpx.BaseTransport | None = None) -> Path:
    """Path of the cached jar, downloading it first when missing."""
    target = plugin_path(spec)
    if target.is_file():
        return target

    with lock_dir(get_locks_dir(PLUGINS_LOCK_NAME)):
        # Another process may have finished the download while we waited
        if target.is_file():
            return target
        target.parent.mkdir(parents=True, exist_ok=True)
        url = f"{releases_url()}/{spec.remote_path}"
        logger.info(f"Downloading {spec.file_name} from {url}")
        partial = target.with_name(f".{target.name}.part")
        with create_client(transport=transport) as client:
            with client.stream("GET", url) as response:
                if response.status_code != 200:
                    raise HttpStatusError(
                        f"failed downloading {spec.file_name} from {url}: HTTP {response.status_code}",
                        response.status_code,
                    )
                with open(partial, "wb") as f:
                    for chunk in response.iter_bytes():
                        f.write(chunk)
        os.replace(partial, target)
    return target
