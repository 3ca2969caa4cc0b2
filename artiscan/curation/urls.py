"""Canonical id -> download URL translation for curation probes.

Each formula points at the file a native client would fetch through the
remote repository, which is exactly where a curation policy intercepts.
"""

from dataclasses import dataclass

from artiscan.errors import UnsupportedTechnologyError
from artiscan.utils.constants import GAV_PREFIX, GO_PREFIX, NPM_PREFIX


@dataclass(frozen=True)
class PackageCoordinates:
    url: str
    name: str
    version: str
    scope: str = ""

    @property
    def full_name(self) -> str:
        return f"{self.scope}/{self.name}" if self.scope else self.name


def encode_go_module(module: str) -> str:
    """Go proxy case encoding: uppercase letters become ``!`` + lowercase."""
    result = []
    for char in module:
        if char.isupper():
            result.append("!")
            result.append(char.lower())
        else:
            result.append(char)
    return "".join(result)


def npm_coordinates(node_id: str, base_url: str, repo: str) -> PackageCoordinates:
    """``npm://[@scope/]name:version`` -> ``<url>/api/npm/<repo>/[@scope/]name/-/name-version.tgz``."""
    name, _, version = node_id.removeprefix(NPM_PREFIX).partition(":")
    scope = ""
    if "/" in name:
        scope, name = name.split("/", 1)
    url = ""
    if base_url:
        root = base_url.rstrip("/")
        if scope:
            url = f"{root}/api/npm/{repo}/{scope}/{name}/-/{name}-{version}.tgz"
        else:
            url = f"{root}/api/npm/{repo}/{name}/-/{name}-{version}.tgz"
    return PackageCoordinates(url=url, name=name, version=version, scope=scope)


def maven_coordinates(node_id: str, base_url: str, repo: str) -> PackageCoordinates:
    """``gav://group:artifact:version`` -> Maven layout path of the artifact's jar."""
    parts = node_id.removeprefix(GAV_PREFIX).split(":")
    group = parts[0]
    artifact = parts[1] if len(parts) > 1 else ""
    version = parts[2] if len(parts) > 2 else ""
    url = ""
    if base_url:
        group_path = group.replace(".", "/")
        url = f"{base_url.rstrip('/')}/{repo}/{group_path}/{artifact}/{version}/{artifact}-{version}.jar"
    return PackageCoordinates(url=url, name=f"{group}:{artifact}", version=version)


def go_coordinates(node_id: str, base_url: str, repo: str) -> PackageCoordinates:
    """``go://module:version`` -> ``<url>/api/go/<repo>/<module>/@v/<version>.zip``."""
    module, _, version = node_id.removeprefix(GO_PREFIX).rpartition(":")
    if not module:
        module, version = version, ""
    url = ""
    if base_url:
        url = f"{base_url.rstrip('/')}/api/go/{repo}/{encode_go_module(module)}/@v/{version}.zip"
    return PackageCoordinates(url=url, name=module, version=version)


_FORMULAS = {
    "npm": (npm_coordinates, "npm"),
    "yarn": (npm_coordinates, "npm"),
    "maven": (maven_coordinates, "maven"),
    "gradle": (maven_coordinates, "maven"),
    "go": (go_coordinates, "go"),
}

CURATION_SUPPORTED_TECHS = frozenset(_FORMULAS)


def package_type(tech: str) -> str:
    if tech not in _FORMULAS:
        raise UnsupportedTechnologyError(tech)
    return _FORMULAS[tech][1]


def coordinates_for(tech: str, node_id: str, base_url: str = "", repo: str = "") -> PackageCoordinates:
    """Resolve a canonical id of ``tech`` into its download URL and display name."""
    if tech not in _FORMULAS:
        raise UnsupportedTechnologyError(tech)
    formula, _pkg_type = _FORMULAS[tech]
    return formula(node_id, base_url, repo)
