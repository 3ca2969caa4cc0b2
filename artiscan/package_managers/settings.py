"""Resolver settings templates pointing native tools at a remote repository."""

import base64
from urllib.parse import urlsplit
from xml.sax.saxutils import escape

from artiscan.config import ServerDetails
from artiscan.security import url_with_credentials

ARTISCAN_SERVER_ID = "artiscan"

MAVEN_SETTINGS_TEMPLATE = """<?xml version="1.0" encoding="UTF-8"?>
<settings xmlns="http://maven.apache.org/SETTINGS/1.2.0"
          xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance"
          xsi:schemaLocation="http://maven.apache.org/SETTINGS/1.2.0 https://maven.apache.org/xsd/settings-1.2.0.xsd">
  <servers>
    <server>
      <id>{server_id}</id>
      <username>{user}</username>
      <password>{password}</password>
    </server>
  </servers>
  <mirrors>
    <mirror>
      <id>{server_id}</id>
      <name>{repo}</name>
      <url>{url}</url>
      <mirrorOf>*</mirrorOf>
    </mirror>
  </mirrors>
</settings>
"""

GRADLE_INIT_TEMPLATE = """initscript {{
    repositories {{ {releases_repo}
        mavenCentral()
    }}
    dependencies {{
        classpath files('{plugin_jar}')
    }}
}}

allprojects {{
    repositories {{ {deps_repo}
    }}
    apply plugin: com.jfrog.GradleDepTree
}}
"""

GRADLE_REPOSITORY_TEMPLATE = """
        maven {{
            url "{url}/{repo}"
            credentials {{
                username = '{user}'
                password = '{password}'
            }}
        }}"""

NUGET_CONFIG_TEMPLATE = """<?xml version="1.0" encoding="utf-8"?>
<configuration>
  <packageSources>
    <clear />
    <add key="{source}" value="{url}" protocolVersion="3" />
  </packageSources>
  <packageSourceCredentials>
    <{source}>
      <add key="Username" value="{user}" />
      <add key="ClearTextPassword" value="{password}" />
    </{source}>
  </packageSourceCredentials>
</configuration>
"""


def maven_settings(server: ServerDetails, repo: str) -> str:
    """settings.xml mirroring every repository through ``repo``."""
    user, secret = server.resolver_credentials()
    return MAVEN_SETTINGS_TEMPLATE.format(
        server_id=ARTISCAN_SERVER_ID,
        user=escape(user),
        password=escape(secret),
        repo=escape(repo),
        url=escape(f"{server.require_artifactory()}{repo}"),
    )


def gradle_repository(server: ServerDetails | None, repo: str) -> str:
    """``maven { ... }`` block for the init script, empty without a repo."""
    if not repo or server is None or server.is_empty():
        return ""
    user, secret = server.resolver_credentials()
    return GRADLE_REPOSITORY_TEMPLATE.format(
        url=server.require_artifactory().rstrip("/"),
        repo=repo,
        user=user.replace("'", "\\'"),
        password=secret.replace("'", "\\'"),
    )


def gradle_init_script(plugin_jar: str, deps_repo_block: str, releases_repo_block: str = "") -> str:
    # Groovy string literals need doubled backslashes on Windows paths
    return GRADLE_INIT_TEMPLATE.format(
        plugin_jar=plugin_jar.replace("\\", "\\\\"),
        deps_repo=deps_repo_block,
        releases_repo=releases_repo_block,
    )


def npm_registry_url(server: ServerDetails, repo: str) -> str:
    return f"{server.require_artifactory()}api/npm/{repo}/"


def _registry_key(registry_url: str) -> str:
    """``//host/path/`` form npm and yarn use to scope auth entries."""
    parts = urlsplit(registry_url)
    return f"//{parts.netloc}{parts.path}"


def npmrc(server: ServerDetails, repo: str) -> str:
    registry = npm_registry_url(server, repo)
    key = _registry_key(registry)
    lines = [f"registry={registry}"]
    if server.access_token:
        lines.append(f"{key}:_authToken={server.access_token}")
    else:
        user, secret = server.resolver_credentials()
        ident = base64.b64encode(f"{user}:{secret}".encode("utf-8")).decode("ascii")
        lines.append(f"{key}:_auth={ident}")
    lines.append(f"{key}:always-auth=true")
    return "\n".join(lines) + "\n"


def yarnrc_v1(server: ServerDetails, repo: str) -> str:
    """Classic ``.yarnrc`` reuses the npm auth keys."""
    registry = npm_registry_url(server, repo)
    key = _registry_key(registry)
    lines = [f'registry "{registry}"']
    if server.access_token:
        lines.append(f'"{key}:_authToken" "{server.access_token}"')
    else:
        user, secret = server.resolver_credentials()
        ident = base64.b64encode(f"{user}:{secret}".encode("utf-8")).decode("ascii")
        lines.append(f'"{key}:_auth" "{ident}"')
    return "\n".join(lines) + "\n"


def yarnrc_berry(server: ServerDetails, repo: str) -> str:
    registry = npm_registry_url(server, repo)
    lines = [f'npmRegistryServer: "{registry}"', "npmAlwaysAuth: true"]
    if server.access_token:
        lines.append(f'npmAuthToken: "{server.access_token}"')
    else:
        user, secret = server.resolver_credentials()
        lines.append(f'npmAuthIdent: "{user}:{secret}"')
    return "\n".join(lines) + "\n"


def pypi_index_url(server: ServerDetails, repo: str, with_credentials: bool = True) -> str:
    """``<artifactory>api/pypi/<repo>/simple``, optionally with userinfo."""
    url = f"{server.require_artifactory()}api/pypi/{repo}/simple"
    if not with_credentials or not server.has_credentials():
        return url
    user, secret = server.resolver_credentials()
    return url_with_credentials(url, user, secret)


def go_proxy(server: ServerDetails, repo: str) -> str:
    """GOPROXY value resolving through ``repo`` and falling back to direct."""
    url = f"{server.require_artifactory()}api/go/{repo}"
    if server.has_credentials():
        user, secret = server.resolver_credentials()
        url = url_with_credentials(url, user, secret)
    return f"{url}|direct"


def nuget_config(server: ServerDetails, repo: str) -> str:
    user, secret = server.resolver_credentials()
    return NUGET_CONFIG_TEMPLATE.format(
        source=ARTISCAN_SERVER_ID,
        url=escape(f"{server.require_artifactory()}api/nuget/v3/{repo}"),
        user=escape(user, {'"': "&quot;"}),
        password=escape(secret, {'"': "&quot;"}),
    )
