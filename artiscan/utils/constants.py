"""Centralized constants for artiscan.

Single source of truth for file names, environment variable names and
package-type identifiers used across components.
"""

# ============================================================================
# ENVIRONMENT
# ============================================================================

ENV_HOME_DIR = "ARTISCAN_HOME_DIR"
ENV_SUMMARY_OUTPUT_DIR = "ARTISCAN_SUMMARY_OUTPUT_DIR"
ENV_DEPENDENCIES_DIR = "ARTISCAN_DEPENDENCIES_DIR"
ENV_BUILD_NAME = "ARTISCAN_BUILD_NAME"
ENV_BUILD_NUMBER = "ARTISCAN_BUILD_NUMBER"
ENV_PROJECT = "ARTISCAN_PROJECT"
ENV_URL = "ARTISCAN_URL"
ENV_ARTIFACTORY_URL = "ARTISCAN_ARTIFACTORY_URL"
ENV_XRAY_URL = "ARTISCAN_XRAY_URL"
ENV_USER = "ARTISCAN_USER"
ENV_PASSWORD = "ARTISCAN_PASSWORD"
ENV_ACCESS_TOKEN = "ARTISCAN_ACCESS_TOKEN"
ENV_RELEASES_URL = "ARTISCAN_RELEASES_URL"

# ============================================================================
# DIRECTORIES AND FILES
# ============================================================================

HOME_DIR_NAME = ".artiscan"
DEPENDENCIES_DIR_NAME = "dependencies"
LOCKS_DIR_NAME = "locks"
LOGS_DIR_NAME = "logs"
ERROR_LOG_NAME = "error.log"

# Per-project resolver configuration: <project>/.artiscan/projects/<tech>.yaml
PROJECT_CONFIG_DIR = ".artiscan/projects"

# ============================================================================
# LOCK PROTOCOL
# ============================================================================

LOCK_FILE_PREFIX = "artiscan.conf.lck"
LOCK_TOKEN_SEGMENTS = 5
LOCK_MAX_RETRIES = 1200
LOCK_RETRY_INTERVAL = 0.1

# ============================================================================
# SUMMARY STORE
# ============================================================================

SUMMARY_BASE_DIR_NAME = "artiscan-command-summary"
SUMMARY_MARKDOWN_FILE = "markdown.md"
SUMMARY_DATA_SUFFIX = "-data"
SUMMARY_SARIF_SUFFIX = ".sarif"
SUMMARY_LOCK_DIR_NAME = ".lock"

# ============================================================================
# PACKAGE TYPE IDENTIFIERS
# ============================================================================

GAV_PREFIX = "gav://"
NPM_PREFIX = "npm://"
GO_PREFIX = "go://"
PYPI_PREFIX = "pypi://"
NUGET_PREFIX = "nuget://"

# Go toolchain node appended by the go builder; not a module a Go remote serves
GO_TOOLCHAIN_PREFIX = GO_PREFIX + "github.com/golang/go:v"

# ============================================================================
# NETWORK DEFAULTS
# ============================================================================

DEFAULT_PARALLEL_REQUESTS = 10
DEFAULT_HEAD_TIMEOUT = 10.0
DEFAULT_GET_TIMEOUT = 60.0
DEFAULT_HTTP_RETRIES = 3

# ============================================================================
# RESOLVER HELPERS
# ============================================================================

DEFAULT_RELEASES_URL = "https://releases.jfrog.io/artifactory/oss-release-local"
PLUGINS_LOCK_NAME = "dependencies"
CONFIG_BACKUP_SUFFIX = ".artiscan.bak"
