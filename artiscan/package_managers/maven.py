"""Maven tree builder backed by the maven-dep-tree plugin."""

import platform
from pathlib import Path

from artiscan.utils.constants import GAV_PREFIX
from artiscan.utils.temp_manager import TempManager, scratch_dir

from .base import BaseTreeBuilder, BuildResult, TreeParams
from .java import parse_dep_tree_output
from .plugins import MAVEN_DEP_TREE, ensure_plugin
from .resolver import run_resolver
from .settings import maven_settings

IS_WINDOWS = platform.system() == "Windows"

INSTALL_PLUGIN_GOAL = "org.apache.maven.plugins:maven-install-plugin:2.5.2:install-file"
TREE_GOAL = f"com.jfrog:{MAVEN_DEP_TREE.name}:{MAVEN_DEP_TREE.version}:tree"
OUTPUT_FILE = "mavendeptree.out"


def local_plugin_installed() -> bool:
    """True when the plugin already sits in the local ~/.m2 repository."""
    repo = Path.home() / ".m2" / "repository" / MAVEN_DEP_TREE.remote_path
    return repo.is_file()


class MavenTreeBuilder(BaseTreeBuilder):
    """Maven projects (pom.xml), one tree per module."""

    @property
    def tech_name(self) -> str:
        return "maven"

    @property
    def package_type_identifier(self) -> str:
        return GAV_PREFIX

    def executable(self, params: TreeParams) -> str:
        if params.use_wrapper:
            wrapper = params.working_dir / ("mvnw.cmd" if IS_WINDOWS else "mvnw")
            if wrapper.is_file():
                return str(wrapper)
        return "mvn"

    def build(self, params: TreeParams) -> BuildResult:
        mvn = self.executable(params)
        with scratch_dir("artiscan-maven") as scratch:
            base_args = [mvn, "-B"]
            if params.resolves_through_server:
                settings = TempManager.write_private_file(
                    scratch, "settings.xml", maven_settings(params.server, params.deps_repo)
                )
                base_args += ["-s", str(settings)]

            if not local_plugin_installed():
                jar = ensure_plugin(MAVEN_DEP_TREE)
                run_resolver([*base_args, INSTALL_PLUGIN_GOAL, f"-Dfile={jar}"], params.working_dir)

            output_file = scratch / OUTPUT_FILE
            run_resolver([*base_args, TREE_GOAL, f"-DdepsTreeOutputFile={output_file}"], params.working_dir)
            modules = parse_dep_tree_output(output_file)
        return self.trees_from_maps(modules)
