"""Gradle tree builder backed by the gradle-dep-tree init-script plugin."""

import platform

from artiscan.utils.constants import GAV_PREFIX
from artiscan.utils.logging import logger
from artiscan.utils.temp_manager import TempManager, scratch_dir

from .base import BaseTreeBuilder, BuildResult, TreeParams
from .java import parse_dep_tree_output
from .plugins import GRADLE_DEP_TREE, ensure_plugin
from .resolver import run_resolver
from .settings import gradle_init_script, gradle_repository

IS_WINDOWS = platform.system() == "Windows"

INIT_FILE = "gradledeptree.init"
OUTPUT_FILE = "gradledeptree.out"


class GradleTreeBuilder(BaseTreeBuilder):
    """Gradle projects, one tree per build file."""

    @property
    def tech_name(self) -> str:
        return "gradle"

    @property
    def package_type_identifier(self) -> str:
        return GAV_PREFIX

    def executable(self, params: TreeParams) -> str:
        # The wrapper is only looked up in the project root
        if params.use_wrapper:
            wrapper = params.working_dir / ("gradlew.bat" if IS_WINDOWS else "gradlew")
            if wrapper.is_file():
                return str(wrapper)
            logger.debug(f"No Gradle wrapper in {params.working_dir}, using 'gradle' from PATH")
        return "gradle"

    def build(self, params: TreeParams) -> BuildResult:
        jar = ensure_plugin(GRADLE_DEP_TREE)
        with scratch_dir("artiscan-gradle") as scratch:
            repo_block = gradle_repository(params.server, params.deps_repo)
            if repo_block:
                logger.debug(f"Dependencies will be resolved from the '{params.deps_repo}' repository")
            init_file = TempManager.write_private_file(scratch, INIT_FILE, gradle_init_script(str(jar), repo_block))
            output_file = scratch / OUTPUT_FILE
            run_resolver(
                [
                    self.executable(params),
                    "clean",
                    "generateDepTrees",
                    "-I",
                    str(init_file),
                    "-q",
                    f"-Dcom.jfrog.depsTreeOutputFile={output_file}",
                    "-Dcom.jfrog.includeAllBuildFiles=true",
                ],
                params.working_dir,
            )
            modules = parse_dep_tree_output(output_file)
        return self.trees_from_maps(modules)
