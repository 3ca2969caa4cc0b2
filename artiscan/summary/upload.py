"""Upload summary: merges ``{"results": [...]}`` records into one file tree."""

from dataclasses import dataclass
from pathlib import Path

from .filetree import FileTree
from .markdown import MarkdownConfig, wrap_collapsible
from .store import load_json

UPLOAD_COMMAND = "upload"
UPLOAD_TITLE = "📁 Files uploaded to Artifactory by this workflow"
UI_TREE_URL = "{platform}ui/repos/tree/General/{target}/?projectKey={project}"


@dataclass
class UploadResult:
    source_path: str
    target_path: str
    rt_url: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> "UploadResult":
        return cls(
            source_path=data.get("sourcePath", ""),
            target_path=data.get("targetPath", ""),
            rt_url=data.get("rtUrl", ""),
        )

    def to_dict(self) -> dict:
        return {"sourcePath": self.source_path, "targetPath": self.target_path, "rtUrl": self.rt_url}


def upload_record(results: list[UploadResult]) -> dict:
    """Record payload for one upload invocation."""
    return {"results": [r.to_dict() for r in results]}


def merge_upload_results(files: list[Path]) -> list[UploadResult]:
    """Concatenate the results of every recorded upload, in file order."""
    merged: list[UploadResult] = []
    for path in files:
        content = load_json(path)
        merged.extend(UploadResult.from_dict(r) for r in content.get("results") or [])
    return merged


class UploadSummaryRenderer:
    """Renderer for the ``upload`` command store."""

    def __init__(self, config: MarkdownConfig, project_key: str = ""):
        self.config = config
        self.project_key = project_key

    def ui_url(self, target_path: str) -> str:
        return UI_TREE_URL.format(platform=self.config.platform_url, target=target_path, project=self.project_key)

    def build_tree(self, results: list[UploadResult]) -> FileTree:
        tree = FileTree()
        for result in results:
            url = self.ui_url(result.target_path) if self.config.extended else ""
            tree.add_file(result.target_path, url)
        return tree

    def render_body(self, results: list[UploadResult]) -> str:
        tree_str = str(self.build_tree(results))
        if not tree_str:
            return ""
        return "\n<pre>\n" + tree_str + "</pre>\n\n"

    def __call__(self, files: list[Path]) -> str:
        return wrap_collapsible(UPLOAD_TITLE, self.render_body(merge_upload_results(files)))
