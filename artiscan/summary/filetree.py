"""Prefix tree of uploaded paths, printed the way ``tree`` prints directories."""

from __future__ import annotations

from dataclasses import dataclass, field

from artiscan.utils.logging import logger

MAX_FILES_IN_TREE = 200

REPO_PREFIX = "📦 "
DIR_PREFIX = "📁 "
FILE_PREFIX = "📄 "

BRANCH = "├── "
LAST_BRANCH = "└── "
PIPE = "│   "
SPACE = "    "


@dataclass
class DirNode:
    name: str
    prefix: str
    sub_dirs: dict[str, DirNode] = field(default_factory=dict)
    files: dict[str, str] = field(default_factory=dict)

    def add(self, parts: list[str], url: str) -> bool:
        """Insert a file; False when it is already present."""
        if len(parts) == 1:
            if parts[0] in self.files:
                return False
            self.files[parts[0]] = url
            return True
        child = self.sub_dirs.get(parts[0])
        if child is None:
            child = DirNode(name=parts[0], prefix=DIR_PREFIX)
            self.sub_dirs[parts[0]] = child
        return child.add(parts[1:], url)

    def lines(self) -> list[str]:
        out = [self.prefix + self.name]
        dir_names = sorted(self.sub_dirs)
        for i, dir_name in enumerate(dir_names):
            last = i == len(dir_names) - 1 and not self.files
            head, tail = (LAST_BRANCH, SPACE) if last else (BRANCH, PIPE)
            sub_lines = self.sub_dirs[dir_name].lines()
            out.append(head + sub_lines[0])
            out.extend(tail + line for line in sub_lines[1:])

        file_names = sorted(self.files)
        for i, file_name in enumerate(file_names):
            head = LAST_BRANCH if i == len(file_names) - 1 else BRANCH
            url = self.files[file_name]
            if url:
                out.append(f"{head}<a href='{url}' target=\"_blank\">{file_name}</a>")
            else:
                out.append(f"{head}{FILE_PREFIX}{file_name}")
        return out


class FileTree:
    """Repositories at the top, directories below, files as leaves.

    Once more than ``max_files`` files are added the tree renders as an empty
    string rather than a truncated, misleading listing.
    """

    def __init__(self, max_files: int = MAX_FILES_IN_TREE):
        self.max_files = max_files
        self.repos: dict[str, DirNode] = {}
        self.size = 0
        self.exceeds_max = False

    def add_file(self, path: str, url: str = "") -> None:
        if self.size >= self.max_files:
            if not self.exceeds_max:
                logger.info("Exceeded maximum number of files in tree")
            self.exceeds_max = True
            return
        parts = [p for p in path.strip("/").split("/") if p]
        if len(parts) < 2:
            logger.debug(f"Ignoring upload target without a repository path: {path}")
            return
        repo = self.repos.get(parts[0])
        if repo is None:
            repo = DirNode(name=parts[0], prefix=REPO_PREFIX)
            self.repos[parts[0]] = repo
        if repo.add(parts[1:], url):
            self.size += 1

    def __str__(self) -> str:
        if self.exceeds_max:
            return ""
        return "".join("\n".join(self.repos[name].lines()) + "\n\n" for name in sorted(self.repos))
