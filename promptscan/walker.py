"""Bounded directory traversal producing a flat file list and a display tree."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Sequence

from .logging import get_logger
from .models import FileTreeNode

DEFAULT_IGNORE_DIRS = frozenset(
    {
        ".git",
        ".hg",
        ".svn",
        "node_modules",
        "__pycache__",
        ".next",
        ".venv",
        "venv",
        "dist",
        "build",
        ".pytest_cache",
        ".mypy_cache",
        ".idea",
        ".tox",
        ".promptscan",
        ".tmp-extractor",
    }
)

_EXCLUDED_FILES = frozenset({".DS_Store", "Thumbs.db"})

_logger = get_logger("walker")


@dataclass(frozen=True)
class FileListing:
    """Relative file paths plus whether the file budget cut the walk short."""

    files: List[str]
    truncated: bool = False


@dataclass(frozen=True)
class TreeListing:
    """Display tree plus whether a node or depth budget pruned it."""

    root: FileTreeNode
    truncated: bool = False


class DirectoryWalker:
    """Depth-first, lexicographically ordered walker shared by every scan stage.

    The walker holds configuration only; every call reports its own
    truncation so one instance can serve concurrent scans.
    """

    def __init__(
        self,
        ignore_dirs: Iterable[str] = DEFAULT_IGNORE_DIRS,
        exclude_substrings: Sequence[str] = (),
    ) -> None:
        self.ignore_dirs = frozenset(ignore_dirs)
        self.exclude_substrings = tuple(item for item in exclude_substrings if item)

    def list_files(self, root: str | Path, max_files: int) -> FileListing:
        """Return up to ``max_files`` file paths relative to ``root``."""
        root_path = Path(root)
        out: List[str] = []
        truncated = [False]

        def _walk(directory: Path, rel_dir: str) -> None:
            for entry in self._entries(directory):
                if len(out) >= max_files:
                    truncated[0] = True
                    return
                rel_path = f"{rel_dir}/{entry.name}" if rel_dir else entry.name
                if self._is_ignored(entry, rel_path):
                    continue
                if entry.is_dir(follow_symlinks=False):
                    _walk(Path(entry.path), rel_path)
                elif entry.is_file(follow_symlinks=False):
                    out.append(rel_path)

        _walk(root_path, "")
        return FileListing(files=out, truncated=truncated[0])

    def build_tree(self, root: str | Path, max_depth: int, max_nodes: int) -> TreeListing:
        """Return the directory hierarchy under ``root`` within the given budgets.

        The root node is not counted against ``max_nodes``. Directories at
        ``max_depth`` are emitted without descending into them.
        """
        root_path = Path(root)
        remaining = [max_nodes]
        truncated = [False]

        def _walk(directory: Path, rel_dir: str, depth: int) -> List[FileTreeNode]:
            children: List[FileTreeNode] = []
            for entry in self._entries(directory):
                if remaining[0] <= 0:
                    truncated[0] = True
                    break
                rel_path = f"{rel_dir}/{entry.name}" if rel_dir else entry.name
                if self._is_ignored(entry, rel_path):
                    continue
                if entry.is_dir(follow_symlinks=False):
                    remaining[0] -= 1
                    node = FileTreeNode(name=entry.name, path=rel_path, type="dir", children=[])
                    if depth + 1 < max_depth:
                        node.children = _walk(Path(entry.path), rel_path, depth + 1)
                    else:
                        truncated[0] = True
                    children.append(node)
                elif entry.is_file(follow_symlinks=False):
                    remaining[0] -= 1
                    children.append(FileTreeNode(name=entry.name, path=rel_path, type="file"))
            return children

        root_node = FileTreeNode(name=root_path.name or str(root_path), path=".", type="dir", children=[])
        if max_depth > 0:
            root_node.children = _walk(root_path, "", 0)
        return TreeListing(root=root_node, truncated=truncated[0])

    def _is_ignored(self, entry: os.DirEntry, rel_path: str) -> bool:
        if entry.name in self.ignore_dirs or entry.name in _EXCLUDED_FILES:
            return True
        return any(fragment in rel_path for fragment in self.exclude_substrings)

    @staticmethod
    def _entries(directory: Path) -> List[os.DirEntry]:
        try:
            with os.scandir(directory) as iterator:
                return sorted(iterator, key=lambda entry: entry.name)
        except OSError as exc:
            _logger.debug("Unable to open directory %s: %s", directory, exc)
            return []


__all__ = ["DEFAULT_IGNORE_DIRS", "DirectoryWalker", "FileListing", "TreeListing"]
