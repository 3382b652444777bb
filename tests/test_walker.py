"""Tests for promptscan.walker."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from promptscan.models import FileTreeNode
from promptscan.walker import DirectoryWalker


def _write(path: Path, content: str = "x\n") -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


@pytest.fixture
def repo(tmp_path: Path) -> Path:
    root = tmp_path / "repo"
    _write(root / "z.txt")
    _write(root / "a" / "b.txt")
    _write(root / "a" / "c" / "d.txt")
    _write(root / ".git" / "config")
    _write(root / "node_modules" / "pkg" / "index.js")
    _write(root / "gen" / "out.txt")
    return root


def _paths(node: FileTreeNode) -> list[str]:
    out = [node.path]
    for child in node.children or []:
        out.extend(_paths(child))
    return out


def test_list_files_is_depth_first_sorted_and_ignores(repo: Path) -> None:
    listing = DirectoryWalker(exclude_substrings=["gen/"]).list_files(repo, 100)

    assert listing.files == ["a/b.txt", "a/c/d.txt", "z.txt"]
    assert listing.truncated is False


def test_list_files_stops_at_budget(repo: Path) -> None:
    listing = DirectoryWalker().list_files(repo, 2)

    assert listing.files == ["a/b.txt", "a/c/d.txt"]
    assert listing.truncated is True


def test_build_tree_mirrors_hierarchy(repo: Path) -> None:
    listing = DirectoryWalker().build_tree(repo, max_depth=10, max_nodes=100)
    tree = listing.root

    assert listing.truncated is False
    assert tree.path == "."
    assert tree.type == "dir"
    assert [child.name for child in tree.children or []] == ["a", "gen", "z.txt"]
    a_dir = tree.children[0]
    assert [child.path for child in a_dir.children or []] == ["a/b.txt", "a/c"]
    leaf = a_dir.children[0]
    assert leaf.type == "file"
    assert leaf.children is None
    assert "a/c/d.txt" in _paths(tree)
    assert ".git" not in _paths(tree)
    assert tree.count() == 7


def test_build_tree_respects_node_budget(repo: Path) -> None:
    listing = DirectoryWalker().build_tree(repo, max_depth=10, max_nodes=3)

    assert listing.root.count() == 3
    assert listing.truncated is True


def test_build_tree_respects_depth_budget(repo: Path) -> None:
    listing = DirectoryWalker().build_tree(repo, max_depth=1, max_nodes=100)
    tree = listing.root

    assert listing.truncated is True
    names = [child.name for child in tree.children or []]
    assert names == ["a", "gen", "z.txt"]
    assert tree.children[0].children == []


def test_symlinks_are_not_followed(tmp_path: Path) -> None:
    root = tmp_path / "repo"
    _write(root / "pkg" / "mod.py")
    os.symlink(root, root / "pkg" / "loop")

    walker = DirectoryWalker()
    assert walker.list_files(root, 100).files == ["pkg/mod.py"]
    tree = walker.build_tree(root, max_depth=10, max_nodes=100).root
    assert "pkg/loop" not in _paths(tree)


def test_unreadable_directory_becomes_empty_dir(tmp_path: Path, monkeypatch) -> None:
    root = tmp_path / "repo"
    _write(root / "locked" / "secret.txt")
    _write(root / "open.txt")

    real_scandir = os.scandir

    def _scandir(path):
        if Path(path).name == "locked":
            raise PermissionError("denied")
        return real_scandir(path)

    monkeypatch.setattr("promptscan.walker.os.scandir", _scandir)

    walker = DirectoryWalker()
    tree = walker.build_tree(root, max_depth=10, max_nodes=100).root
    locked = tree.children[0]
    assert locked.name == "locked"
    assert locked.type == "dir"
    assert locked.children == []
    assert walker.list_files(root, 100).files == ["open.txt"]


def test_truncation_is_reported_per_call(repo: Path) -> None:
    walker = DirectoryWalker()

    small = walker.list_files(repo, 1)
    full = walker.list_files(repo, 100)
    pruned = walker.build_tree(repo, max_depth=10, max_nodes=1)
    whole = walker.build_tree(repo, max_depth=10, max_nodes=100)

    assert small.truncated is True
    assert full.truncated is False
    assert pruned.truncated is True
    assert whole.truncated is False
    assert not hasattr(walker, "truncated")
