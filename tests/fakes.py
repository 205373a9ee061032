from __future__ import annotations

import subprocess
from pathlib import Path

from git_repository import GitCommandError, TreeEntry

MB = 1024**2


class FakeRepository:
    """In-memory RepositoryQueries with explicit refs, trees and history."""

    def __init__(
        self,
        refs: dict[str, str],
        trees: dict[str, list[TreeEntry]],
        history: list[str] | None = None,
        aliases: dict[str, str] | None = None,
    ) -> None:
        self.refs = refs
        self.trees = trees
        self.history = history if history is not None else list(trees)
        self.aliases = aliases or {}
        self.failing: set[str] = set()
        self.listed_revisions: list[str] = []

    def _tree(self, revision: str) -> list[TreeEntry]:
        revision = self.refs.get(revision, revision)
        if revision in self.failing or revision not in self.trees:
            raise GitCommandError(["git", "ls-tree", revision], "fatal: not a tree object", 128)
        return self.trees[revision]

    def list_refs(self) -> list[str]:
        return [name for name in self.refs if name != "HEAD"]

    def resolve_ref(self, name: str) -> str | None:
        if name in self.aliases:
            return self.aliases[name]
        if name in self.refs:
            return name
        return None

    def list_paths(self, revision: str) -> list[str]:
        return [entry.path for entry in self._tree(revision)]

    def list_tree_entries(self, revision: str) -> list[TreeEntry]:
        self.listed_revisions.append(revision)
        return list(self._tree(revision))

    def list_revisions(self) -> list[str]:
        return list(self.history)


def example_repository() -> FakeRepository:
    """`main` tip has big.bin (2 MB); an older commit had old.bin (3 MB)."""
    old = TreeEntry(sha="b" * 40, path="old.bin", size=3 * MB)
    big = TreeEntry(sha="a" * 40, path="big.bin", size=2 * MB)
    small = TreeEntry(sha="c" * 40, path="README", size=120)
    return FakeRepository(
        refs={"refs/heads/main": "c2"},
        trees={"c1": [old, small], "c2": [big, small]},
        history=["c2", "c1"],
        aliases={"HEAD": "refs/heads/main", "main": "refs/heads/main"},
    )


def git(repo: Path, *args: str) -> str:
    command = [
        "git",
        "-c",
        "user.name=Megethos Tests",
        "-c",
        "user.email=tests@example.com",
        "-c",
        "commit.gpgsign=false",
        "-c",
        "core.autocrlf=false",
        *args,
    ]
    result = subprocess.run(command, cwd=repo, capture_output=True, text=True, check=True)
    return result.stdout


def init_repo(repo: Path) -> None:
    repo.mkdir(parents=True, exist_ok=True)
    git(repo, "init", "-q")
    git(repo, "symbolic-ref", "HEAD", "refs/heads/main")


def commit_files(repo: Path, files: dict[str, bytes | None], message: str) -> str:
    """Write (bytes) or delete (None) files, commit, and return the commit id."""
    for rel_path, content in files.items():
        target = repo / rel_path
        if content is None:
            git(repo, "rm", "-q", rel_path)
            continue
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(content)
        git(repo, "add", rel_path)
    git(repo, "commit", "-q", "-m", message)
    return git(repo, "rev-parse", "HEAD").strip()


def build_example_git_repo(repo: Path) -> dict[str, str]:
    """Real-git version of example_repository; returns blob shas by path."""
    init_repo(repo)
    commit_files(repo, {"README": b"readme\n", "old.bin": b"o" * (3 * MB)}, "add old.bin")
    commit_files(repo, {"old.bin": None, "big.bin": b"g" * (2 * MB)}, "replace old.bin with big.bin")
    return {
        "big.bin": git(repo, "rev-parse", "HEAD:big.bin").strip(),
        "old.bin": git(repo, "rev-parse", "HEAD~1:old.bin").strip(),
    }
