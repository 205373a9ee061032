#!/usr/bin/env python3
"""
Git Repository Query Module

Read-only access to the parts of a git repository that megethos needs:
reference names, tip-tree paths, tree entries with blob sizes, and the full
revision set. Every query runs one git subprocess and blocks until it exits;
a non-zero exit status is raised as GitCommandError.
"""

import logging
import pathlib
import subprocess
from dataclasses import dataclass
from typing import Optional, Protocol

LOGGER = logging.getLogger(__name__)

# Precedence git applies when a short name matches more than one ref
REF_LOOKUP_RULES = (
    "refs/{}",
    "refs/tags/{}",
    "refs/heads/{}",
    "refs/remotes/{}",
    "refs/remotes/{}/HEAD",
)


@dataclass(frozen=True)
class TreeEntry:
    """One blob as it exists in one revision's tree"""

    sha: str
    path: str
    size: int


class GitCommandError(RuntimeError):
    """A git invocation failed or could not be started"""

    def __init__(self, command: list[str], stderr: str = "", returncode: Optional[int] = None):
        self.command = command
        self.stderr = stderr.strip()
        self.returncode = returncode

        operation = " ".join(command)
        if returncode is None:
            message = f"error running {operation}: {self.stderr}"
        else:
            message = f"error running {operation} (exit status {returncode})"
            if self.stderr:
                message += f": {self.stderr}"
        super().__init__(message)


class RepositoryQueries(Protocol):
    """The repository operations the scanning pipeline consumes"""

    def list_refs(self) -> list[str]: ...

    def resolve_ref(self, name: str) -> Optional[str]: ...

    def list_paths(self, revision: str) -> list[str]: ...

    def list_tree_entries(self, revision: str) -> list[TreeEntry]: ...

    def list_revisions(self) -> list[str]: ...


def _decode(raw: bytes) -> str:
    return raw.decode("utf-8", errors="replace")


def _decode_name(raw: bytes) -> str:
    """Decode a path or ref name so that it encodes back to the same bytes

    Git allows any bytes except NUL in a path. Undecodable bytes become lone
    surrogates, which keeps distinct paths distinct.
    """
    return raw.decode("utf-8", errors="surrogateescape")


def parse_tree_entries(raw: bytes) -> list[TreeEntry]:
    """Parse the output of ``git ls-tree -r -l -z``

    Each NUL-terminated record looks like ``<mode> <type> <sha> <size>\\t<path>``.
    The size column is right-aligned with spaces, and the path may contain
    any character except NUL.

    Args:
        raw: Raw stdout of ls-tree

    Returns:
        Blob entries in tree order; submodule commits and other non-blob
        records are skipped
    """
    entries = []
    for record in raw.split(b"\x00"):
        if not record:
            continue
        meta, _, path = record.partition(b"\t")
        fields = meta.split()
        if len(fields) != 4:
            raise ValueError(f"Unexpected ls-tree record: {_decode(record)!r}")

        _mode, object_type, sha, size = fields
        if object_type != b"blob":
            continue

        entries.append(TreeEntry(sha=_decode(sha), path=_decode_name(path), size=int(size)))

    return entries


class GitRepository:
    """RepositoryQueries implementation backed by the git command line"""

    def __init__(self, repo_root: Optional[pathlib.Path] = None, git_executable: str = "git"):
        """Initialize repository access

        Args:
            repo_root: Directory inside the repository (defaults to the working directory)
            git_executable: Name or path of the git binary
        """
        self.repo_root = repo_root
        self.git_executable = git_executable

    def _run(self, *args: str) -> bytes:
        command = [self.git_executable]
        if self.repo_root is not None:
            command += ["-C", str(self.repo_root)]
        command += list(args)

        LOGGER.debug("Running %s", " ".join(command))
        try:
            result = subprocess.run(command, capture_output=True, check=False)
        except OSError as e:
            raise GitCommandError(command, str(e)) from e

        if result.returncode != 0:
            raise GitCommandError(command, _decode(result.stderr), result.returncode)
        return result.stdout

    def list_refs(self) -> list[str]:
        """Full names of every ref in the repository (branches, tags, remotes, ...)"""
        output = self._run("for-each-ref", "--format=%(refname)")
        return [line for line in _decode_name(output).splitlines() if line]

    def resolve_ref(self, name: str) -> Optional[str]:
        """Resolve a user-supplied ref name to its full name

        Args:
            name: Short or full ref name, or HEAD

        Returns:
            Full ref name such as ``refs/heads/main`` (``HEAD`` when detached),
            or None if the name is not a ref of this repository. A short name
            matching several refs resolves with git's own precedence.
        """
        # rev-parse would read a leading dash as an option
        if not name or name.startswith("-"):
            return None

        try:
            output = self._run("rev-parse", "--symbolic-full-name", name)
        except GitCommandError as e:
            if e.returncode is None:
                raise
            LOGGER.debug("Ref %r did not resolve: %s", name, e.stderr)
            return None

        full_name = _decode_name(output).strip()
        if full_name:
            return full_name

        # Empty output: a plain commit id, or a name that is ambiguous
        return self._resolve_ambiguous_ref(name)

    def _resolve_ambiguous_ref(self, name: str) -> Optional[str]:
        """Pick the ref git itself would use for a short name matching several refs"""
        candidates = [rule.format(name) for rule in REF_LOOKUP_RULES]
        output = self._run("for-each-ref", "--format=%(refname)", *candidates)
        existing = set(_decode_name(output).splitlines())

        matches = [candidate for candidate in candidates if candidate in existing]
        if not matches:
            return None
        if len(matches) > 1:
            LOGGER.warning("Ref %r is ambiguous (%s); using %s", name, ", ".join(matches), matches[0])
        return matches[0]

    def list_paths(self, revision: str) -> list[str]:
        """Every file path in the tree of a revision or ref"""
        output = self._run("ls-tree", "-r", "-z", "--full-tree", "--name-only", revision)
        return [_decode_name(path) for path in output.split(b"\x00") if path]

    def list_tree_entries(self, revision: str) -> list[TreeEntry]:
        """Every blob in the tree of a revision, with its sha and byte size"""
        output = self._run("ls-tree", "-r", "-l", "-z", "--full-tree", revision)
        return parse_tree_entries(output)

    def list_revisions(self) -> list[str]:
        """Every commit reachable from any ref"""
        output = self._run("rev-list", "--all")
        return [line for line in _decode(output).splitlines() if line]
