#!/usr/bin/env python3
"""
Ref Resolution

Turns the refs requested on the command line into the verified set of full
ref names that decides which paths count as in-use.
"""

from collections.abc import Sequence
from typing import Optional

from git_repository import RepositoryQueries

# Passing exactly this one value selects every ref in the repository
ALL_REFS = "-all"


class InvalidRefError(ValueError):
    """A requested ref does not exist in the repository"""

    def __init__(self, ref: str):
        self.ref = ref
        super().__init__(f"{ref!r} does not appear to be a valid ref for the current repository")


def is_all_refs(requested: Sequence[str]) -> bool:
    return list(requested) == [ALL_REFS]


def describe_refs(requested: Sequence[str]) -> str:
    """Human-readable description of the requested refs for status output"""
    if is_all_refs(requested):
        return "Any ref in git/refs"
    return ",".join(requested)


def resolve_refs(
    repo: RepositoryQueries, requested: Sequence[str], all_refs: Optional[Sequence[str]] = None
) -> set[str]:
    """Resolve and verify the requested refs

    Args:
        repo: Repository to query
        requested: Ref names, or ``[ALL_REFS]`` for every ref
        all_refs: Already listed ref universe (queried from repo if omitted)

    Returns:
        Set of full ref names

    Raises:
        InvalidRefError: For the first name that does not resolve
    """
    if is_all_refs(requested):
        if all_refs is None:
            all_refs = repo.list_refs()
        return set(all_refs)

    resolved = set()
    for name in requested:
        full_name = repo.resolve_ref(name)
        if full_name is None:
            raise InvalidRefError(name)
        resolved.add(full_name)

    return resolved
