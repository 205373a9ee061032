#!/usr/bin/env python3
"""
Path Index

Lookup of the paths that exist right now at the tip of each ref. Built once
from the current tip trees before any history is scanned; a path is in-use
exactly when it is a key of the selected-refs mapping.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from git_repository import RepositoryQueries

LOGGER = logging.getLogger(__name__)


@dataclass
class PathIndex:
    """Path -> refs currently exposing it, for all refs and for the selected ones"""

    all_paths: dict[str, set[str]] = field(default_factory=dict)
    selected_paths: dict[str, set[str]] = field(default_factory=dict)

    def add(self, path: str, ref: str, selected: bool = False):
        self.all_paths.setdefault(path, set()).add(ref)
        if selected:
            self.selected_paths.setdefault(path, set()).add(ref)

    def is_in_use(self, path: str) -> bool:
        return path in self.selected_paths

    def refs_for(self, path: str) -> tuple[str, ...]:
        """Sorted refs whose tip tree currently contains path"""
        return tuple(sorted(self.all_paths.get(path, ())))


def build_path_index(repo: RepositoryQueries, universe: Iterable[str], selected: set[str]) -> PathIndex:
    """List the tip tree of every ref and index its paths

    Selected refs that for-each-ref does not report (a detached HEAD, for
    instance) are listed as well so they still mark their paths in-use.

    Raises:
        GitCommandError: If any tip tree cannot be listed
    """
    refs = list(dict.fromkeys(universe))
    refs += sorted(selected.difference(refs))

    index = PathIndex()
    for ref in refs:
        is_selected = ref in selected
        paths = repo.list_paths(ref)
        LOGGER.debug("%s: %d paths%s", ref, len(paths), " (selected)" if is_selected else "")
        for path in paths:
            index.add(path, ref, selected=is_selected)

    return index
