#!/usr/bin/env python3
"""
Blob Aggregation

Merges the per-revision scan results into one record per (blob sha, path).

Aggregation rule: insert-if-absent. The first sighting of a key fixes its
size and classification and later sightings never overwrite it. A sha always
has the same size, and classification depends only on the path, so every
sighting of a key carries the same values anyway.

Classification is scoped to the path. When one path of a blob is in-use,
other paths of the same blob are not promoted.
"""

import threading
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from auxiliary import format_megabytes
from git_repository import TreeEntry
from path_index import PathIndex


class BlobKind(Enum):
    """Current-use status of a path"""

    IN_USE = "in-use"
    NOT_IN_USE = "not-in-use"


@dataclass(frozen=True)
class BlobRecord:
    """One large blob at one path somewhere in history"""

    sha: str
    path: str
    size: int
    kind: BlobKind

    @property
    def key(self) -> tuple[str, str]:
        return self.sha, self.path

    @property
    def size_label(self) -> str:
        return format_megabytes(self.size)


class BlobTable:
    """Insertion-ordered table of BlobRecords keyed by (sha, path)"""

    def __init__(self):
        self._records: dict[tuple[str, str], BlobRecord] = {}
        self._lock = threading.Lock()

    def insert_if_absent(self, entry: TreeEntry, kind: BlobKind) -> bool:
        """Record entry unless its (sha, path) key is already present

        Returns:
            True if a new record was created, False if the key existed
        """
        key = (entry.sha, entry.path)
        with self._lock:
            if key in self._records:
                return False
            self._records[key] = BlobRecord(sha=entry.sha, path=entry.path, size=entry.size, kind=kind)
            return True

    def get(self, sha: str, path: str) -> Optional[BlobRecord]:
        return self._records.get((sha, path))

    def paths_for(self, sha: str) -> list[str]:
        """All recorded paths a blob has occupied"""
        return [record.path for record in self if record.sha == sha]

    @property
    def total_size(self) -> int:
        return sum(record.size for record in self)

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[BlobRecord]:
        with self._lock:
            records = list(self._records.values())
        return iter(records)


def aggregate(entries: Iterable[TreeEntry], path_index: PathIndex, table: Optional[BlobTable] = None) -> BlobTable:
    """Fold scanned tree entries into a BlobTable

    Args:
        entries: Qualifying entries from the history scan (duplicates allowed)
        path_index: Current tip-tree index deciding in-use status
        table: Existing table to extend (a new one by default)

    Returns:
        The populated table
    """
    if table is None:
        table = BlobTable()

    for entry in entries:
        if table.get(entry.sha, entry.path) is not None:
            continue
        kind = BlobKind.IN_USE if path_index.is_in_use(entry.path) else BlobKind.NOT_IN_USE
        table.insert_if_absent(entry, kind)

    return table
