#!/usr/bin/env python3
"""
History Blob Scanner

Walks every revision reachable from any ref and reports the blobs in each
revision's tree whose size meets the threshold. Nothing is deduplicated here;
the same blob is reported once per revision that contains it.

Revisions are independent, so the scan can run on a bounded thread pool.
Results are always handed back in revision order on the calling thread, which
keeps the downstream aggregation single-writer and deterministic.
"""

from collections.abc import Iterator, Sequence
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Optional

from auxiliary import MEGABYTE
from git_repository import RepositoryQueries, TreeEntry


def threshold_bytes(threshold_mb: float) -> float:
    """Convert a threshold in MB to bytes (not rounded; comparison is >=)"""
    return threshold_mb * MEGABYTE


def walk_revisions(repo: RepositoryQueries) -> list[str]:
    """All reachable revisions, each exactly once, in the order git lists them"""
    return list(dict.fromkeys(repo.list_revisions()))


def scan_revision(repo: RepositoryQueries, revision: str, threshold: float) -> list[TreeEntry]:
    """Entries of one revision's tree with size >= threshold bytes"""
    return [entry for entry in repo.list_tree_entries(revision) if entry.size >= threshold]


def iter_large_entries(
    repo: RepositoryQueries,
    revisions: Sequence[str],
    threshold: float,
    workers: int = 1,
    progress_callback: Optional[Callable[[int, int], None]] = None,
) -> Iterator[TreeEntry]:
    """Yield every qualifying tree entry of every revision

    Args:
        repo: Repository to query
        revisions: Revisions to scan, typically from walk_revisions
        threshold: Minimum blob size in bytes (inclusive)
        workers: Number of revisions listed concurrently
        progress_callback: Called with (done, total) after each revision

    Yields:
        TreeEntry objects, grouped by revision in the order of revisions

    Raises:
        GitCommandError: On the first revision that cannot be listed
    """
    total = len(revisions)

    if workers <= 1:
        for done, revision in enumerate(revisions, 1):
            yield from scan_revision(repo, revision, threshold)
            if progress_callback:
                progress_callback(done, total)
        return

    executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="megethos-scan")
    try:
        results = executor.map(lambda revision: scan_revision(repo, revision, threshold), revisions)
        for done, entries in enumerate(results, 1):
            yield from entries
            if progress_callback:
                progress_callback(done, total)
    finally:
        # Drop queued revisions if we stop early or a listing failed
        executor.shutdown(wait=True, cancel_futures=True)
