"""
Concurrent merge sort for capsule collections.

The input is split at the midpoint recursively until there is roughly one run
per worker. Runs are sorted concurrently on a thread pool that lives only for
the duration of the call; the sorted runs are then merged back together in
the calling thread with a stable two-pointer merge.

Only leaf runs are submitted to the pool, so a pool task never waits on
another pool task and the bounded pool cannot deadlock.

Failure policy:
    If any run fails (comparator raised, task cancelled) the whole sort raises
    SortError. Runs that have not started are cancelled and runs already in
    progress are waited for, so the comparator is never called after the
    error is raised. A partially sorted list is never returned.
"""

import logging
import os
from concurrent.futures import CancelledError, Future, ThreadPoolExecutor
from typing import Callable, NamedTuple, TypeVar, Union

from dearfuture.errors import SortError

logger = logging.getLogger(__name__)

T = TypeVar("T")

Comparator = Callable[[T, T], int]

# Below this many items the pool costs more than it saves
SEQUENTIAL_THRESHOLD = 2048


class _Split(NamedTuple):
    left: "_Node"
    right: "_Node"


_Node = Union[Future, _Split]


def parallel_merge_sort(
    items: list[T],
    compare: Comparator,
    max_workers: int | None = None,
    threshold: int = SEQUENTIAL_THRESHOLD,
) -> list[T]:
    """
    Stable sort of ``items`` under ``compare`` using a bounded worker pool.

    Args:
        items: Sequence to sort (not modified)
        compare: Returns <0, 0 or >0 like a classic cmp function
        max_workers: Pool size; defaults to the number of CPUs
        threshold: Inputs shorter than this are sorted in the calling thread

    Returns:
        A new sorted list, or ``items`` itself when it has at most one element

    Raises:
        SortError: If any part of the sort fails
    """
    if len(items) <= 1:
        return items

    workers = max_workers or os.cpu_count() or 1
    if workers <= 1 or len(items) < threshold:
        try:
            return merge_sort(items, compare)
        except Exception as e:
            raise SortError(item_count=len(items), underlying_error=str(e)) from e

    depth = (workers - 1).bit_length()
    logger.debug("Sorting %d items on %d workers (depth %d)", len(items), workers, depth)

    try:
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="capsule-sort") as pool:
            root = _schedule(list(items), compare, pool, depth)
            try:
                result = _collect(root, compare)
            except BaseException:
                _cancel(root)
                raise
    except (Exception, CancelledError) as e:
        logger.error("Parallel sort of %d items failed: %s", len(items), e)
        raise SortError(item_count=len(items), underlying_error=str(e) or type(e).__name__) from e
    return result


def merge_sort(items: list[T], compare: Comparator) -> list[T]:
    """Sequential stable top-down merge sort."""
    if len(items) <= 1:
        return list(items)
    mid = len(items) // 2
    return merge(merge_sort(items[:mid], compare), merge_sort(items[mid:], compare), compare)


def merge(left: list[T], right: list[T], compare: Comparator) -> list[T]:
    """Merge two sorted lists; on ties the left element comes first."""
    merged: list[T] = []
    i = j = 0
    while i < len(left) and j < len(right):
        if compare(left[i], right[j]) <= 0:
            merged.append(left[i])
            i += 1
        else:
            merged.append(right[j])
            j += 1
    merged.extend(left[i:])
    merged.extend(right[j:])
    return merged


def _schedule(items: list[T], compare: Comparator, pool: ThreadPoolExecutor, depth: int) -> _Node:
    """Split down to ``depth`` levels and submit each leaf run to the pool."""
    if depth == 0 or len(items) <= 1:
        return pool.submit(merge_sort, items, compare)
    mid = len(items) // 2
    return _Split(
        _schedule(items[:mid], compare, pool, depth - 1),
        _schedule(items[mid:], compare, pool, depth - 1),
    )


def _cancel(node: _Node) -> None:
    """Cancel every leaf run that has not started yet."""
    if isinstance(node, _Split):
        _cancel(node.left)
        _cancel(node.right)
    else:
        node.cancel()


def _collect(node: _Node, compare: Comparator) -> list:
    """Wait for the leaf runs and merge them back up the split tree."""
    if isinstance(node, _Split):
        return merge(_collect(node.left, compare), _collect(node.right, compare), compare)
    return node.result()
