"""
Parallel helpers for the embarrassingly parallel stages of a run.

Per-file extraction and pairwise name comparison have no shared mutable
state. Results are always handed back in input order so that later grouping
stays deterministic regardless of which worker finished first.
"""

from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Iterator, List, Sequence, Tuple, TypeVar
import logging

logger = logging.getLogger(__name__)

T = TypeVar('T')
R = TypeVar('R')


def ordered_map(func: Callable[[T], R], items: Sequence[T], max_workers: int = 1) -> List[R]:
    """
    Map ``func`` over ``items``, returning results in input order.

    Args:
        func: Function to apply; exceptions propagate to the caller
        items: Items to process
        max_workers: Worker threads; ``<= 1`` runs serially

    Returns:
        List of results aligned with ``items``
    """
    if not items:
        return []
    if max_workers <= 1 or len(items) == 1:
        return [func(item) for item in items]

    workers = min(max_workers, len(items))
    logger.debug(f"Mapping {len(items)} items over {workers} workers")
    with ThreadPoolExecutor(max_workers=workers) as executor:
        return list(executor.map(func, items))


def index_ranges(count: int, chunks: int) -> List[Tuple[int, int]]:
    """
    Split ``range(count)`` into at most ``chunks`` contiguous ``(start, stop)`` ranges.

    Used to partition the outer loop of an upper-triangular pair scan.
    """
    if count <= 0:
        return []
    chunks = max(1, min(chunks, count))
    size, remainder = divmod(count, chunks)
    ranges = []
    start = 0
    for i in range(chunks):
        stop = start + size + (1 if i < remainder else 0)
        ranges.append((start, stop))
        start = stop
    return ranges


def upper_triangle_pairs(start: int, stop: int, count: int) -> Iterator[Tuple[int, int]]:
    """Yield ``(i, j)`` with ``start <= i < stop`` and ``i < j < count``."""
    for i in range(start, stop):
        for j in range(i + 1, count):
            yield i, j
