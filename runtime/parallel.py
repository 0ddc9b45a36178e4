"""Chunked parallel-for used by the solvers.

Work is split into contiguous ``[start, stop)`` ranges; each range writes only
its own slice of the caller's output arrays, so no locking is needed. numpy
releases the GIL inside its kernels, which is what lets threads help here.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Tuple

logger = logging.getLogger("normal_solver")


def chunk_ranges(count: int, chunk_size: int) -> List[Tuple[int, int]]:
    """Split ``range(count)`` into consecutive ``(start, stop)`` pairs."""
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be positive; got {chunk_size}")
    return [(start, min(start + chunk_size, count)) for start in range(0, count, chunk_size)]


def parallel_for(
    count: int,
    body: Callable[[int, int], None],
    *,
    workers: int = 1,
    chunk_size: int = 4096,
) -> None:
    """Run ``body(start, stop)`` over every chunk of ``range(count)``.

    Blocks until all chunks have finished. If any chunk raises, the first
    exception (in chunk order) is re-raised once every chunk has completed.
    """
    if count <= 0:
        return
    ranges = chunk_ranges(count, chunk_size)
    if workers <= 1 or len(ranges) == 1:
        for start, stop in ranges:
            body(start, stop)
        return

    with ThreadPoolExecutor(
        max_workers=min(workers, len(ranges)), thread_name_prefix="normal_solver"
    ) as executor:
        futures = [executor.submit(body, start, stop) for start, stop in ranges]
    # Leaving the context manager waited for every future.
    for future in futures:
        future.result()
    logger.debug("parallel_for ran %d chunks on %d workers.", len(ranges), workers)
