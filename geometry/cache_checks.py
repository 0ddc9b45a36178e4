"""Cache validity predicates for the adjacency cache."""

from __future__ import annotations

import numpy as np


def topology_counts_match(
    *,
    cached_vertex_count: int,
    cached_triangle_count: int,
    vertex_count: int,
    triangle_count: int | None,
) -> bool:
    """Return whether a cache was built for a mesh of this size.

    ``triangle_count`` may be ``None`` when the caller only knows positions.
    """
    if cached_vertex_count != vertex_count:
        return False
    return triangle_count is None or cached_triangle_count == triangle_count


def index_buffer_matches(
    cached_triangles: np.ndarray, triangles: np.ndarray | None
) -> bool:
    """Return whether the live index buffer equals the cached one."""
    if triangles is None or triangles is cached_triangles:
        return True
    return cached_triangles.shape == triangles.shape and bool(
        np.array_equal(cached_triangles, triangles)
    )


def adjacency_ranges_valid(
    offsets: np.ndarray, counts: np.ndarray, flat_length: int
) -> bool:
    """Return whether ``(offset, count)`` ranges tile the flat list exactly."""
    if offsets.shape != counts.shape:
        return False
    if counts.size == 0:
        return flat_length == 0
    if np.any(counts < 0):
        return False
    expected = np.cumsum(counts) - counts
    return bool(np.array_equal(offsets, expected)) and int(counts.sum()) == flat_length


def group_ids_valid(group_of_vertex: np.ndarray, group_count: int) -> bool:
    """Return whether every group id is used and lies in ``[0, group_count)``."""
    if group_of_vertex.size == 0:
        return group_count == 0
    if int(group_of_vertex.min()) < 0 or int(group_of_vertex.max()) >= group_count:
        return False
    return bool(np.all(np.bincount(group_of_vertex, minlength=group_count) > 0))


def flat_triangles_valid(flat: np.ndarray, triangle_count: int) -> bool:
    """Return whether adjacency entries reference existing triangles."""
    if flat.size == 0:
        return True
    return int(flat.min()) >= 0 and int(flat.max()) < triangle_count
