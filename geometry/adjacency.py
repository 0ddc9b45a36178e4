"""Flattened triangle incidence lists for vertices and duplicate groups."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np

from geometry.mesh_arrays import as_triangles
from geometry.position_groups import DuplicateGroups

logger = logging.getLogger("normal_solver")


@dataclass(frozen=True, eq=False)
class AdjacencyTable:
    """Triangle ids incident to each row, flattened.

    Row ``r`` owns ``flat[offsets[r]:offsets[r] + counts[r]]``; ranges are
    contiguous, non-overlapping and listed in row order, and every row's
    triangles are unique and ascending.
    """

    offsets: np.ndarray
    counts: np.ndarray
    flat: np.ndarray

    @property
    def row_count(self) -> int:
        return int(self.counts.shape[0])

    @property
    def ranges(self) -> np.ndarray:
        """Return the ``(offset, count)`` table as an ``(R, 2)`` array."""
        return np.stack([self.offsets, self.counts], axis=1)

    def row(self, index: int) -> np.ndarray:
        start = int(self.offsets[index])
        return self.flat[start : start + int(self.counts[index])]

    @classmethod
    def from_ranges(cls, ranges, flat) -> "AdjacencyTable":
        ranges = np.asarray(ranges, dtype=np.int64).reshape(-1, 2)
        return cls(
            ranges[:, 0].copy(),
            ranges[:, 1].copy(),
            np.asarray(flat, dtype=np.int64).reshape(-1),
        )


def build_incidence(corner_rows: np.ndarray, n_rows: int) -> AdjacencyTable:
    """Bucket triangle ids by the row each of their corners maps to.

    ``corner_rows`` is a ``(T, 3)`` array giving, for every triangle corner,
    the row (vertex or group) it belongs to. A triangle touching a row through
    several corners is listed once.
    """
    n_tris = int(corner_rows.shape[0])
    if n_tris == 0:
        zeros = np.zeros(n_rows, dtype=np.int64)
        return AdjacencyTable(zeros, zeros.copy(), np.empty(0, dtype=np.int64))

    rows = corner_rows.reshape(-1).astype(np.int64)
    tris = np.repeat(np.arange(n_tris, dtype=np.int64), 3)
    # Sorting the combined key orders by row, then ascending triangle id.
    keys = np.unique(rows * n_tris + tris)
    rows_u = keys // n_tris
    flat = keys % n_tris

    counts = np.bincount(rows_u, minlength=n_rows).astype(np.int64)
    offsets = np.cumsum(counts) - counts
    return AdjacencyTable(offsets, counts, flat)


def vertex_incidence(triangles: np.ndarray, vertex_count: int) -> AdjacencyTable:
    """Return the triangles touching each vertex index."""
    return build_incidence(triangles, vertex_count)


def build_adjacency(triangles, groups: DuplicateGroups) -> AdjacencyTable:
    """Return the triangles touching any member of each duplicate group.

    Orphan groups (no incident triangle) keep an empty range.
    """
    tris = as_triangles(triangles, vertex_count=groups.vertex_count)
    table = build_incidence(groups.group_of_vertex[tris], groups.group_count)
    orphans = int(np.count_nonzero(table.counts == 0))
    logger.debug(
        "Built adjacency for %d groups over %d triangles (%d incidences, %d orphan groups).",
        groups.group_count,
        tris.shape[0],
        table.flat.shape[0],
        orphans,
    )
    return table
