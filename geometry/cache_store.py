"""Adjacency cache consumed by the cached solvers.

A ``CacheStore`` bundles everything that depends only on topology: the
duplicate groups, the group -> triangle adjacency, and the index buffer they
were built from. It is built once per topology, never mutated, and checked
against the live mesh before every cached solve.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict

import numpy as np

from core.exceptions import CacheFormatError, CacheTopologyMismatchError
from geometry.adjacency import AdjacencyTable, build_adjacency
from geometry.cache_checks import (
    adjacency_ranges_valid,
    flat_triangles_valid,
    group_ids_valid,
    index_buffer_matches,
    topology_counts_match,
)
from geometry.mesh_arrays import as_positions, as_triangles
from geometry.position_groups import DuplicateGroups, group_positions

logger = logging.getLogger("normal_solver")

CACHE_FORMAT_VERSION = 1


@dataclass(frozen=True, eq=False)
class CacheStore:
    groups: DuplicateGroups
    adjacency: AdjacencyTable
    triangles: np.ndarray
    source_vertex_count: int
    source_triangle_count: int

    @property
    def group_count(self) -> int:
        return self.groups.group_count

    @property
    def group_of_vertex(self) -> np.ndarray:
        return self.groups.group_of_vertex

    @property
    def adjacency_ranges(self) -> np.ndarray:
        return self.adjacency.ranges

    @property
    def adjacency_flat(self) -> np.ndarray:
        return self.adjacency.flat

    def validate(
        self,
        vertex_count: int,
        triangles: np.ndarray | None = None,
        *,
        verify_indices: bool = True,
    ) -> None:
        """Raise ``CacheTopologyMismatchError`` unless the cache fits the mesh."""
        triangle_count = None if triangles is None else int(triangles.shape[0])
        if not topology_counts_match(
            cached_vertex_count=self.source_vertex_count,
            cached_triangle_count=self.source_triangle_count,
            vertex_count=vertex_count,
            triangle_count=triangle_count,
        ):
            raise CacheTopologyMismatchError(
                "Adjacency cache was built for "
                f"{self.source_vertex_count} vertices / {self.source_triangle_count} "
                f"triangles; live mesh has {vertex_count} vertices / "
                f"{'?' if triangle_count is None else triangle_count} triangles. "
                "Rebuild the cache for the current topology.",
                name="topology",
                expected=(self.source_vertex_count, self.source_triangle_count),
                actual=(vertex_count, triangle_count),
            )
        if verify_indices and not index_buffer_matches(self.triangles, triangles):
            raise CacheTopologyMismatchError(
                "Adjacency cache index buffer differs from the live mesh. "
                "Rebuild the cache for the current topology.",
                name="triangles",
            )

    def check_consistency(self) -> None:
        """Raise ``CacheFormatError`` if the stored arrays contradict each other."""
        gov = self.groups.group_of_vertex
        if gov.shape[0] != self.source_vertex_count:
            raise CacheFormatError(
                f"group_of_vertex has {gov.shape[0]} entries; "
                f"source_vertex_count is {self.source_vertex_count}"
            )
        if self.triangles.shape != (self.source_triangle_count, 3):
            raise CacheFormatError(
                f"triangles has shape {self.triangles.shape}; "
                f"expected ({self.source_triangle_count}, 3)"
            )
        if not group_ids_valid(gov, self.groups.group_count):
            raise CacheFormatError("group_of_vertex does not form a partition")
        if self.adjacency.row_count != self.groups.group_count:
            raise CacheFormatError(
                f"adjacency_ranges has {self.adjacency.row_count} rows; "
                f"expected {self.groups.group_count}"
            )
        if not adjacency_ranges_valid(
            self.adjacency.offsets, self.adjacency.counts, self.adjacency.flat.shape[0]
        ):
            raise CacheFormatError(
                "adjacency_ranges are not contiguous or do not cover adjacency_flat"
            )
        if not flat_triangles_valid(self.adjacency.flat, self.source_triangle_count):
            raise CacheFormatError("adjacency_flat references a missing triangle")
        if self.triangles.size and (
            int(self.triangles.min()) < 0
            or int(self.triangles.max()) >= self.source_vertex_count
        ):
            raise CacheFormatError("triangles reference a missing vertex")

    def to_dict(self) -> Dict[str, Any]:
        """Return the persisted schema as plain Python lists."""
        return {
            "format_version": CACHE_FORMAT_VERSION,
            "group_of_vertex": self.group_of_vertex.tolist(),
            "adjacency_ranges": self.adjacency_ranges.tolist(),
            "adjacency_flat": self.adjacency_flat.tolist(),
            "triangles": self.triangles.tolist(),
            "source_vertex_count": int(self.source_vertex_count),
            "source_triangle_count": int(self.source_triangle_count),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CacheStore":
        """Rebuild a cache from ``to_dict`` output and check its consistency."""
        if not isinstance(data, dict):
            raise CacheFormatError("Cache payload must be a mapping.")
        try:
            version = int(data.get("format_version", CACHE_FORMAT_VERSION))
        except (TypeError, ValueError) as exc:
            raise CacheFormatError(f"Malformed cache format_version: {exc}") from exc
        if version != CACHE_FORMAT_VERSION:
            raise CacheFormatError(
                f"Unsupported cache format_version {version}; "
                f"expected {CACHE_FORMAT_VERSION}"
            )
        missing = [
            key
            for key in (
                "group_of_vertex",
                "adjacency_ranges",
                "adjacency_flat",
                "triangles",
                "source_vertex_count",
                "source_triangle_count",
            )
            if key not in data
        ]
        if missing:
            raise CacheFormatError(f"Cache payload is missing keys: {missing}")

        try:
            groups = DuplicateGroups.from_group_of_vertex(data["group_of_vertex"])
            adjacency = AdjacencyTable.from_ranges(
                data["adjacency_ranges"], data["adjacency_flat"]
            )
            triangles = np.asarray(data["triangles"], dtype=np.int64).reshape(-1, 3)
            cache = cls(
                groups=groups,
                adjacency=adjacency,
                triangles=triangles,
                source_vertex_count=int(data["source_vertex_count"]),
                source_triangle_count=int(data["source_triangle_count"]),
            )
        except (TypeError, ValueError) as exc:
            raise CacheFormatError(f"Malformed cache payload: {exc}") from exc
        cache.check_consistency()
        return cache


def build_cache(
    positions, triangles, *, epsilon: float = 1e-5, relative: bool = False
) -> CacheStore:
    """Group coincident vertices and build their triangle adjacency."""
    pos = as_positions(positions)
    tris = as_triangles(triangles, vertex_count=pos.shape[0])
    groups = group_positions(pos, epsilon=epsilon, relative=relative)
    adjacency = build_adjacency(tris, groups)
    cache = CacheStore(
        groups=groups,
        adjacency=adjacency,
        triangles=tris.copy(),
        source_vertex_count=int(pos.shape[0]),
        source_triangle_count=int(tris.shape[0]),
    )
    logger.info(
        "Built adjacency cache: %d vertices, %d triangles, %d groups.",
        cache.source_vertex_count,
        cache.source_triangle_count,
        cache.group_count,
    )
    return cache
