"""Grouping of vertices that share a spatial position.

Meshes split vertices along UV seams and hard edges: two vertex indices end up
at the same position with different UVs or normals. The duplicate groups
found here are what the cached solver smooths across.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Tuple

import numpy as np

from core.exceptions import ConfigurationError
from geometry.mesh_arrays import as_positions

logger = logging.getLogger("normal_solver")

# Quantized keys must fit in int64 with room for rounding.
_MAX_KEY = 2.0**62


@dataclass(frozen=True, eq=False)
class DuplicateGroups:
    """Partition of vertex indices into coincident-position groups.

    Group ids follow the order in which each group's first vertex appears;
    members of a group are listed in ascending vertex order.
    """

    group_of_vertex: np.ndarray
    group_count: int
    _members: List[np.ndarray] = field(
        init=False, repr=False, compare=False, default=None
    )

    def __len__(self) -> int:
        return self.group_count

    @property
    def vertex_count(self) -> int:
        return int(self.group_of_vertex.shape[0])

    @property
    def members(self) -> List[np.ndarray]:
        """Return one ascending index array per group."""
        if self._members is None:
            order = np.argsort(self.group_of_vertex, kind="stable")
            sizes = np.bincount(self.group_of_vertex, minlength=self.group_count)
            split = np.split(order, np.cumsum(sizes)[:-1]) if self.group_count else []
            object.__setattr__(self, "_members", split)
        return self._members

    def first_members(self) -> np.ndarray:
        """Return the lowest vertex index of every group."""
        first = np.full(self.group_count, -1, dtype=np.int64)
        if self.vertex_count:
            gids, idx = np.unique(self.group_of_vertex, return_index=True)
            first[gids] = idx
        return first

    def sizes(self) -> np.ndarray:
        return np.bincount(self.group_of_vertex, minlength=self.group_count)

    def as_mapping(self) -> Dict[int, Tuple[int, ...]]:
        """Return ``{group_id: (vertex, ...)}``."""
        return {
            gid: tuple(int(v) for v in members)
            for gid, members in enumerate(self.members)
        }

    @classmethod
    def from_group_of_vertex(cls, group_of_vertex) -> "DuplicateGroups":
        """Rebuild groups from a stored per-vertex group id array."""
        gov = np.asarray(group_of_vertex, dtype=np.int64).reshape(-1)
        count = int(gov.max()) + 1 if gov.size else 0
        return cls(gov, count)


def resolve_epsilon(positions: np.ndarray, epsilon: float, relative: bool) -> float:
    """Return the absolute quantization step for ``positions``."""
    if not epsilon > 0.0:
        raise ConfigurationError(f"weld epsilon must be positive; got {epsilon}")
    if not relative or positions.shape[0] == 0:
        return float(epsilon)
    extent = positions.max(axis=0) - positions.min(axis=0)
    diagonal = float(np.linalg.norm(extent))
    if diagonal <= 0.0:
        return float(epsilon)
    return float(epsilon) * diagonal


def group_positions(
    positions, *, epsilon: float = 1e-5, relative: bool = False
) -> DuplicateGroups:
    """Partition vertices into groups sharing a quantized position.

    Each position is rounded to a multiple of ``epsilon`` (a fraction of the
    bounding-box diagonal when ``relative``); vertices with equal keys form a
    group. Points closer than ``epsilon`` but on either side of a rounding
    boundary land in different groups, so ``epsilon`` should sit well below
    the smallest real vertex spacing and well above the positional noise.
    """
    pos = as_positions(positions)
    n = pos.shape[0]
    step = resolve_epsilon(pos, epsilon, relative)
    if n == 0:
        return DuplicateGroups(np.empty(0, dtype=np.int64), 0)

    scaled = pos / step
    if not np.all(np.abs(scaled) < _MAX_KEY):
        raise ConfigurationError(
            f"Positions up to {float(np.abs(pos).max()):g} are too large for weld "
            f"epsilon {step:g}; use a larger epsilon or weld_epsilon_mode=\"relative\"."
        )
    keys = np.floor(scaled + 0.5).astype(np.int64)
    _, first_index, inverse = np.unique(
        keys, axis=0, return_index=True, return_inverse=True
    )
    inverse = inverse.reshape(-1)
    # np.unique orders keys lexicographically; renumber by first appearance.
    appearance = np.argsort(first_index, kind="stable")
    rank = np.empty_like(appearance)
    rank[appearance] = np.arange(appearance.shape[0])
    group_of_vertex = rank[inverse].astype(np.int64)

    groups = DuplicateGroups(group_of_vertex, int(first_index.shape[0]))
    logger.debug(
        "Grouped %d vertices into %d position groups (epsilon=%g).",
        n,
        groups.group_count,
        step,
    )
    return groups
