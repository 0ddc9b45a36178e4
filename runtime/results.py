"""Result containers returned by the solvers."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field

import numpy as np

logger = logging.getLogger("normal_solver")


@dataclass
class DegenerateGeometryReport:
    """Counts of degenerate cases recovered during one solve.

    None of these abort a solve; they are reported so callers can spot bad
    input meshes.
    """

    degenerate_triangles: int = 0
    degenerate_uv_triangles: int = 0
    normal_fallbacks: int = 0
    orphan_vertices: int = 0
    tangent_fallbacks: int = 0

    @property
    def clean(self) -> bool:
        return not any(asdict(self).values())

    def to_dict(self) -> dict:
        return asdict(self)

    def log(self, method: str) -> None:
        if self.clean:
            return
        logger.debug("%s solve recovered degenerate geometry: %s", method, self.to_dict())
        if self.orphan_vertices:
            logger.warning(
                "%s solve: %d vertices have no contributing triangle and "
                "received a fallback normal.",
                method,
                self.orphan_vertices,
            )


@dataclass
class SolveResult:
    normals: np.ndarray
    tangents: np.ndarray | None
    method: str
    report: DegenerateGeometryReport = field(default_factory=DegenerateGeometryReport)

    @property
    def vertex_count(self) -> int:
        return int(self.normals.shape[0])
