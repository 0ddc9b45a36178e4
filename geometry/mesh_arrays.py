"""Coercion and validation of the raw mesh arrays fed to the solvers."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from core.exceptions import InputShapeError


@dataclass(frozen=True)
class MeshArrays:
    """Position/index/UV snapshot of a triangle mesh."""

    positions: np.ndarray
    triangles: np.ndarray
    uvs: np.ndarray | None = None

    @property
    def vertex_count(self) -> int:
        return int(self.positions.shape[0])

    @property
    def triangle_count(self) -> int:
        return int(self.triangles.shape[0])

    def with_positions(self, positions: np.ndarray) -> "MeshArrays":
        """Return a copy sharing topology and UVs with new positions."""
        positions = as_positions(positions, vertex_count=self.vertex_count)
        return MeshArrays(positions, self.triangles, self.uvs)


def as_positions(positions, *, vertex_count: int | None = None) -> np.ndarray:
    """Return ``positions`` as a finite float64 ``(N, 3)`` array."""
    arr = np.asarray(positions, dtype=float)
    if arr.size == 0 and arr.ndim <= 2:
        arr = arr.reshape(0, 3)
    if arr.ndim != 2 or arr.shape[1] != 3:
        raise InputShapeError(
            f"positions must have shape (N, 3); got {arr.shape}",
            name="positions",
            expected="(N, 3)",
            actual=arr.shape,
        )
    if vertex_count is not None and arr.shape[0] != vertex_count:
        raise InputShapeError(
            f"positions has {arr.shape[0]} rows; expected {vertex_count}",
            name="positions",
            expected=vertex_count,
            actual=arr.shape[0],
        )
    if not np.all(np.isfinite(arr)):
        raise InputShapeError(
            "positions contain non-finite values", name="positions"
        )
    return arr


def as_triangles(triangles, *, vertex_count: int) -> np.ndarray:
    """Return triangle indices as an int64 ``(T, 3)`` array.

    Accepts either ``(T, 3)`` rows or a flat index buffer of length ``3T``.
    Every index must address one of ``vertex_count`` vertices.
    """
    arr = np.asarray(triangles)
    if arr.size == 0:
        return np.empty((0, 3), dtype=np.int64)
    if not np.issubdtype(arr.dtype, np.integer):
        if np.issubdtype(arr.dtype, np.floating) and np.all(arr == np.round(arr)):
            arr = arr.astype(np.int64)
        else:
            raise InputShapeError(
                f"triangle indices must be integers; got dtype {arr.dtype}",
                name="triangles",
            )
    if arr.ndim == 1:
        if arr.shape[0] % 3 != 0:
            raise InputShapeError(
                f"flat index buffer length {arr.shape[0]} is not a multiple of 3",
                name="triangles",
                expected="3T",
                actual=arr.shape[0],
            )
        arr = arr.reshape(-1, 3)
    if arr.ndim != 2 or arr.shape[1] != 3:
        raise InputShapeError(
            f"triangles must have shape (T, 3); got {arr.shape}",
            name="triangles",
            expected="(T, 3)",
            actual=arr.shape,
        )
    arr = arr.astype(np.int64, copy=False)
    lo = int(arr.min())
    hi = int(arr.max())
    if lo < 0 or hi >= vertex_count:
        raise InputShapeError(
            f"triangle indices must lie in [0, {vertex_count}); "
            f"found range [{lo}, {hi}]",
            name="triangles",
            expected=(0, vertex_count),
            actual=(lo, hi),
        )
    return arr


def as_uvs(uvs, *, vertex_count: int) -> np.ndarray | None:
    """Return UVs as a float64 ``(N, 2)`` array, or ``None`` if absent."""
    if uvs is None:
        return None
    arr = np.asarray(uvs, dtype=float)
    if arr.size == 0 and vertex_count == 0:
        arr = arr.reshape(0, 2)
    if arr.ndim != 2 or arr.shape != (vertex_count, 2):
        raise InputShapeError(
            f"uvs must have shape ({vertex_count}, 2); got {arr.shape}",
            name="uvs",
            expected=(vertex_count, 2),
            actual=arr.shape,
        )
    if not np.all(np.isfinite(arr)):
        raise InputShapeError("uvs contain non-finite values", name="uvs")
    return arr


def as_vertex_vectors(values, *, vertex_count: int, width: int, name: str):
    """Return an optional per-vertex ``(N, width)`` float array."""
    if values is None:
        return None
    arr = np.asarray(values, dtype=float)
    if arr.size == 0 and vertex_count == 0:
        arr = arr.reshape(0, width)
    if arr.shape != (vertex_count, width):
        raise InputShapeError(
            f"{name} must have shape ({vertex_count}, {width}); got {arr.shape}",
            name=name,
            expected=(vertex_count, width),
            actual=arr.shape,
        )
    return arr


def mesh_arrays(positions, triangles, uvs=None) -> MeshArrays:
    """Validate a full mesh snapshot."""
    pos = as_positions(positions)
    tris = as_triangles(triangles, vertex_count=pos.shape[0])
    return MeshArrays(pos, tris, as_uvs(uvs, vertex_count=pos.shape[0]))
