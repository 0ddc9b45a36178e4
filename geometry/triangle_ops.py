"""Vectorized triangle geometry helpers shared by the normal solvers."""

from __future__ import annotations

import numpy as np


def _fast_cross(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """Compute cross products for arrays of 3D vectors."""
    x = a[..., 1] * b[..., 2] - a[..., 2] * b[..., 1]
    y = a[..., 2] * b[..., 0] - a[..., 0] * b[..., 2]
    z = a[..., 0] * b[..., 1] - a[..., 1] * b[..., 0]
    out = np.empty(x.shape + (3,), dtype=x.dtype)
    out[..., 0] = x
    out[..., 1] = y
    out[..., 2] = z
    return out


def _row_dot(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    return np.einsum("ij,ij->i", a, b)


def triangle_normals_and_areas(
    positions: np.ndarray, tri_rows: np.ndarray
) -> tuple[np.ndarray, np.ndarray]:
    """Return unnormalized triangle normals and triangle areas.

    The unnormalized normal is ``(v1 - v0) x (v2 - v0)``, so counter-clockwise
    triangles face the viewer and the vector length is twice the area.
    """
    v0 = positions[tri_rows[:, 0]]
    v1 = positions[tri_rows[:, 1]]
    v2 = positions[tri_rows[:, 2]]
    normals = _fast_cross(v1 - v0, v2 - v0)
    areas = 0.5 * np.linalg.norm(normals, axis=1)
    return normals, areas


def unit_rows(vectors: np.ndarray, eps: float) -> tuple[np.ndarray, np.ndarray]:
    """Normalize rows longer than ``eps``; shorter rows come back as zeros.

    Returns ``(unit, mask)`` where ``mask`` marks the rows that were
    normalized.
    """
    lens = np.linalg.norm(vectors, axis=1)
    mask = lens > eps
    unit = np.zeros_like(vectors, dtype=float)
    unit[mask] = vectors[mask] / lens[mask][:, None]
    return unit, mask


def triangle_tangent_frames(
    positions: np.ndarray,
    uvs: np.ndarray,
    tri_rows: np.ndarray,
    *,
    det_eps: float = 1e-12,
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Return unit face tangents, unit face bitangents and a validity mask.

    Solves the 2x2 system relating the object-space edges ``e1, e2`` to the
    UV-space edges ``(du1, dv1), (du2, dv2)``::

        e1 = du1 * T + dv1 * B
        e2 = du2 * T + dv2 * B

    Triangles whose UV determinant is below ``det_eps`` have no defined frame
    and are flagged invalid.
    """
    p0 = positions[tri_rows[:, 0]]
    e1 = positions[tri_rows[:, 1]] - p0
    e2 = positions[tri_rows[:, 2]] - p0

    uv0 = uvs[tri_rows[:, 0]]
    d1 = uvs[tri_rows[:, 1]] - uv0
    d2 = uvs[tri_rows[:, 2]] - uv0
    du1, dv1 = d1[:, 0], d1[:, 1]
    du2, dv2 = d2[:, 0], d2[:, 1]

    det = du1 * dv2 - du2 * dv1
    ok = np.abs(det) > det_eps
    r = np.zeros_like(det)
    r[ok] = 1.0 / det[ok]

    sdir = (dv2[:, None] * e1 - dv1[:, None] * e2) * r[:, None]
    tdir = (du1[:, None] * e2 - du2[:, None] * e1) * r[:, None]

    tangents, t_ok = unit_rows(sdir, 0.0)
    bitangents, b_ok = unit_rows(tdir, 0.0)
    valid = ok & t_ok & b_ok
    tangents[~valid] = 0.0
    bitangents[~valid] = 0.0
    return tangents, bitangents, valid


def vertex_unit_normals_from_triangles(
    *,
    n_verts: int,
    tri_rows: np.ndarray,
    tri_normals: np.ndarray,
    eps: float = 1e-12,
) -> tuple[np.ndarray, np.ndarray]:
    """Accumulate triangle normals to vertices and normalize to unit length.

    Returns ``(normals, mask)``; vertices whose accumulated normal is shorter
    than ``eps`` stay zero and are ``False`` in ``mask``.
    """
    normals = np.zeros((n_verts, 3), dtype=float)
    if tri_rows.size == 0:
        return normals, np.zeros(n_verts, dtype=bool)
    np.add.at(normals, tri_rows[:, 0], tri_normals)
    np.add.at(normals, tri_rows[:, 1], tri_normals)
    np.add.at(normals, tri_rows[:, 2], tri_normals)
    return unit_rows(normals, eps)


def any_orthogonal(normals: np.ndarray) -> np.ndarray:
    """Return a unit vector orthogonal to each row of ``normals``.

    Zero rows get the x axis.
    """
    axis = np.zeros_like(normals, dtype=float)
    use_x = np.abs(normals[:, 0]) < 0.9
    axis[use_x, 0] = 1.0
    axis[~use_x, 1] = 1.0
    t = axis - normals * _row_dot(normals, axis)[:, None]
    return t / np.linalg.norm(t, axis=1)[:, None]


def orthonormal_tangents(
    tangent_sums: np.ndarray,
    bitangent_sums: np.ndarray,
    normals: np.ndarray,
    *,
    eps: float = 1e-12,
    fallback_tangents: np.ndarray | None = None,
) -> tuple[np.ndarray, int]:
    """Gram-Schmidt accumulated tangents against ``normals``.

    Returns ``(tangents, n_fallback)`` where ``tangents`` is ``(N, 4)``: a
    unit xyz orthogonal to the normal plus a handedness of exactly +1 or -1,
    the sign of ``det(tangent, bitangent, normal)``. Rows whose projected
    tangent vanishes use ``fallback_tangents`` when those survive the same
    projection, otherwise an arbitrary orthogonal direction.
    """
    n = normals.shape[0]
    out = np.zeros((n, 4), dtype=float)
    if n == 0:
        return out, 0

    projected = tangent_sums - normals * _row_dot(normals, tangent_sums)[:, None]
    unit, ok = unit_rows(projected, eps)
    out[:, :3] = unit

    det = _row_dot(_fast_cross(normals, unit), bitangent_sums)
    out[:, 3] = np.where(det < 0.0, -1.0, 1.0)

    bad = ~ok
    n_fallback = int(np.count_nonzero(bad))
    if not n_fallback:
        return out, 0

    bad_rows = np.flatnonzero(bad)
    nb = normals[bad_rows]
    replacement = any_orthogonal(nb)
    handed = np.ones(bad_rows.shape[0], dtype=float)
    if fallback_tangents is not None:
        fb = fallback_tangents[bad_rows]
        fb_xyz = fb[:, :3] - nb * _row_dot(nb, fb[:, :3])[:, None]
        fb_unit, fb_ok = unit_rows(fb_xyz, eps)
        replacement[fb_ok] = fb_unit[fb_ok]
        handed[fb_ok] = np.where(fb[fb_ok, 3] < 0.0, -1.0, 1.0)
    out[bad_rows, :3] = replacement
    out[bad_rows, 3] = handed
    return out, n_fallback
