"""Steady-state solver driven by a prebuilt adjacency cache.

Topology (which triangles touch which duplicate group) comes from the
``CacheStore``; geometry is refreshed from the current positions on every
call, which keeps the result correct under skinning and blend shapes. All
vertices of a group receive the group's single normal and tangent, so seam
duplicates shade identically.
"""

from __future__ import annotations

import logging

import numpy as np

from core.exceptions import InputShapeError
from geometry.cache_store import CacheStore
from geometry.mesh_arrays import (
    as_positions,
    as_triangles,
    as_uvs,
    as_vertex_vectors,
)
from geometry.segments import expand_segments, segment_argmax, segment_sum
from geometry.triangle_ops import (
    orthonormal_tangents,
    triangle_normals_and_areas,
    triangle_tangent_frames,
    unit_rows,
)
from parameters.solver_parameters import resolve_parameters
from runtime.parallel import parallel_for
from runtime.results import DegenerateGeometryReport, SolveResult

logger = logging.getLogger("normal_solver")


def _checked_positions(positions, cache: CacheStore, triangles, params) -> np.ndarray:
    pos = as_positions(positions)
    live = None
    if triangles is not None:
        live = as_triangles(triangles, vertex_count=pos.shape[0])
    cache.validate(pos.shape[0], live, verify_indices=params.verify_cache_indices)
    return pos


def _group_normals(pos, cache: CacheStore, params, report: DegenerateGeometryReport):
    """Return ``(group_normals, orphan_groups)``."""
    adj = cache.adjacency
    n_groups = cache.group_count
    face_raw, areas = triangle_normals_and_areas(pos, cache.triangles)
    face_unit, _ = unit_rows(face_raw, 0.0)
    usable = areas > params.degenerate_area_epsilon
    report.degenerate_triangles = int(np.count_nonzero(~usable))
    length_eps = params.normal_length_epsilon

    group_normals = np.zeros((n_groups, 3), dtype=float)
    fell_back = np.zeros(n_groups, dtype=bool)
    orphan = np.zeros(n_groups, dtype=bool)

    def _solve_groups(start: int, stop: int) -> None:
        rows = np.arange(start, stop, dtype=np.int64)
        count = stop - start
        seg, flat_pos = expand_segments(adj.offsets, adj.counts, rows)
        tris = adj.flat[flat_pos]
        keep = usable[tris]

        summed = segment_sum(face_raw[tris[keep]], seg[keep], count)
        unit, ok = unit_rows(summed, length_eps)

        largest = segment_argmax(np.where(keep, areas[tris], -1.0), seg, count)
        has_face = largest >= 0
        has_face[has_face] = keep[largest[has_face]]
        cancel = has_face & ~ok
        unit[cancel] = face_unit[tris[largest[cancel]]]

        group_normals[start:stop] = unit
        fell_back[start:stop] = cancel
        orphan[start:stop] = ~has_face

    parallel_for(
        n_groups, _solve_groups, workers=params.workers, chunk_size=params.chunk_size
    )
    report.normal_fallbacks = int(np.count_nonzero(fell_back))
    return group_normals, orphan


def _group_tangent_sums(pos, uv, cache: CacheStore, params, report: DegenerateGeometryReport):
    """Return area-weighted tangent and bitangent sums per group."""
    adj = cache.adjacency
    n_groups = cache.group_count
    _, areas = triangle_normals_and_areas(pos, cache.triangles)
    face_t, face_b, valid = triangle_tangent_frames(
        pos, uv, cache.triangles, det_eps=params.uv_determinant_epsilon
    )
    usable = areas > params.degenerate_area_epsilon
    valid &= usable
    report.degenerate_uv_triangles = int(np.count_nonzero(usable & ~valid))
    weighted_t = face_t * areas[:, None]
    weighted_b = face_b * areas[:, None]

    t_sums = np.zeros((n_groups, 3), dtype=float)
    b_sums = np.zeros((n_groups, 3), dtype=float)

    def _sum_groups(start: int, stop: int) -> None:
        rows = np.arange(start, stop, dtype=np.int64)
        count = stop - start
        seg, flat_pos = expand_segments(adj.offsets, adj.counts, rows)
        tris = adj.flat[flat_pos]
        keep = valid[tris]
        t_sums[start:stop] = segment_sum(weighted_t[tris[keep]], seg[keep], count)
        b_sums[start:stop] = segment_sum(weighted_b[tris[keep]], seg[keep], count)

    parallel_for(
        n_groups, _sum_groups, workers=params.workers, chunk_size=params.chunk_size
    )
    return t_sums, b_sums


def solve_cached(
    positions,
    cache: CacheStore,
    uvs=None,
    *,
    triangles=None,
    compute_tangents: bool = True,
    fallback_normals=None,
    fallback_tangents=None,
    params=None,
) -> SolveResult:
    """Compute per-group normals and tangents from the cached adjacency.

    ``triangles`` is optional; when given it is checked against the cached
    index buffer. Any mismatch with the cached topology raises
    ``CacheTopologyMismatchError`` before work starts.
    """
    params = resolve_parameters(params)
    pos = _checked_positions(positions, cache, triangles, params)
    n_verts = pos.shape[0]
    uv = as_uvs(uvs, vertex_count=n_verts)
    fb_normals = as_vertex_vectors(
        fallback_normals, vertex_count=n_verts, width=3, name="fallback_normals"
    )
    fb_tangents = as_vertex_vectors(
        fallback_tangents, vertex_count=n_verts, width=4, name="fallback_tangents"
    )

    report = DegenerateGeometryReport()
    gov = cache.group_of_vertex
    first = cache.groups.first_members()

    group_normals, orphan = _group_normals(pos, cache, params, report)
    if fb_normals is not None and np.any(orphan):
        group_normals[orphan] = fb_normals[first[orphan]]
    report.orphan_vertices = int(np.count_nonzero(orphan[gov]))
    normals = group_normals[gov]

    tangents = None
    if compute_tangents and uv is not None:
        t_sums, b_sums = _group_tangent_sums(pos, uv, cache, params, report)
        group_tangents, n_fallback = orthonormal_tangents(
            t_sums,
            b_sums,
            group_normals,
            eps=params.normal_length_epsilon,
            fallback_tangents=None if fb_tangents is None else fb_tangents[first],
        )
        report.tangent_fallbacks = n_fallback
        tangents = group_tangents[gov]

    report.log("cached_parallel")
    logger.debug(
        "Cached solve: %d vertices, %d groups, %d incidences.",
        n_verts,
        cache.group_count,
        cache.adjacency_flat.shape[0],
    )
    return SolveResult(
        normals=normals, tangents=tangents, method="cached_parallel", report=report
    )


def solve_tangents(
    positions,
    normals,
    cache: CacheStore,
    uvs,
    *,
    triangles=None,
    fallback_tangents=None,
    params=None,
) -> np.ndarray:
    """Recompute tangents only, against normals that are already current.

    Uses the same per-group accumulation as ``solve_cached`` and
    orthogonalizes each vertex's group sum against that vertex's normal.
    """
    params = resolve_parameters(params)
    pos = _checked_positions(positions, cache, triangles, params)
    n_verts = pos.shape[0]
    current = as_vertex_vectors(normals, vertex_count=n_verts, width=3, name="normals")
    if current is None:
        raise InputShapeError("current normals are required", name="normals")
    uv = as_uvs(uvs, vertex_count=n_verts)
    if uv is None:
        raise InputShapeError("uvs are required to recompute tangents", name="uvs")
    fb_tangents = as_vertex_vectors(
        fallback_tangents, vertex_count=n_verts, width=4, name="fallback_tangents"
    )

    report = DegenerateGeometryReport()
    t_sums, b_sums = _group_tangent_sums(pos, uv, cache, params, report)
    gov = cache.group_of_vertex
    tangents, report.tangent_fallbacks = orthonormal_tangents(
        t_sums[gov],
        b_sums[gov],
        current,
        eps=params.normal_length_epsilon,
        fallback_tangents=fb_tangents,
    )
    report.log("tangents_only")
    return tangents
