# runtime/seam_average.py
"""Lightweight seam welding of per-vertex normals.

Plain per-vertex normals and tangents are computed from the index buffer and
then averaged over each duplicate group. Only the groups are needed, not the
adjacency list, which makes this the cheapest cached variant; it does not
reweight faces around seams the way ``solve_cached`` does.
"""

import logging

import numpy as np

from core.exceptions import InputShapeError
from geometry.mesh_arrays import (
    as_positions,
    as_triangles,
    as_uvs,
    as_vertex_vectors,
)
from geometry.position_groups import DuplicateGroups
from geometry.triangle_ops import (
    orthonormal_tangents,
    triangle_normals_and_areas,
    triangle_tangent_frames,
    unit_rows,
    vertex_unit_normals_from_triangles,
)
from parameters.solver_parameters import resolve_parameters
from runtime.results import DegenerateGeometryReport, SolveResult

logger = logging.getLogger("normal_solver")


def _accumulate_corners(n_verts, tri_rows, values):
    out = np.zeros((n_verts, 3), dtype=float)
    if tri_rows.size == 0:
        return out
    np.add.at(out, tri_rows[:, 0], values)
    np.add.at(out, tri_rows[:, 1], values)
    np.add.at(out, tri_rows[:, 2], values)
    return out


def _first_member_where(groups, mask):
    """Return the lowest member of each group with ``mask`` set, -1 if none."""
    first = np.full(groups.group_count, -1, dtype=np.int64)
    members = np.flatnonzero(mask)
    if members.size:
        gids, idx = np.unique(groups.group_of_vertex[members], return_index=True)
        first[gids] = members[idx]
    return first


def solve_seam_averaged(
    positions,
    triangles,
    groups: DuplicateGroups,
    uvs=None,
    *,
    compute_tangents=True,
    fallback_normals=None,
    fallback_tangents=None,
    params=None,
) -> SolveResult:
    """Average per-vertex normals/tangents across duplicate groups.

    Group handedness is the sign of the summed member handedness, with ties
    resolved to +1.
    """
    params = resolve_parameters(params)
    pos = as_positions(positions)
    n_verts = pos.shape[0]
    if groups.vertex_count != n_verts:
        raise InputShapeError(
            f"duplicate groups cover {groups.vertex_count} vertices; mesh has {n_verts}",
            name="groups",
            expected=n_verts,
            actual=groups.vertex_count,
        )
    tris = as_triangles(triangles, vertex_count=n_verts)
    uv = as_uvs(uvs, vertex_count=n_verts)
    fb_normals = as_vertex_vectors(
        fallback_normals, vertex_count=n_verts, width=3, name="fallback_normals"
    )
    fb_tangents = as_vertex_vectors(
        fallback_tangents, vertex_count=n_verts, width=4, name="fallback_tangents"
    )
    eps = params.normal_length_epsilon
    report = DegenerateGeometryReport()

    face_raw, areas = triangle_normals_and_areas(pos, tris)
    usable = areas > params.degenerate_area_epsilon
    report.degenerate_triangles = int(np.count_nonzero(~usable))

    vertex_normals, has_normal = vertex_unit_normals_from_triangles(
        n_verts=n_verts, tri_rows=tris[usable], tri_normals=face_raw[usable], eps=eps
    )
    if fb_normals is not None:
        vertex_normals[~has_normal] = fb_normals[~has_normal]

    gov = groups.group_of_vertex
    group_count = groups.group_count
    # Orphan members keep their fallback row but add nothing to the group.
    group_sum = np.zeros((group_count, 3), dtype=float)
    np.add.at(group_sum, gov[has_normal], vertex_normals[has_normal])
    group_normals, ok = unit_rows(group_sum, eps)
    seeded = _first_member_where(groups, has_normal)
    group_has_normal = seeded >= 0
    # Members that cancel out keep the lowest contributing member's normal;
    # groups with no contributor keep their first member's fallback.
    source = np.where(group_has_normal, seeded, groups.first_members())
    group_normals[~ok] = vertex_normals[source[~ok]]
    report.normal_fallbacks = int(np.count_nonzero(~ok & group_has_normal))
    report.orphan_vertices = int(np.count_nonzero(~has_normal))
    normals = group_normals[gov]

    tangents = None
    if compute_tangents and uv is not None:
        face_t, face_b, valid = triangle_tangent_frames(
            pos, uv, tris, det_eps=params.uv_determinant_epsilon
        )
        valid &= usable
        report.degenerate_uv_triangles = int(np.count_nonzero(usable & ~valid))
        t_sums = _accumulate_corners(n_verts, tris[valid], face_t[valid] * areas[valid, None])
        b_sums = _accumulate_corners(n_verts, tris[valid], face_b[valid] * areas[valid, None])
        vertex_tangents, report.tangent_fallbacks = orthonormal_tangents(
            t_sums, b_sums, vertex_normals, eps=eps, fallback_tangents=fb_tangents
        )

        has_tangent = np.zeros(n_verts, dtype=bool)
        has_tangent[tris[valid].reshape(-1)] = True
        group_t = np.zeros((group_count, 3), dtype=float)
        group_w = np.zeros(group_count, dtype=float)
        np.add.at(group_t, gov[has_tangent], vertex_tangents[has_tangent, :3])
        np.add.at(group_w, gov[has_tangent], vertex_tangents[has_tangent, 3])
        seeded_t = _first_member_where(groups, has_tangent)
        group_has_tangent = seeded_t >= 0
        source_t = np.where(group_has_tangent, seeded_t, groups.first_members())
        group_tangents, _ = orthonormal_tangents(
            group_t,
            np.zeros_like(group_t),
            group_normals,
            eps=eps,
            fallback_tangents=vertex_tangents[source_t],
        )
        group_tangents[:, 3] = np.where(
            group_has_tangent,
            np.where(group_w < 0.0, -1.0, 1.0),
            group_tangents[:, 3],
        )
        tangents = group_tangents[gov]

    report.log("cached_lite")
    logger.debug(
        "Seam-averaged solve: %d vertices, %d groups.", n_verts, groups.group_count
    )
    return SolveResult(normals=normals, tangents=tangents, method="cached_lite", report=report)
