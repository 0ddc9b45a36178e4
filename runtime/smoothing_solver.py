"""From-scratch smoothing-angle normal solver.

Everything is rebuilt from the index buffer on every call, so positions and
topology may both change between calls without any cache bookkeeping.

Each vertex index has one output slot but may touch faces that should shade
differently (a cube corner touches three). The vertex's *primary face*, its
largest non-degenerate incident triangle (lowest triangle id on ties), picks
the cluster: a face contributes to the vertex normal only if its normal lies
within the smoothing angle of the primary face normal. Faces outside that
cone are ignored for this vertex, however many clusters meet there; meshes
that need distinct normals per cluster must split the vertex.
"""

from __future__ import annotations

import logging
import math

import numpy as np

from geometry.adjacency import build_adjacency, vertex_incidence
from geometry.mesh_arrays import (
    as_positions,
    as_triangles,
    as_uvs,
    as_vertex_vectors,
)
from geometry.position_groups import group_positions
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


def solve_smoothing(
    positions,
    triangles,
    uvs=None,
    smoothing_angle: float | None = None,
    *,
    weld_positions: bool | None = None,
    compute_tangents: bool = True,
    fallback_normals=None,
    fallback_tangents=None,
    params=None,
) -> SolveResult:
    """Compute smoothing-angle vertex normals and UV tangents.

    Parameters
    ----------
    positions : array_like, shape (N, 3)
        Current vertex positions.
    triangles : array_like, shape (T, 3) or (3T,)
        Triangle vertex indices, counter-clockwise front faces.
    uvs : array_like, shape (N, 2), optional
        Texture coordinates. Without UVs no tangents are produced.
    smoothing_angle : float, optional
        Hard-edge threshold in degrees; defaults to ``params.smoothing_angle``.
    weld_positions : bool, optional
        Also gather faces from vertices sharing this vertex's position, so UV
        seams shade smoothly. Defaults to ``params.weld_positions``.
    compute_tangents : bool
        Skip tangent output when ``False``.
    fallback_normals, fallback_tangents : array_like, optional
        Existing mesh data used for vertices with no usable triangle.
    params : SolverParameters, optional
        Tolerances, weld epsilon and worker settings.
    """
    params = resolve_parameters(
        params, smoothing_angle=smoothing_angle, weld_positions=weld_positions
    )
    pos = as_positions(positions)
    n_verts = pos.shape[0]
    tris = as_triangles(triangles, vertex_count=n_verts)
    uv = as_uvs(uvs, vertex_count=n_verts)
    fb_normals = as_vertex_vectors(
        fallback_normals, vertex_count=n_verts, width=3, name="fallback_normals"
    )
    fb_tangents = as_vertex_vectors(
        fallback_tangents, vertex_count=n_verts, width=4, name="fallback_tangents"
    )
    want_tangents = compute_tangents and uv is not None

    report = DegenerateGeometryReport()
    face_raw, areas = triangle_normals_and_areas(pos, tris)
    face_unit, _ = unit_rows(face_raw, 0.0)
    usable = areas > params.degenerate_area_epsilon
    report.degenerate_triangles = int(np.count_nonzero(~usable))

    own = vertex_incidence(tris, n_verts)
    if params.weld_positions:
        groups = group_positions(
            pos,
            epsilon=params.weld_epsilon,
            relative=params.weld_epsilon_mode == "relative",
        )
        group_adj = build_adjacency(tris, groups)
        cand_offsets = group_adj.offsets[groups.group_of_vertex]
        cand_counts = group_adj.counts[groups.group_of_vertex]
        cand_flat = group_adj.flat
    else:
        cand_offsets, cand_counts, cand_flat = own.offsets, own.counts, own.flat

    if want_tangents:
        face_t, face_b, t_valid = triangle_tangent_frames(
            pos, uv, tris, det_eps=params.uv_determinant_epsilon
        )
        t_valid &= usable
        report.degenerate_uv_triangles = int(np.count_nonzero(usable & ~t_valid))
        weighted_t = face_t * areas[:, None]
        weighted_b = face_b * areas[:, None]

    cos_limit = math.cos(math.radians(params.smoothing_angle)) - params.smoothing_cosine_tolerance
    length_eps = params.normal_length_epsilon

    normals = np.zeros((n_verts, 3), dtype=float)
    fell_back = np.zeros(n_verts, dtype=bool)
    orphan = np.zeros(n_verts, dtype=bool)
    t_sums = np.zeros((n_verts, 3), dtype=float)
    b_sums = np.zeros((n_verts, 3), dtype=float)

    def _solve_vertices(start: int, stop: int) -> None:
        rows = np.arange(start, stop, dtype=np.int64)
        count = stop - start

        own_seg, own_pos = expand_segments(own.offsets, own.counts, rows)
        own_tris = own.flat[own_pos]
        best = segment_argmax(np.where(usable[own_tris], areas[own_tris], -1.0), own_seg, count)
        has_primary = best >= 0
        has_primary[has_primary] = usable[own_tris[best[has_primary]]]
        primary = np.zeros(count, dtype=np.int64)
        primary[has_primary] = own_tris[best[has_primary]]

        seg, flat_pos = expand_segments(cand_offsets, cand_counts, rows)
        cand = cand_flat[flat_pos]
        contributes = has_primary[seg] & usable[cand]
        cosines = np.einsum("ij,ij->i", face_unit[cand], face_unit[primary[seg]])
        contributes &= cosines >= cos_limit
        # The primary face always counts for its own vertex, whatever the rounding
        # of its self dot product.
        contributes |= has_primary[seg] & (cand == primary[seg])

        summed = segment_sum(face_raw[cand[contributes]], seg[contributes], count)
        unit, ok = unit_rows(summed, length_eps)

        # Canceling contributions: use the largest contributing face instead.
        cancel = has_primary & ~ok
        if np.any(cancel):
            largest = segment_argmax(np.where(contributes, areas[cand], -1.0), seg, count)
            picked = np.where(largest >= 0, cand[np.maximum(largest, 0)], primary)
            unit[cancel] = face_unit[picked[cancel]]

        normals[start:stop] = unit
        fell_back[start:stop] = cancel
        orphan[start:stop] = ~has_primary

        if want_tangents:
            keep = t_valid[own_tris]
            t_sums[start:stop] = segment_sum(weighted_t[own_tris[keep]], own_seg[keep], count)
            b_sums[start:stop] = segment_sum(weighted_b[own_tris[keep]], own_seg[keep], count)

    parallel_for(
        n_verts, _solve_vertices, workers=params.workers, chunk_size=params.chunk_size
    )

    if fb_normals is not None and np.any(orphan):
        normals[orphan] = fb_normals[orphan]
    report.normal_fallbacks = int(np.count_nonzero(fell_back))
    report.orphan_vertices = int(np.count_nonzero(orphan))

    tangents = None
    if want_tangents:
        tangents, report.tangent_fallbacks = orthonormal_tangents(
            t_sums,
            b_sums,
            normals,
            eps=length_eps,
            fallback_tangents=fb_tangents,
        )

    report.log("smoothing")
    logger.debug(
        "Smoothing solve: %d vertices, %d triangles, angle=%g, weld=%s.",
        n_verts,
        tris.shape[0],
        params.smoothing_angle,
        params.weld_positions,
    )
    return SolveResult(normals=normals, tangents=tangents, method="smoothing", report=report)
