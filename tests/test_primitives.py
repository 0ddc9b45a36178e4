import os
import sys

import numpy as np
import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from geometry.position_groups import group_positions
from geometry.primitives import box, grid, quad, uv_sphere
from geometry.triangle_ops import triangle_normals_and_areas


def _outward(mesh):
    normals, areas = triangle_normals_and_areas(mesh.positions, mesh.triangles)
    centroids = mesh.positions[mesh.triangles].mean(axis=1)
    return np.einsum("ij,ij->i", normals, centroids), areas


def test_quad_and_grid_face_up():
    for mesh in (quad(), grid(3, 2)):
        normals, _ = triangle_normals_and_areas(mesh.positions, mesh.triangles)
        assert np.all(normals[:, 2] > 0.0)
    assert grid(3, 2).vertex_count == 12
    assert grid(3, 2).triangle_count == 12


def test_box_layouts():
    split = box()
    shared = box(split_faces=False)
    assert split.vertex_count == 24
    assert shared.vertex_count == 8
    assert shared.uvs is None
    for mesh in (split, shared):
        assert mesh.triangle_count == 12
        outward, areas = _outward(mesh)
        assert np.all(outward > 0.0)
        assert np.allclose(areas, 0.5)


def test_uv_sphere_is_closed_and_outward():
    mesh = uv_sphere(rings=6, segments=8, radius=2.0)
    # Each pole keeps one vertex per segment.
    assert mesh.vertex_count == 7 * 9 - 2
    assert mesh.triangle_count == 2 * 8 * (6 - 1)
    outward, areas = _outward(mesh)
    assert np.all(outward > 0.0)
    assert np.all(areas > 0.0)
    assert np.allclose(np.linalg.norm(mesh.positions, axis=1), 2.0)
    # Seam column and poles collapse onto shared positions.
    assert group_positions(mesh.positions).group_count == 8 * 5 + 2


def test_uv_sphere_references_every_vertex():
    for rings, segments in ((2, 3), (6, 8), (10, 14)):
        mesh = uv_sphere(rings=rings, segments=segments)
        assert np.unique(mesh.triangles).size == mesh.vertex_count
        assert mesh.uvs.shape == (mesh.vertex_count, 2)


def test_invalid_primitive_arguments():
    with pytest.raises(ValueError):
        grid(0, 3)
    with pytest.raises(ValueError):
        uv_sphere(rings=1)
