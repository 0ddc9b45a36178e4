import os
import sys

import numpy as np
import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from core.exceptions import InputShapeError
from geometry.mesh_arrays import as_triangles, as_vertex_vectors, mesh_arrays


def test_flat_index_buffer_is_reshaped():
    tris = as_triangles([0, 1, 2, 0, 2, 3], vertex_count=4)
    assert tris.shape == (2, 3)
    assert tris.dtype == np.int64


def test_integral_float_indices_are_accepted():
    tris = as_triangles(np.array([[0.0, 1.0, 2.0]]), vertex_count=3)
    assert tris.tolist() == [[0, 1, 2]]
    with pytest.raises(InputShapeError):
        as_triangles(np.array([[0.0, 1.5, 2.0]]), vertex_count=3)


def test_negative_indices_are_rejected():
    with pytest.raises(InputShapeError) as excinfo:
        as_triangles([[0, -1, 2]], vertex_count=3)
    assert excinfo.value.name == "triangles"


def test_non_finite_positions_are_rejected():
    with pytest.raises(InputShapeError):
        mesh_arrays([[0.0, 0.0, np.nan], [1, 0, 0], [0, 1, 0]], [[0, 1, 2]])


def test_empty_mesh():
    mesh = mesh_arrays(np.empty((0, 3)), [])
    assert mesh.vertex_count == 0
    assert mesh.triangle_count == 0


def test_with_positions_shares_topology():
    mesh = mesh_arrays(np.eye(3), [[0, 1, 2]], np.zeros((3, 2)))
    moved = mesh.with_positions(np.eye(3) * 2.0)
    assert moved.triangles is mesh.triangles
    assert moved.uvs is mesh.uvs
    with pytest.raises(InputShapeError):
        mesh.with_positions(np.zeros((2, 3)))


def test_vertex_vectors_shape_is_checked():
    assert as_vertex_vectors(None, vertex_count=3, width=4, name="tangents") is None
    with pytest.raises(InputShapeError):
        as_vertex_vectors(np.zeros((3, 3)), vertex_count=3, width=4, name="tangents")
