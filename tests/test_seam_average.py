import os
import sys

import numpy as np
import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from core.exceptions import InputShapeError
from geometry.position_groups import group_positions
from geometry.primitives import uv_sphere
from runtime.seam_average import solve_seam_averaged
from sample_meshes import assert_unit_rows, assert_valid_tangents, hinge, mirrored_quad


def test_hinge_seam_averages_vertex_normals():
    positions, triangles, uvs = hinge()
    groups = group_positions(positions)
    result = solve_seam_averaged(positions, triangles, groups, uvs)
    assert result.method == "cached_lite"

    expected = np.array([0.0, 0.0, 1.0]) + np.array([-1.0, 0.0, 1.0]) / np.sqrt(2.0)
    expected /= np.linalg.norm(expected)
    assert np.allclose(result.normals[1], expected)
    assert np.array_equal(result.normals[1], result.normals[4])
    assert np.array_equal(result.tangents[2], result.tangents[7])
    # Vertices off the seam keep their own normal.
    assert np.allclose(result.normals[0], [0.0, 0.0, 1.0])
    assert_valid_tangents(result.tangents, result.normals)


def test_sphere_members_are_identical():
    mesh = uv_sphere(rings=6, segments=8)
    groups = group_positions(mesh.positions)
    result = solve_seam_averaged(mesh.positions, mesh.triangles, groups, mesh.uvs)
    assert_unit_rows(result.normals)
    for members in groups.members:
        for vertex in members[1:]:
            assert np.array_equal(result.normals[vertex], result.normals[members[0]])
            assert np.array_equal(result.tangents[vertex], result.tangents[members[0]])


def test_mirrored_handedness_survives_averaging():
    positions, triangles, uvs = mirrored_quad()
    groups = group_positions(positions)
    result = solve_seam_averaged(positions, triangles, groups, uvs)
    assert np.all(result.tangents[:, 3] == -1.0)


def test_canceling_group_keeps_lowest_member_normal():
    base = np.array([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [0.0, 1.0, 0.0]])
    positions = np.vstack([base, base])
    triangles = np.array([[0, 1, 2], [3, 5, 4]])
    groups = group_positions(positions)
    result = solve_seam_averaged(positions, triangles, groups)
    assert result.report.normal_fallbacks == 3
    assert np.allclose(result.normals, [0.0, 0.0, 1.0])
    assert result.tangents is None


def test_group_size_mismatch_is_rejected():
    positions, triangles, uvs = hinge()
    groups = group_positions(positions[:6])
    with pytest.raises(InputShapeError):
        solve_seam_averaged(positions, triangles, groups, uvs)
