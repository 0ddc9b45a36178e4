import os
import sys

import numpy as np

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from geometry.adjacency import (
    AdjacencyTable,
    build_adjacency,
    build_incidence,
    vertex_incidence,
)
from geometry.cache_checks import adjacency_ranges_valid
from geometry.position_groups import group_positions
from sample_meshes import hinge, split_cube


def test_vertex_incidence_lists_ascending_triangles():
    _, triangles, _ = hinge()
    table = vertex_incidence(triangles, 8)
    assert table.row(0).tolist() == [0, 1]
    assert table.row(1).tolist() == [0]
    assert table.row(4).tolist() == [2, 3]
    assert table.row(7).tolist() == [3]


def test_group_adjacency_is_union_of_member_incidences():
    positions, triangles, _ = hinge()
    groups = group_positions(positions)
    table = build_adjacency(triangles, groups)
    own = vertex_incidence(triangles, 8)
    gov = groups.group_of_vertex

    for a, b in ((1, 4), (2, 7)):
        expected = sorted(set(own.row(a).tolist()) | set(own.row(b).tolist()))
        assert table.row(gov[a]).tolist() == expected
    assert table.row(gov[1]).tolist() == [0, 2, 3]


def test_triangle_touching_a_group_twice_is_listed_once():
    # Vertices 0 and 3 coincide; triangle 0 uses both.
    positions = np.array(
        [[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [1.0, 1.0, 0.0], [0.0, 0.0, 0.0]]
    )
    triangles = np.array([[0, 1, 3], [3, 1, 2]])
    groups = group_positions(positions)
    table = build_adjacency(triangles, groups)
    assert table.row(groups.group_of_vertex[0]).tolist() == [0, 1]


def test_ranges_tile_flat_list():
    mesh = split_cube()
    groups = group_positions(mesh.positions)
    table = build_adjacency(mesh.triangles, groups)
    assert table.row_count == 8
    assert adjacency_ranges_valid(table.offsets, table.counts, table.flat.shape[0])
    # Every cube triangle touches three corners.
    assert table.flat.shape[0] == 3 * mesh.triangle_count


def test_orphan_rows_have_empty_ranges():
    table = build_incidence(np.array([[0, 1, 2]]), 5)
    assert table.counts.tolist() == [1, 1, 1, 0, 0]
    assert table.row(4).size == 0


def test_from_ranges_rebuilds_table():
    table = AdjacencyTable.from_ranges([[0, 2], [2, 1]], [4, 7, 1])
    assert table.row(0).tolist() == [4, 7]
    assert table.row(1).tolist() == [1]
    assert table.ranges.tolist() == [[0, 2], [2, 1]]
