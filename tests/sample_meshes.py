import numpy as np

from geometry.primitives import box, quad

# Two unit quads meeting at x == 1. The shared edge is split into separate
# vertex indices (1/4 and 2/7), the way a UV seam splits a mesh, and the
# second quad is folded up by 45 degrees.
HINGE_POSITIONS = np.array(
    [
        [0.0, 0.0, 0.0],
        [1.0, 0.0, 0.0],
        [1.0, 1.0, 0.0],
        [0.0, 1.0, 0.0],
        [1.0, 0.0, 0.0],
        [2.0, 0.0, 1.0],
        [2.0, 1.0, 1.0],
        [1.0, 1.0, 0.0],
    ]
)
HINGE_TRIANGLES = np.array(
    [[0, 1, 2], [0, 2, 3], [4, 5, 6], [4, 6, 7]], dtype=np.int64
)
HINGE_UVS = np.array(
    [
        [0.0, 0.0],
        [0.5, 0.0],
        [0.5, 1.0],
        [0.0, 1.0],
        [0.5, 0.0],
        [1.0, 0.0],
        [1.0, 1.0],
        [0.5, 1.0],
    ]
)


def hinge():
    return HINGE_POSITIONS.copy(), HINGE_TRIANGLES.copy(), HINGE_UVS.copy()


def split_cube():
    """24-vertex cube, one set of vertices per face."""
    return box(split_faces=True)


def shared_cube():
    """8-vertex cube with shared corners and no UVs."""
    return box(split_faces=False)


def unit_quad():
    return quad()


def mirrored_quad():
    """Unit quad whose u axis runs along -x."""
    mesh = quad()
    uvs = mesh.uvs.copy()
    uvs[:, 0] = 1.0 - uvs[:, 0]
    return mesh.positions, mesh.triangles, uvs


def assert_unit_rows(vectors, atol=1e-9):
    lengths = np.linalg.norm(vectors, axis=1)
    assert np.allclose(lengths, 1.0, atol=atol)


def assert_valid_tangents(tangents, normals, atol=1e-9):
    assert tangents.shape == (normals.shape[0], 4)
    assert_unit_rows(tangents[:, :3], atol=atol)
    dots = np.einsum("ij,ij->i", tangents[:, :3], normals)
    assert np.allclose(dots, 0.0, atol=atol)
    assert set(np.unique(tangents[:, 3])) <= {-1.0, 1.0}
