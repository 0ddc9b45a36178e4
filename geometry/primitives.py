"""Small procedural meshes used by tests, benchmarks and examples.

All meshes wind front faces counter-clockwise when seen from outside and
carry UVs laid out so tangents point along +u with handedness +1.
"""

from __future__ import annotations

import math

import numpy as np

from geometry.mesh_arrays import MeshArrays, mesh_arrays
from geometry.position_groups import group_positions

# (normal, u axis, v axis) per cube face, with u x v == normal.
_BOX_FACES = (
    ((1, 0, 0), (0, 1, 0), (0, 0, 1)),
    ((-1, 0, 0), (0, 0, 1), (0, 1, 0)),
    ((0, 1, 0), (0, 0, 1), (1, 0, 0)),
    ((0, -1, 0), (1, 0, 0), (0, 0, 1)),
    ((0, 0, 1), (1, 0, 0), (0, 1, 0)),
    ((0, 0, -1), (0, 1, 0), (1, 0, 0)),
)


def quad(size: float = 1.0) -> MeshArrays:
    """Unit square in the xy plane facing +z, split into two triangles."""
    positions = np.array(
        [[0, 0, 0], [1, 0, 0], [1, 1, 0], [0, 1, 0]], dtype=float
    ) * size
    triangles = np.array([[0, 1, 2], [0, 2, 3]], dtype=np.int64)
    uvs = np.array([[0, 0], [1, 0], [1, 1], [0, 1]], dtype=float)
    return mesh_arrays(positions, triangles, uvs)


def grid(nx: int = 4, ny: int = 4, size: float = 1.0) -> MeshArrays:
    """Flat ``nx`` x ``ny`` cell grid in the xy plane facing +z."""
    if nx < 1 or ny < 1:
        raise ValueError("grid needs at least one cell in each direction")
    u = np.linspace(0.0, 1.0, nx + 1)
    v = np.linspace(0.0, 1.0, ny + 1)
    uu, vv = np.meshgrid(u, v)
    uvs = np.stack([uu.ravel(), vv.ravel()], axis=1)
    positions = np.zeros((uvs.shape[0], 3), dtype=float)
    positions[:, :2] = uvs * size

    row = nx + 1
    j, i = np.meshgrid(np.arange(ny), np.arange(nx), indexing="ij")
    a = (j * row + i).ravel()
    b = a + 1
    c = a + row + 1
    d = a + row
    triangles = np.concatenate(
        [np.stack([a, b, c], axis=1), np.stack([a, c, d], axis=1)]
    )
    return mesh_arrays(positions, triangles, uvs)


def box(size: float = 1.0, *, split_faces: bool = True) -> MeshArrays:
    """Axis-aligned cube centred on the origin.

    With ``split_faces`` every face owns four vertices (24 in total) with
    their own UVs, the usual layout for a hard-edged cube. Otherwise the
    corners are shared (8 vertices) and no UVs are returned.
    """
    h = 0.5 * size
    corners = np.array([[-1, -1], [1, -1], [1, 1], [-1, 1]], dtype=float)
    face_uvs = np.array([[0, 0], [1, 0], [1, 1], [0, 1]], dtype=float)

    positions = []
    uvs = []
    triangles = []
    for face, (normal, u_axis, v_axis) in enumerate(_BOX_FACES):
        n = np.asarray(normal, dtype=float)
        u = np.asarray(u_axis, dtype=float)
        v = np.asarray(v_axis, dtype=float)
        for su, sv in corners:
            positions.append((n + su * u + sv * v) * h)
        uvs.extend(face_uvs)
        base = 4 * face
        triangles.append([base, base + 1, base + 2])
        triangles.append([base, base + 2, base + 3])

    positions = np.asarray(positions)
    triangles = np.asarray(triangles, dtype=np.int64)
    if split_faces:
        return mesh_arrays(positions, triangles, np.asarray(uvs))

    groups = group_positions(positions, epsilon=1e-6 * max(size, 1e-12))
    shared = positions[groups.first_members()]
    return mesh_arrays(shared, groups.group_of_vertex[triangles])


def uv_sphere(rings: int = 16, segments: int = 32, radius: float = 1.0) -> MeshArrays:
    """Latitude/longitude sphere with a UV seam.

    The seam column (u = 0 and u = 1) is duplicated and each pole carries one
    vertex per segment, which is the layout that makes seam-aware normals
    necessary. Every vertex is referenced by at least one triangle.
    """
    if rings < 2 or segments < 3:
        raise ValueError("uv_sphere needs at least 2 rings and 3 segments")
    theta = np.linspace(0.0, math.pi, rings + 1)
    phi = np.linspace(0.0, 2.0 * math.pi, segments + 1)
    tt, pp = np.meshgrid(theta, phi, indexing="ij")
    sin_t = np.sin(tt)
    positions = radius * np.stack(
        [sin_t * np.cos(pp), sin_t * np.sin(pp), np.cos(tt)], axis=-1
    ).reshape(-1, 3)
    # Close the seam and poles exactly.
    positions = positions.reshape(rings + 1, segments + 1, 3)
    positions[:, -1] = positions[:, 0]
    positions[0, :] = (0.0, 0.0, radius)
    positions[-1, :] = (0.0, 0.0, -radius)
    positions = positions.reshape(-1, 3)

    uu, vv = np.meshgrid(
        np.arange(segments + 1) / segments,
        1.0 - np.arange(rings + 1) / rings,
    )
    uvs = np.stack([uu.ravel(), vv.ravel()], axis=1)

    row = segments + 1
    triangles = []
    for i in range(rings):
        for j in range(segments):
            a = i * row + j
            b = a + row
            c = b + 1
            d = a + 1
            if i != rings - 1:
                triangles.append((a, b, c))
            if i != 0:
                triangles.append((a, c, d))

    # The grid has segments + 1 pole vertices per cap but only segments cap
    # triangles; drop the spare one at each pole.
    keep = np.ones(positions.shape[0], dtype=bool)
    keep[segments] = False
    keep[rings * row] = False
    remap = np.cumsum(keep) - 1
    triangles = remap[np.asarray(triangles, dtype=np.int64)]
    return mesh_arrays(positions[keep], triangles, uvs[keep])
