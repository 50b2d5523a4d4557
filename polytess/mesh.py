"""Output mesh container and per-vertex attribute derivation.

Normals, tangents and bitangents are derived from the final flat position,
st and index buffers with numba kernels, the same way for caps and walls.
"""

import numba as nb
import numpy as np


class Mesh:
    """Triangle mesh produced by :func:`polytess.create_geometry`.

    Attributes
    ----------
    positions : np.ndarray or None
        Flat float64 x, y, z per vertex; None when the vertex format does
        not request positions.
    indices : np.ndarray
        Flat int32 triangle list.
    bounding_sphere : BoundingSphere
    st, normals, tangents, bitangents : np.ndarray or None
        Flat float32 buffers, present only when requested.
    apply_offset : np.ndarray or None
        uint8 flag per vertex when an offset attribute was requested.
    offset_attribute : GeometryOffsetAttribute or None
    """

    def __init__(self, positions, indices, bounding_sphere, vertex_count,
                 st=None, normals=None, tangents=None, bitangents=None,
                 apply_offset=None, offset_attribute=None):
        self.positions = positions
        self.indices = indices
        self.bounding_sphere = bounding_sphere
        self.vertex_count = vertex_count
        self.st = st
        self.normals = normals
        self.tangents = tangents
        self.bitangents = bitangents
        self.apply_offset = apply_offset
        self.offset_attribute = offset_attribute

    @property
    def triangle_count(self):
        return len(self.indices) // 3

    def __repr__(self):
        return (f"Mesh(vertices={self.vertex_count}, "
                f"triangles={self.triangle_count})")


# ---------------------------------------------------------------------------
# Kernels
# ---------------------------------------------------------------------------

@nb.njit
def _accumulate_normals(positions, indices, normals):
    """Add each triangle's area-weighted normal to its three vertices."""
    for t in range(indices.shape[0] // 3):
        i0 = indices[3 * t]
        i1 = indices[3 * t + 1]
        i2 = indices[3 * t + 2]

        ax = positions[3 * i1] - positions[3 * i0]
        ay = positions[3 * i1 + 1] - positions[3 * i0 + 1]
        az = positions[3 * i1 + 2] - positions[3 * i0 + 2]
        bx = positions[3 * i2] - positions[3 * i0]
        by = positions[3 * i2 + 1] - positions[3 * i0 + 1]
        bz = positions[3 * i2 + 2] - positions[3 * i0 + 2]

        nx = ay * bz - az * by
        ny = az * bx - ax * bz
        nz = ax * by - ay * bx

        for i in (i0, i1, i2):
            normals[3 * i] += nx
            normals[3 * i + 1] += ny
            normals[3 * i + 2] += nz


@nb.njit
def _accumulate_tangents(positions, st, indices, tangents):
    """Add each triangle's texture-space u direction to its vertices.

    Triangles whose st coordinates are collinear contribute nothing.
    """
    for t in range(indices.shape[0] // 3):
        i0 = indices[3 * t]
        i1 = indices[3 * t + 1]
        i2 = indices[3 * t + 2]

        e1x = positions[3 * i1] - positions[3 * i0]
        e1y = positions[3 * i1 + 1] - positions[3 * i0 + 1]
        e1z = positions[3 * i1 + 2] - positions[3 * i0 + 2]
        e2x = positions[3 * i2] - positions[3 * i0]
        e2y = positions[3 * i2 + 1] - positions[3 * i0 + 1]
        e2z = positions[3 * i2 + 2] - positions[3 * i0 + 2]

        du1 = st[2 * i1] - st[2 * i0]
        dv1 = st[2 * i1 + 1] - st[2 * i0 + 1]
        du2 = st[2 * i2] - st[2 * i0]
        dv2 = st[2 * i2 + 1] - st[2 * i0 + 1]

        det = du1 * dv2 - du2 * dv1
        if abs(det) < 1e-20:
            continue
        r = 1.0 / det

        tx = (e1x * dv2 - e2x * dv1) * r
        ty = (e1y * dv2 - e2y * dv1) * r
        tz = (e1z * dv2 - e2z * dv1) * r

        for i in (i0, i1, i2):
            tangents[3 * i] += tx
            tangents[3 * i + 1] += ty
            tangents[3 * i + 2] += tz


@nb.njit
def _orthonormalize_tangents(normals, tangents, bitangents):
    """Gram-Schmidt each tangent against its normal.

    Vertices with no usable tangent get one perpendicular to the normal and
    the z axis (the x axis near the poles).
    """
    for v in range(normals.shape[0] // 3):
        nx = normals[3 * v]
        ny = normals[3 * v + 1]
        nz = normals[3 * v + 2]
        if nx == 0.0 and ny == 0.0 and nz == 0.0:
            continue

        tx = tangents[3 * v]
        ty = tangents[3 * v + 1]
        tz = tangents[3 * v + 2]
        d = nx * tx + ny * ty + nz * tz
        tx -= nx * d
        ty -= ny * d
        tz -= nz * d
        length = np.sqrt(tx * tx + ty * ty + tz * tz)

        if length < 1e-12:
            if abs(nz) < 0.9:
                # z cross n
                tx = -ny
                ty = nx
                tz = 0.0
            else:
                # x cross n
                tx = 0.0
                ty = -nz
                tz = ny
            length = np.sqrt(tx * tx + ty * ty + tz * tz)

        tx /= length
        ty /= length
        tz /= length
        tangents[3 * v] = tx
        tangents[3 * v + 1] = ty
        tangents[3 * v + 2] = tz

        bitangents[3 * v] = ny * tz - nz * ty
        bitangents[3 * v + 1] = nz * tx - nx * tz
        bitangents[3 * v + 2] = nx * ty - ny * tx


# ---------------------------------------------------------------------------
# Attribute derivation
# ---------------------------------------------------------------------------

def _normalize_flat(vectors):
    v = vectors.reshape(-1, 3)
    length = np.sqrt(np.einsum("ij,ij->i", v, v))
    nonzero = length > 0.0
    v[nonzero] /= length[nonzero, None]
    return vectors


def compute_normals(positions, indices):
    """Smooth per-vertex normals from a triangle list.

    Parameters
    ----------
    positions : np.ndarray
        Flat float64 positions.
    indices : np.ndarray
        Flat triangle indices.

    Returns
    -------
    np.ndarray
        Flat float64 unit normals; vertices used by no triangle (or only by
        zero-area triangles) get zero.
    """
    positions = np.ascontiguousarray(positions, dtype=np.float64)
    indices = np.ascontiguousarray(indices, dtype=np.int32)
    normals = np.zeros_like(positions)
    _accumulate_normals(positions, indices, normals)
    return _normalize_flat(normals)


def compute_tangents_and_bitangents(positions, normals, st, indices):
    """Tangent frames from positions, unit normals and texture coordinates.

    Returns
    -------
    tangents, bitangents : np.ndarray
        Flat float64 unit vectors; ``bitangent = normal x tangent``.
    """
    positions = np.ascontiguousarray(positions, dtype=np.float64)
    normals = np.ascontiguousarray(normals, dtype=np.float64)
    st = np.ascontiguousarray(st, dtype=np.float64)
    indices = np.ascontiguousarray(indices, dtype=np.int32)

    tangents = np.zeros_like(positions)
    bitangents = np.zeros_like(positions)
    _accumulate_tangents(positions, st, indices, tangents)
    _orthonormalize_tangents(normals, tangents, bitangents)
    return tangents, bitangents
