"""Per-vertex attribute synthesis: texture coordinates and offset flags.

Normals, tangents and bitangents come from :mod:`polytess.mesh`; this
module decides which buffers exist and fills them.
"""

import math

import numpy as np

from .mesh import compute_normals, compute_tangents_and_bitangents
from .vertex_format import GeometryOffsetAttribute, VertexFormat


# Part kinds, in the order a polygon emits them
TOP = "top"
BOTTOM = "bottom"
TOP_AND_BOTTOM = "top_and_bottom"
WALL = "wall"


def rotation_about_axis(axis, angle):
    """3x3 matrix turning vectors by ``angle`` radians about ``axis``."""
    k = np.asarray(axis, dtype=np.float64)
    k = k / np.linalg.norm(k)
    cross = np.array([[0.0, -k[2], k[1]],
                      [k[2], 0.0, -k[0]],
                      [-k[1], k[0], 0.0]])
    return (np.eye(3) + math.sin(angle) * cross
            + (1.0 - math.cos(angle)) * (cross @ cross))


# ---------------------------------------------------------------------------
# Texture coordinates
# ---------------------------------------------------------------------------

def st_bounding_box(tangent_plane, outer_ring, st_rotation=0.0):
    """Box of the rotated outer ring in tangent plane coordinates.

    Returns
    -------
    tuple of float
        ``(min_x, min_y, width, height)``.
    """
    rotation = rotation_about_axis(tangent_plane.normal, st_rotation)
    ring = np.asarray(outer_ring, dtype=np.float64).reshape(-1, 3)
    xy = tangent_plane.project_points_onto_plane(ring @ rotation.T)
    xy = xy[np.all(np.isfinite(xy), axis=1)]
    lo = xy.min(axis=0)
    hi = xy.max(axis=0)
    return float(lo[0]), float(lo[1]), float(hi[0] - lo[0]), float(hi[1] - lo[1])


def compute_st(positions, tangent_plane, bounding_box, st_rotation=0.0):
    """Texture coordinates for every vertex.

    Each position is turned by ``st_rotation`` about the plane normal,
    moved onto the surface, projected, and normalized over
    ``bounding_box``.  Values are clamped to [0, 1].

    Parameters
    ----------
    positions : np.ndarray
        (N, 3) final vertex positions.
    tangent_plane : EllipsoidTangentPlane
    bounding_box : tuple of float
        Result of :func:`st_bounding_box`.
    st_rotation : float

    Returns
    -------
    np.ndarray
        (N, 2) float64.
    """
    min_x, min_y, width, height = bounding_box
    rotation = rotation_about_axis(tangent_plane.normal, st_rotation)
    rotated = np.asarray(positions, dtype=np.float64).reshape(-1, 3) @ rotation.T
    surface = tangent_plane.ellipsoid.scale_to_geodetic_surface(rotated)
    xy = tangent_plane.project_points_onto_plane(surface)

    st = np.zeros_like(xy)
    if width > 0.0:
        st[:, 0] = (xy[:, 0] - min_x) / width
    if height > 0.0:
        st[:, 1] = (xy[:, 1] - min_y) / height
    return np.clip(np.nan_to_num(st), 0.0, 1.0)


# ---------------------------------------------------------------------------
# Offset flags
# ---------------------------------------------------------------------------

def compute_offset_flags(parts, offset_attribute):
    """One uint8 flag per vertex marking vertices that take the offset.

    Parameters
    ----------
    parts : list of MeshPart
        Parts in output order.
    offset_attribute : GeometryOffsetAttribute or None

    Returns
    -------
    np.ndarray or None
    """
    if offset_attribute is None:
        return None

    sizes = [len(part.positions) for part in parts]
    total = sum(sizes)
    if offset_attribute == GeometryOffsetAttribute.NONE:
        return np.zeros(total, dtype=np.uint8)
    if offset_attribute == GeometryOffsetAttribute.ALL:
        return np.ones(total, dtype=np.uint8)

    flags = []
    for part, size in zip(parts, sizes):
        flag = np.zeros(size, dtype=np.uint8)
        if part.kind == TOP:
            flag[:] = 1
        elif part.kind in (TOP_AND_BOTTOM, WALL):
            flag[:size // 2] = 1
        flags.append(flag)
    return np.concatenate(flags) if flags else np.zeros(0, dtype=np.uint8)


# ---------------------------------------------------------------------------
# Buffer assembly
# ---------------------------------------------------------------------------

def synthesize_attributes(positions, indices, vertex_format, tangent_plane,
                          bounding_box, st_rotation=0.0):
    """Build the requested attribute buffers for final mesh data.

    Parameters
    ----------
    positions : np.ndarray
        (N, 3) float64 final positions.
    indices : np.ndarray
        Flat int32 triangle indices.
    vertex_format : VertexFormat
    tangent_plane : EllipsoidTangentPlane
    bounding_box : tuple of float
    st_rotation : float

    Returns
    -------
    dict
        Keys ``st``, ``normals``, ``tangents``, ``bitangents``; flat float32
        arrays or None for buffers the format does not request.
    """
    buffers = {"st": None, "normals": None, "tangents": None,
               "bitangents": None}

    want_st = bool(vertex_format & VertexFormat.ST)
    want_normal = bool(vertex_format & VertexFormat.NORMAL)
    want_frame = bool(vertex_format & (VertexFormat.TANGENT
                                       | VertexFormat.BITANGENT))
    if not (want_st or want_normal or want_frame):
        return buffers

    flat = positions.ravel()
    st = None
    if want_st or want_frame:
        st = compute_st(positions, tangent_plane, bounding_box, st_rotation)
        if want_st:
            buffers["st"] = st.astype(np.float32).ravel()

    if want_normal or want_frame:
        normals = compute_normals(flat, indices)
        if want_normal:
            buffers["normals"] = normals.astype(np.float32)
        if want_frame:
            tangents, bitangents = compute_tangents_and_bitangents(
                flat, normals, st.ravel(), indices)
            if vertex_format & VertexFormat.TANGENT:
                buffers["tangents"] = tangents.astype(np.float32)
            if vertex_format & VertexFormat.BITANGENT:
                buffers["bitangents"] = bitangents.astype(np.float32)

    return buffers
