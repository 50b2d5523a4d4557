"""Flat float64 serialization of polygon construction parameters.

Layout, starting at ``starting_index``::

    hierarchy stream        n_positions, n_holes, x0, y0, z0, ..., holes...
    ellipsoid radii         rx, ry, rz
    vertex format           position, normal, st, tangent, bitangent, color
    scalars                 height, extruded_height, granularity,
                            st_rotation, per_position_height, close_top,
                            close_bottom, arc_type, offset_attribute,
                            packed_length

The hierarchy stream is depth first: each hole's stream follows its
parent's positions.  An unset offset attribute packs as -1 and an unset
extruded height (per-position heights only) as NaN.  Only the
parameters are packed, never the tessellated mesh.
"""

import math
from collections import namedtuple

import numpy as np

from .ellipsoid import Ellipsoid
from .errors import InvalidArgumentError
from .hierarchy import PolygonHierarchy
from .vertex_format import (
    ArcType,
    GeometryOffsetAttribute,
    VERTEX_FORMAT_PACKED_LENGTH,
    VertexFormat,
)


ConstructionParameters = namedtuple("ConstructionParameters", [
    "polygon_hierarchy",
    "ellipsoid",
    "vertex_format",
    "granularity",
    "height",
    "extruded_height",
    "per_position_height",
    "close_top",
    "close_bottom",
    "arc_type",
    "st_rotation",
    "offset_attribute",
])

# radii, vertex format, then the ten trailing scalars
FIXED_PACKED_LENGTH = 3 + VERTEX_FORMAT_PACKED_LENGTH + 10


# ---------------------------------------------------------------------------
# Hierarchy stream
# ---------------------------------------------------------------------------

def _positions_array(positions):
    return np.asarray(positions, dtype=np.float64).reshape(-1, 3)


def hierarchy_packed_length(hierarchy):
    length = 2 + 3 * len(_positions_array(hierarchy.positions))
    for hole in hierarchy.holes:
        length += hierarchy_packed_length(hole)
    return length


def pack_hierarchy(hierarchy, array, starting_index=0):
    """Write a hierarchy stream; returns the index just past it."""
    positions = _positions_array(hierarchy.positions)
    array[starting_index] = len(positions)
    array[starting_index + 1] = len(hierarchy.holes)
    index = starting_index + 2
    values = positions.ravel()
    array[index:index + len(values)] = values
    index += len(values)
    for hole in hierarchy.holes:
        index = pack_hierarchy(hole, array, index)
    return index


def unpack_hierarchy(array, starting_index=0):
    """Read a hierarchy stream.

    Returns
    -------
    hierarchy : PolygonHierarchy
    index : int
        Index just past the stream.
    """
    n_positions = int(array[starting_index])
    n_holes = int(array[starting_index + 1])
    index = starting_index + 2
    positions = np.array(array[index:index + 3 * n_positions],
                         dtype=np.float64).reshape(-1, 3)
    index += 3 * n_positions

    holes = []
    for _ in range(n_holes):
        hole, index = unpack_hierarchy(array, index)
        holes.append(hole)
    return PolygonHierarchy(positions, holes), index


# ---------------------------------------------------------------------------
# Parameters
# ---------------------------------------------------------------------------

def packed_length(parameters):
    return hierarchy_packed_length(parameters.polygon_hierarchy) + FIXED_PACKED_LENGTH


def pack_parameters(parameters, array=None, starting_index=0):
    """Pack construction parameters into a flat array.

    Parameters
    ----------
    parameters : ConstructionParameters
    array : array-like, optional
        Destination with room for the packed values from
        ``starting_index``; a new float64 array is allocated when omitted.
    starting_index : int

    Returns
    -------
    array-like
        The destination array.
    """
    length = packed_length(parameters)
    if array is None:
        array = np.zeros(starting_index + length, dtype=np.float64)
    elif len(array) < starting_index + length:
        raise InvalidArgumentError(
            f"Array of length {len(array)} cannot hold {length} packed values "
            f"from index {starting_index}")

    index = pack_hierarchy(parameters.polygon_hierarchy, array, starting_index)

    array[index:index + 3] = parameters.ellipsoid.radii.tolist()
    index += 3
    array[index:index + VERTEX_FORMAT_PACKED_LENGTH] = \
        VertexFormat(parameters.vertex_format).pack()
    index += VERTEX_FORMAT_PACKED_LENGTH

    offset = parameters.offset_attribute
    array[index:index + 10] = [
        parameters.height,
        (math.nan if parameters.extruded_height is None
         else parameters.extruded_height),
        parameters.granularity,
        parameters.st_rotation,
        1.0 if parameters.per_position_height else 0.0,
        1.0 if parameters.close_top else 0.0,
        1.0 if parameters.close_bottom else 0.0,
        float(parameters.arc_type),
        -1.0 if offset is None else float(offset),
        float(length),
    ]
    return array


def unpack_parameters(array, starting_index=0):
    """Inverse of :func:`pack_parameters`.

    Returns
    -------
    ConstructionParameters
    """
    hierarchy, index = unpack_hierarchy(array, starting_index)

    radii = [float(v) for v in array[index:index + 3]]
    index += 3
    vertex_format = VertexFormat.unpack(
        array[index:index + VERTEX_FORMAT_PACKED_LENGTH])
    index += VERTEX_FORMAT_PACKED_LENGTH

    (height, extruded_height, granularity, st_rotation, per_position_height,
     close_top, close_bottom, arc_type, offset, _length) = [
        float(v) for v in array[index:index + 10]]

    ellipsoid = Ellipsoid(*radii)
    if ellipsoid == Ellipsoid.WGS84:
        ellipsoid = Ellipsoid.WGS84

    return ConstructionParameters(
        polygon_hierarchy=hierarchy,
        ellipsoid=ellipsoid,
        vertex_format=vertex_format,
        granularity=granularity,
        height=height,
        extruded_height=(None if math.isnan(extruded_height)
                         else extruded_height),
        per_position_height=per_position_height == 1.0,
        close_top=close_top == 1.0,
        close_bottom=close_bottom == 1.0,
        arc_type=ArcType(int(arc_type)),
        st_rotation=st_rotation,
        offset_attribute=(None if offset < 0
                          else GeometryOffsetAttribute(int(offset))),
    )
