"""Caps, side walls and height placement for one flattened polygon.

Every polygon yields a list of :class:`MeshPart` values in output order:
its cap part (if any cap is closed) and then one wall part per ring when
extruded.  Parts never share vertices, so normals break at the crease
between caps and walls.
"""

from collections import namedtuple

import numpy as np

from ._math_utils import EPSILON2, EPSILON10, equals_epsilon
from .attributes import BOTTOM, TOP, TOP_AND_BOTTOM, WALL
from .earcut import triangulate
from .subdivide import subdivide_ring, subdivide_triangles
from .vertex_format import ArcType


MeshPart = namedtuple("MeshPart", ["positions", "indices", "kind"])


def is_extruded(height, extruded_height):
    """Heights closer than a centimetre make a single cap."""
    return not equals_epsilon(height, extruded_height, 0.0, EPSILON2)


def is_extruded_per_position(ellipsoid, positions, extruded_height):
    """Whether any position is more than a centimetre off ``extruded_height``.

    An unset (None) ``extruded_height`` never extrudes.
    """
    if extruded_height is None:
        return False
    heights = ellipsoid.geodetic_height(positions)
    return bool(np.any(np.abs(heights - extruded_height) > EPSILON2))


def _surface_and_heights(ellipsoid, positions, per_position_height):
    if per_position_height:
        return (ellipsoid.scale_to_geodetic_surface(positions),
                ellipsoid.geodetic_height(positions))
    return positions, np.zeros(len(positions))


def _reverse_winding(indices):
    return np.ascontiguousarray(indices.reshape(-1, 3)[:, ::-1]).ravel()


# ---------------------------------------------------------------------------
# Caps
# ---------------------------------------------------------------------------

def tessellate_cap(polygon, ellipsoid, granularity, arc_type=ArcType.GEODESIC,
                   per_position_height=False):
    """Triangulate and subdivide the cap of a flattened polygon.

    Returns
    -------
    tuple or None
        ``(positions, heights, indices)`` with positions on the surface
        (chord midpoints slightly below it), or None when the polygon cannot
        be triangulated.
    """
    indices = triangulate(polygon.positions_2d, polygon.hole_indices)
    if indices is None:
        return None
    positions, heights = _surface_and_heights(ellipsoid, polygon.positions,
                                              per_position_height)
    return subdivide_triangles(ellipsoid, positions, heights, indices,
                               granularity, arc_type)


def extrude_cap(ellipsoid, positions, top_heights, bottom_height, indices,
                close_top=True, close_bottom=True):
    """Cap part of an extruded polygon, or None when both caps are open.

    With both caps the top copy comes first and the bottom copy's triangles
    are reversed so it faces down.
    """
    if close_top and close_bottom:
        top = ellipsoid.scale_to_geodetic_height(positions, top_heights)
        bottom = ellipsoid.scale_to_geodetic_height(positions, bottom_height)
        bottom_indices = _reverse_winding(indices) + len(positions)
        return MeshPart(np.concatenate([top, bottom]),
                        np.concatenate([indices, bottom_indices]),
                        TOP_AND_BOTTOM)
    if close_top:
        return MeshPart(ellipsoid.scale_to_geodetic_height(positions, top_heights),
                        indices, TOP)
    if close_bottom:
        return MeshPart(ellipsoid.scale_to_geodetic_height(positions, bottom_height),
                        _reverse_winding(indices), BOTTOM)
    return None


# ---------------------------------------------------------------------------
# Walls
# ---------------------------------------------------------------------------

def wall_indices(top_row):
    """Two triangles per quad between a top row and the bottom row below it.

    Quads whose top edge has zero length (the seam between two ring edges)
    are skipped.
    """
    n = len(top_row)
    rows = top_row.tolist()
    indices = []
    for i in range(n - 1):
        a = rows[i]
        b = rows[i + 1]
        if all(abs(a[k] - b[k]) <= EPSILON10
               or abs(a[k] - b[k]) <= EPSILON10 * max(abs(a[k]), abs(b[k]))
               for k in range(3)):
            continue
        ul = i
        ur = i + 1
        ll = i + n
        lr = ll + 1
        indices.extend((ul, ll, ur, ur, ll, lr))
    return np.array(indices, dtype=np.int32)


def extrude_wall(ellipsoid, ring, granularity, arc_type, top_height,
                 bottom_height, per_position_height=False):
    """Side wall around one ring.

    Parameters
    ----------
    ellipsoid : Ellipsoid
    ring : np.ndarray
        (N, 3) ring, counter-clockwise for outer rings and clockwise for
        holes so the wall faces away from the filled area.
    granularity : float
    arc_type : ArcType
    top_height : float
        Used unless ``per_position_height`` is set.
    bottom_height : float
    per_position_height : bool

    Returns
    -------
    MeshPart
        Top row followed by the bottom row.
    """
    surface, heights = _surface_and_heights(ellipsoid, ring,
                                            per_position_height)
    row, row_heights = subdivide_ring(ellipsoid, surface, heights,
                                      granularity, arc_type)
    top = row_heights if per_position_height else top_height
    indices = wall_indices(row)
    positions = np.concatenate([
        ellipsoid.scale_to_geodetic_height(row, top),
        ellipsoid.scale_to_geodetic_height(row, bottom_height),
    ])
    return MeshPart(positions, indices, WALL)


# ---------------------------------------------------------------------------
# Polygon assembly
# ---------------------------------------------------------------------------

def build_polygon_parts(polygon, ellipsoid, granularity, arc_type, height,
                        extruded_height, per_position_height=False,
                        close_top=True, close_bottom=True, extrude=None):
    """All parts for one flattened polygon.

    Parameters
    ----------
    polygon : FlatPolygon
    ellipsoid : Ellipsoid
    granularity : float
    arc_type : ArcType
    height, extruded_height : float
        Top and bottom heights; ``height`` is ignored for the top when
        ``per_position_height`` is set.
    per_position_height : bool
    close_top, close_bottom : bool
    extrude : bool, optional
        Defaults to :func:`is_extruded` of the two heights, or to
        :func:`is_extruded_per_position` of the polygon with per-position
        heights.

    Returns
    -------
    list of MeshPart
    """
    if extrude is None:
        if per_position_height:
            extrude = is_extruded_per_position(ellipsoid, polygon.positions,
                                               extruded_height)
        else:
            extrude = is_extruded(height, extruded_height)

    cap = tessellate_cap(polygon, ellipsoid, granularity, arc_type,
                         per_position_height)
    if cap is None:
        return []
    positions, heights, indices = cap
    top_heights = heights if per_position_height else height

    if not extrude:
        placed = ellipsoid.scale_to_geodetic_height(positions, top_heights)
        return [MeshPart(placed, indices, TOP)]

    parts = []
    cap_part = extrude_cap(ellipsoid, positions, top_heights, extruded_height,
                           indices, close_top, close_bottom)
    if cap_part is not None:
        parts.append(cap_part)

    for ring in [polygon.outer_ring] + list(polygon.holes):
        parts.append(extrude_wall(ellipsoid, ring, granularity, arc_type,
                                  height, extruded_height,
                                  per_position_height))
    return parts


def combine_parts(parts):
    """Concatenate parts into one position array and one index buffer."""
    positions = []
    indices = []
    offset = 0
    for part in parts:
        positions.append(part.positions)
        indices.append(part.indices + offset)
        offset += len(part.positions)
    if not positions:
        return np.empty((0, 3)), np.empty(0, dtype=np.int32)
    return (np.concatenate(positions),
            np.concatenate(indices).astype(np.int32))
