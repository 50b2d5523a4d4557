"""Polygon geometry on an ellipsoid: construction and tessellation.

Construction only validates and captures parameters.  :func:`create_geometry`
turns them into a :class:`~polytess.mesh.Mesh`:

1. normalize and flatten the polygon hierarchy in a tangent plane,
2. triangulate each flattened polygon and subdivide the triangles along
   geodesic or rhumb arcs,
3. place caps at their heights and build the side walls when extruded,
4. derive texture coordinates, normals, tangents and offset flags,
5. bound the result.

Degenerate input gives None instead of raising.
"""

from collections.abc import Mapping

import numpy as np

from ._math_utils import RADIANS_PER_DEGREE
from .attributes import compute_offset_flags, st_bounding_box, synthesize_attributes
from .bounds import BoundingSphere, compute_rectangle, texture_coordinate_rotation_points
from .ellipsoid import Ellipsoid
from .errors import InvalidArgumentError
from .extrude import (
    build_polygon_parts,
    combine_parts,
    is_extruded,
    is_extruded_per_position,
)
from .hierarchy import PolygonHierarchy, flatten_hierarchy
from .mesh import Mesh
from .packing import (
    ConstructionParameters,
    pack_parameters,
    packed_length,
    unpack_parameters,
)
from .tangent_plane import EllipsoidTangentPlane
from .vertex_format import ArcType, GeometryOffsetAttribute, VertexFormat


def _check_arc_type(arc_type):
    if arc_type not in (ArcType.GEODESIC, ArcType.RHUMB):
        raise InvalidArgumentError(
            f"arc_type must be ArcType.GEODESIC or ArcType.RHUMB, got {arc_type!r}")
    return ArcType(arc_type)


def _as_hierarchy(value):
    """Accept a PolygonHierarchy or a ``{"positions", "holes"}`` mapping."""
    if isinstance(value, PolygonHierarchy):
        return value
    if isinstance(value, Mapping):
        holes = [_as_hierarchy(h) for h in value.get("holes") or []]
        return PolygonHierarchy(value["positions"], holes)
    raise TypeError(
        f"Expected PolygonHierarchy or mapping, got {type(value).__name__}")


class PolygonGeometry:
    """A polygon with optional holes and extrusion, ready to tessellate.

    Parameters
    ----------
    polygon_hierarchy : PolygonHierarchy or dict
        Outer ring positions and holes.  Required.
    height : float, optional
        Height of the polygon above the ellipsoid.  Defaults to 0.  Not
        allowed together with ``per_position_height``.
    extruded_height : float, optional
        Height of the other face of an extruded polygon.  Defaults to
        ``height`` (no extrusion).  Without per-position heights the larger
        of the two heights becomes the top.  With per-position heights the
        polygon is extruded when this is given and some ring position lies
        more than a centimetre above or below it; unset stays None.
    vertex_format : VertexFormat
        Attribute buffers to produce.
    st_rotation : float
        Texture rotation in radians, counter-clockwise from north.
    ellipsoid : Ellipsoid
    granularity : float
        Largest angular step, in radians, between neighbouring vertices.
    per_position_height : bool
        Use the height of each input position for the top instead of
        ``height``.
    close_top, close_bottom : bool
        Whether an extruded polygon gets its top and bottom caps.
    arc_type : ArcType
        GEODESIC or RHUMB.
    offset_attribute : GeometryOffsetAttribute, optional
        Produce per-vertex offset flags.

    Raises
    ------
    InvalidArgumentError
        If the hierarchy is missing, ``height`` is combined with
        ``per_position_height``, the arc type is not GEODESIC or RHUMB, or
        the granularity is not positive.

    Examples
    --------
    >>> from polytess import PolygonGeometry, from_degrees_array
    >>> geometry = PolygonGeometry.from_positions(
    ...     positions=from_degrees_array([-1, -1, 1, -1, 1, 1, -1, 1]))
    >>> mesh = PolygonGeometry.create_geometry(geometry)
    """

    def __init__(self, polygon_hierarchy=None, height=None,
                 extruded_height=None, vertex_format=VertexFormat.DEFAULT,
                 st_rotation=0.0, ellipsoid=Ellipsoid.WGS84,
                 granularity=RADIANS_PER_DEGREE, per_position_height=False,
                 close_top=True, close_bottom=True,
                 arc_type=ArcType.GEODESIC, offset_attribute=None):
        if polygon_hierarchy is None:
            raise InvalidArgumentError("polygon_hierarchy is required")
        if height is not None and per_position_height:
            raise InvalidArgumentError(
                "Cannot use both height and per_position_height")
        arc_type = _check_arc_type(arc_type)
        if not granularity > 0.0:
            raise InvalidArgumentError(
                f"granularity must be positive, got {granularity}")

        height = 0.0 if height is None else float(height)
        if per_position_height:
            if extruded_height is not None:
                extruded_height = float(extruded_height)
        else:
            extruded_height = (height if extruded_height is None
                               else float(extruded_height))
            height, extruded_height = (max(height, extruded_height),
                                       min(height, extruded_height))

        if offset_attribute is not None:
            offset_attribute = GeometryOffsetAttribute(offset_attribute)

        self._set_parameters(ConstructionParameters(
            polygon_hierarchy=_as_hierarchy(polygon_hierarchy),
            ellipsoid=ellipsoid,
            vertex_format=VertexFormat(vertex_format),
            granularity=float(granularity),
            height=height,
            extruded_height=extruded_height,
            per_position_height=bool(per_position_height),
            close_top=bool(close_top),
            close_bottom=bool(close_bottom),
            arc_type=arc_type,
            st_rotation=float(st_rotation),
            offset_attribute=offset_attribute,
        ))

    def _set_parameters(self, parameters):
        self.parameters = parameters
        self.packed_length = packed_length(parameters)
        self._rectangle = None
        self._texture_coordinate_rotation_points = None

    def __getattr__(self, name):
        parameters = self.__dict__.get("parameters")
        if parameters is not None and name in ConstructionParameters._fields:
            return getattr(parameters, name)
        raise AttributeError(
            f"'{type(self).__name__}' object has no attribute '{name}'")

    def __repr__(self):
        p = self.parameters
        return (f"PolygonGeometry(height={p.height}, "
                f"extruded_height={p.extruded_height}, "
                f"arc_type={p.arc_type.name})")

    @classmethod
    def from_positions(cls, positions=None, **options):
        """Polygon with a single outer ring and no holes.

        ``options`` are the remaining constructor keywords.
        """
        if positions is None:
            raise InvalidArgumentError("positions is required")
        return cls(polygon_hierarchy=PolygonHierarchy(positions), **options)

    # ------------------------------------------------------------------
    # Derived properties
    # ------------------------------------------------------------------

    @property
    def rectangle(self):
        """Geographic extent of the outer ring, computed on first access."""
        if self._rectangle is None:
            p = self.parameters
            self._rectangle = compute_rectangle(p.polygon_hierarchy.positions,
                                                p.ellipsoid)
        return self._rectangle

    @property
    def texture_coordinate_rotation_points(self):
        """Texture rotation reference points, computed on first access."""
        if self._texture_coordinate_rotation_points is None:
            p = self.parameters
            self._texture_coordinate_rotation_points = \
                texture_coordinate_rotation_points(
                    p.polygon_hierarchy.positions, p.st_rotation,
                    p.ellipsoid, self.rectangle)
        return self._texture_coordinate_rotation_points

    @staticmethod
    def compute_rectangle(options=None, result=None, **kwargs):
        """Geographic extent of a polygon without building the geometry.

        Parameters
        ----------
        options : mapping, optional
            Constructor keywords; only ``polygon_hierarchy`` and
            ``ellipsoid`` are used.  Keyword arguments are merged in.
        result : Rectangle, optional
            Filled in and returned when given.

        Returns
        -------
        Rectangle
        """
        merged = dict(options or {})
        merged.update(kwargs)
        hierarchy = merged.get("polygon_hierarchy")
        if hierarchy is None:
            raise InvalidArgumentError("polygon_hierarchy is required")
        ellipsoid = merged.get("ellipsoid") or Ellipsoid.WGS84
        return compute_rectangle(_as_hierarchy(hierarchy).positions,
                                 ellipsoid, result)

    # ------------------------------------------------------------------
    # Packing
    # ------------------------------------------------------------------

    @staticmethod
    def pack(value, array=None, starting_index=0):
        """Pack ``value``'s construction parameters into a flat array."""
        return pack_parameters(value.parameters, array, starting_index)

    @classmethod
    def unpack(cls, array, starting_index=0, result=None):
        """Rebuild a geometry from :meth:`pack` output.

        Parameters
        ----------
        array : array-like
        starting_index : int
        result : PolygonGeometry, optional
            Overwritten and returned when given.
        """
        parameters = unpack_parameters(array, starting_index)
        if result is None:
            result = cls.__new__(cls)
        result._set_parameters(parameters)
        return result

    @staticmethod
    def create_geometry(polygon_geometry):
        return create_geometry(polygon_geometry)


# ---------------------------------------------------------------------------
# Tessellation
# ---------------------------------------------------------------------------

def _corner_points(polygons, ellipsoid, height, extruded_height,
                   per_position_height, extrude):
    """Outer ring vertices at the top and, if extruded, bottom heights."""
    corners = []
    for polygon in polygons:
        ring = polygon.outer_ring
        if per_position_height:
            corners.append(ring)
        else:
            corners.append(ellipsoid.scale_to_geodetic_height(ring, height))
        if extrude:
            corners.append(ellipsoid.scale_to_geodetic_height(ring,
                                                              extruded_height))
    return np.concatenate(corners)


def create_geometry(polygon_geometry):
    """Tessellate a :class:`PolygonGeometry`.

    Parameters
    ----------
    polygon_geometry : PolygonGeometry

    Returns
    -------
    Mesh or None
        None when the input has no usable polygon (too few distinct
        positions, or every ring collapses).

    Raises
    ------
    InvalidArgumentError
        If the arc type is not GEODESIC or RHUMB.

    Warns
    -----
    DegenerateRingWarning
        For each hole that collapses and is dropped.  Degenerate input
        never raises by itself, but under ``warnings.simplefilter("error")``
        this warning propagates out of ``create_geometry`` as an exception.
    """
    p = polygon_geometry.parameters
    arc_type = _check_arc_type(p.arc_type)
    ellipsoid = p.ellipsoid

    outer_positions = np.asarray(p.polygon_hierarchy.positions,
                                 dtype=np.float64).reshape(-1, 3)
    if len(outer_positions) < 3:
        return None

    tangent_plane = EllipsoidTangentPlane.from_points(outer_positions,
                                                      ellipsoid)
    if tangent_plane is None:
        return None

    polygons = flatten_hierarchy(p.polygon_hierarchy, tangent_plane,
                                 ellipsoid, p.per_position_height)
    if not polygons:
        return None

    if p.per_position_height:
        extrude = any(is_extruded_per_position(ellipsoid, polygon.positions,
                                               p.extruded_height)
                      for polygon in polygons)
    else:
        extrude = is_extruded(p.height, p.extruded_height)
    parts = []
    for polygon in polygons:
        parts.extend(build_polygon_parts(
            polygon, ellipsoid, p.granularity, arc_type, p.height,
            p.extruded_height, p.per_position_height, p.close_top,
            p.close_bottom, extrude))
    if not parts:
        return None

    positions, indices = combine_parts(parts)
    vertex_count = len(positions)

    if not p.per_position_height and p.height == 0.0 and not extrude:
        bounding_sphere = BoundingSphere.from_points(positions)
    else:
        bounding_sphere = BoundingSphere.from_points(_corner_points(
            polygons, ellipsoid, p.height, p.extruded_height,
            p.per_position_height, extrude))

    bounding_box = st_bounding_box(tangent_plane, polygons[0].outer_ring,
                                   p.st_rotation)
    buffers = synthesize_attributes(positions, indices, p.vertex_format,
                                    tangent_plane, bounding_box,
                                    p.st_rotation)

    return Mesh(
        positions=(positions.ravel() if p.vertex_format & VertexFormat.POSITION
                   else None),
        indices=indices,
        bounding_sphere=bounding_sphere,
        vertex_count=vertex_count,
        apply_offset=compute_offset_flags(parts, p.offset_attribute),
        offset_attribute=p.offset_attribute,
        **buffers,
    )
