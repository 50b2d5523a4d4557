"""Bounding volumes, geographic extents and texture rotation points."""

import math

import numba as nb
import numpy as np

from ._math_utils import PI_OVER_TWO, TWO_PI, negative_pi_to_pi_array
from .ellipsoid import Ellipsoid
from .tangent_plane import east_north_up_axes


# ---------------------------------------------------------------------------
# Bounding sphere
# ---------------------------------------------------------------------------

@nb.njit
def _sphere_from_points(points):
    """Ritter sphere and box-center sphere; returns the smaller one."""
    n = points.shape[0]
    x_min = points[0].copy()
    y_min = points[0].copy()
    z_min = points[0].copy()
    x_max = points[0].copy()
    y_max = points[0].copy()
    z_max = points[0].copy()

    for i in range(1, n):
        p = points[i]
        if p[0] < x_min[0]:
            x_min[:] = p
        if p[0] > x_max[0]:
            x_max[:] = p
        if p[1] < y_min[1]:
            y_min[:] = p
        if p[1] > y_max[1]:
            y_max[:] = p
        if p[2] < z_min[2]:
            z_min[:] = p
        if p[2] > z_max[2]:
            z_max[:] = p

    x_span = np.sum((x_max - x_min) ** 2)
    y_span = np.sum((y_max - y_min) ** 2)
    z_span = np.sum((z_max - z_min) ** 2)

    d1 = x_min
    d2 = x_max
    max_span = x_span
    if y_span > max_span:
        max_span = y_span
        d1 = y_min
        d2 = y_max
    if z_span > max_span:
        d1 = z_min
        d2 = z_max

    ritter_center = (d1 + d2) * 0.5
    radius_squared = np.sum((d2 - ritter_center) ** 2)
    ritter_radius = np.sqrt(radius_squared)

    box_min = np.array([x_min[0], y_min[1], z_min[2]])
    box_max = np.array([x_max[0], y_max[1], z_max[2]])
    naive_center = (box_min + box_max) * 0.5
    naive_radius = 0.0

    for i in range(n):
        p = points[i]
        r = np.sqrt(np.sum((p - naive_center) ** 2))
        if r > naive_radius:
            naive_radius = r

        # grow the Ritter sphere to include points outside it
        to_point_squared = np.sum((p - ritter_center) ** 2)
        if to_point_squared > radius_squared:
            to_point = np.sqrt(to_point_squared)
            ritter_radius = (ritter_radius + to_point) * 0.5
            radius_squared = ritter_radius * ritter_radius
            old_to_new = to_point - ritter_radius
            ritter_center = (ritter_radius * ritter_center
                             + old_to_new * p) / to_point

    if ritter_radius < naive_radius:
        return ritter_center[0], ritter_center[1], ritter_center[2], ritter_radius
    return naive_center[0], naive_center[1], naive_center[2], naive_radius


class BoundingSphere:
    """Sphere enclosing a set of points.

    Parameters
    ----------
    center : array-like
        Earth-fixed center.
    radius : float
    """

    def __init__(self, center=(0.0, 0.0, 0.0), radius=0.0):
        self.center = np.asarray(center, dtype=np.float64)
        self.radius = float(radius)

    def __repr__(self):
        return f"BoundingSphere(center={self.center.tolist()}, radius={self.radius})"

    def __eq__(self, other):
        if not isinstance(other, BoundingSphere):
            return NotImplemented
        return (np.array_equal(self.center, other.center)
                and self.radius == other.radius)

    @classmethod
    def from_points(cls, points):
        """Tight sphere around ``(N, 3)`` points (empty gives a zero sphere)."""
        pts = np.ascontiguousarray(points, dtype=np.float64).reshape(-1, 3)
        if len(pts) == 0:
            return cls()
        cx, cy, cz, radius = _sphere_from_points(pts)
        return cls((cx, cy, cz), radius)

    @classmethod
    def from_vertices(cls, positions):
        """Same as :meth:`from_points` for a flat x, y, z buffer."""
        return cls.from_points(np.asarray(positions, dtype=np.float64).reshape(-1, 3))


# ---------------------------------------------------------------------------
# Geographic rectangle
# ---------------------------------------------------------------------------

class Rectangle:
    """Geographic extent in radians.

    ``east`` may be less than ``west`` when the extent crosses the
    antimeridian.
    """

    def __init__(self, west=0.0, south=0.0, east=0.0, north=0.0):
        self.west = west
        self.south = south
        self.east = east
        self.north = north

    def __repr__(self):
        return (f"Rectangle(west={self.west}, south={self.south}, "
                f"east={self.east}, north={self.north})")

    def __eq__(self, other):
        if not isinstance(other, Rectangle):
            return NotImplemented
        return (self.west == other.west and self.south == other.south
                and self.east == other.east and self.north == other.north)

    @property
    def width(self):
        east = self.east
        if east < self.west:
            east += TWO_PI
        return east - self.west

    @property
    def height(self):
        return self.north - self.south

    def center(self):
        """``(longitude, latitude)`` of the middle of the extent."""
        longitude = self.west + self.width * 0.5
        if longitude > math.pi:
            longitude -= TWO_PI
        return longitude, (self.south + self.north) * 0.5


def compute_rectangle(positions, ellipsoid=Ellipsoid.WGS84, result=None):
    """Geographic extent of a ring from its positions alone.

    Longitudes are unwrapped along consecutive edges so rings crossing the
    antimeridian get ``east < west``.  A ring whose longitude deltas add up
    to a full turn encircles a pole: it spans every longitude and reaches
    that pole.

    Parameters
    ----------
    positions : array-like
        (N, 3) ring positions.
    ellipsoid : Ellipsoid
    result : Rectangle, optional
        Filled in and returned when given.

    Returns
    -------
    Rectangle
    """
    if result is None:
        result = Rectangle()

    carto = ellipsoid.cartesian_to_cartographic(
        np.asarray(positions, dtype=np.float64).reshape(-1, 3))
    carto = carto[np.all(np.isfinite(carto), axis=1)]
    if len(carto) == 0:
        result.west = result.south = result.east = result.north = 0.0
        return result

    longitude = carto[:, 0]
    latitude = carto[:, 1]
    south = float(latitude.min())
    north = float(latitude.max())

    deltas = negative_pi_to_pi_array(np.roll(longitude, -1) - longitude)
    unwrapped = longitude[0] + np.concatenate(([0.0], np.cumsum(deltas[:-1])))
    turn = float(deltas.sum())

    if abs(turn) > math.pi:
        west = -math.pi
        east = math.pi
        if latitude.mean() >= 0.0:
            north = PI_OVER_TWO
        else:
            south = -PI_OVER_TWO
    elif unwrapped.max() - unwrapped.min() >= TWO_PI:
        west = -math.pi
        east = math.pi
    else:
        west = float(longitude[np.argmin(unwrapped)])
        east = float(longitude[np.argmax(unwrapped)])

    result.west = west
    result.south = south
    result.east = east
    result.north = north
    return result


# ---------------------------------------------------------------------------
# Texture rotation reference points
# ---------------------------------------------------------------------------

def _rotate_2d(xy, angle):
    c = math.cos(angle)
    s = math.sin(angle)
    return np.stack([xy[:, 0] * c - xy[:, 1] * s,
                     xy[:, 0] * s + xy[:, 1] * c], axis=-1)


def texture_coordinate_rotation_points(positions, st_rotation,
                                       ellipsoid=Ellipsoid.WGS84,
                                       rectangle=None):
    """Reference points for rotating unrotated st coordinates.

    The unrotated texture space is the east/north box around the positions
    measured in the frame at the center of ``rectangle``.  The rotated
    space is the box around the positions after turning them by
    ``st_rotation``.  The origin, up and right corners of the rotated box are
    expressed in the unrotated texture space.

    Returns
    -------
    list of float
        ``[origin_s, origin_t, up_s, up_t, right_s, right_t]``.
    """
    if st_rotation == 0.0:
        return [0.0, 0.0, 0.0, 1.0, 1.0, 0.0]

    pts = np.asarray(positions, dtype=np.float64).reshape(-1, 3)
    if rectangle is None:
        rectangle = compute_rectangle(pts, ellipsoid)
    lon, lat = rectangle.center()
    origin = ellipsoid.cartographic_to_cartesian(lon, lat)
    east, north, _ = east_north_up_axes(origin, ellipsoid)

    enu = np.stack([pts @ east, pts @ north], axis=-1)
    lo = enu.min(axis=0)
    size = enu.max(axis=0) - lo

    rotated = _rotate_2d(enu, st_rotation)
    rmin = rotated.min(axis=0)
    rmax = rotated.max(axis=0)
    corners = np.array([[rmin[0], rmin[1]],
                        [rmin[0], rmax[1]],
                        [rmax[0], rmin[1]]])
    corners = _rotate_2d(corners, -st_rotation)

    with np.errstate(divide="ignore", invalid="ignore"):
        st = np.where(size > 0.0, (corners - lo) / size, 0.0)
    return st.ravel().tolist()
