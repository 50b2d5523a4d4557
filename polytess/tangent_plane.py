"""Local east-north-up tangent planes on the ellipsoid."""

import numpy as np

from ._math_utils import EPSILON14, EPSILON15
from .ellipsoid import Ellipsoid
from .errors import InvalidArgumentError


def east_north_up_axes(origin, ellipsoid=Ellipsoid.WGS84):
    """Unit east, north and up vectors of the local frame at ``origin``.

    At the poles east is fixed to +y so the frame stays defined.
    """
    origin = np.asarray(origin, dtype=np.float64)
    if abs(origin[0]) < EPSILON14 and abs(origin[1]) < EPSILON14:
        sign = 1.0 if origin[2] >= 0.0 else -1.0
        east = np.array([0.0, 1.0, 0.0])
        north = np.array([-sign, 0.0, 0.0])
        up = np.array([0.0, 0.0, sign])
        return east, north, up

    up = ellipsoid.geodetic_surface_normal(origin)
    east = np.array([-origin[1], origin[0], 0.0])
    east /= np.linalg.norm(east)
    north = np.cross(up, east)
    return east, north, up


class EllipsoidTangentPlane:
    """Plane tangent to the ellipsoid at a surface point.

    Points are mapped to plane coordinates by casting a ray from the
    ellipsoid center through each point, so the mapping is the same for a
    position and any position along its radial line.

    Parameters
    ----------
    origin : array-like
        Earth-fixed point; it is moved onto the surface first.
    ellipsoid : Ellipsoid
    """

    def __init__(self, origin, ellipsoid=Ellipsoid.WGS84):
        surface = ellipsoid.scale_to_geodetic_surface(origin)
        if not np.all(np.isfinite(surface)):
            raise InvalidArgumentError(
                "Tangent plane origin must not be at the center of the "
                "ellipsoid")
        self.ellipsoid = ellipsoid
        self.origin = surface
        self.x_axis, self.y_axis, self.normal = east_north_up_axes(
            surface, ellipsoid)
        self.plane_distance = -float(np.dot(self.normal, surface))

    @classmethod
    def from_points(cls, points, ellipsoid=Ellipsoid.WGS84):
        """Tangent plane at the center of the points' bounding box.

        Returns None when that center has no surface point.
        """
        pts = np.asarray(points, dtype=np.float64).reshape(-1, 3)
        center = 0.5 * (pts.min(axis=0) + pts.max(axis=0))
        surface = ellipsoid.scale_to_geodetic_surface(center)
        if not np.all(np.isfinite(surface)):
            return None
        return cls(surface, ellipsoid)

    def project_points_onto_plane(self, points):
        """Plane coordinates of each position.

        Parameters
        ----------
        points : np.ndarray
            (N, 3) earth-fixed positions.

        Returns
        -------
        np.ndarray
            (N, 2) float64 coordinates along the east and north axes.  Rows
            whose ray runs parallel to the plane are NaN.
        """
        pts = np.asarray(points, dtype=np.float64).reshape(-1, 3)
        norms = np.sqrt(np.einsum("ij,ij->i", pts, pts))
        with np.errstate(divide="ignore", invalid="ignore"):
            directions = pts / norms[:, None]
            denominator = directions @ self.normal
            valid = (norms > 0.0) & (np.abs(denominator) >= EPSILON15)
            scale = -self.plane_distance / denominator
            offsets = directions * scale[:, None] - self.origin
            result = np.stack([offsets @ self.x_axis, offsets @ self.y_axis],
                              axis=-1)
        result[~valid] = np.nan
        return result
