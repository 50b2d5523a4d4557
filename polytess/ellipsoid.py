"""Reference ellipsoid and cartographic <-> cartesian conversions.

All methods accept either a single ``(3,)`` vector or an ``(N, 3)`` array of
earth-fixed positions and return the same shape.  Cartographic values are
``(longitude, latitude, height)`` rows in radians and metres.
"""

import numba as nb
import numpy as np

from ._math_utils import EPSILON1, EPSILON12, RADIANS_PER_DEGREE
from .errors import InvalidArgumentError


@nb.njit
def _scale_to_geodetic_surface(points, one_over_radii, one_over_radii_squared,
                               center_tolerance_squared, out):
    """Newton iteration for the surface point below each input point."""
    orx = one_over_radii[0]
    ory = one_over_radii[1]
    orz = one_over_radii[2]
    orsx = one_over_radii_squared[0]
    orsy = one_over_radii_squared[1]
    orsz = one_over_radii_squared[2]

    for i in range(points.shape[0]):
        px = points[i, 0]
        py = points[i, 1]
        pz = points[i, 2]

        x2 = px * px * orx * orx
        y2 = py * py * ory * ory
        z2 = pz * pz * orz * orz

        squared_norm = x2 + y2 + z2
        if squared_norm == 0.0:
            out[i, 0] = np.nan
            out[i, 1] = np.nan
            out[i, 2] = np.nan
            continue

        # Radial intersection as the initial approximation
        ratio = np.sqrt(1.0 / squared_norm)
        ix = px * ratio
        iy = py * ratio
        iz = pz * ratio

        # Near the center the iteration does not converge
        if squared_norm < center_tolerance_squared:
            out[i, 0] = ix
            out[i, 1] = iy
            out[i, 2] = iz
            continue

        gx = ix * orsx * 2.0
        gy = iy * orsy * 2.0
        gz = iz * orsz * 2.0

        magnitude = np.sqrt(px * px + py * py + pz * pz)
        gradient = np.sqrt(gx * gx + gy * gy + gz * gz)
        lam = (1.0 - ratio) * magnitude / (0.5 * gradient)
        correction = 0.0

        xm = 1.0
        ym = 1.0
        zm = 1.0
        while True:
            lam -= correction
            xm = 1.0 / (1.0 + lam * orsx)
            ym = 1.0 / (1.0 + lam * orsy)
            zm = 1.0 / (1.0 + lam * orsz)

            xm2 = xm * xm
            ym2 = ym * ym
            zm2 = zm * zm

            func = x2 * xm2 + y2 * ym2 + z2 * zm2 - 1.0
            denominator = (x2 * xm2 * xm * orsx
                           + y2 * ym2 * ym * orsy
                           + z2 * zm2 * zm * orsz)
            correction = func / (-2.0 * denominator)
            if not abs(func) > EPSILON12:
                break

        out[i, 0] = px * xm
        out[i, 1] = py * ym
        out[i, 2] = pz * zm


def _as_points(points):
    """Return ``(array2d, single)`` for a vector or an array of vectors."""
    arr = np.ascontiguousarray(points, dtype=np.float64)
    if arr.ndim == 1:
        if arr.shape[0] != 3:
            raise ValueError(f"Expected an xyz vector, got shape {arr.shape}")
        return arr.reshape(1, 3), True
    if arr.ndim != 2 or arr.shape[1] != 3:
        raise ValueError(f"Expected an (N, 3) array, got shape {arr.shape}")
    return arr, False


def _normalize_rows(v):
    norm = np.sqrt(np.einsum("ij,ij->i", v, v))
    return v / norm[:, None]


class Ellipsoid:
    """A triaxial ellipsoid centred on the origin.

    Parameters
    ----------
    x, y, z : float
        Radii along each axis in metres.

    Examples
    --------
    >>> from polytess import Ellipsoid
    >>> Ellipsoid.WGS84.maximum_radius
    6378137.0
    """

    def __init__(self, x=0.0, y=0.0, z=0.0):
        if x < 0.0 or y < 0.0 or z < 0.0:
            raise InvalidArgumentError(
                f"Ellipsoid radii must be >= 0, got ({x}, {y}, {z})")
        self.radii = np.array([x, y, z], dtype=np.float64)
        self.radii_squared = self.radii * self.radii
        self.radii_to_the_fourth = self.radii_squared * self.radii_squared
        with np.errstate(divide="ignore"):
            self.one_over_radii = np.where(self.radii == 0.0, 0.0,
                                           1.0 / self.radii)
            self.one_over_radii_squared = np.where(
                self.radii == 0.0, 0.0, 1.0 / self.radii_squared)
        self.minimum_radius = float(self.radii.min())
        self.maximum_radius = float(self.radii.max())
        self.center_tolerance_squared = EPSILON1

    def __repr__(self):
        x, y, z = self.radii
        return f"Ellipsoid({x!r}, {y!r}, {z!r})"

    def __eq__(self, other):
        if not isinstance(other, Ellipsoid):
            return NotImplemented
        return bool(np.array_equal(self.radii, other.radii))

    def __hash__(self):
        return hash(tuple(self.radii))

    # ------------------------------------------------------------------
    # Surface projection
    # ------------------------------------------------------------------

    def scale_to_geodetic_surface(self, points):
        """Move positions along the surface normal onto the ellipsoid.

        Rows that lie at the center of the ellipsoid have no defined surface
        point and come back as NaN.
        """
        arr, single = _as_points(points)
        out = np.empty_like(arr)
        _scale_to_geodetic_surface(arr, self.one_over_radii,
                                   self.one_over_radii_squared,
                                   self.center_tolerance_squared, out)
        return out[0] if single else out

    def geodetic_surface_normal(self, points):
        """Unit outward normal of the surface at (or below) each position."""
        arr, single = _as_points(points)
        normals = _normalize_rows(arr * self.one_over_radii_squared)
        return normals[0] if single else normals

    def geodetic_surface_normal_cartographic(self, longitude, latitude):
        cos_lat = np.cos(latitude)
        normals = np.stack([cos_lat * np.cos(longitude),
                            cos_lat * np.sin(longitude),
                            np.sin(latitude)], axis=-1)
        return _normalize_rows(np.atleast_2d(normals)).reshape(normals.shape)

    def scale_to_geodetic_height(self, points, height):
        """Place each position ``height`` metres above its surface point.

        Parameters
        ----------
        points : np.ndarray
            (N, 3) positions.
        height : float or np.ndarray
            Scalar or per-row heights.
        """
        arr, single = _as_points(points)
        surface = self.scale_to_geodetic_surface(arr)
        normals = self.geodetic_surface_normal(surface)
        heights = np.broadcast_to(np.asarray(height, dtype=np.float64),
                                  (arr.shape[0],))
        out = surface + normals * heights[:, None]
        return out[0] if single else out

    # ------------------------------------------------------------------
    # Cartographic conversion
    # ------------------------------------------------------------------

    def cartographic_to_cartesian(self, longitude, latitude, height=0.0):
        """Convert geodetic coordinates in radians to earth-fixed positions.

        Scalars give a ``(3,)`` vector; arrays give ``(N, 3)``.
        """
        lon, lat, h = np.broadcast_arrays(
            np.asarray(longitude, dtype=np.float64),
            np.asarray(latitude, dtype=np.float64),
            np.asarray(height, dtype=np.float64))
        single = lon.ndim == 0
        lon = np.atleast_1d(lon)
        lat = np.atleast_1d(lat)
        h = np.atleast_1d(h)

        normals = self.geodetic_surface_normal_cartographic(lon, lat)
        k = self.radii_squared * normals
        gamma = np.sqrt(np.einsum("ij,ij->i", normals, k))
        k = k / gamma[:, None]
        out = k + normals * h[:, None]
        return out[0] if single else out

    def cartesian_to_cartographic(self, points):
        """Convert earth-fixed positions to ``(longitude, latitude, height)``.

        Positions at the center of the ellipsoid give a NaN row.
        """
        arr, single = _as_points(points)
        surface = self.scale_to_geodetic_surface(arr)
        normals = self.geodetic_surface_normal(surface)
        offset = arr - surface

        longitude = np.arctan2(normals[:, 1], normals[:, 0])
        latitude = np.arcsin(np.clip(normals[:, 2], -1.0, 1.0))
        height = (np.sign(np.einsum("ij,ij->i", offset, arr))
                  * np.sqrt(np.einsum("ij,ij->i", offset, offset)))

        out = np.stack([longitude, latitude, height], axis=-1)
        return out[0] if single else out

    def geodetic_height(self, points):
        """Signed height of each position above the surface."""
        carto = self.cartesian_to_cartographic(points)
        return carto[..., 2]


Ellipsoid.WGS84 = Ellipsoid(6378137.0, 6378137.0, 6356752.3142451793)
Ellipsoid.UNIT_SPHERE = Ellipsoid(1.0, 1.0, 1.0)


# ---------------------------------------------------------------------------
# Position construction helpers
# ---------------------------------------------------------------------------

def from_degrees(longitude, latitude, height=0.0, ellipsoid=Ellipsoid.WGS84):
    """Earth-fixed position of a single lon/lat/height in degrees."""
    return ellipsoid.cartographic_to_cartesian(
        longitude * RADIANS_PER_DEGREE, latitude * RADIANS_PER_DEGREE, height)


def from_radians_array(coordinates, ellipsoid=Ellipsoid.WGS84):
    """Positions from a flat ``[lon0, lat0, lon1, lat1, ...]`` radian list."""
    coords = np.asarray(coordinates, dtype=np.float64).reshape(-1, 2)
    return ellipsoid.cartographic_to_cartesian(
        coords[:, 0], coords[:, 1], np.zeros(len(coords)))


def from_degrees_array(coordinates, ellipsoid=Ellipsoid.WGS84):
    """Positions from a flat ``[lon0, lat0, lon1, lat1, ...]`` degree list.

    Parameters
    ----------
    coordinates : sequence of float
        Alternating longitudes and latitudes in degrees.
    ellipsoid : Ellipsoid

    Returns
    -------
    np.ndarray
        (N, 3) float64 positions on the surface.
    """
    coords = np.asarray(coordinates, dtype=np.float64).reshape(-1, 2)
    return ellipsoid.cartographic_to_cartesian(
        coords[:, 0] * RADIANS_PER_DEGREE,
        coords[:, 1] * RADIANS_PER_DEGREE,
        np.zeros(len(coords)))


def from_degrees_array_heights(coordinates, ellipsoid=Ellipsoid.WGS84):
    """Positions from a flat ``[lon0, lat0, h0, lon1, ...]`` list."""
    coords = np.asarray(coordinates, dtype=np.float64).reshape(-1, 3)
    return ellipsoid.cartographic_to_cartesian(
        coords[:, 0] * RADIANS_PER_DEGREE,
        coords[:, 1] * RADIANS_PER_DEGREE,
        coords[:, 2])
