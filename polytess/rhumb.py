"""Rhumb lines (loxodromes) on an ellipsoid of revolution.

A rhumb line crosses every meridian at the same heading.  Distances use the
meridian arc series in the first eccentricity; the inverse is solved with
Newton steps on the same series so forward and inverse agree.
"""

import math

from ._math_utils import EPSILON8, PI_OVER_TWO, negative_pi_to_pi


def _meridian_distance(ellipticity, major, latitude):
    """Arc length along a meridian from the equator to ``latitude``."""
    if ellipticity == 0.0:
        return major * latitude

    e2 = ellipticity * ellipticity
    e4 = e2 * e2
    e6 = e4 * e2
    e8 = e6 * e2
    e10 = e8 * e2
    e12 = e10 * e2
    phi = latitude

    return major * (
        (1 - e2 / 4 - 3 * e4 / 64 - 5 * e6 / 256 - 175 * e8 / 16384
         - 441 * e10 / 65536 - 4851 * e12 / 1048576) * phi
        - (3 * e2 / 8 + 3 * e4 / 32 + 45 * e6 / 1024 + 105 * e8 / 4096
           + 2205 * e10 / 131072 + 6237 * e12 / 524288) * math.sin(2 * phi)
        + (15 * e4 / 256 + 45 * e6 / 1024 + 525 * e8 / 16384
           + 1575 * e10 / 65536 + 155925 * e12 / 8388608) * math.sin(4 * phi)
        - (35 * e6 / 3072 + 175 * e8 / 12288 + 3675 * e10 / 262144
           + 13475 * e12 / 1048576) * math.sin(6 * phi)
        + (315 * e8 / 131072 + 2205 * e10 / 524288
           + 43659 * e12 / 8388608) * math.sin(8 * phi)
        - (693 * e10 / 1310720 + 6237 * e12 / 5242880) * math.sin(10 * phi)
        + 1001 * e12 / 8388608 * math.sin(12 * phi))


def _inverse_meridian_distance(distance, ellipticity, major):
    """Latitude whose meridian distance from the equator is ``distance``."""
    phi = distance / major
    if ellipticity == 0.0:
        return phi

    e2 = ellipticity * ellipticity
    for _ in range(20):
        sin_phi = math.sin(phi)
        w = 1.0 - e2 * sin_phi * sin_phi
        derivative = major * (1.0 - e2) / (w * math.sqrt(w))
        step = (_meridian_distance(ellipticity, major, phi) - distance) / derivative
        phi -= step
        if abs(step) < 1e-15:
            break
    return phi


def _isometric_latitude(ellipticity, latitude):
    tangent = math.tan(0.5 * (PI_OVER_TWO + latitude))
    if tangent <= 0.0:
        return -math.inf
    e_sin = ellipticity * math.sin(latitude)
    return (math.log(tangent)
            - (ellipticity / 2.0) * math.log((1 + e_sin) / (1 - e_sin)))


class EllipsoidRhumbLine:
    """Rhumb line between two cartographic points.

    Parameters
    ----------
    start, end : sequence of float
        ``(longitude, latitude[, height])`` in radians.  Heights are ignored;
        interpolated points lie on the surface.
    ellipsoid : Ellipsoid
        Must be an ellipsoid of revolution about the z axis.
    """

    def __init__(self, start, end, ellipsoid):
        self.ellipsoid = ellipsoid
        major = ellipsoid.maximum_radius
        minor = ellipsoid.minimum_radius
        self._major = major
        self._ellipticity = math.sqrt((major * major - minor * minor)
                                      / (major * major))

        self.start = (float(start[0]), float(start[1]))
        self.end = (float(end[0]), float(end[1]))

        lon1, lat1 = self.start
        lon2, lat2 = self.end
        sigma1 = _isometric_latitude(self._ellipticity, lat1)
        sigma2 = _isometric_latitude(self._ellipticity, lat2)
        self.heading = math.atan2(negative_pi_to_pi(lon2 - lon1),
                                  sigma2 - sigma1)
        self.surface_distance = self._arc_length(lon1, lat1, lon2, lat2)

    def _arc_length(self, lon1, lat1, lon2, lat2):
        heading = self.heading
        delta_longitude = negative_pi_to_pi(lon2 - lon1)

        # Constant latitude: the meridian series degenerates
        if (abs(heading) == PI_OVER_TWO
                or abs(abs(heading) - PI_OVER_TWO) <= EPSILON8):
            return abs(self._parallel_radius(lat1) * delta_longitude)

        m1 = _meridian_distance(self._ellipticity, self._major, lat1)
        m2 = _meridian_distance(self._ellipticity, self._major, lat2)
        return abs((m2 - m1) / math.cos(heading))

    def _parallel_radius(self, latitude):
        if self._ellipticity == 0.0:
            return self._major * math.cos(latitude)
        sin_phi = math.sin(latitude)
        e2 = self._ellipticity * self._ellipticity
        return (self._major * math.cos(latitude)
                / math.sqrt(1.0 - e2 * sin_phi * sin_phi))

    def interpolate_using_surface_distance(self, distance):
        """Point ``distance`` metres from the start along the line.

        Returns
        -------
        tuple of float
            ``(longitude, latitude)`` in radians.
        """
        lon1, lat1 = self.start
        heading = self.heading

        if abs(PI_OVER_TWO - abs(heading)) > EPSILON8:
            m_end = (_meridian_distance(self._ellipticity, self._major, lat1)
                     + distance * math.cos(heading))
            latitude = _inverse_meridian_distance(m_end, self._ellipticity,
                                                  self._major)
            sigma1 = _isometric_latitude(self._ellipticity, lat1)
            sigma2 = _isometric_latitude(self._ellipticity, latitude)
            longitude = negative_pi_to_pi(
                lon1 + math.tan(heading) * (sigma2 - sigma1))
        else:
            latitude = lat1
            delta_longitude = distance / self._parallel_radius(lat1)
            if heading > 0.0:
                longitude = negative_pi_to_pi(lon1 + delta_longitude)
            else:
                longitude = negative_pi_to_pi(lon1 - delta_longitude)

        return longitude, latitude

    def interpolate_using_fraction(self, fraction):
        return self.interpolate_using_surface_distance(
            fraction * self.surface_distance)
