"""Arc subdivision of cap triangles and ring edges.

Cap triangles are split along their longest edge until every edge spans no
more than the granularity.  Ring edges used for the side walls are cut into
a power-of-two number of equal steps, so wall points line up with the split
points of the cap boundary.

GEODESIC arcs are measured and split on the chord between positions; the
final positions are moved back onto the surface afterwards.  RHUMB arcs are
measured and split along the rhumb line on the surface.  The two models give
different point counts on the same input.
"""

import math

import numpy as np

from ._math_utils import chord_length, exceeds
from .rhumb import EllipsoidRhumbLine
from .vertex_format import ArcType


def limit_distance(granularity, ellipsoid, arc_type):
    """Longest allowed step between consecutive points, in metres.

    GEODESIC steps are chords of ``granularity`` on the largest radius;
    RHUMB steps are arcs of ``granularity`` on it.
    """
    if arc_type == ArcType.RHUMB:
        return granularity * ellipsoid.maximum_radius
    return chord_length(granularity, ellipsoid.maximum_radius)


def subdivision_count(length, limit):
    """Number of equal steps, a power of two, so each is at most ``limit``.

    Uses the same tolerance as the cap subdivision so both halve an edge
    the same number of times.
    """
    count = 1
    while exceeds(length / count, limit):
        count *= 2
    return count


# ---------------------------------------------------------------------------
# Cap triangles
# ---------------------------------------------------------------------------

def subdivide_triangles(ellipsoid, positions, heights, indices, granularity,
                        arc_type=ArcType.GEODESIC):
    """Split triangles until no edge exceeds the granularity.

    Parameters
    ----------
    ellipsoid : Ellipsoid
    positions : np.ndarray
        (N, 3) positions on (or, for chord midpoints, just below) the
        surface.
    heights : np.ndarray
        (N,) height of each position above the surface.
    indices : np.ndarray
        Flat triangle indices.
    granularity : float
        Largest allowed angular step in radians.
    arc_type : ArcType

    Returns
    -------
    positions : np.ndarray
        (M, 3) float64; the first N rows are the input positions.
    heights : np.ndarray
        (M,) float64; inserted points take the mean of their edge.
    indices : np.ndarray
        Flat int32 triangle indices.
    """
    if arc_type == ArcType.RHUMB:
        return _subdivide_rhumb(ellipsoid, positions, heights, indices,
                                granularity)
    return _subdivide_geodesic(ellipsoid, positions, heights, indices,
                               granularity)


def _split(stack, longest, i0, i1, i2, mid):
    # keep the winding of the parent triangle
    if longest == 0:
        stack.extend((i0, mid, i2, mid, i1, i2))
    elif longest == 1:
        stack.extend((i1, mid, i0, mid, i2, i0))
    else:
        stack.extend((i2, mid, i1, mid, i0, i1))


def _longest(g0, g1, g2):
    g = max(g0, g1, g2)
    if g0 == g:
        return 0, g
    if g1 == g:
        return 1, g
    return 2, g


def _subdivide_geodesic(ellipsoid, positions, heights, indices, granularity):
    radius = ellipsoid.maximum_radius
    limit = chord_length(granularity, radius) ** 2

    points = np.asarray(positions, dtype=np.float64).tolist()
    hs = np.asarray(heights, dtype=np.float64).tolist()

    def scaled(p):
        n = math.sqrt(p[0] * p[0] + p[1] * p[1] + p[2] * p[2])
        return (p[0] / n * radius, p[1] / n * radius, p[2] / n * radius)

    directions = [scaled(p) for p in points]
    edges = {}

    def midpoint(a, b):
        key = (a, b) if a < b else (b, a)
        mid = edges.get(key)
        if mid is None:
            pa = points[a]
            pb = points[b]
            p = [(pa[0] + pb[0]) * 0.5, (pa[1] + pb[1]) * 0.5,
                 (pa[2] + pb[2]) * 0.5]
            mid = len(points)
            points.append(p)
            hs.append((hs[a] + hs[b]) * 0.5)
            directions.append(scaled(p))
            edges[key] = mid
        return mid

    def dist2(a, b):
        return ((a[0] - b[0]) ** 2 + (a[1] - b[1]) ** 2 + (a[2] - b[2]) ** 2)

    stack = [int(i) for i in indices]
    out = []
    while stack:
        i2 = stack.pop()
        i1 = stack.pop()
        i0 = stack.pop()

        s0 = directions[i0]
        s1 = directions[i1]
        s2 = directions[i2]
        longest, g = _longest(dist2(s0, s1), dist2(s1, s2), dist2(s2, s0))

        if exceeds(g, limit):
            a, b = ((i0, i1), (i1, i2), (i2, i0))[longest]
            _split(stack, longest, i0, i1, i2, midpoint(a, b))
        else:
            out.extend((i0, i1, i2))

    return (np.array(points, dtype=np.float64).reshape(-1, 3),
            np.array(hs, dtype=np.float64),
            np.array(out, dtype=np.int32))


def _subdivide_rhumb(ellipsoid, positions, heights, indices, granularity):
    limit = granularity * ellipsoid.maximum_radius

    pts = np.asarray(positions, dtype=np.float64).reshape(-1, 3)
    points = pts.tolist()
    hs = np.asarray(heights, dtype=np.float64).tolist()
    cartographics = [(c[0], c[1]) for c in
                     ellipsoid.cartesian_to_cartographic(pts).tolist()]

    lines = {}
    midpoints = {}

    def line(a, b):
        key = (a, b) if a < b else (b, a)
        rhumb = lines.get(key)
        if rhumb is None:
            rhumb = EllipsoidRhumbLine(cartographics[key[0]],
                                       cartographics[key[1]], ellipsoid)
            lines[key] = rhumb
        return rhumb

    def midpoint(a, b):
        key = (a, b) if a < b else (b, a)
        mid = midpoints.get(key)
        if mid is None:
            lon, lat = line(a, b).interpolate_using_fraction(0.5)
            mid = len(points)
            points.append(ellipsoid.cartographic_to_cartesian(lon, lat).tolist())
            hs.append((hs[a] + hs[b]) * 0.5)
            cartographics.append((lon, lat))
            midpoints[key] = mid
        return mid

    stack = [int(i) for i in indices]
    out = []
    while stack:
        i2 = stack.pop()
        i1 = stack.pop()
        i0 = stack.pop()

        longest, g = _longest(line(i0, i1).surface_distance,
                              line(i1, i2).surface_distance,
                              line(i2, i0).surface_distance)

        if exceeds(g, limit):
            a, b = ((i0, i1), (i1, i2), (i2, i0))[longest]
            _split(stack, longest, i0, i1, i2, midpoint(a, b))
        else:
            out.extend((i0, i1, i2))

    return (np.array(points, dtype=np.float64).reshape(-1, 3),
            np.array(hs, dtype=np.float64),
            np.array(out, dtype=np.int32))


# ---------------------------------------------------------------------------
# Ring edges
# ---------------------------------------------------------------------------

def subdivide_line(p0, p1, h0, h1, limit):
    """Evenly spaced chord points from ``p0`` toward ``p1``.

    Returns
    -------
    positions : np.ndarray
        (K, 3) points starting at ``p0``; ``p1`` is not included.
    heights : np.ndarray
        (K,) heights interpolated linearly.
    """
    p0 = np.asarray(p0, dtype=np.float64)
    p1 = np.asarray(p1, dtype=np.float64)
    count = subdivision_count(float(np.linalg.norm(p1 - p0)), limit)
    t = np.arange(count, dtype=np.float64) / count
    return p0 + (p1 - p0) * t[:, None], h0 + (h1 - h0) * t


def subdivide_rhumb_line(ellipsoid, p0, p1, h0, h1, limit):
    """Evenly spaced rhumb line points from ``p0`` toward ``p1``.

    Same contract as :func:`subdivide_line`; points lie on the surface.
    """
    c0, c1 = ellipsoid.cartesian_to_cartographic(np.array([p0, p1]))
    rhumb = EllipsoidRhumbLine(c0, c1, ellipsoid)
    count = subdivision_count(rhumb.surface_distance, limit)
    step = rhumb.surface_distance / count

    lonlat = [(c0[0], c0[1])]
    for i in range(1, count):
        lonlat.append(rhumb.interpolate_using_surface_distance(i * step))
    lonlat = np.array(lonlat, dtype=np.float64)

    t = np.arange(count, dtype=np.float64) / count
    positions = ellipsoid.cartographic_to_cartesian(lonlat[:, 0], lonlat[:, 1])
    return positions, h0 + (h1 - h0) * t


def subdivide_ring(ellipsoid, ring, heights, granularity,
                   arc_type=ArcType.GEODESIC):
    """Subdivide every edge of a closed ring for the side walls.

    Each edge contributes its subdivided points followed by its end point,
    so the end of one edge and the start of the next are separate,
    coincident rows.  Wall quads between them collapse and are skipped.

    Returns
    -------
    positions : np.ndarray
        (K, 3) float64.
    heights : np.ndarray
        (K,) float64.
    """
    ring = np.asarray(ring, dtype=np.float64).reshape(-1, 3)
    heights = np.asarray(heights, dtype=np.float64)
    limit = limit_distance(granularity, ellipsoid, arc_type)
    n = len(ring)

    out_positions = []
    out_heights = []
    for i in range(n):
        j = (i + 1) % n
        if arc_type == ArcType.RHUMB:
            pts, hs = subdivide_rhumb_line(ellipsoid, ring[i], ring[j],
                                           heights[i], heights[j], limit)
        else:
            pts, hs = subdivide_line(ring[i], ring[j], heights[i], heights[j],
                                     limit)
        out_positions.append(pts)
        out_positions.append(ring[j:j + 1])
        out_heights.append(hs)
        out_heights.append(heights[j:j + 1])

    return np.concatenate(out_positions), np.concatenate(out_heights)
