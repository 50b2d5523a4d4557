"""Polygon hierarchies: ring normalization and flattening.

A hierarchy is an outer ring with holes; each hole may carry holes of its
own, which are filled polygons again.  Flattening turns the tree into a list
of independent (outer ring, holes) polygons that can each be triangulated.
"""

import warnings
from collections import deque, namedtuple

import numpy as np

from ._math_utils import EPSILON10
from .ellipsoid import Ellipsoid
from .errors import DegenerateRingWarning


class PolygonHierarchy:
    """An outer ring of positions and a list of hole hierarchies.

    Parameters
    ----------
    positions : array-like
        (N, 3) earth-fixed positions of the boundary.  The sequence is only
        read, never modified.
    holes : sequence of PolygonHierarchy, optional
        Holes inside the boundary.  Their own holes become filled polygons.
    """

    def __init__(self, positions, holes=None):
        self.positions = positions
        self.holes = list(holes) if holes is not None else []

    def __repr__(self):
        return (f"PolygonHierarchy(<{len(self.positions)} positions>, "
                f"holes={self.holes!r})")

    def __eq__(self, other):
        if not isinstance(other, PolygonHierarchy):
            return NotImplemented
        return (np.array_equal(np.asarray(self.positions, dtype=np.float64),
                               np.asarray(other.positions, dtype=np.float64))
                and self.holes == other.holes)


NormalizedRing = namedtuple("NormalizedRing", ["positions", "positions_2d"])

FlatPolygon = namedtuple("FlatPolygon", [
    "outer_ring",      # (N, 3) canonical counter-clockwise boundary
    "holes",           # list of (M, 3) clockwise hole rings
    "positions",       # outer ring followed by every hole
    "positions_2d",    # tangent plane coordinates of ``positions``
    "hole_indices",    # start index of each hole in ``positions``
    "depth",           # nesting level, 0 for the top polygon
])


# ---------------------------------------------------------------------------
# Ring normalization
# ---------------------------------------------------------------------------

def _xyz_equal(a, b, epsilon):
    for left, right in zip(a, b):
        diff = abs(left - right)
        if diff > epsilon and diff > epsilon * max(abs(left), abs(right)):
            return False
    return True


def remove_duplicates(positions, epsilon=EPSILON10, wrap_around=True):
    """Drop consecutive repeated positions.

    Each position is compared with the last one kept, component-wise with
    ``epsilon`` as both a relative and an absolute tolerance.  With
    ``wrap_around`` the last position is also dropped when it repeats the
    first.

    Returns
    -------
    np.ndarray
        (K, 3) float64 copy of the kept positions.
    """
    pts = np.asarray(positions, dtype=np.float64).reshape(-1, 3)
    if len(pts) < 2:
        return pts.copy()

    rows = pts.tolist()
    keep = [0]
    last = rows[0]
    for i in range(1, len(rows)):
        if not _xyz_equal(rows[i], last, epsilon):
            keep.append(i)
            last = rows[i]

    if (wrap_around and len(keep) > 1
            and _xyz_equal(rows[keep[-1]], rows[keep[0]], epsilon)):
        keep.pop()
    return pts[keep]


def signed_area_2d(positions_2d):
    """Shoelace area; positive for counter-clockwise rings."""
    xy = np.asarray(positions_2d, dtype=np.float64)
    x = xy[:, 0]
    y = xy[:, 1]
    return 0.5 * float(np.sum(x * np.roll(y, -1) - np.roll(x, -1) * y))


def normalize_ring(positions, tangent_plane, ellipsoid=Ellipsoid.WGS84,
                   per_position_height=False, hole=False):
    """Dedup and orient one ring.

    Parameters
    ----------
    positions : array-like
        (N, 3) ring positions.  Not modified.
    tangent_plane : EllipsoidTangentPlane
        Plane in which the winding is measured.
    ellipsoid : Ellipsoid
    per_position_height : bool
        When False the ring is moved onto the surface first, so positions
        that differ only in height collapse.
    hole : bool
        Holes are oriented clockwise, outer rings counter-clockwise.

    Returns
    -------
    NormalizedRing or None
        None when fewer than three distinct positions remain or a position
        cannot be projected.
    """
    ring = np.array(positions, dtype=np.float64).reshape(-1, 3)
    if len(ring) < 3:
        return None
    if not per_position_height:
        ring = ellipsoid.scale_to_geodetic_surface(ring)

    ring = remove_duplicates(ring)
    if len(ring) < 3:
        return None

    ring_2d = tangent_plane.project_points_onto_plane(ring)
    if not np.all(np.isfinite(ring_2d)):
        return None

    counter_clockwise = signed_area_2d(ring_2d) > 0.0
    if counter_clockwise == hole:
        ring = ring[::-1].copy()
        ring_2d = ring_2d[::-1].copy()
    return NormalizedRing(ring, ring_2d)


# ---------------------------------------------------------------------------
# Flattening
# ---------------------------------------------------------------------------

def flatten_hierarchy(hierarchy, tangent_plane, ellipsoid=Ellipsoid.WGS84,
                      per_position_height=False):
    """Walk a hierarchy into independent polygons.

    The top polygon takes the hierarchy's holes.  Holes of those holes are
    queued as new polygons one level deeper, and so on.  Polygons whose
    outer ring is degenerate are dropped together with their holes; a
    degenerate hole is dropped with a :class:`DegenerateRingWarning`.

    Returns
    -------
    list of FlatPolygon
        Empty when nothing usable remains.
    """
    polygons = []
    queue = deque([(hierarchy, 0)])

    while queue:
        node, depth = queue.popleft()
        outer = normalize_ring(node.positions, tangent_plane, ellipsoid,
                               per_position_height)
        if outer is None:
            continue

        positions = [outer.positions]
        positions_2d = [outer.positions_2d]
        holes = []
        hole_indices = []
        count = len(outer.positions)

        for hole in node.holes:
            ring = normalize_ring(hole.positions, tangent_plane, ellipsoid,
                                  per_position_height, hole=True)
            if ring is None:
                warnings.warn(
                    f"Dropping a hole at depth {depth} with fewer than 3 "
                    "distinct positions",
                    DegenerateRingWarning, stacklevel=3,
                )
                continue

            holes.append(ring.positions)
            hole_indices.append(count)
            count += len(ring.positions)
            positions.append(ring.positions)
            positions_2d.append(ring.positions_2d)

            for nested in hole.holes:
                queue.append((nested, depth + 1))

        polygons.append(FlatPolygon(
            outer_ring=outer.positions,
            holes=holes,
            positions=np.concatenate(positions),
            positions_2d=np.concatenate(positions_2d),
            hole_indices=hole_indices,
            depth=depth,
        ))

    return polygons
