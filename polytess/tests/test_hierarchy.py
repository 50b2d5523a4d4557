"""Tests for ring normalization and hierarchy flattening."""

import warnings

import numpy as np
import pytest

from polytess import (
    DegenerateRingWarning,
    Ellipsoid,
    EllipsoidTangentPlane,
    PolygonHierarchy,
    flatten_hierarchy,
    from_degrees,
    from_degrees_array,
    from_degrees_array_heights,
    normalize_ring,
)
from polytess.hierarchy import remove_duplicates, signed_area_2d


def _square(half, lon=0.0, lat=0.0, clockwise=False):
    coords = [lon - half, lat - half, lon + half, lat - half,
              lon + half, lat + half, lon - half, lat + half]
    positions = from_degrees_array(coords)
    return positions[::-1].copy() if clockwise else positions


@pytest.fixture
def plane():
    return EllipsoidTangentPlane(from_degrees(0.0, 0.0))


# ---------------------------------------------------------------------------
# Duplicates
# ---------------------------------------------------------------------------

class TestRemoveDuplicates:
    """Consecutive duplicate removal."""

    def test_consecutive_and_wrap(self):
        p0, p1, p2 = from_degrees_array([0.0, 0.0, 1.0, 0.0, 1.0, 1.0])
        result = remove_duplicates([p0, p0, p1, p2, p2, p0])
        np.testing.assert_array_equal(result, [p0, p1, p2])

    def test_relative_tolerance(self):
        p0, p1, p2 = from_degrees_array([0.0, 0.0, 1.0, 0.0, 1.0, 1.0])
        nudged = p0 * (1.0 + 1e-12)
        assert len(remove_duplicates([p0, nudged, p1, p2])) == 3

    def test_without_wrap(self):
        p0, p1 = from_degrees_array([0.0, 0.0, 1.0, 0.0])
        assert len(remove_duplicates([p0, p1, p0], wrap_around=False)) == 3

    def test_returns_copy(self):
        positions = from_degrees_array([0.0, 0.0, 1.0, 0.0, 1.0, 1.0])
        result = remove_duplicates(positions)
        result[0] = 0.0
        assert positions[0, 0] != 0.0


# ---------------------------------------------------------------------------
# Ring normalization
# ---------------------------------------------------------------------------

class TestNormalizeRing:
    """Orientation and degeneracy of single rings."""

    def test_outer_counter_clockwise(self, plane):
        ring = normalize_ring(_square(1.0, clockwise=True), plane)
        assert signed_area_2d(ring.positions_2d) > 0.0

    def test_hole_clockwise(self, plane):
        ring = normalize_ring(_square(1.0), plane, hole=True)
        assert signed_area_2d(ring.positions_2d) < 0.0

    def test_input_untouched(self, plane):
        positions = _square(1.0, clockwise=True)
        original = positions.copy()
        normalize_ring(positions, plane)
        np.testing.assert_array_equal(positions, original)

    def test_degenerate(self, plane):
        positions = from_degrees_array([0.0, 0.0] * 4)
        assert normalize_ring(positions, plane) is None

    def test_too_few(self, plane):
        assert normalize_ring(from_degrees_array([0.0, 0.0, 1.0, 0.0]),
                              plane) is None

    def test_heights_collapse_on_surface(self, plane):
        positions = from_degrees_array_heights([0.0, 0.0, 0.0,
                                                0.0, 0.0, 50.0,
                                                1.0, 0.0, 0.0,
                                                1.0, 1.0, 0.0])
        ring = normalize_ring(positions, plane)
        assert len(ring.positions) == 3
        np.testing.assert_allclose(
            Ellipsoid.WGS84.geodetic_height(ring.positions), 0.0, atol=1e-5)

    def test_per_position_height_keeps_heights(self, plane):
        positions = from_degrees_array_heights([0.0, 0.0, 0.0,
                                                0.0, 0.0, 50.0,
                                                1.0, 0.0, 0.0,
                                                1.0, 1.0, 0.0])
        ring = normalize_ring(positions, plane, per_position_height=True)
        assert len(ring.positions) == 4


# ---------------------------------------------------------------------------
# Flattening
# ---------------------------------------------------------------------------

def _nested(levels):
    """Concentric squares, each a hole of the one before."""
    node = None
    for level in reversed(range(levels)):
        node = PolygonHierarchy(_square(10.0 - 2.0 * level),
                                [node] if node is not None else [])
    return node


class TestFlattenHierarchy:
    """Tree walk into independent polygons."""

    def test_single_ring(self, plane):
        polygons = flatten_hierarchy(PolygonHierarchy(_square(1.0)), plane)
        assert len(polygons) == 1
        assert polygons[0].holes == []
        assert polygons[0].hole_indices == []
        assert polygons[0].depth == 0

    def test_outer_with_hole(self, plane):
        polygons = flatten_hierarchy(_nested(2), plane)
        assert len(polygons) == 1
        polygon = polygons[0]
        assert polygon.hole_indices == [4]
        assert polygon.positions.shape == (8, 3)
        assert polygon.positions_2d.shape == (8, 2)
        assert signed_area_2d(polygon.positions_2d[4:]) < 0.0

    def test_nested_levels(self, plane):
        polygons = flatten_hierarchy(_nested(5), plane)
        assert [p.depth for p in polygons] == [0, 1, 2]
        assert [len(p.holes) for p in polygons] == [1, 1, 0]

    def test_degenerate_outer_dropped(self, plane):
        hierarchy = PolygonHierarchy(from_degrees_array([0.0, 0.0] * 3),
                                     [PolygonHierarchy(_square(1.0))])
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            assert flatten_hierarchy(hierarchy, plane) == []

    def test_degenerate_hole_warns(self, plane):
        hierarchy = PolygonHierarchy(
            _square(5.0),
            [PolygonHierarchy(from_degrees_array([1.0, 1.0] * 3),
                              [PolygonHierarchy(_square(0.5))]),
             PolygonHierarchy(_square(1.0))])
        with pytest.warns(DegenerateRingWarning, match="hole"):
            polygons = flatten_hierarchy(hierarchy, plane)
        # the degenerate hole's own holes are not visited
        assert len(polygons) == 1
        assert len(polygons[0].holes) == 1
