"""Tests for attribute derivation and bounding volumes."""

import math

import numpy as np
import pytest

from polytess import (
    BoundingSphere,
    Ellipsoid,
    EllipsoidTangentPlane,
    GeometryOffsetAttribute,
    Rectangle,
    VertexFormat,
    compute_normals,
    compute_rectangle,
    compute_tangents_and_bitangents,
    from_degrees,
    from_degrees_array,
)
from polytess.attributes import (
    BOTTOM,
    TOP,
    TOP_AND_BOTTOM,
    WALL,
    compute_offset_flags,
    compute_st,
    rotation_about_axis,
    st_bounding_box,
    synthesize_attributes,
)
from polytess.extrude import MeshPart, wall_indices
from polytess.subdivide import subdivision_count


# Unit square in the z = 0 plane, counter-clockwise seen from +z
SQUARE_POSITIONS = np.array([0, 0, 0, 1, 0, 0, 1, 1, 0, 0, 1, 0],
                            dtype=np.float64)
SQUARE_INDICES = np.array([0, 1, 2, 0, 2, 3], dtype=np.int32)


# ---------------------------------------------------------------------------
# Normals and tangents
# ---------------------------------------------------------------------------

class TestNormals:
    """Area-weighted vertex normals."""

    def test_flat_square(self):
        normals = compute_normals(SQUARE_POSITIONS, SQUARE_INDICES)
        np.testing.assert_allclose(normals.reshape(-1, 3),
                                   np.tile([0.0, 0.0, 1.0], (4, 1)))

    def test_reversed_winding(self):
        normals = compute_normals(SQUARE_POSITIONS, SQUARE_INDICES[::-1])
        np.testing.assert_allclose(normals.reshape(-1, 3)[:, 2], -1.0)

    def test_unused_vertex(self):
        positions = np.concatenate([SQUARE_POSITIONS, [5.0, 5.0, 5.0]])
        normals = compute_normals(positions, SQUARE_INDICES).reshape(-1, 3)
        np.testing.assert_array_equal(normals[4], [0.0, 0.0, 0.0])

    def test_crease_averages(self):
        # two faces meeting at a right angle along the x axis
        positions = np.array([0, 0, 0, 1, 0, 0, 0, 1, 0, 0, 0, 1],
                             dtype=np.float64)
        indices = np.array([0, 1, 2, 0, 3, 1], dtype=np.int32)
        normals = compute_normals(positions, indices).reshape(-1, 3)
        expected = np.array([0.0, 1.0, 1.0]) / math.sqrt(2.0)
        np.testing.assert_allclose(normals[0], expected, atol=1e-12)


class TestTangents:
    """Tangent frames from texture coordinates."""

    def test_square(self):
        normals = compute_normals(SQUARE_POSITIONS, SQUARE_INDICES)
        st = np.array([0, 0, 1, 0, 1, 1, 0, 1], dtype=np.float64)
        tangents, bitangents = compute_tangents_and_bitangents(
            SQUARE_POSITIONS, normals, st, SQUARE_INDICES)
        np.testing.assert_allclose(tangents.reshape(-1, 3),
                                   np.tile([1.0, 0.0, 0.0], (4, 1)),
                                   atol=1e-12)
        np.testing.assert_allclose(bitangents.reshape(-1, 3),
                                   np.tile([0.0, 1.0, 0.0], (4, 1)),
                                   atol=1e-12)

    def test_degenerate_st_fallback(self):
        normals = compute_normals(SQUARE_POSITIONS, SQUARE_INDICES)
        tangents, bitangents = compute_tangents_and_bitangents(
            SQUARE_POSITIONS, normals, np.zeros(8), SQUARE_INDICES)
        t = tangents.reshape(-1, 3)
        n = normals.reshape(-1, 3)
        np.testing.assert_allclose(np.linalg.norm(t, axis=1), 1.0)
        np.testing.assert_allclose(np.einsum("ij,ij->i", t, n), 0.0,
                                   atol=1e-12)
        np.testing.assert_allclose(bitangents.reshape(-1, 3), np.cross(n, t),
                                   atol=1e-12)


# ---------------------------------------------------------------------------
# Texture coordinates and buffers
# ---------------------------------------------------------------------------

@pytest.fixture
def quad_plane():
    ring = from_degrees_array([-1.0, -1.0, 1.0, -1.0, 1.0, 1.0, -1.0, 1.0])
    return ring, EllipsoidTangentPlane.from_points(ring)


class TestTextureCoordinates:
    """Planar st mapping."""

    def test_corners(self, quad_plane):
        ring, plane = quad_plane
        box = st_bounding_box(plane, ring)
        st = compute_st(ring, plane, box)
        np.testing.assert_allclose(st, [[0, 0], [1, 0], [1, 1], [0, 1]],
                                   atol=1e-12)

    def test_rotation_matrix(self):
        rotation = rotation_about_axis([0.0, 0.0, 1.0], math.pi / 2.0)
        np.testing.assert_allclose(rotation @ [1.0, 0.0, 0.0], [0, 1, 0],
                                   atol=1e-15)

    def test_rotated_box_is_larger(self, quad_plane):
        ring, plane = quad_plane
        _, _, width, height = st_bounding_box(plane, ring)
        _, _, r_width, r_height = st_bounding_box(plane, ring, math.pi / 4.0)
        assert r_width > width
        assert r_height > height

    def test_clamped(self, quad_plane):
        ring, plane = quad_plane
        box = st_bounding_box(plane, ring)
        st = compute_st(from_degrees_array([5.0, 5.0, -5.0, -5.0]), plane, box)
        np.testing.assert_array_equal(st, [[1, 1], [0, 0]])

    def test_synthesize_position_only(self, quad_plane):
        ring, plane = quad_plane
        buffers = synthesize_attributes(ring, np.array([0, 1, 2, 0, 2, 3]),
                                        VertexFormat.POSITION_ONLY, plane,
                                        st_bounding_box(plane, ring))
        assert all(value is None for value in buffers.values())

    def test_synthesize_tangent_only(self, quad_plane):
        ring, plane = quad_plane
        buffers = synthesize_attributes(
            ring, np.array([0, 1, 2, 0, 2, 3], dtype=np.int32),
            VertexFormat.POSITION | VertexFormat.TANGENT, plane,
            st_bounding_box(plane, ring))
        assert buffers["tangents"].dtype == np.float32
        assert len(buffers["tangents"]) == 12
        assert buffers["st"] is None
        assert buffers["normals"] is None
        assert buffers["bitangents"] is None


# ---------------------------------------------------------------------------
# Offset flags
# ---------------------------------------------------------------------------

def _part(kind, size):
    return MeshPart(np.zeros((size, 3)), np.zeros(0, dtype=np.int32), kind)


class TestOffsetFlags:
    """Per-part offset selection."""

    def test_unset(self):
        assert compute_offset_flags([_part(TOP, 3)], None) is None

    def test_top(self):
        parts = [_part(TOP_AND_BOTTOM, 4), _part(WALL, 6), _part(BOTTOM, 2),
                 _part(TOP, 2)]
        flags = compute_offset_flags(parts, GeometryOffsetAttribute.TOP)
        np.testing.assert_array_equal(
            flags, [1, 1, 0, 0, 1, 1, 1, 0, 0, 0, 0, 0, 1, 1])

    def test_none_and_all(self):
        parts = [_part(TOP_AND_BOTTOM, 4), _part(WALL, 6)]
        np.testing.assert_array_equal(
            compute_offset_flags(parts, GeometryOffsetAttribute.NONE),
            np.zeros(10))
        np.testing.assert_array_equal(
            compute_offset_flags(parts, GeometryOffsetAttribute.ALL),
            np.ones(10))


# ---------------------------------------------------------------------------
# Walls
# ---------------------------------------------------------------------------

class TestWalls:
    """Wall quads and edge subdivision counts."""

    def test_seams_skipped(self):
        row = np.array([[0, 0, 0], [1, 0, 0], [1, 0, 0], [1, 1, 0]],
                       dtype=np.float64)
        np.testing.assert_array_equal(wall_indices(row),
                                      [0, 4, 1, 1, 4, 5, 2, 6, 3, 3, 6, 7])

    @pytest.mark.parametrize("length,count", [
        (0.5, 1), (1.0, 1), (1.5, 2), (2.0, 2), (3.0, 4), (9.0, 16),
    ])
    def test_subdivision_count(self, length, count):
        assert subdivision_count(length, 1.0) == count


# ---------------------------------------------------------------------------
# Bounding sphere
# ---------------------------------------------------------------------------

class TestBoundingSphere:
    """Sphere construction from point sets."""

    def test_empty(self):
        sphere = BoundingSphere.from_points(np.empty((0, 3)))
        assert sphere.radius == 0.0
        np.testing.assert_array_equal(sphere.center, [0.0, 0.0, 0.0])

    def test_single_point(self):
        sphere = BoundingSphere.from_points([[1.0, 2.0, 3.0]])
        np.testing.assert_array_equal(sphere.center, [1.0, 2.0, 3.0])
        assert sphere.radius == 0.0

    def test_cube_corners(self):
        corners = np.array([[x, y, z] for x in (-1.0, 1.0)
                            for y in (-1.0, 1.0) for z in (-1.0, 1.0)])
        sphere = BoundingSphere.from_points(corners)
        distances = np.linalg.norm(corners - sphere.center, axis=1)
        assert np.all(distances <= sphere.radius + 1e-12)
        assert sphere.radius == pytest.approx(math.sqrt(3.0))

    def test_contains_all(self):
        rng = np.random.default_rng(7)
        points = rng.normal(size=(500, 3)) * [1.0, 5.0, 0.2]
        sphere = BoundingSphere.from_points(points)
        distances = np.linalg.norm(points - sphere.center, axis=1)
        assert np.all(distances <= sphere.radius * (1.0 + 1e-12))

    def test_from_vertices(self):
        points = from_degrees_array([0.0, 0.0, 10.0, 0.0, 10.0, 10.0])
        assert (BoundingSphere.from_vertices(points.ravel())
                == BoundingSphere.from_points(points))


# ---------------------------------------------------------------------------
# Rectangle
# ---------------------------------------------------------------------------

class TestRectangle:
    """Extent of rings."""

    def test_simple(self):
        r = compute_rectangle(from_degrees_array([10.0, 20.0, 12.0, 20.0,
                                                  12.0, 25.0]))
        np.testing.assert_allclose(
            np.degrees([r.west, r.south, r.east, r.north]),
            [10.0, 20.0, 12.0, 25.0], atol=1e-9)

    def test_south_pole(self):
        ring = from_degrees_array([0.0, -80.0, -90.0, -80.0, 180.0, -80.0,
                                   90.0, -80.0])
        r = compute_rectangle(ring)
        assert (r.west, r.east) == (-math.pi, math.pi)
        assert r.south == pytest.approx(-math.pi / 2.0)
        assert math.degrees(r.north) == pytest.approx(-80.0)

    def test_result_reused(self):
        result = Rectangle()
        returned = compute_rectangle(
            from_degrees_array([0.0, 0.0, 1.0, 0.0, 1.0, 1.0]), result=result)
        assert returned is result
        assert result.east > result.west

    def test_center(self):
        r = Rectangle(math.radians(170.0), 0.0, math.radians(-170.0), 0.2)
        lon, lat = r.center()
        assert abs(lon) == pytest.approx(math.pi)
        assert lat == pytest.approx(0.1)
        assert r.width == pytest.approx(math.radians(20.0))

    def test_ellipsoid_argument(self):
        sphere = Ellipsoid(1.0, 1.0, 1.0)
        ring = np.array([from_degrees(0.0, 0.0, ellipsoid=sphere),
                         from_degrees(1.0, 0.0, ellipsoid=sphere),
                         from_degrees(1.0, 1.0, ellipsoid=sphere)])
        r = compute_rectangle(ring, sphere)
        assert math.degrees(r.north) == pytest.approx(1.0)
