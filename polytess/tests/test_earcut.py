"""Tests for the ear-clipping triangulator."""

import numpy as np
import pytest

from polytess.earcut import earcut, triangulate


def _triangle_area_sum(coords, indices):
    xy = np.asarray(coords, dtype=np.float64)
    tris = xy[np.asarray(indices).reshape(-1, 3)]
    a = tris[:, 1] - tris[:, 0]
    b = tris[:, 2] - tris[:, 0]
    return float(np.sum(np.abs(a[:, 0] * b[:, 1] - a[:, 1] * b[:, 0])) / 2.0)


class TestEarcut:
    """Triangle lists for simple and holed polygons."""

    def test_square(self):
        assert earcut([[0, 0], [1, 0], [1, 1], [0, 1]]) == [2, 3, 0, 0, 1, 2]

    def test_triangle(self):
        indices = earcut([[0, 0], [1, 0], [0, 1]])
        assert sorted(indices) == [0, 1, 2]

    def test_clockwise_input(self):
        coords = [[0, 1], [1, 1], [1, 0], [0, 0]]
        indices = earcut(coords)
        assert len(indices) == 6
        assert _triangle_area_sum(coords, indices) == pytest.approx(1.0)

    def test_concave(self):
        # L shape, area 3
        coords = [[0, 0], [2, 0], [2, 1], [1, 1], [1, 2], [0, 2]]
        indices = earcut(coords)
        assert len(indices) == 4 * 3
        assert _triangle_area_sum(coords, indices) == pytest.approx(3.0)

    def test_hole(self):
        outer = [[0, 0], [4, 0], [4, 4], [0, 4]]
        hole = [[1, 1], [1, 3], [3, 3], [3, 1]]
        indices = earcut(outer + hole, [4])
        assert len(indices) == 8 * 3
        assert set(indices) == set(range(8))
        assert _triangle_area_sum(outer + hole, indices) == pytest.approx(12.0)

    def test_two_holes(self):
        outer = [[0, 0], [10, 0], [10, 4], [0, 4]]
        hole_a = [[1, 1], [1, 3], [3, 3], [3, 1]]
        hole_b = [[6, 1], [6, 3], [8, 3], [8, 1]]
        indices = earcut(outer + hole_a + hole_b, [4, 8])
        # (3, 1) and (6, 1) are filtered as collinear with the bridges, so two
        # fewer triangles than n + 2h - 2
        assert len(indices) == 12 * 3
        assert _triangle_area_sum(outer + hole_a + hole_b,
                                  indices) == pytest.approx(32.0)

    def test_collinear(self):
        assert earcut([[0, 0], [1, 0], [2, 0]]) == []

    def test_numpy_input(self):
        coords = np.array([[0.0, 0.0], [1.0, 0.0], [1.0, 1.0], [0.0, 1.0]])
        assert earcut(coords) == [2, 3, 0, 0, 1, 2]


class TestTriangulate:
    """Mesh-building wrapper."""

    def test_dtype(self):
        indices = triangulate(np.array([[0.0, 0.0], [1.0, 0.0], [1.0, 1.0]]))
        assert indices.dtype == np.int32
        assert len(indices) == 3

    def test_too_few_vertices(self):
        assert triangulate(np.array([[0.0, 0.0], [1.0, 0.0]])) is None

    def test_collinear_fallback(self):
        indices = triangulate(np.array([[0.0, 0.0], [1.0, 0.0], [2.0, 0.0]]))
        np.testing.assert_array_equal(indices, [0, 1, 2])

    def test_with_holes(self):
        coords = np.array([[0, 0], [4, 0], [4, 4], [0, 4],
                           [1, 1], [1, 3], [3, 3], [3, 1]], dtype=np.float64)
        indices = triangulate(coords, [4])
        assert len(indices) == 24
