"""Tests for GeoJSON parsing and polygon hierarchy loading."""

import json
import math
import warnings

import numpy as np
import pytest

from polytess import (
    Ellipsoid,
    PolygonGeometry,
    VertexFormat,
    create_geometry,
    load_polygon_hierarchies,
)
from polytess.geojson import (
    _flatten_multi,
    _load_geojson,
    polygon_to_hierarchy,
    ring_to_positions,
)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

def _square_ring(half, lon=0.0, lat=0.0):
    return [[lon - half, lat - half], [lon + half, lat - half],
            [lon + half, lat + half], [lon - half, lat + half],
            [lon - half, lat - half]]


def _polygon_feature(rings, **props):
    return {"type": "Feature",
            "geometry": {"type": "Polygon", "coordinates": rings},
            "properties": props}


@pytest.fixture
def parcel():
    """A building parcel with a courtyard hole."""
    return _polygon_feature([_square_ring(0.01, lon=2.35, lat=48.85),
                             _square_ring(0.004, lon=2.35, lat=48.85)],
                            parcel_id="75-101", floors=6)


@pytest.fixture
def islands():
    """Three islands of an archipelago as one MultiPolygon."""
    return {"type": "MultiPolygon",
            "coordinates": [[_square_ring(0.5, lon=lon, lat=-17.5)]
                            for lon in (-149.5, -148.0, -146.5)]}


# ---------------------------------------------------------------------------
# _load_geojson
# ---------------------------------------------------------------------------

class TestLoadGeojson:
    """Feature unwrapping before polygon conversion."""

    def test_parcels_keep_their_properties(self, parcel):
        other = _polygon_feature([_square_ring(0.01, lon=2.37, lat=48.85)],
                                 parcel_id="75-102")
        entries = _load_geojson({"type": "FeatureCollection",
                                 "features": [parcel, other]})
        assert [props["parcel_id"] for _, props in entries] == ["75-101",
                                                                "75-102"]
        assert len(entries[0][0]["coordinates"]) == 2

    def test_bare_polygon_has_no_properties(self, parcel):
        ((geometry, props),) = _load_geojson(parcel["geometry"])
        assert geometry is parcel["geometry"]
        assert props == {}

    def test_collection_mixes_polygons_and_points(self, parcel):
        entries = _load_geojson({
            "type": "GeometryCollection",
            "geometries": [parcel["geometry"],
                           {"type": "Point", "coordinates": [2.35, 48.85]}],
        })
        assert [g["type"] for g, _ in entries] == ["Polygon", "Point"]

    def test_file_path(self, tmp_path, parcel):
        path = tmp_path / "parcels.geojson"
        path.write_text(json.dumps({"type": "FeatureCollection",
                                    "features": [parcel]}))
        assert len(_load_geojson(path)) == 1
        assert len(_load_geojson(str(path))) == 1

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            _load_geojson(tmp_path / "absent.geojson")

    def test_ring_list_rejected(self):
        with pytest.raises(TypeError):
            _load_geojson([_square_ring(1.0)])

    def test_unknown_type(self):
        with pytest.raises(ValueError, match="Unsupported GeoJSON type"):
            _load_geojson({"type": "Polygons", "coordinates": []})

    def test_feature_without_footprint(self):
        feature = {"type": "Feature", "geometry": None,
                   "properties": {"parcel_id": "75-103"}}
        assert _load_geojson(feature) == []

    def test_null_properties(self, parcel):
        parcel["properties"] = None
        assert _load_geojson(parcel)[0][1] == {}


# ---------------------------------------------------------------------------
# _flatten_multi
# ---------------------------------------------------------------------------

class TestFlattenMulti:
    """MultiPolygon splitting."""

    def test_islands_split(self, islands):
        parts = _flatten_multi(islands)
        assert len(parts) == 3
        assert all(p["type"] == "Polygon" for p in parts)
        assert parts[2]["coordinates"] == islands["coordinates"][2]

    def test_polygon_with_hole_untouched(self, parcel):
        geometry = parcel["geometry"]
        assert _flatten_multi(geometry) == [geometry]

    def test_multi_line_not_split(self):
        geometry = {"type": "MultiLineString",
                    "coordinates": [[[0, 0], [1, 1]], [[2, 2], [3, 3]]]}
        assert _flatten_multi(geometry) == [geometry]

    def test_no_islands(self):
        assert _flatten_multi({"type": "MultiPolygon", "coordinates": []}) == []


# ---------------------------------------------------------------------------
# Conversion
# ---------------------------------------------------------------------------

class TestConversion:
    def test_ring_positions(self):
        positions = ring_to_positions([[0, 0], [90, 0]])
        assert positions.shape == (2, 3)
        np.testing.assert_allclose(positions[0], [6378137.0, 0.0, 0.0])
        np.testing.assert_allclose(positions[1], [0.0, 6378137.0, 0.0],
                                   atol=1e-6)

    def test_ring_heights(self):
        positions = ring_to_positions([[10, 20, 150.0], [11, 20]])
        heights = Ellipsoid.WGS84.geodetic_height(positions)
        np.testing.assert_allclose(heights, [150.0, 0.0], atol=1e-5)

    def test_single_ring_degenerate_shapes(self):
        positions = ring_to_positions([[0, 0]])
        assert positions.shape == (1, 3)

    def test_polygon_with_hole(self):
        hierarchy = polygon_to_hierarchy([_square_ring(2.0), _square_ring(1.0)])
        assert hierarchy.positions.shape == (5, 3)
        assert len(hierarchy.holes) == 1
        assert hierarchy.holes[0].holes == []

    def test_empty_polygon(self):
        with pytest.raises(ValueError):
            polygon_to_hierarchy([])


# ---------------------------------------------------------------------------
# load_polygon_hierarchies
# ---------------------------------------------------------------------------

class TestLoadPolygonHierarchies:
    def test_multi_polygon_split(self):
        feat = {"type": "Feature",
                "geometry": {"type": "MultiPolygon",
                             "coordinates": [[_square_ring(1.0)],
                                             [_square_ring(1.0, lon=10.0)]]},
                "properties": {"id": 7}}
        result = load_polygon_hierarchies(feat)
        assert len(result) == 2
        assert all(props == {"id": 7} for _, props in result)

    def test_non_polygons_skipped(self):
        fc = {
            "type": "FeatureCollection",
            "features": [
                _polygon_feature([_square_ring(1.0)]),
                {"type": "Feature",
                 "geometry": {"type": "Point", "coordinates": [0, 0]},
                 "properties": {}},
                {"type": "Feature",
                 "geometry": {"type": "LineString",
                              "coordinates": [[0, 0], [1, 1]]},
                 "properties": {}},
            ],
        }
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            result = load_polygon_hierarchies(fc)
        assert len(result) == 1
        assert len(caught) == 1
        assert "Skipped 2" in str(caught[0].message)
        assert caught[0].category is UserWarning

    def test_closing_position_removed(self):
        (hierarchy, _), = load_polygon_hierarchies(
            _polygon_feature([_square_ring(1.0)]))
        mesh = create_geometry(PolygonGeometry(
            polygon_hierarchy=hierarchy,
            vertex_format=VertexFormat.POSITION_ONLY))
        assert mesh.vertex_count == 13
        assert mesh.triangle_count == 16

    def test_custom_ellipsoid(self):
        sphere = Ellipsoid(1.0, 1.0, 1.0)
        (hierarchy, _), = load_polygon_hierarchies(
            {"type": "Polygon", "coordinates": [[[0, 0], [0, 90], [90, 0]]]},
            sphere)
        np.testing.assert_allclose(np.linalg.norm(hierarchy.positions, axis=1),
                                   1.0)
        np.testing.assert_allclose(hierarchy.positions[1], [0, 0, 1],
                                   atol=1e-15)
        assert math.isclose(hierarchy.positions[2][1], 1.0)
