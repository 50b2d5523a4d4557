"""GeoJSON polygons to polygon hierarchies.

Polygon coordinates are ``[longitude, latitude(, height)]`` in degrees.  The
first ring of a polygon is its boundary and the rest are holes; closing
duplicate positions are removed later by ring normalization.
"""

import json
import warnings
from pathlib import Path

import numpy as np

from ._math_utils import RADIANS_PER_DEGREE
from .ellipsoid import Ellipsoid
from .hierarchy import PolygonHierarchy


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

def _load_geojson(geojson):
    """Load GeoJSON and normalise to [(geometry, properties), ...].

    Parameters
    ----------
    geojson : str, Path, or dict
        File path or parsed GeoJSON object.

    Returns
    -------
    list of (dict, dict)
        Each entry is (geometry_dict, properties_dict).
    """
    if isinstance(geojson, (str, Path)):
        path = Path(geojson)
        if not path.exists():
            raise FileNotFoundError(f"GeoJSON file not found: {path}")
        with open(path) as f:
            geojson = json.load(f)

    if not isinstance(geojson, dict):
        raise TypeError(f"Expected dict, str, or Path, got {type(geojson)}")

    gtype = geojson.get("type")

    if gtype == "FeatureCollection":
        results = []
        for feature in geojson.get("features", []):
            results.extend(_load_geojson(feature))
        return results

    if gtype == "Feature":
        geom = geojson.get("geometry")
        props = geojson.get("properties") or {}
        if geom is None:
            return []
        return [(geom, props)]

    if gtype == "GeometryCollection":
        return [(g, {}) for g in geojson.get("geometries", [])]

    if gtype in ("Point", "MultiPoint", "LineString", "MultiLineString",
                 "Polygon", "MultiPolygon"):
        return [(geojson, {})]

    raise ValueError(f"Unsupported GeoJSON type: {gtype}")


def _flatten_multi(geometry):
    """Split a MultiPolygon into Polygons; other types pass through."""
    if geometry.get("type") == "MultiPolygon":
        return [{"type": "Polygon", "coordinates": c}
                for c in geometry.get("coordinates", [])]
    return [geometry]


# ---------------------------------------------------------------------------
# Conversion
# ---------------------------------------------------------------------------

def ring_to_positions(ring, ellipsoid=Ellipsoid.WGS84):
    """Earth-fixed positions of one GeoJSON ring.

    Parameters
    ----------
    ring : sequence
        ``[lon, lat]`` or ``[lon, lat, height]`` entries in degrees.

    Returns
    -------
    np.ndarray
        (N, 3) float64.
    """
    lon = np.array([c[0] for c in ring], dtype=np.float64)
    lat = np.array([c[1] for c in ring], dtype=np.float64)
    height = np.array([c[2] if len(c) > 2 else 0.0 for c in ring],
                      dtype=np.float64)
    return ellipsoid.cartographic_to_cartesian(
        lon * RADIANS_PER_DEGREE, lat * RADIANS_PER_DEGREE,
        height).reshape(-1, 3)


def polygon_to_hierarchy(coordinates, ellipsoid=Ellipsoid.WGS84):
    """Hierarchy from GeoJSON Polygon coordinates (boundary, then holes)."""
    if not coordinates:
        raise ValueError("Polygon has no rings")
    holes = [PolygonHierarchy(ring_to_positions(ring, ellipsoid))
             for ring in coordinates[1:]]
    return PolygonHierarchy(ring_to_positions(coordinates[0], ellipsoid),
                            holes)


def load_polygon_hierarchies(geojson, ellipsoid=Ellipsoid.WGS84):
    """Read every polygon in a GeoJSON source.

    Parameters
    ----------
    geojson : str, Path, or dict
        File path or parsed GeoJSON object.
    ellipsoid : Ellipsoid

    Returns
    -------
    list of (PolygonHierarchy, dict)
        One entry per polygon (MultiPolygons are split) with the feature's
        properties.
    """
    results = []
    skipped = 0
    for geometry, props in _load_geojson(geojson):
        for geom in _flatten_multi(geometry):
            if geom.get("type") != "Polygon":
                skipped += 1
                continue
            results.append((polygon_to_hierarchy(geom["coordinates"],
                                                 ellipsoid), props))

    if skipped:
        warnings.warn(
            f"Skipped {skipped} non-polygon geometries",
            stacklevel=2,
        )
    return results
