from .polygon import PolygonGeometry, create_geometry
from .hierarchy import PolygonHierarchy, flatten_hierarchy, normalize_ring
from .mesh import Mesh, compute_normals, compute_tangents_and_bitangents
from .bounds import (
    BoundingSphere,
    Rectangle,
    compute_rectangle,
    texture_coordinate_rotation_points,
)
from .ellipsoid import (
    Ellipsoid,
    from_degrees,
    from_degrees_array,
    from_degrees_array_heights,
    from_radians_array,
)
from .rhumb import EllipsoidRhumbLine
from .tangent_plane import EllipsoidTangentPlane
from .earcut import earcut
from .vertex_format import ArcType, GeometryOffsetAttribute, VertexFormat
from .errors import DegenerateRingWarning, InvalidArgumentError
from .geojson import load_polygon_hierarchies
from .workers import create_geometries

__version__ = "0.1.0"
