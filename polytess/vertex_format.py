"""Option enums: vertex formats, arc types and offset selectors."""

from enum import IntEnum, IntFlag


class ArcType(IntEnum):
    """Path followed between consecutive ring positions."""

    NONE = 0
    GEODESIC = 1
    RHUMB = 2


class GeometryOffsetAttribute(IntEnum):
    """Which vertices carry a height-offset flag of 1."""

    NONE = 0
    TOP = 1
    ALL = 2


class VertexFormat(IntFlag):
    """Attribute buffers a mesh carries.

    Flags combine freely, e.g. ``VertexFormat.POSITION | VertexFormat.ST``.
    The packed form is six 0/1 slots in the order position, normal, st,
    tangent, bitangent, color.
    """

    NONE = 0
    POSITION = 1
    NORMAL = 2
    ST = 4
    TANGENT = 8
    BITANGENT = 16
    COLOR = 32

    POSITION_ONLY = POSITION
    POSITION_AND_NORMAL = POSITION | NORMAL
    POSITION_AND_ST = POSITION | ST
    POSITION_AND_COLOR = POSITION | COLOR
    POSITION_NORMAL_AND_ST = POSITION | NORMAL | ST
    ALL = POSITION | NORMAL | ST | TANGENT | BITANGENT
    DEFAULT = POSITION | NORMAL | ST

    def pack(self):
        return [1.0 if self & flag else 0.0 for flag in _PACK_ORDER]

    @classmethod
    def unpack(cls, values):
        fmt = cls.NONE
        for flag, value in zip(_PACK_ORDER, values):
            if value:
                fmt |= flag
        return fmt


_PACK_ORDER = (
    VertexFormat.POSITION,
    VertexFormat.NORMAL,
    VertexFormat.ST,
    VertexFormat.TANGENT,
    VertexFormat.BITANGENT,
    VertexFormat.COLOR,
)

VERTEX_FORMAT_PACKED_LENGTH = len(_PACK_ORDER)
