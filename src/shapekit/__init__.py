"""
shapekit
Reads and writes ESRI Shapefiles: the .shp geometry, its .shx index,
the .dbf attribute table and the projection named in the .prj file.
Compatible with Python versions >=3.9
"""

from __future__ import annotations

import logging

from .__version__ import __version__
from .classes import Bounds, BoundsM, BoundsZ, DbaseField, ShapeOffset
from .constants import (
    DBF_MAX_BUFFER_SIZE,
    MAX_BUFFER_SIZE,
    MULTIPATCH,
    MULTIPOINT,
    MULTIPOINTM,
    MULTIPOINTZ,
    NULL,
    PARTTYPE_LOOKUP,
    POINT,
    POINTM,
    POINTZ,
    POLYGON,
    POLYGONM,
    POLYGONZ,
    POLYLINE,
    POLYLINEM,
    POLYLINEZ,
    SHAPETYPE_LOOKUP,
    SHAPETYPENUM_LOOKUP,
    UNDEFINED,
    shape_type_from_id,
)
from .dbf import DATE_NULL, DbaseFile, check_fields, widen_fields
from .exceptions import (
    CorruptedDataException,
    FileNotFoundException,
    InvalidBoundsException,
    InvalidFormatException,
    InvalidHeaderException,
    ShapefileErrorType,
    ShapefileException,
    ShapefileIOException,
    UnsupportedTypeException,
)
from .header import ShapeHeader
from .helpers import plan_chunks
from .index import read_index, write_index
from .projection import ProjectionType, read_projection
from .reader import Reader
from .serializers import content_length, read_shape, write_shape
from .shapefile import Shapefile, compute_bounds
from .shapes import (
    SHAPE_CLASS_FROM_SHAPETYPE,
    MultiPatch,
    MultiPoint,
    MultiPointM,
    MultiPointZ,
    NullShape,
    Point,
    PointM,
    PointZ,
    Polygon,
    PolygonM,
    PolygonZ,
    Polyline,
    PolylineM,
    PolylineZ,
    Shape,
)
from .types import FieldType, RecordValue
from .writer import Writer, analyze

__all__ = [
    "__version__",
    "NULL",
    "POINT",
    "POLYLINE",
    "POLYGON",
    "MULTIPOINT",
    "POINTZ",
    "POLYLINEZ",
    "POLYGONZ",
    "MULTIPOINTZ",
    "POINTM",
    "POLYLINEM",
    "POLYGONM",
    "MULTIPOINTM",
    "MULTIPATCH",
    "UNDEFINED",
    "SHAPETYPE_LOOKUP",
    "SHAPETYPENUM_LOOKUP",
    "PARTTYPE_LOOKUP",
    "MAX_BUFFER_SIZE",
    "DBF_MAX_BUFFER_SIZE",
    "shape_type_from_id",
    "Shapefile",
    "compute_bounds",
    "Reader",
    "Writer",
    "analyze",
    "ShapeHeader",
    "read_index",
    "write_index",
    "content_length",
    "read_shape",
    "write_shape",
    "plan_chunks",
    "DbaseFile",
    "DbaseField",
    "DATE_NULL",
    "widen_fields",
    "check_fields",
    "FieldType",
    "RecordValue",
    "ProjectionType",
    "read_projection",
    "Bounds",
    "BoundsM",
    "BoundsZ",
    "ShapeOffset",
    "Shape",
    "NullShape",
    "Point",
    "PointM",
    "PointZ",
    "Polyline",
    "PolylineM",
    "PolylineZ",
    "Polygon",
    "PolygonM",
    "PolygonZ",
    "MultiPoint",
    "MultiPointM",
    "MultiPointZ",
    "MultiPatch",
    "SHAPE_CLASS_FROM_SHAPETYPE",
    "ShapefileErrorType",
    "ShapefileException",
    "FileNotFoundException",
    "InvalidFormatException",
    "UnsupportedTypeException",
    "InvalidHeaderException",
    "InvalidBoundsException",
    "CorruptedDataException",
    "ShapefileIOException",
]

logger = logging.getLogger(__name__)
