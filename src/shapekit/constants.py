from __future__ import annotations

# Constants for shape types
NULL = 0
POINT = 1
POLYLINE = 3
POLYGON = 5
MULTIPOINT = 8
POINTZ = 11
POLYLINEZ = 13
POLYGONZ = 15
MULTIPOINTZ = 18
POINTM = 21
POLYLINEM = 23
POLYGONM = 25
MULTIPOINTM = 28
MULTIPATCH = 31
UNDEFINED = -1

SHAPETYPE_LOOKUP = {
    NULL: "NULL",
    POINT: "POINT",
    POLYLINE: "POLYLINE",
    POLYGON: "POLYGON",
    MULTIPOINT: "MULTIPOINT",
    POINTZ: "POINTZ",
    POLYLINEZ: "POLYLINEZ",
    POLYGONZ: "POLYGONZ",
    MULTIPOINTZ: "MULTIPOINTZ",
    POINTM: "POINTM",
    POLYLINEM: "POLYLINEM",
    POLYGONM: "POLYGONM",
    MULTIPOINTM: "MULTIPOINTM",
    MULTIPATCH: "MULTIPATCH",
    UNDEFINED: "UNDEFINED",
}

SHAPETYPENUM_LOOKUP = {name: code for code, name in SHAPETYPE_LOOKUP.items()}


def shape_type_from_id(shapeTypeId: int) -> int:
    """Maps a shape type id read from disk to a known shape type,
    or UNDEFINED if the id is not one of the ESRI shape types."""
    if shapeTypeId in SHAPETYPE_LOOKUP:
        return shapeTypeId
    return UNDEFINED


TRIANGLE_STRIP = 0
TRIANGLE_FAN = 1
OUTER_RING = 2
INNER_RING = 3
FIRST_RING = 4
RING = 5

PARTTYPE_LOOKUP = {
    0: "TRIANGLE_STRIP",
    1: "TRIANGLE_FAN",
    2: "OUTER_RING",
    3: "INNER_RING",
    4: "FIRST_RING",
    5: "RING",
}

# Shapefile main and index file layout
FILE_CODE = 9994
VERSION = 1000
HEADER_LENGTH = 100
RECORD_HEADER_LENGTH = 8
SHX_RECORD_LENGTH = 8
WORD = 2

# Largest .shp/.shx size addressable by a signed 32-bit count of 16-bit words
MAX_FILE_LENGTH = 2 * (2**31 - 1)

# dBASE III+ layout
DBF_NO_MEMO = 0x03
DBF_HEADER_LENGTH = 32
DBF_FIELD_LENGTH = 32
DBF_TERMINATOR = b"\r"
DBF_EOF = b"\x1a"
DBF_ACTIVE = b" "
DBF_DELETED = b"*"
DBF_MAX_FIELD_LENGTH = 254
DBF_MAX_FIELD_NAME = 11

# Default cap on the size of a single read or write call, in bytes
MAX_BUFFER_SIZE = 65535 * 128
DBF_MAX_BUFFER_SIZE = 65535
