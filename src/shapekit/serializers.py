"""
Byte layouts of the individual geometry records of a .shp file.

All content inside a record is little endian. Each record starts with its
shape type id, followed by the fields of its family:

    Point        x, y
    PointM       x, y, m
    PointZ       x, y, z, m
    MultiPoint   bbox, numPoints, points            [, Z block] [, M block]
    Polyline     bbox, numParts, numPoints, parts,
                 [partTypes (MultiPatch),] points   [, Z block] [, M block]

A Z or M block is (min, max) followed by one value per point. The Z block
is mandatory for the Z family. The M block is optional, and on reading its
presence is decided by whether any declared content bytes remain after
the points (and Z block).
"""

from __future__ import annotations

import logging
from struct import Struct, error, pack_into, unpack_from
from typing import Any

from .classes import Bounds, BoundsM, BoundsZ
from .constants import NULL, POINT, POINTM, POINTZ, SHAPETYPE_LOOKUP
from .exceptions import CorruptedDataException, UnsupportedTypeException
from .shapes import (
    SHAPE_CLASS_FROM_SHAPETYPE,
    MultiPatch_shapeTypes,
    NullShape,
    Point,
    Point_shapeTypes,
    PointM,
    PointZ,
    Shape,
    _CanHaveBBox_shapeTypes,
    _CanHaveParts_shapeTypes,
    _HasM_shapeTypes,
    _HasZ_shapeTypes,
)

logger = logging.getLogger(__name__)

_int32 = Struct("<i")
_two_int32 = Struct("<2i")
_two_doubles = Struct("<2d")
_four_doubles = Struct("<4d")

POINT_CONTENT_LENGTH = {
    POINT: 20,
    POINTM: 28,
    POINTZ: 36,
}


def content_length(s: Shape) -> int:
    """Returns the exact number of content bytes (type id included, record
    header excluded) that write_shape will produce for the shape."""
    shapeType = s.shapeType
    if shapeType == NULL:
        return 4
    if shapeType in Point_shapeTypes:
        return POINT_CONTENT_LENGTH[shapeType]
    if shapeType not in _CanHaveBBox_shapeTypes:
        raise UnsupportedTypeException(
            f"Cannot compute the content length of shape type {shapeType}."
        )

    numPoints = len(s.points)  # type: ignore[attr-defined]
    # Type id, bounding box, numPoints
    length = 4 + 32 + 4
    if shapeType in _CanHaveParts_shapeTypes:
        # numParts and the parts array
        length += 4 + 4 * len(s.parts)  # type: ignore[attr-defined]
    if shapeType in MultiPatch_shapeTypes:
        length += 4 * len(s.partTypes)  # type: ignore[attr-defined]
    length += 16 * numPoints
    if shapeType in _HasZ_shapeTypes:
        length += 16 + 8 * numPoints
    if shapeType in _HasM_shapeTypes and s.hasM:  # type: ignore[attr-defined]
        length += 16 + 8 * numPoints
    return length


def write_shape(buf: bytearray, offset: int, s: Shape, shapeType: int) -> int:
    """Packs the content of one record into buf at offset and returns the number
    of bytes written. shapeType is the id written in front of the content;
    a shapefile uses the type of its header for every record except null
    records, which are written with their own id."""
    try:
        return _write_shape(buf, offset, s, shapeType)
    except error as err:
        raise CorruptedDataException(
            f"Failed to pack {s!r} as a {SHAPETYPE_LOOKUP.get(shapeType, shapeType)} record.",
            details=str(err),
        ) from err


def _write_shape(buf: bytearray, offset: int, s: Any, shapeType: int) -> int:
    pos = offset
    # Null records keep their own id inside a typed shapefile
    _int32.pack_into(buf, pos, NULL if s.shapeType == NULL else shapeType)
    pos += 4

    if s.shapeType == NULL:
        return pos - offset

    if s.shapeType in Point_shapeTypes:
        _two_doubles.pack_into(buf, pos, s.x, s.y)
        pos += 16
        # On disk a PointZ holds z before m
        if s.shapeType == POINTZ:
            _two_doubles.pack_into(buf, pos, s.z, s.m)
            pos += 16
        elif s.shapeType == POINTM:
            pack_into("<d", buf, pos, s.m)
            pos += 8
        return pos - offset

    numPoints = len(s.points)
    _four_doubles.pack_into(buf, pos, *s.bounds.bbox)
    pos += 32

    if s.shapeType in _CanHaveParts_shapeTypes:
        numParts = len(s.parts)
        _two_int32.pack_into(buf, pos, numParts, numPoints)
        pos += 8
        pack_into(f"<{numParts}i", buf, pos, *s.parts)
        pos += 4 * numParts
        if s.shapeType in MultiPatch_shapeTypes:
            pack_into(f"<{numParts}i", buf, pos, *s.partTypes)
            pos += 4 * numParts
    else:
        _int32.pack_into(buf, pos, numPoints)
        pos += 4

    flat = [coord for point in s.points for coord in point]
    pack_into(f"<{2 * numPoints}d", buf, pos, *flat)
    pos += 16 * numPoints

    if s.shapeType in _HasZ_shapeTypes:
        _two_doubles.pack_into(buf, pos, *s.bounds.zbox)
        pos += 16
        pack_into(f"<{numPoints}d", buf, pos, *s.z)
        pos += 8 * numPoints

    if s.shapeType in _HasM_shapeTypes and s.hasM:
        _two_doubles.pack_into(buf, pos, *s.bounds.mbox)
        pos += 16
        pack_into(f"<{numPoints}d", buf, pos, *s.m)
        pos += 8 * numPoints

    return pos - offset


def read_shape(
    shapeType: int,
    buf: bytes | bytearray | memoryview,
    offset: int,
    length: int,
    oid: int | None = None,
    filePath: str | None = None,
) -> Shape:
    """Decodes the content of one record, length bytes starting at offset.

    The type id stored in the record itself is skipped: shapeType, the type
    declared in the file header, decides the layout. A record holding
    nothing but its type id is a null record.
    """
    end = offset + length
    if length < 4 or end > len(buf):
        raise CorruptedDataException(
            f"Record {oid} declares {length} content bytes, "
            f"but only {len(buf) - offset} are available.",
            filePath,
        )
    pos = offset + 4

    if shapeType == NULL or length == 4:
        return NullShape(oid=oid)

    if shapeType in Point_shapeTypes:
        if length < POINT_CONTENT_LENGTH[shapeType]:
            raise CorruptedDataException(
                f"Record {oid} is too short for a {SHAPETYPE_LOOKUP[shapeType]}: "
                f"{length} bytes.",
                filePath,
            )
        x, y = _two_doubles.unpack_from(buf, pos)
        if shapeType == POINTZ:
            z, m = _two_doubles.unpack_from(buf, pos + 16)
            return PointZ(x, y, z, m, oid=oid)
        if shapeType == POINTM:
            (m,) = unpack_from("<d", buf, pos + 16)
            return PointM(x, y, m, oid=oid)
        return Point(x, y, oid=oid)

    if shapeType not in _CanHaveBBox_shapeTypes:
        raise UnsupportedTypeException(
            f"Unsupported shape type id: {shapeType}", filePath
        )

    def _require(nbytes: int, what: str) -> None:
        if pos + nbytes > end:
            raise CorruptedDataException(
                f"Record {oid} ends before its {what} "
                f"(needs {nbytes} bytes, {end - pos} left).",
                filePath,
            )

    _require(36, "bounding box")
    bbox = _four_doubles.unpack_from(buf, pos)
    pos += 32

    numParts = 0
    if shapeType in _CanHaveParts_shapeTypes:
        _require(8, "part and point counts")
        numParts, numPoints = _two_int32.unpack_from(buf, pos)
        pos += 8
    else:
        (numPoints,) = _int32.unpack_from(buf, pos)
        pos += 4
    if numParts < 0 or numPoints < 0:
        raise CorruptedDataException(
            f"Record {oid} has negative counts: {numParts} parts, {numPoints} points.",
            filePath,
        )

    kwargs: dict[str, Any] = {"oid": oid}

    if shapeType in _CanHaveParts_shapeTypes:
        _require(4 * numParts, "parts")
        kwargs["parts"] = unpack_from(f"<{numParts}i", buf, pos)
        pos += 4 * numParts
        if shapeType in MultiPatch_shapeTypes:
            _require(4 * numParts, "part types")
            kwargs["partTypes"] = unpack_from(f"<{numParts}i", buf, pos)
            pos += 4 * numParts

    _require(16 * numPoints, "points")
    flat = unpack_from(f"<{2 * numPoints}d", buf, pos)
    kwargs["points"] = tuple(zip(flat[::2], flat[1::2]))
    pos += 16 * numPoints

    zbox = None
    if shapeType in _HasZ_shapeTypes:
        _require(16 + 8 * numPoints, "elevation values")
        zbox = _two_doubles.unpack_from(buf, pos)
        pos += 16
        kwargs["z"] = unpack_from(f"<{numPoints}d", buf, pos)
        pos += 8 * numPoints

    mbox: tuple[Any, Any] = (None, None)
    if shapeType in _HasM_shapeTypes:
        # The measure block is optional. Its presence can only be told
        # from the bytes the record declares beyond this point.
        if end - pos > 0:
            _require(16 + 8 * numPoints, "measure values")
            mbox = _two_doubles.unpack_from(buf, pos)
            pos += 16
            kwargs["m"] = unpack_from(f"<{numPoints}d", buf, pos)
            pos += 8 * numPoints

    if zbox is not None:
        kwargs["bounds"] = BoundsZ(*bbox, *zbox, *mbox)
    elif shapeType in _HasM_shapeTypes:
        kwargs["bounds"] = BoundsM(*bbox, *mbox)
    else:
        kwargs["bounds"] = Bounds(*bbox)

    if pos != end:
        logger.debug(
            "Record %s declares %d content bytes, %d were decoded.",
            oid,
            length,
            pos - offset,
        )

    ShapeClass = SHAPE_CLASS_FROM_SHAPETYPE[shapeType]
    return ShapeClass(**kwargs)

