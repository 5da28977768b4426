from __future__ import annotations

from struct import Struct, error

from .classes import Bounds, BoundsM, BoundsZ
from .constants import (
    FILE_CODE,
    HEADER_LENGTH,
    SHAPETYPE_LOOKUP,
    UNDEFINED,
    VERSION,
    WORD,
    shape_type_from_id,
)
from .exceptions import CorruptedDataException, InvalidHeaderException
from .shapes import (
    PointM_shapeTypes,
    PointZ_shapeTypes,
    _HasM_shapeTypes,
    _HasZ_shapeTypes,
)

# File code, 5 unused words, file length in 16-bit words: big endian
_header_be = Struct(">i20xi")
# Version, shape type, xmin, ymin, xmax, ymax, zmin, zmax, mmin, mmax
_header_le = Struct("<2i8d")


class ShapeHeader:
    """The 100 byte header shared by the .shp and .shx files.

    fileLength is kept in 16-bit words, as stored on disk;
    fileLengthBytes gives the length in bytes.
    """

    def __init__(
        self,
        shapeType: int = UNDEFINED,
        bounds: Bounds | BoundsM | BoundsZ | None = None,
        fileLength: int = HEADER_LENGTH // WORD,
        fileCode: int = FILE_CODE,
        version: int = VERSION,
    ):
        self.fileCode = fileCode
        self.fileLength = fileLength
        self.version = version
        self.shapeType = shapeType
        self.bounds = bounds if bounds is not None else Bounds(0.0, 0.0, 0.0, 0.0)

    @property
    def fileLengthBytes(self) -> int:
        return self.fileLength * WORD

    @fileLengthBytes.setter
    def fileLengthBytes(self, nbytes: int) -> None:
        self.fileLength = nbytes // WORD

    @property
    def shapeTypeName(self) -> str:
        return SHAPETYPE_LOOKUP[self.shapeType]

    @classmethod
    def from_bytes(
        cls, data: bytes | bytearray | memoryview, filePath: str | None = None
    ) -> ShapeHeader:
        """Decodes and validates a header. A wrong file code or version stops
        decoding right away."""
        if len(data) < HEADER_LENGTH:
            raise InvalidHeaderException(
                f"Shapefile header must be {HEADER_LENGTH} bytes long. Got {len(data)} bytes.",
                filePath,
            )
        fileCode, fileLength = _header_be.unpack_from(data, 0)
        if fileCode != FILE_CODE:
            raise InvalidHeaderException(
                f"Invalid file code: expected {FILE_CODE}, got {fileCode}.", filePath
            )
        version, shapeTypeId, *values = _header_le.unpack_from(data, 28)
        if version != VERSION:
            raise InvalidHeaderException(
                f"Invalid version: expected {VERSION}, got {version}.", filePath
            )
        shapeType = shape_type_from_id(shapeTypeId)
        xmin, ymin, xmax, ymax, zmin, zmax, mmin, mmax = values

        bounds: Bounds | BoundsM | BoundsZ
        if shapeType in PointZ_shapeTypes | _HasZ_shapeTypes:
            bounds = BoundsZ(xmin, ymin, xmax, ymax, zmin, zmax, mmin, mmax)
        elif shapeType in PointM_shapeTypes | _HasM_shapeTypes:
            bounds = BoundsM(xmin, ymin, xmax, ymax, mmin, mmax)
        else:
            bounds = Bounds(xmin, ymin, xmax, ymax)

        return cls(shapeType, bounds, fileLength, fileCode, version)

    def to_bytes(self) -> bytes:
        """Encodes the header. Elevation and measure ranges the bounds do not
        carry are written as zeros."""
        bounds = self.bounds
        zbox = bounds.zbox if isinstance(bounds, BoundsZ) else (0.0, 0.0)
        mbox = bounds.mbox if bounds.hasM else (0.0, 0.0)  # type: ignore[union-attr]
        buf = bytearray(HEADER_LENGTH)
        try:
            _header_be.pack_into(buf, 0, self.fileCode, self.fileLength)
            _header_le.pack_into(
                buf, 28, self.version, self.shapeType, *bounds.bbox, *zbox, *mbox
            )
        except error as err:
            raise CorruptedDataException(
                "Failed to pack the shapefile header. Integers and floats required.",
                details=str(err),
            ) from err
        return bytes(buf)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ShapeHeader):
            return NotImplemented
        return self.to_bytes() == other.to_bytes()

    def __repr__(self) -> str:
        return (
            f"ShapeHeader(shapeType={SHAPETYPE_LOOKUP.get(self.shapeType, self.shapeType)}, "
            f"fileLength={self.fileLength}, bounds={self.bounds})"
        )
