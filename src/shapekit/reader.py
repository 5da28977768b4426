from __future__ import annotations

import logging
import os
from typing import IO

from .classes import ShapeOffset
from .constants import (
    DBF_MAX_BUFFER_SIZE,
    HEADER_LENGTH,
    MAX_BUFFER_SIZE,
    RECORD_HEADER_LENGTH,
    UNDEFINED,
)
from .dbf import DbaseFile
from .exceptions import (
    CorruptedDataException,
    FileNotFoundException,
    ShapefileIOException,
    UnsupportedTypeException,
)
from .header import ShapeHeader
from .helpers import fsdecode_if_pathlike, plan_chunks
from .index import read_index
from .projection import ProjectionType, read_projection
from .serializers import read_shape
from .shapes import Shape
from .types import PathT

logger = logging.getLogger(__name__)


class Reader:
    """Reads the files of a shapefile: the .shx index first, then the .shp
    geometry it locates, then the optional .dbf attribute table and .prj
    projection. Every file is opened, read and closed within the call that
    needs it.

    The index is authoritative: records are read in index order, from the
    offsets and content lengths it gives, in chunks of at most
    maxBufferSize bytes.
    """

    def __init__(
        self,
        shapefile_path: PathT,
        *,
        encoding: str = "ascii",
        encodingErrors: str = "strict",
        maxBufferSize: int = MAX_BUFFER_SIZE,
        dbfMaxBufferSize: int = DBF_MAX_BUFFER_SIZE,
    ):
        self.path = fsdecode_if_pathlike(shapefile_path)
        self.baseName = os.path.splitext(self.path)[0]
        self.encoding = encoding
        self.encodingErrors = encodingErrors
        self.maxBufferSize = maxBufferSize
        self.dbfMaxBufferSize = dbfMaxBufferSize
        self.headerSHX: ShapeHeader | None = None
        self.headerSHP: ShapeHeader | None = None
        self.offsets: list[ShapeOffset] = []
        self.shapes: list[Shape] = []
        self.attributes: DbaseFile | None = None
        self.projection = ProjectionType.NONE

    def __len__(self) -> int:
        return len(self.offsets)

    def __str__(self) -> str:
        return f"shapekit.Reader: {len(self.offsets)} shapes in {self.path!r}"

    def _constituent_file(self, ext: str) -> str | None:
        """Returns the path of a .shp, .shx, .dbf or .prj file that exists,
        trying the lower case extension before the upper case one."""
        for candidate in (f"{self.baseName}.{ext}", f"{self.baseName}.{ext.upper()}"):
            if os.path.isfile(candidate):
                return candidate
        return None

    def read(self) -> None:
        """Reads all constituent files, replacing any previous state."""
        shp = self._constituent_file("shp")
        if shp is None:
            raise FileNotFoundException(f"{self.baseName}.shp")
        self.read_index()
        self.read_shapes()
        self.read_attributes()
        self.read_projection()

    def read_index(self) -> list[ShapeOffset]:
        shx = self._constituent_file("shx")
        if shx is None:
            raise FileNotFoundException(f"{self.baseName}.shx")
        try:
            with open(shx, "rb") as f:
                self.headerSHX, self.offsets = read_index(f, shx)
        except OSError as err:
            raise ShapefileIOException("Error reading index file", shx, str(err)) from err
        return self.offsets

    def read_shapes(self) -> list[Shape]:
        """Reads the geometry records located by the index. Records decoded
        before a failure stay in self.shapes."""
        shp = self._constituent_file("shp")
        if shp is None:
            raise FileNotFoundException(f"{self.baseName}.shp")
        self.shapes = []
        try:
            with open(shp, "rb") as f:
                self.__read_shapes(f, shp)
        except OSError as err:
            raise ShapefileIOException("Error reading geometry file", shp, str(err)) from err
        return self.shapes

    def __read_shapes(self, f: IO[bytes], shp: str) -> None:
        self.headerSHP = header = ShapeHeader.from_bytes(f.read(HEADER_LENGTH), shp)
        shapeType = header.shapeType
        if shapeType == UNDEFINED:
            raise UnsupportedTypeException("Unsupported shape type in header", shp)
        if self.headerSHX is not None and self.headerSHX.shapeType != shapeType:
            logger.warning(
                "Shape type of %s (%s) differs from its index (%s)",
                shp,
                shapeType,
                self.headerSHX.shapeType,
            )

        offsets = self.offsets
        if offsets:
            last = offsets[-1]
            end = last.offset + RECORD_HEADER_LENGTH + last.length
            if end != header.fileLengthBytes:
                logger.warning(
                    "File length of %s (%d bytes) disagrees with its index (%d bytes)",
                    shp,
                    header.fileLengthBytes,
                    end,
                )

        lengths = [RECORD_HEADER_LENGTH + o.length for o in offsets]
        chunks = plan_chunks(lengths, self.maxBufferSize)
        for start, stop in chunks:
            span = offsets[start:stop]
            first = min(o.offset for o in span)
            end = max(o.offset + RECORD_HEADER_LENGTH + o.length for o in span)
            f.seek(first)
            data = f.read(end - first)
            if len(data) < end - first:
                raise CorruptedDataException(
                    f"Geometry file ends at {first + len(data)} bytes, "
                    f"before record {stop - 1} ends at {end}.",
                    shp,
                )
            for i, (offset, length) in enumerate(span, start):
                # The record header is skipped; the index is authoritative
                pos = offset - first + RECORD_HEADER_LENGTH
                self.shapes.append(
                    read_shape(shapeType, data, pos, length, oid=i, filePath=shp)
                )
        logger.debug("Read %d shapes in %d chunks from %s", len(self.shapes), len(chunks), shp)

    def read_attributes(self) -> DbaseFile | None:
        """Reads the .dbf file if there is one."""
        dbf = self._constituent_file("dbf")
        if dbf is None:
            self.attributes = None
            return None
        table = DbaseFile(
            encoding=self.encoding,
            encodingErrors=self.encodingErrors,
            maxBufferSize=self.dbfMaxBufferSize,
        )
        try:
            with open(dbf, "rb") as f:
                table.read(f, dbf)
        except OSError as err:
            raise ShapefileIOException("Error reading dbf file", dbf, str(err)) from err
        if self.offsets and table.numRecords != len(self.offsets):
            logger.warning(
                "%s holds %d records for %d shapes", dbf, table.numRecords, len(self.offsets)
            )
        self.attributes = table
        return table

    def read_projection(self) -> ProjectionType:
        prj = self._constituent_file("prj")
        self.projection = (
            ProjectionType.NONE if prj is None else read_projection(prj)
        )
        return self.projection
