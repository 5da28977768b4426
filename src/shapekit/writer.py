from __future__ import annotations

import logging
import os
from collections.abc import Sequence
from typing import IO

from .classes import Bounds, BoundsM, BoundsZ, ShapeOffset
from .constants import (
    HEADER_LENGTH,
    MAX_BUFFER_SIZE,
    MAX_FILE_LENGTH,
    NULL,
    RECORD_HEADER_LENGTH,
    SHAPETYPE_LOOKUP,
    UNDEFINED,
    WORD,
)
from .exceptions import (
    CorruptedDataException,
    InvalidBoundsException,
    InvalidHeaderException,
    ShapefileIOException,
)
from .header import ShapeHeader
from .helpers import fsdecode_if_pathlike, pack_2_int32_be, plan_chunks, sibling_path
from .index import write_index
from .serializers import content_length, write_shape
from .shapes import Shape
from .types import PathT, WriteableBinStream

logger = logging.getLogger(__name__)


def analyze(
    shapeType: int,
    bounds: Bounds | BoundsM | BoundsZ | None,
    records: Sequence[Shape],
    filePath: str | None = None,
) -> tuple[list[ShapeOffset], int]:
    """Computes the offset and content length of every record and the total
    .shp file length in bytes, without touching the disk.

    Raises InvalidHeaderException if the shape type is not set,
    InvalidBoundsException if the bounds are unset or all zero, and
    CorruptedDataException for a record whose type differs from shapeType.
    """
    if shapeType == UNDEFINED or shapeType not in SHAPETYPE_LOOKUP:
        raise InvalidHeaderException(
            f"Shape type must be set before writing. Got: {shapeType}", filePath
        )
    if bounds is None or (shapeType != NULL and bounds.isZero()):
        raise InvalidBoundsException(
            "Bounds must be set before writing.", filePath, details=bounds
        )

    offsets = []
    offset = HEADER_LENGTH
    for i, s in enumerate(records):
        if not isinstance(s, Shape) or s.shapeType not in (NULL, shapeType):
            raise CorruptedDataException(
                f"Record {i} does not match the shapefile type "
                f"{SHAPETYPE_LOOKUP[shapeType]}.",
                filePath,
                details=repr(s),
            )
        length = content_length(s)
        offsets.append(ShapeOffset(offset, length))
        offset += RECORD_HEADER_LENGTH + length

    if offset > MAX_FILE_LENGTH:
        raise ShapefileIOException(
            f"The .shp file would be {offset} bytes, more than the {MAX_FILE_LENGTH} "
            "bytes (4.29 GB) a shapefile can address. To fix this, break up your "
            "records into multiple smaller files.",
            filePath,
        )
    return offsets, offset


class Writer:
    """Writes the geometry (.shp) and index (.shx) files of a shapefile.

    Nothing is written until analyze() has accepted the shape type, bounds
    and every record. Each file is then written in chunks of at most
    maxBufferSize bytes, except that a record larger than the buffer is
    written on its own.
    """

    def __init__(
        self,
        target: PathT,
        shapeType: int,
        bounds: Bounds | BoundsM | BoundsZ | None,
        records: Sequence[Shape],
        *,
        maxBufferSize: int = MAX_BUFFER_SIZE,
    ):
        self.target = fsdecode_if_pathlike(target)
        self.shp = sibling_path(self.target, "shp")
        self.shx = sibling_path(self.target, "shx")
        self.shapeType = shapeType
        self.bounds = bounds
        self.records = records
        self.maxBufferSize = maxBufferSize
        self.offsets: list[ShapeOffset] = []
        self.shpLength = HEADER_LENGTH

    def __len__(self) -> int:
        return len(self.records)

    def analyze(self) -> list[ShapeOffset]:
        self.offsets, self.shpLength = analyze(
            self.shapeType, self.bounds, self.records, self.shp
        )
        return self.offsets

    def write(self) -> tuple[ShapeHeader, ShapeHeader]:
        """Analyzes the records, then writes the .shx and .shp files.
        Returns the headers written to them, in that order."""
        self.analyze()
        headerSHX = ShapeHeader(self.shapeType, self.bounds)
        headerSHP = ShapeHeader(self.shapeType, self.bounds)

        try:
            with self.__getFileObj(self.shx) as shx:
                write_index(shx, headerSHX, self.offsets, self.maxBufferSize)
            with self.__getFileObj(self.shp) as shp:
                self.write_shapes(shp, headerSHP)
        except OSError as err:
            raise ShapefileIOException(
                "Error writing shapefile", self.target, str(err)
            ) from err
        return headerSHP, headerSHX

    def write_shapes(self, shp: WriteableBinStream, header: ShapeHeader) -> int:
        """Writes the header and records of the .shp file. analyze() must have
        run first. Returns the number of chunks written after the header."""
        header.fileLengthBytes = self.shpLength
        shp.write(header.to_bytes())

        lengths = [RECORD_HEADER_LENGTH + o.length for o in self.offsets]
        chunks = plan_chunks(lengths, self.maxBufferSize)
        for start, stop in chunks:
            buf = bytearray(sum(lengths[start:stop]))
            pos = 0
            for i in range(start, stop):
                length = self.offsets[i].length
                # Record number (1-based), content length in 16-bit words
                pack_2_int32_be(buf, pos, i + 1, length // WORD)
                pos += RECORD_HEADER_LENGTH
                written = write_shape(buf, pos, self.records[i], self.shapeType)
                if written != length:
                    raise CorruptedDataException(
                        f"Record {i} was analyzed as {length} bytes but {written} were encoded.",
                        self.shp,
                    )
                pos += written
            shp.write(buf)

        logger.debug(
            "Wrote %d records in %d chunks to %s", len(self.records), len(chunks), self.shp
        )
        return len(chunks)

    def __getFileObj(self, f: str) -> IO[bytes]:
        """Opens a file for writing, creating missing parent directories."""
        pth = os.path.split(f)[0]
        if pth and not os.path.exists(pth):
            os.makedirs(pth)
        return open(f, "wb")
