from __future__ import annotations

import logging
import sys
from collections.abc import Sequence

from .classes import ShapeOffset
from .constants import HEADER_LENGTH, SHX_RECORD_LENGTH, WORD
from .exceptions import CorruptedDataException, InvalidHeaderException
from .header import ShapeHeader
from .helpers import _Array, pack_2_int32_be, plan_chunks
from .types import ReadableBinStream, WriteableBinStream

logger = logging.getLogger(__name__)


def read_index(
    shx: ReadableBinStream, filePath: str | None = None
) -> tuple[ShapeHeader, list[ShapeOffset]]:
    """Reads a whole .shx file and returns its header and the offset and
    content length, in bytes, of every record of the matching .shp file,
    in file order."""
    # Index files are small, so they are read in one go
    data = shx.read()
    header = ShapeHeader.from_bytes(data[:HEADER_LENGTH], filePath)

    numRecords = (header.fileLengthBytes - HEADER_LENGTH) // SHX_RECORD_LENGTH
    if numRecords < 0:
        raise InvalidHeaderException(
            f"Index file length of {header.fileLengthBytes} bytes is shorter than its header.",
            filePath,
        )
    end = HEADER_LENGTH + numRecords * SHX_RECORD_LENGTH
    if len(data) < end:
        raise CorruptedDataException(
            f"Index declares {numRecords} records but is truncated at {len(data)} bytes.",
            filePath,
        )
    if len(data) > end:
        logger.warning(
            "Index file %s holds %d bytes beyond its declared length.",
            filePath,
            len(data) - end,
        )

    # Each index record is a pair of big endian (offset, length) in 16-bit words
    shxRecords = _Array[int]("i", data[HEADER_LENGTH:end])
    if sys.byteorder != "big":
        shxRecords.byteswap()
    offsets = [
        ShapeOffset(WORD * shxRecords[i], WORD * shxRecords[i + 1])
        for i in range(0, len(shxRecords), 2)
    ]
    logger.debug("Read %d index records from %s", len(offsets), filePath)
    return header, offsets


def write_index(
    shx: WriteableBinStream,
    header: ShapeHeader,
    offsets: Sequence[ShapeOffset],
    maxBufferSize: int,
) -> int:
    """Writes the header and offset records of a .shx file. The file length
    in the header is set from the number of records. Returns the number of
    chunks written after the header."""
    header.fileLengthBytes = HEADER_LENGTH + SHX_RECORD_LENGTH * len(offsets)
    shx.write(header.to_bytes())

    chunks = plan_chunks([SHX_RECORD_LENGTH] * len(offsets), maxBufferSize)
    for start, stop in chunks:
        buf = bytearray(SHX_RECORD_LENGTH * (stop - start))
        for pos, (offset, length) in enumerate(offsets[start:stop]):
            pack_2_int32_be(buf, pos * SHX_RECORD_LENGTH, offset // WORD, length // WORD)
        shx.write(buf)

    logger.debug("Wrote %d index records in %d chunks", len(offsets), len(chunks))
    return len(chunks)
