from __future__ import annotations

import logging
import os
from collections.abc import Iterable, Iterator, Sequence

from .classes import Bounds, BoundsM, BoundsZ, DbaseField, ShapeOffset
from .constants import MAX_BUFFER_SIZE, NULL, SHAPETYPE_LOOKUP, UNDEFINED
from .dbf import DbaseFile
from .exceptions import CorruptedDataException, ShapefileIOException
from .header import ShapeHeader
from .helpers import fsdecode_if_pathlike, sibling_path
from .projection import ProjectionType
from .reader import Reader
from .shapes import (
    PointM_shapeTypes,
    PointZ_shapeTypes,
    Shape,
    _HasM_shapeTypes,
    _HasZ_shapeTypes,
)
from .types import PathT, RecordValue
from .writer import Writer, analyze

logger = logging.getLogger(__name__)


def _minmax(values: Iterable[float]) -> tuple[float, float] | None:
    values = list(values)
    if not values:
        return None
    return min(values), max(values)


def compute_bounds(
    shapeType: int, records: Sequence[Shape]
) -> Bounds | BoundsM | BoundsZ:
    """Returns the bounds enclosing all records, with the elevation and
    measure ranges the shape type calls for. Null records are ignored."""
    shapes = [s for s in records if s.shapeType != NULL]
    xs = [x for s in shapes for x, __ in s.points]  # type: ignore[attr-defined]
    ys = [y for s in shapes for __, y in s.points]  # type: ignore[attr-defined]
    xbox = _minmax(xs) or (0.0, 0.0)
    ybox = _minmax(ys) or (0.0, 0.0)
    bbox = (xbox[0], ybox[0], xbox[1], ybox[1])

    mbox: tuple[float | None, float | None] = (None, None)
    if shapeType in PointM_shapeTypes:
        mbox = _minmax(s.m for s in shapes) or mbox  # type: ignore[attr-defined]
    elif shapeType in _HasM_shapeTypes:
        mbox = (
            _minmax(m for s in shapes if s.m is not None for m in s.m)  # type: ignore[attr-defined]
            or mbox
        )

    if shapeType in PointZ_shapeTypes:
        zbox = _minmax(s.z for s in shapes) or (0.0, 0.0)  # type: ignore[attr-defined]
        return BoundsZ(*bbox, *zbox, *mbox)
    if shapeType in _HasZ_shapeTypes:
        zbox = _minmax(z for s in shapes for z in s.z) or (0.0, 0.0)  # type: ignore[attr-defined]
        return BoundsZ(*bbox, *zbox, *mbox)
    if shapeType in PointM_shapeTypes | _HasM_shapeTypes:
        return BoundsM(*bbox, *mbox)
    return Bounds(*bbox)


class Shapefile:
    """A shapefile dataset held in memory: geometry records, their header
    type and bounds, and the attribute table that goes with them.

    read() replaces all state from the files on disk. write() analyzes the
    state and, only if it is consistent, writes the .shx, .shp and (when
    fields are set) .dbf files.

    Text in the attribute table is encoded as UTF-8 if isUtf8 is set, as
    CP949 if isCp949 is set, and as ASCII otherwise. maxBufferSize caps the
    size of every single read or write call, for all three files.
    """

    def __init__(
        self,
        isUtf8: bool = False,
        isCp949: bool = False,
        *,
        maxBufferSize: int = MAX_BUFFER_SIZE,
        encodingErrors: str = "strict",
    ):
        if isUtf8 and isCp949:
            raise ValueError("Only one of isUtf8 and isCp949 can be set.")
        if maxBufferSize < 1:
            raise ValueError(
                f"maxBufferSize must be a positive number of bytes. Got: {maxBufferSize}"
            )
        self.isUtf8 = isUtf8
        self.isCp949 = isCp949
        self.maxBufferSize = maxBufferSize
        self.encodingErrors = encodingErrors
        self.dispose()

    def dispose(self) -> None:
        """Resets all state to an empty shapefile."""
        self.shapeType: int = UNDEFINED
        self.bounds: Bounds | BoundsM | BoundsZ | None = None
        self.records: list[Shape] = []
        self.offsets: list[ShapeOffset] = []
        self.fields: list[DbaseField] = []
        self.attributeRecords: list[list[RecordValue]] = []
        self.projection = ProjectionType.NONE
        self.headerSHP: ShapeHeader | None = None
        self.headerSHX: ShapeHeader | None = None

    @property
    def encoding(self) -> str:
        if self.isUtf8:
            return "utf-8"
        if self.isCp949:
            return "cp949"
        return "ascii"

    @property
    def attributeFields(self) -> list[DbaseField]:
        return self.fields

    @property
    def numRecords(self) -> int:
        return len(self.records)

    def read(self, path: PathT) -> None:
        """Reads a shapefile from the .shp path (or any path with the same
        stem). Raises FileNotFoundException if the .shp or .shx is missing;
        the .dbf and .prj files are optional."""
        reader = Reader(
            path,
            encoding=self.encoding,
            encodingErrors=self.encodingErrors,
            maxBufferSize=self.maxBufferSize,
            dbfMaxBufferSize=self.maxBufferSize,
        )
        self.dispose()
        try:
            reader.read()
        finally:
            # Partial results stay visible after a failure
            self.offsets = reader.offsets
            self.records = reader.shapes
            self.headerSHX = reader.headerSHX
            self.headerSHP = reader.headerSHP
        header = self.headerSHP
        if header is not None:
            self.shapeType = header.shapeType
            self.bounds = header.bounds
        if reader.attributes is not None:
            self.fields = reader.attributes.fields
            self.attributeRecords = reader.attributes.records
        self.projection = reader.projection
        logger.debug("Read %r", self)

    def analyze(self, path: PathT | None = None) -> list[ShapeOffset]:
        """Checks that the state can be written and computes the offset index.
        Character fields too narrow for their values are widened. Nothing is
        written to disk."""
        filePath = None if path is None else fsdecode_if_pathlike(path)
        self.offsets, __ = analyze(self.shapeType, self.bounds, self.records, filePath)
        if self.fields:
            if len(self.attributeRecords) != len(self.records):
                raise CorruptedDataException(
                    f"{len(self.attributeRecords)} attribute records do not "
                    f"match {len(self.records)} geometry records.",
                    filePath,
                )
            table = self.__table()
            table.analyze()
            self.fields = table.fields
        return self.offsets

    def write(self, path: PathT) -> None:
        """Writes the .shx, .shp and, if fields are set, .dbf files. Without
        fields an existing .dbf of the same name is removed.
        Nothing touches the disk unless analyze() succeeds."""
        target = fsdecode_if_pathlike(path)
        self.analyze(target)
        writer = Writer(
            target,
            self.shapeType,
            self.bounds,
            self.records,
            maxBufferSize=self.maxBufferSize,
        )
        self.headerSHP, self.headerSHX = writer.write()
        self.offsets = writer.offsets

        dbf = sibling_path(target, "dbf")
        try:
            if self.fields:
                table = self.__table()
                with open(dbf, "wb") as f:
                    table.write(f, dbf)
            else:
                # A table left from an earlier write would pair with the new records
                for stale in (dbf, sibling_path(target, "DBF")):
                    if os.path.isfile(stale):
                        logger.debug("Removing %s, there are no attribute fields", stale)
                        os.remove(stale)
        except OSError as err:
            raise ShapefileIOException("Error writing dbf file", dbf, str(err)) from err
        logger.debug("Wrote %r to %s", self, target)

    def write_complete(
        self,
        path: PathT,
        shapeType: int,
        records: Iterable[Shape],
        bounds: Bounds | BoundsM | BoundsZ | None = None,
        fields: Iterable[DbaseField] | None = None,
        attributeRecords: Iterable[Sequence[RecordValue]] | None = None,
    ) -> None:
        """Sets the whole state and writes it in one call. Bounds are
        computed from the records when not given."""
        self.set_header_type(shapeType)
        self.set_records(records)
        if bounds is None:
            self.update_bounds()
        else:
            self.set_header_bounds(bounds)
        self.set_attribute_fields(fields or [])
        self.set_attribute_records(attributeRecords or [])
        self.write(path)

    def set_header_type(self, shapeType: int) -> None:
        self.shapeType = shapeType

    def set_header_bounds(self, bounds: Bounds | BoundsM | BoundsZ) -> None:
        self.bounds = bounds

    def set_records(self, records: Iterable[Shape]) -> None:
        self.records = list(records)

    def set_attribute_fields(self, fields: Iterable[DbaseField]) -> None:
        self.fields = list(fields)

    def set_attribute_records(
        self, attributeRecords: Iterable[Sequence[RecordValue]]
    ) -> None:
        self.attributeRecords = [list(r) for r in attributeRecords]

    def update_bounds(self) -> Bounds | BoundsM | BoundsZ:
        """Sets the header bounds to enclose all records."""
        self.bounds = compute_bounds(self.shapeType, self.records)
        return self.bounds

    def __table(self) -> DbaseFile:
        return DbaseFile(
            self.fields,
            self.attributeRecords,
            encoding=self.encoding,
            encodingErrors=self.encodingErrors,
            maxBufferSize=self.maxBufferSize,
        )

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[tuple[Shape, list[RecordValue] | None]]:
        """Iterates over (shape, attributes) pairs. attributes is None when
        there is no attribute record for the shape."""
        for i, s in enumerate(self.records):
            attributes = self.attributeRecords[i] if i < len(self.attributeRecords) else None
            yield s, attributes

    def __repr__(self) -> str:
        shapeTypeName = SHAPETYPE_LOOKUP.get(self.shapeType, str(self.shapeType))
        return (
            f"Shapefile({shapeTypeName}, {len(self.records)} records, "
            f"{len(self.fields)} fields, encoding={self.encoding!r}, "
            f"projection={self.projection.label})"
        )

