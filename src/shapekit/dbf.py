"""
dBASE III+ attribute tables (.dbf) as used by shapefiles.

Xbase layout follows the ActiveState Python Cookbook Recipe 362715 by
Raymond Hettinger: a 32 byte table header, one 32 byte descriptor per
field, a 0x0D terminator, fixed-width records each led by a deletion
flag byte, and a trailing 0x1A end-of-file marker.
"""

from __future__ import annotations

import logging
import re
import time
from collections.abc import Iterable, Sequence
from datetime import date
from struct import Struct, error

from .classes import DbaseField
from .constants import (
    DBF_ACTIVE,
    DBF_DELETED,
    DBF_EOF,
    DBF_FIELD_LENGTH,
    DBF_HEADER_LENGTH,
    DBF_MAX_BUFFER_SIZE,
    DBF_MAX_FIELD_LENGTH,
    DBF_MAX_FIELD_NAME,
    DBF_NO_MEMO,
    DBF_TERMINATOR,
)
from .exceptions import (
    CorruptedDataException,
    InvalidFormatException,
    UnsupportedTypeException,
)
from .helpers import plan_chunks
from .types import (
    FIELD_TYPE_ALIASES,
    FieldType,
    ReadableBinStream,
    RecordValue,
    WriteableBinStream,
)

logger = logging.getLogger(__name__)

# Value decoded from a blank or all zero date field
DATE_NULL = date.min

# Version, last update (YY MM DD), record count, header length, record length
_table_header = Struct("<BBBBLHH20x")
# Name, type, length, decimal count, work area id, flag
_field_descriptor = Struct("<11sc4xBB2xB2xB8x")

_not_numeric = re.compile(r"[^\d.\-]")


def _check_value(field: DbaseField, value: RecordValue) -> bool:
    field_type = field.field_type
    if field_type == FieldType.C:
        return isinstance(value, str)
    if field_type == FieldType.D:
        return isinstance(value, date)
    if field_type == FieldType.L:
        return isinstance(value, bool)
    if isinstance(value, bool):
        return False
    if field_type == FieldType.N:
        return isinstance(value, int) or (isinstance(value, float) and field.decimal > 0)
    # F
    return isinstance(value, (int, float))


def _format_number(field: DbaseField, value: float) -> str:
    if field.field_type == FieldType.F or field.decimal:
        return format(float(value), f".{field.decimal}f")
    return format(int(value), "d")


def validate_records(
    fields: Sequence[DbaseField], records: Iterable[Sequence[RecordValue]]
) -> None:
    """Checks that every record has one value per field, of the type its
    field stores. Raises CorruptedDataException on the first offender."""
    for i, record in enumerate(records):
        if len(record) != len(fields):
            raise CorruptedDataException(
                f"Attribute record {i} has {len(record)} values for {len(fields)} fields."
            )
        for field, value in zip(fields, record):
            if not _check_value(field, value):
                raise CorruptedDataException(
                    f"Attribute record {i}: {value!r} cannot be stored in "
                    f"field '{field.name}' of type {field.field_type}"
                    f"{f' with {field.decimal} decimals' if field.decimal else ''}."
                )
            if field.field_type in (FieldType.N, FieldType.F):
                width = len(_format_number(field, value))  # type: ignore[arg-type]
                if width > field.size:
                    raise CorruptedDataException(
                        f"Attribute record {i}: {value!r} needs {width} characters "
                        f"but field '{field.name}' holds {field.size}."
                    )


def _fit_name(name: str, encoding: str, encodingErrors: str) -> str:
    """Drops trailing characters until the encoded name fits its 11 bytes."""
    encoded = name.encode(encoding, encodingErrors)
    while len(encoded) > DBF_MAX_FIELD_NAME:
        name = name[:-1]
        encoded = name.encode(encoding, encodingErrors)
    return name


def check_fields(
    fields: Sequence[DbaseField], encoding: str, encodingErrors: str = "strict"
) -> list[DbaseField]:
    """Checks that every field descriptor can be packed, and returns the
    fields with names shortened to what is stored on disk.

    >>> check_fields([DbaseField.fieldC("도시인구", 10)], "utf-8")
    [DbaseField(name="도시인", field_type=FieldType.C, size=10, decimal=0)]
    """
    checked = []
    for field in fields:
        try:
            name = _fit_name(field.name, encoding, encodingErrors)
        except UnicodeError as err:
            raise CorruptedDataException(
                f"Field name {field.name!r} cannot be encoded as {encoding}.",
                details=str(err),
            ) from err
        if not 1 <= field.size <= DBF_MAX_FIELD_LENGTH:
            raise CorruptedDataException(
                f"Field '{field.name}' has size {field.size}; a dbf field holds "
                f"1 to {DBF_MAX_FIELD_LENGTH} bytes."
            )
        for label, value in (("decimal", field.decimal), ("id", field.id), ("flag", field.flag)):
            if not 0 <= value <= 255:
                raise CorruptedDataException(
                    f"Field '{field.name}' has {label} {value}, which does not fit in a byte."
                )
        if name != field.name:
            logger.debug("Field name '%s' is stored as '%s'", field.name, name)
            field = field._replace(name=name)
        checked.append(field)
    return checked


def widen_fields(
    fields: Sequence[DbaseField],
    records: Iterable[Sequence[RecordValue]],
    encoding: str,
    encodingErrors: str = "strict",
) -> list[DbaseField]:
    """Returns the field list with each character field made wide enough for
    its longest encoded value plus one byte. Fields that already fit, and
    fields of other types, are returned unchanged.

    >>> widen_fields([DbaseField.fieldC("CITY", 4)], [["Seoul"]], "ascii")
    [DbaseField(name="CITY", field_type=FieldType.C, size=6, decimal=0)]
    """
    widths = [0] * len(fields)
    for i, record in enumerate(records):
        for j, (field, value) in enumerate(zip(fields, record)):
            if field.field_type != FieldType.C:
                continue
            try:
                width = len(value.encode(encoding, encodingErrors))  # type: ignore[union-attr]
            except UnicodeError as err:
                raise CorruptedDataException(
                    f"Attribute record {i}: {value!r} cannot be encoded as {encoding}.",
                    details=str(err),
                ) from err
            if width > widths[j]:
                widths[j] = width

    widened = []
    for field, width in zip(fields, widths):
        if field.field_type == FieldType.C and width >= field.size:
            size = width + 1
            if size > DBF_MAX_FIELD_LENGTH:
                raise CorruptedDataException(
                    f"Field '{field.name}' would need {size} bytes, "
                    f"more than the {DBF_MAX_FIELD_LENGTH} a dbf field can hold."
                )
            logger.debug("Widening field '%s' from %d to %d bytes", field.name, field.size, size)
            field = field._replace(size=size)
        widened.append(field)
    return widened


def _encode_value(
    field: DbaseField, value: RecordValue, encoding: str, encodingErrors: str
) -> bytes:
    name, field_type, size, decimal = field[:4]
    if field_type == FieldType.C:
        encoded = value.encode(encoding, encodingErrors)  # type: ignore[union-attr]
        if len(encoded) > size:
            raise CorruptedDataException(
                f"{value!r} needs {len(encoded)} bytes but field '{name}' holds {size}."
            )
        return encoded.ljust(size)

    if field_type == FieldType.D:
        # date: 8 bytes - date stored as a string in the format YYYYMMDD.
        if value == DATE_NULL:
            return b"0" * 8
        return f"{value.year:04d}{value.month:02d}{value.day:02d}".encode("ascii")  # type: ignore[union-attr]

    if field_type == FieldType.L:
        return b"T" if value else b"F"

    # numeric or float: number stored as a string, right justified, and padded with blanks to the width of the field.
    str_val = _format_number(field, value)  # type: ignore[arg-type]
    if len(str_val) > size:
        raise CorruptedDataException(
            f"{value!r} needs {len(str_val)} characters but field '{name}' holds {size}."
        )
    return str_val.rjust(size).encode("ascii")


def _decode_value(
    field: DbaseField, value: bytes, encoding: str, encodingErrors: str
) -> RecordValue:
    name, field_type, size, decimal = field[:4]

    if field_type == FieldType.N:
        text = _not_numeric.sub("", value.decode("ascii", "replace"))
        if "-" in text[1:]:
            raise CorruptedDataException(
                f"Malformed number {value!r} in field '{name}': misplaced minus sign."
            )
        try:
            if decimal:
                return float(text) if text.strip("-.") else 0.0
            if not text.strip("-."):
                return 0
            try:
                # Large ints would lose precision going through float
                return int(text)
            except ValueError:
                return int(float(text))
        except ValueError as err:
            raise CorruptedDataException(
                f"Malformed number {value!r} in field '{name}'."
            ) from err

    if field_type == FieldType.F:
        # QGIS NULL is all '*' chars
        text = value.replace(b"\x00", b"").replace(b"*", b"").strip()
        if not text:
            return 0.0
        try:
            return float(text)
        except ValueError as err:
            raise CorruptedDataException(
                f"Malformed number {value!r} in field '{name}'."
            ) from err

    if field_type == FieldType.D:
        if not value.replace(b"\x00", b"").replace(b" ", b"").replace(b"0", b""):
            # all NULs, all spaces or all zeros
            return DATE_NULL
        try:
            y, m, d = int(value[:4]), int(value[4:6]), int(value[6:8])
            return date(y, m, d)
        except ValueError as err:
            raise CorruptedDataException(
                f"Malformed date {value!r} in field '{name}'."
            ) from err

    if field_type == FieldType.L:
        return value[:1] in (b"T", b"t", b"Y", b"y")

    try:
        text = value.decode(encoding, encodingErrors)
    except UnicodeError as err:
        raise CorruptedDataException(
            f"Field '{name}' holds text that is not valid {encoding}.",
            details=str(err),
        ) from err
    return text.replace("\x00", "").strip()


class DbaseFile:
    """The fields and records of a .dbf attribute table.

    records holds one list of values per row, in file order, matching
    fields one to one. Rows flagged as deleted on disk are kept in place
    so that row n still belongs to geometry n.
    """

    def __init__(
        self,
        fields: Iterable[DbaseField] | None = None,
        records: Iterable[Sequence[RecordValue]] | None = None,
        *,
        encoding: str = "ascii",
        encodingErrors: str = "strict",
        maxBufferSize: int = DBF_MAX_BUFFER_SIZE,
    ):
        self.fields: list[DbaseField] = list(fields or [])
        self.records: list[list[RecordValue]] = [list(r) for r in records or []]
        self.encoding = encoding
        self.encodingErrors = encodingErrors
        self.maxBufferSize = maxBufferSize
        self.lastModified: date | None = None

    def __len__(self) -> int:
        return len(self.records)

    @property
    def numRecords(self) -> int:
        return len(self.records)

    @property
    def headerLength(self) -> int:
        return DBF_HEADER_LENGTH + DBF_FIELD_LENGTH * len(self.fields) + 1

    @property
    def recordLength(self) -> int:
        # First byte of each record is the deletion flag
        return 1 + sum(field.size for field in self.fields)

    def read(self, dbf: ReadableBinStream, filePath: str | None = None) -> None:
        """Replaces the fields and records with those of a .dbf stream."""
        header = dbf.read(DBF_HEADER_LENGTH)
        if len(header) < DBF_HEADER_LENGTH:
            raise InvalidFormatException("dbf header is truncated.", filePath)
        version, year, month, day, numRecords, headerLength, recordLength = (
            _table_header.unpack(header)
        )
        if version != DBF_NO_MEMO:
            raise InvalidFormatException(
                f"Unsupported dbf version byte 0x{version:02x}, expected 0x{DBF_NO_MEMO:02x}.",
                filePath,
            )
        try:
            self.lastModified = date(1900 + year, month, day)
        except ValueError:
            self.lastModified = None

        fields = []
        numFields = (headerLength - DBF_HEADER_LENGTH - 1) // DBF_FIELD_LENGTH
        for __field in range(numFields):
            descriptor = dbf.read(DBF_FIELD_LENGTH)
            if len(descriptor) < DBF_FIELD_LENGTH:
                raise InvalidFormatException("dbf field descriptors are truncated.", filePath)
            encoded_name, encoded_type_char, size, decimal, id_, flag = (
                _field_descriptor.unpack(descriptor)
            )
            encoded_name = encoded_name.split(b"\x00")[0].strip()
            try:
                name = encoded_name.decode(self.encoding, self.encodingErrors)
            except UnicodeError as err:
                raise InvalidFormatException(
                    f"Field name {encoded_name!r} is not valid {self.encoding}.", filePath
                ) from err
            try:
                field_type = FIELD_TYPE_ALIASES[encoded_type_char]
            except KeyError:
                raise UnsupportedTypeException(
                    f"Unsupported dbf field type {encoded_type_char!r} for field '{name}'.",
                    filePath,
                )
            fields.append(DbaseField(name, field_type, size, decimal, id_, flag))

        terminator = dbf.read(1)
        if terminator != DBF_TERMINATOR:
            raise InvalidFormatException(
                "dbf header lacks expected terminator. (likely corrupt?)", filePath
            )
        # Some writers pad the header beyond the terminator
        padding = headerLength - (DBF_HEADER_LENGTH + DBF_FIELD_LENGTH * numFields + 1)
        if padding > 0:
            dbf.read(padding)

        self.fields = fields
        if recordLength < self.recordLength:
            raise CorruptedDataException(
                f"dbf record length {recordLength} is shorter than its fields ({self.recordLength}).",
                filePath,
            )

        positions = []
        start = 1
        for field in fields:
            positions.append((field, start, start + field.size))
            start += field.size

        records: list[list[RecordValue]] = []
        chunks = plan_chunks([recordLength] * numRecords, self.maxBufferSize)
        for first, stop in chunks:
            expected = recordLength * (stop - first)
            data = dbf.read(expected)
            if len(data) < expected:
                raise CorruptedDataException(
                    f"dbf declares {numRecords} records but its data ends after "
                    f"{first + len(data) // recordLength}.",
                    filePath,
                )
            for row in range(stop - first):
                base = row * recordLength
                if data[base : base + 1] == DBF_DELETED:
                    logger.debug("Record %d is flagged as deleted", first + row)
                records.append(
                    [
                        _decode_value(
                            field,
                            data[base + a : base + b],
                            self.encoding,
                            self.encodingErrors,
                        )
                        for field, a, b in positions
                    ]
                )
        self.records = records
        logger.debug(
            "Read %d fields and %d records in %d chunks from %s",
            len(fields),
            len(records),
            len(chunks),
            filePath,
        )

    def analyze(self) -> None:
        """Validates the field descriptors and the records against them, then
        widens character fields too narrow for their values. Writes nothing."""
        fields = check_fields(self.fields, self.encoding, self.encodingErrors)
        validate_records(fields, self.records)
        self.fields = widen_fields(
            fields, self.records, self.encoding, self.encodingErrors
        )

    def write(self, dbf: WriteableBinStream, filePath: str | None = None) -> None:
        """Analyzes the table, then writes header, field descriptors, records
        and the end-of-file marker."""
        self.analyze()
        # Ensure has at least one field
        if not self.fields:
            raise InvalidFormatException(
                "Shapefile dbf file must contain at least one field.", filePath
            )
        headerLength = self.headerLength
        if headerLength >= 65535:
            raise InvalidFormatException(
                "Shapefile dbf header length exceeds maximum length.", filePath
            )
        recordLength = self.recordLength
        if recordLength >= 65535:
            raise InvalidFormatException(
                "Shapefile dbf record length exceeds maximum length.", filePath
            )

        year, month, day = time.localtime()[:3]
        try:
            dbf.write(
                _table_header.pack(
                    DBF_NO_MEMO,
                    year - 1900,
                    month,
                    day,
                    self.numRecords,
                    headerLength,
                    recordLength,
                )
            )
            for field in self.fields:
                encoded_name = field.name.encode(self.encoding, self.encodingErrors)
                dbf.write(
                    _field_descriptor.pack(
                        encoded_name,
                        field.field_type.encode("ascii"),
                        field.size,
                        field.decimal,
                        field.id,
                        field.flag,
                    )
                )
        except (error, UnicodeError) as err:
            raise CorruptedDataException(
                "Failed to pack the dbf header.", filePath, str(err)
            ) from err
        dbf.write(DBF_TERMINATOR)

        chunks = plan_chunks([recordLength] * self.numRecords, self.maxBufferSize)
        for first, stop in chunks:
            buf = bytearray()
            for record in self.records[first:stop]:
                # first byte of the record is deletion flag, always disabled
                buf += DBF_ACTIVE
                for field, value in zip(self.fields, record):
                    buf += _encode_value(field, value, self.encoding, self.encodingErrors)
            dbf.write(buf)
        dbf.write(DBF_EOF)
        logger.debug(
            "Wrote %d records in %d chunks to %s", self.numRecords, len(chunks), filePath
        )

    def __repr__(self) -> str:
        return f"DbaseFile({len(self.fields)} fields, {self.numRecords} records, encoding={self.encoding!r})"
