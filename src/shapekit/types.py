from __future__ import annotations

from datetime import date
from os import PathLike
from typing import (
    Any,
    Final,
    Literal,
    Protocol,
    TypeVar,
    Union,
)

## Custom type variables

T = TypeVar("T")
Point2D = tuple[float, float]

BBox = tuple[float, float, float, float]
MBox = tuple[float, float]
ZBox = tuple[float, float]


class WriteableBinStream(Protocol):
    def write(self, b: bytes) -> int: ...


class ReadableBinStream(Protocol):
    def read(self, size: int = -1) -> bytes: ...


# File name or path-like object
PathT = Union[str, PathLike[Any]]

FieldTypeT = Literal["C", "D", "F", "L", "N"]


# https://en.wikipedia.org/wiki/.dbf#Database_records
class FieldType:
    """A bare bones 'enum' of the dBASE field types this codec handles."""

    C: Final = "C"  # "Character"  # (str)
    D: Final = "D"  # "Date"
    F: Final = "F"  # "Floating point"
    L: Final = "L"  # "Logical"  # (bool)
    N: Final = "N"  # "Numeric"  # (int, or float with decimals)
    __members__: set[FieldTypeT] = {
        "C",
        "D",
        "F",
        "L",
        "N",
    }


FIELD_TYPE_ALIASES: dict[str | bytes, FieldTypeT] = {}
for c in FieldType.__members__:
    FIELD_TYPE_ALIASES[c.upper()] = c
    FIELD_TYPE_ALIASES[c.lower()] = c
    FIELD_TYPE_ALIASES[c.encode("ascii").lower()] = c
    FIELD_TYPE_ALIASES[c.encode("ascii").upper()] = c


RecordValueNotDate = Union[bool, int, float, str]

# A possible value in a dbf record, i.e. L, N, F, C, or D types
RecordValue = Union[RecordValueNotDate, date]
