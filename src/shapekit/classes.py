from __future__ import annotations

from typing import NamedTuple, Optional

from .constants import DBF_MAX_FIELD_NAME
from .exceptions import UnsupportedTypeException
from .types import FIELD_TYPE_ALIASES, BBox, FieldType, FieldTypeT, MBox, ZBox


class Bounds(NamedTuple):
    """A 2D bounding box (lower left, upper right)."""

    xmin: float
    ymin: float
    xmax: float
    ymax: float

    @property
    def bbox(self) -> BBox:
        return (self.xmin, self.ymin, self.xmax, self.ymax)

    @property
    def hasM(self) -> bool:
        return False

    def isZero(self) -> bool:
        return not any(self)


class BoundsM(NamedTuple):
    """A 2D bounding box with an optional measure range.
    A missing measure range is stored as None, never as a sentinel number."""

    xmin: float
    ymin: float
    xmax: float
    ymax: float
    mmin: Optional[float] = None
    mmax: Optional[float] = None

    @property
    def bbox(self) -> BBox:
        return (self.xmin, self.ymin, self.xmax, self.ymax)

    @property
    def hasM(self) -> bool:
        return self.mmin is not None and self.mmax is not None

    @property
    def mbox(self) -> MBox | None:
        if not self.hasM:
            return None
        return (self.mmin, self.mmax)  # type: ignore[return-value]

    def isZero(self) -> bool:
        return not any(self)


class BoundsZ(NamedTuple):
    """A bounding box with a mandatory elevation range and an optional
    measure range."""

    xmin: float
    ymin: float
    xmax: float
    ymax: float
    zmin: float
    zmax: float
    mmin: Optional[float] = None
    mmax: Optional[float] = None

    @property
    def bbox(self) -> BBox:
        return (self.xmin, self.ymin, self.xmax, self.ymax)

    @property
    def zbox(self) -> ZBox:
        return (self.zmin, self.zmax)

    @property
    def hasM(self) -> bool:
        return self.mmin is not None and self.mmax is not None

    @property
    def mbox(self) -> MBox | None:
        if not self.hasM:
            return None
        return (self.mmin, self.mmax)  # type: ignore[return-value]

    def isZero(self) -> bool:
        return not any(self)


class ShapeOffset(NamedTuple):
    """Position and content length, both in bytes, of one record in the .shp file.
    The n-th offset in the .shx index belongs to the n-th geometry record."""

    offset: int
    length: int


class DbaseField(NamedTuple):
    """A dbf field descriptor.

    id and flag are the descriptor bytes at offsets 20 and 23, which are
    kept so that a read-modify-write cycle reproduces them.
    """

    name: str
    field_type: FieldTypeT
    size: int
    decimal: int = 0
    id: int = 0
    flag: int = 0

    @classmethod
    def from_unchecked(
        cls,
        name: str,
        field_type: str | bytes | FieldTypeT = "C",
        size: int = 10,
        decimal: int = 0,
        id: int = 0,
        flag: int = 0,
    ) -> DbaseField:
        try:
            type_ = FIELD_TYPE_ALIASES[field_type]
        except KeyError:
            raise UnsupportedTypeException(
                f"field_type must be in {FieldType.__members__}. Got: {field_type=}. "
            )

        if type_ is FieldType.D:
            size = 8
            decimal = 0
        elif type_ is FieldType.L:
            size = 1
            decimal = 0
        elif type_ is FieldType.C:
            decimal = 0

        # Names longer than the descriptor allows are silently truncated
        return cls(
            name=str(name)[:DBF_MAX_FIELD_NAME],
            field_type=type_,
            size=int(size),
            decimal=int(decimal),
            id=int(id),
            flag=int(flag),
        )

    @classmethod
    def fieldC(cls, name: str, size: int = 10) -> DbaseField:
        """A character (text) field."""
        return cls.from_unchecked(name, FieldType.C, size)

    @classmethod
    def fieldD(cls, name: str) -> DbaseField:
        """A date field, stored as YYYYMMDD."""
        return cls.from_unchecked(name, FieldType.D)

    @classmethod
    def fieldL(cls, name: str) -> DbaseField:
        """A logical field, stored as T or F."""
        return cls.from_unchecked(name, FieldType.L)

    @classmethod
    def fieldN(cls, name: str, size: int = 10) -> DbaseField:
        """A numeric field holding integers."""
        return cls.from_unchecked(name, FieldType.N, size)

    @classmethod
    def fieldNF(cls, name: str, size: int = 20, decimal: int = 8) -> DbaseField:
        """A numeric field holding decimal numbers."""
        return cls.from_unchecked(name, FieldType.N, size, decimal)

    @classmethod
    def fieldF(cls, name: str, size: int = 20, decimal: int = 8) -> DbaseField:
        """A floating point field."""
        return cls.from_unchecked(name, FieldType.F, size, decimal)

    def __repr__(self) -> str:
        return f'DbaseField(name="{self.name}", field_type=FieldType.{self.field_type}, size={self.size}, decimal={self.decimal})'
