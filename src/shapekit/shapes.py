from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any, Union

from .classes import Bounds, BoundsM, BoundsZ
from .constants import (
    MULTIPATCH,
    MULTIPOINT,
    MULTIPOINTM,
    MULTIPOINTZ,
    NULL,
    POINT,
    POINTM,
    POINTZ,
    POLYGON,
    POLYGONM,
    POLYGONZ,
    POLYLINE,
    POLYLINEM,
    POLYLINEZ,
    SHAPETYPE_LOOKUP,
)
from .exceptions import CorruptedDataException
from .types import BBox, MBox, Point2D, ZBox

AnyBoundsT = Union[Bounds, BoundsM, BoundsZ]


def _xy(point: Any) -> Point2D:
    if isinstance(point, Point):
        return point.x, point.y
    return float(point[0]), float(point[1])


def _bbox_from_points(points: Sequence[Point2D]) -> BBox:
    if not points:
        return 0.0, 0.0, 0.0, 0.0
    xs = [p[0] for p in points]
    ys = [p[1] for p in points]
    return min(xs), min(ys), max(xs), max(ys)


def _range_from_values(values: Sequence[float]) -> tuple[float, float]:
    if not values:
        return 0.0, 0.0
    return min(values), max(values)


class Shape:
    """Base class of the geometry records stored in a .shp file.

    Every record carries the shape type it belongs to. Records are values:
    their coordinate arrays are tuples and two records compare equal when
    they have the same type and the same numbers, whatever their oid.
    """

    shapeType: int = NULL

    def __init__(self, oid: int | None = None):
        self.__oid: int = -1 if oid is None else oid

    @property
    def oid(self) -> int:
        """The index position of the shape in the original shapefile"""
        return self.__oid

    @property
    def shapeTypeName(self) -> str:
        return SHAPETYPE_LOOKUP[self.shapeType]

    def _values(self) -> tuple[Any, ...]:
        return ()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Shape):
            return NotImplemented
        return self.shapeType == other.shapeType and self._values() == other._values()

    def __hash__(self) -> int:
        return hash((self.shapeType, self._values()))

    def __repr__(self) -> str:
        return f"{self.__class__.__name__} #{self.__oid}"


class NullShape(Shape):
    shapeType = NULL


Point_shapeTypes = frozenset([POINT, POINTM, POINTZ])


class Point(Shape):
    shapeType = POINT

    def __init__(self, x: float, y: float, oid: int | None = None):
        Shape.__init__(self, oid=oid)
        self.x = float(x)
        self.y = float(y)

    @property
    def points(self) -> tuple[Point2D]:
        return ((self.x, self.y),)

    @property
    def bounds(self) -> Bounds:
        # A single point's bounding box collapses onto the point itself
        return Bounds(self.x, self.y, self.x, self.y)

    def _values(self) -> tuple[Any, ...]:
        return (self.x, self.y)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__} #{self.oid}: {self._values()}"


PointM_shapeTypes = frozenset([POINTM, POINTZ])


class PointM(Point):
    shapeType = POINTM

    def __init__(self, x: float, y: float, m: float, oid: int | None = None):
        Point.__init__(self, x, y, oid=oid)
        self.m = float(m)

    @property
    def bounds(self) -> BoundsM:
        return BoundsM(self.x, self.y, self.x, self.y, self.m, self.m)

    def _values(self) -> tuple[Any, ...]:
        return (self.x, self.y, self.m)


PointZ_shapeTypes = frozenset([POINTZ])


class PointZ(PointM):
    shapeType = POINTZ

    def __init__(
        self, x: float, y: float, z: float, m: float, oid: int | None = None
    ):
        PointM.__init__(self, x, y, m, oid=oid)
        self.z = float(z)

    @property
    def bounds(self) -> BoundsZ:
        return BoundsZ(self.x, self.y, self.x, self.y, self.z, self.z, self.m, self.m)

    def _values(self) -> tuple[Any, ...]:
        return (self.x, self.y, self.z, self.m)


_CanHaveBBox_shapeTypes = frozenset(
    [
        POLYLINE,
        POLYLINEM,
        POLYLINEZ,
        MULTIPOINT,
        MULTIPOINTM,
        MULTIPOINTZ,
        POLYGON,
        POLYGONM,
        POLYGONZ,
        MULTIPATCH,
    ]
)

_CanHaveParts_shapeTypes = frozenset(
    [
        POLYLINE,
        POLYLINEM,
        POLYLINEZ,
        POLYGON,
        POLYGONM,
        POLYGONZ,
        MULTIPATCH,
    ]
)

# Not a PointM or a PointZ
_HasM_shapeTypes = frozenset(
    [
        POLYLINEM,
        POLYLINEZ,
        POLYGONM,
        POLYGONZ,
        MULTIPOINTM,
        MULTIPOINTZ,
        MULTIPATCH,
    ]
)

# Not a PointZ
_HasZ_shapeTypes = frozenset(
    [
        POLYLINEZ,
        POLYGONZ,
        MULTIPOINTZ,
        MULTIPATCH,
    ]
)

MultiPatch_shapeTypes = frozenset([MULTIPATCH])


class _CanHaveBBox(Shape):
    """Shared state of every shape that is not a single point: a bounding
    box and an array of points. Which of the optional arrays (parts,
    partTypes, z, m) a record carries is decided by its shape type."""

    points: tuple[Point2D, ...]
    bounds: AnyBoundsT

    def __init__(
        self,
        points: Iterable[Any] = (),
        bounds: AnyBoundsT | None = None,
        oid: int | None = None,
        *,
        parts: Iterable[int] | None = None,
        partTypes: Iterable[int] | None = None,
        z: Iterable[float] | None = None,
        m: Iterable[float] | None = None,
    ):
        Shape.__init__(self, oid=oid)
        self.points = tuple(_xy(p) for p in points)
        shapeType = self.shapeType

        if shapeType in _CanHaveParts_shapeTypes:
            if parts is None:
                parts = (0,) if self.points else ()
            self.parts: tuple[int, ...] = tuple(int(i) for i in parts)
            self._check_parts()

        if shapeType in MultiPatch_shapeTypes:
            self.partTypes: tuple[int, ...] = tuple(int(t) for t in partTypes or ())
            if len(self.partTypes) != len(self.parts):
                raise CorruptedDataException(
                    f"{self.__class__.__name__} needs one part type per part. "
                    f"Got {len(self.partTypes)} part types for {len(self.parts)} parts."
                )

        if shapeType in _HasZ_shapeTypes:
            if z is None:
                raise CorruptedDataException(
                    f"{self.__class__.__name__} requires elevation (z) values."
                )
            self.z: tuple[float, ...] = self._checked_array(z, "elevation")

        if shapeType in _HasM_shapeTypes:
            self.m: tuple[float, ...] | None = (
                None if m is None else self._checked_array(m, "measure")
            )

        self.bounds = self._resolve_bounds(bounds)

    def _checked_array(self, values: Iterable[float], label: str) -> tuple[float, ...]:
        array = tuple(float(v) for v in values)
        if len(array) != len(self.points):
            raise CorruptedDataException(
                f"{self.__class__.__name__} has {len(self.points)} points "
                f"but {len(array)} {label} values."
            )
        return array

    def _check_parts(self) -> None:
        parts = self.parts
        if not parts:
            return
        if parts[0] != 0:
            raise CorruptedDataException(
                f"The first part of a {self.__class__.__name__} must start at point 0. Got: {parts}"
            )
        for previous, current in zip(parts, parts[1:]):
            if current < previous:
                raise CorruptedDataException(
                    f"Part indexes of a {self.__class__.__name__} must be ascending. Got: {parts}"
                )
        if self.points and parts[-1] >= len(self.points):
            raise CorruptedDataException(
                f"Part index {parts[-1]} is out of range for {len(self.points)} points."
            )

    def _resolve_bounds(self, bounds: AnyBoundsT | None) -> AnyBoundsT:
        """Keeps the parts of a supplied bounding box that apply to this shape
        type and computes the missing ones from the coordinate arrays."""
        bbox = bounds.bbox if bounds is not None else _bbox_from_points(self.points)
        shapeType = self.shapeType

        mbox: MBox | None = None
        if shapeType in _HasM_shapeTypes and self.m is not None:
            if bounds is not None and bounds.hasM:
                mbox = bounds.mbox
            else:
                mbox = _range_from_values(self.m)
        mmin, mmax = mbox if mbox is not None else (None, None)

        if shapeType in _HasZ_shapeTypes:
            if isinstance(bounds, BoundsZ):
                zbox: ZBox = bounds.zbox
            else:
                zbox = _range_from_values(self.z)
            return BoundsZ(*bbox, *zbox, mmin, mmax)

        if shapeType in _HasM_shapeTypes:
            return BoundsM(*bbox, mmin, mmax)

        return Bounds(*bbox)

    @property
    def numPoints(self) -> int:
        return len(self.points)

    @property
    def bbox(self) -> BBox:
        return self.bounds.bbox

    def _values(self) -> tuple[Any, ...]:
        return (
            self.bounds,
            getattr(self, "parts", None),
            getattr(self, "partTypes", None),
            self.points,
            getattr(self, "z", None),
            getattr(self, "m", None),
        )

    def __repr__(self) -> str:
        return f"{self.__class__.__name__} #{self.oid}: {self.numPoints} points"


class _CanHaveParts(_CanHaveBBox):
    parts: tuple[int, ...]

    @property
    def numParts(self) -> int:
        return len(self.parts)

    def iter_parts(self) -> Iterable[tuple[Point2D, ...]]:
        """Yields the points of each part in turn."""
        ends = self.parts[1:] + (len(self.points),)
        for start, end in zip(self.parts, ends):
            yield self.points[start:end]


class _HasM(_CanHaveBBox):
    m: tuple[float, ...] | None

    @property
    def hasM(self) -> bool:
        return self.m is not None

    @property
    def mbox(self) -> MBox | None:
        return self.bounds.mbox  # type: ignore[union-attr]


class _HasZ(_CanHaveBBox):
    z: tuple[float, ...]

    @property
    def zbox(self) -> ZBox:
        return self.bounds.zbox  # type: ignore[union-attr]


Polyline_shapeTypes = frozenset([POLYLINE, POLYLINEM, POLYLINEZ])


class Polyline(_CanHaveParts):
    shapeType = POLYLINE

    def __init__(
        self,
        points: Iterable[Any] = (),
        parts: Iterable[int] | None = None,
        bounds: AnyBoundsT | None = None,
        oid: int | None = None,
    ):
        _CanHaveBBox.__init__(self, points, bounds, oid, parts=parts)


Polygon_shapeTypes = frozenset([POLYGON, POLYGONM, POLYGONZ])


class Polygon(_CanHaveParts):
    """Same layout as a Polyline. Ring closure and winding order are left
    to the caller."""

    shapeType = POLYGON

    def __init__(
        self,
        points: Iterable[Any] = (),
        parts: Iterable[int] | None = None,
        bounds: AnyBoundsT | None = None,
        oid: int | None = None,
    ):
        _CanHaveBBox.__init__(self, points, bounds, oid, parts=parts)


MultiPoint_shapeTypes = frozenset([MULTIPOINT, MULTIPOINTM, MULTIPOINTZ])


class MultiPoint(_CanHaveBBox):
    shapeType = MULTIPOINT

    def __init__(
        self,
        points: Iterable[Any] = (),
        bounds: AnyBoundsT | None = None,
        oid: int | None = None,
    ):
        _CanHaveBBox.__init__(self, points, bounds, oid)


class PolylineM(Polyline, _HasM):
    shapeType = POLYLINEM

    def __init__(
        self,
        points: Iterable[Any] = (),
        parts: Iterable[int] | None = None,
        m: Iterable[float] | None = None,
        bounds: AnyBoundsT | None = None,
        oid: int | None = None,
    ):
        _CanHaveBBox.__init__(self, points, bounds, oid, parts=parts, m=m)


class PolygonM(Polygon, _HasM):
    shapeType = POLYGONM

    def __init__(
        self,
        points: Iterable[Any] = (),
        parts: Iterable[int] | None = None,
        m: Iterable[float] | None = None,
        bounds: AnyBoundsT | None = None,
        oid: int | None = None,
    ):
        _CanHaveBBox.__init__(self, points, bounds, oid, parts=parts, m=m)


class MultiPointM(MultiPoint, _HasM):
    shapeType = MULTIPOINTM

    def __init__(
        self,
        points: Iterable[Any] = (),
        m: Iterable[float] | None = None,
        bounds: AnyBoundsT | None = None,
        oid: int | None = None,
    ):
        _CanHaveBBox.__init__(self, points, bounds, oid, m=m)


class PolylineZ(PolylineM, _HasZ):
    shapeType = POLYLINEZ

    def __init__(
        self,
        points: Iterable[Any],
        z: Iterable[float],
        parts: Iterable[int] | None = None,
        m: Iterable[float] | None = None,
        bounds: AnyBoundsT | None = None,
        oid: int | None = None,
    ):
        _CanHaveBBox.__init__(self, points, bounds, oid, parts=parts, z=z, m=m)


class PolygonZ(PolygonM, _HasZ):
    shapeType = POLYGONZ

    def __init__(
        self,
        points: Iterable[Any],
        z: Iterable[float],
        parts: Iterable[int] | None = None,
        m: Iterable[float] | None = None,
        bounds: AnyBoundsT | None = None,
        oid: int | None = None,
    ):
        _CanHaveBBox.__init__(self, points, bounds, oid, parts=parts, z=z, m=m)


class MultiPointZ(MultiPointM, _HasZ):
    shapeType = MULTIPOINTZ

    def __init__(
        self,
        points: Iterable[Any],
        z: Iterable[float],
        m: Iterable[float] | None = None,
        bounds: AnyBoundsT | None = None,
        oid: int | None = None,
    ):
        _CanHaveBBox.__init__(self, points, bounds, oid, z=z, m=m)


class MultiPatch(_HasM, _HasZ, _CanHaveParts):
    """A set of 3D surface patches. partTypes holds one of the PARTTYPE_LOOKUP
    codes per part; the codec stores them without interpreting them."""

    shapeType = MULTIPATCH

    def __init__(
        self,
        points: Iterable[Any],
        z: Iterable[float],
        parts: Iterable[int] | None = None,
        partTypes: Iterable[int] | None = None,
        m: Iterable[float] | None = None,
        bounds: AnyBoundsT | None = None,
        oid: int | None = None,
    ):
        _CanHaveBBox.__init__(
            self, points, bounds, oid, parts=parts, partTypes=partTypes, z=z, m=m
        )


SHAPE_CLASS_FROM_SHAPETYPE: dict[int, type[Shape]] = {
    NULL: NullShape,
    POINT: Point,
    POLYLINE: Polyline,
    POLYGON: Polygon,
    MULTIPOINT: MultiPoint,
    POINTZ: PointZ,
    POLYLINEZ: PolylineZ,
    POLYGONZ: PolygonZ,
    MULTIPOINTZ: MultiPointZ,
    POINTM: PointM,
    POLYLINEM: PolylineM,
    POLYGONM: PolygonM,
    MULTIPOINTM: MultiPointM,
    MULTIPATCH: MultiPatch,
}
