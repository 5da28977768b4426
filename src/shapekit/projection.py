from __future__ import annotations

import logging
import os
import re
from enum import Enum

from .exceptions import ShapefileIOException
from .helpers import fsdecode_if_pathlike
from .types import PathT

logger = logging.getLogger(__name__)

EPSG_AUTHORITY = re.compile(r'AUTHORITY\["EPSG","(\d+)"\]')


class ProjectionType(Enum):
    """Coordinate systems recognised in a .prj file, by EPSG code."""

    WGS84 = ("WGS84", "4326")
    CS2000_ZONE5 = ("CS2000_zone5", "2176")
    CS2000_ZONE6 = ("CS2000_zone6", "2177")
    CS2000_ZONE7 = ("CS2000_zone7", "2178")
    CS2000_ZONE8 = ("CS2000_zone8", "2179")
    NONE = ("None", "")

    def __init__(self, label: str, epsgCode: str):
        self.label = label
        self.epsgCode = epsgCode

    @classmethod
    def from_epsg(cls, epsgCode: str | int | None) -> ProjectionType:
        """Returns the projection with the given EPSG code, or NONE."""
        if epsgCode is None:
            return cls.NONE
        code = str(epsgCode)
        for projection in cls:
            if projection.epsgCode and projection.epsgCode == code:
                return projection
        logger.debug("EPSG code %s is not a recognised projection", code)
        return cls.NONE


def parse_projection(wkt: str) -> ProjectionType:
    """Finds the projection of a WKT text. The last EPSG authority in the text
    belongs to the outermost coordinate system, so that one is used."""
    matches = EPSG_AUTHORITY.findall(wkt)
    return ProjectionType.from_epsg(matches[-1] if matches else None)


def read_projection(prjFile: PathT) -> ProjectionType:
    """Reads the projection of a .prj file. A missing file means NONE; a file
    that exists but cannot be read raises ShapefileIOException."""
    path = fsdecode_if_pathlike(prjFile)
    if not os.path.exists(path):
        return ProjectionType.NONE
    try:
        with open(path, encoding="utf-8", errors="replace") as prj:
            wkt = prj.read()
    except OSError as err:
        raise ShapefileIOException(
            "Error opening/reading PRJ file", path, str(err)
        ) from err
    return parse_projection(wkt)
