"""
This module tests reading and writing whole shapefiles.
"""

import datetime
import io
import os
import struct

# third party imports
import pytest

# our imports
import shapekit
from shapekit import (
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
    Bounds,
    BoundsM,
    BoundsZ,
    CorruptedDataException,
    DbaseField,
    FileNotFoundException,
    InvalidBoundsException,
    InvalidHeaderException,
    MultiPatch,
    MultiPoint,
    MultiPointM,
    MultiPointZ,
    NullShape,
    Point,
    PointM,
    PointZ,
    Polygon,
    PolygonM,
    PolygonZ,
    Polyline,
    PolylineM,
    PolylineZ,
    ProjectionType,
    ShapeHeader,
    Shapefile,
    Writer,
    content_length,
)
from shapekit.constants import INNER_RING, OUTER_RING

TRIANGLE = [(0, 0), (1, 0), (1, 1)]
RING = [(0, 0), (0, 1), (1, 1), (1, 0), (0, 0)]

records_by_type = {
    POINT: [Point(1, 2), Point(-3.5, 4.25), NullShape()],
    POINTM: [PointM(1, 2, 3), PointM(4, 5, -6)],
    POINTZ: [PointZ(1, 2, 3, 4), PointZ(-1, -2, -3, -4)],
    POLYLINE: [Polyline([(0, 0), (1, 1), (2, 0), (5, 5), (6, 6)], parts=[0, 3])],
    POLYGON: [Polygon(RING), NullShape()],
    MULTIPOINT: [MultiPoint([(1, 1), (2, 2)]), MultiPoint([(-1, 3)])],
    POLYLINEM: [PolylineM(TRIANGLE, m=[1, 2, 3]), PolylineM(TRIANGLE)],
    POLYGONM: [PolygonM(RING, m=[0, 1, 2, 3, 0])],
    MULTIPOINTM: [MultiPointM([(1, 2)]), MultiPointM([(3, 4), (5, 6)], m=[7, 8])],
    POLYLINEZ: [PolylineZ(TRIANGLE, z=[1, 2, 3], m=[4, 5, 6])],
    POLYGONZ: [PolygonZ(RING, z=[1, 1, 2, 2, 1]), NullShape()],
    MULTIPOINTZ: [
        MultiPointZ([(1, 2), (3, 4)], z=[5, 6]),
        MultiPointZ([(7, 8)], z=[9], m=[10]),
    ],
    MULTIPATCH: [
        MultiPatch(
            [(0, 0), (1, 0), (1, 1), (0, 1)],
            z=[0, 0, 1, 1],
            parts=[0, 2],
            partTypes=[OUTER_RING, INNER_RING],
        )
    ],
}


def shapefile_bytes(path):
    """Returns the bytes of the .shp, .shx and .dbf files of a shapefile."""
    base = os.path.splitext(path)[0]
    contents = []
    for ext in ("shp", "shx", "dbf"):
        with open(f"{base}.{ext}", "rb") as f:
            contents.append(f.read())
    return contents


def test_encoding_flags_exclusive():
    """
    Assert that a shapefile cannot be both UTF-8 and CP949.
    """
    with pytest.raises(ValueError):
        Shapefile(isUtf8=True, isCp949=True)


def test_buffer_size_positive():
    """
    Assert that the buffer cap must be at least one byte.
    """
    with pytest.raises(ValueError):
        Shapefile(maxBufferSize=0)


@pytest.mark.parametrize(
    "flags,expected",
    [
        ({}, "ascii"),
        ({"isUtf8": True}, "utf-8"),
        ({"isCp949": True}, "cp949"),
    ],
)
def test_encoding(flags, expected):
    """
    Assert which text encoding the flags select.
    """
    assert Shapefile(**flags).encoding == expected


@pytest.mark.parametrize("shapeType", sorted(records_by_type))
def test_round_trip(shapeType, tmpdir):
    """
    Assert that every geometry type reads back exactly as written,
    including null records and records with and without measures.
    """
    filename = tmpdir.join("test").strpath
    records = records_by_type[shapeType]
    sf = Shapefile()
    sf.write_complete(filename, shapeType, records)

    decoded = Shapefile()
    decoded.read(filename + ".shp")
    assert decoded.shapeType == shapeType
    assert decoded.records == records
    assert [s.oid for s in decoded.records] == list(range(len(records)))
    assert decoded.offsets == sf.offsets
    assert decoded.headerSHP.fileLengthBytes == os.path.getsize(filename + ".shp")
    assert decoded.headerSHX.fileLengthBytes == os.path.getsize(filename + ".shx")
    assert decoded.fields == []
    assert decoded.projection is ProjectionType.NONE


def test_measure_presence_fidelity(tmpdir):
    """
    Assert that records without measures read back without measures,
    next to records that have them.
    """
    filename = tmpdir.join("test").strpath
    records = records_by_type[MULTIPOINTZ]
    Shapefile().write_complete(filename, MULTIPOINTZ, records)

    decoded = Shapefile()
    decoded.read(filename)
    first, second = decoded.records
    assert first.hasM is False
    assert first.m is None
    assert first.mbox is None
    assert second.hasM is True
    assert second.m == (10.0,)
    assert first.z == (5.0, 6.0)


def test_header_bounds_round_trip(tmpdir):
    """
    Assert that the bounds computed from the records are written to
    the header and read back.
    """
    filename = tmpdir.join("test").strpath
    sf = Shapefile()
    sf.write_complete(filename, POLYLINEZ, records_by_type[POLYLINEZ])
    assert sf.bounds == BoundsZ(0, 0, 1, 1, 1, 3, 4, 6)

    decoded = Shapefile()
    decoded.read(filename)
    assert decoded.bounds == sf.bounds
    assert decoded.headerSHX.bounds == decoded.bounds


def test_given_bounds_are_kept(tmpdir):
    """
    Assert that bounds set by the caller are written as given.
    """
    filename = tmpdir.join("test").strpath
    bounds = Bounds(-10, -10, 10, 10)
    Shapefile().write_complete(filename, POINT, [Point(1, 2)], bounds=bounds)
    decoded = Shapefile()
    decoded.read(filename)
    assert decoded.bounds == bounds


def test_compute_bounds():
    """
    Assert that null records do not take part in the bounds and that
    the bounds family follows the shape type.
    """
    records = [Point(1, 5), NullShape(), Point(-2, 3)]
    assert shapekit.compute_bounds(POINT, records) == Bounds(-2, 3, 1, 5)
    records = [PointM(1, 5, 7), PointM(-2, 3, 9)]
    assert shapekit.compute_bounds(POINTM, records) == BoundsM(-2, 3, 1, 5, 7, 9)
    records = records_by_type[MULTIPOINTZ]
    assert shapekit.compute_bounds(MULTIPOINTZ, records) == BoundsZ(
        1, 2, 7, 8, 5, 9, 10, 10
    )
    records = [PolylineM(TRIANGLE)]
    assert shapekit.compute_bounds(POLYLINEM, records) == BoundsM(0, 0, 1, 1)


def test_update_bounds():
    """
    Assert that update_bounds sets the header bounds from the records.
    """
    sf = Shapefile()
    sf.set_header_type(POINTZ)
    sf.set_records(records_by_type[POINTZ])
    assert sf.update_bounds() == BoundsZ(-1, -2, 1, 2, -3, 3, -4, 4)
    assert sf.bounds == BoundsZ(-1, -2, 1, 2, -3, 3, -4, 4)


def test_attribute_fidelity(tmpdir):
    """
    Assert that every field type reads back with its value and type.
    """
    filename = tmpdir.join("test").strpath
    fields = [
        DbaseField.fieldC("NAME", 20),
        DbaseField.fieldN("COUNT", 8),
        DbaseField.fieldF("AREA", 12, 2),
        DbaseField.fieldL("ACTIVE"),
        DbaseField.fieldD("BUILT"),
    ]
    attributes = [
        ["first", 12, 605.25, True, datetime.date(1999, 12, 31)],
        ["second", -7, 0.5, False, shapekit.DATE_NULL],
    ]
    Shapefile().write_complete(
        filename,
        POINT,
        [Point(1, 2), Point(3, 4)],
        fields=fields,
        attributeRecords=attributes,
    )

    decoded = Shapefile()
    decoded.read(filename)
    assert decoded.fields == fields
    assert decoded.attributeFields == fields
    assert decoded.attributeRecords == attributes
    assert isinstance(decoded.attributeRecords[0][1], int)
    assert list(decoded) == [
        (Point(1, 2), attributes[0]),
        (Point(3, 4), attributes[1]),
    ]


def test_field_widening(tmpdir):
    """
    Assert that a character field too narrow for its values is widened
    to the longest value plus one byte instead of truncating.
    """
    filename = tmpdir.join("test").strpath
    sf = Shapefile()
    sf.write_complete(
        filename,
        POINT,
        [Point(1, 2), Point(3, 4)],
        fields=[DbaseField.fieldC("CITY", 4)],
        attributeRecords=[["Seoul"], ["Ulsan"]],
    )
    assert sf.fields[0].size == 6

    decoded = Shapefile()
    decoded.read(filename)
    assert decoded.fields[0].size == 6
    assert decoded.attributeRecords == [["Seoul"], ["Ulsan"]]


@pytest.mark.parametrize("cap", [1, 27, 28, 56, 57, 1000])
def test_buffer_size_does_not_change_files(cap, tmpdir):
    """
    Assert that the buffer cap changes how the files are written and
    read, never their bytes or the records decoded from them.
    """
    records = [Point(i, -i) for i in range(1, 8)]
    fields = [DbaseField.fieldN("ID", 4)]
    attributes = [[i] for i in range(7)]

    expected = tmpdir.join("expected").strpath
    Shapefile().write_complete(
        expected, POINT, records, fields=fields, attributeRecords=attributes
    )
    filename = tmpdir.join("test").strpath
    Shapefile(maxBufferSize=cap).write_complete(
        filename, POINT, records, fields=fields, attributeRecords=attributes
    )
    assert shapefile_bytes(filename) == shapefile_bytes(expected)

    decoded = Shapefile(maxBufferSize=cap)
    decoded.read(filename)
    assert decoded.records == records
    assert decoded.attributeRecords == attributes


@pytest.mark.parametrize("cap,chunks", [(1, 5), (28, 5), (55, 5), (56, 3), (140, 1)])
def test_write_shapes_chunk_count(cap, chunks):
    """
    Assert that records are grouped so that no write exceeds the
    buffer cap, except for a record larger than the cap on its own.
    Each point record is 28 bytes including its record header.
    """
    records = [Point(i, i + 1) for i in range(5)]
    bounds = Bounds(0, 1, 4, 5)
    writer = Writer("test.shp", POINT, bounds, records, maxBufferSize=cap)
    writer.analyze()
    shp = io.BytesIO()
    assert writer.write_shapes(shp, ShapeHeader(POINT, bounds)) == chunks
    assert len(shp.getvalue()) == 100 + 5 * 28


def test_offsets_match_content_length(tmpdir):
    """
    Assert that the index offsets follow from the content lengths.
    """
    filename = tmpdir.join("test").strpath
    records = records_by_type[POLYLINEM]
    sf = Shapefile()
    sf.write_complete(filename, POLYLINEM, records)
    offset = 100
    for shapeOffset, s in zip(sf.offsets, records):
        assert shapeOffset.offset == offset
        assert shapeOffset.length == content_length(s)
        offset += 8 + shapeOffset.length
    assert offset == os.path.getsize(filename + ".shp")


def test_record_headers(tmpdir):
    """
    Assert that record numbers start at 1 and content lengths are
    stored in 16-bit words, big endian.
    """
    filename = tmpdir.join("test").strpath
    Shapefile().write_complete(filename, POINT, [Point(1, 2), Point(3, 4)])
    with open(filename + ".shp", "rb") as f:
        data = f.read()
    assert struct.unpack(">2i", data[100:108]) == (1, 10)
    assert struct.unpack(">2i", data[128:136]) == (2, 10)


def test_read_missing_shp(tmpdir):
    """
    Assert that reading a shapefile without a .shp file fails.
    """
    with pytest.raises(FileNotFoundException):
        Shapefile().read(tmpdir.join("missing.shp").strpath)


def test_read_missing_shx(tmpdir):
    """
    Assert that the .shx index is required to read a shapefile.
    """
    filename = tmpdir.join("test").strpath
    Shapefile().write_complete(filename, POINT, [Point(1, 2)])
    os.remove(filename + ".shx")
    with pytest.raises(FileNotFoundException):
        Shapefile().read(filename)


def test_read_bad_file_code(tmpdir):
    """
    Assert that a .shp file with a wrong file code is an invalid header,
    and that the index read before it stays available.
    """
    filename = tmpdir.join("test").strpath
    Shapefile().write_complete(filename, POINT, [Point(1, 2)])
    with open(filename + ".shp", "r+b") as f:
        f.write(struct.pack(">i", 1234))

    sf = Shapefile()
    with pytest.raises(InvalidHeaderException):
        sf.read(filename)
    assert len(sf.offsets) == 1
    assert sf.records == []


def test_read_without_dbf(tmpdir):
    """
    Assert that the attribute table is optional.
    """
    filename = tmpdir.join("test").strpath
    Shapefile().write_complete(filename, POINT, [Point(1, 2)])
    assert not os.path.exists(filename + ".dbf")
    sf = Shapefile()
    sf.read(filename)
    assert sf.fields == []
    assert list(sf) == [(Point(1, 2), None)]


def test_write_type_mismatch(tmpdir):
    """
    Assert that a record of another type is refused and that
    no file is created.
    """
    filename = tmpdir.join("test").strpath
    with pytest.raises(CorruptedDataException):
        Shapefile().write_complete(filename, POINT, [Point(1, 2), PointM(1, 2, 3)])
    assert not os.path.exists(filename + ".shp")
    assert not os.path.exists(filename + ".shx")


def test_write_without_shape_type(tmpdir):
    """
    Assert that the shape type must be set before writing.
    """
    filename = tmpdir.join("test").strpath
    sf = Shapefile()
    sf.set_records([Point(1, 2)])
    sf.set_header_bounds(Bounds(1, 2, 1, 2))
    with pytest.raises(InvalidHeaderException):
        sf.write(filename)
    assert not os.path.exists(filename + ".shp")


@pytest.mark.parametrize("bounds", [None, Bounds(0, 0, 0, 0)])
def test_write_without_bounds(bounds, tmpdir):
    """
    Assert that unset or all zero bounds are refused.
    """
    filename = tmpdir.join("test").strpath
    sf = Shapefile()
    sf.set_header_type(POINT)
    sf.set_records([Point(0, 0)])
    if bounds is not None:
        sf.set_header_bounds(bounds)
    with pytest.raises(InvalidBoundsException):
        sf.write(filename)
    assert not os.path.exists(filename + ".shp")


def test_write_null_shapefile(tmpdir):
    """
    Assert that a shapefile of null records may have zero bounds.
    """
    filename = tmpdir.join("test").strpath
    Shapefile().write_complete(filename, NULL, [NullShape(), NullShape()])
    sf = Shapefile()
    sf.read(filename)
    assert sf.shapeType == NULL
    assert sf.records == [NullShape(), NullShape()]


def test_write_attribute_count_mismatch(tmpdir):
    """
    Assert that one attribute record is needed per geometry record
    and that no file is created otherwise.
    """
    filename = tmpdir.join("test").strpath
    with pytest.raises(CorruptedDataException):
        Shapefile().write_complete(
            filename,
            POINT,
            [Point(1, 2), Point(3, 4)],
            fields=[DbaseField.fieldN("ID")],
            attributeRecords=[[1]],
        )
    assert not os.path.exists(filename + ".shp")
    assert not os.path.exists(filename + ".dbf")


def test_write_creates_parent_directories(tmpdir):
    """
    Assert that missing parent directories are created.
    """
    filename = tmpdir.join("a", "b", "test").strpath
    Shapefile().write_complete(filename, POINT, [Point(1, 2)])
    assert os.path.isfile(filename + ".shp")
    assert os.path.isfile(filename + ".shx")


def test_idempotent_rewrite(tmpdir):
    """
    Assert that reading a shapefile and writing it back gives
    byte identical files.
    """
    first = tmpdir.join("first").strpath
    Shapefile(isUtf8=True).write_complete(
        first,
        POLYLINEM,
        records_by_type[POLYLINEM],
        fields=[DbaseField.fieldC("NAME", 3), DbaseField.fieldNF("LENGTH", 12, 3)],
        attributeRecords=[["도로", 1.5], ["road", -2.125]],
    )
    sf = Shapefile(isUtf8=True)
    sf.read(first)

    second = tmpdir.join("second").strpath
    sf.write(second)
    assert shapefile_bytes(second) == shapefile_bytes(first)


@pytest.mark.parametrize("flag", ["isUtf8", "isCp949"])
def test_korean_attributes(flag, tmpdir):
    """
    Assert that Korean text round trips in UTF-8 and CP949.
    """
    filename = tmpdir.join("test").strpath
    fields = [DbaseField.fieldC("이름", 10)]
    attributes = [["서울특별시"], ["부산"]]
    Shapefile(**{flag: True}).write_complete(
        filename, POINT, [Point(1, 2), Point(3, 4)], fields=fields, attributeRecords=attributes
    )
    sf = Shapefile(**{flag: True})
    sf.read(filename)
    assert sf.attributeRecords == attributes
    assert sf.fields[0].name == "이름"


def test_ascii_rejects_korean(tmpdir):
    """
    Assert that text ASCII cannot encode is refused before any
    file is written.
    """
    filename = tmpdir.join("test").strpath
    with pytest.raises(CorruptedDataException):
        Shapefile().write_complete(
            filename,
            POINT,
            [Point(1, 2)],
            fields=[DbaseField.fieldC("NAME", 10)],
            attributeRecords=[["서울"]],
        )
    assert not os.path.exists(filename + ".shp")
    assert not os.path.exists(filename + ".dbf")


def test_read_cp949_as_ascii(tmpdir):
    """
    Assert that text read with the wrong encoding is reported.
    """
    filename = tmpdir.join("test").strpath
    Shapefile(isCp949=True).write_complete(
        filename,
        POINT,
        [Point(1, 2)],
        fields=[DbaseField.fieldC("NAME", 10)],
        attributeRecords=[["서울"]],
    )
    with pytest.raises(CorruptedDataException):
        Shapefile().read(filename)


def test_upper_case_extensions(tmpdir):
    """
    Assert that constituent files with upper case extensions are found.
    """
    filename = tmpdir.join("test").strpath
    Shapefile().write_complete(
        filename,
        POINT,
        [Point(1, 2)],
        fields=[DbaseField.fieldN("ID")],
        attributeRecords=[[1]],
    )
    for ext in ("shp", "shx", "dbf"):
        os.rename(f"{filename}.{ext}", f"{filename}.{ext.upper()}")
    sf = Shapefile()
    sf.read(filename + ".SHP")
    assert sf.records == [Point(1, 2)]
    assert sf.attributeRecords == [[1]]


def test_read_projection(tmpdir):
    """
    Assert that the projection is read from the .prj file next to
    the .shp file.
    """
    filename = tmpdir.join("test").strpath
    Shapefile().write_complete(filename, POINT, [Point(1, 2)])
    tmpdir.join("test.prj").write(
        'GEOGCS["WGS 84",DATUM["WGS_1984",SPHEROID["WGS 84",6378137,298.257223563]],'
        'AUTHORITY["EPSG","4326"]]'
    )
    sf = Shapefile()
    sf.read(filename)
    assert sf.projection is ProjectionType.WGS84
    assert "WGS84" in repr(sf)


def test_len_and_repr(tmpdir):
    """
    Assert the size and description of a shapefile.
    """
    filename = tmpdir.join("test").strpath
    sf = Shapefile(isCp949=True)
    sf.write_complete(filename, POLYGON, records_by_type[POLYGON])
    assert len(sf) == 2
    assert sf.numRecords == 2
    assert repr(sf) == (
        "Shapefile(POLYGON, 2 records, 0 fields, encoding='cp949', projection=None)"
    )


def test_read_replaces_state(tmpdir):
    """
    Assert that reading discards whatever the shapefile held before.
    """
    filename = tmpdir.join("test").strpath
    Shapefile().write_complete(filename, POINT, [Point(1, 2)])
    sf = Shapefile()
    sf.set_header_type(POLYLINE)
    sf.set_records(records_by_type[POLYLINE])
    sf.set_attribute_fields([DbaseField.fieldN("ID")])
    sf.read(filename)
    assert sf.shapeType == POINT
    assert sf.records == [Point(1, 2)]
    assert sf.fields == []

    sf.dispose()
    assert len(sf) == 0
    assert sf.bounds is None


@pytest.mark.parametrize(
    "field",
    [DbaseField.fieldC("이름", 10), DbaseField.fieldC("NAME", 300)],
)
def test_bad_field_descriptor_writes_nothing(field, tmpdir):
    """
    Assert that a field descriptor the table cannot store is refused
    before the geometry files are written.
    """
    filename = tmpdir.join("test").strpath
    with pytest.raises(CorruptedDataException):
        Shapefile().write_complete(
            filename, POINT, [Point(1, 2)], fields=[field], attributeRecords=[["x"]]
        )
    assert not os.path.exists(filename + ".shp")
    assert not os.path.exists(filename + ".shx")
    assert not os.path.exists(filename + ".dbf")


@pytest.mark.parametrize(
    "flag,name,stored",
    [("isUtf8", "도시인구", "도시인"), ("isCp949", "도시인구밀도", "도시인구밀")],
)
def test_multibyte_field_name_round_trip(flag, name, stored, tmpdir):
    """
    Assert that a field name longer than 11 bytes in its encoding is
    shortened by whole characters and reads back as stored.
    """
    filename = tmpdir.join("test").strpath
    sf = Shapefile(**{flag: True})
    sf.write_complete(
        filename,
        POINT,
        [Point(1, 2)],
        fields=[DbaseField.fieldN(name, 10)],
        attributeRecords=[[9776000]],
    )
    assert sf.fields[0].name == stored

    decoded = Shapefile(**{flag: True})
    decoded.read(filename)
    assert decoded.fields[0].name == stored
    assert decoded.attributeRecords == [[9776000]]


def test_long_field_name_round_trip(tmpdir):
    """
    Assert that a name longer than 11 characters reads back
    as its first 11 characters.
    """
    filename = tmpdir.join("test").strpath
    Shapefile().write_complete(
        filename,
        POINT,
        [Point(1, 2)],
        fields=[DbaseField.fieldC("DESCRIPTION_TEXT", 10)],
        attributeRecords=[["x"]],
    )
    decoded = Shapefile()
    decoded.read(filename)
    assert decoded.fields[0].name == "DESCRIPTION"


def test_rewrite_without_fields_removes_table(tmpdir):
    """
    Assert that writing without attribute fields removes the table
    of an earlier write, so it cannot pair with the new records.
    """
    filename = tmpdir.join("test").strpath
    Shapefile().write_complete(
        filename,
        POINT,
        [Point(1, 2)],
        fields=[DbaseField.fieldN("ID")],
        attributeRecords=[[1]],
    )
    assert os.path.exists(filename + ".dbf")

    Shapefile().write_complete(filename, POINT, [Point(3, 4), Point(5, 6)])
    assert not os.path.exists(filename + ".dbf")
    sf = Shapefile()
    sf.read(filename)
    assert sf.fields == []
    assert list(sf) == [(Point(3, 4), None), (Point(5, 6), None)]
