from datetime import datetime, timezone
from xml.etree import ElementTree as ET

import pytest

from fietsroute.gpx import escape_xml, format_timestamp, gpx_filename, parse_gpx, serialize
from fietsroute.models import Waypoint

GPX_NS = {"gpx": "http://www.topografix.com/GPX/1/1"}
GENERATED_AT = datetime(2024, 6, 15, 8, 0, 0, 123000, tzinfo=timezone.utc)


class TestEscapeXml:
    def test_escapes_all_five(self):
        assert escape_xml("<>&'\"") == "&lt;&gt;&amp;&apos;&quot;"

    def test_plain_text_unchanged(self):
        assert escape_xml("Bultentocht zuid") == "Bultentocht zuid"

    def test_ampersand_not_double_escaped(self):
        assert escape_xml("A & B") == "A &amp; B"


class TestFormatTimestamp:
    def test_utc_with_milliseconds(self):
        assert format_timestamp(GENERATED_AT) == "2024-06-15T08:00:00.123Z"

    def test_naive_treated_as_utc(self):
        assert format_timestamp(datetime(2024, 1, 2, 3, 4, 5)) == "2024-01-02T03:04:05.000Z"


class TestSerialize:
    def test_structure(self, three_waypoints):
        root = ET.fromstring(serialize(three_waypoints, "Test Route", GENERATED_AT))
        assert root.tag == "{http://www.topografix.com/GPX/1/1}gpx"
        assert root.get("version") == "1.1"
        assert root.get("creator") == "RouteGPX Converter"
        assert root.find("gpx:metadata/gpx:name", GPX_NS).text == "Test Route"
        assert root.find("gpx:metadata/gpx:time", GPX_NS).text == "2024-06-15T08:00:00.123Z"
        assert len(root.findall("gpx:trk", GPX_NS)) == 1
        assert len(root.findall("gpx:trk/gpx:trkseg", GPX_NS)) == 1

    def test_track_points_in_order(self, hilly_route):
        root = ET.fromstring(serialize(hilly_route, "Loop", GENERATED_AT))
        trkpts = root.findall("gpx:trk/gpx:trkseg/gpx:trkpt", GPX_NS)
        assert len(trkpts) == len(hilly_route)
        for trkpt, wp in zip(trkpts, hilly_route):
            assert float(trkpt.get("lat")) == wp.lat
            assert float(trkpt.get("lon")) == wp.lng
            assert float(trkpt.find("gpx:ele", GPX_NS).text) == wp.elevation

    def test_zero_elevation_written_as_zero(self):
        text = serialize([Waypoint(lat=52.1, lng=4.3, elevation=0.0)], "Polder", GENERATED_AT)
        assert "<ele>0</ele>" in text

    def test_number_formatting(self):
        text = serialize([Waypoint(lat=52.0, lng=4.25, elevation=12.5)], "R", GENERATED_AT)
        assert '<trkpt lat="52" lon="4.25">' in text
        assert "<ele>12.5</ele>" in text

    def test_deterministic(self, hilly_route):
        assert serialize(hilly_route, "Loop", GENERATED_AT) == serialize(hilly_route, "Loop", GENERATED_AT)

    def test_name_escaping_round_trips_through_parser(self, three_waypoints):
        name = "Tom & Jerry's <\"Bergrit\"> & more"
        text = serialize(three_waypoints, name, GENERATED_AT)
        assert "&amp;" in text and "&apos;" in text and "&quot;" in text
        root = ET.fromstring(text)
        assert root.find("gpx:metadata/gpx:name", GPX_NS).text == name
        assert root.find("gpx:trk/gpx:name", GPX_NS).text == name

    def test_empty_route(self):
        root = ET.fromstring(serialize([], "Empty", GENERATED_AT))
        assert root.findall("gpx:trk/gpx:trkseg/gpx:trkpt", GPX_NS) == []

    def test_defaults_to_current_time(self, three_waypoints):
        before = datetime.now(timezone.utc).replace(microsecond=0)
        root = ET.fromstring(serialize(three_waypoints, "Now"))
        stamp = root.find("gpx:metadata/gpx:time", GPX_NS).text
        generated = datetime.strptime(stamp, "%Y-%m-%dT%H:%M:%S.%fZ").replace(tzinfo=timezone.utc)
        assert generated >= before


class TestParseGpx:
    def test_reads_back_export(self, hilly_route):
        name, points = parse_gpx(serialize(hilly_route, "Heuvelland & Co", GENERATED_AT))
        assert name == "Heuvelland & Co"
        assert points == hilly_route

    def test_missing_elevation(self):
        gpx_content = """<?xml version="1.0"?>
        <gpx version="1.1" xmlns="http://www.topografix.com/GPX/1/1">
          <trk><name>X</name><trkseg>
            <trkpt lat="37.0" lon="-122.0"></trkpt>
          </trkseg></trk>
        </gpx>"""
        name, points = parse_gpx(gpx_content)
        assert name == "X"
        assert points == [Waypoint(lat=37.0, lng=-122.0, elevation=0.0)]


class TestGpxFilename:
    @pytest.mark.parametrize(
        "name,expected",
        [
            ("Bultentocht", "Bultentocht.gpx"),
            ("Bultentocht zuid", "Bultentocht_zuid.gpx"),
            ("Rondje  \t Limburg", "Rondje_Limburg.gpx"),
        ],
    )
    def test_whitespace_runs_become_underscores(self, name, expected):
        assert gpx_filename(name) == expected
