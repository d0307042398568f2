"""GPX export of waypoint lists."""

import re
from datetime import datetime, timezone
from typing import Sequence

import gpxpy

from fietsroute.models import Waypoint

GPX_CREATOR = "RouteGPX Converter"
GPX_MIMETYPE = "application/gpx+xml"

_XML_ESCAPES = {
    "<": "&lt;",
    ">": "&gt;",
    "&": "&amp;",
    "'": "&apos;",
    '"': "&quot;",
}
_XML_ESCAPE_RE = re.compile(r"[<>&'\"]")

GPX_HEADER = """<?xml version="1.0" encoding="UTF-8"?>
<gpx version="1.1" creator="{creator}" xmlns="http://www.topografix.com/GPX/1/1" xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance" xsi:schemaLocation="http://www.topografix.com/GPX/1/1 http://www.topografix.com/GPX/1/1/gpx.xsd">
  <metadata>
    <name>{name}</name>
    <time>{time}</time>
  </metadata>
  <trk>
    <name>{name}</name>
    <trkseg>
"""

GPX_TRACK_POINT = """      <trkpt lat="{lat}" lon="{lon}">
        <ele>{ele}</ele>
      </trkpt>
"""

GPX_FOOTER = """    </trkseg>
  </trk>
</gpx>"""


def escape_xml(text: str) -> str:
    """Escape the five XML special characters in free text."""
    return _XML_ESCAPE_RE.sub(lambda m: _XML_ESCAPES[m.group(0)], text)


def format_timestamp(moment: datetime) -> str:
    """ISO-8601 UTC timestamp with millisecond precision, e.g. 2024-06-15T08:00:00.000Z."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _format_number(value: float) -> str:
    """Shortest round-trip text, without a trailing ".0" for whole numbers."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return repr(value)


def serialize(
    waypoints: Sequence[Waypoint],
    route_name: str,
    generated_at: datetime | None = None,
) -> str:
    """Render waypoints as a GPX 1.1 document with one track and one segment.

    Args:
        waypoints: Waypoints in traversal order
        route_name: Route name for the metadata and track name (escaped here)
        generated_at: Timestamp for the metadata block (defaults to now, UTC)

    Returns:
        GPX document text. Identical inputs give identical output.
    """
    if generated_at is None:
        generated_at = datetime.now(timezone.utc)

    parts = [
        GPX_HEADER.format(
            creator=GPX_CREATOR,
            name=escape_xml(route_name),
            time=format_timestamp(generated_at),
        )
    ]
    for wp in waypoints:
        parts.append(
            GPX_TRACK_POINT.format(
                lat=_format_number(wp.lat),
                lon=_format_number(wp.lng),
                ele=_format_number(wp.elevation or 0),
            )
        )
    parts.append(GPX_FOOTER)
    return "".join(parts)


def gpx_filename(route_name: str) -> str:
    """File name offered for download: whitespace runs become underscores."""
    return re.sub(r"\s+", "_", route_name) + ".gpx"


def parse_gpx(text: str) -> tuple[str | None, list[Waypoint]]:
    """Read a GPX document back into (track name, waypoints)."""
    gpx = gpxpy.parse(text)

    name = gpx.name
    points: list[Waypoint] = []
    for track in gpx.tracks:
        if name is None:
            name = track.name
        for segment in track.segments:
            for pt in segment.points:
                points.append(
                    Waypoint(
                        lat=pt.latitude,
                        lng=pt.longitude,
                        elevation=pt.elevation if pt.elevation is not None else 0.0,
                    )
                )
    return name, points
