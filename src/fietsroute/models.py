from dataclasses import dataclass
from enum import Enum

MAX_RECENT_CONVERSIONS = 5


@dataclass(frozen=True)
class Waypoint:
    lat: float
    lng: float
    elevation: float = 0.0  # meters ("hoogte" upstream)

    @classmethod
    def from_record(cls, record: dict) -> "Waypoint":
        """Build a Waypoint from an upstream ``{lat, lng, hoogte}`` record.

        Raises:
            ValueError: If the record has no numeric lat/lng.
        """
        if not isinstance(record, dict):
            raise ValueError(f"Expected waypoint object, got {type(record).__name__}")
        lat = record.get("lat")
        lng = record.get("lng")
        if not _is_number(lat) or not _is_number(lng):
            raise ValueError(f"Waypoint record without numeric lat/lng: {record!r}")
        elevation = record.get("hoogte")
        return cls(
            lat=lat,
            lng=lng,
            elevation=elevation if _is_number(elevation) else 0.0,
        )

    def to_record(self) -> dict:
        """Convert back to the upstream record shape."""
        return {"lat": self.lat, "lng": self.lng, "hoogte": self.elevation}


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


@dataclass(frozen=True)
class RouteVariant:
    """One selectable distance option of a toertocht, e.g. "100" -> "100 km"."""

    distance_key: str
    label: str

    def to_dict(self) -> dict:
        return {"distance": self.distance_key, "label": self.label}


DEFAULT_VARIANT = RouteVariant(distance_key="100", label="100 km")


@dataclass(frozen=True)
class RouteDescriptor:
    id: str
    name: str
    variants: tuple[RouteVariant, ...]

    @property
    def default_variant(self) -> RouteVariant:
        return self.variants[0] if self.variants else DEFAULT_VARIANT


class ControlSource(Enum):
    """Which input currently owns the playback cursor."""

    AUTOPLAY = "autoplay"
    MAP_HOVER = "map_hover"
    PROFILE_HOVER = "profile_hover"


@dataclass(frozen=True)
class PlaybackState:
    current_index: int | None  # None when no waypoints are loaded
    control_source: ControlSource
    release_deadline: float | None = None  # scheduler time at which hover control lapses


@dataclass(frozen=True)
class RecentConversion:
    url: str
    timestamp: str
