"""fietssport.nl toertocht support: route ids, distance variants and waypoints."""

import json
import logging
import os
import re
from pathlib import Path
from urllib.parse import urlparse

import requests

from fietsroute.models import DEFAULT_VARIANT, RouteDescriptor, RouteVariant, Waypoint

logger = logging.getLogger(__name__)

CONFIG_DIR = Path.home() / ".config" / "fietsroute"
CONFIG_PATH = CONFIG_DIR / "fietsroute.json"
LOCAL_CONFIG_PATH = Path("fietsroute.json")

DEFAULT_BASE_URL = "https://www.fietssport.nl"
DEFAULT_TIMEOUT = 30  # seconds
DEFAULT_ACCEPT_LANGUAGE = "nl,en-US;q=0.9,en;q=0.8"
DEFAULT_ROUTE_NAME = "Cycling Route"

TOERTOCHT_MARKER = "fietssport.nl/toertochten/"
ROUTE_ID_PATTERN = re.compile(r"/toertochten/(\d+)/")
# Distance selector entries on the toertocht page, e.g. data-afstabd="60"> 60 km
VARIANT_PATTERN = re.compile(r'data-afstabd="(\d+)">\s*(\d+)\s*km')


class RouteError(Exception):
    """Base class for failures resolving or fetching a route."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidRouteUrl(RouteError):
    """The URL carries no parseable toertocht id."""


class UpstreamUnavailable(RouteError):
    """fietssport.nl could not be reached at all."""


class UpstreamError(RouteError):
    """fietssport.nl answered with a non-success status."""

    def __init__(self, status: int, message: str):
        super().__init__(f"API responded with status: {status} - {message}")
        self.status = status
        self.upstream_message = message


class InvalidUpstreamResponse(RouteError):
    """fietssport.nl answered, but not with the expected payload shape."""


def _load_config() -> dict:
    """Load configuration from config files.

    Merges config from global and local files:
    1. ~/.config/fietsroute/fietsroute.json (global, loaded first)
    2. ./fietsroute.json (local, overrides global)

    Returns:
        Dict with merged config values, empty dict if no files exist.
    """
    config = {}
    for config_path in [CONFIG_PATH, LOCAL_CONFIG_PATH]:
        if config_path.exists():
            try:
                with config_path.open() as f:
                    config.update(json.load(f))
            except (json.JSONDecodeError, OSError):
                logger.warning("Ignoring unreadable config file %s", config_path)
                continue
    return config


def _get_base_url() -> str:
    """Upstream base URL. FIETSSPORT_BASE_URL overrides the config file."""
    config = _load_config()
    base_url = os.environ.get("FIETSSPORT_BASE_URL") or config.get("base_url") or DEFAULT_BASE_URL
    return base_url.rstrip("/")


def _get_timeout() -> float:
    config = _load_config()
    value = os.environ.get("FIETSSPORT_TIMEOUT") or config.get("timeout", DEFAULT_TIMEOUT)
    try:
        return float(value)
    except (TypeError, ValueError):
        logger.warning("Invalid timeout %r, using %ss", value, DEFAULT_TIMEOUT)
        return DEFAULT_TIMEOUT


def _get_headers(accept: str) -> dict[str, str]:
    config = _load_config()
    return {
        "accept": accept,
        "accept-language": config.get("accept_language", DEFAULT_ACCEPT_LANGUAGE),
    }


def is_fietssport_url(url: str) -> bool:
    """Check if the given URL points at a fietssport.nl toertocht."""
    return TOERTOCHT_MARKER in url


def parse_route_id(url: str) -> str | None:
    """Extract the numeric toertocht id from a URL.

    Tries the /toertochten/<id>/ pattern first, then falls back to the first
    path segment made up entirely of digits. Relative input has no fallback.

    Returns:
        The id as a string of digits, or None if the URL has none.
    """
    match = ROUTE_ID_PATTERN.search(url)
    if match:
        return match.group(1)

    try:
        parsed = urlparse(url)
    except ValueError:
        return None
    if not parsed.scheme or not parsed.netloc:
        return None
    for segment in parsed.path.split("/"):
        if segment.isascii() and segment.isdigit():
            return segment
    return None


def extract_route_id(url: str) -> str:
    """Extract the toertocht id from a URL.

    Raises:
        InvalidRouteUrl: If the URL has no numeric route id.
    """
    route_id = parse_route_id(url)
    if route_id is None:
        raise InvalidRouteUrl("Could not parse route ID from URL")
    return route_id


def derive_display_name(url: str) -> str:
    """Human-readable route name from the last path segment of a URL.

    "https://www.fietssport.nl/toertochten/56186/bultentocht-zuid" gives
    "Bultentocht zuid".
    """
    try:
        parsed = urlparse(url)
    except ValueError:
        return DEFAULT_ROUTE_NAME
    if not parsed.scheme or not parsed.netloc:
        return DEFAULT_ROUTE_NAME

    segments = [s for s in parsed.path.split("/") if s]
    if not segments:
        return DEFAULT_ROUTE_NAME
    last = segments[-1]
    return last[0].upper() + last[1:].replace("-", " ")


def _request(method: str, url: str, **kwargs) -> requests.Response:
    """Issue an upstream request, mapping transport and status failures.

    Raises:
        UpstreamUnavailable: If the host cannot be reached.
        UpstreamError: If the response status is not 2xx.
    """
    try:
        response = requests.request(method, url, timeout=_get_timeout(), **kwargs)
    except (requests.ConnectionError, requests.Timeout) as e:
        logger.error("Cannot reach %s: %s", url, e)
        raise UpstreamUnavailable(f"Cannot connect to {urlparse(url).netloc}: {e}") from e

    if not response.ok:
        logger.warning("%s %s returned %s", method, url, response.status_code)
        raise UpstreamError(response.status_code, response.reason or "")
    return response


def parse_variants(html: str) -> list[RouteVariant]:
    """Scan a toertocht page for distance options, in document order.

    Falls back to the single 100 km default when the page has none.
    """
    variants = [
        RouteVariant(distance_key=key, label=f"{km} km")
        for key, km in VARIANT_PATTERN.findall(html)
    ]
    if not variants:
        logger.info("No distance options found, using default %s", DEFAULT_VARIANT.label)
        return [DEFAULT_VARIANT]
    return variants


def discover_variants(route_id: str) -> list[RouteVariant]:
    """Fetch the toertocht page and list its distance variants.

    Raises:
        UpstreamUnavailable: If fietssport.nl cannot be reached.
        UpstreamError: If the page request fails.
    """
    url = f"{_get_base_url()}/toertochten/{route_id}"
    logger.info("Fetching route info for: %s", route_id)
    response = _request("GET", url, headers=_get_headers("text/html"))
    return parse_variants(response.text)


def parse_waypoints(payload) -> list[Waypoint]:
    """Convert an upstream waypoint payload into Waypoints.

    Raises:
        InvalidUpstreamResponse: If the payload is not a list of waypoint records.
    """
    if not isinstance(payload, list):
        raise InvalidUpstreamResponse("Invalid response format: expected array of waypoints")
    try:
        return [Waypoint.from_record(record) for record in payload]
    except ValueError as e:
        raise InvalidUpstreamResponse(f"Invalid waypoint in response: {e}") from e


def fetch_waypoints(route_id: str, distance_key: str = DEFAULT_VARIANT.distance_key) -> list[Waypoint]:
    """Fetch the waypoints of one distance variant of a toertocht.

    Raises:
        UpstreamUnavailable: If fietssport.nl cannot be reached.
        UpstreamError: If the waypoint endpoint returns a non-2xx status.
        InvalidUpstreamResponse: If the body is not a JSON array of waypoints.
    """
    url = f"{_get_base_url()}/apisite/waypoints/ride/{route_id}/{distance_key}"
    logger.info("Fetching waypoints for route: %s with distance: %s", route_id, distance_key)
    headers = _get_headers("*/*")
    headers["content-type"] = "application/json"
    response = _request(
        "POST",
        url,
        headers=headers,
        json={"routeId": route_id, "distance": distance_key},
    )

    try:
        payload = response.json()
    except ValueError as e:
        raise InvalidUpstreamResponse("Invalid response format: body is not JSON") from e

    waypoints = parse_waypoints(payload)
    logger.debug("Route %s/%s: %d waypoints", route_id, distance_key, len(waypoints))
    return waypoints


def resolve_route(url: str) -> RouteDescriptor:
    """Resolve a toertocht URL to its id, display name and distance variants.

    Raises:
        InvalidRouteUrl: If the URL has no route id.
        UpstreamUnavailable, UpstreamError: If the route page cannot be fetched.
    """
    route_id = extract_route_id(url)
    variants = discover_variants(route_id)
    return RouteDescriptor(id=route_id, name=derive_display_name(url), variants=tuple(variants))


def get_route(url: str, distance_key: str | None = None) -> tuple[RouteDescriptor, list[Waypoint]]:
    """Resolve a toertocht URL and fetch the waypoints of one variant.

    Args:
        url: fietssport.nl toertocht URL
        distance_key: Variant to fetch; defaults to the first one on the page

    Returns:
        Tuple of (route descriptor, waypoints).
    """
    descriptor = resolve_route(url)
    if distance_key is None:
        distance_key = descriptor.default_variant.distance_key
    waypoints = fetch_waypoints(descriptor.id, distance_key)
    return descriptor, waypoints
