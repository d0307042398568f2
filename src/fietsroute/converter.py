"""Route conversion session: one toertocht at a time, from URL to playback and GPX."""

import asyncio
import logging
from datetime import datetime

from fietsroute.fietssport import (
    InvalidRouteUrl,
    RouteError,
    fetch_waypoints,
    is_fietssport_url,
    parse_route_id,
    resolve_route,
)
from fietsroute.gpx import gpx_filename, serialize
from fietsroute.models import MAX_RECENT_CONVERSIONS, RecentConversion, RouteDescriptor, Waypoint
from fietsroute.playback import PlaybackSynchronizer
from fietsroute.profile import ProfileProjector, profile_summary

logger = logging.getLogger(__name__)


class RouteConverter:
    """Holds the currently loaded route and keeps the playback cursor in step with it.

    Network calls run in worker threads. Each request takes a sequence number;
    a response is applied only if no newer request started while it was in
    flight, so a slow answer never overwrites a newer route or variant.
    """

    def __init__(self, synchronizer: PlaybackSynchronizer | None = None):
        self.synchronizer = synchronizer if synchronizer is not None else PlaybackSynchronizer()
        self.route: RouteDescriptor | None = None
        self.waypoints: list[Waypoint] = []
        self.projector: ProfileProjector | None = None
        self.selected_distance: str | None = None
        self.recent: list[RecentConversion] = []
        self.loading = False
        self.error: str | None = None
        self._request_seq = 0

    def _begin_request(self) -> int:
        self._request_seq += 1
        return self._request_seq

    def _is_stale(self, seq: int) -> bool:
        return seq != self._request_seq

    def _install(self, route: RouteDescriptor, distance_key: str, waypoints: list[Waypoint]) -> None:
        projector = ProfileProjector.build(waypoints)
        self.synchronizer.load(waypoints, projector)
        self.route = route
        self.selected_distance = distance_key
        self.waypoints = waypoints
        self.projector = projector

    def _fail(self, message: str) -> None:
        self.error = message
        raise InvalidRouteUrl(message)

    async def convert(self, url: str) -> RouteDescriptor | None:
        """Resolve a toertocht URL and load its first distance variant.

        On failure the previously loaded route stays in place, ``error`` holds the
        message and the RouteError is re-raised.

        Returns:
            The new route, or None if a newer request superseded this one.
        """
        if not url.strip():
            self._fail("Please enter a URL")
        if not is_fietssport_url(url):
            self._fail("Please enter a valid fietssport.nl toertocht URL")
        if parse_route_id(url) is None:
            self._fail("Could not parse route ID from URL")

        seq = self._begin_request()
        self.loading = True
        self.error = None
        try:
            route = await asyncio.to_thread(resolve_route, url)
            if self._is_stale(seq):
                return None
            distance_key = route.default_variant.distance_key
            waypoints = await asyncio.to_thread(fetch_waypoints, route.id, distance_key)
            if self._is_stale(seq):
                logger.debug("Discarding stale waypoints for route %s", route.id)
                return None
        except RouteError as e:
            if self._is_stale(seq):
                logger.debug("Ignoring failure of superseded request: %s", e)
                return None
            logger.error("Failed to convert %s: %s", url, e)
            self.error = e.message
            raise
        finally:
            if not self._is_stale(seq):
                self.loading = False

        self._install(route, distance_key, waypoints)
        self.recent.insert(0, RecentConversion(url=url, timestamp=datetime.now().isoformat(timespec="seconds")))
        del self.recent[MAX_RECENT_CONVERSIONS:]
        logger.info("Loaded %s (%s km): %d waypoints", route.name, distance_key, len(waypoints))
        return route

    async def select_distance(self, distance_key: str) -> bool:
        """Switch the loaded route to another distance variant.

        A failed fetch keeps the current waypoints on display.

        Returns:
            True if the new variant was loaded.
        """
        if self.route is None:
            return False

        route = self.route
        seq = self._begin_request()
        self.loading = True
        try:
            waypoints = await asyncio.to_thread(fetch_waypoints, route.id, distance_key)
        except RouteError as e:
            logger.error("Error fetching waypoints for distance %s: %s", distance_key, e)
            return False
        finally:
            if not self._is_stale(seq):
                self.loading = False

        if self._is_stale(seq):
            logger.debug("Discarding stale waypoints for distance %s", distance_key)
            return False
        self._install(route, distance_key, waypoints)
        return True

    def clear(self) -> None:
        """Drop the loaded route. In-flight requests are discarded when they finish."""
        self._begin_request()
        self.loading = False
        self.route = None
        self.selected_distance = None
        self.waypoints = []
        self.projector = None
        self.synchronizer.load([])

    def summary(self) -> dict:
        """Elevation statistics of the loaded route; empty when nothing is loaded."""
        return profile_summary(self.waypoints)

    def export_gpx(self) -> tuple[str, str]:
        """GPX export of the loaded route.

        Returns:
            Tuple of (file name, GPX text).

        Raises:
            ValueError: If no route is loaded.
        """
        if self.route is None or not self.waypoints:
            raise ValueError("No route loaded")
        return gpx_filename(self.route.name), serialize(self.waypoints, self.route.name)
