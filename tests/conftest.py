import heapq
import itertools

import pytest

from fietsroute.models import Waypoint


class ManualHandle:
    def __init__(self):
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class ManualScheduler:
    """Deterministic stand-in for an asyncio loop's call_later/time."""

    def __init__(self):
        self.now = 0.0
        self._queue = []
        self._counter = itertools.count()

    def time(self):
        return self.now

    def call_later(self, delay, callback, *args):
        handle = ManualHandle()
        heapq.heappush(self._queue, (self.now + delay, next(self._counter), handle, callback, args))
        return handle

    def pending(self):
        return [entry for entry in self._queue if not entry[2].cancelled]

    def advance(self, seconds):
        """Run every callback due within the next ``seconds``, in time order."""
        target = self.now + seconds
        while self._queue and self._queue[0][0] <= target + 1e-9:
            when, _, handle, callback, args = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            self.now = when
            callback(*args)
        self.now = target


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def three_waypoints():
    return [
        Waypoint(lat=1.0, lng=1.0, elevation=100.0),
        Waypoint(lat=1.0, lng=2.0, elevation=150.0),
        Waypoint(lat=1.0, lng=3.0, elevation=90.0),
    ]


@pytest.fixture
def hilly_route():
    """A short Limburg-style loop, ~200m between points, 80m of relief."""
    return [
        Waypoint(lat=50.8500, lng=5.6900, elevation=50.0),
        Waypoint(lat=50.8518, lng=5.6900, elevation=62.0),
        Waypoint(lat=50.8536, lng=5.6900, elevation=81.0),
        Waypoint(lat=50.8554, lng=5.6900, elevation=104.0),
        Waypoint(lat=50.8572, lng=5.6900, elevation=130.0),
        Waypoint(lat=50.8572, lng=5.6928, elevation=121.0),
        Waypoint(lat=50.8554, lng=5.6928, elevation=97.0),
        Waypoint(lat=50.8536, lng=5.6928, elevation=75.0),
        Waypoint(lat=50.8518, lng=5.6928, elevation=58.0),
        Waypoint(lat=50.8500, lng=5.6928, elevation=51.0),
    ]


@pytest.fixture
def flat_route():
    """A polder route with under 20m of relief."""
    return [
        Waypoint(lat=52.0, lng=4.0, elevation=-2.0),
        Waypoint(lat=52.001, lng=4.0, elevation=1.0),
        Waypoint(lat=52.002, lng=4.0, elevation=3.0),
        Waypoint(lat=52.003, lng=4.0, elevation=0.0),
    ]


@pytest.fixture
def waypoint_records(hilly_route):
    return [wp.to_record() for wp in hilly_route]


@pytest.fixture(autouse=True)
def no_config(tmp_path, monkeypatch):
    """Ensure no config files or environment overrides leak into tests."""
    from fietsroute import fietssport
    monkeypatch.setattr(fietssport, "CONFIG_PATH", tmp_path / "nonexistent" / "global.json")
    monkeypatch.setattr(fietssport, "LOCAL_CONFIG_PATH", tmp_path / "nonexistent" / "local.json")
    monkeypatch.delenv("FIETSSPORT_BASE_URL", raising=False)
    monkeypatch.delenv("FIETSSPORT_TIMEOUT", raising=False)
