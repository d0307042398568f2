"""Shared playback cursor for the map and elevation profile views.

One PlaybackSynchronizer owns the current waypoint index. Three inputs compete
for it: autoplay ticks, pointer hovering over the map, and pointer hovering over
the profile. Exactly one of them owns the cursor at a time:

    AUTOPLAY --hover_enter(src)--> src            (tick cancelled, index resolved)
    src      --hover_move(src)---> src            (index re-resolved, clamped)
    src      --hover_leave(src)--> src + release  (deadline RELEASE_DELAY ahead)
    release  --hover_enter(any)--> any            (release cancelled)
    release  --deadline---------> AUTOPLAY        (or release(); ticking resumes at current index)

Timers are scheduled on an asyncio-style scheduler (``call_later``/``time``),
by default the running event loop.
"""

import asyncio
import logging
from typing import Callable, Protocol, Sequence

from fietsroute.distance import nearest_waypoint
from fietsroute.models import ControlSource, PlaybackState, Waypoint
from fietsroute.profile import ProfileProjector

logger = logging.getLogger(__name__)

TICK_INTERVAL = 0.05  # seconds, ~20 ticks per second
RELEASE_DELAY = 10.0  # seconds before an idle hover hands control back to autoplay

HOVER_SOURCES = (ControlSource.MAP_HOVER, ControlSource.PROFILE_HOVER)


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable, *args) -> TimerHandle: ...

    def time(self) -> float: ...


class PointerResolver(Protocol):
    """Translates a pointer position on one view into a waypoint index."""

    def resolve(self, position) -> int: ...


class MapPointerResolver:
    """Map pointer: position is a (lat, lng) pair, resolved to the nearest waypoint."""

    def __init__(self, waypoints: Sequence[Waypoint]):
        self.waypoints = waypoints

    def resolve(self, position: tuple[float, float]) -> int:
        return nearest_waypoint(position, self.waypoints)


class ProfilePointerResolver:
    """Profile pointer: position is a chart x coordinate in pixels."""

    def __init__(self, projector: ProfileProjector):
        self.projector = projector

    def resolve(self, position: float) -> int:
        return self.projector.unproject(position)


class PlaybackSynchronizer:
    """Owns the shared cursor and arbitrates between autoplay and hover sources."""

    def __init__(
        self,
        scheduler: Scheduler | None = None,
        tick_interval: float = TICK_INTERVAL,
        release_delay: float = RELEASE_DELAY,
    ):
        self._scheduler = scheduler
        self.tick_interval = tick_interval
        self.release_delay = release_delay

        self.waypoints: list[Waypoint] = []
        self._resolvers: dict[ControlSource, PointerResolver] = {}
        self._current_index: int | None = None
        self._control_source = ControlSource.AUTOPLAY
        self._tick_handle: TimerHandle | None = None
        self._release_handle: TimerHandle | None = None
        self._release_deadline: float | None = None
        self._listeners: list[Callable[[PlaybackState], None]] = []

    @property
    def scheduler(self) -> Scheduler:
        """The injected scheduler, else whichever event loop is running now."""
        if self._scheduler is not None:
            return self._scheduler
        return asyncio.get_running_loop()

    @property
    def current_index(self) -> int | None:
        return self._current_index

    @property
    def control_source(self) -> ControlSource:
        return self._control_source

    @property
    def state(self) -> PlaybackState:
        return PlaybackState(
            current_index=self._current_index,
            control_source=self._control_source,
            release_deadline=self._release_deadline,
        )

    @property
    def release_pending(self) -> bool:
        return self._release_handle is not None

    def subscribe(self, callback: Callable[[PlaybackState], None]) -> Callable[[], None]:
        """Register a callback for state changes. Returns an unsubscribe function."""
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _notify(self) -> None:
        state = self.state
        for callback in list(self._listeners):
            callback(state)

    # Lifecycle

    def load(self, waypoints: Sequence[Waypoint], projector: ProfileProjector | None = None) -> None:
        """Reset to the initial state for a new waypoint list and start autoplay.

        Args:
            waypoints: The route now on display (may be empty)
            projector: Profile projector, or None when no profile is shown. Profile
                hover events are ignored without one.
        """
        self._cancel_timers()
        self.waypoints = list(waypoints)
        self._resolvers = {}
        if self.waypoints:
            self._resolvers[ControlSource.MAP_HOVER] = MapPointerResolver(self.waypoints)
            if projector is not None:
                self._resolvers[ControlSource.PROFILE_HOVER] = ProfilePointerResolver(projector)
        self._current_index = 0 if self.waypoints else None
        self._control_source = ControlSource.AUTOPLAY
        logger.debug("Playback loaded with %d waypoints", len(self.waypoints))
        self._start_autoplay()
        self._notify()

    def close(self) -> None:
        """Cancel all pending timers. State is kept as-is."""
        self._cancel_timers()

    def _cancel_timers(self) -> None:
        self._cancel_tick()
        self._cancel_release()

    def _cancel_tick(self) -> None:
        if self._tick_handle is not None:
            self._tick_handle.cancel()
            self._tick_handle = None

    def _cancel_release(self) -> None:
        if self._release_handle is not None:
            self._release_handle.cancel()
            self._release_handle = None
        self._release_deadline = None

    # Autoplay

    def _start_autoplay(self) -> None:
        self._cancel_tick()
        if len(self.waypoints) > 1:
            self._tick_handle = self.scheduler.call_later(self.tick_interval, self._on_tick)

    def _on_tick(self) -> None:
        self._tick_handle = None
        self.tick()
        if self._control_source is ControlSource.AUTOPLAY:
            self._start_autoplay()

    def tick(self) -> None:
        """Advance the cursor by one waypoint, wrapping at the end. Autoplay only."""
        if self._control_source is not ControlSource.AUTOPLAY:
            return
        n = len(self.waypoints)
        if n <= 1:
            return
        self._current_index = (self._current_index + 1) % n
        self._notify()

    # Hover

    def _check_source(self, source: ControlSource) -> None:
        if source not in HOVER_SOURCES:
            raise ValueError(f"Not a hover source: {source}")

    def _set_index(self, index: int) -> None:
        self._current_index = max(0, min(len(self.waypoints) - 1, index))

    def hover_enter(self, source: ControlSource, position) -> None:
        """A pointer entered the map or profile view at ``position``.

        Cancels any pending release and the autoplay tick before taking control.
        """
        self._check_source(source)
        resolver = self._resolvers.get(source)
        if resolver is None:
            return

        self._cancel_release()
        self._cancel_tick()
        if self._control_source is not source:
            logger.debug("Cursor control: %s -> %s", self._control_source.value, source.value)
        self._control_source = source
        self._set_index(resolver.resolve(position))
        self._notify()

    def hover_move(self, source: ControlSource, position) -> None:
        """The pointer moved within a view. Ignored unless that view owns the cursor."""
        self._check_source(source)
        if source is not self._control_source or self.release_pending:
            return
        resolver = self._resolvers.get(source)
        if resolver is None:
            return
        index = resolver.resolve(position)
        previous = self._current_index
        self._set_index(index)
        if self._current_index != previous:
            self._notify()

    def hover_leave(self, source: ControlSource) -> None:
        """The pointer left a view. Control returns to autoplay after the release delay."""
        self._check_source(source)
        if source is not self._control_source or self.release_pending:
            return
        scheduler = self.scheduler
        self._release_deadline = scheduler.time() + self.release_delay
        self._release_handle = scheduler.call_later(self.release_delay, self._on_release)
        self._notify()

    def release(self) -> None:
        """Hand the cursor back to autoplay now, resuming from the current index.

        Cancels a pending release timer. No-op while autoplay already owns the cursor.
        """
        self._cancel_release()
        if self._control_source is ControlSource.AUTOPLAY:
            return
        logger.debug("Cursor control: %s -> autoplay", self._control_source.value)
        self._control_source = ControlSource.AUTOPLAY
        self._start_autoplay()
        self._notify()

    def _on_release(self) -> None:
        self._release_handle = None
        self.release()
