"""Elevation profile projection between waypoint indices and chart pixels."""

import math
from typing import Sequence

import numpy as np

from fietsroute.models import Waypoint

# Profiles flatter than this are not worth drawing
MIN_ELEVATION_RANGE = 20.0

DEFAULT_WIDTH = 800
DEFAULT_HEIGHT = 200
DEFAULT_PADDING = 20


def cumulative_ascent_descent(waypoints: Sequence[Waypoint]) -> tuple[float, float]:
    """Sum climbing and descending elevation over consecutive waypoint pairs.

    Returns:
        (ascent, descent) in meters, both non-negative.
    """
    ascent = 0.0
    descent = 0.0
    for i in range(1, len(waypoints)):
        diff = waypoints[i].elevation - waypoints[i - 1].elevation
        if diff > 0:
            ascent += diff
        else:
            descent += abs(diff)
    return ascent, descent


def profile_summary(waypoints: Sequence[Waypoint]) -> dict:
    """Ascent, descent and elevation extremes for display."""
    if not waypoints:
        return {}
    ascent, descent = cumulative_ascent_descent(waypoints)
    elevations = [wp.elevation for wp in waypoints]
    return {
        "ascent": ascent,
        "descent": descent,
        "min_elevation": min(elevations),
        "max_elevation": max(elevations),
    }


class ProfileProjector:
    """Maps waypoint indices to chart coordinates and back.

    The x axis spreads indices evenly over [padding, width - padding]; the y axis
    maps elevation onto [height - padding, padding] so higher ground draws higher.
    """

    def __init__(
        self,
        waypoints: Sequence[Waypoint],
        width: float = DEFAULT_WIDTH,
        height: float = DEFAULT_HEIGHT,
        padding: float = DEFAULT_PADDING,
    ):
        if not waypoints:
            raise ValueError("Cannot project an empty route")
        self.waypoints = list(waypoints)
        self.width = width
        self.height = height
        self.padding = padding

        self._elevations = np.array([wp.elevation for wp in self.waypoints], dtype=float)
        self.min_elevation = float(self._elevations.min())
        self.max_elevation = float(self._elevations.max())
        self.elevation_range = self.max_elevation - self.min_elevation

        n = len(self.waypoints)
        self._x_scale = self._plot_width / (n - 1) if n > 1 else 0.0
        # A flat route draws along the baseline
        self._y_scale = self._plot_height / self.elevation_range if self.elevation_range > 0 else 0.0

    @classmethod
    def build(
        cls,
        waypoints: Sequence[Waypoint],
        width: float = DEFAULT_WIDTH,
        height: float = DEFAULT_HEIGHT,
        padding: float = DEFAULT_PADDING,
    ) -> "ProfileProjector | None":
        """Create a projector, or None if the route is empty or too flat to chart."""
        if not waypoints:
            return None
        projector = cls(waypoints, width, height, padding)
        if not projector.is_displayable:
            return None
        return projector

    @property
    def is_displayable(self) -> bool:
        return self.elevation_range >= MIN_ELEVATION_RANGE

    @property
    def _plot_width(self) -> float:
        return self.width - 2 * self.padding

    @property
    def _plot_height(self) -> float:
        return self.height - 2 * self.padding

    def _x(self, index):
        return self.padding + index * self._x_scale

    def _y(self, elevation):
        return self.height - self.padding - (elevation - self.min_elevation) * self._y_scale

    def project(self, index: int) -> tuple[float, float]:
        """Chart (x, y) of the waypoint at ``index``."""
        if not 0 <= index < len(self.waypoints):
            raise IndexError(f"Waypoint index {index} out of range")
        return float(self._x(index)), float(self._y(self.waypoints[index].elevation))

    def project_all(self) -> list[tuple[float, float]]:
        """Chart coordinates of every waypoint, in order."""
        xs = self._x(np.arange(len(self.waypoints), dtype=float))
        ys = self._y(self._elevations)
        return [(float(x), float(y)) for x, y in zip(xs, ys)]

    def unproject(self, x_pixel: float) -> int:
        """Waypoint index nearest to a chart x coordinate, clamped to the route."""
        n = len(self.waypoints)
        if n == 1 or self._x_scale <= 0:
            return 0
        raw = (x_pixel - self.padding) / self._x_scale
        # Half-up rounding, not Python's round-half-even
        index = math.floor(raw + 0.5)
        return max(0, min(n - 1, index))

    def svg_path(self) -> str:
        """SVG path data ("M x,y L x,y ...") tracing the profile line."""
        return "M " + " L ".join(f"{x:g},{y:g}" for x, y in self.project_all())
