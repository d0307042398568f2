"""Elevation profile chart generation."""

import io
from typing import Sequence

import matplotlib
matplotlib.use('Agg')  # Non-interactive backend for server
import matplotlib.pyplot as plt
from matplotlib.collections import PolyCollection

from fietsroute.distance import haversine_distance
from fietsroute.models import Waypoint
from fietsroute.profile import ProfileProjector, cumulative_ascent_descent

# Grade bins (%) and their fill colors, descending blues through grey to climbing oranges
GRADE_BINS = [-8, -5, -2, 2, 5, 8]
GRADE_COLORS = ['#4a90d9', '#6aaee0', '#9adaf6', '#cccccc', '#ffb399', '#ff7f33', '#e55a00']

CURSOR_COLOR = '#3B82F6'


def grade_to_color(g: float) -> str:
    """Map a grade percentage to its fill color."""
    for i, threshold in enumerate(GRADE_BINS):
        if g < threshold:
            return GRADE_COLORS[i]
    return GRADE_COLORS[-1]


def cumulative_distances_km(waypoints: Sequence[Waypoint]) -> list[float]:
    """Distance from the start to each waypoint, in km."""
    distances = [0.0]
    for i in range(1, len(waypoints)):
        a, b = waypoints[i - 1], waypoints[i]
        distances.append(distances[-1] + haversine_distance(a.lat, a.lng, b.lat, b.lng) / 1000)
    return distances


def segment_grades(waypoints: Sequence[Waypoint], distances_km: Sequence[float]) -> list[float]:
    """Grade in percent of each segment between consecutive waypoints."""
    grades = []
    for i in range(1, len(waypoints)):
        run_m = (distances_km[i] - distances_km[i - 1]) * 1000
        rise_m = waypoints[i].elevation - waypoints[i - 1].elevation
        grades.append(rise_m / run_m * 100 if run_m > 1.0 else 0.0)
    return grades


def generate_elevation_profile(
    projector: ProfileProjector,
    current_index: int | None = None,
    title: str | None = None,
    aspect_ratio: float = 4.0,
) -> bytes:
    """Render the elevation profile with grade coloring and an optional cursor.

    Args:
        projector: Projector of a displayable route
        current_index: Waypoint to mark with the playback cursor
        title: Optional chart title (route name)
        aspect_ratio: Width/height ratio (4.0 matches the 800x200 interactive view)

    Returns PNG image as bytes.
    """
    waypoints = projector.waypoints
    distances_km = cumulative_distances_km(waypoints)
    elevations = [wp.elevation for wp in waypoints]
    grades = segment_grades(waypoints, distances_km)

    fig_height = 3
    fig_width = fig_height * aspect_ratio
    fig, ax = plt.subplots(figsize=(fig_width, fig_height), facecolor='white')

    base = projector.min_elevation - projector.elevation_range * 0.1
    polygons = []
    colors = []
    for i, grade in enumerate(grades):
        d0, d1 = distances_km[i], distances_km[i + 1]
        e0, e1 = elevations[i], elevations[i + 1]
        polygons.append([(d0, base), (d1, base), (d1, e1), (d0, e0)])
        colors.append(grade_to_color(grade))

    coll = PolyCollection(polygons, facecolors=colors, edgecolors='none', linewidths=0)
    ax.add_collection(coll)
    ax.plot(distances_km, elevations, color='#333333', linewidth=0.8)

    # Start and end markers
    ax.scatter([distances_km[0], distances_km[-1]], [elevations[0], elevations[-1]],
               s=20, color=CURSOR_COLOR, zorder=3)

    if current_index is not None and 0 <= current_index < len(waypoints):
        cx, cy = distances_km[current_index], elevations[current_index]
        ax.axvline(cx, color=CURSOR_COLOR, linewidth=1, alpha=0.6, zorder=2)
        ax.scatter([cx], [cy], s=60, color='white', edgecolors=CURSOR_COLOR, linewidths=2, zorder=4)

    ascent, descent = cumulative_ascent_descent(waypoints)
    if title:
        ax.set_title(f"{title}  (+{ascent:.0f} m / -{descent:.0f} m)", fontsize=11)

    ax.set_xlim(0, distances_km[-1] if distances_km[-1] > 0 else 1)
    ax.set_ylim(base, projector.max_elevation + projector.elevation_range * 0.1)
    ax.set_xlabel('Distance (km)', fontsize=10)
    ax.set_ylabel('Elevation (m)', fontsize=10)
    ax.spines['top'].set_visible(False)
    ax.spines['right'].set_visible(False)
    ax.grid(axis='y', alpha=0.3, linestyle='-', linewidth=0.5)

    fig.tight_layout()

    buf = io.BytesIO()
    fig.savefig(buf, format='png', dpi=100, facecolor='white', edgecolor='none')
    plt.close(fig)
    buf.seek(0)
    return buf.getvalue()
