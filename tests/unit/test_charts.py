import pytest

from fietsroute.charts import (
    GRADE_COLORS,
    cumulative_distances_km,
    generate_elevation_profile,
    grade_to_color,
    segment_grades,
)
from fietsroute.models import Waypoint
from fietsroute.profile import ProfileProjector


class TestGradeToColor:
    @pytest.mark.parametrize("grade, index", [
        (-12, 0),
        (-6, 1),
        (-3, 2),
        (0, 3),
        (3, 4),
        (6, 5),
        (15, 6),
    ])
    def test_bins(self, grade, index):
        assert grade_to_color(grade) == GRADE_COLORS[index]


class TestDistancesAndGrades:
    def test_cumulative_distances(self, hilly_route):
        distances = cumulative_distances_km(hilly_route)
        assert distances[0] == 0
        assert distances[1] == pytest.approx(0.2, rel=0.01)
        assert distances == sorted(distances)
        assert len(distances) == len(hilly_route)

    def test_grade_of_climb(self, hilly_route):
        grades = segment_grades(hilly_route, cumulative_distances_km(hilly_route))
        assert grades[0] == pytest.approx(12 / 200.2 * 100, rel=0.01)
        assert grades[-1] < 0

    def test_duplicate_points_are_flat(self):
        route = [Waypoint(52.0, 5.0, 10.0), Waypoint(52.0, 5.0, 30.0)]
        assert segment_grades(route, cumulative_distances_km(route)) == [0.0]


class TestGenerateElevationProfile:
    def test_png(self, hilly_route):
        png = generate_elevation_profile(ProfileProjector(hilly_route), current_index=4, title="Bultentocht")
        assert png[:8] == b"\x89PNG\r\n\x1a\n"

    def test_out_of_range_cursor_ignored(self, hilly_route):
        png = generate_elevation_profile(ProfileProjector(hilly_route), current_index=99)
        assert png.startswith(b"\x89PNG")
