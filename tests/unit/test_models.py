import pytest

from fietsroute.models import DEFAULT_VARIANT, RouteDescriptor, RouteVariant, Waypoint


class TestWaypointFromRecord:
    def test_maps_hoogte_to_elevation(self):
        wp = Waypoint.from_record({"lat": 51.5, "lng": 5.3, "hoogte": 12.5})
        assert wp == Waypoint(lat=51.5, lng=5.3, elevation=12.5)

    def test_missing_hoogte_defaults_to_zero(self):
        wp = Waypoint.from_record({"lat": 51.5, "lng": 5.3})
        assert wp.elevation == 0.0

    def test_null_hoogte_defaults_to_zero(self):
        wp = Waypoint.from_record({"lat": 51.5, "lng": 5.3, "hoogte": None})
        assert wp.elevation == 0.0

    def test_integer_coordinates_accepted(self):
        wp = Waypoint.from_record({"lat": 52, "lng": 4, "hoogte": 3})
        assert wp.lat == 52
        assert wp.elevation == 3

    def test_missing_lat_raises(self):
        with pytest.raises(ValueError, match="numeric lat/lng"):
            Waypoint.from_record({"lng": 5.3, "hoogte": 1})

    def test_string_lng_raises(self):
        with pytest.raises(ValueError, match="numeric lat/lng"):
            Waypoint.from_record({"lat": 51.5, "lng": "5.3"})

    def test_non_dict_raises(self):
        with pytest.raises(ValueError, match="Expected waypoint object"):
            Waypoint.from_record([51.5, 5.3])

    def test_record_round_trip(self):
        record = {"lat": 51.5, "lng": 5.3, "hoogte": 12.5}
        assert Waypoint.from_record(record).to_record() == record

    def test_is_immutable(self):
        wp = Waypoint(lat=1.0, lng=2.0, elevation=3.0)
        with pytest.raises(AttributeError):
            wp.lat = 5.0


class TestRouteDescriptor:
    def test_default_variant_is_first(self):
        route = RouteDescriptor(
            id="1",
            name="Test",
            variants=(RouteVariant("60", "60 km"), RouteVariant("100", "100 km")),
        )
        assert route.default_variant.distance_key == "60"

    def test_default_variant_without_variants(self):
        route = RouteDescriptor(id="1", name="Test", variants=())
        assert route.default_variant == DEFAULT_VARIANT

    def test_variant_to_dict(self):
        assert RouteVariant("60", "60 km").to_dict() == {"distance": "60", "label": "60 km"}
