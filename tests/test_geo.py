"""Unit tests for distance calculation and radius filtering."""
import math

import pytest

from discovery.geo import distance_km, filter_by_radius, is_geolocated
from discovery.models import EventRecord, Origin

SAO_PAULO = (-23.5505, -46.6333)
RIO_DE_JANEIRO = (-22.9068, -43.1729)

# Kilometres per degree of latitude on a 6371 km sphere
KM_PER_DEGREE = 6371.0 * math.pi / 180


def make_record(event_id, latitude=None, longitude=None, **kwargs):
    return EventRecord(
        id=event_id,
        title=kwargs.pop('title', f'Event {event_id}'),
        start_date='15 Jan 2024, 19:00',
        source='internal',
        latitude=latitude,
        longitude=longitude,
        **kwargs
    )


class TestDistanceKm:
    """Test cases for distance_km."""

    def test_same_point_is_zero(self):
        assert distance_km(*SAO_PAULO, *SAO_PAULO) == pytest.approx(0.0, abs=1e-9)

    def test_symmetry(self):
        forward = distance_km(*SAO_PAULO, *RIO_DE_JANEIRO)
        backward = distance_km(*RIO_DE_JANEIRO, *SAO_PAULO)
        assert forward == pytest.approx(backward, rel=1e-12)

    def test_sao_paulo_to_rio(self):
        distance = distance_km(*SAO_PAULO, *RIO_DE_JANEIRO)
        assert 357 <= distance <= 361

    def test_one_degree_of_latitude(self):
        assert distance_km(0, 0, 1, 0) == pytest.approx(KM_PER_DEGREE, rel=1e-9)

    def test_never_negative(self):
        assert distance_km(10, 170, -10, -170) > 0


class TestIsGeolocated:
    """Test cases for is_geolocated."""

    def test_both_coordinates(self):
        assert is_geolocated(make_record('1', -23.5, -46.6))

    def test_missing_longitude(self):
        assert not is_geolocated(make_record('1', -23.5, None))

    def test_nan_coordinate(self):
        assert not is_geolocated(make_record('1', float('nan'), -46.6))


class TestFilterByRadius:
    """Test cases for filter_by_radius."""

    def setup_method(self):
        self.origin = Origin(latitude=-23.55, longitude=-46.63)
        self.records = [
            make_record('near', -23.55 + 10 / KM_PER_DEGREE, -46.63),
            make_record('far', -23.55 + 80 / KM_PER_DEGREE, -46.63),
            make_record('nowhere'),
            make_record('half', -23.56, None),
        ]

    def test_keeps_records_within_radius(self):
        result = filter_by_radius(self.records, self.origin, 50)

        assert [r.id for r in result.records] == ['near']
        assert result.records[0].distance_km == pytest.approx(10, abs=0.01)

    def test_reports_records_without_location(self):
        result = filter_by_radius(self.records, self.origin, 50)

        assert result.excluded_no_location == 2

    def test_zero_radius_excludes_everything_off_origin(self):
        result = filter_by_radius(self.records, self.origin, 0)

        assert result.records == []

    def test_zero_radius_keeps_record_on_origin(self):
        on_origin = make_record('here', -23.55, -46.63)

        result = filter_by_radius([on_origin], self.origin, 0)

        assert [r.id for r in result.records] == ['here']
        assert result.records[0].distance_km == 0

    def test_huge_radius_returns_geolocated_subset(self):
        result = filter_by_radius(self.records, self.origin, float('inf'))

        assert sorted(r.id for r in result.records) == ['far', 'near']

    def test_does_not_mutate_input(self):
        filter_by_radius(self.records, self.origin, 50)

        assert all(r.distance_km is None for r in self.records)

    def test_recomputes_upstream_distance(self):
        record = make_record('near', -23.55 + 10 / KM_PER_DEGREE, -46.63, distance_km=999.0)

        result = filter_by_radius([record], self.origin, 50)

        assert result.records[0].distance_km == pytest.approx(10, abs=0.01)

    def test_without_origin_skips_distance(self):
        result = filter_by_radius(self.records, None, 50)

        assert [r.id for r in result.records] == ['near', 'far', 'nowhere', 'half']
        assert all(r.distance_km is None for r in result.records)
        assert result.excluded_no_location == 0

    def test_without_radius_attaches_distances_only(self):
        result = filter_by_radius(self.records, self.origin, None)

        assert [r.id for r in result.records] == ['near', 'far', 'nowhere', 'half']
        assert result.records[1].distance_km == pytest.approx(80, abs=0.01)
        assert result.records[2].distance_km is None
        assert result.excluded_no_location == 0

    def test_empty_input(self):
        result = filter_by_radius([], self.origin, 50)

        assert result.records == []
        assert result.excluded_no_location == 0
