"""Tests for the RouteProfiler."""

import random
from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from movement_intel.core.route_profiler import RouteProfiler, RouteThresholds
from movement_intel.foundation.geo import distance_m

from tests.test_models import _BASE, _sample, _track

_LEG_M = distance_m(0.0, 0.0, 0.0, 0.01)


@pytest.fixture
def profiler() -> RouteProfiler:
    return RouteProfiler(sink=MagicMock())


class TestDegenerateInput:
    def test_no_samples(self, profiler: RouteProfiler) -> None:
        outcome = profiler.profile("AA-12-BB", [])
        assert outcome.ok
        p = outcome.value
        assert p.total_distance_m == 0.0
        assert p.average_speed_kmh == 0.0
        assert p.route_variation == 0.0
        assert p.frequent_locations == []
        assert p.sample_count == 0

    def test_single_sample(self, profiler: RouteProfiler) -> None:
        outcome = profiler.profile("AA-12-BB", [_sample(38.7, -9.1)])
        assert outcome.ok
        assert outcome.value.total_distance_m == 0.0
        assert outcome.value.sample_count == 1

    def test_identical_timestamps_give_zero_speed(self, profiler: RouteProfiler) -> None:
        samples = [_sample(0.0, 0.0), _sample(0.0, 0.01)]
        p = profiler.profile("AA-12-BB", samples).value
        assert p.total_distance_m == pytest.approx(_LEG_M)
        assert p.average_speed_kmh == 0.0


class TestMetrics:
    def test_total_distance_and_speed(self, profiler: RouteProfiler) -> None:
        samples = _track([(0.0, 0.0), (0.0, 0.01), (0.0, 0.02)], timedelta(hours=1))
        p = profiler.profile("AA-12-BB", samples).value
        assert p.total_distance_m == pytest.approx(2 * _LEG_M)
        # metres over two hours, in km/h
        assert p.average_speed_kmh == pytest.approx(2 * _LEG_M / 7200 * 3.6)
        assert p.sample_count == 3

    def test_route_variation_averages_both_axes(self, profiler: RouteProfiler) -> None:
        samples = _track([(0.0, 0.0), (0.0, 0.01), (0.0, 0.02)], timedelta(hours=1))
        p = profiler.profile("AA-12-BB", samples).value
        # var(lon) = 2/3 * 1e-4, var(lat) = 0
        assert p.route_variation == pytest.approx((2 / 3 * 1e-4) / 2)

    def test_unsorted_input_is_reordered(self, profiler: RouteProfiler) -> None:
        samples = _track([(0.0, 0.0), (0.0, 0.01), (0.0, 0.03)], timedelta(minutes=30))
        forward = profiler.profile("AA-12-BB", samples).value
        backward = profiler.profile("AA-12-BB", list(reversed(samples))).value
        assert backward.total_distance_m == pytest.approx(forward.total_distance_m)
        assert backward.average_speed_kmh == pytest.approx(forward.average_speed_kmh)
        assert backward.average_speed_kmh > 0


class TestFlaggedMovements:
    def test_long_slow_leg_is_flagged(self, profiler: RouteProfiler) -> None:
        samples = _track([(0.0, 0.0), (0.0, 0.01)], timedelta(hours=2))
        flagged = profiler.profile("AA-12-BB", samples).value.flagged_movements
        assert len(flagged) == 1
        assert flagged[0].distance_m == pytest.approx(_LEG_M)
        assert flagged[0].duration_seconds == 7200

    def test_fast_leg_is_not_flagged(self, profiler: RouteProfiler) -> None:
        samples = _track([(0.0, 0.0), (0.0, 0.01)], timedelta(minutes=10))
        assert profiler.profile("AA-12-BB", samples).value.flagged_movements == []

    def test_exactly_one_hour_is_not_flagged(self, profiler: RouteProfiler) -> None:
        samples = _track([(0.0, 0.0), (0.0, 0.01)], timedelta(hours=1))
        assert profiler.profile("AA-12-BB", samples).value.flagged_movements == []

    def test_short_slow_leg_is_not_flagged(self, profiler: RouteProfiler) -> None:
        samples = _track([(0.0, 0.0), (0.0, 0.001)], timedelta(hours=3))
        assert profiler.profile("AA-12-BB", samples).value.flagged_movements == []


class TestFrequentLocations:
    def test_cluster_members_are_frequent(self, profiler: RouteProfiler) -> None:
        cluster = [(38.7, -9.1 + i * 0.00005) for i in range(5)]
        spread = [(38.7 + (i + 1) * 0.01, -9.1) for i in range(5)]
        samples = _track(cluster + spread, timedelta(minutes=5))

        frequent = profiler.profile("AA-12-BB", samples).value.frequent_locations
        assert len(frequent) == 5
        assert all(s.latitude == 38.7 for s in frequent)

    def test_isolated_samples_are_not_frequent(self, profiler: RouteProfiler) -> None:
        samples = _track([(0.0, i * 0.01) for i in range(6)], timedelta(minutes=5))
        assert profiler.profile("AA-12-BB", samples).value.frequent_locations == []

    def test_spatial_index_matches_pairwise_scan(self) -> None:
        rng = random.Random(42)
        points: list[tuple[float, float]] = []
        for centre_lat, centre_lon in [(38.70, -9.14), (38.705, -9.135), (38.71, -9.13)]:
            for _ in range(100):
                points.append((
                    centre_lat + rng.uniform(-0.0003, 0.0003),
                    centre_lon + rng.uniform(-0.0003, 0.0003),
                ))
        for _ in range(100):
            points.append((38.70 + rng.uniform(0, 0.01), -9.14 + rng.uniform(0, 0.01)))
        samples = _track(points, timedelta(seconds=30))

        indexed = RouteProfiler(RouteThresholds(spatial_index_threshold=300), sink=MagicMock())
        pairwise = RouteProfiler(RouteThresholds(spatial_index_threshold=10_000), sink=MagicMock())

        indexed_result = indexed.profile("AA-12-BB", samples).value.frequent_locations
        pair_result = pairwise.profile("AA-12-BB", samples).value.frequent_locations
        assert indexed_result
        assert indexed_result == pair_result

    def test_spatial_index_across_antimeridian(self) -> None:
        points = [(0.0, 179.9999), (0.0, -179.9999)] * 200
        samples = _track(points, timedelta(seconds=30))
        p = RouteProfiler(RouteThresholds(spatial_index_threshold=10), sink=MagicMock())
        # ~22 m apart across the date line, so every sample is frequent
        assert len(p.profile("AA-12-BB", samples).value.frequent_locations) == 400

    def test_spatial_index_matches_pairwise_near_pole(self) -> None:
        rng = random.Random(7)
        # Longitude spreads wildly near the pole while ground distance stays small
        points = [(89.9995 + rng.uniform(0, 0.0004), rng.uniform(-180.0, 180.0)) for _ in range(250)]
        points += [(89.99, rng.uniform(-180.0, 180.0)) for _ in range(100)]
        samples = _track(points, timedelta(seconds=30))

        indexed = RouteProfiler(RouteThresholds(spatial_index_threshold=10), sink=MagicMock())
        pairwise = RouteProfiler(RouteThresholds(spatial_index_threshold=10_000), sink=MagicMock())

        indexed_result = indexed.profile("AA-12-BB", samples).value.frequent_locations
        assert indexed_result
        assert indexed_result == pairwise.profile("AA-12-BB", samples).value.frequent_locations


class TestFailure:
    def test_failure_yields_degraded_empty_profile(self) -> None:
        sink = MagicMock()
        profiler = RouteProfiler(sink=sink)

        def broken():
            yield _sample(0.0, 0.0)
            raise RuntimeError("cursor closed")

        outcome = profiler.profile("AA-12-BB", broken())
        assert not outcome.ok
        assert outcome.value.total_distance_m == 0.0
        assert outcome.value.identifier == "AA-12-BB"
        assert "cursor closed" in outcome.error
        sink.log_error.assert_called_once()
