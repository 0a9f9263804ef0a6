import pytest

from fleet_intel.schemas.config import AnalyticsConfig
from fleet_intel.schemas.metrics import VehicleState
from fleet_intel.services.base_metrics import (
    classify_vehicle_state,
    compute_base_metrics,
    is_stop_transition,
    validate_track,
)
from fleet_intel.services.geo import haversine_distance
from fleet_intel.services.timeutils import get_duration_minutes
from tests.factories import make_point, make_track, ts


class TestClassifyVehicleState:
    def test_ignition_off_is_off_regardless_of_speed(self):
        assert classify_vehicle_state(make_point(0, speed=80, ignition_on=False), AnalyticsConfig()) == VehicleState.OFF

    def test_below_idle_threshold_is_idle(self):
        assert classify_vehicle_state(make_point(0, speed=1.9), AnalyticsConfig()) == VehicleState.IDLE

    def test_at_idle_threshold_is_moving(self):
        assert classify_vehicle_state(make_point(0, speed=2.0), AnalyticsConfig()) == VehicleState.MOVING

    def test_stop_transitions(self):
        assert is_stop_transition(VehicleState.MOVING, VehicleState.IDLE)
        assert is_stop_transition(VehicleState.MOVING, VehicleState.OFF)
        assert not is_stop_transition(VehicleState.IDLE, VehicleState.OFF)
        assert not is_stop_transition(VehicleState.OFF, VehicleState.MOVING)


class TestDegenerateTracks:
    def test_empty_track_keeps_declared_duration(self):
        metrics = compute_base_metrics(make_track([], end_minute=120))

        assert metrics.total_time_minutes == 120
        assert metrics.total_distance_km == 0
        assert metrics.total_points_analyzed == 0
        assert metrics.long_idle_events == ()

    def test_single_point_with_ignition_on(self):
        metrics = compute_base_metrics(make_track([make_point(0, speed=42)]))

        assert metrics.max_speed_kmh == 42
        assert metrics.total_points_analyzed == 1
        assert metrics.total_moving_time_minutes == 0

    def test_single_point_with_ignition_off(self):
        metrics = compute_base_metrics(make_track([make_point(0, speed=42, ignition_on=False)]))
        assert metrics.max_speed_kmh == 0

    def test_reversed_declared_bounds_give_zero_time(self):
        metrics = compute_base_metrics(make_track([make_point(0, speed=30)], start_minute=60, end_minute=0))
        assert metrics.total_time_minutes == 0


class TestSegmentAttribution:
    def test_segments_follow_state_of_earlier_point(self):
        points = [
            make_point(0, speed=50),
            make_point(5, speed=0),
            make_point(15, ignition_on=False),
            make_point(20, speed=40),
            make_point(30, speed=40),
        ]
        metrics = compute_base_metrics(make_track(points))

        assert metrics.total_moving_time_minutes == pytest.approx(15)
        assert metrics.total_idle_time_minutes == pytest.approx(10)
        assert metrics.number_of_stops == 1
        assert metrics.total_points_analyzed == 5

    def test_moving_to_off_counts_as_stop(self):
        points = [make_point(0, speed=50), make_point(10, ignition_on=False), make_point(20, speed=50)]
        metrics = compute_base_metrics(make_track(points))

        assert metrics.number_of_stops == 1
        assert metrics.total_moving_time_minutes == pytest.approx(10)

    def test_distance_only_from_moving_segments(self):
        points = [
            make_point(0, speed=60, lat=0, lon=0),
            make_point(60, speed=0, lat=0, lon=1),
            make_point(70, speed=0, lat=0, lon=2),
        ]
        metrics = compute_base_metrics(make_track(points, end_minute=70))

        one_degree = haversine_distance(0, 0, 0, 1)
        assert metrics.total_distance_km == pytest.approx(one_degree)
        assert metrics.average_speed_kmh == pytest.approx(one_degree)

    def test_out_of_order_timestamps_add_no_time(self):
        points = [make_point(10, speed=50), make_point(0, speed=50)]
        metrics = compute_base_metrics(make_track(points))

        assert metrics.total_moving_time_minutes == 0
        assert metrics.average_speed_kmh == 0

    def test_max_speed_ignores_ignition_off_points(self):
        points = [make_point(0, speed=150, ignition_on=False), make_point(5, speed=40), make_point(10, speed=20)]
        assert compute_base_metrics(make_track(points)).max_speed_kmh == 40

    def test_operational_time_never_exceeds_point_span(self):
        points = [make_point(0, speed=50), make_point(5, speed=0), make_point(30, speed=70), make_point(45, speed=0)]
        metrics = compute_base_metrics(make_track(points))
        assert metrics.total_moving_time_minutes + metrics.total_idle_time_minutes <= 45

    def test_every_segment_is_attributed_to_one_state(self):
        points = [
            make_point(0, speed=50),
            make_point(5, speed=0),
            make_point(15, speed=0, ignition_on=False),
            make_point(20, speed=60),
            make_point(30, speed=60),
        ]
        metrics = compute_base_metrics(make_track(points))
        off_time = sum(
            get_duration_minutes(a.timestamp, b.timestamp) for a, b in zip(points, points[1:]) if not a.ignition_on
        )

        assert metrics.total_moving_time_minutes == pytest.approx(15)
        assert metrics.total_idle_time_minutes == pytest.approx(10)
        assert off_time == pytest.approx(5)
        total = metrics.total_moving_time_minutes + metrics.total_idle_time_minutes + off_time
        assert total == pytest.approx(get_duration_minutes(points[0].timestamp, points[-1].timestamp))


class TestLongIdleEvents:
    def test_idle_run_reaching_threshold_becomes_event(self):
        points = [
            make_point(0, speed=50),
            make_point(5, speed=0),
            make_point(10, speed=1),
            make_point(20, speed=0),
            make_point(25, speed=50),
        ]
        metrics = compute_base_metrics(make_track(points))

        assert len(metrics.long_idle_events) == 1
        event = metrics.long_idle_events[0]
        assert event.start_time == ts(5)
        assert event.end_time == ts(25)
        assert event.duration_minutes == pytest.approx(20)
        assert metrics.total_idle_time_minutes == pytest.approx(20)

    def test_idle_run_open_at_track_end_is_closed_at_last_point(self):
        points = [make_point(0, speed=50), make_point(5, speed=0), make_point(20, speed=0)]
        metrics = compute_base_metrics(make_track(points))

        assert len(metrics.long_idle_events) == 1
        assert metrics.long_idle_events[0].end_time == ts(20)
        assert metrics.long_idle_events[0].duration_minutes == pytest.approx(15)

    def test_idle_run_from_first_point(self):
        points = [make_point(0, speed=0), make_point(12, speed=0), make_point(15, speed=30)]
        metrics = compute_base_metrics(make_track(points))

        assert metrics.long_idle_events[0].start_time == ts(0)
        assert metrics.long_idle_events[0].end_time == ts(15)
        assert metrics.long_idle_events[0].duration_minutes == pytest.approx(15)

    def test_short_idle_run_is_not_an_event(self):
        points = [make_point(0, speed=50), make_point(5, speed=0), make_point(10, speed=50)]
        metrics = compute_base_metrics(make_track(points))

        assert metrics.long_idle_events == ()
        assert metrics.total_idle_time_minutes == pytest.approx(5)

    def test_event_location_is_centroid_of_idle_samples(self):
        points = [
            make_point(0, speed=0, lat=10.0, lon=20.0),
            make_point(10, speed=0, lat=10.0, lon=20.0),
            make_point(20, speed=50, lat=10.0, lon=20.0),
        ]
        location = compute_base_metrics(make_track(points)).long_idle_events[0].location

        assert location.lat == pytest.approx(10.0)
        assert location.lng == pytest.approx(20.0)

    def test_threshold_is_configurable(self):
        points = [make_point(0, speed=0), make_point(5, speed=0), make_point(6, speed=40)]
        config = AnalyticsConfig(long_idle_threshold_minutes=5)
        assert len(compute_base_metrics(make_track(points), config).long_idle_events) == 1


class TestIdempotence:
    def test_same_track_gives_identical_metrics(self):
        points = [make_point(i * 5, speed=(i * 17) % 90) for i in range(12)]
        track = make_track(points)
        assert compute_base_metrics(track) == compute_base_metrics(track)


class TestValidateTrack:
    def test_valid(self):
        assert validate_track(make_track([make_point(0), make_point(1)])) == (True, "Track is valid")

    def test_empty(self):
        valid, message = validate_track(make_track([]))
        assert not valid
        assert "Empty" in message

    def test_single_point(self):
        valid, message = validate_track(make_track([make_point(0)]))
        assert not valid
        assert "Insufficient" in message
