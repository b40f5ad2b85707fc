import pytest

from territory.core.enums import RejectReason
from territory.services.run_metrics import RunMetrics, calculate_metrics, validate_run

from conftest import pt


def test_fewer_than_two_points_gives_zero_metrics():
    assert calculate_metrics([]) == RunMetrics()
    assert calculate_metrics([pt(0, 0)]) == RunMetrics(0.0, 0.0, 0.0, 0.0)


def test_metrics_for_equator_run():
    points = [pt(0, 0, 0), pt(0, 0.01, 600), pt(0, 0.02, 1200)]
    m = calculate_metrics(points)
    assert 2200 < m.distance_m < 2250
    assert m.duration_s == 1200
    assert m.avg_pace_s_per_km == pytest.approx(1200 / (m.distance_m / 1000))
    assert m.max_speed_m_s == pytest.approx(m.distance_m / 2 / 600, rel=1e-6)


def test_unsorted_input_is_sorted_by_time():
    ordered = [pt(0, 0, 0), pt(0, 0.01, 600), pt(0, 0.02, 1200)]
    shuffled = [ordered[2], ordered[0], ordered[1]]
    assert calculate_metrics(shuffled) == calculate_metrics(ordered)


def test_duplicate_timestamps_count_distance_but_not_speed():
    points = [pt(0, 0, 0), pt(0, 0.001, 0), pt(0, 0.002, 60)]
    m = calculate_metrics(points)
    seg = calculate_metrics([pt(0, 0.001, 0), pt(0, 0.002, 60)])
    assert m.distance_m == pytest.approx(2 * seg.distance_m, rel=1e-6)
    assert m.max_speed_m_s == pytest.approx(seg.max_speed_m_s)
    assert m.duration_s == 60


def test_duration_is_wall_clock_span():
    points = [pt(0, 0, 0), pt(0, 0.001, 30), pt(0, 0.002, 3600)]
    assert calculate_metrics(points).duration_s == 3600


def test_zero_distance_has_zero_pace():
    m = calculate_metrics([pt(1, 1, 0), pt(1, 1, 300)])
    assert m.distance_m == 0
    assert m.avg_pace_s_per_km == 0


def test_one_km_in_one_second_is_unrealistic():
    points = [pt(0, 0, 0), pt(0.009, 0, 1)]
    m = calculate_metrics(points)
    assert m.max_speed_m_s == pytest.approx(1000, rel=0.01)
    # long enough on distance, but too short on duration is checked first
    result = validate_run(m, points)
    assert result.valid is False
    assert result.reason == RejectReason.insufficient_duration


def test_speed_check_rejects_fast_segment_in_otherwise_valid_run():
    points = [pt(0, 0, 0), pt(0.009, 0, 1), pt(0.009, 0, 300)]
    result = validate_run(calculate_metrics(points), points)
    assert result.valid is False
    assert result.reason == RejectReason.unrealistic_speed


def test_one_km_in_five_minutes_is_valid():
    points = [pt(0, 0, 0), pt(0.009, 0, 300)]
    result = validate_run(calculate_metrics(points), points)
    assert result.valid is True
    assert result.reason is None


@pytest.mark.parametrize(
    "metrics, reason",
    [
        (RunMetrics(299.9, 10, 0, 100), RejectReason.insufficient_distance),
        (RunMetrics(300, 119, 0, 100), RejectReason.insufficient_duration),
        (RunMetrics(300, 120, 0, 6.51), RejectReason.unrealistic_speed),
        (RunMetrics(300, 120, 0, 6.5), None),
    ],
)
def test_validation_order_and_thresholds(metrics, reason):
    result = validate_run(metrics)
    assert result.reason == reason
    assert result.valid is (reason is None)


def test_metrics_dict_round_trip():
    m = RunMetrics(1000.0, 300.0, 300.0, 3.3)
    assert RunMetrics.from_dict(m.to_dict()) == m
