from datetime import datetime, timezone

import pytest

from territory.core.errors import GridPathError
from territory.core.geo import point_distance_m
from territory.grid import H3Grid
from territory.services.zone_contributions import compute_contributions

from conftest import LineGrid, T0, pt

RES = 8
CYCLE_AT = datetime(2025, 12, 22, 12, 0, tzinfo=timezone.utc)


def test_fewer_than_two_points_touch_nothing(line_grid):
    result = compute_contributions([pt(0, 0.005)], line_grid, RES, CYCLE_AT)
    assert result.cycle_key == "2025-12-22"
    assert result.contributions == []


def test_segment_distance_is_split_evenly_across_path(line_grid):
    a, b = pt(0, 0.005, 0), pt(0, 0.035, 600)
    result = compute_contributions([a, b], line_grid, RES, CYCLE_AT)
    d = point_distance_m(a, b)
    assert [c.h3_index for c in result.contributions] == ["c00000", "c00001", "c00002", "c00003"]
    for c in result.contributions:
        assert c.distance_m == pytest.approx(d / 4)
        assert c.first_at == a.time
    assert result.total_distance_m == pytest.approx(d)


def test_same_cell_segment_goes_to_that_cell(line_grid):
    a, b = pt(0, 0.011, 0), pt(0, 0.019, 60)
    result = compute_contributions([a, b], line_grid, RES, CYCLE_AT)
    assert len(result.contributions) == 1
    assert result.contributions[0].h3_index == "c00001"
    assert result.contributions[0].distance_m == pytest.approx(point_distance_m(a, b))


def test_first_at_is_earliest_segment_start(line_grid):
    points = [pt(0, 0.005, 0), pt(0, 0.015, 60), pt(0, 0.005, 120)]
    result = compute_contributions(list(reversed(points)), line_grid, RES, CYCLE_AT)
    by_cell = {c.h3_index: c for c in result.contributions}
    assert by_cell["c00000"].first_at == T0
    assert by_cell["c00001"].first_at == T0
    # each cell got half of both segments
    total = point_distance_m(points[0], points[1]) + point_distance_m(points[1], points[2])
    assert by_cell["c00000"].distance_m == pytest.approx(total / 2)
    assert by_cell["c00001"].distance_m == pytest.approx(total / 2)


def test_output_sorted_by_cell(line_grid):
    points = [pt(0, 0.045, 0), pt(0, 0.005, 600)]
    result = compute_contributions(points, line_grid, RES, CYCLE_AT)
    cells = [c.h3_index for c in result.contributions]
    assert cells == sorted(cells)


def test_cycle_window_comes_from_cycle_at(line_grid):
    result = compute_contributions(
        [pt(0, 0.005, 0), pt(0, 0.015, 60)],
        line_grid,
        RES,
        datetime(2025, 12, 29, 0, 0, tzinfo=timezone.utc),
    )
    assert result.cycle_key == "2025-12-29"
    assert result.cycle_start == datetime(2025, 12, 29, tzinfo=timezone.utc)
    assert result.cycle_end == datetime(2026, 1, 5, tzinfo=timezone.utc)


def test_grid_failure_propagates():
    grid = LineGrid(broken={"c00002"})
    with pytest.raises(GridPathError):
        compute_contributions([pt(0, 0.005, 0), pt(0, 0.025, 60)], grid, RES, CYCLE_AT)


def test_h3_two_point_run_conserves_distance_and_is_deterministic():
    grid = H3Grid()
    a = pt(12.9716, 77.5946, 0)
    b = pt(12.9850, 77.6100, 600)
    first = compute_contributions([a, b], grid, RES, CYCLE_AT)
    second = compute_contributions([a, b], grid, RES, CYCLE_AT)
    assert first == second
    assert len(first.contributions) > 1
    assert first.total_distance_m == pytest.approx(point_distance_m(a, b), rel=1e-9)
    assert all(c.distance_m >= 0 for c in first.contributions)
