from datetime import datetime, timezone

import pytest

from territory.services.track_import import (
    parse_gpx_points,
    points_from_fit_records,
    semicircles_to_degrees,
)

GPX = """<?xml version="1.0" encoding="UTF-8"?>
<gpx version="1.1" creator="test" xmlns="http://www.topografix.com/GPX/1/1">
  <trk><trkseg>
    <trkpt lat="51.5" lon="-0.12"><time>2025-01-01T10:00:00Z</time></trkpt>
    <trkpt lat="51.501" lon="-0.121"></trkpt>
    <trkpt lat="51.502" lon="-0.122"><time>2025-01-01T10:01:00Z</time></trkpt>
  </trkseg></trk>
</gpx>
"""


def test_semicircles():
    assert semicircles_to_degrees(None) is None
    assert semicircles_to_degrees(2**30) == pytest.approx(90.0)
    assert semicircles_to_degrees(-(2**31)) == pytest.approx(-180.0)


def test_gpx_skips_untimed_points():
    points = parse_gpx_points(GPX)
    assert [(p.lat, p.lng) for p in points] == [(51.5, -0.12), (51.502, -0.122)]
    assert points[0].time == datetime(2025, 1, 1, 10, 0, tzinfo=timezone.utc)
    assert points[1].time.tzinfo is not None


def test_fit_records_need_position_and_timestamp():
    ts = datetime(2025, 1, 1, 10, 0)
    records = [
        {"timestamp": ts, "position_lat": 2**30, "position_long": 2**29},
        {"timestamp": ts, "heart_rate": 150},  # treadmill sample
        {"position_lat": 2**30, "position_long": 2**29},
    ]
    points = points_from_fit_records(records)
    assert len(points) == 1
    assert points[0].lat == pytest.approx(90.0)
    assert points[0].lng == pytest.approx(45.0)
    # naive FIT timestamps are UTC
    assert points[0].time == datetime(2025, 1, 1, 10, 0, tzinfo=timezone.utc)
