"""Turn uploaded GPX / FIT files into raw GPS traces.

Only positioned, timestamped samples are kept; everything else a device
records (elevation, heart rate, laps) is irrelevant to zone capture.
"""
from typing import Iterable

import gpxpy
from fitparse import FitFile

from territory.core.constants import SEMICIRCLES_PER_180_DEG
from territory.schemas.run import GPSPoint


def semicircles_to_degrees(val):
    return val * (180 / SEMICIRCLES_PER_180_DEG) if val is not None else None


def parse_gpx_points(text) -> list[GPSPoint]:
    """Parse GPX text (or a file object) into GPS points in file order."""
    gpx = gpxpy.parse(text)
    points: list[GPSPoint] = []
    for track in gpx.tracks:
        for segment in track.segments:
            for p in segment.points:
                if p.time is None:
                    continue
                points.append(GPSPoint(lat=p.latitude, lng=p.longitude, time=p.time))
    return points


def points_from_fit_records(records: Iterable[dict]) -> list[GPSPoint]:
    """Convert FIT 'record' message fields into GPS points.

    Records without a timestamp or a position (indoor/treadmill samples)
    are dropped.
    """
    points: list[GPSPoint] = []
    for fields in records:
        ts = fields.get("timestamp")
        lat = semicircles_to_degrees(fields.get("position_lat"))
        lon = semicircles_to_degrees(fields.get("position_long"))
        if ts is None or lat is None or lon is None:
            continue
        points.append(GPSPoint(lat=lat, lng=lon, time=ts))
    return points


def parse_fit_points(fileobj) -> list[GPSPoint]:
    ff = FitFile(fileobj)
    records = ({f.name: f.value for f in record} for record in ff.get_messages("record"))
    return points_from_fit_records(records)
