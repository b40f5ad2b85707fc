"""Authoritative run metrics and anti-cheat validation.

Metrics are always recomputed from the raw GPS trace; whatever the client
claimed about distance or duration is ignored.
"""
from dataclasses import asdict, dataclass
from typing import Optional, Sequence

from territory.core.constants import MAX_SPEED_MPS, MIN_DISTANCE_M, MIN_DURATION_S
from territory.core.enums import RejectReason
from territory.core.geo import point_distance_m, sort_by_time


@dataclass(frozen=True)
class RunMetrics:
    distance_m: float = 0.0
    duration_s: float = 0.0
    avg_pace_s_per_km: float = 0.0
    max_speed_m_s: float = 0.0

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "RunMetrics":
        return cls(
            distance_m=float(data.get("distance_m") or 0.0),
            duration_s=float(data.get("duration_s") or 0.0),
            avg_pace_s_per_km=float(data.get("avg_pace_s_per_km") or 0.0),
            max_speed_m_s=float(data.get("max_speed_m_s") or 0.0),
        )


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    reason: Optional[RejectReason] = None


def compute_pace_s_per_km(duration_s: float, distance_m: float) -> float:
    if distance_m <= 0:
        return 0.0
    return duration_s / (distance_m / 1000.0)


def calculate_metrics(points: Sequence) -> RunMetrics:
    """Compute distance, duration, average pace and max speed for a trace.

    - Points are sorted by time first; caller ordering is not trusted.
    - Segments with zero or negative elapsed time still add distance but are
      skipped for the speed maximum.
    - Duration is last minus first timestamp, not the sum of segment times.
    """
    if not points or len(points) < 2:
        return RunMetrics()

    ordered = sort_by_time(points)

    total_m = 0.0
    max_speed = 0.0
    for a, b in zip(ordered, ordered[1:]):
        d = point_distance_m(a, b)
        dt = (b.time - a.time).total_seconds()
        total_m += d
        if dt > 0:
            speed = d / dt
            if speed > max_speed:
                max_speed = speed

    duration_s = (ordered[-1].time - ordered[0].time).total_seconds()
    return RunMetrics(
        distance_m=total_m,
        duration_s=duration_s,
        avg_pace_s_per_km=compute_pace_s_per_km(duration_s, total_m),
        max_speed_m_s=max_speed,
    )


def validate_run(metrics: RunMetrics, points: Sequence = ()) -> ValidationResult:
    # Order matters: the first failing check is the reported reason
    if metrics.distance_m < MIN_DISTANCE_M:
        return ValidationResult(False, RejectReason.insufficient_distance)
    if metrics.duration_s < MIN_DURATION_S:
        return ValidationResult(False, RejectReason.insufficient_duration)
    if metrics.max_speed_m_s > MAX_SPEED_MPS:
        return ValidationResult(False, RejectReason.unrealistic_speed)
    return ValidationResult(True, None)
