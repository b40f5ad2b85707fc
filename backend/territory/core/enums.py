from enum import Enum


class RunStatus(str, Enum):
    pending = "PENDING"
    finalized = "FINALIZED"
    rejected = "REJECTED"


class RejectReason(str, Enum):
    insufficient_distance = "INSUFFICIENT_DISTANCE"
    insufficient_duration = "INSUFFICIENT_DURATION"
    unrealistic_speed = "UNREALISTIC_SPEED"


class ContributionSource(str, Enum):
    distance = "DISTANCE"
    loop_bonus = "LOOP_BONUS"


def enum_values(enum_cls):
    """Store enum *values* (e.g. 'PENDING') rather than member names."""
    return [e.value for e in enum_cls]
