from dataclasses import dataclass
from datetime import datetime
from typing import Iterable


@dataclass(frozen=True)
class ContributionRow:
    h3_index: str
    user_id: str
    distance_m: float
    first_at: datetime


@dataclass(frozen=True)
class ZoneOwner:
    h3_index: str
    owner_user_id: str
    owner_distance_m: float
    tie_break_first_at: datetime


def _candidate_key(c: ContributionRow):
    # distance desc, then earliest first_at, then user id
    return (-c.distance_m, c.first_at, c.user_id)


def resolve_owners(rows: Iterable[ContributionRow]) -> list[ZoneOwner]:
    """Pick one owner per cell from all contribution rows of a cycle.

    The caller must pass every row for the cycle (all runs, all users) for
    the cells being resolved; cells without rows get no owner.
    """
    by_zone_user: dict[tuple[str, str], ContributionRow] = {}
    for row in rows:
        key = (row.h3_index, row.user_id)
        existing = by_zone_user.get(key)
        if existing is None:
            by_zone_user[key] = ContributionRow(row.h3_index, row.user_id, row.distance_m, row.first_at)
            continue
        by_zone_user[key] = ContributionRow(
            h3_index=row.h3_index,
            user_id=row.user_id,
            distance_m=existing.distance_m + row.distance_m,
            first_at=min(existing.first_at, row.first_at),
        )

    candidates_by_zone: dict[str, list[ContributionRow]] = {}
    for entry in by_zone_user.values():
        candidates_by_zone.setdefault(entry.h3_index, []).append(entry)

    owners = []
    for h3_index in sorted(candidates_by_zone):
        winner = min(candidates_by_zone[h3_index], key=_candidate_key)
        owners.append(
            ZoneOwner(
                h3_index=h3_index,
                owner_user_id=winner.user_id,
                owner_distance_m=winner.distance_m,
                tie_break_first_at=winner.first_at,
            )
        )
    return owners
