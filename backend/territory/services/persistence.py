"""Clear-then-insert persistence helpers.

Each helper deletes the full scope it owns and bulk-inserts the new rows.
None of them commit: callers compose them into one transaction.
"""
from datetime import datetime
from typing import Iterable, Optional, Sequence

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from territory.core.enums import ContributionSource
from territory.core.time_utils import ensure_utc
from territory.models.run_hex import RunHex
from territory.models.run_loop import RunLoop
from territory.models.run_zone_contribution import RunZoneContribution
from territory.models.zone_ownership import ZoneOwnership
from territory.services.zone_contributions import CellContribution
from territory.services.zone_ownership import ContributionRow, ZoneOwner


def replace_run_hexes(db: Session, run_id: str, h3_indices: Sequence[str]) -> None:
    db.execute(delete(RunHex).where(RunHex.run_id == run_id))
    if not h3_indices:
        return
    db.add_all(
        RunHex(run_id=run_id, sequence_index=i, h3_index=h3)
        for i, h3 in enumerate(h3_indices)
    )
    db.flush()


def replace_run_zone_contributions(
    db: Session,
    *,
    run_id: str,
    user_id: str,
    cycle_key: str,
    cycle_start: datetime,
    cycle_end: datetime,
    contributions: Iterable[CellContribution],
    source: ContributionSource = ContributionSource.distance,
) -> None:
    db.execute(
        delete(RunZoneContribution)
        .where(RunZoneContribution.run_id == run_id)
        .where(RunZoneContribution.cycle_key == cycle_key)
        .where(RunZoneContribution.source == source)
    )
    rows = [
        RunZoneContribution(
            run_id=run_id,
            user_id=user_id,
            cycle_key=cycle_key,
            cycle_start=cycle_start,
            cycle_end=cycle_end,
            h3_index=c.h3_index,
            distance_m=c.distance_m,
            first_at=c.first_at,
            source=source,
        )
        for c in contributions
    ]
    if rows:
        db.add_all(rows)
    db.flush()


def delete_run_zone_contributions(db: Session, run_id: str) -> None:
    """Drop every contribution of a run (all cycles, all sources)."""
    db.execute(delete(RunZoneContribution).where(RunZoneContribution.run_id == run_id))


def run_contribution_hexes(db: Session, run_id: str, cycle_key: str) -> list[str]:
    """Cells the run currently has contribution rows for in `cycle_key`."""
    stmt = (
        select(RunZoneContribution.h3_index)
        .where(RunZoneContribution.run_id == run_id)
        .where(RunZoneContribution.cycle_key == cycle_key)
        .distinct()
    )
    return sorted(db.scalars(stmt))


def cycle_lock_statement(cycle_key: str):
    return select(func.pg_advisory_xact_lock(func.hashtext(f"zone_ownerships:{cycle_key}")))


def lock_cycle_ownership(db: Session, cycle_key: str) -> None:
    """Serialize ownership resolution for one cycle until the transaction ends.

    Postgres only. SQLite already serializes writers.
    """
    if db.get_bind().dialect.name == "postgresql":
        db.execute(cycle_lock_statement(cycle_key))


def load_cycle_contributions(
    db: Session,
    cycle_key: str,
    h3_indices: Optional[Sequence[str]] = None,
) -> list[ContributionRow]:
    stmt = select(
        RunZoneContribution.h3_index,
        RunZoneContribution.user_id,
        RunZoneContribution.distance_m,
        RunZoneContribution.first_at,
    ).where(RunZoneContribution.cycle_key == cycle_key)
    if h3_indices is not None:
        stmt = stmt.where(RunZoneContribution.h3_index.in_(list(h3_indices)))
    return [
        ContributionRow(h3_index=h3, user_id=user_id, distance_m=float(dist), first_at=ensure_utc(first_at))
        for h3, user_id, dist, first_at in db.execute(stmt)
    ]


def replace_zone_ownerships_for_hexes(
    db: Session,
    *,
    cycle_key: str,
    cycle_start: datetime,
    cycle_end: datetime,
    owners: Sequence[ZoneOwner],
    h3_indices: Sequence[str],
) -> None:
    """Replace ownership rows of `cycle_key` for exactly `h3_indices`.

    Rows of the cycle outside that set are left alone.
    """
    if h3_indices:
        db.execute(
            delete(ZoneOwnership)
            .where(ZoneOwnership.cycle_key == cycle_key)
            .where(ZoneOwnership.h3_index.in_(list(h3_indices)))
        )
    if owners:
        db.add_all(
            ZoneOwnership(
                cycle_key=cycle_key,
                cycle_start=cycle_start,
                cycle_end=cycle_end,
                h3_index=o.h3_index,
                owner_user_id=o.owner_user_id,
                owner_distance_m=o.owner_distance_m,
                tie_break_first_at=o.tie_break_first_at,
            )
            for o in owners
        )
    db.flush()


def upsert_run_loop(
    db: Session,
    *,
    run_id: str,
    cycle_key: str,
    loop_start_index: int,
    loop_end_index: int,
    boundary_hexes: Sequence[str],
    enclosed_hexes: Sequence[str],
) -> RunLoop:
    row = db.get(RunLoop, run_id)
    if row is None:
        row = RunLoop(run_id=run_id)
        db.add(row)
    row.cycle_key = cycle_key
    row.loop_start_index = loop_start_index
    row.loop_end_index = loop_end_index
    row.boundary_hexes = list(boundary_hexes)
    row.enclosed_hexes = list(enclosed_hexes)
    db.flush()
    return row


def delete_run_loop(db: Session, run_id: str) -> None:
    db.execute(delete(RunLoop).where(RunLoop.run_id == run_id))
