from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from territory.core.enums import ContributionSource
from territory.core.time_utils import utcnow
from territory.db import get_db
from territory.grid import GridIndex, default_grid
from territory.models.run_zone_contribution import RunZoneContribution
from territory.models.zone_ownership import ZoneOwnership
from territory.schemas.zone import (
    CurrentZonesRead,
    CycleOwnershipsRead,
    CycleRecomputeRead,
    MapZone,
    OwnedZone,
    OwnedZonesRead,
    ZoneOwnershipRead,
)
from territory.services.cycle import cycle_from_key, weekly_cycle
from territory.services.finalization import backfill_runs, recompute_cycle_ownership

router = APIRouter(prefix="/zones", tags=["zones"])


def _cycle_key(at: Optional[datetime]) -> str:
    return weekly_cycle(at or utcnow()).cycle_key


@router.get("/owned", response_model=OwnedZonesRead)
def list_owned_zones(
    user_id: str = Query(...),
    at: Optional[datetime] = Query(None),
    db: Session = Depends(get_db),
):
    """Zones `user_id` owns in the cycle containing `at` (default: now)."""
    cycle_key = _cycle_key(at)
    rows = (
        db.query(ZoneOwnership)
        .filter(ZoneOwnership.cycle_key == cycle_key)
        .filter(ZoneOwnership.owner_user_id == user_id)
        .order_by(ZoneOwnership.h3_index)
        .all()
    )
    return OwnedZonesRead(
        cycle_key=cycle_key,
        user_id=user_id,
        zones=[
            OwnedZone(
                h3_index=r.h3_index,
                owner_distance_m=r.owner_distance_m,
                tie_break_first_at=r.tie_break_first_at,
            )
            for r in rows
        ],
    )


@router.get("/ownerships/current", response_model=CycleOwnershipsRead)
def list_cycle_ownerships(
    at: Optional[datetime] = Query(None),
    h3_indices: Optional[str] = Query(None, description="Comma-separated H3 cells"),
    db: Session = Depends(get_db),
):
    cycle_key = _cycle_key(at)
    query = db.query(ZoneOwnership).filter(ZoneOwnership.cycle_key == cycle_key)

    cells = [s.strip() for s in (h3_indices or "").split(",") if s.strip()]
    if cells:
        query = query.filter(ZoneOwnership.h3_index.in_(cells))

    rows = query.order_by(ZoneOwnership.h3_index).all()
    return CycleOwnershipsRead(
        cycle_key=cycle_key,
        ownerships=[
            ZoneOwnershipRead(
                h3_index=r.h3_index,
                owner_user_id=r.owner_user_id,
                owner_distance_m=r.owner_distance_m,
                tie_break_first_at=r.tie_break_first_at,
            )
            for r in rows
        ],
    )


@router.get("/current", response_model=CurrentZonesRead)
def current_zone_map(
    user_id: str = Query(...),
    at: Optional[datetime] = Query(None),
    db: Session = Depends(get_db),
    grid: GridIndex = Depends(default_grid),
):
    """All owned zones of the cycle with their hexagon boundaries.

    `is_loop_bonus` marks cells `user_id` owns and earned a loop bonus in.
    """
    cycle_key = _cycle_key(at)
    ownerships = (
        db.query(ZoneOwnership)
        .filter(ZoneOwnership.cycle_key == cycle_key)
        .order_by(ZoneOwnership.h3_index)
        .all()
    )
    bonus_cells = {
        h3
        for (h3,) in db.query(RunZoneContribution.h3_index)
        .filter(RunZoneContribution.cycle_key == cycle_key)
        .filter(RunZoneContribution.user_id == user_id)
        .filter(RunZoneContribution.source == ContributionSource.loop_bonus)
        .distinct()
    }
    return CurrentZonesRead(
        cycle_key=cycle_key,
        zones=[
            MapZone(
                h3_index=o.h3_index,
                owner_user_id=o.owner_user_id,
                is_loop_bonus=o.owner_user_id == user_id and o.h3_index in bonus_cells,
                boundary=grid.boundary_of(o.h3_index),
            )
            for o in ownerships
        ],
    )


@router.post("/cycles/{cycle_key}/recompute", response_model=CycleRecomputeRead)
def recompute_cycle(
    cycle_key: str,
    backfill: bool = Query(False, description="Rebuild every finalized run of the cycle first"),
    db: Session = Depends(get_db),
    grid: GridIndex = Depends(default_grid),
):
    try:
        cycle_from_key(cycle_key)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    processed, failed = 0, {}
    if backfill:
        summary = backfill_runs(db, cycle_key=cycle_key, grid=grid)
        processed, failed = len(summary.processed), summary.failed
    owners = recompute_cycle_ownership(db, cycle_key)
    return CycleRecomputeRead(
        cycle_key=cycle_key,
        runs_processed=processed,
        runs_failed=failed,
        owned_zones=len(owners),
    )
