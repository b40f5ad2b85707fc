import io
import logging
import os
import uuid

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from sqlalchemy.orm import Session

from territory.core.config import Settings, get_settings
from territory.core.enums import RunStatus
from territory.core.errors import GridPathError, RunNotFoundError, RunStateError
from territory.db import get_db
from territory.grid import GridIndex, default_grid
from territory.models.run import Run
from territory.models.run_hex import RunHex
from territory.schemas.run import (
    FinalizeRead,
    GPSPoint,
    RunCreate,
    RunHexesRead,
    RunMetricsRead,
    RunRead,
    RunUploaded,
)
from territory.services.finalization import FinalizeResult, finalize_run, recompute_run_zones
from territory.services.track_import import parse_fit_points, parse_gpx_points

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/runs", tags=["runs"])


def _points_json(points: list[GPSPoint]) -> list[dict]:
    return [p.model_dump(mode="json") for p in points]


def _finalize_read(result: FinalizeResult) -> FinalizeRead:
    metrics = result.computed_metrics
    return FinalizeRead(
        id=result.run_id,
        status=result.status,
        computed_metrics=RunMetricsRead(**metrics.to_dict()) if metrics else None,
        reject_reason=result.reject_reason,
    )


def _get_run_or_404(db: Session, run_id: str) -> Run:
    run = db.get(Run, run_id)
    if not run:
        raise HTTPException(status_code=404, detail="Run not found")
    return run


@router.post("/", response_model=RunUploaded, status_code=201)
def upload_run(payload: RunCreate, db: Session = Depends(get_db)):
    """Store a raw run as PENDING. Metrics are computed later by finalize."""
    run_id = payload.id or str(uuid.uuid4())
    if db.get(Run, run_id) is not None:
        raise HTTPException(status_code=409, detail="Run already exists")

    run = Run(
        id=run_id,
        user_id=payload.user_id,
        status=RunStatus.pending,
        raw_data=_points_json(payload.raw_data),
        start_time=payload.start_time,
        end_time=payload.end_time,
        claimed_distance_m=payload.distance,
        claimed_duration_s=payload.duration,
        activity_type=payload.activity_type,
        polyline=payload.polyline,
        metadata_=payload.metadata,
    )
    db.add(run)
    db.commit()
    db.refresh(run)
    logger.info("Run %s uploaded by %s with %d points", run.id, run.user_id, len(payload.raw_data))

    return RunUploaded(id=run.id, status=run.status, received_at=run.created_at)


@router.post("/import", response_model=RunUploaded, status_code=201)
def import_activity(
    user_id: str = Form(...),
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
):
    """Create a PENDING run from a .gpx or .fit file."""
    filename = file.filename or "import"
    ext = os.path.splitext(filename)[1].lower()
    if ext not in [".gpx", ".fit"]:
        raise HTTPException(status_code=400, detail="Only .gpx or .fit files are supported")

    data = file.file.read()
    try:
        if ext == ".gpx":
            points = parse_gpx_points(data.decode("utf-8"))
        else:
            points = parse_fit_points(io.BytesIO(data))
    except Exception as e:
        raise HTTPException(status_code=400, detail=f"Invalid file: {e}")

    if len(points) < 2:
        raise HTTPException(status_code=422, detail="File has fewer than 2 timestamped GPS points")

    ordered = sorted(points, key=lambda p: p.time)
    run = Run(
        id=str(uuid.uuid4()),
        user_id=user_id,
        status=RunStatus.pending,
        raw_data=_points_json(points),
        start_time=ordered[0].time,
        end_time=ordered[-1].time,
        activity_type="RUN",
        metadata_={"source": ext.lstrip("."), "filename": filename},
    )
    db.add(run)
    db.commit()
    db.refresh(run)
    logger.info("Run %s imported from %s (%d points)", run.id, filename, len(points))

    return RunUploaded(id=run.id, status=run.status, received_at=run.created_at)


@router.get("/{run_id}", response_model=RunRead)
def get_run(run_id: str, db: Session = Depends(get_db)):
    run = _get_run_or_404(db, run_id)
    return RunRead.model_validate(run)


@router.post("/{run_id}/finalize", response_model=FinalizeRead)
def finalize(
    run_id: str,
    db: Session = Depends(get_db),
    grid: GridIndex = Depends(default_grid),
    settings: Settings = Depends(get_settings),
):
    """Compute authoritative metrics and accept or reject the run.

    Safe to retry: a run that is already FINALIZED or REJECTED is returned
    as stored.
    """
    try:
        result = finalize_run(db, run_id, grid=grid, settings=settings)
    except RunNotFoundError:
        raise HTTPException(status_code=404, detail="Run not found")
    except GridPathError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return _finalize_read(result)


@router.get("/{run_id}/hexes", response_model=RunHexesRead)
def get_run_hexes(run_id: str, db: Session = Depends(get_db)):
    _get_run_or_404(db, run_id)
    rows = (
        db.query(RunHex)
        .filter(RunHex.run_id == run_id)
        .order_by(RunHex.sequence_index)
        .all()
    )
    return RunHexesRead(run_id=run_id, h3_indices=[r.h3_index for r in rows])


@router.post("/{run_id}/reprocess")
def reprocess_run(
    run_id: str,
    db: Session = Depends(get_db),
    grid: GridIndex = Depends(default_grid),
    settings: Settings = Depends(get_settings),
):
    """Rebuild hexes/contributions/loop for a finalized run from its raw trace."""
    try:
        plan = recompute_run_zones(db, run_id, grid=grid, settings=settings)
    except RunNotFoundError:
        raise HTTPException(status_code=404, detail="Run not found")
    except RunStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except GridPathError as e:
        raise HTTPException(status_code=422, detail=str(e))

    return {
        "message": "Reprocessed",
        "run_id": run_id,
        "cycle_key": plan.zones.cycle_key,
        "hexes": len(plan.path),
        "zones": len(plan.zones.contributions),
        "loop_bonus_zones": len(plan.loop_bonus.contributions),
    }
