"""Run finalization and zone recomputation.

Orchestrates the pure engine functions against the database:

- finalize_run: PENDING -> FINALIZED | REJECTED, once. Hex path,
  contributions, loop bonus and (optionally) ownership of the touched cells
  are written in the same transaction as the status change.
- recompute_run_zones / backfill_runs: rebuild the derived rows of
  already-finalized runs (repairs, migrations, resolution changes).
- recompute_cycle_ownership: rebuild zone_ownerships from contributions.

Everything derived from the GPS trace is computed before the first write,
so a grid failure never leaves a half-finalized run behind.
"""
import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from territory.core.config import Settings, settings as default_settings
from territory.core.enums import ContributionSource, RejectReason, RunStatus
from territory.core.errors import GridPathError, RunNotFoundError, RunStateError
from territory.core.time_utils import utcnow
from territory.grid import GridIndex, default_grid
from territory.models.run import Run
from territory.schemas.run import GPSPoint
from territory.services import persistence
from territory.services.cycle import CycleWindow, cycle_from_key, weekly_cycle
from territory.services.loops import LoopBonus, compute_loop_bonus
from territory.services.run_hexes import gps_to_path
from territory.services.run_metrics import RunMetrics, calculate_metrics, validate_run
from territory.services.zone_contributions import RunContributions, compute_contributions
from territory.services.zone_ownership import ZoneOwner, resolve_owners

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FinalizeResult:
    run_id: str
    status: RunStatus
    computed_metrics: Optional[RunMetrics] = None
    reject_reason: Optional[RejectReason] = None

    @classmethod
    def from_run(cls, run: Run) -> "FinalizeResult":
        metrics = RunMetrics.from_dict(run.computed_metrics) if run.computed_metrics else None
        return cls(run.id, run.status, metrics, run.reject_reason)


@dataclass(frozen=True)
class RunZonePlan:
    """Everything a run contributes to the grid, computed in memory."""

    path: list[str]
    zones: RunContributions
    loop_bonus: LoopBonus

    @property
    def touched_hexes(self) -> list[str]:
        cells = set(self.zones.h3_indices)
        cells.update(c.h3_index for c in self.loop_bonus.contributions)
        return sorted(cells)


@dataclass
class BackfillSummary:
    processed: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)
    cycles: list[str] = field(default_factory=list)


def load_points(run: Run) -> list[GPSPoint]:
    return [GPSPoint.model_validate(p) for p in (run.raw_data or [])]


def run_cycle_at(points: Sequence[GPSPoint], run: Run):
    """The instant that decides a run's cycle: its last GPS timestamp."""
    if points:
        return max(p.time for p in points)
    return run.end_time or run.created_at


def plan_run_zones(run: Run, points: Sequence[GPSPoint], grid: GridIndex, cfg: Settings) -> RunZonePlan:
    resolution = cfg.h3_resolution
    cycle_at = run_cycle_at(points, run)
    path = gps_to_path(points, grid, resolution)
    zones = compute_contributions(points, grid, resolution, cycle_at)
    bonus = compute_loop_bonus(
        path,
        grid,
        resolution,
        enabled=cfg.loop_master_enabled,
        min_loop_length=cfg.min_loop_length,
        bonus_meters_per_hex=cfg.bonus_meters_per_hex,
        awarded_at=cycle_at,
    )
    return RunZonePlan(path=path, zones=zones, loop_bonus=bonus)


def _resolve_ownership(db: Session, cycle: CycleWindow, h3_indices: Optional[Sequence[str]]) -> list[ZoneOwner]:
    # Later resolvers of the same cycle wait here and then read every committed contribution
    persistence.lock_cycle_ownership(db, cycle.cycle_key)
    rows = persistence.load_cycle_contributions(db, cycle.cycle_key, h3_indices)
    owners = resolve_owners(rows)
    scope = list(h3_indices) if h3_indices is not None else [o.h3_index for o in owners]
    persistence.replace_zone_ownerships_for_hexes(
        db,
        cycle_key=cycle.cycle_key,
        cycle_start=cycle.start,
        cycle_end=cycle.end,
        owners=owners,
        h3_indices=scope,
    )
    return owners


def apply_run_zones(db: Session, run: Run, plan: RunZonePlan, *, resolve_ownership: bool) -> None:
    """Write a plan's rows for `run`. Does not commit."""
    zones = plan.zones
    # Cells this run used to touch lose its contribution; their owners must be re-resolved too
    previous = persistence.run_contribution_hexes(db, run.id, zones.cycle_key) if resolve_ownership else []
    persistence.replace_run_hexes(db, run.id, plan.path)
    for source, contributions in (
        (ContributionSource.distance, zones.contributions),
        (ContributionSource.loop_bonus, plan.loop_bonus.contributions),
    ):
        persistence.replace_run_zone_contributions(
            db,
            run_id=run.id,
            user_id=run.user_id,
            cycle_key=zones.cycle_key,
            cycle_start=zones.cycle_start,
            cycle_end=zones.cycle_end,
            contributions=contributions,
            source=source,
        )

    loop = plan.loop_bonus.loop
    if loop is None:
        persistence.delete_run_loop(db, run.id)
    else:
        persistence.upsert_run_loop(
            db,
            run_id=run.id,
            cycle_key=zones.cycle_key,
            loop_start_index=loop.loop_start_index,
            loop_end_index=loop.loop_end_index,
            boundary_hexes=loop.boundary_hexes,
            enclosed_hexes=plan.loop_bonus.enclosed_hexes,
        )

    scope = sorted(set(previous) | set(plan.touched_hexes))
    if resolve_ownership and scope:
        cycle = CycleWindow(zones.cycle_key, zones.cycle_start, zones.cycle_end)
        _resolve_ownership(db, cycle, scope)


def finalize_run(
    db: Session,
    run_id: str,
    *,
    grid: Optional[GridIndex] = None,
    settings: Optional[Settings] = None,
) -> FinalizeResult:
    """Finalize a PENDING run; a terminal run is returned untouched."""
    grid = grid or default_grid()
    cfg = settings or default_settings

    run = db.get(Run, run_id)
    if run is None:
        raise RunNotFoundError(run_id)
    if run.status != RunStatus.pending:
        logger.debug("Run %s already %s; finalize is a no-op", run_id, run.status.value)
        return FinalizeResult.from_run(run)

    points = load_points(run)
    metrics = calculate_metrics(points)
    verdict = validate_run(metrics, points)

    plan = None
    if verdict.valid:
        try:
            plan = plan_run_zones(run, points, grid, cfg)
        except GridPathError as e:
            logger.warning("Run %s: zone computation failed (%s -> %s); run stays PENDING", run_id, e.cell_a, e.cell_b)
            raise

    new_status = RunStatus.finalized if verdict.valid else RunStatus.rejected
    try:
        # Only a PENDING row may transition; a concurrent finalize that got
        # there first makes this update match nothing.
        result = db.execute(
            update(Run)
            .where(Run.id == run_id)
            .where(Run.status == RunStatus.pending)
            .values(
                status=new_status,
                reject_reason=verdict.reason,
                computed_metrics=metrics.to_dict(),
                finalized_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            db.rollback()
            run = db.get(Run, run_id)
            logger.info("Run %s was finalized concurrently; returning stored state", run_id)
            return FinalizeResult.from_run(run)

        if plan is not None:
            apply_run_zones(db, run, plan, resolve_ownership=cfg.recompute_ownership_on_finalize)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(run)
    if verdict.valid:
        logger.info(
            "Run %s FINALIZED: %.0f m, %d hexes, cycle %s",
            run_id, metrics.distance_m, len(plan.path), plan.zones.cycle_key,
        )
    else:
        logger.info("Run %s REJECTED: %s", run_id, verdict.reason.value)
    return FinalizeResult.from_run(run)


def recompute_run_zones(
    db: Session,
    run_id: str,
    *,
    grid: Optional[GridIndex] = None,
    settings: Optional[Settings] = None,
    resolve_ownership: bool = True,
) -> RunZonePlan:
    """Rebuild hexes, contributions and loop of a FINALIZED run."""
    grid = grid or default_grid()
    cfg = settings or default_settings

    run = db.get(Run, run_id)
    if run is None:
        raise RunNotFoundError(run_id)
    if run.status != RunStatus.finalized:
        raise RunStateError(f"Run {run_id} is {run.status.value}; only FINALIZED runs can be recomputed")

    plan = plan_run_zones(run, load_points(run), grid, cfg)
    try:
        apply_run_zones(db, run, plan, resolve_ownership=resolve_ownership)
        db.commit()
    except Exception:
        db.rollback()
        raise
    return plan


def recompute_cycle_ownership(
    db: Session,
    cycle_key: str,
    h3_indices: Optional[Sequence[str]] = None,
) -> list[ZoneOwner]:
    """Resolve owners for a cycle from every stored contribution.

    Only ownership rows for the resolved cells (or the given `h3_indices`)
    are replaced.
    """
    cycle = cycle_from_key(cycle_key)
    try:
        owners = _resolve_ownership(db, cycle, h3_indices)
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("Cycle %s: %d owned zones recomputed", cycle_key, len(owners))
    return owners


def backfill_runs(
    db: Session,
    *,
    run_ids: Optional[Sequence[str]] = None,
    cycle_key: Optional[str] = None,
    grid: Optional[GridIndex] = None,
    settings: Optional[Settings] = None,
) -> BackfillSummary:
    """Recompute derived rows for finalized runs, then ownership of the cells they touch.

    Cells a run used to contribute to are re-resolved as well.
    One transaction per run. A run whose grid path can't be built is
    skipped and reported in `failed`; other errors propagate.
    """
    grid = grid or default_grid()
    cfg = settings or default_settings
    if cycle_key is not None:
        cycle_from_key(cycle_key)

    stmt = select(Run.id).where(Run.status == RunStatus.finalized).order_by(Run.id)
    if run_ids is not None:
        stmt = stmt.where(Run.id.in_(list(run_ids)))
    ids = list(db.scalars(stmt))

    summary = BackfillSummary()
    # cycle_key -> cells whose contributions were rebuilt (before and after)
    scopes: dict[str, set[str]] = {}
    for run_id in ids:
        run = db.get(Run, run_id)
        points = load_points(run)
        run_cycle = weekly_cycle(run_cycle_at(points, run)).cycle_key
        if cycle_key is not None and run_cycle != cycle_key:
            continue
        try:
            previous = persistence.run_contribution_hexes(db, run.id, run_cycle)
            plan = plan_run_zones(run, points, grid, cfg)
            apply_run_zones(db, run, plan, resolve_ownership=False)
            db.commit()
        except GridPathError as e:
            db.rollback()
            logger.warning("Backfill: run %s skipped: %s", run_id, e)
            summary.failed[run_id] = str(e)
            continue
        except Exception:
            db.rollback()
            logger.exception("Backfill: run %s failed", run_id)
            raise
        summary.processed.append(run_id)
        scopes.setdefault(run_cycle, set()).update(previous, plan.touched_hexes)

    for key in sorted(scopes):
        recompute_cycle_ownership(db, key, sorted(scopes[key]))
    summary.cycles = sorted(scopes)
    logger.info(
        "Backfill done: %d runs processed, %d failed, cycles=%s",
        len(summary.processed), len(summary.failed), summary.cycles,
    )
    return summary
