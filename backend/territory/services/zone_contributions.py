"""Distance-weighted attribution of a run onto grid cells.

Every GPS segment's haversine distance is split evenly across the cells of
its grid path. Totals are per cell for the run's weekly cycle, with the
earliest segment start kept as `first_at` for ownership tie-breaks.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Sequence

from territory.core.errors import GridPathError
from territory.core.geo import point_distance_m, sort_by_time
from territory.grid import GridIndex
from territory.services.cycle import weekly_cycle


@dataclass(frozen=True)
class CellContribution:
    h3_index: str
    distance_m: float
    first_at: datetime


@dataclass(frozen=True)
class RunContributions:
    cycle_key: str
    cycle_start: datetime
    cycle_end: datetime
    contributions: list[CellContribution] = field(default_factory=list)

    @property
    def total_distance_m(self) -> float:
        return sum(c.distance_m for c in self.contributions)

    @property
    def h3_indices(self) -> list[str]:
        return [c.h3_index for c in self.contributions]


def _segment_cells(grid: GridIndex, a: str, b: str) -> list[str]:
    if a == b:
        return [a]
    try:
        return grid.path_between(a, b)
    except GridPathError:
        raise
    except Exception as e:
        raise GridPathError(a, b, e) from e


def compute_contributions(
    points: Sequence,
    grid: GridIndex,
    resolution: int,
    cycle_at: datetime,
) -> RunContributions:
    cycle = weekly_cycle(cycle_at)

    if not points or len(points) < 2:
        return RunContributions(cycle.cycle_key, cycle.start, cycle.end, [])

    ordered = sort_by_time(points)
    cells = [grid.cell_for(p.lat, p.lng, resolution) for p in ordered]

    # h3_index -> [distance_m, first_at]
    totals: dict[str, list] = {}
    for i in range(len(ordered) - 1):
        p1, p2 = ordered[i], ordered[i + 1]
        dist = point_distance_m(p1, p2)
        segment = _segment_cells(grid, cells[i], cells[i + 1])
        share = dist / len(segment) if segment else 0.0
        for cell in segment:
            entry = totals.get(cell)
            if entry is None:
                totals[cell] = [share, p1.time]
            else:
                entry[0] += share
                if p1.time < entry[1]:
                    entry[1] = p1.time

    contributions = [
        CellContribution(h3_index=cell, distance_m=v[0], first_at=v[1])
        for cell, v in sorted(totals.items())
    ]
    return RunContributions(cycle.cycle_key, cycle.start, cycle.end, contributions)
