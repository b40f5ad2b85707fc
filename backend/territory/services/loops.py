"""Loop bonus ("loop master").

A run earns a LOOP_BONUS when its hex path closes a loop: the first time
it revisits a cell at least `min_loop_length` steps after last passing it.
Every cell strictly inside that loop is credited a flat bonus distance.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Sequence

from territory.grid import GridIndex
from territory.services.zone_contributions import CellContribution


@dataclass(frozen=True)
class DetectedLoop:
    loop_start_index: int
    loop_end_index: int
    boundary_hexes: list[str]


@dataclass(frozen=True)
class LoopBonus:
    loop: Optional[DetectedLoop]
    enclosed_hexes: list[str]
    contributions: list[CellContribution]


def detect_first_loop(path: Sequence[str], min_loop_length: int) -> Optional[DetectedLoop]:
    last_seen: dict[str, int] = {}
    for j, cell in enumerate(path):
        i = last_seen.get(cell)
        if i is not None and j - i >= min_loop_length:
            return DetectedLoop(loop_start_index=i, loop_end_index=j, boundary_hexes=list(path[i:j + 1]))
        last_seen[cell] = j
    return None


def compute_enclosed_hexes(boundary_hexes: Sequence[str], grid: GridIndex, resolution: int) -> list[str]:
    if len(boundary_hexes) < 4:
        return []

    # Cell centres as polygon vertices, closed ring
    ring = [grid.center_of(cell) for cell in boundary_hexes]
    if ring[0] != ring[-1]:
        ring.append(ring[0])

    boundary = set(boundary_hexes)
    filled = grid.cells_in_polygon(ring, resolution)
    return sorted(c for c in set(filled) if c not in boundary)


def compute_loop_bonus(
    path: Sequence[str],
    grid: GridIndex,
    resolution: int,
    *,
    enabled: bool,
    min_loop_length: int,
    bonus_meters_per_hex: float,
    awarded_at: datetime,
) -> LoopBonus:
    if not enabled:
        return LoopBonus(None, [], [])

    loop = detect_first_loop(path, min_loop_length)
    if loop is None:
        return LoopBonus(None, [], [])

    enclosed = compute_enclosed_hexes(loop.boundary_hexes, grid, resolution)
    contributions = [
        CellContribution(h3_index=cell, distance_m=float(bonus_meters_per_hex), first_at=awarded_at)
        for cell in enclosed
    ]
    return LoopBonus(loop, enclosed, contributions)
