"""GPS trace -> continuous H3 traversal path.

Each point is mapped to a cell; gaps between consecutive distinct cells are
filled with the grid's shortest path so the result never jumps between
non-neighbouring cells. Only adjacent duplicates are collapsed: a runner who
comes back to a cell later shows up there twice.
"""
import logging
from typing import Sequence

from territory.core.errors import GridPathError
from territory.core.geo import sort_by_time
from territory.grid import GridIndex

logger = logging.getLogger(__name__)


def dedupe_sequential(cells: Sequence[str]) -> list[str]:
    out: list[str] = []
    for cell in cells:
        if not out or out[-1] != cell:
            out.append(cell)
    return out


def gps_to_path(points: Sequence, grid: GridIndex, resolution: int) -> list[str]:
    if not points:
        return []

    ordered = sort_by_time(points)
    point_cells = [grid.cell_for(p.lat, p.lng, resolution) for p in ordered]

    path = [point_cells[0]]
    for a, b in zip(point_cells, point_cells[1:]):
        if a == b:
            continue
        try:
            segment = grid.path_between(a, b)
        except GridPathError:
            logger.warning("No grid path between %s and %s", a, b)
            raise
        except Exception as e:
            logger.warning("No grid path between %s and %s: %s", a, b, e)
            raise GridPathError(a, b, e) from e
        # path_between includes both endpoints; `a` is already in the path
        path.extend(segment[1:])

    return dedupe_sequential(path)
