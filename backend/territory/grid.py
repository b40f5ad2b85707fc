"""Hexagonal grid primitive.

The engine only talks to the `GridIndex` protocol; `H3Grid` is the
production implementation on top of the `h3` package (v4 API). Tests can
inject any object with the same methods.
"""
from typing import Protocol, Sequence

import h3

from territory.core.errors import GridPathError


class GridIndex(Protocol):
    def cell_for(self, lat: float, lng: float, resolution: int) -> str: ...

    def path_between(self, cell_a: str, cell_b: str) -> list[str]: ...

    def boundary_of(self, cell: str) -> list[dict]: ...

    def center_of(self, cell: str) -> tuple[float, float]: ...

    def cells_in_polygon(self, ring: Sequence[tuple[float, float]], resolution: int) -> list[str]: ...


class H3Grid:
    """GridIndex backed by Uber's H3."""

    def cell_for(self, lat: float, lng: float, resolution: int) -> str:
        return h3.latlng_to_cell(lat, lng, resolution)

    def path_between(self, cell_a: str, cell_b: str) -> list[str]:
        """Shortest grid path, inclusive of both endpoints.

        Raises GridPathError naming both cells when H3 cannot connect them
        (pentagon distortion, cells too far apart, invalid index).
        """
        try:
            return list(h3.grid_path_cells(cell_a, cell_b))
        except (h3.H3BaseException, ValueError, TypeError) as e:
            raise GridPathError(cell_a, cell_b, e) from e

    def boundary_of(self, cell: str) -> list[dict]:
        return [{"latitude": lat, "longitude": lng} for lat, lng in h3.cell_to_boundary(cell)]

    def center_of(self, cell: str) -> tuple[float, float]:
        lat, lng = h3.cell_to_latlng(cell)
        return lat, lng

    def cells_in_polygon(self, ring: Sequence[tuple[float, float]], resolution: int) -> list[str]:
        # ring is [(lat, lng), ...]; LatLngPoly closes it implicitly
        outer = list(ring)
        if len(outer) > 1 and outer[0] == outer[-1]:
            outer = outer[:-1]
        if len(outer) < 3:
            return []
        poly = h3.LatLngPoly(outer)
        return list(h3.polygon_to_cells(poly, resolution))


_default_grid = H3Grid()


def default_grid() -> H3Grid:
    return _default_grid
