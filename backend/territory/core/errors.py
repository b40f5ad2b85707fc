"""Engine error taxonomy.

Anti-cheat rejections are not errors: they end up as REJECTED runs with a
reject_reason. Everything here is a genuine failure of the computation or a
bad request against the store.
"""


class TerritoryError(Exception):
    """Base class for engine errors."""


class GridPathError(TerritoryError):
    """The grid primitive could not connect two GPS-derived cells."""

    def __init__(self, cell_a: str, cell_b: str, cause: Exception | None = None):
        self.cell_a = cell_a
        self.cell_b = cell_b
        msg = f"Failed to compute H3 grid path from {cell_a} to {cell_b}"
        if cause is not None:
            msg = f"{msg}: {cause}"
        super().__init__(msg)


class RunNotFoundError(TerritoryError):
    def __init__(self, run_id: str):
        self.run_id = run_id
        super().__init__(f"Run not found: {run_id}")


class DuplicateRunError(TerritoryError):
    def __init__(self, run_id: str):
        self.run_id = run_id
        super().__init__(f"Run already exists: {run_id}")


class RunStateError(TerritoryError):
    """Operation not allowed for the run's current status."""
