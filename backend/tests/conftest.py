import math
import os
from datetime import datetime, timedelta, timezone

# Use in-memory sqlite for tests; must be set before territory is imported
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")

import pytest  # noqa: E402

from territory.db import Base, SessionLocal, engine  # noqa: E402
from territory.models import run, run_hex, run_loop, run_zone_contribution, zone_ownership  # noqa: E402,F401
from territory.schemas.run import GPSPoint  # noqa: E402


T0 = datetime(2025, 1, 1, 10, 0, 0, tzinfo=timezone.utc)


def pt(lat, lng, seconds=0, base=T0):
    """GPS point `seconds` after `base`."""
    return GPSPoint(lat=lat, lng=lng, time=base + timedelta(seconds=seconds))


class LineGrid:
    """Deterministic 1-D grid along longitude, one cell per 0.01 degree.

    Cells are named c00000, c00001, ... so lexicographic order matches
    position. Any cell listed in `broken` makes path_between fail.
    """

    def __init__(self, broken=()):
        self.broken = set(broken)
        self.path_calls = 0

    def cell_for(self, lat, lng, resolution):
        return f"c{int(math.floor(lng * 100)):05d}"

    def path_between(self, cell_a, cell_b):
        self.path_calls += 1
        if cell_a in self.broken or cell_b in self.broken:
            raise ValueError("cells are not connected")
        i, j = int(cell_a[1:]), int(cell_b[1:])
        step = 1 if j >= i else -1
        return [f"c{k:05d}" for k in range(i, j + step, step)]

    def boundary_of(self, cell):
        i = int(cell[1:])
        return [
            {"latitude": 0.0, "longitude": i / 100},
            {"latitude": 0.0, "longitude": (i + 1) / 100},
        ]

    def center_of(self, cell):
        return 0.0, (int(cell[1:]) + 0.5) / 100

    def cells_in_polygon(self, ring, resolution):
        return []


@pytest.fixture
def line_grid():
    return LineGrid()


@pytest.fixture
def db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(db):
    from fastapi.testclient import TestClient  # noqa: WPS433
    from territory.main import app  # noqa: WPS433

    return TestClient(app)
