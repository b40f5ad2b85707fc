from datetime import datetime, timezone

import h3

from territory.core.enums import ContributionSource, RunStatus
from territory.models.run import Run
from territory.models.run_zone_contribution import RunZoneContribution
from territory.models.zone_ownership import ZoneOwnership
from territory.services.cycle import cycle_from_key

from test_api_runs import RUN_POINTS, run_payload

AT = "2025-01-01T12:00:00Z"


def finalize(client, run_id, user_id, points=RUN_POINTS):
    client.post("/runs/", json=run_payload(run_id=run_id, user_id=user_id, points=points))
    return client.post(f"/runs/{run_id}/finalize").json()


def test_owned_zones_after_finalize(client):
    finalize(client, "r1", "u1")
    cells = client.get("/runs/r1/hexes").json()["h3_indices"]

    data = client.get("/zones/owned", params={"user_id": "u1", "at": AT}).json()
    assert data["cycle_key"] == "2024-12-30"
    owned = {z["h3_index"] for z in data["zones"]}
    assert owned == set(cells)
    assert all(z["owner_distance_m"] > 0 for z in data["zones"])

    other = client.get("/zones/owned", params={"user_id": "u2", "at": AT}).json()
    assert other["zones"] == []


def test_other_cycle_is_empty(client):
    finalize(client, "r1", "u1")
    data = client.get("/zones/owned", params={"user_id": "u1", "at": "2025-01-08T12:00:00Z"}).json()
    assert data["cycle_key"] == "2025-01-06"
    assert data["zones"] == []


def test_longer_run_takes_over_shared_cells(client):
    finalize(client, "r1", "u1")
    # same street, covered twice by u2 an hour earlier
    there_and_back = [
        {"lat": 0.0, "lng": 0.0, "time": "2025-01-01T09:00:00Z"},
        {"lat": 0.0, "lng": 0.01, "time": "2025-01-01T09:10:00Z"},
        {"lat": 0.0, "lng": 0.02, "time": "2025-01-01T09:20:00Z"},
        {"lat": 0.0, "lng": 0.01, "time": "2025-01-01T09:30:00Z"},
        {"lat": 0.0, "lng": 0.0, "time": "2025-01-01T09:40:00Z"},
    ]
    finalize(client, "r2", "u2", points=there_and_back)

    data = client.get("/zones/ownerships/current", params={"at": AT}).json()
    owners = {o["owner_user_id"] for o in data["ownerships"]}
    assert owners == {"u2"}


def test_ownerships_filter_by_cells(client):
    finalize(client, "r1", "u1")
    cells = client.get("/runs/r1/hexes").json()["h3_indices"]

    data = client.get(
        "/zones/ownerships/current",
        params={"at": AT, "h3_indices": f"{cells[0]}, {cells[-1]}"},
    ).json()
    assert [o["h3_index"] for o in data["ownerships"]] == sorted({cells[0], cells[-1]})


def test_current_map_has_boundaries(client):
    finalize(client, "r1", "u1")
    data = client.get("/zones/current", params={"user_id": "u1", "at": AT}).json()
    assert data["zones"]
    for zone in data["zones"]:
        assert zone["owner_user_id"] == "u1"
        assert zone["is_loop_bonus"] is False
        assert len(zone["boundary"]) >= 5
        assert set(zone["boundary"][0]) == {"latitude", "longitude"}


def test_recompute_cycle(client):
    finalize(client, "r1", "u1")
    r = client.post("/zones/cycles/2024-12-30/recompute", params={"backfill": True})
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["runs_processed"] == 1
    assert body["runs_failed"] == {}
    assert body["owned_zones"] == len(client.get("/runs/r1/hexes").json()["h3_indices"])


def test_recompute_rejects_bad_cycle_key(client):
    # 2025-01-01 is a Wednesday
    assert client.post("/zones/cycles/2025-01-01/recompute").status_code == 422
    assert client.post("/zones/cycles/last-week/recompute").status_code == 422


def test_loop_bonus_flag_only_on_cells_the_user_owns(client, db):
    cycle = cycle_from_key("2024-12-30")
    at = datetime(2025, 1, 1, 10, tzinfo=timezone.utc)
    mine, theirs = h3.latlng_to_cell(0.0, 0.0, 8), h3.latlng_to_cell(0.0, 0.05, 8)

    db.add(Run(id="r1", user_id="u1", status=RunStatus.finalized, raw_data=[]))
    for cell, owner, distance in ((mine, "u1", 75.0), (theirs, "u2", 500.0)):
        db.add(RunZoneContribution(
            run_id="r1", user_id="u1", cycle_key=cycle.cycle_key, cycle_start=cycle.start,
            cycle_end=cycle.end, h3_index=cell, distance_m=75.0, first_at=at,
            source=ContributionSource.loop_bonus,
        ))
        db.add(ZoneOwnership(
            cycle_key=cycle.cycle_key, cycle_start=cycle.start, cycle_end=cycle.end, h3_index=cell,
            owner_user_id=owner, owner_distance_m=distance, tie_break_first_at=at,
        ))
    db.commit()

    zones = client.get("/zones/current", params={"user_id": "u1", "at": AT}).json()["zones"]
    flags = {z["h3_index"]: z["is_loop_bonus"] for z in zones}
    assert flags == {mine: True, theirs: False}
