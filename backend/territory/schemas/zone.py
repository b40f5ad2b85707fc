from datetime import datetime

from pydantic import BaseModel


class OwnedZone(BaseModel):
    h3_index: str
    owner_distance_m: float
    tie_break_first_at: datetime


class OwnedZonesRead(BaseModel):
    cycle_key: str
    user_id: str
    zones: list[OwnedZone]


class ZoneOwnershipRead(BaseModel):
    h3_index: str
    owner_user_id: str
    owner_distance_m: float
    tie_break_first_at: datetime


class CycleOwnershipsRead(BaseModel):
    cycle_key: str
    ownerships: list[ZoneOwnershipRead]


class BoundaryPoint(BaseModel):
    latitude: float
    longitude: float


class MapZone(BaseModel):
    h3_index: str
    owner_user_id: str
    is_loop_bonus: bool
    boundary: list[BoundaryPoint]


class CurrentZonesRead(BaseModel):
    cycle_key: str
    zones: list[MapZone]


class CycleRecomputeRead(BaseModel):
    cycle_key: str
    runs_processed: int
    runs_failed: dict[str, str]
    owned_zones: int
