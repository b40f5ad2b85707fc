from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from territory.core.enums import RunStatus, RejectReason
from territory.core.time_utils import ensure_utc


class GPSPoint(BaseModel):
    """One raw GPS sample. `time` is normalized to aware UTC."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)
    time: datetime

    @field_validator("time")
    @classmethod
    def _to_utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)


class RunCreate(BaseModel):
    """Schema for uploading a new run (created PENDING)."""

    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = Field(default=None, max_length=64)
    # Auth lives outside this service; the caller states whose run this is
    user_id: str = Field(min_length=1, max_length=64)
    start_time: datetime
    end_time: datetime
    duration: float = Field(ge=0)   # client claim, seconds
    distance: float = Field(ge=0)   # client claim, meters
    activity_type: str = "RUN"
    polyline: Optional[str] = None
    raw_data: list[GPSPoint] = Field(min_length=1)
    metadata: Optional[dict[str, Any]] = None

    @model_validator(mode="after")
    def _end_after_start(self):
        if ensure_utc(self.end_time) <= ensure_utc(self.start_time):
            raise ValueError("end_time must be after start_time")
        return self


class RunUploaded(BaseModel):
    id: str
    status: RunStatus
    received_at: datetime


class RunMetricsRead(BaseModel):
    distance_m: float
    duration_s: float
    avg_pace_s_per_km: float
    max_speed_m_s: float


class FinalizeRead(BaseModel):
    """Returned by POST /runs/{id}/finalize."""

    id: str
    status: RunStatus
    computed_metrics: Optional[RunMetricsRead] = None
    reject_reason: Optional[RejectReason] = None


class RunRead(FinalizeRead):
    user_id: str
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    claimed_distance_m: Optional[float] = None
    claimed_duration_s: Optional[float] = None
    activity_type: str
    finalized_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class RunHexesRead(BaseModel):
    run_id: str
    h3_indices: list[str]
