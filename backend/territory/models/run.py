from sqlalchemy import Column, String, DateTime, Float, Enum, Index
from sqlalchemy.sql import func
from territory.db import Base, JSONType
from territory.core.enums import RunStatus, RejectReason, enum_values


class Run(Base):
    __tablename__ = "runs"

    # Client-generated id (UUID string) so uploads can be retried safely
    id = Column(String(64), primary_key=True)

    user_id = Column(String(64), nullable=False, index=True)

    # Lifecycle: PENDING -> FINALIZED | REJECTED (terminal)
    status = Column(
        Enum(RunStatus, name="run_status", native_enum=False, length=20, values_callable=enum_values),
        nullable=False,
        default=RunStatus.pending,
        server_default=RunStatus.pending.value,
    )
    reject_reason = Column(
        Enum(RejectReason, name="reject_reason", native_enum=False, length=32, values_callable=enum_values),
        nullable=True,
    )

    # Server-computed RunMetrics: {distance_m, duration_s, avg_pace_s_per_km, max_speed_m_s}
    computed_metrics = Column(JSONType, nullable=True)

    # Raw GPS trace as uploaded: [{lat, lng, time}]
    raw_data = Column(JSONType, nullable=False)

    # What the client claimed; never trusted, kept for audit
    start_time = Column(DateTime(timezone=True), nullable=True)
    end_time = Column(DateTime(timezone=True), nullable=True)
    claimed_distance_m = Column(Float, nullable=True)
    claimed_duration_s = Column(Float, nullable=True)
    activity_type = Column(String(20), nullable=False, server_default="RUN")
    polyline = Column(String, nullable=True)
    metadata_ = Column("metadata", JSONType, nullable=True)

    finalized_at = Column(DateTime(timezone=True), nullable=True)

    # Timestamps
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    __table_args__ = (
        Index("ix_runs_status", "status"),
    )
