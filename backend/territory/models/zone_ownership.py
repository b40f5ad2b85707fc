from sqlalchemy import Column, String, DateTime, Float, Index
from territory.db import Base


class ZoneOwnership(Base):
    __tablename__ = "zone_ownerships"

    # One owner per cell per cycle; no row means unowned
    cycle_key = Column(String(10), primary_key=True)
    h3_index = Column(String(16), primary_key=True)

    cycle_start = Column(DateTime(timezone=True), nullable=False)
    cycle_end = Column(DateTime(timezone=True), nullable=False)

    owner_user_id = Column(String(64), nullable=False)
    owner_distance_m = Column(Float, nullable=False)
    tie_break_first_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("ix_zone_ownerships_cycle_owner", "cycle_key", "owner_user_id"),
    )
