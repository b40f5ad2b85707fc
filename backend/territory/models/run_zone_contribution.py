from sqlalchemy import Column, Integer, String, DateTime, Float, Enum, ForeignKey, Index, UniqueConstraint
from territory.db import Base
from territory.core.enums import ContributionSource, enum_values


class RunZoneContribution(Base):
    __tablename__ = "run_zone_contributions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    run_id = Column(String(64), ForeignKey("runs.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(64), nullable=False)

    # Weekly cycle the run was scored in ('YYYY-MM-DD' of the Monday)
    cycle_key = Column(String(10), nullable=False)
    cycle_start = Column(DateTime(timezone=True), nullable=False)
    cycle_end = Column(DateTime(timezone=True), nullable=False)

    h3_index = Column(String(16), nullable=False)
    distance_m = Column(Float, nullable=False)
    first_at = Column(DateTime(timezone=True), nullable=False)

    source = Column(
        Enum(ContributionSource, name="contribution_source", native_enum=False, length=20, values_callable=enum_values),
        nullable=False,
        default=ContributionSource.distance,
    )

    __table_args__ = (
        UniqueConstraint("run_id", "cycle_key", "source", "h3_index", name="uq_run_zone_contribution"),
        Index("ix_run_zone_contributions_cycle_hex", "cycle_key", "h3_index"),
        Index("ix_run_zone_contributions_cycle_user", "cycle_key", "user_id"),
    )
