from sqlalchemy import Column, Integer, String, ForeignKey
from territory.db import Base, JSONType


class RunLoop(Base):
    __tablename__ = "run_loops"

    run_id = Column(String(64), ForeignKey("runs.id", ondelete="CASCADE"), primary_key=True)
    cycle_key = Column(String(10), nullable=False, index=True)

    # Indices into the run's hex path where the loop opens and closes
    loop_start_index = Column(Integer, nullable=False)
    loop_end_index = Column(Integer, nullable=False)

    boundary_hexes = Column(JSONType, nullable=False)  # [h3, ...] closed ring
    enclosed_hexes = Column(JSONType, nullable=False)  # [h3, ...] sorted
