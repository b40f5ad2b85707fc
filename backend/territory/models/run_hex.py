from sqlalchemy import Column, Integer, String, ForeignKey
from territory.db import Base


class RunHex(Base):
    __tablename__ = "run_hexes"

    run_id = Column(String(64), ForeignKey("runs.id", ondelete="CASCADE"), primary_key=True)
    sequence_index = Column(Integer, primary_key=True)  # 0-based, gapless per run

    h3_index = Column(String(16), nullable=False, index=True)
