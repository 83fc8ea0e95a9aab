from sqlalchemy import Column, DateTime, Integer, func

from database import Base


class SimlokSequence(Base):
    """Last issued SIMLOK number per calendar year."""

    __tablename__ = "simlok_sequences"

    year = Column(Integer, primary_key=True)
    last_number = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
