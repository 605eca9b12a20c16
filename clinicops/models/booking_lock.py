"""Booking lock model definitions."""

from sqlalchemy import Column, Date, Integer, UniqueConstraint
from clinicops.database import Base


class BookingLock(Base):
    """One row per professional and local day, locked while an appointment is written."""
    __tablename__ = "booking_locks"
    __table_args__ = (UniqueConstraint("professional_id", "day", name="uq_booking_locks_professional_day"),)

    id = Column(Integer, primary_key=True)
    professional_id = Column(Integer, nullable=False)
    day = Column(Date, nullable=False)
