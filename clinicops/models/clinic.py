"""Clinic model definitions."""

from sqlalchemy import Column, Integer, String, Time
from clinicops.database import Base


class Clinic(Base):
    """A tenant. Carries its own timezone and default working hours."""
    __tablename__ = "clinics"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    timezone = Column(String)
    working_hours_start = Column(Time)
    working_hours_end = Column(Time)
