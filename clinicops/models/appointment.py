"""Appointment model definitions."""

from sqlalchemy import Column, Integer, DateTime, ForeignKey, String
from sqlalchemy.orm import relationship
from clinicops.database import Base, utc_now_naive
from clinicops.models.contact import Contact


class Appointment(Base):
    """Represents a scheduled appointment.

    ``scheduled_start`` is stored as naive UTC; the occupied interval is
    ``[scheduled_start, scheduled_start + duration_minutes)``.
    """
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True)
    clinic_id = Column(Integer, ForeignKey("clinics.id"), nullable=False)
    contact_id = Column(Integer, ForeignKey("contacts.id"))
    professional_id = Column(Integer, ForeignKey("clinic_staff.id"))
    professional_name = Column(String)
    specialty = Column(String)
    appointment_type = Column(String)
    scheduled_start = Column(DateTime, nullable=False)
    duration_minutes = Column(Integer, default=60)
    status = Column(String, nullable=False, default="scheduled")
    payment_status = Column(String, default="pending")
    session_notes = Column(String)
    calendar_event_id = Column(String)
    created_at = Column(DateTime, default=utc_now_naive)
    updated_at = Column(DateTime, default=utc_now_naive, onupdate=utc_now_naive)

    contact = relationship(Contact, lazy="joined")
