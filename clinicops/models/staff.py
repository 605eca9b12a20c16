"""Clinic staff model definitions."""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String
from clinicops.database import Base, utc_now_naive


class ClinicStaff(Base):
    """Membership of a person in a clinic's roster."""
    __tablename__ = "clinic_staff"

    id = Column(Integer, primary_key=True, index=True)
    clinic_id = Column(Integer, ForeignKey("clinics.id"), index=True, nullable=False)
    name = Column(String, nullable=False)
    email = Column(String, index=True)
    role = Column(String, default="professional")  # admin/professional/reception
    is_professional = Column(Boolean, default=True, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=utc_now_naive)
