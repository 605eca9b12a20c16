"""Contact model definitions."""

from sqlalchemy import Column, Integer, ForeignKey, String
from clinicops.database import Base


class Contact(Base):
    """Minimal patient record owned by the contact registry."""
    __tablename__ = "contacts"

    id = Column(Integer, primary_key=True)
    clinic_id = Column(Integer, ForeignKey("clinics.id"), index=True)
    name = Column(String, nullable=False)
    phone = Column(String)
