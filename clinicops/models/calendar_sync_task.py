"""Calendar sync outbox model definitions."""

from sqlalchemy import Column, DateTime, Integer, JSON, String
from clinicops.database import Base, utc_now_naive


class CalendarSyncTask(Base):
    """A pending push of an appointment change to the external calendar."""
    __tablename__ = "calendar_sync_tasks"

    id = Column(Integer, primary_key=True)
    appointment_id = Column(Integer, index=True, nullable=False)
    clinic_id = Column(Integer, nullable=False)
    action = Column(String, nullable=False)  # upsert/delete
    payload = Column(JSON)
    status = Column(String, nullable=False, default="pending", index=True)  # pending/done/skipped/failed
    attempts = Column(Integer, nullable=False, default=0)
    last_error = Column(String)
    created_at = Column(DateTime, default=utc_now_naive)
    processed_at = Column(DateTime)
