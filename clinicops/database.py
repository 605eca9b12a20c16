import os
from datetime import datetime, timezone
from dotenv import load_dotenv
from threading import Lock

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.orm import declarative_base, sessionmaker


load_dotenv()
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./clinicops.db")

engine = create_engine(DATABASE_URL)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()


def utc_now_naive() -> datetime:
    """Current time as naive UTC, the form every DateTime column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


_schema_lock = Lock()
_appointment_schema_checked = False


def ensure_appointment_schema(bind=None) -> None:
    """Backfill columns and indexes on appointments tables created by older releases."""
    global _appointment_schema_checked

    if _appointment_schema_checked:
        return

    bind = bind or engine

    with _schema_lock:
        if _appointment_schema_checked:
            return

        inspector = inspect(bind)

        if 'appointments' not in inspector.get_table_names():
            _appointment_schema_checked = True
            return

        existing_columns = {column['name'] for column in inspector.get_columns('appointments')}
        migration_steps = [
            ('professional_id', 'ALTER TABLE appointments ADD COLUMN professional_id INTEGER'),
            ('professional_name', 'ALTER TABLE appointments ADD COLUMN professional_name VARCHAR'),
            ('specialty', 'ALTER TABLE appointments ADD COLUMN specialty VARCHAR'),
            ('calendar_event_id', 'ALTER TABLE appointments ADD COLUMN calendar_event_id VARCHAR'),
        ]

        with bind.begin() as connection:
            for column_name, statement in migration_steps:
                if column_name not in existing_columns:
                    connection.execute(text(statement))
            connection.execute(
                text('CREATE INDEX IF NOT EXISTS idx_appointments_clinic_start ON appointments(clinic_id, scheduled_start)')
            )
            connection.execute(
                text(
                    'CREATE INDEX IF NOT EXISTS idx_appointments_professional_start '
                    'ON appointments(professional_id, scheduled_start)'
                )
            )
            connection.execute(
                text('CREATE INDEX IF NOT EXISTS idx_appointments_contact ON appointments(contact_id)')
            )

        _appointment_schema_checked = True
