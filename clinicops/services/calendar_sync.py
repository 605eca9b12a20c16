"""
Calendar Sync Service

Best-effort push of appointment changes to an external calendar.

Writes only enqueue a ``CalendarSyncTask`` row inside the appointment's own
transaction. ``dispatch_pending_calendar_sync`` runs afterwards (as a FastAPI
background task) and never raises: failures are logged and recorded on the
task row, and are not retried here.
"""
import logging
from typing import Callable

import httpx
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from clinicops.core import config
from clinicops.core.errors import CalendarSyncError
from clinicops.database import utc_now_naive
from clinicops.models.appointment import Appointment
from clinicops.models.calendar_sync_task import CalendarSyncTask
from clinicops.scheduling.intervals import appointment_duration, from_storage

logger = logging.getLogger(__name__)

SYNC_ACTIONS = ('upsert', 'delete')
DISPATCH_BATCH_SIZE = 50


def build_sync_payload(appointment: Appointment) -> dict:
    return {
        'appointment_id': appointment.id,
        'clinic_id': appointment.clinic_id,
        'professional_id': appointment.professional_id,
        'professional_name': appointment.professional_name,
        'scheduled_start': from_storage(appointment.scheduled_start).isoformat(),
        'duration_minutes': appointment_duration(appointment),
        'status': appointment.status,
        'calendar_event_id': appointment.calendar_event_id,
    }


def enqueue_calendar_sync(db: Session, appointment: Appointment, action: str) -> CalendarSyncTask:
    """Add an outbox row to the caller's transaction. The caller commits."""
    if action not in SYNC_ACTIONS:
        raise ValueError(f'Unknown calendar sync action: {action}')

    task = CalendarSyncTask(
        appointment_id=appointment.id,
        clinic_id=appointment.clinic_id,
        action=action,
        payload=build_sync_payload(appointment),
        status='pending',
        attempts=0,
    )
    db.add(task)
    return task


class CalendarSyncClient:
    """Thin HTTP client for the calendar bridge service."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        self.base_url = config.CALENDAR_SYNC_URL if base_url is None else base_url
        self.timeout = config.CALENDAR_SYNC_TIMEOUT_SECONDS if timeout is None else timeout
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(self.base_url)

    def push(self, action: str, payload: dict) -> str | None:
        """Send one change. Returns the external event id when the bridge reports one."""
        with httpx.Client(base_url=self.base_url, timeout=self.timeout, transport=self._transport) as client:
            if action == 'upsert':
                response = client.put(f"/events/{payload['appointment_id']}", json=payload)
            elif action == 'delete':
                event_id = payload.get('calendar_event_id') or payload['appointment_id']
                response = client.delete(f'/events/{event_id}')
            else:
                raise CalendarSyncError(f'Unknown calendar sync action: {action}')

            response.raise_for_status()

            if action != 'upsert' or not response.content:
                return None

            body = response.json()
            if not isinstance(body, dict):
                raise CalendarSyncError(f'Unexpected calendar response: {type(body).__name__}')
            event_id = body.get('event_id')
            return str(event_id) if event_id else None


def _process_task(db: Session, task: CalendarSyncTask, client: CalendarSyncClient) -> None:
    task.attempts = (task.attempts or 0) + 1
    task.processed_at = utc_now_naive()

    if not client.is_configured:
        task.status = 'skipped'
        return

    try:
        event_id = client.push(task.action, task.payload or {})
    except (httpx.HTTPError, CalendarSyncError, ValueError) as exc:
        logger.warning(
            'Calendar sync %s for appointment %s failed: %s',
            task.action,
            task.appointment_id,
            exc,
        )
        task.status = 'failed'
        task.last_error = str(exc)[:500]
        return
    except Exception as exc:
        logger.exception(
            'Unexpected error during calendar sync %s for appointment %s',
            task.action,
            task.appointment_id,
        )
        task.status = 'failed'
        task.last_error = f'{type(exc).__name__}: {exc}'[:500]
        return

    task.status = 'done'
    task.last_error = None

    if event_id and task.action == 'upsert':
        appointment = db.get(Appointment, task.appointment_id)
        if appointment is not None:
            appointment.calendar_event_id = event_id


def dispatch_pending_calendar_sync(
    session_factory: Callable[[], Session],
    client: CalendarSyncClient | None = None,
    limit: int = DISPATCH_BATCH_SIZE,
) -> int:
    """Process pending outbox rows. Returns how many were handled."""
    client = client or CalendarSyncClient()
    db = session_factory()
    processed = 0
    try:
        tasks = db.query(CalendarSyncTask).filter(
            CalendarSyncTask.status == 'pending',
        ).order_by(CalendarSyncTask.id.asc()).limit(limit).all()

        for task in tasks:
            _process_task(db, task, client)
            db.commit()
            processed += 1
    except SQLAlchemyError:
        db.rollback()
        logger.exception('Calendar sync dispatch aborted after %s task(s)', processed)
    except Exception:
        db.rollback()
        logger.exception('Unexpected error in calendar sync dispatch after %s task(s)', processed)
    finally:
        db.close()

    return processed
