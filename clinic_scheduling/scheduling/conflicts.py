"""
Conflict Detector

A doctor may not hold two non-cancelled appointments whose instants are
within ``CONFLICT_WINDOW_MINUTES`` of each other. The window is inclusive on
both ends and is the same for new bookings and reschedules.
"""

from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy.orm import Session

from ..core.config import settings
from ..models.appointment import Appointment, AppointmentStatus
from .availability import to_naive_utc


def find_conflicts(
    db: Session,
    doctor_id: int,
    candidate: datetime,
    exclude_appointment_id: Optional[int] = None,
    window_minutes: Optional[int] = None,
) -> List[Appointment]:
    """Return the doctor's active appointments inside the conflict window."""
    if window_minutes is None:
        window_minutes = settings.CONFLICT_WINDOW_MINUTES
    center = to_naive_utc(candidate)
    window = timedelta(minutes=window_minutes)

    query = db.query(Appointment).filter(
        Appointment.doctor_id == doctor_id,
        Appointment.date >= center - window,
        Appointment.date <= center + window,
        Appointment.status != AppointmentStatus.CANCELLED,
    )
    if exclude_appointment_id is not None:
        query = query.filter(Appointment.id != exclude_appointment_id)

    return query.order_by(Appointment.date).all()


def has_conflict(
    db: Session,
    doctor_id: int,
    candidate: datetime,
    exclude_appointment_id: Optional[int] = None,
) -> bool:
    return bool(find_conflicts(db, doctor_id, candidate, exclude_appointment_id))
