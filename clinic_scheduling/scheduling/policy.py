"""
Access Policy

Pure decision functions for who may see and change an appointment. Nothing
here touches the database; callers pass in the loaded appointment.
"""

from typing import Dict, FrozenSet, Optional, Tuple, Union

from ..core.config import settings
from ..core.security import UserRole
from ..models.appointment import AppointmentStatus

RoleLike = Union[UserRole, str]
StatusLike = Union[AppointmentStatus, str]

# Statuses each role may request at all, independent of the current state
ROLE_STATUS_RULES: Dict[UserRole, FrozenSet[AppointmentStatus]] = {
    UserRole.ADMIN: frozenset(AppointmentStatus),
    UserRole.DOCTOR: frozenset({
        AppointmentStatus.CONFIRMED,
        AppointmentStatus.COMPLETED,
        AppointmentStatus.CANCELLED,
    }),
    UserRole.PATIENT: frozenset({AppointmentStatus.CANCELLED}),
}

# (current status, role) -> next statuses; completed and cancelled are terminal
STATUS_TRANSITIONS: Dict[Tuple[AppointmentStatus, UserRole], FrozenSet[AppointmentStatus]] = {
    (AppointmentStatus.PENDING, UserRole.PATIENT): frozenset({AppointmentStatus.CANCELLED}),
    (AppointmentStatus.CONFIRMED, UserRole.PATIENT): frozenset({AppointmentStatus.CANCELLED}),
    (AppointmentStatus.PENDING, UserRole.DOCTOR): frozenset({
        AppointmentStatus.CONFIRMED,
        AppointmentStatus.CANCELLED,
    }),
    (AppointmentStatus.CONFIRMED, UserRole.DOCTOR): frozenset({
        AppointmentStatus.COMPLETED,
        AppointmentStatus.CANCELLED,
    }),
}


def can_create(role: RoleLike) -> bool:
    """Booking is open to the roles listed in APPOINTMENT_CREATE_ROLES."""
    allowed = {UserRole(r) for r in settings.APPOINTMENT_CREATE_ROLES}
    return UserRole(role) in allowed


def acting_role(role: RoleLike, actor_id: int, appointment) -> Optional[UserRole]:
    """The capacity in which an actor touches an appointment.

    Admins always act as admin. Anyone else acts through the link they hold:
    as doctor when they are the appointment's doctor, as patient when they
    booked it. A doctor who booked with a colleague is the patient there.
    Returns None for actors with no link.
    """
    if UserRole(role) == UserRole.ADMIN:
        return UserRole.ADMIN
    doctor = appointment.doctor
    if doctor is not None and doctor.user_id == actor_id:
        return UserRole.DOCTOR
    patient = appointment.patient
    if patient is not None and patient.user_id == actor_id:
        return UserRole.PATIENT
    return None


def can_access(role: RoleLike, actor_id: int, appointment) -> bool:
    """Admins see everything; others only appointments they are linked to."""
    return acting_role(role, actor_id, appointment) is not None


def can_mutate_status(role: RoleLike, requested_status: StatusLike) -> bool:
    return AppointmentStatus(requested_status) in ROLE_STATUS_RULES[UserRole(role)]


def can_transition(role: RoleLike, current: StatusLike, requested: StatusLike) -> bool:
    """Check a status change against the transition table.

    Re-asserting the current status is a no-op and always allowed.
    """
    role = UserRole(role)
    current = AppointmentStatus(current)
    requested = AppointmentStatus(requested)
    if requested == current or role == UserRole.ADMIN:
        return True
    return requested in STATUS_TRANSITIONS.get((current, role), frozenset())
