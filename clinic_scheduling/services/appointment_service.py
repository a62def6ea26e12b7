"""
Appointment Lifecycle Manager

Creates, lists, reads, updates and cancels appointments. Every mutation runs
the access policy first, then the status rules, then (when the instant
changes) the availability evaluator and the conflict detector, then persists.

Checks and writes are separate statements with no per-doctor lock, so two
concurrent bookings for the same slot can both pass the conflict check.
"""

from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload
from datetime import datetime
from typing import List, Optional
import logging

from ..core.config import settings
from ..core.exceptions import Forbidden, NotFound, SchedulingConflict, ValidationError
from ..core.security import UserRole
from ..models.appointment import Appointment, AppointmentStatus
from ..models.doctor import Doctor
from ..models.patient import Patient
from ..models.user import User
from ..scheduling import policy
from ..scheduling.availability import is_within_availability, to_naive_utc
from ..scheduling.conflicts import has_conflict
from ..schemas.appointment import AppointmentCreate, AppointmentUpdate
from .profile_service import ProfileService

logger = logging.getLogger(__name__)

class AppointmentService:
    def __init__(self, db: Session):
        self.db = db
        self.profiles = ProfileService(db)

    def _query(self):
        # Inner joins: an appointment is only ever returned with both profiles
        return self.db.query(Appointment).join(
            Patient, Appointment.patient_id == Patient.id
        ).join(
            Doctor, Appointment.doctor_id == Doctor.id
        ).options(
            joinedload(Appointment.patient).joinedload(Patient.user),
            joinedload(Appointment.doctor).joinedload(Doctor.user),
        )

    def _load(self, appointment_id: int) -> Appointment:
        appointment = self._query().filter(Appointment.id == appointment_id).first()
        if not appointment:
            raise NotFound("Appointment not found")
        return appointment

    def _authorize(self, appointment: Appointment, user: User, action: str) -> UserRole:
        """Gate access and return the role the user acts in for this appointment."""
        role = policy.acting_role(user.role, user.id, appointment)
        if role is None:
            logger.info(f"User {user.id} denied {action} on appointment {appointment.id}")
            raise Forbidden(f"You are not authorized to {action} this appointment")
        return role

    def _check_schedule(
        self,
        doctor: Doctor,
        date: datetime,
        exclude_appointment_id: Optional[int] = None,
    ):
        """Reject past instants, instants outside availability, and overlaps."""
        if date < datetime.utcnow():
            raise ValidationError("Cannot schedule an appointment in the past.")

        result = is_within_availability(doctor.availability, date, settings.CLINIC_TIMEZONE)
        if not result.allowed:
            logger.info(f"Doctor {doctor.id} unavailable at {date.isoformat()}: {result.reason}")
            raise SchedulingConflict(result.reason)

        if has_conflict(self.db, doctor.id, date, exclude_appointment_id):
            logger.info(f"Doctor {doctor.id} already booked near {date.isoformat()}")
            raise SchedulingConflict("Doctor has another appointment at this time.")

    def create_appointment(self, data: AppointmentCreate, user: User) -> Appointment:
        if not policy.can_create(user.role):
            raise Forbidden(f"Role '{user.role.value}' cannot book appointments")

        doctor = self.profiles.require_doctor(data.doctor_id)
        date = to_naive_utc(data.date)
        self._check_schedule(doctor, date)

        patient = self.profiles.get_or_create_patient(user)
        appointment = Appointment(
            patient_id=patient.id,
            doctor_id=doctor.id,
            date=date,
            reason=data.reason,
            status=AppointmentStatus.PENDING,
        )
        self.db.add(appointment)
        self.db.commit()

        logger.info(
            f"Created appointment {appointment.id} for patient {patient.id} "
            f"with doctor {doctor.id} at {date.isoformat()}"
        )
        return self._load(appointment.id)

    def list_appointments(self, user: User, as_doctor_only: bool = False) -> List[Appointment]:
        """Role-scoped listing, newest first.

        Doctors see the appointments they hold plus any they booked for
        themselves, unless as_doctor_only is set.
        """
        query = self._query()

        if user.role == UserRole.DOCTOR:
            doctor = self.profiles.get_doctor_by_user(user.id)
            if not doctor:
                raise NotFound("Doctor profile not found")
            own_patient = None if as_doctor_only else self.profiles.get_patient_by_user(user.id)
            if own_patient:
                query = query.filter(or_(
                    Appointment.doctor_id == doctor.id,
                    Appointment.patient_id == own_patient.id,
                ))
            else:
                query = query.filter(Appointment.doctor_id == doctor.id)
        elif user.role == UserRole.PATIENT:
            patient = self.profiles.get_patient_by_user(user.id)
            if not patient:
                raise NotFound("Patient profile not found. Please create a patient profile first.")
            query = query.filter(Appointment.patient_id == patient.id)
        elif user.role != UserRole.ADMIN:
            raise Forbidden("Invalid user role")

        return query.order_by(Appointment.date.desc()).all()

    def get_appointment(self, appointment_id: int, user: User) -> Appointment:
        appointment = self._load(appointment_id)
        self._authorize(appointment, user, "view")
        return appointment

    def update_appointment(
        self, appointment_id: int, data: AppointmentUpdate, user: User
    ) -> Appointment:
        appointment = self._load(appointment_id)
        role = self._authorize(appointment, user, "update")

        if data.status is not None:
            self._check_status(appointment, data.status, role)

        new_date = to_naive_utc(data.date) if data.date is not None else appointment.date
        if new_date != appointment.date:
            self._check_schedule(appointment.doctor, new_date, appointment.id)

        appointment.date = new_date
        appointment.reason = data.reason or appointment.reason
        appointment.status = data.status or appointment.status
        self.db.commit()

        logger.info(f"User {user.id} updated appointment {appointment.id}")
        return self._load(appointment.id)

    def cancel_appointment(self, appointment_id: int, user: User) -> Appointment:
        """Cancel; cancelling an already cancelled appointment is a no-op."""
        appointment = self._load(appointment_id)
        role = self._authorize(appointment, user, "cancel")
        self._check_status(appointment, AppointmentStatus.CANCELLED, role)

        appointment.status = AppointmentStatus.CANCELLED
        self.db.commit()

        logger.info(f"User {user.id} cancelled appointment {appointment.id}")
        return self._load(appointment.id)

    @staticmethod
    def _check_status(appointment: Appointment, requested: AppointmentStatus, role: UserRole):
        if not policy.can_mutate_status(role, requested):
            if role == UserRole.PATIENT:
                raise Forbidden("Patients can only cancel appointments")
            raise ValidationError(f"Invalid status for {role.value}")

        if not policy.can_transition(role, appointment.status, requested):
            raise ValidationError(
                f"Cannot change status from {appointment.status.value} to {requested.value}"
            )
