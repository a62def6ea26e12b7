from sqlalchemy.orm import Session
from typing import Iterable, List, Optional
import logging

from ..core.exceptions import Forbidden, NotFound, ValidationError
from ..core.security import UserRole
from ..models.appointment import Appointment
from ..models.doctor import Doctor, DoctorAvailability
from ..models.patient import Patient
from ..models.user import RefreshToken, User
from ..schemas.doctor import AvailabilitySlot, DoctorCreate, DoctorUpdate
from ..schemas.patient import PatientCreate, PatientUpdate
from .auth_service import AuthService

logger = logging.getLogger(__name__)

class ProfileService:
    """Profile store for doctors and patients."""

    def __init__(self, db: Session):
        self.db = db

    # Doctors

    def get_doctor(self, doctor_id: int) -> Optional[Doctor]:
        return self.db.query(Doctor).filter(Doctor.id == doctor_id).first()

    def get_doctor_by_user(self, user_id: int) -> Optional[Doctor]:
        return self.db.query(Doctor).filter(Doctor.user_id == user_id).first()

    def require_doctor(self, doctor_id: int) -> Doctor:
        doctor = self.get_doctor(doctor_id)
        if not doctor:
            raise NotFound("Doctor not found")
        return doctor

    def list_doctors(self) -> List[Doctor]:
        return self.db.query(Doctor).order_by(Doctor.name).all()

    def create_doctor(self, data: DoctorCreate) -> Doctor:
        """Create the doctor's login account and profile together."""
        if self.db.query(Doctor).filter(
            Doctor.license_number == data.license_number
        ).first():
            raise ValidationError("License number already registered")

        user = AuthService(self.db).create_user(
            data.name, data.email, data.password, UserRole.DOCTOR
        )
        doctor = Doctor(
            user_id=user.id,
            name=data.name,
            phone=data.phone,
            department=data.department,
            license_number=data.license_number,
        )
        self._replace_availability(doctor, data.availability)
        self.db.add(doctor)
        self.db.commit()
        self.db.refresh(doctor)

        logger.info(f"Created doctor {doctor.id} for user {user.id}")
        return doctor

    def update_doctor(self, doctor_id: int, data: DoctorUpdate, current_user: User) -> Doctor:
        doctor = self.require_doctor(doctor_id)
        if current_user.role != UserRole.ADMIN and doctor.user_id != current_user.id:
            raise Forbidden("Not authorized to update this profile")

        changes = data.model_dump(exclude_unset=True, exclude={"availability"})
        if "license_number" in changes and self.db.query(Doctor).filter(
            Doctor.license_number == changes["license_number"],
            Doctor.id != doctor.id
        ).first():
            raise ValidationError("License number already registered")

        for field, value in changes.items():
            if value is not None:
                setattr(doctor, field, value)
        if data.availability is not None:
            self._replace_availability(doctor, data.availability)

        self.db.commit()
        self.db.refresh(doctor)
        return doctor

    @staticmethod
    def _replace_availability(doctor: Doctor, slots: Iterable[AvailabilitySlot]):
        # Order is significant: the evaluator uses the first slot per weekday
        doctor.availability = [
            DoctorAvailability(
                position=position,
                day=slot.day,
                start_time=slot.start_time,
                end_time=slot.end_time,
            )
            for position, slot in enumerate(slots)
        ]

    def delete_doctor(self, doctor_id: int) -> None:
        """Remove a doctor and their login account.

        Refused while any appointment, held or booked by the doctor,
        still points at them.
        """
        doctor = self.require_doctor(doctor_id)
        own_patient = self.get_patient_by_user(doctor.user_id)
        if self._has_appointments(doctor=doctor) or (
            own_patient and self._has_appointments(patient=own_patient)
        ):
            raise ValidationError("Doctor has appointments and cannot be removed")

        user = doctor.user
        if own_patient:
            self.db.delete(own_patient)
        self.db.delete(doctor)
        self.db.query(RefreshToken).filter(RefreshToken.user_id == user.id).delete()
        self.db.delete(user)
        self.db.commit()
        logger.info(f"Removed doctor {doctor_id} and user {user.id}")

    def _has_appointments(self, doctor: Optional[Doctor] = None,
                          patient: Optional[Patient] = None) -> bool:
        query = self.db.query(Appointment)
        if doctor is not None:
            query = query.filter(Appointment.doctor_id == doctor.id)
        if patient is not None:
            query = query.filter(Appointment.patient_id == patient.id)
        return query.first() is not None

    # Patients

    def get_patient(self, patient_id: int) -> Optional[Patient]:
        return self.db.query(Patient).filter(Patient.id == patient_id).first()

    def get_patient_by_user(self, user_id: int) -> Optional[Patient]:
        return self.db.query(Patient).filter(Patient.user_id == user_id).first()

    def list_patients(self) -> List[Patient]:
        return self.db.query(Patient).order_by(Patient.id).all()

    def get_or_create_patient(self, user: User) -> Patient:
        """Resolve the user's patient profile, adding an incomplete one if absent.

        The new profile is flushed, not committed; the caller owns the commit.
        """
        patient = self.get_patient_by_user(user.id)
        if patient:
            return patient

        patient = Patient(user_id=user.id, is_profile_complete=False)
        self.db.add(patient)
        self.db.flush()
        logger.info(f"Created incomplete patient profile {patient.id} for user {user.id}")
        return patient

    def create_patient(self, data: PatientCreate, current_user: User) -> Patient:
        if self.get_patient_by_user(current_user.id):
            raise ValidationError("Patient profile already exists")

        patient = Patient(user_id=current_user.id, **data.model_dump())
        patient.is_profile_complete = True
        self.db.add(patient)
        self.db.commit()
        self.db.refresh(patient)
        return patient

    def view_patient(self, patient_id: int, current_user: User) -> Patient:
        patient = self.get_patient(patient_id)
        if not patient:
            raise NotFound("Patient not found")

        if current_user.role == UserRole.ADMIN:
            has_access = True
        elif current_user.role == UserRole.PATIENT:
            has_access = patient.user_id == current_user.id
        else:
            # Doctors may view patients they have seen or will see
            has_access = self.db.query(Appointment).join(Doctor).filter(
                Doctor.user_id == current_user.id,
                Appointment.patient_id == patient.id
            ).first() is not None

        if not has_access:
            raise Forbidden("Not authorized to view this profile")
        return patient

    def update_patient(self, patient_id: int, data: PatientUpdate, current_user: User) -> Patient:
        patient = self.get_patient(patient_id)
        if not patient:
            raise NotFound("Patient not found")
        if current_user.role != UserRole.ADMIN and patient.user_id != current_user.id:
            raise Forbidden("Not authorized to update this profile")

        for field, value in data.model_dump(exclude_unset=True).items():
            if value is not None:
                setattr(patient, field, value)
        patient.is_profile_complete = bool(patient.date_of_birth and patient.gender)

        self.db.commit()
        self.db.refresh(patient)
        return patient

    def delete_patient(self, patient_id: int) -> None:
        """Remove a patient profile; the login account is kept."""
        patient = self.get_patient(patient_id)
        if not patient:
            raise NotFound("Patient not found")
        if self._has_appointments(patient=patient):
            raise ValidationError("Patient has appointments and cannot be removed")

        self.db.delete(patient)
        self.db.commit()
        logger.info(f"Removed patient profile {patient_id}")
