from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ...core.database import get_db
from ...api.deps import get_current_user, get_doctor_user
from ...services.appointment_service import AppointmentService
from ...schemas.appointment import (
    AppointmentCreate, AppointmentUpdate, AppointmentEnvelope,
    AppointmentListResponse, AppointmentResponse
)
from ...models.user import User

router = APIRouter(prefix="/appointments", tags=["Appointments"])

def _listing(appointments) -> AppointmentListResponse:
    return AppointmentListResponse(
        count=len(appointments),
        appointments=[AppointmentResponse.model_validate(a) for a in appointments]
    )

@router.post("", response_model=AppointmentEnvelope, status_code=status.HTTP_201_CREATED)
async def create_appointment(
    appointment_data: AppointmentCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Book an appointment for the caller's patient profile."""
    appointment = AppointmentService(db).create_appointment(appointment_data, current_user)
    return AppointmentEnvelope(
        message="Appointment created successfully",
        appointment=AppointmentResponse.model_validate(appointment)
    )

@router.get("", response_model=AppointmentListResponse)
async def list_appointments(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Admins see all appointments, doctors and patients their own."""
    return _listing(AppointmentService(db).list_appointments(current_user))

@router.get("/doctor", response_model=AppointmentListResponse)
async def list_doctor_appointments(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_doctor_user)
):
    return _listing(
        AppointmentService(db).list_appointments(current_user, as_doctor_only=True)
    )

@router.get("/{appointment_id}", response_model=AppointmentEnvelope)
async def get_appointment(
    appointment_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    appointment = AppointmentService(db).get_appointment(appointment_id, current_user)
    return AppointmentEnvelope(appointment=AppointmentResponse.model_validate(appointment))

@router.put("/{appointment_id}", response_model=AppointmentEnvelope)
async def update_appointment(
    appointment_id: int,
    appointment_data: AppointmentUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    appointment = AppointmentService(db).update_appointment(
        appointment_id, appointment_data, current_user
    )
    return AppointmentEnvelope(
        message="Appointment updated successfully",
        appointment=AppointmentResponse.model_validate(appointment)
    )

@router.delete("/{appointment_id}", response_model=AppointmentEnvelope)
async def cancel_appointment(
    appointment_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Cancel an appointment. Records are never deleted."""
    appointment = AppointmentService(db).cancel_appointment(appointment_id, current_user)
    return AppointmentEnvelope(
        message="Appointment cancelled",
        appointment=AppointmentResponse.model_validate(appointment)
    )
