from pydantic import BaseModel, ConfigDict, Field, field_validator
from datetime import datetime
from typing import List, Optional

from .auth import UserSummary
from .patient import PatientResponse
from ..models.appointment import AppointmentStatus
from ..scheduling.availability import as_utc

class AppointmentCreate(BaseModel):
    doctor_id: int
    date: datetime
    reason: str = Field(..., min_length=1)

class AppointmentUpdate(BaseModel):
    date: Optional[datetime] = None
    reason: Optional[str] = Field(None, min_length=1)
    status: Optional[AppointmentStatus] = None

class DoctorSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    department: str
    phone: Optional[str] = None
    user: UserSummary

class AppointmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    date: datetime
    reason: str
    status: AppointmentStatus
    patient: PatientResponse
    doctor: DoctorSummary
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("date")
    @classmethod
    def mark_utc(cls, value: datetime) -> datetime:
        # Stored naive, always UTC
        return as_utc(value)

class AppointmentEnvelope(BaseModel):
    success: bool = True
    message: Optional[str] = None
    appointment: AppointmentResponse

class AppointmentListResponse(BaseModel):
    success: bool = True
    count: int
    appointments: List[AppointmentResponse]
