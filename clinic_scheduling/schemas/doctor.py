from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator
from typing import List, Literal, Optional

from .auth import UserSummary
from ..scheduling.availability import time_to_minutes

Weekday = Literal[
    "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"
]

class AvailabilitySlot(BaseModel):
    """Recurring weekly window; start_time later than end_time spans midnight."""
    model_config = ConfigDict(from_attributes=True)

    day: Weekday
    start_time: str = Field(..., examples=["09:00"])
    end_time: str = Field(..., examples=["17:00"])

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time(cls, value: str) -> str:
        time_to_minutes(value)
        return value

    @model_validator(mode="after")
    def validate_window(self):
        if self.start_time == self.end_time:
            raise ValueError("start_time and end_time must differ")
        return self

class DoctorCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    phone: str = Field(..., min_length=1, max_length=20)
    department: str = Field(..., min_length=1, max_length=100)
    license_number: str = Field(..., min_length=1, max_length=50)
    availability: List[AvailabilitySlot] = []

class DoctorUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    phone: Optional[str] = Field(None, min_length=1, max_length=20)
    department: Optional[str] = Field(None, min_length=1, max_length=100)
    license_number: Optional[str] = Field(None, min_length=1, max_length=50)
    # Replaces the whole list when given
    availability: Optional[List[AvailabilitySlot]] = None

class DoctorResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    department: str
    license_number: str
    phone: Optional[str] = None
    availability: List[AvailabilitySlot] = []
    user: UserSummary
