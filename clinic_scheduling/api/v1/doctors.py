from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List

from ...core.database import get_db
from ...core.exceptions import NotFound
from ...api.deps import get_admin_user, get_current_user, get_doctor_user
from ...services.profile_service import ProfileService
from ...schemas.doctor import DoctorCreate, DoctorUpdate, DoctorResponse
from ...models.user import User

router = APIRouter(prefix="/doctors", tags=["Doctors"])

@router.post("", response_model=DoctorResponse, status_code=status.HTTP_201_CREATED)
async def create_doctor(
    doctor_data: DoctorCreate,
    db: Session = Depends(get_db),
    _: User = Depends(get_admin_user)
):
    """Onboard a doctor: login account plus profile (admin only)."""
    return ProfileService(db).create_doctor(doctor_data)

@router.get("", response_model=List[DoctorResponse])
async def list_doctors(
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user)
):
    return ProfileService(db).list_doctors()

@router.get("/current", response_model=DoctorResponse)
async def get_current_doctor(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_doctor_user)
):
    """Profile of the calling doctor."""
    doctor = ProfileService(db).get_doctor_by_user(current_user.id)
    if not doctor:
        raise NotFound("Doctor profile not found")
    return doctor

@router.get("/{doctor_id}", response_model=DoctorResponse)
async def get_doctor(
    doctor_id: int,
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user)
):
    return ProfileService(db).require_doctor(doctor_id)

@router.put("/{doctor_id}", response_model=DoctorResponse)
async def update_doctor(
    doctor_id: int,
    doctor_data: DoctorUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Update a doctor profile; availability is replaced wholesale when sent."""
    return ProfileService(db).update_doctor(doctor_id, doctor_data, current_user)

@router.delete("/{doctor_id}")
async def delete_doctor(
    doctor_id: int,
    db: Session = Depends(get_db),
    _: User = Depends(get_admin_user)
):
    """Remove a doctor without appointments, with their account (admin only)."""
    ProfileService(db).delete_doctor(doctor_id)
    return {"success": True, "message": "Doctor removed", "doctor_id": doctor_id}
