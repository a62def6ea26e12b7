from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List

from ...core.database import get_db
from ...core.exceptions import NotFound
from ...api.deps import get_admin_user, get_current_user
from ...services.profile_service import ProfileService
from ...schemas.patient import PatientCreate, PatientUpdate, PatientResponse
from ...models.user import User

router = APIRouter(prefix="/patients", tags=["Patients"])

@router.post("", response_model=PatientResponse, status_code=status.HTTP_201_CREATED)
async def create_patient(
    patient_data: PatientCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Create the caller's own patient profile."""
    return ProfileService(db).create_patient(patient_data, current_user)

@router.get("", response_model=List[PatientResponse])
async def list_patients(
    db: Session = Depends(get_db),
    _: User = Depends(get_admin_user)
):
    return ProfileService(db).list_patients()

@router.get("/current", response_model=PatientResponse)
async def get_current_patient(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    patient = ProfileService(db).get_patient_by_user(current_user.id)
    if not patient:
        raise NotFound("Patient profile not found")
    return patient

@router.get("/{patient_id}", response_model=PatientResponse)
async def get_patient(
    patient_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return ProfileService(db).view_patient(patient_id, current_user)

@router.put("/{patient_id}", response_model=PatientResponse)
async def update_patient(
    patient_id: int,
    patient_data: PatientUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Update demographics; completes a profile created at first booking."""
    return ProfileService(db).update_patient(patient_id, patient_data, current_user)

@router.delete("/{patient_id}")
async def delete_patient(
    patient_id: int,
    db: Session = Depends(get_db),
    _: User = Depends(get_admin_user)
):
    """Remove a patient profile without appointments (admin only)."""
    ProfileService(db).delete_patient(patient_id)
    return {"success": True, "message": "Patient profile deleted", "patient_id": patient_id}
