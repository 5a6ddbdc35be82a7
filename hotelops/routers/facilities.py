"""
Facility routes
"""
from typing import List
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from hotelops.database import get_db
from hotelops.models.ontology import Staff
from hotelops.models.schemas import FacilityCreate, FacilityUpdate, FacilityResponse
from hotelops.services.room_service import RoomService
from hotelops.security.auth import get_current_user, require_manager
from hotelops.routers.errors import http_error

router = APIRouter(prefix="/facilities", tags=["Facilities"])


@router.get("", response_model=List[FacilityResponse])
def list_facilities(
    db: Session = Depends(get_db),
    current_user: Staff = Depends(get_current_user)
):
    service = RoomService(db)
    return [FacilityResponse(**service.facility_with_count(f)) for f in service.get_facilities()]


@router.get("/{facility_id}", response_model=FacilityResponse)
def get_facility(
    facility_id: int,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(get_current_user)
):
    service = RoomService(db)
    facility = service.get_facility(facility_id)
    if not facility:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Facility not found")
    return FacilityResponse(**service.facility_with_count(facility))


@router.post("", response_model=FacilityResponse)
def create_facility(
    data: FacilityCreate,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_manager)
):
    service = RoomService(db)
    try:
        facility = service.create_facility(data)
        return FacilityResponse(**service.facility_with_count(facility))
    except ValueError as e:
        raise http_error(e)


@router.put("/{facility_id}", response_model=FacilityResponse)
def update_facility(
    facility_id: int,
    data: FacilityUpdate,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_manager)
):
    """Rename is carried over to the facility's bookings"""
    service = RoomService(db)
    try:
        facility = service.update_facility(facility_id, data)
        return FacilityResponse(**service.facility_with_count(facility))
    except ValueError as e:
        raise http_error(e)


@router.delete("/{facility_id}")
def delete_facility(
    facility_id: int,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_manager)
):
    service = RoomService(db)
    try:
        service.delete_facility(facility_id)
        return {"message": "Facility deleted"}
    except ValueError as e:
        raise http_error(e)
