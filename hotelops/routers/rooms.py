"""
Room routes
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from hotelops.database import get_db
from hotelops.models.ontology import Staff, RoomStatus
from hotelops.models.schemas import RoomCreate, RoomUpdate, RoomResponse, RoomStatusUpdate
from hotelops.services.room_service import RoomService
from hotelops.security.auth import get_current_user, require_manager, require_housekeeping
from hotelops.routers.errors import http_error

router = APIRouter(prefix="/rooms", tags=["Rooms"])


@router.get("", response_model=List[RoomResponse])
def list_rooms(
    facility_id: Optional[int] = None,
    room_status: Optional[RoomStatus] = Query(None, alias="status"),
    db: Session = Depends(get_db),
    current_user: Staff = Depends(get_current_user)
):
    return RoomService(db).get_rooms(facility_id, room_status)


@router.get("/{room_id}", response_model=RoomResponse)
def get_room(
    room_id: int,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(get_current_user)
):
    room = RoomService(db).get_room(room_id)
    if not room:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Room not found")
    return room


@router.post("", response_model=RoomResponse)
def create_room(
    data: RoomCreate,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_manager)
):
    try:
        return RoomService(db).create_room(data)
    except ValueError as e:
        raise http_error(e)


@router.put("/{room_id}", response_model=RoomResponse)
def update_room(
    room_id: int,
    data: RoomUpdate,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_manager)
):
    try:
        return RoomService(db).update_room(room_id, data)
    except ValueError as e:
        raise http_error(e)


@router.delete("/{room_id}")
def delete_room(
    room_id: int,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_manager)
):
    try:
        RoomService(db).delete_room(room_id)
        return {"message": "Room deleted"}
    except ValueError as e:
        raise http_error(e)


@router.patch("/{room_id}/status", response_model=RoomResponse)
def update_room_status(
    room_id: int,
    data: RoomStatusUpdate,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_housekeeping)
):
    try:
        return RoomService(db).update_room_status(room_id, data.status)
    except ValueError as e:
        raise http_error(e)


@router.post("/{room_id}/cycle-status", response_model=RoomResponse)
def cycle_room_status(
    room_id: int,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_housekeeping)
):
    """clean -> dirty -> cleaning -> clean"""
    try:
        return RoomService(db).cycle_status(room_id)
    except ValueError as e:
        raise http_error(e)


@router.post("/{room_id}/quick-clean", response_model=RoomResponse)
def quick_clean_room(
    room_id: int,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_housekeeping)
):
    try:
        return RoomService(db).quick_clean(room_id)
    except ValueError as e:
        raise http_error(e)
