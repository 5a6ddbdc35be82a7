"""
Housekeeping routes
Task board, stayover answers and what housekeeping reports from the room
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from hotelops.database import get_db
from hotelops.models.ontology import Staff, HousekeepingStatus
from hotelops.models.schemas import (
    BulkTaskUpdate, HousekeepingTaskResponse, HousekeepingTaskUpdate, MinibarUsageRequest,
    RoomRestockRequest, ServiceItemResponse, StayoverRequest
)
from hotelops.services.housekeeping_service import HousekeepingService
from hotelops.services.inventory_service import InventoryService
from hotelops.security.auth import get_current_user, require_housekeeping, require_manager
from hotelops.routers.errors import http_error

router = APIRouter(prefix="/housekeeping", tags=["Housekeeping"])


@router.get("/tasks", response_model=List[HousekeepingTaskResponse])
def list_tasks(
    facility_id: Optional[int] = None,
    task_status: Optional[HousekeepingStatus] = Query(None, alias="status"),
    assignee: Optional[str] = None,
    open_only: bool = False,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(get_current_user)
):
    return HousekeepingService(db).get_tasks(facility_id, task_status, assignee, open_only)


@router.get("/tasks/{task_id}", response_model=HousekeepingTaskResponse)
def get_task(
    task_id: int,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(get_current_user)
):
    task = HousekeepingService(db).get_task(task_id)
    if not task:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found")
    return task


@router.put("/tasks/{task_id}", response_model=HousekeepingTaskResponse)
def update_task(
    task_id: int,
    data: HousekeepingTaskUpdate,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_housekeeping)
):
    """Task and room status are written together"""
    try:
        return HousekeepingService(db).update_task(task_id, data)
    except ValueError as e:
        raise http_error(e)


@router.post("/tasks/bulk", response_model=List[HousekeepingTaskResponse])
def bulk_update_tasks(
    data: BulkTaskUpdate,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_manager)
):
    try:
        return HousekeepingService(db).bulk_update(data)
    except ValueError as e:
        raise http_error(e)


@router.post("/stayover", response_model=HousekeepingTaskResponse)
def record_stayover(
    data: StayoverRequest,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_housekeeping)
):
    try:
        return HousekeepingService(db).record_stayover(data, current_user)
    except ValueError as e:
        raise http_error(e)


@router.post("/minibar-usage")
def record_minibar_usage(
    data: MinibarUsageRequest,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_housekeeping)
):
    """Deduct consumed items; paid items are billed to the room's live booking"""
    try:
        booking = InventoryService(db).record_minibar_usage(
            data.facility_name, data.room_code, data.items, current_user
        )
    except ValueError as e:
        raise http_error(e)
    return {"booking_id": booking.id if booking else None}


@router.post("/restock", response_model=List[ServiceItemResponse])
def restock_room(
    data: RoomRestockRequest,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_housekeeping)
):
    try:
        return InventoryService(db).restock_room(data.items)
    except ValueError as e:
        raise http_error(e)
