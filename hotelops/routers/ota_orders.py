"""
OTA order routes
Import, the paged queue, room assignment and cancellation handling
"""
from dataclasses import asdict
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from hotelops.database import get_db
from hotelops.models.ontology import Staff
from hotelops.models.schemas import (
    GroupedOtaOrderResponse, OtaAssignRequest, OtaAssignResponse, OtaImportResult,
    OtaOrderImport, OtaOrderPage, OtaOrderResponse, WebhookDeliveryResponse
)
from hotelops.services.booking_service import BookingService
from hotelops.services.ota_service import OtaService
from hotelops.security.auth import get_current_user, require_staff
from hotelops.routers.errors import http_error

router = APIRouter(prefix="/ota-orders", tags=["OTA orders"])


@router.get("", response_model=OtaOrderPage)
def list_orders(
    tab: Optional[str] = None,
    search: Optional[str] = None,
    date_mode: Optional[str] = Query(None, description="day | month"),
    date_value: Optional[str] = Query(None, description="YYYY-MM-DD or YYYY-MM"),
    page: int = Query(0, ge=0),
    page_size: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: Staff = Depends(get_current_user)
):
    """One page of the queue with multi-room reservations grouped"""
    try:
        grouped, has_more = OtaService(db).grouped_orders(
            tab=tab, search=search, date_mode=date_mode, date_value=date_value,
            page=page, page_size=page_size
        )
    except ValueError as e:
        raise http_error(e)
    data = [
        GroupedOtaOrderResponse(
            **OtaOrderResponse.model_validate(g.order).model_dump(),
            group_info=asdict(g.group_info) if g.group_info else None
        )
        for g in grouped
    ]
    return OtaOrderPage(data=data, has_more=has_more)


@router.post("/import", response_model=OtaImportResult)
def import_orders(
    orders: List[OtaOrderImport],
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_staff)
):
    try:
        return OtaService(db).import_orders(orders)
    except ValueError as e:
        raise http_error(e)


@router.post("/notify", response_model=List[WebhookDeliveryResponse])
def notify_pending(
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_staff)
):
    """Announce the latest pending orders on the notification channel"""
    return [asdict(d) for d in OtaService(db).sync_and_notify()]


@router.get("/{order_id}", response_model=OtaOrderResponse)
def get_order(
    order_id: int,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(get_current_user)
):
    order = OtaService(db).get_order(order_id)
    if not order:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="OTA order not found")
    return order


@router.post("/{order_id}/assign", response_model=OtaAssignResponse)
def assign_rooms(
    order_id: int,
    data: OtaAssignRequest,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_staff)
):
    """Create one booking per selected room and mark the order assigned"""
    try:
        order, bookings = OtaService(db).assign_rooms(order_id, data.room_ids, data.strategy)
    except ValueError as e:
        raise http_error(e)
    booking_service = BookingService(db)
    return OtaAssignResponse(
        order=OtaOrderResponse.model_validate(order),
        bookings=[booking_service.to_response(b) for b in bookings]
    )


@router.post("/{order_id}/confirm-cancel", response_model=OtaOrderResponse)
def confirm_cancellation(
    order_id: int,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_staff)
):
    try:
        return OtaService(db).confirm_cancellation(order_id)
    except ValueError as e:
        raise http_error(e)


@router.post("/{order_id}/resolve-conflict")
def resolve_conflict(
    order_id: int,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_staff)
):
    """Cancel the bookings still holding rooms for a cancelled order, then confirm it"""
    try:
        order, released = OtaService(db).resolve_conflict(order_id)
    except ValueError as e:
        raise http_error(e)
    return {
        "order": OtaOrderResponse.model_validate(order),
        "released_booking_ids": [b.id for b in released],
    }
