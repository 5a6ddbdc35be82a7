"""
Booking routes
Reservations, payments, check-in / check-out, cancellation, room swap and bills
"""
from typing import List, Optional
from datetime import date, datetime
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from hotelops.database import get_db
from hotelops.models.ontology import Staff, BookingStatus
from hotelops.models.schemas import (
    AvailabilityResponse, BillPreview, BookingCreate, BookingResponse, BookingUpdate,
    CancelRequest, CheckInRequest, CheckOutRequest, GroupBookingCreate, GroupFinancials,
    GroupPaymentResponse, PaymentCreate, RoomResponse, SwapQuoteResponse, SwapRequest
)
from hotelops.services.booking_service import BookingService
from hotelops.services.payment_qr import PaymentQrService
from hotelops.services.swap_service import SwapService
from hotelops.security.auth import get_current_user, require_staff
from hotelops.routers.errors import http_error

router = APIRouter(prefix="/bookings", tags=["Bookings"])


@router.get("", response_model=List[BookingResponse])
def list_bookings(
    facility_name: Optional[str] = None,
    booking_status: Optional[BookingStatus] = Query(None, alias="status"),
    search: Optional[str] = None,
    on_date: Optional[date] = None,
    group_id: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(get_current_user)
):
    service = BookingService(db)
    bookings = service.get_bookings(facility_name, booking_status, search, on_date, group_id)
    return [service.to_response(b) for b in bookings]


@router.get("/availability", response_model=AvailabilityResponse)
def check_availability(
    facility_name: str,
    room_code: str,
    check_in: datetime,
    check_out: datetime,
    exclude_id: Optional[int] = None,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(get_current_user)
):
    """Whether the room is free for [check_in, check_out)"""
    conflicts = BookingService(db).find_conflicts(facility_name, room_code, check_in, check_out, exclude_id)
    return AvailabilityResponse(available=not conflicts, conflicts=[b.id for b in conflicts])


@router.get("/groups/{group_id}", response_model=GroupFinancials)
def get_group_financials(
    group_id: str,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(get_current_user)
):
    try:
        return BookingService(db).group_financials(group_id)
    except ValueError as e:
        raise http_error(e)


@router.get("/{booking_id}", response_model=BookingResponse)
def get_booking(
    booking_id: int,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(get_current_user)
):
    service = BookingService(db)
    booking = service.get_booking(booking_id)
    if not booking:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Booking not found")
    return service.to_response(booking)


@router.post("", response_model=BookingResponse)
def create_booking(
    data: BookingCreate,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_staff)
):
    service = BookingService(db)
    try:
        return service.to_response(service.create_booking(data, current_user))
    except ValueError as e:
        raise http_error(e)


@router.post("/group", response_model=List[BookingResponse])
def create_group_booking(
    data: GroupBookingCreate,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_staff)
):
    """One booking per room, sharing a group id; the first room is the leader"""
    service = BookingService(db)
    try:
        return [service.to_response(b) for b in service.create_group_booking(data, current_user)]
    except ValueError as e:
        raise http_error(e)


@router.put("/{booking_id}", response_model=BookingResponse)
def save_booking(
    booking_id: int,
    data: BookingUpdate,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_staff)
):
    service = BookingService(db)
    try:
        return service.to_response(service.save_booking(booking_id, data, current_user))
    except ValueError as e:
        raise http_error(e)


# ============== Payments ==============

@router.post("/{booking_id}/payments", response_model=BookingResponse)
def add_payment(
    booking_id: int,
    data: PaymentCreate,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_staff)
):
    service = BookingService(db)
    try:
        return service.to_response(service.add_payment(booking_id, data))
    except ValueError as e:
        raise http_error(e)


@router.post("/{booking_id}/group-payment", response_model=GroupPaymentResponse)
def add_group_payment(
    booking_id: int,
    data: PaymentCreate,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_staff)
):
    try:
        return BookingService(db).add_group_payment(booking_id, data)
    except ValueError as e:
        raise http_error(e)


@router.get("/{booking_id}/bill", response_model=BillPreview)
def bill_preview(
    booking_id: int,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(get_current_user)
):
    """Bill totals with a VietQR image for the open balance"""
    try:
        return PaymentQrService(db).bill_preview(booking_id)
    except ValueError as e:
        raise http_error(e)


# ============== Lifecycle ==============

@router.post("/{booking_id}/check-in", response_model=BookingResponse)
def check_in(
    booking_id: int,
    data: Optional[CheckInRequest] = None,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_staff)
):
    service = BookingService(db)
    try:
        return service.to_response(service.check_in(booking_id, data, current_user))
    except ValueError as e:
        raise http_error(e)


@router.post("/{booking_id}/check-out", response_model=BookingResponse)
def check_out(
    booking_id: int,
    data: Optional[CheckOutRequest] = None,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_staff)
):
    """An open balance is refused unless allow_unsettled is set"""
    service = BookingService(db)
    try:
        return service.to_response(service.check_out(booking_id, data, current_user))
    except ValueError as e:
        raise http_error(e)


@router.post("/{booking_id}/cancel", response_model=BookingResponse)
def cancel_booking(
    booking_id: int,
    data: CancelRequest,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_staff)
):
    service = BookingService(db)
    try:
        return service.to_response(service.cancel(booking_id, data, current_user))
    except ValueError as e:
        raise http_error(e)


# ============== Room swap ==============

@router.get("/{booking_id}/swap/targets", response_model=List[RoomResponse])
def swap_targets(
    booking_id: int,
    facility_name: str,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(get_current_user)
):
    try:
        return SwapService(db).available_target_rooms(booking_id, facility_name)
    except ValueError as e:
        raise http_error(e)


@router.post("/{booking_id}/swap/quote", response_model=SwapQuoteResponse)
def swap_quote(
    booking_id: int,
    data: SwapRequest,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(get_current_user)
):
    try:
        return SwapQuoteResponse.model_validate(SwapService(db).quote(booking_id, data), from_attributes=True)
    except ValueError as e:
        raise http_error(e)


@router.post("/{booking_id}/swap", response_model=BookingResponse)
def swap_room(
    booking_id: int,
    data: SwapRequest,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_staff)
):
    try:
        booking = SwapService(db).swap_room(booking_id, data, current_user)
        return BookingService(db).to_response(booking)
    except ValueError as e:
        raise http_error(e)
