"""
Room swap service
Moves a live booking to another room, possibly in another facility
"""
from typing import List, Optional, Callable
from datetime import datetime
import logging
from sqlalchemy.orm import Session
from hotelops.domain.financials import sum_services
from hotelops.domain.swap_pricing import PriceStrategy, SwapQuote, calculate_swap_price
from hotelops.models.ontology import Booking, BookingStatus, Facility, Room, RoomStatus, Staff
from hotelops.models.schemas import SwapRequest
from hotelops.services.booking_service import BookingService, append_note
from hotelops.services.event_bus import event_bus, Event
from hotelops.models.events import EventType, RoomSwappedData
from hotelops.services.ledger import load_services

logger = logging.getLogger(__name__)

SWAPPABLE_STATUSES = (BookingStatus.CONFIRMED, BookingStatus.CHECKED_IN)


class SwapService:
    """Room swap service"""

    def __init__(self, db: Session, event_publisher: Callable[[Event], None] = None):
        self.db = db
        self._publish_event = event_publisher or event_bus.publish
        self.bookings = BookingService(db, event_publisher=self._publish_event)

    def _live_booking(self, booking_id: int) -> Booking:
        booking = self.bookings.get_booking(booking_id)
        if not booking:
            raise ValueError("Booking not found")
        if booking.status not in SWAPPABLE_STATUSES:
            raise ValueError(f"Booking is {booking.status.value} and cannot change room")
        return booking

    def available_target_rooms(self, booking_id: int, facility_name: str) -> List[Room]:
        """Rooms of ``facility_name`` the booking can move to, sorted by name"""
        booking = self._live_booking(booking_id)
        facility = self.db.query(Facility).filter(Facility.name == facility_name).first()
        if not facility:
            raise ValueError(f"Facility '{facility_name}' not found")

        candidates = []
        for room in self.db.query(Room).filter(Room.facility_id == facility.id).all():
            if facility_name == booking.facility_name and room.name == booking.room_code:
                continue
            if room.status == RoomStatus.REPAIR:
                continue
            if self.bookings.check_availability(facility_name, room.name, booking.check_in,
                                                booking.check_out, exclude_id=booking.id):
                candidates.append(room)
        return sorted(candidates, key=lambda r: (len(r.name), r.name))

    def _target(self, booking: Booking, facility_name: str, room_code: str) -> Room:
        facility, room = self.bookings.facility_room(facility_name, room_code)
        if facility_name == booking.facility_name and room_code == booking.room_code:
            raise ValueError("Booking is already in this room")
        if room.status == RoomStatus.REPAIR:
            raise ValueError(f"Room {room_code} is under repair")
        if not self.bookings.check_availability(facility_name, room_code, booking.check_in,
                                                booking.check_out, exclude_id=booking.id):
            raise ValueError(f"Room {room_code} is not free for this stay")
        return room

    def quote(self, booking_id: int, data: SwapRequest) -> SwapQuote:
        booking = self._live_booking(booking_id)
        room = self._target(booking, data.facility_name, data.room_code)
        return calculate_swap_price(booking, room.price, data.strategy, data.custom_total)

    def swap_room(self, booking_id: int, data: SwapRequest, operator: Optional[Staff] = None) -> Booking:
        """
        Move the booking
        1. price, totals and remaining follow the chosen strategy
        2. an audit line records old room, new room and the pricing
        3. the old room becomes dirty if the guest was in it, otherwise clean
        The new room's status is left as is.
        """
        booking = self._live_booking(booking_id)
        room = self._target(booking, data.facility_name, data.room_code)
        quote = calculate_swap_price(booking, room.price, data.strategy, data.custom_total)

        extra = booking.extra_fee or 0
        services_total = sum_services(load_services(booking))
        # the saved total is always the quoted total; the room charge absorbs the difference
        room_charge = quote.new_total - extra - services_total
        if room_charge < 0:
            label = "Custom total" if data.strategy == PriceStrategy.CUSTOM else "New total"
            raise ValueError(f"{label} cannot be below extra fee and services ({extra + services_total:,})")

        old_facility_name = booking.facility_name
        old_room_code = booking.room_code
        old_facility = self.db.query(Facility).filter(Facility.name == old_facility_name).first()
        old_room = None
        if old_facility:
            old_room = self.db.query(Room).filter(
                Room.facility_id == old_facility.id,
                Room.name == old_room_code
            ).first()

        now = datetime.now()
        try:
            booking.facility_name = data.facility_name
            booking.room_code = data.room_code
            booking.price = room_charge
            totals = self.bookings.recalculate(booking)
            append_note(
                booking,
                f"[{now.strftime('%d/%m %H:%M')}] Moved {old_room_code}({old_facility_name}) -> "
                f"{data.room_code}({data.facility_name}). {quote.explanation}"
            )
            if old_room:
                old_room.status = (RoomStatus.DIRTY if booking.status == BookingStatus.CHECKED_IN
                                   else RoomStatus.CLEAN)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(booking)

        logger.info(
            f"Booking {booking.id} moved {old_facility_name}/{old_room_code} -> "
            f"{data.facility_name}/{data.room_code}, total {totals.total_revenue}"
        )
        self._publish_event(Event(
            event_type=EventType.BOOKING_ROOM_SWAPPED,
            timestamp=datetime.now(),
            data=RoomSwappedData(
                booking_id=booking.id,
                old_facility_name=old_facility_name,
                old_room_code=old_room_code,
                new_facility_name=booking.facility_name,
                new_room_code=booking.room_code,
                new_total=booking.total_revenue or 0
            ).to_dict(),
            source="swap_service"
        ))
        return booking
