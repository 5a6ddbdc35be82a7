"""
Booking service
Reservations, their financial ledgers and the check-in / check-out lifecycle.
Every write recomputes total_revenue and remaining_amount from the ledgers.
"""
from typing import List, Optional, Callable, Sequence, Tuple
from datetime import date, datetime, time, timedelta
import logging
from sqlalchemy import or_
from sqlalchemy.orm import Session
from hotelops.config import settings
from hotelops.domain.availability import RELEASED_STATUSES, find_conflicts
from hotelops.domain.financials import (
    BookingTotals, distribute_group_payment, settle_cancellation, sum_payments
)
from hotelops.domain.pricing import stay_price
from hotelops.models.ontology import (
    Booking, BookingStatus, Facility, HousekeepingTaskType, PaymentMethod,
    Room, RoomStatus, Staff, TaskPriority
)
from hotelops.models.schemas import (
    BookingCreate, BookingResponse, BookingUpdate, CancelRequest, CheckInRequest,
    CheckOutRequest, GroupBookingCreate, GuestEntry, LendingItem, PaymentCreate,
    PaymentEntry, ServiceUsage
)
from hotelops.services.event_bus import event_bus, Event
from hotelops.models.events import (
    EventType, BookingEventData, BookingCheckedOutData, BookingCancelledData, PaymentReceivedData
)
from hotelops.services.housekeeping_service import new_task
from hotelops.services.inventory_service import InventoryService
from hotelops.services.ledger import (
    dump_ledger, load_guests, load_lending, load_payments, load_services, recalculate_totals
)

logger = logging.getLogger(__name__)

GROUP_SOURCE = "Khách đoàn"


def audit_line(action: str, operator: Optional[Staff], when: Optional[datetime] = None) -> str:
    """One audit line appended to the booking note"""
    when = when or datetime.now()
    actor = operator.name if operator else "Unknown"
    return f"[{when.strftime('%H:%M %d/%m')}] {action} by {actor}"


def append_note(booking: Booking, line: str) -> None:
    booking.note = f"{booking.note}\n{line}" if booking.note else line


class BookingService:
    """Booking service"""

    def __init__(self, db: Session, event_publisher: Callable[[Event], None] = None):
        self.db = db
        self._publish_event = event_publisher or event_bus.publish
        self.inventory = InventoryService(db)

    # ============== Queries ==============

    def get_bookings(self, facility_name: Optional[str] = None,
                     status: Optional[BookingStatus] = None,
                     search: Optional[str] = None,
                     on_date: Optional[date] = None,
                     group_id: Optional[str] = None) -> List[Booking]:
        """List bookings; ``on_date`` keeps stays that cover that calendar day"""
        query = self.db.query(Booking)
        if facility_name:
            query = query.filter(Booking.facility_name == facility_name)
        if status:
            query = query.filter(Booking.status == status)
        if group_id:
            query = query.filter(Booking.group_id == group_id)
        if search:
            term = f"%{search.strip()}%"
            query = query.filter(or_(
                Booking.customer_name.ilike(term),
                Booking.customer_phone.ilike(term),
                Booking.room_code.ilike(term),
                Booking.note.ilike(term),
            ))
        if on_date:
            day_start = datetime.combine(on_date, time.min)
            day_end = day_start + timedelta(days=1)
            query = query.filter(Booking.check_in < day_end, Booking.check_out > day_start)
        return query.order_by(Booking.check_in.desc(), Booking.id.desc()).all()

    def get_booking(self, booking_id: int) -> Optional[Booking]:
        return self.db.query(Booking).filter(Booking.id == booking_id).first()

    def _require(self, booking_id: int) -> Booking:
        booking = self.get_booking(booking_id)
        if not booking:
            raise ValueError("Booking not found")
        return booking

    def facility_room(self, facility_name: str, room_code: str) -> Tuple[Facility, Room]:
        facility = self.db.query(Facility).filter(Facility.name == facility_name).first()
        if not facility:
            raise ValueError(f"Facility '{facility_name}' not found")
        room = self.db.query(Room).filter(
            Room.facility_id == facility.id,
            Room.name == room_code
        ).first()
        if not room:
            raise ValueError(f"Room '{room_code}' not found in {facility_name}")
        return facility, room

    # ============== Availability ==============

    def find_conflicts(self, facility_name: str, room_code: str, check_in: datetime,
                       check_out: datetime, exclude_id: Optional[int] = None) -> List[Booking]:
        candidates = self.db.query(Booking).filter(
            Booking.facility_name == facility_name,
            Booking.room_code == room_code,
            Booking.status.notin_(RELEASED_STATUSES)
        ).all()
        return find_conflicts(candidates, facility_name, room_code, check_in, check_out, exclude_id)

    def check_availability(self, facility_name: str, room_code: str, check_in: datetime,
                           check_out: datetime, exclude_id: Optional[int] = None) -> bool:
        return not self.find_conflicts(facility_name, room_code, check_in, check_out, exclude_id)

    def _ensure_available(self, facility_name: str, room_code: str, check_in: datetime,
                          check_out: datetime, exclude_id: Optional[int] = None) -> None:
        if check_out <= check_in:
            raise ValueError("Check-out must be after check-in")
        conflicts = self.find_conflicts(facility_name, room_code, check_in, check_out, exclude_id)
        if conflicts:
            ids = ", ".join(str(b.id) for b in conflicts)
            raise ValueError(f"Room {room_code} is already booked for these dates (booking {ids})")

    # ============== Ledgers ==============

    def recalculate(self, booking: Booking) -> BookingTotals:
        return recalculate_totals(booking)

    def _apply_ledgers(self, booking: Booking, operator: Optional[Staff],
                       services: Optional[Sequence[ServiceUsage]] = None,
                       lending: Optional[Sequence[LendingItem]] = None,
                       guests: Optional[Sequence[GuestEntry]] = None) -> None:
        """Deduct stock against the persisted ledgers, then replace them"""
        if services is not None:
            services = [s.model_copy(update={"total": s.price * s.quantity}) for s in services]
            self.inventory.deduct_services(booking, services, operator)
            booking.services_json = dump_ledger(services)
        if lending is not None:
            self.inventory.deduct_lending(booking, lending, operator)
            booking.lending_json = dump_ledger(lending)
        if guests is not None:
            booking.guests_json = dump_ledger(guests)

    def to_response(self, booking: Booking) -> BookingResponse:
        return BookingResponse(
            id=booking.id,
            facility_name=booking.facility_name,
            room_code=booking.room_code,
            customer_name=booking.customer_name,
            customer_phone=booking.customer_phone,
            source=booking.source,
            collaborator=booking.collaborator,
            payment_method=booking.payment_method,
            check_in=booking.check_in,
            check_out=booking.check_out,
            status=booking.status,
            actual_check_in=booking.actual_check_in,
            actual_check_out=booking.actual_check_out,
            price=booking.price or 0,
            extra_fee=booking.extra_fee or 0,
            total_revenue=booking.total_revenue or 0,
            remaining_amount=booking.remaining_amount or 0,
            note=booking.note,
            payments=load_payments(booking),
            services=load_services(booking),
            lending=load_lending(booking),
            guests=load_guests(booking),
            is_declared=bool(booking.is_declared),
            group_id=booking.group_id,
            group_name=booking.group_name,
            is_group_leader=bool(booking.is_group_leader),
            created_at=booking.created_at,
        )

    def _publish_booking(self, event_type: EventType, booking: Booking,
                         operator: Optional[Staff]) -> None:
        self._publish_event(Event(
            event_type=event_type,
            timestamp=datetime.now(),
            data=BookingEventData(
                booking_id=booking.id,
                facility_name=booking.facility_name,
                room_code=booking.room_code,
                customer_name=booking.customer_name,
                operator_id=operator.id if operator else None
            ).to_dict(),
            source="booking_service"
        ))

    # ============== Create / save ==============

    def create_booking(self, data: BookingCreate, operator: Optional[Staff] = None) -> Booking:
        """
        Create a booking
        1. the room must exist and be free for [check_in, check_out)
        2. price defaults to the listed price of the stay
        3. service and lending quantities are taken from stock
        """
        facility, room = self.facility_room(data.facility_name, data.room_code)
        self._ensure_available(data.facility_name, data.room_code, data.check_in, data.check_out)

        price = data.price if data.price is not None else stay_price(
            facility, room, data.check_in, data.check_out
        )
        booking = Booking(
            facility_name=data.facility_name,
            room_code=data.room_code,
            customer_name=data.customer_name,
            customer_phone=data.customer_phone,
            source=data.source,
            collaborator=data.collaborator,
            payment_method=data.payment_method,
            check_in=data.check_in,
            check_out=data.check_out,
            status=BookingStatus.CONFIRMED,
            price=price,
            extra_fee=data.extra_fee,
            note=data.note or "",
            payments_json=dump_ledger(data.payments),
            services_json="[]",
            lending_json="[]",
            guests_json="[]",
        )
        try:
            self.db.add(booking)
            self.db.flush()
            self._apply_ledgers(booking, operator, data.services, data.lending, data.guests)
            self.recalculate(booking)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(booking)

        logger.info(f"Booking {booking.id} created for {booking.facility_name}/{booking.room_code}")
        self._publish_booking(EventType.BOOKING_CREATED, booking, operator)
        return booking

    def create_group_booking(self, data: GroupBookingCreate, operator: Optional[Staff] = None) -> List[Booking]:
        """
        One booking per room sharing a group id.
        The first room is the leader and carries the contact and the guest list.
        """
        if len(set(data.room_codes)) != len(data.room_codes):
            raise ValueError("A room can only appear once in a group booking")

        priced = []
        for room_code in data.room_codes:
            facility, room = self.facility_room(data.facility_name, room_code)
            self._ensure_available(data.facility_name, room_code, data.check_in, data.check_out)
            priced.append((room_code, stay_price(facility, room, data.check_in, data.check_out)))

        group_id = f"GRP-{datetime.now().strftime('%Y%m%d%H%M%S%f')}"
        group_name = data.group_name or data.customer_name
        bookings = []
        try:
            for index, (room_code, price) in enumerate(priced):
                is_leader = index == 0
                booking = Booking(
                    facility_name=data.facility_name,
                    room_code=room_code,
                    customer_name=data.customer_name if is_leader else f"Group {group_name} ({index + 1})",
                    customer_phone=data.customer_phone if is_leader else "",
                    source=data.source or GROUP_SOURCE,
                    collaborator=data.collaborator,
                    payment_method=data.payment_method,
                    check_in=data.check_in,
                    check_out=data.check_out,
                    status=BookingStatus.CONFIRMED,
                    price=price,
                    extra_fee=0,
                    total_revenue=price,
                    remaining_amount=price,
                    note=data.note or "",
                    payments_json="[]",
                    services_json="[]",
                    lending_json="[]",
                    guests_json=dump_ledger(data.guests) if is_leader else "[]",
                    group_id=group_id,
                    group_name=group_name,
                    is_group_leader=is_leader,
                )
                self.db.add(booking)
                bookings.append(booking)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        for booking in bookings:
            self.db.refresh(booking)
        logger.info(f"Group {group_id} created with {len(bookings)} rooms")
        return bookings

    def save_booking(self, booking_id: int, data: BookingUpdate, operator: Optional[Staff] = None) -> Booking:
        """Full form save: field changes, ledger replacement with stock deduction, totals"""
        booking = self._require(booking_id)
        if booking.status in RELEASED_STATUSES:
            raise ValueError(f"Booking is {booking.status.value} and cannot be edited")

        update_data = data.model_dump(exclude_unset=True, exclude={"services", "lending", "guests"})
        facility_name = update_data.get("facility_name", booking.facility_name)
        room_code = update_data.get("room_code", booking.room_code)
        check_in = update_data.get("check_in", booking.check_in)
        check_out = update_data.get("check_out", booking.check_out)
        if (facility_name, room_code, check_in, check_out) != (
                booking.facility_name, booking.room_code, booking.check_in, booking.check_out):
            self.facility_room(facility_name, room_code)
            self._ensure_available(facility_name, room_code, check_in, check_out, exclude_id=booking.id)

        try:
            for key, value in update_data.items():
                setattr(booking, key, value)
            self._apply_ledgers(booking, operator, data.services, data.lending, data.guests)
            self.recalculate(booking)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(booking)
        return booking

    # ============== Payments ==============

    def add_payment(self, booking_id: int, data: PaymentCreate) -> Booking:
        """Append a payment and persist it immediately"""
        if data.amount is None or data.amount <= 0:
            raise ValueError("Payment amount must be positive")
        booking = self._require(booking_id)
        if booking.status == BookingStatus.CANCELLED:
            raise ValueError("Cannot take a payment on a cancelled booking")

        payments = load_payments(booking)
        payments.append(PaymentEntry(amount=data.amount, method=data.method, note=data.note or ""))
        try:
            booking.payments_json = dump_ledger(payments)
            self.recalculate(booking)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(booking)

        self._publish_event(Event(
            event_type=EventType.PAYMENT_RECEIVED,
            timestamp=datetime.now(),
            data=PaymentReceivedData(
                booking_id=booking.id,
                amount=data.amount,
                method=data.method.value
            ).to_dict(),
            source="booking_service"
        ))
        return booking

    def get_group_members(self, group_id: str) -> List[Booking]:
        """Group members in a stable order: leader first, then by id"""
        return self.db.query(Booking).filter(Booking.group_id == group_id).order_by(
            Booking.is_group_leader.desc(), Booking.id
        ).all()

    def add_group_payment(self, booking_id: int, data: PaymentCreate) -> dict:
        """
        Spread one payment over the booking's group.
        Members are paid down in order; any leftover is returned unallocated.
        """
        if data.amount is None or data.amount <= 0:
            raise ValueError("Payment amount must be positive")
        booking = self._require(booking_id)
        if not booking.group_id:
            raise ValueError("Booking is not part of a group")

        members = [m for m in self.get_group_members(booking.group_id)
                   if m.status != BookingStatus.CANCELLED]
        plan = distribute_group_payment(members, data.amount)
        by_id = {m.id: m for m in members}

        note = f"Group payment ({booking.group_name})"
        if data.note:
            note = f"{note} {data.note}"
        try:
            for allocation in plan.allocations:
                member = by_id[allocation.booking_id]
                payments = load_payments(member)
                payments.append(PaymentEntry(amount=allocation.amount, method=data.method, note=note))
                member.payments_json = dump_ledger(payments)
                self.recalculate(member)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        if plan.unallocated > settings.GROUP_PAYMENT_LEFTOVER_THRESHOLD:
            logger.info(
                f"Group {booking.group_id} payment of {data.amount} left {plan.unallocated} unallocated"
            )

        for allocation in plan.allocations:
            self._publish_event(Event(
                event_type=EventType.PAYMENT_RECEIVED,
                timestamp=datetime.now(),
                data=PaymentReceivedData(
                    booking_id=allocation.booking_id,
                    amount=allocation.amount,
                    method=data.method.value,
                    group_id=booking.group_id
                ).to_dict(),
                source="booking_service"
            ))

        return {
            "group_id": booking.group_id,
            "allocations": [
                {"booking_id": a.booking_id, "room_code": by_id[a.booking_id].room_code, "amount": a.amount}
                for a in plan.allocations
            ],
            "allocated_amount": plan.allocated,
            "unallocated_amount": plan.unallocated,
        }

    def group_financials(self, group_id: str) -> dict:
        members = self.get_group_members(group_id)
        if not members:
            raise ValueError("Group not found")
        return {
            "group_id": group_id,
            "total": sum(m.total_revenue or 0 for m in members),
            "paid": sum(sum_payments(load_payments(m)) for m in members),
            "remaining": sum(m.remaining_amount or 0 for m in members),
            "member_count": len(members),
        }

    # ============== Lifecycle ==============

    def check_in(self, booking_id: int, data: Optional[CheckInRequest] = None,
                 operator: Optional[Staff] = None) -> Booking:
        """Check in: room still free, stock taken, actual time and audit line recorded"""
        booking = self._require(booking_id)
        if booking.status != BookingStatus.CONFIRMED:
            raise ValueError(f"Only confirmed bookings can check in (status: {booking.status.value})")
        self._ensure_available(booking.facility_name, booking.room_code,
                               booking.check_in, booking.check_out, exclude_id=booking.id)

        data = data or CheckInRequest()
        now = datetime.now()
        try:
            self._apply_ledgers(booking, operator, data.services, data.lending, data.guests)
            booking.status = BookingStatus.CHECKED_IN
            booking.actual_check_in = now
            append_note(booking, audit_line("Check-in", operator, now))
            self.recalculate(booking)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(booking)

        self._publish_booking(EventType.BOOKING_CHECKED_IN, booking, operator)
        return booking

    def check_out(self, booking_id: int, data: Optional[CheckOutRequest] = None,
                  operator: Optional[Staff] = None) -> Booking:
        """
        Check out
        Business rules (one transaction):
        1. an open balance needs allow_unsettled
        2. booking closed with actual time and audit line
        3. a High priority Checkout task is created
        4. the room is marked dirty
        The checkout webhook follows through the event bus.
        """
        booking = self._require(booking_id)
        if booking.status != BookingStatus.CHECKED_IN:
            raise ValueError(f"Only checked-in bookings can check out (status: {booking.status.value})")

        data = data or CheckOutRequest()
        now = datetime.now()
        try:
            self._apply_ledgers(booking, operator, data.services)
            totals = self.recalculate(booking)
            if totals.remaining > 0 and not data.allow_unsettled:
                raise ValueError(
                    f"Booking has an unpaid balance of {totals.remaining:,}. Confirm to check out anyway"
                )

            booking.status = BookingStatus.CHECKED_OUT
            booking.actual_check_out = now
            append_note(booking, f"{audit_line('Check-out', operator, now)}. Total: {totals.total_revenue:,}")

            facility = self.db.query(Facility).filter(Facility.name == booking.facility_name).first()
            if facility:
                self.db.add(new_task(facility.id, booking.room_code, HousekeepingTaskType.CHECKOUT,
                                     TaskPriority.HIGH, "Guest checked out (Auto-generated)"))
                room = self.db.query(Room).filter(
                    Room.facility_id == facility.id,
                    Room.name == booking.room_code
                ).first()
                if room:
                    room.status = RoomStatus.DIRTY
            else:
                logger.warning(f"Booking {booking.id} checked out from unknown facility {booking.facility_name}")

            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(booking)

        self._publish_event(Event(
            event_type=EventType.BOOKING_CHECKED_OUT,
            timestamp=datetime.now(),
            data=BookingCheckedOutData(
                booking_id=booking.id,
                facility_name=booking.facility_name,
                room_code=booking.room_code,
                customer_name=booking.customer_name,
                remaining_amount=booking.remaining_amount or 0,
                operator_id=operator.id if operator else None
            ).to_dict(),
            source="booking_service"
        ))
        return booking

    def cancel(self, booking_id: int, data: CancelRequest, operator: Optional[Staff] = None) -> Booking:
        """
        Cancel and settle
        The retained fee becomes the revenue; what was paid above it is refunded
        as a negative payment entry.
        """
        if not data.reason or not data.reason.strip():
            raise ValueError("A cancellation reason is required")
        booking = self._require(booking_id)
        if booking.status in RELEASED_STATUSES:
            raise ValueError(f"Booking is already {booking.status.value}")

        payments = load_payments(booking)
        settlement = settle_cancellation(sum_payments(payments), data.cancel_fee)
        if settlement.refund_entry_amount is not None:
            payments.append(PaymentEntry(
                amount=settlement.refund_entry_amount,
                method=PaymentMethod.CASH,
                note=f"Cancellation refund (fee: {data.cancel_fee:,})"
            ))

        try:
            booking.payments_json = dump_ledger(payments)
            booking.status = BookingStatus.CANCELLED
            booking.total_revenue = settlement.total_revenue
            booking.remaining_amount = settlement.remaining
            append_note(booking, f"[CANCELLED]: {data.reason}. Fee: {data.cancel_fee}, Refund: {settlement.refund}")
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(booking)

        self._publish_event(Event(
            event_type=EventType.BOOKING_CANCELLED,
            timestamp=datetime.now(),
            data=BookingCancelledData(
                booking_id=booking.id,
                facility_name=booking.facility_name,
                room_code=booking.room_code,
                reason=data.reason,
                cancel_fee=data.cancel_fee,
                refund=settlement.refund
            ).to_dict(),
            source="booking_service"
        ))
        return booking
