"""
OTA order service
Imported orders from booking platforms, the order queue and room assignment
"""
from typing import List, Optional, Callable, Sequence, Tuple
from datetime import date, datetime, time, timedelta
import calendar
import logging
from sqlalchemy import case, or_
from sqlalchemy.orm import Session
from hotelops.domain.financials import CostSplitStrategy, allocate_ota_charges
from hotelops.domain.ota_grouping import GroupedOtaOrder, process_ota_groups
from hotelops.models.ontology import (
    Booking, BookingStatus, Facility, OtaOrder, OtaOrderStatus, OtaPaymentStatus,
    PaymentMethod, Room, WebhookEventType
)
from hotelops.models.schemas import OtaOrderImport, PaymentEntry
from hotelops.services.booking_service import BookingService, append_note
from hotelops.services.event_bus import event_bus, Event
from hotelops.models.events import EventType, OtaOrderAssignedData, OtaCancellationConfirmedData
from hotelops.services.ledger import dump_ledger
from hotelops.services.webhook_service import WebhookDelivery, WebhookService, notification

logger = logging.getLogger(__name__)

OTA_COLLABORATOR = "OTA System"
PREPAID_PAYMENT_METHOD = "OTA Prepaid"
PAY_AT_HOTEL_PAYMENT_METHOD = "Pay at hotel"
CANCEL_CONFIRMED_LABEL = "Cancelled & Confirmed"
NOTIFY_LIMIT = 5

TAB_PENDING = "Pending"
TAB_TODAY = "Today"
TAB_PROCESSED = "Processed"
TAB_CANCELLED = "Cancelled"


def ota_code_line(booking_code: str) -> str:
    return f"OTA code: {booking_code}"


def _day_range(day: date) -> Tuple[datetime, datetime]:
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)


def parse_date_filter(mode: Optional[str], value: Optional[str]) -> Optional[Tuple[datetime, datetime]]:
    """``day`` + YYYY-MM-DD or ``month`` + YYYY-MM as a half-open check-in range"""
    if not mode or not value:
        return None
    try:
        if mode == "day":
            return _day_range(date.fromisoformat(value))
        if mode == "month":
            year, month = (int(part) for part in value.split("-")[:2])
            last_day = calendar.monthrange(year, month)[1]
            return datetime(year, month, 1), datetime.combine(date(year, month, last_day), time.min) + timedelta(days=1)
    except ValueError:
        raise ValueError(f"Invalid date filter '{value}' for mode '{mode}'")
    raise ValueError(f"Unknown date filter mode '{mode}'")


class OtaService:
    """OTA order service"""

    def __init__(self, db: Session, event_publisher: Callable[[Event], None] = None,
                 webhook_service: WebhookService = None):
        self.db = db
        self._publish_event = event_publisher or event_bus.publish
        self.webhooks = webhook_service or WebhookService(db)
        self.bookings = BookingService(db, event_publisher=self._publish_event)

    def get_order(self, order_id: int) -> Optional[OtaOrder]:
        return self.db.query(OtaOrder).filter(OtaOrder.id == order_id).first()

    def _require(self, order_id: int) -> OtaOrder:
        order = self.get_order(order_id)
        if not order:
            raise ValueError("OTA order not found")
        return order

    # ============== Ingestion ==============

    def import_orders(self, orders: Sequence[OtaOrderImport]) -> dict:
        """
        Upsert by platform + booking code.
        Known orders keep their workflow status unless the platform reports a cancellation.
        """
        created = updated = 0
        try:
            for data in orders:
                existing = self.db.query(OtaOrder).filter(
                    OtaOrder.platform == data.platform,
                    OtaOrder.booking_code == data.booking_code
                ).first()
                values = data.model_dump(exclude={"status"})
                if existing is None:
                    self.db.add(OtaOrder(**values, status=data.status))
                    created += 1
                    continue

                for key, value in values.items():
                    setattr(existing, key, value)
                if data.status == OtaOrderStatus.CANCELLED and existing.status != OtaOrderStatus.CONFIRMED:
                    existing.status = OtaOrderStatus.CANCELLED
                updated += 1
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.info(f"OTA import: {created} created, {updated} updated")
        return {"created": created, "updated": updated}

    # ============== Queue ==============

    def query_orders(self, tab: Optional[str] = None, search: Optional[str] = None,
                     date_mode: Optional[str] = None, date_value: Optional[str] = None,
                     page: int = 0, page_size: int = 20,
                     today: Optional[date] = None) -> Tuple[List[OtaOrder], bool]:
        """
        One page of the order queue, newest email first.
        Returns (orders, has_more); has_more is true when the page came back full.
        """
        if page < 0 or page_size < 1:
            raise ValueError("Invalid page")

        query = self.db.query(OtaOrder)
        order_by = [OtaOrder.email_date.desc(), OtaOrder.id.desc()]

        if tab == TAB_PENDING:
            query = query.filter(OtaOrder.status.in_([OtaOrderStatus.PENDING, OtaOrderStatus.CANCELLED]))
            order_by.insert(0, case((OtaOrder.status == OtaOrderStatus.CANCELLED, 0), else_=1))
        elif tab == TAB_PROCESSED:
            query = query.filter(OtaOrder.status == OtaOrderStatus.ASSIGNED)
        elif tab == TAB_CANCELLED:
            query = query.filter(OtaOrder.status == OtaOrderStatus.CONFIRMED)
        elif tab == TAB_TODAY:
            start, end = _day_range(today or date.today())
            query = query.filter(OtaOrder.check_in >= start, OtaOrder.check_in < end)

        if search:
            term = f"%{search.strip()}%"
            query = query.filter(or_(OtaOrder.guest_name.ilike(term), OtaOrder.booking_code.ilike(term)))

        date_range = parse_date_filter(date_mode, date_value)
        if date_range:
            query = query.filter(OtaOrder.check_in >= date_range[0], OtaOrder.check_in < date_range[1])

        orders = query.order_by(*order_by).offset(page * page_size).limit(page_size).all()
        return orders, len(orders) == page_size

    def grouped_orders(self, **filters) -> Tuple[List[GroupedOtaOrder], bool]:
        orders, has_more = self.query_orders(**filters)
        return process_ota_groups(orders), has_more

    # ============== Assignment ==============

    def assign_rooms(self, order_id: int, room_ids: Sequence[int],
                     strategy: CostSplitStrategy = CostSplitStrategy.GROUP) -> Tuple[OtaOrder, List[Booking]]:
        """
        Turn an order into bookings
        1. exactly room_quantity distinct rooms of one facility, all free for the stay
        2. per-room charges follow the cost split strategy
        3. prepaid orders are recorded as paid by transfer
        4. the order becomes Assigned with the joined room names
        """
        order = self._require(order_id)
        if order.status != OtaOrderStatus.PENDING:
            raise ValueError(f"Order is {order.status.value} and cannot be assigned")

        quantity = order.room_quantity or 1
        if len(set(room_ids)) != len(room_ids):
            raise ValueError("A room can only be selected once")
        if len(room_ids) != quantity:
            raise ValueError(f"Order needs exactly {quantity} rooms, got {len(room_ids)}")

        rooms_by_id = {r.id: r for r in self.db.query(Room).filter(Room.id.in_(room_ids)).all()}
        missing = [rid for rid in room_ids if rid not in rooms_by_id]
        if missing:
            raise ValueError(f"Rooms not found: {missing}")
        rooms = [rooms_by_id[rid] for rid in room_ids]
        if len({r.facility_id for r in rooms}) > 1:
            raise ValueError("All rooms of an order must belong to the same facility")

        facility = self.db.query(Facility).filter(Facility.id == rooms[0].facility_id).first()
        for room in rooms:
            if not self.bookings.check_availability(facility.name, room.name, order.check_in, order.check_out):
                raise ValueError(f"Room {room.name} is not free for this stay")

        charges = allocate_ota_charges(order.total_amount, quantity, strategy)
        prepaid = order.payment_status == OtaPaymentStatus.PREPAID
        is_group = quantity > 1
        group_id = f"GRP-{datetime.now().strftime('%Y%m%d%H%M%S%f')}" if is_group else None
        note = f"{order.notes}\n{ota_code_line(order.booking_code)}" if order.notes else ota_code_line(order.booking_code)

        bookings = []
        try:
            for room, charge in zip(rooms, charges):
                customer_name = order.guest_name
                if is_group and strategy == CostSplitStrategy.GROUP and not charge.is_leader:
                    customer_name = f"{order.guest_name} (member)"
                payments = []
                if prepaid and charge.price > 0:
                    payments.append(PaymentEntry(amount=charge.price, method=PaymentMethod.TRANSFER,
                                                 note="Paid through OTA (Prepaid)"))
                booking = Booking(
                    facility_name=facility.name,
                    room_code=room.name,
                    customer_name=customer_name,
                    customer_phone=order.guest_phone or "",
                    source=order.platform,
                    collaborator=OTA_COLLABORATOR,
                    payment_method=PREPAID_PAYMENT_METHOD if prepaid else PAY_AT_HOTEL_PAYMENT_METHOD,
                    check_in=order.check_in,
                    check_out=order.check_out,
                    status=BookingStatus.CONFIRMED,
                    price=charge.price,
                    extra_fee=0,
                    note=note,
                    payments_json=dump_ledger(payments),
                    services_json="[]",
                    lending_json="[]",
                    guests_json="[]",
                    group_id=group_id,
                    group_name=f"{order.guest_name} (OTA)" if is_group else None,
                    is_group_leader=charge.is_leader if is_group else False,
                )
                self.bookings.recalculate(booking)
                self.db.add(booking)
                bookings.append(booking)

            order.status = OtaOrderStatus.ASSIGNED
            order.assigned_room = ", ".join(r.name for r in rooms)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        for booking in bookings:
            self.db.refresh(booking)
        self.db.refresh(order)
        logger.info(f"OTA order {order.booking_code} assigned to {order.assigned_room}")

        self._publish_event(Event(
            event_type=EventType.OTA_ORDER_ASSIGNED,
            timestamp=datetime.now(),
            data=OtaOrderAssignedData(
                order_id=order.id,
                booking_code=order.booking_code,
                platform=order.platform,
                booking_ids=[b.id for b in bookings],
                assigned_room=order.assigned_room
            ).to_dict(),
            source="ota_service"
        ))
        return order, bookings

    # ============== Cancellations ==============

    def _confirm(self, order: OtaOrder) -> None:
        if order.status != OtaOrderStatus.CANCELLED:
            raise ValueError(f"Order is {order.status.value}; only cancelled orders can be confirmed")
        order.status = OtaOrderStatus.CONFIRMED

    def _publish_confirmed(self, order: OtaOrder) -> None:
        self._publish_event(Event(
            event_type=EventType.OTA_CANCELLATION_CONFIRMED,
            timestamp=datetime.now(),
            data=OtaCancellationConfirmedData(
                order_id=order.id,
                booking_code=order.booking_code,
                status=CANCEL_CONFIRMED_LABEL
            ).to_dict(),
            source="ota_service"
        ))

    def confirm_cancellation(self, order_id: int) -> OtaOrder:
        """Acknowledge a platform cancellation; the order moves to history"""
        order = self._require(order_id)
        self._confirm(order)
        self.db.commit()
        self.db.refresh(order)
        self._publish_confirmed(order)
        return order

    def find_linked_bookings(self, order: OtaOrder) -> List[Booking]:
        """Live bookings created for the order: by OTA code in the note, else by assigned room"""
        live = self.db.query(Booking).filter(
            Booking.status.in_([BookingStatus.CONFIRMED, BookingStatus.CHECKED_IN])
        )
        by_code = live.filter(Booking.note.contains(ota_code_line(order.booking_code))).all()
        if by_code:
            return by_code
        rooms = [name.strip() for name in (order.assigned_room or "").split(",") if name.strip()]
        if not rooms:
            return []
        return live.filter(Booking.room_code.in_(rooms), Booking.check_in == order.check_in).all()

    def resolve_conflict(self, order_id: int) -> Tuple[OtaOrder, List[Booking]]:
        """Release the rooms of a cancelled order, then confirm the cancellation"""
        order = self._require(order_id)
        released = self.find_linked_bookings(order)
        try:
            self._confirm(order)
            for booking in released:
                booking.status = BookingStatus.CANCELLED
                append_note(booking, f"[AUTO] Cancelled via OTA sync on {date.today().strftime('%d/%m/%Y')}")
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        if not released:
            logger.info(f"No booking found for cancelled OTA order {order.booking_code}")
        self.db.refresh(order)
        self._publish_confirmed(order)
        return order, released

    # ============== Notification ==============

    def sync_and_notify(self) -> List[WebhookDelivery]:
        """Announce the latest pending orders on the general notification channel"""
        pending, _ = self.query_orders(tab=TAB_PENDING, page=0, page_size=NOTIFY_LIMIT)
        if not pending:
            return []
        return self.webhooks.trigger(WebhookEventType.GENERAL_NOTIFICATION, notification("NEW_OTA_ORDER", {
            "count": len(pending),
            "latest_orders": [
                {
                    "code": o.booking_code,
                    "guest": o.guest_name,
                    "platform": o.platform,
                    "amount": o.total_amount,
                    "checkIn": o.check_in.strftime("%d/%m/%Y"),
                }
                for o in pending
            ],
        }))
