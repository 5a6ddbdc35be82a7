"""
Report service
Room map, headline counters and the daily operations report
"""
from typing import Any, Dict, List, Optional
from datetime import date, datetime
import logging
from sqlalchemy.orm import Session
from hotelops.domain.availability import RELEASED_STATUSES
from hotelops.domain.occupancy import room_display_status, room_stats
from hotelops.models.ontology import (
    Booking, BookingStatus, Facility, HousekeepingStatus, HousekeepingTask,
    LeaveRequest, LeaveStatus, OtaOrder, OtaOrderStatus, Room, RoomStatus, WebhookEventType
)
from hotelops.services.ledger import load_lending, load_payments, load_services
from hotelops.services.webhook_service import WebhookService, notification

logger = logging.getLogger(__name__)


def ledger_counts(booking: Booking):
    return len(load_services(booking)), len(load_lending(booking))


class ReportService:
    """Report service"""

    def __init__(self, db: Session, webhook_service: WebhookService = None):
        self.db = db
        self.webhooks = webhook_service or WebhookService(db)

    def _facilities(self, facility_name: Optional[str] = None) -> List[Facility]:
        query = self.db.query(Facility)
        if facility_name:
            query = query.filter(Facility.name == facility_name)
        return query.order_by(Facility.id).all()

    def _live_bookings(self) -> List[Booking]:
        return self.db.query(Booking).filter(Booking.status.notin_(RELEASED_STATUSES)).all()

    def room_map(self, view_date: Optional[date] = None, facility_name: Optional[str] = None,
                 now: Optional[datetime] = None) -> List[Dict[str, Any]]:
        """Per facility, every room with its display status for ``view_date``"""
        now = now or datetime.now()
        view_date = view_date or now.date()
        bookings = self._live_bookings()
        tasks = self.db.query(HousekeepingTask).filter(
            HousekeepingTask.status != HousekeepingStatus.DONE
        ).all()

        result = []
        for facility in self._facilities(facility_name):
            rooms = sorted(facility.rooms, key=lambda r: (len(r.name), r.name))
            entries = []
            for room in rooms:
                view = room_display_status(facility, room, bookings, tasks, view_date, now, ledger_counts)
                entries.append({
                    "room_id": room.id,
                    "room_name": room.name,
                    "room_status": room.status,
                    "display_status": view.status.value,
                    "booking_id": view.booking.id if view.booking else None,
                    "customer_name": view.booking.customer_name if view.booking else None,
                    "next_booking_id": view.next_booking.id if view.next_booking else None,
                    "next_check_in": view.next_booking.check_in if view.next_booking else None,
                    "has_services": view.has_services,
                    "has_lending": view.has_lending,
                })
            result.append({"facility_id": facility.id, "facility_name": facility.name, "rooms": entries})
        return result

    def room_stats(self, view_date: Optional[date] = None, facility_name: Optional[str] = None,
                   now: Optional[datetime] = None):
        now = now or datetime.now()
        facilities = self._facilities(facility_name)
        rooms = self.db.query(Room).filter(Room.facility_id.in_([f.id for f in facilities])).all()
        return room_stats(facilities, rooms, self._live_bookings(), view_date or now.date(), now)

    def daily_report(self, day: Optional[date] = None) -> Dict[str, Any]:
        """
        Today's operations summary
        Revenue counts payments received on the day; occupancy counts unreleased
        stays covering the day against all rooms.
        """
        day = day or date.today()
        bookings = self.db.query(Booking).filter(Booking.status != BookingStatus.CANCELLED).all()

        revenue = 0
        checkin = 0
        checkout = 0
        occupied = 0
        for booking in bookings:
            revenue += sum(p.amount for p in load_payments(booking) if p.paid_at.date() == day)
            start = booking.actual_check_in or booking.check_in
            if booking.status == BookingStatus.CHECKED_OUT and booking.actual_check_out:
                end = booking.actual_check_out
            else:
                end = booking.check_out
            if start.date() == day:
                checkin += 1
            if end.date() == day:
                checkout += 1
            if booking.status != BookingStatus.CHECKED_OUT and start.date() <= day <= end.date():
                occupied += 1

        total_rooms = self.db.query(Room).count() or 1
        dirty_rooms = self.db.query(Room).filter(Room.status == RoomStatus.DIRTY).count()
        pending_ota = self.db.query(OtaOrder).filter(OtaOrder.status == OtaOrderStatus.PENDING).count()
        staff_absent = self.db.query(LeaveRequest).filter(
            LeaveRequest.status == LeaveStatus.APPROVED,
            LeaveRequest.start_date <= day,
            LeaveRequest.end_date >= day
        ).count()

        return {
            "date": day,
            "revenue": revenue,
            "checkin": checkin,
            "checkout": checkout,
            "occupancy": f"{round(occupied / total_rooms * 100)}%",
            "dirty_rooms": dirty_rooms,
            "pending_ota": pending_ota,
            "staff_absent": staff_absent,
        }

    def send_daily_report(self, day: Optional[date] = None):
        report = self.daily_report(day)
        payload = dict(report, date=report["date"].strftime("%d/%m/%Y"))
        deliveries = self.webhooks.trigger(
            WebhookEventType.GENERAL_NOTIFICATION, notification("DAILY_REPORT", payload)
        )
        logger.info(f"Daily report for {payload['date']} sent to {len(deliveries)} target(s)")
        return report, deliveries
