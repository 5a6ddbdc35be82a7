"""
Room map status

Live view (view date == today) follows booking state and housekeeping;
forecast view (any other date) only asks whether a booking covers the day.
"""
from dataclasses import dataclass
from datetime import date, datetime, time
from enum import Enum
from typing import Iterable, List, Optional, Sequence

from hotelops.domain.availability import RELEASED_STATUSES
from hotelops.models.ontology import BookingStatus, HousekeepingStatus, RoomStatus


class RoomDisplayStatus(str, Enum):
    VACANT = "Vacant"
    OCCUPIED = "Occupied"
    RESERVED = "Reserved"
    DIRTY = "Dirty"
    CLEANUP = "Cleanup"
    OVERDUE = "Overdue"


@dataclass
class RoomView:
    room: object
    status: RoomDisplayStatus
    booking: Optional[object] = None
    next_booking: Optional[object] = None
    has_services: bool = False
    has_lending: bool = False


@dataclass
class RoomStats:
    total: int = 0
    available: int = 0
    occupied: int = 0
    dirty: int = 0
    incoming: int = 0
    outgoing: int = 0


def _room_bookings(bookings: Iterable, facility_name: str, room_code: str) -> List:
    return [b for b in bookings if b.facility_name == facility_name and b.room_code == room_code]


def find_active_booking(bookings: Iterable, facility_name: str, room_code: str,
                        view_date: date, now: datetime):
    """The booking holding the room on ``view_date`` (live rules when it is today)"""
    forecast = view_date != now.date()
    for booking in _room_bookings(bookings, facility_name, room_code):
        if booking.status in RELEASED_STATUSES:
            continue
        if forecast:
            if booking.check_in.date() <= view_date < booking.check_out.date():
                return booking
            continue
        if booking.status == BookingStatus.CHECKED_IN:
            return booking
        if booking.status == BookingStatus.CONFIRMED:
            if booking.check_in.date() == now.date() or booking.check_in <= now <= booking.check_out:
                return booking
    return None


def find_next_booking(bookings: Iterable, facility_name: str, room_code: str,
                      reference: datetime):
    """Earliest confirmed arrival after ``reference``"""
    upcoming = [
        b for b in _room_bookings(bookings, facility_name, room_code)
        if b.status == BookingStatus.CONFIRMED and b.check_in > reference
    ]
    return min(upcoming, key=lambda b: b.check_in) if upcoming else None


def room_display_status(facility, room, bookings: Sequence, tasks: Sequence,
                        view_date: date, now: datetime, ledger_counts=None) -> RoomView:
    """
    Display status of one room.

    ``ledger_counts`` is an optional callable returning (services, lending)
    item counts for a booking, used for the map badges.
    """
    forecast = view_date != now.date()
    active = find_active_booking(bookings, facility.name, room.name, view_date, now)

    next_booking = None
    if active is None:
        reference = datetime.combine(view_date, time.min) if forecast else now
        next_booking = find_next_booking(bookings, facility.name, room.name, reference)

    open_task = next(
        (t for t in tasks
         if t.facility_id == facility.id and t.room_code == room.name
         and t.status != HousekeepingStatus.DONE),
        None
    )

    status = RoomDisplayStatus.VACANT
    if active is not None:
        if forecast:
            status = RoomDisplayStatus.RESERVED
        elif active.status == BookingStatus.CHECKED_IN:
            status = RoomDisplayStatus.OVERDUE if now > active.check_out else RoomDisplayStatus.OCCUPIED
        else:
            status = RoomDisplayStatus.RESERVED
    elif not forecast:
        if room.status == RoomStatus.DIRTY:
            status = RoomDisplayStatus.DIRTY
        elif room.status == RoomStatus.CLEANING or (
            open_task is not None and open_task.status == HousekeepingStatus.IN_PROGRESS
        ):
            status = RoomDisplayStatus.CLEANUP

    view = RoomView(room=room, status=status, booking=active, next_booking=next_booking)
    if active is not None and ledger_counts is not None:
        services, lending = ledger_counts(active)
        view.has_services = services > 0
        view.has_lending = lending > 0
    return view


def room_stats(facilities: Sequence, rooms: Sequence, bookings: Sequence,
               view_date: date, now: datetime) -> RoomStats:
    """Headline counters for the room map"""
    forecast = view_date != now.date()
    stats = RoomStats()
    for facility in facilities:
        for room in (r for r in rooms if r.facility_id == facility.id):
            stats.total += 1
            active = find_active_booking(bookings, facility.name, room.name, view_date, now)
            if active is not None:
                stats.occupied += 1
                if active.check_in.date() == view_date:
                    stats.incoming += 1
                if active.check_out.date() == view_date:
                    stats.outgoing += 1
            elif not forecast and room.status in (RoomStatus.DIRTY, RoomStatus.CLEANING):
                stats.dirty += 1
            else:
                stats.available += 1
    return stats
