"""
Room availability
A room is free for [check_in, check_out) when no other live booking of the
same facility + room overlaps that interval. Intervals are half-open, so a
checkout equal to the next check-in is not a conflict.
"""
from datetime import datetime
from typing import Iterable, List, Optional

from hotelops.models.ontology import BookingStatus

# Bookings in these states no longer hold the room
RELEASED_STATUSES = (BookingStatus.CANCELLED, BookingStatus.CHECKED_OUT)


def intervals_overlap(a_start: datetime, a_end: datetime,
                      b_start: datetime, b_end: datetime) -> bool:
    """Half-open interval overlap test"""
    return a_start < b_end and a_end > b_start


def find_conflicts(
    bookings: Iterable,
    facility_name: str,
    room_code: str,
    check_in: datetime,
    check_out: datetime,
    exclude_id: Optional[int] = None
) -> List:
    """Return the bookings that block the room for the candidate interval"""
    conflicts = []
    for booking in bookings:
        if exclude_id is not None and booking.id == exclude_id:
            continue
        if booking.facility_name != facility_name or booking.room_code != room_code:
            continue
        if booking.status in RELEASED_STATUSES:
            continue
        if intervals_overlap(check_in, check_out, booking.check_in, booking.check_out):
            conflicts.append(booking)
    return conflicts


def check_availability(
    bookings: Iterable,
    facility_name: str,
    room_code: str,
    check_in: datetime,
    check_out: datetime,
    exclude_id: Optional[int] = None
) -> bool:
    """True when the room is free for [check_in, check_out)"""
    return not find_conflicts(bookings, facility_name, room_code, check_in, check_out, exclude_id)
