"""
Listed room pricing
Saturday uses the Saturday rate (room, then facility) before falling back to
the weekday rate (room, then facility).
"""
from datetime import date, datetime
from typing import Optional

SATURDAY = 5  # date.weekday()


def unit_price_for_date(facility, room, when: Optional[datetime]) -> int:
    """Listed price of one night in ``room`` starting on ``when``"""
    if facility is None:
        return 0
    room_price = room.price if room is not None else None
    weekday_price = room_price or facility.price or 0
    if when is None:
        return weekday_price

    if when.weekday() == SATURDAY:
        room_saturday = room.price_saturday if room is not None else None
        return room_saturday or facility.price_saturday or weekday_price
    return weekday_price


def calculate_nights(check_in: Optional[datetime], check_out: Optional[datetime]) -> int:
    """Calendar-day difference between check-in and check-out, at least 1"""
    if not check_in or not check_out:
        return 1
    start = check_in.date() if isinstance(check_in, datetime) else check_in
    end = check_out.date() if isinstance(check_out, datetime) else check_out
    return max(1, (end - start).days)


def stay_price(facility, room, check_in: datetime, check_out: datetime) -> int:
    """Room charge for a stay: unit price of the check-in day x nights"""
    return unit_price_for_date(facility, room, check_in) * calculate_nights(check_in, check_out)
