"""
Room swap pricing

KEEP_OLD     keep the booking total and unit price
RECALCULATE  new room price x stay quantity + existing extra fee
CUSTOM       operator-entered total, unit price unchanged

Stay quantity: hourly bookings (or stays shorter than 24h) count elapsed
hours, collapsed to a single night when the new room's listed price is above
200,000 and more than one hour would be billed. Other stays count
ceil(hours / 24) nights with a minimum of 1.
"""
import math
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple

HOURLY_PAYMENT_METHOD = "Theo giờ"
NIGHTLY_PRICE_THRESHOLD = 200000
HOURS_PER_DAY = 24

UNIT_HOUR = "hour"
UNIT_NIGHT = "night"


class PriceStrategy(str, Enum):
    KEEP_OLD = "KEEP_OLD"
    RECALCULATE = "RECALCULATE"
    CUSTOM = "CUSTOM"


@dataclass
class SwapQuote:
    new_total: int
    diff: int
    new_unit_price: int
    quantity: int
    unit: str
    explanation: str


def elapsed_hours(check_in: datetime, check_out: datetime) -> int:
    """Whole hours between the two instants, truncated"""
    return int(abs((check_out - check_in).total_seconds()) // 3600)


def stay_quantity(check_in: datetime, check_out: datetime, payment_method: Optional[str],
                  new_room_price: Optional[int]) -> Tuple[int, str]:
    """Billable quantity and its unit for a stay priced at the new room's rate"""
    hours = elapsed_hours(check_in, check_out)

    if payment_method == HOURLY_PAYMENT_METHOD or 0 < hours < HOURS_PER_DAY:
        if new_room_price and new_room_price > NIGHTLY_PRICE_THRESHOLD and hours > 1:
            return 1, UNIT_NIGHT
        return hours, UNIT_HOUR

    return max(1, math.ceil(hours / HOURS_PER_DAY)), UNIT_NIGHT


def calculate_swap_price(booking, new_room_price: Optional[int], strategy: PriceStrategy,
                         custom_total: Optional[int] = None) -> SwapQuote:
    """Quote the booking's new total when it moves to a room listed at ``new_room_price``"""
    old_total = int(booking.total_revenue or 0)
    old_price = int(booking.price or 0)
    quantity, unit = stay_quantity(booking.check_in, booking.check_out,
                                   booking.payment_method, new_room_price)

    if strategy == PriceStrategy.KEEP_OLD:
        new_total = old_total
        new_unit_price = old_price
        explanation = f"Kept previous total ({old_total:,})"
    elif strategy == PriceStrategy.RECALCULATE:
        new_unit_price = int(new_room_price or 0)
        extra = int(booking.extra_fee or 0)
        new_total = new_unit_price * quantity + extra
        explanation = (
            f"New price ({new_unit_price:,}) x {quantity} {unit} + extra fee ({extra:,}) = {new_total:,}"
        )
    elif strategy == PriceStrategy.CUSTOM:
        if custom_total is None or custom_total < 0:
            raise ValueError("Custom total must be a non-negative amount")
        new_total = int(custom_total)
        new_unit_price = old_price
        explanation = "Custom total agreed with the guest"
    else:
        raise ValueError(f"Unknown price strategy: {strategy}")

    return SwapQuote(
        new_total=new_total,
        diff=new_total - old_total,
        new_unit_price=new_unit_price,
        quantity=quantity,
        unit=unit,
        explanation=explanation
    )
