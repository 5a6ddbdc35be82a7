"""
Typed access to the JSON sub-ledgers stored on a booking row

Unreadable data (bad JSON, wrong shape, invalid entries) is replaced by an
empty list and logged as a warning, so one corrupt field never blocks the
booking screen.
"""
import json
import logging
from typing import List, Optional, Sequence, Type, TypeVar

from pydantic import BaseModel, ValidationError

from hotelops.domain.financials import BookingTotals, compute_totals
from hotelops.models.schemas import PaymentEntry, ServiceUsage, LendingItem, GuestEntry

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)


def parse_ledger(raw: Optional[str], model: Type[T], field_name: str = "",
                 booking_id: Optional[int] = None) -> List[T]:
    """Parse a JSON list column into typed entries"""
    if not raw:
        return []
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, TypeError) as e:
        logger.warning(f"Unreadable {field_name} on booking {booking_id}, using empty list: {e}")
        return []

    if not isinstance(data, list):
        logger.warning(f"{field_name} on booking {booking_id} is not a list, using empty list")
        return []

    try:
        return [model.model_validate(item) for item in data]
    except ValidationError as e:
        logger.warning(f"Invalid {field_name} entry on booking {booking_id}, using empty list: {e}")
        return []


def dump_ledger(items: Sequence[BaseModel]) -> str:
    return json.dumps([item.model_dump(mode="json") for item in items], ensure_ascii=False)


def load_payments(booking) -> List[PaymentEntry]:
    return parse_ledger(booking.payments_json, PaymentEntry, "payments_json", booking.id)


def load_services(booking) -> List[ServiceUsage]:
    return parse_ledger(booking.services_json, ServiceUsage, "services_json", booking.id)


def load_lending(booking) -> List[LendingItem]:
    return parse_ledger(booking.lending_json, LendingItem, "lending_json", booking.id)


def load_guests(booking) -> List[GuestEntry]:
    return parse_ledger(booking.guests_json, GuestEntry, "guests_json", booking.id)


def recalculate_totals(booking) -> BookingTotals:
    """Recompute total_revenue and remaining_amount from the persisted ledgers"""
    totals = compute_totals(booking.price, booking.extra_fee,
                            load_services(booking), load_payments(booking))
    booking.total_revenue = totals.total_revenue
    booking.remaining_amount = totals.remaining
    return totals
