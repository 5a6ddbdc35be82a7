"""
Domain events
Published on the in-process event bus after the corresponding write commits
"""
from enum import Enum
from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Optional, Dict, Any, List


class EventType(str, Enum):
    """Event type"""
    # Booking lifecycle
    BOOKING_CREATED = "booking.created"
    BOOKING_CHECKED_IN = "booking.checked_in"
    BOOKING_CHECKED_OUT = "booking.checked_out"
    BOOKING_CANCELLED = "booking.cancelled"
    BOOKING_ROOM_SWAPPED = "booking.room_swapped"
    PAYMENT_RECEIVED = "payment.received"

    # Rooms & housekeeping
    ROOM_STATUS_CHANGED = "room.status_changed"
    HOUSEKEEPING_ASSIGNED = "housekeeping.assigned"

    # OTA
    OTA_ORDER_ASSIGNED = "ota.order_assigned"
    OTA_CANCELLATION_CONFIRMED = "ota.cancellation_confirmed"

    # HR
    LEAVE_REQUESTED = "leave.requested"
    LEAVE_DECIDED = "leave.decided"


@dataclass
class BaseEventData:
    """Event payload base"""
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        result = asdict(self)
        for key, value in result.items():
            if isinstance(value, datetime):
                result[key] = value.isoformat()
        return result


@dataclass
class BookingEventData(BaseEventData):
    booking_id: int = 0
    facility_name: str = ""
    room_code: str = ""
    customer_name: str = ""
    operator_id: Optional[int] = None


@dataclass
class BookingCheckedOutData(BaseEventData):
    booking_id: int = 0
    facility_name: str = ""
    room_code: str = ""
    customer_name: str = ""
    remaining_amount: int = 0
    operator_id: Optional[int] = None


@dataclass
class BookingCancelledData(BaseEventData):
    booking_id: int = 0
    facility_name: str = ""
    room_code: str = ""
    reason: str = ""
    cancel_fee: int = 0
    refund: int = 0


@dataclass
class RoomSwappedData(BaseEventData):
    booking_id: int = 0
    old_facility_name: str = ""
    old_room_code: str = ""
    new_facility_name: str = ""
    new_room_code: str = ""
    new_total: int = 0


@dataclass
class PaymentReceivedData(BaseEventData):
    booking_id: int = 0
    amount: int = 0
    method: str = ""
    group_id: Optional[str] = None


@dataclass
class RoomStatusChangedData(BaseEventData):
    room_id: int = 0
    room_name: str = ""
    old_status: str = ""
    new_status: str = ""


@dataclass
class HousekeepingAssignedData(BaseEventData):
    task_id: int = 0
    facility_name: str = ""
    room_code: str = ""
    task_type: str = ""
    assignee: str = ""
    priority: str = ""


@dataclass
class OtaOrderAssignedData(BaseEventData):
    order_id: int = 0
    booking_code: str = ""
    platform: str = ""
    booking_ids: List[int] = field(default_factory=list)
    assigned_room: str = ""


@dataclass
class OtaCancellationConfirmedData(BaseEventData):
    order_id: int = 0
    booking_code: str = ""
    status: str = ""


@dataclass
class LeaveEventData(BaseEventData):
    leave_id: int = 0
    staff_id: int = 0
    staff_name: str = ""
    start_date: str = ""
    end_date: str = ""
    leave_type: str = ""
    reason: str = ""
    status: str = ""
    action: str = ""            # new_request | status_update
    approver: str = ""
