"""
Booking financial rules

- totals: total_revenue = price + extra_fee + sum(service totals)
          remaining     = total_revenue - sum(payments)
- group payment: one incoming amount pays down sibling bookings in order
- cancellation: the retained fee becomes the revenue, the rest is refunded
- OTA cost split: GROUP (leader pays all) or SPLIT (floor split, remainder on room 0)
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Optional, Sequence


class CostSplitStrategy(str, Enum):
    """How a multi-room order total is spread over its rooms"""
    GROUP = "GROUP"    # first room pays everything
    SPLIT = "SPLIT"    # even split


@dataclass
class BookingTotals:
    total_revenue: int
    total_paid: int
    remaining: int


@dataclass
class PaymentAllocation:
    booking_id: int
    amount: int


@dataclass
class GroupPaymentPlan:
    allocations: List[PaymentAllocation] = field(default_factory=list)
    unallocated: int = 0

    @property
    def allocated(self) -> int:
        return sum(a.amount for a in self.allocations)


@dataclass
class CancellationSettlement:
    refund: int
    total_revenue: int
    remaining: int = 0

    @property
    def refund_entry_amount(self) -> Optional[int]:
        """Amount of the negative payment entry to append, None when nothing is returned"""
        return -self.refund if self.refund > 0 else None


@dataclass
class RoomCharge:
    price: int
    is_leader: bool = False


def sum_services(services: Iterable) -> int:
    return sum(int(s.total or 0) for s in services)


def sum_payments(payments: Iterable) -> int:
    return sum(int(p.amount or 0) for p in payments)


def compute_totals(price: int, extra_fee: int, services: Iterable, payments: Iterable) -> BookingTotals:
    """Recompute revenue and balance of a booking from its ledgers"""
    total_revenue = int(price or 0) + int(extra_fee or 0) + sum_services(services)
    total_paid = sum_payments(payments)
    return BookingTotals(
        total_revenue=total_revenue,
        total_paid=total_paid,
        remaining=total_revenue - total_paid
    )


def distribute_group_payment(members: Sequence, amount: int) -> GroupPaymentPlan:
    """
    Spread one payment across group members

    Members are visited in the given order; each member with a positive
    remaining_amount receives min(remaining, amount left). Whatever is left
    after the last member is returned as ``unallocated`` and assigned to nobody.
    """
    if amount is None or amount <= 0:
        raise ValueError("Payment amount must be positive")

    plan = GroupPaymentPlan()
    left = amount
    for member in members:
        if left <= 0:
            break
        remaining = int(member.remaining_amount or 0)
        if remaining <= 0:
            continue
        pay = min(remaining, left)
        plan.allocations.append(PaymentAllocation(booking_id=member.id, amount=pay))
        left -= pay

    plan.unallocated = left
    return plan


def settle_cancellation(total_paid: int, cancel_fee: int) -> CancellationSettlement:
    """Collapse a booking's accounting to the retained cancellation fee"""
    if cancel_fee is None or cancel_fee < 0:
        raise ValueError("Cancellation fee cannot be negative")
    refund = int(total_paid or 0) - cancel_fee
    return CancellationSettlement(refund=refund, total_revenue=cancel_fee, remaining=0)


def allocate_ota_charges(total_amount: int, room_count: int,
                         strategy: CostSplitStrategy = CostSplitStrategy.GROUP) -> List[RoomCharge]:
    """
    Per-room charges for an order covering ``room_count`` rooms.
    The charges always sum to ``total_amount``.
    """
    if room_count < 1:
        raise ValueError("Room count must be at least 1")
    total_amount = int(total_amount or 0)

    if room_count == 1:
        return [RoomCharge(price=total_amount, is_leader=True)]

    if strategy == CostSplitStrategy.GROUP:
        return [RoomCharge(price=total_amount, is_leader=True)] + [
            RoomCharge(price=0) for _ in range(room_count - 1)
        ]

    base = total_amount // room_count
    remainder = total_amount - base * room_count
    return [RoomCharge(price=base + remainder, is_leader=True)] + [
        RoomCharge(price=base) for _ in range(room_count - 1)
    ]
