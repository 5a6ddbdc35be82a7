"""
Booking financial rule tests
"""
from types import SimpleNamespace

import pytest

from hotelops.domain.financials import (
    CostSplitStrategy, allocate_ota_charges, compute_totals,
    distribute_group_payment, settle_cancellation
)


def member(id, remaining):
    return SimpleNamespace(id=id, remaining_amount=remaining)


class TestComputeTotals:

    def test_revenue_includes_services_and_extra_fee(self):
        services = [SimpleNamespace(total=30000), SimpleNamespace(total=20000)]
        payments = [SimpleNamespace(amount=100000), SimpleNamespace(amount=-20000)]

        totals = compute_totals(500000, 50000, services, payments)

        assert totals.total_revenue == 600000
        assert totals.total_paid == 80000
        assert totals.remaining == 520000

    def test_empty_ledgers(self):
        totals = compute_totals(None, None, [], [])
        assert (totals.total_revenue, totals.total_paid, totals.remaining) == (0, 0, 0)


class TestGroupPayment:

    def test_payment_fills_members_in_order(self):
        members = [member(1, 100), member(2, 200), member(3, 300)]

        plan = distribute_group_payment(members, 250)

        assert [(a.booking_id, a.amount) for a in plan.allocations] == [(1, 100), (2, 150)]
        assert plan.unallocated == 0
        assert plan.allocated == 250

    def test_overpayment_is_left_unallocated(self):
        members = [member(1, 100), member(2, 200)]

        plan = distribute_group_payment(members, 450)

        assert plan.allocated == 300
        assert plan.unallocated == 150

    def test_settled_members_are_skipped(self):
        members = [member(1, 0), member(2, -50), member(3, 100)]

        plan = distribute_group_payment(members, 80)

        assert [(a.booking_id, a.amount) for a in plan.allocations] == [(3, 80)]

    @pytest.mark.parametrize("amount", [0, -10, None])
    def test_non_positive_amount_is_rejected(self, amount):
        with pytest.raises(ValueError):
            distribute_group_payment([member(1, 100)], amount)


class TestCancellation:

    def test_refund_is_paid_minus_fee(self):
        settlement = settle_cancellation(500000, 200000)

        assert settlement.refund == 300000
        assert settlement.total_revenue == 200000
        assert settlement.remaining == 0
        assert settlement.refund_entry_amount == -300000

    def test_no_refund_entry_when_fee_covers_payments(self):
        settlement = settle_cancellation(100000, 100000)
        assert settlement.refund_entry_amount is None

    def test_negative_fee_is_rejected(self):
        with pytest.raises(ValueError):
            settle_cancellation(100000, -1)


class TestOtaCharges:

    def test_single_room_takes_everything(self):
        charges = allocate_ota_charges(900000, 1, CostSplitStrategy.SPLIT)
        assert [(c.price, c.is_leader) for c in charges] == [(900000, True)]

    def test_group_strategy_puts_total_on_leader(self):
        charges = allocate_ota_charges(900000, 3, CostSplitStrategy.GROUP)
        assert [c.price for c in charges] == [900000, 0, 0]
        assert [c.is_leader for c in charges] == [True, False, False]

    def test_split_puts_remainder_on_first_room(self):
        charges = allocate_ota_charges(1000000, 3, CostSplitStrategy.SPLIT)
        assert [c.price for c in charges] == [333334, 333333, 333333]
        assert sum(c.price for c in charges) == 1000000

    def test_room_count_must_be_positive(self):
        with pytest.raises(ValueError):
            allocate_ota_charges(100, 0)
