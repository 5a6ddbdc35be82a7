"""
Booking service tests
"""
from datetime import timedelta

import pytest
from sqlalchemy.exc import SQLAlchemyError

from hotelops.models.events import EventType
from hotelops.models.ontology import (
    Booking, BookingStatus, HousekeepingTask, HousekeepingTaskType, InventoryTransaction,
    InventoryTransactionType, PaymentMethod, RoomStatus, TaskPriority
)
from hotelops.models.schemas import (
    BookingCreate, BookingUpdate, CancelRequest, CheckInRequest, CheckOutRequest,
    GroupBookingCreate, LendingItem, PaymentCreate, ServiceUsage
)
from hotelops.services.booking_service import BookingService, audit_line
from hotelops.services.ledger import load_payments, load_services


@pytest.fixture
def service(db_session, publisher):
    return BookingService(db_session, event_publisher=publisher)


def failing_commit():
    raise SQLAlchemyError("database is locked")


def booking_data(check_in, nights=2, room_code="101", **kwargs):
    return BookingCreate(
        facility_name="Tuan Chau",
        room_code=room_code,
        customer_name=kwargs.pop("customer_name", "Tran Thi B"),
        check_in=check_in,
        check_out=check_in + timedelta(days=nights),
        **kwargs
    )


class TestCreateBooking:

    def test_price_defaults_to_listed_price(self, service, room_101, tomorrow, events):
        booking = service.create_booking(booking_data(tomorrow))

        nightly = 600000 if tomorrow.weekday() == 5 else 500000
        assert booking.status == BookingStatus.CONFIRMED
        assert booking.price == nightly * 2
        assert booking.total_revenue == booking.price
        assert booking.remaining_amount == booking.price
        assert [e.event_type for e in events] == [EventType.BOOKING_CREATED]

    def test_explicit_price_and_payments(self, service, room_101, tomorrow):
        data = booking_data(tomorrow, price=800000, extra_fee=100000,
                            payments=[{"amount": 300000, "method": "Transfer"}])

        booking = service.create_booking(data)

        assert booking.total_revenue == 900000
        assert booking.remaining_amount == 600000

    def test_overlapping_booking_is_rejected(self, service, room_101, confirmed_booking, tomorrow):
        with pytest.raises(ValueError, match="already booked"):
            service.create_booking(booking_data(tomorrow + timedelta(days=1)))

    def test_back_to_back_booking_is_allowed(self, service, room_101, confirmed_booking):
        booking = service.create_booking(booking_data(confirmed_booking.check_out))
        assert booking.id != confirmed_booking.id

    def test_cancelled_booking_frees_the_room(self, service, db_session, confirmed_booking, tomorrow):
        confirmed_booking.status = BookingStatus.CANCELLED
        db_session.commit()

        booking = service.create_booking(booking_data(tomorrow))
        assert booking.status == BookingStatus.CONFIRMED

    def test_unknown_room(self, service, facility, tomorrow):
        with pytest.raises(ValueError, match="not found"):
            service.create_booking(booking_data(tomorrow, room_code="999"))

    def test_checkout_must_follow_checkin(self, service, room_101, tomorrow):
        with pytest.raises(ValueError, match="after check-in"):
            service.create_booking(booking_data(tomorrow, nights=0))

    def test_services_are_billed_and_deducted(self, service, db_session, room_101, minibar_item, tomorrow):
        data = booking_data(tomorrow, price=500000, services=[
            ServiceUsage(service_id=minibar_item.id, name=minibar_item.name, price=15000, quantity=2)
        ])

        booking = service.create_booking(data)

        db_session.refresh(minibar_item)
        assert booking.total_revenue == 530000
        assert load_services(booking)[0].total == 30000
        assert minibar_item.stock == 8
        tx = db_session.query(InventoryTransaction).one()
        assert tx.type == InventoryTransactionType.MINIBAR_SOLD
        assert tx.quantity == 2


class TestGroupBooking:

    def test_one_booking_per_room(self, service, room_101, room_102, room_103, tomorrow):
        data = GroupBookingCreate(
            facility_name="Tuan Chau",
            room_codes=["101", "102", "103"],
            customer_name="Le Van C",
            customer_phone="0900000000",
            group_name="Company X",
            check_in=tomorrow,
            check_out=tomorrow + timedelta(days=1),
            guests=[{"full_name": "Le Van C"}],
        )

        members = service.create_group_booking(data)

        assert len(members) == 3
        assert len({m.group_id for m in members}) == 1
        leader, second, third = members
        assert leader.is_group_leader and not second.is_group_leader
        assert leader.customer_name == "Le Van C"
        assert leader.customer_phone == "0900000000"
        assert second.customer_name == "Group Company X (2)"
        assert third.guests_json == "[]"
        assert second.source == "Khách đoàn"
        assert third.price == (600000 if tomorrow.weekday() == 5 else 300000)

    def test_duplicate_room_is_rejected(self, service, room_101, tomorrow):
        data = GroupBookingCreate(facility_name="Tuan Chau", room_codes=["101", "101"],
                                  customer_name="X", check_in=tomorrow,
                                  check_out=tomorrow + timedelta(days=1))
        with pytest.raises(ValueError):
            service.create_group_booking(data)

    def test_any_conflict_creates_nothing(self, service, db_session, room_101, room_102,
                                          confirmed_booking, tomorrow):
        data = GroupBookingCreate(facility_name="Tuan Chau", room_codes=["102", "101"],
                                  customer_name="X", check_in=tomorrow,
                                  check_out=tomorrow + timedelta(days=1))
        with pytest.raises(ValueError):
            service.create_group_booking(data)
        assert db_session.query(Booking).count() == 1


class TestSaveBooking:

    def test_service_increase_deducts_only_the_difference(self, service, db_session,
                                                          confirmed_booking, minibar_item):
        line = ServiceUsage(service_id=minibar_item.id, name=minibar_item.name, price=15000, quantity=2)
        service.save_booking(confirmed_booking.id, BookingUpdate(services=[line]))
        service.save_booking(confirmed_booking.id, BookingUpdate(services=[line.model_copy(update={"quantity": 3})]))

        db_session.refresh(minibar_item)
        assert minibar_item.stock == 7
        assert confirmed_booking.total_revenue == 1045000

    def test_lowering_quantity_never_restocks(self, service, db_session, confirmed_booking, minibar_item):
        line = ServiceUsage(service_id=minibar_item.id, name=minibar_item.name, price=15000, quantity=3)
        service.save_booking(confirmed_booking.id, BookingUpdate(services=[line]))
        service.save_booking(confirmed_booking.id, BookingUpdate(services=[line.model_copy(update={"quantity": 1})]))

        db_session.refresh(minibar_item)
        assert minibar_item.stock == 7
        assert confirmed_booking.total_revenue == 1015000

    def test_lending_moves_stock_into_circulation(self, service, db_session, confirmed_booking, towel_item):
        service.save_booking(confirmed_booking.id, BookingUpdate(lending=[
            LendingItem(item_id=towel_item.id, item_name=towel_item.name, quantity=2)
        ]))

        db_session.refresh(towel_item)
        assert towel_item.stock == 18
        assert towel_item.in_circulation == 2
        assert confirmed_booking.total_revenue == 1000000

    def test_moving_into_a_taken_room_is_rejected(self, service, room_102, confirmed_booking, tomorrow):
        service.create_booking(booking_data(tomorrow, room_code="102"))
        with pytest.raises(ValueError, match="already booked"):
            service.save_booking(confirmed_booking.id, BookingUpdate(room_code="102"))

    def test_released_booking_cannot_be_edited(self, service, db_session, confirmed_booking):
        confirmed_booking.status = BookingStatus.CHECKED_OUT
        db_session.commit()
        with pytest.raises(ValueError, match="cannot be edited"):
            service.save_booking(confirmed_booking.id, BookingUpdate(note="x"))


class TestPayments:

    def test_payment_reduces_remaining(self, service, confirmed_booking, events):
        booking = service.add_payment(confirmed_booking.id, PaymentCreate(amount=400000,
                                                                          method=PaymentMethod.TRANSFER))

        assert booking.remaining_amount == 600000
        assert load_payments(booking)[0].method == PaymentMethod.TRANSFER
        assert events[-1].event_type == EventType.PAYMENT_RECEIVED
        assert events[-1].data["amount"] == 400000

    @pytest.mark.parametrize("amount", [0, -5])
    def test_non_positive_payment(self, service, confirmed_booking, amount):
        with pytest.raises(ValueError):
            service.add_payment(confirmed_booking.id, PaymentCreate(amount=amount))

    def test_cancelled_booking_takes_no_payment(self, service, db_session, confirmed_booking):
        confirmed_booking.status = BookingStatus.CANCELLED
        db_session.commit()
        with pytest.raises(ValueError):
            service.add_payment(confirmed_booking.id, PaymentCreate(amount=100))

    def test_unknown_booking(self, service):
        with pytest.raises(ValueError, match="not found"):
            service.add_payment(999, PaymentCreate(amount=100))

    def test_failed_commit_keeps_ledger(self, service, db_session, confirmed_booking, events, monkeypatch):
        monkeypatch.setattr(db_session, "commit", failing_commit)

        with pytest.raises(SQLAlchemyError):
            service.add_payment(confirmed_booking.id, PaymentCreate(amount=400000))

        assert load_payments(confirmed_booking) == []
        assert confirmed_booking.remaining_amount == 1000000
        assert events == []


class TestGroupPayment:

    @pytest.fixture
    def group(self, db_session, facility):
        """Leader owes 100, members owe 200 and 300"""
        members = []
        for index, remaining in enumerate([100, 200, 300]):
            booking = Booking(
                facility_name="Tuan Chau", room_code=f"G{index}", customer_name=f"G{index}",
                check_in=facility.created_at, check_out=facility.created_at + timedelta(days=1),
                status=BookingStatus.CONFIRMED, price=remaining, extra_fee=0,
                total_revenue=remaining, remaining_amount=remaining, payments_json="[]",
                group_id="GRP-1", group_name="Team", is_group_leader=index == 0
            )
            db_session.add(booking)
            members.append(booking)
        db_session.commit()
        return members

    def test_payment_fills_leader_first(self, service, group):
        result = service.add_group_payment(group[1].id, PaymentCreate(amount=250))

        assert [a["amount"] for a in result["allocations"]] == [100, 150]
        assert result["unallocated_amount"] == 0
        assert [m.remaining_amount for m in group] == [0, 50, 300]

    def test_leftover_is_reported(self, service, group):
        service.add_group_payment(group[0].id, PaymentCreate(amount=250))
        result = service.add_group_payment(group[0].id, PaymentCreate(amount=450))

        assert result["allocated_amount"] == 350
        assert result["unallocated_amount"] == 100
        assert [m.remaining_amount for m in group] == [0, 0, 0]

    def test_cancelled_members_are_skipped(self, service, db_session, group):
        group[0].status = BookingStatus.CANCELLED
        db_session.commit()

        result = service.add_group_payment(group[1].id, PaymentCreate(amount=250))

        assert [a["booking_id"] for a in result["allocations"]] == [group[1].id, group[2].id]

    def test_booking_outside_a_group(self, service, confirmed_booking):
        with pytest.raises(ValueError, match="not part of a group"):
            service.add_group_payment(confirmed_booking.id, PaymentCreate(amount=100))

    def test_group_financials(self, service, group):
        service.add_group_payment(group[0].id, PaymentCreate(amount=250))

        summary = service.group_financials("GRP-1")

        assert summary == {"group_id": "GRP-1", "total": 600, "paid": 250,
                           "remaining": 350, "member_count": 3}


class TestLifecycle:

    def test_check_in_records_time_and_audit_line(self, service, confirmed_booking, receptionist, events):
        booking = service.check_in(confirmed_booking.id, CheckInRequest(), receptionist)

        assert booking.status == BookingStatus.CHECKED_IN
        assert booking.actual_check_in is not None
        assert "Check-in by Reception Minh" in booking.note
        assert events[-1].event_type == EventType.BOOKING_CHECKED_IN

    def test_check_in_twice_is_rejected(self, service, confirmed_booking):
        service.check_in(confirmed_booking.id)
        with pytest.raises(ValueError, match="Only confirmed"):
            service.check_in(confirmed_booking.id)

    def test_unsettled_check_out_needs_confirmation(self, service, db_session, confirmed_booking, room_101):
        service.check_in(confirmed_booking.id)

        with pytest.raises(ValueError, match="unpaid balance of 1,000,000"):
            service.check_out(confirmed_booking.id)

        db_session.refresh(confirmed_booking)
        assert confirmed_booking.status == BookingStatus.CHECKED_IN
        assert db_session.query(HousekeepingTask).count() == 0

    def test_check_out_marks_room_dirty_and_creates_task(self, service, db_session, confirmed_booking,
                                                         room_101, receptionist, events):
        service.check_in(confirmed_booking.id)
        service.add_payment(confirmed_booking.id, PaymentCreate(amount=1000000))

        booking = service.check_out(confirmed_booking.id, CheckOutRequest(), receptionist)

        db_session.refresh(room_101)
        task = db_session.query(HousekeepingTask).one()
        assert booking.status == BookingStatus.CHECKED_OUT
        assert booking.actual_check_out is not None
        assert "Check-out by Reception Minh. Total: 1,000,000" in booking.note
        assert room_101.status == RoomStatus.DIRTY
        assert task.task_type == HousekeepingTaskType.CHECKOUT
        assert task.priority == TaskPriority.HIGH
        assert task.room_code == "101"
        assert events[-1].event_type == EventType.BOOKING_CHECKED_OUT

    def test_check_out_with_allow_unsettled(self, service, confirmed_booking, room_101):
        service.check_in(confirmed_booking.id)
        booking = service.check_out(confirmed_booking.id, CheckOutRequest(allow_unsettled=True))
        assert booking.status == BookingStatus.CHECKED_OUT
        assert booking.remaining_amount == 1000000

    def test_check_out_requires_check_in(self, service, confirmed_booking):
        with pytest.raises(ValueError, match="Only checked-in"):
            service.check_out(confirmed_booking.id, CheckOutRequest(allow_unsettled=True))


class TestCancel:

    def test_refund_entry_and_revenue(self, service, confirmed_booking, events):
        service.add_payment(confirmed_booking.id, PaymentCreate(amount=500000))

        booking = service.cancel(confirmed_booking.id, CancelRequest(reason="Guest sick", cancel_fee=200000))

        payments = load_payments(booking)
        assert booking.status == BookingStatus.CANCELLED
        assert booking.total_revenue == 200000
        assert booking.remaining_amount == 0
        assert payments[-1].amount == -300000
        assert "[CANCELLED]: Guest sick" in booking.note
        assert events[-1].event_type == EventType.BOOKING_CANCELLED
        assert events[-1].data["refund"] == 300000

    def test_no_refund_when_nothing_paid(self, service, confirmed_booking):
        booking = service.cancel(confirmed_booking.id, CancelRequest(reason="No show"))
        assert load_payments(booking) == []
        assert booking.total_revenue == 0

    def test_cancel_twice_is_rejected(self, service, confirmed_booking):
        service.cancel(confirmed_booking.id, CancelRequest(reason="No show"))
        with pytest.raises(ValueError, match="already"):
            service.cancel(confirmed_booking.id, CancelRequest(reason="Again"))

    def test_failed_commit_keeps_booking_live(self, service, db_session, confirmed_booking, events,
                                              monkeypatch):
        monkeypatch.setattr(db_session, "commit", failing_commit)

        with pytest.raises(SQLAlchemyError):
            service.cancel(confirmed_booking.id, CancelRequest(reason="No show", cancel_fee=100000))

        assert confirmed_booking.status == BookingStatus.CONFIRMED
        assert confirmed_booking.total_revenue == 1000000
        assert "[CANCELLED]" not in (confirmed_booking.note or "")
        assert events == []


def test_audit_line_format(receptionist):
    from datetime import datetime
    line = audit_line("Check-in", receptionist, datetime(2026, 3, 7, 9, 5))
    assert line == "[09:05 07/03] Check-in by Reception Minh"
