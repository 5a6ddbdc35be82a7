"""
Room availability tests
"""
from datetime import datetime
from types import SimpleNamespace

from hotelops.domain.availability import check_availability, find_conflicts, intervals_overlap
from hotelops.models.ontology import BookingStatus


def make_booking(id, check_in, check_out, status=BookingStatus.CONFIRMED,
                 facility_name="Tuan Chau", room_code="101"):
    return SimpleNamespace(id=id, facility_name=facility_name, room_code=room_code,
                           check_in=check_in, check_out=check_out, status=status)


D = lambda day, hour=14: datetime(2026, 3, day, hour)  # noqa: E731


class TestIntervalsOverlap:

    def test_touching_intervals_do_not_overlap(self):
        assert not intervals_overlap(D(1), D(3), D(3), D(5))
        assert not intervals_overlap(D(3), D(5), D(1), D(3))

    def test_partial_overlap(self):
        assert intervals_overlap(D(1), D(4), D(3), D(5))

    def test_contained_interval(self):
        assert intervals_overlap(D(1), D(10), D(3), D(5))


class TestCheckAvailability:

    def test_back_to_back_stays_are_allowed(self):
        bookings = [make_booking(1, D(1), D(3))]
        assert check_availability(bookings, "Tuan Chau", "101", D(3), D(5))

    def test_overlap_is_a_conflict(self):
        bookings = [make_booking(1, D(1), D(4))]
        assert not check_availability(bookings, "Tuan Chau", "101", D(3), D(5))
        assert [b.id for b in find_conflicts(bookings, "Tuan Chau", "101", D(3), D(5))] == [1]

    def test_released_bookings_do_not_block(self):
        bookings = [
            make_booking(1, D(1), D(4), status=BookingStatus.CANCELLED),
            make_booking(2, D(1), D(4), status=BookingStatus.CHECKED_OUT),
        ]
        assert check_availability(bookings, "Tuan Chau", "101", D(2), D(3))

    def test_checked_in_booking_blocks(self):
        bookings = [make_booking(1, D(1), D(4), status=BookingStatus.CHECKED_IN)]
        assert not check_availability(bookings, "Tuan Chau", "101", D(2), D(3))

    def test_other_room_or_facility_is_ignored(self):
        bookings = [
            make_booking(1, D(1), D(4), room_code="102"),
            make_booking(2, D(1), D(4), facility_name="Bai Chay"),
        ]
        assert check_availability(bookings, "Tuan Chau", "101", D(2), D(3))

    def test_excluded_booking_is_ignored(self):
        bookings = [make_booking(7, D(1), D(4))]
        assert check_availability(bookings, "Tuan Chau", "101", D(1), D(4), exclude_id=7)
