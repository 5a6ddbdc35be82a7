"""
Room map status tests
"""
from datetime import date, datetime, timedelta
from types import SimpleNamespace

from hotelops.domain.occupancy import RoomDisplayStatus, room_display_status, room_stats
from hotelops.models.ontology import BookingStatus, HousekeepingStatus, RoomStatus

NOW = datetime(2026, 6, 10, 10, 0)
FACILITY = SimpleNamespace(id=1, name="Tuan Chau")


def room(name="101", status=RoomStatus.CLEAN):
    return SimpleNamespace(id=1, facility_id=1, name=name, status=status)


def booking(id, check_in, check_out, status=BookingStatus.CONFIRMED, room_code="101"):
    return SimpleNamespace(id=id, facility_name="Tuan Chau", room_code=room_code,
                           check_in=check_in, check_out=check_out, status=status)


class TestLiveView:

    def test_vacant_room(self):
        view = room_display_status(FACILITY, room(), [], [], NOW.date(), NOW)
        assert view.status == RoomDisplayStatus.VACANT
        assert view.booking is None

    def test_checked_in_guest_occupies_room(self):
        stay = booking(1, NOW - timedelta(days=1), NOW + timedelta(days=1), BookingStatus.CHECKED_IN)
        view = room_display_status(FACILITY, room(), [stay], [], NOW.date(), NOW)
        assert view.status == RoomDisplayStatus.OCCUPIED
        assert view.booking is stay

    def test_guest_past_checkout_is_overdue(self):
        stay = booking(1, NOW - timedelta(days=2), NOW - timedelta(hours=1), BookingStatus.CHECKED_IN)
        view = room_display_status(FACILITY, room(), [stay], [], NOW.date(), NOW)
        assert view.status == RoomDisplayStatus.OVERDUE

    def test_arrival_today_is_reserved(self):
        arrival = booking(1, NOW + timedelta(hours=4), NOW + timedelta(days=1))
        view = room_display_status(FACILITY, room(), [arrival], [], NOW.date(), NOW)
        assert view.status == RoomDisplayStatus.RESERVED

    def test_dirty_room(self):
        view = room_display_status(FACILITY, room(status=RoomStatus.DIRTY), [], [], NOW.date(), NOW)
        assert view.status == RoomDisplayStatus.DIRTY

    def test_cleaning_in_progress(self):
        task = SimpleNamespace(facility_id=1, room_code="101", status=HousekeepingStatus.IN_PROGRESS)
        view = room_display_status(FACILITY, room(), [], [task], NOW.date(), NOW)
        assert view.status == RoomDisplayStatus.CLEANUP

    def test_next_booking_is_reported_for_free_room(self):
        later = booking(2, NOW + timedelta(days=3), NOW + timedelta(days=4))
        view = room_display_status(FACILITY, room(), [later], [], NOW.date(), NOW)
        assert view.status == RoomDisplayStatus.VACANT
        assert view.next_booking is later

    def test_ledger_badges(self):
        stay = booking(1, NOW - timedelta(days=1), NOW + timedelta(days=1), BookingStatus.CHECKED_IN)
        view = room_display_status(FACILITY, room(), [stay], [], NOW.date(), NOW,
                                   ledger_counts=lambda b: (2, 0))
        assert view.has_services is True
        assert view.has_lending is False


class TestForecastView:

    def test_covered_day_is_reserved(self):
        stay = booking(1, datetime(2026, 6, 12, 14), datetime(2026, 6, 14, 12))
        view = room_display_status(FACILITY, room(), [stay], [], date(2026, 6, 13), NOW)
        assert view.status == RoomDisplayStatus.RESERVED

    def test_checkout_day_is_free(self):
        stay = booking(1, datetime(2026, 6, 12, 14), datetime(2026, 6, 14, 12))
        view = room_display_status(FACILITY, room(), [stay], [], date(2026, 6, 14), NOW)
        assert view.status == RoomDisplayStatus.VACANT

    def test_housekeeping_state_is_ignored(self):
        view = room_display_status(FACILITY, room(status=RoomStatus.DIRTY), [], [], date(2026, 6, 20), NOW)
        assert view.status == RoomDisplayStatus.VACANT


class TestRoomStats:

    def test_counters(self):
        rooms = [room("101"), room("102", RoomStatus.DIRTY), room("103")]
        stays = [
            booking(1, NOW - timedelta(days=1), datetime(2026, 6, 10, 12), BookingStatus.CHECKED_IN),
        ]

        stats = room_stats([FACILITY], rooms, stays, NOW.date(), NOW)

        assert stats.total == 3
        assert stats.occupied == 1
        assert stats.outgoing == 1
        assert stats.dirty == 1
        assert stats.available == 1
