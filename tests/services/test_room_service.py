"""
Facility and room service tests
"""
import pytest

from hotelops.models.events import EventType
from hotelops.models.ontology import (
    HousekeepingStatus, HousekeepingTask, HousekeepingTaskType, RoomStatus
)
from hotelops.models.schemas import FacilityCreate, FacilityUpdate, RoomCreate, RoomUpdate
from hotelops.services.room_service import RoomService


@pytest.fixture
def service(db_session, publisher):
    return RoomService(db_session, event_publisher=publisher)


class TestFacilities:

    def test_duplicate_name(self, service, facility):
        with pytest.raises(ValueError, match="already exists"):
            service.create_facility(FacilityCreate(name="Tuan Chau"))

    def test_rename_carries_over_to_bookings(self, service, db_session, facility, confirmed_booking):
        service.update_facility(facility.id, FacilityUpdate(name="Tuan Chau 2"))

        db_session.refresh(confirmed_booking)
        assert confirmed_booking.facility_name == "Tuan Chau 2"

    def test_facility_with_bookings_cannot_be_deleted(self, service, facility, confirmed_booking):
        with pytest.raises(ValueError, match="cannot be deleted"):
            service.delete_facility(facility.id)

    def test_room_count(self, service, facility, room_101, room_102):
        assert service.facility_with_count(facility)["room_count"] == 2


class TestRooms:

    def test_room_names_are_unique_per_facility(self, service, facility, room_101, other_facility):
        with pytest.raises(ValueError, match="already exists"):
            service.create_room(RoomCreate(facility_id=facility.id, name="101"))
        room = service.create_room(RoomCreate(facility_id=other_facility.id, name="101"))
        assert room.facility_id == other_facility.id

    def test_rename_carries_over_to_bookings(self, service, db_session, room_101, confirmed_booking):
        service.update_room(room_101.id, RoomUpdate(name="101A"))

        db_session.refresh(confirmed_booking)
        assert confirmed_booking.room_code == "101A"


class TestStatus:

    def test_cycle(self, service, db_session, room_101, events):
        assert service.cycle_status(room_101.id).status == RoomStatus.DIRTY
        assert service.cycle_status(room_101.id).status == RoomStatus.CLEANING
        assert service.cycle_status(room_101.id).status == RoomStatus.CLEAN
        assert [e.event_type for e in events] == [EventType.ROOM_STATUS_CHANGED] * 3

    def test_marking_dirty_creates_a_task(self, service, db_session, room_101):
        service.update_room_status(room_101.id, RoomStatus.DIRTY)

        task = db_session.query(HousekeepingTask).one()
        assert task.task_type == HousekeepingTaskType.DIRTY
        assert task.status == HousekeepingStatus.PENDING

    def test_quick_clean_closes_open_tasks(self, service, db_session, room_101):
        service.update_room_status(room_101.id, RoomStatus.DIRTY)

        room = service.quick_clean(room_101.id)

        task = db_session.query(HousekeepingTask).one()
        assert room.status == RoomStatus.CLEAN
        assert task.status == HousekeepingStatus.DONE
        assert "Auto-closed" in task.note

    def test_repair_is_outside_the_cycle(self, service, room_101):
        service.update_room_status(room_101.id, RoomStatus.REPAIR)
        with pytest.raises(ValueError, match="under repair"):
            service.cycle_status(room_101.id)

    def test_unknown_room(self, service):
        with pytest.raises(ValueError, match="not found"):
            service.quick_clean(999)
