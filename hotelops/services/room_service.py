"""
Room service
Facilities, rooms and manual room status changes
"""
from typing import List, Optional, Callable
from datetime import datetime
import logging
from sqlalchemy.orm import Session
from sqlalchemy import func
from hotelops.models.ontology import (
    Booking, Facility, HousekeepingTaskType, Room, RoomStatus, TaskPriority
)
from hotelops.models.schemas import FacilityCreate, FacilityUpdate, RoomCreate, RoomUpdate
from hotelops.services.event_bus import event_bus, Event
from hotelops.models.events import EventType, RoomStatusChangedData
from hotelops.services.housekeeping_service import close_open_tasks, new_task

logger = logging.getLogger(__name__)

# Manual cycle on the room map
STATUS_CYCLE = {
    RoomStatus.CLEAN: RoomStatus.DIRTY,
    RoomStatus.DIRTY: RoomStatus.CLEANING,
    RoomStatus.CLEANING: RoomStatus.CLEAN,
}


class RoomService:
    """Room service"""

    def __init__(self, db: Session, event_publisher: Callable[[Event], None] = None):
        self.db = db
        self._publish_event = event_publisher or event_bus.publish

    # ============== Facilities ==============

    def get_facilities(self) -> List[Facility]:
        return self.db.query(Facility).order_by(Facility.name).all()

    def get_facility(self, facility_id: int) -> Optional[Facility]:
        return self.db.query(Facility).filter(Facility.id == facility_id).first()

    def get_facility_by_name(self, name: str) -> Optional[Facility]:
        return self.db.query(Facility).filter(Facility.name == name).first()

    def facility_with_count(self, facility: Facility) -> dict:
        room_count = self.db.query(func.count(Room.id)).filter(Room.facility_id == facility.id).scalar()
        return {
            "id": facility.id,
            "name": facility.name,
            "price": facility.price or 0,
            "price_saturday": facility.price_saturday or 0,
            "note": facility.note,
            "latitude": facility.latitude,
            "longitude": facility.longitude,
            "allowed_radius": facility.allowed_radius,
            "room_count": room_count or 0,
        }

    def create_facility(self, data: FacilityCreate) -> Facility:
        if self.get_facility_by_name(data.name):
            raise ValueError(f"Facility '{data.name}' already exists")
        facility = Facility(**data.model_dump())
        self.db.add(facility)
        self.db.commit()
        self.db.refresh(facility)
        return facility

    def update_facility(self, facility_id: int, data: FacilityUpdate) -> Facility:
        """Update a facility; a rename is carried over to its bookings"""
        facility = self.get_facility(facility_id)
        if not facility:
            raise ValueError("Facility not found")

        update_data = data.model_dump(exclude_unset=True)
        new_name = update_data.get("name")
        if new_name and new_name != facility.name:
            existing = self.get_facility_by_name(new_name)
            if existing and existing.id != facility_id:
                raise ValueError(f"Facility '{new_name}' already exists")
            self.db.query(Booking).filter(Booking.facility_name == facility.name).update(
                {Booking.facility_name: new_name}, synchronize_session=False
            )

        for key, value in update_data.items():
            setattr(facility, key, value)
        self.db.commit()
        self.db.refresh(facility)
        return facility

    def delete_facility(self, facility_id: int) -> None:
        facility = self.get_facility(facility_id)
        if not facility:
            raise ValueError("Facility not found")
        booking_count = self.db.query(Booking).filter(Booking.facility_name == facility.name).count()
        if booking_count > 0:
            raise ValueError(f"Facility has {booking_count} bookings and cannot be deleted")
        self.db.delete(facility)
        self.db.commit()

    # ============== Rooms ==============

    def get_rooms(self, facility_id: Optional[int] = None,
                  status: Optional[RoomStatus] = None) -> List[Room]:
        query = self.db.query(Room)
        if facility_id is not None:
            query = query.filter(Room.facility_id == facility_id)
        if status is not None:
            query = query.filter(Room.status == status)
        return query.order_by(Room.facility_id, Room.name).all()

    def get_room(self, room_id: int) -> Optional[Room]:
        return self.db.query(Room).filter(Room.id == room_id).first()

    def _name_taken(self, facility_id: int, name: str, exclude_id: Optional[int] = None) -> bool:
        query = self.db.query(Room).filter(Room.facility_id == facility_id, Room.name == name)
        if exclude_id is not None:
            query = query.filter(Room.id != exclude_id)
        return query.first() is not None

    def create_room(self, data: RoomCreate) -> Room:
        if not self.get_facility(data.facility_id):
            raise ValueError("Facility not found")
        if self._name_taken(data.facility_id, data.name):
            raise ValueError(f"Room '{data.name}' already exists in this facility")

        room = Room(**data.model_dump())
        self.db.add(room)
        self.db.commit()
        self.db.refresh(room)
        return room

    def update_room(self, room_id: int, data: RoomUpdate) -> Room:
        """Update a room; a rename is carried over to its bookings"""
        room = self.get_room(room_id)
        if not room:
            raise ValueError("Room not found")

        update_data = data.model_dump(exclude_unset=True)
        new_name = update_data.get("name")
        if new_name and new_name != room.name:
            if self._name_taken(room.facility_id, new_name, exclude_id=room_id):
                raise ValueError(f"Room '{new_name}' already exists in this facility")
            self.db.query(Booking).filter(
                Booking.facility_name == room.facility.name,
                Booking.room_code == room.name
            ).update({Booking.room_code: new_name}, synchronize_session=False)

        for key, value in update_data.items():
            setattr(room, key, value)
        self.db.commit()
        self.db.refresh(room)
        return room

    def delete_room(self, room_id: int) -> None:
        room = self.get_room(room_id)
        if not room:
            raise ValueError("Room not found")
        self.db.delete(room)
        self.db.commit()

    # ============== Status ==============

    def _set_status(self, room: Room, status: RoomStatus, reason: str = "") -> RoomStatus:
        """Status change with its housekeeping side effects; returns the old status"""
        old_status = room.status
        room.status = status
        if status == RoomStatus.DIRTY and old_status != RoomStatus.DIRTY:
            self.db.add(new_task(room.facility_id, room.name, HousekeepingTaskType.DIRTY,
                                 TaskPriority.NORMAL, reason or None))
        elif status == RoomStatus.CLEAN:
            close_open_tasks(self.db, room.facility_id, room.name)
        return old_status

    def _publish_status_changed(self, room: Room, old_status: RoomStatus) -> None:
        if old_status == room.status:
            return
        self._publish_event(Event(
            event_type=EventType.ROOM_STATUS_CHANGED,
            timestamp=datetime.now(),
            data=RoomStatusChangedData(
                room_id=room.id,
                room_name=room.name,
                old_status=old_status.value if old_status else "",
                new_status=room.status.value
            ).to_dict(),
            source="room_service"
        ))

    def update_room_status(self, room_id: int, status: RoomStatus, reason: str = "") -> Room:
        room = self.get_room(room_id)
        if not room:
            raise ValueError("Room not found")

        try:
            old_status = self._set_status(room, status, reason)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(room)
        self._publish_status_changed(room, old_status)
        return room

    def cycle_status(self, room_id: int) -> Room:
        """clean -> dirty -> cleaning -> clean"""
        room = self.get_room(room_id)
        if not room:
            raise ValueError("Room not found")
        if room.status not in STATUS_CYCLE:
            raise ValueError("Room is under repair; set its status explicitly")
        return self.update_room_status(room_id, STATUS_CYCLE[room.status], reason="Marked dirty from room map")

    def quick_clean(self, room_id: int) -> Room:
        """Mark the room clean and close its open tasks"""
        return self.update_room_status(room_id, RoomStatus.CLEAN)
