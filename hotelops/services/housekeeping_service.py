"""
Housekeeping service
Task updates are written together with the room status they imply
"""
from typing import List, Optional, Callable
from datetime import datetime
import logging
from sqlalchemy.orm import Session
from hotelops.models.ontology import (
    Facility, HousekeepingTask, HousekeepingTaskType, HousekeepingStatus,
    Room, RoomStatus, Staff, TaskPriority
)
from hotelops.models.schemas import HousekeepingTaskUpdate, BulkTaskUpdate, StayoverRequest
from hotelops.services.event_bus import event_bus, Event
from hotelops.models.events import EventType, HousekeepingAssignedData

logger = logging.getLogger(__name__)

# Workload points per task type
TASK_POINTS = {
    HousekeepingTaskType.CHECKOUT: 4,
    HousekeepingTaskType.DIRTY: 2,
    HousekeepingTaskType.STAYOVER: 1,
    HousekeepingTaskType.VACANT: 0,
}

AUTO_CLOSE_NOTE = "(Auto-closed by system cleanup)"
OPEN_STATUSES = (HousekeepingStatus.PENDING, HousekeepingStatus.IN_PROGRESS)


def task_points(task_type: HousekeepingTaskType) -> int:
    return TASK_POINTS.get(task_type, 1)


def new_task(facility_id: int, room_code: str, task_type: HousekeepingTaskType,
             priority: TaskPriority = TaskPriority.NORMAL, note: str = None) -> HousekeepingTask:
    """Build an unsaved Pending task"""
    return HousekeepingTask(
        facility_id=facility_id,
        room_code=room_code,
        task_type=task_type,
        status=HousekeepingStatus.PENDING,
        priority=priority,
        points=task_points(task_type),
        note=note,
        created_at=datetime.now(),
    )


def close_open_tasks(db: Session, facility_id: int, room_code: str,
                     exclude_id: Optional[int] = None) -> int:
    """Mark every open task of the room Done; returns how many were closed"""
    query = db.query(HousekeepingTask).filter(
        HousekeepingTask.facility_id == facility_id,
        HousekeepingTask.room_code == room_code,
        HousekeepingTask.status.in_(OPEN_STATUSES)
    )
    if exclude_id is not None:
        query = query.filter(HousekeepingTask.id != exclude_id)

    closed = 0
    now = datetime.now()
    for task in query.all():
        task.status = HousekeepingStatus.DONE
        task.completed_at = now
        task.note = f"{task.note} {AUTO_CLOSE_NOTE}" if task.note else AUTO_CLOSE_NOTE
        closed += 1
    return closed


class HousekeepingService:
    """Housekeeping service"""

    def __init__(self, db: Session, event_publisher: Callable[[Event], None] = None):
        self.db = db
        self._publish_event = event_publisher or event_bus.publish

    def get_tasks(self, facility_id: Optional[int] = None,
                  status: Optional[HousekeepingStatus] = None,
                  assignee: Optional[str] = None,
                  open_only: bool = False) -> List[HousekeepingTask]:
        query = self.db.query(HousekeepingTask)
        if facility_id:
            query = query.filter(HousekeepingTask.facility_id == facility_id)
        if status:
            query = query.filter(HousekeepingTask.status == status)
        if assignee:
            query = query.filter(HousekeepingTask.assignee == assignee)
        if open_only:
            query = query.filter(HousekeepingTask.status.in_(OPEN_STATUSES))
        return query.order_by(HousekeepingTask.created_at.desc(), HousekeepingTask.id.desc()).all()

    def get_task(self, task_id: int) -> Optional[HousekeepingTask]:
        return self.db.query(HousekeepingTask).filter(HousekeepingTask.id == task_id).first()

    def _room(self, facility_id: int, room_code: str) -> Optional[Room]:
        return self.db.query(Room).filter(
            Room.facility_id == facility_id,
            Room.name == room_code
        ).first()

    def _sync_room_status(self, task: HousekeepingTask) -> None:
        """Done -> clean, In Progress -> cleaning, Pending on a clean room -> dirty"""
        room = self._room(task.facility_id, task.room_code)
        if not room:
            logger.warning(f"Task {task.id} points at unknown room {task.room_code}")
            return
        if task.status == HousekeepingStatus.DONE:
            room.status = RoomStatus.CLEAN
        elif task.status == HousekeepingStatus.IN_PROGRESS:
            room.status = RoomStatus.CLEANING
        elif task.status == HousekeepingStatus.PENDING and room.status == RoomStatus.CLEAN:
            room.status = RoomStatus.DIRTY

    def _apply(self, task: HousekeepingTask, status: Optional[HousekeepingStatus],
               assignee: Optional[str], priority: Optional[TaskPriority] = None,
               note: Optional[str] = None) -> bool:
        """Apply one update in the session; True when a new assignee was set"""
        assigned = bool(assignee) and assignee != task.assignee

        if assignee is not None:
            task.assignee = assignee or None
        if priority is not None:
            task.priority = priority
        if note is not None:
            task.note = note

        if status is not None:
            task.status = status
        elif assigned and task.status == HousekeepingStatus.PENDING:
            task.status = HousekeepingStatus.IN_PROGRESS

        if task.status == HousekeepingStatus.DONE:
            task.completed_at = task.completed_at or datetime.now()
        else:
            task.completed_at = None

        close_open_tasks(self.db, task.facility_id, task.room_code, exclude_id=task.id)
        self._sync_room_status(task)
        return assigned

    def _publish_assigned(self, task: HousekeepingTask) -> None:
        facility = self.db.query(Facility).filter(Facility.id == task.facility_id).first()
        self._publish_event(Event(
            event_type=EventType.HOUSEKEEPING_ASSIGNED,
            timestamp=datetime.now(),
            data=HousekeepingAssignedData(
                task_id=task.id,
                facility_name=facility.name if facility else "",
                room_code=task.room_code,
                task_type=task.task_type.value,
                assignee=task.assignee or "",
                priority=task.priority.value if task.priority else ""
            ).to_dict(),
            source="housekeeping_service"
        ))

    def update_task(self, task_id: int, data: HousekeepingTaskUpdate) -> HousekeepingTask:
        """
        Update a task
        Business rules (one transaction):
        1. other open tasks of the same room are closed
        2. a new assignee moves a Pending task to In Progress
        3. the room status follows the task status
        """
        task = self.get_task(task_id)
        if not task:
            raise ValueError("Task not found")

        try:
            assigned = self._apply(task, data.status, data.assignee, data.priority, data.note)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(task)

        if assigned:
            self._publish_assigned(task)
        return task

    def bulk_update(self, data: BulkTaskUpdate) -> List[HousekeepingTask]:
        """Assign or set the status of several tasks at once"""
        if data.status is None and not data.assignee:
            raise ValueError("Nothing to update: give a status or an assignee")

        tasks = self.db.query(HousekeepingTask).filter(HousekeepingTask.id.in_(data.task_ids)).all()
        if len(tasks) != len(set(data.task_ids)):
            raise ValueError("Some tasks were not found")

        assigned_tasks = []
        try:
            for task in tasks:
                if self._apply(task, data.status, data.assignee):
                    assigned_tasks.append(task)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        for task in assigned_tasks:
            self._publish_assigned(task)
        return tasks

    def record_stayover(self, data: StayoverRequest, operator: Optional[Staff] = None) -> HousekeepingTask:
        """
        Record the guest's answer to daily cleaning.
        Accepted: a Pending Stayover task; refused: an already Done zero-point task.
        """
        room = self._room(data.facility_id, data.room_code)
        if not room:
            raise ValueError("Room not found")

        task = new_task(data.facility_id, data.room_code, HousekeepingTaskType.STAYOVER)
        if data.accepted:
            task.note = "Guest accepted daily cleaning"
        else:
            task.status = HousekeepingStatus.DONE
            task.priority = TaskPriority.LOW
            task.points = 0
            task.assignee = operator.name if operator else None
            task.completed_at = datetime.now()
            task.note = "Guest declined daily cleaning"

        self.db.add(task)
        self.db.commit()
        self.db.refresh(task)
        return task
