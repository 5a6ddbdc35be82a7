"""
HR service
Leave requests, salary advances, fines, payroll, attendance, timesheets and shift schedules
"""
from dataclasses import asdict
from typing import Any, Dict, List, Optional, Callable, Tuple
from datetime import date, datetime, timedelta
import logging
from sqlalchemy.orm import Session
from hotelops.config import settings
from hotelops.domain.geo import geofence_status
from hotelops.domain.timesheet import (
    TimesheetSource, apply_adjustment, commission_for, from_schedules, from_time_logs, salary_for
)
from hotelops.models.ontology import (
    AttendanceAdjustment, Booking, BookingStatus, Expense, Facility, LeaveRequest, LeaveStatus,
    SalaryAdvance, SalaryAdvanceStatus, ShiftSchedule, Staff, StaffRole, TimeLog, Violation,
    ViolationStatus, ViolationType
)
from hotelops.models.schemas import (
    AdjustmentUpsert, LeaveDecision, LeaveRequestCreate, SalaryAdvanceCreate, ShiftUpsert, ViolationCreate
)
from hotelops.services.event_bus import event_bus, Event
from hotelops.models.events import EventType, LeaveEventData
from hotelops.services.payment_qr import build_payroll_qr_url

logger = logging.getLogger(__name__)

SALARY_CATEGORY = "Lương nhân viên"
GENERAL_FACILITY = "General"
APPROVER_ROLES = (StaffRole.ADMIN, StaffRole.MANAGER)


class HrService:
    """HR service"""

    def __init__(self, db: Session, event_publisher: Callable[[Event], None] = None):
        self.db = db
        self._publish_event = event_publisher or event_bus.publish

    # ============== Leave ==============

    def get_leave_requests(self, staff_id: Optional[int] = None,
                           status: Optional[LeaveStatus] = None) -> List[LeaveRequest]:
        query = self.db.query(LeaveRequest)
        if staff_id:
            query = query.filter(LeaveRequest.staff_id == staff_id)
        if status:
            query = query.filter(LeaveRequest.status == status)
        return query.order_by(LeaveRequest.created_at.desc(), LeaveRequest.id.desc()).all()

    def _publish_leave(self, event_type: EventType, leave: LeaveRequest, action: str,
                       approver: str = "") -> None:
        self._publish_event(Event(
            event_type=event_type,
            timestamp=datetime.now(),
            data=LeaveEventData(
                leave_id=leave.id,
                staff_id=leave.staff_id,
                staff_name=leave.staff.name if leave.staff else "",
                start_date=leave.start_date.isoformat(),
                end_date=leave.end_date.isoformat(),
                leave_type=leave.leave_type or "",
                reason=leave.reason or "",
                status=leave.status.value,
                action=action,
                approver=approver,
            ).to_dict(),
            source="hr_service"
        ))

    def create_leave_request(self, data: LeaveRequestCreate, staff: Staff) -> LeaveRequest:
        leave = LeaveRequest(staff_id=staff.id, **data.model_dump())
        self.db.add(leave)
        self.db.commit()
        self.db.refresh(leave)
        self._publish_leave(EventType.LEAVE_REQUESTED, leave, "new_request")
        return leave

    def decide_leave_request(self, leave_id: int, data: LeaveDecision, approver: Staff) -> LeaveRequest:
        """Approve or reject a pending request; admins and managers only"""
        if approver.role not in APPROVER_ROLES:
            raise PermissionError("Only managers can decide leave requests")
        leave = self.db.query(LeaveRequest).filter(LeaveRequest.id == leave_id).first()
        if not leave:
            raise ValueError("Leave request not found")
        if leave.status != LeaveStatus.PENDING:
            raise ValueError(f"Leave request is already {leave.status.value}")

        leave.status = LeaveStatus.APPROVED if data.approve else LeaveStatus.REJECTED
        leave.approver_note = data.note
        leave.approved_by = approver.id
        self.db.commit()
        self.db.refresh(leave)
        self._publish_leave(EventType.LEAVE_DECIDED, leave, "status_update", approver.name)
        return leave

    def staff_on_leave(self, day: date) -> List[LeaveRequest]:
        return self.db.query(LeaveRequest).filter(
            LeaveRequest.status == LeaveStatus.APPROVED,
            LeaveRequest.start_date <= day,
            LeaveRequest.end_date >= day
        ).all()

    # ============== Salary advances ==============

    def get_advances(self, staff_id: Optional[int] = None) -> List[SalaryAdvance]:
        query = self.db.query(SalaryAdvance)
        if staff_id:
            query = query.filter(SalaryAdvance.staff_id == staff_id)
        return query.order_by(SalaryAdvance.request_date.desc()).all()

    def request_advance(self, data: SalaryAdvanceCreate, staff: Staff) -> SalaryAdvance:
        advance = SalaryAdvance(staff_id=staff.id, amount=data.amount, reason=data.reason)
        self.db.add(advance)
        self.db.commit()
        self.db.refresh(advance)
        return advance

    def decide_advance(self, advance_id: int, approve: bool, approver: Staff) -> SalaryAdvance:
        """
        Approve or reject a pending advance.
        Approval books the payout as a salary expense in the same transaction.
        """
        advance = self.db.query(SalaryAdvance).filter(SalaryAdvance.id == advance_id).first()
        if not advance:
            raise ValueError("Salary advance not found")
        if advance.status != SalaryAdvanceStatus.PENDING:
            raise ValueError(f"Salary advance is already {advance.status.value}")

        try:
            if approve:
                advance.status = SalaryAdvanceStatus.APPROVED
                first_facility = self.db.query(Facility).order_by(Facility.id).first()
                staff_name = advance.staff.name if advance.staff else "N/A"
                self.db.add(Expense(
                    expense_date=datetime.now(),
                    facility_name=first_facility.name if first_facility else GENERAL_FACILITY,
                    category=SALARY_CATEGORY,
                    content=f"Salary advance for {staff_name}",
                    amount=advance.amount,
                    note=f"Created from salary advance #{advance.id}",
                    created_by=approver.id,
                ))
            else:
                advance.status = SalaryAdvanceStatus.REJECTED
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(advance)
        logger.info(f"Salary advance {advance.id} {advance.status.value} by {approver.name}")
        return advance

    def payroll(self, staff_id: int, gross: Optional[int], year: int, month: int) -> Dict[str, Any]:
        """
        Net pay for a month: gross minus the advances approved that month and the
        fines dated that month, with a VietQR transfer image when the staff member
        has bank details. Without an explicit gross, the timesheet salary plus
        commission is used.
        """
        staff = self.db.query(Staff).filter(Staff.id == staff_id).first()
        if not staff:
            raise ValueError("Staff not found")
        start, end = _month_range(year, month)
        if gross is None:
            entry = self.timesheet_entry(staff, year, month)
            gross = entry["salary"] + entry["commission"]
        advances = sum(a.amount for a in self.db.query(SalaryAdvance).filter(
            SalaryAdvance.staff_id == staff_id,
            SalaryAdvance.status == SalaryAdvanceStatus.APPROVED,
            SalaryAdvance.request_date >= start,
            SalaryAdvance.request_date < end
        ))
        fines = sum(v.fine_amount for v in self.get_violations(staff_id, year, month))
        net = max(0, gross - advances - fines)
        content = f"LUONG T{month:02d}/{year} {staff.name}"
        return {
            "staff_id": staff.id,
            "gross": gross,
            "advances": advances,
            "fines": fines,
            "net": net,
            "content": content,
            "qr_url": build_payroll_qr_url(staff, net, content),
        }

    def close_payroll(self, staff_id: int, year: int, month: int) -> List[Violation]:
        """Mark the month's pending fines as deducted"""
        start, end = _month_range(year, month)
        pending = self.db.query(Violation).filter(
            Violation.staff_id == staff_id,
            Violation.status == ViolationStatus.PENDING_DEDUCTION,
            Violation.date >= start,
            Violation.date < end
        ).all()
        for violation in pending:
            violation.status = ViolationStatus.DEDUCTED
        self.db.commit()
        logger.info(f"Payroll {month:02d}/{year} closed for staff {staff_id}: {len(pending)} fine(s) deducted")
        return pending

    # ============== Violations ==============

    def get_violations(self, staff_id: Optional[int] = None, year: Optional[int] = None,
                       month: Optional[int] = None) -> List[Violation]:
        query = self.db.query(Violation)
        if staff_id:
            query = query.filter(Violation.staff_id == staff_id)
        if year and month:
            start, end = _month_range(year, month)
            query = query.filter(Violation.date >= start, Violation.date < end)
        return query.order_by(Violation.date.desc()).all()

    def add_violation(self, data: ViolationCreate, operator: Staff) -> Violation:
        staff = self.db.query(Staff).filter(Staff.id == data.staff_id).first()
        if not staff:
            raise ValueError("Staff not found")
        violation = Violation(
            staff_id=staff.id,
            type=ViolationType.MANUAL,
            violation_name=data.violation_name,
            fine_amount=data.fine_amount,
            evidence_url=data.evidence_url,
            date=data.date or datetime.now(),
            created_by=operator.id,
        )
        self.db.add(violation)
        self.db.commit()
        self.db.refresh(violation)
        logger.info(f"Violation '{violation.violation_name}' ({violation.fine_amount}) recorded for {staff.name}")
        return violation

    def delete_violation(self, violation_id: int) -> None:
        violation = self.db.query(Violation).filter(Violation.id == violation_id).first()
        if not violation:
            raise ValueError("Violation not found")
        if violation.status == ViolationStatus.DEDUCTED:
            raise ValueError("A deducted fine cannot be removed")
        self.db.delete(violation)
        self.db.commit()

    # ============== Timesheet ==============

    def get_adjustment(self, staff_id: int, month: str) -> Optional[AttendanceAdjustment]:
        return self.db.query(AttendanceAdjustment).filter(
            AttendanceAdjustment.staff_id == staff_id,
            AttendanceAdjustment.month == month
        ).first()

    def upsert_adjustment(self, data: AdjustmentUpsert) -> AttendanceAdjustment:
        """One adjustment per staff member and month"""
        if not self.db.query(Staff).filter(Staff.id == data.staff_id).first():
            raise ValueError("Staff not found")
        adjustment = self.get_adjustment(data.staff_id, data.month)
        if not adjustment:
            adjustment = AttendanceAdjustment(staff_id=data.staff_id, month=data.month)
            self.db.add(adjustment)
        adjustment.standard_days_adj = data.standard_days_adj
        adjustment.ot_hours_adj = data.ot_hours_adj
        adjustment.leave_days_adj = data.leave_days_adj
        adjustment.note = data.note
        self.db.commit()
        self.db.refresh(adjustment)
        return adjustment

    def commission(self, staff: Staff, year: int, month: int) -> int:
        """Commission on checked-out bookings brought in by this staff member during the month"""
        if not staff.commission_rate:
            return 0
        start, end = _month_range(year, month)
        revenue = sum(b.total_revenue or 0 for b in self.db.query(Booking).filter(
            Booking.collaborator == staff.name,
            Booking.status == BookingStatus.CHECKED_OUT,
            Booking.check_out >= start,
            Booking.check_out < end
        ))
        return commission_for(revenue, staff.commission_rate)

    def timesheet_entry(self, staff: Staff, year: int, month: int,
                        source: TimesheetSource = TimesheetSource.SCHEDULE) -> Dict[str, Any]:
        start, end = _month_range(year, month)
        if source == TimesheetSource.SCHEDULE:
            sheet = from_schedules(s.shift_type for s in self.db.query(ShiftSchedule).filter(
                ShiftSchedule.staff_id == staff.id,
                ShiftSchedule.date >= start.date(),
                ShiftSchedule.date < end.date()
            ))
        else:
            sheet = from_time_logs(self.db.query(TimeLog).filter(
                TimeLog.staff_id == staff.id,
                TimeLog.check_in_time >= start,
                TimeLog.check_in_time < end
            ))
        apply_adjustment(sheet, self.get_adjustment(staff.id, f"{year}-{month:02d}"))
        return {
            "staff_id": staff.id,
            "staff_name": staff.name,
            **asdict(sheet),
            "salary": salary_for(staff.base_salary, sheet.standard_days),
            "commission": self.commission(staff, year, month),
        }

    def timesheet(self, year: int, month: int,
                  source: TimesheetSource = TimesheetSource.SCHEDULE) -> List[Dict[str, Any]]:
        """Every active staff member except investors"""
        staff = self.db.query(Staff).filter(
            Staff.is_active.is_(True),
            Staff.role != StaffRole.INVESTOR
        ).order_by(Staff.name).all()
        return [self.timesheet_entry(s, year, month, source) for s in staff]

    # ============== Attendance ==============

    def clock_in(self, staff: Staff, facility_id: int, lat: Optional[float],
                 lng: Optional[float]) -> TimeLog:
        facility = self.db.query(Facility).filter(Facility.id == facility_id).first()
        if not facility:
            raise ValueError("Facility not found")

        status, distance = geofence_status(facility, lat, lng, settings.DEFAULT_GEOFENCE_RADIUS)
        log = TimeLog(
            staff_id=staff.id,
            facility_id=facility.id,
            check_in_time=datetime.now(),
            status=status,
            location_lat=lat,
            location_lng=lng,
            distance=round(distance) if distance is not None else None,
        )
        self.db.add(log)
        self.db.commit()
        self.db.refresh(log)
        logger.info(f"{staff.name} clocked in at {facility.name}: {status.value}")
        return log

    def clock_out(self, staff: Staff) -> TimeLog:
        """Close the latest open time log"""
        log = self.db.query(TimeLog).filter(
            TimeLog.staff_id == staff.id,
            TimeLog.check_out_time.is_(None)
        ).order_by(TimeLog.check_in_time.desc()).first()
        if not log:
            raise ValueError("No open time log")
        log.check_out_time = datetime.now()
        self.db.commit()
        self.db.refresh(log)
        return log

    def get_time_logs(self, staff_id: Optional[int] = None, limit: int = 100) -> List[TimeLog]:
        query = self.db.query(TimeLog)
        if staff_id:
            query = query.filter(TimeLog.staff_id == staff_id)
        return query.order_by(TimeLog.check_in_time.desc()).limit(limit).all()

    # ============== Shift schedules ==============

    def get_schedules(self, year: int, month: int, staff_id: Optional[int] = None) -> List[ShiftSchedule]:
        start = date(year, month, 1)
        end = (start + timedelta(days=32)).replace(day=1)
        query = self.db.query(ShiftSchedule).filter(
            ShiftSchedule.date >= start, ShiftSchedule.date < end
        )
        if staff_id:
            query = query.filter(ShiftSchedule.staff_id == staff_id)
        return query.order_by(ShiftSchedule.date, ShiftSchedule.staff_id).all()

    def upsert_schedule(self, data: ShiftUpsert) -> ShiftSchedule:
        """One schedule row per staff member and day"""
        schedule = self.db.query(ShiftSchedule).filter(
            ShiftSchedule.staff_id == data.staff_id,
            ShiftSchedule.date == data.date
        ).first()
        if schedule:
            schedule.shift_type = data.shift_type
            schedule.note = data.note
        else:
            schedule = ShiftSchedule(**data.model_dump())
            self.db.add(schedule)
        self.db.commit()
        self.db.refresh(schedule)
        return schedule

    def delete_schedule(self, schedule_id: int) -> None:
        schedule = self.db.query(ShiftSchedule).filter(ShiftSchedule.id == schedule_id).first()
        if not schedule:
            raise ValueError("Schedule not found")
        self.db.delete(schedule)
        self.db.commit()


def _month_range(year: int, month: int) -> Tuple[datetime, datetime]:
    start = datetime(year, month, 1)
    return start, (start + timedelta(days=32)).replace(day=1)
