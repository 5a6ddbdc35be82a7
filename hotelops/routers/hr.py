"""
HR routes
Staff accounts, leave, salary advances, fines, payroll QR, timesheets, attendance and shifts
"""
from typing import List, Optional
from datetime import date
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from hotelops.database import get_db
from hotelops.domain.timesheet import TimesheetSource
from hotelops.models.ontology import Staff, StaffRole, LeaveStatus
from hotelops.models.schemas import (
    AdjustmentResponse, AdjustmentUpsert, AdvanceDecision, ClockInRequest, LeaveDecision,
    LeaveRequestCreate, LeaveRequestResponse, SalaryAdvanceCreate, SalaryAdvanceResponse, ShiftResponse,
    ShiftUpsert, StaffCreate, StaffResponse, StaffUpdate, TimeLogResponse, TimesheetEntry,
    ViolationCreate, ViolationResponse
)
from hotelops.services.hr_service import HrService
from hotelops.services.staff_service import StaffService
from hotelops.security.auth import get_current_user, require_admin, require_manager
from hotelops.routers.errors import http_error

router = APIRouter(prefix="/hr", tags=["HR"])


# ============== Staff ==============

@router.get("/staff", response_model=List[StaffResponse])
def list_staff(
    is_active: Optional[bool] = None,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_manager)
):
    return StaffService(db).get_staff_list(is_active=is_active)


@router.post("/staff", response_model=StaffResponse)
def create_staff(
    data: StaffCreate,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_admin)
):
    try:
        return StaffService(db).create_staff(data)
    except ValueError as e:
        raise http_error(e)


@router.put("/staff/{staff_id}", response_model=StaffResponse)
def update_staff(
    staff_id: int,
    data: StaffUpdate,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_admin)
):
    try:
        return StaffService(db).update_staff(staff_id, data)
    except ValueError as e:
        raise http_error(e)


# ============== Leave ==============

@router.get("/leave", response_model=List[LeaveRequestResponse])
def list_leave_requests(
    staff_id: Optional[int] = None,
    leave_status: Optional[LeaveStatus] = Query(None, alias="status"),
    db: Session = Depends(get_db),
    current_user: Staff = Depends(get_current_user)
):
    return HrService(db).get_leave_requests(staff_id, leave_status)


@router.get("/leave/on-leave", response_model=List[LeaveRequestResponse])
def list_staff_on_leave(
    day: Optional[date] = None,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(get_current_user)
):
    return HrService(db).staff_on_leave(day or date.today())


@router.post("/leave", response_model=LeaveRequestResponse)
def create_leave_request(
    data: LeaveRequestCreate,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(get_current_user)
):
    return HrService(db).create_leave_request(data, current_user)


@router.post("/leave/{leave_id}/decide", response_model=LeaveRequestResponse)
def decide_leave_request(
    leave_id: int,
    data: LeaveDecision,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(get_current_user)
):
    try:
        return HrService(db).decide_leave_request(leave_id, data, current_user)
    except PermissionError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    except ValueError as e:
        raise http_error(e)


# ============== Salary advances ==============

@router.get("/advances", response_model=List[SalaryAdvanceResponse])
def list_advances(
    staff_id: Optional[int] = None,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(get_current_user)
):
    return HrService(db).get_advances(staff_id)


@router.post("/advances", response_model=SalaryAdvanceResponse)
def request_advance(
    data: SalaryAdvanceCreate,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(get_current_user)
):
    return HrService(db).request_advance(data, current_user)


@router.post("/advances/{advance_id}/decide", response_model=SalaryAdvanceResponse)
def decide_advance(
    advance_id: int,
    data: AdvanceDecision,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_manager)
):
    """Approval also records the payout as a salary expense"""
    try:
        return HrService(db).decide_advance(advance_id, data.approve, current_user)
    except ValueError as e:
        raise http_error(e)


@router.get("/payroll/{staff_id}")
def payroll(
    staff_id: int,
    gross: Optional[int] = Query(None, ge=0),
    year: int = Query(..., ge=2000),
    month: int = Query(..., ge=1, le=12),
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_manager)
):
    try:
        return HrService(db).payroll(staff_id, gross, year, month)
    except ValueError as e:
        raise http_error(e)


@router.post("/payroll/{staff_id}/close", response_model=List[ViolationResponse])
def close_payroll(
    staff_id: int,
    year: int = Query(..., ge=2000),
    month: int = Query(..., ge=1, le=12),
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_manager)
):
    """Mark the month's pending fines as deducted once the salary is paid"""
    return HrService(db).close_payroll(staff_id, year, month)


# ============== Violations ==============

@router.get("/violations", response_model=List[ViolationResponse])
def list_violations(
    staff_id: Optional[int] = None,
    year: Optional[int] = Query(None, ge=2000),
    month: Optional[int] = Query(None, ge=1, le=12),
    db: Session = Depends(get_db),
    current_user: Staff = Depends(get_current_user)
):
    if current_user.role not in (StaffRole.ADMIN, StaffRole.MANAGER):
        staff_id = current_user.id
    return HrService(db).get_violations(staff_id, year, month)


@router.post("/violations", response_model=ViolationResponse)
def add_violation(
    data: ViolationCreate,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_manager)
):
    try:
        return HrService(db).add_violation(data, current_user)
    except ValueError as e:
        raise http_error(e)


@router.delete("/violations/{violation_id}")
def delete_violation(
    violation_id: int,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_manager)
):
    try:
        HrService(db).delete_violation(violation_id)
        return {"message": "Violation deleted"}
    except ValueError as e:
        raise http_error(e)


# ============== Timesheet ==============

@router.get("/timesheet", response_model=List[TimesheetEntry])
def timesheet(
    year: int = Query(..., ge=2000),
    month: int = Query(..., ge=1, le=12),
    source: TimesheetSource = TimesheetSource.SCHEDULE,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_manager)
):
    """Standard days from the shift schedule or from clock-in logs, adjustments included"""
    return HrService(db).timesheet(year, month, source)


@router.put("/adjustments", response_model=AdjustmentResponse)
def upsert_adjustment(
    data: AdjustmentUpsert,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_manager)
):
    try:
        return HrService(db).upsert_adjustment(data)
    except ValueError as e:
        raise http_error(e)


# ============== Attendance ==============

@router.post("/clock-in", response_model=TimeLogResponse)
def clock_in(
    data: ClockInRequest,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(get_current_user)
):
    """The log is Valid inside the facility's radius, Invalid outside, Pending without GPS"""
    try:
        return HrService(db).clock_in(current_user, data.facility_id, data.latitude, data.longitude)
    except ValueError as e:
        raise http_error(e)


@router.post("/clock-out", response_model=TimeLogResponse)
def clock_out(
    db: Session = Depends(get_db),
    current_user: Staff = Depends(get_current_user)
):
    try:
        return HrService(db).clock_out(current_user)
    except ValueError as e:
        raise http_error(e)


@router.get("/time-logs", response_model=List[TimeLogResponse])
def list_time_logs(
    staff_id: Optional[int] = None,
    limit: int = 100,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_manager)
):
    return HrService(db).get_time_logs(staff_id, limit)


# ============== Shift schedules ==============

@router.get("/schedules", response_model=List[ShiftResponse])
def list_schedules(
    year: int,
    month: int = Query(..., ge=1, le=12),
    staff_id: Optional[int] = None,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(get_current_user)
):
    return HrService(db).get_schedules(year, month, staff_id)


@router.put("/schedules", response_model=ShiftResponse)
def upsert_schedule(
    data: ShiftUpsert,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_manager)
):
    return HrService(db).upsert_schedule(data)


@router.delete("/schedules/{schedule_id}")
def delete_schedule(
    schedule_id: int,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_manager)
):
    try:
        HrService(db).delete_schedule(schedule_id)
        return {"message": "Schedule deleted"}
    except ValueError as e:
        raise http_error(e)
