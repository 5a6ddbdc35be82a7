"""
Monthly timesheet and pay estimate

Standard days come from one of two sources:
- the shift schedule: morning and afternoon shifts count 1 day, night shifts 1.2
- clock-in logs (Valid or Pending): a check-in from 14:00 opens a night shift,
  earlier ones a day shift; arriving more than 15 minutes after the shift start
  (06:00 day, 18:00 night) counts as late, measured from the shift start

Manual adjustments are added on top. Pay = base salary / 26 x standard days.
"""
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Iterable, Optional

from hotelops.models.ontology import ShiftType, TimeLogStatus

WORKING_DAYS_PER_MONTH = 26
NIGHT_SHIFT_WEIGHT = 1.2
NIGHT_CHECK_IN_HOUR = 14
DAY_SHIFT_START_HOUR = 6
NIGHT_SHIFT_START_HOUR = 18
LATE_GRACE_MINUTES = 15

COUNTED_LOG_STATUSES = (TimeLogStatus.VALID, TimeLogStatus.PENDING)


class TimesheetSource(str, Enum):
    SCHEDULE = "schedule"
    TIME_LOG = "time_log"


@dataclass
class Timesheet:
    standard_days: float = 0
    day_shifts: int = 0
    night_shifts: int = 0
    late_count: int = 0
    late_minutes: int = 0
    ot_hours: float = 0
    leave_days: float = 0


def from_schedules(shift_types: Iterable[ShiftType]) -> Timesheet:
    sheet = Timesheet()
    for shift_type in shift_types:
        if shift_type in (ShiftType.MORNING, ShiftType.AFTERNOON):
            sheet.day_shifts += 1
            sheet.standard_days += 1
        elif shift_type == ShiftType.NIGHT:
            sheet.night_shifts += 1
            sheet.standard_days += NIGHT_SHIFT_WEIGHT
    sheet.standard_days = round(sheet.standard_days, 2)
    return sheet


def minutes_late(check_in: datetime) -> int:
    """Minutes after the shift start, 0 inside the grace period"""
    start_hour = NIGHT_SHIFT_START_HOUR if check_in.hour >= NIGHT_CHECK_IN_HOUR else DAY_SHIFT_START_HOUR
    late = (check_in.hour - start_hour) * 60 + check_in.minute
    return late if late > LATE_GRACE_MINUTES else 0


def from_time_logs(logs: Iterable) -> Timesheet:
    """Logs need ``check_in_time`` and ``status``"""
    sheet = Timesheet()
    for log in logs:
        if log.status not in COUNTED_LOG_STATUSES:
            continue
        if log.check_in_time.hour >= NIGHT_CHECK_IN_HOUR:
            sheet.night_shifts += 1
            sheet.standard_days += NIGHT_SHIFT_WEIGHT
        else:
            sheet.day_shifts += 1
            sheet.standard_days += 1
        late = minutes_late(log.check_in_time)
        if late:
            sheet.late_count += 1
            sheet.late_minutes += late
    sheet.standard_days = round(sheet.standard_days, 2)
    return sheet


def apply_adjustment(sheet: Timesheet, adjustment: Optional[object]) -> Timesheet:
    if adjustment is None:
        return sheet
    sheet.standard_days = round(sheet.standard_days + (adjustment.standard_days_adj or 0), 2)
    sheet.ot_hours += adjustment.ot_hours_adj or 0
    sheet.leave_days += adjustment.leave_days_adj or 0
    return sheet


def salary_for(base_salary: int, standard_days: float) -> int:
    return round((base_salary or 0) / WORKING_DAYS_PER_MONTH * standard_days)


def commission_for(revenue: int, rate: float) -> int:
    """``rate`` is a percentage, e.g. 5 for 5 %"""
    return round((revenue or 0) * (rate or 0) / 100)
