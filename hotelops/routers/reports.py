"""
Report routes
"""
from dataclasses import asdict
from typing import List, Optional
from datetime import date
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from hotelops.database import get_db
from hotelops.models.ontology import Staff
from hotelops.models.schemas import DailyReport, FacilityRoomMap, RoomStatsResponse
from hotelops.services.report_service import ReportService
from hotelops.security.auth import get_current_user, require_manager

router = APIRouter(prefix="/reports", tags=["Reports"])


@router.get("/room-map", response_model=List[FacilityRoomMap])
def room_map(
    view_date: Optional[date] = None,
    facility_name: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(get_current_user)
):
    """Live view for today, forecast for any other date"""
    return ReportService(db).room_map(view_date, facility_name)


@router.get("/room-stats", response_model=RoomStatsResponse)
def room_stats(
    view_date: Optional[date] = None,
    facility_name: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(get_current_user)
):
    return asdict(ReportService(db).room_stats(view_date, facility_name))


@router.get("/daily", response_model=DailyReport)
def daily_report(
    day: Optional[date] = None,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_manager)
):
    return ReportService(db).daily_report(day)


@router.post("/daily/send")
def send_daily_report(
    day: Optional[date] = None,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_manager)
):
    """Post the daily report to the general notification channel"""
    report, deliveries = ReportService(db).send_daily_report(day)
    return {"report": DailyReport(**report), "deliveries": [asdict(d) for d in deliveries]}
