"""
Expense routes
"""
from typing import Optional
from datetime import date
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from hotelops.database import get_db
from hotelops.models.ontology import Staff
from hotelops.models.schemas import ExpenseCreate, ExpenseListResponse, ExpenseResponse, ExpenseUpdate
from hotelops.services.expense_service import ExpenseService
from hotelops.security.auth import require_manager, require_staff
from hotelops.routers.errors import http_error

router = APIRouter(prefix="/expenses", tags=["Expenses"])


@router.get("", response_model=ExpenseListResponse)
def list_expenses(
    mode: Optional[str] = Query(None, description="day | week | month"),
    anchor: Optional[date] = None,
    category: Optional[str] = None,
    search: Optional[str] = None,
    facility_name: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_staff)
):
    service = ExpenseService(db)
    try:
        expenses = service.list_expenses(mode, anchor, category, search, facility_name)
    except ValueError as e:
        raise http_error(e)
    return ExpenseListResponse(items=expenses, total=service.total(expenses))


@router.get("/{expense_id}", response_model=ExpenseResponse)
def get_expense(
    expense_id: int,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_staff)
):
    expense = ExpenseService(db).get_expense(expense_id)
    if not expense:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Expense not found")
    return expense


@router.post("", response_model=ExpenseResponse)
def create_expense(
    data: ExpenseCreate,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_staff)
):
    return ExpenseService(db).create_expense(data, current_user)


@router.put("/{expense_id}", response_model=ExpenseResponse)
def update_expense(
    expense_id: int,
    data: ExpenseUpdate,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_manager)
):
    try:
        return ExpenseService(db).update_expense(expense_id, data)
    except ValueError as e:
        raise http_error(e)


@router.delete("/{expense_id}")
def delete_expense(
    expense_id: int,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_manager)
):
    try:
        ExpenseService(db).delete_expense(expense_id)
        return {"message": "Expense deleted"}
    except ValueError as e:
        raise http_error(e)
