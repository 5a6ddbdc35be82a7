"""
Expense service
Operating expenses with day / week / month views
"""
from typing import List, Optional, Tuple
from datetime import date, datetime, time, timedelta
import logging
from sqlalchemy import or_
from sqlalchemy.orm import Session
from hotelops.models.ontology import Expense, Staff
from hotelops.models.schemas import ExpenseCreate, ExpenseUpdate

logger = logging.getLogger(__name__)


def period_bounds(mode: str, anchor: date) -> Tuple[datetime, datetime]:
    """[start, end) of the day / Monday-start week / month containing ``anchor``"""
    if mode == "day":
        start = anchor
        end = anchor + timedelta(days=1)
    elif mode == "week":
        start = anchor - timedelta(days=anchor.weekday())
        end = start + timedelta(days=7)
    elif mode == "month":
        start = anchor.replace(day=1)
        end = (start + timedelta(days=32)).replace(day=1)
    else:
        raise ValueError(f"Unknown view mode: {mode}")
    return datetime.combine(start, time.min), datetime.combine(end, time.min)


class ExpenseService:
    """Expense service"""

    def __init__(self, db: Session):
        self.db = db

    def get_expense(self, expense_id: int) -> Optional[Expense]:
        return self.db.query(Expense).filter(Expense.id == expense_id).first()

    def list_expenses(self, mode: Optional[str] = None, anchor: Optional[date] = None,
                      category: Optional[str] = None, search: Optional[str] = None,
                      facility_name: Optional[str] = None) -> List[Expense]:
        """Newest first; ``mode`` limits to the period containing ``anchor`` (default today)"""
        query = self.db.query(Expense)
        if mode:
            start, end = period_bounds(mode, anchor or date.today())
            query = query.filter(Expense.expense_date >= start, Expense.expense_date < end)
        if category:
            query = query.filter(Expense.category == category)
        if facility_name:
            query = query.filter(Expense.facility_name == facility_name)
        if search:
            term = f"%{search.strip()}%"
            query = query.filter(or_(Expense.content.ilike(term), Expense.note.ilike(term)))
        return query.order_by(Expense.expense_date.desc(), Expense.id.desc()).all()

    @staticmethod
    def total(expenses: List[Expense]) -> int:
        return sum(e.amount or 0 for e in expenses)

    def create_expense(self, data: ExpenseCreate, operator: Optional[Staff] = None) -> Expense:
        expense = Expense(**data.model_dump(), created_by=operator.id if operator else None)
        self.db.add(expense)
        self.db.commit()
        self.db.refresh(expense)
        logger.info(f"Expense {expense.id} recorded: {expense.category} {expense.amount:,}")
        return expense

    def update_expense(self, expense_id: int, data: ExpenseUpdate) -> Expense:
        expense = self.get_expense(expense_id)
        if not expense:
            raise ValueError("Expense not found")
        for key, value in data.model_dump(exclude_unset=True).items():
            setattr(expense, key, value)
        self.db.commit()
        self.db.refresh(expense)
        return expense

    def delete_expense(self, expense_id: int) -> None:
        expense = self.get_expense(expense_id)
        if not expense:
            raise ValueError("Expense not found")
        self.db.delete(expense)
        self.db.commit()
