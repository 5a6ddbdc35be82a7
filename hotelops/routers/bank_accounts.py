"""
Receiving bank account routes
"""
from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from hotelops.database import get_db
from hotelops.models.ontology import Staff
from hotelops.models.schemas import BankAccountCreate, BankAccountResponse
from hotelops.services.payment_qr import PaymentQrService
from hotelops.security.auth import get_current_user, require_admin
from hotelops.routers.errors import http_error

router = APIRouter(prefix="/bank-accounts", tags=["Bank accounts"])


@router.get("", response_model=List[BankAccountResponse])
def list_accounts(
    db: Session = Depends(get_db),
    current_user: Staff = Depends(get_current_user)
):
    return PaymentQrService(db).get_accounts()


@router.post("", response_model=BankAccountResponse)
def create_account(
    data: BankAccountCreate,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_admin)
):
    """A new default account replaces the previous default"""
    return PaymentQrService(db).create_account(data)


@router.delete("/{account_id}")
def delete_account(
    account_id: int,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_admin)
):
    try:
        PaymentQrService(db).delete_account(account_id)
        return {"message": "Bank account deleted"}
    except ValueError as e:
        raise http_error(e)
