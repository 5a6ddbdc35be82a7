"""
VietQR payment images
The QR itself is rendered by the VietQR image service; we only build its URL.
"""
import logging
import re
from typing import List, Optional
from urllib.parse import urlencode

from sqlalchemy.orm import Session

from hotelops.config import settings
from hotelops.domain.financials import sum_payments
from hotelops.models.ontology import BankAccount, Booking, Staff
from hotelops.models.schemas import BankAccountCreate
from hotelops.services.ledger import load_payments, load_services

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATE = "print"
PAYROLL_TEMPLATE = "compact"


def room_payment_description(room_code: str) -> str:
    return "TT PHONG " + re.sub(r"\s+", "", room_code or "")


def build_vietqr_url(bank_id: str, account_no: str, account_name: str, amount: int,
                     description: str, template: Optional[str] = None) -> str:
    query = urlencode({"amount": int(amount), "addInfo": description, "accountName": account_name})
    return f"{settings.VIETQR_BASE_URL}/{bank_id}-{account_no}-{template or DEFAULT_TEMPLATE}.png?{query}"


def build_payroll_qr_url(staff: Staff, amount: int, content: str) -> Optional[str]:
    """Salary transfer QR to a staff member's own account; None without bank details"""
    if not (staff.bank_id and staff.bank_account_no and staff.bank_account_name):
        return None
    return build_vietqr_url(staff.bank_id, staff.bank_account_no, staff.bank_account_name,
                            round(amount), content, PAYROLL_TEMPLATE)


class PaymentQrService:
    """Receiving accounts and bill previews"""

    def __init__(self, db: Session):
        self.db = db

    def get_accounts(self) -> List[BankAccount]:
        return self.db.query(BankAccount).order_by(BankAccount.id).all()

    def get_receiving_account(self) -> Optional[BankAccount]:
        """The default account, else the first one"""
        account = self.db.query(BankAccount).filter(BankAccount.is_default == True).first()  # noqa: E712
        if account:
            return account
        return self.db.query(BankAccount).order_by(BankAccount.id).first()

    def create_account(self, data: BankAccountCreate) -> BankAccount:
        if data.is_default:
            self.db.query(BankAccount).update({BankAccount.is_default: False})
        account = BankAccount(**data.model_dump())
        self.db.add(account)
        self.db.commit()
        self.db.refresh(account)
        return account

    def delete_account(self, account_id: int) -> None:
        account = self.db.query(BankAccount).filter(BankAccount.id == account_id).first()
        if not account:
            raise ValueError("Bank account not found")
        self.db.delete(account)
        self.db.commit()

    def bill_preview(self, booking_id: int) -> dict:
        """Bill totals plus a QR for the open balance"""
        booking = self.db.query(Booking).filter(Booking.id == booking_id).first()
        if not booking:
            raise ValueError("Booking not found")

        services = load_services(booking)
        remaining = booking.remaining_amount or 0
        qr_url = None
        account = self.get_receiving_account() if remaining > 0 else None
        if account:
            qr_url = build_vietqr_url(account.bank_id, account.account_no, account.account_name,
                                      remaining, room_payment_description(booking.room_code),
                                      account.template)
        elif remaining > 0:
            logger.info(f"No bank account configured, bill for booking {booking.id} has no QR")

        return {
            "booking_id": booking.id,
            "room_code": booking.room_code,
            "customer_name": booking.customer_name,
            "room_charge": booking.price or 0,
            "extra_fee": booking.extra_fee or 0,
            "services": services,
            "total_revenue": booking.total_revenue or 0,
            "total_paid": sum_payments(load_payments(booking)),
            "remaining": remaining,
            "qr_url": qr_url,
        }
