"""
Payment QR tests
"""
from types import SimpleNamespace
from urllib.parse import parse_qs, urlparse

import pytest

from hotelops.models.schemas import BankAccountCreate, PaymentCreate
from hotelops.services.booking_service import BookingService
from hotelops.services.payment_qr import (
    PaymentQrService, build_payroll_qr_url, build_vietqr_url, room_payment_description
)


@pytest.fixture
def service(db_session):
    return PaymentQrService(db_session)


def test_room_payment_description():
    assert room_payment_description("A 1") == "TT PHONG A1"


def test_vietqr_url():
    url = build_vietqr_url("VCB", "0011", "HOTEL CO", 350000, "TT PHONG 101")

    parsed = urlparse(url)
    assert parsed.path.endswith("/VCB-0011-print.png")
    assert parse_qs(parsed.query) == {"amount": ["350000"], "addInfo": ["TT PHONG 101"],
                                      "accountName": ["HOTEL CO"]}


def test_payroll_qr_needs_full_bank_details():
    staff = SimpleNamespace(bank_id="VCB", bank_account_no="0011", bank_account_name=None)
    assert build_payroll_qr_url(staff, 1000, "LUONG") is None

    staff.bank_account_name = "NGUYEN MINH"
    assert "-compact.png" in build_payroll_qr_url(staff, 1000.4, "LUONG")


class TestAccounts:

    def test_new_default_replaces_old(self, service):
        first = service.create_account(BankAccountCreate(bank_id="VCB", account_no="1", account_name="A",
                                                         is_default=True))
        second = service.create_account(BankAccountCreate(bank_id="TCB", account_no="2", account_name="B",
                                                          is_default=True))

        assert service.get_receiving_account().id == second.id
        assert [a.is_default for a in service.get_accounts()] == [False, True]
        assert first.id != second.id

    def test_first_account_without_default(self, service):
        first = service.create_account(BankAccountCreate(bank_id="VCB", account_no="1", account_name="A"))
        service.create_account(BankAccountCreate(bank_id="TCB", account_no="2", account_name="B"))
        assert service.get_receiving_account().id == first.id

    def test_delete_unknown(self, service):
        with pytest.raises(ValueError, match="not found"):
            service.delete_account(1)


class TestBillPreview:

    def test_open_balance_gets_a_qr(self, service, db_session, confirmed_booking):
        service.create_account(BankAccountCreate(bank_id="VCB", account_no="1", account_name="HOTEL"))
        BookingService(db_session).add_payment(confirmed_booking.id, PaymentCreate(amount=400000))

        bill = service.bill_preview(confirmed_booking.id)

        assert bill["total_paid"] == 400000
        assert bill["remaining"] == 600000
        assert "amount=600000" in bill["qr_url"]
        assert "TT+PHONG+101" in bill["qr_url"]

    def test_settled_bill_has_no_qr(self, service, db_session, confirmed_booking):
        service.create_account(BankAccountCreate(bank_id="VCB", account_no="1", account_name="HOTEL"))
        BookingService(db_session).add_payment(confirmed_booking.id, PaymentCreate(amount=1000000))

        assert service.bill_preview(confirmed_booking.id)["qr_url"] is None

    def test_no_account_no_qr(self, service, confirmed_booking):
        assert service.bill_preview(confirmed_booking.id)["qr_url"] is None
