"""
Booking sub-ledger parsing tests
"""
import logging
from types import SimpleNamespace

from hotelops.models.ontology import PaymentMethod
from hotelops.models.schemas import PaymentEntry, ServiceUsage
from hotelops.services.ledger import (
    dump_ledger, load_guests, load_payments, load_services, parse_ledger, recalculate_totals
)


def booking(**fields):
    defaults = dict(id=1, payments_json="[]", services_json="[]", lending_json="[]", guests_json="[]")
    defaults.update(fields)
    return SimpleNamespace(**defaults)


class TestParseLedger:

    def test_legacy_keys_are_accepted(self):
        raw = '[{"ngayThanhToan": "2026-03-01T10:00:00", "soTien": 200000, "ghiChu": "deposit"}]'

        payment, = load_payments(booking(payments_json=raw))

        assert payment.amount == 200000
        assert payment.note == "deposit"
        assert payment.method == PaymentMethod.CASH

    def test_camel_case_service_id(self):
        raw = '[{"serviceId": 3, "name": "Coke", "price": 20000, "quantity": 2, "total": 40000}]'
        service, = load_services(booking(services_json=raw))
        assert service.service_id == 3

    def test_guest_aliases(self):
        raw = '[{"fullName": "Le Van C", "idCard": "0123"}]'
        guest, = load_guests(booking(guests_json=raw))
        assert (guest.full_name, guest.id_card) == ("Le Van C", "0123")

    def test_bad_json_falls_back_to_empty(self, caplog):
        with caplog.at_level(logging.WARNING):
            assert load_payments(booking(payments_json="{not json")) == []
        assert "Unreadable payments_json" in caplog.text

    def test_non_list_falls_back_to_empty(self):
        assert load_payments(booking(payments_json='{"amount": 1}')) == []

    def test_invalid_entry_falls_back_to_empty(self):
        assert load_services(booking(services_json='[{"name": "no id"}]')) == []

    def test_empty_values(self):
        assert parse_ledger(None, PaymentEntry) == []
        assert parse_ledger("", PaymentEntry) == []

    def test_dump_and_load(self):
        raw = dump_ledger([ServiceUsage(service_id=1, name="Nước suối", price=15000, quantity=2, total=30000)])
        assert "Nước suối" in raw
        assert load_services(booking(services_json=raw))[0].total == 30000


class TestRecalculateTotals:

    def test_totals_follow_ledgers(self):
        row = booking(
            price=500000, extra_fee=20000, total_revenue=0, remaining_amount=0,
            services_json='[{"service_id": 1, "name": "Coke", "price": 15000, "quantity": 2, "total": 30000}]',
            payments_json='[{"amount": 100000}]',
        )

        totals = recalculate_totals(row)

        assert totals.total_revenue == row.total_revenue == 550000
        assert row.remaining_amount == 450000

    def test_corrupt_ledgers_count_as_empty(self):
        row = booking(price=300000, extra_fee=None, services_json="{oops", payments_json="[")
        recalculate_totals(row)
        assert (row.total_revenue, row.remaining_amount) == (300000, 300000)
