"""
Identity document OCR tests
"""
import json
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from openai import OpenAIError

from hotelops.models.schemas import GuestEntry
from hotelops.services.ocr_service import (
    OcrError, OcrService, merge_guest, normalize_document, normalize_gender, split_data_url
)

VIETNAMESE_CARD = {
    "is_vietnamese": True,
    "ho_va_ten": "NGUYEN VAN A",
    "ngay_sinh": "01/02/1990",
    "gioi_tinh": "Nam",
    "quoc_tich": "VNM",
    "so_giay_to": "001090000001",
    "loai_giay_to": "CCCD",
    "dia_chi": {"tinh_tp": "Quảng Ninh", "quan_huyen": "Hạ Long", "phuong_xa": "Tuần Châu", "chi_tiet": "Tổ 1"},
}

PASSPORT = {
    "is_vietnamese": False,
    "ho_va_ten": "JOHN SMITH",
    "ngay_sinh": "03/04/1985",
    "gioi_tinh": "M",
    "quoc_tich": "USA",
    "so_ho_chieu": "P1234567",
}


def fake_client(content):
    client = MagicMock()
    client.chat.completions.create.return_value = SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))]
    )
    return client


class TestNormalisation:

    def test_split_data_url(self):
        assert split_data_url("data:image/png;base64,AAAA") == ("image/png", "AAAA")
        assert split_data_url("AAAA") == ("image/jpeg", "AAAA")

    def test_gender(self):
        assert normalize_gender("m") == "Nam"
        assert normalize_gender("Female") == "Nữ"
        assert normalize_gender("Nữ") == "Nữ"
        assert normalize_gender(None) == ""

    def test_vietnamese_card(self):
        document = normalize_document(VIETNAMESE_CARD)
        assert document.nationality == "VNM"
        assert document.id_number == "001090000001"
        assert document.ward == "Tuần Châu"

    def test_passport(self):
        document = normalize_document(PASSPORT)
        assert document.is_vietnamese is False
        assert document.document_type == "Passport"
        assert document.gender == "Nam"
        assert document.id_number == "P1234567"

    def test_one_line_address_goes_to_detail(self):
        card = dict(VIETNAMESE_CARD, dia_chi="Tổ 1, Tuần Châu, Hạ Long")
        document = normalize_document(card)
        assert document.address_detail == "Tổ 1, Tuần Châu, Hạ Long"
        assert document.province == ""
        guests, _ = merge_guest([], document)
        assert guests[0].address == "Tổ 1, Tuần Châu, Hạ Long"

    def test_numeric_fields_become_text(self):
        card = dict(VIETNAMESE_CARD, so_giay_to=1090000001, ngay_sinh=1990, ho_va_ten=None)
        document = normalize_document(card)
        assert document.id_number == "1090000001"
        assert document.dob == "1990"
        assert document.full_name == ""

    def test_structured_name_is_dropped(self):
        document = normalize_document(dict(PASSPORT, ho_va_ten=["JOHN", "SMITH"], gioi_tinh=1))
        assert document.full_name == ""
        assert document.gender == "1"


class TestMergeGuest:

    def test_new_guest_is_appended(self):
        guests, added = merge_guest([], normalize_document(VIETNAMESE_CARD))

        assert added is True
        assert guests[0].full_name == "NGUYEN VAN A"
        assert guests[0].address == "Tổ 1, Tuần Châu, Hạ Long, Quảng Ninh"

    def test_known_id_number_is_not_duplicated(self):
        existing = [GuestEntry(full_name="NGUYEN VAN A", id_card="001090000001")]
        guests, added = merge_guest(existing, normalize_document(VIETNAMESE_CARD))
        assert added is False
        assert len(guests) == 1


class TestScan:

    def test_scan_strips_code_fences(self):
        client = fake_client("```json\n" + json.dumps(PASSPORT) + "\n```")
        service = OcrService(client=client, model="test-model")

        document = service.scan("data:image/png;base64,AAAA")

        assert document.full_name == "JOHN SMITH"
        kwargs = client.chat.completions.create.call_args[1]
        assert kwargs["model"] == "test-model"
        image_part = kwargs["messages"][0]["content"][0]
        assert image_part["image_url"]["url"] == "data:image/png;base64,AAAA"

    def test_unreadable_answer(self):
        service = OcrService(client=fake_client("sorry, I cannot read this"))
        with pytest.raises(OcrError):
            service.scan("AAAA")

    def test_odd_shapes_still_scan(self):
        card = dict(VIETNAMESE_CARD, dia_chi="Hạ Long", so_giay_to=1090000001)
        document = OcrService(client=fake_client(json.dumps(card))).scan("AAAA")
        assert document.id_number == "1090000001"
        assert document.address_detail == "Hạ Long"

    def test_non_object_answer(self):
        service = OcrService(client=fake_client(json.dumps(["NGUYEN VAN A"])))
        with pytest.raises(OcrError):
            service.scan("AAAA")

    def test_provider_error(self):
        client = MagicMock()
        client.chat.completions.create.side_effect = OpenAIError("quota exceeded")
        with pytest.raises(OcrError, match="quota exceeded"):
            OcrService(client=client).scan("AAAA")

    def test_scan_into(self):
        service = OcrService(client=fake_client(json.dumps(VIETNAMESE_CARD)))
        document, guests, added = service.scan_into("AAAA", [])
        assert added and len(guests) == 1
