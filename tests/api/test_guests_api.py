"""
Guest document scanning through the HTTP layer
"""
import json
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from hotelops.main import app
from hotelops.routers.guests import get_ocr_service
from hotelops.services.ocr_service import OcrService


def _ocr_with_answer(content):
    client = MagicMock()
    client.chat.completions.create.return_value = SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))]
    )
    return OcrService(client=client, model="test-model")


@pytest.fixture
def ocr_answer(client):
    """Install an OCR service that returns the given raw model answer"""
    def install(content):
        app.dependency_overrides[get_ocr_service] = lambda: _ocr_with_answer(content)
    yield install
    app.dependency_overrides.pop(get_ocr_service, None)


class TestDocumentScan:

    def test_scan_adds_guest(self, client, staff_headers, ocr_answer):
        ocr_answer(json.dumps({
            "is_vietnamese": False,
            "ho_va_ten": "JOHN SMITH",
            "ngay_sinh": "03/04/1985",
            "gioi_tinh": "M",
            "quoc_tich": "USA",
            "so_ho_chieu": "P1234567",
        }))
        response = client.post("/guests/ocr", json={"image": "aGVsbG8=", "guests": []},
                               headers=staff_headers)
        assert response.status_code == 200
        body = response.json()
        assert body["added"] is True
        assert body["document"]["id_number"] == "P1234567"
        assert [g["full_name"] for g in body["guests"]] == ["JOHN SMITH"]

    def test_unreadable_document_is_422(self, client, staff_headers, ocr_answer):
        ocr_answer("sorry, I cannot read this")
        response = client.post("/guests/ocr", json={"image": "aGVsbG8="}, headers=staff_headers)
        assert response.status_code == 422
        assert "Could not read" in response.json()["detail"]

    def test_one_line_address_is_accepted(self, client, staff_headers, ocr_answer):
        ocr_answer(json.dumps({
            "is_vietnamese": True,
            "ho_va_ten": "NGUYEN VAN A",
            "so_giay_to": 1090000001,
            "dia_chi": "Tổ 1, Tuần Châu, Hạ Long, Quảng Ninh",
        }))
        response = client.post("/guests/ocr", json={"image": "aGVsbG8=", "guests": []},
                               headers=staff_headers)
        assert response.status_code == 200
        document = response.json()["document"]
        assert document["id_number"] == "1090000001"
        assert document["address_detail"] == "Tổ 1, Tuần Châu, Hạ Long, Quảng Ninh"

    def test_list_answer_is_422(self, client, staff_headers, ocr_answer):
        ocr_answer(json.dumps([{"ho_va_ten": "NGUYEN VAN A"}]))
        response = client.post("/guests/ocr", json={"image": "aGVsbG8="}, headers=staff_headers)
        assert response.status_code == 422

    def test_housekeeping_cannot_scan(self, client, cleaner_headers, ocr_answer):
        ocr_answer("{}")
        response = client.post("/guests/ocr", json={"image": "aGVsbG8="}, headers=cleaner_headers)
        assert response.status_code == 403
