"""
Residence declaration
Builds the police registration record for a booking's representative guest,
sends it to the residence_declaration webhook and keeps a guest history.
"""
import json
import logging
from dataclasses import asdict
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from hotelops.models.ontology import Booking, GuestProfile, Staff, WebhookEventType
from hotelops.models.schemas import GuestEntry, IdentityDocument, ResidenceDeclarationRequest
from hotelops.services.ledger import dump_ledger, load_guests
from hotelops.services.webhook_service import WebhookService

logger = logging.getLogger(__name__)

VIETNAM_SHEET = "VIETNAM_GUEST"
FOREIGN_SHEET = "FOREIGN_GUEST"
VIETNAM_NAMES = ("VNM", "Việt Nam")

DOCUMENT_TYPE_LABELS = {
    "CCCD": "Căn cước công dân",
    "Passport": "Hộ chiếu",
    "Khác": "Giấy tờ khác",
}


def is_vietnamese(document: IdentityDocument) -> bool:
    return document.nationality in VIETNAM_NAMES


def build_payload(document: IdentityDocument, rooms: List[str],
                  check_in: datetime, check_out: datetime) -> Dict[str, Any]:
    """Webhook body for one declaration: {sheet_target, data}"""
    room_label = ", ".join(rooms)
    if is_vietnamese(document):
        return {
            "sheet_target": VIETNAM_SHEET,
            "data": {
                "stt": "AUTO",
                "ho_va_ten": document.full_name.upper(),
                "ngay_sinh": document.dob,
                "gioi_tinh": document.gender,
                "quoc_tich": document.nationality,
                "so_giay_to": document.id_number,
                "loai_giay_to": DOCUMENT_TYPE_LABELS.get(document.document_type, document.document_type),
                "ten_giay_to": "Giấy tờ khác" if document.document_type == "Khác" else "",
                "so_dien_thoai": document.phone,
                "loai_cu_tru": document.residence_type,
                "dia_chi_thuong_tru": {
                    "tinh_tp": document.province,
                    "quan_huyen": document.district,
                    "phuong_xa": document.ward,
                    "chi_tiet": document.address_detail,
                },
                "thoi_gian_luu_tru": {
                    "tu_ngay": check_in.strftime("%d/%m/%Y %H:%M:%S"),
                    "den_ngay": check_out.strftime("%d/%m/%Y %H:%M:%S"),
                },
                "ly_do": document.reason,
                "phong": room_label,
            },
        }
    return {
        "sheet_target": FOREIGN_SHEET,
        "data": {
            "stt": "AUTO",
            "ho_va_ten": document.full_name.upper(),
            "ngay_sinh": document.dob,
            "dung_den": "D",
            "gioi_tinh": document.gender,
            "quoc_tich": document.nationality,
            "so_ho_chieu": document.id_number,
            "ten_phong": room_label,
            "ngay_den": check_in.strftime("%d/%m/%Y"),
            "ngay_di_du_kien": check_out.strftime("%d/%m/%Y"),
            "ngay_tra_phong": "",
            "ghi_chu": "",
        },
    }


class ResidenceService:
    """Residence declaration service"""

    def __init__(self, db: Session, webhook_service: WebhookService = None):
        self.db = db
        self.webhooks = webhook_service or WebhookService(db)

    def get_profiles(self, search: Optional[str] = None, limit: int = 100) -> List[GuestProfile]:
        query = self.db.query(GuestProfile)
        if search:
            term = f"%{search.strip()}%"
            query = query.filter(
                (GuestProfile.full_name.ilike(term)) | (GuestProfile.id_card_number.ilike(term))
            )
        return query.order_by(GuestProfile.created_at.desc(), GuestProfile.id.desc()).limit(limit).all()

    def declare(self, booking_id: int, data: ResidenceDeclarationRequest,
                operator: Optional[Staff] = None) -> Dict[str, Any]:
        """
        Declare a booking's guests
        1. send the representative's record to the residence_declaration webhook
        2. store one guest profile per listed guest with an id number
        3. mark the booking declared and save its guest list
        """
        booking = self.db.query(Booking).filter(Booking.id == booking_id).first()
        if not booking:
            raise ValueError("Booking not found")
        document = data.document
        if not document.full_name or not document.id_number:
            raise ValueError("Representative name and document number are required")

        guests: List[GuestEntry] = data.guests or load_guests(booking)
        rooms = data.rooms or [booking.room_code]
        payload = build_payload(document, rooms, booking.check_in, booking.check_out)
        deliveries = self.webhooks.trigger(WebhookEventType.RESIDENCE_DECLARATION, payload)
        if not deliveries:
            logger.info(f"No residence_declaration webhook configured; booking {booking.id} declared locally")

        vietnamese = is_vietnamese(document)
        saved = 0
        try:
            for guest in guests:
                if not guest.id_card:
                    continue
                self.db.add(GuestProfile(
                    full_name=guest.full_name.upper(),
                    dob=guest.dob or "",
                    gender=guest.gender or "",
                    nationality="Việt Nam" if vietnamese else document.nationality,
                    id_card_number=guest.id_card,
                    card_type="CCCD" if vietnamese else "Passport",
                    address=guest.address or "",
                    phone="",
                    booking_id=booking.id,
                    staff_id=operator.id if operator else None,
                    raw_data=json.dumps(document.model_dump(), ensure_ascii=False),
                ))
                saved += 1
            booking.is_declared = True
            booking.guests_json = dump_ledger(guests)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        return {
            "sheet_target": payload["sheet_target"],
            "payload": payload,
            "profiles_saved": saved,
            "deliveries": [asdict(d) for d in deliveries],
        }
