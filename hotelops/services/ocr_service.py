"""
Identity document OCR
Sends a photo of an ID card or passport to an OpenAI-compatible vision model
and normalises the JSON it returns.
"""
import json
import logging
import re
import uuid
from typing import Any, Dict, List, Optional, Tuple

from openai import OpenAI, OpenAIError
from pydantic import ValidationError

from hotelops.config import settings
from hotelops.models.schemas import GuestEntry, IdentityDocument

logger = logging.getLogger(__name__)

ADULT_GUEST_TYPE = "Người lớn"

OCR_PROMPT = """Role: You are an expert OCR and Data Extraction AI specialized in Identity Documents (ID Cards, Passports).

Task: Extract information from the provided image and format it into a specific JSON structure based on the Nationality.

Rules:
1. Detect the Nationality (ISO 3-letter code, e.g., VNM, USA, KOR, CHN).
2. OUTPUT ONLY RAW JSON. No Markdown, no code blocks, no explanations.

LOGIC BRANCHING:

--- CASE 1: IF NATIONALITY IS VIETNAM ("VNM") ---
Return JSON with this structure:
{
  "is_vietnamese": true,
  "ho_va_ten": "FULL NAME IN UPPERCASE",
  "ngay_sinh": "dd/mm/yyyy",
  "gioi_tinh": "Nam" or "Nữ",
  "quoc_tich": "VNM",
  "so_giay_to": "ID Number",
  "loai_giay_to": "CCCD" (default) or "Passport" or "Giấy tờ khác",
  "ten_giay_to": "", // LEAVE EMPTY if loai_giay_to is CCCD or Passport. Only fill if it is "Giấy tờ khác".
  "dia_chi": {
    "tinh_tp": "Province/City Name",
    "quan_huyen": "District Name",
    "phuong_xa": "Ward/Commune Name",
    "chi_tiet": "Street, House No, Village (exclude admin units)"
  }
}

--- CASE 2: IF NATIONALITY IS NOT VIETNAM (FOREIGNER) ---
Return JSON with this structure:
{
  "is_vietnamese": false,
  "ho_va_ten": "FULL NAME IN UPPERCASE",
  "ngay_sinh": "dd/mm/yyyy",
  "gioi_tinh": "M" (if Male) or "F" (if Female), // Standardize to M/F
  "quoc_tich": "ISO 3-Letter Code (e.g. USA, GBR, AUS)",
  "so_ho_chieu": "Passport Number"
}

--- ERROR HANDLING ---
If a field is not visible, return empty string ""."""


class OcrError(Exception):
    """The document could not be read"""


def split_data_url(image: str) -> Tuple[str, str]:
    """Return (mime_type, base64 payload); bare base64 is treated as JPEG"""
    if image.startswith("data:") and "," in image:
        header, data = image.split(",", 1)
        mime_type = header[5:].split(";")[0] or "image/jpeg"
        return mime_type, data
    return "image/jpeg", image


def strip_code_fences(text: str) -> str:
    return re.sub(r"```(?:json)?", "", text or "").strip()


def _text(value: Any) -> str:
    """Scalar field as text; missing or structured values become empty"""
    if value is None or isinstance(value, (dict, list)):
        return ""
    return str(value).strip()


def normalize_gender(value: Any) -> str:
    value = _text(value)
    if not value:
        return ""
    upper = value.upper()
    if upper in ("M", "MALE"):
        return "Nam"
    if upper in ("F", "FEMALE"):
        return "Nữ"
    return value


def normalize_document(data: Dict[str, Any]) -> IdentityDocument:
    """Map the model's raw JSON onto an IdentityDocument"""
    if data.get("is_vietnamese"):
        address = data.get("dia_chi")
        if not isinstance(address, dict):
            # a one-line address goes to the detail field
            address = {"chi_tiet": address}
        return IdentityDocument(
            is_vietnamese=True,
            full_name=_text(data.get("ho_va_ten")),
            dob=_text(data.get("ngay_sinh")),
            gender=_text(data.get("gioi_tinh")),
            nationality="VNM",
            id_number=_text(data.get("so_giay_to")),
            document_type=_text(data.get("loai_giay_to")) or "CCCD",
            province=_text(address.get("tinh_tp")),
            district=_text(address.get("quan_huyen")),
            ward=_text(address.get("phuong_xa")),
            address_detail=_text(address.get("chi_tiet")),
        )
    return IdentityDocument(
        is_vietnamese=False,
        full_name=_text(data.get("ho_va_ten")),
        dob=_text(data.get("ngay_sinh")),
        gender=normalize_gender(data.get("gioi_tinh")),
        nationality=_text(data.get("quoc_tich")),
        id_number=_text(data.get("so_ho_chieu")),
        document_type="Passport",
    )


def guest_from_document(document: IdentityDocument) -> GuestEntry:
    if document.is_vietnamese:
        parts = (document.address_detail, document.ward, document.district, document.province)
        address = ", ".join(p for p in parts if p)
    else:
        address = document.nationality
    return GuestEntry(
        id=str(uuid.uuid4()),
        full_name=document.full_name,
        dob=document.dob,
        id_card=document.id_number,
        gender=document.gender,
        type=ADULT_GUEST_TYPE,
        address=address,
    )


def merge_guest(guests: List[GuestEntry], document: IdentityDocument) -> Tuple[List[GuestEntry], bool]:
    """Append the scanned guest unless the id number is already listed"""
    if any(g.id_card == document.id_number for g in guests):
        return list(guests), False
    return list(guests) + [guest_from_document(document)], True


class OcrService:
    """
    Identity document reader

    The client is injectable for tests; by default an OpenAI client pointed at
    the configured OpenAI-compatible endpoint is built on first use.
    """

    def __init__(self, client=None, model: Optional[str] = None):
        self._client = client
        self.model = model or settings.OCR_MODEL

    @property
    def client(self):
        if self._client is None:
            if not settings.OCR_API_KEY:
                raise OcrError("OCR API key is not configured")
            self._client = OpenAI(
                api_key=settings.OCR_API_KEY,
                base_url=settings.OCR_BASE_URL,
                timeout=settings.OCR_TIMEOUT
            )
        return self._client

    def _complete(self, image: str) -> str:
        mime_type, data = split_data_url(image)
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[{
                    "role": "user",
                    "content": [
                        {"type": "image_url", "image_url": {"url": f"data:{mime_type};base64,{data}"}},
                        {"type": "text", "text": OCR_PROMPT},
                    ],
                }],
                temperature=0,
                response_format={"type": "json_object"}
            )
        except OpenAIError as e:
            logger.error(f"OCR request failed: {e}")
            raise OcrError(f"OCR request failed: {e}") from e
        return response.choices[0].message.content or "{}"

    def scan(self, image: str) -> IdentityDocument:
        """Read one document image (data URL or bare base64)"""
        text = strip_code_fences(self._complete(image))
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            logger.warning(f"OCR returned non-JSON content: {text[:200]}")
            raise OcrError("Could not read the document, try another photo") from e
        if not isinstance(data, dict):
            raise OcrError("Could not read the document, try another photo")
        try:
            return normalize_document(data)
        except (AttributeError, ValidationError) as e:
            logger.warning(f"OCR returned an unexpected document shape: {e}")
            raise OcrError("Could not read the document, try another photo") from e

    def scan_into(self, image: str, guests: List[GuestEntry]) -> Tuple[IdentityDocument, List[GuestEntry], bool]:
        document = self.scan(image)
        merged, added = merge_guest(guests, document)
        return document, merged, added
