"""
Guest routes
Document OCR, residence declaration and the declared guest history
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from hotelops.database import get_db
from hotelops.models.ontology import Staff
from hotelops.models.schemas import (
    OcrRequest, OcrScanResponse, ResidenceDeclarationRequest, ResidenceDeclarationResponse
)
from hotelops.services.ocr_service import OcrError, OcrService
from hotelops.services.residence_service import ResidenceService
from hotelops.security.auth import get_current_user, require_staff
from hotelops.routers.errors import http_error

router = APIRouter(prefix="/guests", tags=["Guests"])


def get_ocr_service() -> OcrService:
    return OcrService()


@router.post("/ocr", response_model=OcrScanResponse)
def scan_document(
    data: OcrRequest,
    ocr: OcrService = Depends(get_ocr_service),
    current_user: Staff = Depends(require_staff)
):
    """Read an ID card or passport photo and add the guest to the list"""
    try:
        document, guests, added = ocr.scan_into(data.image, data.guests)
    except OcrError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    return OcrScanResponse(document=document, guests=guests, added=added)


@router.post("/residence/{booking_id}", response_model=ResidenceDeclarationResponse)
def declare_residence(
    booking_id: int,
    data: ResidenceDeclarationRequest,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_staff)
):
    try:
        return ResidenceService(db).declare(booking_id, data, current_user)
    except ValueError as e:
        raise http_error(e)


@router.get("/profiles")
def list_profiles(
    search: Optional[str] = None,
    limit: int = 100,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(get_current_user)
) -> List[dict]:
    profiles = ResidenceService(db).get_profiles(search, limit)
    return [
        {
            "id": p.id,
            "full_name": p.full_name,
            "dob": p.dob,
            "gender": p.gender,
            "nationality": p.nationality,
            "id_card_number": p.id_card_number,
            "card_type": p.card_type,
            "booking_id": p.booking_id,
            "created_at": p.created_at,
        }
        for p in profiles
    ]
