"""
Webhook configuration routes
"""
from dataclasses import asdict
from typing import List, Optional
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from hotelops.database import get_db
from hotelops.models.ontology import Staff, WebhookEventType
from hotelops.models.schemas import (
    WebhookConfigCreate, WebhookConfigResponse, WebhookConfigUpdate, WebhookDeliveryResponse
)
from hotelops.services.webhook_service import WebhookService
from hotelops.security.auth import require_admin
from hotelops.routers.errors import http_error

router = APIRouter(prefix="/webhooks", tags=["Webhooks"])


@router.get("", response_model=List[WebhookConfigResponse])
def list_webhooks(
    event_type: Optional[WebhookEventType] = None,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_admin)
):
    return WebhookService(db).get_configs(event_type=event_type)


@router.post("", response_model=WebhookConfigResponse)
def create_webhook(
    data: WebhookConfigCreate,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_admin)
):
    return WebhookService(db).create_config(data)


@router.put("/{config_id}", response_model=WebhookConfigResponse)
def update_webhook(
    config_id: int,
    data: WebhookConfigUpdate,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_admin)
):
    try:
        return WebhookService(db).update_config(config_id, data)
    except ValueError as e:
        raise http_error(e)


@router.delete("/{config_id}")
def delete_webhook(
    config_id: int,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_admin)
):
    try:
        WebhookService(db).delete_config(config_id)
        return {"message": "Webhook deleted"}
    except ValueError as e:
        raise http_error(e)


@router.post("/{config_id}/test", response_model=WebhookDeliveryResponse)
def test_webhook(
    config_id: int,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_admin)
):
    """Send a sample payload; the delivery result is returned, not raised"""
    try:
        return asdict(WebhookService(db).send_test(config_id))
    except ValueError as e:
        raise http_error(e)
