"""
Outbound webhooks
Best-effort JSON POST to every active target registered for an event type.
A failing target is logged and reported; it never fails the caller.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

import httpx
from sqlalchemy.orm import Session

from hotelops.config import settings
from hotelops.models.ontology import WebhookConfig, WebhookEventType
from hotelops.models.schemas import WebhookConfigCreate, WebhookConfigUpdate

logger = logging.getLogger(__name__)


@dataclass
class WebhookDelivery:
    url: str
    success: bool
    status_code: Optional[int] = None
    error: Optional[str] = None


class WebhookService:
    """Webhook targets and dispatch"""

    def __init__(self, db: Session, timeout: Optional[float] = None):
        self.db = db
        self.timeout = timeout if timeout is not None else settings.WEBHOOK_TIMEOUT
        self.headers = {"Content-Type": "application/json"}

    # ---------- configuration ----------

    def get_configs(self, event_type: Optional[WebhookEventType] = None,
                    active_only: bool = False) -> List[WebhookConfig]:
        query = self.db.query(WebhookConfig)
        if event_type:
            query = query.filter(WebhookConfig.event_type == event_type)
        if active_only:
            query = query.filter(WebhookConfig.is_active == True)  # noqa: E712
        return query.order_by(WebhookConfig.id).all()

    def get_config(self, config_id: int) -> Optional[WebhookConfig]:
        return self.db.query(WebhookConfig).filter(WebhookConfig.id == config_id).first()

    def create_config(self, data: WebhookConfigCreate) -> WebhookConfig:
        config = WebhookConfig(**data.model_dump())
        self.db.add(config)
        self.db.commit()
        self.db.refresh(config)
        return config

    def update_config(self, config_id: int, data: WebhookConfigUpdate) -> WebhookConfig:
        config = self.get_config(config_id)
        if not config:
            raise ValueError("Webhook not found")
        for key, value in data.model_dump(exclude_unset=True).items():
            setattr(config, key, value)
        self.db.commit()
        self.db.refresh(config)
        return config

    def delete_config(self, config_id: int) -> None:
        config = self.get_config(config_id)
        if not config:
            raise ValueError("Webhook not found")
        self.db.delete(config)
        self.db.commit()

    # ---------- dispatch ----------

    def _post(self, url: str, payload: Dict[str, Any]) -> WebhookDelivery:
        try:
            with httpx.Client(timeout=self.timeout) as client:
                resp = client.post(url, json=payload, headers=self.headers)
                resp.raise_for_status()
            logger.info(f"Webhook sent to {url}")
            return WebhookDelivery(url=url, success=True, status_code=resp.status_code)
        except httpx.HTTPStatusError as e:
            logger.error(f"Webhook {url} answered {e.response.status_code}")
            return WebhookDelivery(url=url, success=False,
                                   status_code=e.response.status_code, error=str(e))
        except httpx.HTTPError as e:
            logger.error(f"Failed to send webhook to {url}: {e}")
            return WebhookDelivery(url=url, success=False, error=str(e))

    def trigger(self, event_type: WebhookEventType, payload: Dict[str, Any]) -> List[WebhookDelivery]:
        """Send ``payload`` to every active target of ``event_type``"""
        targets = self.get_configs(event_type=event_type, active_only=True)
        if not targets:
            logger.debug(f"No active webhook for {event_type.value}")
            return []
        return [self._post(target.url, payload) for target in targets]

    def send_test(self, config_id: int) -> WebhookDelivery:
        """Connectivity check with a sample payload for the target's event type"""
        config = self.get_config(config_id)
        if not config:
            raise ValueError("Webhook not found")
        if config.event_type == WebhookEventType.GENERAL_NOTIFICATION:
            payload = {
                "type": "TEST_SIGNAL",
                "message": "Notification channel connectivity check",
                "timestamp": datetime.now().isoformat()
            }
        else:
            payload = {
                "event": config.event_type.value,
                "test": True,
                "status": "Connection Verified",
                "timestamp": datetime.now().isoformat()
            }
        return self._post(config.url, payload)


def notification(kind: str, payload: Dict[str, Any]) -> Dict[str, Any]:
    """Envelope of a general_notification message"""
    return {"type": kind, "payload": payload}
