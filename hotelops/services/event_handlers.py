"""
Event handlers
Turn committed domain events into outbound webhook notifications
"""
from typing import Callable
import logging

from hotelops.services.event_bus import event_bus, Event
from hotelops.models.events import EventType
from hotelops.models.ontology import WebhookEventType
from hotelops.database import SessionLocal

logger = logging.getLogger(__name__)


class EventHandlers:
    """
    Event handler set

    Injectable for tests:
    - db_session_factory: session factory used to look up webhook targets
    - webhook_service_factory: builds the dispatcher from a session
    """

    def __init__(
        self,
        db_session_factory: Callable = None,
        webhook_service_factory: Callable = None
    ):
        self._db_session_factory = db_session_factory or SessionLocal
        self._webhook_service_factory = webhook_service_factory
        self._registered = False

    def _get_webhook_service(self, db):
        if self._webhook_service_factory:
            return self._webhook_service_factory(db)
        from hotelops.services.webhook_service import WebhookService
        return WebhookService(db)

    def _dispatch(self, event_type: WebhookEventType, payload: dict) -> None:
        db = self._db_session_factory()
        try:
            deliveries = self._get_webhook_service(db).trigger(event_type, payload)
            failed = [d.url for d in deliveries if not d.success]
            if failed:
                logger.warning(f"{event_type.value} webhook failed for {failed}")
        except Exception as e:
            logger.error(f"Failed to dispatch {event_type.value} webhook: {e}", exc_info=True)
        finally:
            db.close()

    def handle_booking_checked_out(self, event: Event) -> None:
        """Checkout notification for the housekeeping / automation side"""
        data = event.data
        self._dispatch(WebhookEventType.CHECKOUT, {
            "room": data.get("room_code"),
            "facility": data.get("facility_name"),
            "customer": data.get("customer_name"),
        })

    def handle_housekeeping_assigned(self, event: Event) -> None:
        data = event.data
        self._dispatch(WebhookEventType.HOUSEKEEPING_ASSIGN, {
            "task_id": data.get("task_id"),
            "room": data.get("room_code"),
            "facility": data.get("facility_name"),
            "task_type": data.get("task_type"),
            "assignee": data.get("assignee"),
            "priority": data.get("priority"),
        })

    def handle_ota_cancellation_confirmed(self, event: Event) -> None:
        data = event.data
        self._dispatch(WebhookEventType.OTA_IMPORT, {
            "action": "confirm_cancel",
            "bookingCode": data.get("booking_code"),
            "status": data.get("status"),
        })

    def handle_leave_requested(self, event: Event) -> None:
        data = event.data
        dates = f"{data.get('start_date')} - {data.get('end_date')}"
        self._dispatch(WebhookEventType.LEAVE_UPDATE, {
            "event": "new_request",
            "staff": data.get("staff_name"),
            "type": data.get("leave_type"),
            "dates": dates,
            "reason": data.get("reason"),
            "status": data.get("status"),
        })
        self._dispatch(WebhookEventType.GENERAL_NOTIFICATION, {
            "type": "STAFF_LEAVE",
            "payload": {
                "staff_name": data.get("staff_name"),
                "reason": data.get("reason"),
                "dates": dates,
                "status": "PENDING",
            },
        })

    def handle_leave_decided(self, event: Event) -> None:
        data = event.data
        dates = f"{data.get('start_date')} - {data.get('end_date')}"
        approver = data.get("approver") or "Admin"
        self._dispatch(WebhookEventType.LEAVE_UPDATE, {
            "event": "status_update",
            "staff": data.get("staff_name"),
            "status": data.get("status"),
            "dates": dates,
            "approver": approver,
        })
        self._dispatch(WebhookEventType.GENERAL_NOTIFICATION, {
            "type": "STAFF_LEAVE_UPDATE",
            "payload": {
                "staff_name": data.get("staff_name"),
                "status": str(data.get("status", "")).upper(),
                "approver": approver,
            },
        })

    def _subscriptions(self):
        return [
            (EventType.BOOKING_CHECKED_OUT, self.handle_booking_checked_out),
            (EventType.HOUSEKEEPING_ASSIGNED, self.handle_housekeeping_assigned),
            (EventType.OTA_CANCELLATION_CONFIRMED, self.handle_ota_cancellation_confirmed),
            (EventType.LEAVE_REQUESTED, self.handle_leave_requested),
            (EventType.LEAVE_DECIDED, self.handle_leave_decided),
        ]

    def register_handlers(self, event_bus_instance=None) -> None:
        if self._registered:
            return
        bus = event_bus_instance or event_bus
        for event_type, handler in self._subscriptions():
            bus.subscribe(event_type, handler)
        self._registered = True
        logger.info("Event handlers registered successfully")

    def unregister_handlers(self, event_bus_instance=None) -> None:
        bus = event_bus_instance or event_bus
        for event_type, handler in self._subscriptions():
            bus.unsubscribe(event_type, handler)
        self._registered = False
        logger.info("Event handlers unregistered")


event_handlers = EventHandlers()


def register_event_handlers():
    """Register the default handlers (application start-up)"""
    event_handlers.register_handlers()
