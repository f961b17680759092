# storefront/services/analytics_service.py
from typing import Any, Callable, Dict

from storefront.celery_worker import celery_app
from storefront.data.database import SessionLocal
from storefront.repos.factory import build_gateway
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class AnalyticsService:
    """
    Fire and forget analytics.
    Events go through Celery, nothing here is allowed to break a user flow.
    """

    def __init__(self, session_id: str, dispatch: Callable[[Dict[str, Any]], Any] | None = None):
        self.session_id = session_id
        self.dispatch = dispatch or track_event_task.delay

    def track(
        self,
        event_name: str,
        user_id: str | None = None,
        product_id: str | None = None,
        order_id: str | None = None,
        path: str | None = None,
        metadata: Dict[str, Any] | None = None,
    ) -> None:
        payload = {
            "event_name": event_name,
            "session_id": self.session_id,
            "user_id": user_id,
            "product_id": product_id,
            "order_id": order_id,
            "path": path,
            "metadata": metadata or {},
        }
        try:
            self.dispatch(payload)
        except Exception as e:
            logger.warning(f"Analytics event {event_name} failed: {e}")


@celery_app.task(name="storefront.services.analytics_service.track_event_task")
def track_event_task(payload: Dict[str, Any]):
    db = SessionLocal()
    try:
        result = build_gateway(db, service=True).insert("analytics_events", payload)
        if result.error:
            logger.warning(f"Analytics event skipped: {result.error}")
            return {"event_name": payload.get("event_name"), "status": "skipped"}
        return {"event_name": payload.get("event_name"), "status": "stored"}
    finally:
        db.close()
