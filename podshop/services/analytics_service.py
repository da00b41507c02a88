# podshop/services/analytics_service.py
from datetime import datetime, timezone

import requests
from requests import RequestException

from podshop.celery_worker import celery_app
from podshop.utils.logging import get_logger
from podshop.utils.settings import CURRENCY, GA_API_SECRET, GA_COLLECT_URL, GA_MEASUREMENT_ID

logger = get_logger(__name__)


def purchase_event(order) -> dict:
    return {
        "name": "purchase",
        "params": {
            "transaction_id": str(order.id),
            "value": float(order.total),
            "currency": CURRENCY,
            "items": [
                {
                    "item_id": str(item.product_id),
                    "item_name": item.product.title if item.product else "",
                    "category": item.product.category if item.product else None,
                    "quantity": item.quantity,
                    "price": float(item.price),
                }
                for item in order.items
            ],
            "user_id": str(order.user_id) if order.user_id else None,
            "session_id": f"order-{order.id}",
        },
    }


class AnalyticsService:
    """
    Przekazywanie zdarzen do Google Analytics (Measurement Protocol).
    Uzywa Celery, zamowienie nie czeka na GA.
    """

    @staticmethod
    def track_purchase(order):
        send_analytics_event_task.delay(purchase_event(order))


def send_event(event: dict, measurement_id: str | None = None, api_secret: str | None = None) -> bool:
    measurement_id = measurement_id or GA_MEASUREMENT_ID
    api_secret = api_secret or GA_API_SECRET
    if not measurement_id or not api_secret:
        logger.warning("Google Analytics not configured, dropping event")
        return False

    params = dict(event["params"])
    params["timestamp_micros"] = int(datetime.now(timezone.utc).timestamp() * 1_000_000)
    payload = {
        "client_id": params.get("session_id") or "anonymous",
        "events": [{"name": event["name"], "params": params}],
    }

    try:
        resp = requests.post(
            GA_COLLECT_URL,
            params={"measurement_id": measurement_id, "api_secret": api_secret},
            json=payload,
            timeout=5,
        )
    except RequestException as e:
        logger.error(f"Failed to send GA event {event['name']}: {e}")
        return False

    if not resp.ok:
        logger.error(f"GA event sending failed: {resp.status_code}")
        return False
    return True


@celery_app.task(name="podshop.services.analytics_service.send_analytics_event_task")
def send_analytics_event_task(event: dict):
    sent = send_event(event)
    return {"event": event["name"], "sent": sent}
