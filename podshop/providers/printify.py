# podshop/providers/printify.py
"""Printify (international). API: https://developers.printify.com/"""
import copy
from decimal import Decimal
from typing import Any
from uuid import uuid4

import requests
from sqlalchemy.orm import Session

from podshop.domain.order_status import OrderStatus
from podshop.providers.base import ProviderType, StatusUpdate, field_dict, field_str
from podshop.providers.http import ProviderHttpClient
from podshop.providers.signing import verify_prefixed_signature
from podshop.providers.status_updates import apply_status_update
from podshop.utils.errors import NotFoundError, ProviderError
from podshop.utils.logging import get_logger
from podshop.utils.settings import PRINTIFY_API_URL

logger = get_logger(__name__)

SIGNATURE_HEADER = "x-printify-signature"

MOCK_CATALOG = [
    {
        "id": "printify-001",
        "title": "International Mug",
        "description": "Custom printed mug available globally",
        "images": ["https://example.com/mug.jpg"],
        "variants": [
            {
                "id": "var-printify-001",
                "title": "11oz",
                "price": 799,
                "cost": 400,
                "attributes": {"size": "11oz", "color": "White"},
            }
        ],
        "category": "Home & Living",
    },
    {
        "id": "printify-002",
        "title": "Custom Mug",
        "description": "Ceramic mug with a full wrap print",
        "images": ["https://example.com/mug-intl.jpg"],
        "variants": [
            {
                "id": "var-printify-002",
                "title": "11oz",
                "price": 699,
                "cost": 350,
                "attributes": {"size": "11oz", "color": "White"},
            }
        ],
        "category": "Home & Living",
        "tags": ["mug", "gift"],
    },
]

_EVENT_STATUS_MAP = {
    "order:sent-to-production": OrderStatus.PROCESSING,
    "order:shipment:created": OrderStatus.SHIPPED,
    "order:shipment:delivered": OrderStatus.DELIVERED,
}


def _from_cents(value):
    # Printify podaje ceny w centach
    return None if value is None else Decimal(value) / 100


class PrintifyAdapter:
    provider = ProviderType.PRINTIFY

    def __init__(
        self,
        api_key: str | None = None,
        shop_id: str | None = None,
        webhook_secret: str | None = None,
        base_url: str | None = None,
        session: requests.Session | None = None,
    ):
        self.shop_id = shop_id
        self.webhook_secret = webhook_secret
        self.client = (
            ProviderHttpClient("Printify", base_url or PRINTIFY_API_URL, api_key, session=session)
            if api_key and shop_id
            else None
        )

    @property
    def is_mock(self) -> bool:
        return self.client is None

    def _shop_path(self, path: str) -> str:
        return f"/shops/{self.shop_id}/{path.lstrip('/')}"

    def list_products(self) -> list[dict[str, Any]]:
        if self.is_mock:
            return copy.deepcopy(MOCK_CATALOG)

        products = (self.client.get(self._shop_path("products.json")) or {}).get("data")
        if not isinstance(products, list):
            raise ProviderError("Printify returned an unexpected catalog shape")
        return [self._to_raw(p) for p in products]

    def get_product(self, product_id: str) -> dict[str, Any]:
        if self.is_mock:
            for product in MOCK_CATALOG:
                if product["id"] == product_id:
                    return copy.deepcopy(product)
            raise NotFoundError(f"Printify product {product_id} not found")

        return self._to_raw(self.client.get(self._shop_path(f"products/{product_id}.json")) or {})

    def _to_raw(self, product: dict) -> dict[str, Any]:
        return {
            "id": product.get("id"),
            "title": product.get("title"),
            "description": product.get("description"),
            "images": [img["src"] for img in product.get("images") or [] if img.get("src")],
            "category": None,
            "tags": product.get("tags") or [],
            "variants": [
                {
                    "id": v.get("id"),
                    "title": v.get("title"),
                    "price": _from_cents(v.get("price")),
                    "cost": _from_cents(v.get("cost")),
                    "attributes": {"options": v.get("options") or []},
                }
                for v in product.get("variants") or []
                if v.get("is_enabled", True)
            ],
        }

    def create_order(self, order_data: dict[str, Any]) -> dict[str, Any]:
        if self.is_mock:
            return {
                "id": f"printify-order-{uuid4().hex[:12]}",
                "status": "on-hold",
                "items": order_data["items"],
            }

        body = {
            "external_id": order_data["external_id"],
            "line_items": [
                {
                    "product_id": i["product_id"],
                    "variant_id": i["variant_id"],
                    "quantity": i["quantity"],
                }
                for i in order_data["items"]
            ],
            "shipping_method": 1,
            "send_shipping_notification": True,
            "address_to": order_data["shipping"],
        }
        result = self.client.post(self._shop_path("orders.json"), json=body) or {}
        if not result.get("id"):
            raise ProviderError("Printify did not return an order id")
        return {"id": str(result["id"]), "status": result.get("status", "on-hold")}

    def cancel_order(self, provider_order_id: str) -> dict[str, Any]:
        if self.is_mock:
            return {"id": provider_order_id, "status": "canceled"}
        self.client.post(self._shop_path(f"orders/{provider_order_id}/cancel.json"))
        return {"id": provider_order_id, "status": "canceled"}

    def get_order(self, provider_order_id: str) -> dict[str, Any]:
        if self.is_mock:
            return {"id": provider_order_id, "status": "shipped"}
        return self.client.get(self._shop_path(f"orders/{provider_order_id}.json")) or {}

    def list_orders(self, params: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        if self.is_mock:
            return []
        return (self.client.get(self._shop_path("orders.json"), params=params) or {}).get("data") or []

    def verify_webhook(self, raw_body: bytes, signature: str | None) -> bool:
        return verify_prefixed_signature(self.webhook_secret, raw_body, signature)

    def event_key(self, payload: dict[str, Any]) -> str | None:
        return field_str(payload, "id")

    def parse_webhook(self, payload: dict[str, Any]) -> StatusUpdate | None:
        event_type = field_str(payload, "type")
        resource = field_dict(payload, "resource")
        provider_order_id = field_str(resource, "id")
        if provider_order_id is None:
            return None

        status = _EVENT_STATUS_MAP.get(event_type)
        if status is not None:
            return StatusUpdate(status=status, raw_status=event_type, provider_order_id=provider_order_id)

        if event_type == "order:updated":
            raw_status = str(field_dict(resource, "data").get("status", "")).lower()
            if raw_status in ("canceled", "cancelled"):
                return StatusUpdate(
                    status=OrderStatus.CANCELLED,
                    raw_status=raw_status,
                    provider_order_id=provider_order_id,
                )
        return None

    def process_webhook(self, db: Session, payload: dict[str, Any]) -> bool:
        update = self.parse_webhook(payload)
        if update is None:
            logger.info(f"Printify event {payload.get('type')} ignored")
            return False
        return apply_status_update(db, self.provider, update)
