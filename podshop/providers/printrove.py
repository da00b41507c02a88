# podshop/providers/printrove.py
"""Printrove (India). Bez klucza API dziala na danych przykladowych."""
import copy
from typing import Any
from uuid import uuid4

import requests
from sqlalchemy.orm import Session

from podshop.domain.order_status import OrderStatus
from podshop.providers.base import ProviderType, StatusUpdate, field_dict, field_str
from podshop.providers.http import ProviderHttpClient
from podshop.providers.signing import verify_hex_signature
from podshop.providers.status_updates import apply_status_update
from podshop.utils.errors import NotFoundError, ProviderError
from podshop.utils.logging import get_logger
from podshop.utils.settings import PRINTROVE_API_URL

logger = get_logger(__name__)

SIGNATURE_HEADER = "x-printrove-signature"

MOCK_CATALOG = [
    {
        "id": "printrove-001",
        "title": "Custom T-Shirt",
        "description": "Premium cotton t-shirt with custom printing",
        "images": ["https://example.com/tshirt.jpg"],
        "variants": [
            {
                "id": "var-001",
                "title": "Small",
                "price": 299,
                "cost": 150,
                "attributes": {"size": "S", "color": "White"},
            }
        ],
        "category": "Apparel",
    },
    {
        "id": "printrove-002",
        "title": "Custom Mug",
        "description": "Ceramic mug with a full wrap print",
        "images": ["https://example.com/mug-in.jpg"],
        "variants": [
            {
                "id": "var-002",
                "title": "11oz",
                "price": 249,
                "attributes": {"size": "11oz", "color": "White"},
            }
        ],
        "category": "Home & Living",
        "tags": ["mug", "gift"],
    },
]

_STATUS_MAP = {
    "processing": OrderStatus.PROCESSING,
    "printed": OrderStatus.PROCESSING,
    "dispatched": OrderStatus.SHIPPED,
    "shipped": OrderStatus.SHIPPED,
    "delivered": OrderStatus.DELIVERED,
    "cancelled": OrderStatus.CANCELLED,
}


class PrintroveAdapter:
    provider = ProviderType.PRINTROVE

    def __init__(
        self,
        api_key: str | None = None,
        webhook_secret: str | None = None,
        base_url: str | None = None,
        session: requests.Session | None = None,
    ):
        self.webhook_secret = webhook_secret
        self.client = (
            ProviderHttpClient("Printrove", base_url or PRINTROVE_API_URL, api_key, session=session)
            if api_key
            else None
        )

    @property
    def is_mock(self) -> bool:
        return self.client is None

    # katalog
    def list_products(self) -> list[dict[str, Any]]:
        if self.is_mock:
            return copy.deepcopy(MOCK_CATALOG)

        data = self.client.get("/v1/products")
        products = data.get("products") if isinstance(data, dict) else None
        if not isinstance(products, list):
            raise ProviderError("Printrove returned an unexpected catalog shape")
        return [self._to_raw(p) for p in products]

    def get_product(self, product_id: str) -> dict[str, Any]:
        if self.is_mock:
            for product in MOCK_CATALOG:
                if product["id"] == product_id:
                    return copy.deepcopy(product)
            raise NotFoundError(f"Printrove product {product_id} not found")

        data = self.client.get(f"/v1/products/{product_id}")
        return self._to_raw(data.get("product") or {})

    def _to_raw(self, product: dict) -> dict[str, Any]:
        return {
            "id": product.get("id"),
            "title": product.get("name") or product.get("title"),
            "description": product.get("description"),
            "images": product.get("mockup_urls") or product.get("images") or [],
            "category": product.get("category"),
            "tags": product.get("tags") or [],
            "variants": [
                {
                    "id": v.get("id"),
                    "title": v.get("name") or v.get("title"),
                    "price": v.get("price"),
                    "cost": v.get("cost"),
                    "attributes": v.get("attributes") or {},
                }
                for v in product.get("variants") or []
            ],
        }

    # zamowienia
    def create_order(self, order_data: dict[str, Any]) -> dict[str, Any]:
        if self.is_mock:
            return {
                "id": f"printrove-order-{uuid4().hex[:12]}",
                "status": "processing",
                "items": order_data["items"],
            }

        body = {
            "reference_number": order_data["external_id"],
            "customer": order_data["shipping"],
            "order_products": [
                {
                    "product_id": i["product_id"],
                    "variant_id": i["variant_id"],
                    "quantity": i["quantity"],
                }
                for i in order_data["items"]
            ],
            "retail_price": str(order_data["subtotal"]),
        }
        order = (self.client.post("/v1/orders", json=body) or {}).get("order") or {}
        if not order.get("id"):
            raise ProviderError("Printrove did not return an order id")
        return {"id": str(order["id"]), "status": order.get("status", "processing")}

    def cancel_order(self, provider_order_id: str) -> dict[str, Any]:
        if self.is_mock:
            return {"id": provider_order_id, "status": "cancelled"}
        self.client.post(f"/v1/orders/{provider_order_id}/cancel")
        return {"id": provider_order_id, "status": "cancelled"}

    def get_order(self, provider_order_id: str) -> dict[str, Any]:
        if self.is_mock:
            return {"id": provider_order_id, "status": "processing"}
        return (self.client.get(f"/v1/orders/{provider_order_id}") or {}).get("order") or {}

    def list_orders(self, params: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        if self.is_mock:
            return []
        return (self.client.get("/v1/orders", params=params) or {}).get("orders") or []

    # webhooki
    def verify_webhook(self, raw_body: bytes, signature: str | None) -> bool:
        return verify_hex_signature(self.webhook_secret, raw_body, signature)

    def event_key(self, payload: dict[str, Any]) -> str | None:
        return field_str(payload, "event_id")

    def parse_webhook(self, payload: dict[str, Any]) -> StatusUpdate | None:
        if field_str(payload, "event") != "order.status_changed":
            return None

        provider_order_id = field_str(payload, "order_id")
        raw_status = str(payload.get("status", "")).lower()
        status = _STATUS_MAP.get(raw_status)
        if status is None or provider_order_id is None:
            return None
        return StatusUpdate(status=status, raw_status=raw_status, provider_order_id=provider_order_id)

    def process_webhook(self, db: Session, payload: dict[str, Any]) -> bool:
        update = self.parse_webhook(payload)
        if update is None:
            logger.info(f"Printrove event {payload.get('event')} ignored")
            return False
        return apply_status_update(db, self.provider, update)
