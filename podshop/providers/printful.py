# podshop/providers/printful.py
"""Printful (international). API: https://developers.printful.com/docs/"""
import copy
from typing import Any
from uuid import uuid4

import requests
from sqlalchemy.orm import Session

from podshop.domain.order_status import OrderStatus
from podshop.providers.base import ProviderType, StatusUpdate, field_dict, field_str
from podshop.providers.http import ProviderHttpClient
from podshop.providers.signing import verify_base64_signature
from podshop.providers.status_updates import apply_status_update
from podshop.utils.errors import NotFoundError, ProviderError
from podshop.utils.logging import get_logger
from podshop.utils.settings import PRINTFUL_API_URL

logger = get_logger(__name__)

SIGNATURE_HEADER = "x-printful-signature"

MOCK_CATALOG = [
    {
        "id": "printful-001",
        "title": "International Hoodie",
        "description": "Premium hoodie available worldwide",
        "images": ["https://example.com/hoodie.jpg"],
        "variants": [
            {
                "id": "var-printful-001",
                "title": "Medium",
                "price": 1299,
                "cost": 800,
                "attributes": {"size": "M", "color": "Black"},
            }
        ],
        "category": "Apparel",
    }
]

_ORDER_STATUS_MAP = {
    "pending": OrderStatus.PROCESSING,
    "inprocess": OrderStatus.PROCESSING,
    "partial": OrderStatus.PROCESSING,
    "fulfilled": OrderStatus.SHIPPED,
    "canceled": OrderStatus.CANCELLED,
}


class PrintfulAdapter:
    provider = ProviderType.PRINTFUL

    def __init__(
        self,
        api_key: str | None = None,
        webhook_secret: str | None = None,
        base_url: str | None = None,
        session: requests.Session | None = None,
    ):
        self.webhook_secret = webhook_secret
        self.client = (
            ProviderHttpClient("Printful", base_url or PRINTFUL_API_URL, api_key, session=session)
            if api_key
            else None
        )

    @property
    def is_mock(self) -> bool:
        return self.client is None

    def list_products(self) -> list[dict[str, Any]]:
        if self.is_mock:
            return copy.deepcopy(MOCK_CATALOG)

        # lista zwraca tylko naglowki, warianty sa w szczegolach produktu
        summaries = (self.client.get("/store/products") or {}).get("result")
        if not isinstance(summaries, list):
            raise ProviderError("Printful returned an unexpected catalog shape")
        return [self.get_product(str(s["id"])) for s in summaries]

    def get_product(self, product_id: str) -> dict[str, Any]:
        if self.is_mock:
            for product in MOCK_CATALOG:
                if product["id"] == product_id:
                    return copy.deepcopy(product)
            raise NotFoundError(f"Printful product {product_id} not found")

        result = (self.client.get(f"/store/products/{product_id}") or {}).get("result") or {}
        sync_product = result.get("sync_product") or {}
        return {
            "id": sync_product.get("id"),
            "title": sync_product.get("name"),
            "description": sync_product.get("description"),
            "images": [sync_product["thumbnail_url"]] if sync_product.get("thumbnail_url") else [],
            "category": sync_product.get("category"),
            "tags": [],
            "variants": [
                {
                    "id": v.get("id"),
                    "title": v.get("name"),
                    "price": v.get("retail_price"),
                    "cost": None,
                    "attributes": {"size": v.get("size"), "color": v.get("color")},
                }
                for v in result.get("sync_variants") or []
            ],
        }

    def create_order(self, order_data: dict[str, Any]) -> dict[str, Any]:
        if self.is_mock:
            return {
                "id": f"printful-order-{uuid4().hex[:12]}",
                "status": "draft",
                "items": order_data["items"],
            }

        body = {
            "external_id": order_data["external_id"],
            "recipient": order_data["shipping"],
            "items": [
                {"sync_variant_id": i["variant_id"], "quantity": i["quantity"]}
                for i in order_data["items"]
            ],
            "retail_costs": {
                "currency": order_data["currency"],
                "subtotal": str(order_data["subtotal"]),
                "discount": "0",
                "shipping": str(order_data["shipping_cost"]),
                "tax": str(order_data["tax"]),
            },
        }
        result = (self.client.post("/orders", json=body) or {}).get("result") or {}
        if not result.get("id"):
            raise ProviderError("Printful did not return an order id")
        return {"id": str(result["id"]), "status": result.get("status", "draft")}

    def cancel_order(self, provider_order_id: str) -> dict[str, Any]:
        if self.is_mock:
            return {"id": provider_order_id, "status": "canceled"}
        self.client.delete(f"/orders/{provider_order_id}")
        return {"id": provider_order_id, "status": "canceled"}

    def get_order(self, provider_order_id: str) -> dict[str, Any]:
        if self.is_mock:
            return {"id": provider_order_id, "status": "fulfilled"}
        return (self.client.get(f"/orders/{provider_order_id}") or {}).get("result") or {}

    def list_orders(self, params: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        if self.is_mock:
            return []
        return (self.client.get("/orders", params=params) or {}).get("result") or []

    def verify_webhook(self, raw_body: bytes, signature: str | None) -> bool:
        return verify_base64_signature(self.webhook_secret, raw_body, signature)

    def event_key(self, payload: dict[str, Any]) -> str | None:
        event_type = field_str(payload, "type")
        created = field_str(payload, "created")
        if not event_type or created is None:
            return None
        order = field_dict(field_dict(payload, "data"), "order")
        return f"{event_type}:{order.get('id')}:{created}"

    def parse_webhook(self, payload: dict[str, Any]) -> StatusUpdate | None:
        event_type = field_str(payload, "type")
        order = field_dict(field_dict(payload, "data"), "order")
        external_id = field_str(order, "external_id")
        if not external_id:
            return None

        if event_type == "package_shipped":
            return StatusUpdate(status=OrderStatus.SHIPPED, raw_status="shipped", order_id=str(external_id))
        if event_type == "order_canceled":
            return StatusUpdate(status=OrderStatus.CANCELLED, raw_status="canceled", order_id=str(external_id))
        if event_type == "order_updated":
            raw_status = str(order.get("status", "")).lower()
            status = _ORDER_STATUS_MAP.get(raw_status)
            if status is not None:
                return StatusUpdate(status=status, raw_status=raw_status, order_id=str(external_id))
        return None

    def process_webhook(self, db: Session, payload: dict[str, Any]) -> bool:
        update = self.parse_webhook(payload)
        if update is None:
            logger.info(f"Printful event {payload.get('type')} ignored")
            return False
        return apply_status_update(db, self.provider, update)
