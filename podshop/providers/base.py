# podshop/providers/base.py
"""
Kontrakt adaptera providera (print-on-demand).

Kazdy adapter to zwykla klasa spelniajaca protokol ProviderAdapter, bez
wspolnej klasy bazowej. Cala wiedza o ksztalcie zapytan/odpowiedzi danego
providera zostaje za tym interfejsem, sync katalogu i fan-out zamowien
widza tylko surowe rekordy:

    {"id", "title", "description", "images", "category", "tags",
     "variants": [{"id", "title", "price", "cost"?, "attributes"}]}
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol

from sqlalchemy.orm import Session

from podshop.domain.order_status import OrderStatus
from podshop.utils.errors import UnknownProviderError

RawProduct = dict[str, Any]


class ProviderType(str, Enum):
    PRINTROVE = "PRINTROVE"
    PRINTFUL = "PRINTFUL"
    PRINTIFY = "PRINTIFY"

    @classmethod
    def parse(cls, value: "ProviderType | str") -> "ProviderType":
        try:
            return cls(value.upper() if isinstance(value, str) else value)
        except ValueError:
            raise UnknownProviderError(f"Unknown provider: {value}")


@dataclass
class StatusUpdate:
    """Zdarzenie webhooka przetlumaczone na status wewnetrzny."""

    status: OrderStatus
    raw_status: str
    provider_order_id: str | None = None
    order_id: str | None = None


def field_dict(payload: Any, key: str) -> dict[str, Any]:
    """Zagniezdzony obiekt z payloadu webhooka, {} gdy brak lub zly typ."""
    value = payload.get(key) if isinstance(payload, dict) else None
    return value if isinstance(value, dict) else {}


def field_str(payload: dict[str, Any], key: str) -> str | None:
    value = payload.get(key)
    if value is None or isinstance(value, (dict, list)):
        return None
    return str(value)


class ProviderAdapter(Protocol):
    provider: ProviderType

    def list_products(self) -> list[RawProduct]: ...

    def get_product(self, product_id: str) -> RawProduct: ...

    def create_order(self, order_data: dict[str, Any]) -> dict[str, Any]: ...

    def cancel_order(self, provider_order_id: str) -> dict[str, Any]: ...

    def get_order(self, provider_order_id: str) -> dict[str, Any]: ...

    def list_orders(self, params: dict[str, Any] | None = None) -> list[dict[str, Any]]: ...

    def verify_webhook(self, raw_body: bytes, signature: str | None) -> bool: ...

    def event_key(self, payload: dict[str, Any]) -> str | None: ...

    def process_webhook(self, db: Session, payload: dict[str, Any]) -> bool: ...
