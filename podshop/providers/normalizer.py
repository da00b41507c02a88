# podshop/providers/normalizer.py
"""
Normalizacja surowych produktow providerow do ksztaltu kanonicznego
oraz scalanie tego samego produktu od roznych providerow.

Tozsamosc produktu = tytul bazowy (tytul bez sufiksu regionu). Porownanie
jest dokladne (wielkosc liter, spacje), bez fuzzy matchingu.
"""
import re
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Iterable

from podshop.providers.base import ProviderType
from podshop.utils.errors import ProviderError

DEFAULT_CATEGORY = "Uncategorized"
# koszt gdy provider go nie podaje: 60% ceny (marza 40%)
DEFAULT_COST_RATIO = Decimal("0.6")

REGION_SUFFIXES = {
    ProviderType.PRINTROVE: " (India)",
    ProviderType.PRINTFUL: " (International)",
    ProviderType.PRINTIFY: " (International)",
}
_REGION_SUFFIX_RE = re.compile(r" \((India|International)\)$")

_CENT = Decimal("0.01")


def to_money(value: Any) -> Decimal:
    return Decimal(str(value)).quantize(_CENT, rounding=ROUND_HALF_UP)


def base_title(title: str) -> str:
    return _REGION_SUFFIX_RE.sub("", title)


@dataclass
class NormalizedMapping:
    provider: ProviderType
    provider_product_id: str
    provider_variant_id: str | None
    price: Decimal
    cost: Decimal
    is_active: bool = True


@dataclass
class NormalizedProduct:
    title: str
    base_title: str
    description: str
    images: list[str]
    category: str
    tags: list[str]
    provider_mappings: list[NormalizedMapping] = field(default_factory=list)

    @property
    def provider_product_ids(self) -> list[str]:
        return list(dict.fromkeys(m.provider_product_id for m in self.provider_mappings))


def _normalize_variant(raw_product: dict, variant: dict, provider: ProviderType) -> NormalizedMapping:
    if variant.get("price") is None:
        raise ProviderError(f"{provider.value} variant {variant.get('id')} has no price")

    price = to_money(variant["price"])
    # koszt od providera zostaje jak jest, domyslny tylko gdy go brak
    cost = to_money(variant["cost"]) if variant.get("cost") is not None else to_money(price * DEFAULT_COST_RATIO)

    variant_id = variant.get("id")
    return NormalizedMapping(
        provider=provider,
        provider_product_id=str(raw_product["id"]),
        provider_variant_id=str(variant_id) if variant_id is not None else None,
        price=price,
        cost=cost,
    )


def normalize(raw_product: dict, provider: ProviderType | str) -> NormalizedProduct:
    provider = ProviderType.parse(provider)

    if raw_product.get("id") is None or not raw_product.get("title"):
        raise ProviderError(f"{provider.value} returned a product without id/title")

    # sufiks regionu to tylko konwencja wyswietlania, nie doklejamy go drugi raz
    base = base_title(raw_product["title"])

    return NormalizedProduct(
        title=base + REGION_SUFFIXES[provider],
        base_title=base,
        description=raw_product.get("description") or "",
        images=list(raw_product.get("images") or []),
        category=raw_product.get("category") or DEFAULT_CATEGORY,
        tags=list(raw_product.get("tags") or []),
        provider_mappings=[
            _normalize_variant(raw_product, variant, provider)
            for variant in raw_product.get("variants") or []
        ],
    )


def merge(products: Iterable[tuple[dict, ProviderType | str]]) -> list[NormalizedProduct]:
    """
    Scala pary (surowy produkt, provider) po tytule bazowym.

    Grupa z wiecej niz jednym wpisem dostaje tytul bazowy, mapowania sa
    doklejane w kolejnosci wejscia. Rozne tytuly bazowe nigdy sie nie scalaja.
    """
    merged: dict[str, NormalizedProduct] = {}

    for raw_product, provider in products:
        normalized = normalize(raw_product, provider)
        existing = merged.get(normalized.base_title)

        if existing is None:
            merged[normalized.base_title] = normalized
            continue

        existing.title = normalized.base_title
        existing.provider_mappings.extend(normalized.provider_mappings)

    return list(merged.values())
