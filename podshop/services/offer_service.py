# podshop/services/offer_service.py
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy.orm import Session

from podshop.data.models.offer import OfferModel
from podshop.domain.schemas import OfferUpsertIn
from podshop.providers.normalizer import to_money
from podshop.repos.offer_repo import OfferRepo
from podshop.repos.product_repo import ProductRepo
from podshop.utils.errors import ConflictError, NotFoundError, ValidationError
from podshop.utils.logging import get_logger

logger = get_logger(__name__)


def calculate_discount(
    offer_type: str,
    value: Decimal,
    cart_total: Decimal,
    max_discount: Decimal | None = None,
) -> Decimal:
    """Rabat dla kwoty koszyka, nigdy wiekszy niz sam koszyk."""
    if offer_type == "PERCENTAGE":
        discount = cart_total * value / Decimal("100")
    elif offer_type == "FIXED_AMOUNT":
        discount = value
    else:
        raise ValidationError(f"Unknown offer type {offer_type}")

    if max_discount is not None and discount > max_discount:
        discount = max_discount
    return to_money(min(discount, cart_total))


class OfferService:
    def __init__(self, db: Session):
        self.repo = OfferRepo(db)
        self.products = ProductRepo(db)

    def list_active(self) -> list[OfferModel]:
        return self.repo.list_active(datetime.now(timezone.utc))

    def get_active(self, offer_id: int) -> OfferModel:
        offer = self.repo.get_active(offer_id, datetime.now(timezone.utc))
        if not offer:
            raise NotFoundError("Offer not found or expired")
        return offer

    def is_applicable(self, offer: OfferModel, product_ids: list[int] | None) -> bool:
        if offer.scope == "SITEWIDE":
            return True
        if not product_ids:
            return False
        if offer.scope == "PRODUCT":
            return bool(set(product_ids) & set(offer.product_ids))
        if offer.scope == "CATEGORY":
            products = self.products.get_public_products(product_ids)
            return any(p.category == offer.category for p in products)
        return False

    def apply(self, offer_id: int, cart_total: Decimal, product_ids: list[int] | None = None) -> dict:
        """
        Use Case: Podglad rabatu dla koszyka.

        limit uzyc -> minimalna wartosc -> zakres oferty -> wyliczenie rabatu
        """
        offer = self.get_active(offer_id)

        if offer.usage_limit is not None and offer.used_count >= offer.usage_limit:
            raise ConflictError("Offer usage limit exceeded")

        if offer.min_order_value is not None and cart_total < offer.min_order_value:
            raise ValidationError(f"Minimum order value of {offer.min_order_value} required")

        if not self.is_applicable(offer, product_ids):
            raise ValidationError("Offer not applicable to current cart")

        discount = calculate_discount(offer.type, offer.value, cart_total, offer.max_discount)
        return {
            "offer": offer,
            "discount": discount,
            "final_total": to_money(cart_total - discount),
        }

    def redeem(self, offer_id: int) -> bool:
        """
        Zuzycie oferty przez oplacone zamowienie, warunek na limit w jednym UPDATE.
        Commit robi wywolujacy razem ze zmiana statusu zamowienia.
        """
        if self.repo.increment_usage(offer_id) == 0:
            logger.warning(f"Offer {offer_id} usage limit reached, paid order keeps its discount")
            return False
        return True

    # admin
    def list_all(self) -> list[OfferModel]:
        return self.repo.list_all()

    def upsert(self, payload: OfferUpsertIn) -> OfferModel:
        if payload.scope == "CATEGORY" and not payload.category:
            raise ValidationError("Category offers require a category")

        if payload.id:
            offer = self.repo.get_offer(payload.id)
            if not offer:
                raise NotFoundError("Offer not found")
        else:
            offer = OfferModel(used_count=0)

        for field in (
            "title", "description", "type", "scope", "value", "category",
            "min_order_value", "max_discount", "usage_limit",
            "valid_from", "valid_to", "is_active",
        ):
            setattr(offer, field, getattr(payload, field))

        saved = self.repo.save(offer, product_ids=payload.product_ids)
        logger.info(f"Offer {saved.id} saved ({saved.scope}, {saved.type})")
        return saved
