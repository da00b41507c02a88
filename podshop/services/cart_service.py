# podshop/services/cart_service.py
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, Any

from sqlalchemy.orm import Session

from podshop.data.models.cart import CartModel
from podshop.data.models.cart_item import CartItemModel
from podshop.domain.schemas import CartOut, CartItemIn
from podshop.repos.cart_repo import CartRepo
from podshop.repos.product_repo import ProductRepo
from podshop.services.order_service import select_mapping
from podshop.utils.errors import ConcurrencyConflict
from podshop.utils.logging import get_logger

logger = get_logger(__name__)


class CartService:
    """
    Koszyk uzytkownika, jeden na usera.
    query (get) tylko odczyt, commands (update, clear) z optimistic locking na version
    """

    def __init__(self, db: Session):
        self.repo = CartRepo(db)
        self.products = ProductRepo(db)

    def _get_or_create(self, user_id: int) -> CartModel:
        cart = self.repo.get_by_user(user_id)
        if cart:
            return cart
        logger.info(f"Creating cart for user {user_id}")
        return self.repo.create_cart(CartModel(user_id=user_id, version=1))

    #query
    def get_cart(self, user_id: int) -> Dict[str, Any]:
        cart = self._get_or_create(user_id)
        products = {p.id: p for p in self.products.get_public_products(i.product_id for i in cart.items)}

        items = []
        for item in cart.items:
            product = products.get(item.product_id)
            if not product:
                # produkt wylaczony albo bez mapowan, pomijamy
                continue
            mapping = select_mapping(product, item.selected_provider)
            items.append(
                {
                    "product_id": item.product_id,
                    "quantity": item.quantity,
                    "selected_provider": item.selected_provider,
                    "product": product,
                    "selected_mapping": mapping,
                    "subtotal": mapping.price * item.quantity,
                }
            )

        total = sum((i["subtotal"] for i in items), Decimal("0.00"))
        return CartOut(id=cart.id, version=cart.version, items=items, total=total).model_dump(
            mode="json", by_alias=True
        )

    #commands
    def update_cart(self, user_id: int, items: list[CartItemIn]) -> Dict[str, Any]:
        cart = self._get_or_create(user_id)

        valid_ids = {p.id for p in self.products.get_public_products(i.product_id for i in items)}
        valid_items = [i for i in items if i.product_id in valid_ids]
        if len(valid_items) != len(items):
            logger.info(f"Dropped {len(items) - len(valid_items)} unavailable products from cart {cart.id}")

        self.repo.replace_items(
            cart.id,
            [
                CartItemModel(
                    cart_id=cart.id,
                    product_id=i.product_id,
                    quantity=i.quantity,
                    selected_provider=i.selected_provider,
                )
                for i in valid_items
            ],
        )
        self._bump_version(cart)
        return self.get_cart(user_id)

    def clear_cart(self, user_id: int):
        cart = self._get_or_create(user_id)
        self.repo.replace_items(cart.id, [])
        self._bump_version(cart)
        logger.info(f"Cart {cart.id} cleared")

    def _bump_version(self, cart: CartModel):
        # UPDATE carts SET version = version + 1 WHERE id = :id AND version = :old
        rowcount = self.repo.update_cart_version(
            cart_id=cart.id,
            old_version=cart.version,
            new_data={
                "version": cart.version + 1,
                "updated_at": datetime.now(timezone.utc),
            },
        )
        if rowcount == 0:
            self.repo.rollback()
            raise ConcurrencyConflict("Cart was modified by another request")

        self.repo.commit()
        self.repo.refresh(cart)
