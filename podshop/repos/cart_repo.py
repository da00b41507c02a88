# podshop/repos/cart_repo.py
from sqlalchemy import select, update, delete
from sqlalchemy.orm import Session, selectinload

from podshop.data.models.cart import CartModel
from podshop.data.models.cart_item import CartItemModel


class CartRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_by_user(self, user_id: int) -> CartModel | None:
        return self.db.execute(
            select(CartModel)
            .where(CartModel.user_id == user_id)
            .options(selectinload(CartModel.items))
        ).scalar_one_or_none()

    def create_cart(self, cart: CartModel) -> CartModel:
        self.db.add(cart)
        self.db.commit()
        self.db.refresh(cart)
        return cart

    def replace_items(self, cart_id: int, items: list[CartItemModel]):
        self.db.execute(delete(CartItemModel).where(CartItemModel.cart_id == cart_id))
        self.db.add_all(items)

    def update_cart_version(self, cart_id: int, old_version: int, new_data: dict) -> int:
        # UPDATE carts SET ... WHERE id = :id AND version = :old_version
        result = self.db.execute(
            update(CartModel)
            .where(CartModel.id == cart_id, CartModel.version == old_version)
            .values(**new_data)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def refresh(self, cart: CartModel):
        self.db.refresh(cart)

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
