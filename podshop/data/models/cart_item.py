from sqlalchemy import Column, Integer, ForeignKey, String
from sqlalchemy.orm import relationship

from podshop.data.database import Base


class CartItemModel(Base):
    __tablename__ = "cart_items"

    id = Column(Integer, primary_key=True)
    cart_id = Column(Integer, ForeignKey("carts.id", ondelete="CASCADE"), nullable=False)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False)

    quantity = Column(Integer, nullable=False)
    selected_provider = Column(String(20), nullable=True)

    cart = relationship("CartModel", back_populates="items")
