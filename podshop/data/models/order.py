from datetime import datetime, timezone

from sqlalchemy import Column, Integer, ForeignKey, String, DateTime, Numeric, JSON, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from podshop.data.database import Base


def _now():
    return datetime.now(timezone.utc)


class OrderModel(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    offer_id = Column(Integer, ForeignKey("offers.id"), nullable=True)
    email = Column(String(255), nullable=False)
    phone = Column(String(32), nullable=True)

    # PENDING, PAID, PROCESSING, SHIPPED, DELIVERED, CANCELLED, REFUNDED
    status = Column(String(20), nullable=False, default="PENDING")

    # liczone raz przy tworzeniu, potem tylko odczyt
    subtotal = Column(Numeric(10, 2), nullable=False)
    discount = Column(Numeric(10, 2), nullable=False, default=0)
    shipping = Column(Numeric(10, 2), nullable=False)
    tax = Column(Numeric(10, 2), nullable=False)
    total = Column(Numeric(10, 2), nullable=False)

    payment_order_id = Column(String(64), nullable=True, index=True)
    payment_id = Column(String(64), nullable=True)
    provider_order_id = Column(String(120), nullable=True, index=True)
    shipping_address = Column(JSON, nullable=False, default=dict)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_now, onupdate=_now)

    items = relationship(
        "OrderItemModel",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItemModel.id",
    )
    sub_orders = relationship(
        "ProviderSubOrderModel",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="ProviderSubOrderModel.id",
    )


class OrderItemModel(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)

    quantity = Column(Integer, nullable=False)
    # snapshot ceny z momentu zamowienia
    price = Column(Numeric(10, 2), nullable=False)
    provider = Column(String(20), nullable=False)
    provider_product_id = Column(String(120), nullable=False)
    provider_variant_id = Column(String(120), nullable=True)

    order = relationship("OrderModel", back_populates="items")
    product = relationship("ProductModel")


class ProviderSubOrderModel(Base):
    """Zamowienie czastkowe u jednego providera (krok sagi fan-out)."""

    __tablename__ = "provider_sub_orders"

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False)
    provider = Column(String(20), nullable=False)
    provider_order_id = Column(String(120), nullable=True, index=True)

    # SUBMITTED, FAILED, CANCELLED, COMPENSATION_FAILED
    status = Column(String(24), nullable=False)
    fulfillment_status = Column(String(20), nullable=True)
    provider_status = Column(String(64), nullable=True)
    error = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_now, onupdate=_now)

    order = relationship("OrderModel", back_populates="sub_orders")

    __table_args__ = (UniqueConstraint("order_id", "provider", name="u_order_provider"),)
