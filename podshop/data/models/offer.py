from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, Numeric, ForeignKey
from sqlalchemy.orm import relationship

from podshop.data.database import Base


class OfferModel(Base):
    __tablename__ = "offers"

    id = Column(Integer, primary_key=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")

    type = Column(String(20), nullable=False)  # PERCENTAGE, FIXED_AMOUNT
    scope = Column(String(20), nullable=False)  # SITEWIDE, PRODUCT, CATEGORY
    value = Column(Numeric(10, 2), nullable=False)
    category = Column(String(120), nullable=True)

    min_order_value = Column(Numeric(10, 2), nullable=True)
    max_discount = Column(Numeric(10, 2), nullable=True)
    usage_limit = Column(Integer, nullable=True)
    used_count = Column(Integer, nullable=False, default=0)

    valid_from = Column(DateTime(timezone=True), nullable=False)
    valid_to = Column(DateTime(timezone=True), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    products = relationship(
        "OfferProductModel",
        back_populates="offer",
        cascade="all, delete-orphan",
    )

    @property
    def product_ids(self) -> list[int]:
        return [p.product_id for p in self.products]


class OfferProductModel(Base):
    __tablename__ = "offer_products"

    id = Column(Integer, primary_key=True)
    offer_id = Column(Integer, ForeignKey("offers.id", ondelete="CASCADE"), nullable=False)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False)

    offer = relationship("OfferModel", back_populates="products")
