# podshop/data/models/product.py
from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    Boolean,
    DateTime,
    Numeric,
    ForeignKey,
    JSON,
    Index,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from podshop.data.database import Base


def _now():
    return datetime.now(timezone.utc)


class ProductModel(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True)
    title = Column(String(255), nullable=False, index=True)
    # tytul bez sufiksu regionu, klucz tozsamosci przy merge
    base_title = Column(String(255), nullable=False, index=True)
    description = Column(Text, nullable=False, default="")
    images = Column(JSON, nullable=False, default=list)
    category = Column(String(120), nullable=False, default="Uncategorized", index=True)
    tags = Column(JSON, nullable=False, default=list)
    is_active = Column(Boolean, nullable=False, default=True)

    seo_title = Column(String(255), nullable=True)
    seo_description = Column(String(320), nullable=True)

    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_now, onupdate=_now)

    provider_mappings = relationship(
        "ProviderMappingModel",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="ProviderMappingModel.id",
    )
    likes = relationship(
        "ProductLikeModel",
        back_populates="product",
        cascade="all, delete-orphan",
    )

    @property
    def active_mappings(self):
        return [m for m in self.provider_mappings if m.is_active]

    @property
    def min_price(self):
        # brak aktywnych mapowan = produkt niedostepny
        prices = [m.price for m in self.active_mappings]
        return min(prices) if prices else None

    @property
    def likes_count(self) -> int:
        return len(self.likes)


class ProviderMappingModel(Base):
    __tablename__ = "provider_mappings"

    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False)

    provider = Column(String(20), nullable=False)
    provider_product_id = Column(String(120), nullable=False)
    provider_variant_id = Column(String(120), nullable=True)
    price = Column(Numeric(10, 2), nullable=False)
    cost = Column(Numeric(10, 2), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)

    product = relationship("ProductModel", back_populates="provider_mappings")

    __table_args__ = (
        Index("ix_mapping_provider_product", "provider", "provider_product_id"),
    )


class ProductLikeModel(Base):
    __tablename__ = "product_likes"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)

    product = relationship("ProductModel", back_populates="likes")

    __table_args__ = (UniqueConstraint("user_id", "product_id", name="u_user_product_like"),)
