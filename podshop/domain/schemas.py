# podshop/domain/schemas.py
from datetime import datetime
from decimal import Decimal
from typing import List, Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """Baza: pola snake_case w kodzie, camelCase w JSON."""

    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


ProviderName = Literal["PRINTROVE", "PRINTFUL", "PRINTIFY"]


# auth
class RegisterIn(ApiModel):
    email: EmailStr
    password: str = Field(..., min_length=6)
    name: str | None = Field(None, max_length=100)


class LoginIn(ApiModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class UserOut(ApiModel):
    id: int
    email: str
    name: str | None = None
    role: str
    created_at: datetime | None = None


# produkty
class ProviderMappingOut(ApiModel):
    id: int | None = None
    provider: str
    provider_product_id: str
    provider_variant_id: str | None = None
    price: Decimal
    cost: Decimal | None = None
    is_active: bool


class ProductOut(ApiModel):
    id: int
    title: str
    base_title: str | None = None
    description: str
    images: List[str] = []
    category: str
    tags: List[str] = []
    is_active: bool
    seo_title: str | None = None
    seo_description: str | None = None
    min_price: Decimal | None = None
    likes_count: int = 0
    provider_mappings: List[ProviderMappingOut] = []


class ProviderMappingIn(ApiModel):
    provider: ProviderName
    provider_product_id: str = Field(..., min_length=1)
    provider_variant_id: str | None = None
    price: Decimal = Field(..., ge=0)
    cost: Decimal | None = Field(None, ge=0)
    is_active: bool = True


class ProductUpsertIn(ApiModel):
    id: int | None = None
    title: str = Field(..., min_length=1, max_length=255)
    description: str = ""
    images: List[str] = []
    category: str = "Uncategorized"
    tags: List[str] = []
    is_active: bool = True
    seo_title: str | None = None
    seo_description: str | None = None
    provider_mappings: List[ProviderMappingIn] = []


# koszyk
class CartItemIn(ApiModel):
    product_id: int = Field(..., gt=0)
    quantity: int = Field(..., ge=1)
    selected_provider: ProviderName | None = None


class CartUpdateIn(ApiModel):
    items: List[CartItemIn]


class CartItemOut(ApiModel):
    product_id: int
    quantity: int
    selected_provider: str | None = None
    product: ProductOut
    selected_mapping: ProviderMappingOut
    subtotal: Decimal


class CartOut(ApiModel):
    id: int
    version: int
    items: List[CartItemOut]
    total: Decimal


# zamowienia
class ShippingAddressIn(ApiModel):
    name: str = Field(..., min_length=1)
    line1: str = Field(..., min_length=1)
    line2: str | None = None
    city: str = Field(..., min_length=1)
    state: str = Field(..., min_length=1)
    pincode: str = Field(..., min_length=3)
    country: str = "India"


class OrderItemIn(ApiModel):
    product_id: int = Field(..., gt=0)
    quantity: int = Field(..., ge=1)
    selected_provider: ProviderName | None = None


class OrderCreateIn(ApiModel):
    items: List[OrderItemIn] = Field(..., min_length=1)
    shipping_address: ShippingAddressIn
    email: EmailStr
    phone: str = Field(..., min_length=5)
    offer_id: int | None = Field(default=None, gt=0)


class VerifyPaymentIn(ApiModel):
    order_id: int = Field(..., gt=0)
    payment_id: str = Field(..., min_length=1)
    signature: str = Field(..., min_length=1)


class OrderItemOut(ApiModel):
    id: int
    product_id: int
    quantity: int
    price: Decimal
    provider: str
    provider_product_id: str
    provider_variant_id: str | None = None


class SubOrderOut(ApiModel):
    provider: str
    provider_order_id: str | None = None
    status: str
    fulfillment_status: str | None = None
    provider_status: str | None = None
    error: str | None = None


class OrderOut(ApiModel):
    id: int
    user_id: int | None = None
    offer_id: int | None = None
    email: str
    phone: str | None = None
    status: str
    subtotal: Decimal
    discount: Decimal = Decimal("0")
    shipping: Decimal
    tax: Decimal
    total: Decimal
    payment_order_id: str | None = None
    payment_id: str | None = None
    provider_order_id: str | None = None
    shipping_address: dict | None = None
    items: List[OrderItemOut] = []
    sub_orders: List[SubOrderOut] = []
    created_at: datetime | None = None
    updated_at: datetime | None = None


class OrderStatusIn(ApiModel):
    status: Literal["PENDING", "PAID", "PROCESSING", "SHIPPED", "DELIVERED", "CANCELLED", "REFUNDED"]


# oferty
class OfferOut(ApiModel):
    id: int
    title: str
    description: str
    type: str
    scope: str
    value: Decimal
    category: str | None = None
    min_order_value: Decimal | None = None
    max_discount: Decimal | None = None
    usage_limit: int | None = None
    used_count: int
    valid_from: datetime
    valid_to: datetime
    is_active: bool
    product_ids: List[int] = []


class OfferUpsertIn(ApiModel):
    id: int | None = None
    title: str = Field(..., min_length=1)
    description: str = ""
    type: Literal["PERCENTAGE", "FIXED_AMOUNT"]
    scope: Literal["SITEWIDE", "PRODUCT", "CATEGORY"]
    value: Decimal = Field(..., gt=0)
    category: str | None = None
    min_order_value: Decimal | None = Field(None, ge=0)
    max_discount: Decimal | None = Field(None, ge=0)
    usage_limit: int | None = Field(None, ge=1)
    valid_from: datetime
    valid_to: datetime
    is_active: bool = True
    product_ids: List[int] = []

    @field_validator("valid_to")
    @classmethod
    def valid_range(cls, value, info):
        valid_from = info.data.get("valid_from")
        if valid_from and value < valid_from:
            raise ValueError("validTo must be after validFrom")
        return value


class ApplyOfferIn(ApiModel):
    offer_id: int = Field(..., gt=0)
    cart_total: Decimal = Field(..., ge=0)
    product_ids: List[int] | None = None


# admin
class SettingsIn(ApiModel):
    settings: dict[str, str]


class SyncCatalogIn(ApiModel):
    provider: ProviderName | None = None
