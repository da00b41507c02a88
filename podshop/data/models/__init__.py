#import wszystkich modeli zeby SQLAlchemy je zarejestrowal w base metadata

from podshop.data.models.user import UserModel
from podshop.data.models.product import ProductModel, ProviderMappingModel, ProductLikeModel
from podshop.data.models.cart import CartModel
from podshop.data.models.cart_item import CartItemModel
from podshop.data.models.order import OrderModel, OrderItemModel, ProviderSubOrderModel
from podshop.data.models.offer import OfferModel, OfferProductModel
from podshop.data.models.webhook_event import WebhookEventModel
from podshop.data.models.setting import SettingModel

__all__ = [
    "UserModel",
    "ProductModel",
    "ProviderMappingModel",
    "ProductLikeModel",
    "CartModel",
    "CartItemModel",
    "OrderModel",
    "OrderItemModel",
    "ProviderSubOrderModel",
    "OfferModel",
    "OfferProductModel",
    "WebhookEventModel",
    "SettingModel",
]
