# podshop/services/order_fanout_service.py
from dataclasses import dataclass
from enum import Enum
from uuid import uuid4

from sqlalchemy.orm import Session

from podshop.data.models.order import OrderModel, OrderItemModel, ProviderSubOrderModel
from podshop.domain.order_status import OrderStatus
from podshop.providers.registry import ProviderRegistry
from podshop.repos.order_repo import OrderRepo
from podshop.services.lock_service import order_lock_key
from podshop.utils.errors import AppError, ConcurrencyConflict, InvalidStatusTransition, NotFoundError, ProviderError, ValidationError
from podshop.utils.logging import get_logger
from podshop.utils.settings import CURRENCY, ORDER_LOCK_TTL_SECONDS

logger = get_logger(__name__)


class FanOutState(str, Enum):
    LOADED = "LOADED"
    GROUPED = "GROUPED"
    SUBMITTING = "SUBMITTING"
    UPDATED = "UPDATED"
    DONE = "DONE"
    FAILED = "FAILED"


class SubOrderStatus(str, Enum):
    SUBMITTED = "SUBMITTED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"
    COMPENSATION_FAILED = "COMPENSATION_FAILED"


@dataclass
class SubOrderResult:
    provider: str
    provider_order_id: str | None
    status: str


_ALREADY_FANNED_OUT = {OrderStatus.PROCESSING, OrderStatus.SHIPPED, OrderStatus.DELIVERED}


def group_items_by_provider(items: list[OrderItemModel]) -> dict[str, list[OrderItemModel]]:
    # provider zapisany na pozycji przy tworzeniu zamowienia, nie liczony od nowa
    groups: dict[str, list[OrderItemModel]] = {}
    for item in items:
        groups.setdefault(item.provider, []).append(item)
    return groups


def build_provider_order(order: OrderModel, items: list[OrderItemModel]) -> dict:
    address = order.shipping_address or {}
    return {
        "external_id": str(order.id),
        "items": [
            {
                "product_id": item.provider_product_id,
                "variant_id": item.provider_variant_id,
                "quantity": item.quantity,
                "price": str(item.price),
            }
            for item in items
        ],
        "shipping": {
            "name": address.get("name", ""),
            "phone": address.get("phone", ""),
            "address": address.get("line1", ""),
            "address2": address.get("line2") or "",
            "city": address.get("city", ""),
            "state": address.get("state", ""),
            "country": address.get("country", "India"),
            "zip": address.get("pincode", ""),
            "email": order.email,
        },
        "currency": CURRENCY,
        "subtotal": order.subtotal,
        "shipping_cost": order.shipping,
        "tax": order.tax,
    }


class OrderFanOutService:
    """
    Use Case: rozeslanie oplaconego zamowienia do providerow (saga).

    LOADED -> GROUPED -> SUBMITTING (x N providerow) -> UPDATED -> DONE | FAILED

    Kazde wyslane zamowienie czastkowe jest zapisywane od razu (ProviderSubOrder),
    ponowne uruchomienie pomija providerow ze statusem SUBMITTED. Przy bledzie
    juz wyslane sub-ordery sa anulowane (kompensacja), zamowienie -> CANCELLED,
    a wyjatek leci dalej do kolejki.
    """

    def __init__(self, db: Session, registry: ProviderRegistry, lock_service=None, analytics=None):
        self.repo = OrderRepo(db)
        self.registry = registry
        self.lock_service = lock_service
        self.analytics = analytics
        self.state = None
        self.owner = f"order-fanout:{uuid4().hex}"

    def process_order(self, order_id: int) -> list[SubOrderResult]:
        key = order_lock_key(order_id)
        if self.lock_service and not self.lock_service.acquire(key, self.owner, ORDER_LOCK_TTL_SECONDS):
            raise ConcurrencyConflict(f"Order {order_id} is already being fanned out")

        try:
            return self._process(order_id)
        finally:
            if self.lock_service:
                self.lock_service.release(key, self.owner)

    def _process(self, order_id: int) -> list[SubOrderResult]:
        order = self.repo.get_order_with_items(order_id)
        if not order:
            raise NotFoundError(f"Order {order_id} not found")
        self.state = FanOutState.LOADED

        status = OrderStatus(order.status)
        if status in _ALREADY_FANNED_OUT:
            logger.info(f"Order {order_id} already {status.value}, skipping fan-out")
            self.state = FanOutState.DONE
            return self._results(order)
        if status != OrderStatus.PAID:
            raise InvalidStatusTransition(f"Order {order_id} is {status.value}, only PAID orders are fanned out")
        if not order.items:
            raise ValidationError(f"Order {order_id} has no items")

        groups = group_items_by_provider(order.items)
        self.state = FanOutState.GROUPED
        logger.info(f"Order {order_id} split into {len(groups)} provider group(s): {', '.join(groups)}")

        submitted = {s.provider for s in order.sub_orders if s.status == SubOrderStatus.SUBMITTED}

        self.state = FanOutState.SUBMITTING
        try:
            for provider, items in groups.items():
                if provider in submitted:
                    logger.info(f"Order {order_id}: {provider} sub-order already submitted")
                    continue
                self._submit(order, provider, items)
        except Exception as e:
            self.state = FanOutState.FAILED
            logger.error(f"Order processing failed for {order_id}: {e}")
            self._compensate(order)
            order.status = OrderStatus.CANCELLED.value
            self.repo.commit()
            if isinstance(e, AppError):
                raise
            raise ProviderError(f"Order {order_id} fan-out failed: {e}") from e

        # glowne providerOrderId = pierwsza grupa, pelna lista w sub_orders
        first_provider = next(iter(groups))
        primary = next(s for s in order.sub_orders if s.provider == first_provider)
        order.status = OrderStatus.PROCESSING.value
        order.provider_order_id = primary.provider_order_id
        self.repo.commit()
        self.state = FanOutState.UPDATED

        self._track_purchase(order)
        self.state = FanOutState.DONE
        logger.info(f"Order {order_id} processed successfully")
        return self._results(order)

    def _submit(self, order: OrderModel, provider: str, items: list[OrderItemModel]):
        sub_order = next((s for s in order.sub_orders if s.provider == provider), None)
        if sub_order is None:
            sub_order = ProviderSubOrderModel(provider=provider, status=SubOrderStatus.FAILED.value)
            order.sub_orders.append(sub_order)

        try:
            adapter = self.registry.get(provider)
            response = adapter.create_order(build_provider_order(order, items))
            if not response or not response.get("id"):
                raise ProviderError(f"{provider} returned no order id")
        except Exception as e:
            sub_order.status = SubOrderStatus.FAILED.value
            sub_order.error = str(e)
            self.repo.commit()
            raise

        sub_order.provider_order_id = str(response["id"])
        sub_order.provider_status = response.get("status")
        sub_order.status = SubOrderStatus.SUBMITTED.value
        sub_order.error = None
        self.repo.commit()
        logger.info(f"Order {order.id}: {provider} sub-order {sub_order.provider_order_id} submitted")

    def _compensate(self, order: OrderModel):
        for sub_order in order.sub_orders:
            if sub_order.status != SubOrderStatus.SUBMITTED:
                continue
            try:
                self.registry.get(sub_order.provider).cancel_order(sub_order.provider_order_id)
                sub_order.status = SubOrderStatus.CANCELLED.value
                logger.info(f"Order {order.id}: cancelled {sub_order.provider} sub-order {sub_order.provider_order_id}")
            except Exception as e:
                # zostaje do recznej obslugi, status widoczny w panelu admina
                sub_order.status = SubOrderStatus.COMPENSATION_FAILED.value
                sub_order.error = f"cancel failed: {e}"
                logger.error(
                    f"Order {order.id}: could not cancel {sub_order.provider} "
                    f"sub-order {sub_order.provider_order_id}: {e}"
                )
        self.repo.commit()

    def _track_purchase(self, order: OrderModel):
        if self.analytics is None:
            return
        # best-effort, status zamowienia juz zapisany
        try:
            self.analytics.track_purchase(order)
        except Exception as e:
            logger.warning(f"Failed to queue purchase event for order {order.id}: {e}")

    def _results(self, order: OrderModel) -> list[SubOrderResult]:
        return [
            SubOrderResult(provider=s.provider, provider_order_id=s.provider_order_id, status=s.status)
            for s in order.sub_orders
        ]
