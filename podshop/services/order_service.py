# podshop/services/order_service.py
from decimal import Decimal

from sqlalchemy.orm import Session

from podshop.data.models.order import OrderModel, OrderItemModel
from podshop.data.models.product import ProductModel, ProviderMappingModel
from podshop.domain.order_status import OrderStatus, ensure_transition
from podshop.providers.normalizer import to_money
from podshop.repos.order_repo import OrderRepo
from podshop.repos.product_repo import ProductRepo
from podshop.services.offer_service import OfferService
from podshop.utils.errors import (
    ForbiddenError,
    InvalidStatusTransition,
    NotFoundError,
    PaymentVerificationError,
    ProviderUnavailable,
    ValidationError,
)
from podshop.utils.logging import get_logger
from podshop.utils.settings import CURRENCY, FLAT_SHIPPING, FREE_SHIPPING_THRESHOLD, TAX_RATE

logger = get_logger(__name__)


def select_mapping(product: ProductModel, selected_provider: str | None = None) -> ProviderMappingModel | None:
    """Wybrany provider jesli ma aktywne mapowanie, inaczej najtansze."""
    mappings = product.active_mappings
    if not mappings:
        return None
    if selected_provider:
        for mapping in mappings:
            if mapping.provider == selected_provider:
                return mapping
    return min(mappings, key=lambda m: m.price)


def compute_totals(subtotal: Decimal, discount: Decimal = Decimal("0")) -> dict[str, Decimal]:
    """Wysylka i podatek liczone od kwoty po rabacie."""
    discounted = subtotal - discount
    shipping = Decimal("0") if discounted > FREE_SHIPPING_THRESHOLD else FLAT_SHIPPING
    tax = to_money(discounted * TAX_RATE)
    subtotal = to_money(subtotal)
    discount = to_money(discount)
    shipping = to_money(shipping)
    return {
        "subtotal": subtotal,
        "discount": discount,
        "shipping": shipping,
        "tax": tax,
        "total": subtotal - discount + shipping + tax,
    }


class OrderService:
    """
    Serwis odpowiedzialny za domene zamowien (checkout, platnosc, odczyt).
    Fan-out do providerow robi osobny job (OrderFanOutService).
    """

    def __init__(self, db: Session, payment_gateway, job_queue):
        self.db = db
        self.repo = OrderRepo(db)
        self.products = ProductRepo(db)
        self.offers = OfferService(db)
        self.payment_gateway = payment_gateway
        self.job_queue = job_queue

    def create_order(self, payload, user_id: int | None = None) -> tuple[OrderModel, dict]:
        """
        Use Case: Tworzenie zamowienia.

        1. Pobiera aktywne produkty i wybiera mapowanie providera per pozycja
        2. Liczy subtotal / rabat / shipping / tax / total (snapshot, potem bez zmian)
        3. Zapisuje zamowienie PENDING
        4. Tworzy zamowienie w bramce platnosci
        """
        requested_ids = {item.product_id for item in payload.items}
        products = {p.id: p for p in self.products.get_public_products(requested_ids)}
        if len(products) != len(requested_ids):
            raise ValidationError("Some products are not available")

        subtotal = Decimal("0")
        order_items = []
        for item in payload.items:
            mapping = select_mapping(products[item.product_id], item.selected_provider)
            subtotal += mapping.price * item.quantity
            order_items.append(
                OrderItemModel(
                    product_id=item.product_id,
                    quantity=item.quantity,
                    price=mapping.price,
                    provider=mapping.provider,
                    provider_product_id=mapping.provider_product_id,
                    provider_variant_id=mapping.provider_variant_id,
                )
            )

        discount = Decimal("0")
        if payload.offer_id is not None:
            applied = self.offers.apply(payload.offer_id, subtotal, sorted(requested_ids))
            discount = applied["discount"]

        totals = compute_totals(subtotal, discount)
        order = self.repo.create_order(
            OrderModel(
                user_id=user_id,
                offer_id=payload.offer_id,
                email=payload.email,
                phone=payload.phone,
                status=OrderStatus.PENDING.value,
                shipping_address={**payload.shipping_address.model_dump(), "phone": payload.phone},
                items=order_items,
                **totals,
            )
        )
        logger.info(f"Order {order.id} created, total {order.total} {CURRENCY}")

        try:
            gateway_order = self.payment_gateway.create_order(
                amount=int((order.total * 100).to_integral_value()),
                currency=CURRENCY,
                receipt=str(order.id),
                notes={"orderId": str(order.id), "email": order.email},
            )
        except ProviderUnavailable:
            order.status = OrderStatus.CANCELLED.value
            self.repo.commit()
            logger.error(f"Order {order.id} cancelled, payment gateway unavailable")
            raise

        order.payment_order_id = gateway_order["id"]
        self.repo.commit()
        return order, gateway_order

    def verify_payment(self, order_id: int, payment_id: str, signature: str) -> OrderModel:
        """
        Use Case: Weryfikacja platnosci. PENDING -> PAID i job fan-out do kolejki.
        Ponowienie z tym samym payment_id zwraca zamowienie bez zmian.
        """
        order = self.repo.get_order(order_id)
        if not order:
            raise NotFoundError("Order not found")

        if order.payment_id and order.payment_id == payment_id and order.status != OrderStatus.PENDING.value:
            logger.info(f"Payment {payment_id} for order {order_id} already verified")
            return order

        if order.status != OrderStatus.PENDING.value:
            raise InvalidStatusTransition(f"Order {order_id} is already {order.status}")

        if not self.payment_gateway.verify_payment_signature(order.payment_order_id, payment_id, signature):
            logger.warning(f"Payment verification failed for order {order_id}")
            raise PaymentVerificationError()

        self._mark_paid(order, payment_id)
        logger.info(f"Order {order_id} paid ({payment_id})")

        self.job_queue.enqueue_order_fanout(order.id)
        return order

    def handle_gateway_event(self, payload: dict) -> bool:
        """
        Webhook bramki platnosci. payment.captured: PENDING -> PAID + fan-out.
        Zwraca True gdy zamowienie zmienilo status.
        """
        event = payload.get("event")
        if event != "payment.captured":
            logger.info(f"Payment gateway event {event} ignored")
            return False

        payment = payload.get("payload", {}).get("payment", {}).get("entity", {})
        notes = payment.get("notes") or {}
        order = None
        if notes.get("orderId"):
            order = self.repo.get_order(int(notes["orderId"]))
        if order is None and payment.get("order_id"):
            order = self.repo.get_by_payment_order_id(payment["order_id"])
        if order is None:
            raise NotFoundError(f"No order for payment {payment.get('id')}")

        if order.status != OrderStatus.PENDING.value:
            logger.info(f"Order {order.id} is {order.status}, payment.captured is a no-op")
            return False

        self._mark_paid(order, payment.get("id"))
        logger.info(f"Order {order.id} paid via gateway webhook ({order.payment_id})")

        self.job_queue.enqueue_order_fanout(order.id)
        return True

    def _mark_paid(self, order: OrderModel, payment_id: str | None):
        # rabat liczy sie jako zuzyty dopiero przy oplaconym zamowieniu
        ensure_transition(order.status, OrderStatus.PAID)
        order.status = OrderStatus.PAID.value
        order.payment_id = payment_id
        if order.offer_id is not None:
            self.offers.redeem(order.offer_id)
        self.repo.commit()

    def list_user_orders(self, user_id: int) -> list[OrderModel]:
        return self.repo.list_user_orders(user_id)

    def get_order(self, order_id: int, user_id: int, is_admin: bool = False) -> OrderModel:
        order = self.repo.get_order_with_items(order_id)
        if not order:
            raise NotFoundError("Order not found")
        if not is_admin and order.user_id != user_id:
            raise ForbiddenError("Access to this order is denied")
        return order

    def update_status(self, order_id: int, status: OrderStatus | str) -> OrderModel:
        """Zmiana statusu z panelu admina, tylko dozwolone przejscia."""
        status = OrderStatus(status)
        order = self.repo.get_order(order_id)
        if not order:
            raise NotFoundError("Order not found")
        ensure_transition(order.status, status)
        return self.repo.update_order_status(order_id, status.value)
