# podshop/providers/status_updates.py
from sqlalchemy.orm import Session

from podshop.domain.order_status import OrderStatus, FORWARD_FLOW, can_transition, least_advanced
from podshop.providers.base import ProviderType, StatusUpdate
from podshop.repos.order_repo import OrderRepo
from podshop.utils.errors import NotFoundError
from podshop.utils.logging import get_logger

logger = get_logger(__name__)

SUBMITTED = "SUBMITTED"


def apply_status_update(db: Session, provider: ProviderType, update: StatusUpdate) -> bool:
    """
    Zapisuje status z webhooka providera na zamowieniu.

    Zamowienie szukane po id zamowienia u providera (sub-order) albo po
    naszym id, zaleznie od tego co niesie payload. Status zamowienia
    z kilku providerow = najmniej zaawansowany status jego sub-orderow.
    Powtorzone albo przestarzale zdarzenie nie cofa statusu (zwraca False).
    """
    repo = OrderRepo(db)
    sub_order = None
    order = None

    if update.provider_order_id:
        sub_order = repo.get_sub_order(provider.value, update.provider_order_id)
        order = sub_order.order if sub_order else repo.get_by_provider_order_id(update.provider_order_id)
    elif update.order_id:
        try:
            order = repo.get_order(int(update.order_id))
        except (TypeError, ValueError):
            order = None

    if order is None:
        raise NotFoundError(
            f"No order for {provider.value} webhook "
            f"(provider order {update.provider_order_id}, order {update.order_id})"
        )

    if sub_order is None:
        sub_order = next((s for s in order.sub_orders if s.provider == provider.value), None)

    target = update.status
    if sub_order is not None:
        sub_order.provider_status = update.raw_status
        if target in FORWARD_FLOW:
            sub_order.fulfillment_status = target.value
            active = [
                s.fulfillment_status or OrderStatus.PROCESSING.value
                for s in order.sub_orders
                if s.status == SUBMITTED
            ]
            if active:
                target = least_advanced(active)

    current = OrderStatus(order.status)
    if current == target:
        db.commit()
        logger.info(f"Order {order.id} already {target.value}, {provider.value} event is a no-op")
        return False

    if not can_transition(current, target):
        db.commit()
        logger.warning(
            f"Ignoring {provider.value} status {update.raw_status} for order {order.id}: "
            f"{current.value} -> {target.value} is not allowed"
        )
        return False

    order.status = target.value
    db.commit()
    logger.info(f"Order {order.id} moved {current.value} -> {target.value} by {provider.value} webhook")
    return True
