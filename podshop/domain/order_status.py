# podshop/domain/order_status.py
from enum import Enum

from podshop.utils.errors import InvalidStatusTransition


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    PROCESSING = "PROCESSING"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"
    REFUNDED = "REFUNDED"


# sciezka "do przodu", mozna przeskoczyc krok (np. PAID -> SHIPPED z webhooka)
FORWARD_FLOW = (
    OrderStatus.PENDING,
    OrderStatus.PAID,
    OrderStatus.PROCESSING,
    OrderStatus.SHIPPED,
    OrderStatus.DELIVERED,
)

_SIDE_EXITS = {OrderStatus.CANCELLED, OrderStatus.REFUNDED}
_SIDE_EXIT_SOURCES = {OrderStatus.PENDING, OrderStatus.PAID, OrderStatus.PROCESSING}


def can_transition(current: OrderStatus | str, target: OrderStatus | str) -> bool:
    current, target = OrderStatus(current), OrderStatus(target)

    if current == target:
        return True

    if target in _SIDE_EXITS:
        return current in _SIDE_EXIT_SOURCES

    if current in FORWARD_FLOW and target in FORWARD_FLOW:
        return FORWARD_FLOW.index(target) > FORWARD_FLOW.index(current)

    return False


def ensure_transition(current: OrderStatus | str, target: OrderStatus | str) -> bool:
    """Rzuca InvalidStatusTransition, zwraca True gdy status faktycznie sie zmienia."""
    if not can_transition(current, target):
        raise InvalidStatusTransition(
            f"Cannot move order from {OrderStatus(current).value} to {OrderStatus(target).value}"
        )
    return OrderStatus(current) != OrderStatus(target)


def least_advanced(statuses) -> OrderStatus:
    """Najmniej zaawansowany status z FORWARD_FLOW (zamowienie z kilku providerow)."""
    return min((OrderStatus(s) for s in statuses), key=FORWARD_FLOW.index)
