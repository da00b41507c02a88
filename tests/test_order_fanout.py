import pytest

from conftest import make_paid_order, make_product
from podshop.providers.base import ProviderType
from podshop.providers.printify import PrintifyAdapter
from podshop.providers.printrove import PrintroveAdapter
from podshop.providers.registry import ProviderRegistry
from podshop.services.order_fanout_service import OrderFanOutService, group_items_by_provider
from podshop.services.lock_service import order_lock_key
from podshop.utils.errors import ConcurrencyConflict, InvalidStatusTransition, ProviderError


class RecordingPrintrove(PrintroveAdapter):
    def __init__(self):
        super().__init__()
        self.created = []
        self.cancelled = []

    def create_order(self, order_data):
        response = super().create_order(order_data)
        self.created.append(order_data)
        return response

    def cancel_order(self, provider_order_id):
        self.cancelled.append(provider_order_id)
        return super().cancel_order(provider_order_id)


class RecordingPrintify(PrintifyAdapter):
    def __init__(self, fail=False):
        super().__init__()
        self.fail = fail
        self.created = []

    def create_order(self, order_data):
        if self.fail:
            raise ProviderError("Printify rejected the request (422)")
        self.created.append(order_data)
        return super().create_order(order_data)


@pytest.fixture
def printrove():
    return RecordingPrintrove()


@pytest.fixture
def printify():
    return RecordingPrintify()


@pytest.fixture
def fanout_registry(printrove, printify):
    return ProviderRegistry({ProviderType.PRINTROVE: printrove, ProviderType.PRINTIFY: printify})


@pytest.fixture
def products(db):
    shirt = make_product(db, "Shirt", [("PRINTROVE", "pr-1", 299)])
    mug = make_product(db, "Mug", [("PRINTIFY", "pf-1", 699)])
    return shirt, mug


def test_group_items_by_provider(db, products):
    shirt, mug = products
    order = make_paid_order(db, [(shirt, "PRINTROVE", 1), (shirt, "PRINTROVE", 2), (mug, "PRINTIFY", 1)])

    groups = group_items_by_provider(order.items)
    assert list(groups) == ["PRINTROVE", "PRINTIFY"]
    assert len(groups["PRINTROVE"]) == 2


def test_fanout_submits_one_sub_order_per_provider(db, products, fanout_registry, printrove, printify, analytics):
    shirt, mug = products
    order = make_paid_order(db, [(shirt, "PRINTROVE", 1), (shirt, "PRINTROVE", 2), (mug, "PRINTIFY", 1)])

    results = OrderFanOutService(db, fanout_registry, analytics=analytics).process_order(order.id)

    assert len(results) == 2
    assert len(printrove.created) == 1
    assert len(printrove.created[0]["items"]) == 2
    assert len(printify.created) == 1
    db.refresh(order)
    assert order.status == "PROCESSING"
    assert order.provider_order_id == next(s.provider_order_id for s in order.sub_orders if s.provider == "PRINTROVE")
    assert {s.status for s in order.sub_orders} == {"SUBMITTED"}
    assert analytics.purchases == [order.id]


def test_provider_order_carries_shipping_and_totals(db, products, fanout_registry, printrove):
    shirt, _ = products
    order = make_paid_order(db, [(shirt, "PRINTROVE", 2)])

    OrderFanOutService(db, fanout_registry).process_order(order.id)

    sent = printrove.created[0]
    assert sent["external_id"] == str(order.id)
    assert sent["shipping"]["zip"] == "411001"
    assert sent["shipping"]["country"] == "India"
    assert sent["items"][0]["quantity"] == 2


def test_failure_compensates_submitted_sub_orders(db, products, printrove):
    shirt, mug = products
    registry = ProviderRegistry({ProviderType.PRINTROVE: printrove, ProviderType.PRINTIFY: RecordingPrintify(fail=True)})
    order = make_paid_order(db, [(shirt, "PRINTROVE", 1), (mug, "PRINTIFY", 1)])

    with pytest.raises(ProviderError):
        OrderFanOutService(db, registry).process_order(order.id)

    db.refresh(order)
    assert order.status == "CANCELLED"
    subs = {s.provider: s for s in order.sub_orders}
    assert subs["PRINTROVE"].status == "CANCELLED"
    assert printrove.cancelled == [subs["PRINTROVE"].provider_order_id]
    assert subs["PRINTIFY"].status == "FAILED"
    assert "422" in subs["PRINTIFY"].error


def test_rerun_on_processed_order_is_noop(db, products, fanout_registry, printrove, printify):
    shirt, mug = products
    order = make_paid_order(db, [(shirt, "PRINTROVE", 1), (mug, "PRINTIFY", 1)])
    svc = OrderFanOutService(db, fanout_registry)

    first = svc.process_order(order.id)
    second = svc.process_order(order.id)

    assert first == second
    assert len(printrove.created) == 1
    assert len(printify.created) == 1


def test_rerun_skips_already_submitted_providers(db, products, fanout_registry, printrove, printify):
    shirt, mug = products
    order = make_paid_order(db, [(shirt, "PRINTROVE", 1), (mug, "PRINTIFY", 1)])
    svc = OrderFanOutService(db, fanout_registry)
    svc.process_order(order.id)

    # worker padl po wyslaniu, zanim zamowienie przeszlo w PROCESSING
    order.status = "PAID"
    db.commit()
    svc.process_order(order.id)

    assert len(printrove.created) == 1
    assert len(printify.created) == 1
    db.refresh(order)
    assert order.status == "PROCESSING"


def test_only_paid_orders_are_fanned_out(db, products, fanout_registry):
    shirt, _ = products
    order = make_paid_order(db, [(shirt, "PRINTROVE", 1)], status="PENDING")

    with pytest.raises(InvalidStatusTransition):
        OrderFanOutService(db, fanout_registry).process_order(order.id)


def test_order_lock_prevents_parallel_fanout(db, products, fanout_registry, lock_service, printrove):
    shirt, _ = products
    order = make_paid_order(db, [(shirt, "PRINTROVE", 1)])
    lock_service.held[order_lock_key(order.id)] = "other-worker"

    with pytest.raises(ConcurrencyConflict):
        OrderFanOutService(db, fanout_registry, lock_service=lock_service).process_order(order.id)
    assert printrove.created == []
