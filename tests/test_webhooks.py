import base64
import hashlib
import hmac
import json

import pytest

from conftest import WEBHOOK_SECRETS, make_paid_order, make_product
from podshop.providers.base import ProviderType
from podshop.providers.registry import build_registry
from podshop.services.order_fanout_service import OrderFanOutService
from podshop.services.webhook_service import WebhookAudit, WebhookProcessor, fallback_event_key
from podshop.utils.errors import InvalidSignatureError, NotFoundError


def sign_hex(secret, body):
    return hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


def sign_base64(secret, body):
    return base64.b64encode(hmac.new(secret.encode(), body, hashlib.sha256).digest()).decode()


def encode(payload):
    return json.dumps(payload).encode()


@pytest.fixture
def processing_order(db, registry):
    shirt = make_product(db, "Shirt", [("PRINTROVE", "pr-1", 299)])
    mug = make_product(db, "Mug", [("PRINTIFY", "pf-1", 699)])
    order = make_paid_order(db, [(shirt, "PRINTROVE", 1), (mug, "PRINTIFY", 1)])
    OrderFanOutService(db, registry).process_order(order.id)
    db.refresh(order)
    return order


def sub_order_id(order, provider):
    return next(s.provider_order_id for s in order.sub_orders if s.provider == provider)


def deliver(db, registry, provider, payload, signature):
    """Ten sam przebieg co w routerze: log -> process -> mark processed."""
    body = encode(payload)
    processor = WebhookProcessor(db, registry)
    audit = WebhookAudit(db)
    event = audit.record_receipt(provider.value, "test", payload, signature(body), processor.event_key(provider, payload, body))
    changed = processor.process(provider, payload, signature(body), body)
    audit.mark_processed(event)
    return changed


def printrove_event(order, status, event_id="evt-1"):
    return {
        "event": "order.status_changed",
        "event_id": event_id,
        "order_id": sub_order_id(order, "PRINTROVE"),
        "status": status,
    }


def printrove_signature(body):
    return sign_hex(WEBHOOK_SECRETS["PRINTROVE_WEBHOOK_SECRET"], body)


def printify_signature(body):
    return "sha256=" + sign_hex(WEBHOOK_SECRETS["PRINTIFY_WEBHOOK_SECRET"], body)


def test_invalid_signature_is_rejected(db, registry, processing_order):
    payload = printrove_event(processing_order, "shipped")

    with pytest.raises(InvalidSignatureError):
        WebhookProcessor(db, registry).process(ProviderType.PRINTROVE, payload, "deadbeef", encode(payload))
    with pytest.raises(InvalidSignatureError):
        WebhookProcessor(db, registry).process(ProviderType.PRINTROVE, payload, None, encode(payload))


def test_missing_secret_rejects_everything(db, processing_order):
    payload = printrove_event(processing_order, "shipped")
    body = encode(payload)
    with pytest.raises(InvalidSignatureError):
        WebhookProcessor(db, build_registry({})).process(ProviderType.PRINTROVE, payload, printrove_signature(body), body)


def test_multi_provider_order_waits_for_least_advanced(db, registry, processing_order):
    order = processing_order

    assert deliver(db, registry, ProviderType.PRINTROVE, printrove_event(order, "shipped"), printrove_signature) is False
    db.refresh(order)
    assert order.status == "PROCESSING"

    printify_payload = {
        "id": "pfy-evt-1",
        "type": "order:shipment:created",
        "resource": {"id": sub_order_id(order, "PRINTIFY")},
    }
    assert deliver(db, registry, ProviderType.PRINTIFY, printify_payload, printify_signature) is True
    db.refresh(order)
    assert order.status == "SHIPPED"


def test_replayed_event_is_applied_once(db, registry, processing_order):
    order = processing_order
    printify_sub = next(s for s in order.sub_orders if s.provider == "PRINTIFY")
    printify_sub.fulfillment_status = "SHIPPED"
    db.commit()

    payload = printrove_event(order, "shipped", event_id="evt-replay")
    assert deliver(db, registry, ProviderType.PRINTROVE, payload, printrove_signature) is True
    db.refresh(order)
    assert order.status == "SHIPPED"

    order.status = "PROCESSING"
    db.commit()
    assert deliver(db, registry, ProviderType.PRINTROVE, payload, printrove_signature) is False
    db.refresh(order)
    assert order.status == "PROCESSING"


def test_stale_event_does_not_regress_status(db, registry, processing_order):
    order = processing_order
    order.status = "DELIVERED"
    db.commit()

    changed = deliver(db, registry, ProviderType.PRINTROVE, printrove_event(order, "processing", "evt-old"), printrove_signature)
    assert changed is False
    db.refresh(order)
    assert order.status == "DELIVERED"


def test_printful_webhook_keyed_by_external_id(db, registry):
    hoodie = make_product(db, "Hoodie", [("PRINTFUL", "pfl-1", 1299)])
    order = make_paid_order(db, [(hoodie, "PRINTFUL", 1)])
    OrderFanOutService(db, registry).process_order(order.id)

    payload = {
        "type": "package_shipped",
        "created": 1700000000,
        "data": {"order": {"id": 42, "external_id": str(order.id)}},
    }

    def signature(body):
        return sign_base64(WEBHOOK_SECRETS["PRINTFUL_WEBHOOK_SECRET"], body)

    assert deliver(db, registry, ProviderType.PRINTFUL, payload, signature) is True
    db.refresh(order)
    assert order.status == "SHIPPED"


def test_unknown_order_raises_not_found(db, registry):
    payload = {"event": "order.status_changed", "event_id": "e", "order_id": "nope", "status": "shipped"}
    body = encode(payload)

    with pytest.raises(NotFoundError):
        WebhookProcessor(db, registry).process(ProviderType.PRINTROVE, payload, printrove_signature(body), body)


def test_unhandled_event_type_is_ignored(db, registry, processing_order):
    payload = {"event": "product.updated", "event_id": "evt-x"}
    assert deliver(db, registry, ProviderType.PRINTROVE, payload, printrove_signature) is False


def test_status_event_without_order_id_is_ignored(db, registry):
    payload = {"event": "order.status_changed", "event_id": "evt-no-order", "status": "shipped"}
    assert deliver(db, registry, ProviderType.PRINTROVE, payload, printrove_signature) is False


def test_event_key_falls_back_to_body_hash_for_odd_shapes(db, registry):
    processor = WebhookProcessor(db, registry)
    body = b'{"type": "order_updated", "created": 1, "data": [1]}'

    assert processor.event_key(ProviderType.PRINTFUL, {"type": "order_updated", "created": 1, "data": [1]}, body) == (
        "order_updated:None:1"
    )
    assert processor.event_key(ProviderType.PRINTIFY, {"id": ["x"]}, body) == fallback_event_key(body)
    assert processor.event_key(ProviderType.PRINTROVE, {"event_id": 17}, body) == "17"
