from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool

from podshop.api.deps import get_registry
from podshop.context import AppContext
from podshop.data.database import create_db_engine, init_db, make_session_factory
from podshop.data.models.order import OrderModel, OrderItemModel
from podshop.data.models.product import ProductModel, ProviderMappingModel
from podshop.data.models.user import UserModel
from podshop.main import create_app
from podshop.providers.registry import build_registry
from podshop.services.payment_service import RazorpayGateway
from podshop.utils.crypto import SettingsCipher
from podshop.utils.security import create_access_token, hash_password

WEBHOOK_SECRETS = {
    "PRINTROVE_WEBHOOK_SECRET": "printrove-secret",
    "PRINTFUL_WEBHOOK_SECRET": "printful-secret",
    "PRINTIFY_WEBHOOK_SECRET": "printify-secret",
}
RAZORPAY_SECRET = "rzp-key-secret"
RAZORPAY_WEBHOOK_SECRET = "rzp-webhook-secret"


class FakeLockService:
    """Lock w pamieci z tym samym API co LockService."""

    def __init__(self):
        self.held = {}
        self.acquired = []

    def acquire(self, key, owner, ttl):
        if key in self.held:
            return False
        self.held[key] = owner
        self.acquired.append(key)
        return True

    def release(self, key, owner):
        if self.held.get(key) == owner:
            del self.held[key]
            return True
        return False

    def close(self):
        pass


class RecordingJobQueue:
    def __init__(self):
        self.fanouts = []
        self.syncs = []

    def enqueue_order_fanout(self, order_id):
        self.fanouts.append(order_id)

    def enqueue_catalog_sync(self, provider):
        self.syncs.append(provider.value)


class FakeAnalytics:
    def __init__(self):
        self.purchases = []

    def track_purchase(self, order):
        self.purchases.append(order.id)


@pytest.fixture
def engine():
    engine = create_db_engine("sqlite://", poolclass=StaticPool)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def lock_service():
    return FakeLockService()


@pytest.fixture
def job_queue():
    return RecordingJobQueue()


@pytest.fixture
def analytics():
    return FakeAnalytics()


@pytest.fixture
def registry():
    return build_registry(WEBHOOK_SECRETS)


@pytest.fixture
def payment_gateway():
    return RazorpayGateway(
        key_id=None,
        key_secret=RAZORPAY_SECRET,
        webhook_secret=RAZORPAY_WEBHOOK_SECRET,
    )


@pytest.fixture
def ctx(engine, session_factory, lock_service, job_queue, payment_gateway):
    return AppContext(
        engine=engine,
        session_factory=session_factory,
        lock_service=lock_service,
        job_queue=job_queue,
        payment_gateway=payment_gateway,
        cipher=SettingsCipher("test-encryption-key"),
    )


@pytest.fixture
def client(ctx, registry):
    app = create_app(ctx)
    app.dependency_overrides[get_registry] = lambda: registry
    with TestClient(app) as test_client:
        yield test_client


# fabryki danych
def _mapping(provider, pid, price, is_active=True):
    return ProviderMappingModel(
        provider=provider,
        provider_product_id=pid,
        provider_variant_id=f"{pid}-var",
        price=Decimal(str(price)),
        cost=(Decimal(str(price)) * Decimal("0.6")).quantize(Decimal("0.01")),
        is_active=is_active,
    )


def make_product(db, title, mappings, category="Uncategorized", tags=None, is_active=True):
    product = ProductModel(
        title=title,
        base_title=title,
        description=f"{title} description",
        images=[],
        category=category,
        tags=tags or [],
        is_active=is_active,
        provider_mappings=[_mapping(*m) for m in mappings],
    )
    db.add(product)
    db.commit()
    return product


def make_user(db, email="user@example.com", role="USER", password="secret123"):
    user = UserModel(email=email, name="Test", password_hash=hash_password(password), role=role)
    db.add(user)
    db.commit()
    return user


def auth_header(user):
    return {"Authorization": f"Bearer {create_access_token(user.id, user.email, user.role)}"}


def make_paid_order(db, lines, status="PAID"):
    """lines: (product, provider, quantity)"""
    items = []
    subtotal = Decimal("0")
    for product, provider, quantity in lines:
        mapping = next(m for m in product.provider_mappings if m.provider == provider)
        subtotal += mapping.price * quantity
        items.append(
            OrderItemModel(
                product_id=product.id,
                quantity=quantity,
                price=mapping.price,
                provider=provider,
                provider_product_id=mapping.provider_product_id,
                provider_variant_id=mapping.provider_variant_id,
            )
        )
    order = OrderModel(
        email="buyer@example.com",
        phone="9999999999",
        status=status,
        subtotal=subtotal,
        shipping=Decimal("0"),
        tax=Decimal("0"),
        total=subtotal,
        shipping_address={"name": "Buyer", "line1": "MG Road 1", "city": "Pune", "state": "MH", "pincode": "411001"},
        items=items,
    )
    db.add(order)
    db.commit()
    return order
