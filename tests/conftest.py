import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("GATEWAY_BACKEND", "sql")
os.environ.setdefault("PAYSTACK_SECRET_KEY", "sk_test_secret")

from decimal import Decimal

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from storefront.data import models  # noqa: F401
from storefront.data.database import Base, SessionLocal, engine
from storefront.domain.errors import AuthError
from storefront.domain.session import SessionContext
from storefront.repos.gateway import DataGateway, GatewayError, GatewayResult
from storefront.repos.guest_cart_repo import GuestCartRepo
from storefront.repos.sql_gateway import SqlGateway
from storefront.services.analytics_service import AnalyticsService
from storefront.services.auth_client import AuthUser
from storefront.services.cart_service import CartService
from storefront.services.payment_bridge import PaymentBridge, PaymentInit

SESSION_ID = "sess-001"
USER_ID = "user-001"
USER_EMAIL = "ada@example.com"
USER_PASSWORD = "correct horse"


class FakeRedis:
    """Just the calls the repos make, backed by a dict."""

    def __init__(self):
        self.store = {}
        self.ttl = {}
        self.down = False

    def _check(self):
        if self.down:
            raise RedisConnectionError("redis is down")

    def get(self, name):
        self._check()
        return self.store.get(name)

    def set(self, name, value, ex=None):
        self._check()
        self.store[name] = value
        self.ttl[name] = ex
        return True

    def delete(self, *names):
        self._check()
        return sum(1 for name in names if self.store.pop(name, None) is not None)


class FlakyGateway(DataGateway):
    """Delegates to a real gateway, failing the operations listed in ``failures``."""

    def __init__(self, inner: DataGateway):
        self.inner = inner
        self.failures = {}
        self.calls = []

    def fail(self, op, table=None, code="42501", message="permission denied"):
        self.failures[(op, table)] = GatewayError(code=code, message=message)

    def _maybe_fail(self, op, table):
        self.calls.append((op, table))
        error = self.failures.get((op, table)) or self.failures.get((op, None))
        if error:
            return GatewayResult(error=error)
        return None

    def select(self, table, filters=None, order_by=None, limit=None, single=False):
        return self._maybe_fail("select", table) or self.inner.select(table, filters, order_by, limit, single)

    def insert(self, table, rows, single=False):
        return self._maybe_fail("insert", table) or self.inner.insert(table, rows, single)

    def update(self, table, values, filters, single=False):
        return self._maybe_fail("update", table) or self.inner.update(table, values, filters, single)

    def delete(self, table, filters):
        return self._maybe_fail("delete", table) or self.inner.delete(table, filters)

    def upsert(self, table, row, on_conflict, single=True):
        return self._maybe_fail("upsert", table) or self.inner.upsert(table, row, on_conflict, single)

    def rpc(self, fn, params=None):
        return self._maybe_fail("rpc", fn) or self.inner.rpc(fn, params)


class ScriptedBridge(PaymentBridge):
    def __init__(self, outcome="success"):
        self.outcome = outcome
        self.opened = []
        self.settled = []

    def initialize(self, email, amount, reference, metadata):
        self.opened.append({"email": email, "amount": amount, "reference": reference, "metadata": metadata})
        return PaymentInit(reference=reference, authorization_url=f"https://pay.test/{reference}", access_code="ac")

    def settle(self, reference, on_success, on_cancel):
        self.settled.append(reference)
        if self.outcome == "success":
            return on_success(reference)
        return on_cancel()


class FakeAuthClient:
    def __init__(self):
        self.users = {USER_EMAIL: AuthUser(id=USER_ID, email=USER_EMAIL, access_token="token-001")}

    def sign_in_with_password(self, email, password):
        user = self.users.get(email)
        if user is None or password != USER_PASSWORD:
            raise AuthError("Invalid login credentials")
        return user

    def get_user(self, access_token):
        return next((u for u in self.users.values() if u.access_token == access_token), None)

    def find_user_by_email(self, email):
        return self.users.get(email)


@pytest.fixture()
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    yield session
    session.close()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def gateway(db):
    return FlakyGateway(SqlGateway(db))


@pytest.fixture()
def redis_client():
    return FakeRedis()


@pytest.fixture()
def guest_repo(redis_client):
    return GuestCartRepo(redis_client)


@pytest.fixture()
def events():
    return []


@pytest.fixture()
def analytics(events):
    return AnalyticsService(SESSION_ID, dispatch=events.append)


@pytest.fixture()
def guest_session():
    return SessionContext(session_id=SESSION_ID)


@pytest.fixture()
def user_session():
    return SessionContext(session_id=SESSION_ID, user_id=USER_ID, email=USER_EMAIL, access_token="token-001")


@pytest.fixture()
def add_product(gateway):
    def _add(product_id, price, name=None, stock=10):
        result = gateway.inner.insert(
            "products",
            {
                "id": product_id,
                "name": name or f"Product {product_id}",
                "category": "bags",
                "price": Decimal(str(price)),
                "stock": stock,
                "images": [],
            },
            single=True,
        )
        assert result.ok, result.error
        return result.data

    return _add


@pytest.fixture()
def make_cart(gateway, guest_repo, analytics):
    def _make(session):
        cart = CartService(session, gateway, guest_repo, analytics)
        cart.load()
        return cart

    return _make


@pytest.fixture()
def server_lines(gateway):
    def _read(user_id=USER_ID):
        result = gateway.inner.select("cart_items", {"user_id": user_id})
        assert result.ok, result.error
        return {row["product_id"]: row["quantity"] for row in result.data}

    return _read


@pytest.fixture()
def bridge():
    return ScriptedBridge()


@pytest.fixture()
def auth_client():
    return FakeAuthClient()
