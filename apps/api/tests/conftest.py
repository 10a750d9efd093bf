import os

os.environ.setdefault("STOCKFLOW_DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("STOCKFLOW_TESTING", "true")
os.environ.setdefault("SIDE_EFFECTS_INLINE", "true")

import threading  # noqa: E402
from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

import app.models  # noqa: E402,F401
from app.auth.dependencies import AuthContext  # noqa: E402
from app.auth.jwt import issue_access_token  # noqa: E402
from app.config import settings  # noqa: E402
from app.db.base import Base  # noqa: E402
from app.db.session import SessionLocal, get_db  # noqa: E402
from app.db.session import engine as app_engine  # noqa: E402
from app.dependencies import OrderIntegrations, get_order_integrations  # noqa: E402
from app.integrations.errors import IntegrationError  # noqa: E402
from app.integrations.geocoding_client import GeoLocation  # noqa: E402
from app.main import app  # noqa: E402
from app.models.product import Product  # noqa: E402
from app.observability import metrics_store  # noqa: E402
from app.services.side_effects import SideEffectRunner  # noqa: E402


class FakeNotifier:
    def __init__(self) -> None:
        self.confirmations: list = []
        self.status_updates: list = []
        self.low_stock: list = []
        self.expiring: list = []
        self.fail_with: Exception | None = None

    def _record(self, bucket: list, value) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        bucket.append(value)

    def send_order_confirmation(self, order) -> None:
        self._record(self.confirmations, order)

    def send_order_status_update(self, order) -> None:
        self._record(self.status_updates, order)

    def send_low_stock_alert(self, product) -> None:
        self._record(self.low_stock, product)

    def send_expiry_alert(self, product) -> None:
        self._record(self.expiring, product)


class FakeGeocoder:
    def __init__(self) -> None:
        self.calls: list[str] = []
        self.error: IntegrationError | None = None

    def geocode_pincode(self, pincode: str) -> GeoLocation:
        self.calls.append(pincode)
        if self.error is not None:
            raise self.error
        return GeoLocation(lat=12.93, lng=77.62, address="Koramangala, Bengaluru", pincode=pincode)


class FakeSheetsExporter:
    def __init__(self) -> None:
        self.rows: list = []

    def append_order_row(self, order) -> bool:
        self.rows.append(order)
        return True


@pytest.fixture(autouse=True)
def reset_db():
    Base.metadata.drop_all(bind=app_engine)
    Base.metadata.create_all(bind=app_engine)
    yield


@pytest.fixture(autouse=True)
def reset_metrics_store():
    metrics_store.reset()
    yield


@pytest.fixture(scope="session", autouse=True)
def enable_testing_mode():
    original_testing = settings.testing
    original_inline = settings.side_effects_inline
    settings.testing = True
    settings.side_effects_inline = True
    yield
    settings.testing = original_testing
    settings.side_effects_inline = original_inline


@pytest.fixture
def db_session():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def geocoder():
    return FakeGeocoder()


@pytest.fixture
def sheets():
    return FakeSheetsExporter()


@pytest.fixture
def integrations(notifier, geocoder, sheets):
    return OrderIntegrations(
        notifier=notifier,
        geocoder=geocoder,
        sheets=sheets,
        runner=SideEffectRunner(max_workers=1, inline=True),
    )


@pytest.fixture
def client(db_session, integrations):
    db_session_lock = threading.Lock()

    def override_get_db():
        if db_session_lock.acquire(blocking=False):
            try:
                yield db_session
            finally:
                db_session_lock.release()
            return

        db = SessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_order_integrations] = lambda: integrations
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def customer():
    return AuthContext(
        user_id="customer-1", role="CUSTOMER", name="Asha Rao", email="asha@example.com"
    )


@pytest.fixture
def auth_headers():
    def _headers(role: str, sub: str, **claims) -> dict[str, str]:
        token = issue_access_token(sub, role, settings.jwt_secret, **claims)
        return {"Authorization": f"Bearer {token}"}

    return {
        "customer": _headers("CUSTOMER", "customer-1", name="Asha Rao", email="asha@example.com"),
        "customer_b": _headers("CUSTOMER", "customer-2"),
        "admin": _headers("ADMIN", "admin-1"),
        "agent": _headers("DELIVERY_MAN", "agent-1"),
        "agent_b": _headers("DELIVERY_MAN", "agent-2"),
    }


@pytest.fixture
def make_product(db_session):
    def _make(name: str, price: str, stock: int, sku: str | None = None) -> Product:
        product = Product(name=name, price=Decimal(price), stock_quantity=stock, sku=sku)
        db_session.add(product)
        db_session.commit()
        db_session.refresh(product)
        return product

    return _make
