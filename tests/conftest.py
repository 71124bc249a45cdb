"""Pytest configuration and fixtures."""

from decimal import Decimal
from typing import Dict, Generator, List

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from digital_menu.core.config import settings
from digital_menu.core.exceptions import ExternalServiceError, ValidationError
from digital_menu.core.rate_limit import limiter
from digital_menu.core.rbac import UserRole
from digital_menu.core.security import create_access_token
from digital_menu.db.base import Base
from digital_menu.db.session import enable_sqlite_foreign_keys, get_db
from digital_menu.main import app
# Import all models to ensure they're registered with Base.metadata
from digital_menu.models import Category, MenuItem, Table
from digital_menu.schemas.order import OrderCreate
from digital_menu.services.blob_storage import StoredBlob, get_blob_store
from digital_menu.services.esewa_gateway import GatewayVerification, format_amount, get_payment_gateway
from digital_menu.services.order_service import OrderService

# Use in-memory SQLite for tests
TEST_DATABASE_URL = "sqlite:///:memory:"

API = settings.api_v1_prefix


class FakeGateway:
    """Payment gateway double.

    ``verify(data)`` treats ``data`` as the transaction uuid (the order id) and
    reports a COMPLETE payment with transaction code ``REF-<uuid>``. Uuids
    listed in ``failing`` raise like a bad signature would.
    """

    product_code = "EPAYTEST"

    def __init__(self):
        self.failing: set = set()
        self.verified: List[str] = []

    def build_signed_payload(self, amount: Decimal, transaction_uuid: str) -> Dict[str, str]:
        total = format_amount(amount)
        return {
            "amount": total,
            "total_amount": total,
            "transaction_uuid": str(transaction_uuid),
            "product_code": self.product_code,
            "signed_field_names": "total_amount,transaction_uuid,product_code",
            "signature": f"signed-{transaction_uuid}",
        }

    def verify(self, data: str) -> GatewayVerification:
        if data in self.failing:
            raise ValidationError("Invalid payment signature")
        self.verified.append(data)
        return GatewayVerification(
            response={"transaction_uuid": data, "status": "COMPLETE", "ref_id": f"REF-{data}"},
            decoded_data={"transaction_uuid": data, "status": "COMPLETE", "transaction_code": f"REF-{data}"},
        )


class FakeBlobStore:
    """In-memory blob store that records deletions."""

    def __init__(self):
        self.blobs: Dict[str, bytes] = {}
        self.deleted: List[str] = []
        self.fail_uploads = False
        self._counter = 0

    def upload(self, data: bytes, filename: str, content_type: str, folder: str) -> StoredBlob:
        if self.fail_uploads:
            raise ExternalServiceError("Blob storage", "upload failed")
        self._counter += 1
        handle = f"{folder}/{self._counter}-{filename}"
        self.blobs[handle] = data
        return StoredBlob(url=f"https://cdn.test/{handle}", handle=handle)

    def delete(self, handle: str) -> None:
        self.deleted.append(handle)
        self.blobs.pop(handle, None)


@pytest.fixture(scope="function")
def db_engine():
    """Create a test database engine."""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    Base.metadata.create_all(bind=engine)
    yield engine
    # tables <-> orders reference each other; dropping the in-memory database is enough
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(db_engine) -> Generator[Session, None, None]:
    """Create a test database session."""
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def blob_store() -> FakeBlobStore:
    return FakeBlobStore()


@pytest.fixture(scope="function")
def client(db_session: Session, gateway: FakeGateway, blob_store: FakeBlobStore) -> Generator[TestClient, None, None]:
    """Create a test client with database, gateway and storage overrides."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    app.dependency_overrides[get_blob_store] = lambda: blob_store
    # Disable rate limiters during tests to avoid flaky failures
    limiter.enabled = False
    # Don't raise server exceptions so we can test error status codes
    test_client = TestClient(app, raise_server_exceptions=False)
    yield test_client
    limiter.enabled = True
    app.dependency_overrides.clear()


def _token(role: UserRole) -> str:
    return create_access_token(
        data={"sub": "1", "email": f"{role.value}@example.com", "role": role.value}
    )


@pytest.fixture
def auth_token() -> str:
    """Token for an owner; passes every role check."""
    return _token(UserRole.OWNER)


@pytest.fixture
def auth_headers(auth_token: str) -> dict:
    """Get authentication headers."""
    return {"Authorization": f"Bearer {auth_token}"}


@pytest.fixture
def staff_headers() -> dict:
    return {"Authorization": f"Bearer {_token(UserRole.STAFF)}"}


@pytest.fixture
def test_table(db_session: Session) -> Table:
    """Create an available table."""
    table = Table(table_number=1, capacity=4, status="available")
    db_session.add(table)
    db_session.commit()
    db_session.refresh(table)
    return table


@pytest.fixture
def test_category(db_session: Session) -> Category:
    category = Category(name="Mains", description="Main courses", display_order=1)
    db_session.add(category)
    db_session.commit()
    db_session.refresh(category)
    return category


@pytest.fixture
def test_menu_item(db_session: Session, test_category: Category) -> MenuItem:
    """Create a menu item in the test category."""
    item = MenuItem(
        name="Chicken Momo",
        description="Steamed dumplings",
        price=Decimal("250.00"),
        category_id=test_category.id,
        is_available=True,
    )
    db_session.add(item)
    db_session.commit()
    db_session.refresh(item)
    return item


@pytest.fixture
def test_order(db_session: Session, test_table: Table, test_menu_item: MenuItem):
    """Place a pending order with one customized line at the test table."""
    data = OrderCreate.model_validate({
        "table": test_table.id,
        "items": [{
            "item": test_menu_item.id,
            "quantity": 2,
            "price": "250.00",
            "notes": "extra spicy",
            "customizations": [
                {"option_name": "Sauce", "selection": "Tomato", "price_addition": "20.00"},
            ],
        }],
        "total_amount": "540.00",
        "payment_method": "cash",
    })
    return OrderService(db_session).create(data)
