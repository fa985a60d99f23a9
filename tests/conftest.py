"""Test configuration and fixtures."""

import asyncio
import os
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from core.dependencies import get_gateway_service
from core.settings import Settings
from db.models import Base
from main import app
from payments.errors import AuthorizationInProgress
from payments.interfaces import PaymentGateway, RedirectMechanism, Tokenizer
from payments.models import (
    PAYPAL_ACCOUNT_TYPE,
    CheckoutConfig,
    GatewayAuthorization,
    GatewayConfiguration,
    PaymentMethodNonce,
)

RETURN_URL_BASE = "http://localhost:8000/api/v1/checkout/return"


class FakeGateway(PaymentGateway, Tokenizer):
    """In-memory gateway + tokenizer recording every call."""

    def __init__(self):
        self.configuration = GatewayConfiguration(paypal_enabled=True, environment="sandbox")
        self.authorization = GatewayAuthorization(
            approval_url="https://provider.test/checkoutnow?token=T1",
            correlation_id="corr-123",
            merchant_account_id="merchant-eur",
            intent="sale",
        )
        self.nonce = PaymentMethodNonce(
            nonce="fake-paypal-nonce",
            type=PAYPAL_ACCOUNT_TYPE,
            details={"email": "payer@example.com"},
        )
        self.configuration_calls = 0
        self.authorization_calls = []
        self.tokenize_calls = []
        self.authorization_error = None
        self.tokenize_error = None

    async def get_configuration(self):
        self.configuration_calls += 1
        return self.configuration

    async def create_authorization(self, flow, payload):
        self.authorization_calls.append((flow, payload))
        if self.authorization_error:
            raise self.authorization_error
        return self.authorization

    async def tokenize(self, credential):
        self.tokenize_calls.append(credential)
        if self.tokenize_error:
            raise self.tokenize_error
        return self.nonce


class InterleavingGateway(FakeGateway):
    """Yields to the event loop mid-authorization and issues a fresh token per call."""

    async def create_authorization(self, flow, payload):
        self.authorization_calls.append((flow, payload))
        token = f"T{len(self.authorization_calls)}"
        await asyncio.sleep(0)
        return GatewayAuthorization(
            approval_url=f"https://provider.test/checkoutnow?token={token}",
            correlation_id=f"corr-{token}",
        )


class FakeRedirect(RedirectMechanism):
    def __init__(self):
        self.registered = True
        self.pending = False
        self.launches = []
        self.launch_error = None
        self.checked_targets = []

    def is_return_target_registered(self, return_url_base):
        self.checked_targets.append(return_url_base)
        return self.registered

    def has_pending(self):
        return self.pending

    def launch(self, url, metadata):
        if self.launch_error:
            raise self.launch_error
        if self.pending:
            raise AuthorizationInProgress()
        self.launches.append((url, metadata))
        self.pending = True


@pytest.fixture(autouse=True)
def setup_test_environment():
    """Setup test environment variables before each test."""
    original_env = dict(os.environ)

    os.environ.update(
        {
            "DATABASE_URL": "sqlite:///:memory:",
            "GATEWAY_BASE_URL": "https://gateway.test",
            "GATEWAY_CLIENT_ID": "test_client_id",
            "GATEWAY_SECRET": "test_secret",
            "RETURN_URL_BASE": RETURN_URL_BASE,
            "REDIRECT_ALLOWED_HOSTS": "localhost,127.0.0.1",
            "APP_NAME": "Test Checkout",
            "ENVIRONMENT": "test",
            "DISABLE_TRACING": "true",
            "DEBUG": "true",
        }
    )

    yield

    os.environ.clear()
    os.environ.update(original_env)


@pytest.fixture
def mock_settings():
    return Settings(
        DATABASE_URL="sqlite:///:memory:",
        GATEWAY_BASE_URL="https://gateway.test",
        GATEWAY_CLIENT_ID="test_client_id",
        GATEWAY_SECRET="test_secret",
        RETURN_URL_BASE=RETURN_URL_BASE,
        APP_NAME="Test Checkout",
        DEBUG=True,
        ENVIRONMENT="test",
    )


@pytest.fixture
def fake_gateway():
    return FakeGateway()


@pytest.fixture
def interleaving_gateway():
    return InterleavingGateway()


@pytest.fixture
def fake_redirect():
    return FakeRedirect()


@pytest.fixture
def checkout_config():
    return CheckoutConfig(return_url_base=RETURN_URL_BASE)


@pytest.fixture
def test_db_engine():
    """Create a test database engine and setup tables."""
    engine = create_engine(
        "sqlite:///:memory:",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def test_db_session(test_db_engine):
    """Create test database session using the shared engine."""
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_db_engine)
    session = SessionLocal()

    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(mock_settings, test_db_engine, fake_gateway):
    """Test client wired to the in-memory database and the fake gateway."""
    from db.session import get_db, reset_engines

    reset_engines()

    TestingSessionLocal = sessionmaker(
        autocommit=False, autoflush=False, bind=test_db_engine
    )

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_gateway_service] = lambda: fake_gateway

    with patch("core.dependencies._settings", mock_settings):
        with TestClient(app) as test_client:
            yield test_client

    app.dependency_overrides.clear()
    reset_engines()

