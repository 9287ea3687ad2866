# Settings are read at import time, so configure the environment first
import os

os.environ["DATABASE_URL"] = "sqlite:///./test_payments.db"
os.environ["SECRET_KEY"] = "test-jwt-secret"
os.environ["ALGORITHM"] = "HS256"
os.environ["REDIS_URL"] = "redis://localhost:6379/0"
os.environ["COMMISSION_RATE"] = "20"
os.environ["TAX_RATE"] = "18"
os.environ["RAZORPAY_WEBHOOK_SECRET"] = "test-webhook-secret"
os.environ["RAZORPAY_KEY_SECRET"] = "test-key-secret"

import json
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from unittest.mock import AsyncMock
from jose import jwt

from payment_service.main import app
from payment_service.config import settings
from payment_service.database import Base, get_db
from payment_service.routers import payment_router
from payment_service.signature import SignatureVerifier
from payment_service import models

# --- Test Database Setup ---
SQLALCHEMY_DATABASE_URL = "sqlite:///./test_payments.db"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False}
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


# --- Database Management Fixtures ---
@pytest.fixture(scope="session", autouse=True)
def setup_db():
    """Creates and drops the test database tables."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session():
    """Provides a clean database session for each test."""
    connection = engine.connect()
    transaction = connection.begin()
    session = TestingSessionLocal(bind=connection)
    yield session
    session.close()
    transaction.rollback()
    connection.close()


# --- Mocking External Services ---
@pytest.fixture(scope="function", autouse=True)
def mock_background_tasks(mocker):
    """
    Mocks the outbox poller and the Redis-backed rate limiter started on app lifespan.
    """
    mocker.patch("payment_service.main.run_outbox_poller", new_callable=AsyncMock)
    mocker.patch("payment_service.main.FastAPILimiter.init", new_callable=AsyncMock)


# --- API Test Client Fixture ---
@pytest.fixture(scope="function")
def client(db_session):
    """Provides a TestClient bound to the per-test session."""
    def override_get_db():
        # db_session owns the lifetime; closing here would detach test objects
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[payment_router.verify_rate_limit] = lambda: None

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()


# --- Data helpers ---
@pytest.fixture
def make_booking(db_session):
    """Factory for pending bookings."""
    counter = {"n": 0}

    def _make(user_id: int = 1, amount: int = 5000, order_ref: str = None, **kwargs):
        counter["n"] += 1
        booking = models.Booking(
            user_id=user_id,
            amount=amount,
            currency="INR",
            gateway_order_id=order_ref or f"order_test_{counter['n']}",
            status=kwargs.pop("status", models.BookingStatus.PENDING),
            **kwargs
        )
        db_session.add(booking)
        db_session.commit()
        return booking

    return _make


@pytest.fixture
def make_referral(db_session):
    def _make(referrer_id: int, referred_user_id: int, referrer_reward: int = 100, referred_reward: int = 50):
        referral = models.Referral(
            referrer_id=referrer_id,
            referred_user_id=referred_user_id,
            referrer_reward=referrer_reward,
            referred_reward=referred_reward,
            status=models.ReferralStatus.SIGNED_UP,
        )
        db_session.add(referral)
        db_session.commit()
        return referral

    return _make


def create_test_token(user_id: int = 1) -> str:
    """Creates a simple JWT for testing."""
    token = jwt.encode({"sub": str(user_id)}, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
    return f"Bearer {token}"


def webhook_body(event: str, order_ref: str = None, payment_ref: str = "pay_test_1", amount: int = 5000) -> bytes:
    entity = {"id": payment_ref, "amount": amount, "currency": "INR", "status": "captured"}
    if order_ref is not None:
        entity["order_id"] = order_ref
    envelope = {
        "entity": "event",
        "event": event,
        "payload": {"payment": {"entity": entity}},
    }
    return json.dumps(envelope).encode("utf-8")


def sign(body: bytes, secret: str = "test-webhook-secret") -> str:
    return SignatureVerifier(secret).sign(body)
