# tests/conftest.py
import os

# Settings are read at import time by sawtooth.database; point them at SQLite
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./sawtooth-test.db")
os.environ.setdefault("ADMIN_TOKEN", "test-admin-token")

from datetime import datetime  # noqa: E402
from unittest.mock import MagicMock  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import NullPool  # noqa: E402

from sawtooth import models  # noqa: E402,F401
from sawtooth.core.config import Settings, get_settings  # noqa: E402
from sawtooth.core.enums import ProductStatus  # noqa: E402
from sawtooth.core.rate_limit import FixedWindowRateLimiter  # noqa: E402
from sawtooth.database import Base  # noqa: E402
from sawtooth.dependencies import get_db, get_opportunity_generator, get_payment_gateway  # noqa: E402
from sawtooth.main import app  # noqa: E402
from sawtooth.models.product import Product  # noqa: E402
from sawtooth.services.payment_gateway import PaymentGateway  # noqa: E402
from sawtooth.services.sourcing import OpportunityGenerator  # noqa: E402

ADMIN_TOKEN = "test-admin-token"


@pytest.fixture
def settings(tmp_path):
    """Provide test settings"""
    return Settings(
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'sawtooth.db'}",
        ADMIN_TOKEN=ADMIN_TOKEN,
        STRIPE_SECRET_KEY="sk_test_123",
        STRIPE_WEBHOOK_SECRET="whsec_test_123",
        SITE_URL="https://shop.example.test",
        OPENAI_API_KEY="",
    )


@pytest.fixture
async def test_engine(settings):
    """
    Function-scoped engine over a file-backed SQLite database.

    NullPool so that connections are never shared between the pytest event
    loop and the TestClient's loop, and so two sessions really are two
    connections (the concurrency tests rely on that).
    """
    engine = create_async_engine(settings.DATABASE_URL, poolclass=NullPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory):
    """Provide a database session for tests"""
    async with session_factory() as session:
        yield session


@pytest.fixture
def make_product(session_factory):
    """Insert a product in its own committed transaction and return it."""

    async def _make(product_id: str = "denim-jacket", **overrides) -> Product:
        now = datetime(2026, 1, 1, 12, 0, 0)
        values = {
            "id": product_id,
            "title": product_id.replace("-", " ").title(),
            "description": "",
            "status": ProductStatus.ACTIVE,
            "inventory": 3,
            "price_cents": 2500,
            "currency": "usd",
            "category": "clothes",
            "clothing_subcategory": "mens",
            "photos": [],
            "tags": [],
            "search_keywords": [],
            "created_at": now,
            "updated_at": now,
        }
        values.update(overrides)
        async with session_factory() as session:
            product = Product(**values)
            session.add(product)
            await session.commit()
        return product

    return _make


@pytest.fixture
def stripe_client():
    """Stand-in for the ``stripe`` module as used by PaymentGateway."""
    client = MagicMock()
    client.checkout.Session.create.return_value = {
        "id": "cs_test_123",
        "url": "https://checkout.stripe.test/c/pay/cs_test_123",
    }
    return client


@pytest.fixture
def test_client(settings, session_factory, stripe_client):
    """Provide a test client wired to the per-test database and a mocked Stripe"""

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_payment_gateway] = lambda: PaymentGateway(settings, client=stripe_client)
    app.dependency_overrides[get_opportunity_generator] = lambda: OpportunityGenerator(settings)
    app.state.rate_limiter = FixedWindowRateLimiter(limit=1000, window_seconds=60)

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def admin_headers():
    return {"Authorization": f"Bearer {ADMIN_TOKEN}"}
