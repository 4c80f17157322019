"""
Pytest configuration and fixtures.

Each test gets its own SQLite database file and a fake Razorpay API
served through ``httpx.MockTransport``.
"""
import os
from collections.abc import AsyncGenerator, Callable
from decimal import Decimal
from typing import Annotated, Any

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("CLERK_SECRET_KEY", "sk_test_fake_key_for_testing")
os.environ.setdefault("APP_ENV", "test")

import httpx  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from fastapi import Depends  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker  # noqa: E402
from sqlmodel import SQLModel  # noqa: E402

import tokenpay.models  # noqa: E402,F401
from tests.helpers import (  # noqa: E402
    API_BASE,
    HUNDRED_PACK,
    KEY_ID,
    KEY_SECRET,
    WEBHOOK_SECRET,
    FakeClerk,
    FakeRazorpay,
)
from tokenpay.api.auth import get_clerk_auth  # noqa: E402
from tokenpay.api.deps import get_payment_service  # noqa: E402
from tokenpay.db.engine import build_engine, get_db  # noqa: E402
from tokenpay.main import create_app  # noqa: E402
from tokenpay.models.user import User  # noqa: E402
from tokenpay.services.invoice_service import InvoiceService  # noqa: E402
from tokenpay.services.package_catalog import DEFAULT_PACKAGES, PackageCatalog  # noqa: E402
from tokenpay.services.payment_service import PaymentService  # noqa: E402
from tokenpay.services.razorpay_service import RazorpayService  # noqa: E402


@pytest_asyncio.fixture
async def engine(tmp_path):
    """File-backed SQLite so concurrent sessions share one database."""
    test_engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'tokenpay.db'}")
    async with test_engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, Any]:
    async with session_factory() as session:
        yield session


async def _create_user(session_factory, clerk_id: str, email: str, **fields) -> User:
    async with session_factory() as session:
        user = User(clerk_id=clerk_id, email=email, **fields)
        session.add(user)
        await session.commit()
        await session.refresh(user)
        return user


@pytest_asyncio.fixture
async def user(session_factory) -> User:
    return await _create_user(
        session_factory,
        "user_buyer",
        "buyer@example.com",
        first_name="Asha",
        last_name="Rao",
        phone="+919800000000",
    )


@pytest_asyncio.fixture
async def other_user(session_factory) -> User:
    return await _create_user(session_factory, "user_other", "other@example.com", username="other")


@pytest.fixture
def balance_of(session_factory) -> Callable:
    """Read a user's balance through a fresh session."""

    async def _balance(user_id: int) -> int:
        async with session_factory() as session:
            user = await session.get(User, user_id)
            return user.tokens

    return _balance


@pytest.fixture
def fake_razorpay() -> FakeRazorpay:
    return FakeRazorpay()


@pytest.fixture
def gateway(fake_razorpay) -> RazorpayService:
    return RazorpayService(
        key_id=KEY_ID,
        key_secret=KEY_SECRET,
        webhook_secret=WEBHOOK_SECRET,
        api_base=API_BASE,
        timeout=5.0,
        transport=httpx.MockTransport(fake_razorpay.handler),
    )


@pytest.fixture
def catalog() -> PackageCatalog:
    return PackageCatalog.from_packages(
        (*DEFAULT_PACKAGES, HUNDRED_PACK),
        unit_price=Decimal("2.00"),
        max_custom_tokens=100_000,
    )


@pytest.fixture
def invoices(tmp_path) -> InvoiceService:
    return InvoiceService(
        invoice_dir=tmp_path / "invoices",
        company_name="SaaS Foundry",
        company_address="123 Business Street, Tech City, TC 12345",
        company_email="support@saasfoundry.com",
    )


@pytest.fixture
def make_service(gateway, catalog, invoices) -> Callable[..., PaymentService]:
    """Build a PaymentService bound to a given session."""

    def _make(session: AsyncSession, **overrides) -> PaymentService:
        kwargs: dict[str, Any] = {
            "gateway": gateway,
            "catalog": catalog,
            "invoices": invoices,
            "unit_name": "tokens",
            "require_webhook_signature": False,
        }
        kwargs.update(overrides)
        return PaymentService(session, **kwargs)

    return _make


@pytest.fixture
def payment_service(db, make_service) -> PaymentService:
    return make_service(db)


@pytest.fixture
def fake_clerk() -> FakeClerk:
    return FakeClerk()


@pytest_asyncio.fixture
async def client(
    session_factory, make_service, fake_clerk
) -> AsyncGenerator[httpx.AsyncClient, Any]:
    """HTTP client for the app, wired to the test database and fakes."""

    async def _get_db() -> AsyncGenerator[AsyncSession, Any]:
        async with session_factory() as session:
            yield session

    def _get_payment_service(session: Annotated[AsyncSession, Depends(get_db)]) -> PaymentService:
        return make_service(session)

    app = create_app()
    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_payment_service] = _get_payment_service
    app.dependency_overrides[get_clerk_auth] = lambda: fake_clerk

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as http:
        yield http
