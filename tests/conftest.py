"""Pytest configuration and shared fixtures for all tests."""

import os

# Minimal environment for Settings; must be set before the app is imported
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("SECRET_KEY", "test_secret_key_for_testing_only")
os.environ.setdefault("FRONTEND_URL", "https://partners.example.com")
os.environ.setdefault("PAYSTACK_SECRET_KEY", "sk_test_123")

import io
import uuid

import httpx
import pytest
import pytest_asyncio
from PIL import Image
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app import models  # noqa: F401
from app.api.deps import get_bank_service
from app.core.security import create_access_token, USER_TYPE_INTERNAL, USER_TYPE_PARTNER
from app.core.storage import StorageClient
from app.database import Base, custom_json_dumps, enable_sqlite_savepoints, get_db
from app.main import app
from app.models.internal_user import InternalUser
from app.models.partner import Partner, PartnerStatus
from app.services.bank_service import BankService


PAYSTACK_BANKS = [
    {"id": 1, "name": "Access Bank", "code": "044", "slug": "access-bank"},
    {"id": 9, "name": "Guaranty Trust Bank", "code": "058", "slug": "guaranty-trust-bank"},
    {"id": 21, "name": "Zenith Bank", "code": "057", "slug": "zenith-bank"},
]


def paystack_handler(request: httpx.Request) -> httpx.Response:
    """Stand-in for the Paystack bank endpoints."""
    if request.url.path == "/bank":
        return httpx.Response(200, json={"status": True, "message": "Banks retrieved", "data": PAYSTACK_BANKS})
    if request.url.path == "/bank/resolve":
        account_number = request.url.params.get("account_number")
        if account_number == "0000000000":
            return httpx.Response(422, json={"status": False, "message": "Could not resolve account name"})
        return httpx.Response(200, json={
            "status": True,
            "message": "Account number resolved",
            "data": {"account_number": account_number, "account_name": "ADA OKAFOR", "bank_id": 9},
        })
    return httpx.Response(404, json={"status": False, "message": "Not found"})


def failing_paystack_handler(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("connection refused", request=request)


# ============================================================================
# Database
# ============================================================================

@pytest_asyncio.fixture
async def engine():
    """Fresh in-memory database per test."""
    test_engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
        json_serializer=custom_json_dumps,
    )
    enable_sqlite_savepoints(test_engine)

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db(session_factory):
    """Session for service-level tests."""
    async with session_factory() as session:
        yield session


# ============================================================================
# Actors
# ============================================================================

async def _add(session_factory, obj):
    async with session_factory() as session:
        session.add(obj)
        await session.commit()
    return obj


@pytest_asyncio.fixture
async def partner(session_factory) -> Partner:
    return await _add(session_factory, Partner(
        id=uuid.uuid4(),
        full_name="Ada Okafor",
        email="ada@partners.example.com",
        phone="+2348012345678",
        company_name="Okafor Ventures",
        status=PartnerStatus.ACTIVE.value,
        bank_code="058",
        bank_account_number="0123456789",
        bank_account_name="ADA OKAFOR",
    ))


@pytest_asyncio.fixture
async def other_partner(session_factory) -> Partner:
    return await _add(session_factory, Partner(
        id=uuid.uuid4(),
        full_name="Bola Adeyemi",
        email="bola@partners.example.com",
        status=PartnerStatus.ACTIVE.value,
    ))


@pytest_asyncio.fixture
async def pending_partner(session_factory) -> Partner:
    return await _add(session_factory, Partner(
        id=uuid.uuid4(),
        full_name="Chidi Eze",
        email="chidi@partners.example.com",
        status=PartnerStatus.PENDING.value,
    ))


@pytest_asyncio.fixture
async def staff(session_factory) -> InternalUser:
    return await _add(session_factory, InternalUser(
        id=uuid.uuid4(),
        email="finance@example.com",
        full_name="Finance Desk",
        role="finance",
        is_active=True,
    ))


@pytest.fixture
def partner_headers(partner):
    token = create_access_token(partner.id, USER_TYPE_PARTNER)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def other_partner_headers(other_partner):
    token = create_access_token(other_partner.id, USER_TYPE_PARTNER)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def staff_headers(staff):
    token = create_access_token(staff.id, USER_TYPE_INTERNAL)
    return {"Authorization": f"Bearer {token}"}


# ============================================================================
# Collaborators
# ============================================================================

@pytest.fixture
def bank_service():
    """BankService talking to a mocked Paystack."""
    return BankService(client=httpx.AsyncClient(transport=httpx.MockTransport(paystack_handler)))


@pytest.fixture
def uploads(monkeypatch):
    """Record blob store uploads instead of talking to Supabase."""
    stored = []

    def fake_upload(content: bytes, path: str, content_type: str) -> str:
        stored.append({"path": path, "size": len(content), "content_type": content_type})
        return f"https://storage.example.com/documents/{path}"

    monkeypatch.setattr(StorageClient, "upload", staticmethod(fake_upload))
    return stored


# ============================================================================
# HTTP client
# ============================================================================

@pytest_asyncio.fixture
async def client(session_factory, bank_service, uploads):
    """API client wired to the test database and mocked collaborators."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_bank_service] = lambda: bank_service

    transport = httpx.ASGITransport(app=app, raise_app_exceptions=False)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ============================================================================
# Sample payloads
# ============================================================================

@pytest.fixture
def referral_payload():
    return {
        "prospect_company_name": "Lagos Logistics Ltd",
        "contact_name": "Tunde Bakare",
        "contact_email": "tunde@lagoslogistics.example.com",
        "contact_phone": "+2348098765432",
        "industry": "Logistics",
        "estimated_deal_value": "2500000.00",
    }


@pytest.fixture
def png_bytes():
    buffer = io.BytesIO()
    Image.new("RGB", (4, 4), color=(0, 128, 0)).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def pdf_bytes():
    return b"%PDF-1.4\n1 0 obj\n<< /Type /Catalog >>\nendobj\ntrailer\n<< /Root 1 0 R >>\n%%EOF\n"
