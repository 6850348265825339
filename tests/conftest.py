"""Pytest Configuration - Shared fixtures for tests."""

import os
from collections.abc import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import ASGITransport, AsyncClient

# Set test environment before importing app
os.environ["APP_ENV"] = "development"
os.environ["JWT_SECRET"] = "test-secret-key-for-jwt-signing"
os.environ["ENABLE_TRACING"] = "false"
os.environ["BUSINESS_TIMEZONE"] = "America/Sao_Paulo"

from src.core.rate_limit import RateLimitResult  # noqa: E402
from src.core.security import create_session_token, hash_secret  # noqa: E402

USER_ID = "11111111-2222-3333-4444-555555555555"
USER_PASSWORD = "S3nh@Forte!"


@pytest.fixture(scope="session")
def user_password() -> str:
    return USER_PASSWORD


@pytest.fixture(scope="session")
def password_hash() -> str:
    """bcrypt hash of USER_PASSWORD (computed once, bcrypt is slow)."""
    return hash_secret(USER_PASSWORD)


@pytest.fixture
def user_row(password_hash: str) -> dict:
    """Users row with 2FA never configured."""
    return {
        "id": USER_ID,
        "email": "dona@salao.com.br",
        "user_type": "dono",
        "password_hash": password_hash,
        "two_factor_enabled": False,
        "two_factor_secret": None,
        "two_factor_confirmed_at": None,
        "two_factor_method": None,
        "whatsapp_phone_e164": None,
        "whatsapp_otp_hash": None,
        "whatsapp_otp_expires_at": None,
        "whatsapp_otp_attempts": 0,
    }


@pytest.fixture
def repository(user_row: dict) -> MagicMock:
    """SupabaseService stand-in; each test tweaks return values."""
    repo = MagicMock()
    repo.get_user_by_id = AsyncMock(return_value=user_row)
    repo.get_user_by_email = AsyncMock(return_value=user_row)
    repo.update_user = AsyncMock(side_effect=lambda user_id, updates: {**user_row, **updates})
    repo.get_active_appointments = AsyncMock(return_value=[])
    repo.get_business_hours = AsyncMock(return_value=None)
    return repo


@pytest.fixture
def messenger() -> MagicMock:
    """Evolution client stand-in."""
    client = MagicMock()
    client.send_code = AsyncMock(return_value={"key": {"id": "MSG-1"}})
    return client


@pytest.fixture
def limiter() -> MagicMock:
    """Rate limiter that always allows."""
    rl = MagicMock()
    rl.check = AsyncMock(
        return_value=RateLimitResult(allowed=True, remaining=10, reset_in=60)
    )
    return rl


@pytest.fixture
def auth_cookies() -> dict:
    """Session cookie for USER_ID."""
    token = create_session_token({"id": USER_ID, "email": "dona@salao.com.br"})
    return {"auth": token}


@pytest.fixture
async def async_client(
    repository: MagicMock, messenger: MagicMock, limiter: MagicMock
) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client for testing FastAPI app with external services mocked."""
    from src.core.dependencies import get_limiter, get_messenger, get_repository
    from src.main import app

    app.dependency_overrides[get_repository] = lambda: repository
    app.dependency_overrides[get_messenger] = lambda: messenger
    app.dependency_overrides[get_limiter] = lambda: limiter

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
