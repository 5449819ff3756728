"""
Test configuration and fixtures.

Provides:
- In-memory SQLite database, rebuilt for each test
- JWT token minting for authenticated tests
- HTTPX AsyncClient with proper headers
"""
import os
import uuid
from dataclasses import dataclass
from typing import AsyncGenerator, Callable, Generator

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ENV", "dev")
os.environ["TESTING"] = "1"

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.orm import Session

from aliice.core.deps import COOKIE_NAME, get_db
from aliice.core.security import create_session_token
from aliice.db.base import Base
from aliice.db.enums import Role
from aliice.db.models import Membership, Organization, User
from aliice.db.session import SessionLocal, engine
from aliice.main import app


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """
    Fresh schema per test.

    App code commits freely; isolation comes from dropping every table afterwards.
    """
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def test_org(db: Session) -> Organization:
    org = Organization(
        id=uuid.uuid4(),
        name="Test Organization",
        slug=f"test-org-{uuid.uuid4().hex[:8]}",
    )
    db.add(org)
    db.commit()
    return org


@pytest.fixture(scope="function")
def make_user(db: Session, test_org: Organization) -> Callable[..., User]:
    """Factory for extra members of test_org."""

    def _make(full_name: str = "Second User", role: Role = Role.STAFF, org: Organization | None = None) -> User:
        user = User(
            id=uuid.uuid4(),
            email=f"user-{uuid.uuid4().hex[:8]}@test.com",
            full_name=full_name,
        )
        db.add(user)
        db.flush()
        db.add(Membership(
            id=uuid.uuid4(),
            user_id=user.id,
            organization_id=(org or test_org).id,
            role=role.value,
        ))
        db.commit()
        return user

    return _make


@pytest.fixture(scope="function")
def test_user(make_user) -> User:
    """Admin member of test_org."""
    return make_user(full_name="Test User", role=Role.ADMIN)


# =============================================================================
# Auth Fixtures
# =============================================================================

@dataclass
class TestAuth:
    """Test authentication context."""
    user: User
    org: Organization
    token: str
    cookie_name: str = COOKIE_NAME


def token_for(user: User, org: Organization, role: Role = Role.ADMIN) -> str:
    return create_session_token(
        user_id=user.id,
        org_id=org.id,
        role=role.value,
        token_version=user.token_version,
    )


@pytest.fixture(scope="function")
def test_auth(test_user: User, test_org: Organization) -> TestAuth:
    return TestAuth(user=test_user, org=test_org, token=token_for(test_user, test_org))


# =============================================================================
# Client Fixtures
# =============================================================================

def _override_db(db: Session) -> None:
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db


@pytest.fixture(scope="function")
async def client(db: Session) -> AsyncGenerator[AsyncClient, None]:
    """Unauthenticated client for public endpoints."""
    _override_db(db)
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
async def authed_client(db: Session, test_auth: TestAuth) -> AsyncGenerator[AsyncClient, None]:
    """Authenticated client with session cookie and CSRF header."""
    _override_db(db)
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        cookies={test_auth.cookie_name: test_auth.token},
        headers={"X-Requested-With": "XMLHttpRequest"},  # CSRF header
    ) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def client_for(db: Session, test_org: Organization):
    """Build an authenticated client for another user (use with `async with`)."""
    _override_db(db)

    def _build(user: User, org: Organization | None = None) -> AsyncClient:
        return AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
            cookies={COOKIE_NAME: token_for(user, org or test_org)},
            headers={"X-Requested-With": "XMLHttpRequest"},
        )

    yield _build
    app.dependency_overrides.clear()
