"""
Test configuration and fixtures.

Provides:
- In-memory SQLite database (schema created and dropped per test)
- JWT token minting for authenticated tests
- HTTPX AsyncClient with proper headers
"""
import os
import uuid
from dataclasses import dataclass
from typing import AsyncGenerator, Generator

from cryptography.fernet import Fernet

# Settings are read at import time; configure before importing the app
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ENV", "test")
os.environ.setdefault("TESTING", "1")
os.environ.setdefault("RATE_LIMIT_WEBHOOK", "10000")
os.environ.setdefault("INTEGRATION_ENCRYPTION_KEY", Fernet.generate_key().decode())

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.orm import Session

from app.main import app
from app.db.base import Base
from app.db.session import engine, SessionLocal
from app.core.deps import get_db, COOKIE_NAME, CSRF_HEADER, CSRF_HEADER_VALUE
from app.core.security import create_session_token
from app.db.models import Client, Organization, User, Membership
from app.db.enums import Role


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """
    Creates a fresh schema and session for each test.

    App code commits freely; the whole schema is dropped afterwards.
    """
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()

    yield session

    session.close()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def reset_permission_cache():
    """The permission cache is process-wide; start every test cold."""
    app.state.permission_service.invalidate()
    yield
    app.state.permission_service.invalidate()


@pytest.fixture(scope="function")
def test_org(db: Session) -> Organization:
    """Create a test organization."""
    org = Organization(
        id=uuid.uuid4(),
        name="Test Organization",
        slug=f"test-org-{uuid.uuid4().hex[:8]}",
        timezone="America/New_York",
    )
    db.add(org)
    db.commit()
    return org


@pytest.fixture(scope="function")
def other_org(db: Session) -> Organization:
    """A second organization for scoping tests."""
    org = Organization(
        id=uuid.uuid4(),
        name="Other Organization",
        slug=f"other-org-{uuid.uuid4().hex[:8]}",
    )
    db.add(org)
    db.commit()
    return org


def create_member(db: Session, org: Organization, role: Role) -> User:
    """Create an active user with a membership in org."""
    user = User(
        id=uuid.uuid4(),
        email=f"{role.value}-{uuid.uuid4().hex[:8]}@test.com",
        display_name=f"Test {role.value}",
    )
    db.add(user)
    db.flush()

    db.add(
        Membership(
            id=uuid.uuid4(),
            user_id=user.id,
            organization_id=org.id,
            role=role.value,
        )
    )
    db.commit()
    return user


def token_for(user: User, org: Organization, role: Role) -> str:
    return create_session_token(
        user_id=user.id,
        org_id=org.id,
        role=role.value,
        token_version=user.token_version,
    )


@pytest.fixture(scope="function")
def test_user(db: Session, test_org: Organization) -> User:
    """Create a test user with a corporate_admin membership in test_org."""
    return create_member(db, test_org, Role.CORPORATE_ADMIN)


@pytest.fixture(scope="function")
def test_client_record(db: Session, test_org: Organization) -> Client:
    """A rider in test_org named Jane Doe."""
    client = Client(
        organization_id=test_org.id,
        first_name="Jane",
        last_name="Doe",
        phone="555-0100",
    )
    db.add(client)
    db.commit()
    return client


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


@pytest.fixture(scope="function")
def test_auth(test_user: User, test_org: Organization) -> TestAuth:
    """Create JWT token for test user."""
    return TestAuth(
        user=test_user,
        org=test_org,
        token=token_for(test_user, test_org, Role.CORPORATE_ADMIN),
    )


# =============================================================================
# Client Fixtures
# =============================================================================

@pytest.fixture(scope="function")
async def client(db: Session) -> AsyncGenerator[AsyncClient, None]:
    """
    Create unauthenticated AsyncClient for testing public endpoints.
    """
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
async def authed_client(
    db: Session,
    test_auth: TestAuth
) -> AsyncGenerator[AsyncClient, None]:
    """
    Create authenticated AsyncClient with JWT cookie and CSRF header.
    """
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        cookies={test_auth.cookie_name: test_auth.token},
        headers={CSRF_HEADER: CSRF_HEADER_VALUE},
    ) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def login_as(db: Session, test_org: Organization):
    """
    Sign an AsyncClient in as a new member with the given role.

    Usage:
        login_as(client, Role.PROGRAM_USER)
    """
    def _login(c: AsyncClient, role: Role, org: Organization | None = None) -> User:
        org = org or test_org
        user = create_member(db, org, role)
        c.cookies.set(COOKIE_NAME, token_for(user, org, role))
        c.headers[CSRF_HEADER] = CSRF_HEADER_VALUE
        return user

    return _login
