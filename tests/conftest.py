import os

# Settings are read at import time; give the app a config before importing it
os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-agency-crm")

import pytest
from datetime import datetime, timedelta, UTC
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from jose import jwt

from app.database import get_db
from app.models.base import Base, utcnow
from app.config import settings
# Import all model classes to ensure they're registered with SQLAlchemy
from app.models.user import User
from app.models.tenant import Tenant
from app.models.tenant_membership import TenantMembership
from app.models.lead import Lead, LeadStage, TransactionType
from app.models.listing import Listing, ListingPropertyType
from app.models.role import TenantRole, MembershipStatus
# Import FastAPI app AFTER model imports
from app.main import app

# Test database (SQLite in-memory for speed)
# Use StaticPool to ensure all connections share the same in-memory database
SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///:memory:"
engine = create_engine(
    SQLALCHEMY_TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session():
    """Create fresh database for each test"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db_session):
    """FastAPI test client with test database"""

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def create_test_token(
    user_id: str = "test-user-123",
    expired: bool = False,
    identities: list[dict] | None = None,
    email: str | None = None,
    name: str | None = None,
) -> str:
    """
    Generate valid JWT token for testing.

    Args:
        user_id: Subject id to embed in 'sub' claim
        expired: If True, create expired token
        identities: Optional linked sub-identities ({"provider", "id"})
        email: Optional 'email' claim
        name: Optional 'name' claim

    Returns:
        Encoded JWT token
    """
    if expired:
        exp = datetime.now(UTC) - timedelta(minutes=5)
    else:
        exp = datetime.now(UTC) + timedelta(minutes=15)

    payload = {"sub": user_id, "exp": exp, "iat": datetime.now(UTC)}
    if identities is not None:
        payload["identities"] = identities
    if email is not None:
        payload["email"] = email
    if name is not None:
        payload["name"] = name

    token = jwt.encode(payload, settings.SECRET_KEY, algorithm="HS256")
    return token


def bearer(user_id: str, **claims) -> dict:
    """Authorization headers for a subject id"""
    return {"Authorization": f"Bearer {create_test_token(user_id=user_id, **claims)}"}


def add_member(
    db,
    tenant: Tenant,
    user: User,
    role: TenantRole = TenantRole.MEMBER,
    status: MembershipStatus = MembershipStatus.ACTIVE,
) -> TenantMembership:
    membership = TenantMembership(
        tenant_id=tenant.id,
        user_id=user.id,
        role=role,
        status=status,
        joined_at=utcnow() if status == MembershipStatus.ACTIVE else None,
    )
    db.add(membership)
    db.commit()
    db.refresh(membership)
    return membership


def create_lead(db, tenant: Tenant, stage: LeadStage = LeadStage.NEW, **fields) -> Lead:
    fields.setdefault("name", "Kim Minsu")
    fields.setdefault("phone", "01012345678")
    lead = Lead(tenant_id=tenant.id, stage=stage, **fields)
    db.add(lead)
    db.commit()
    db.refresh(lead)
    return lead


def create_listing(db, tenant: Tenant, **fields) -> Listing:
    fields.setdefault("name", "Hapjeong Tower")
    fields.setdefault("address", "Seoul Mapo-gu Yanghwa-ro 45")
    fields.setdefault("property_type", ListingPropertyType.OFFICETEL)
    fields.setdefault("transaction_type", TransactionType.WOLSE)
    listing = Listing(tenant_id=tenant.id, **fields)
    db.add(listing)
    db.commit()
    db.refresh(listing)
    return listing


@pytest.fixture
def test_user(db_session):
    """Agency owner"""
    user = User(id="test-user-123", email="owner@example.com", name="Owner")
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def member_user(db_session):
    user = User(id="member-user-456", email="member@example.com", name="Member")
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def admin_user(db_session):
    user = User(id="admin-user-789", email="admin@example.com", name="Admin")
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def shared_tenant(db_session):
    """The agency most tests act in"""
    tenant = Tenant(name="Test Agency", invite_code="TESTCODE", config={})
    db_session.add(tenant)
    db_session.commit()
    db_session.refresh(tenant)
    return tenant


@pytest.fixture
def owner_membership(db_session, shared_tenant, test_user):
    return add_member(db_session, shared_tenant, test_user, TenantRole.OWNER)


@pytest.fixture
def member_membership(db_session, shared_tenant, member_user):
    return add_member(db_session, shared_tenant, member_user, TenantRole.MEMBER)


@pytest.fixture
def admin_membership(db_session, shared_tenant, admin_user):
    return add_member(db_session, shared_tenant, admin_user, TenantRole.ADMIN)


@pytest.fixture
def other_tenant(db_session):
    """A second agency with its own owner, used for isolation checks"""
    owner = User(id="other-user-999", email="other@example.com", name="Other")
    tenant = Tenant(name="Other Agency", invite_code="OTHERCDE", config={})
    db_session.add_all([owner, tenant])
    db_session.commit()
    db_session.refresh(tenant)
    add_member(db_session, tenant, owner, TenantRole.OWNER)
    return tenant


@pytest.fixture
def mock_jwt_token():
    """Generate valid JWT token"""
    return create_test_token()


@pytest.fixture
def auth_headers(mock_jwt_token):
    """Authorization headers for the owner"""
    return {"Authorization": f"Bearer {mock_jwt_token}"}


@pytest.fixture
def member_headers():
    return bearer("member-user-456")


@pytest.fixture
def admin_headers():
    return bearer("admin-user-789")


@pytest.fixture
def other_headers():
    return bearer("other-user-999")
