"""
Test configuration and fixtures.

Provides:
- In-memory SQLite database, schema rebuilt for every test
- Factory for users, businesses, memberships, listings, leads, reviews
- Principal resolution for factory users
- HTTPX AsyncClient and bearer-token helper
"""
import os
import uuid
from typing import AsyncGenerator, Generator

# Must be set before the app (and its settings singleton) is imported
os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ["ENV"] = "test"
os.environ["JWT_SECRET"] = "test-session-secret-0123456789abcdef0123456789"
os.environ["SENTRY_DSN"] = ""

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.orm import Session

from marketplace_policy.core.deps import get_db
from marketplace_policy.core.security import create_session_token
from marketplace_policy.db.base import Base
from marketplace_policy.db.enums import (
    DisclosureKind,
    LeadStatus,
    MembershipRole,
    MembershipStatus,
    ReviewStatus,
    Role,
)
from marketplace_policy.db.models import (
    Business,
    BusinessMembership,
    ClientRecord,
    Lead,
    Listing,
    Review,
    TrustDisclosure,
    User,
    utcnow,
)
from marketplace_policy.db.session import SessionLocal, engine
from marketplace_policy.main import app
from marketplace_policy.schemas.auth import Identity, Principal
from marketplace_policy.services import principal_service


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """
    Fresh schema per test.

    Service code commits and rolls back on its own, so each test gets
    a rebuilt in-memory database instead of an outer transaction.
    """
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    yield session
    session.rollback()
    session.close()


class Factory:
    """Creates committed rows; services may roll back without losing them."""

    def __init__(self, db: Session):
        self.db = db

    def _save(self, obj):
        self.db.add(obj)
        self.db.commit()
        self.db.refresh(obj)
        return obj

    def user(self, role: Role = Role.CONSUMER, **kwargs) -> User:
        suffix = uuid.uuid4().hex[:8]
        return self._save(
            User(
                email=kwargs.pop("email", f"{role.value}-{suffix}@test.com"),
                display_name=kwargs.pop("display_name", f"Test {role.value.title()}"),
                role=role.value,
                **kwargs,
            )
        )

    def business(self, name: str = "Test Advisory") -> Business:
        return self._save(
            Business(name=name, slug=f"business-{uuid.uuid4().hex[:8]}")
        )

    def membership(
        self,
        user: User,
        business: Business,
        status: MembershipStatus = MembershipStatus.ACTIVE,
        role: MembershipRole = MembershipRole.STAFF,
    ) -> BusinessMembership:
        return self._save(
            BusinessMembership(
                user_id=user.id,
                business_id=business.id,
                status=status.value,
                role=role.value,
                accepted_at=utcnow() if status is MembershipStatus.ACTIVE else None,
            )
        )

    def advisor(self, business: Business) -> User:
        """Advisor with an active membership in `business`."""
        user = self.user(Role.ADVISOR)
        self.membership(user, business)
        return user

    def listing(self, business: Business, **kwargs) -> Listing:
        suffix = uuid.uuid4().hex[:8]
        return self._save(
            Listing(
                business_id=business.id,
                slug=kwargs.pop("slug", f"listing-{suffix}"),
                display_name=kwargs.pop("display_name", "Jane Advisor"),
                headline=kwargs.pop("headline", "Retirement planning"),
                suburb=kwargs.pop("suburb", "Carlton"),
                contact_email=kwargs.pop("contact_email", f"hello-{suffix}@advisor.test"),
                internal_notes=kwargs.pop("internal_notes", "internal only"),
                **kwargs,
            )
        )

    def lead(
        self,
        consumer: User,
        business: Business,
        listing: Listing | None = None,
        status: LeadStatus = LeadStatus.NEW,
    ) -> Lead:
        return self._save(
            Lead(
                consumer_user_id=consumer.id,
                business_id=business.id,
                listing_id=listing.id if listing else None,
                status=status.value,
                summary="Looking for help with super",
            )
        )

    def review(
        self,
        lead: Lead,
        listing: Listing,
        status: ReviewStatus = ReviewStatus.PUBLISHED,
        rating: int = 5,
    ) -> Review:
        return self._save(
            Review(
                lead_id=lead.id,
                consumer_user_id=lead.consumer_user_id,
                business_id=listing.business_id,
                listing_id=listing.id,
                rating=rating,
                body="Very helpful",
                status=status.value,
                published_at=utcnow() if status is ReviewStatus.PUBLISHED else None,
            )
        )

    def disclosure(
        self,
        listing: Listing,
        kind: DisclosureKind = DisclosureKind.PROMOTION,
        active: bool = False,
    ) -> TrustDisclosure:
        return self._save(
            TrustDisclosure(
                listing_id=listing.id,
                disclosure_kind=kind.value,
                headline=f"{kind.value.title()} disclosure",
                disclosure_text="This listing pays for placement.",
                is_active=active,
                approved_at=utcnow() if active else None,
            )
        )

    def client_record(self, business: Business, consumer: User | None = None) -> ClientRecord:
        return self._save(
            ClientRecord(
                business_id=business.id,
                consumer_user_id=consumer.id if consumer else None,
            )
        )


@pytest.fixture(scope="function")
def factory(db: Session) -> Factory:
    return Factory(db)


@pytest.fixture(scope="function")
def principal_for(db: Session):
    """Resolve the Principal a factory user would get on a request."""
    def resolve(user: User | None) -> Principal:
        identity = Identity(user_id=user.id) if user is not None else None
        return principal_service.resolve_principal(db, identity)
    return resolve


# =============================================================================
# Common actors
# =============================================================================

@pytest.fixture
def business_a(factory):
    return factory.business("Alpha Advisory")


@pytest.fixture
def business_b(factory):
    return factory.business("Beta Wealth")


@pytest.fixture
def consumer(factory):
    return factory.user(Role.CONSUMER)


@pytest.fixture
def admin(factory):
    return factory.user(Role.ADMIN)


@pytest.fixture
def advisor_a(factory, business_a):
    return factory.advisor(business_a)


@pytest.fixture
def advisor_b(factory, business_b):
    return factory.advisor(business_b)


@pytest.fixture
def listing_a(factory, business_a):
    return factory.listing(business_a)


# =============================================================================
# Client Fixtures
# =============================================================================

@pytest.fixture
def auth_headers():
    """Bearer header carrying a session token for a factory user."""
    def build(user: User) -> dict[str, str]:
        token = create_session_token(user_id=user.id, token_version=user.token_version)
        return {"Authorization": f"Bearer {token}"}
    return build


@pytest.fixture(scope="function")
async def client(db: Session) -> AsyncGenerator[AsyncClient, None]:
    """
    AsyncClient bound to the test session. Authenticate per request
    with `headers=auth_headers(user)`.
    """
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
