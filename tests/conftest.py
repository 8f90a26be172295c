"""
Test configuration and fixtures for the PropertyHub API.
Provides an in-memory database, an HTTP client, and test data factories.
"""

import os
import tempfile

# Settings are read at import time
os.environ["ENVIRONMENT"] = "testing"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="propertyhub-uploads-")
os.environ["EMAIL_ENABLED"] = "false"
os.environ["OPENAI_API_KEY"] = ""

import pytest
import uuid
from datetime import datetime, time, timedelta
from decimal import Decimal
from typing import AsyncGenerator, Dict, Optional
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import propertyhub.models  # noqa: F401
from propertyhub.main import app
from propertyhub.database import Base, get_db
from propertyhub.models.appointment import Appointment
from propertyhub.models.image import PropertyImage
from propertyhub.models.user import User, UserRole
from propertyhub.models.property import Property, PropertyCategory, PropertyStatus, TransactionType
from propertyhub.repositories.appointment import AppointmentRepository
from propertyhub.repositories.image import PropertyImageRepository
from propertyhub.repositories.property import PropertyRepository
from propertyhub.repositories.user import UserRepository
from propertyhub.services.ai_search import clear_search_cache
from propertyhub.services.location import LocationValidator
from propertyhub.utils.auth import create_access_token
from propertyhub.utils.availability import business_now
from propertyhub.utils.rate_limit import rate_limiter

TEST_PASSWORD = "testpassword123"


@pytest.fixture
async def test_engine():
    """Fresh in-memory database per test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False}
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    session_factory = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest.fixture
async def async_client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client bound to the app with the test database session."""
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def reset_process_state():
    """Rate limits and caches live in the process; isolate them per test."""
    rate_limiter.reset()
    clear_search_cache()
    LocationValidator.clear_cache()
    yield
    rate_limiter.reset()
    clear_search_cache()
    LocationValidator.clear_cache()


@pytest.fixture
def user_repository(db_session: AsyncSession) -> UserRepository:
    return UserRepository(db_session)


@pytest.fixture
def property_repository(db_session: AsyncSession) -> PropertyRepository:
    return PropertyRepository(db_session)


# Test data factories
class UserFactory:
    """Factory for creating test users."""

    @staticmethod
    async def create_user(
        user_repo: UserRepository,
        email: Optional[str] = None,
        password: str = TEST_PASSWORD,
        name: str = "Test User",
        role: UserRole = UserRole.USER,
        is_active: bool = True,
        phone: Optional[str] = None
    ) -> User:
        return await user_repo.create_user({
            "email": email or f"user{uuid.uuid4().hex[:8]}@example.com",
            "password": password,
            "name": name,
            "role": role,
            "is_active": is_active,
            "phone": phone,
        })


class PropertyFactory:
    """Factory for creating test listings, in Cuenca by default."""

    @staticmethod
    def create_property_data(agent_id: Optional[uuid.UUID] = None, **overrides) -> Dict:
        data = {
            "title": "Casa moderna en El Ejido",
            "description": "Amplia casa de dos plantas con jardín y garaje cubierto.",
            "price": Decimal("185000.00"),
            "transaction_type": TransactionType.SALE,
            "category": PropertyCategory.HOUSE,
            "status": PropertyStatus.AVAILABLE,
            "bedrooms": 3,
            "bathrooms": 2,
            "area": 180,
            "address": "Av. Fray Vicente Solano 4-55",
            "city": "Cuenca",
            "state": "Azuay",
            "latitude": -2.9086,
            "longitude": -79.0066,
        }
        data.update(overrides)
        if agent_id is not None:
            data["agent_id"] = agent_id
        return data

    @staticmethod
    async def create_property(property_repo: PropertyRepository, agent_id: uuid.UUID, **overrides) -> Property:
        created = await property_repo.create(PropertyFactory.create_property_data(agent_id=agent_id, **overrides))
        return await property_repo.get_with_details(created.id)


class ImageFactory:
    """Factory for externally hosted gallery images."""

    @staticmethod
    async def create_image(db: AsyncSession, property_id: uuid.UUID, order: int = 0, **overrides) -> PropertyImage:
        data = {
            "property_id": property_id,
            "url": f"https://cdn.example.com/{uuid.uuid4().hex[:8]}.jpg",
            "order": order,
        }
        data.update(overrides)
        return await PropertyImageRepository(db).create(data)


class AppointmentFactory:
    """Factory for PENDING visits, on the next bookable slot by default."""

    @staticmethod
    async def create_appointment(
        db: AsyncSession,
        user: User,
        property_obj: Property,
        scheduled_at: Optional[datetime] = None,
        notes: Optional[str] = None
    ) -> Appointment:
        return await AppointmentRepository(db).create_appointment(
            user.id,
            property_obj.id,
            property_obj.agent_id,
            scheduled_at or next_business_slot(),
            notes=notes
        )


def auth_headers(user: User) -> Dict[str, str]:
    access_token = create_access_token(user_id=user.id, email=user.email, role=user.role)
    return {"Authorization": f"Bearer {access_token}"}


def next_business_slot(hour: int = 10, days_ahead: int = 1) -> datetime:
    """A bookable weekday start time at least ``days_ahead`` days from today."""
    day = business_now().date() + timedelta(days=days_ahead)
    while day.weekday() >= 5:
        day += timedelta(days=1)
    return datetime.combine(day, time(hour=hour))


# Common test fixtures
@pytest.fixture
async def test_user(user_repository: UserRepository) -> User:
    return await UserFactory.create_user(
        user_repository,
        email="client@test.com",
        name="Test Client",
        phone="+593 99 111 2222"
    )


@pytest.fixture
async def test_agent(user_repository: UserRepository) -> User:
    return await UserFactory.create_user(
        user_repository,
        email="agent@test.com",
        name="Test Agent",
        role=UserRole.AGENT
    )


@pytest.fixture
async def other_agent(user_repository: UserRepository) -> User:
    return await UserFactory.create_user(
        user_repository,
        email="other.agent@test.com",
        name="Other Agent",
        role=UserRole.AGENT
    )


@pytest.fixture
async def test_admin(user_repository: UserRepository) -> User:
    return await UserFactory.create_user(
        user_repository,
        email="admin@test.com",
        name="Test Admin",
        role=UserRole.ADMIN
    )


@pytest.fixture
async def test_inactive_user(user_repository: UserRepository) -> User:
    return await UserFactory.create_user(
        user_repository,
        email="inactive@test.com",
        name="Inactive User",
        is_active=False
    )


@pytest.fixture
async def test_property(property_repository: PropertyRepository, test_agent: User) -> Property:
    return await PropertyFactory.create_property(property_repository, agent_id=test_agent.id)


@pytest.fixture
async def rental_property(property_repository: PropertyRepository, test_agent: User) -> Property:
    return await PropertyFactory.create_property(
        property_repository,
        agent_id=test_agent.id,
        title="Departamento amueblado en el centro",
        price=Decimal("650.00"),
        transaction_type=TransactionType.RENT,
        category=PropertyCategory.APARTMENT,
        bedrooms=2,
        bathrooms=1,
        area=85,
        address="Calle Simón Bolívar 7-40",
        latitude=-2.8974,
        longitude=-79.0045
    )
