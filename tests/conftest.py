import os
from collections.abc import AsyncGenerator
from datetime import date, timedelta
from uuid import UUID, uuid4

# Settings are read at import time; configure them before the app loads
TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL", "sqlite+aiosqlite:///:memory:")
DEFAULT_CLINIC_ID = "5f0c7a52-3a0e-4d8e-9a55-0d8c1b7e2a01"

os.environ["DATABASE_URL"] = TEST_DATABASE_URL
os.environ["DEFAULT_CLINIC_ID"] = DEFAULT_CLINIC_ID
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("LOG_FORMAT", "console")

import pytest
import pytest_asyncio
from dotenv import load_dotenv
from httpx import ASGITransport, AsyncClient
from sqlalchemy import insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool, StaticPool

# Load environment variables from .env file
load_dotenv()

from app.core.security import create_access_token
from app.database import get_db
from app.main import app
from app.models import clinics, metadata
from app.services.patient_service import PatientService
from app.services.user_service import UserService

ADMIN_PASSWORD = "admin-pass-123"
PATIENT_PASSWORD = "patient-pass-123"


def _make_engine():
    if TEST_DATABASE_URL.startswith("sqlite"):
        # In-memory SQLite lives as long as its single connection
        return create_async_engine(
            TEST_DATABASE_URL,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_async_engine(TEST_DATABASE_URL, poolclass=NullPool)


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session over freshly created tables."""
    engine = _make_engine()

    async with engine.begin() as conn:
        await conn.run_sync(metadata.drop_all)
        await conn.run_sync(metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session

    async with engine.begin() as conn:
        await conn.run_sync(metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


async def _create_clinic(db: AsyncSession, name: str, clinic_id: UUID | None = None) -> dict:
    values = {"id": clinic_id or uuid4(), "name": name, "is_active": True}
    await db.execute(insert(clinics).values(**values))
    await db.commit()
    return values


def _headers_for(user: dict) -> dict:
    token = create_access_token(
        data={"sub": str(user["id"]), "role": user["role"], "clinic_id": str(user["clinic_id"])},
        expires_delta=timedelta(minutes=30),
    )
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def clinic(db_session: AsyncSession) -> dict:
    """The clinic that receives public bookings."""
    return await _create_clinic(db_session, "Bright Smile Dental", UUID(DEFAULT_CLINIC_ID))


@pytest_asyncio.fixture
async def other_clinic(db_session: AsyncSession) -> dict:
    """A second, unrelated clinic."""
    return await _create_clinic(db_session, "Harbor Dental")


@pytest_asyncio.fixture
async def admin_user(db_session: AsyncSession, clinic: dict) -> dict:
    """Create an admin of the default clinic."""
    user = await UserService(db_session).create_user(
        clinic_id=clinic["id"],
        email="admin@brightsmile.test",
        password=ADMIN_PASSWORD,
        full_name="Dana Admin",
        role="admin",
    )
    await db_session.commit()
    return user


@pytest.fixture
def auth_headers(admin_user: dict) -> dict:
    """Authorization headers of the clinic admin."""
    return _headers_for(admin_user)


@pytest_asyncio.fixture
async def other_admin_headers(db_session: AsyncSession, other_clinic: dict) -> dict:
    """Authorization headers of the second clinic's admin."""
    user = await UserService(db_session).create_user(
        clinic_id=other_clinic["id"],
        email="admin@harbor.test",
        password=ADMIN_PASSWORD,
        full_name="Harbor Admin",
        role="admin",
    )
    await db_session.commit()
    return _headers_for(user)


@pytest_asyncio.fixture
async def patient(db_session: AsyncSession, clinic: dict) -> dict:
    """Create a patient record in the default clinic."""
    record = await PatientService(db_session).insert_patient(
        clinic["id"],
        {
            "first_name": "Maria",
            "last_name": "Lopez",
            "email": "maria@example.com",
            "phone": "+15550001111",
        },
    )
    await db_session.commit()
    return record


@pytest_asyncio.fixture
async def patient_user(db_session: AsyncSession, clinic: dict, patient: dict) -> dict:
    """Create a patient-role login linked to ``patient``."""
    service = PatientService(db_session)
    user = await UserService(db_session).create_user(
        clinic_id=clinic["id"],
        email=patient["email"],
        password=PATIENT_PASSWORD,
        full_name="Maria Lopez",
        role="patient",
    )
    await service.link_user(patient["id"], user["id"])
    await db_session.commit()
    return user


@pytest.fixture
def patient_headers(patient_user: dict) -> dict:
    """Authorization headers of the patient user."""
    return _headers_for(patient_user)


@pytest.fixture
def appointment_day() -> str:
    """A date in the future for bookings."""
    return (date.today() + timedelta(days=7)).isoformat()


@pytest.fixture
def sample_appointment_data(patient: dict, appointment_day: str) -> dict:
    """Sample appointment data for testing."""
    return {
        "patient_id": str(patient["id"]),
        "appointment_date": appointment_day,
        "appointment_time": "09:00",
        "duration_minutes": 60,
        "notes": "Routine cleaning",
    }
