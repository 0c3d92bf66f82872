"""Shared fixtures: in-memory database, fixed clock, HTTP client and seed records."""

import os

# Test database: in-memory SQLite unless TEST_DATABASE_URL points elsewhere
TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ["DATABASE_URL"] = TEST_DATABASE_URL
os.environ.setdefault("CLEANUP_ENABLED", "false")
os.environ.setdefault("LOG_FORMAT", "console")

from collections.abc import AsyncGenerator  # noqa: E402
from datetime import UTC, datetime, timedelta  # noqa: E402
from uuid import UUID, uuid4  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy import insert  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import NullPool, StaticPool  # noqa: E402

from app.core.clock import FixedClock  # noqa: E402
from app.core.identity import Role  # noqa: E402
from app.database import get_db  # noqa: E402
from app.dependencies import HEADER_ADMIN, HEADER_DOCTOR, HEADER_PATIENT, get_clock  # noqa: E402
from app.main import app  # noqa: E402
from app.models import (  # noqa: E402
    admins,
    appointments,
    doctor_exams,
    doctors,
    exams,
    metadata,
    patients,
)

if TEST_DATABASE_URL.startswith("sqlite"):
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
else:
    # Use NullPool to avoid event loop issues with remote databases
    test_engine = create_async_engine(
        TEST_DATABASE_URL.replace("postgresql://", "postgresql+asyncpg://"),
        poolclass=NullPool,
    )

TestSessionLocal = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

# Default "now" for every test: two weeks before the booked slots
NOW = datetime(2026, 2, 1, 9, 0, tzinfo=UTC)
SLOT = datetime(2026, 2, 15, 10, 0, tzinfo=UTC)

ROLE_HEADERS = {
    Role.ADMIN: HEADER_ADMIN,
    Role.DOCTOR: HEADER_DOCTOR,
    Role.PATIENT: HEADER_PATIENT,
}


def headers_for(role: Role, identity: UUID) -> dict:
    """Identity header for a caller."""
    return {ROLE_HEADERS[role]: str(identity)}


async def create_patient(db: AsyncSession, **values) -> UUID:
    patient_id = values.pop("id", None) or uuid4()
    data = {
        "id": patient_id,
        "first_name": "Mario",
        "last_name": "Rossi",
        "email": f"patient-{patient_id}@example.com",
    }
    data.update(values)
    await db.execute(insert(patients).values(**data))
    await db.commit()
    return patient_id


async def create_doctor(db: AsyncSession, **values) -> UUID:
    doctor_id = values.pop("id", None) or uuid4()
    data = {
        "id": doctor_id,
        "first_name": "Giulia",
        "last_name": "Bianchi",
        "gender": "F",
        "specialization": "Radiology",
        "email": f"doctor-{doctor_id}@example.com",
    }
    data.update(values)
    await db.execute(insert(doctors).values(**data))
    await db.commit()
    return doctor_id


async def create_exam(db: AsyncSession, doctor_ids: list[UUID] = (), **values) -> UUID:
    exam_id = values.pop("id", None) or uuid4()
    data = {
        "id": exam_id,
        "name": f"Exam {exam_id.hex[:8]}",
        "duration_minutes": 30,
        "is_active": True,
    }
    data.update(values)
    await db.execute(insert(exams).values(**data))
    for doctor_id in doctor_ids:
        await db.execute(insert(doctor_exams).values(doctor_id=doctor_id, exam_id=exam_id))
    await db.commit()
    return exam_id


async def create_appointment(
    db: AsyncSession,
    patient_id: UUID,
    doctor_id: UUID,
    exam_id: UUID,
    scheduled_at: datetime,
    duration_minutes: int | None = 30,
    status: str = "pending",
) -> UUID:
    """Insert an appointment row directly, bypassing the booking rules."""
    appointment_id = uuid4()
    effective_duration = duration_minutes if duration_minutes is not None else 30
    await db.execute(
        insert(appointments).values(
            id=appointment_id,
            patient_id=patient_id,
            doctor_id=doctor_id,
            exam_id=exam_id,
            scheduled_at=scheduled_at,
            ends_at=scheduled_at + timedelta(minutes=effective_duration),
            duration_minutes=duration_minutes,
            status=status,
        )
    )
    await db.commit()
    return appointment_id


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async with test_engine.begin() as conn:
        await conn.run_sync(metadata.drop_all)
        await conn.run_sync(metadata.create_all)

    async with TestSessionLocal() as session:
        yield session

    async with test_engine.begin() as conn:
        await conn.run_sync(metadata.drop_all)


@pytest.fixture
def clock() -> FixedClock:
    """Clock frozen at NOW; tests may move it."""
    return FixedClock(NOW)


@pytest_asyncio.fixture
async def client(db_session: AsyncSession, clock: FixedClock) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        try:
            yield db_session
        except Exception:
            await db_session.rollback()
            raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
async def admin_id(db_session) -> UUID:
    admin = uuid4()
    await db_session.execute(
        insert(admins).values(id=admin, first_name="Anna", last_name="Admin", email="admin@test.com")
    )
    await db_session.commit()
    return admin


@pytest.fixture
async def patient_id(db_session) -> UUID:
    return await create_patient(db_session, first_name="Mario", last_name="Rossi")


@pytest.fixture
async def other_patient_id(db_session) -> UUID:
    return await create_patient(db_session, first_name="Luca", last_name="Verdi")


@pytest.fixture
async def doctor_ids(db_session) -> list[UUID]:
    """Two doctors, in the order they are qualified for ``exam_id``."""
    first = await create_doctor(db_session, first_name="Giulia", last_name="Bianchi")
    second = await create_doctor(db_session, first_name="Paolo", last_name="Neri", gender="M")
    return [first, second]


@pytest.fixture
async def unqualified_doctor_id(db_session) -> UUID:
    return await create_doctor(db_session, first_name="Sara", last_name="Galli")


@pytest.fixture
async def exam_id(db_session, doctor_ids) -> UUID:
    """Active 30-minute exam both doctors are qualified for."""
    return await create_exam(db_session, doctor_ids, name="Chest X-Ray", duration_minutes=30)
