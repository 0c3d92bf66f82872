"""Script to initialize the database, optionally with demo records."""

import argparse
import asyncio
from uuid import UUID

from sqlalchemy import insert

from app.database import AsyncSessionLocal, engine
from app.models import admins, doctor_exams, doctors, exams, metadata, patients

# Fixed ids so the X-Demo-* headers can be typed by hand
DEMO_ADMIN_ID = UUID("11111111-1111-4111-8111-111111111111")
DEMO_PATIENT_ID = UUID("22222222-2222-4222-8222-222222222222")
DEMO_DOCTOR_IDS = (
    UUID("33333333-3333-4333-8333-333333333331"),
    UUID("33333333-3333-4333-8333-333333333332"),
)
DEMO_EXAM_ID = UUID("44444444-4444-4444-8444-444444444444")


async def init_db() -> None:
    """Initialize the database by creating all tables."""
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)

    print("✓ Database initialized successfully!")


async def seed_demo_data() -> None:
    """Insert one admin, one patient, two doctors and a qualified exam."""
    async with AsyncSessionLocal() as session:
        await session.execute(
            insert(admins).values(
                id=DEMO_ADMIN_ID, first_name="Ada", last_name="Admin", email="admin@example.com"
            )
        )
        await session.execute(
            insert(patients).values(
                id=DEMO_PATIENT_ID,
                first_name="Paula",
                last_name="Patient",
                email="patient@example.com",
            )
        )
        for index, doctor_id in enumerate(DEMO_DOCTOR_IDS, start=1):
            await session.execute(
                insert(doctors).values(
                    id=doctor_id,
                    first_name=f"Doctor{index}",
                    last_name="Radiology",
                    gender="F" if index % 2 else "M",
                    specialization="Radiology",
                    email=f"doctor{index}@example.com",
                )
            )
        await session.execute(
            insert(exams).values(
                id=DEMO_EXAM_ID,
                name="Chest X-Ray",
                description="Standard two-view chest radiograph",
                duration_minutes=30,
                is_active=True,
            )
        )
        for doctor_id in DEMO_DOCTOR_IDS:
            await session.execute(
                insert(doctor_exams).values(doctor_id=doctor_id, exam_id=DEMO_EXAM_ID)
            )
        await session.commit()

    print("✓ Demo data inserted")


async def main(seed: bool) -> None:
    await init_db()
    if seed:
        await seed_demo_data()
    await engine.dispose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create the scheduling tables")
    parser.add_argument("--seed", action="store_true", help="Insert demo records")
    args = parser.parse_args()
    asyncio.run(main(args.seed))
