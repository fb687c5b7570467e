"""Create the tables and seed a clinic with its first administrator.

Usage:
    python scripts/init_db.py "Bright Smile Dental" admin@example.com 'S3cret-pass'

Prints the clinic ID to put in ``DEFAULT_CLINIC_ID``.
"""

import asyncio
import sys

from app.database import AsyncSessionLocal, engine
from app.models import metadata
from app.services.clinic_service import ClinicService
from app.services.user_service import UserService


async def init_db(
    clinic_name: str | None = None,
    email: str | None = None,
    password: str | None = None,
) -> None:
    """Create all tables, then optionally a clinic and its admin."""
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)
    print("✓ Tables created")

    if clinic_name and email and password:
        async with AsyncSessionLocal() as session:
            clinic = await ClinicService(session).create_clinic(clinic_name)
            await UserService(session).create_user(
                clinic_id=clinic["id"],
                email=email,
                password=password,
                full_name="Clinic Administrator",
                role="admin",
            )
            await session.commit()
        print(f"✓ Clinic created: DEFAULT_CLINIC_ID={clinic['id']}")

    await engine.dispose()


if __name__ == "__main__":
    if len(sys.argv) not in (1, 4):
        print(__doc__)
        sys.exit(2)
    asyncio.run(init_db(*sys.argv[1:]))
