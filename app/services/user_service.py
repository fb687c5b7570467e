"""User service for business logic."""

from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy import func, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.security import get_password_hash
from app.models.users import users
from app.schemas.auth import ProfileUpdate


class UserService:
    """Service for user operations."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db

    async def create_user(
        self,
        clinic_id: UUID,
        email: str,
        password: str,
        full_name: str | None,
        role: str,
    ) -> dict:
        """Create a user without committing."""
        stmt = (
            insert(users)
            .values(
                clinic_id=clinic_id,
                email=email.lower(),
                password_hash=get_password_hash(password),
                full_name=full_name,
                role=role,
            )
            .returning(users)
        )

        result = await self.db.execute(stmt)
        return dict(result.mappings().one())

    async def get_user_by_id(self, user_id: UUID) -> dict | None:
        """Get user by ID."""
        stmt = select(users).where(users.c.id == user_id)
        result = await self.db.execute(stmt)
        user = result.mappings().first()
        return dict(user) if user else None

    async def get_user_by_email(self, email: str) -> dict | None:
        """Get user by email (case-insensitive)."""
        stmt = select(users).where(func.lower(users.c.email) == email.lower())
        result = await self.db.execute(stmt)
        user = result.mappings().first()
        return dict(user) if user else None

    async def update_profile(self, user_id: UUID, data: ProfileUpdate) -> dict | None:
        """Update user profile."""
        update_data = data.model_dump(exclude_unset=True)
        if not update_data:
            return await self.get_user_by_id(user_id)

        update_data["updated_at"] = datetime.now(UTC)

        stmt = update(users).where(users.c.id == user_id).values(**update_data).returning(users)
        result = await self.db.execute(stmt)
        user = result.mappings().first()
        await self.db.commit()

        return dict(user) if user else None

    async def set_password(self, user_id: UUID, password: str) -> None:
        """Replace the user's password hash."""
        stmt = (
            update(users)
            .where(users.c.id == user_id)
            .values(password_hash=get_password_hash(password), updated_at=datetime.now(UTC))
        )
        await self.db.execute(stmt)
        await self.db.commit()

    async def update_last_login(self, user_id: UUID) -> None:
        """Update user's last login timestamp."""
        stmt = update(users).where(users.c.id == user_id).values(last_login_at=datetime.now(UTC))
        await self.db.execute(stmt)
        await self.db.commit()
