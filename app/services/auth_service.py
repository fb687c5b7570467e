"""Authentication service for password sign-in and JWT issuance."""

from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import (
    BadRequestException,
    ConflictException,
    ForbiddenException,
    UnauthorizedException,
)
from app.core.security import (
    create_access_token,
    create_refresh_token,
    decode_refresh_token,
    verify_password,
)
from app.schemas.auth import ChangePasswordRequest, SignInRequest, SignUpRequest, Token
from app.services.clinic_service import ClinicService
from app.services.patient_service import PatientService
from app.services.user_service import UserService

logger = structlog.get_logger()


class AuthService:
    """Authentication service for account and token operations."""

    def __init__(self, db: AsyncSession):
        """Initialize auth service with database session."""
        self.db = db
        self.users = UserService(db)

    @staticmethod
    def create_tokens(user: dict) -> Token:
        """
        Create access and refresh tokens for a user.

        Args:
            user: User row

        Returns:
            Token pair (access and refresh)
        """
        claims = {
            "sub": str(user["id"]),
            "role": user["role"],
            "clinic_id": str(user["clinic_id"]),
        }
        return Token(
            access_token=create_access_token(claims),
            refresh_token=create_refresh_token({"sub": str(user["id"])}),
        )

    async def sign_up(self, data: SignUpRequest) -> tuple[dict, Token]:
        """
        Register an account.

        Admins create their clinic; patients join the default clinic and are
        linked to (or given) a patient record with the same email.

        Returns:
            Tuple of (user dict, token pair)

        Raises:
            ConflictException: If the email is already registered
            BadRequestException: If a patient signs up with no default clinic configured
        """
        if await self.users.get_user_by_email(data.email):
            raise ConflictException("User already exists with this email")

        full_name = f"{data.first_name} {data.last_name}"
        clinic_service = ClinicService(self.db)

        if data.role == "admin":
            clinic = await clinic_service.create_clinic(
                data.clinic_name or full_name, email=data.email
            )
            clinic_id: UUID = clinic["id"]
        else:
            if settings.default_clinic_id is None:
                raise BadRequestException("Clinic configuration not found")
            clinic_id = (await clinic_service.get_clinic(settings.default_clinic_id))["id"]

        user = await self.users.create_user(
            clinic_id=clinic_id,
            email=data.email,
            password=data.password,
            full_name=full_name,
            role=data.role,
        )

        if data.role == "patient":
            patient_service = PatientService(self.db)
            patient = await patient_service.find_by_email(clinic_id, data.email)
            if patient is None:
                patient = await patient_service.insert_patient(
                    clinic_id,
                    {
                        "first_name": data.first_name,
                        "last_name": data.last_name,
                        "email": data.email,
                        "phone": data.phone,
                        "user_id": user["id"],
                    },
                )
            else:
                await patient_service.link_user(patient["id"], user["id"])

        await self.db.commit()

        logger.info("user_signed_up", user_id=str(user["id"]), role=data.role)
        return user, self.create_tokens(user)

    async def sign_in(self, data: SignInRequest) -> tuple[dict, Token]:
        """
        Verify credentials and issue tokens.

        Raises:
            UnauthorizedException: If email or password is wrong
            ForbiddenException: If the account is deactivated
        """
        user = await self.users.get_user_by_email(data.email)

        if not user or not verify_password(data.password, user["password_hash"]):
            logger.info("sign_in_failed", email=data.email)
            raise UnauthorizedException("Invalid credentials")

        if not user["is_active"]:
            raise ForbiddenException("User account is deactivated")

        await self.users.update_last_login(user["id"])
        user = await self.users.get_user_by_id(user["id"]) or user

        return user, self.create_tokens(user)

    async def refresh_access_token(self, refresh_token: str) -> Token:
        """
        Exchange a refresh token for a new token pair.

        Raises:
            UnauthorizedException: If the refresh token or its user is invalid
        """
        payload = decode_refresh_token(refresh_token)
        if not payload or not payload.get("sub"):
            raise UnauthorizedException("Invalid refresh token")

        try:
            user_id = UUID(payload["sub"])
        except ValueError:
            raise UnauthorizedException("Invalid refresh token")

        user = await self.users.get_user_by_id(user_id)
        if not user or not user["is_active"]:
            raise UnauthorizedException("Invalid refresh token")

        return self.create_tokens(user)

    async def change_password(self, user: dict, data: ChangePasswordRequest) -> None:
        """
        Change the signed-in user's password.

        Raises:
            UnauthorizedException: If the current password is wrong
        """
        if not verify_password(data.current_password, user["password_hash"]):
            raise UnauthorizedException("Current password is incorrect")

        await self.users.set_password(user["id"], data.new_password)
        logger.info("password_changed", user_id=str(user["id"]))
