# services/auth_service.py — Registration, login, token refresh, identity
import logging
from typing import Any, Dict, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from auth import TokenService, InvalidTokenError, REFRESH_TOKEN
from errors import ConflictError, NotFoundError, UnauthorizedError
from models import User, Organization, UserRole, utcnow
from repositories.organization_repository import OrganizationRepository
from repositories.user_repository import UserRepository
from schemas import RegisterRequest, LoginRequest

logger = logging.getLogger("devthon.auth")


def serialize_user(user: User) -> Dict[str, Any]:
    return {
        "id": user.id,
        "email": user.email,
        "name": user.name,
        "role": user.role.value,
        "avatar": user.avatar,
    }


def serialize_org_summary(organization: Optional[Organization]) -> Optional[Dict[str, Any]]:
    if organization is None:
        return None
    return {
        "id": organization.id,
        "name": organization.name,
        "verified": organization.verified,
    }


def _issue_tokens(user: User) -> Dict[str, str]:
    return {
        "accessToken": TokenService.create_access_token(user),
        "refreshToken": TokenService.create_refresh_token(user),
    }


class AuthService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.users = UserRepository(db)
        self.organizations = OrganizationRepository(db)

    async def register_organization(self, data: RegisterRequest) -> Dict[str, Any]:
        """Create the organization account and its profile in one transaction."""
        if await self.users.exists(data.email):
            raise ConflictError("Email already registered", "EMAIL_EXISTS")

        password_hash = await TokenService.hash_password_async(data.password)
        try:
            user = await self.users.create(
                email=data.email,
                password_hash=password_hash,
                name=data.name or data.contact_person,
                role=UserRole.ORGANIZATION,
            )
            organization = await self.organizations.create(
                user_id=user.id,
                name=data.organization_name,
                industry=data.industry,
                contact_person=data.contact_person,
                contact_email=data.contact_email,
                description=data.description,
                website=data.website,
            )
            user.last_login_at = utcnow()
            await self.db.commit()
        except IntegrityError:
            # concurrent registration with the same email
            await self.db.rollback()
            raise ConflictError("Email already registered", "EMAIL_EXISTS")

        logger.info(
            "Organization registered",
            extra={"user_id": user.id, "organization_id": organization.id},
        )
        return {
            "user": serialize_user(user),
            "organization": serialize_org_summary(organization),
            "tokens": _issue_tokens(user),
        }

    async def login(self, data: LoginRequest, expected_role: Optional[UserRole] = None) -> Dict[str, Any]:
        user = await self.users.find_by_email(data.email)
        if user is None:
            raise UnauthorizedError("Invalid credentials", "INVALID_CREDENTIALS")

        if not await TokenService.verify_password_async(data.password, user.password_hash):
            raise UnauthorizedError("Invalid credentials", "INVALID_CREDENTIALS")

        if not user.is_active:
            raise UnauthorizedError("Account is deactivated", "ACCOUNT_DEACTIVATED")

        if expected_role is not None and user.role != expected_role:
            raise UnauthorizedError("Invalid credentials for this login type", "INVALID_LOGIN_TYPE")

        tokens = _issue_tokens(user)
        await self.users.update_last_login(user.id)
        await self.db.commit()

        organization = None
        if user.role == UserRole.ORGANIZATION:
            organization = await self.organizations.find_by_user_id(user.id)

        logger.info("User logged in", extra={"user_id": user.id, "role": user.role.value})
        return {
            "user": serialize_user(user),
            "organization": serialize_org_summary(organization),
            "tokens": tokens,
        }

    async def refresh_token(self, token: str) -> Dict[str, str]:
        """New access token only; the refresh token is not rotated."""
        try:
            payload = TokenService.verify_token(token, expected_type=REFRESH_TOKEN)
        except InvalidTokenError:
            raise UnauthorizedError("Invalid refresh token", "INVALID_REFRESH_TOKEN")

        user = await self.users.find_by_id(payload.subject_id)
        if user is None:
            raise UnauthorizedError("User not found", "USER_NOT_FOUND")
        if not user.is_active:
            raise UnauthorizedError("Account is deactivated", "ACCOUNT_DEACTIVATED")

        return {"accessToken": TokenService.create_access_token(user)}

    async def get_current_user(self, user_id: str) -> Dict[str, Any]:
        user = await self.users.find_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")

        result = serialize_user(user)
        result["createdAt"] = user.created_at.isoformat() if user.created_at else None

        if user.role == UserRole.ORGANIZATION:
            organization = await self.organizations.find_by_user_id(user.id)
            if organization is not None:
                result["organization"] = {
                    **serialize_org_summary(organization),
                    "industry": organization.industry.value,
                }
        return result
