# auth.py — Credentials, tokens and request authorization
# Features:
# - bcrypt password hashing (cost from BCRYPT_ROUNDS), hashing off the event loop
# - HS256 JWT access/refresh tokens with typed claims
# - Bearer extraction with distinct NO_TOKEN / INVALID_TOKEN_FORMAT failures
# - Deactivated accounts rejected with 403, not 401
# - Closed role set (UserRole) checked per route
# - Optional auth that degrades to anonymous

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, FrozenSet, Optional

import bcrypt
from fastapi import Depends, Request
from jose import jwt, JWTError
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

import config
from database import get_db_session
from errors import ForbiddenError, UnauthorizedError
from models import User, UserRole
from repositories.user_repository import UserRepository

logger = logging.getLogger("devthon.auth")

ACCESS_TOKEN = "access"
REFRESH_TOKEN = "refresh"

# bcrypt only looks at the first 72 bytes
BCRYPT_MAX_BYTES = 72


class InvalidTokenError(Exception):
    """Token signature, expiry, subject or type check failed."""


@dataclass(frozen=True)
class TokenPayload:
    subject_id: str
    email: str
    role: str
    token_type: str
    jti: Optional[str] = None


class CurrentUser(BaseModel):
    id: str
    email: str
    name: str
    role: UserRole
    is_active: bool


# ============================================================
# TOKEN SERVICE
# ============================================================

class TokenService:
    """Password hashing and JWT issuing/verification. No persistence."""

    @staticmethod
    def hash_password(password: str) -> str:
        salt = bcrypt.gensalt(rounds=config.BCRYPT_ROUNDS)
        return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")

    @staticmethod
    def verify_password(password: str, password_hash: str) -> bool:
        encoded = password.encode("utf-8")
        if len(encoded) > BCRYPT_MAX_BYTES:
            return False
        try:
            return bcrypt.checkpw(encoded, password_hash.encode("utf-8"))
        except ValueError:
            # malformed stored hash
            return False

    @staticmethod
    async def hash_password_async(password: str) -> str:
        return await run_in_threadpool(TokenService.hash_password, password)

    @staticmethod
    async def verify_password_async(password: str, password_hash: str) -> bool:
        return await run_in_threadpool(TokenService.verify_password, password, password_hash)

    @staticmethod
    def _create_token(user: User, token_type: str, expires_delta: timedelta) -> str:
        now = datetime.now(timezone.utc)
        role = user.role.value if isinstance(user.role, UserRole) else user.role
        claims: Dict[str, Any] = {
            "sub": user.id,
            "email": user.email,
            "role": role,
            "type": token_type,
            "iat": now,
            "exp": now + expires_delta,
            "jti": str(uuid.uuid4()),
        }
        return jwt.encode(claims, config.JWT_SECRET, algorithm=config.JWT_ALGORITHM)

    @staticmethod
    def create_access_token(user: User, expires_delta: Optional[timedelta] = None) -> str:
        delta = expires_delta if expires_delta is not None else config.access_token_lifetime()
        return TokenService._create_token(user, ACCESS_TOKEN, delta)

    @staticmethod
    def create_refresh_token(user: User, expires_delta: Optional[timedelta] = None) -> str:
        delta = expires_delta if expires_delta is not None else config.refresh_token_lifetime()
        return TokenService._create_token(user, REFRESH_TOKEN, delta)

    @staticmethod
    def verify_token(token: str, expected_type: Optional[str] = None) -> TokenPayload:
        try:
            claims = jwt.decode(token, config.JWT_SECRET, algorithms=[config.JWT_ALGORITHM])
        except JWTError as exc:
            raise InvalidTokenError(str(exc)) from exc

        subject = claims.get("sub")
        if not subject:
            raise InvalidTokenError("Token has no subject")

        token_type = claims.get("type", ACCESS_TOKEN)
        if expected_type is not None and token_type != expected_type:
            raise InvalidTokenError(f"Expected {expected_type} token, got {token_type}")

        return TokenPayload(
            subject_id=subject,
            email=claims.get("email", ""),
            role=claims.get("role", ""),
            token_type=token_type,
            jti=claims.get("jti"),
        )


# ============================================================
# REQUEST AUTHORIZATION
# ============================================================

def extract_bearer_token(authorization: Optional[str]) -> str:
    if not authorization or not authorization.startswith("Bearer "):
        raise UnauthorizedError("No token provided", "NO_TOKEN")
    token = authorization[len("Bearer "):].strip()
    if not token:
        raise UnauthorizedError("Invalid token format", "INVALID_TOKEN_FORMAT")
    return token


async def authenticate_request(request: Request, db: AsyncSession) -> CurrentUser:
    """Bearer header → verified access token → active user."""
    token = extract_bearer_token(request.headers.get("Authorization"))

    try:
        payload = TokenService.verify_token(token, expected_type=ACCESS_TOKEN)
    except InvalidTokenError:
        raise UnauthorizedError("Invalid or expired token", "INVALID_TOKEN")

    user = await UserRepository(db).find_by_id(payload.subject_id)
    if user is None:
        raise UnauthorizedError("User not found", "USER_NOT_FOUND")
    if not user.is_active:
        raise ForbiddenError("Account is deactivated", "ACCOUNT_DEACTIVATED")

    request.state.user_id = user.id
    return CurrentUser(
        id=user.id,
        email=user.email,
        name=user.name,
        role=user.role,
        is_active=user.is_active,
    )


async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_db_session),
) -> CurrentUser:
    return await authenticate_request(request, db)


async def get_optional_user(
    request: Request,
    db: AsyncSession = Depends(get_db_session),
) -> Optional[CurrentUser]:
    """Same pipeline as get_current_user, but any rejection means anonymous."""
    if not request.headers.get("Authorization"):
        return None
    try:
        return await authenticate_request(request, db)
    except (UnauthorizedError, ForbiddenError) as exc:
        logger.debug(f"Optional auth fell back to anonymous: {exc.code}")
        return None


def role_allowed(role: UserRole, allowed: FrozenSet[UserRole]) -> bool:
    if role is UserRole.ADMIN:
        return UserRole.ADMIN in allowed
    if role is UserRole.ORGANIZATION:
        return UserRole.ORGANIZATION in allowed
    if role is UserRole.PUBLIC:
        return UserRole.PUBLIC in allowed
    raise ValueError(f"Unhandled role: {role!r}")


def require_role(*roles: UserRole):
    """Dependency factory: require user to have one of the specified roles"""
    allowed = frozenset(UserRole(r) for r in roles)

    async def _check(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if not role_allowed(user.role, allowed):
            raise ForbiddenError("You do not have permission to access this resource")
        return user

    return _check


require_admin = require_role(UserRole.ADMIN)
require_organization = require_role(UserRole.ORGANIZATION)
