# routers/auth.py — Registration, role-scoped login, refresh, identity
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from auth import get_current_user, CurrentUser
from database import get_db_session
from models import UserRole
from responses import ok
from schemas import RegisterRequest, LoginRequest, RefreshRequest
from services.auth_service import AuthService

router = APIRouter(prefix="/api/auth", tags=["Authentication"])


@router.post("/register", status_code=201)
async def register(
    data: RegisterRequest,
    db: AsyncSession = Depends(get_db_session),
):
    """Self-registration for organizations"""
    result = await AuthService(db).register_organization(data)
    return ok(result, "Registration successful")


@router.post("/login/organization")
async def login_organization(
    data: LoginRequest,
    db: AsyncSession = Depends(get_db_session),
):
    result = await AuthService(db).login(data, expected_role=UserRole.ORGANIZATION)
    return ok(result, "Login successful")


@router.post("/login/admin")
async def login_admin(
    data: LoginRequest,
    db: AsyncSession = Depends(get_db_session),
):
    result = await AuthService(db).login(data, expected_role=UserRole.ADMIN)
    return ok(result, "Login successful")


@router.post("/refresh")
async def refresh_token(
    data: RefreshRequest,
    db: AsyncSession = Depends(get_db_session),
):
    """Exchange a refresh token for a new access token"""
    return ok(await AuthService(db).refresh_token(data.refresh_token))


@router.get("/me")
async def me(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    return ok(await AuthService(db).get_current_user(user.id))


@router.post("/logout")
async def logout(user: CurrentUser = Depends(get_current_user)):
    """Tokens are stateless; the client discards them."""
    return ok(message="Logged out successfully")
