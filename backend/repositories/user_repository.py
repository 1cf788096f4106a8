# repositories/user_repository.py — User queries
from typing import Optional

from sqlalchemy import select, func, update
from sqlalchemy.ext.asyncio import AsyncSession

from models import User, UserRole, utcnow


class UserRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(
        self,
        email: str,
        password_hash: str,
        name: str,
        role: UserRole = UserRole.PUBLIC,
        avatar: Optional[str] = None,
    ) -> User:
        user = User(
            email=email.lower().strip(),
            password_hash=password_hash,
            name=name,
            role=role,
            avatar=avatar,
            is_active=True,
        )
        self.db.add(user)
        await self.db.flush()
        return user

    async def find_by_id(self, user_id: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def find_by_email(self, email: str) -> Optional[User]:
        stmt = select(User).where(User.email == email.lower().strip())
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def exists(self, email: str) -> bool:
        stmt = select(func.count(User.id)).where(User.email == email.lower().strip())
        result = await self.db.execute(stmt)
        return (result.scalar() or 0) > 0

    async def update_last_login(self, user_id: str) -> None:
        await self.db.execute(
            update(User).where(User.id == user_id).values(last_login_at=utcnow())
        )
