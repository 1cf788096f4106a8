# repositories/organization_repository.py — Organization queries
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from models import Organization, Industry
from repositories.common import PaginationOptions, apply_pagination

SORTABLE_FIELDS = {
    "createdAt": Organization.created_at,
    "updatedAt": Organization.updated_at,
    "name": Organization.name,
    "industry": Organization.industry,
    "verified": Organization.verified,
}

UPDATABLE_FIELDS = frozenset({
    "name", "description", "website", "industry", "contact_person", "contact_email", "logo",
})


@dataclass
class OrganizationFilter:
    verified: Optional[bool] = None
    is_active: Optional[bool] = None
    industry: Optional[Industry] = None
    search: Optional[str] = None


class OrganizationRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(
        self,
        user_id: str,
        name: str,
        industry: Industry,
        contact_person: str,
        contact_email: str,
        description: Optional[str] = None,
        website: Optional[str] = None,
        logo: Optional[str] = None,
    ) -> Organization:
        organization = Organization(
            user_id=user_id,
            name=name.strip(),
            industry=industry,
            contact_person=contact_person.strip(),
            contact_email=contact_email.lower().strip(),
            description=description,
            website=website or None,
            logo=logo,
            verified=False,
            is_active=True,
        )
        self.db.add(organization)
        await self.db.flush()
        return organization

    async def find_by_id(self, organization_id: str) -> Optional[Organization]:
        stmt = select(Organization).where(Organization.id == organization_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def find_by_user_id(self, user_id: str) -> Optional[Organization]:
        stmt = select(Organization).where(Organization.user_id == user_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    def _apply_filter(self, stmt, filter: OrganizationFilter):
        if filter.verified is not None:
            stmt = stmt.where(Organization.verified == filter.verified)
        if filter.is_active is not None:
            stmt = stmt.where(Organization.is_active == filter.is_active)
        if filter.industry is not None:
            stmt = stmt.where(Organization.industry == filter.industry)
        if filter.search:
            stmt = stmt.where(or_(
                Organization.name.icontains(filter.search, autoescape=True),
                Organization.contact_person.icontains(filter.search, autoescape=True),
            ))
        return stmt

    async def find_all(
        self,
        filter: Optional[OrganizationFilter] = None,
        pagination: Optional[PaginationOptions] = None,
    ) -> Tuple[List[Organization], int]:
        filter = filter or OrganizationFilter()

        count_stmt = self._apply_filter(select(func.count(Organization.id)), filter)
        total = (await self.db.execute(count_stmt)).scalar() or 0

        stmt = self._apply_filter(select(Organization), filter)
        stmt = apply_pagination(stmt, pagination, SORTABLE_FIELDS, Organization.created_at)
        result = await self.db.execute(stmt)
        return list(result.scalars().all()), total

    async def update(self, organization: Organization, data: Dict[str, Any]) -> Organization:
        for key, value in data.items():
            if key not in UPDATABLE_FIELDS:
                raise KeyError(f"Organization field not updatable: {key}")
            setattr(organization, key, value)
        self.db.add(organization)
        await self.db.flush()
        return organization

    async def set_verified(self, organization: Organization, verified: bool) -> Organization:
        organization.verified = verified
        self.db.add(organization)
        await self.db.flush()
        return organization

    async def count(self, filter: Optional[OrganizationFilter] = None) -> int:
        stmt = self._apply_filter(select(func.count(Organization.id)), filter or OrganizationFilter())
        return (await self.db.execute(stmt)).scalar() or 0

    async def count_verified(self) -> int:
        return await self.count(OrganizationFilter(verified=True, is_active=True))

    async def count_by_industry(self) -> Dict[str, int]:
        stmt = (
            select(Organization.industry, func.count(Organization.id))
            .where(Organization.is_active.is_(True))
            .group_by(Organization.industry)
        )
        result = await self.db.execute(stmt)
        return {Industry(industry).value: count for industry, count in result.all()}

    async def get_stats(self) -> Dict[str, Any]:
        total = await self.count(OrganizationFilter(is_active=True))
        verified = await self.count_verified()
        return {
            "total": total,
            "verified": verified,
            "unverified": total - verified,
            "byIndustry": await self.count_by_industry(),
        }
