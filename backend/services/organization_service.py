# services/organization_service.py — Organization profiles, verification, dashboards
import logging
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from errors import ForbiddenError, NotFoundError
from models import Organization, AuditAction, AuditTargetType
from repositories.common import PaginationOptions, total_pages
from repositories.organization_repository import OrganizationRepository, OrganizationFilter
from repositories.problem_repository import ProblemRepository
from schemas import OrganizationUpdateRequest
from services.audit_service import AuditContext, record_audit

logger = logging.getLogger("devthon.organizations")

RECENT_PROBLEMS_LIMIT = 5


def serialize_organization(organization: Organization) -> Dict[str, Any]:
    return {
        "id": organization.id,
        "userId": organization.user_id,
        "name": organization.name,
        "logo": organization.logo,
        "description": organization.description,
        "website": organization.website,
        "industry": organization.industry.value,
        "contactPerson": organization.contact_person,
        "contactEmail": organization.contact_email,
        "verified": organization.verified,
        "isActive": organization.is_active,
        "createdAt": organization.created_at.isoformat() if organization.created_at else None,
        "updatedAt": organization.updated_at.isoformat() if organization.updated_at else None,
    }


class OrganizationService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.organizations = OrganizationRepository(db)
        self.problems = ProblemRepository(db)

    async def _get_or_404(self, organization_id: str) -> Organization:
        organization = await self.organizations.find_by_id(organization_id)
        if organization is None:
            raise NotFoundError("Organization not found")
        return organization

    async def get_organizations(
        self,
        filter: OrganizationFilter,
        pagination: PaginationOptions,
    ) -> Dict[str, Any]:
        organizations, total = await self.organizations.find_all(filter, pagination)
        return {
            "organizations": [serialize_organization(o) for o in organizations],
            "pagination": {
                "page": pagination.page,
                "limit": pagination.limit,
                "total": total,
                "totalPages": total_pages(total, pagination.limit),
            },
        }

    async def get_organization_by_id(self, organization_id: str) -> Dict[str, Any]:
        return serialize_organization(await self._get_or_404(organization_id))

    async def get_organization_by_user_id(self, user_id: str) -> Dict[str, Any]:
        organization = await self.organizations.find_by_user_id(user_id)
        if organization is None:
            raise NotFoundError("Organization not found")
        return serialize_organization(organization)

    async def require_organization_id(self, user_id: str) -> str:
        """Organization owned by an organization-role caller; 404 if it has none."""
        organization = await self.organizations.find_by_user_id(user_id)
        if organization is None:
            raise NotFoundError("Organization not found")
        return organization.id

    async def update_organization(
        self,
        organization_id: str,
        acting_user_id: str,
        data: OrganizationUpdateRequest,
    ) -> Dict[str, Any]:
        organization = await self._get_or_404(organization_id)
        if organization.user_id != acting_user_id:
            raise ForbiddenError("You can only update your own organization")

        patch = data.model_dump(exclude_unset=True)
        for key in ("name", "industry", "contact_person", "contact_email"):
            if key in patch and patch[key] is None:
                del patch[key]
        if "website" in patch and patch["website"] == "":
            patch["website"] = None
        if "contact_email" in patch and patch["contact_email"]:
            patch["contact_email"] = patch["contact_email"].lower()

        await self.organizations.update(organization, patch)
        await self.db.commit()

        logger.info(
            "Organization updated",
            extra={"organization_id": organization_id, "user_id": acting_user_id},
        )
        return serialize_organization(organization)

    async def verify_organization(
        self,
        organization_id: str,
        admin_id: str,
        verified: bool,
        context: Optional[AuditContext] = None,
    ) -> Dict[str, Any]:
        """Set the verified flag. Writes an audit entry even when nothing changed."""
        organization = await self._get_or_404(organization_id)
        await self.organizations.set_verified(organization, verified)
        await self.db.commit()
        # a failed audit write rolls the session back and expires the instance
        result = serialize_organization(organization)

        await record_audit(
            self.db,
            admin_id=admin_id,
            action=AuditAction.VERIFY_ORGANIZATION if verified else AuditAction.SUSPEND_ORGANIZATION,
            target_type=AuditTargetType.ORGANIZATION,
            target_id=organization.id,
            details=f"{'Verified' if verified else 'Unverified'} organization: {organization.name}",
            context=context,
        )

        logger.info(
            "Organization verification status updated",
            extra={"organization_id": organization_id, "admin_id": admin_id, "verified": verified},
        )
        return result

    async def get_organization_dashboard(self, organization_id: str) -> Dict[str, Any]:
        organization = await self._get_or_404(organization_id)
        by_status = await self.problems.count_by_status(organization_id)
        recent = await self.problems.find_by_organization(organization_id, limit=RECENT_PROBLEMS_LIMIT)

        return {
            "organization": serialize_organization(organization),
            "stats": {
                "totalProblems": sum(by_status.values()),
                "pending": by_status["pending"],
                "approved": by_status["approved"],
                "rejected": by_status["rejected"],
            },
            "recentProblems": [
                {
                    "id": problem.id,
                    "title": problem.title,
                    "track": problem.track.value,
                    "category": problem.category,
                    "status": problem.status.value,
                    "createdAt": problem.created_at.isoformat() if problem.created_at else None,
                }
                for problem, _ in recent
            ],
        }

    async def get_stats(self) -> Dict[str, Any]:
        return await self.organizations.get_stats()
