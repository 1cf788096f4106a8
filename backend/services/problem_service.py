# services/problem_service.py — Problem statement lifecycle
#
#   pending ──review──▶ approved ──feature──▶ approved + featured
#      │                    ▲
#      └──review──▶ rejected┘ (re-review allowed, each call re-stamps)
#
# Owners may edit or delete only while status != approved.
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from errors import BadRequestError, ForbiddenError, NotFoundError, ValidationError
from models import (
    ProblemStatement, Organization, ProblemStatus, Track,
    AuditAction, AuditTargetType, category_matches_track,
)
from repositories.common import PaginationOptions, total_pages
from repositories.organization_repository import OrganizationRepository
from repositories.problem_repository import ProblemRepository, ProblemFilter, ProblemRow
from schemas import ProblemCreateRequest, ProblemUpdateRequest
from services.audit_service import AuditContext, record_audit

logger = logging.getLogger("devthon.problems")


def _iso(value) -> Optional[str]:
    return value.isoformat() if value else None


def serialize_problem(
    problem: ProblemStatement,
    organization: Optional[Organization],
    include_review: bool = True,
) -> Dict[str, Any]:
    """Wire shape of a problem. Public callers get it without review fields."""
    data: Dict[str, Any] = {
        "id": problem.id,
        "title": problem.title,
        "description": problem.description,
        "track": problem.track.value,
        "category": problem.category,
        "industry": problem.industry.value,
        "expectedOutcome": problem.expected_outcome,
        "techStack": list(problem.tech_stack or []),
        "difficulty": problem.difficulty.value,
        "datasets": problem.datasets,
        "apiLinks": problem.api_links,
        "referenceLinks": list(problem.reference_links or []),
        "ndaRequired": problem.nda_required,
        "mentorsProvided": problem.mentors_provided,
        "status": problem.status.value,
        "featured": problem.featured,
        "contactPerson": problem.contact_person,
        "contactEmail": problem.contact_email,
        "organizationId": problem.organization_id,
        "organization": (
            {"id": organization.id, "name": organization.name, "logo": organization.logo}
            if organization is not None else None
        ),
        "createdAt": _iso(problem.created_at),
        "updatedAt": _iso(problem.updated_at),
    }
    if include_review:
        data["adminNotes"] = problem.admin_notes
        data["reviewedBy"] = problem.reviewed_by
        data["reviewedAt"] = _iso(problem.reviewed_at)
    return data


def _serialize_rows(rows: List[ProblemRow], include_review: bool = True) -> List[Dict[str, Any]]:
    return [serialize_problem(p, o, include_review) for p, o in rows]


def _page(rows: List[ProblemRow], total: int, pagination: PaginationOptions, include_review: bool) -> Dict[str, Any]:
    return {
        "problems": _serialize_rows(rows, include_review),
        "pagination": {
            "page": pagination.page,
            "limit": pagination.limit,
            "total": total,
            "totalPages": total_pages(total, pagination.limit),
        },
    }


class ProblemService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.problems = ProblemRepository(db)
        self.organizations = OrganizationRepository(db)

    async def _get_or_404(self, problem_id: str) -> ProblemStatement:
        problem = await self.problems.find_by_id(problem_id)
        if problem is None:
            raise NotFoundError("Problem not found")
        return problem

    async def _get_with_org_or_404(self, problem_id: str) -> ProblemRow:
        row = await self.problems.find_by_id_with_org(problem_id)
        if row is None:
            raise NotFoundError("Problem not found")
        return row

    # ============================================================
    # PUBLIC READS (approved only)
    # ============================================================

    async def get_public_problems(self, filter: ProblemFilter, pagination: PaginationOptions) -> Dict[str, Any]:
        rows, total = await self.problems.find_public(filter, pagination)
        return _page(rows, total, pagination, include_review=False)

    async def get_public_problem_by_id(self, problem_id: str) -> Dict[str, Any]:
        row = await self.problems.find_public_by_id(problem_id)
        if row is None:
            raise NotFoundError("Problem not found")
        return serialize_problem(*row, include_review=False)

    async def get_featured_problems(self) -> List[Dict[str, Any]]:
        return _serialize_rows(await self.problems.find_featured(), include_review=False)

    async def get_recent_problems(self, limit: int = 6) -> List[Dict[str, Any]]:
        return _serialize_rows(await self.problems.find_recent(limit), include_review=False)

    async def get_public_stats(self) -> Dict[str, Any]:
        by_track = await self.problems.count_by_track(approved_only=True)
        return {
            "totalProblems": sum(by_track.values()),
            "totalOrganizations": await self.organizations.count_verified(),
            "totalCategories": await self.problems.count_approved_categories(),
            "byTrack": by_track,
        }

    # ============================================================
    # ORGANIZATION OWNER
    # ============================================================

    async def get_organization_problems(self, organization_id: str) -> List[Dict[str, Any]]:
        return _serialize_rows(await self.problems.find_by_organization(organization_id))

    async def create_problem(self, organization_id: str, data: ProblemCreateRequest) -> Dict[str, Any]:
        organization = await self.organizations.find_by_id(organization_id)
        if organization is None:
            raise NotFoundError("Organization not found")

        fields = data.model_dump()
        fields["contact_email"] = fields["contact_email"].lower()
        problem = await self.problems.create(organization_id, fields)
        await self.db.commit()

        logger.info(
            "Problem created",
            extra={"problem_id": problem.id, "organization_id": organization_id},
        )
        return serialize_problem(problem, organization)

    def _check_owner(self, problem: ProblemStatement, organization_id: str, verb: str) -> None:
        if problem.organization_id != organization_id:
            raise ForbiddenError(f"You can only {verb} your own problems")
        if problem.status == ProblemStatus.APPROVED:
            raise BadRequestError(f"Cannot {verb} approved problems. Please contact admin.")

    async def update_problem(
        self,
        problem_id: str,
        organization_id: str,
        data: ProblemUpdateRequest,
    ) -> Dict[str, Any]:
        problem, organization = await self._get_with_org_or_404(problem_id)
        self._check_owner(problem, organization_id, "update")

        patch = data.model_dump(exclude_unset=True)
        # explicit nulls on required columns are treated as "not sent"
        for key in ("title", "description", "track", "category", "industry", "expected_outcome",
                    "difficulty", "contact_person", "contact_email", "tech_stack",
                    "reference_links", "nda_required", "mentors_provided"):
            if key in patch and patch[key] is None:
                del patch[key]
        if "contact_email" in patch:
            patch["contact_email"] = patch["contact_email"].lower()

        track = Track(patch.get("track", problem.track))
        category = patch.get("category", problem.category)
        if not category_matches_track(track, category):
            raise ValidationError(
                "Validation failed",
                {"category": f"Category does not belong to the {track.value} track"},
            )

        await self.problems.update(problem, patch)
        await self.db.commit()

        logger.info(
            "Problem updated",
            extra={"problem_id": problem_id, "organization_id": organization_id},
        )
        return serialize_problem(problem, organization)

    async def delete_problem(self, problem_id: str, organization_id: str) -> None:
        problem = await self._get_or_404(problem_id)
        self._check_owner(problem, organization_id, "delete")

        await self.problems.delete(problem_id)
        await self.db.commit()

        logger.info(
            "Problem deleted",
            extra={"problem_id": problem_id, "organization_id": organization_id},
        )

    # ============================================================
    # ADMIN
    # ============================================================

    async def get_all_problems(self, filter: ProblemFilter, pagination: PaginationOptions) -> Dict[str, Any]:
        rows, total = await self.problems.find_all(filter, pagination)
        return _page(rows, total, pagination, include_review=True)

    async def get_pending_problems(self) -> List[Dict[str, Any]]:
        return _serialize_rows(await self.problems.find_pending())

    async def get_problem_by_id(self, problem_id: str) -> Dict[str, Any]:
        return serialize_problem(*await self._get_with_org_or_404(problem_id))

    async def review_problem(
        self,
        problem_id: str,
        admin_id: str,
        status: ProblemStatus,
        admin_notes: Optional[str] = None,
        context: Optional[AuditContext] = None,
    ) -> Dict[str, Any]:
        status = ProblemStatus(status)
        if status == ProblemStatus.PENDING:
            raise BadRequestError("Review status must be approved or rejected")

        problem, organization = await self._get_with_org_or_404(problem_id)
        await self.problems.review(problem, status, reviewed_by=admin_id, admin_notes=admin_notes)
        await self.db.commit()
        result = serialize_problem(problem, organization)

        approved = status == ProblemStatus.APPROVED
        await record_audit(
            self.db,
            admin_id=admin_id,
            action=AuditAction.APPROVE_PROBLEM if approved else AuditAction.REJECT_PROBLEM,
            target_type=AuditTargetType.PROBLEM,
            target_id=problem_id,
            details=f"{'Approved' if approved else 'Rejected'} problem: {result['title']}",
            metadata={"adminNotes": admin_notes},
            context=context,
        )

        logger.info(
            "Problem reviewed",
            extra={"problem_id": problem_id, "admin_id": admin_id, "status": status.value},
        )
        return result

    async def set_featured(
        self,
        problem_id: str,
        admin_id: str,
        featured: bool,
        context: Optional[AuditContext] = None,
    ) -> Dict[str, Any]:
        problem, organization = await self._get_with_org_or_404(problem_id)
        if problem.status != ProblemStatus.APPROVED:
            raise BadRequestError("Only approved problems can be featured")

        await self.problems.set_featured(problem, featured)
        await self.db.commit()
        result = serialize_problem(problem, organization)

        await record_audit(
            self.db,
            admin_id=admin_id,
            action=AuditAction.FEATURE_PROBLEM if featured else AuditAction.UNFEATURE_PROBLEM,
            target_type=AuditTargetType.PROBLEM,
            target_id=problem_id,
            details=f"{'Featured' if featured else 'Unfeatured'} problem: {result['title']}",
            context=context,
        )

        logger.info(
            "Problem feature status updated",
            extra={"problem_id": problem_id, "admin_id": admin_id, "featured": featured},
        )
        return result

    async def get_stats(self) -> Dict[str, Any]:
        return await self.problems.get_stats()
