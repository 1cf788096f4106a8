# routers/admin.py — Review queue, verification, audit trail (role=admin)
from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from auth import require_admin, CurrentUser
from database import get_db_session
from errors import BadRequestError
from models import AuditTargetType
from responses import ok
from schemas import (
    ProblemQuery, OrganizationQuery, AuditQuery, ActivityQuery,
    ReviewRequest, FeatureRequest, VerifyRequest,
)
from services.admin_service import AdminService
from services.audit_service import AuditContext, AuditService
from services.organization_service import OrganizationService
from services.problem_service import ProblemService
from validation import query_model, validate_id

router = APIRouter(prefix="/api/admin", tags=["Admin"])


@router.get("/dashboard")
async def dashboard(
    user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
):
    return ok(await AdminService(db).get_dashboard_stats())


# --- Problems ---

@router.get("/problems")
async def list_problems(
    user: CurrentUser = Depends(require_admin),
    query: ProblemQuery = Depends(query_model(ProblemQuery)),
    db: AsyncSession = Depends(get_db_session),
):
    """All problems, any status"""
    result = await ProblemService(db).get_all_problems(query.to_filter(), query.to_pagination())
    return ok(result)


@router.get("/problems/pending")
async def pending_problems(
    user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
):
    return ok(await ProblemService(db).get_pending_problems())


@router.get("/problems/stats")
async def problem_stats(
    user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
):
    return ok(await ProblemService(db).get_stats())


@router.get("/problems/{problem_id}")
async def get_problem(
    problem_id: str,
    user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
):
    return ok(await ProblemService(db).get_problem_by_id(validate_id(problem_id)))


@router.post("/problems/{problem_id}/review")
async def review_problem(
    problem_id: str,
    data: ReviewRequest,
    request: Request,
    user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
):
    result = await ProblemService(db).review_problem(
        validate_id(problem_id),
        user.id,
        data.status,
        data.admin_notes,
        context=AuditContext.from_request(request),
    )
    return ok(result, f"Problem {data.status} successfully")


@router.post("/problems/{problem_id}/feature")
async def feature_problem(
    problem_id: str,
    data: FeatureRequest,
    request: Request,
    user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
):
    result = await ProblemService(db).set_featured(
        validate_id(problem_id),
        user.id,
        data.featured,
        context=AuditContext.from_request(request),
    )
    message = "Problem featured successfully" if data.featured else "Problem unfeatured successfully"
    return ok(result, message)


# --- Organizations ---

@router.get("/organizations")
async def list_organizations(
    user: CurrentUser = Depends(require_admin),
    query: OrganizationQuery = Depends(query_model(OrganizationQuery)),
    db: AsyncSession = Depends(get_db_session),
):
    result = await OrganizationService(db).get_organizations(query.to_filter(), query.to_pagination())
    return ok(result)


@router.get("/organizations/stats")
async def organization_stats(
    user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
):
    return ok(await OrganizationService(db).get_stats())


@router.get("/organizations/{organization_id}")
async def get_organization(
    organization_id: str,
    user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
):
    return ok(await OrganizationService(db).get_organization_by_id(validate_id(organization_id)))


@router.post("/organizations/{organization_id}/verify")
async def verify_organization(
    organization_id: str,
    data: VerifyRequest,
    request: Request,
    user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
):
    result = await OrganizationService(db).verify_organization(
        validate_id(organization_id),
        user.id,
        data.verified,
        context=AuditContext.from_request(request),
    )
    message = "Organization verified successfully" if data.verified else "Organization unverified"
    return ok(result, message)


# --- Audit trail ---

@router.get("/audit")
async def audit_logs(
    user: CurrentUser = Depends(require_admin),
    query: AuditQuery = Depends(query_model(AuditQuery)),
    db: AsyncSession = Depends(get_db_session),
):
    return ok(await AuditService(db).get_logs(query.to_filter(), query.to_pagination()))


@router.get("/activity")
async def recent_activity(
    user: CurrentUser = Depends(require_admin),
    query: ActivityQuery = Depends(query_model(ActivityQuery)),
    db: AsyncSession = Depends(get_db_session),
):
    return ok(await AuditService(db).get_recent_logs(query.limit))


@router.get("/audit/{target_type}/{target_id}")
async def audit_logs_for_target(
    target_type: str,
    target_id: str,
    user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
):
    """History of one problem, organization or user"""
    try:
        kind = AuditTargetType(target_type)
    except ValueError:
        raise BadRequestError("Invalid target type", "INVALID_TARGET_TYPE")
    return ok(await AuditService(db).get_logs_by_target(kind, validate_id(target_id)))
