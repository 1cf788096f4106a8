# routers/organization.py — Organization self-service (role=organization)
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from auth import require_organization, CurrentUser
from database import get_db_session
from responses import ok
from schemas import OrganizationUpdateRequest, ProblemCreateRequest, ProblemUpdateRequest
from services.organization_service import OrganizationService
from services.problem_service import ProblemService
from validation import validate_id

router = APIRouter(prefix="/api/org", tags=["Organization"])


async def _own_organization_id(user: CurrentUser, db: AsyncSession) -> str:
    return await OrganizationService(db).require_organization_id(user.id)


@router.get("/dashboard")
async def dashboard(
    user: CurrentUser = Depends(require_organization),
    db: AsyncSession = Depends(get_db_session),
):
    organization_id = await _own_organization_id(user, db)
    return ok(await OrganizationService(db).get_organization_dashboard(organization_id))


@router.get("/profile")
async def get_profile(
    user: CurrentUser = Depends(require_organization),
    db: AsyncSession = Depends(get_db_session),
):
    return ok(await OrganizationService(db).get_organization_by_user_id(user.id))


@router.put("/profile")
async def update_profile(
    data: OrganizationUpdateRequest,
    user: CurrentUser = Depends(require_organization),
    db: AsyncSession = Depends(get_db_session),
):
    service = OrganizationService(db)
    organization_id = await service.require_organization_id(user.id)
    result = await service.update_organization(organization_id, user.id, data)
    return ok(result, "Organization updated successfully")


@router.get("/problems")
async def my_problems(
    user: CurrentUser = Depends(require_organization),
    db: AsyncSession = Depends(get_db_session),
):
    organization_id = await _own_organization_id(user, db)
    return ok(await ProblemService(db).get_organization_problems(organization_id))


@router.post("/problems", status_code=201)
async def create_problem(
    data: ProblemCreateRequest,
    user: CurrentUser = Depends(require_organization),
    db: AsyncSession = Depends(get_db_session),
):
    organization_id = await _own_organization_id(user, db)
    result = await ProblemService(db).create_problem(organization_id, data)
    return ok(result, "Problem submitted successfully")


@router.put("/problems/{problem_id}")
async def update_problem(
    problem_id: str,
    data: ProblemUpdateRequest,
    user: CurrentUser = Depends(require_organization),
    db: AsyncSession = Depends(get_db_session),
):
    problem_id = validate_id(problem_id)
    organization_id = await _own_organization_id(user, db)
    result = await ProblemService(db).update_problem(problem_id, organization_id, data)
    return ok(result, "Problem updated successfully")


@router.delete("/problems/{problem_id}")
async def delete_problem(
    problem_id: str,
    user: CurrentUser = Depends(require_organization),
    db: AsyncSession = Depends(get_db_session),
):
    problem_id = validate_id(problem_id)
    organization_id = await _own_organization_id(user, db)
    await ProblemService(db).delete_problem(problem_id, organization_id)
    return ok(message="Problem deleted successfully")
