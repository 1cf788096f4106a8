# routers/problems.py — Public problem catalogue (approved problems only)
import logging
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from auth import get_optional_user, CurrentUser
from database import get_db_session
from responses import ok
from schemas import ProblemQuery, RecentQuery
from services.problem_service import ProblemService
from validation import query_model, validate_id

logger = logging.getLogger("devthon.problems")

router = APIRouter(prefix="/api/problems", tags=["Problems"])


@router.get("")
async def list_problems(
    query: ProblemQuery = Depends(query_model(ProblemQuery)),
    user: Optional[CurrentUser] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db_session),
):
    """Browse approved problems with filters and pagination"""
    if user is not None:
        logger.debug("Problem listing by signed-in user", extra={"user_id": user.id})
    result = await ProblemService(db).get_public_problems(query.to_filter(), query.to_pagination())
    return ok(result)


@router.get("/featured")
async def featured_problems(db: AsyncSession = Depends(get_db_session)):
    return ok(await ProblemService(db).get_featured_problems())


@router.get("/recent")
async def recent_problems(
    query: RecentQuery = Depends(query_model(RecentQuery)),
    db: AsyncSession = Depends(get_db_session),
):
    return ok(await ProblemService(db).get_recent_problems(query.limit))


@router.get("/stats/public")
async def public_stats(db: AsyncSession = Depends(get_db_session)):
    """Landing page counters"""
    return ok(await ProblemService(db).get_public_stats())


@router.get("/{problem_id}")
async def get_problem(
    problem_id: str,
    user: Optional[CurrentUser] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db_session),
):
    problem_id = validate_id(problem_id)
    if user is not None:
        logger.debug("Problem viewed by signed-in user", extra={"user_id": user.id, "problem_id": problem_id})
    return ok(await ProblemService(db).get_public_problem_by_id(problem_id))
