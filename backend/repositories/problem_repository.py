# repositories/problem_repository.py — ProblemStatement queries
#
# Every read that can reach an unauthenticated caller goes through
# _public_select(), which pins status=approved before any caller filter
# is applied. Rows come back as (ProblemStatement, Organization | None).
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select, func, or_, delete
from sqlalchemy.ext.asyncio import AsyncSession

from models import (
    ProblemStatement, Organization, ProblemStatus, Track, Difficulty, Industry, utcnow,
)
from repositories.common import PaginationOptions, apply_pagination

ProblemRow = Tuple[ProblemStatement, Optional[Organization]]

SORTABLE_FIELDS = {
    "createdAt": ProblemStatement.created_at,
    "updatedAt": ProblemStatement.updated_at,
    "title": ProblemStatement.title,
    "track": ProblemStatement.track,
    "category": ProblemStatement.category,
    "difficulty": ProblemStatement.difficulty,
    "status": ProblemStatement.status,
}

UPDATABLE_FIELDS = frozenset({
    "title", "description", "track", "category", "industry", "expected_outcome",
    "tech_stack", "difficulty", "datasets", "api_links", "reference_links",
    "nda_required", "mentors_provided", "contact_person", "contact_email",
})


@dataclass
class ProblemFilter:
    search: Optional[str] = None
    track: Optional[Track] = None
    category: Optional[str] = None
    difficulty: Optional[Difficulty] = None
    industry: Optional[Industry] = None
    status: Optional[ProblemStatus] = None
    featured: Optional[bool] = None
    organization_id: Optional[str] = None


def _with_organization():
    return select(ProblemStatement, Organization).outerjoin(
        Organization, Organization.id == ProblemStatement.organization_id
    )


def _public_select():
    return _with_organization().where(ProblemStatement.status == ProblemStatus.APPROVED)


def _apply_filter(stmt, filter: ProblemFilter):
    """Add a WHERE clause per set field; unset fields never filter."""
    if filter.search:
        stmt = stmt.where(or_(
            ProblemStatement.title.icontains(filter.search, autoescape=True),
            ProblemStatement.description.icontains(filter.search, autoescape=True),
        ))
    if filter.track is not None:
        stmt = stmt.where(ProblemStatement.track == filter.track)
    if filter.category:
        stmt = stmt.where(ProblemStatement.category == filter.category)
    if filter.difficulty is not None:
        stmt = stmt.where(ProblemStatement.difficulty == filter.difficulty)
    if filter.industry is not None:
        stmt = stmt.where(ProblemStatement.industry == filter.industry)
    if filter.status is not None:
        stmt = stmt.where(ProblemStatement.status == filter.status)
    if filter.featured is not None:
        stmt = stmt.where(ProblemStatement.featured == filter.featured)
    if filter.organization_id:
        stmt = stmt.where(ProblemStatement.organization_id == filter.organization_id)
    return stmt


def _count_select():
    return select(func.count(ProblemStatement.id))


class ProblemRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    # --- Writes ---

    async def create(self, organization_id: str, data: Dict[str, Any]) -> ProblemStatement:
        fields = {k: v for k, v in data.items() if k in UPDATABLE_FIELDS}
        problem = ProblemStatement(
            organization_id=organization_id,
            status=ProblemStatus.PENDING,
            featured=False,
            **fields,
        )
        self.db.add(problem)
        await self.db.flush()
        return problem

    async def update(self, problem: ProblemStatement, data: Dict[str, Any]) -> ProblemStatement:
        for key, value in data.items():
            if key not in UPDATABLE_FIELDS:
                raise KeyError(f"Problem field not updatable: {key}")
            setattr(problem, key, value)
        problem.updated_at = utcnow()
        self.db.add(problem)
        await self.db.flush()
        return problem

    async def review(
        self,
        problem: ProblemStatement,
        status: ProblemStatus,
        reviewed_by: str,
        admin_notes: Optional[str] = None,
    ) -> ProblemStatement:
        problem.status = status
        problem.admin_notes = admin_notes
        problem.reviewed_by = reviewed_by
        problem.reviewed_at = utcnow()
        if status != ProblemStatus.APPROVED:
            problem.featured = False
        self.db.add(problem)
        await self.db.flush()
        return problem

    async def set_featured(self, problem: ProblemStatement, featured: bool) -> ProblemStatement:
        problem.featured = featured
        self.db.add(problem)
        await self.db.flush()
        return problem

    async def delete(self, problem_id: str) -> int:
        result = await self.db.execute(
            delete(ProblemStatement).where(ProblemStatement.id == problem_id)
        )
        return result.rowcount or 0

    # --- Unrestricted reads (organization owner / admin) ---

    async def find_by_id(self, problem_id: str) -> Optional[ProblemStatement]:
        stmt = select(ProblemStatement).where(ProblemStatement.id == problem_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def find_by_id_with_org(self, problem_id: str) -> Optional[ProblemRow]:
        stmt = _with_organization().where(ProblemStatement.id == problem_id)
        row = (await self.db.execute(stmt)).first()
        return (row[0], row[1]) if row else None

    async def find_all(
        self,
        filter: Optional[ProblemFilter] = None,
        pagination: Optional[PaginationOptions] = None,
    ) -> Tuple[List[ProblemRow], int]:
        filter = filter or ProblemFilter()
        total = (await self.db.execute(_apply_filter(_count_select(), filter))).scalar() or 0

        stmt = apply_pagination(
            _apply_filter(_with_organization(), filter),
            pagination, SORTABLE_FIELDS, ProblemStatement.created_at,
        )
        rows = (await self.db.execute(stmt)).all()
        return [(p, o) for p, o in rows], total

    async def find_pending(self) -> List[ProblemRow]:
        """Review queue, oldest submission first."""
        stmt = (
            _with_organization()
            .where(ProblemStatement.status == ProblemStatus.PENDING)
            .order_by(ProblemStatement.created_at.asc())
        )
        rows = (await self.db.execute(stmt)).all()
        return [(p, o) for p, o in rows]

    async def find_by_organization(self, organization_id: str, limit: Optional[int] = None) -> List[ProblemRow]:
        stmt = (
            _with_organization()
            .where(ProblemStatement.organization_id == organization_id)
            .order_by(ProblemStatement.created_at.desc())
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        rows = (await self.db.execute(stmt)).all()
        return [(p, o) for p, o in rows]

    # --- Public reads (approved only) ---

    async def find_public(
        self,
        filter: Optional[ProblemFilter] = None,
        pagination: Optional[PaginationOptions] = None,
    ) -> Tuple[List[ProblemRow], int]:
        # a caller-supplied status never widens the public view
        filter = replace(filter or ProblemFilter(), status=None)

        count_stmt = _apply_filter(
            _count_select().where(ProblemStatement.status == ProblemStatus.APPROVED), filter
        )
        total = (await self.db.execute(count_stmt)).scalar() or 0

        stmt = apply_pagination(
            _apply_filter(_public_select(), filter),
            pagination, SORTABLE_FIELDS, ProblemStatement.created_at,
        )
        rows = (await self.db.execute(stmt)).all()
        return [(p, o) for p, o in rows], total

    async def find_public_by_id(self, problem_id: str) -> Optional[ProblemRow]:
        stmt = _public_select().where(ProblemStatement.id == problem_id)
        row = (await self.db.execute(stmt)).first()
        return (row[0], row[1]) if row else None

    async def find_featured(self) -> List[ProblemRow]:
        stmt = (
            _public_select()
            .where(ProblemStatement.featured.is_(True))
            .order_by(ProblemStatement.created_at.desc())
        )
        rows = (await self.db.execute(stmt)).all()
        return [(p, o) for p, o in rows]

    async def find_recent(self, limit: int = 6) -> List[ProblemRow]:
        stmt = _public_select().order_by(ProblemStatement.created_at.desc()).limit(limit)
        rows = (await self.db.execute(stmt)).all()
        return [(p, o) for p, o in rows]

    # --- Aggregates ---

    async def count(self, filter: Optional[ProblemFilter] = None) -> int:
        stmt = _apply_filter(_count_select(), filter or ProblemFilter())
        return (await self.db.execute(stmt)).scalar() or 0

    async def count_by_status(self, organization_id: Optional[str] = None) -> Dict[str, int]:
        stmt = select(ProblemStatement.status, func.count(ProblemStatement.id))
        if organization_id:
            stmt = stmt.where(ProblemStatement.organization_id == organization_id)
        result = await self.db.execute(stmt.group_by(ProblemStatement.status))
        counts = {status.value: 0 for status in ProblemStatus}
        for status, count in result.all():
            counts[ProblemStatus(status).value] = count
        return counts

    async def count_by_track(self, approved_only: bool = False) -> Dict[str, int]:
        stmt = select(ProblemStatement.track, func.count(ProblemStatement.id))
        if approved_only:
            stmt = stmt.where(ProblemStatement.status == ProblemStatus.APPROVED)
        result = await self.db.execute(stmt.group_by(ProblemStatement.track))
        return {Track(track).value: count for track, count in result.all()}

    async def count_by_difficulty(self) -> Dict[str, int]:
        stmt = (
            select(ProblemStatement.difficulty, func.count(ProblemStatement.id))
            .group_by(ProblemStatement.difficulty)
        )
        result = await self.db.execute(stmt)
        return {Difficulty(d).value: count for d, count in result.all()}

    async def count_approved_categories(self) -> int:
        stmt = select(func.count(func.distinct(ProblemStatement.category))).where(
            ProblemStatement.status == ProblemStatus.APPROVED
        )
        return (await self.db.execute(stmt)).scalar() or 0

    async def get_stats(self) -> Dict[str, Any]:
        by_status = await self.count_by_status()
        featured = await self.count(ProblemFilter(status=ProblemStatus.APPROVED, featured=True))
        return {
            "total": sum(by_status.values()),
            "pending": by_status[ProblemStatus.PENDING.value],
            "approved": by_status[ProblemStatus.APPROVED.value],
            "rejected": by_status[ProblemStatus.REJECTED.value],
            "featured": featured,
            "byTrack": await self.count_by_track(),
            "byDifficulty": await self.count_by_difficulty(),
        }
