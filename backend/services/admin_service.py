# services/admin_service.py — Admin dashboard aggregates
from typing import Any, Dict

from sqlalchemy.ext.asyncio import AsyncSession

from repositories.audit_log_repository import AuditLogRepository
from repositories.organization_repository import OrganizationRepository
from repositories.problem_repository import ProblemRepository
from services.audit_service import serialize_activity

RECENT_ACTIVITY_LIMIT = 10


class AdminService:
    def __init__(self, db: AsyncSession):
        self.problems = ProblemRepository(db)
        self.organizations = OrganizationRepository(db)
        self.audit_logs = AuditLogRepository(db)

    async def get_dashboard_stats(self) -> Dict[str, Any]:
        problem_stats = await self.problems.get_stats()
        org_stats = await self.organizations.get_stats()
        recent = await self.audit_logs.get_recent_logs(RECENT_ACTIVITY_LIMIT)

        return {
            "problems": {
                key: problem_stats[key]
                for key in ("total", "pending", "approved", "rejected", "featured")
            },
            "organizations": {
                key: org_stats[key] for key in ("total", "verified", "unverified")
            },
            "recentActivity": [serialize_activity(entry, admin) for entry, admin in recent],
        }
