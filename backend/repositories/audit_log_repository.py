# repositories/audit_log_repository.py — Append-only audit trail
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from models import AuditLog, AuditAction, AuditTargetType, User
from repositories.common import PaginationOptions

# (entry, admin); admin is None when the acting user row is gone
AuditRow = Tuple[AuditLog, Optional[User]]


@dataclass
class AuditLogFilter:
    admin_id: Optional[str] = None
    action: Optional[AuditAction] = None
    target_type: Optional[AuditTargetType] = None
    target_id: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


def _with_admin():
    return select(AuditLog, User).outerjoin(User, User.id == AuditLog.admin_id)


def _apply_filter(stmt, filter: AuditLogFilter):
    if filter.admin_id:
        stmt = stmt.where(AuditLog.admin_id == filter.admin_id)
    if filter.action is not None:
        stmt = stmt.where(AuditLog.action == filter.action)
    if filter.target_type is not None:
        stmt = stmt.where(AuditLog.target_type == filter.target_type)
    if filter.target_id:
        stmt = stmt.where(AuditLog.target_id == filter.target_id)
    if filter.start_date is not None:
        stmt = stmt.where(AuditLog.created_at >= filter.start_date)
    if filter.end_date is not None:
        stmt = stmt.where(AuditLog.created_at <= filter.end_date)
    return stmt


class AuditLogRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(
        self,
        admin_id: str,
        action: AuditAction,
        target_type: AuditTargetType,
        target_id: str,
        details: str,
        metadata: Optional[Dict[str, Any]] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> AuditLog:
        entry = AuditLog(
            admin_id=admin_id,
            action=action,
            target_type=target_type,
            target_id=target_id,
            details=details[:500],
            extra_metadata=metadata,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        self.db.add(entry)
        await self.db.flush()
        return entry

    async def find_all(
        self,
        filter: Optional[AuditLogFilter] = None,
        pagination: Optional[PaginationOptions] = None,
    ) -> Tuple[List[AuditRow], int]:
        """Newest first; pagination only limits the page, sort is fixed."""
        filter = filter or AuditLogFilter()
        total = (await self.db.execute(
            _apply_filter(select(func.count(AuditLog.id)), filter)
        )).scalar() or 0

        stmt = _apply_filter(_with_admin(), filter).order_by(AuditLog.created_at.desc())
        if pagination is not None:
            stmt = stmt.offset(pagination.offset).limit(pagination.limit)
        rows = (await self.db.execute(stmt)).all()
        return [(entry, admin) for entry, admin in rows], total

    async def find_by_target(self, target_type: AuditTargetType, target_id: str) -> List[AuditRow]:
        rows, _ = await self.find_all(AuditLogFilter(target_type=target_type, target_id=target_id))
        return rows

    async def get_recent_logs(self, limit: int = 10) -> List[AuditRow]:
        stmt = _with_admin().order_by(AuditLog.created_at.desc()).limit(limit)
        rows = (await self.db.execute(stmt)).all()
        return [(entry, admin) for entry, admin in rows]

    async def count(self, filter: Optional[AuditLogFilter] = None) -> int:
        stmt = _apply_filter(select(func.count(AuditLog.id)), filter or AuditLogFilter())
        return (await self.db.execute(stmt)).scalar() or 0
