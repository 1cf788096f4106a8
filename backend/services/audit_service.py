# services/audit_service.py — Audit trail: best-effort writer + read-only listing
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from fastapi import Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from models import AuditLog, AuditAction, AuditTargetType, User
from repositories.audit_log_repository import AuditLogRepository, AuditLogFilter
from repositories.common import PaginationOptions, total_pages

logger = logging.getLogger("devthon.audit")


@dataclass(frozen=True)
class AuditContext:
    """Request metadata stored alongside an audit entry."""

    ip_address: Optional[str] = None
    user_agent: Optional[str] = None

    @classmethod
    def from_request(cls, request: Request) -> "AuditContext":
        forwarded = request.headers.get("X-Forwarded-For")
        ip = forwarded.split(",")[0].strip() if forwarded else (
            request.client.host if request.client else None
        )
        return cls(ip_address=ip, user_agent=request.headers.get("User-Agent"))


def serialize_audit_log(entry: AuditLog, admin: Optional[User]) -> Dict[str, Any]:
    return {
        "id": entry.id,
        "adminId": entry.admin_id,
        "adminName": admin.name if admin else "Unknown",
        "adminEmail": admin.email if admin else None,
        "action": entry.action.value,
        "targetType": entry.target_type.value,
        "targetId": entry.target_id,
        "details": entry.details,
        "metadata": entry.extra_metadata,
        "ipAddress": entry.ip_address,
        "createdAt": entry.created_at.isoformat() if entry.created_at else None,
    }


def serialize_activity(entry: AuditLog, admin: Optional[User]) -> Dict[str, Any]:
    """Short form for dashboards."""
    return {
        "id": entry.id,
        "adminName": admin.name if admin else "Unknown",
        "action": entry.action.value,
        "targetType": entry.target_type.value,
        "details": entry.details,
        "createdAt": entry.created_at.isoformat() if entry.created_at else None,
    }


async def record_audit(
    db: AsyncSession,
    admin_id: str,
    action: AuditAction,
    target_type: AuditTargetType,
    target_id: str,
    details: str,
    metadata: Optional[Dict[str, Any]] = None,
    context: Optional[AuditContext] = None,
) -> Optional[AuditLog]:
    """Write one audit row in its own commit, after the audited change committed.

    A failure here is logged and swallowed; the mutation it documents stays.
    """
    context = context or AuditContext()
    try:
        entry = await AuditLogRepository(db).create(
            admin_id=admin_id,
            action=action,
            target_type=target_type,
            target_id=target_id,
            details=details,
            metadata=metadata,
            ip_address=context.ip_address,
            user_agent=context.user_agent,
        )
        await db.commit()
        return entry
    except SQLAlchemyError:
        await db.rollback()
        logger.exception(
            "Audit write failed",
            extra={"action": action.value, "target_id": target_id, "admin_id": admin_id},
        )
        return None


class AuditService:
    def __init__(self, db: AsyncSession):
        self.repo = AuditLogRepository(db)

    async def get_logs(self, filter: AuditLogFilter, pagination: PaginationOptions) -> Dict[str, Any]:
        rows, total = await self.repo.find_all(filter, pagination)
        return {
            "logs": [serialize_audit_log(entry, admin) for entry, admin in rows],
            "pagination": {
                "page": pagination.page,
                "limit": pagination.limit,
                "total": total,
                "totalPages": total_pages(total, pagination.limit),
            },
        }

    async def get_recent_logs(self, limit: int = 10) -> List[Dict[str, Any]]:
        rows = await self.repo.get_recent_logs(limit)
        return [serialize_audit_log(entry, admin) for entry, admin in rows]

    async def get_logs_by_target(self, target_type: AuditTargetType, target_id: str) -> List[Dict[str, Any]]:
        rows = await self.repo.find_by_target(target_type, target_id)
        return [serialize_audit_log(entry, admin) for entry, admin in rows]
