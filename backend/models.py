# models.py — Database models for the DevThon problem statement portal
# - UUID string primary keys
# - Closed vocabularies as str enums (roles, tracks, industries, statuses, audit actions)
# - Explicit foreign keys only; joins are written out in the repositories
# - Audit log rows are append-only

import uuid
from datetime import datetime, timezone
from enum import Enum as PyEnum
from typing import Dict, Tuple

from sqlalchemy import (
    Column, String, DateTime, JSON, Boolean, Text,
    Enum as SQLEnum, ForeignKey, Index, event,
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def utcnow():
    return datetime.now(timezone.utc)


def new_uuid():
    return str(uuid.uuid4())


# ============================================================
# ENUMS
# ============================================================

class UserRole(str, PyEnum):
    ADMIN = "admin"
    ORGANIZATION = "organization"
    PUBLIC = "public"


class Track(str, PyEnum):
    SOFTWARE = "software"
    HARDWARE = "hardware"


class Difficulty(str, PyEnum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class ProblemStatus(str, PyEnum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class Industry(str, PyEnum):
    TECHNOLOGY = "Technology"
    HEALTHCARE = "Healthcare"
    FINANCE = "Finance"
    EDUCATION = "Education"
    MANUFACTURING = "Manufacturing"
    RETAIL = "Retail"
    ENERGY = "Energy"
    AGRICULTURE = "Agriculture"
    TRANSPORTATION = "Transportation"
    GOVERNMENT = "Government"
    NON_PROFIT = "Non-Profit"
    RESEARCH = "Research"
    OTHER = "Other"


class AuditAction(str, PyEnum):
    APPROVE_PROBLEM = "APPROVE_PROBLEM"
    REJECT_PROBLEM = "REJECT_PROBLEM"
    FEATURE_PROBLEM = "FEATURE_PROBLEM"
    UNFEATURE_PROBLEM = "UNFEATURE_PROBLEM"
    VERIFY_ORGANIZATION = "VERIFY_ORGANIZATION"
    SUSPEND_ORGANIZATION = "SUSPEND_ORGANIZATION"
    CREATE_PROBLEM = "CREATE_PROBLEM"
    UPDATE_PROBLEM = "UPDATE_PROBLEM"
    DELETE_PROBLEM = "DELETE_PROBLEM"


class AuditTargetType(str, PyEnum):
    PROBLEM = "problem"
    ORGANIZATION = "organization"
    USER = "user"


# ============================================================
# CATEGORIES
# ============================================================

SOFTWARE_CATEGORIES: Tuple[str, ...] = (
    "HealthTech, BioTech & MedTech",
    "EdTech & Smart Learning",
    "AI, Generative AI, Agentic AI & Intelligent Automation",
    "Cybersecurity, Blockchain & Digital Trust",
    "FinTech & Digital Economy",
    "ClimateTech, AgriTech & Sustainability",
    "Smart Cities, Mobility & Infrastructure",
)

HARDWARE_CATEGORIES: Tuple[str, ...] = (
    "IoT & Smart Devices",
    "Robotics & Automation",
    "Embedded Systems & Edge Computing",
    "Smart Energy & Green Hardware",
    "Healthcare & Assistive Hardware",
)

CATEGORIES_BY_TRACK: Dict[Track, Tuple[str, ...]] = {
    Track.SOFTWARE: SOFTWARE_CATEGORIES,
    Track.HARDWARE: HARDWARE_CATEGORIES,
}

ALL_CATEGORIES: Tuple[str, ...] = SOFTWARE_CATEGORIES + HARDWARE_CATEGORIES


def category_matches_track(track: Track, category: str) -> bool:
    return category in CATEGORIES_BY_TRACK[Track(track)]


# ============================================================
# USERS
# ============================================================

class User(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True, default=new_uuid)
    email = Column(String, unique=True, nullable=False, index=True)
    password_hash = Column(String, nullable=False)
    name = Column(String(100), nullable=False)
    role = Column(SQLEnum(UserRole), default=UserRole.PUBLIC, nullable=False, index=True)
    avatar = Column(String, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    last_login_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


# ============================================================
# ORGANIZATIONS
# ============================================================

class Organization(Base):
    __tablename__ = "organizations"

    id = Column(String, primary_key=True, default=new_uuid)
    user_id = Column(String, ForeignKey("users.id"), unique=True, nullable=False)
    name = Column(String(200), nullable=False, index=True)
    logo = Column(String, nullable=True)
    description = Column(Text, nullable=True)
    website = Column(String, nullable=True)
    industry = Column(SQLEnum(Industry), nullable=False, index=True)
    contact_person = Column(String(100), nullable=False)
    contact_email = Column(String, nullable=False)
    verified = Column(Boolean, default=False, nullable=False, index=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


# ============================================================
# PROBLEM STATEMENTS
# ============================================================

class ProblemStatement(Base):
    __tablename__ = "problem_statements"

    id = Column(String, primary_key=True, default=new_uuid)
    organization_id = Column(String, ForeignKey("organizations.id"), nullable=False, index=True)

    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    track = Column(SQLEnum(Track), nullable=False, index=True)
    category = Column(String, nullable=False, index=True)
    industry = Column(SQLEnum(Industry), nullable=False)

    expected_outcome = Column(Text, nullable=False)
    tech_stack = Column(JSON, nullable=False, default=list)
    difficulty = Column(SQLEnum(Difficulty), nullable=False, index=True)

    datasets = Column(Text, nullable=True)
    api_links = Column(Text, nullable=True)
    reference_links = Column(JSON, nullable=False, default=list)

    nda_required = Column(Boolean, default=False, nullable=False)
    mentors_provided = Column(Boolean, default=False, nullable=False)

    status = Column(SQLEnum(ProblemStatus), default=ProblemStatus.PENDING, nullable=False, index=True)
    admin_notes = Column(Text, nullable=True)
    reviewed_by = Column(String, ForeignKey("users.id"), nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    featured = Column(Boolean, default=False, nullable=False, index=True)

    contact_person = Column(String(100), nullable=False)
    contact_email = Column(String, nullable=False)

    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("idx_problem_status_created", "status", "created_at"),
        Index("idx_problem_status_featured", "status", "featured"),
    )


# ============================================================
# AUDIT LOG (append-only)
# ============================================================

class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(String, primary_key=True, default=new_uuid)
    admin_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    action = Column(SQLEnum(AuditAction), nullable=False, index=True)
    target_type = Column(SQLEnum(AuditTargetType), nullable=False)
    # Weak reference: no foreign key, the target may be deleted later.
    target_id = Column(String, nullable=False)
    details = Column(String(500), nullable=False)
    # "metadata" is reserved on declarative classes
    extra_metadata = Column("metadata", JSON, nullable=True)
    ip_address = Column(String, nullable=True)
    user_agent = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)

    __table_args__ = (
        Index("idx_audit_target", "target_type", "target_id"),
    )


class AuditLogImmutableError(RuntimeError):
    pass


@event.listens_for(AuditLog, "before_update")
def _reject_audit_update(mapper, connection, target):
    raise AuditLogImmutableError("Audit log entries cannot be modified")


@event.listens_for(AuditLog, "before_delete")
def _reject_audit_delete(mapper, connection, target):
    raise AuditLogImmutableError("Audit log entries cannot be deleted")
