# schemas.py — Request payload schemas (bodies and query strings)
#
# Wire names are camelCase, attributes are snake_case. Body schemas are
# parsed by FastAPI; query schemas go through validation.query_model().
from datetime import datetime
from typing import Annotated, List, Literal, Optional
from urllib.parse import urlparse

from pydantic import (
    BaseModel, BeforeValidator, ConfigDict, EmailStr, Field,
    ValidationInfo, field_validator, model_validator,
)
from pydantic.alias_generators import to_camel

from models import (
    ALL_CATEGORIES, CATEGORIES_BY_TRACK, AuditAction, AuditTargetType,
    Difficulty, Industry, ProblemStatus, Track,
)
from repositories.audit_log_repository import AuditLogFilter
from repositories.common import PaginationOptions
from repositories.organization_repository import OrganizationFilter
from repositories.problem_repository import ProblemFilter


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


# --- Shared field checks ---

def is_http_url(value: str) -> bool:
    parsed = urlparse(value)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def check_url(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    if not is_http_url(value):
        raise ValueError("Invalid URL")
    return value


def check_optional_website(value: Optional[str]) -> Optional[str]:
    """Empty string clears the website."""
    if value is None or value == "":
        return value
    if not is_http_url(value):
        raise ValueError("Invalid website URL")
    return value


def check_password_policy(value: str) -> str:
    if not any(c.isupper() for c in value):
        raise ValueError("Password must contain at least one uppercase letter")
    if not any(c.islower() for c in value):
        raise ValueError("Password must contain at least one lowercase letter")
    if not any(c.isdigit() for c in value):
        raise ValueError("Password must contain at least one number")
    if len(value.encode("utf-8")) > 72:
        raise ValueError("Password cannot exceed 72 bytes")
    return value


def check_category(category: Optional[str], track: Optional[Track]) -> Optional[str]:
    if category is None:
        return None
    if category not in ALL_CATEGORIES:
        raise ValueError("Invalid category")
    if track is not None and category not in CATEGORIES_BY_TRACK[Track(track)]:
        raise ValueError(f"Category does not belong to the {Track(track).value} track")
    return category


def _parse_query_bool(value):
    if value is None or isinstance(value, bool):
        return value
    if value == "true":
        return True
    if value == "false":
        return False
    raise ValueError("Must be 'true' or 'false'")


# Query-string booleans: only the literal strings "true" / "false"
QueryBool = Annotated[Optional[bool], BeforeValidator(_parse_query_bool)]


# ============================================================
# AUTH
# ============================================================

class RegisterRequest(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=72)
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    organization_name: str = Field(..., min_length=2, max_length=200)
    industry: Industry
    website: Optional[str] = None
    description: Optional[str] = Field(None, max_length=2000)
    contact_person: str = Field(..., min_length=2, max_length=100)
    contact_email: EmailStr

    @field_validator("password")
    @classmethod
    def password_policy(cls, value: str) -> str:
        return check_password_policy(value)

    @field_validator("website")
    @classmethod
    def website_url(cls, value: Optional[str]) -> Optional[str]:
        return check_optional_website(value)

    @model_validator(mode="after")
    def default_name(self):
        if not self.name:
            self.name = self.contact_person
        return self


class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class RefreshRequest(CamelModel):
    refresh_token: str = Field(..., min_length=1)


# ============================================================
# PROBLEM STATEMENTS
# ============================================================

class ProblemCreateRequest(CamelModel):
    title: str = Field(..., min_length=5, max_length=200)
    description: str = Field(..., min_length=50, max_length=5000)
    track: Track
    category: str
    industry: Industry
    expected_outcome: str = Field(..., min_length=20, max_length=2000)
    tech_stack: List[str] = Field(default_factory=list)
    difficulty: Difficulty
    datasets: Optional[str] = Field(None, max_length=1000)
    api_links: Optional[str] = Field(None, max_length=1000)
    reference_links: List[str] = Field(default_factory=list)
    nda_required: bool = False
    mentors_provided: bool = False
    contact_person: str = Field(..., min_length=2, max_length=100)
    contact_email: EmailStr

    @field_validator("category")
    @classmethod
    def category_in_track(cls, value: str, info: ValidationInfo) -> str:
        return check_category(value, info.data.get("track"))

    @field_validator("reference_links")
    @classmethod
    def reference_links_are_urls(cls, value: List[str]) -> List[str]:
        for link in value:
            check_url(link)
        return value


class ProblemUpdateRequest(CamelModel):
    """Partial update; the service re-checks category against the merged track."""

    title: Optional[str] = Field(None, min_length=5, max_length=200)
    description: Optional[str] = Field(None, min_length=50, max_length=5000)
    track: Optional[Track] = None
    category: Optional[str] = None
    industry: Optional[Industry] = None
    expected_outcome: Optional[str] = Field(None, min_length=20, max_length=2000)
    tech_stack: Optional[List[str]] = None
    difficulty: Optional[Difficulty] = None
    datasets: Optional[str] = Field(None, max_length=1000)
    api_links: Optional[str] = Field(None, max_length=1000)
    reference_links: Optional[List[str]] = None
    nda_required: Optional[bool] = None
    mentors_provided: Optional[bool] = None
    contact_person: Optional[str] = Field(None, min_length=2, max_length=100)
    contact_email: Optional[EmailStr] = None

    @field_validator("category")
    @classmethod
    def category_in_track(cls, value: Optional[str], info: ValidationInfo) -> Optional[str]:
        return check_category(value, info.data.get("track"))

    @field_validator("reference_links")
    @classmethod
    def reference_links_are_urls(cls, value: Optional[List[str]]) -> Optional[List[str]]:
        for link in value or []:
            check_url(link)
        return value


class ReviewRequest(CamelModel):
    status: Literal["approved", "rejected"]
    admin_notes: Optional[str] = Field(None, max_length=1000)


class FeatureRequest(CamelModel):
    featured: bool


# ============================================================
# ORGANIZATIONS
# ============================================================

class OrganizationUpdateRequest(CamelModel):
    name: Optional[str] = Field(None, min_length=2, max_length=200)
    description: Optional[str] = Field(None, max_length=2000)
    website: Optional[str] = None
    industry: Optional[Industry] = None
    contact_person: Optional[str] = Field(None, min_length=2, max_length=100)
    contact_email: Optional[EmailStr] = None
    logo: Optional[str] = None

    @field_validator("website")
    @classmethod
    def website_url(cls, value: Optional[str]) -> Optional[str]:
        return check_optional_website(value)


class VerifyRequest(CamelModel):
    verified: bool


# ============================================================
# QUERY STRINGS
# ============================================================

class PaginationQuery(CamelModel):
    page: int = Field(1, ge=1)
    limit: int = Field(20, ge=1, le=100)
    sort_by: str = "createdAt"
    sort_order: Literal["asc", "desc"] = "desc"

    def to_pagination(self) -> PaginationOptions:
        return PaginationOptions(
            page=self.page, limit=self.limit, sort_by=self.sort_by, sort_order=self.sort_order,
        )


class ProblemQuery(PaginationQuery):
    search: Optional[str] = Field(None, max_length=200)
    track: Optional[Track] = None
    category: Optional[str] = None
    difficulty: Optional[Difficulty] = None
    industry: Optional[Industry] = None
    status: Optional[ProblemStatus] = None
    featured: QueryBool = None
    organization_id: Optional[str] = None

    def to_filter(self) -> ProblemFilter:
        return ProblemFilter(
            search=self.search or None,
            track=self.track,
            category=self.category or None,
            difficulty=self.difficulty,
            industry=self.industry,
            status=self.status,
            featured=self.featured,
            organization_id=self.organization_id or None,
        )


class OrganizationQuery(PaginationQuery):
    verified: QueryBool = None
    industry: Optional[Industry] = None
    search: Optional[str] = Field(None, max_length=200)

    def to_filter(self) -> OrganizationFilter:
        return OrganizationFilter(
            verified=self.verified, industry=self.industry, search=self.search or None,
        )


class AuditQuery(CamelModel):
    page: int = Field(1, ge=1)
    limit: int = Field(20, ge=1, le=100)
    admin_id: Optional[str] = None
    action: Optional[AuditAction] = None
    target_type: Optional[AuditTargetType] = None
    target_id: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    def to_pagination(self) -> PaginationOptions:
        return PaginationOptions(page=self.page, limit=self.limit)

    def to_filter(self) -> AuditLogFilter:
        return AuditLogFilter(
            admin_id=self.admin_id or None,
            action=self.action,
            target_type=self.target_type,
            target_id=self.target_id or None,
            start_date=self.start_date,
            end_date=self.end_date,
        )


class RecentQuery(CamelModel):
    limit: int = Field(6, ge=1, le=50)


class ActivityQuery(CamelModel):
    limit: int = Field(10, ge=1, le=100)
