# tests/conftest.py — Shared test fixtures
import os
import uuid

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

# Use SQLite for tests
TEST_DB_URL = "sqlite+aiosqlite:///./test.db"
os.environ["DATABASE_URL"] = TEST_DB_URL
os.environ["JWT_SECRET"] = "test-secret-key-for-unit-tests-only-min-32-chars"
os.environ["ENVIRONMENT"] = "test"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["RATE_LIMIT_MAX_REQUESTS"] = "100000"

from models import (
    User, Organization, ProblemStatement, UserRole, Industry, Track,
    Difficulty, ProblemStatus,
)
from auth import TokenService
from database import Database
from main import app, rate_limiter

ORG_PASSWORD = "OrgPassword123"
ADMIN_PASSWORD = "AdminPassword123"


@pytest_asyncio.fixture(scope="function")
async def database():
    db = Database(TEST_DB_URL)
    await db.drop_all()
    await db.create_all()
    yield db
    await db.drop_all()
    await db.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(database):
    async with database.session_maker() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def client(database):
    """HTTP test client bound to the per-test database"""
    app.state.database = database
    rate_limiter.reset()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    rate_limiter.reset()


async def _add(db_session, obj):
    db_session.add(obj)
    await db_session.commit()
    await db_session.refresh(obj)
    return obj


@pytest_asyncio.fixture
async def admin_user(db_session):
    """Create an admin user"""
    return await _add(db_session, User(
        id=str(uuid.uuid4()),
        email="admin@devthon.test",
        name="Admin User",
        password_hash=TokenService.hash_password(ADMIN_PASSWORD),
        role=UserRole.ADMIN,
        is_active=True,
    ))


async def make_org_account(db_session, email: str, name: str, verified: bool = True):
    user = await _add(db_session, User(
        id=str(uuid.uuid4()),
        email=email,
        name=f"{name} Owner",
        password_hash=TokenService.hash_password(ORG_PASSWORD),
        role=UserRole.ORGANIZATION,
        is_active=True,
    ))
    organization = await _add(db_session, Organization(
        id=str(uuid.uuid4()),
        user_id=user.id,
        name=name,
        industry=Industry.TECHNOLOGY,
        contact_person=f"{name} Owner",
        contact_email=email,
        verified=verified,
        is_active=True,
    ))
    return user, organization


@pytest_asyncio.fixture
async def org_account(db_session):
    """(user, organization) for the primary test organization"""
    return await make_org_account(db_session, "owner@acme.test", "Acme Labs")


@pytest_asyncio.fixture
async def org_user(org_account):
    return org_account[0]


@pytest_asyncio.fixture
async def organization(org_account):
    return org_account[1]


@pytest_asyncio.fixture
async def other_org_account(db_session):
    return await make_org_account(db_session, "owner@globex.test", "Globex Research", verified=False)


@pytest_asyncio.fixture
async def make_problem(db_session):
    """Factory: insert a problem for an organization with the given status."""

    async def _make(organization, status=ProblemStatus.PENDING, **overrides):
        fields = dict(
            id=str(uuid.uuid4()),
            organization_id=organization.id,
            title="Smart campus energy monitor",
            description="Build a system that tracks building energy usage and flags waste in real time.",
            track=Track.SOFTWARE,
            category="ClimateTech, AgriTech & Sustainability",
            industry=Industry.ENERGY,
            expected_outcome="A working dashboard with live alerts.",
            tech_stack=["Python", "React"],
            difficulty=Difficulty.MEDIUM,
            reference_links=[],
            status=status,
            featured=False,
            contact_person="Jane Doe",
            contact_email="jane@acme.test",
        )
        fields.update(overrides)
        return await _add(db_session, ProblemStatement(**fields))

    return _make


def problem_payload(**overrides) -> dict:
    """Valid camelCase body for POST /api/org/problems"""
    body = {
        "title": "Flood early-warning network",
        "description": "Design a low-cost sensor network that predicts river flooding hours in advance.",
        "track": "hardware",
        "category": "IoT & Smart Devices",
        "industry": "Government",
        "expectedOutcome": "Prototype sensors plus an alerting dashboard.",
        "techStack": ["ESP32", "LoRa"],
        "difficulty": "hard",
        "referenceLinks": ["https://example.org/floods"],
        "ndaRequired": False,
        "mentorsProvided": True,
        "contactPerson": "Jane Doe",
        "contactEmail": "Jane@Acme.test",
    }
    body.update(overrides)
    return body


def get_auth_headers(user: User) -> dict:
    """Generate auth headers for a user"""
    token = TokenService.create_access_token(user)
    return {"Authorization": f"Bearer {token}"}
