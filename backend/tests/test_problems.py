# tests/test_problems.py — Problem catalogue, ownership and review lifecycle
import pytest
from httpx import AsyncClient
from sqlalchemy import select

from models import AuditLog, AuditAction, ProblemStatement, ProblemStatus, Track
from repositories.problem_repository import ProblemRepository, ProblemFilter
from tests.conftest import get_auth_headers, problem_payload


@pytest.mark.asyncio
class TestPublicCatalogue:
    async def test_only_approved_problems_listed(self, client: AsyncClient, organization, make_problem):
        approved = await make_problem(organization, ProblemStatus.APPROVED, title="Approved problem")
        await make_problem(organization, ProblemStatus.PENDING, title="Pending problem")
        await make_problem(organization, ProblemStatus.REJECTED, title="Rejected problem")

        res = await client.get("/api/problems")
        assert res.status_code == 200
        data = res.json()["data"]
        assert [p["id"] for p in data["problems"]] == [approved.id]
        assert data["pagination"] == {"page": 1, "limit": 20, "total": 1, "totalPages": 1}

    async def test_status_filter_cannot_widen_public_view(self, client: AsyncClient, organization, make_problem):
        await make_problem(organization, ProblemStatus.PENDING)
        res = await client.get("/api/problems?status=pending")
        assert res.json()["data"]["problems"] == []

    async def test_public_query_leaves_caller_filter_untouched(self, db_session, organization, make_problem):
        approved = await make_problem(organization, ProblemStatus.APPROVED)
        await make_problem(organization, ProblemStatus.PENDING)
        filter = ProblemFilter(status=ProblemStatus.PENDING)

        rows, total = await ProblemRepository(db_session).find_public(filter)
        assert total == 1
        assert [p.id for p, _ in rows] == [approved.id]
        assert filter.status == ProblemStatus.PENDING

    async def test_public_problem_hides_review_fields(self, client: AsyncClient, organization, make_problem):
        problem = await make_problem(organization, ProblemStatus.APPROVED, admin_notes="internal")
        res = await client.get(f"/api/problems/{problem.id}")
        assert res.status_code == 200
        data = res.json()["data"]
        assert data["organization"] == {"id": organization.id, "name": organization.name, "logo": None}
        assert "adminNotes" not in data
        assert "reviewedBy" not in data

    async def test_pending_problem_is_not_found_publicly(self, client: AsyncClient, organization, make_problem):
        problem = await make_problem(organization, ProblemStatus.PENDING)
        res = await client.get(f"/api/problems/{problem.id}")
        assert res.status_code == 404
        assert res.json()["code"] == "NOT_FOUND"

    async def test_filters_and_search(self, client: AsyncClient, organization, make_problem):
        await make_problem(organization, ProblemStatus.APPROVED, title="Drone delivery mesh",
                           track=Track.HARDWARE, category="Robotics & Automation")
        await make_problem(organization, ProblemStatus.APPROVED, title="Ledger for co-ops",
                           category="FinTech & Digital Economy")

        res = await client.get("/api/problems?track=hardware")
        assert [p["title"] for p in res.json()["data"]["problems"]] == ["Drone delivery mesh"]

        res = await client.get("/api/problems?search=LEDGER")
        assert [p["title"] for p in res.json()["data"]["problems"]] == ["Ledger for co-ops"]

        res = await client.get("/api/problems?search=100%25")
        assert res.json()["data"]["problems"] == []

    async def test_pagination_and_sorting(self, client: AsyncClient, organization, make_problem):
        for title in ("Alpha project", "Bravo project", "Charlie project"):
            await make_problem(organization, ProblemStatus.APPROVED, title=title)

        res = await client.get("/api/problems?limit=2&page=2&sortBy=title&sortOrder=asc")
        data = res.json()["data"]
        assert [p["title"] for p in data["problems"]] == ["Charlie project"]
        assert data["pagination"]["totalPages"] == 2

    async def test_featured_and_recent(self, client: AsyncClient, organization, make_problem):
        featured = await make_problem(organization, ProblemStatus.APPROVED, featured=True)
        await make_problem(organization, ProblemStatus.APPROVED)
        await make_problem(organization, ProblemStatus.PENDING, featured=True)

        res = await client.get("/api/problems/featured")
        assert [p["id"] for p in res.json()["data"]] == [featured.id]

        res = await client.get("/api/problems/recent?limit=1")
        assert len(res.json()["data"]) == 1

    async def test_public_stats(self, client: AsyncClient, organization, other_org_account, make_problem):
        await make_problem(organization, ProblemStatus.APPROVED)
        await make_problem(organization, ProblemStatus.APPROVED, track=Track.HARDWARE,
                           category="IoT & Smart Devices")
        await make_problem(organization, ProblemStatus.PENDING)

        res = await client.get("/api/problems/stats/public")
        data = res.json()["data"]
        assert data["totalProblems"] == 2
        assert data["totalOrganizations"] == 1
        assert data["totalCategories"] == 2
        assert data["byTrack"] == {"software": 1, "hardware": 1}


@pytest.mark.asyncio
class TestOrganizationProblems:
    async def test_create_problem(self, client: AsyncClient, db_session, org_user, organization):
        res = await client.post("/api/org/problems", json=problem_payload(), headers=get_auth_headers(org_user))
        assert res.status_code == 201
        body = res.json()
        assert body["message"] == "Problem submitted successfully"
        data = body["data"]
        assert data["status"] == "pending"
        assert data["featured"] is False
        assert data["organizationId"] == organization.id
        assert data["contactEmail"] == "jane@acme.test"
        assert data["referenceLinks"] == ["https://example.org/floods"]

    async def test_create_ignores_status_and_featured(self, client: AsyncClient, org_user, organization):
        res = await client.post(
            "/api/org/problems",
            json=problem_payload(status="approved", featured=True),
            headers=get_auth_headers(org_user),
        )
        assert res.status_code == 201
        assert res.json()["data"]["status"] == "pending"
        assert res.json()["data"]["featured"] is False

    async def test_list_own_problems_only(self, client, org_user, organization, other_org_account, make_problem):
        mine = await make_problem(organization)
        await make_problem(other_org_account[1])
        res = await client.get("/api/org/problems", headers=get_auth_headers(org_user))
        assert [p["id"] for p in res.json()["data"]] == [mine.id]

    async def test_update_pending_problem(self, client: AsyncClient, org_user, organization, make_problem):
        problem = await make_problem(organization)
        res = await client.put(
            f"/api/org/problems/{problem.id}",
            json={"title": "Renamed problem", "difficulty": "easy"},
            headers=get_auth_headers(org_user),
        )
        assert res.status_code == 200
        data = res.json()["data"]
        assert data["title"] == "Renamed problem"
        assert data["difficulty"] == "easy"
        assert data["description"] == problem.description

    async def test_update_rechecks_category_against_stored_track(
        self, client: AsyncClient, org_user, organization, make_problem,
    ):
        problem = await make_problem(organization)
        res = await client.put(
            f"/api/org/problems/{problem.id}",
            json={"category": "Robotics & Automation"},
            headers=get_auth_headers(org_user),
        )
        assert res.status_code == 422
        assert "category" in res.json()["errors"]

    async def test_track_switch_with_matching_category(self, client, org_user, organization, make_problem):
        problem = await make_problem(organization)
        res = await client.put(
            f"/api/org/problems/{problem.id}",
            json={"track": "hardware", "category": "Robotics & Automation"},
            headers=get_auth_headers(org_user),
        )
        assert res.status_code == 200
        assert res.json()["data"]["track"] == "hardware"

    async def test_cannot_update_approved_problem(self, client, org_user, organization, make_problem):
        problem = await make_problem(organization, ProblemStatus.APPROVED)
        res = await client.put(
            f"/api/org/problems/{problem.id}",
            json={"title": "Sneaky rename"},
            headers=get_auth_headers(org_user),
        )
        assert res.status_code == 400
        assert res.json()["message"] == "Cannot update approved problems. Please contact admin."

    async def test_cannot_touch_other_organizations_problem(
        self, client: AsyncClient, db_session, org_user, other_org_account, make_problem,
    ):
        problem = await make_problem(other_org_account[1], title="Globex grid sensors")
        problem_id = problem.id
        headers = get_auth_headers(org_user)

        res = await client.put(f"/api/org/problems/{problem.id}", json={"title": "Mine now"}, headers=headers)
        assert res.status_code == 403
        assert res.json()["message"] == "You can only update your own problems"

        res = await client.delete(f"/api/org/problems/{problem.id}", headers=headers)
        assert res.status_code == 403

        db_session.expire_all()
        stored = (await db_session.execute(
            select(ProblemStatement).where(ProblemStatement.id == problem_id)
        )).scalar_one_or_none()
        assert stored is not None
        assert stored.title == "Globex grid sensors"

    async def test_delete_rejected_problem(self, client, db_session, org_user, organization, make_problem):
        problem = await make_problem(organization, ProblemStatus.REJECTED)
        res = await client.delete(f"/api/org/problems/{problem.id}", headers=get_auth_headers(org_user))
        assert res.status_code == 200
        assert res.json()["message"] == "Problem deleted successfully"

        remaining = (await db_session.execute(
            select(ProblemStatement.id).where(ProblemStatement.id == problem.id)
        )).scalars().all()
        assert remaining == []

    async def test_cannot_delete_approved_problem(self, client, org_user, organization, make_problem):
        problem = await make_problem(organization, ProblemStatus.APPROVED)
        res = await client.delete(f"/api/org/problems/{problem.id}", headers=get_auth_headers(org_user))
        assert res.status_code == 400

    async def test_missing_problem(self, client: AsyncClient, org_user, organization):
        res = await client.delete(
            "/api/org/problems/0b7e7f9e-8f4b-4b53-9d5c-3a8f2f6c1e20",
            headers=get_auth_headers(org_user),
        )
        assert res.status_code == 404


@pytest.mark.asyncio
class TestReviewAndFeature:
    async def test_approve_records_reviewer_and_audit(
        self, client: AsyncClient, db_session, admin_user, organization, make_problem,
    ):
        problem = await make_problem(organization)
        res = await client.post(
            f"/api/admin/problems/{problem.id}/review",
            json={"status": "approved", "adminNotes": "Great fit"},
            headers={**get_auth_headers(admin_user), "User-Agent": "pytest-agent"},
        )
        assert res.status_code == 200
        body = res.json()
        assert body["message"] == "Problem approved successfully"
        assert body["data"]["status"] == "approved"
        assert body["data"]["reviewedBy"] == admin_user.id
        assert body["data"]["reviewedAt"] is not None
        assert body["data"]["adminNotes"] == "Great fit"

        entry = (await db_session.execute(select(AuditLog))).scalar_one()
        assert entry.action == AuditAction.APPROVE_PROBLEM
        assert entry.admin_id == admin_user.id
        assert entry.target_id == problem.id
        assert entry.extra_metadata == {"adminNotes": "Great fit"}
        assert entry.user_agent == "pytest-agent"

    async def test_reject_clears_featured(self, client, admin_user, organization, make_problem):
        problem = await make_problem(organization, ProblemStatus.APPROVED, featured=True)
        res = await client.post(
            f"/api/admin/problems/{problem.id}/review",
            json={"status": "rejected"},
            headers=get_auth_headers(admin_user),
        )
        assert res.status_code == 200
        assert res.json()["data"]["status"] == "rejected"
        assert res.json()["data"]["featured"] is False

    async def test_review_rejects_pending_status(self, client, admin_user, organization, make_problem):
        problem = await make_problem(organization)
        res = await client.post(
            f"/api/admin/problems/{problem.id}/review",
            json={"status": "pending"},
            headers=get_auth_headers(admin_user),
        )
        assert res.status_code == 422
        assert "status" in res.json()["errors"]

    async def test_review_missing_problem(self, client: AsyncClient, admin_user):
        res = await client.post(
            "/api/admin/problems/0b7e7f9e-8f4b-4b53-9d5c-3a8f2f6c1e20/review",
            json={"status": "approved"},
            headers=get_auth_headers(admin_user),
        )
        assert res.status_code == 404

    async def test_only_approved_problems_can_be_featured(self, client, admin_user, organization, make_problem):
        problem = await make_problem(organization)
        headers = get_auth_headers(admin_user)
        for featured in (True, False):
            res = await client.post(
                f"/api/admin/problems/{problem.id}/feature", json={"featured": featured}, headers=headers,
            )
            assert res.status_code == 400
            assert res.json()["message"] == "Only approved problems can be featured"

    async def test_feature_and_unfeature(self, client, db_session, admin_user, organization, make_problem):
        problem = await make_problem(organization, ProblemStatus.APPROVED)
        headers = get_auth_headers(admin_user)

        res = await client.post(f"/api/admin/problems/{problem.id}/feature", json={"featured": True}, headers=headers)
        assert res.json()["message"] == "Problem featured successfully"
        assert res.json()["data"]["featured"] is True

        res = await client.post(f"/api/admin/problems/{problem.id}/feature", json={"featured": False}, headers=headers)
        assert res.json()["message"] == "Problem unfeatured successfully"

        actions = (await db_session.execute(
            select(AuditLog.action).order_by(AuditLog.created_at)
        )).scalars().all()
        assert actions == [AuditAction.FEATURE_PROBLEM, AuditAction.UNFEATURE_PROBLEM]

    async def test_admin_sees_every_status(self, client, admin_user, organization, make_problem):
        for status in ProblemStatus:
            await make_problem(organization, status)
        headers = get_auth_headers(admin_user)

        res = await client.get("/api/admin/problems", headers=headers)
        assert res.json()["data"]["pagination"]["total"] == 3

        res = await client.get("/api/admin/problems?status=rejected", headers=headers)
        assert [p["status"] for p in res.json()["data"]["problems"]] == ["rejected"]

        res = await client.get("/api/admin/problems/pending", headers=headers)
        assert [p["status"] for p in res.json()["data"]] == ["pending"]

    async def test_admin_problem_stats(self, client, admin_user, organization, make_problem):
        await make_problem(organization, ProblemStatus.APPROVED, featured=True)
        await make_problem(organization, ProblemStatus.PENDING)
        res = await client.get("/api/admin/problems/stats", headers=get_auth_headers(admin_user))
        data = res.json()["data"]
        assert data["total"] == 2
        assert data["approved"] == 1
        assert data["pending"] == 1
        assert data["featured"] == 1


@pytest.mark.asyncio
async def test_submit_approve_feature_flow(client: AsyncClient, org_user, organization, admin_user):
    org_headers = get_auth_headers(org_user)
    admin_headers = get_auth_headers(admin_user)

    res = await client.post("/api/org/problems", json=problem_payload(), headers=org_headers)
    problem_id = res.json()["data"]["id"]

    res = await client.get("/api/problems")
    assert res.json()["data"]["problems"] == []

    res = await client.post(
        f"/api/admin/problems/{problem_id}/review", json={"status": "approved"}, headers=admin_headers,
    )
    assert res.status_code == 200

    res = await client.post(
        f"/api/admin/problems/{problem_id}/feature", json={"featured": True}, headers=admin_headers,
    )
    assert res.status_code == 200

    res = await client.get("/api/problems/featured")
    assert [p["id"] for p in res.json()["data"]] == [problem_id]

    res = await client.put(f"/api/org/problems/{problem_id}", json={"title": "Late edit"}, headers=org_headers)
    assert res.status_code == 400

    res = await client.get(f"/api/admin/audit/problem/{problem_id}", headers=admin_headers)
    actions = sorted(entry["action"] for entry in res.json()["data"])
    assert actions == ["APPROVE_PROBLEM", "FEATURE_PROBLEM"]
