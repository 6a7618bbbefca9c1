"""
Integration tests for dashboard endpoints.

WHY: The dashboard must never disagree with the ticket list, and must not
expose organization-wide figures to CLIENT users.
"""

from datetime import timedelta

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from tests.factories import CommentFactory, TicketFactory, auth_headers


@pytest.fixture
async def seeded(db_session: AsyncSession, tenant):
    t = tenant
    await TicketFactory.create(db_session, t.acme_project, t.acme_user, t.open_status, t.high)
    await TicketFactory.create(
        db_session, t.acme_project, t.acme_user, t.closed_status, t.high, assigned_to=t.employee
    )
    await TicketFactory.create(db_session, t.globex_project, t.globex_user, t.open_status, t.high)
    await TicketFactory.create(
        db_session, t.globex_project, t.globex_user, t.open_status, t.high, is_deleted=True
    )
    return t


class TestDashboardMetrics:

    async def test_totals_match_ticket_list(self, client: AsyncClient, seeded):
        t = seeded
        for user in (t.admin, t.employee, t.other_employee, t.acme_user, t.globex_user, t.other_admin):
            headers = auth_headers(user)
            metrics = (await client.get("/api/dashboard/metrics", headers=headers)).json()
            listed = (await client.get("/api/tickets", headers=headers)).json()

            assert metrics["tickets"]["total"] == listed["total"]

    async def test_admin_sections(self, client: AsyncClient, seeded):
        t = seeded
        response = await client.get("/api/dashboard/metrics", headers=auth_headers(t.admin))

        assert response.status_code == 200
        data = response.json()
        assert data["tickets"]["total"] == 3
        assert data["tickets"]["open"] == 2
        assert data["tickets"]["closed"] == 1
        assert data["clients"]["total"] == 2
        assert data["projects"]["total"] == 2
        assert "users" in data
        assert "assigned_to_me" not in data["tickets"]

    async def test_employee_gets_assigned_to_me(self, client: AsyncClient, seeded):
        t = seeded
        data = (await client.get("/api/dashboard/metrics", headers=auth_headers(t.employee))).json()

        assert data["tickets"]["assigned_to_me"] == 1
        assert "clients" not in data
        assert "users" not in data

    async def test_client_gets_no_org_figures(self, client: AsyncClient, seeded):
        t = seeded
        data = (await client.get("/api/dashboard/metrics", headers=auth_headers(t.globex_user))).json()

        assert set(data) == {"tickets", "projects"}
        assert data["tickets"]["total"] == 1
        assert data["projects"]["total"] == 1


class TestRecentActivity:

    async def test_feed_respects_comment_visibility(
        self, client: AsyncClient, db_session: AsyncSession, tenant
    ):
        t = tenant
        ticket = await TicketFactory.create(db_session, t.acme_project, t.acme_user, t.open_status, t.high)
        await client.post(
            f"/api/tickets/{ticket.id}/comments",
            headers=auth_headers(t.admin),
            json={"body_md": "Note", "visibility": "INTERNAL"},
        )
        await client.post(
            f"/api/tickets/{ticket.id}/comments",
            headers=auth_headers(t.admin),
            json={"body_md": "Reply"},
        )

        data = (await client.get("/api/dashboard/activity", headers=auth_headers(t.acme_user))).json()

        comments = [item for item in data["items"] if item["type"] == "comment"]
        assert [c["body_preview"] for c in comments] == ["Reply"]
        assert all(item["ticket_number"] == ticket.client_ticket_number for item in data["items"])

    async def test_feed_items_name_project_client_and_actor(
        self, client: AsyncClient, db_session: AsyncSession, tenant
    ):
        t = tenant
        ticket = await TicketFactory.create(db_session, t.acme_project, t.acme_user, t.open_status, t.high)
        await CommentFactory.create(db_session, ticket, t.employee, body_md="On it")

        data = (await client.get("/api/dashboard/activity", headers=auth_headers(t.acme_user))).json()

        [item] = data["items"]
        assert item["actor_user_id"] == t.employee.id
        assert item["actor_name"] == t.employee.name
        assert item["project_id"] == t.acme_project.id
        assert item["project_name"] == t.acme_project.name
        assert item["client_id"] == t.acme.id
        assert item["client_name"] == t.acme.name

    async def test_feed_limit_is_clamped(self, client: AsyncClient, db_session: AsyncSession, tenant):
        t = tenant
        ticket = await TicketFactory.create(db_session, t.acme_project, t.acme_user, t.open_status, t.high)
        for i in range(3):
            await CommentFactory.create(db_session, ticket, t.admin, body_md=f"Reply {i}")
        headers = auth_headers(t.admin)

        small = (await client.get("/api/dashboard/activity", headers=headers, params={"limit": 2})).json()
        huge = (await client.get("/api/dashboard/activity", headers=headers, params={"limit": 1000})).json()

        assert len(small["items"]) == 2
        assert small["limit"] == 2
        assert huge["limit"] == 100
        assert len(huge["items"]) == 3

    async def test_other_organization_sees_nothing(
        self, client: AsyncClient, db_session: AsyncSession, tenant
    ):
        t = tenant
        ticket = await TicketFactory.create(db_session, t.acme_project, t.acme_user, t.open_status, t.high)
        await CommentFactory.create(db_session, ticket, t.admin)

        data = (await client.get("/api/dashboard/activity", headers=auth_headers(t.other_admin))).json()

        assert all(item["ticket_id"] != ticket.id for item in data["items"])


class TestUserActivity:

    async def test_admin_gets_user_metrics(
        self, client: AsyncClient, db_session: AsyncSession, seeded
    ):
        t = seeded
        closed = await TicketFactory.create(
            db_session, t.acme_project, t.acme_user, t.closed_status, t.high, assigned_to=t.employee
        )
        closed.closed_at = closed.created_at + timedelta(hours=4)
        await db_session.commit()
        await CommentFactory.create(db_session, closed, t.employee, body_md="Fixed")

        response = await client.get(
            f"/api/dashboard/users/{t.employee.id}/activity", headers=auth_headers(t.admin)
        )

        assert response.status_code == 200
        data = response.json()
        assert data["user"]["id"] == t.employee.id
        assert data["user"]["role"] == "EMPLOYEE"
        assert data["user"]["client_name"] is None
        assert data["tickets"]["total"] == 2
        assert data["tickets"]["assigned"] == 2
        assert data["tickets"]["assigned_closed"] == 2
        assert data["tickets"]["raised"] == 0
        assert data["activity"]["comments"] == 1
        assert data["activity"]["last_activity_at"] is not None
        assert data["recent"]["days"] == 30
        assert data["recent"]["tickets_closed"] == 1
        assert data["recent"]["comments"] == 1
        assert data["recent"]["avg_resolution_hours"] == 4.0

    async def test_client_user_carries_client_name(self, client: AsyncClient, seeded):
        t = seeded

        data = (
            await client.get(
                f"/api/dashboard/users/{t.acme_user.id}/activity", headers=auth_headers(t.admin)
            )
        ).json()

        assert data["user"]["client_id"] == t.acme.id
        assert data["user"]["client_name"] == t.acme.name
        assert data["tickets"]["raised"] == 2
        assert data["recent"]["avg_resolution_hours"] is None

    async def test_non_admin_forbidden(self, client: AsyncClient, seeded):
        t = seeded
        path = f"/api/dashboard/users/{t.employee.id}/activity"
        employee_headers = auth_headers(t.employee)
        client_headers = auth_headers(t.acme_user)

        for headers in (employee_headers, client_headers):
            response = await client.get(path, headers=headers)
            assert response.status_code == 403
            assert response.json()["code"] == "FORBIDDEN"

    async def test_user_of_another_organization_not_found(self, client: AsyncClient, seeded):
        t = seeded
        other_admin_path = f"/api/dashboard/users/{t.other_admin.id}/activity"
        headers = auth_headers(t.admin)

        response = await client.get(other_admin_path, headers=headers)
        missing = await client.get("/api/dashboard/users/999999/activity", headers=headers)

        assert response.status_code == 404
        assert missing.status_code == 404
        assert missing.json()["message"] == "User not found"
