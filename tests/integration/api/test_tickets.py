"""
Integration tests for ticket management API.

WHAT: Tests for ticket CRUD and history via the HTTP API.

WHY: Tickets are the core of the helpdesk. These tests ensure:
1. Each role sees exactly its rows (ADMIN org, EMPLOYEE own, CLIENT client)
2. Out-of-scope, deleted and missing tickets answer the same 404
3. Clients cannot change status or assignee
4. Updates and deletes leave an event trail
5. Errors use the {code, message, details} body

HOW: Uses pytest-asyncio with AsyncClient for HTTP testing.
"""

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk.models.outbox import NotificationOutbox
from tests.factories import TicketFactory, auth_headers


def ticket_payload(t, **overrides) -> dict:
    payload = {
        "project_id": t.acme_project.id,
        "title": "Login page returns 500",
        "description_md": "Since this morning the login page fails.",
        "priority_id": t.high.id,
        "status_id": t.open_status.id,
    }
    payload.update(overrides)
    return payload


class TestTicketCreate:
    """Integration tests for ticket creation endpoint."""

    async def test_create_ticket_as_client(self, client: AsyncClient, db_session: AsyncSession, tenant):
        t = tenant
        response = await client.post(
            "/api/tickets", headers=auth_headers(t.acme_user), json=ticket_payload(t)
        )

        assert response.status_code == 201
        data = response.json()
        assert data["title"] == "Login page returns 500"
        assert data["client_ticket_number"] == "ACM0001"
        assert data["raised_by_user_id"] == t.acme_user.id
        assert data["assigned_to_user_id"] is None

        rows = (await db_session.execute(select(NotificationOutbox))).scalars().all()
        assert len(rows) == 1

    async def test_client_cannot_assign_on_create(self, client: AsyncClient, tenant):
        t = tenant
        response = await client.post(
            "/api/tickets",
            headers=auth_headers(t.acme_user),
            json=ticket_payload(t, assigned_to_user_id=t.employee.id),
        )

        assert response.status_code == 403
        assert response.json()["code"] == "FORBIDDEN"

    async def test_blank_title_is_bad_request(self, client: AsyncClient, tenant):
        t = tenant
        response = await client.post(
            "/api/tickets", headers=auth_headers(t.admin), json=ticket_payload(t, title="   ")
        )

        assert response.status_code == 400
        assert response.json()["code"] == "BAD_REQUEST"

    async def test_create_in_other_client_project_is_not_found(self, client: AsyncClient, tenant):
        t = tenant
        response = await client.post(
            "/api/tickets",
            headers=auth_headers(t.acme_user),
            json=ticket_payload(t, project_id=t.globex_project.id),
        )

        assert response.status_code == 404


class TestTicketVisibility:

    async def test_list_per_role(self, client: AsyncClient, db_session: AsyncSession, tenant):
        t = tenant
        acme = await TicketFactory.create(db_session, t.acme_project, t.acme_user, t.open_status, t.high)
        assigned = await TicketFactory.create(
            db_session, t.acme_project, t.acme_user, t.open_status, t.high, assigned_to=t.employee
        )
        globex = await TicketFactory.create(db_session, t.globex_project, t.globex_user, t.open_status, t.high)

        async def listed(user):
            response = await client.get("/api/tickets", headers=auth_headers(user))
            assert response.status_code == 200
            return {item["id"] for item in response.json()["items"]}

        assert await listed(t.admin) == {acme.id, assigned.id, globex.id}
        assert await listed(t.employee) == {assigned.id}
        assert await listed(t.acme_user) == {acme.id, assigned.id}
        assert await listed(t.globex_user) == {globex.id}
        assert await listed(t.other_admin) == {t.other_ticket.id}

    async def test_out_of_scope_missing_and_deleted_are_identical(
        self, client: AsyncClient, db_session: AsyncSession, tenant
    ):
        """No response detail tells an attacker whether a ticket exists."""
        t = tenant
        globex = await TicketFactory.create(db_session, t.globex_project, t.globex_user, t.open_status, t.high)
        deleted = await TicketFactory.create(
            db_session, t.acme_project, t.acme_user, t.open_status, t.high, is_deleted=True
        )
        headers = auth_headers(t.acme_user)

        for ticket_id in (globex.id, deleted.id, t.other_ticket.id, 999999):
            response = await client.get(f"/api/tickets/{ticket_id}", headers=headers)
            assert response.status_code == 404
            assert response.json() == {
                "code": "NOT_FOUND",
                "message": "Ticket not found",
                "details": {"ticket_id": ticket_id},
            }

    async def test_pagination_is_clamped(self, client: AsyncClient, db_session: AsyncSession, tenant):
        t = tenant
        await TicketFactory.create(db_session, t.acme_project, t.admin, t.open_status, t.high)

        response = await client.get(
            "/api/tickets", headers=auth_headers(t.admin), params={"limit": 5000, "offset": -4}
        )

        data = response.json()
        assert response.status_code == 200
        assert data["limit"] == 200
        assert data["offset"] == 0
        assert data["total"] == 1

    async def test_unauthenticated_request(self, client: AsyncClient, tenant):
        response = await client.get("/api/tickets")

        assert response.status_code == 401
        assert response.json()["code"] == "UNAUTHORIZED"

    async def test_invalid_token(self, client: AsyncClient, tenant):
        response = await client.get(
            "/api/tickets", headers={"Authorization": "Bearer not-a-token"}
        )

        assert response.status_code == 401
        assert set(response.json()) == {"code", "message", "details"}

    async def test_deactivated_user_rejected(self, client: AsyncClient, db_session: AsyncSession, tenant):
        t = tenant
        headers = auth_headers(t.employee)
        t.employee.is_active = False
        await db_session.commit()

        response = await client.get("/api/tickets", headers=headers)
        assert response.status_code == 401


class TestTicketUpdate:

    async def test_admin_update_writes_events(self, client: AsyncClient, db_session: AsyncSession, tenant):
        t = tenant
        ticket = await TicketFactory.create(db_session, t.acme_project, t.acme_user, t.open_status, t.high)
        headers = auth_headers(t.admin)

        response = await client.patch(
            f"/api/tickets/{ticket.id}",
            headers=headers,
            json={"status_id": t.closed_status.id, "assigned_to_user_id": t.employee.id},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["status_id"] == t.closed_status.id
        assert data["closed_at"] is not None

        events = (await client.get(f"/api/tickets/{ticket.id}/events", headers=headers)).json()
        assert sorted(e["event_type"] for e in events) == ["ASSIGNEE_CHANGED", "STATUS_CHANGED"]

    async def test_unassign_with_explicit_null(self, client: AsyncClient, db_session: AsyncSession, tenant):
        t = tenant
        ticket = await TicketFactory.create(
            db_session, t.acme_project, t.acme_user, t.open_status, t.high, assigned_to=t.employee
        )

        response = await client.patch(
            f"/api/tickets/{ticket.id}",
            headers=auth_headers(t.admin),
            json={"assigned_to_user_id": None},
        )

        assert response.status_code == 200
        assert response.json()["assigned_to_user_id"] is None

    async def test_null_status_is_bad_request(self, client: AsyncClient, db_session: AsyncSession, tenant):
        t = tenant
        ticket = await TicketFactory.create(db_session, t.acme_project, t.acme_user, t.open_status, t.high)

        response = await client.patch(
            f"/api/tickets/{ticket.id}", headers=auth_headers(t.admin), json={"status_id": None}
        )
        assert response.status_code == 400

    async def test_empty_update_is_bad_request(self, client: AsyncClient, db_session: AsyncSession, tenant):
        t = tenant
        ticket = await TicketFactory.create(db_session, t.acme_project, t.acme_user, t.open_status, t.high)

        response = await client.patch(f"/api/tickets/{ticket.id}", headers=auth_headers(t.admin), json={})

        assert response.status_code == 400
        assert response.json()["message"] == "No fields to update"

    @pytest.mark.parametrize("field", ["status_id", "assigned_to_user_id"])
    async def test_client_cannot_change_status_or_assignee(
        self, client: AsyncClient, db_session: AsyncSession, tenant, field
    ):
        t = tenant
        ticket = await TicketFactory.create(db_session, t.acme_project, t.acme_user, t.open_status, t.high)
        value = t.closed_status.id if field == "status_id" else t.employee.id
        ticket_id = ticket.id
        admin_headers = auth_headers(t.admin)

        response = await client.patch(
            f"/api/tickets/{ticket_id}", headers=auth_headers(t.acme_user), json={field: value}
        )

        assert response.status_code == 403
        events = (
            await client.get(f"/api/tickets/{ticket_id}/events", headers=admin_headers)
        ).json()
        assert events == []

    async def test_update_of_invisible_ticket_is_not_found(
        self, client: AsyncClient, db_session: AsyncSession, tenant
    ):
        t = tenant
        ticket = await TicketFactory.create(db_session, t.acme_project, t.acme_user, t.open_status, t.high)

        response = await client.patch(
            f"/api/tickets/{ticket.id}", headers=auth_headers(t.other_employee), json={"title": "x"}
        )
        assert response.status_code == 404


class TestTicketDelete:

    async def test_admin_soft_delete_hides_ticket_but_keeps_audit(
        self, client: AsyncClient, db_session: AsyncSession, tenant
    ):
        t = tenant
        ticket = await TicketFactory.create(db_session, t.acme_project, t.acme_user, t.open_status, t.high)
        ticket_id = ticket.id
        headers = auth_headers(t.admin)

        response = await client.delete(f"/api/tickets/{ticket_id}", headers=headers)
        assert response.status_code == 204

        assert (await client.get(f"/api/tickets/{ticket_id}", headers=headers)).status_code == 404
        assert (await client.get(f"/api/tickets/{ticket_id}/comments", headers=headers)).status_code == 404
        assert (await client.get("/api/tickets", headers=headers)).json()["total"] == 0

        audit = await client.get(f"/api/admin/tickets/{ticket_id}/events", headers=headers)
        assert audit.status_code == 200
        assert audit.json()[-1]["event_type"] == "TICKET_DELETED"

    async def test_delete_twice_is_not_found(self, client: AsyncClient, db_session: AsyncSession, tenant):
        t = tenant
        ticket = await TicketFactory.create(db_session, t.acme_project, t.acme_user, t.open_status, t.high)
        headers = auth_headers(t.admin)

        await client.delete(f"/api/tickets/{ticket.id}", headers=headers)
        response = await client.delete(f"/api/tickets/{ticket.id}", headers=headers)

        assert response.status_code == 404

    async def test_employee_cannot_delete(self, client: AsyncClient, db_session: AsyncSession, tenant):
        t = tenant
        ticket = await TicketFactory.create(db_session, t.acme_project, t.employee, t.open_status, t.high)

        response = await client.delete(f"/api/tickets/{ticket.id}", headers=auth_headers(t.employee))

        assert response.status_code == 403

    async def test_audit_route_is_admin_only(self, client: AsyncClient, db_session: AsyncSession, tenant):
        t = tenant
        ticket = await TicketFactory.create(db_session, t.acme_project, t.employee, t.open_status, t.high)

        response = await client.get(
            f"/api/admin/tickets/{ticket.id}/events", headers=auth_headers(t.employee)
        )
        assert response.status_code == 403
