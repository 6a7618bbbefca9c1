"""
Unit tests for Dashboard DAO.

WHY: Dashboard numbers must agree with what each caller can list. These
tests compare aggregates against TicketDAO.list() for every role.
"""

from datetime import timedelta

from helpdesk.dao.dashboard import DashboardDAO
from helpdesk.dao.ticket import TicketDAO
from helpdesk.models.ticket import CommentVisibility, TicketEventType
from helpdesk.dao.ticket_event import TicketEventDAO
from tests.factories import CommentFactory, LookupFactory, TicketFactory, scope_for


async def seed_tickets(session, t):
    await TicketFactory.create(session, t.acme_project, t.acme_user, t.open_status, t.high)
    await TicketFactory.create(session, t.acme_project, t.acme_user, t.closed_status, t.high, assigned_to=t.employee)
    await TicketFactory.create(session, t.acme_project, t.employee, t.open_status, t.high)
    await TicketFactory.create(session, t.globex_project, t.globex_user, t.open_status, t.high)
    await TicketFactory.create(session, t.globex_project, t.globex_user, t.closed_status, t.high, is_deleted=True)


class TestTicketAggregates:

    async def test_totals_match_ticket_list_for_every_role(self, db_session, tenant):
        t = tenant
        await seed_tickets(db_session, t)

        dashboard = DashboardDAO(db_session)
        tickets = TicketDAO(db_session)

        for user in (t.admin, t.employee, t.other_employee, t.acme_user, t.globex_user):
            scope = scope_for(user)
            counts = await dashboard.ticket_counts(scope)
            _, total = await tickets.list(scope)

            assert counts["total"] == total
            assert counts["open"] + counts["closed"] == counts["total"]

    async def test_known_counts(self, db_session, tenant):
        t = tenant
        await seed_tickets(db_session, t)
        dashboard = DashboardDAO(db_session)

        assert await dashboard.ticket_counts(scope_for(t.admin)) == {"total": 4, "open": 3, "closed": 1}
        assert await dashboard.ticket_counts(scope_for(t.employee)) == {"total": 2, "open": 1, "closed": 1}
        assert await dashboard.ticket_counts(scope_for(t.globex_user)) == {"total": 1, "open": 1, "closed": 0}
        assert await dashboard.ticket_counts(scope_for(t.other_employee)) == {"total": 0, "open": 0, "closed": 0}

    async def test_breakdowns_include_empty_rows_and_sum_to_total(self, db_session, tenant):
        t = tenant
        await LookupFactory.status(db_session, t.org, name="Waiting", sequence=3)
        await seed_tickets(db_session, t)
        dashboard = DashboardDAO(db_session)
        scope = scope_for(t.acme_user)

        by_status = await dashboard.tickets_by_status(scope)
        by_priority = await dashboard.tickets_by_priority(scope)
        total = (await dashboard.ticket_counts(scope))["total"]

        assert [row["name"] for row in by_status] == ["Open", "Closed", "Waiting"]
        assert by_status[2]["count"] == 0
        assert sum(row["count"] for row in by_status) == total
        assert sum(row["count"] for row in by_priority) == total

    async def test_assigned_to(self, db_session, tenant):
        t = tenant
        await seed_tickets(db_session, t)

        count = await DashboardDAO(db_session).tickets_assigned_to(scope_for(t.employee), t.employee.id)
        assert count == 1


class TestActivity:

    async def test_recent_comments_respect_visibility(self, db_session, tenant):
        t = tenant
        ticket = await TicketFactory.create(db_session, t.acme_project, t.acme_user, t.open_status, t.high)
        public = await CommentFactory.create(db_session, ticket, t.admin)
        await CommentFactory.create(db_session, ticket, t.admin, visibility=CommentVisibility.INTERNAL)

        rows = await DashboardDAO(db_session).recent_comments(scope_for(t.acme_user), 10)

        assert [comment.id for comment, _ in rows] == [public.id]
        context = rows[0][1]
        assert context["ticket_title"] == ticket.title
        assert context["ticket_number"] == ticket.client_ticket_number

    async def test_recent_events_skip_comment_events_and_invisible_tickets(self, db_session, tenant):
        t = tenant
        acme_ticket = await TicketFactory.create(db_session, t.acme_project, t.acme_user, t.open_status, t.high)
        globex_ticket = await TicketFactory.create(db_session, t.globex_project, t.globex_user, t.open_status, t.high)

        events = TicketEventDAO(db_session)
        created = await events.record(acme_ticket.id, TicketEventType.TICKET_CREATED, t.acme_user.id)
        await events.record(
            acme_ticket.id, TicketEventType.COMMENT_ADDED, t.admin.id, new_value={"comment_id": 1}
        )
        await events.record(globex_ticket.id, TicketEventType.TICKET_CREATED, t.globex_user.id)
        await db_session.commit()

        rows = await DashboardDAO(db_session).recent_events(scope_for(t.acme_user), 10)

        assert [event.id for event, _ in rows] == [created.id]

    async def test_feed_rows_carry_project_client_and_actor_names(self, db_session, tenant):
        t = tenant
        ticket = await TicketFactory.create(db_session, t.acme_project, t.acme_user, t.open_status, t.high)
        await TicketEventDAO(db_session).record(ticket.id, TicketEventType.TICKET_CREATED, t.acme_user.id)
        await CommentFactory.create(db_session, ticket, t.employee)

        dao = DashboardDAO(db_session)
        [(_, event_context)] = await dao.recent_events(scope_for(t.admin), 10)
        [(_, comment_context)] = await dao.recent_comments(scope_for(t.admin), 10)

        assert event_context["actor_name"] == t.acme_user.name
        assert comment_context["actor_name"] == t.employee.name
        for context in (event_context, comment_context):
            assert context["project_id"] == t.acme_project.id
            assert context["project_name"] == t.acme_project.name
            assert context["client_id"] == t.acme.id
            assert context["client_name"] == t.acme.name


class TestUserActivity:

    async def test_ticket_counts_cover_raised_and_assigned(self, db_session, tenant):
        t = tenant
        await seed_tickets(db_session, t)
        await TicketFactory.create(db_session, t.acme_project, t.employee, t.closed_status, t.high, assigned_to=t.employee)

        counts = await DashboardDAO(db_session).user_ticket_counts(scope_for(t.admin), t.employee.id)

        assert counts == {
            "total": 3,
            "raised": 2,
            "assigned": 2,
            "assigned_open": 0,
            "assigned_closed": 2,
        }

    async def test_breakdowns_only_list_statuses_in_use(self, db_session, tenant):
        t = tenant
        await seed_tickets(db_session, t)
        await LookupFactory.status(db_session, t.org, name="Waiting", sequence=3)
        dao = DashboardDAO(db_session)

        by_status = await dao.user_tickets_by_status(scope_for(t.admin), t.employee.id)
        by_priority = await dao.user_tickets_by_priority(scope_for(t.admin), t.employee.id)

        assert [(row["status_id"], row["count"]) for row in by_status] == [
            (t.open_status.id, 1),
            (t.closed_status.id, 1),
        ]
        assert by_priority == [{"priority_id": t.high.id, "name": t.high.name, "count": 2}]

    async def test_deleted_and_other_org_tickets_are_ignored(self, db_session, tenant):
        t = tenant
        await seed_tickets(db_session, t)

        counts = await DashboardDAO(db_session).user_ticket_counts(scope_for(t.other_admin), t.globex_user.id)
        assert counts["total"] == 0

        counts = await DashboardDAO(db_session).user_ticket_counts(scope_for(t.admin), t.globex_user.id)
        assert counts["total"] == 1

    async def test_events_comments_and_last_activity(self, db_session, tenant):
        t = tenant
        ticket = await TicketFactory.create(db_session, t.acme_project, t.acme_user, t.open_status, t.high)
        events = TicketEventDAO(db_session)
        await events.record(ticket.id, TicketEventType.STATUS_CHANGED, t.employee.id)
        await events.record(ticket.id, TicketEventType.STATUS_CHANGED, t.employee.id)
        await events.record(ticket.id, TicketEventType.ASSIGNEE_CHANGED, t.employee.id)
        await events.record(ticket.id, TicketEventType.TICKET_CREATED, t.acme_user.id)
        await db_session.commit()
        comment = await CommentFactory.create(
            db_session, ticket, t.employee, visibility=CommentVisibility.INTERNAL
        )
        dao = DashboardDAO(db_session)

        by_type = await dao.user_events_by_type(scope_for(t.admin), t.employee.id)
        comments = await dao.user_comment_count(scope_for(t.admin), t.employee.id)
        last = await dao.user_last_activity(scope_for(t.admin), t.employee.id)

        assert by_type == [
            {"event_type": "STATUS_CHANGED", "count": 2},
            {"event_type": "ASSIGNEE_CHANGED", "count": 1},
        ]
        assert comments == 1
        assert last >= comment.created_at

    async def test_last_activity_is_none_for_idle_user(self, db_session, tenant):
        t = tenant

        last = await DashboardDAO(db_session).user_last_activity(scope_for(t.admin), t.other_employee.id)

        assert last is None

    async def test_closed_since_returns_resolution_pairs(self, db_session, tenant):
        t = tenant
        ticket = await TicketFactory.create(
            db_session, t.acme_project, t.acme_user, t.closed_status, t.high, assigned_to=t.employee
        )
        ticket.closed_at = ticket.created_at + timedelta(hours=5)
        await db_session.commit()
        dao = DashboardDAO(db_session)

        recent = await dao.user_closed_since(scope_for(t.admin), t.employee.id, ticket.created_at)
        later = await dao.user_closed_since(
            scope_for(t.admin), t.employee.id, ticket.created_at + timedelta(days=1)
        )

        assert recent == [(ticket.created_at, ticket.closed_at)]
        assert later == []
