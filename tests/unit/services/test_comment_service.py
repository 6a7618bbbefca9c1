"""
Unit tests for CommentService.

WHY: INTERNAL notes must never reach CLIENT users, neither through the API
nor through a notification, and a comment must never be committed without
its event and outbox row.
"""

import pytest
from sqlalchemy import select

from helpdesk.core.exceptions import (
    AuthorizationError,
    CommentNotFoundError,
    TicketNotFoundError,
)
from helpdesk.models.outbox import NotificationOutbox
from helpdesk.models.ticket import (
    CommentVisibility,
    TicketComment,
    TicketEvent,
    TicketEventType,
)
from helpdesk.services.comment_service import CommentService
from helpdesk.services.outbox_service import OutboxService
from tests.factories import TicketFactory, scope_for


async def outbox_rows(session):
    result = await session.execute(select(NotificationOutbox).order_by(NotificationOutbox.id))
    return list(result.scalars().all())


class TestCreateComment:

    async def test_writes_comment_event_and_outbox(self, db_session, tenant):
        t = tenant
        ticket = await TicketFactory.create(db_session, t.acme_project, t.acme_user, t.open_status, t.high)

        comment = await CommentService(db_session).create_comment(
            scope_for(t.admin), ticket.id, "We are on it"
        )

        assert comment.visibility == CommentVisibility.PUBLIC
        assert comment.author_user_id == t.admin.id

        events = (
            await db_session.execute(select(TicketEvent).where(TicketEvent.ticket_id == ticket.id))
        ).scalars().all()
        assert [e.event_type for e in events] == [TicketEventType.COMMENT_ADDED]
        assert events[0].new_value == {"comment_id": comment.id, "visibility": "PUBLIC"}

        rows = await outbox_rows(db_session)
        assert len(rows) == 1
        assert rows[0].topic == "COMMENT_ADDED"
        assert rows[0].recipient_user_id == t.acme_user.id
        # Comment bodies are never copied into notification payloads
        assert "We are on it" not in str(rows[0].payload)

    async def test_client_cannot_post_internal(self, db_session, tenant):
        t = tenant
        ticket = await TicketFactory.create(db_session, t.acme_project, t.acme_user, t.open_status, t.high)

        with pytest.raises(AuthorizationError):
            await CommentService(db_session).create_comment(
                scope_for(t.acme_user), ticket.id, "secret", CommentVisibility.INTERNAL
            )

    async def test_cannot_comment_on_invisible_ticket(self, db_session, tenant):
        t = tenant
        ticket = await TicketFactory.create(db_session, t.globex_project, t.globex_user, t.open_status, t.high)

        with pytest.raises(TicketNotFoundError):
            await CommentService(db_session).create_comment(scope_for(t.acme_user), ticket.id, "hi")

    async def test_internal_comment_not_announced_to_client_raiser(self, db_session, tenant):
        t = tenant
        ticket = await TicketFactory.create(
            db_session, t.acme_project, t.acme_user, t.open_status, t.high, assigned_to=t.employee
        )

        await CommentService(db_session).create_comment(
            scope_for(t.admin), ticket.id, "note", CommentVisibility.INTERNAL
        )

        rows = await outbox_rows(db_session)
        assert rows[0].recipient_user_id == t.employee.id

    async def test_author_is_never_the_recipient(self, db_session, tenant):
        t = tenant
        ticket = await TicketFactory.create(db_session, t.acme_project, t.acme_user, t.open_status, t.high)

        await CommentService(db_session).create_comment(scope_for(t.acme_user), ticket.id, "any news?")

        rows = await outbox_rows(db_session)
        assert rows[0].recipient_user_id is None

    async def test_comment_rolls_back_with_failed_outbox_write(self, db_session, tenant, monkeypatch):
        """Comment, event and outbox row commit or roll back together."""
        t = tenant
        ticket = await TicketFactory.create(db_session, t.acme_project, t.acme_user, t.open_status, t.high)

        async def failing_enqueue(self, *args, **kwargs):
            raise RuntimeError("outbox unavailable")

        monkeypatch.setattr(OutboxService, "enqueue", failing_enqueue)

        with pytest.raises(RuntimeError):
            await CommentService(db_session).create_comment(scope_for(t.admin), ticket.id, "lost")
        await db_session.rollback()

        comments = (await db_session.execute(select(TicketComment))).scalars().all()
        events = (await db_session.execute(select(TicketEvent))).scalars().all()
        assert comments == []
        assert events == []


class TestReadComments:

    async def test_client_thread_and_lookup_hide_internal(self, db_session, tenant):
        t = tenant
        ticket = await TicketFactory.create(db_session, t.acme_project, t.acme_user, t.open_status, t.high)
        service = CommentService(db_session)
        public = await service.create_comment(scope_for(t.admin), ticket.id, "reply")
        internal = await service.create_comment(
            scope_for(t.admin), ticket.id, "note", CommentVisibility.INTERNAL
        )
        await db_session.commit()

        thread = await service.list_comments(scope_for(t.acme_user), ticket.id)
        assert [c.id for c in thread] == [public.id]

        with pytest.raises(CommentNotFoundError):
            await service.get_comment(scope_for(t.acme_user), internal.id)

        staff_view = await service.get_comment(scope_for(t.admin), internal.id)
        assert staff_view.id == internal.id
