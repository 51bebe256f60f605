# tests/test_admin_context.py
import pytest

from conftest import TEACHER_EMAIL, TEACHER_PASSWORD, make_submission
from vlog_portal.services.admin_context import AdminContext
from vlog_portal.services.auth_gateway import AuthGateway


@pytest.fixture
def events():
    return []


@pytest.fixture
def context(session_factory, repository, teacher, events):
    ctx = AdminContext(AuthGateway(session_factory), repository, on_event=events.append)
    ctx.start()
    yield ctx
    ctx.close()


def event_types(events):
    return [e["type"] for e in events]


def test_signed_out_start_clears(context, repository, events):
    assert event_types(events) == ["auth", "cleared"]
    assert events[0]["user"] is None
    assert repository.subscriber_count == 0


@pytest.mark.asyncio
async def test_sign_in_subscribes_and_receives_pushes(context, repository, events):
    context.gateway.sign_in(TEACHER_EMAIL, TEACHER_PASSWORD)

    assert repository.subscriber_count == 1
    assert events[-1] == {"type": "snapshot", "submissions": []}

    await repository.insert(None, make_submission())

    assert events[-1]["type"] == "snapshot"
    assert events[-1]["submissions"][0]["student_name"] == "Andi Pratama"
    assert "score" not in events[-1]["submissions"][0]
    assert len(context.submissions) == 1


@pytest.mark.asyncio
async def test_sign_out_cancels_feed_and_clears(context, repository, events):
    context.gateway.sign_in(TEACHER_EMAIL, TEACHER_PASSWORD)
    await repository.insert(None, make_submission())

    context.gateway.sign_out()

    assert repository.subscriber_count == 0
    assert context.submissions == []
    assert event_types(events)[-2:] == ["auth", "cleared"]

    events.clear()
    await repository.insert(None, make_submission(student_name="Budi"))
    assert events == []


@pytest.mark.asyncio
async def test_derived_views(context, repository):
    context.gateway.sign_in(TEACHER_EMAIL, TEACHER_PASSWORD)
    first = await repository.insert(None, make_submission(class_label="9-A"))
    await repository.insert(None, make_submission(class_label="9-B", student_name="Budi"))
    await repository.update_grade(context.user, first.id, 80)

    assert [r.student_name for r in context.roster(class_label="9-B")] == ["Budi"]
    ranking = context.rankings()
    assert [r.id for r in ranking.entries] == [first.id]
    assert ranking.stats.avg == 80.0


def test_close_is_idempotent(context, repository):
    context.gateway.sign_in(TEACHER_EMAIL, TEACHER_PASSWORD)
    context.close()
    context.close()

    assert repository.subscriber_count == 0
    assert context.submissions == []
