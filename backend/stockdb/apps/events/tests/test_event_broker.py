from __future__ import annotations

import json

from stockdb.apps.events.broker import (
    EventBroker,
    EventEnvelope,
    broker,
    format_sse,
    pending_changes,
    publish_change,
)


def _event(event_id, org="org-1"):
    return EventEnvelope(
        id=event_id,
        type="inventory_item.adjusted",
        entityType="inventory_item",
        entityId="1",
        action="adjusted",
        timestamp="2024-01-01T00:00:00+00:00",
        actor=None,
        metadata={"organizationId": org},
    )


def test_publish_fans_out_to_subscribers():
    broker = EventBroker(replay_size=10)
    q = broker.subscribe()

    broker.publish(_event("a"))

    assert q.get_nowait().id == "a"
    broker.unsubscribe(q)
    broker.publish(_event("b"))
    assert q.empty()


def test_replay_since_filters_organization_and_detects_gap():
    broker = EventBroker(replay_size=3)
    for event_id, org in (("a", "org-1"), ("b", "org-2"), ("c", "org-1"), ("d", "org-1")):
        broker.publish(_event(event_id, org))

    replay, reset = broker.replay_since(last_event_id="b", organization_id="org-1")
    assert [event.id for event in replay] == ["c", "d"]
    assert reset is False

    replay, reset = broker.replay_since(last_event_id="a", organization_id="org-1")
    assert replay == []
    assert reset is True


def test_format_sse_frames_json_payload():
    event = _event("a")
    frame = format_sse(event.to_json(), event=event.type, event_id=event.id)
    lines = frame.strip().splitlines()
    assert lines[0] == "id: a"
    assert lines[1] == "event: inventory_item.adjusted"
    assert json.loads(lines[2][len("data: "):])["metadata"]["organizationId"] == "org-1"


def _stage(db_session, entity_id="1"):
    return publish_change(
        db_session,
        organization_id="org-1",
        entity_type="inventory_item",
        entity_id=entity_id,
        action="adjusted",
        actor_user_id="user-1",
    )


def test_session_changes_wait_for_commit(db_session):
    q = broker.subscribe()
    try:
        db_session.connection()
        staged = _stage(db_session)
        assert q.empty()
        assert [event.id for event in pending_changes(db_session)] == [staged.id]

        db_session.commit()

        assert q.get_nowait().id == staged.id
        assert pending_changes(db_session) == []
    finally:
        broker.unsubscribe(q)


def test_session_changes_dropped_on_rollback(db_session):
    q = broker.subscribe()
    try:
        db_session.connection()
        _stage(db_session, entity_id="2")
        db_session.rollback()
        assert pending_changes(db_session) == []

        db_session.commit()
        assert q.empty()
    finally:
        broker.unsubscribe(q)
