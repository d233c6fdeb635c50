from __future__ import annotations

from types import SimpleNamespace

import pytest

from stockdb import errors
from stockdb.apps.events.broker import broker
from stockdb.apps.inventory import models as inventory_models
from stockdb.apps.workflow import WORKFLOWS, allowed_transitions, apply_transition, is_terminal

ORG_ID = "org-wf"


def _transfer(*lines):
    return SimpleNamespace(
        items=[SimpleNamespace(inventory_item_id=item_id, quantity=quantity) for item_id, quantity in lines]
    )


def _create_item(db_session, quantity):
    item = inventory_models.InventoryItem(organization_id=ORG_ID, name="Coil", quantity=quantity)
    db_session.add(item)
    db_session.commit()
    return item


def _apply(db_session, from_state, to_state, after_obj, on_apply=None):
    apply_transition(
        db_session,
        organization_id=ORG_ID,
        actor_user_id="user-wf",
        entity_type="inventory_transfer",
        entity_id="t-1",
        from_state=from_state,
        to_state=to_state,
        before_obj={"status": from_state},
        after_obj=after_obj,
        on_apply=on_apply,
    )


def test_transition_table_matches_transfer_lifecycle():
    assert allowed_transitions("inventory_transfer", "pending") == ["cancelled", "in_transit"]
    assert allowed_transitions("inventory_transfer", "in_transit") == ["cancelled", "completed"]
    assert allowed_transitions("inventory_transfer", "completed") == []
    assert is_terminal("inventory_transfer", "completed")
    assert is_terminal("inventory_transfer", "cancelled")
    assert not is_terminal("inventory_transfer", "pending")
    assert set(WORKFLOWS["inventory_transfer"]["transitions"]) == {"pending", "in_transit", "completed", "cancelled"}


def test_apply_transition_runs_callback_and_publishes(db_session):
    item = _create_item(db_session, quantity=5)
    applied = []
    q = broker.subscribe()
    try:
        _apply(db_session, "in_transit", "completed", _transfer((item.id, 5)), on_apply=lambda: applied.append(True))
        assert q.empty()
        db_session.commit()
        event = q.get_nowait()
    finally:
        broker.unsubscribe(q)

    assert applied == [True]
    assert event.type == "inventory_transfer.transition"
    assert event.metadata["to"] == "completed"
    assert event.organization_id == ORG_ID


def test_rolled_back_transition_publishes_nothing(db_session):
    item = _create_item(db_session, quantity=5)
    q = broker.subscribe()
    try:
        _apply(db_session, "in_transit", "completed", _transfer((item.id, 5)))
        db_session.rollback()
        db_session.commit()
        assert q.empty()
    finally:
        broker.unsubscribe(q)


def test_apply_transition_rejects_unregistered_edge(db_session):
    with pytest.raises(errors.InvalidTransitionError) as excinfo:
        _apply(db_session, "pending", "completed", _transfer((1, 1)))
    assert excinfo.value.detail[0]["field"] == "status"


def test_apply_transition_rejects_unknown_workflow(db_session):
    with pytest.raises(errors.InvalidTransitionError):
        apply_transition(
            db_session,
            organization_id=ORG_ID,
            actor_user_id=None,
            entity_type="purchase_order",
            entity_id="po-1",
            from_state="draft",
            to_state="sent",
            before_obj=None,
            after_obj=None,
        )


def test_guards_report_empty_transfer(db_session):
    with pytest.raises(errors.ValidationError) as excinfo:
        _apply(db_session, "pending", "in_transit", _transfer())
    assert excinfo.value.code == "missing_requirements"
    assert {entry["field"] for entry in excinfo.value.detail} == {"items"}


def test_stock_guard_sums_lines_per_item_and_skips_callback(db_session):
    item = _create_item(db_session, quantity=5)
    applied = []

    with pytest.raises(errors.ValidationError) as excinfo:
        _apply(
            db_session,
            "in_transit",
            "completed",
            _transfer((item.id, 3), (item.id, 3), (999, 1)),
            on_apply=lambda: applied.append(True),
        )

    assert applied == []
    fields = {entry["field"]: entry["reason"] for entry in excinfo.value.detail}
    assert "insufficient stock" in fields[f"items.{item.id}"]
    assert fields["items.999"] == "source item not found"
