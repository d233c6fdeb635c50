from __future__ import annotations

from datetime import datetime, timedelta

import pytest
from sqlalchemy import update

from stockdb import errors
from stockdb.apps.inventory import ledger
from stockdb.apps.inventory import models as inventory_models
from stockdb.apps.inventory import schemas as inventory_schemas
from stockdb.apps.inventory import services as inventory_services

ORG_ID = "org-ledger"
USER_ID = "user-ledger"


def _create_item(db, quantity=0, **fields) -> inventory_models.InventoryItem:
    item = inventory_services.create_item(
        db,
        organization_id=ORG_ID,
        payload=inventory_schemas.InventoryItemCreate(name=fields.pop("name", "Filter drier"), quantity=quantity, **fields),
        actor_user_id=USER_ID,
    )
    db.commit()
    return item


def _adjust(db, item_id, delta, **kwargs):
    return ledger.apply_adjustment(
        db,
        organization_id=ORG_ID,
        item_id=item_id,
        delta=delta,
        reason=kwargs.pop("reason", "cycle_count"),
        performed_by_user_id=USER_ID,
        **kwargs,
    )


def test_adjustment_records_previous_and_new_quantity(db_session):
    item = _create_item(db_session, quantity=5)

    adjustment = _adjust(db_session, item.id, 3, notes="found in van")
    db_session.commit()

    assert item.quantity == 8
    assert adjustment.previous_quantity == 5
    assert adjustment.new_quantity == 8
    assert adjustment.quantity_change == 3
    assert adjustment.performed_by_user_id == USER_ID
    assert adjustment.notes == "found in van"


def test_decrement_below_zero_is_floored(db_session):
    item = _create_item(db_session, quantity=2)

    adjustment = _adjust(db_session, item.id, -5)

    assert item.quantity == 0
    assert adjustment.new_quantity == 0
    assert adjustment.quantity_change == -2


def test_quantity_never_negative_and_ledger_tracks_item(db_session):
    item = _create_item(db_session, quantity=3)
    expected = 3
    for delta in (-1, -4, 6, -2, 0, -10, 7):
        adjustment = _adjust(db_session, item.id, delta)
        expected = max(0, expected + delta)
        assert item.quantity == expected
        assert adjustment.new_quantity == expected
    db_session.commit()

    latest = (
        db_session.query(inventory_models.StockAdjustment)
        .filter(inventory_models.StockAdjustment.inventory_item_id == item.id)
        .order_by(inventory_models.StockAdjustment.id.desc())
        .first()
    )
    assert latest.new_quantity == item.quantity


def test_absolute_set_is_adjustment_by_difference(db_session):
    item = _create_item(db_session, quantity=10)

    adjustment = ledger.apply_absolute_set(
        db_session,
        organization_id=ORG_ID,
        item_id=item.id,
        new_quantity=4,
        reason="recount",
        performed_by_user_id=USER_ID,
    )

    assert item.quantity == 4
    assert adjustment.quantity_change == -6


def test_absolute_set_rejects_negative(db_session):
    item = _create_item(db_session, quantity=10)
    with pytest.raises(errors.ValidationError):
        ledger.apply_absolute_set(
            db_session,
            organization_id=ORG_ID,
            item_id=item.id,
            new_quantity=-1,
            reason="recount",
            performed_by_user_id=USER_ID,
        )


def test_unknown_item_raises_not_found(db_session):
    with pytest.raises(errors.NotFoundError):
        _adjust(db_session, 404, 1)


def test_blank_reason_rejected(db_session):
    item = _create_item(db_session, quantity=1)
    with pytest.raises(errors.ValidationError):
        _adjust(db_session, item.id, 1, reason="  ")


def test_stale_expected_quantity_raises_conflict(db_session):
    item = _create_item(db_session, quantity=5)

    with pytest.raises(errors.ConflictError):
        _adjust(db_session, item.id, 1, expected_quantity=4)

    assert item.quantity == 5
    assert db_session.query(inventory_models.StockAdjustment).count() == 1


def test_concurrent_write_detected_by_compare_and_swap(db_session):
    item = _create_item(db_session, quantity=5)

    # Another writer changes the row behind this session's back.
    db_session.execute(
        update(inventory_models.InventoryItem)
        .where(inventory_models.InventoryItem.id == item.id)
        .values(quantity=9)
        .execution_options(synchronize_session=False)
    )

    with pytest.raises(errors.ConflictError):
        _adjust(db_session, item.id, -1)

    db_session.refresh(item)
    assert item.quantity == 9
    assert db_session.query(inventory_models.StockAdjustment).count() == 1


def test_list_adjustments_filters_and_orders_newest_first(db_session):
    first = _create_item(db_session, name="Filter", quantity=1)
    second = _create_item(db_session, name="Valve", quantity=2)
    _adjust(db_session, first.id, 4, reason="received")
    _adjust(db_session, second.id, -1, reason="used")
    db_session.commit()

    everything = ledger.list_adjustments(db_session, organization_id=ORG_ID)
    assert [row.id for row in everything] == sorted((row.id for row in everything), reverse=True)
    assert len(everything) == 4

    by_item = ledger.list_adjustments(
        db_session,
        organization_id=ORG_ID,
        filters=inventory_schemas.StockAdjustmentFilter(inventory_item_id=first.id),
    )
    assert {row.inventory_item_id for row in by_item} == {first.id}

    by_reason = ledger.list_adjustments(
        db_session,
        organization_id=ORG_ID,
        filters=inventory_schemas.StockAdjustmentFilter(reason="used"),
    )
    assert [row.inventory_item_id for row in by_reason] == [second.id]

    limited = ledger.list_adjustments(
        db_session,
        organization_id=ORG_ID,
        filters=inventory_schemas.StockAdjustmentFilter(limit=2),
    )
    assert len(limited) == 2


def test_list_adjustments_date_range_is_inclusive_calendar_days(db_session):
    item = _create_item(db_session, quantity=1)
    row = db_session.query(inventory_models.StockAdjustment).one()
    row.adjustment_date = datetime(2024, 3, 1, 23, 30)
    db_session.commit()

    same_day = ledger.list_adjustments(
        db_session,
        organization_id=ORG_ID,
        filters=inventory_schemas.StockAdjustmentFilter(start_date="2024-03-01", end_date="2024-03-01T00:00:00Z"),
    )
    assert [r.inventory_item_id for r in same_day] == [item.id]

    next_day = ledger.list_adjustments(
        db_session,
        organization_id=ORG_ID,
        filters=inventory_schemas.StockAdjustmentFilter(start_date=(datetime(2024, 3, 1) + timedelta(days=1)).date()),
    )
    assert next_day == []


def test_adjustment_filter_rejects_inverted_range():
    with pytest.raises(ValueError):
        inventory_schemas.StockAdjustmentFilter(start_date="2024-03-02", end_date="2024-03-01")
