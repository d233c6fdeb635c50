from __future__ import annotations

from types import SimpleNamespace

import pytest

from stockdb import errors
from stockdb.apps.inventory import models as inventory_models
from stockdb.apps.inventory import schemas as inventory_schemas
from stockdb.apps.inventory import services as inventory_services

ORG_ID = "org-cat"
USER_ID = "user-cat"


def _create_item(db, **fields) -> inventory_models.InventoryItem:
    fields.setdefault("name", "Copper pipe")
    item = inventory_services.create_item(
        db,
        organization_id=fields.pop("organization_id", ORG_ID),
        payload=inventory_schemas.InventoryItemCreate(**fields),
        actor_user_id=USER_ID,
    )
    db.commit()
    return item


def _stock(quantity, minimum_stock=None, reorder_point=None):
    return SimpleNamespace(quantity=quantity, minimum_stock=minimum_stock, reorder_point=reorder_point)


@pytest.mark.parametrize(
    "item, expected",
    [
        (_stock(0, minimum_stock=5), inventory_models.StockStatusEnum.OUT_OF_STOCK),
        (_stock(0), inventory_models.StockStatusEnum.OUT_OF_STOCK),
        (_stock(5, minimum_stock=5), inventory_models.StockStatusEnum.LOW_STOCK),
        (_stock(6, minimum_stock=5, reorder_point=0), inventory_models.StockStatusEnum.IN_STOCK),
        (_stock(8, minimum_stock=2, reorder_point=8), inventory_models.StockStatusEnum.LOW_STOCK),
        (_stock(1), inventory_models.StockStatusEnum.IN_STOCK),
    ],
)
def test_classify_stock_boundaries(item, expected):
    assert inventory_services.classify_stock(item) == expected


def test_threshold_uses_larger_of_minimum_and_reorder_point():
    assert inventory_services.stock_threshold(_stock(3, minimum_stock=4, reorder_point=9)) == 9
    assert inventory_services.stock_threshold(_stock(3)) == 0


def test_filter_items_matches_search_category_and_status():
    items = [
        SimpleNamespace(name="Copper pipe", sku="CP-1", description=None, category="Plumbing", quantity=10,
                        minimum_stock=2, reorder_point=None),
        SimpleNamespace(name="Valve", sku="VLV-9", description="brass copper seat", category="Plumbing",
                        quantity=1, minimum_stock=3, reorder_point=None),
        SimpleNamespace(name="Refrigerant", sku=None, description=None, category="Chemicals", quantity=0,
                        minimum_stock=None, reorder_point=None),
    ]

    assert [i.name for i in inventory_services.filter_items(items, search="COPPER")] == ["Copper pipe", "Valve"]
    assert [i.name for i in inventory_services.filter_items(items, search="vlv")] == ["Valve"]
    assert [i.name for i in inventory_services.filter_items(items, category="Chemicals")] == ["Refrigerant"]
    assert inventory_services.filter_items(items, category="plumbing") == []
    low = inventory_services.filter_items(items, status=inventory_models.StockStatusEnum.LOW_STOCK)
    assert [i.name for i in low] == ["Valve"]


def test_create_item_books_initial_stock_through_ledger(db_session):
    item = _create_item(db_session, sku="CP-1", quantity=10, minimum_stock=2, unit_cost=500)

    assert item.quantity == 10
    adjustments = db_session.query(inventory_models.StockAdjustment).all()
    assert len(adjustments) == 1
    assert adjustments[0].reason == inventory_models.AdjustmentReasonEnum.INITIAL_STOCK.value
    assert (adjustments[0].previous_quantity, adjustments[0].new_quantity) == (0, 10)


def test_create_item_with_zero_quantity_writes_no_adjustment(db_session):
    _create_item(db_session, sku="CP-0")
    assert db_session.query(inventory_models.StockAdjustment).count() == 0


def test_create_item_accepts_numeric_string_quantity(db_session):
    item = _create_item(db_session, quantity="12", minimum_stock="")
    assert item.quantity == 12
    assert item.minimum_stock is None


@pytest.mark.parametrize(
    "fields, field",
    [
        ({"quantity": -1}, "quantity"),
        ({"name": "   "}, "name"),
        ({"unit_cost": -5}, "unit_cost"),
        ({"reorder_point": -1}, "reorder_point"),
    ],
)
def test_create_item_rejects_invalid_fields(db_session, fields, field):
    with pytest.raises(errors.ValidationError) as excinfo:
        _create_item(db_session, **fields)
    assert field in {entry["field"] for entry in excinfo.value.detail}


def test_duplicate_sku_rejected_at_same_location_only(db_session):
    _create_item(db_session, sku="CP-1", location_type="warehouse", location_id=1)

    with pytest.raises(errors.ValidationError):
        _create_item(db_session, sku="CP-1", location_type="warehouse", location_id=1)

    other = _create_item(db_session, sku="CP-1", location_type="vehicle", location_id=7)
    assert other.id is not None
    again = _create_item(db_session, sku="CP-1", organization_id="org-other", location_type="warehouse", location_id=1)
    assert again.organization_id == "org-other"


def test_update_item_routes_quantity_change_through_ledger(db_session):
    item = _create_item(db_session, quantity=4)

    updated = inventory_services.update_item(
        db_session,
        organization_id=ORG_ID,
        item_id=item.id,
        payload=inventory_schemas.InventoryItemUpdate(quantity=9, category="Filters", quantity_notes="recount"),
        actor_user_id=USER_ID,
    )
    db_session.commit()

    assert updated.quantity == 9
    assert updated.category == "Filters"
    latest = (
        db_session.query(inventory_models.StockAdjustment)
        .order_by(inventory_models.StockAdjustment.id.desc())
        .first()
    )
    assert latest.reason == inventory_models.AdjustmentReasonEnum.MANUAL_EDIT.value
    assert (latest.previous_quantity, latest.new_quantity, latest.notes) == (4, 9, "recount")


def test_update_item_without_quantity_leaves_ledger_alone(db_session):
    item = _create_item(db_session, quantity=4)
    inventory_services.update_item(
        db_session,
        organization_id=ORG_ID,
        item_id=item.id,
        payload=inventory_schemas.InventoryItemUpdate(name="Copper pipe 15mm"),
        actor_user_id=USER_ID,
    )
    assert db_session.query(inventory_models.StockAdjustment).count() == 1


def test_update_item_missing_raises_not_found(db_session):
    with pytest.raises(errors.NotFoundError):
        inventory_services.update_item(
            db_session,
            organization_id=ORG_ID,
            item_id=999,
            payload=inventory_schemas.InventoryItemUpdate(name="Ghost"),
            actor_user_id=USER_ID,
        )


def test_update_item_rejects_negative_quantity(db_session):
    item = _create_item(db_session, quantity=4)
    with pytest.raises(errors.ValidationError):
        inventory_services.update_item(
            db_session,
            organization_id=ORG_ID,
            item_id=item.id,
            payload=inventory_schemas.InventoryItemUpdate(quantity=-3),
            actor_user_id=USER_ID,
        )
    assert item.quantity == 4


def test_items_are_scoped_to_organization(db_session):
    item = _create_item(db_session, sku="CP-1")
    with pytest.raises(errors.NotFoundError):
        inventory_services.get_item(db_session, organization_id="org-other", item_id=item.id)


def test_deactivate_item_hides_it_from_default_listing(db_session):
    keep = _create_item(db_session, name="Valve", quantity=3)
    gone = _create_item(db_session, name="Old filter", quantity=2)

    inventory_services.deactivate_item(db_session, organization_id=ORG_ID, item_id=gone.id, actor_user_id=USER_ID)
    db_session.commit()

    listed = inventory_services.list_items(db_session, organization_id=ORG_ID)
    assert [item.id for item in listed] == [keep.id]
    everything = inventory_services.list_items(
        db_session,
        organization_id=ORG_ID,
        filters=inventory_schemas.InventoryItemFilter(include_inactive=True),
    )
    assert {item.id for item in everything} == {keep.id, gone.id}
    assert db_session.get(inventory_models.InventoryItem, gone.id).quantity == 2


def test_read_schema_exposes_derived_stock_status(db_session):
    item = _create_item(db_session, quantity=2, reorder_point=3)
    read = inventory_schemas.InventoryItemRead.model_validate(item)
    assert read.stock_status == inventory_models.StockStatusEnum.LOW_STOCK
    assert read.model_dump()["stock_status"] == inventory_models.StockStatusEnum.LOW_STOCK
