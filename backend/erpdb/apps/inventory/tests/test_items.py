from __future__ import annotations

from decimal import Decimal

import pytest

from erpdb.apps.audit import models as audit_models
from erpdb.apps.inventory import models as inventory_models
from erpdb.apps.inventory import schemas as inventory_schemas
from erpdb.apps.inventory import services as inventory_services
from erpdb.errors import ConflictError, ItemNotFoundError, NegativeStockError, NotFoundError


def _create(db, sku="BOLT-M8", current_stock=0, min_stock_level=0, **fields):
    item = inventory_services.create_item(
        db,
        payload=inventory_schemas.ItemCreate(
            name=fields.pop("name", "M8 bolt"),
            sku=sku,
            category=fields.pop("category", "Fasteners"),
            unit_of_measure=fields.pop("unit_of_measure", "EA"),
            current_stock=current_stock,
            min_stock_level=min_stock_level,
            unit_cost=fields.pop("unit_cost", Decimal("0.25")),
            **fields,
        ),
        actor_id="admin",
    )
    db.commit()
    return item


def _update(db, item_id, **fields):
    item = inventory_services.update_item(
        db,
        item_id=item_id,
        payload=inventory_schemas.ItemUpdate(**fields),
        actor_id="editor",
    )
    db.commit()
    return item


def test_create_item_takes_opening_stock_without_ledger_entry(db_session):
    item = _create(db_session, current_stock=40)

    assert item.id is not None
    assert item.is_active is True
    assert item.current_stock == 40
    assert db_session.query(inventory_models.StockAdjustment).count() == 0

    events = db_session.query(audit_models.AuditEvent).filter_by(entity_type="Item", action="create").all()
    assert len(events) == 1
    assert events[0].after["current_stock"] == 40
    assert events[0].actor_user_id == "admin"


def test_duplicate_sku_is_a_conflict(db_session):
    _create(db_session, sku="DUP-1")

    with pytest.raises(ConflictError):
        _create(db_session, sku="DUP-1", name="Another")

    assert db_session.query(inventory_models.Item).count() == 1


def test_get_item_unknown_id(db_session):
    with pytest.raises(ItemNotFoundError) as excinfo:
        inventory_services.get_item(db_session, 321)
    assert isinstance(excinfo.value, NotFoundError)


def test_list_items_hides_inactive_by_default(db_session):
    active = _create(db_session, sku="ACT", name="Active")
    retired = _create(db_session, sku="OLD", name="Retired")
    _update(db_session, retired.id, is_active=False)

    assert [item.id for item in inventory_services.list_items(db_session)] == [active.id]
    assert {item.id for item in inventory_services.list_items(db_session, include_inactive=True)} == {
        active.id,
        retired.id,
    }


def test_update_stock_goes_through_ledger(db_session):
    item = _create(db_session, current_stock=10)

    updated = _update(db_session, item.id, current_stock=25, name="M8 bolt, zinc")

    assert updated.current_stock == 25
    assert updated.name == "M8 bolt, zinc"
    rows = db_session.query(inventory_models.StockAdjustment).all()
    assert len(rows) == 1
    row = rows[0]
    assert row.adjustment_type == inventory_models.StockAdjustmentTypeEnum.ADJUSTMENT
    assert row.quantity_change == 15
    assert row.previous_stock == 10
    assert row.new_stock == 25
    assert row.reason == inventory_services.ITEM_UPDATE_STOCK_REASON
    assert row.created_by == "editor"


def test_update_with_same_stock_writes_no_adjustment(db_session):
    item = _create(db_session, current_stock=10)

    _update(db_session, item.id, current_stock=10, min_stock_level=3)

    assert db_session.query(inventory_models.StockAdjustment).count() == 0
    db_session.refresh(item)
    assert item.min_stock_level == 3


def test_update_rejects_sku_of_another_item(db_session):
    _create(db_session, sku="A-1")
    second = _create(db_session, sku="B-1")

    with pytest.raises(ConflictError):
        _update(db_session, second.id, sku="A-1", current_stock=5)

    db_session.refresh(second)
    assert second.sku == "B-1"
    assert second.current_stock == 0
    assert db_session.query(inventory_models.StockAdjustment).count() == 0


def test_update_unknown_item(db_session):
    with pytest.raises(NotFoundError):
        _update(db_session, 404, name="ghost")


def test_update_cannot_take_stock_negative_through_ledger(db_session):
    item = _create(db_session, current_stock=2)

    # Schema blocks negative targets, so exercise the ledger rejection directly.
    with pytest.raises(NegativeStockError):
        inventory_services.apply_stock_adjustment(
            db_session,
            item_id=item.id,
            adjustment_type="ADJUSTMENT",
            quantity_change=-3,
            reason=inventory_services.ITEM_UPDATE_STOCK_REASON,
            created_by="editor",
        )
    db_session.rollback()
    db_session.refresh(item)
    assert item.current_stock == 2


def test_update_records_before_and_after(db_session):
    item = _create(db_session, current_stock=1, min_stock_level=1)

    _update(db_session, item.id, min_stock_level=8)

    event = (
        db_session.query(audit_models.AuditEvent)
        .filter_by(entity_type="Item", entity_id=str(item.id), action="update")
        .one()
    )
    assert event.before["min_stock_level"] == 1
    assert event.after["min_stock_level"] == 8


def test_low_stock_threshold_multiplier(db_session):
    item = _create(db_session, sku="LOW-1", current_stock=5, min_stock_level=10)

    assert [i.id for i in inventory_services.list_low_stock_items(db_session, threshold_multiplier=1)] == [item.id]
    assert inventory_services.list_low_stock_items(db_session, threshold_multiplier=0.4) == []
    assert [i.id for i in inventory_services.list_low_stock_items(db_session, threshold_multiplier=0.5)] == [item.id]


def test_low_stock_with_zero_minimum_only_when_empty(db_session):
    stocked = _create(db_session, sku="Z-1", current_stock=1, min_stock_level=0)
    empty = _create(db_session, sku="Z-2", current_stock=0, min_stock_level=0)
    retired = _create(db_session, sku="Z-3", current_stock=0, min_stock_level=5)
    _update(db_session, retired.id, is_active=False)

    low = inventory_services.list_low_stock_items(db_session)

    assert [item.id for item in low] == [empty.id]
    assert stocked.id not in {item.id for item in low}


def test_adjustment_history_newest_first_and_filtered(db_session):
    first = _create(db_session, sku="H-1", current_stock=10)
    second = _create(db_session, sku="H-2", current_stock=10)

    for item_id, delta in [(first.id, -1), (second.id, 2), (first.id, 3)]:
        inventory_services.apply_stock_adjustment(
            db_session,
            item_id=item_id,
            adjustment_type="ADJUSTMENT",
            quantity_change=delta,
            reason="count",
            created_by="auditor",
        )
        db_session.commit()

    history = inventory_services.list_stock_adjustments(db_session)
    assert [row.quantity_change for row in history] == [3, 2, -1]

    first_history = inventory_services.list_stock_adjustments(db_session, item_id=first.id)
    assert [row.quantity_change for row in first_history] == [3, -1]
    assert all(row.item_id == first.id for row in first_history)

    assert len(inventory_services.list_stock_adjustments(db_session, limit=1)) == 1
