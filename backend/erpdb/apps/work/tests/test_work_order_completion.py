from __future__ import annotations

from datetime import datetime
from decimal import Decimal

import pytest

from erpdb.apps.audit import models as audit_models
from erpdb.apps.inventory import models as inventory_models
from erpdb.apps.work import models as work_models
from erpdb.apps.work import schemas as work_schemas
from erpdb.apps.work import services as work_services
from erpdb.errors import (
    AlreadyCompletedError,
    InsufficientStockError,
    InvalidStateError,
    ItemNotFoundError,
    NotFoundError,
)

Status = work_models.WorkOrderStatusEnum


def _work_order(db, lines=(), title="Assemble unit"):
    wo = work_services.create_work_order(
        db,
        payload=work_schemas.WorkOrderCreate(
            title=title,
            items=[work_schemas.WorkOrderItemCreate(item_id=item.id, quantity_planned=qty) for item, qty in lines],
        ),
        actor_id="planner",
    )
    db.commit()
    return wo


def _use(db, wo, line, quantity):
    line = work_services.record_item_usage(
        db,
        work_order_id=wo.id,
        line_id=line.id,
        quantity_used=quantity,
        actor_id="tech",
    )
    db.commit()
    return line


def _complete(db, wo, actual_hours=Decimal("1"), actor="tech"):
    wo = work_services.complete_work_order(
        db,
        work_order_id=wo.id,
        actual_hours=actual_hours,
        actor_id=actor,
    )
    db.commit()
    return wo


def _consumption_rows(db, wo_id):
    return (
        db.query(inventory_models.StockAdjustment)
        .filter(
            inventory_models.StockAdjustment.reference_type == inventory_models.REFERENCE_WORK_ORDER,
            inventory_models.StockAdjustment.reference_id == wo_id,
        )
        .all()
    )


def test_create_work_order_defaults(db_session, make_item):
    item = make_item("WO-NEW")

    wo = _work_order(db_session, [(item, 4)])

    assert wo.status == Status.CREATED
    assert wo.priority == work_models.WorkOrderPriorityEnum.MEDIUM
    assert wo.wo_number.startswith("WO-")
    assert wo.created_by == "planner"
    assert [(line.quantity_planned, line.quantity_used) for line in wo.items] == [(4, 0)]


def test_create_work_order_unknown_item(db_session):
    with pytest.raises(ItemNotFoundError):
        work_services.create_work_order(
            db_session,
            payload=work_schemas.WorkOrderCreate(
                title="Broken",
                items=[work_schemas.WorkOrderItemCreate(item_id=555, quantity_planned=1)],
            ),
            actor_id="planner",
        )
    assert db_session.query(work_models.WorkOrder).count() == 0


def test_completion_consumes_used_quantity(db_session, make_item):
    item = make_item("WO-X", current_stock=100)
    wo = _work_order(db_session, [(item, 20)])
    _use(db_session, wo, wo.items[0], 15)

    wo = _complete(db_session, wo, actual_hours=Decimal("2"))

    db_session.refresh(item)
    assert item.current_stock == 85
    assert wo.status == Status.COMPLETED
    assert wo.actual_hours == Decimal("2")
    assert wo.completed_date is not None

    rows = _consumption_rows(db_session, wo.id)
    assert len(rows) == 1
    row = rows[0]
    assert row.adjustment_type == inventory_models.StockAdjustmentTypeEnum.CONSUMED
    assert row.quantity_change == -15
    assert row.previous_stock == 100
    assert row.new_stock == 85
    assert row.reference_type == "work_order"
    assert row.reason == f"Consumed in work order {wo.wo_number}"
    assert row.created_by == "tech"


def test_unused_lines_are_skipped(db_session, make_item):
    used = make_item("WO-USED", current_stock=10)
    unused = make_item("WO-UNUSED", current_stock=10)
    wo = _work_order(db_session, [(used, 2), (unused, 2)])
    _use(db_session, wo, wo.items[0], 2)

    _complete(db_session, wo)

    rows = _consumption_rows(db_session, wo.id)
    assert [row.item_id for row in rows] == [used.id]
    db_session.refresh(unused)
    assert unused.current_stock == 10


def test_work_order_without_lines_completes(db_session):
    wo = _work_order(db_session)

    wo = _complete(db_session, wo, actual_hours=Decimal("0.5"))

    assert wo.status == Status.COMPLETED
    assert db_session.query(inventory_models.StockAdjustment).count() == 0


def test_one_short_line_rolls_back_every_line(db_session, make_item):
    plenty = make_item("WO-A", name="Plenty", current_stock=50)
    short = make_item("WO-B", name="Short", current_stock=3)
    wo = _work_order(db_session, [(plenty, 5), (short, 5)])
    _use(db_session, wo, wo.items[0], 5)
    _use(db_session, wo, wo.items[1], 5)

    with pytest.raises(InsufficientStockError) as excinfo:
        _complete(db_session, wo)
    assert str(excinfo.value).startswith("Insufficient stock for item Short")

    db_session.refresh(plenty)
    db_session.refresh(short)
    assert plenty.current_stock == 50
    assert short.current_stock == 3
    assert _consumption_rows(db_session, wo.id) == []

    wo = work_services.get_work_order(db_session, wo.id)
    assert wo.status == Status.CREATED
    assert wo.completed_date is None


def test_completing_twice_consumes_once(db_session, make_item):
    item = make_item("WO-TWICE", current_stock=10)
    wo = _work_order(db_session, [(item, 4)])
    _use(db_session, wo, wo.items[0], 4)
    _complete(db_session, wo)

    with pytest.raises(AlreadyCompletedError):
        _complete(db_session, wo)

    db_session.refresh(item)
    assert item.current_stock == 6
    assert len(_consumption_rows(db_session, wo.id)) == 1


def test_cancelled_work_order_cannot_complete(db_session, make_item):
    item = make_item("WO-CAN", current_stock=10)
    wo = _work_order(db_session, [(item, 1)])
    work_services.update_work_order(
        db_session,
        work_order_id=wo.id,
        payload=work_schemas.WorkOrderUpdate(status="CANCELLED"),
        actor_id="planner",
    )
    db_session.commit()

    with pytest.raises(InvalidStateError):
        _complete(db_session, wo)

    with pytest.raises(InvalidStateError):
        _use(db_session, wo, wo.items[0], 1)


def test_update_to_completed_runs_the_same_consumption(db_session, make_item):
    item = make_item("WO-UPD", current_stock=30)
    wo = _work_order(db_session, [(item, 10)])
    _use(db_session, wo, wo.items[0], 10)
    done_at = datetime(2024, 5, 1, 12, 0, 0)

    wo = work_services.update_work_order(
        db_session,
        work_order_id=wo.id,
        payload=work_schemas.WorkOrderUpdate(
            status="COMPLETED",
            actual_hours=Decimal("3.5"),
            completed_date=done_at,
            assigned_to="tech-2",
        ),
        actor_id="tech-2",
    )
    db_session.commit()

    db_session.refresh(item)
    assert item.current_stock == 20
    assert wo.status == Status.COMPLETED
    assert wo.actual_hours == Decimal("3.5")
    assert wo.completed_date == done_at
    assert wo.assigned_to == "tech-2"
    assert len(_consumption_rows(db_session, wo.id)) == 1

    with pytest.raises(AlreadyCompletedError):
        work_services.update_work_order(
            db_session,
            work_order_id=wo.id,
            payload=work_schemas.WorkOrderUpdate(status="COMPLETED"),
            actor_id="tech-2",
        )
    db_session.refresh(item)
    assert item.current_stock == 20


def test_start_then_complete_is_audited(db_session):
    wo = _work_order(db_session)
    work_services.update_work_order(
        db_session,
        work_order_id=wo.id,
        payload=work_schemas.WorkOrderUpdate(status="IN_PROGRESS"),
        actor_id="tech",
    )
    db_session.commit()
    _complete(db_session, wo)

    transitions = (
        db_session.query(audit_models.AuditEvent)
        .filter_by(entity_type="work_order", entity_id=str(wo.id), action="transition")
        .all()
    )
    assert sorted((event.before["status"], event.after["status"]) for event in transitions) == [
        ("CREATED", "IN_PROGRESS"),
        ("IN_PROGRESS", "COMPLETED"),
    ]


def test_record_item_usage_unknown_line(db_session, make_item):
    item = make_item("WO-LINE")
    wo = _work_order(db_session, [(item, 1)])

    with pytest.raises(NotFoundError):
        work_services.record_item_usage(
            db_session,
            work_order_id=wo.id,
            line_id=wo.items[0].id + 50,
            quantity_used=1,
            actor_id="tech",
        )

    with pytest.raises(NotFoundError):
        work_services.complete_work_order(db_session, work_order_id=wo.id + 50, actual_hours=Decimal("1"), actor_id="tech")


def test_list_work_orders_by_status(db_session):
    first = _work_order(db_session, title="First")
    second = _work_order(db_session, title="Second")
    _complete(db_session, second)

    assert [wo.id for wo in work_services.list_work_orders(db_session, status=Status.CREATED)] == [first.id]
    assert {wo.id for wo in work_services.list_work_orders(db_session)} == {first.id, second.id}
