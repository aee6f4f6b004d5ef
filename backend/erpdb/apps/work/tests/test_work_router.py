from __future__ import annotations

from decimal import Decimal

import pytest
from fastapi import HTTPException
from pydantic import ValidationError

from erpdb.apps.work import schemas as work_schemas
from erpdb.apps.work.router import (
    complete_work_order,
    create_work_order,
    get_next_work_order_number,
    record_item_usage,
    router,
    update_work_order,
)


def test_work_order_routes_are_registered():
    routes = {(route.path, method) for route in router.routes for method in route.methods}
    assert ("/work-orders/", "POST") in routes
    assert ("/work-orders/", "GET") in routes
    assert ("/work-orders/next-number", "GET") in routes
    assert ("/work-orders/{work_order_id}", "GET") in routes
    assert ("/work-orders/{work_order_id}", "PATCH") in routes
    assert ("/work-orders/{work_order_id}/items/{line_id}", "PATCH") in routes
    assert ("/work-orders/{work_order_id}/complete", "POST") in routes


def test_completion_errors_map_to_http(db_session, make_item):
    item = make_item("RT-WO", name="Gasket", current_stock=1)
    wo = create_work_order(
        payload=work_schemas.WorkOrderCreate(
            title="Replace gasket",
            items=[work_schemas.WorkOrderItemCreate(item_id=item.id, quantity_planned=2)],
        ),
        db=db_session,
        actor_id="planner",
    )
    record_item_usage(
        work_order_id=wo.id,
        line_id=wo.items[0].id,
        payload=work_schemas.WorkOrderItemUsageUpdate(quantity_used=2),
        db=db_session,
        actor_id="tech",
    )

    with pytest.raises(HTTPException) as excinfo:
        complete_work_order(
            work_order_id=wo.id,
            payload=work_schemas.WorkOrderComplete(actual_hours=1),
            db=db_session,
            actor_id="tech",
        )
    assert excinfo.value.status_code == 422
    assert "Insufficient stock for item Gasket" in excinfo.value.detail

    record_item_usage(
        work_order_id=wo.id,
        line_id=wo.items[0].id,
        payload=work_schemas.WorkOrderItemUsageUpdate(quantity_used=1),
        db=db_session,
        actor_id="tech",
    )
    done = complete_work_order(
        work_order_id=wo.id,
        payload=work_schemas.WorkOrderComplete(actual_hours=1),
        db=db_session,
        actor_id="tech",
    )
    assert done.status.value == "COMPLETED"

    with pytest.raises(HTTPException) as excinfo:
        update_work_order(
            work_order_id=wo.id,
            payload=work_schemas.WorkOrderUpdate(status="COMPLETED"),
            db=db_session,
            actor_id="tech",
        )
    assert excinfo.value.status_code == 409

    with pytest.raises(HTTPException) as excinfo:
        complete_work_order(
            work_order_id=wo.id + 1,
            payload=work_schemas.WorkOrderComplete(actual_hours=1),
            db=db_session,
            actor_id="tech",
        )
    assert excinfo.value.status_code == 404


def test_next_number_route(db_session):
    assert get_next_work_order_number(db=db_session)["number"].startswith("WO-")


def test_complete_requires_actual_hours():
    with pytest.raises(ValidationError):
        work_schemas.WorkOrderComplete()
    with pytest.raises(ValidationError):
        work_schemas.WorkOrderComplete(actual_hours=-1)
    assert work_schemas.WorkOrderComplete(actual_hours="2.5").actual_hours == Decimal("2.5")
