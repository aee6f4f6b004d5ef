from __future__ import annotations

from decimal import Decimal

import pytest
from fastapi import HTTPException

from erpdb.apps.purchasing import schemas as purchasing_schemas
from erpdb.apps.purchasing.router import (
    create_purchase_order,
    create_supplier,
    get_next_purchase_order_number,
    get_purchase_order,
    router,
    update_purchase_order_status,
)


def test_purchasing_routes_are_registered():
    routes = {(route.path, method) for route in router.routes for method in route.methods}
    assert ("/purchasing/suppliers", "POST") in routes
    assert ("/purchasing/suppliers", "GET") in routes
    assert ("/purchasing/purchase-orders", "POST") in routes
    assert ("/purchasing/purchase-orders", "GET") in routes
    assert ("/purchasing/purchase-orders/next-number", "GET") in routes
    assert ("/purchasing/purchase-orders/{purchase_order_id}", "GET") in routes
    assert ("/purchasing/purchase-orders/{purchase_order_id}/status", "POST") in routes


def test_next_number_route_precedes_lookup():
    paths = [route.path for route in router.routes]
    assert paths.index("/purchasing/purchase-orders/next-number") < paths.index(
        "/purchasing/purchase-orders/{purchase_order_id}"
    )


def test_status_errors_map_to_http(db_session, make_item):
    supplier = create_supplier(
        payload=purchasing_schemas.SupplierCreate(name="Route Supply"),
        db=db_session,
        actor_id="buyer",
    )
    item = make_item("RT-PO")

    with pytest.raises(HTTPException) as excinfo:
        create_purchase_order(
            payload=purchasing_schemas.PurchaseOrderCreate(
                supplier_id=supplier.id,
                items=[purchasing_schemas.PurchaseOrderItemCreate(item_id=item.id + 100, quantity=1, unit_price=1)],
            ),
            db=db_session,
            actor_id="buyer",
        )
    assert excinfo.value.status_code == 404

    po = create_purchase_order(
        payload=purchasing_schemas.PurchaseOrderCreate(
            supplier_id=supplier.id,
            items=[purchasing_schemas.PurchaseOrderItemCreate(item_id=item.id, quantity=2, unit_price=Decimal("3"))],
        ),
        db=db_session,
        actor_id="buyer",
    )
    assert get_purchase_order(purchase_order_id=po.id, db=db_session).id == po.id

    update_purchase_order_status(
        purchase_order_id=po.id,
        payload=purchasing_schemas.PurchaseOrderStatusUpdate(status="CANCELLED"),
        db=db_session,
        actor_id="buyer",
    )
    with pytest.raises(HTTPException) as excinfo:
        update_purchase_order_status(
            purchase_order_id=po.id,
            payload=purchasing_schemas.PurchaseOrderStatusUpdate(status="PENDING"),
            db=db_session,
            actor_id="buyer",
        )
    assert excinfo.value.status_code == 409

    with pytest.raises(HTTPException) as excinfo:
        get_purchase_order(purchase_order_id=po.id + 1, db=db_session)
    assert excinfo.value.status_code == 404


def test_next_number_route(db_session):
    number = get_next_purchase_order_number(db=db_session)["number"]
    assert number.startswith("PO-")
    assert number.endswith("-000001")
