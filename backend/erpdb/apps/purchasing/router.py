from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from erpdb.database import get_db, get_read_db
from erpdb.errors import ErpError, to_http_exception
from erpdb.security import get_current_actor
from erpdb.utils.identifiers import next_purchase_order_number

from . import models, schemas, services

router = APIRouter(
    prefix="/purchasing",
    tags=["purchasing"],
)


@router.post(
    "/suppliers",
    response_model=schemas.SupplierRead,
    status_code=status.HTTP_201_CREATED,
)
def create_supplier(
    payload: schemas.SupplierCreate,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_current_actor),
):
    supplier = services.create_supplier(db, payload=payload, actor_id=actor_id)
    db.commit()
    db.refresh(supplier)
    return supplier


@router.get("/suppliers", response_model=List[schemas.SupplierRead])
def list_suppliers(
    include_inactive: bool = False,
    db: Session = Depends(get_read_db),
):
    return services.list_suppliers(db, include_inactive=include_inactive)


@router.post(
    "/purchase-orders",
    response_model=schemas.PurchaseOrderRead,
    status_code=status.HTTP_201_CREATED,
)
def create_purchase_order(
    payload: schemas.PurchaseOrderCreate,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_current_actor),
):
    try:
        po = services.create_purchase_order(db, payload=payload, actor_id=actor_id)
    except ErpError as exc:
        raise to_http_exception(exc) from exc
    db.commit()
    db.refresh(po)
    return po


@router.get("/purchase-orders", response_model=List[schemas.PurchaseOrderRead])
def list_purchase_orders(
    status: Optional[models.PurchaseOrderStatusEnum] = None,
    db: Session = Depends(get_read_db),
):
    return services.list_purchase_orders(db, status=status)


@router.get("/purchase-orders/next-number", response_model=schemas.NextNumberRead)
def get_next_purchase_order_number(db: Session = Depends(get_read_db)):
    return {"number": next_purchase_order_number(db)}


@router.get("/purchase-orders/{purchase_order_id}", response_model=schemas.PurchaseOrderRead)
def get_purchase_order(
    purchase_order_id: int,
    db: Session = Depends(get_read_db),
):
    try:
        return services.get_purchase_order(db, purchase_order_id)
    except ErpError as exc:
        raise to_http_exception(exc) from exc


@router.post("/purchase-orders/{purchase_order_id}/status", response_model=schemas.PurchaseOrderRead)
def update_purchase_order_status(
    purchase_order_id: int,
    payload: schemas.PurchaseOrderStatusUpdate,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_current_actor),
):
    try:
        po = services.transition_purchase_order_status(
            db,
            purchase_order_id=purchase_order_id,
            new_status=payload.status,
            actor_id=actor_id,
        )
    except ErpError as exc:
        raise to_http_exception(exc) from exc
    db.commit()
    db.refresh(po)
    return po
