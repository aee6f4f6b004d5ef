# backend/erpdb/apps/work/router.py
"""
Work orders API.

- Work orders: creation, listing, partial update (including status).
- Lines: record how much of each planned item was used.
- Completion: consumes used quantities from stock in one transaction.

Writes require the X-Actor-Id header; reads are open.
"""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from erpdb.database import get_db, get_read_db
from erpdb.errors import ErpError, to_http_exception
from erpdb.security import get_current_actor
from erpdb.utils.identifiers import next_work_order_number

from . import schemas, services
from .models import WorkOrderStatusEnum

router = APIRouter(
    prefix="/work-orders",
    tags=["work_orders"],
)


@router.post(
    "/",
    response_model=schemas.WorkOrderRead,
    status_code=status.HTTP_201_CREATED,
)
def create_work_order(
    payload: schemas.WorkOrderCreate,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_current_actor),
):
    try:
        wo = services.create_work_order(db, payload=payload, actor_id=actor_id)
    except ErpError as exc:
        raise to_http_exception(exc) from exc
    db.commit()
    db.refresh(wo)
    return wo


@router.get("/", response_model=List[schemas.WorkOrderRead])
def list_work_orders(
    status: Optional[WorkOrderStatusEnum] = None,
    db: Session = Depends(get_read_db),
):
    return services.list_work_orders(db, status=status)


@router.get("/next-number", response_model=schemas.NextNumberRead)
def get_next_work_order_number(db: Session = Depends(get_read_db)):
    return {"number": next_work_order_number(db)}


@router.get("/{work_order_id}", response_model=schemas.WorkOrderRead)
def get_work_order(
    work_order_id: int,
    db: Session = Depends(get_read_db),
):
    try:
        return services.get_work_order(db, work_order_id)
    except ErpError as exc:
        raise to_http_exception(exc) from exc


@router.patch("/{work_order_id}", response_model=schemas.WorkOrderRead)
def update_work_order(
    work_order_id: int,
    payload: schemas.WorkOrderUpdate,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_current_actor),
):
    try:
        wo = services.update_work_order(db, work_order_id=work_order_id, payload=payload, actor_id=actor_id)
    except ErpError as exc:
        raise to_http_exception(exc) from exc
    db.commit()
    db.refresh(wo)
    return wo


@router.patch("/{work_order_id}/items/{line_id}", response_model=schemas.WorkOrderItemRead)
def record_item_usage(
    work_order_id: int,
    line_id: int,
    payload: schemas.WorkOrderItemUsageUpdate,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_current_actor),
):
    try:
        line = services.record_item_usage(
            db,
            work_order_id=work_order_id,
            line_id=line_id,
            quantity_used=payload.quantity_used,
            actor_id=actor_id,
        )
    except ErpError as exc:
        raise to_http_exception(exc) from exc
    db.commit()
    db.refresh(line)
    return line


@router.post("/{work_order_id}/complete", response_model=schemas.WorkOrderRead)
def complete_work_order(
    work_order_id: int,
    payload: schemas.WorkOrderComplete,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_current_actor),
):
    try:
        wo = services.complete_work_order(
            db,
            work_order_id=work_order_id,
            actual_hours=payload.actual_hours,
            actor_id=actor_id,
        )
    except ErpError as exc:
        raise to_http_exception(exc) from exc
    db.commit()
    db.refresh(wo)
    return wo
