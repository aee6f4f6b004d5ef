from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from erpdb.database import get_db, get_read_db
from erpdb.errors import ErpError, to_http_exception
from erpdb.security import get_current_actor

from . import schemas, services

router = APIRouter(
    prefix="/inventory",
    tags=["inventory"],
)


@router.post(
    "/items",
    response_model=schemas.ItemRead,
    status_code=status.HTTP_201_CREATED,
)
def create_item(
    payload: schemas.ItemCreate,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_current_actor),
):
    try:
        item = services.create_item(db, payload=payload, actor_id=actor_id)
    except ErpError as exc:
        raise to_http_exception(exc) from exc
    db.commit()
    db.refresh(item)
    return item


@router.get("/items", response_model=List[schemas.ItemRead])
def list_items(
    include_inactive: bool = False,
    db: Session = Depends(get_read_db),
):
    return services.list_items(db, include_inactive=include_inactive)


# Declared before /items/{item_id} so "low-stock" is not parsed as an id.
@router.get("/items/low-stock", response_model=List[schemas.ItemRead])
def list_low_stock_items(
    threshold_multiplier: float = Query(1.0, gt=0),
    db: Session = Depends(get_read_db),
):
    return services.list_low_stock_items(db, threshold_multiplier=threshold_multiplier)


@router.get("/items/{item_id}", response_model=schemas.ItemRead)
def get_item(
    item_id: int,
    db: Session = Depends(get_read_db),
):
    try:
        return services.get_item(db, item_id)
    except ErpError as exc:
        raise to_http_exception(exc) from exc


@router.patch("/items/{item_id}", response_model=schemas.ItemRead)
def update_item(
    item_id: int,
    payload: schemas.ItemUpdate,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_current_actor),
):
    try:
        item = services.update_item(db, item_id=item_id, payload=payload, actor_id=actor_id)
    except ErpError as exc:
        raise to_http_exception(exc) from exc
    db.commit()
    db.refresh(item)
    return item


@router.post(
    "/stock-adjustments",
    response_model=schemas.StockAdjustmentRead,
    status_code=status.HTTP_201_CREATED,
)
def create_stock_adjustment(
    payload: schemas.StockAdjustmentCreate,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_current_actor),
):
    try:
        adjustment = services.create_stock_adjustment(db, payload=payload, actor_id=actor_id)
    except ErpError as exc:
        raise to_http_exception(exc) from exc
    db.commit()
    db.refresh(adjustment)
    return adjustment


@router.get("/stock-adjustments", response_model=List[schemas.StockAdjustmentRead])
def list_stock_adjustments(
    item_id: Optional[int] = None,
    skip: int = Query(0, ge=0),
    limit: Optional[int] = Query(None, ge=1, le=1000),
    db: Session = Depends(get_read_db),
):
    return services.list_stock_adjustments(db, item_id=item_id, skip=skip, limit=limit)
