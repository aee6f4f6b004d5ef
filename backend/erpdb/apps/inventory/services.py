"""
Item store and stock ledger.

`apply_stock_adjustment` is the only code path that writes
`Item.current_stock`. Everything else (manual adjustments, item edits,
work-order consumption, purchase-order receipts) funnels through it so that
each accepted change leaves exactly one StockAdjustment row behind.

Services flush but never commit; routers own the commit.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import List, Optional, Union

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from erpdb.apps.audit import services as audit_services
from erpdb.database import rollback_on_error
from erpdb.errors import (
    ConcurrentModificationError,
    ConflictError,
    ItemNotFoundError,
    NegativeStockError,
)

from . import models, schemas

logger = logging.getLogger(__name__)

ITEM_UPDATE_STOCK_REASON = "Manual stock adjustment via item update"

# Columns that may not be cleared through a partial update.
_REQUIRED_ITEM_FIELDS = {"name", "sku", "category", "unit_of_measure", "min_stock_level", "unit_cost", "is_active"}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _normalize_sku(sku: str) -> str:
    return (sku or "").strip()


def _get_item_by_sku(db: Session, sku: str) -> Optional[models.Item]:
    return db.query(models.Item).filter(models.Item.sku == _normalize_sku(sku)).first()


def _lock_item(db: Session, item_id: int) -> Optional[models.Item]:
    # FOR UPDATE holds the row until the caller's transaction ends; populate_existing
    # discards anything this session cached before the lock was taken.
    return (
        db.query(models.Item)
        .filter(models.Item.id == item_id)
        .with_for_update()
        .populate_existing()
        .first()
    )


def _item_snapshot(item: models.Item) -> dict:
    return {
        "sku": item.sku,
        "name": item.name,
        "category": item.category,
        "unit_of_measure": item.unit_of_measure,
        "current_stock": item.current_stock,
        "min_stock_level": item.min_stock_level,
        "unit_cost": str(item.unit_cost) if item.unit_cost is not None else None,
        "is_active": item.is_active,
    }


# ---------------------------------------------------------------------------
# Ledger engine
# ---------------------------------------------------------------------------


def apply_stock_adjustment(
    db: Session,
    *,
    item_id: int,
    adjustment_type: Union[models.StockAdjustmentTypeEnum, str],
    quantity_change: int,
    reason: str,
    created_by: str,
    reference_id: Optional[int] = None,
    reference_type: Optional[str] = None,
) -> models.StockAdjustment:
    """
    Apply a signed delta to one item's stock and write its ledger entry.

    The item row is read under FOR UPDATE, so concurrent adjustments to the
    same item serialize on the database. A delta that would take stock below
    zero is rejected before anything is written. Zero deltas are accepted and
    still produce a ledger entry.
    """
    item = _lock_item(db, item_id)
    if item is None:
        raise ItemNotFoundError(item_id)

    previous_stock = item.current_stock
    new_stock = previous_stock + quantity_change
    if new_stock < 0:
        logger.warning(
            "Rejected stock adjustment below zero",
            extra={"item_id": item.id, "sku": item.sku, "previous_stock": previous_stock, "quantity_change": quantity_change},
        )
        raise NegativeStockError(
            item_id=item.id,
            item_name=item.name,
            previous_stock=previous_stock,
            quantity_change=quantity_change,
        )

    now = _utcnow()
    adjustment = models.StockAdjustment(
        item_id=item.id,
        adjustment_type=models.StockAdjustmentTypeEnum(adjustment_type),
        quantity_change=quantity_change,
        previous_stock=previous_stock,
        new_stock=new_stock,
        reason=reason,
        reference_id=reference_id,
        reference_type=reference_type,
        created_by=created_by,
        created_at=now,
    )
    item.current_stock = new_stock
    item.updated_at = now
    db.add(adjustment)
    db.add(item)
    try:
        db.flush()
    except StaleDataError as exc:
        logger.warning("Concurrent stock change detected", extra={"item_id": item_id})
        raise ConcurrentModificationError(
            f"Item {item_id} was changed by another transaction; reload and resubmit."
        ) from exc

    logger.info(
        "Stock adjusted",
        extra={
            "item_id": item.id,
            "adjustment_type": adjustment.adjustment_type.value,
            "quantity_change": quantity_change,
            "new_stock": new_stock,
            "reference_type": reference_type,
            "reference_id": reference_id,
        },
    )
    return adjustment


def create_stock_adjustment(
    db: Session,
    *,
    payload: schemas.StockAdjustmentCreate,
    actor_id: str,
) -> models.StockAdjustment:
    with rollback_on_error(db):
        return apply_stock_adjustment(
            db,
            item_id=payload.item_id,
            adjustment_type=payload.adjustment_type,
            quantity_change=payload.quantity_change,
            reason=payload.reason,
            created_by=actor_id,
            reference_id=payload.reference_id,
            reference_type=payload.reference_type,
        )


# ---------------------------------------------------------------------------
# Item store
# ---------------------------------------------------------------------------


def create_item(
    db: Session,
    *,
    payload: schemas.ItemCreate,
    actor_id: Optional[str] = None,
) -> models.Item:
    # The opening quantity is taken as-is; there is no earlier state to record.
    sku = _normalize_sku(payload.sku)
    with rollback_on_error(db):
        if _get_item_by_sku(db, sku):
            raise ConflictError(f"Item with SKU {sku} already exists")

        item = models.Item(
            name=payload.name,
            description=payload.description,
            sku=sku,
            category=payload.category,
            unit_of_measure=payload.unit_of_measure,
            current_stock=payload.current_stock,
            min_stock_level=payload.min_stock_level,
            unit_cost=payload.unit_cost,
            is_active=True,
        )
        db.add(item)
        try:
            db.flush()
        except IntegrityError as exc:
            raise ConflictError(f"Item with SKU {sku} already exists") from exc

        audit_services.record_event(
            db,
            entity_type="Item",
            entity_id=str(item.id),
            action="create",
            actor_user_id=actor_id,
            after=_item_snapshot(item),
        )
    return item


def get_item(db: Session, item_id: int) -> models.Item:
    item = db.query(models.Item).filter(models.Item.id == item_id).first()
    if item is None:
        raise ItemNotFoundError(item_id)
    return item


def list_items(db: Session, *, include_inactive: bool = False) -> List[models.Item]:
    query = db.query(models.Item)
    if not include_inactive:
        query = query.filter(models.Item.is_active.is_(True))
    return query.order_by(models.Item.name.asc(), models.Item.id.asc()).all()


def update_item(
    db: Session,
    *,
    item_id: int,
    payload: schemas.ItemUpdate,
    actor_id: str,
) -> models.Item:
    """
    Apply a partial edit to an item.

    A `current_stock` that differs from the stored value is turned into an
    ADJUSTMENT ledger entry for the difference; it is never written directly.
    """
    data = payload.model_dump(exclude_unset=True)
    target_stock = data.pop("current_stock", None)
    data = {
        field: value
        for field, value in data.items()
        if value is not None or field not in _REQUIRED_ITEM_FIELDS
    }

    with rollback_on_error(db):
        item = _lock_item(db, item_id)
        if item is None:
            raise ItemNotFoundError(item_id)
        before = _item_snapshot(item)

        # Stock first: the ledger re-reads the row, which would drop unflushed edits.
        if target_stock is not None and target_stock != item.current_stock:
            apply_stock_adjustment(
                db,
                item_id=item.id,
                adjustment_type=models.StockAdjustmentTypeEnum.ADJUSTMENT,
                quantity_change=target_stock - item.current_stock,
                reason=ITEM_UPDATE_STOCK_REASON,
                created_by=actor_id,
            )

        if "sku" in data:
            data["sku"] = _normalize_sku(data["sku"])
            if data["sku"] != item.sku:
                clash = _get_item_by_sku(db, data["sku"])
                if clash is not None and clash.id != item.id:
                    raise ConflictError(f"Item with SKU {data['sku']} already exists")

        for field, value in data.items():
            setattr(item, field, value)
        item.updated_at = _utcnow()
        db.add(item)
        try:
            db.flush()
        except IntegrityError as exc:
            raise ConflictError(f"Item with SKU {item.sku} already exists") from exc
        except StaleDataError as exc:
            raise ConcurrentModificationError(
                f"Item {item_id} was changed by another transaction; reload and resubmit."
            ) from exc

        audit_services.record_event(
            db,
            entity_type="Item",
            entity_id=str(item.id),
            action="update",
            actor_user_id=actor_id,
            before=before,
            after=_item_snapshot(item),
        )
    return item


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


def list_low_stock_items(
    db: Session,
    *,
    threshold_multiplier: float = 1.0,
) -> List[models.Item]:
    """
    Active items whose stock is at or below `min_stock_level * threshold_multiplier`.

    An item with min_stock_level 0 only qualifies once it is out of stock.
    """
    return (
        db.query(models.Item)
        .filter(
            models.Item.is_active.is_(True),
            models.Item.current_stock <= models.Item.min_stock_level * float(threshold_multiplier),
        )
        .order_by(models.Item.current_stock.asc(), models.Item.id.asc())
        .all()
    )


def list_stock_adjustments(
    db: Session,
    *,
    item_id: Optional[int] = None,
    skip: int = 0,
    limit: Optional[int] = None,
) -> List[models.StockAdjustment]:
    query = db.query(models.StockAdjustment)
    if item_id is not None:
        query = query.filter(models.StockAdjustment.item_id == item_id)
    query = query.order_by(
        models.StockAdjustment.created_at.desc(),
        models.StockAdjustment.id.desc(),
    )
    if skip:
        query = query.offset(skip)
    if limit is not None:
        query = query.limit(limit)
    return query.all()
