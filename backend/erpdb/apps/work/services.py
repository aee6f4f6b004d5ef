"""
Work order lifecycle and the completion workflow.

Completion draws every used line quantity out of stock through the inventory
ledger. It is reachable from two entry points (the dedicated complete call
and a generic update that sets status COMPLETED); both run
`_complete_locked_work_order`, so consumption happens at most once per order.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional, Union

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from erpdb.apps.audit import services as audit_services
from erpdb.apps.inventory import models as inventory_models
from erpdb.apps.inventory import services as inventory_services
from erpdb.apps.workflow import WORK_ORDER, apply_transition
from erpdb.database import rollback_on_error
from erpdb.errors import (
    AlreadyCompletedError,
    ConflictError,
    InsufficientStockError,
    InvalidStateError,
    ItemNotFoundError,
    NegativeStockError,
    NotFoundError,
)
from erpdb.utils.identifiers import next_work_order_number

from . import models, schemas

logger = logging.getLogger(__name__)

Status = models.WorkOrderStatusEnum

# Columns a partial update may not clear.
_REQUIRED_WORK_ORDER_FIELDS = {"title", "priority"}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def consumption_reason(wo_number: str) -> str:
    return f"Consumed in work order {wo_number}"


def _work_order_snapshot(wo: models.WorkOrder) -> dict:
    return {
        "wo_number": wo.wo_number,
        "title": wo.title,
        "status": wo.status.value if wo.status else None,
        "priority": wo.priority.value if wo.priority else None,
        "assigned_to": wo.assigned_to,
        "actual_hours": str(wo.actual_hours) if wo.actual_hours is not None else None,
        "completed_date": wo.completed_date.isoformat() if wo.completed_date else None,
    }


def _lock_work_order(db: Session, work_order_id: int) -> Optional[models.WorkOrder]:
    return (
        db.query(models.WorkOrder)
        .filter(models.WorkOrder.id == work_order_id)
        .with_for_update(of=models.WorkOrder)
        .populate_existing()
        .first()
    )


def _require_locked_work_order(db: Session, work_order_id: int) -> models.WorkOrder:
    wo = _lock_work_order(db, work_order_id)
    if wo is None:
        raise NotFoundError(f"Work order with id {work_order_id} not found")
    return wo


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------


def create_work_order(
    db: Session,
    *,
    payload: schemas.WorkOrderCreate,
    actor_id: str,
) -> models.WorkOrder:
    with rollback_on_error(db):
        for line in payload.items:
            item = db.get(inventory_models.Item, line.item_id)
            if item is None or not item.is_active:
                raise ItemNotFoundError(line.item_id)

        wo = models.WorkOrder(
            wo_number=next_work_order_number(db),
            title=payload.title,
            description=payload.description,
            status=Status.CREATED,
            priority=payload.priority,
            assigned_to=payload.assigned_to,
            estimated_hours=payload.estimated_hours,
            due_date=payload.due_date,
            created_by=actor_id,
        )
        for line in payload.items:
            wo.items.append(
                models.WorkOrderItem(
                    item_id=line.item_id,
                    quantity_planned=line.quantity_planned,
                    quantity_used=0,
                )
            )
        db.add(wo)
        try:
            db.flush()
        except IntegrityError as exc:
            raise ConflictError(f"Work order number {wo.wo_number} already exists") from exc

        audit_services.record_event(
            db,
            entity_type=WORK_ORDER,
            entity_id=str(wo.id),
            action="create",
            actor_user_id=actor_id,
            after=dict(_work_order_snapshot(wo), line_count=len(wo.items)),
        )
    return wo


def get_work_order(db: Session, work_order_id: int) -> models.WorkOrder:
    wo = db.query(models.WorkOrder).filter(models.WorkOrder.id == work_order_id).first()
    if wo is None:
        raise NotFoundError(f"Work order with id {work_order_id} not found")
    return wo


def list_work_orders(
    db: Session,
    *,
    status: Optional[Union[Status, str]] = None,
) -> List[models.WorkOrder]:
    query = db.query(models.WorkOrder)
    if status is not None:
        query = query.filter(models.WorkOrder.status == Status(status))
    return query.order_by(models.WorkOrder.created_at.desc(), models.WorkOrder.id.desc()).all()


# ---------------------------------------------------------------------------
# Completion
# ---------------------------------------------------------------------------


def _complete_locked_work_order(
    db: Session,
    wo: models.WorkOrder,
    *,
    actor_id: str,
    actual_hours: Optional[Decimal] = None,
    completed_date: Optional[datetime] = None,
) -> models.WorkOrder:
    if wo.status == Status.COMPLETED:
        raise AlreadyCompletedError(f"Work order {wo.wo_number} is already completed")
    if wo.status == Status.CANCELLED:
        raise InvalidStateError(f"Cannot complete cancelled work order {wo.wo_number}")

    from_status = wo.status
    apply_transition(
        db,
        actor_user_id=actor_id,
        entity_type=WORK_ORDER,
        entity_id=str(wo.id),
        from_state=from_status,
        to_state=Status.COMPLETED,
        before_obj=_work_order_snapshot(wo),
        after_obj={"actual_hours": str(actual_hours) if actual_hours is not None else None},
    )

    consumed = 0
    for line in wo.items:
        if not line.quantity_used:
            continue
        try:
            inventory_services.apply_stock_adjustment(
                db,
                item_id=line.item_id,
                adjustment_type=inventory_models.StockAdjustmentTypeEnum.CONSUMED,
                quantity_change=-line.quantity_used,
                reason=consumption_reason(wo.wo_number),
                created_by=actor_id,
                reference_id=wo.id,
                reference_type=inventory_models.REFERENCE_WORK_ORDER,
            )
        except NegativeStockError as exc:
            logger.warning(
                "Work order completion blocked by insufficient stock",
                extra={"work_order_id": wo.id, "item_id": line.item_id, "quantity_used": line.quantity_used},
            )
            raise InsufficientStockError(
                item_id=exc.item_id,
                item_name=exc.item_name,
                available=exc.previous_stock,
                required=line.quantity_used,
            ) from exc
        consumed += 1

    now = _utcnow()
    wo.status = Status.COMPLETED
    if actual_hours is not None:
        wo.actual_hours = actual_hours
    wo.completed_date = completed_date or now
    wo.updated_at = now
    db.flush()

    logger.info(
        "Work order completed",
        extra={"work_order_id": wo.id, "wo_number": wo.wo_number, "consumed_lines": consumed},
    )
    return wo


def complete_work_order(
    db: Session,
    *,
    work_order_id: int,
    actual_hours: Decimal,
    actor_id: str,
) -> models.WorkOrder:
    """
    Complete a work order and consume every used line quantity from stock.

    All consumption entries and the status change commit together; if one
    line lacks stock, nothing is consumed and the order keeps its status.
    """
    with rollback_on_error(db):
        wo = _require_locked_work_order(db, work_order_id)
        return _complete_locked_work_order(db, wo, actor_id=actor_id, actual_hours=actual_hours)


# ---------------------------------------------------------------------------
# Updates
# ---------------------------------------------------------------------------


def update_work_order(
    db: Session,
    *,
    work_order_id: int,
    payload: schemas.WorkOrderUpdate,
    actor_id: str,
) -> models.WorkOrder:
    data = payload.model_dump(exclude_unset=True)
    new_status = data.pop("status", None)
    actual_hours = data.pop("actual_hours", None)
    completed_date = data.pop("completed_date", None)
    data = {
        field: value
        for field, value in data.items()
        if value is not None or field not in _REQUIRED_WORK_ORDER_FIELDS
    }

    with rollback_on_error(db):
        wo = _require_locked_work_order(db, work_order_id)
        before = _work_order_snapshot(wo)

        for field, value in data.items():
            setattr(wo, field, value)

        if new_status is not None:
            new_status = Status(new_status)

        if new_status == Status.COMPLETED:
            _complete_locked_work_order(
                db,
                wo,
                actor_id=actor_id,
                actual_hours=actual_hours,
                completed_date=completed_date,
            )
        else:
            if new_status is not None and new_status != wo.status:
                apply_transition(
                    db,
                    actor_user_id=actor_id,
                    entity_type=WORK_ORDER,
                    entity_id=str(wo.id),
                    from_state=wo.status,
                    to_state=new_status,
                    before_obj=before,
                )
                wo.status = new_status
            if actual_hours is not None:
                wo.actual_hours = actual_hours
            if completed_date is not None:
                wo.completed_date = completed_date
            wo.updated_at = _utcnow()
            db.flush()

        audit_services.record_event(
            db,
            entity_type=WORK_ORDER,
            entity_id=str(wo.id),
            action="update",
            actor_user_id=actor_id,
            before=before,
            after=_work_order_snapshot(wo),
        )
    return wo


def record_item_usage(
    db: Session,
    *,
    work_order_id: int,
    line_id: int,
    quantity_used: int,
    actor_id: str,
) -> models.WorkOrderItem:
    """Set how much of a planned item was used. Stock is untouched until completion."""
    with rollback_on_error(db):
        wo = _require_locked_work_order(db, work_order_id)
        if wo.status in models.TERMINAL_STATUSES:
            raise InvalidStateError(
                f"Cannot record item usage on work order {wo.wo_number} in status {wo.status.value}"
            )

        line = next((line for line in wo.items if line.id == line_id), None)
        if line is None:
            raise NotFoundError(f"Work order line with id {line_id} not found on work order {work_order_id}")

        previous = line.quantity_used
        line.quantity_used = quantity_used
        wo.updated_at = _utcnow()
        db.flush()

        audit_services.record_event(
            db,
            entity_type=WORK_ORDER,
            entity_id=str(wo.id),
            action="item_usage",
            actor_user_id=actor_id,
            before={"line_id": line.id, "item_id": line.item_id, "quantity_used": previous},
            after={"line_id": line.id, "item_id": line.item_id, "quantity_used": quantity_used},
        )
    return line
