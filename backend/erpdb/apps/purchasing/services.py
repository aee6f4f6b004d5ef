"""
Suppliers, purchase orders and the receiving workflow.

Moving an order to RECEIVED books every outstanding line quantity into stock
through the inventory ledger. Lines that were already received are skipped,
so receiving the same order twice never double-counts.
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
from erpdb.apps.workflow import PURCHASE_ORDER, apply_transition
from erpdb.database import rollback_on_error
from erpdb.errors import ConflictError, InvalidOperationError, ItemNotFoundError, NotFoundError
from erpdb.utils.identifiers import next_purchase_order_number

from . import models, schemas

logger = logging.getLogger(__name__)

Status = models.PurchaseOrderStatusEnum


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def receipt_reason(po_number: str) -> str:
    return f"Items received from Purchase Order {po_number}"


def _purchase_order_snapshot(po: models.PurchaseOrder) -> dict:
    return {
        "po_number": po.po_number,
        "supplier_id": po.supplier_id,
        "status": po.status.value if po.status else None,
        "total_amount": str(po.total_amount) if po.total_amount is not None else None,
        "approved_by": po.approved_by,
    }


# ---------------------------------------------------------------------------
# Suppliers
# ---------------------------------------------------------------------------


def create_supplier(
    db: Session,
    *,
    payload: schemas.SupplierCreate,
    actor_id: Optional[str] = None,
) -> models.Supplier:
    supplier = models.Supplier(**payload.model_dump(), is_active=True)
    with rollback_on_error(db):
        db.add(supplier)
        db.flush()
        audit_services.record_event(
            db,
            entity_type="Supplier",
            entity_id=str(supplier.id),
            action="create",
            actor_user_id=actor_id,
            after={"name": supplier.name, "email": supplier.email},
        )
    return supplier


def list_suppliers(db: Session, *, include_inactive: bool = False) -> List[models.Supplier]:
    query = db.query(models.Supplier)
    if not include_inactive:
        query = query.filter(models.Supplier.is_active.is_(True))
    return query.order_by(models.Supplier.name.asc(), models.Supplier.id.asc()).all()


# ---------------------------------------------------------------------------
# Purchase orders
# ---------------------------------------------------------------------------


def create_purchase_order(
    db: Session,
    *,
    payload: schemas.PurchaseOrderCreate,
    actor_id: str,
) -> models.PurchaseOrder:
    if not payload.items:
        raise InvalidOperationError("A purchase order needs at least one line item")

    with rollback_on_error(db):
        supplier = (
            db.query(models.Supplier)
            .filter(models.Supplier.id == payload.supplier_id, models.Supplier.is_active.is_(True))
            .first()
        )
        if supplier is None:
            raise NotFoundError(f"Supplier with id {payload.supplier_id} not found")

        item_ids = sorted({line.item_id for line in payload.items})
        active_ids = {
            item_id
            for (item_id,) in db.query(inventory_models.Item.id)
            .filter(inventory_models.Item.id.in_(item_ids), inventory_models.Item.is_active.is_(True))
            .all()
        }
        for line in payload.items:
            if line.item_id not in active_ids:
                raise ItemNotFoundError(line.item_id)

        po = models.PurchaseOrder(
            po_number=next_purchase_order_number(db),
            supplier_id=supplier.id,
            status=Status.DRAFT,
            order_date=payload.order_date,
            expected_delivery_date=payload.expected_delivery_date,
            notes=payload.notes,
            created_by=actor_id,
        )
        total = Decimal("0")
        for line in payload.items:
            line_total = Decimal(line.quantity) * line.unit_price
            total += line_total
            po.items.append(
                models.PurchaseOrderItem(
                    item_id=line.item_id,
                    quantity=line.quantity,
                    unit_price=line.unit_price,
                    total_price=line_total,
                    received_quantity=0,
                )
            )
        po.total_amount = total

        db.add(po)
        try:
            db.flush()
        except IntegrityError as exc:
            raise ConflictError(f"Purchase order number {po.po_number} already exists") from exc

        audit_services.record_event(
            db,
            entity_type=PURCHASE_ORDER,
            entity_id=str(po.id),
            action="create",
            actor_user_id=actor_id,
            after=dict(_purchase_order_snapshot(po), line_count=len(po.items)),
        )

    logger.info(
        "Purchase order created",
        extra={"purchase_order_id": po.id, "po_number": po.po_number, "line_count": len(po.items)},
    )
    return po


def get_purchase_order(db: Session, purchase_order_id: int) -> models.PurchaseOrder:
    po = db.query(models.PurchaseOrder).filter(models.PurchaseOrder.id == purchase_order_id).first()
    if po is None:
        raise NotFoundError(f"Purchase order with id {purchase_order_id} not found")
    return po


def list_purchase_orders(
    db: Session,
    *,
    status: Optional[Union[Status, str]] = None,
) -> List[models.PurchaseOrder]:
    query = db.query(models.PurchaseOrder)
    if status is not None:
        query = query.filter(models.PurchaseOrder.status == Status(status))
    return query.order_by(models.PurchaseOrder.created_at.desc(), models.PurchaseOrder.id.desc()).all()


def _lock_purchase_order(db: Session, purchase_order_id: int) -> Optional[models.PurchaseOrder]:
    return (
        db.query(models.PurchaseOrder)
        .filter(models.PurchaseOrder.id == purchase_order_id)
        .with_for_update(of=models.PurchaseOrder)
        .populate_existing()
        .first()
    )


def _receive_outstanding_lines(db: Session, po: models.PurchaseOrder, actor_id: str) -> int:
    received_lines = 0
    for line in po.items:
        remaining = line.remaining_quantity
        if remaining <= 0:
            continue
        inventory_services.apply_stock_adjustment(
            db,
            item_id=line.item_id,
            adjustment_type=inventory_models.StockAdjustmentTypeEnum.RECEIVED,
            quantity_change=remaining,
            reason=receipt_reason(po.po_number),
            created_by=actor_id,
            reference_id=po.id,
            reference_type=inventory_models.REFERENCE_PURCHASE_ORDER,
        )
        line.received_quantity = line.quantity
        received_lines += 1
    return received_lines


def transition_purchase_order_status(
    db: Session,
    *,
    purchase_order_id: int,
    new_status: Union[Status, str],
    actor_id: str,
) -> models.PurchaseOrder:
    """
    Move a purchase order to `new_status`.

    APPROVED records the approver. RECEIVED books the outstanding quantity of
    every line into stock; all ledger entries and the status change land in
    the same transaction or not at all. Asking for the status the order is
    already in changes nothing.
    """
    new_status = Status(new_status)

    with rollback_on_error(db):
        po = _lock_purchase_order(db, purchase_order_id)
        if po is None:
            raise NotFoundError(f"Purchase order with id {purchase_order_id} not found")

        current = po.status
        if current == new_status:
            if new_status == Status.RECEIVED:
                # Only lines that somehow still have a remainder are booked.
                if _receive_outstanding_lines(db, po, actor_id):
                    po.updated_at = _utcnow()
                    db.flush()
            return po

        before = dict(_purchase_order_snapshot(po), line_count=len(po.items))
        after = dict(before, status=new_status.value)
        if new_status == Status.APPROVED:
            after["approved_by"] = actor_id

        apply_transition(
            db,
            actor_user_id=actor_id,
            entity_type=PURCHASE_ORDER,
            entity_id=str(po.id),
            from_state=current,
            to_state=new_status,
            before_obj=before,
            after_obj=after,
        )

        now = _utcnow()
        received_lines = 0
        if new_status == Status.RECEIVED:
            received_lines = _receive_outstanding_lines(db, po, actor_id)
        elif new_status == Status.APPROVED:
            po.approved_by = actor_id
            po.approved_at = now

        po.status = new_status
        po.updated_at = now
        db.flush()

    logger.info(
        "Purchase order status changed",
        extra={
            "purchase_order_id": po.id,
            "from_status": current.value,
            "to_status": new_status.value,
            "received_lines": received_lines,
        },
    )
    return po
