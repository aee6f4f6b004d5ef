# backend/erpdb/apps/work/models.py

"""
Work module ORM models.

- WorkOrder: a unit of internal work (assembly, repair, job) that consumes
  stocked items when it is completed.
- WorkOrderItem: an item planned for a work order, with the quantity
  actually used. Stock is only drawn down at completion.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    Enum as SQLEnum,
)
from sqlalchemy.orm import relationship

from ...database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Enumerations – kept as strings to match API and DB values
# ---------------------------------------------------------------------------


class WorkOrderStatusEnum(str, Enum):
    """Lifecycle state of the work order."""

    CREATED = "CREATED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class WorkOrderPriorityEnum(str, Enum):
    """Planning priority indicator."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"


TERMINAL_STATUSES = (WorkOrderStatusEnum.COMPLETED, WorkOrderStatusEnum.CANCELLED)


# ---------------------------------------------------------------------------
# WorkOrder
# ---------------------------------------------------------------------------


class WorkOrder(Base):
    __tablename__ = "work_orders"
    __table_args__ = (
        CheckConstraint("estimated_hours IS NULL OR estimated_hours >= 0", name="ck_work_orders_estimated_hours"),
        CheckConstraint("actual_hours IS NULL OR actual_hours >= 0", name="ck_work_orders_actual_hours"),
    )

    id = Column(Integer, primary_key=True, index=True)

    # Opaque number handed out by the numbering service (e.g. WO-2024-000001)
    wo_number = Column(String(32), nullable=False, unique=True, index=True)

    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)

    status = Column(
        SQLEnum(WorkOrderStatusEnum, name="work_order_status", native_enum=False),
        nullable=False,
        default=WorkOrderStatusEnum.CREATED,
        index=True,
    )
    priority = Column(
        SQLEnum(WorkOrderPriorityEnum, name="work_order_priority", native_enum=False),
        nullable=False,
        default=WorkOrderPriorityEnum.MEDIUM,
    )

    assigned_to = Column(String(255), nullable=True, index=True)
    estimated_hours = Column(Numeric(8, 2), nullable=True)
    actual_hours = Column(Numeric(8, 2), nullable=True)

    due_date = Column(Date, nullable=True)
    completed_date = Column(DateTime(timezone=True), nullable=True)

    created_by = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    items = relationship(
        "WorkOrderItem",
        back_populates="work_order",
        cascade="all, delete-orphan",
        order_by="WorkOrderItem.id",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<WorkOrder id={self.id} wo_number={self.wo_number} status={self.status}>"


# ---------------------------------------------------------------------------
# WorkOrderItem – planned and used quantities
# ---------------------------------------------------------------------------


class WorkOrderItem(Base):
    __tablename__ = "work_order_items"
    __table_args__ = (
        CheckConstraint("quantity_planned > 0", name="ck_work_order_items_planned_positive"),
        CheckConstraint("quantity_used >= 0", name="ck_work_order_items_used_non_negative"),
    )

    id = Column(Integer, primary_key=True, index=True)
    work_order_id = Column(
        Integer,
        ForeignKey("work_orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    item_id = Column(Integer, ForeignKey("items.id", ondelete="RESTRICT"), nullable=False, index=True)
    quantity_planned = Column(Integer, nullable=False)
    quantity_used = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    work_order = relationship("WorkOrder", back_populates="items")
    item = relationship("Item", lazy="joined")
