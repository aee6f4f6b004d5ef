from __future__ import annotations

import enum
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    event,
)
from sqlalchemy.orm import object_session, relationship

from erpdb.database import Base
from erpdb.errors import InvalidOperationError


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StockAdjustmentTypeEnum(str, enum.Enum):
    ADJUSTMENT = "ADJUSTMENT"
    RECEIVED = "RECEIVED"
    CONSUMED = "CONSUMED"
    DAMAGED = "DAMAGED"
    LOST = "LOST"


# Tags stored in StockAdjustment.reference_type. The pointer is never a
# foreign key: manual adjustments carry no reference at all.
REFERENCE_PURCHASE_ORDER = "purchase_order"
REFERENCE_WORK_ORDER = "work_order"


class Item(Base):
    __tablename__ = "items"
    __table_args__ = (
        CheckConstraint("current_stock >= 0", name="ck_items_current_stock_non_negative"),
        CheckConstraint("min_stock_level >= 0", name="ck_items_min_stock_level_non_negative"),
        CheckConstraint("unit_cost >= 0", name="ck_items_unit_cost_non_negative"),
        Index("ix_items_active_category", "is_active", "category"),
    )

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    sku = Column(String(100), nullable=False, unique=True, index=True)
    category = Column(String(100), nullable=False)
    unit_of_measure = Column(String(50), nullable=False)
    current_stock = Column(Integer, nullable=False, default=0)
    min_stock_level = Column(Integer, nullable=False, default=0)
    unit_cost = Column(Numeric(10, 2), nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    # Two writers that read the same version cannot both commit a stock change.
    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return f"<Item id={self.id} sku={self.sku} stock={self.current_stock}>"


class StockAdjustment(Base):
    """
    Permanent ledger entry for one accepted change to Item.current_stock.

    Rows are written once by the ledger engine and never updated or deleted.
    """

    __tablename__ = "stock_adjustments"
    __table_args__ = (
        CheckConstraint("new_stock = previous_stock + quantity_change", name="ck_stock_adjustments_balance"),
        CheckConstraint("new_stock >= 0", name="ck_stock_adjustments_new_stock_non_negative"),
        Index("ix_stock_adjustments_item_created", "item_id", "created_at"),
        Index("ix_stock_adjustments_reference", "reference_type", "reference_id"),
    )

    id = Column(Integer, primary_key=True, index=True)
    item_id = Column(Integer, ForeignKey("items.id", ondelete="RESTRICT"), nullable=False, index=True)
    adjustment_type = Column(
        SAEnum(StockAdjustmentTypeEnum, name="stock_adjustment_type_enum", native_enum=False),
        nullable=False,
        index=True,
    )
    quantity_change = Column(Integer, nullable=False)
    previous_stock = Column(Integer, nullable=False)
    new_stock = Column(Integer, nullable=False)
    reason = Column(Text, nullable=False)
    reference_id = Column(Integer, nullable=True)
    reference_type = Column(String(50), nullable=True)
    created_by = Column(String(255), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, index=True)

    item = relationship("Item", lazy="joined")

    def __repr__(self) -> str:
        return (
            f"<StockAdjustment id={self.id} item={self.item_id} "
            f"{self.adjustment_type} {self.quantity_change}>"
        )


@event.listens_for(StockAdjustment, "before_update")
def _reject_adjustment_update(mapper, connection, target) -> None:
    session = object_session(target)
    if session is not None and not session.is_modified(target, include_collections=False):
        return
    raise InvalidOperationError("Stock adjustments are immutable and cannot be updated")


@event.listens_for(StockAdjustment, "before_delete")
def _reject_adjustment_delete(mapper, connection, target) -> None:
    raise InvalidOperationError("Stock adjustments are immutable and cannot be deleted")
