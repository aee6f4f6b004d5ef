from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from .models import WorkOrderPriorityEnum, WorkOrderStatusEnum


# ---------------------------------------------------------------------------
# Lines
# ---------------------------------------------------------------------------


class WorkOrderItemCreate(BaseModel):
    item_id: int
    quantity_planned: int = Field(..., gt=0)


class WorkOrderItemUsageUpdate(BaseModel):
    quantity_used: int = Field(..., ge=0)


class WorkOrderItemRead(BaseModel):
    id: int
    item_id: int
    quantity_planned: int
    quantity_used: int
    created_at: datetime

    class Config:
        from_attributes = True


# ---------------------------------------------------------------------------
# Work orders
# ---------------------------------------------------------------------------


class WorkOrderBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    priority: WorkOrderPriorityEnum = WorkOrderPriorityEnum.MEDIUM
    assigned_to: Optional[str] = Field(None, max_length=255)
    estimated_hours: Optional[Decimal] = Field(None, ge=0, max_digits=8, decimal_places=2)
    due_date: Optional[date] = None


class WorkOrderCreate(WorkOrderBase):
    items: List[WorkOrderItemCreate] = Field(default_factory=list)


class WorkOrderUpdate(BaseModel):
    """
    Partial update. Setting `status` to COMPLETED runs the completion
    workflow, exactly like POST /work-orders/{id}/complete.
    """

    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    status: Optional[WorkOrderStatusEnum] = None
    priority: Optional[WorkOrderPriorityEnum] = None
    assigned_to: Optional[str] = Field(None, max_length=255)
    estimated_hours: Optional[Decimal] = Field(None, ge=0, max_digits=8, decimal_places=2)
    actual_hours: Optional[Decimal] = Field(None, ge=0, max_digits=8, decimal_places=2)
    due_date: Optional[date] = None
    completed_date: Optional[datetime] = None


class WorkOrderComplete(BaseModel):
    actual_hours: Decimal = Field(..., ge=0, max_digits=8, decimal_places=2)


class WorkOrderRead(WorkOrderBase):
    id: int
    wo_number: str
    status: WorkOrderStatusEnum
    actual_hours: Optional[Decimal] = None
    completed_date: Optional[datetime] = None
    created_by: str
    created_at: datetime
    updated_at: datetime
    items: List[WorkOrderItemRead] = []

    class Config:
        from_attributes = True


class NextNumberRead(BaseModel):
    number: str
