from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from . import models


class SupplierBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    contact_person: Optional[str] = Field(None, max_length=255)
    email: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)
    address: Optional[str] = None


class SupplierCreate(SupplierBase):
    pass


class SupplierRead(SupplierBase):
    id: int
    is_active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class PurchaseOrderItemCreate(BaseModel):
    item_id: int
    quantity: int = Field(..., gt=0)
    unit_price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)


class PurchaseOrderItemRead(BaseModel):
    id: int
    item_id: int
    quantity: int
    unit_price: Decimal
    total_price: Decimal
    received_quantity: int
    created_at: datetime

    class Config:
        from_attributes = True


class PurchaseOrderCreate(BaseModel):
    supplier_id: int
    order_date: Optional[date] = None
    expected_delivery_date: Optional[date] = None
    notes: Optional[str] = None
    items: List[PurchaseOrderItemCreate] = Field(..., min_length=1)


class PurchaseOrderStatusUpdate(BaseModel):
    status: models.PurchaseOrderStatusEnum


class PurchaseOrderRead(BaseModel):
    id: int
    po_number: str
    supplier_id: int
    status: models.PurchaseOrderStatusEnum
    order_date: Optional[date] = None
    expected_delivery_date: Optional[date] = None
    total_amount: Decimal
    notes: Optional[str] = None
    created_by: str
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    items: List[PurchaseOrderItemRead] = []

    class Config:
        from_attributes = True


class NextNumberRead(BaseModel):
    number: str
