from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from . import models


class ItemBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    sku: str = Field(..., min_length=1, max_length=100)
    category: str = Field(..., min_length=1, max_length=100)
    unit_of_measure: str = Field(..., min_length=1, max_length=50)
    min_stock_level: int = Field(0, ge=0)
    unit_cost: Decimal = Field(Decimal("0"), ge=0, max_digits=10, decimal_places=2)


class ItemCreate(ItemBase):
    current_stock: int = Field(0, ge=0)


class ItemUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    sku: Optional[str] = Field(None, min_length=1, max_length=100)
    category: Optional[str] = Field(None, min_length=1, max_length=100)
    unit_of_measure: Optional[str] = Field(None, min_length=1, max_length=50)
    current_stock: Optional[int] = Field(None, ge=0)
    min_stock_level: Optional[int] = Field(None, ge=0)
    unit_cost: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    is_active: Optional[bool] = None


class ItemRead(ItemBase):
    id: int
    current_stock: int
    is_active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class StockAdjustmentCreate(BaseModel):
    item_id: int
    adjustment_type: models.StockAdjustmentTypeEnum
    quantity_change: int
    reason: str = Field(..., min_length=1)
    reference_id: Optional[int] = None
    reference_type: Optional[str] = Field(None, max_length=50)


class StockAdjustmentRead(BaseModel):
    id: int
    item_id: int
    adjustment_type: models.StockAdjustmentTypeEnum
    quantity_change: int
    previous_stock: int
    new_stock: int
    reason: str
    reference_id: Optional[int] = None
    reference_type: Optional[str] = None
    created_by: str
    created_at: datetime

    class Config:
        from_attributes = True
