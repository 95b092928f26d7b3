from __future__ import annotations

import datetime as dt
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# Requests

class OrderLine(BaseModel):
    product_id: int
    quantity: int = Field(ge=1)


class CreateOrderRequest(BaseModel):
    staff_id: int
    table_number: int = Field(default=1, ge=1)
    customer_name: Optional[str] = None
    notes: Optional[str] = None
    items: List[OrderLine] = Field(min_length=1)

    @field_validator("customer_name", "notes")
    @classmethod
    def _blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        return v or None


class AddItemsRequest(BaseModel):
    items: List[OrderLine] = Field(min_length=1)


class UpdateNotesRequest(BaseModel):
    customer_name: Optional[str] = None
    notes: Optional[str] = None


class StartSessionRequest(BaseModel):
    staff_id: int


class RecoveryRequest(BaseModel):
    date: dt.date
    staff_id: Optional[int] = None


class PinCheckRequest(BaseModel):
    pin: str


# Read models

class ProductRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    price: Decimal
    quantity: int
    category_id: Optional[int] = None
    low_stock_threshold: int
    created_at: dt.datetime


class OrderRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    staff_id: int
    staff_name: Optional[str] = None
    table_number: int
    total: Decimal
    customer_name: Optional[str] = None
    notes: Optional[str] = None
    status: str
    session_id: Optional[int] = None
    created_at: dt.datetime


class OrderItemRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    order_id: int
    product_id: int
    product_name: Optional[str] = None
    quantity: int
    price_at_sale: Decimal


class OrderWithItems(BaseModel):
    order: OrderRead
    items: List[OrderItemRead]


class ItemAdjustment(BaseModel):
    """Result of removing one unit: the order is either updated or gone."""
    order_deleted: bool
    order: Optional[OrderWithItems] = None


class DaySessionRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    date: Optional[dt.date] = None
    started_by: int
    started_by_name: Optional[str] = None
    started_at: dt.datetime
    closed_at: Optional[dt.datetime] = None
    is_active: bool
    total_revenue: Optional[Decimal] = None
    total_orders: Optional[int] = None


class SessionSummary(BaseModel):
    session_id: int
    date: Optional[dt.date] = None
    total_revenue: Decimal
    total_orders: int
    orders: List[OrderWithItems]


# Backup snapshot document

class SnapshotItem(BaseModel):
    id: int
    product_id: int
    product_name: Optional[str] = None
    quantity: int
    price_at_sale: float


class SnapshotOrder(BaseModel):
    id: int
    staff_id: int
    staff_name: Optional[str] = None
    table_number: int
    total: float
    customer_name: Optional[str] = None
    notes: Optional[str] = None
    status: str
    created_at: dt.datetime
    items: List[SnapshotItem]


class SessionSnapshot(BaseModel):
    session_id: int
    date: Optional[dt.date] = None
    session_started_at: dt.datetime
    closed_at: Optional[dt.datetime] = None
    total_revenue: float
    total_orders: int
    orders: List[SnapshotOrder]
