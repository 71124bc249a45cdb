"""Order schemas.

Request models are deliberately lenient (every field optional) so the order
service can report missing values as domain validation errors with the same
400 response the clients already handle.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from digital_menu.schemas.common import DbInt, Money


class CustomizationIn(BaseModel):
    option_name: Optional[str] = None
    selection: Optional[str] = None
    price_addition: Optional[Decimal] = None


class OrderItemIn(BaseModel):
    """Order line as sent by the ordering client."""

    menu_item_id: Optional[DbInt] = Field(
        default=None, validation_alias=AliasChoices("menu_item_id", "item")
    )
    quantity: Optional[DbInt] = None
    price: Optional[Decimal] = None
    notes: Optional[str] = None
    customizations: Optional[List[CustomizationIn]] = None


class OrderCreate(BaseModel):
    table_id: Optional[DbInt] = Field(default=None, validation_alias=AliasChoices("table_id", "table"))
    items: Optional[List[OrderItemIn]] = None
    total_amount: Optional[Decimal] = None
    payment_method: Optional[str] = None


class OrderUpdate(BaseModel):
    """Partial update. Absent fields keep their stored value; items replace all lines."""

    items: Optional[List[OrderItemIn]] = None
    total_amount: Optional[Decimal] = None
    payment_status: Optional[str] = None


class OrderStatusUpdate(BaseModel):
    status: Optional[str] = None


# ---------------------------------------------------------------------------
# Nested read model produced by the order assembler
# ---------------------------------------------------------------------------

class TableSummary(BaseModel):
    id: int
    table_number: int
    capacity: Optional[int] = None
    status: str


class MenuItemSnapshot(BaseModel):
    id: int
    name: str
    price: Money
    image_url: Optional[str] = None
    category_id: Optional[int] = None
    is_available: Optional[bool] = None


class OrderItemCustomizationOut(BaseModel):
    id: int
    option_name: str
    selection: str
    price_addition: Money


class OrderItemOut(BaseModel):
    id: int
    menu_item_id: Optional[int] = None
    item: Optional[MenuItemSnapshot] = None
    quantity: int
    price: Money
    notes: Optional[str] = None
    customizations: List[OrderItemCustomizationOut] = Field(default_factory=list)


class OrderOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    order_number: str
    table_id: Optional[int] = None
    table: Optional[TableSummary] = None
    status: str
    total_amount: Money
    payment_status: str
    payment_method: str
    payment_transaction_id: Optional[str] = None
    payment_date: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    items: List[OrderItemOut] = Field(default_factory=list)
