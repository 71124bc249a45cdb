"""Table schemas."""

from datetime import datetime
from typing import Optional

from pydantic import AliasChoices, BaseModel, Field

from digital_menu.schemas.common import DbInt, Money


class TableCreate(BaseModel):
    table_number: Optional[DbInt] = None
    capacity: Optional[DbInt] = None


class TableUpdate(BaseModel):
    table_number: Optional[DbInt] = None
    capacity: Optional[DbInt] = None


class TableStatusUpdate(BaseModel):
    status: Optional[str] = None
    current_order: Optional[DbInt] = Field(
        default=None, validation_alias=AliasChoices("current_order", "current_order_id")
    )


class CurrentOrderSummary(BaseModel):
    id: int
    order_number: str
    status: str
    total_amount: Money
    payment_status: str


class TableOut(BaseModel):
    """Table with a summary of the order currently seated at it."""

    id: int
    table_number: int
    capacity: int
    status: str
    current_order_id: Optional[int] = None
    current_order: Optional[CurrentOrderSummary] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_db(cls, table) -> "TableOut":
        order = table.current_order
        return cls(
            id=table.id,
            table_number=table.table_number,
            capacity=table.capacity,
            status=table.status,
            current_order_id=table.current_order_id,
            current_order=CurrentOrderSummary(
                id=order.id,
                order_number=order.order_number,
                status=order.status,
                total_amount=order.total_amount,
                payment_status=order.payment_status,
            ) if order is not None else None,
            created_at=table.created_at,
            updated_at=table.updated_at,
        )
