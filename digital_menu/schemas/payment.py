"""Payment schemas."""

from datetime import datetime
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from digital_menu.schemas.common import DbInt, Money


class PaymentRequest(BaseModel):
    """Body of /payments/initiate and /payments/cash."""

    order_id: Optional[DbInt] = Field(default=None, validation_alias=AliasChoices("orderId", "order_id"))


class PaymentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    order_id: Optional[int] = None
    amount: Money
    method: str
    status: str
    transaction_id: Optional[str] = None
    ref_id: Optional[str] = None
    payment_data: Optional[Any] = None
    payment_date: Optional[datetime] = None
    created_at: Optional[datetime] = None


class PaymentStatusOut(BaseModel):
    """Payment state of an order, serialized with the camelCase keys the clients read."""

    model_config = ConfigDict(populate_by_name=True)

    payment_status: str = Field(serialization_alias="paymentStatus")
    payment_method: str = Field(serialization_alias="paymentMethod")
    payment_id: Optional[str] = Field(default=None, serialization_alias="paymentId")
    payment_date: Optional[datetime] = Field(default=None, serialization_alias="paymentDate")
