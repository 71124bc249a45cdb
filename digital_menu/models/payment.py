"""Payment records for orders."""

from enum import Enum

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship, validates

from digital_menu.db.base import Base, TimestampMixin
from digital_menu.models.validators import non_negative, one_of


class PaymentMethod(str, Enum):
    CASH = "cash"
    ESEWA = "esewa"


PAYMENT_METHODS = {m.value for m in PaymentMethod}


class Payment(TimestampMixin, Base):
    """One payment attempt. An order may have several; the latest one wins."""
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    # Payment history outlives the order it was taken for
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="SET NULL"), nullable=True, index=True)
    amount = Column(Numeric(10, 2), nullable=False)
    method = Column(String(20), nullable=False)
    status = Column(String(20), nullable=False, default="pending")
    transaction_id = Column(String(100), nullable=True)
    ref_id = Column(String(100), nullable=True)  # gateway transaction code
    payment_data = Column(JSON, nullable=True)  # verified gateway payload
    payment_date = Column(DateTime(timezone=True), nullable=True)

    order = relationship("Order")

    @validates("amount")
    def _validate_amount(self, key, value):
        return non_negative(key, value)

    @validates("method")
    def _validate_method(self, key, value):
        return one_of(key, value, PAYMENT_METHODS)

    @validates("status")
    def _validate_status(self, key, value):
        return one_of(key, value, {"pending", "paid"})
