"""Restaurant operations models - tables, orders, order items."""

from decimal import Decimal
from enum import Enum

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship, validates

from digital_menu.db.base import Base, TimestampMixin
from digital_menu.models.validators import non_negative, one_of, positive


class TableStatus(str, Enum):
    AVAILABLE = "available"
    OCCUPIED = "occupied"


class OrderStatus(str, Enum):
    PENDING = "pending"
    PREPARING = "preparing"
    SERVED = "served"
    COMPLETE = "complete"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"


class OrderPaymentMethod(str, Enum):
    CASH = "cash"
    ONLINE_PAYMENT = "online_payment"


TABLE_STATUSES = {s.value for s in TableStatus}
ORDER_STATUSES = {s.value for s in OrderStatus}
TERMINAL_ORDER_STATUSES = {OrderStatus.COMPLETE.value, OrderStatus.CANCELLED.value}
# Statuses that release the table the order was seated at
TABLE_RELEASING_STATUSES = TERMINAL_ORDER_STATUSES
PAYMENT_STATUSES = {s.value for s in PaymentStatus}
ORDER_PAYMENT_METHODS = {m.value for m in OrderPaymentMethod}


class Table(TimestampMixin, Base):
    """Restaurant table for seating."""
    __tablename__ = "tables"

    id = Column(Integer, primary_key=True, index=True)
    table_number = Column(Integer, nullable=False, unique=True)
    capacity = Column(Integer, nullable=False, default=4)
    status = Column(String(20), nullable=False, default=TableStatus.AVAILABLE.value)
    # Weak reference to the seated order; cleared by the application, never cascaded
    current_order_id = Column(
        Integer,
        ForeignKey("orders.id", use_alter=True, name="fk_tables_current_order_id"),
        nullable=True,
    )

    current_order = relationship("Order", foreign_keys=[current_order_id], post_update=True)
    orders = relationship(
        "Order", back_populates="table", foreign_keys="Order.table_id", passive_deletes=True
    )

    @validates("status")
    def _validate_status(self, key, value):
        return one_of(key, value, TABLE_STATUSES)

    @validates("capacity", "table_number")
    def _validate_positive(self, key, value):
        return positive(key, value)


class Order(TimestampMixin, Base):
    """Customer order placed at a table."""
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    order_number = Column(String(50), nullable=False, unique=True)
    table_id = Column(Integer, ForeignKey("tables.id", ondelete="SET NULL"), nullable=True, index=True)
    status = Column(String(20), nullable=False, default=OrderStatus.PENDING.value, index=True)
    total_amount = Column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    payment_status = Column(String(20), nullable=False, default=PaymentStatus.PENDING.value)
    payment_method = Column(String(20), nullable=False, default=OrderPaymentMethod.CASH.value)
    payment_transaction_id = Column(String(100), nullable=True)
    payment_date = Column(DateTime(timezone=True), nullable=True)

    table = relationship("Table", back_populates="orders", foreign_keys=[table_id])
    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="OrderItem.id",
    )

    @validates("total_amount")
    def _validate_total(self, key, value):
        return non_negative(key, value)

    @validates("status")
    def _validate_status(self, key, value):
        return one_of(key, value, ORDER_STATUSES)

    @validates("payment_status")
    def _validate_payment_status(self, key, value):
        return one_of(key, value, PAYMENT_STATUSES)

    @validates("payment_method")
    def _validate_payment_method(self, key, value):
        return one_of(key, value, ORDER_PAYMENT_METHODS)


class OrderItem(Base):
    """Line item on an order. Price is a snapshot taken when the order was placed."""
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    menu_item_id = Column(Integer, ForeignKey("menu_items.id", ondelete="SET NULL"), nullable=True)
    quantity = Column(Integer, nullable=False, default=1)
    price = Column(Numeric(10, 2), nullable=False)
    notes = Column(Text, nullable=True)

    order = relationship("Order", back_populates="items")
    menu_item = relationship("MenuItem")
    customizations = relationship(
        "OrderItemCustomization",
        back_populates="order_item",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="OrderItemCustomization.id",
    )

    @validates("quantity", "price")
    def _validate_positive(self, key, value):
        return positive(key, value)


class OrderItemCustomization(Base):
    """Customization chosen for an order item (snapshot, not a link to the option)."""
    __tablename__ = "order_item_customizations"

    id = Column(Integer, primary_key=True, index=True)
    order_item_id = Column(
        Integer, ForeignKey("order_items.id", ondelete="CASCADE"), nullable=False, index=True
    )
    option_name = Column(String(100), nullable=False, default="")
    selection = Column(String(100), nullable=False, default="")
    price_addition = Column(Numeric(10, 2), nullable=False, default=Decimal("0"))

    order_item = relationship("OrderItem", back_populates="customizations")

    @validates("price_addition")
    def _validate_price_addition(self, key, value):
        return non_negative(key, value)
