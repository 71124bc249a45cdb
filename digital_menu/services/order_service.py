"""Order Lifecycle Manager.

Orders move pending -> preparing -> served -> complete; ``cancelled`` is
reachable from any non-terminal state. ``complete`` and ``cancelled`` are
terminal and both release the order's table.

Every multi-row write (order + items + customizations + table) runs in one
``transaction()`` so a failure at any step leaves no partial order behind.
Validation and not-found checks run before the transaction is opened.
"""

import logging
import secrets
import time
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, List, NamedTuple, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from digital_menu.core.exceptions import ConflictError, NotFoundError, ValidationError
from digital_menu.db.session import transaction
from digital_menu.models.menu import MenuItem
from digital_menu.models.restaurant import (
    ORDER_PAYMENT_METHODS,
    ORDER_STATUSES,
    PAYMENT_STATUSES,
    TABLE_RELEASING_STATUSES,
    TERMINAL_ORDER_STATUSES,
    Order,
    OrderItem,
    OrderItemCustomization,
    OrderPaymentMethod,
    OrderStatus,
    PaymentStatus,
    Table,
)
from digital_menu.schemas.order import (
    CustomizationIn,
    OrderCreate,
    OrderItemIn,
    OrderOut,
    OrderUpdate,
)
from digital_menu.services.order_assembler import assemble_order, assemble_orders, order_rows_query
from digital_menu.services.table_service import TableService

logger = logging.getLogger(__name__)


class CustomizationRecord(NamedTuple):
    """Normalized customization as stored on an order item."""

    option_name: str
    selection: str
    price_addition: Decimal


@dataclass
class LineItem:
    """A validated order line, ready to be inserted."""

    menu_item_id: int
    quantity: int
    price: Decimal
    notes: Optional[str] = None
    customizations: List[CustomizationRecord] = field(default_factory=list)


def normalize_customizations(raw: Optional[Iterable[CustomizationIn]]) -> List[CustomizationRecord]:
    """Fill missing customization fields with ``""`` / ``""`` / ``0``."""
    records = []
    for c in raw or []:
        price_addition = c.price_addition if c.price_addition is not None else Decimal("0")
        if price_addition < 0:
            raise ValidationError("Customization price addition cannot be negative")
        records.append(
            CustomizationRecord(
                option_name=c.option_name or "",
                selection=c.selection or "",
                price_addition=price_addition,
            )
        )
    return records


def validate_items(items: Optional[Sequence[OrderItemIn]]) -> List[LineItem]:
    """Check every line and return normalized copies. Raises ValidationError.

    An empty sequence is valid here; only order creation requires lines.
    """
    lines = []
    for item in items or []:
        if item.menu_item_id is None:
            raise ValidationError("Each item must reference a menu item")
        if item.price is None or item.price <= 0:
            raise ValidationError("Each item must have a valid price")
        quantity = 1 if item.quantity is None else item.quantity
        if quantity <= 0:
            raise ValidationError("Each item must have a positive quantity")
        lines.append(
            LineItem(
                menu_item_id=item.menu_item_id,
                quantity=quantity,
                price=item.price,
                notes=item.notes,
                customizations=normalize_customizations(item.customizations),
            )
        )
    return lines


def resolve_payment_method(value: Optional[str]) -> str:
    """Unknown or missing payment methods fall back to cash."""
    if value in ORDER_PAYMENT_METHODS:
        return value
    return OrderPaymentMethod.CASH.value


def generate_order_number() -> str:
    return f"ORD-{int(time.time() * 1000)}-{secrets.token_hex(3).upper()}"


class OrderService:
    def __init__(self, db: Session, tables: Optional[TableService] = None):
        self.db = db
        self.tables = tables or TableService(db)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _fetch_many(self, *criteria) -> List[OrderOut]:
        rows = self.db.execute(order_rows_query().where(*criteria)).mappings().all()
        return list(assemble_orders(rows).values())

    def get_all(self) -> List[OrderOut]:
        return self._fetch_many()

    def get_by_id(self, order_id: int) -> OrderOut:
        rows = self.db.execute(order_rows_query().where(Order.id == order_id)).mappings().all()
        order = assemble_order(rows)
        if order is None:
            raise NotFoundError("Order", order_id)
        return order

    def get_by_table(self, table_id: int) -> List[OrderOut]:
        return self._fetch_many(Order.table_id == table_id)

    def get_by_status(self, status: str) -> List[OrderOut]:
        if status not in ORDER_STATUSES:
            raise ValidationError(f"Invalid order status '{status}'")
        return self._fetch_many(Order.status == status)

    def _get_model(self, order_id: int) -> Order:
        order = self.db.get(Order, order_id)
        if order is None:
            raise NotFoundError("Order", order_id)
        return order

    def _ensure_menu_items_exist(self, lines: List[LineItem]) -> None:
        wanted = {line.menu_item_id for line in lines}
        if not wanted:
            return
        found = set(self.db.scalars(select(MenuItem.id).where(MenuItem.id.in_(wanted))))
        missing = sorted(wanted - found)
        if missing:
            raise NotFoundError("Menu item", missing[0])

    @staticmethod
    def _build_items(lines: List[LineItem]) -> List[OrderItem]:
        return [
            OrderItem(
                menu_item_id=line.menu_item_id,
                quantity=line.quantity,
                price=line.price,
                notes=line.notes,
                customizations=[
                    OrderItemCustomization(
                        option_name=c.option_name,
                        selection=c.selection,
                        price_addition=c.price_addition,
                    )
                    for c in line.customizations
                ],
            )
            for line in lines
        ]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(self, data: OrderCreate) -> OrderOut:
        if data.table_id is None or not data.items or data.total_amount is None:
            raise ValidationError("Please provide all required values")
        if data.total_amount < 0:
            raise ValidationError("Total amount cannot be negative")
        lines = validate_items(data.items)

        if self.db.get(Table, data.table_id) is None:
            raise NotFoundError("Table", data.table_id)
        self._ensure_menu_items_exist(lines)

        order = Order(
            order_number=generate_order_number(),
            table_id=data.table_id,
            status=OrderStatus.PENDING.value,
            total_amount=data.total_amount,
            payment_status=PaymentStatus.PENDING.value,
            payment_method=resolve_payment_method(data.payment_method),
        )
        with transaction(self.db):
            order.items = self._build_items(lines)
            self.db.add(order)
            self.db.flush()
            self.tables.occupy(data.table_id, order.id)

        logger.info(
            f"Order {order.order_number} created at table {data.table_id} "
            f"({len(lines)} items, total {data.total_amount})"
        )
        return self.get_by_id(order.id)

    def update(self, order_id: int, data: OrderUpdate) -> OrderOut:
        order = self._get_model(order_id)

        if data.payment_status is not None and data.payment_status not in PAYMENT_STATUSES:
            raise ValidationError(f"Invalid payment status '{data.payment_status}'")
        if data.total_amount is not None and data.total_amount < 0:
            raise ValidationError("Total amount cannot be negative")
        lines = None
        if data.items is not None:
            lines = validate_items(data.items)
            self._ensure_menu_items_exist(lines)

        with transaction(self.db):
            if lines is not None:
                # Full replace; old items and their customizations cascade away
                order.items.clear()
                self.db.flush()
                order.items.extend(self._build_items(lines))
            if data.total_amount is not None:
                order.total_amount = data.total_amount
            if data.payment_status is not None:
                order.payment_status = data.payment_status

        return self.get_by_id(order_id)

    def update_status(self, order_id: int, status: Optional[str]) -> OrderOut:
        if not status:
            raise ValidationError("Please provide order status")
        if status not in ORDER_STATUSES:
            raise ValidationError(f"Invalid order status '{status}'")
        order = self._get_model(order_id)

        if order.status in TERMINAL_ORDER_STATUSES and status != order.status:
            raise ConflictError(f"Order is already {order.status}")

        previous = order.status
        with transaction(self.db):
            order.status = status
            if status in TABLE_RELEASING_STATUSES and order.table_id is not None:
                self.tables.release_for_order(order.table_id, order.id)

        logger.info(f"Order {order_id} status {previous} -> {status}")
        return self.get_by_id(order_id)

    def delete(self, order_id: int) -> None:
        order = self._get_model(order_id)
        with transaction(self.db):
            if order.table_id is not None:
                self.tables.release_for_order(order.table_id, order.id)
            self.db.delete(order)
        logger.info(f"Order {order_id} deleted")