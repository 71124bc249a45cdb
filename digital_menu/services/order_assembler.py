"""Order Assembler - turns flat joined order rows into nested order documents.

One SELECT left-joins order -> table -> order items -> menu item ->
item customizations. An order without items yields a single row whose item
columns are NULL; an item without customizations yields a single row whose
customization columns are NULL. Rows arrive sorted by
(order id, item id, customization id) and the assembler keeps that order.

The assembly functions are pure: the same rows always produce the same output.
"""

from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from sqlalchemy import Select, select

from digital_menu.models.menu import MenuItem
from digital_menu.models.restaurant import Order, OrderItem, OrderItemCustomization, Table
from digital_menu.schemas.order import (
    MenuItemSnapshot,
    OrderItemCustomizationOut,
    OrderItemOut,
    OrderOut,
    TableSummary,
)

Row = Mapping[str, Any]


def order_rows_query() -> Select:
    """Base query for assembled orders. Callers add their own WHERE clause."""
    return (
        select(
            Order.id.label("order_id"),
            Order.order_number.label("order_number"),
            Order.table_id.label("order_table_id"),
            Order.status.label("order_status"),
            Order.total_amount.label("total_amount"),
            Order.payment_status.label("payment_status"),
            Order.payment_method.label("payment_method"),
            Order.payment_transaction_id.label("payment_transaction_id"),
            Order.payment_date.label("payment_date"),
            Order.created_at.label("order_created_at"),
            Order.updated_at.label("order_updated_at"),
            Table.id.label("table_id"),
            Table.table_number.label("table_number"),
            Table.capacity.label("table_capacity"),
            Table.status.label("table_status"),
            OrderItem.id.label("item_id"),
            OrderItem.menu_item_id.label("item_menu_item_id"),
            OrderItem.quantity.label("item_quantity"),
            OrderItem.price.label("item_price"),
            OrderItem.notes.label("item_notes"),
            MenuItem.id.label("menu_item_id"),
            MenuItem.name.label("menu_item_name"),
            MenuItem.price.label("menu_item_price"),
            MenuItem.image_url.label("menu_item_image_url"),
            MenuItem.category_id.label("menu_item_category_id"),
            MenuItem.is_available.label("menu_item_is_available"),
            OrderItemCustomization.id.label("customization_id"),
            OrderItemCustomization.option_name.label("customization_option_name"),
            OrderItemCustomization.selection.label("customization_selection"),
            OrderItemCustomization.price_addition.label("customization_price_addition"),
        )
        .select_from(Order)
        .outerjoin(Table, Order.table_id == Table.id)
        .outerjoin(OrderItem, OrderItem.order_id == Order.id)
        .outerjoin(MenuItem, OrderItem.menu_item_id == MenuItem.id)
        .outerjoin(OrderItemCustomization, OrderItemCustomization.order_item_id == OrderItem.id)
        .order_by(Order.id, OrderItem.id, OrderItemCustomization.id)
    )


def to_decimal(value: Any) -> Optional[Decimal]:
    """Parse a numeric column exactly. Drivers may hand back str, float or Decimal."""
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _table(row: Row) -> Optional[TableSummary]:
    if row["table_id"] is None:
        return None
    return TableSummary(
        id=row["table_id"],
        table_number=row["table_number"],
        capacity=row["table_capacity"],
        status=row["table_status"],
    )


def _menu_item(row: Row) -> Optional[MenuItemSnapshot]:
    # NULL when the menu item was deleted after the order was placed
    if row["menu_item_id"] is None:
        return None
    return MenuItemSnapshot(
        id=row["menu_item_id"],
        name=row["menu_item_name"],
        price=to_decimal(row["menu_item_price"]),
        image_url=row["menu_item_image_url"],
        category_id=row["menu_item_category_id"],
        is_available=row["menu_item_is_available"],
    )


def _build(rows: List[Row]) -> OrderOut:
    head = rows[0]
    items: Dict[int, OrderItemOut] = {}

    for row in rows:
        item_id = row["item_id"]
        if item_id is None:
            continue
        item = items.get(item_id)
        if item is None:
            item = OrderItemOut(
                id=item_id,
                menu_item_id=row["item_menu_item_id"],
                item=_menu_item(row),
                quantity=row["item_quantity"],
                price=to_decimal(row["item_price"]),
                notes=row["item_notes"],
                customizations=[],
            )
            items[item_id] = item
        if row["customization_id"] is not None:
            item.customizations.append(
                OrderItemCustomizationOut(
                    id=row["customization_id"],
                    option_name=row["customization_option_name"] or "",
                    selection=row["customization_selection"] or "",
                    price_addition=to_decimal(row["customization_price_addition"]) or Decimal("0"),
                )
            )

    return OrderOut(
        id=head["order_id"],
        order_number=head["order_number"],
        table_id=head["order_table_id"],
        table=_table(head),
        status=head["order_status"],
        total_amount=to_decimal(head["total_amount"]),
        payment_status=head["payment_status"],
        payment_method=head["payment_method"],
        payment_transaction_id=head["payment_transaction_id"],
        payment_date=head["payment_date"],
        created_at=head["order_created_at"],
        updated_at=head["order_updated_at"],
        items=list(items.values()),
    )


def assemble_orders(rows: Iterable[Row]) -> Dict[int, OrderOut]:
    """Group rows by order id, first-seen order preserved, and build each order."""
    partitions: Dict[int, List[Row]] = {}
    for row in rows:
        partitions.setdefault(row["order_id"], []).append(row)
    return {order_id: _build(group) for order_id, group in partitions.items()}


def assemble_order(rows: Iterable[Row]) -> Optional[OrderOut]:
    """Build a single order from its rows, or None when there are no rows."""
    orders = assemble_orders(rows)
    if not orders:
        return None
    return next(iter(orders.values()))


def flatten_order(order: OrderOut) -> List[Tuple[Optional[int], int, Decimal, List[Tuple[str, str, Decimal]]]]:
    """Inverse view of an assembled order: one tuple per line item."""
    return [
        (
            item.menu_item_id,
            item.quantity,
            item.price,
            [(c.option_name, c.selection, c.price_addition) for c in item.customizations],
        )
        for item in order.items
    ]
