"""Table State Manager - table admin and occupancy transitions.

Occupancy is written from two places: the order lifecycle (seat on create,
release on complete/cancel/delete) and the staff table-status endpoint. Both
go through this service so the ``current_order_id``/``status`` pair is always
changed together.
"""

import logging
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session, selectinload

from digital_menu.core.exceptions import ConflictError, NotFoundError, ValidationError
from digital_menu.db.session import transaction
from digital_menu.models.restaurant import TABLE_STATUSES, TERMINAL_ORDER_STATUSES, Order, Table, TableStatus
from digital_menu.schemas.table import TableCreate, TableUpdate

logger = logging.getLogger(__name__)


class TableService:
    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------------
    # Admin
    # ------------------------------------------------------------------

    def list_tables(self) -> List[Table]:
        stmt = (
            select(Table)
            .options(selectinload(Table.current_order))
            .order_by(Table.table_number)
        )
        return list(self.db.scalars(stmt))

    def get(self, table_id: int) -> Table:
        table = self.db.get(Table, table_id)
        if table is None:
            raise NotFoundError("Table", table_id)
        return table

    def _ensure_number_free(self, table_number: int, exclude_id: Optional[int] = None) -> None:
        stmt = select(Table.id).where(Table.table_number == table_number)
        if exclude_id is not None:
            stmt = stmt.where(Table.id != exclude_id)
        if self.db.scalar(stmt) is not None:
            raise ConflictError("Table with this number already exists")

    def create(self, data: TableCreate) -> Table:
        if not data.table_number or not data.capacity:
            raise ValidationError("Please provide table number and capacity")
        if data.table_number < 0 or data.capacity < 0:
            raise ValidationError("Table number and capacity must be positive")
        self._ensure_number_free(data.table_number)

        table = Table(
            table_number=data.table_number,
            capacity=data.capacity,
            status=TableStatus.AVAILABLE.value,
        )
        with transaction(self.db):
            self.db.add(table)
        self.db.refresh(table)
        logger.info(f"Table {table.table_number} created (id={table.id})")
        return table

    def update(self, table_id: int, data: TableUpdate) -> Table:
        table = self.get(table_id)
        if data.table_number is not None:
            if data.table_number <= 0:
                raise ValidationError("Table number must be positive")
            self._ensure_number_free(data.table_number, exclude_id=table.id)
        if data.capacity is not None and data.capacity <= 0:
            raise ValidationError("Capacity must be positive")

        with transaction(self.db):
            if data.table_number is not None:
                table.table_number = data.table_number
            if data.capacity is not None:
                table.capacity = data.capacity
        self.db.refresh(table)
        return table

    def delete(self, table_id: int) -> None:
        table = self.get(table_id)
        with transaction(self.db):
            self.db.delete(table)
        logger.info(f"Table {table_id} deleted")

    # ------------------------------------------------------------------
    # Occupancy
    # ------------------------------------------------------------------

    def set(self, table_id: int, status: Optional[str], order_id: Optional[int] = None) -> Table:
        """Set a table's occupancy explicitly (staff endpoint)."""
        if not status:
            raise ValidationError("Please provide table status")
        if status not in TABLE_STATUSES:
            raise ValidationError(f"Invalid table status '{status}'")
        table = self.get(table_id)

        if order_id is not None:
            if status == TableStatus.AVAILABLE.value:
                raise ValidationError("An available table cannot hold a current order")
            order = self.db.get(Order, order_id)
            if order is None:
                raise ValidationError("Invalid order id for current_order")
            if order.table_id != table.id:
                raise ValidationError("Order was not placed at this table")
            if order.status in TERMINAL_ORDER_STATUSES:
                raise ValidationError(f"Order is already {order.status}")

        with transaction(self.db):
            table.status = status
            table.current_order_id = order_id
        self.db.refresh(table)
        logger.info(f"Table {table_id} set to {status} (order={order_id})")
        return table

    def occupy(self, table_id: int, order_id: int) -> None:
        """Seat an order at a table. Runs inside the caller's transaction."""
        self.db.execute(
            update(Table)
            .where(Table.id == table_id)
            .values(status=TableStatus.OCCUPIED.value, current_order_id=order_id)
        )

    def release_for_order(self, table_id: int, order_id: int) -> bool:
        """Free the table only if it still points at ``order_id``.

        Runs inside the caller's transaction. Returns True when a row changed.
        """
        result = self.db.execute(
            update(Table)
            .where(Table.id == table_id, Table.current_order_id == order_id)
            .values(status=TableStatus.AVAILABLE.value, current_order_id=None)
        )
        released = result.rowcount > 0
        if released:
            logger.info(f"Table {table_id} released from order {order_id}")
        else:
            logger.debug(f"Table {table_id} no longer points at order {order_id}; left unchanged")
        return released
