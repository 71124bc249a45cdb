"""Order routes - guest ordering flow and staff order management."""

from fastapi import APIRouter, Request, status

from digital_menu.core.config import settings
from digital_menu.core.rate_limit import limiter
from digital_menu.core.rbac import RequireStaff
from digital_menu.core.responses import entity_response, list_response, message_response
from digital_menu.db.session import DbSession
from digital_menu.schemas.common import IdPath
from digital_menu.schemas.order import OrderCreate, OrderStatusUpdate, OrderUpdate
from digital_menu.services.order_service import OrderService

router = APIRouter()


def _orders(orders) -> dict:
    return list_response("orders", [o.model_dump(mode="json") for o in orders])


@router.get("")
def list_orders(db: DbSession):
    """All orders with their table, items and customizations."""
    return _orders(OrderService(db).get_all())


@router.post("", status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.order_rate_limit)
def create_order(request: Request, body: OrderCreate, db: DbSession):
    """Place an order and seat it at its table."""
    order = OrderService(db).create(body)
    return entity_response("order", order.model_dump(mode="json"))


@router.get("/table/{table_id}")
def list_orders_for_table(table_id: IdPath, db: DbSession, current_user: RequireStaff):
    return _orders(OrderService(db).get_by_table(table_id))


@router.get("/status/{order_status}")
def list_orders_by_status(order_status: str, db: DbSession, current_user: RequireStaff):
    return _orders(OrderService(db).get_by_status(order_status))


@router.get("/{order_id}")
def get_order(order_id: IdPath, db: DbSession):
    order = OrderService(db).get_by_id(order_id)
    return entity_response("order", order.model_dump(mode="json"))


@router.patch("/{order_id}")
@limiter.limit(settings.order_rate_limit)
def update_order(request: Request, order_id: IdPath, body: OrderUpdate, db: DbSession):
    """Partial update; ``items`` replaces every line of the order."""
    order = OrderService(db).update(order_id, body)
    return entity_response("order", order.model_dump(mode="json"))


@router.delete("/{order_id}")
def delete_order(order_id: IdPath, db: DbSession):
    OrderService(db).delete(order_id)
    return message_response("Order removed")


@router.patch("/{order_id}/status")
def update_order_status(order_id: IdPath, body: OrderStatusUpdate, db: DbSession, current_user: RequireStaff):
    """Move an order through its lifecycle. complete/cancelled free the table."""
    order = OrderService(db).update_status(order_id, body.status)
    return entity_response("order", order.model_dump(mode="json"))
