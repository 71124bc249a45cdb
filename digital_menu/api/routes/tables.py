"""Tables management routes."""

from fastapi import APIRouter, status

from digital_menu.core.rbac import RequireManager, RequireStaff
from digital_menu.core.responses import entity_response, list_response, message_response
from digital_menu.db.session import DbSession
from digital_menu.schemas.common import IdPath
from digital_menu.schemas.table import TableCreate, TableOut, TableStatusUpdate, TableUpdate
from digital_menu.services.table_service import TableService

router = APIRouter()


def _table(table) -> dict:
    return TableOut.from_db(table).model_dump(mode="json")


@router.get("")
def list_tables(db: DbSession):
    """List all tables with the order currently seated at each."""
    tables = TableService(db).list_tables()
    return list_response("tables", [_table(t) for t in tables])


@router.post("", status_code=status.HTTP_201_CREATED)
def create_table(body: TableCreate, db: DbSession, current_user: RequireManager):
    return entity_response("table", _table(TableService(db).create(body)))


@router.get("/{table_id}")
def get_table(table_id: IdPath, db: DbSession):
    return entity_response("table", _table(TableService(db).get(table_id)))


@router.patch("/{table_id}")
def update_table(table_id: IdPath, body: TableUpdate, db: DbSession, current_user: RequireManager):
    return entity_response("table", _table(TableService(db).update(table_id, body)))


@router.delete("/{table_id}")
def delete_table(table_id: IdPath, db: DbSession, current_user: RequireManager):
    TableService(db).delete(table_id)
    return message_response("Table removed")


@router.patch("/{table_id}/status")
def update_table_status(table_id: IdPath, body: TableStatusUpdate, db: DbSession, current_user: RequireStaff):
    """Set occupancy by hand, e.g. to clear a table after walk-out."""
    table = TableService(db).set(table_id, body.status, body.current_order)
    return entity_response("table", _table(table))
