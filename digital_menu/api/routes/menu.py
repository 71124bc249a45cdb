"""Menu item routes."""

from typing import Annotated

from fastapi import APIRouter, Depends, File, UploadFile, status

from digital_menu.core.rbac import RequireManager
from digital_menu.core.responses import entity_response, list_response, message_response
from digital_menu.db.session import DbSession
from digital_menu.schemas.common import IdPath
from digital_menu.schemas.menu import MenuItemCreate, MenuItemUpdate
from digital_menu.services.blob_storage import BlobStore, get_blob_store
from digital_menu.services.menu_service import MenuService, menu_item_view

router = APIRouter()

Store = Annotated[BlobStore, Depends(get_blob_store)]


def _item(item) -> dict:
    return menu_item_view(item).model_dump(mode="json")


@router.get("")
def list_menu_items(db: DbSession):
    items = MenuService(db).list()
    return list_response("menuItems", [_item(i) for i in items])


@router.post("", status_code=status.HTTP_201_CREATED)
def create_menu_item(body: MenuItemCreate, db: DbSession, current_user: RequireManager):
    return entity_response("menuItem", _item(MenuService(db).create(body)))


@router.get("/category/{category_id}")
def list_menu_items_by_category(category_id: IdPath, db: DbSession):
    items = MenuService(db).by_category(category_id)
    return list_response("menuItems", [_item(i) for i in items])


@router.get("/{item_id}")
def get_menu_item(item_id: IdPath, db: DbSession):
    return entity_response("menuItem", _item(MenuService(db).get(item_id)))


@router.patch("/{item_id}")
def update_menu_item(item_id: IdPath, body: MenuItemUpdate, db: DbSession, current_user: RequireManager):
    """Partial update; ``customization_options`` replaces every group when sent."""
    return entity_response("menuItem", _item(MenuService(db).update(item_id, body)))


@router.delete("/{item_id}")
def delete_menu_item(item_id: IdPath, db: DbSession, store: Store, current_user: RequireManager):
    MenuService(db, store).delete(item_id)
    return message_response("Menu item removed")


@router.patch("/image/{item_id}")
def upload_menu_item_image(
    item_id: IdPath,
    db: DbSession,
    store: Store,
    current_user: RequireManager,
    image: UploadFile = File(...),
):
    item = MenuService(db, store).update_image(
        item_id, image.file.read(), image.filename or "menu-item", image.content_type
    )
    return entity_response("menuItem", _item(item))
