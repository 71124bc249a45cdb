"""Menu category routes."""

from typing import Annotated

from fastapi import APIRouter, Depends, File, UploadFile, status

from digital_menu.core.rbac import RequireManager
from digital_menu.core.responses import entity_response, list_response, message_response
from digital_menu.db.session import DbSession
from digital_menu.schemas.common import IdPath
from digital_menu.schemas.menu import CategoryCreate, CategoryOut, CategoryUpdate
from digital_menu.services.blob_storage import BlobStore, get_blob_store
from digital_menu.services.menu_service import CategoryService

router = APIRouter()

Store = Annotated[BlobStore, Depends(get_blob_store)]


def _category(category) -> dict:
    return CategoryOut.model_validate(category).model_dump(mode="json")


@router.get("")
def list_categories(db: DbSession):
    categories = CategoryService(db).list()
    return list_response("categories", [_category(c) for c in categories])


@router.post("", status_code=status.HTTP_201_CREATED)
def create_category(body: CategoryCreate, db: DbSession, current_user: RequireManager):
    return entity_response("category", _category(CategoryService(db).create(body)))


@router.get("/{category_id}")
def get_category(category_id: IdPath, db: DbSession):
    return entity_response("category", _category(CategoryService(db).get(category_id)))


@router.patch("/{category_id}")
def update_category(category_id: IdPath, body: CategoryUpdate, db: DbSession, current_user: RequireManager):
    return entity_response("category", _category(CategoryService(db).update(category_id, body)))


@router.delete("/{category_id}")
def delete_category(category_id: IdPath, db: DbSession, store: Store, current_user: RequireManager):
    CategoryService(db, store).delete(category_id)
    return message_response("Category removed")


@router.patch("/image/{category_id}")
def upload_category_image(
    category_id: IdPath,
    db: DbSession,
    store: Store,
    current_user: RequireManager,
    image: UploadFile = File(...),
):
    """Replace the category thumbnail (image/*, up to the configured size)."""
    category = CategoryService(db, store).update_image(
        category_id, image.file.read(), image.filename or "thumbnail", image.content_type
    )
    return entity_response("category", _category(category))
