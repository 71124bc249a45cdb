"""Menu Catalog - categories, menu items and their customization groups."""

import logging
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from digital_menu.core.config import settings
from digital_menu.core.exceptions import ConflictError, NotFoundError, ValidationError
from digital_menu.db.session import transaction
from digital_menu.models.menu import Category, CustomizationGroup, CustomizationOption, MenuItem
from digital_menu.schemas.menu import (
    CategoryCreate,
    CategoryUpdate,
    CustomizationGroupIn,
    CustomizationGroupOut,
    CustomizationOptionOut,
    CategoryRef,
    MenuItemCreate,
    MenuItemOut,
    MenuItemUpdate,
)
from digital_menu.services.blob_storage import BlobStore, delete_quietly, validate_image

logger = logging.getLogger(__name__)


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.strip()


class CategoryService:
    def __init__(self, db: Session, store: Optional[BlobStore] = None):
        self.db = db
        self.store = store

    def list(self) -> List[Category]:
        return list(self.db.scalars(select(Category).order_by(Category.display_order, Category.id)))

    def get(self, category_id: int) -> Category:
        category = self.db.get(Category, category_id)
        if category is None:
            raise NotFoundError("Category", category_id)
        return category

    def _ensure_name_free(self, name: str, exclude_id: Optional[int] = None) -> None:
        stmt = select(Category.id).where(func.lower(Category.name) == name.lower())
        if exclude_id is not None:
            stmt = stmt.where(Category.id != exclude_id)
        if self.db.scalar(stmt) is not None:
            raise ConflictError(f"Category '{name}' already exists")

    def create(self, data: CategoryCreate) -> Category:
        name = _clean(data.name)
        if not name:
            raise ValidationError("Please provide category name")
        self._ensure_name_free(name)

        category = Category(
            name=name,
            description=data.description,
            display_order=data.display_order or 0,
        )
        with transaction(self.db):
            self.db.add(category)
        self.db.refresh(category)
        logger.info(f"Category '{name}' created (id={category.id})")
        return category

    def update(self, category_id: int, data: CategoryUpdate) -> Category:
        category = self.get(category_id)
        name = _clean(data.name)
        if data.name is not None:
            if not name:
                raise ValidationError("Category name cannot be empty")
            self._ensure_name_free(name, exclude_id=category.id)

        with transaction(self.db):
            if name:
                category.name = name
            if data.description is not None:
                category.description = data.description
            if data.display_order is not None:
                category.display_order = data.display_order
        self.db.refresh(category)
        return category

    def delete(self, category_id: int) -> None:
        category = self.get(category_id)
        in_use = self.db.scalar(
            select(func.count(MenuItem.id)).where(MenuItem.category_id == category.id)
        )
        if in_use:
            raise ConflictError(f"Category still has {in_use} menu item(s)")
        handle = category.thumbnail_handle
        with transaction(self.db):
            self.db.delete(category)
        delete_quietly(self.store, handle)
        logger.info(f"Category {category_id} deleted")

    def update_image(self, category_id: int, data: bytes, filename: str, content_type: Optional[str]) -> Category:
        category = self.get(category_id)
        validate_image(data, content_type, settings.max_upload_size_bytes)

        blob = self.store.upload(data, filename, content_type, "categories")
        old_handle = category.thumbnail_handle
        try:
            with transaction(self.db):
                category.thumbnail_url = blob.url
                category.thumbnail_handle = blob.handle
        except Exception:
            delete_quietly(self.store, blob.handle)
            raise
        delete_quietly(self.store, old_handle)
        self.db.refresh(category)
        return category


def _validated_groups(groups: List[CustomizationGroupIn]) -> List[CustomizationGroup]:
    built = []
    for group in groups:
        name = _clean(group.name)
        if not name:
            raise ValidationError("Each customization group needs a name")
        options = []
        for option in group.options:
            option_name = _clean(option.name)
            if not option_name:
                raise ValidationError(f"Each option in '{name}' needs a name")
            price_addition = option.price_addition if option.price_addition is not None else Decimal("0")
            if price_addition < 0:
                raise ValidationError("Option price addition cannot be negative")
            options.append(CustomizationOption(name=option_name, price_addition=price_addition))
        built.append(CustomizationGroup(name=name, options=options))
    return built


def menu_item_view(item: MenuItem) -> MenuItemOut:
    return MenuItemOut(
        id=item.id,
        name=item.name,
        description=item.description,
        price=item.price,
        category_id=item.category_id,
        category=CategoryRef(id=item.category.id, name=item.category.name) if item.category else None,
        image_url=item.image_url,
        is_available=item.is_available,
        customization_options=[
            CustomizationGroupOut(
                id=group.id,
                name=group.name,
                options=[
                    CustomizationOptionOut(id=o.id, name=o.name, price_addition=o.price_addition)
                    for o in group.options
                ],
            )
            for group in item.customization_groups
        ],
        created_at=item.created_at,
        updated_at=item.updated_at,
    )


class MenuService:
    def __init__(self, db: Session, store: Optional[BlobStore] = None):
        self.db = db
        self.store = store

    def _query(self):
        return select(MenuItem).options(
            selectinload(MenuItem.category),
            selectinload(MenuItem.customization_groups).selectinload(CustomizationGroup.options),
        )

    def list(self) -> List[MenuItem]:
        return list(self.db.scalars(self._query().order_by(MenuItem.id)))

    def get(self, item_id: int) -> MenuItem:
        item = self.db.scalars(self._query().where(MenuItem.id == item_id)).first()
        if item is None:
            raise NotFoundError("Menu item", item_id)
        return item

    def by_category(self, category_id: int) -> List[MenuItem]:
        items = list(
            self.db.scalars(self._query().where(MenuItem.category_id == category_id).order_by(MenuItem.id))
        )
        if not items:
            raise NotFoundError(
                "Menu item", msg=f"No menu items found for category {category_id}"
            )
        return items

    def _ensure_category(self, category_id: int) -> None:
        if self.db.get(Category, category_id) is None:
            raise NotFoundError("Category", category_id)

    def create(self, data: MenuItemCreate) -> MenuItem:
        name = _clean(data.name)
        if not name or data.price is None or data.category_id is None:
            raise ValidationError("Please provide all required values")
        if data.price <= 0:
            raise ValidationError("Price must be positive")
        groups = _validated_groups(data.customization_options or [])
        self._ensure_category(data.category_id)

        item = MenuItem(
            name=name,
            description=data.description,
            price=data.price,
            category_id=data.category_id,
            is_available=True if data.is_available is None else data.is_available,
            customization_groups=groups,
        )
        with transaction(self.db):
            self.db.add(item)
        logger.info(f"Menu item '{name}' created (id={item.id})")
        return self.get(item.id)

    def update(self, item_id: int, data: MenuItemUpdate) -> MenuItem:
        item = self.get(item_id)
        name = _clean(data.name)
        if data.name is not None and not name:
            raise ValidationError("Menu item name cannot be empty")
        if data.price is not None and data.price <= 0:
            raise ValidationError("Price must be positive")
        if data.category_id is not None:
            self._ensure_category(data.category_id)
        groups = None
        if data.customization_options is not None:
            groups = _validated_groups(data.customization_options)

        with transaction(self.db):
            if name:
                item.name = name
            if data.description is not None:
                item.description = data.description
            if data.price is not None:
                item.price = data.price
            if data.category_id is not None:
                item.category_id = data.category_id
            if data.is_available is not None:
                item.is_available = data.is_available
            if groups is not None:
                item.customization_groups.clear()
                self.db.flush()
                item.customization_groups.extend(groups)

        return self.get(item_id)

    def delete(self, item_id: int) -> None:
        item = self.get(item_id)
        handle = item.image_handle
        with transaction(self.db):
            self.db.delete(item)
        delete_quietly(self.store, handle)
        logger.info(f"Menu item {item_id} deleted")

    def update_image(self, item_id: int, data: bytes, filename: str, content_type: Optional[str]) -> MenuItem:
        item = self.get(item_id)
        validate_image(data, content_type, settings.max_upload_size_bytes)

        blob = self.store.upload(data, filename, content_type, "menu-items")
        old_handle = item.image_handle
        try:
            with transaction(self.db):
                item.image_url = blob.url
                item.image_handle = blob.handle
        except Exception:
            delete_quietly(self.store, blob.handle)
            raise
        delete_quietly(self.store, old_handle)
        return self.get(item_id)
