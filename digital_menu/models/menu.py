"""Menu catalog models - categories, items and their customization choices."""

from decimal import Decimal

from sqlalchemy import Boolean, Column, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship, validates

from digital_menu.db.base import Base, TimestampMixin
from digital_menu.models.validators import non_negative, positive


class Category(TimestampMixin, Base):
    """Menu category, e.g. Starters or Drinks."""
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False, unique=True)
    description = Column(Text, nullable=True)
    display_order = Column(Integer, nullable=False, default=0)
    thumbnail_url = Column(String(500), nullable=True)
    thumbnail_handle = Column(String(255), nullable=True)  # blob-store handle

    menu_items = relationship("MenuItem", back_populates="category")


class MenuItem(TimestampMixin, Base):
    """Orderable dish or drink."""
    __tablename__ = "menu_items"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Numeric(10, 2), nullable=False)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=False, index=True)
    image_url = Column(String(500), nullable=True)
    image_handle = Column(String(255), nullable=True)
    is_available = Column(Boolean, nullable=False, default=True)

    category = relationship("Category", back_populates="menu_items")
    customization_groups = relationship(
        "CustomizationGroup",
        back_populates="menu_item",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="CustomizationGroup.id",
    )

    @validates("price")
    def _validate_price(self, key, value):
        return positive(key, value)


class CustomizationGroup(Base):
    """A named set of options on a menu item, e.g. Size or Spice level."""
    __tablename__ = "customization_groups"

    id = Column(Integer, primary_key=True, index=True)
    menu_item_id = Column(
        Integer, ForeignKey("menu_items.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = Column(String(100), nullable=False)

    menu_item = relationship("MenuItem", back_populates="customization_groups")
    options = relationship(
        "CustomizationOption",
        back_populates="group",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="CustomizationOption.id",
    )


class CustomizationOption(Base):
    """One selectable choice inside a customization group."""
    __tablename__ = "customization_options"

    id = Column(Integer, primary_key=True, index=True)
    group_id = Column(
        Integer, ForeignKey("customization_groups.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = Column(String(100), nullable=False)
    price_addition = Column(Numeric(10, 2), nullable=False, default=Decimal("0"))

    group = relationship("CustomizationGroup", back_populates="options")

    @validates("price_addition")
    def _validate_price_addition(self, key, value):
        return non_negative(key, value)
