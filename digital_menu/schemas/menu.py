"""Menu catalog schemas."""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from digital_menu.schemas.common import DbInt, Money


class CategoryCreate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    display_order: Optional[DbInt] = None


class CategoryUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    display_order: Optional[DbInt] = None


class CategoryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: Optional[str] = None
    display_order: int = 0
    thumbnail_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CustomizationOptionIn(BaseModel):
    name: Optional[str] = None
    price_addition: Optional[Decimal] = None


class CustomizationGroupIn(BaseModel):
    name: Optional[str] = None
    options: List[CustomizationOptionIn] = Field(default_factory=list)


class MenuItemCreate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[Decimal] = None
    category_id: Optional[DbInt] = Field(
        default=None, validation_alias=AliasChoices("category_id", "category")
    )
    is_available: Optional[bool] = None
    customization_options: Optional[List[CustomizationGroupIn]] = Field(
        default=None,
        validation_alias=AliasChoices("customization_options", "customization_groups"),
    )


class MenuItemUpdate(MenuItemCreate):
    """Same fields as create, all optional; customization groups are replaced when sent."""


class CustomizationOptionOut(BaseModel):
    id: int
    name: str
    price_addition: Money


class CustomizationGroupOut(BaseModel):
    id: int
    name: str
    options: List[CustomizationOptionOut] = Field(default_factory=list)


class CategoryRef(BaseModel):
    id: int
    name: str


class MenuItemOut(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    price: Money
    category_id: int
    category: Optional[CategoryRef] = None
    image_url: Optional[str] = None
    is_available: bool = True
    customization_options: List[CustomizationGroupOut] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
