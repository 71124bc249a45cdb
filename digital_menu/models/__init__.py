"""SQLAlchemy models."""

from digital_menu.models.menu import Category, CustomizationGroup, CustomizationOption, MenuItem
from digital_menu.models.payment import Payment, PaymentMethod
from digital_menu.models.qr import QRCode
from digital_menu.models.restaurant import (
    Order,
    OrderItem,
    OrderItemCustomization,
    OrderPaymentMethod,
    OrderStatus,
    PaymentStatus,
    Table,
    TableStatus,
)

__all__ = [
    "Category",
    "CustomizationGroup",
    "CustomizationOption",
    "MenuItem",
    "Order",
    "OrderItem",
    "OrderItemCustomization",
    "OrderPaymentMethod",
    "OrderStatus",
    "Payment",
    "PaymentMethod",
    "PaymentStatus",
    "QRCode",
    "Table",
    "TableStatus",
]
