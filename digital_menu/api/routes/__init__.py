"""API routes."""

from fastapi import APIRouter

from digital_menu.api.routes import categories, menu, orders, payments, qr, stats, tables

api_router = APIRouter()

# Guest-facing ordering flow
api_router.include_router(orders.router, prefix="/orders", tags=["orders"])
api_router.include_router(payments.router, prefix="/payments", tags=["payments"])
api_router.include_router(tables.router, prefix="/tables", tags=["tables"])
api_router.include_router(qr.router, prefix="/qr", tags=["qr"])

# Menu catalog
api_router.include_router(categories.router, prefix="/categories", tags=["menu"])
api_router.include_router(menu.router, prefix="/menu", tags=["menu"])

# Staff dashboard
api_router.include_router(stats.router, prefix="/stats", tags=["statistics"])
