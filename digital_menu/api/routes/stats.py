"""Dashboard statistics routes."""

from fastapi import APIRouter

from digital_menu.core.rbac import RequireManager
from digital_menu.db.session import DbSession
from digital_menu.services.statistics_service import StatisticsService

router = APIRouter()


@router.get("/dashboard")
def dashboard_stats(db: DbSession, current_user: RequireManager):
    """Revenue, orders and growth over the last 30 days."""
    return StatisticsService(db).dashboard()


@router.get("/daily-revenue")
def daily_revenue(db: DbSession, current_user: RequireManager):
    return StatisticsService(db).daily_revenue()


@router.get("/weekly-revenue")
def weekly_revenue(db: DbSession, current_user: RequireManager):
    return StatisticsService(db).weekly_revenue()


@router.get("/monthly-revenue")
def monthly_revenue(db: DbSession, current_user: RequireManager):
    return StatisticsService(db).monthly_revenue()


@router.get("/most-sold-items")
def most_sold_items(db: DbSession, current_user: RequireManager):
    return StatisticsService(db).most_sold_items()


@router.get("/revenue-by-category")
def revenue_by_category(db: DbSession, current_user: RequireManager):
    return StatisticsService(db).revenue_by_category()


@router.get("/year-over-year")
def year_over_year(db: DbSession, current_user: RequireManager):
    return StatisticsService(db).year_over_year()


@router.get("/order-status")
def order_status_distribution(db: DbSession, current_user: RequireManager):
    return StatisticsService(db).order_status_distribution()


@router.get("/payment-methods")
def payment_method_distribution(db: DbSession, current_user: RequireManager):
    return StatisticsService(db).payment_method_distribution()


@router.get("/hourly-distribution")
def hourly_distribution(db: DbSession, current_user: RequireManager):
    return StatisticsService(db).hourly_distribution()


@router.get("/all")
def all_stats(db: DbSession, current_user: RequireManager):
    """Every dashboard figure in one payload."""
    return StatisticsService(db).all()
