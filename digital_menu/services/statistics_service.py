"""Statistics Service - revenue and usage figures for the staff dashboard.

Revenue only counts orders that are both ``complete`` and ``paid``. Time
series are bucketed in Python so the same code runs on SQLite, MySQL and
PostgreSQL without dialect-specific date functions. All times are UTC.
"""

import calendar
import logging
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import distinct, func, select
from sqlalchemy.orm import Session

from digital_menu.models.menu import Category, MenuItem
from digital_menu.models.restaurant import (
    ORDER_PAYMENT_METHODS,
    Order,
    OrderItem,
    OrderStatus,
    PaymentStatus,
)
from digital_menu.services.order_assembler import to_decimal

logger = logging.getLogger(__name__)

STATUS_ORDER = [s.value for s in OrderStatus]
METHOD_ORDER = sorted(ORDER_PAYMENT_METHODS)
ACTIVE_STATUSES = (OrderStatus.PENDING.value, OrderStatus.PREPARING.value, OrderStatus.SERVED.value)
FULFILLED_STATUSES = (OrderStatus.SERVED.value, OrderStatus.COMPLETE.value)


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _money(value: Any) -> float:
    return float(round(to_decimal(value) or Decimal("0"), 2))


def _growth(current: float, previous: float) -> float:
    if previous > 0:
        return round((current - previous) / previous * 100, 2)
    return 0.0


def _shift_months(day: date, months: int) -> date:
    month_index = day.year * 12 + (day.month - 1) + months
    year, month = divmod(month_index, 12)
    last_day = calendar.monthrange(year, month + 1)[1]
    return date(year, month + 1, min(day.day, last_day))


class StatisticsService:
    def __init__(self, db: Session, now: Optional[datetime] = None):
        self.db = db
        self.now = _naive_utc(now) if now else datetime.now(timezone.utc).replace(tzinfo=None)
        self.today = datetime.combine(self.now.date(), datetime.min.time())

    def _revenue_filter(self):
        return (
            Order.status == OrderStatus.COMPLETE.value,
            Order.payment_status == PaymentStatus.PAID.value,
        )

    def _revenue_between(self, start: datetime, end: Optional[datetime] = None) -> float:
        stmt = select(func.coalesce(func.sum(Order.total_amount), 0)).where(
            *self._revenue_filter(), Order.created_at >= start
        )
        if end is not None:
            stmt = stmt.where(Order.created_at < end)
        return _money(self.db.scalar(stmt))

    def _fulfilled_between(self, start: datetime, end: Optional[datetime] = None) -> int:
        stmt = select(func.count(Order.id)).where(
            Order.status.in_(FULFILLED_STATUSES), Order.created_at >= start
        )
        if end is not None:
            stmt = stmt.where(Order.created_at < end)
        return int(self.db.scalar(stmt) or 0)

    def _revenue_rows(self, start: datetime) -> List[Tuple[datetime, Decimal]]:
        stmt = (
            select(Order.created_at, Order.total_amount)
            .where(*self._revenue_filter(), Order.created_at >= start)
            .order_by(Order.created_at)
        )
        return [(_naive_utc(created), to_decimal(total)) for created, total in self.db.execute(stmt)]

    # ------------------------------------------------------------------

    def dashboard(self) -> Dict[str, Any]:
        d30 = self.today - timedelta(days=30)
        d60 = d30 - timedelta(days=30)

        revenue = self._revenue_between(d30)
        orders = self._fulfilled_between(d30)
        prev_revenue = self._revenue_between(d60, d30)
        prev_orders = self._fulfilled_between(d60, d30)
        active_tables = self.db.scalar(
            select(func.count(distinct(Order.table_id))).where(
                Order.status.in_(ACTIVE_STATUSES), Order.table_id.is_not(None)
            )
        )

        return {
            "totalRevenue": revenue,
            "totalOrders": orders,
            "avgOrderValue": round(revenue / orders, 2) if orders else 0.0,
            "activeTables": int(active_tables or 0),
            "revenueGrowth": _growth(revenue, prev_revenue),
            "ordersGrowth": _growth(orders, prev_orders),
        }

    def daily_revenue(self) -> List[Dict[str, Any]]:
        """Last 7 days including today, zero-filled."""
        start = self.today - timedelta(days=6)
        buckets = {(start + timedelta(days=i)).date(): Decimal("0") for i in range(7)}
        for created, total in self._revenue_rows(start):
            if created.date() in buckets:
                buckets[created.date()] += total
        return [{"date": day.isoformat(), "revenue": _money(rev)} for day, rev in buckets.items()]

    def weekly_revenue(self) -> List[Dict[str, Any]]:
        """Revenue per ISO week over the last 28 days, weeks without sales omitted."""
        weeks: Dict[Tuple[int, int], Dict[str, Any]] = {}
        for created, total in self._revenue_rows(self.today - timedelta(days=28)):
            iso_year, iso_week, _ = created.isocalendar()
            bucket = weeks.setdefault(
                (iso_year, iso_week), {"start": created.date(), "revenue": Decimal("0")}
            )
            bucket["revenue"] += total
        return [
            {"week": f"Week {week}", "revenue": _money(b["revenue"]), "startDate": b["start"].isoformat()}
            for (_, week), b in sorted(weeks.items())
        ]

    def monthly_revenue(self) -> List[Dict[str, Any]]:
        """Revenue per calendar month over the last 12 months."""
        start = datetime.combine(_shift_months(self.today.date(), -12), datetime.min.time())
        months: Dict[Tuple[int, int], Decimal] = {}
        for created, total in self._revenue_rows(start):
            key = (created.year, created.month)
            months[key] = months.get(key, Decimal("0")) + total
        return [
            {"month": calendar.month_name[month], "year": year, "revenue": _money(rev)}
            for (year, month), rev in sorted(months.items())
        ]

    def most_sold_items(self, limit: int = 5) -> List[Dict[str, Any]]:
        qty = func.sum(OrderItem.quantity)
        stmt = (
            select(
                MenuItem.id,
                MenuItem.name,
                Category.name.label("category_name"),
                qty.label("total_qty"),
                func.sum(OrderItem.quantity * OrderItem.price).label("total_rev"),
            )
            .select_from(Order)
            .join(OrderItem, OrderItem.order_id == Order.id)
            .join(MenuItem, MenuItem.id == OrderItem.menu_item_id)
            .outerjoin(Category, Category.id == MenuItem.category_id)
            .where(
                Order.created_at >= self.today - timedelta(days=30),
                Order.status.in_(FULFILLED_STATUSES),
            )
            .group_by(MenuItem.id, MenuItem.name, Category.name)
            .order_by(qty.desc(), MenuItem.id)
            .limit(limit)
        )
        return [
            {
                "id": row.id,
                "name": row.name,
                "category": row.category_name or "Unknown",
                "totalQuantity": int(row.total_qty or 0),
                "totalRevenue": _money(row.total_rev),
            }
            for row in self.db.execute(stmt)
        ]

    def revenue_by_category(self) -> List[Dict[str, Any]]:
        revenue = func.sum(OrderItem.quantity * OrderItem.price)
        stmt = (
            select(Category.id, Category.name, revenue.label("revenue"))
            .select_from(Order)
            .join(OrderItem, OrderItem.order_id == Order.id)
            .join(MenuItem, MenuItem.id == OrderItem.menu_item_id)
            .join(Category, Category.id == MenuItem.category_id)
            .where(Order.created_at >= self.today - timedelta(days=30), *self._revenue_filter())
            .group_by(Category.id, Category.name)
            .order_by(revenue.desc())
        )
        return [
            {"id": row.id, "name": row.name, "revenue": _money(row.revenue)}
            for row in self.db.execute(stmt)
        ]

    def year_over_year(self) -> Dict[str, Any]:
        year_start = datetime(self.now.year, 1, 1)
        prev_year_start = datetime(self.now.year - 1, 1, 1)
        current = self._revenue_between(year_start)
        previous = self._revenue_between(prev_year_start, year_start)
        if previous > 0:
            growth = round((current - previous) / previous * 100, 2)
        else:
            growth = 100.0 if current > 0 else 0.0
        return {
            "currentYearRevenue": current,
            "previousYearRevenue": previous,
            "growthPercentage": growth,
        }

    def order_status_distribution(self) -> List[Dict[str, Any]]:
        stmt = (
            select(Order.status, func.count(Order.id))
            .where(Order.created_at >= self.today - timedelta(days=30))
            .group_by(Order.status)
        )
        counts = {status: int(count) for status, count in self.db.execute(stmt)}
        return [{"status": s, "count": counts.get(s, 0)} for s in STATUS_ORDER]

    def payment_method_distribution(self) -> List[Dict[str, Any]]:
        stmt = (
            select(Order.payment_method, func.count(Order.id), func.sum(Order.total_amount))
            .where(
                Order.created_at >= self.today - timedelta(days=30),
                Order.payment_status == PaymentStatus.PAID.value,
            )
            .group_by(Order.payment_method)
        )
        by_method = {method: (int(count), _money(total)) for method, count, total in self.db.execute(stmt)}
        return [
            {"method": m, "count": by_method.get(m, (0, 0.0))[0], "total": by_method.get(m, (0, 0.0))[1]}
            for m in METHOD_ORDER
        ]

    def hourly_distribution(self) -> List[Dict[str, Any]]:
        """Orders and order value per hour of day (UTC) over the last 30 days."""
        hours = [{"hour": h, "count": 0, "revenue": Decimal("0")} for h in range(24)]
        stmt = select(Order.created_at, Order.total_amount).where(
            Order.created_at >= self.today - timedelta(days=30)
        )
        for created, total in self.db.execute(stmt):
            bucket = hours[_naive_utc(created).hour]
            bucket["count"] += 1
            bucket["revenue"] += to_decimal(total) or Decimal("0")
        return [{**h, "revenue": _money(h["revenue"])} for h in hours]

    def all(self) -> Dict[str, Any]:
        return {
            "basicStats": self.dashboard(),
            "dailyRevenue": self.daily_revenue(),
            "weeklyRevenue": self.weekly_revenue(),
            "monthlyRevenue": self.monthly_revenue(),
            "mostSoldItems": self.most_sold_items(),
            "revenueByCategory": self.revenue_by_category(),
            "yearOverYearGrowth": self.year_over_year(),
            "orderStatusDistribution": self.order_status_distribution(),
            "paymentMethodDistribution": self.payment_method_distribution(),
            "hourlyOrderDistribution": self.hourly_distribution(),
        }
