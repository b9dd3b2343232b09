# services/sales_stats.py
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Iterable, Optional, Tuple

from data_integrator import BillStore
from domain.models import STATUS_COMPLETED, Order, SalesSummary


def period_starts(now: datetime) -> Tuple[datetime, datetime, datetime]:
    """
    (start of today, start of week on Monday, start of month) in now's timezone.
    """
    today = now.replace(hour=0, minute=0, second=0, microsecond=0)
    week = today - timedelta(days=today.weekday())
    month = today.replace(day=1)
    return today, week, month


def compute_sales_summary(bills: Iterable[Order], now: datetime) -> SalesSummary:
    today, week, month = period_starts(now)
    sales = {"today": Decimal("0"), "week": Decimal("0"), "month": Decimal("0")}
    counts = {"today": 0, "week": 0, "month": 0}

    for bill in bills:
        if bill.status != STATUS_COMPLETED or bill.created_at is None or bill.created_at > now:
            continue
        for name, start in (("today", today), ("week", week), ("month", month)):
            if bill.created_at >= start:
                sales[name] += bill.total
                counts[name] += 1

    return SalesSummary(
        today_sales=sales["today"],
        weekly_sales=sales["week"],
        monthly_sales=sales["month"],
        today_orders=counts["today"],
        weekly_orders=counts["week"],
        monthly_orders=counts["month"],
    )


def load_sales_summary(store: BillStore, now: Optional[datetime] = None) -> SalesSummary:
    now = now or datetime.now().astimezone()
    _, week, month = period_starts(now)
    bills = store.find_bills(
        status=STATUS_COMPLETED,
        created_from=min(week, month),
        created_to=now,
    )
    return compute_sales_summary(bills, now)
