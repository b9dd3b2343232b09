# services/order_priority.py
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Iterable, List, Optional

from domain.models import Order

PRIORITY_URGENT = "urgent"
PRIORITY_HIGH = "high"
PRIORITY_MEDIUM = "medium"
PRIORITY_NORMAL = "normal"
PRIORITIES = (PRIORITY_URGENT, PRIORITY_HIGH, PRIORITY_MEDIUM, PRIORITY_NORMAL)

# (minutes strictly greater than, priority), checked top to bottom
PRIORITY_THRESHOLDS = (
    (20, PRIORITY_URGENT),
    (15, PRIORITY_HIGH),
    (10, PRIORITY_MEDIUM),
)


def _now(now: Optional[datetime]) -> datetime:
    return now or datetime.now(timezone.utc)


def minutes_since(created_at: datetime, now: Optional[datetime] = None) -> int:
    elapsed = _now(now) - created_at
    return int(elapsed.total_seconds() // 60)


def classify_priority(created_at: datetime, now: Optional[datetime] = None) -> str:
    """
    Age-based kitchen priority. Evaluated on every read, never stored.
    """
    minutes = minutes_since(created_at, now)
    for threshold, priority in PRIORITY_THRESHOLDS:
        if minutes > threshold:
            return priority
    return PRIORITY_NORMAL


def time_since_label(created_at: datetime, now: Optional[datetime] = None) -> str:
    minutes = minutes_since(created_at, now)
    if minutes < 1:
        return "Just now"
    if minutes < 60:
        return f"{minutes}m ago"
    hours, mins = divmod(minutes, 60)
    return f"{hours}h {mins}m ago"


def matches_search(order: Order, search: str) -> bool:
    term = (search or "").strip().lower()
    if not term:
        return True
    return (
        term in order.display_suffix.lower()
        or term in (order.customer_name or "").lower()
    )


def filter_orders(
        orders: Iterable[Order],
        search: str = "",
        priority: str = "all",
        now: Optional[datetime] = None,
) -> List[Order]:
    now = _now(now)
    result = []
    for order in orders:
        if not matches_search(order, search):
            continue
        if priority != "all" and classify_priority(order.created_at, now) != priority:
            continue
        result.append(order)
    return result


def filter_history(
        orders: Iterable[Order],
        search: str = "",
        on_date: Optional[date] = None,
) -> List[Order]:
    """
    Completed-bill filter: search term plus an optional calendar day
    (in the local timezone of `created_at` as rendered for the user).
    """
    result = []
    for order in orders:
        if not matches_search(order, search):
            continue
        if on_date is not None and order.created_at.astimezone().date() != on_date:
            continue
        result.append(order)
    return result


def total_sales(orders: Iterable[Order]) -> Decimal:
    return sum((order.total for order in orders), Decimal("0"))
