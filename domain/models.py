# jafpos/domain/models.py

from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

STATUS_DRAFT = "draft"
STATUS_ACTIVE = "active"
STATUS_COMPLETED = "completed"
ORDER_STATUSES = (STATUS_DRAFT, STATUS_ACTIVE, STATUS_COMPLETED)

PAYMENT_CASH = "cash"
PAYMENT_ONLINE = "online"
PAYMENT_MODES = (PAYMENT_CASH, PAYMENT_ONLINE)

ROLE_BILLER = "biller"
ROLE_KITCHEN_MANAGER = "kitchen_manager"
ROLES = (ROLE_BILLER, ROLE_KITCHEN_MANAGER)

FOOD_AVAILABLE = "available"
FOOD_UNAVAILABLE = "unavailable"

# Legacy rows carry the supplemental flag inside the suffix text.
SUPPLEMENTAL_MARKER = "(Additional)"


def to_decimal(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if value is None or value == "":
        return Decimal("0")
    return Decimal(str(value))


def parse_timestamp(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    text = str(value)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


def split_legacy_suffix(suffix: str) -> Tuple[str, bool]:
    """
    Split a stored suffix into (base_suffix, is_supplemental).
    Example: "42 (Additional)" -> ("42", True)
    """
    text = (suffix or "").strip()
    if text.endswith(SUPPLEMENTAL_MARKER):
        return text[: -len(SUPPLEMENTAL_MARKER)].strip(), True
    return text, False


@dataclass
class LineItem:
    """
    One product line of a bill. `total` is always unit_price * quantity.
    """
    food_item_id: str
    food_item_name: str
    unit_price: Decimal
    quantity: int
    id: Optional[str] = None

    def __post_init__(self):
        self.unit_price = to_decimal(self.unit_price)
        self.quantity = int(self.quantity)

    @property
    def key(self) -> Tuple[str, Decimal]:
        return self.food_item_id, self.unit_price

    @property
    def total(self) -> Decimal:
        return self.unit_price * self.quantity

    def with_quantity(self, quantity: int) -> "LineItem":
        return replace(self, quantity=quantity)

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "LineItem":
        return cls(
            food_item_id=row["food_item_id"],
            food_item_name=row["food_item_name"],
            unit_price=row["price"],
            quantity=row["quantity"],
            id=row.get("id"),
        )

    def to_row(self, bill_id: str) -> Dict[str, Any]:
        return {
            "bill_id": bill_id,
            "food_item_id": self.food_item_id,
            "food_item_name": self.food_item_name,
            "price": str(self.unit_price),
            "quantity": self.quantity,
            "total": str(self.total),
        }


def sum_totals(items: List[LineItem]) -> Decimal:
    return sum((item.total for item in items), Decimal("0"))


@dataclass
class Order:
    """
    A bill. `mobile_suffix` always holds the base suffix; supplemental
    (additional items) orders are flagged with `is_supplemental`.
    """
    mobile_suffix: str
    items: List[LineItem] = field(default_factory=list)
    customer_name: Optional[str] = None
    status: str = STATUS_DRAFT
    is_supplemental: bool = False
    payment_mode: Optional[str] = None
    id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def total(self) -> Decimal:
        return sum_totals(self.items)

    @property
    def display_suffix(self) -> str:
        if self.is_supplemental:
            return f"{self.mobile_suffix} {SUPPLEMENTAL_MARKER}"
        return self.mobile_suffix

    @classmethod
    def from_row(cls, row: Dict[str, Any], items: Optional[List[LineItem]] = None) -> "Order":
        suffix, legacy_supplemental = split_legacy_suffix(row.get("mobile_last_digit") or "")
        return cls(
            id=row.get("id"),
            customer_name=row.get("customer_name") or None,
            mobile_suffix=suffix,
            status=row.get("status") or STATUS_DRAFT,
            is_supplemental=bool(row.get("is_supplemental")) or legacy_supplemental,
            payment_mode=row.get("payment_mode"),
            items=list(items or []),
            created_at=parse_timestamp(row.get("created_at")),
            updated_at=parse_timestamp(row.get("updated_at")),
        )

    def to_row(self) -> Dict[str, Any]:
        return {
            "customer_name": self.customer_name or None,
            "mobile_last_digit": self.mobile_suffix,
            "status": self.status,
            "total": str(self.total),
            "is_supplemental": self.is_supplemental,
            "payment_mode": self.payment_mode,
        }


@dataclass
class FoodCategory:
    id: str
    name: str


@dataclass
class FoodItem:
    """
    A menu entry as offered in the billing screen.
    """
    name: str
    price: Decimal
    category_id: Optional[str] = None
    category_name: Optional[str] = None
    description: Optional[str] = None
    status: str = FOOD_AVAILABLE
    id: Optional[str] = None

    def __post_init__(self):
        self.price = to_decimal(self.price)

    @property
    def is_available(self) -> bool:
        return self.status == FOOD_AVAILABLE

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "FoodItem":
        category = row.get("food_categories") or {}
        return cls(
            id=row.get("id"),
            name=row["name"],
            price=row["price"],
            category_id=row.get("category_id"),
            category_name=category.get("name"),
            description=row.get("description"),
            status=row.get("status") or FOOD_AVAILABLE,
        )

    def to_row(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description or None,
            "price": str(self.price),
            "category_id": self.category_id,
            "status": self.status,
        }

    def to_line_item(self, quantity: int) -> LineItem:
        return LineItem(
            food_item_id=self.id,
            food_item_name=self.name,
            unit_price=self.price,
            quantity=quantity,
        )


@dataclass
class UserProfile:
    id: str
    email: str
    role: str
    full_name: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.full_name or self.email

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "email": self.email,
            "role": self.role,
            "full_name": self.full_name,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserProfile":
        return cls(
            id=data["id"],
            email=data["email"],
            role=data["role"],
            full_name=data.get("full_name"),
        )


@dataclass
class Receipt:
    filename: str
    content: bytes
    mime: str = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


@dataclass
class SalesSummary:
    today_sales: Decimal
    weekly_sales: Decimal
    monthly_sales: Decimal
    today_orders: int
    weekly_orders: int
    monthly_orders: int
