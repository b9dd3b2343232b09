import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

import httpx
from postgrest.exceptions import APIError
from supabase import Client

from domain.errors import AuthenticationError, PersistenceError
from domain.models import (
    STATUS_DRAFT,
    FoodCategory,
    FoodItem,
    LineItem,
    Order,
)

logger = logging.getLogger(__name__)

BILLS_TABLE = "bills"
BILL_ITEMS_TABLE = "bill_items"
FOOD_ITEMS_TABLE = "food_items"
FOOD_CATEGORIES_TABLE = "food_categories"


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _iso(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat()


class _SupabaseStore:
    def __init__(self, client: Client, schema: str = "public"):
        self.client = client
        self.schema = schema

    def _table(self, table_name: str):
        return self.client.schema(self.schema).table(table_name)

    def _execute(self, query, action: str) -> List[Dict[str, Any]]:
        """
        Run a query and return its rows.
        Any PostgREST or transport failure becomes a PersistenceError.
        """
        try:
            resp = query.execute()
        except APIError as e:
            logger.error("%s failed: %s", action, e.message)
            raise PersistenceError(f"{action} failed: {e.message}") from e
        except httpx.HTTPError as e:
            logger.error("%s failed: %s", action, e)
            raise PersistenceError(f"{action} failed: {e}") from e

        if getattr(resp, "error", None):
            logger.error("%s failed: %s", action, resp.error)
            raise PersistenceError(f"{action} failed: {resp.error}")

        return resp.data or []


class BillStore(_SupabaseStore):
    """
    Access to the `bills` and `bill_items` tables.
    Bills are returned as Order objects with their items attached.
    """

    # ------------------------------------------------------------------
    # Bills
    # ------------------------------------------------------------------

    def insert_bill(self, order: Order) -> Order:
        rows = self._execute(
            self._table(BILLS_TABLE).insert(order.to_row()),
            "Insert bill",
        )
        if not rows:
            raise PersistenceError("Insert bill failed: no data returned")
        return Order.from_row(rows[0])

    def update_bill(self, bill_id: str, patch: Dict[str, Any]) -> Order:
        payload = {**patch, "updated_at": utc_now_iso()}
        rows = self._execute(
            self._table(BILLS_TABLE).update(payload).eq("id", bill_id),
            "Update bill",
        )
        if not rows:
            raise PersistenceError(f"Update bill failed: bill {bill_id} not found")
        return Order.from_row(rows[0])

    def delete_bill(self, bill_id: str) -> None:
        self._execute(
            self._table(BILLS_TABLE).delete().eq("id", bill_id),
            "Delete bill",
        )

    def get_bill(self, bill_id: str) -> Optional[Order]:
        rows = self._execute(
            self._table(BILLS_TABLE).select("*").eq("id", bill_id).limit(1),
            "Fetch bill",
        )
        if not rows:
            return None
        order = Order.from_row(rows[0])
        order.items = self.list_items(bill_id)
        return order

    def find_bills(
            self,
            status: Optional[str] = None,
            mobile_suffix: Optional[str] = None,
            created_from: Optional[datetime] = None,
            created_to: Optional[datetime] = None,
            order_by: str = "created_at",
            descending: bool = False,
            with_items: bool = True,
    ) -> List[Order]:
        query = self._table(BILLS_TABLE).select("*")

        if status is not None:
            query = query.eq("status", status)
        if mobile_suffix is not None:
            query = query.eq("mobile_last_digit", mobile_suffix)
        if created_from is not None:
            query = query.gte("created_at", _iso(created_from))
        if created_to is not None:
            query = query.lte("created_at", _iso(created_to))

        rows = self._execute(query.order(order_by, desc=descending), "Fetch bills")
        orders = [Order.from_row(row) for row in rows]

        if with_items and orders:
            items_by_bill = self.list_items_for([o.id for o in orders])
            for order in orders:
                order.items = items_by_bill.get(order.id, [])

        return orders

    def find_drafts(self, mobile_suffix: str) -> List[Order]:
        return self.find_bills(status=STATUS_DRAFT, mobile_suffix=mobile_suffix)

    # ------------------------------------------------------------------
    # Bill items
    # ------------------------------------------------------------------

    def list_items(self, bill_id: str) -> List[LineItem]:
        return self.list_items_for([bill_id]).get(bill_id, [])

    def list_items_for(self, bill_ids: Iterable[str]) -> Dict[str, List[LineItem]]:
        ids = list(bill_ids)
        if not ids:
            return {}

        rows = self._execute(
            self._table(BILL_ITEMS_TABLE)
            .select("id, bill_id, food_item_id, food_item_name, price, quantity, total, line_no")
            .in_("bill_id", ids)
            .order("line_no"),
            "Fetch bill items",
        )

        result: Dict[str, List[LineItem]] = {}
        for row in rows:
            result.setdefault(row["bill_id"], []).append(LineItem.from_row(row))
        return result

    def insert_items(self, bill_id: str, items: List[LineItem]) -> List[LineItem]:
        if not items:
            return []
        rows = self._execute(
            self._table(BILL_ITEMS_TABLE).insert(
                [{**item.to_row(bill_id), "line_no": line_no} for line_no, item in enumerate(items)]
            ),
            "Insert bill items",
        )
        return [LineItem.from_row(row) for row in rows]

    def delete_items(self, bill_id: str) -> None:
        self._execute(
            self._table(BILL_ITEMS_TABLE).delete().eq("bill_id", bill_id),
            "Delete bill items",
        )


class MenuStore(_SupabaseStore):
    """
    Access to `food_categories` and `food_items`.
    """

    def list_categories(self) -> List[FoodCategory]:
        rows = self._execute(
            self._table(FOOD_CATEGORIES_TABLE).select("id, name").order("name"),
            "Fetch categories",
        )
        return [FoodCategory(id=row["id"], name=row["name"]) for row in rows]

    def category_exists(self, name: str) -> bool:
        rows = self._execute(
            self._table(FOOD_CATEGORIES_TABLE).select("id").ilike("name", name),
            "Check category",
        )
        return len(rows) != 0

    def insert_category(self, name: str) -> FoodCategory:
        rows = self._execute(
            self._table(FOOD_CATEGORIES_TABLE).insert({"name": name}),
            "Insert category",
        )
        if not rows:
            raise PersistenceError("Insert category failed: no data returned")
        return FoodCategory(id=rows[0]["id"], name=rows[0]["name"])

    def list_food_items(self, available_only: bool = False) -> List[FoodItem]:
        query = self._table(FOOD_ITEMS_TABLE).select("*, food_categories ( name )")
        if available_only:
            query = query.eq("status", "available")
        rows = self._execute(query.order("name"), "Fetch food items")
        return [FoodItem.from_row(row) for row in rows]

    def food_item_name_exists(self, name: str, exclude_id: Optional[str] = None) -> bool:
        rows = self._execute(
            self._table(FOOD_ITEMS_TABLE).select("id").ilike("name", name),
            "Check food item",
        )
        return any(row["id"] != exclude_id for row in rows)

    def insert_food_item(self, item: FoodItem) -> FoodItem:
        rows = self._execute(
            self._table(FOOD_ITEMS_TABLE).insert(item.to_row()),
            "Insert food item",
        )
        if not rows:
            raise PersistenceError("Insert food item failed: no data returned")
        return FoodItem.from_row(rows[0])

    def update_food_item(self, item_id: str, item: FoodItem) -> FoodItem:
        rows = self._execute(
            self._table(FOOD_ITEMS_TABLE).update(item.to_row()).eq("id", item_id),
            "Update food item",
        )
        if not rows:
            raise PersistenceError(f"Update food item failed: item {item_id} not found")
        return FoodItem.from_row(rows[0])

    def delete_food_item(self, item_id: str) -> None:
        self._execute(
            self._table(FOOD_ITEMS_TABLE).delete().eq("id", item_id),
            "Delete food item",
        )


class AuthStore(_SupabaseStore):

    def verify_user_password(self, email: str, password: str) -> Optional[Dict[str, Any]]:
        """
        Call the `verify_user_password` database function.
        Returns {user_id, email, role, full_name} or None for bad credentials.
        """
        try:
            resp = self.client.rpc(
                "verify_user_password",
                {"user_email": email, "user_password": password},
            ).execute()
        except APIError as e:
            logger.error("Login error for %s: %s", email, e.message)
            raise AuthenticationError(e.message) from e
        except httpx.HTTPError as e:
            logger.error("Login error for %s: %s", email, e)
            raise PersistenceError(f"Login failed: {e}") from e

        data = resp.data
        if isinstance(data, list) and data:
            return data[0]
        if isinstance(data, dict) and data:
            return data
        return None
