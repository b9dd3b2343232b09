import uuid
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from typing import Any, Callable, Dict, List, Optional

import pytest
from postgrest.exceptions import APIError

from data_integrator import AuthStore, BillStore, MenuStore
from domain.models import LineItem, parse_timestamp
from services.change_feed import ChangeBus
from services.order_lifecycle import OrderLifecycleController

TIMESTAMPED_TABLES = ("bills", "bill_items", "food_items", "food_categories")


class FakeClock:
    def __init__(self, start: datetime):
        self.now = start

    def tick(self) -> str:
        self.now += timedelta(seconds=1)
        return self.now.isoformat()


class FakeQuery:
    """
    Minimal stand-in for the postgrest request builder: records filters and
    applies them to an in-memory table on execute().
    """

    def __init__(self, db: "FakeSupabase", table: str):
        self.db = db
        self.table = table
        self.op = "select"
        self.columns = "*"
        self.payload: Any = None
        self.filters: List[Callable[[Dict[str, Any]], bool]] = []
        self.ordering: List[tuple] = []
        self.max_rows: Optional[int] = None

    # ---- verbs ----

    def select(self, columns: str = "*"):
        self.op = "select"
        self.columns = columns
        return self

    def insert(self, payload):
        self.op = "insert"
        self.payload = payload
        return self

    def update(self, payload):
        self.op = "update"
        self.payload = payload
        return self

    def delete(self):
        self.op = "delete"
        return self

    # ---- filters ----

    def eq(self, column, value):
        self.filters.append(lambda row: row.get(column) == value)
        return self

    def in_(self, column, values):
        values = list(values)
        self.filters.append(lambda row: row.get(column) in values)
        return self

    def gte(self, column, value):
        bound = parse_timestamp(value)
        self.filters.append(lambda row: row.get(column) is not None and parse_timestamp(row[column]) >= bound)
        return self

    def lte(self, column, value):
        bound = parse_timestamp(value)
        self.filters.append(lambda row: row.get(column) is not None and parse_timestamp(row[column]) <= bound)
        return self

    def ilike(self, column, pattern):
        self.filters.append(lambda row: str(row.get(column, "")).lower() == str(pattern).lower())
        return self

    def order(self, column, desc=False):
        self.ordering.append((column, desc))
        return self

    def limit(self, n):
        self.max_rows = n
        return self

    # ---- execution ----

    def _matches(self, row):
        return all(f(row) for f in self.filters)

    def execute(self):
        self.db.calls.append((self.table, self.op))
        self.db.maybe_fail(self.table, self.op)

        rows = self.db.tables.setdefault(self.table, [])

        if self.op == "insert":
            payload = self.payload if isinstance(self.payload, list) else [self.payload]
            inserted = [self.db.new_row(self.table, dict(p)) for p in payload]
            rows.extend(inserted)
            return SimpleNamespace(data=[dict(r) for r in inserted])

        if self.op == "update":
            updated = []
            for row in rows:
                if self._matches(row):
                    row.update(self.payload)
                    updated.append(dict(row))
            return SimpleNamespace(data=updated)

        if self.op == "delete":
            deleted = [r for r in rows if self._matches(r)]
            self.db.tables[self.table] = [r for r in rows if not self._matches(r)]
            return SimpleNamespace(data=[dict(r) for r in deleted])

        result = [dict(r) for r in rows if self._matches(r)]
        for column, desc in reversed(self.ordering):
            result.sort(key=lambda r: (r.get(column) is None, r.get(column)), reverse=desc)
        if "food_categories" in self.columns:
            names = {c["id"]: c["name"] for c in self.db.tables.get("food_categories", [])}
            for r in result:
                r["food_categories"] = {"name": names.get(r.get("category_id"))}
        if self.max_rows is not None:
            result = result[: self.max_rows]
        return SimpleNamespace(data=result)


class FakeRpc:
    def __init__(self, db: "FakeSupabase", name: str, params: Dict[str, Any]):
        self.db = db
        self.name = name
        self.params = params

    def execute(self):
        self.db.maybe_fail("rpc", self.name)
        return SimpleNamespace(data=self.db.rpc_handlers[self.name](self.params))


class FakeSupabase:
    """
    In-memory replacement for supabase.Client, enough for the stores.
    """

    def __init__(self):
        self.tables: Dict[str, List[Dict[str, Any]]] = {}
        self.clock = FakeClock(datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc))
        self.calls: List[tuple] = []
        self.rpc_handlers: Dict[str, Callable[[Dict[str, Any]], Any]] = {}
        self._failures: List[dict] = []

    def schema(self, name):
        return self

    def table(self, name):
        return FakeQuery(self, name)

    def rpc(self, name, params):
        return FakeRpc(self, name, params)

    def new_row(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        row.setdefault("id", str(uuid.uuid4()))
        if table in TIMESTAMPED_TABLES:
            stamp = self.clock.tick()
            row.setdefault("created_at", stamp)
            if table == "bills":
                row.setdefault("updated_at", stamp)
        if table == "bills":
            row.setdefault("is_supplemental", False)
            row.setdefault("payment_mode", None)
        return row

    def fail_on(self, table: str, op: str, skip: int = 0, times: int = 1, message: str = "boom"):
        """Make the next matching call(s) raise APIError, after `skip` successful ones."""
        self._failures.append({"table": table, "op": op, "skip": skip, "times": times, "message": message})

    def maybe_fail(self, table: str, op: str):
        for failure in self._failures:
            if failure["table"] != table or failure["op"] != op or failure["times"] <= 0:
                continue
            if failure["skip"] > 0:
                failure["skip"] -= 1
                continue
            failure["times"] -= 1
            raise APIError({"message": failure["message"], "code": "XX000", "hint": None, "details": None})

    def rows(self, table: str) -> List[Dict[str, Any]]:
        return self.tables.get(table, [])


@pytest.fixture
def fake_db():
    return FakeSupabase()


@pytest.fixture
def bill_store(fake_db):
    return BillStore(fake_db)


@pytest.fixture
def menu_store(fake_db):
    return MenuStore(fake_db)


@pytest.fixture
def auth_store(fake_db):
    return AuthStore(fake_db)


@pytest.fixture
def change_bus():
    return ChangeBus()


@pytest.fixture
def controller(bill_store, change_bus):
    return OrderLifecycleController(bill_store, change_bus=change_bus)


def line(food_id: str, name: str, price: str, qty: int) -> LineItem:
    return LineItem(food_item_id=food_id, food_item_name=name, unit_price=price, quantity=qty)


@pytest.fixture
def burger():
    return lambda qty=1: line("f-burger", "Burger", "120.00", qty)


@pytest.fixture
def fries():
    return lambda qty=1: line("f-fries", "Fries", "60.00", qty)


@pytest.fixture
def coke():
    return lambda qty=1: line("f-coke", "Coke", "40.00", qty)
