# services/order_aggregator.py
from typing import Dict, List, Optional, Tuple
from decimal import Decimal

from domain.models import LineItem


def merge(base: List[LineItem], incoming: List[LineItem]) -> List[LineItem]:
    """
    Merge two item lists keyed by (food_item_id, unit_price).

    Matching keys have their quantities summed. Output keeps the order of
    first occurrence: base items first, then genuinely new incoming items.
    Inputs are not modified.
    """
    aggregate: Dict[Tuple[str, Decimal], LineItem] = {}

    for item in list(base) + list(incoming):
        existing = aggregate.get(item.key)
        if existing:
            aggregate[item.key] = existing.with_quantity(existing.quantity + item.quantity)
        else:
            aggregate[item.key] = item.with_quantity(item.quantity)

    return list(aggregate.values())


def diff(previous: List[LineItem], current: List[LineItem]) -> List[LineItem]:
    """
    Items the kitchen still has to prepare when `previous` becomes `current`.

    Lines are matched by food_item_id. New lines are returned whole, increased
    lines with only the extra quantity. Decreases and removals produce
    nothing; they only ever apply to the draft.
    """
    previous_by_food: Dict[str, LineItem] = {}
    for item in previous:
        previous_by_food.setdefault(item.food_item_id, item)

    delta: List[LineItem] = []
    for item in current:
        before = previous_by_food.get(item.food_item_id)
        if before is None:
            delta.append(item.with_quantity(item.quantity))
        elif item.quantity > before.quantity:
            delta.append(item.with_quantity(item.quantity - before.quantity))

    return delta


# ---------------------------------------------------------------------------
# Bill builder helpers (in-memory editing of a bill's item list)
# ---------------------------------------------------------------------------

def add_item(items: List[LineItem], item: LineItem) -> List[LineItem]:
    if item.quantity <= 0:
        return list(items)
    return merge(items, [item])


# Lines are addressed by LineItem.key: the same food at two prices is two lines.
LineKey = Tuple[str, Decimal]


def _find(items: List[LineItem], key: LineKey) -> Optional[LineItem]:
    return next((item for item in items if item.key == key), None)


def set_quantity(items: List[LineItem], key: LineKey, quantity: int) -> List[LineItem]:
    """
    Set the quantity of one line; zero or less removes the line.
    """
    if quantity <= 0:
        return remove_item(items, key)
    return [
        item.with_quantity(quantity) if item.key == key else item
        for item in items
    ]


def increase_quantity(items: List[LineItem], key: LineKey) -> List[LineItem]:
    line = _find(items, key)
    if line is None:
        return list(items)
    return set_quantity(items, key, line.quantity + 1)


def decrease_quantity(items: List[LineItem], key: LineKey) -> List[LineItem]:
    line = _find(items, key)
    if line is None:
        return list(items)
    return set_quantity(items, key, line.quantity - 1)


def remove_item(items: List[LineItem], key: LineKey) -> List[LineItem]:
    return [item for item in items if item.key != key]
