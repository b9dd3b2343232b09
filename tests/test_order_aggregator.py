from decimal import Decimal

import pytest

from domain.models import LineItem
from services.order_aggregator import (
    add_item,
    decrease_quantity,
    diff,
    increase_quantity,
    merge,
    remove_item,
    set_quantity,
)


def _quantities(items):
    return [(i.food_item_id, i.quantity) for i in items]


def test_merge_sums_matching_lines_and_keeps_first_occurrence_order(burger, fries, coke):
    base = [burger(2), fries(1)]
    merged = merge(base, [coke(1), burger(1)])

    assert _quantities(merged) == [("f-burger", 3), ("f-fries", 1), ("f-coke", 1)]
    assert sum(i.total for i in merged) == Decimal("460.00")


def test_merge_does_not_mutate_inputs(burger):
    base = [burger(2)]
    incoming = [burger(1)]

    merge(base, incoming)

    assert base[0].quantity == 2
    assert incoming[0].quantity == 1


def test_merge_keeps_same_food_at_different_price_apart(burger):
    discounted = LineItem("f-burger", "Burger", "100.00", 1)
    merged = merge([burger(1)], [discounted])

    assert len(merged) == 2


def test_merge_with_empty_lists(burger):
    assert merge([], []) == []
    assert _quantities(merge([], [burger(1)])) == [("f-burger", 1)]


def test_diff_returns_new_lines_and_increases_only(burger, fries, coke):
    previous = [burger(2), fries(2)]
    current = [burger(3), fries(1), coke(1)]

    assert _quantities(diff(previous, current)) == [("f-burger", 1), ("f-coke", 1)]


def test_diff_is_empty_when_nothing_grew(burger, fries):
    assert diff([burger(2), fries(1)], [burger(2)]) == []
    assert diff([burger(2)], [burger(2)]) == []


def test_builder_add_merges_into_existing_line(burger):
    items = add_item([burger(1)], burger(2))
    assert _quantities(items) == [("f-burger", 3)]


def test_builder_ignores_non_positive_add(burger):
    assert add_item([], burger(0)) == []



def test_builder_quantity_controls(burger, fries):
    items = [burger(1), fries(2)]
    burger_key, fries_key = burger().key, fries().key

    items = increase_quantity(items, burger_key)
    assert _quantities(items) == [("f-burger", 2), ("f-fries", 2)]

    items = decrease_quantity(items, fries_key)
    items = decrease_quantity(items, fries_key)
    assert _quantities(items) == [("f-burger", 2)]

    items = set_quantity(items, burger_key, 5)
    assert _quantities(items) == [("f-burger", 5)]

    assert remove_item(items, burger_key) == []


def test_builder_unknown_item_is_a_no_op(burger):
    items = [burger(1)]
    missing = ("missing", Decimal("1.00"))
    assert _quantities(increase_quantity(items, missing)) == [("f-burger", 1)]
    assert _quantities(decrease_quantity(items, missing)) == [("f-burger", 1)]


def test_builder_edits_one_price_line_of_the_same_food():
    old_price = LineItem("f-burger", "Burger", "100.00", 5)
    new_price = LineItem("f-burger", "Burger", "120.00", 1)
    items = add_item([old_price], new_price)

    def by_price(lines):
        return [(str(i.unit_price), i.quantity) for i in lines]

    assert by_price(items) == [("100.00", 5), ("120.00", 1)]
    assert by_price(increase_quantity(items, old_price.key)) == [("100.00", 6), ("120.00", 1)]
    assert by_price(decrease_quantity(items, new_price.key)) == [("100.00", 5)]
    assert by_price(set_quantity(items, new_price.key, 3)) == [("100.00", 5), ("120.00", 3)]
    assert by_price(remove_item(items, old_price.key)) == [("120.00", 1)]


# ---------------------------------------------------------------------------
# diff / merge round trip
# ---------------------------------------------------------------------------

def _line(food_id, qty):
    prices = {"B": "100.00", "F": "50.00", "C": "40.00"}
    names = {"B": "Burger", "F": "Fries", "C": "Coke"}
    return LineItem(food_id, names[food_id], prices[food_id], qty)


SHAPES = [
    ([], []),
    ([], [("B", 2), ("F", 1)]),
    ([("B", 2)], []),
    ([("B", 2)], [("B", 2)]),
    ([("B", 2), ("F", 1)], [("B", 3), ("F", 1), ("C", 2)]),
    ([("B", 5), ("F", 3)], [("B", 1), ("F", 4)]),
    ([("B", 1), ("F", 1), ("C", 1)], [("C", 4), ("B", 1)]),
]


@pytest.mark.parametrize("previous_rows, current_rows", SHAPES)
def test_merging_the_diff_back_restores_current(previous_rows, current_rows):
    previous = [_line(f, q) for f, q in previous_rows]
    current = [_line(f, q) for f, q in current_rows]

    delta = diff(previous, current)
    restored = {i.key: i.quantity for i in merge(previous, delta)}
    before = {i.key: i.quantity for i in previous}

    for item in current:
        if item.quantity >= before.get(item.key, 0):
            assert restored[item.key] == item.quantity

    for item in delta:
        assert item.quantity > 0
        assert item.total == item.unit_price * item.quantity


@pytest.mark.parametrize("previous_rows, current_rows", SHAPES)
def test_diff_only_reports_growth(previous_rows, current_rows):
    previous = {f: q for f, q in previous_rows}
    delta = diff([_line(f, q) for f, q in previous_rows], [_line(f, q) for f, q in current_rows])

    expected = [(f, q - previous.get(f, 0)) for f, q in current_rows if q > previous.get(f, 0)]
    assert _quantities(delta) == expected


def test_diff_against_nothing():
    assert diff([], []) == []
    current = [_line("B", 2), _line("F", 1)]
    assert _quantities(diff([], current)) == [("B", 2), ("F", 1)]


def test_additional_items_scenario():
    draft = [_line("B", 2)]
    resent = [_line("B", 3), _line("F", 1)]

    delta = diff(draft, resent)

    assert [(i.food_item_name, i.quantity, i.total) for i in delta] == [
        ("Burger", 1, Decimal("100.00")),
        ("Fries", 1, Decimal("50.00")),
    ]
    assert sum(i.total for i in delta) == Decimal("150.00")

    merged = merge(draft, delta)

    assert [(i.food_item_name, i.quantity, i.total) for i in merged] == [
        ("Burger", 3, Decimal("300.00")),
        ("Fries", 1, Decimal("50.00")),
    ]
    assert sum(i.total for i in merged) == Decimal("350.00")
