from decimal import Decimal

import pytest

from domain.errors import ValidationError
from domain.models import FOOD_UNAVAILABLE
from services.menu_service import MenuService, parse_price, validate_category_name


@pytest.fixture
def menu(menu_store):
    return MenuService(menu_store)


def test_add_category_title_cases_and_rejects_duplicates(menu):
    category = menu.add_category("  hot wings ")
    assert category.name == "Hot Wings"

    with pytest.raises(ValidationError, match="already exists"):
        menu.add_category("HOT WINGS")


def test_category_name_validation(menu_store):
    assert validate_category_name(menu_store, "") == (False, "Category name cannot be empty")
    ok, msg = validate_category_name(menu_store, "Bad<script>")
    assert not ok
    assert "may only contain" in msg


def test_save_and_update_food_item(menu):
    category = menu.add_category("Burgers")

    item = menu.save_food_item("Zinger", "149", category.id, description=" spicy ")
    assert item.price == Decimal("149")
    assert item.description == "spicy"

    updated = menu.save_food_item(
        "Zinger", "159.50", category.id, status=FOOD_UNAVAILABLE, item_id=item.id
    )
    assert updated.price == Decimal("159.50")
    assert not updated.is_available
    assert menu.food_items(available_only=True) == []


def test_save_food_item_validation(menu):
    category = menu.add_category("Sides")
    menu.save_food_item("Fries", "60", category.id)

    with pytest.raises(ValidationError, match="already exists"):
        menu.save_food_item("fries", "70", category.id)
    with pytest.raises(ValidationError, match="category"):
        menu.save_food_item("Nuggets", "70", None)
    with pytest.raises(ValidationError, match="Invalid status"):
        menu.save_food_item("Nuggets", "70", category.id, status="sold-out")


def test_delete_food_item(menu):
    category = menu.add_category("Sides")
    item = menu.save_food_item("Fries", "60", category.id)

    menu.delete_food_item(item.id)

    assert menu.food_items() == []


@pytest.mark.parametrize("raw", ["abc", "0", "-5", "1.234", ""])
def test_parse_price_rejects(raw):
    with pytest.raises(ValidationError):
        parse_price(raw)


def test_parse_price_accepts_two_decimals():
    assert parse_price(" 12.50 ") == Decimal("12.50")
