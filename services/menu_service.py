# services/menu_service.py
import logging
import re
from decimal import Decimal, InvalidOperation
from typing import List, Optional, Tuple

from data_integrator import MenuStore
from domain.errors import ValidationError
from domain.models import FOOD_AVAILABLE, FOOD_UNAVAILABLE, FoodCategory, FoodItem

logger = logging.getLogger(__name__)

NAME_PATTERN = re.compile(r"^[A-Za-z0-9\s'&().,-]{2,60}$")


def validate_category_name(store: MenuStore, val: str) -> Tuple[bool, str]:
    val = (val or "").strip()
    if not val:
        return False, "Category name cannot be empty"
    if not NAME_PATTERN.match(val):
        return False, "Category may only contain letters, digits, spaces and - ' & ( ) . , (2-60 characters)."
    if store.category_exists(val):
        return False, f"Category '{val}' already exists"
    return True, ""


def validate_food_item_name(store: MenuStore, val: str, exclude_id: Optional[str] = None) -> Tuple[bool, str]:
    val = (val or "").strip()
    if not val:
        return False, "Item name cannot be empty"
    if not NAME_PATTERN.match(val):
        return False, "Item name may only contain letters, digits, spaces and - ' & ( ) . , (2-60 characters)."
    if store.food_item_name_exists(val, exclude_id=exclude_id):
        return False, f"Item '{val}' already exists"
    return True, ""


def parse_price(val) -> Decimal:
    try:
        price = Decimal(str(val).strip())
    except (InvalidOperation, ValueError) as e:
        raise ValidationError(f"Price '{val}' is not a number") from e
    if not price.is_finite() or price <= 0:
        raise ValidationError("Price must be greater than zero")
    if price.as_tuple().exponent < -2:
        raise ValidationError("Price can have at most two decimals")
    return price


class MenuService:

    def __init__(self, store: MenuStore):
        self.store = store

    def categories(self) -> List[FoodCategory]:
        return self.store.list_categories()

    def food_items(self, available_only: bool = False) -> List[FoodItem]:
        return self.store.list_food_items(available_only=available_only)

    def add_category(self, name: str) -> FoodCategory:
        ok, msg = validate_category_name(self.store, name)
        if not ok:
            raise ValidationError(msg)
        category = self.store.insert_category(name.strip().title())
        logger.info("Category %s added", category.name)
        return category

    def save_food_item(
            self,
            name: str,
            price,
            category_id: Optional[str],
            description: Optional[str] = None,
            status: str = FOOD_AVAILABLE,
            item_id: Optional[str] = None,
    ) -> FoodItem:
        """
        Create a food item, or update it when `item_id` is given.
        """
        ok, msg = validate_food_item_name(self.store, name, exclude_id=item_id)
        if not ok:
            raise ValidationError(msg)
        if not category_id:
            raise ValidationError("Please choose a category")
        if status not in (FOOD_AVAILABLE, FOOD_UNAVAILABLE):
            raise ValidationError(f"Invalid status: {status}")

        item = FoodItem(
            name=name.strip(),
            price=parse_price(price),
            category_id=category_id,
            description=(description or "").strip() or None,
            status=status,
        )

        if item_id:
            saved = self.store.update_food_item(item_id, item)
            logger.info("Food item %s updated", saved.name)
        else:
            saved = self.store.insert_food_item(item)
            logger.info("Food item %s added", saved.name)
        return saved

    def delete_food_item(self, item_id: str) -> None:
        self.store.delete_food_item(item_id)
        logger.info("Food item %s deleted", item_id)
