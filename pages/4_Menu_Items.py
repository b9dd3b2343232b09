import pandas as pd
import streamlit as st

from app_state import get_menu_service, get_session, get_settings
from domain.errors import PosError
from domain.models import FOOD_AVAILABLE, FOOD_UNAVAILABLE, FoodItem
from element_component import confirmation_dialog, page_guard, show_error
from utils.formatting import format_currency

st.set_page_config(page_title="Menu Items", page_icon="🍔")
st.sidebar.header("🍔 Menu Items")

session = get_session()
page_guard(session, "manage_menu", "Menu Items")

menu = get_menu_service()
symbol = get_settings().receipt.currency_symbol

st.session_state.setdefault("menu_flash", None)

st.title("🍔 Menu Items")

if st.session_state["menu_flash"]:
    st.success(st.session_state.pop("menu_flash"))

try:
    categories = menu.categories()
    food_items = menu.food_items()
except PosError as e:
    show_error(e)
    st.stop()

category_names = {c.id: c.name for c in categories}


def delete_item(item: FoodItem) -> str:
    menu.delete_food_item(item.id)
    return f"{item.name} deleted"


tab_items, tab_add, tab_categories = st.tabs(["Food Items", "Add / Edit Item", "Categories"])

with tab_items:
    category_filter = st.selectbox(
        "Category",
        options=[None] + [c.id for c in categories],
        format_func=lambda cid: "All categories" if cid is None else category_names[cid],
        key="menu_category_filter",
    )
    visible = [i for i in food_items if category_filter is None or i.category_id == category_filter]

    if not visible:
        st.info("No food items yet")
    else:
        df = pd.DataFrame(
            [
                {
                    "Name": i.name,
                    "Category": i.category_name or category_names.get(i.category_id, "-"),
                    "Price": format_currency(i.price, symbol),
                    "Status": i.status.title(),
                    "Description": i.description or "",
                }
                for i in visible
            ]
        )
        st.dataframe(df, hide_index=True, width="stretch")

        to_delete = st.selectbox("Delete item", options=visible, format_func=lambda i: i.name, key="menu_delete_choice")
        if st.button("🗑️ Delete", key="menu_delete"):
            confirmation_dialog(
                f"Delete {to_delete.name}?",
                {"Price": format_currency(to_delete.price, symbol)},
                lambda item=to_delete: delete_item(item),
                "menu_flash",
            )

with tab_add:
    if not categories:
        st.warning("Add a category first")
    else:
        editing = st.selectbox(
            "Item",
            options=[None] + food_items,
            format_func=lambda i: "➕ New item" if i is None else f"✏️ {i.name}",
            key="menu_edit_choice",
        )
        category_ids = [c.id for c in categories]

        form_key = f"menu_item_form_{editing.id if editing else 'new'}"
        with st.form(form_key, clear_on_submit=editing is None):
            name = st.text_input("Name", value=editing.name if editing else "")
            price = st.text_input("Price", value=str(editing.price) if editing else "")
            category_id = st.selectbox(
                "Category",
                options=category_ids,
                index=category_ids.index(editing.category_id) if editing and editing.category_id in category_ids else 0,
                format_func=lambda cid: category_names[cid],
            )
            description = st.text_area("Description", value=(editing.description or "") if editing else "")
            status = st.radio(
                "Status",
                options=(FOOD_AVAILABLE, FOOD_UNAVAILABLE),
                index=0 if editing is None or editing.is_available else 1,
                format_func=str.title,
                horizontal=True,
            )

            if st.form_submit_button("Save", type="primary"):
                try:
                    saved = menu.save_food_item(
                        name,
                        price,
                        category_id,
                        description=description,
                        status=status,
                        item_id=editing.id if editing else None,
                    )
                except PosError as e:
                    show_error(e)
                else:
                    st.session_state["menu_flash"] = f"{saved.name} saved"
                    st.rerun()

with tab_categories:
    if categories:
        st.dataframe(pd.DataFrame({"Category": [c.name for c in categories]}), hide_index=True)

    with st.form("category_form", clear_on_submit=True):
        new_category = st.text_input("New category")
        if st.form_submit_button("Add category"):
            try:
                category = menu.add_category(new_category)
            except PosError as e:
                show_error(e)
            else:
                st.session_state["menu_flash"] = f"Category {category.name} added"
                st.rerun()
