import streamlit as st

from app_state import get_bill_store, get_controller, get_menu_service, get_session, get_settings
from data_integrator import BILL_ITEMS_TABLE, BILLS_TABLE
from domain.errors import PosError
from domain.models import PAYMENT_MODES, STATUS_DRAFT, Order
from element_component import (
    changed_since_last_load,
    confirmation_dialog,
    page_guard,
    receipt_download,
    show_error,
    show_items,
)
from services.order_aggregator import add_item, decrease_quantity, increase_quantity, remove_item
from services.order_lifecycle import SENT_DRAFT_UPDATED, SENT_NEW_ORDER
from services.order_priority import matches_search
from utils.formatting import format_currency

st.set_page_config(page_title="Billing", page_icon="🧾")
st.sidebar.header("🧾 Billing")

session = get_session()
page_guard(session, "send_to_kitchen", "Billing")

settings = get_settings()
controller = get_controller()
symbol = settings.receipt.currency_symbol

# -------------------------------------------------------------------
# Session state defaults
# -------------------------------------------------------------------

defaults = {
    "bill_items": [],
    "editing_draft": None,
    "bill_customer_name": "",
    "bill_mobile_suffix": "",
    "billing_flash": None,
    "last_receipt": None,
}
for k, v in defaults.items():
    st.session_state.setdefault(k, v)

# Widget values can only be changed before the widgets are created.
if st.session_state.pop("billing_reset", False):
    st.session_state["bill_items"] = []
    st.session_state["editing_draft"] = None
    st.session_state["bill_customer_name"] = ""
    st.session_state["bill_mobile_suffix"] = ""

draft_to_load = st.session_state.pop("billing_load", None)
if draft_to_load is not None:
    st.session_state["bill_items"] = list(draft_to_load.items)
    st.session_state["editing_draft"] = draft_to_load
    st.session_state["bill_customer_name"] = draft_to_load.customer_name or ""
    st.session_state["bill_mobile_suffix"] = draft_to_load.mobile_suffix

st.title("🧾 Billing")

if st.session_state["billing_flash"]:
    st.success(st.session_state.pop("billing_flash"))

tab_billing, tab_drafts = st.tabs(["Billing", "Drafts"])


def current_bill() -> Order:
    return Order(
        mobile_suffix=st.session_state["bill_mobile_suffix"].strip(),
        customer_name=st.session_state["bill_customer_name"].strip() or None,
        items=list(st.session_state["bill_items"]),
    )


# -------------------------------------------------------------------
# Billing tab
# -------------------------------------------------------------------

with tab_billing:
    editing = st.session_state["editing_draft"]
    if editing:
        st.info(f"Editing draft #{editing.mobile_suffix}. Only new or increased items go to the kitchen.")

    col_suffix, col_name = st.columns(2)
    with col_suffix:
        st.text_input("Mobile Last Digit *", key="bill_mobile_suffix", placeholder="Enter last digits")
    with col_name:
        st.text_input("Customer Name", key="bill_customer_name", placeholder="Optional")

    st.subheader("Add Items")
    try:
        food_items = get_menu_service().food_items(available_only=True)
    except PosError as e:
        show_error(e)
        food_items = []

    if food_items:
        col_food, col_qty, col_add = st.columns([3, 1, 1], vertical_alignment="bottom")
        with col_food:
            food = st.selectbox(
                "Food item",
                options=food_items,
                format_func=lambda f: f"{f.name} ({format_currency(f.price, symbol)})",
                key="bill_food_choice",
            )
        with col_qty:
            qty = st.number_input("Qty", min_value=1, max_value=99, step=1, value=1, key="bill_food_qty")
        with col_add:
            if st.button("➕ Add", width="stretch"):
                st.session_state["bill_items"] = add_item(st.session_state["bill_items"], food.to_line_item(int(qty)))
                st.toast(f"{food.name} has been added to the bill")
                st.rerun()
    else:
        st.warning("No food items available. Add some on the Menu Items page.")

    st.subheader("Current Bill")
    items = st.session_state["bill_items"]
    if not items:
        st.caption("No items added yet")

    # Same food at two prices is two lines, so widget keys use the row index.
    for idx, item in enumerate(items):
        col_item, col_minus, col_qty_display, col_plus, col_remove = st.columns(
            [4, 1, 1, 1, 1], vertical_alignment="center"
        )
        col_item.write(f"{item.food_item_name}  \n{format_currency(item.unit_price, symbol)} each")
        if col_minus.button("➖", key=f"dec_{idx}"):
            st.session_state["bill_items"] = decrease_quantity(items, item.key)
            st.rerun()
        col_qty_display.write(f"**{item.quantity}**")
        if col_plus.button("➕", key=f"inc_{idx}"):
            st.session_state["bill_items"] = increase_quantity(items, item.key)
            st.rerun()
        if col_remove.button("🗑️", key=f"rm_{idx}"):
            st.session_state["bill_items"] = remove_item(items, item.key)
            st.rerun()

    bill = current_bill()
    st.metric("Total", format_currency(bill.total, symbol))

    col_send, col_print, col_reset = st.columns(3)

    with col_send:
        if st.button("🍳 Send to Kitchen", type="primary", width="stretch"):
            try:
                result = controller.send_to_kitchen(bill, editing_draft=editing)
            except PosError as e:
                show_error(e)
            else:
                if result.kind == SENT_NEW_ORDER:
                    message = f"Order #{result.order.mobile_suffix} sent to kitchen"
                elif result.kind == SENT_DRAFT_UPDATED:
                    message = "Draft updated. No new items to send to kitchen"
                else:
                    message = f"{len(result.items_sent)} new/additional items sent to kitchen"
                st.session_state["billing_flash"] = message
                st.session_state["billing_reset"] = True
                st.rerun()

    with col_print:
        if st.button("🖨️ Print & Save Draft", width="stretch"):
            try:
                result = controller.save_draft_with_ticket(bill, editing_draft=editing)
            except PosError as e:
                show_error(e)
            else:
                st.session_state["last_receipt"] = result.receipt
                st.session_state["billing_flash"] = "Ticket ready. Order has been saved as draft"
                st.session_state["billing_reset"] = True
                st.rerun()

    with col_reset:
        if st.button("Reset", width="stretch"):
            st.session_state["billing_reset"] = True
            st.rerun()

    if st.session_state["last_receipt"]:
        receipt_download(st.session_state["last_receipt"], "⬇️ Download last ticket / bill", key="dl_last_receipt")


# -------------------------------------------------------------------
# Drafts tab
# -------------------------------------------------------------------

def finalize(draft: Order, payment_mode: str) -> None:
    try:
        result = controller.finalize_bill(draft, payment_mode)
    except PosError as e:
        show_error(e)
        return
    st.session_state["last_receipt"] = result.receipt
    st.session_state["billing_flash"] = f"Bill has been moved to history (Payment: {payment_mode})"
    st.rerun()


def delete_draft(draft: Order) -> str:
    controller.delete_draft(draft.id)
    return f"Draft #{draft.mobile_suffix} deleted"


@st.fragment(run_every=settings.refresh_seconds)
def drafts_list():
    if changed_since_last_load("billing_drafts", (BILLS_TABLE, BILL_ITEMS_TABLE)):
        try:
            st.session_state["billing_drafts"] = get_bill_store().find_bills(
                status=STATUS_DRAFT, order_by="updated_at", descending=True
            )
        except PosError as e:
            show_error(e)
            return

    drafts = st.session_state.get("billing_drafts", [])
    search = st.text_input("Search by mobile number or customer name", key="draft_search")
    visible = [draft for draft in drafts if matches_search(draft, search)]

    st.caption(f"{len(visible)} of {len(drafts)} drafts")

    for draft in visible:
        title = f"#{draft.mobile_suffix} · {draft.customer_name or 'Walk-in'} · {format_currency(draft.total, symbol)}"
        with st.expander(title):
            show_items(draft.items)

            mode = st.radio(
                "Payment mode",
                options=PAYMENT_MODES,
                format_func=str.title,
                horizontal=True,
                key=f"pay_{draft.id}",
            )

            col_edit, col_final, col_delete = st.columns(3)
            if col_edit.button("✏️ Edit", key=f"edit_{draft.id}", width="stretch"):
                st.session_state["billing_load"] = draft
                st.session_state["billing_flash"] = f"Draft #{draft.mobile_suffix} loaded into the Billing tab"
                st.rerun()
            if col_final.button("💰 Print Bill", key=f"final_{draft.id}", type="primary", width="stretch"):
                finalize(draft, mode)
            if col_delete.button("🗑️ Delete", key=f"del_{draft.id}", width="stretch"):
                confirmation_dialog(
                    f"Delete draft #{draft.mobile_suffix}?",
                    {"Customer": draft.customer_name or "-", "Total": format_currency(draft.total, symbol)},
                    lambda d=draft: delete_draft(d),
                    "billing_flash",
                )


with tab_drafts:
    drafts_list()
