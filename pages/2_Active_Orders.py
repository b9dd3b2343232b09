import streamlit as st

from app_state import get_bill_store, get_controller, get_renderer, get_session, get_settings
from data_integrator import BILL_ITEMS_TABLE, BILLS_TABLE
from domain.errors import PosError
from domain.models import STATUS_ACTIVE, Order
from element_component import changed_since_last_load, confirmation_dialog, page_guard, show_error, show_items
from services.order_lifecycle import COMPLETED_MERGED, COMPLETED_PROMOTED
from services.order_priority import PRIORITIES, classify_priority, filter_orders, time_since_label

st.set_page_config(page_title="Active Orders", page_icon="👨‍🍳")
st.sidebar.header("👨‍🍳 Active Orders")

session = get_session()
page_guard(session, "view_active_orders", "Active Orders")

settings = get_settings()
controller = get_controller()

PRIORITY_BADGES = {
    "urgent": "🔴 URGENT",
    "high": "🟠 HIGH",
    "medium": "🟡 MEDIUM",
    "normal": "🟢 NORMAL",
}

st.session_state.setdefault("kitchen_flash", None)

st.title("👨‍🍳 Active Orders")

if st.session_state["kitchen_flash"]:
    st.success(st.session_state.pop("kitchen_flash"))


def complete(order: Order) -> None:
    try:
        result = controller.complete_active_order(order.id)
    except PosError as e:
        show_error(e)
        return
    if result.kind == COMPLETED_MERGED:
        message = f"Additional items merged into draft #{result.draft.mobile_suffix}"
    elif result.kind == COMPLETED_PROMOTED:
        message = f"Additional order #{result.draft.mobile_suffix} moved to drafts"
    else:
        message = f"Order #{result.draft.mobile_suffix} completed and sent to biller"
    st.session_state["kitchen_flash"] = message
    st.rerun()


def send_back(order: Order) -> None:
    try:
        controller.send_back_to_draft(order.id)
    except PosError as e:
        show_error(e)
        return
    st.session_state["kitchen_flash"] = f"Order #{order.mobile_suffix} sent back to biller for modifications"
    st.rerun()


def cancel(order: Order) -> str:
    controller.cancel_order(order.id)
    return f"Order #{order.display_suffix} cancelled"


def order_card(order: Order) -> None:
    priority = classify_priority(order.created_at)
    with st.container(border=True):
        col_title, col_badge = st.columns([3, 1])
        with col_title:
            st.markdown(f"### #{order.display_suffix}")
            st.caption(f"{order.customer_name or 'Walk-in Customer'} · {time_since_label(order.created_at)}")
            if order.is_supplemental:
                st.markdown(":orange-badge[ADDITIONAL ITEMS]")
        with col_badge:
            st.markdown(f"**{PRIORITY_BADGES[priority]}**")

        show_items(order.items, show_amounts=False)

        col_done, col_modify, col_cancel, col_ticket = st.columns(4)
        if col_done.button("✅ Complete", key=f"done_{order.id}", type="primary", width="stretch"):
            complete(order)
        if col_modify.button(
            "✏️ Modify",
            key=f"modify_{order.id}",
            width="stretch",
            disabled=order.is_supplemental,
        ):
            send_back(order)
        if col_cancel.button("❌ Cancel", key=f"cancel_{order.id}", width="stretch"):
            confirmation_dialog(
                f"Cancel order #{order.display_suffix}?",
                {"Customer": order.customer_name or "-", "Items": str(len(order.items))},
                lambda o=order: cancel(o),
                "kitchen_flash",
            )
        with col_ticket:
            receipt = get_renderer().render(order, show_amounts=False)
            st.download_button(
                "🖨️ Ticket",
                data=receipt.content,
                file_name=receipt.filename,
                mime=receipt.mime,
                key=f"ticket_{order.id}",
                width="stretch",
            )


@st.fragment(run_every=settings.refresh_seconds)
def active_orders():
    if changed_since_last_load("kitchen_orders", (BILLS_TABLE, BILL_ITEMS_TABLE)):
        try:
            st.session_state["kitchen_orders"] = get_bill_store().find_bills(status=STATUS_ACTIVE)
        except PosError as e:
            show_error(e)
            return

    orders = st.session_state.get("kitchen_orders", [])

    col_search, col_priority = st.columns([2, 1])
    search = col_search.text_input("Search by mobile number or customer name", key="kitchen_search")
    priority = col_priority.selectbox(
        "Priority",
        options=("all",) + PRIORITIES,
        format_func=str.title,
        key="kitchen_priority",
    )

    visible = filter_orders(orders, search, priority)
    st.caption(f"{len(visible)} of {len(orders)} active orders")

    if not visible:
        st.info("No active orders")
        return

    for order in visible:
        order_card(order)


active_orders()
