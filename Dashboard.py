import streamlit as st
import pandas as pd

from app_state import get_auth_service, get_bill_store, get_session, get_settings
from data_integrator import BILL_ITEMS_TABLE, BILLS_TABLE
from domain.errors import PosError
from domain.models import ROLE_BILLER, ROLE_KITCHEN_MANAGER, STATUS_ACTIVE
from element_component import changed_since_last_load, show_error, sidebar_user
from services.auth_service import ROLE_LABELS
from services.order_priority import PRIORITIES, classify_priority
from services.sales_stats import load_sales_summary
from utils.formatting import format_currency

st.set_page_config(
    page_title="Restaurant POS",
    page_icon="🍗",
)

settings = get_settings()
session = get_session()


def login_form():
    st.title("🍗 Restaurant POS")
    st.caption("Sign in as a biller or kitchen manager.")

    with st.form("login_form", enter_to_submit=True):
        role = st.radio(
            "Role",
            options=[ROLE_BILLER, ROLE_KITCHEN_MANAGER],
            format_func=lambda r: ROLE_LABELS[r],
            horizontal=True,
        )
        email = st.text_input("Email")
        password = st.text_input("Password", type="password")

        if st.form_submit_button("Sign in", type="primary"):
            try:
                profile = get_auth_service().sign_in(email, password, expected_role=role)
            except PosError as e:
                show_error(e)
            else:
                session.sign_in(profile)
                st.rerun()


def biller_dashboard():
    st.title("📊 Dashboard")
    symbol = settings.receipt.currency_symbol

    try:
        summary = load_sales_summary(get_bill_store())
    except PosError as e:
        show_error(e)
        return

    col_today, col_week, col_month = st.columns(3)
    col_today.metric("Today's Sales", format_currency(summary.today_sales, symbol), f"{summary.today_orders} orders", delta_color="off")
    col_week.metric("This Week", format_currency(summary.weekly_sales, symbol), f"{summary.weekly_orders} orders", delta_color="off")
    col_month.metric("This Month", format_currency(summary.monthly_sales, symbol), f"{summary.monthly_orders} orders", delta_color="off")


@st.fragment(run_every=settings.refresh_seconds)
def kitchen_dashboard():
    if changed_since_last_load("kitchen_dashboard_orders", (BILLS_TABLE, BILL_ITEMS_TABLE)):
        try:
            st.session_state["kitchen_dashboard_orders"] = get_bill_store().find_bills(status=STATUS_ACTIVE)
        except PosError as e:
            show_error(e)
            return

    orders = st.session_state.get("kitchen_dashboard_orders", [])
    priorities = [classify_priority(order.created_at) for order in orders]

    st.metric("Active Orders", len(orders))
    df = pd.DataFrame(
        {"Priority": [p.upper() for p in PRIORITIES], "Orders": [priorities.count(p) for p in PRIORITIES]}
    )
    st.dataframe(df, hide_index=True)


if not session.is_authenticated:
    login_form()
    st.stop()

sidebar_user(session)

if session.role == ROLE_BILLER:
    biller_dashboard()
else:
    st.title("👨‍🍳 Kitchen Dashboard")
    kitchen_dashboard()
