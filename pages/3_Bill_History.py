from datetime import date

import pandas as pd
import streamlit as st

from app_state import get_bill_store, get_renderer, get_session, get_settings
from domain.errors import PosError
from domain.models import STATUS_COMPLETED
from element_component import page_guard, show_error, show_items
from services.order_priority import filter_history, total_sales
from services.receipt_service import invoice_number
from utils.formatting import format_currency

st.set_page_config(page_title="Bill History", page_icon="📜")
st.sidebar.header("📜 Bill History")

session = get_session()
page_guard(session, "view_history", "Bill History")

symbol = get_settings().receipt.currency_symbol

st.title("📜 Bill History")

try:
    bills = get_bill_store().find_bills(status=STATUS_COMPLETED, order_by="updated_at", descending=True)
except PosError as e:
    show_error(e)
    st.stop()

col_search, col_date, col_all = st.columns([2, 1, 1], vertical_alignment="bottom")
search = col_search.text_input("Search by mobile number or customer name")
selected_date = col_date.date_input("Date", value=date.today(), format="DD/MM/YYYY")
show_all = col_all.toggle("All dates", value=False)

visible = filter_history(bills, search, None if show_all else selected_date)

col_count, col_sales = st.columns(2)
col_count.metric("Bills", len(visible))
col_sales.metric("Total Sales", format_currency(total_sales(visible), symbol))

if not visible:
    st.info("No bills found")
    st.stop()

df = pd.DataFrame(
    [
        {
            "Invoice": invoice_number(bill),
            "Date": bill.created_at.astimezone().strftime("%d/%m/%Y %H:%M") if bill.created_at else "",
            "Mobile": bill.mobile_suffix,
            "Customer": bill.customer_name or "Walk-in",
            "Items": len(bill.items),
            "Payment": (bill.payment_mode or "").title(),
            "Total": format_currency(bill.total, symbol),
        }
        for bill in visible
    ]
)
st.dataframe(df, hide_index=True, width="stretch")

st.subheader("Bill Details")
selected = st.selectbox(
    "Select bill",
    options=visible,
    format_func=lambda b: f"{invoice_number(b)} · #{b.mobile_suffix} · {format_currency(b.total, symbol)}",
)

if selected:
    show_items(selected.items)
    st.write(f"**Net Payable:** {format_currency(selected.total, symbol)}")
    receipt = get_renderer().render(selected, show_amounts=True)
    st.download_button(
        "⬇️ Download bill",
        data=receipt.content,
        file_name=receipt.filename,
        mime=receipt.mime,
        key=f"history_{selected.id}",
    )
