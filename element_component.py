from typing import Callable, Dict, Iterable, List, Optional

import pandas as pd
import streamlit as st

from app_state import get_change_bus, get_settings
from domain.errors import DuplicateDraftError, PartialWriteError, PosError
from domain.models import ROLE_BILLER, LineItem, Receipt
from services.auth_service import ROLE_LABELS, SessionContext
from utils.formatting import format_currency


def page_guard(session: SessionContext, operation: str, page_title: str):
    """
    Stop rendering the page unless the signed-in role may run `operation`.
    """
    if not session.is_authenticated:
        st.warning("Please sign in on the Dashboard page first.")
        st.stop()
    if not session.can(operation):
        st.error(f"{page_title} is not available for {ROLE_LABELS.get(session.role, session.role)} accounts.")
        st.stop()
    sidebar_user(session)
    return session.user


def sidebar_user(session: SessionContext) -> None:
    user = session.user
    panel = "Biller Panel" if user.role == ROLE_BILLER else "Kitchen Panel"
    st.sidebar.markdown(f"**{user.display_name}**  \n{panel}")
    if st.sidebar.button("Sign out", key="sign_out"):
        session.sign_out()
        st.rerun()


def show_error(error: PosError) -> None:
    if isinstance(error, PartialWriteError):
        st.error(f"{error} (orders: {', '.join(error.order_ids)})")
    elif isinstance(error, DuplicateDraftError):
        st.warning(str(error))
    else:
        st.error(str(error))


def items_dataframe(items: List[LineItem], show_amounts: bool = True) -> pd.DataFrame:
    symbol = get_settings().receipt.currency_symbol
    rows = []
    for idx, item in enumerate(items, start=1):
        row = {"No": idx, "Item": item.food_item_name, "Qty": item.quantity}
        if show_amounts:
            row["Price"] = format_currency(item.unit_price, symbol)
            row["Total"] = format_currency(item.total, symbol)
        rows.append(row)
    return pd.DataFrame(rows)


def show_items(items: List[LineItem], show_amounts: bool = True) -> None:
    if not items:
        st.caption("No items")
        return
    st.dataframe(items_dataframe(items, show_amounts), hide_index=True, width="stretch")


def receipt_download(receipt: Receipt, label: str, key: str) -> None:
    st.download_button(
        label,
        data=receipt.content,
        file_name=receipt.filename,
        mime=receipt.mime,
        key=key,
    )


def changed_since_last_load(state_key: str, tables: Iterable[str]) -> bool:
    """
    True when the change feed moved since this view last loaded `state_key`.
    Without realtime every refresh counts as a change.
    """
    if not get_settings().realtime_enabled:
        return True
    version = get_change_bus().version(*tables)
    version_key = f"{state_key}__version"
    if st.session_state.get(version_key) == version and state_key in st.session_state:
        return False
    st.session_state[version_key] = version
    return True


@st.dialog("Confirmation")
def confirmation_dialog(question: str, summary: Dict[str, str], on_confirm: Callable[[], Optional[str]], state_name: str):
    """
    Ask before an irreversible action. `on_confirm` returns a success message.
    """
    st.write(question)
    if summary:
        df = pd.DataFrame(summary.items(), columns=["Key", "Value"])
        st.dataframe(df, hide_index=True)

    col_yes, col_no = st.columns(2)

    with col_yes:
        if st.button("Yes", type="primary", key="confirm_yes"):
            try:
                st.session_state[state_name] = on_confirm()
            except PosError as e:
                show_error(e)
            else:
                st.rerun()
    with col_no:
        if st.button("No", key="confirm_no"):
            st.rerun()
