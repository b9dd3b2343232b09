import logging

import streamlit as st

from config import Settings, load_settings
from data_integrator import BILL_ITEMS_TABLE, BILLS_TABLE, AuthStore, BillStore, MenuStore
from services.auth_service import AuthService, SessionContext
from services.change_feed import ChangeBus, RealtimeBridge
from services.menu_service import MenuService
from services.order_lifecycle import OrderLifecycleController
from services.receipt_service import ReceiptRenderer
from supabase_client import get_supabase_client


@st.cache_resource
def get_settings() -> Settings:
    settings = load_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return settings


@st.cache_resource
def get_client():
    return get_supabase_client(get_settings())


@st.cache_resource
def get_change_bus() -> ChangeBus:
    settings = get_settings()
    bus = ChangeBus()
    if settings.realtime_enabled:
        RealtimeBridge(
            settings.supabase_url,
            settings.supabase_key,
            bus,
            tables=(BILLS_TABLE, BILL_ITEMS_TABLE),
            schema=settings.schema,
        ).start()
    return bus


@st.cache_resource
def get_bill_store() -> BillStore:
    return BillStore(get_client(), get_settings().schema)


@st.cache_resource
def get_controller() -> OrderLifecycleController:
    return OrderLifecycleController(
        get_bill_store(),
        change_bus=get_change_bus(),
        renderer=get_renderer(),
    )


@st.cache_resource
def get_renderer() -> ReceiptRenderer:
    return ReceiptRenderer(get_settings().receipt)


@st.cache_resource
def get_menu_service() -> MenuService:
    return MenuService(MenuStore(get_client(), get_settings().schema))


@st.cache_resource
def get_auth_service() -> AuthService:
    return AuthService(AuthStore(get_client(), get_settings().schema))


def get_session() -> SessionContext:
    """
    Session for the current browser tab, loaded from st.session_state.
    """
    session = SessionContext(st.session_state)
    session.load()
    return session
