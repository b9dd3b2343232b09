# jafpos/config.py

import os
from dataclasses import dataclass

from dotenv import load_dotenv


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class ReceiptSettings:
    restaurant_name: str = "JAF HOT CHICKEN"
    address_lines: tuple = ("57K, SENTHIL COMPLEX, TENKASI", "TAMIL NADU 627811")
    phone: str = "+91 88385 14326"
    company: str = "Techverse infotech Private Limited"
    currency_symbol: str = "₹"


@dataclass(frozen=True)
class Settings:
    supabase_url: str
    supabase_key: str
    schema: str = "public"
    timeout_seconds: int = 10
    realtime_enabled: bool = False
    refresh_seconds: int = 5
    log_level: str = "INFO"
    receipt: ReceiptSettings = ReceiptSettings()


def load_settings() -> Settings:
    """
    Read settings from the environment (and a local .env file if present).
    """
    load_dotenv()

    defaults = ReceiptSettings()
    address = os.getenv("RESTAURANT_ADDRESS")
    receipt = ReceiptSettings(
        restaurant_name=os.getenv("RESTAURANT_NAME", defaults.restaurant_name),
        address_lines=tuple(line.strip() for line in address.split("|")) if address else defaults.address_lines,
        phone=os.getenv("RESTAURANT_PHONE", defaults.phone),
        company=os.getenv("RESTAURANT_COMPANY", defaults.company),
        currency_symbol=os.getenv("CURRENCY_SYMBOL", defaults.currency_symbol),
    )

    return Settings(
        supabase_url=os.getenv("SUPABASE_URL", ""),
        supabase_key=os.getenv("SUPABASE_KEY", ""),
        schema=os.getenv("SCHEMA") or "public",
        timeout_seconds=int(os.getenv("SUPABASE_TIMEOUT_SECONDS", "10")),
        realtime_enabled=_env_flag("REALTIME_ENABLED"),
        refresh_seconds=int(os.getenv("REFRESH_SECONDS", "5")),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        receipt=receipt,
    )
