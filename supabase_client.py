# supabase_client.py
from supabase import Client, ClientOptions, create_client

from config import Settings, load_settings


def get_supabase_client(settings: Settings = None) -> Client:
    settings = settings or load_settings()

    if not settings.supabase_url or not settings.supabase_key:
        raise RuntimeError("SUPABASE_URL / SUPABASE_KEY are not set in the environment")

    options = ClientOptions(postgrest_client_timeout=settings.timeout_seconds)
    return create_client(settings.supabase_url, settings.supabase_key, options=options)
