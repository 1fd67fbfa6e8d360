from supabase import create_client, Client
from app.core.config import settings
from app.services.store import Store, InMemoryStore

_supabase_client: Client | None = None
_store: Store | None = None


def get_supabase() -> Client:
    global _supabase_client
    if _supabase_client is None:
        _supabase_client = create_client(
            settings.SUPABASE_URL,
            settings.SUPABASE_SERVICE_KEY or settings.SUPABASE_KEY,
        )
    return _supabase_client


def get_store() -> Store:
    """FastAPI dependency returning the process-wide persistence store."""
    global _store
    if _store is None:
        if settings.STORE_BACKEND == "supabase":
            from app.services.supabase_store import SupabaseStore
            _store = SupabaseStore(get_supabase())
        else:
            _store = InMemoryStore()
    return _store
