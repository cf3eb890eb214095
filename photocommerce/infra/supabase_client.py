from typing import Any, Dict, List, Optional
from supabase import create_client, Client
from photocommerce.config import SUPABASE_URL, SUPABASE_ANON, SUPABASE_SERVICE_KEY

_supabase: Optional[Client] = None
_service_supabase: Optional[Client] = None

def get_supabase() -> Client:
    """Client 'anon': utilisé pour vérifier les jetons de session (auth.get_user)."""
    global _supabase
    if _supabase is None:
        if not SUPABASE_URL or not SUPABASE_ANON:
            raise RuntimeError("SUPABASE_URL/SUPABASE_ANON_KEY manquants")
        _supabase = create_client(SUPABASE_URL, SUPABASE_ANON)
    return _supabase

def get_service_supabase() -> Client:
    """
    Client service-role (bypass RLS) pour le ledger et les webhooks.
    Le cloisonnement par studio est appliqué par les services avant toute mutation.
    """
    global _service_supabase
    if not SUPABASE_SERVICE_KEY:
        raise RuntimeError("SUPABASE_SERVICE_KEY manquant pour get_service_supabase()")
    if _service_supabase is None:
        _service_supabase = create_client(SUPABASE_URL, SUPABASE_SERVICE_KEY)
    return _service_supabase

def response_rows(res) -> List[Dict[str, Any]]:
    """Normalise res.data (liste, dict ou None selon la version de supabase-py) en liste."""
    data = getattr(res, "data", None)
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        return [data]
    return []

def first_row(res) -> Optional[Dict[str, Any]]:
    rows = response_rows(res)
    return rows[0] if rows else None
