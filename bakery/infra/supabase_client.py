"""
Client Supabase (GoTrue): sert uniquement à résoudre l'utilisateur d'une session.
Les données métier (panier, commandes, stock) passent par bakery.infra.database.
"""
from typing import Optional
from supabase import create_client, Client
from bakery.config import SUPABASE_URL, SUPABASE_ANON

_supabase: Optional[Client] = None

def get_supabase() -> Client:
    global _supabase
    if _supabase is None:
        if not SUPABASE_URL or not SUPABASE_ANON:
            raise RuntimeError("SUPABASE_URL/SUPABASE_ANON_KEY manquants")
        _supabase = create_client(SUPABASE_URL, SUPABASE_ANON)
    return _supabase
