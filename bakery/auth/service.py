from typing import Dict, Any
from .repository import get_user_from_access_token as _repo_get_user_from_token

def get_user_from_token(access_token: str) -> Dict[str, Any]:
    """Normalise user issu de supabase.auth.get_user(access_token):
    - Retourne {id, email, metadata, token}
    - L'email sert de clé vers la table applicative customers
    """
    raw = _repo_get_user_from_token(access_token)
    email = (raw.get("email") or "").strip().lower()
    metadata = raw.get("user_metadata") or {}
    return {"id": raw.get("id"), "email": email, "metadata": metadata, "token": access_token}
