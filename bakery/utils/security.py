from fastapi import Request, HTTPException
from typing import Optional, Dict, Any
import logging

COOKIE_NAME = "sb_access"

logger = logging.getLogger(__name__)

def _token_from_request(request: Request) -> Optional[str]:
    # Hybride: priorité au Bearer, fallback cookie
    token = None
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        token = auth_header[7:].strip()
    if not token:
        token = request.cookies.get(COOKIE_NAME)
    return token or None

def get_current_user(request: Request) -> Dict[str, Any]:
    token = _token_from_request(request)
    if not token:
        raise HTTPException(status_code=401, detail="Non authentifié")

    try:
        from bakery.auth.service import get_user_from_token as _svc_get_user_from_token
        user = _svc_get_user_from_token(token)
        if not user.get("id") or not user.get("email"):
            raise HTTPException(status_code=401, detail="Session expirée, veuillez vous connecter")
        return user
    except HTTPException:
        raise
    except Exception:
        logger.exception("security.get_current_user failed")
        raise HTTPException(status_code=401, detail="Session expirée, veuillez vous connecter")

def get_optional_user(request: Request) -> Optional[Dict[str, Any]]:
    """
    Utilisateur de session si présent, None pour un invité.
    - Sans token: invité
    - Token fourni mais invalide/expiré: 401 (on ne bascule pas silencieusement en invité)
    """
    if not _token_from_request(request):
        return None
    return get_current_user(request)
