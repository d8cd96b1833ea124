from fastapi import Request, HTTPException
from typing import Optional, Dict, Any
import logging

logger = logging.getLogger(__name__)

COOKIE_NAME = "sb_access"

def get_access_token(request: Request) -> Optional[str]:
    # Hybride: priorité au Bearer, fallback cookie
    token = None
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        token = auth_header[7:].strip()
    if not token:
        token = request.cookies.get(COOKIE_NAME)
    return token or None

def get_optional_user(request: Request) -> Optional[Dict[str, Any]]:
    """
    Utilisateur courant ou None (paiement invité autorisé).
    Un jeton présent mais invalide reste une erreur 401: on ne retombe pas silencieusement en invité.
    """
    token = get_access_token(request)
    if not token:
        return None
    try:
        from storefront.identity.service import get_user_from_token
        user = get_user_from_token(token)
    except Exception:
        logger.exception("security.get_optional_user token rejected")
        raise HTTPException(status_code=401, detail="Session expired, please sign in again")
    if not user.get("id"):
        raise HTTPException(status_code=401, detail="Session expired, please sign in again")
    return user
