"""Couche d'accès aux données (Supabase) pour l'identité acheteur.
Tables: users (profil applicatif, lié à auth.users via auth_user_id) et customers (compte B2B).
Contrairement aux autres lectures, une erreur de lecture du profil ou du compte client n'est pas
« avalée »: elle remonte en ProfileLookupError, le tunnel de commande ne continue pas sans eux.
"""
from typing import Any, Dict, Optional
import logging

import storefront.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)

PROFILE_COLUMNS = "id, auth_user_id, customer_id, role, email, account_type, net_terms_status"


class ProfileLookupError(RuntimeError):
    pass


def get_user_from_access_token(access_token: str) -> Dict[str, Any]:
    """Récupère et normalise l'utilisateur depuis supabase.auth.get_user(access_token)."""
    res = supabase_client.get_supabase().auth.get_user(access_token)
    user = getattr(res, "user", None) or {}
    if not isinstance(user, dict):
        user = {
            "id": getattr(user, "id", None),
            "email": getattr(user, "email", None),
            "user_metadata": getattr(user, "user_metadata", None),
        }
    return user or {}


def fetch_profile(auth_user_id: str) -> Optional[Dict[str, Any]]:
    """
    Profil applicatif par auth_user_id (table users, client service-role).
    - Retour: dict profil ou None si aucune ligne
    - Lève ProfileLookupError si la requête échoue
    """
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("users")
            .select(PROFILE_COLUMNS)
            .eq("auth_user_id", auth_user_id)
            .limit(1)
            .execute()
        )
    except Exception as e:
        logger.exception("identity.repository.fetch_profile failed auth_user_id=%s", auth_user_id)
        raise ProfileLookupError("Failed to load user profile.") from e
    rows = res.data or []
    return rows[0] if rows else None


def fetch_customer(customer_id: str) -> Optional[Dict[str, Any]]:
    """
    Compte client B2B (table customers).
    - Retour: dict client ou None si aucune ligne
    - Lève ProfileLookupError si la requête échoue
    """
    if not customer_id:
        return None
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("customers")
            .select("id, company, email, terms_allowed, billing_address, shipping_address")
            .eq("id", customer_id)
            .limit(1)
            .execute()
        )
    except Exception as e:
        logger.exception("identity.repository.fetch_customer failed customer_id=%s", customer_id)
        raise ProfileLookupError("Failed to load customer account.") from e
    rows = res.data or []
    return rows[0] if rows else None
