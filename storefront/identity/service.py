"""Résolveur d'identité (lecture pure, aucun effet de bord).
Rôles:
- Normaliser l'utilisateur Supabase issu du jeton (Bearer ou cookie).
- Déterminer si l'acheteur est authentifié (profil + client B2B éventuel) ou invité.
- Calculer l'éligibilité au paiement à terme (NET terms).
Un acheteur authentifié dont le profil ne peut pas être chargé est une erreur bloquante
(ProfileUnavailableError): le tunnel ne doit pas créer de commande dans ce cas.
"""
from typing import Any, Dict, Optional
import logging

from storefront.identity import repository
from storefront.identity.models import Identity, Requester, NET_TERMS_APPROVED

logger = logging.getLogger(__name__)


class ProfileUnavailableError(RuntimeError):
    pass


def get_user_from_token(access_token: str) -> Dict[str, Any]:
    """Normalise user issu de supabase.auth.get_user(access_token): {id, email, metadata, token}."""
    raw = repository.get_user_from_access_token(access_token)
    return {
        "id": raw.get("id"),
        "email": raw.get("email"),
        "metadata": raw.get("user_metadata") or {},
        "token": access_token,
    }


def _load_profile(auth_user_id: str) -> Dict[str, Any]:
    try:
        profile = repository.fetch_profile(auth_user_id)
    except repository.ProfileLookupError as e:
        raise ProfileUnavailableError(str(e)) from e
    if not profile:
        raise ProfileUnavailableError("User profile not found. Please contact support.")
    return profile


def resolve_identity(user: Optional[Dict[str, Any]], guest_email: Optional[str] = None) -> Identity:
    """
    Produit l'identité courante.
    - Invité: Identity.guest(email saisi)
    - Authentifié: relit le profil (jamais de cache de session) puis le client lié
    - Statut NET: 'approved' si customers.terms_allowed, sinon users.net_terms_status
    """
    if not user or not user.get("id"):
        return Identity.guest(guest_email)

    auth_user_id = str(user["id"])
    profile = _load_profile(auth_user_id)

    customer_id = profile.get("customer_id")
    try:
        customer = repository.fetch_customer(customer_id) if customer_id else None
    except repository.ProfileLookupError as e:
        raise ProfileUnavailableError(str(e)) from e
    if customer and customer.get("terms_allowed"):
        terms_status = NET_TERMS_APPROVED
    else:
        terms_status = profile.get("net_terms_status")

    return Identity(
        True,
        auth_user_id=auth_user_id,
        profile_id=profile.get("id"),
        customer_id=customer_id,
        email=user.get("email") or profile.get("email"),
        account_type=profile.get("account_type"),
        net_terms_status=terms_status,
        customer=customer,
    )


def resolve_requester(user: Optional[Dict[str, Any]]) -> Optional[Requester]:
    """Identité minimale pour la fonction de paiement (None pour un appel invité)."""
    if not user or not user.get("id"):
        return None
    auth_user_id = str(user["id"])
    profile = repository.fetch_profile(auth_user_id)
    return Requester(auth_user_id=auth_user_id, profile_id=(profile or {}).get("id"))
