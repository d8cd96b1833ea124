# module storefront.orders.views
"""Vue de confirmation: /order-confirmation/{order_id}?method=card|terms."""
from typing import Any, Dict, Optional
import logging

from fastapi import APIRouter, Depends, HTTPException

from storefront.identity.repository import ProfileLookupError
from storefront.identity.service import resolve_requester
from storefront.orders.repository import OrderStoreError
from storefront.orders.service import build_confirmation, OrderNotFoundError
from storefront.utils.security import get_optional_user

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Orders"])


@router.get("/order-confirmation/{order_id}")
def order_confirmation(
    order_id: str,
    method: Optional[str] = None,
    user: Optional[Dict[str, Any]] = Depends(get_optional_user),
) -> Dict[str, Any]:
    """
    Retourne la commande confirmée avec ses lignes.
    - 404 si inconnue ou appartenant à un autre compte
    - 503 si la base est indisponible
    """
    try:
        return build_confirmation(order_id, resolve_requester(user), method=method)
    except OrderNotFoundError:
        raise HTTPException(status_code=404, detail="We could not find this order.")
    except (OrderStoreError, ProfileLookupError):
        logger.exception("Erreur order_confirmation order_id=%s", order_id)
        raise HTTPException(status_code=503, detail="Unable to load your order right now. Please refresh.")
