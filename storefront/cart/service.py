"""
Logique panier pure (pas de Stripe, pas de DB).
"""
from typing import Any, Dict, List
import logging

from pydantic import ValidationError

from .models import CartLine

logger = logging.getLogger(__name__)

# module storefront.cart.service
def parse_items(items: List[Dict[str, Any]]) -> List[CartLine]:
    """
    Normalise un panier brut [{productId, sku, title, price, quantity}, ...].
    - Agrège les quantités d'un même sku (première occurrence gardée pour titre/prix).
    - Ignore les lignes invalides (sku vide, quantity <= 0, prix illisible ou négatif).
    - Conserve l'ordre d'apparition des sku.
    """
    lines: Dict[str, CartLine] = {}
    for it in items or []:
        sku = str((it or {}).get("sku") or "").strip()
        try:
            qty = int((it or {}).get("quantity") or 0)
        except (TypeError, ValueError):
            qty = 0
        if not sku or qty <= 0:
            continue
        if sku in lines:
            existing = lines[sku]
            lines[sku] = existing.model_copy(update={"quantity": existing.quantity + qty})
            continue
        try:
            lines[sku] = CartLine.model_validate({**it, "sku": sku, "quantity": qty})
        except ValidationError:
            logger.warning("cart.parse_items skipped invalid line sku=%s", sku)
    return list(lines.values())
