"""
Construction et persistance du brouillon de commande.
- Le total est calculé une seule fois ici: somme des lignes + forfait de livraison.
- Écriture: création (ou mise à jour de la commande Pending active), puis remplacement
  complet des lignes en une seule transaction (RPC replace_order_lines).
"""
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional
import logging

from storefront.cart.models import CartSnapshot, to_money
from storefront.identity.models import Identity
from storefront.orders import repository as orders_repo
from storefront.orders.models import (
    ORDER_PENDING,
    PAYMENT_METHOD_TERMS,
    PAYMENT_STATUS_PENDING,
    PAYMENT_STATUS_TERMS,
)

from .errors import OrderPersistenceError
from .models import DetailsForm
from .shipping import ShippingMethod, get_shipping_method

logger = logging.getLogger(__name__)


class OrderDraft:
    def __init__(
        self,
        form: DetailsForm,
        cart: CartSnapshot,
        identity: Identity,
        shipping_method: ShippingMethod,
        currency: str,
    ):
        self.form = form
        self.cart = cart
        self.identity = identity
        self.shipping_method = shipping_method
        self.currency = currency
        self.subtotal: Decimal = cart.subtotal
        self.total: Decimal = to_money(self.subtotal + shipping_method.cost)

    @property
    def payment_method(self) -> str:
        return self.form.payment_method

    @property
    def contact_email(self) -> Optional[str]:
        if self.identity.is_authenticated:
            return self.identity.email
        return (self.form.email or "").strip() or None

    def _notes(self) -> Optional[str]:
        notes = (self.form.notes or "").strip()
        if not self.identity.is_authenticated and self.contact_email:
            guest_line = f"Guest Email: {self.contact_email}"
            notes = f"{notes}\n\n{guest_line}" if notes else guest_line
        return notes or None

    def order_payload(self) -> Dict[str, Any]:
        is_terms = self.payment_method == PAYMENT_METHOD_TERMS
        return {
            "customer_id": self.identity.customer_id,
            "status": ORDER_PENDING,
            "currency": self.currency,
            "total": float(self.total),
            "shipping_cost": float(self.shipping_method.cost),
            "shipping_method": self.shipping_method.code,
            "billing_address": self.form.billing.to_record(),
            "shipping_address": self.form.effective_shipping.to_record(),
            "po_number": (self.form.po_number or "").strip() or None,
            "notes": self._notes(),
            "placed_at": datetime.now(timezone.utc).isoformat(),
            "created_by": self.identity.profile_id,
            "payment_status": PAYMENT_STATUS_TERMS if is_terms else PAYMENT_STATUS_PENDING,
        }

    def line_rows(self, order_id: str) -> List[Dict[str, Any]]:
        return [
            {
                "order_id": order_id,
                "product_id": line.product_id,
                "sku": line.sku,
                "qty": line.quantity,
                "unit_price": float(to_money(line.unit_price)),
                "currency": self.currency,
            }
            for line in self.cart.lines
        ]


def build_draft(form: DetailsForm, cart: CartSnapshot, identity: Identity, currency: str) -> OrderDraft:
    """Suppose un formulaire déjà validé (validate_details)."""
    return OrderDraft(form, cart, identity, get_shipping_method(form.shipping_method), currency)


def save_draft(draft: OrderDraft, active_order_id: Optional[str] = None) -> str:
    """
    Persiste le brouillon et retourne l'id de commande.
    - active_order_id: commande Pending d'une tentative précédente, réutilisée si toujours Pending
    - OrderPersistenceError si la commande ou ses lignes ne peuvent pas être écrites
    """
    payload = draft.order_payload()
    try:
        order_id = None
        if active_order_id:
            row = orders_repo.update_pending_order(active_order_id, payload)
            order_id = (row or {}).get("id") or (active_order_id if row else None)
        if not order_id:
            order_id = orders_repo.create_order(payload)["id"]
            logger.info("checkout.drafts order created order_id=%s total=%s", order_id, payload["total"])
        orders_repo.replace_order_lines(order_id, draft.line_rows(order_id))
    except orders_repo.OrderStoreError as e:
        raise OrderPersistenceError(str(e) or "Failed to save your order. Please try again.") from e
    return str(order_id)
