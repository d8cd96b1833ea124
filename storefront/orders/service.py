"""Vue de confirmation de commande (lecture seule).
- Charge la commande et ses lignes.
- Vérifie la propriété (commande invité: accessible par son id).
- Traduit le payment_status en libellé lisible.
"""
from typing import Any, Dict, Optional

from storefront.cart.models import to_money
from storefront.identity.models import Requester
from storefront.orders import repository
from storefront.orders.models import Address


class OrderNotFoundError(LookupError):
    pass


def friendly_payment_status(status: Optional[str]) -> str:
    value = str(status or "").strip()
    lowered = value.lower()
    if lowered in ("paid", "succeeded"):
        return "Payment Completed"
    if lowered == "pending":
        return "Payment Pending"
    if lowered == "terms":
        return "Payment on Account Terms"
    if lowered == "failed":
        return "Payment Failed"
    return value[:1].upper() + value[1:]


def _line_view(line: Dict[str, Any]) -> Dict[str, Any]:
    qty = int(line.get("qty") or 0)
    unit_price = to_money(line.get("unit_price"))
    return {
        "sku": line.get("sku"),
        "productId": line.get("product_id"),
        "qty": qty,
        "unitPrice": float(unit_price),
        "lineTotal": float(to_money(unit_price * qty)),
        "currency": line.get("currency"),
    }


def build_confirmation(order_id: str, requester: Optional[Requester], method: Optional[str] = None) -> Dict[str, Any]:
    """
    Construit la vue de confirmation.
    - OrderNotFoundError si l'id est inconnu ou si la commande appartient à un autre compte.
    """
    order = repository.get_order_with_lines(order_id)
    if not order:
        raise OrderNotFoundError(order_id)
    if not (requester or Requester()).owns(order):
        raise OrderNotFoundError(order_id)

    lines = [_line_view(line) for line in (order.get("order_lines") or [])]
    return {
        "orderId": order.get("id"),
        "status": order.get("status"),
        "method": method,
        "paymentStatus": order.get("payment_status"),
        "paymentStatusLabel": friendly_payment_status(order.get("payment_status")),
        "currency": order.get("currency"),
        "total": float(to_money(order.get("total"))),
        "shippingCost": float(to_money(order.get("shipping_cost"))),
        "shippingMethod": order.get("shipping_method"),
        "poNumber": order.get("po_number") or None,
        "placedAt": order.get("placed_at"),
        "billingAddress": Address.from_record(order.get("billing_address")).to_record() if order.get("billing_address") else None,
        "shippingAddress": Address.from_record(order.get("shipping_address")).to_record() if order.get("shipping_address") else None,
        "lines": lines,
    }
