"""Table fixe des modes de livraison (forfaits, aucun calcul poids/distance)."""
from decimal import Decimal
from typing import Dict, List, Any

from .errors import CheckoutValidationError


class ShippingMethod:
    def __init__(self, code: str, name: str, cost: Decimal, days: str):
        self.code = code
        self.name = name
        self.cost = cost
        self.days = days

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.code, "name": self.name, "cost": float(self.cost), "days": self.days}


SHIPPING_METHODS: List[ShippingMethod] = [
    ShippingMethod("standard", "Standard Shipping", Decimal("0.00"), "5-7 business days"),
    ShippingMethod("expedited", "Expedited Shipping", Decimal("25.00"), "2-3 business days"),
    ShippingMethod("overnight", "Overnight Shipping", Decimal("50.00"), "1 business day"),
]
DEFAULT_SHIPPING_METHOD = SHIPPING_METHODS[0].code

_BY_CODE = {m.code: m for m in SHIPPING_METHODS}


def get_shipping_method(code: str) -> ShippingMethod:
    method = _BY_CODE.get((code or "").strip().lower())
    if method is None:
        raise CheckoutValidationError("Please choose a valid shipping method.")
    return method
