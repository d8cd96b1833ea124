"""
Panier (collaborateur externe du tunnel): lignes ordonnées et sous-total calculé.
Lecture seule pour le checkout.
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, Field

CENT = Decimal("0.01")

def to_money(value: Any) -> Decimal:
    return Decimal(str(value or 0)).quantize(CENT, rounding=ROUND_HALF_UP)


class CartLine(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    product_id: Optional[str] = Field(default=None, alias="productId")
    sku: str
    title: str = ""
    unit_price: Decimal = Field(alias="price", ge=0)
    quantity: int = Field(ge=1)

    @property
    def line_total(self) -> Decimal:
        return to_money(self.unit_price * self.quantity)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "productId": self.product_id,
            "sku": self.sku,
            "title": self.title,
            "price": float(to_money(self.unit_price)),
            "quantity": self.quantity,
        }


class CartSnapshot:
    def __init__(self, lines: Iterable[CartLine] = ()):
        self.lines: List[CartLine] = list(lines)

    @property
    def is_empty(self) -> bool:
        return not self.lines

    @property
    def subtotal(self) -> Decimal:
        return to_money(sum((line.line_total for line in self.lines), Decimal("0")))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "items": [line.to_dict() for line in self.lines],
            "subtotal": float(self.subtotal),
            "count": sum(line.quantity for line in self.lines),
        }
