# module storefront.orders.models
"""Types de la commande: statuts, adresse et constantes de paiement."""
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict

ORDER_PENDING = "Pending"
ORDER_CONFIRMED = "Confirmed"

PAYMENT_STATUS_PENDING = "pending"
PAYMENT_STATUS_TERMS = "terms"

PAYMENT_METHOD_CARD = "card"
PAYMENT_METHOD_TERMS = "terms"
PAYMENT_METHODS = (PAYMENT_METHOD_CARD, PAYMENT_METHOD_TERMS)

ADDRESS_FIELDS = ("name", "company", "address1", "address2", "city", "state", "zip", "country", "phone")
REQUIRED_ADDRESS_FIELDS = ("name", "address1", "city", "state", "zip")


class Address(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str = ""
    company: str = ""
    address1: str = ""
    address2: str = ""
    city: str = ""
    state: str = ""
    zip: str = ""
    country: str = "US"
    phone: str = ""

    @classmethod
    def from_record(cls, data: Any) -> "Address":
        # colonnes jsonb: {} ou null possibles, valeurs null tolérées
        cleaned = {k: v for k, v in (data or {}).items() if v is not None} if isinstance(data, dict) else {}
        return cls.model_validate(cleaned)

    def to_record(self) -> Dict[str, Any]:
        return self.model_dump()

    def same_as(self, other: "Address") -> bool:
        def _norm(v: Any) -> str:
            return str(v or "").strip().lower()
        return all(_norm(getattr(self, f)) == _norm(getattr(other, f)) for f in ADDRESS_FIELDS)
