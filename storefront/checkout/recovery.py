"""
Cache de paiement en attente (reprise après redirection vers la passerelle).
Une seule clé namespacée dans la session signée, valeur JSON {orderId, amount, email?}.
Jamais de donnée carte. Contenu absent ou illisible = aucun paiement en attente.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, MutableMapping, Optional
import json
import logging

from storefront.config import PENDING_PAYMENT_STORAGE_KEY

logger = logging.getLogger(__name__)


class PendingPayment:
    def __init__(self, order_id: str, amount: float, email: Optional[str] = None):
        self.order_id = order_id
        self.amount = amount
        self.email = email

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"orderId": self.order_id, "amount": self.amount}
        if self.email:
            data["email"] = self.email
        return data

    @classmethod
    def from_dict(cls, data: Any) -> Optional["PendingPayment"]:
        if not isinstance(data, dict):
            return None
        order_id = data.get("orderId")
        amount = data.get("amount")
        if not isinstance(order_id, str) or not order_id:
            return None
        if isinstance(amount, bool) or not isinstance(amount, (int, float)):
            return None
        email = data.get("email")
        return cls(order_id, float(amount), email if isinstance(email, str) and email else None)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, PendingPayment) and self.to_dict() == other.to_dict()

    def __repr__(self) -> str:
        return f"PendingPayment(order_id={self.order_id!r}, amount={self.amount!r})"


class RecoveryStore(ABC):
    @abstractmethod
    def get(self) -> Optional[PendingPayment]:
        ...

    @abstractmethod
    def set(self, pending: PendingPayment) -> None:
        ...

    @abstractmethod
    def clear(self) -> None:
        ...


class SessionRecoveryStore(RecoveryStore):
    def __init__(self, session: MutableMapping[str, Any], key: str = PENDING_PAYMENT_STORAGE_KEY):
        self.session = session
        self.key = key

    def get(self) -> Optional[PendingPayment]:
        raw = self.session.get(self.key)
        if raw is None:
            return None
        try:
            pending = PendingPayment.from_dict(json.loads(raw))
        except (TypeError, ValueError):
            pending = None
        if pending is None:
            logger.warning("checkout.recovery malformed record discarded key=%s", self.key)
            self.session.pop(self.key, None)
        return pending

    def set(self, pending: PendingPayment) -> None:
        self.session[self.key] = json.dumps(pending.to_dict())

    def clear(self) -> None:
        self.session.pop(self.key, None)
