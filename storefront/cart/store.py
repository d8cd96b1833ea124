"""
Panier porté par la session (cookie signé Starlette).
Seules les opérations utiles au tunnel existent: snapshot, replace, clear.
"""
from typing import Any, Dict, List, MutableMapping

from storefront.config import CART_SESSION_KEY
from .models import CartSnapshot
from .service import parse_items


class SessionCart:
    def __init__(self, session: MutableMapping[str, Any]):
        self.session = session

    def snapshot(self) -> CartSnapshot:
        raw = self.session.get(CART_SESSION_KEY)
        return CartSnapshot(parse_items(raw if isinstance(raw, list) else []))

    def replace(self, items: List[Dict[str, Any]]) -> CartSnapshot:
        snapshot = CartSnapshot(parse_items(items))
        if snapshot.is_empty:
            self.clear()
        else:
            self.session[CART_SESSION_KEY] = [line.to_dict() for line in snapshot.lines]
        return snapshot

    def clear(self) -> None:
        self.session.pop(CART_SESSION_KEY, None)
