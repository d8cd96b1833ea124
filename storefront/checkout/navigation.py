# module storefront.checkout.navigation
from abc import ABC, abstractmethod
from typing import Optional
from urllib.parse import quote, urlencode

from storefront.config import ORDER_CONFIRMATION_PATH


def confirmation_url(order_id: str, method: str) -> str:
    """/order-confirmation/{orderId}?method=card|terms"""
    return f"{ORDER_CONFIRMATION_PATH}/{quote(str(order_id), safe='')}?{urlencode({'method': method})}"


class Navigator(ABC):
    @abstractmethod
    def redirect_to(self, url: str) -> None:
        """Navigation complète vers une autre page."""

    @abstractmethod
    def replace_url(self, url: str) -> None:
        """Réécrit l'URL courante sans rechargement (retrait des paramètres de retour)."""


class ResponseNavigator(Navigator):
    """
    Navigator côté serveur: mémorise la cible; la vue la traduit ensuite
    en RedirectResponse (pages) ou en champ 'redirect' (API JSON).
    """

    def __init__(self):
        self.redirect: Optional[str] = None
        self.replaced: Optional[str] = None

    def redirect_to(self, url: str) -> None:
        self.redirect = url

    def replace_url(self, url: str) -> None:
        self.replaced = url

    @property
    def target(self) -> Optional[str]:
        return self.redirect or self.replaced
