# module storefront.cart.views
"""Endpoints minimalistes du panier de session (le catalogue reste hors périmètre)."""
from typing import Any, Dict, List

from fastapi import APIRouter, Request
from pydantic import BaseModel

from storefront.cart.store import SessionCart

router = APIRouter(prefix="/api/v1/cart", tags=["Cart API"])


class CartReplaceRequest(BaseModel):
    items: List[Dict[str, Any]] = []


@router.get("")
def get_cart(request: Request) -> Dict[str, Any]:
    return SessionCart(request.session).snapshot().to_dict()


@router.put("")
def replace_cart(payload: CartReplaceRequest, request: Request) -> Dict[str, Any]:
    """Remplace le contenu du panier; les lignes invalides sont ignorées."""
    return SessionCart(request.session).replace(payload.items).to_dict()
