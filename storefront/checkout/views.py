# module storefront.checkout.views
"""
Routes du tunnel de commande.
- API JSON /api/v1/checkout/*: chaque réponse est une CheckoutView; une erreur métier
  donne le statut HTTP de son kind (validation 400, precondition 409, payment 402,
  reconciliation 502, persistence 500) avec la vue complète dans le corps.
- Page /checkout: URL de retour de la passerelle; traite les paramètres puis redirige (303)
  vers /checkout nu ou vers la confirmation.
"""
from typing import Any, Dict, Optional
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, RedirectResponse
from pydantic import BaseModel, ConfigDict, Field
from starlette.status import HTTP_303_SEE_OTHER

from storefront.config import CHECKOUT_PATH
from storefront.payments.outcomes import parse_payment_outcome
from storefront.utils.rate_limit import optional_rate_limit
from storefront.utils.security import get_access_token, get_optional_user

from .errors import status_for_kind
from .models import DetailsForm
from .navigation import ResponseNavigator
from .orchestrator import CheckoutOrchestrator, CheckoutView

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Checkout"])


class PaymentResultRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    status: str
    payment_intent_id: Optional[str] = Field(default=None, alias="paymentIntentId")
    redirect_url: Optional[str] = Field(default=None, alias="redirectUrl")
    error: Optional[str] = None


def get_orchestrator(
    request: Request,
    user: Optional[Dict[str, Any]] = Depends(get_optional_user),
) -> CheckoutOrchestrator:
    return CheckoutOrchestrator(
        request.session,
        user=user,
        access_token=get_access_token(request),
        navigator=ResponseNavigator(),
    )


def _render(view: CheckoutView) -> JSONResponse:
    status_code = 200 if view.ok else status_for_kind(view.error_kind or "")
    return JSONResponse(status_code=status_code, content=view.to_dict())


@router.get("/api/v1/checkout")
async def checkout_view(orchestrator: CheckoutOrchestrator = Depends(get_orchestrator)):
    return _render(await orchestrator.load())


@router.post("/api/v1/checkout/details", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
async def submit_details(form: DetailsForm, orchestrator: CheckoutOrchestrator = Depends(get_orchestrator)):
    """Soumission du formulaire Details (card -> Payment, terms -> Complete + redirect)."""
    return _render(await orchestrator.submit_details(form))


@router.post("/api/v1/checkout/payment-intent", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
async def create_payment_intent(orchestrator: CheckoutOrchestrator = Depends(get_orchestrator)):
    return _render(await orchestrator.create_payment_intent())


@router.post("/api/v1/checkout/payment-result", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
async def payment_result(payload: PaymentResultRequest, orchestrator: CheckoutOrchestrator = Depends(get_orchestrator)):
    """Issue rapportée par l'UI passerelle dans le même onglet (succeeded -> finalize)."""
    outcome = parse_payment_outcome(payload.model_dump(by_alias=True))
    return _render(await orchestrator.report_payment_outcome(outcome))


@router.post("/api/v1/checkout/back")
async def back_to_details(orchestrator: CheckoutOrchestrator = Depends(get_orchestrator)):
    return _render(await orchestrator.back_to_details())


@router.get(CHECKOUT_PATH, name="checkout_page")
async def checkout_page(request: Request, orchestrator: CheckoutOrchestrator = Depends(get_orchestrator)):
    """
    Retour navigateur (payment_intent, redirect_status, success=true).
    - Succès finalisé: 303 vers /order-confirmation/{id}?method=card
    - Autre statut ou échec de finalize: 303 vers /checkout nu, message conservé en session
    - Sans paramètre: vue courante (JSON)
    """
    view = await orchestrator.handle_return(request.query_params)
    navigator = orchestrator.navigator
    if isinstance(navigator, ResponseNavigator) and navigator.target:
        return RedirectResponse(url=navigator.target, status_code=HTTP_303_SEE_OTHER)
    return _render(view)
