"""
Client de la fonction de paiement, vu depuis le tunnel de commande.
- LocalPaymentBackend: appel en processus (service.py), par défaut
- HttpPaymentBackend: POST {base}/api/v1/payments/stripe-payment (httpx), si PAYMENT_BACKEND_URL est défini
Les deux retournent des résultats typés (outcomes.py), jamais d'exception pour un refus métier.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional
import logging

import httpx
from starlette.concurrency import run_in_threadpool

from storefront.config import PAYMENT_BACKEND_URL, PAYMENT_BACKEND_TIMEOUT
from storefront.identity.models import Requester

from . import service
from .outcomes import FinalizeFailed, FinalizeOutcome, FinalizeSucceeded, IntentCreated, IntentFailed, IntentOutcome

logger = logging.getLogger(__name__)

STRIPE_PAYMENT_PATH = "/api/v1/payments/stripe-payment"


class PaymentBackend(ABC):
    @abstractmethod
    async def create_intent(self, order_id: str, currency: str, receipt_email: Optional[str] = None) -> IntentOutcome:
        ...

    @abstractmethod
    async def finalize(self, payment_intent_id: str) -> FinalizeOutcome:
        ...


def _intent_outcome(data: Dict[str, Any]) -> IntentOutcome:
    if not data.get("clientSecret") or not data.get("paymentIntentId"):
        return IntentFailed("Unable to start payment. Please try again.")
    return IntentCreated(data["clientSecret"], data["paymentIntentId"], data.get("status") or "")


def _finalize_outcome(data: Dict[str, Any]) -> FinalizeOutcome:
    if not data.get("orderId"):
        return FinalizeFailed("Payment backend returned no order id")
    return FinalizeSucceeded(str(data["orderId"]), str(data.get("status") or ""))


class LocalPaymentBackend(PaymentBackend):
    def __init__(self, requester: Optional[Requester] = None):
        self.requester = requester

    async def create_intent(self, order_id: str, currency: str, receipt_email: Optional[str] = None) -> IntentOutcome:
        try:
            data = await run_in_threadpool(
                service.create_payment_intent, order_id, currency.lower(), receipt_email, self.requester
            )
        except service.PaymentBackendError as e:
            return IntentFailed(e.message)
        return _intent_outcome(data)

    async def finalize(self, payment_intent_id: str) -> FinalizeOutcome:
        try:
            data = await run_in_threadpool(service.finalize_payment, payment_intent_id, self.requester)
        except service.PaymentBackendError as e:
            return FinalizeFailed(e.message)
        return _finalize_outcome(data)


class HttpPaymentBackend(PaymentBackend):
    def __init__(
        self,
        base_url: str,
        bearer_token: Optional[str] = None,
        timeout: float = PAYMENT_BACKEND_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.bearer_token = bearer_token
        self.timeout = timeout
        self.transport = transport

    async def _call(self, body: Dict[str, Any]) -> Dict[str, Any]:
        """
        POST JSON vers la fonction de paiement.
        - Lève service.PaymentBackendError si statut non-2xx ({error}) ou erreur réseau.
        """
        headers = {"Content-Type": "application/json"}
        if self.bearer_token:
            headers["Authorization"] = f"Bearer {self.bearer_token}"
        try:
            async with httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=self.transport) as client:
                resp = await client.post(STRIPE_PAYMENT_PATH, json=body, headers=headers)
        except httpx.HTTPError as e:
            logger.exception("payments.client request failed action=%s", body.get("action"))
            raise service.PaymentBackendError("Payment service is unreachable. Please try again.", status_code=503) from e
        try:
            data = resp.json() if resp.content else {}
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}
        if resp.status_code >= 400:
            raise service.PaymentBackendError(data.get("error") or f"Payment service error ({resp.status_code})", resp.status_code)
        return data

    async def create_intent(self, order_id: str, currency: str, receipt_email: Optional[str] = None) -> IntentOutcome:
        body: Dict[str, Any] = {"action": "create", "orderId": order_id, "currency": currency.lower()}
        if receipt_email:
            body["receiptEmail"] = receipt_email
        try:
            data = await self._call(body)
        except service.PaymentBackendError as e:
            return IntentFailed(e.message)
        return _intent_outcome(data)

    async def finalize(self, payment_intent_id: str) -> FinalizeOutcome:
        try:
            data = await self._call({"action": "finalize", "paymentIntentId": payment_intent_id})
        except service.PaymentBackendError as e:
            return FinalizeFailed(e.message)
        return _finalize_outcome(data)


def get_payment_backend(requester: Optional[Requester], access_token: Optional[str]) -> PaymentBackend:
    if PAYMENT_BACKEND_URL:
        return HttpPaymentBackend(PAYMENT_BACKEND_URL, bearer_token=access_token)
    return LocalPaymentBackend(requester)
