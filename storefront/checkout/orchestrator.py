"""
Orchestrateur du tunnel de commande (Details -> Payment -> Complete).

Rôles:
- Séquencer résolveur d'identité, validation, brouillon de commande, fonction de paiement et finalize.
- Relire l'enregistrement de reprise avant toute autre initialisation (retour passerelle, rechargement).
- Ne jamais laisser remonter une erreur métier: chaque opération retourne une CheckoutView
  (état, erreur + kind, notice, redirection).

Capacités injectées (testables sans navigateur): session (mapping), panier, RecoveryStore,
Navigator, PaymentBackend. Les appels bloquants (Supabase) passent par run_in_threadpool.
"""
from typing import Any, Dict, Mapping, MutableMapping, Optional
import logging

from starlette.concurrency import run_in_threadpool

from storefront.cart.models import to_money
from storefront.cart.store import SessionCart
from storefront.config import CHECKOUT_CURRENCY, CHECKOUT_PATH
from storefront.identity import service as identity_service
from storefront.identity.models import Identity
from storefront.orders import repository as orders_repo
from storefront.orders.models import Address, PAYMENT_METHOD_CARD, PAYMENT_METHOD_TERMS
from storefront.payments.client import PaymentBackend, get_payment_backend
from storefront.payments.outcomes import (
    FinalizeSucceeded,
    IntentCreated,
    PaymentOutcome,
    PaymentRequiresAction,
    PaymentSucceeded,
)

from . import drafts
from .errors import (
    CheckoutError,
    InvalidTransition,
    OrderPersistenceError,
    PaymentError,
    PreconditionError,
    ReconciliationError,
)
from .models import DetailsForm
from .navigation import Navigator, ResponseNavigator, confirmation_url
from .recovery import PendingPayment, RecoveryStore, SessionRecoveryStore
from .shipping import SHIPPING_METHODS
from .state import CheckoutEvent, CheckoutSession, CheckoutState
from .validation import validate_details

logger = logging.getLogger(__name__)

PROFILE_UNAVAILABLE_MESSAGE = "We could not load your account profile. Please refresh the page and try again."
RECONCILIATION_MESSAGE = "Payment was processed but we could not confirm the order. Please contact support."
NO_PENDING_PAYMENT_MESSAGE = "There is no order awaiting payment. Please review your details."

REDIRECT_STATUS_MESSAGES = {
    "requires_payment_method": "Your payment could not be completed. Please try a different payment method or card.",
    "canceled": "Your payment was canceled before it could be completed. Please try again if you still wish to place this order.",
    "processing": "Your payment is still processing. We will update your order once the payment is confirmed.",
}
DEFAULT_REDIRECT_MESSAGE = "We could not confirm your payment. Please try again or contact support if the issue persists."


def redirect_status_message(status: Optional[str]) -> str:
    return REDIRECT_STATUS_MESSAGES.get(str(status or ""), DEFAULT_REDIRECT_MESSAGE)


class CheckoutView:
    def __init__(
        self,
        state: CheckoutState,
        order_id: Optional[str] = None,
        amount: Optional[float] = None,
        email: Optional[str] = None,
        error: Optional[str] = None,
        error_kind: Optional[str] = None,
        notice: Optional[Dict[str, str]] = None,
        redirect: Optional[str] = None,
        cart: Optional[Dict[str, Any]] = None,
        identity: Optional[Dict[str, Any]] = None,
        details: Optional[Dict[str, Any]] = None,
        payment: Optional[Dict[str, Any]] = None,
    ):
        self.state = state
        self.order_id = order_id
        self.amount = amount
        self.email = email
        self.error = error
        self.error_kind = error_kind
        self.notice = notice
        self.redirect = redirect
        self.cart = cart
        self.identity = identity
        self.details = details
        self.payment = payment

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "orderId": self.order_id,
            "amount": self.amount,
            "email": self.email,
            "error": self.error,
            "errorKind": self.error_kind,
            "notice": self.notice,
            "redirect": self.redirect,
            "cart": self.cart,
            "identity": self.identity,
            "details": self.details,
            "shippingMethods": [m.to_dict() for m in SHIPPING_METHODS],
            "payment": self.payment,
        }


class CheckoutOrchestrator:
    def __init__(
        self,
        session: MutableMapping[str, Any],
        user: Optional[Dict[str, Any]] = None,
        access_token: Optional[str] = None,
        cart: Optional[SessionCart] = None,
        recovery: Optional[RecoveryStore] = None,
        navigator: Optional[Navigator] = None,
        payments: Optional[PaymentBackend] = None,
        currency: str = CHECKOUT_CURRENCY,
    ):
        self.session = session
        self.user = user
        self.access_token = access_token
        self.cart = cart or SessionCart(session)
        self.recovery = recovery or SessionRecoveryStore(session)
        self.navigator = navigator or ResponseNavigator()
        self._payments = payments
        self.currency = currency

    # -- helpers ---------------------------------------------------------

    async def _identity(self, guest_email: Optional[str] = None) -> Identity:
        try:
            return await run_in_threadpool(identity_service.resolve_identity, self.user, guest_email)
        except identity_service.ProfileUnavailableError as e:
            logger.warning("checkout.identity profile unavailable user_id=%s", (self.user or {}).get("id"))
            raise PreconditionError(PROFILE_UNAVAILABLE_MESSAGE) from e

    async def _payment_backend(self) -> PaymentBackend:
        if self._payments is None:
            identity = await self._identity()
            self._payments = get_payment_backend(identity.requester, self.access_token)
        return self._payments

    def _redirect_target(self) -> Optional[str]:
        return getattr(self.navigator, "redirect", None)

    def _view(self, cs: CheckoutSession, **kwargs: Any) -> CheckoutView:
        pending = self.recovery.get() if cs.state == CheckoutState.PAYMENT else None
        kwargs.setdefault("order_id", pending.order_id if pending else cs.active_order_id)
        kwargs.setdefault("amount", pending.amount if pending else None)
        kwargs.setdefault("email", pending.email if pending else None)
        kwargs.setdefault("details", cs.details)
        kwargs.setdefault("cart", self.cart.snapshot().to_dict())
        return CheckoutView(cs.state, **kwargs)

    def _error_view(self, cs: CheckoutSession, err: CheckoutError, **kwargs: Any) -> CheckoutView:
        cs.save(self.session)
        return self._view(cs, error=err.message, error_kind=err.kind, **kwargs)

    async def _hydrate_details(self, cs: CheckoutSession, order_id: str) -> None:
        """Recharge adresses et livraison depuis la commande quand la session n'en a plus."""
        try:
            order = await run_in_threadpool(
                orders_repo.get_order, order_id, "id, billing_address, shipping_address, shipping_method, po_number"
            )
        except orders_repo.OrderStoreError:
            return
        if not order:
            return
        billing = Address.from_record(order.get("billing_address"))
        shipping = Address.from_record(order.get("shipping_address"))
        cs.details = DetailsForm(
            billing=billing,
            shipping=shipping,
            same_as_billing=billing.same_as(shipping),
            shipping_method=order.get("shipping_method") or SHIPPING_METHODS[0].code,
            payment_method=PAYMENT_METHOD_CARD,
            po_number=order.get("po_number"),
        ).model_dump(by_alias=True)

    def _sync(self, cs: CheckoutSession, pending: Optional[PendingPayment]) -> CheckoutState:
        return cs.sync(pending is not None, self.cart.snapshot().is_empty)

    def _complete(self, cs: CheckoutSession, event: CheckoutEvent) -> None:
        if event == CheckoutEvent.PAYMENT_SUCCEEDED and cs.state != CheckoutState.PAYMENT:
            # finalize rejoué (retour navigateur après le callback): session déjà réinitialisée
            event = CheckoutEvent.FINALIZE_REPLAYED
        cs.apply(event)
        # état terminal: la prochaine visite repart d'une session vierge
        CheckoutSession.reset(self.session)

    # -- operations ------------------------------------------------------

    async def load(self) -> CheckoutView:
        """
        Chargement de la page checkout.
        - Enregistrement de reprise présent: état Payment forcé (commande et montant en cache),
          quel que soit le contenu du panier.
        - Sinon: EmptyCart si panier vide, Details sinon.
        """
        cs = CheckoutSession.load(self.session)
        notice, cs.notice = cs.notice, None

        pending = self.recovery.get()
        self._sync(cs, pending)
        if pending:
            cs.active_order_id = pending.order_id
            if not cs.details:
                await self._hydrate_details(cs, pending.order_id)
            cs.save(self.session)
            return self._view(cs, notice=notice)

        if cs.state == CheckoutState.EMPTY_CART:
            cs.save(self.session)
            return self._view(cs, notice=notice)

        try:
            identity = await self._identity()
        except CheckoutError as e:
            return self._error_view(cs, e, notice=notice)
        if not cs.details and identity.is_authenticated:
            cs.details = {"email": identity.email or ""}
        cs.save(self.session)
        return self._view(cs, notice=notice, identity=identity.to_dict())

    async def submit_details(self, form: DetailsForm) -> CheckoutView:
        """
        Details -> Payment (carte) ou Details -> Complete (NET terms).
        Identité relue au moment du submit; aucune écriture si la validation échoue.
        """
        cs = CheckoutSession.load(self.session)
        if self._sync(cs, self.recovery.get()) == CheckoutState.PAYMENT:
            return self._error_view(cs, InvalidTransition("Payment is already in progress for this order."))

        snapshot = self.cart.snapshot()
        cs.details = form.model_dump(by_alias=True)

        try:
            identity = await self._identity(form.email)
            validate_details(form, snapshot, identity)
            draft = drafts.build_draft(form, snapshot, identity, self.currency)
            order_id = await run_in_threadpool(drafts.save_draft, draft, cs.active_order_id)
        except CheckoutError as e:
            return self._error_view(cs, e)

        cs.active_order_id = order_id

        if form.payment_method == PAYMENT_METHOD_TERMS:
            try:
                confirmed = await run_in_threadpool(orders_repo.confirm_terms_order, order_id)
            except orders_repo.OrderStoreError:
                return self._error_view(cs, OrderPersistenceError("Failed to confirm your order. Please try again."))
            if not confirmed:
                return self._error_view(cs, OrderPersistenceError("This order can no longer be confirmed. Please review your cart."))
            logger.info("checkout.orchestrator terms order confirmed order_id=%s", order_id)
            self.cart.clear()
            self.recovery.clear()
            self._complete(cs, CheckoutEvent.SUBMIT_TERMS)
            self.navigator.redirect_to(confirmation_url(order_id, PAYMENT_METHOD_TERMS))
            return CheckoutView(CheckoutState.COMPLETE, order_id=order_id, amount=float(draft.total),
                                redirect=self._redirect_target())

        self.recovery.set(PendingPayment(order_id, float(to_money(draft.total)), draft.contact_email))
        cs.apply(CheckoutEvent.SUBMIT_CARD)
        cs.save(self.session)
        logger.info("checkout.orchestrator awaiting card payment order_id=%s total=%s", order_id, draft.total)
        return self._view(cs)

    async def create_payment_intent(self) -> CheckoutView:
        """Obtient le client secret pour la commande en attente; échec = reste en Payment, commande Pending."""
        cs = CheckoutSession.load(self.session)
        pending = self.recovery.get()
        if not pending:
            return self._error_view(cs, InvalidTransition(NO_PENDING_PAYMENT_MESSAGE))
        self._sync(cs, pending)
        cs.active_order_id = pending.order_id

        try:
            backend = await self._payment_backend()
        except CheckoutError as e:
            return self._error_view(cs, e)
        outcome = await backend.create_intent(pending.order_id, self.currency, pending.email)
        if not isinstance(outcome, IntentCreated):
            logger.warning("checkout.orchestrator intent failed order_id=%s reason=%s", pending.order_id, outcome.reason)
            return self._error_view(cs, PaymentError(outcome.reason))
        cs.save(self.session)
        return self._view(cs, payment={
            "clientSecret": outcome.client_secret,
            "paymentIntentId": outcome.payment_intent_id,
            "status": outcome.status,
        })

    async def report_payment_outcome(self, outcome: PaymentOutcome) -> CheckoutView:
        """
        Résultat de l'UI passerelle (même onglet):
        - succeeded -> finalize
        - requires_action -> redirection vers la page de confirmation hébergée
        - failed -> reste en Payment avec le message
        """
        cs = CheckoutSession.load(self.session)
        if isinstance(outcome, PaymentSucceeded):
            return await self.finalize(outcome.payment_intent_id)
        pending = self.recovery.get()
        if not pending:
            return self._error_view(cs, InvalidTransition(NO_PENDING_PAYMENT_MESSAGE))
        self._sync(cs, pending)
        if isinstance(outcome, PaymentRequiresAction):
            if outcome.redirect_url:
                self.navigator.redirect_to(outcome.redirect_url)
            cs.save(self.session)
            return self._view(cs, redirect=self._redirect_target())
        cs.apply(CheckoutEvent.PAYMENT_FAILED)
        return self._error_view(cs, PaymentError(outcome.reason))

    async def finalize(self, payment_intent_id: str) -> CheckoutView:
        """
        Finalize idempotent (côté serveur). Succès: panier et reprise vidés, redirection
        vers la confirmation carte. Échec: erreur de réconciliation, jamais relancée automatiquement.
        """
        cs = CheckoutSession.load(self.session)
        try:
            backend = await self._payment_backend()
        except CheckoutError as e:
            return self._error_view(cs, e)

        outcome = await backend.finalize(payment_intent_id)
        if not isinstance(outcome, FinalizeSucceeded):
            logger.error("checkout.orchestrator finalize failed intent_id=%s reason=%s", payment_intent_id, outcome.reason)
            pending = self.recovery.get()
            if pending:
                self._sync(cs, pending)
            return self._error_view(cs, ReconciliationError(RECONCILIATION_MESSAGE))

        self.cart.clear()
        self.recovery.clear()
        self._complete(cs, CheckoutEvent.PAYMENT_SUCCEEDED)
        self.navigator.redirect_to(confirmation_url(outcome.order_id, PAYMENT_METHOD_CARD))
        logger.info("checkout.orchestrator finalized order_id=%s status=%s", outcome.order_id, outcome.status)
        return CheckoutView(CheckoutState.COMPLETE, order_id=outcome.order_id, redirect=self._redirect_target())

    async def handle_return(self, params: Mapping[str, str]) -> CheckoutView:
        """
        Retour navigateur depuis la passerelle: payment_intent + redirect_status (ou success=true).
        Les paramètres sont retirés de l'URL après traitement (replace_url).
        """
        intent_id = (params.get("payment_intent") or "").strip()
        status = (params.get("redirect_status") or "").strip()
        legacy_success = (params.get("success") or "").strip().lower() == "true"

        if not intent_id:
            if status or legacy_success:
                self.navigator.replace_url(CHECKOUT_PATH)
            return await self.load()

        if status == "succeeded" or (legacy_success and not status):
            view = await self.finalize(intent_id)
            if not view.ok:
                self._keep_notice(view.error, view.error_kind)
                self.navigator.replace_url(CHECKOUT_PATH)
            return view

        cs = CheckoutSession.load(self.session)
        message = redirect_status_message(status)
        pending = self.recovery.get()
        self._sync(cs, pending)
        if pending:
            cs.active_order_id = pending.order_id
        cs.notice = {"message": message, "kind": PaymentError.kind}
        cs.save(self.session)
        logger.info("checkout.orchestrator payment return status=%s intent_id=%s", status, intent_id)
        self.navigator.replace_url(CHECKOUT_PATH)
        return self._view(cs, error=message, error_kind=PaymentError.kind)

    def _keep_notice(self, message: Optional[str], kind: Optional[str]) -> None:
        cs = CheckoutSession.load(self.session)
        cs.notice = {"message": message or "", "kind": kind or ""}
        cs.save(self.session)

    async def back_to_details(self) -> CheckoutView:
        """Payment -> Details: abandon de cette tentative (la commande reste Pending et réutilisable)."""
        cs = CheckoutSession.load(self.session)
        if self._sync(cs, self.recovery.get()) != CheckoutState.PAYMENT:
            return self._error_view(cs, InvalidTransition("There is no payment in progress."))
        cs.apply(CheckoutEvent.BACK)
        self.recovery.clear()
        cs.save(self.session)
        return self._view(cs)
