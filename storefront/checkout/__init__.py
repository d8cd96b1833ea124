"""
Module 'checkout': tunnel Details -> Payment -> Complete.
Point d'entrée public (orchestrateur, machine à états, cache de reprise, erreurs).
"""

from .errors import (
    CheckoutError,
    CheckoutValidationError,
    PreconditionError,
    PaymentError,
    ReconciliationError,
    OrderPersistenceError,
    InvalidTransition,
)
from .models import DetailsForm
from .state import CheckoutState, CheckoutEvent, CheckoutSession, transition, sync_event
from .recovery import PendingPayment, RecoveryStore, SessionRecoveryStore
from .navigation import Navigator, ResponseNavigator, confirmation_url
from .orchestrator import CheckoutOrchestrator, CheckoutView

__all__ = [
    "CheckoutError",
    "CheckoutValidationError",
    "PreconditionError",
    "PaymentError",
    "ReconciliationError",
    "OrderPersistenceError",
    "InvalidTransition",
    "DetailsForm",
    "CheckoutState",
    "CheckoutEvent",
    "CheckoutSession",
    "transition",
    "sync_event",
    "PendingPayment",
    "RecoveryStore",
    "SessionRecoveryStore",
    "Navigator",
    "ResponseNavigator",
    "confirmation_url",
    "CheckoutOrchestrator",
    "CheckoutView",
]
