"""
Taxonomie des erreurs du tunnel de commande.
Chaque erreur porte un `kind` stable (exposé au front) et un message destiné à l'acheteur.
Aucune n'est fatale: l'orchestrateur les transforme en vue avec message.
"""

class CheckoutError(Exception):
    kind = "checkout"
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class CheckoutValidationError(CheckoutError):
    """Champ manquant/invalide, panier vide, NET terms non éligible: aucune écriture."""
    kind = "validation"
    status_code = 400


class PreconditionError(CheckoutError):
    """Session authentifiée sans profil chargeable: progression bloquée."""
    kind = "precondition"
    status_code = 409


class PaymentError(CheckoutError):
    """Échec rapporté par la passerelle: commande laissée Pending, nouvel essai attendu."""
    kind = "payment"
    status_code = 402


class ReconciliationError(CheckoutError):
    """Paiement annoncé réussi mais commande non confirmée: contact support, jamais de relance auto."""
    kind = "reconciliation"
    status_code = 502


class OrderPersistenceError(CheckoutError):
    kind = "persistence"
    status_code = 500


class InvalidTransition(CheckoutError):
    kind = "transition"
    status_code = 409


ERROR_STATUS = {
    cls.kind: cls.status_code
    for cls in (
        CheckoutValidationError,
        PreconditionError,
        PaymentError,
        ReconciliationError,
        OrderPersistenceError,
        InvalidTransition,
    )
}


def status_for_kind(kind: str) -> int:
    return ERROR_STATUS.get(kind, CheckoutError.status_code)
