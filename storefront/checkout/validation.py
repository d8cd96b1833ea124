"""
Validation du formulaire Details, avant toute écriture.
Ordre des contrôles (le premier échec l'emporte):
1) panier non vide
2) invité: email présent et syntaxiquement valide
3) adresse de facturation complète
4) adresse de livraison complète si différente de la facturation
5) NET terms: identité éligible (relue au moment du submit) et client lié
"""
from storefront.cart.models import CartSnapshot
from storefront.identity.models import Identity, NET_TERMS_APPROVED, NET_TERMS_PENDING, NET_TERMS_DECLINED
from storefront.orders.models import PAYMENT_METHODS, PAYMENT_METHOD_TERMS, REQUIRED_ADDRESS_FIELDS
from storefront.utils.validators import is_valid_email, missing_fields

from .errors import CheckoutValidationError
from .models import DetailsForm
from .shipping import get_shipping_method

EMPTY_CART_MESSAGE = "Your cart is empty."


def _terms_rejection(identity: Identity) -> str:
    status = identity.net_terms_status if identity.is_business else None
    if status == NET_TERMS_PENDING:
        return "Your NET terms application is still under review. Please choose a credit card to complete this order."
    if status == NET_TERMS_DECLINED:
        return "Your NET terms application is not approved. Please pay by credit card or contact support."
    return "NET terms are not currently available for your account."


def validate_details(form: DetailsForm, cart: CartSnapshot, identity: Identity) -> None:
    if cart.is_empty:
        raise CheckoutValidationError(EMPTY_CART_MESSAGE)

    if not identity.is_authenticated:
        email = (form.email or "").strip()
        if not email:
            raise CheckoutValidationError("Please provide an email address.")
        if not is_valid_email(email):
            raise CheckoutValidationError("Please provide a valid email address.")

    if missing_fields(form.billing, REQUIRED_ADDRESS_FIELDS):
        raise CheckoutValidationError("Please complete all required billing address fields.")

    if not form.same_as_billing and missing_fields(form.shipping, REQUIRED_ADDRESS_FIELDS):
        raise CheckoutValidationError("Please complete all required shipping address fields.")

    if form.payment_method not in PAYMENT_METHODS:
        raise CheckoutValidationError("Please choose a payment method.")

    get_shipping_method(form.shipping_method)

    if form.payment_method == PAYMENT_METHOD_TERMS and not identity.net_terms_eligible:
        # statut approuvé sur le profil mais aucun client B2B rattaché
        if identity.is_business and identity.net_terms_status == NET_TERMS_APPROVED and not identity.customer_id:
            raise CheckoutValidationError("Payment terms require a linked customer account. Please contact support.")
        raise CheckoutValidationError(_terms_rejection(identity))
