# module storefront.checkout.models
"""Formulaire Details (adresses, livraison, mode de paiement) tel que reçu du front."""
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from storefront.orders.models import Address, PAYMENT_METHOD_CARD
from .shipping import DEFAULT_SHIPPING_METHOD


class DetailsForm(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    email: str = ""
    billing: Address = Field(default_factory=Address)
    shipping: Address = Field(default_factory=Address)
    same_as_billing: bool = Field(default=True, alias="sameAsBilling")
    shipping_method: str = Field(default=DEFAULT_SHIPPING_METHOD, alias="shippingMethod")
    payment_method: str = Field(default=PAYMENT_METHOD_CARD, alias="paymentMethod")
    po_number: Optional[str] = Field(default=None, alias="poNumber")
    notes: Optional[str] = None

    @property
    def effective_shipping(self) -> Address:
        # copie par valeur: les deux adresses sont lues indépendamment en aval
        if self.same_as_billing:
            return self.billing.model_copy(deep=True)
        return self.shipping
