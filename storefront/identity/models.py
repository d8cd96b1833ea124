# module storefront.identity.models
"""Types du résolveur d'identité.
- Identity: acheteur authentifié (profil + client B2B éventuel) ou invité (email seul).
- Requester: identité minimale utilisée côté fonction de paiement pour vérifier la propriété d'une commande.
"""
from typing import Any, Dict, Optional

NET_TERMS_NOT_REQUESTED = "not_requested"
NET_TERMS_PENDING = "pending"
NET_TERMS_APPROVED = "approved"
NET_TERMS_DECLINED = "declined"

ACCOUNT_BUSINESS = "business"
ACCOUNT_CONSUMER = "consumer"


class Requester:
    def __init__(self, auth_user_id: Optional[str] = None, profile_id: Optional[str] = None):
        self.auth_user_id = auth_user_id
        self.profile_id = profile_id

    def owns(self, order: Dict[str, Any]) -> bool:
        """
        Une commande sans created_by (invité) est accessible à tous;
        sinon created_by doit correspondre au profil ou à l'utilisateur auth.
        """
        created_by = (order or {}).get("created_by")
        if not created_by:
            return True
        if self.profile_id and created_by == self.profile_id:
            return True
        if self.auth_user_id and created_by == self.auth_user_id:
            return True
        return False


class Identity:
    def __init__(
        self,
        is_authenticated: bool,
        auth_user_id: Optional[str] = None,
        profile_id: Optional[str] = None,
        customer_id: Optional[str] = None,
        email: Optional[str] = None,
        account_type: Optional[str] = None,
        net_terms_status: Optional[str] = None,
        customer: Optional[Dict[str, Any]] = None,
    ):
        self.is_authenticated = is_authenticated
        self.auth_user_id = auth_user_id
        self.profile_id = profile_id
        self.customer_id = customer_id
        self.email = email
        self.account_type = account_type or ACCOUNT_CONSUMER
        self.net_terms_status = net_terms_status or NET_TERMS_NOT_REQUESTED
        self.customer = customer

    @classmethod
    def guest(cls, email: Optional[str] = None) -> "Identity":
        return cls(False, email=(email or "").strip() or None)

    @property
    def is_business(self) -> bool:
        return self.account_type == ACCOUNT_BUSINESS

    @property
    def net_terms_eligible(self) -> bool:
        # business + client lié (enregistrement présent) + statut approuvé
        return (
            self.is_authenticated
            and self.is_business
            and bool(self.customer_id)
            and self.customer is not None
            and self.net_terms_status == NET_TERMS_APPROVED
        )

    @property
    def requester(self) -> Optional[Requester]:
        if not self.is_authenticated:
            return None
        return Requester(auth_user_id=self.auth_user_id, profile_id=self.profile_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "isAuthenticated": self.is_authenticated,
            "customerId": self.customer_id,
            "netTermsEligible": self.net_terms_eligible,
            "netTermsStatus": self.net_terms_status if self.is_business else None,
        }
