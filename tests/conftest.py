import os

# avant l'import de l'app: pas de Redis en tests
os.environ.setdefault("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS", "1")

import pytest
from typing import Any, Dict, Generator, List, Optional
from fastapi.testclient import TestClient
from unittest.mock import MagicMock

import stripe

from storefront.app import app as fastapi_app
from storefront.orders import repository as orders_repo
from storefront.orders.models import ORDER_PENDING, ORDER_CONFIRMED, PAYMENT_STATUS_TERMS
from storefront.payments import stripe_client

# Marquage automatique selon le dossier
def pytest_collection_modifyitems(config, items):
    for item in items:
        nodeid = item.nodeid.replace("\\", "/")
        if "tests/unit/" in nodeid:
            item.add_marker(pytest.mark.unit)
        elif "tests/integration/" in nodeid:
            item.add_marker(pytest.mark.integration)

@pytest.fixture(scope="session")
def app():
    return fastapi_app

@pytest.fixture()
def client(app) -> Generator[TestClient, None, None]:
    with TestClient(app) as c:
        yield c


# Aucun accès Supabase réel, fonction de paiement toujours en processus
@pytest.fixture(scope="function", autouse=True)
def mock_db_dependency(monkeypatch):
    monkeypatch.setattr("storefront.infra.supabase_client.get_supabase", lambda: MagicMock())
    monkeypatch.setattr("storefront.infra.supabase_client.get_service_supabase", lambda: MagicMock())
    monkeypatch.setattr("storefront.payments.client.PAYMENT_BACKEND_URL", "")
    monkeypatch.setattr("storefront.health.service.health_supabase_info", lambda: {"connect_ok": True})


class FakeOrderStore:
    """Tables orders / order_lines en mémoire, mêmes garde-fous que le repository (status = Pending)."""

    def __init__(self):
        self.orders: Dict[str, Dict[str, Any]] = {}
        self.lines: Dict[str, List[Dict[str, Any]]] = {}
        self.confirmations = 0
        self.failing: set = set()
        self._seq = 0

    def _maybe_fail(self, name: str):
        if name in self.failing:
            raise orders_repo.OrderStoreError(f"{name} failed")

    def create_order(self, payload):
        self._maybe_fail("create_order")
        self._seq += 1
        order_id = f"order-{self._seq}"
        self.orders[order_id] = dict(payload, id=order_id)
        return dict(self.orders[order_id])

    def update_pending_order(self, order_id, payload):
        self._maybe_fail("update_pending_order")
        row = self.orders.get(order_id)
        if not row or row.get("status") != ORDER_PENDING:
            return None
        row.update(payload)
        return dict(row)

    def replace_order_lines(self, order_id, lines):
        self._maybe_fail("replace_order_lines")
        self.lines[order_id] = [dict(line) for line in lines]

    def confirm_terms_order(self, order_id):
        self._maybe_fail("confirm_terms_order")
        row = self.orders.get(order_id)
        if not row or row.get("status") != ORDER_PENDING:
            return None
        row.update(status=ORDER_CONFIRMED, payment_status=PAYMENT_STATUS_TERMS)
        self.confirmations += 1
        return dict(row)

    def get_order(self, order_id, columns="*"):
        self._maybe_fail("get_order")
        row = self.orders.get(order_id)
        return dict(row) if row else None

    def get_order_with_lines(self, order_id):
        row = self.get_order(order_id)
        if row is not None:
            row["order_lines"] = [dict(line) for line in self.lines.get(order_id, [])]
        return row

    def link_payment_intent(self, order_id, payment_intent_id, payment_status):
        self._maybe_fail("link_payment_intent")
        self.orders[order_id].update(stripe_payment_intent_id=payment_intent_id, payment_status=payment_status)

    def confirm_paid_order(self, order_id, payment_intent_id, payment_status):
        self._maybe_fail("confirm_paid_order")
        row = self.orders.get(order_id)
        if not row or row.get("status") != ORDER_PENDING:
            return None
        row.update(
            status=ORDER_CONFIRMED,
            payment_status=payment_status,
            stripe_payment_intent_id=payment_intent_id,
            paid_at="2025-01-01T00:00:00+00:00",
        )
        self.confirmations += 1
        return dict(row)

    def add(self, order_id: str, **fields) -> Dict[str, Any]:
        row = {"id": order_id, "status": ORDER_PENDING, "currency": "USD", "created_by": None}
        row.update(fields)
        self.orders[order_id] = row
        return row


class FakeStripe:
    """PaymentIntents en mémoire (create / retrieve / modify)."""

    def __init__(self):
        self.intents: Dict[str, Dict[str, Any]] = {}
        self.created: List[Dict[str, Any]] = []
        self._seq = 0

    def create_payment_intent(self, *, amount, currency, metadata, receipt_email=None):
        self._seq += 1
        intent_id = f"pi_test_{self._seq}"
        intent = {
            "id": intent_id,
            "amount": amount,
            "currency": currency,
            "status": "requires_payment_method",
            "metadata": dict(metadata),
            "client_secret": f"{intent_id}_secret_x",
            "receipt_email": receipt_email,
        }
        self.intents[intent_id] = intent
        self.created.append(intent)
        return dict(intent)

    def retrieve_payment_intent(self, payment_intent_id):
        if payment_intent_id not in self.intents:
            raise stripe.InvalidRequestError(f"No such payment_intent: '{payment_intent_id}'", "id")
        return dict(self.intents[payment_intent_id])

    def update_payment_intent_amount(self, payment_intent_id, amount):
        self.intents[payment_intent_id]["amount"] = amount
        return dict(self.intents[payment_intent_id])

    def settle(self, payment_intent_id: str, status: str = "succeeded", amount_received: Optional[int] = None):
        intent = self.intents[payment_intent_id]
        intent["status"] = status
        if status == "succeeded":
            intent["amount_received"] = intent["amount"] if amount_received is None else amount_received
        return intent


@pytest.fixture
def order_store(monkeypatch) -> FakeOrderStore:
    store = FakeOrderStore()
    for name in (
        "create_order",
        "update_pending_order",
        "replace_order_lines",
        "confirm_terms_order",
        "get_order",
        "get_order_with_lines",
        "link_payment_intent",
        "confirm_paid_order",
    ):
        monkeypatch.setattr(orders_repo, name, getattr(store, name))
    return store


@pytest.fixture
def fake_stripe(monkeypatch) -> FakeStripe:
    fake = FakeStripe()
    monkeypatch.setattr(stripe_client, "create_payment_intent", fake.create_payment_intent)
    monkeypatch.setattr(stripe_client, "retrieve_payment_intent", fake.retrieve_payment_intent)
    monkeypatch.setattr(stripe_client, "update_payment_intent_amount", fake.update_payment_intent_amount)
    return fake


@pytest.fixture
def business_profile(monkeypatch):
    """
    Profil authentifié business; modifier le dict retourné pour faire varier le statut NET
    (net_terms_status) ou le client lié (customer_id / customer).
    """
    state: Dict[str, Any] = {
        "profile": {
            "id": "profile-1",
            "auth_user_id": "auth-1",
            "email": "buyer@acme.test",
            "customer_id": "cust-1",
            "account_type": "business",
            "net_terms_status": "approved",
        },
        "customer": {"id": "cust-1", "terms_allowed": False},
    }
    monkeypatch.setattr("storefront.identity.repository.fetch_profile", lambda auth_user_id: state["profile"])
    monkeypatch.setattr("storefront.identity.repository.fetch_customer", lambda customer_id: state["customer"])
    return state


@pytest.fixture
def auth_user() -> Dict[str, Any]:
    return {"id": "auth-1", "email": "buyer@acme.test", "metadata": {}, "token": "fake-token"}

