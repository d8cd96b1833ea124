import asyncio
import json

import httpx

from storefront.identity.models import Requester
from storefront.payments.client import (
    STRIPE_PAYMENT_PATH,
    HttpPaymentBackend,
    LocalPaymentBackend,
    get_payment_backend,
)
from storefront.payments.outcomes import FinalizeFailed, FinalizeSucceeded, IntentCreated, IntentFailed


def run(coro):
    return asyncio.run(coro)


def _backend(handler, token=None):
    return HttpPaymentBackend("https://pay.example.test/", bearer_token=token, transport=httpx.MockTransport(handler))


def test_http_create_posts_action_and_bearer():
    seen = {}

    def handler(request: httpx.Request):
        seen["path"] = request.url.path
        seen["auth"] = request.headers.get("Authorization")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"clientSecret": "cs_1", "paymentIntentId": "pi_1", "status": "requires_payment_method"})

    outcome = run(_backend(handler, token="tok").create_intent("o1", "USD", "a@b.com"))

    assert outcome == IntentCreated("cs_1", "pi_1", "requires_payment_method")
    assert seen["path"] == STRIPE_PAYMENT_PATH
    assert seen["auth"] == "Bearer tok"
    assert seen["body"] == {"action": "create", "orderId": "o1", "currency": "usd", "receiptEmail": "a@b.com"}


def test_http_error_body_becomes_failed_outcome():
    def handler(request):
        return httpx.Response(400, json={"error": "Order already confirmed"})

    assert run(_backend(handler).create_intent("o1", "usd")) == IntentFailed("Order already confirmed")


def test_http_missing_client_secret_is_failure():
    def handler(request):
        return httpx.Response(200, json={"paymentIntentId": "pi_1"})

    assert isinstance(run(_backend(handler).create_intent("o1", "usd")), IntentFailed)


def test_http_finalize_success_and_already_confirmed():
    def handler(request):
        return httpx.Response(200, json={"orderId": "o1", "status": "already_confirmed"})

    outcome = run(_backend(handler).finalize("pi_1"))
    assert outcome == FinalizeSucceeded("o1", "already_confirmed")
    assert outcome.already_confirmed


def test_http_network_error_is_failed_outcome():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    outcome = run(_backend(handler).finalize("pi_1"))
    assert isinstance(outcome, FinalizeFailed)
    assert "unreachable" in outcome.reason


def test_http_non_json_error():
    def handler(request):
        return httpx.Response(502, text="Bad gateway")

    assert run(_backend(handler).finalize("pi_1")) == FinalizeFailed("Payment service error (502)")


def test_local_backend_uses_service(order_store, fake_stripe):
    order_store.add("o1", total=20, created_by="profile-1")
    backend = LocalPaymentBackend(Requester("auth-1", "profile-1"))

    created = run(backend.create_intent("o1", "USD"))
    assert isinstance(created, IntentCreated)
    assert fake_stripe.intents[created.payment_intent_id]["currency"] == "usd"

    fake_stripe.settle(created.payment_intent_id)
    assert run(backend.finalize(created.payment_intent_id)) == FinalizeSucceeded("o1", "succeeded")


def test_local_backend_maps_refusal(order_store, fake_stripe):
    order_store.add("o1", total=20, created_by="someone-else")
    outcome = run(LocalPaymentBackend(Requester("auth-1", "profile-1")).create_intent("o1", "usd"))
    assert outcome == IntentFailed("You do not have permission to pay for this order")


def test_backend_selection(monkeypatch):
    assert isinstance(get_payment_backend(None, None), LocalPaymentBackend)
    monkeypatch.setattr("storefront.payments.client.PAYMENT_BACKEND_URL", "https://pay.example.test")
    backend = get_payment_backend(None, "tok")
    assert isinstance(backend, HttpPaymentBackend)
    assert backend.bearer_token == "tok"
