import pytest

from storefront.checkout.errors import InvalidTransition
from storefront.checkout.state import (
    CheckoutEvent as E,
    CheckoutSession,
    CheckoutState as S,
    sync_event,
    transition,
)


@pytest.mark.parametrize("state, event, expected", [
    (S.DETAILS, E.SUBMIT_CARD, S.PAYMENT),
    (S.DETAILS, E.SUBMIT_TERMS, S.COMPLETE),
    (S.PAYMENT, E.PAYMENT_SUCCEEDED, S.COMPLETE),
    (S.PAYMENT, E.PAYMENT_FAILED, S.PAYMENT),
    (S.PAYMENT, E.BACK, S.DETAILS),
    (S.EMPTY_CART, E.CART_FILLED, S.DETAILS),
    (S.DETAILS, E.CART_EMPTIED, S.EMPTY_CART),
    (S.PAYMENT, E.CART_EMPTIED, S.EMPTY_CART),
    (S.PAYMENT, E.CART_FILLED, S.DETAILS),
    (S.EMPTY_CART, E.RESUME, S.PAYMENT),
    (S.DETAILS, E.RESUME, S.PAYMENT),
    (S.DETAILS, E.FINALIZE_REPLAYED, S.COMPLETE),
])
def test_transitions(state, event, expected):
    assert transition(state, event) == expected


@pytest.mark.parametrize("event", list(E))
def test_complete_is_terminal(event):
    with pytest.raises(InvalidTransition):
        transition(S.COMPLETE, event)


def test_payment_requires_an_order_first():
    with pytest.raises(InvalidTransition):
        transition(S.EMPTY_CART, E.SUBMIT_CARD)
    with pytest.raises(InvalidTransition):
        transition(S.DETAILS, E.PAYMENT_SUCCEEDED)


def test_pending_payment_forces_resume_regardless_of_cart():
    assert sync_event(True, cart_empty=True) == E.RESUME
    assert sync_event(True, cart_empty=False) == E.RESUME
    assert sync_event(False, cart_empty=True) == E.CART_EMPTIED
    assert sync_event(False, cart_empty=False) == E.CART_FILLED


@pytest.mark.parametrize("start, pending, cart_empty, expected", [
    (S.DETAILS, True, True, S.PAYMENT),
    (S.EMPTY_CART, True, False, S.PAYMENT),
    (S.PAYMENT, False, False, S.DETAILS),
    (S.PAYMENT, False, True, S.EMPTY_CART),
    (S.DETAILS, False, True, S.EMPTY_CART),
])
def test_sync_goes_through_the_transition_table(start, pending, cart_empty, expected):
    cs = CheckoutSession(start)
    assert cs.sync(pending, cart_empty) == expected
    assert cs.state == expected


def test_session_value_roundtrips_through_mapping():
    session = {}
    cs = CheckoutSession(S.PAYMENT, active_order_id="order-1", notice={"message": "hi", "kind": "payment"})
    cs.save(session)
    loaded = CheckoutSession.load(session)
    assert loaded.state == S.PAYMENT
    assert loaded.active_order_id == "order-1"
    assert loaded.notice == {"message": "hi", "kind": "payment"}
    CheckoutSession.reset(session)
    assert CheckoutSession.load(session).state == S.DETAILS


def test_unknown_stored_state_falls_back_to_details():
    assert CheckoutSession.from_dict({"state": "bogus"}).state == S.DETAILS
    assert CheckoutSession.from_dict("garbage").active_order_id is None


def test_stored_complete_state_starts_over_from_details():
    assert CheckoutSession.from_dict({"state": "complete"}).state == S.DETAILS
