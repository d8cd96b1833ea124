from unittest.mock import MagicMock

import pytest

from storefront.orders import repository as orders_repo


@pytest.fixture
def db(monkeypatch):
    client = MagicMock()
    monkeypatch.setattr("storefront.infra.supabase_client.get_service_supabase", lambda: client)
    return client


def _returns(db, data):
    db.table.return_value.update.return_value.eq.return_value.eq.return_value.execute.return_value = MagicMock(data=data)


def test_confirm_paid_order_is_guarded_on_pending(db):
    _returns(db, [{"id": "o1", "status": "Confirmed"}])
    row = orders_repo.confirm_paid_order("o1", "pi_1", "succeeded")

    assert row["status"] == "Confirmed"
    update = db.table.return_value.update
    fields = update.call_args.args[0]
    assert fields["status"] == "Confirmed"
    assert fields["stripe_payment_intent_id"] == "pi_1"
    assert fields["paid_at"]
    update.return_value.eq.assert_called_once_with("id", "o1")
    update.return_value.eq.return_value.eq.assert_called_once_with("status", "Pending")


def test_confirm_paid_order_returns_none_when_no_row_matched(db):
    _returns(db, [])
    assert orders_repo.confirm_paid_order("o1", "pi_1", "succeeded") is None


def test_update_pending_order_returns_none_when_not_pending(db):
    _returns(db, [])
    assert orders_repo.update_pending_order("o1", {"total": 1}) is None


def test_replace_order_lines_uses_single_rpc(db):
    lines = [{"order_id": "o1", "sku": "A", "qty": 1}]
    orders_repo.replace_order_lines("o1", lines)
    db.rpc.assert_called_once_with("replace_order_lines", {"p_order_id": "o1", "p_lines": lines})


def test_create_order_failure_raises_store_error(db):
    db.table.return_value.insert.return_value.execute.side_effect = RuntimeError("db down")
    with pytest.raises(orders_repo.OrderStoreError):
        orders_repo.create_order({"total": 1})


def test_create_order_without_id_is_an_error(db):
    db.table.return_value.insert.return_value.execute.return_value = MagicMock(data=[])
    with pytest.raises(orders_repo.OrderStoreError):
        orders_repo.create_order({"total": 1})
