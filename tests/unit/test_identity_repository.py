from unittest.mock import MagicMock

import pytest

from storefront.identity import repository


@pytest.fixture
def db(monkeypatch):
    client = MagicMock()
    monkeypatch.setattr("storefront.infra.supabase_client.get_service_supabase", lambda: client)
    return client


def _execute(db):
    return db.table.return_value.select.return_value.eq.return_value.limit.return_value.execute


def test_fetch_customer_returns_first_row(db):
    _execute(db).return_value = MagicMock(data=[{"id": "cust-1", "terms_allowed": True}])
    assert repository.fetch_customer("cust-1") == {"id": "cust-1", "terms_allowed": True}
    db.table.assert_called_once_with("customers")


def test_fetch_customer_without_row_is_none(db):
    _execute(db).return_value = MagicMock(data=[])
    assert repository.fetch_customer("cust-1") is None


def test_fetch_customer_read_failure_raises(db):
    _execute(db).side_effect = RuntimeError("db down")
    with pytest.raises(repository.ProfileLookupError):
        repository.fetch_customer("cust-1")


def test_fetch_customer_without_id_skips_the_query(db):
    assert repository.fetch_customer(None) is None
    db.table.assert_not_called()


def test_fetch_profile_read_failure_raises(db):
    _execute(db).side_effect = RuntimeError("db down")
    with pytest.raises(repository.ProfileLookupError):
        repository.fetch_profile("auth-1")
