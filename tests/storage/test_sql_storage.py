"""SQL backend specifics: conflict-tolerant inserts, compare-and-swap, UTC round-trips."""
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from app.services.exceptions import StorageError
from app.storage.records import TokenRecord

NOW = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


def _token(value="A" * 32, payment_id="P1", created_at=NOW):
    return TokenRecord(
        token=value,
        payment_id=payment_id,
        expires_at=created_at + timedelta(days=30),
        created_at=created_at,
    )


def test_insert_token_ignores_duplicate_value(sql_storage):
    with sql_storage.atomic():
        assert sql_storage.insert_token(_token()) is True
        assert sql_storage.insert_token(_token(payment_id="P2")) is False
    assert sql_storage.get_token("A" * 32).payment_id == "P1"


def test_insert_token_ignores_second_token_for_payment(sql_storage):
    with sql_storage.atomic():
        assert sql_storage.insert_token(_token()) is True
        assert sql_storage.insert_token(_token("B" * 32)) is False
    assert sql_storage.get_token("B" * 32) is None
    assert sql_storage.latest_token_for_payment("P1").token == "A" * 32


def test_attach_token_is_compare_and_swap(sql_storage):
    with sql_storage.atomic():
        sql_storage.upsert_payment("P1", "finished", None, NOW)
        first = sql_storage.attach_token("P1", "A" * 32, NOW + timedelta(days=30))
        second = sql_storage.attach_token("P1", "B" * 32, NOW + timedelta(days=31))
    assert first.token == second.token == "A" * 32
    assert second.expires_at == NOW + timedelta(days=30)


def test_bind_identity_first_write_wins(sql_storage):
    with sql_storage.atomic():
        sql_storage.insert_token(_token())
        first = sql_storage.bind_identity("A" * 32, "alice")
        second = sql_storage.bind_identity("A" * 32, "bob")
    assert first.tiktok_username == second.tiktok_username == "alice"
    assert second.used is True
    assert sql_storage.bind_identity("F" * 32, "alice") is None


def test_datetimes_come_back_utc(sql_storage):
    with sql_storage.atomic():
        sql_storage.insert_token(_token())
    record = sql_storage.get_token("A" * 32)
    assert record.expires_at.tzinfo is not None
    assert record.expires_at == NOW + timedelta(days=30)


def test_atomic_rolls_back_on_error(sql_storage):
    with pytest.raises(RuntimeError):
        with sql_storage.atomic():
            sql_storage.upsert_payment("P1", "waiting", None, NOW)
            raise RuntimeError("boom")
    assert sql_storage.get_payment("P1") is None


def test_list_orders_newest_first(sql_storage):
    with sql_storage.atomic():
        sql_storage.insert_token(_token("A" * 32, "P1", NOW))
        sql_storage.insert_token(_token("B" * 32, "P2", NOW + timedelta(minutes=1)))
    assert [t.token for t in sql_storage.list_tokens(10)] == ["B" * 32, "A" * 32]
    assert len(sql_storage.list_tokens(1)) == 1


def test_database_errors_become_storage_error(sql_storage):
    error = OperationalError("SELECT 1", {}, Exception("connection refused"))
    with patch.object(sql_storage.db, "execute", side_effect=error):
        with pytest.raises(StorageError):
            sql_storage.ping()


def test_updated_at_follows_caller_clock(sql_storage):
    with sql_storage.atomic():
        created = sql_storage.upsert_payment("P1", "waiting", None, NOW)
    assert created.updated_at == NOW

    later = NOW + timedelta(minutes=5)
    with sql_storage.atomic():
        updated = sql_storage.upsert_payment("P1", "finished", None, later)
        attached = sql_storage.attach_token("P1", "A" * 32, later + timedelta(days=30))
    assert updated.updated_at == later
    assert attached.updated_at == later
    assert sql_storage.get_payment("P1").updated_at == later
