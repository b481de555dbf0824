"""Memory backend specifics: per-payment index and behaviour without rollback."""
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest

from app.services.exceptions import StorageError
from app.services.webhooks.service import WebhookIngestionService
from app.storage.memory import MemoryTokenStorage
from app.storage.records import TokenRecord

NOW = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


def _token(value, payment_id):
    return TokenRecord(
        token=value,
        payment_id=payment_id,
        expires_at=NOW + timedelta(days=30),
        created_at=NOW,
    )


def test_one_token_per_payment_via_index():
    storage = MemoryTokenStorage()
    assert storage.insert_token(_token("A" * 32, "P1")) is True
    assert storage.insert_token(_token("B" * 32, "P1")) is False
    assert storage.insert_token(_token("A" * 32, "P2")) is False
    assert storage.insert_token(_token("C" * 32, "P2")) is True
    assert storage.latest_token_for_payment("P1").token == "A" * 32
    assert storage.latest_token_for_payment("P2").token == "C" * 32
    assert storage.latest_token_for_payment("P3") is None
    assert storage.get_token("B" * 32) is None


def test_failed_issuance_heals_on_next_paid_delivery(clock):
    storage = MemoryTokenStorage()
    svc = WebhookIngestionService(storage, clock=clock)
    with patch.object(storage, "insert_token", side_effect=StorageError("down")):
        with pytest.raises(StorageError):
            svc.handle({"payment_id": "P1", "payment_status": "finished"})
    assert storage.get_payment("P1").status == "finished"
    assert storage.get_payment("P1").token is None

    result = svc.handle({"payment_id": "P1", "payment_status": "finished"})
    assert result.newly_issued is True
    assert storage.get_payment("P1").token == result.token.token
