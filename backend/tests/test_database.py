"""Tests for storage wiring."""

from app.config import get_settings
from app.database import get_storage_instance, reset_state


class TestStorageInstance:
    def test_transaction_timeout_from_settings(self, monkeypatch):
        monkeypatch.setenv("TRANSACTION_TIMEOUT_SECONDS", "0.75")
        get_settings.cache_clear()
        reset_state()

        storage = get_storage_instance()
        assert storage.timeout == 0.75
        assert storage.config.transaction_timeout == 0.75

    def test_instance_is_shared(self):
        assert get_storage_instance() is get_storage_instance()
