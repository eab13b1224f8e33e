from __future__ import annotations

import pytest

from ethervote.config import MAX_IMAGE_BYTES, Settings
from ethervote.database import build_storage
from ethervote.errors import ConfigurationError
from ethervote.storage import MemoryStorage
from ethervote.storage_mongo import MongoStorage


def test_settings_read_environment(monkeypatch) -> None:
    monkeypatch.setenv("STORAGE_BACKEND", "MONGO")
    monkeypatch.setenv("MONGO_USE_TRANSACTIONS", "false")
    monkeypatch.setenv("CORS_ORIGINS", "https://vote.example.org, http://localhost:3000")
    monkeypatch.setenv("PUBLIC_BASE_URL", "https://api.example.org/")
    monkeypatch.setenv("SEED_ON_STARTUP", "yes")
    monkeypatch.setenv("LEDGER_DELAY_SECONDS", "1.5")

    settings = Settings()

    assert settings.storage_backend == "mongo"
    assert settings.mongo_use_transactions is False
    assert settings.cors_origins == ["https://vote.example.org", "http://localhost:3000"]
    assert settings.public_base_url == "https://api.example.org"
    assert settings.seed_on_startup is True
    assert settings.ledger_delay_seconds == 1.5


def test_explicit_arguments_win_over_environment(monkeypatch) -> None:
    monkeypatch.setenv("STORAGE_BACKEND", "mongo")
    monkeypatch.setenv("MONGO_USE_TRANSACTIONS", "true")

    settings = Settings(storage_backend="memory", mongo_use_transactions=False)

    assert settings.storage_backend == "memory"
    assert settings.mongo_use_transactions is False


def test_defaults(monkeypatch) -> None:
    for name in ("MAX_IMAGE_BYTES", "ACCESS_TOKEN_EXPIRE_MINUTES", "MONGO_DB"):
        monkeypatch.delenv(name, raising=False)

    settings = Settings()

    assert settings.max_image_bytes == MAX_IMAGE_BYTES
    assert settings.access_token_expire_minutes == 60
    assert settings.mongo_db == "ethervote"


def test_build_storage_memory() -> None:
    assert isinstance(build_storage(Settings(storage_backend="memory")), MemoryStorage)


def test_build_storage_mongo_is_lazy() -> None:
    storage = build_storage(Settings(storage_backend="mongo", mongo_uri="mongodb://localhost:1"))

    assert isinstance(storage, MongoStorage)
    storage.close()


def test_unknown_storage_backend_is_a_configuration_error() -> None:
    with pytest.raises(ConfigurationError) as exc:
        build_storage(Settings(storage_backend="sqlite"))

    assert exc.value.details["config_key"] == "STORAGE_BACKEND"
