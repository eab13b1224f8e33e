from __future__ import annotations

from fastapi.testclient import TestClient

from ethervote.config import Settings
from ethervote.main import create_app
from ethervote.seed import DEMO_CANDIDATES, DISTRICTS, seed_database
from ethervote.storage import MemoryStorage


def test_seed_populates_empty_store_once(settings) -> None:
    store = MemoryStorage()

    assert seed_database(store, settings) is True
    assert seed_database(store, settings) is False

    assert [d.name for d in store.list_districts()] == list(DISTRICTS)
    admin = store.get_voter_by_email(settings.admin_email)
    assert admin.role == "admin"
    assert store.list_candidates() == []


def test_seed_demo_candidates_start_at_zero(tmp_path) -> None:
    store = MemoryStorage()
    settings = Settings(storage_backend="memory", seed_demo_candidates=True, upload_dir=str(tmp_path))

    seed_database(store, settings)

    candidates = store.list_candidates()
    assert len(candidates) == len(DEMO_CANDIDATES)
    assert all(c.vote_count == 0 for c in candidates)


def test_seed_without_admin_credentials_skips_admin(tmp_path, monkeypatch) -> None:
    monkeypatch.delenv("ADMIN_EMAIL", raising=False)
    monkeypatch.delenv("ADMIN_PASSWORD", raising=False)
    store = MemoryStorage()

    seed_database(store, Settings(storage_backend="memory", upload_dir=str(tmp_path)))

    assert store.get_voter("ADMIN001") is None


def test_app_startup_seeds_when_enabled(settings) -> None:
    settings.seed_on_startup = True
    store = MemoryStorage()
    app = create_app(settings=settings, storage=store)

    with TestClient(app) as client:
        names = [d["name"] for d in client.get("/districts").json()]

    assert names == list(DISTRICTS)
