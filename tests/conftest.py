from __future__ import annotations

import os

# The module-level app in ethervote.main is built from the environment at import time
os.environ.setdefault("STORAGE_BACKEND", "memory")
os.environ.setdefault("LEDGER_BACKEND", "mock")

import pytest
from fastapi.testclient import TestClient
from passlib.context import CryptContext

from ethervote import security
from ethervote.config import Settings
from ethervote.crud import add_candidate, register_voter
from ethervote.images import ImageStore
from ethervote.ledger import MockTransactionSigner
from ethervote.main import create_app
from ethervote.schemas import CandidateCreate, VoterCreate
from ethervote.seed import seed_database
from ethervote.storage import MemoryStorage

ADMIN_EMAIL = "admin@ethervote.org"
ADMIN_PASSWORD = "admin-pass"


@pytest.fixture(autouse=True)
def fast_password_hashing(monkeypatch):
    monkeypatch.setattr(security, "pwd_context", CryptContext(schemes=["bcrypt"], bcrypt__rounds=4))


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        storage_backend="memory",
        ledger_backend="mock",
        secret_key="test-secret",
        upload_dir=str(tmp_path / "uploads"),
        public_base_url="http://testserver",
        admin_email=ADMIN_EMAIL,
        admin_password=ADMIN_PASSWORD,
        seed_on_startup=False,
    )


@pytest.fixture
def storage(settings) -> MemoryStorage:
    store = MemoryStorage()
    seed_database(store, settings)
    store.add_district("Chennai", ["Chennai North", "Chennai South"])
    return store


@pytest.fixture
def signer() -> MockTransactionSigner:
    return MockTransactionSigner()


@pytest.fixture
def images(settings) -> ImageStore:
    return ImageStore.from_settings(settings)


@pytest.fixture
def client(settings, storage, signer, images) -> TestClient:
    app = create_app(settings=settings, storage=storage, signer=signer, images=images)
    return TestClient(app)


def voter_payload(**overrides) -> dict:
    data = {
        "name": "John Doe",
        "voter_id": "VOT12345",
        "district": "Central District",
        "constituency": "North Central",
        "email": "john@ethervote.org",
        "phone": "555-123-4567",
        "wallet_address": "0x71C7656EC7ab88b098defB751B7401B5f6d8976F",
        "password": "password123",
    }
    data.update(overrides)
    return data


@pytest.fixture
def make_voter(storage):
    counter = {"n": 0}

    def _make(**overrides):
        counter["n"] += 1
        n = counter["n"]
        defaults = {"voter_id": f"VOT{n:05d}", "email": f"voter{n}@ethervote.org"}
        defaults.update(overrides)
        return register_voter(storage, VoterCreate(**voter_payload(**defaults)))

    return _make


@pytest.fixture
def make_candidate(storage):
    def _make(name: str, district: str = "Central District", constituency: str = "North Central", **extra):
        data = CandidateCreate(name=name, party=extra.pop("party", f"{name} Party"), district=district,
                               constituency=constituency, **extra)
        return add_candidate(storage, data)

    return _make


def login(client: TestClient, email: str, password: str) -> dict:
    response = client.post("/auth/login", data={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


@pytest.fixture
def admin_headers(client) -> dict:
    return login(client, ADMIN_EMAIL, ADMIN_PASSWORD)
