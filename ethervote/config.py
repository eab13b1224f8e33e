# ethervote/config.py
# Central place for settings and constants
import os
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()

STORAGE_BACKENDS = ("mongo", "memory")
LEDGER_BACKENDS = ("mock", "fabric")

# Candidate images (matches the 2MB limit of the admin upload form)
MAX_IMAGE_BYTES = 2 * 1024 * 1024
IMAGE_ROUTE = "/uploads/candidate_photos"

DEFAULT_SYMBOL = "🏛️"


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_list(name: str, default: List[str]) -> List[str]:
    value = os.getenv(name)
    if not value:
        return list(default)
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings:
    """Runtime settings. Defaults come from the environment (and `.env`)."""

    def __init__(
        self,
        storage_backend: Optional[str] = None,
        mongo_uri: Optional[str] = None,
        mongo_db: Optional[str] = None,
        mongo_use_transactions: Optional[bool] = None,
        mongo_timeout_ms: Optional[int] = None,
        secret_key: Optional[str] = None,
        access_token_expire_minutes: Optional[int] = None,
        ledger_backend: Optional[str] = None,
        ledger_delay_seconds: Optional[float] = None,
        fabric_channel: Optional[str] = None,
        fabric_chaincode: Optional[str] = None,
        fabric_orderer: Optional[str] = None,
        fabric_peer: Optional[str] = None,
        upload_dir: Optional[str] = None,
        public_base_url: Optional[str] = None,
        max_image_bytes: Optional[int] = None,
        cors_origins: Optional[List[str]] = None,
        seed_on_startup: Optional[bool] = None,
        seed_demo_candidates: Optional[bool] = None,
        admin_email: Optional[str] = None,
        admin_password: Optional[str] = None,
        log_level: Optional[str] = None,
    ):
        # --- Storage ---
        self.storage_backend = (storage_backend or os.getenv("STORAGE_BACKEND", "mongo")).lower()
        self.mongo_uri = mongo_uri or os.getenv("MONGO_URI", "mongodb://localhost:27017")
        self.mongo_db = mongo_db or os.getenv("MONGO_DB", "ethervote")
        self.mongo_use_transactions = (
            mongo_use_transactions
            if mongo_use_transactions is not None
            else _env_bool("MONGO_USE_TRANSACTIONS", True)
        )
        self.mongo_timeout_ms = mongo_timeout_ms or int(os.getenv("MONGO_TIMEOUT_MS", "5000"))

        # --- Security & JWT ---
        # In production, always set SECRET_KEY in the environment
        self.secret_key = secret_key or os.getenv("SECRET_KEY", "a_very_secret_key_for_dev_only")
        self.access_token_expire_minutes = access_token_expire_minutes or int(
            os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60")
        )

        # --- Ledger (transaction reference provider) ---
        self.ledger_backend = (ledger_backend or os.getenv("LEDGER_BACKEND", "mock")).lower()
        self.ledger_delay_seconds = (
            ledger_delay_seconds
            if ledger_delay_seconds is not None
            else float(os.getenv("LEDGER_DELAY_SECONDS", "0"))
        )
        self.fabric_channel = fabric_channel or os.getenv("FABRIC_CHANNEL", "votechannel")
        self.fabric_chaincode = fabric_chaincode or os.getenv("FABRIC_CHAINCODE", "ethervote")
        self.fabric_orderer = fabric_orderer or os.getenv("FABRIC_ORDERER", "orderer.example.com:7050")
        self.fabric_peer = fabric_peer or os.getenv("FABRIC_PEER", "localhost:7051")

        # --- Images ---
        self.upload_dir = upload_dir or os.getenv("UPLOAD_DIR", "uploads/candidate_photos")
        self.public_base_url = (public_base_url or os.getenv("PUBLIC_BASE_URL", "http://localhost:8000")).rstrip("/")
        self.max_image_bytes = max_image_bytes or int(os.getenv("MAX_IMAGE_BYTES", str(MAX_IMAGE_BYTES)))

        # --- HTTP ---
        self.cors_origins = cors_origins or _env_list(
            "CORS_ORIGINS",
            [
                "http://localhost:3000",  # For Create React App
                "http://localhost:5173",  # For Vite
            ],
        )

        # --- Seeding ---
        self.seed_on_startup = (
            seed_on_startup if seed_on_startup is not None else _env_bool("SEED_ON_STARTUP", False)
        )
        self.seed_demo_candidates = (
            seed_demo_candidates
            if seed_demo_candidates is not None
            else _env_bool("SEED_DEMO_CANDIDATES", False)
        )
        self.admin_email = admin_email or os.getenv("ADMIN_EMAIL")
        self.admin_password = admin_password or os.getenv("ADMIN_PASSWORD")

        self.log_level = (log_level or os.getenv("LOG_LEVEL", "INFO")).upper()


def get_settings() -> Settings:
    return Settings()
