# Seed districts, constituencies, the admin account and (optionally) demo candidates.
# Run with: python -m ethervote.seed
import logging
from typing import Dict, List

from .config import Settings, get_settings
from .crud import add_candidate, register_voter
from .database import build_storage
from .errors import DuplicateIdentifierError
from .schemas import CandidateCreate, VoterCreate
from .storage import Storage

logger = logging.getLogger(__name__)

DISTRICTS: Dict[str, List[str]] = {
    "Central District": ["North Central", "South Central", "Central Heights"],
    "Eastern District": ["East Hills", "East Valley", "Eastern Plains"],
    "Western District": ["West End", "West Coast", "Western Heights"],
    "Northern District": ["North Point", "North Fields", "Northern Hills"],
    "Southern District": ["South Beach", "South Valley", "Southern Plains"],
}

# Tallies start at zero so vote counts always match the vote records
DEMO_CANDIDATES = [
    {"name": "Alex Johnson", "party": "Progressive Party", "district": "Central District", "constituency": "North Central", "symbol": "🌟"},
    {"name": "Maria Rodriguez", "party": "Citizens Alliance", "district": "Central District", "constituency": "North Central", "symbol": "🌳"},
    {"name": "Robert Chen", "party": "Forward Movement", "district": "Central District", "constituency": "North Central", "symbol": "🚀"},
    {"name": "Sarah Williams", "party": "Unity Party", "district": "Eastern District", "constituency": "East Hills", "symbol": "🌈"},
    {"name": "James Taylor", "party": "People's Choice", "district": "Eastern District", "constituency": "East Hills", "symbol": "👥"},
]

ADMIN_WALLET = "0x" + "0" * 40


def seed_database(storage: Storage, settings: Settings) -> bool:
    """Seed an empty store. Returns False when districts already exist."""
    if storage.list_districts():
        logger.info("Database already set up")
        return False

    logger.info("Seeding database with initial data...")
    for name, constituencies in DISTRICTS.items():
        storage.add_district(name, constituencies)

    if settings.admin_email and settings.admin_password:
        district, constituencies = next(iter(DISTRICTS.items()))
        admin = VoterCreate(
            name="Administrator",
            voter_id="ADMIN001",
            district=district,
            constituency=constituencies[0],
            email=settings.admin_email,
            phone="000-000-0000",
            wallet_address=ADMIN_WALLET,
            password=settings.admin_password,
        )
        try:
            register_voter(storage, admin, role="admin")
        except DuplicateIdentifierError:
            logger.info(f"Admin {settings.admin_email} already exists, skipping")
    else:
        logger.warning("ADMIN_EMAIL/ADMIN_PASSWORD not set; no admin account created")

    if settings.seed_demo_candidates:
        for candidate in DEMO_CANDIDATES:
            add_candidate(storage, CandidateCreate(**candidate))

    logger.info("Database seeded successfully")
    return True


def main() -> None:
    settings = get_settings()
    logging.basicConfig(level=settings.log_level)
    storage = build_storage(settings)
    try:
        storage.setup()
        seed_database(storage, settings)
    finally:
        storage.close()


if __name__ == "__main__":
    main()
