import logging
from typing import List, Optional, Tuple

from .config import DEFAULT_SYMBOL
from .errors import DuplicateIdentifierError, InvalidCredentialsError, NotFoundError, ValidationFailedError
from .images import ImageStore
from .models import Candidate, Constituency, District, Voter
from .schemas import CandidateCreate, TallyMismatch, VoterCreate
from .security import hash_password, verify_password
from .storage import Storage

logger = logging.getLogger(__name__)


# Resolve district and constituency names to their records
def resolve_constituency(storage: Storage, district: str, constituency: str) -> Tuple[District, Constituency]:
    district_rec = storage.find_district(district)
    if district_rec is None:
        raise NotFoundError("District", district)
    constituency_rec = storage.find_constituency(district_rec.id, constituency)
    if constituency_rec is None:
        raise NotFoundError("Constituency", f"{constituency} ({district})")
    return district_rec, constituency_rec


def list_districts(storage: Storage) -> List[District]:
    return storage.list_districts()


# ------------------------------
# Voters
# ------------------------------
def register_voter(storage: Storage, data: VoterCreate, role: str = "voter") -> Voter:
    resolve_constituency(storage, data.district, data.constituency)

    email = data.email.lower()
    # pre-checks give a clear message; the storage unique constraints close the race
    if storage.get_voter_by_email(email) is not None:
        logger.warning(f"Registration rejected: email {email} already registered")
        raise DuplicateIdentifierError("email", email)
    if storage.get_voter(data.voter_id) is not None:
        logger.warning(f"Registration rejected: voter id {data.voter_id} already registered")
        raise DuplicateIdentifierError("voter_id", data.voter_id)

    voter = Voter(
        id="",
        name=data.name,
        voter_id=data.voter_id,
        district=data.district,
        constituency=data.constituency,
        email=email,
        phone=data.phone,
        wallet_address=data.wallet_address,
        has_voted=False,
        role=role,
        hashed_password=hash_password(data.password),
    )
    created = storage.insert_voter(voter)
    logger.info(f"Registered {role} {created.voter_id}")
    return created


def authenticate(storage: Storage, email: str, password: str) -> Voter:
    voter = storage.get_voter_by_email(email.strip().lower())
    if voter is None or not verify_password(password, voter.hashed_password):
        raise InvalidCredentialsError()
    return voter


# ------------------------------
# Candidates
# ------------------------------
def _scope_ids(
    storage: Storage, district: Optional[str], constituency: Optional[str]
) -> Optional[Tuple[Optional[str], Optional[str]]]:
    """Map name filters to ids. None means the filter matches nothing."""
    if not district:
        return None, None
    district_rec = storage.find_district(district)
    if district_rec is None:
        return None
    if not constituency:
        return district_rec.id, None
    constituency_rec = storage.find_constituency(district_rec.id, constituency)
    if constituency_rec is None:
        return None
    return district_rec.id, constituency_rec.id


def list_candidates(
    storage: Storage, district: Optional[str] = None, constituency: Optional[str] = None
) -> List[Candidate]:
    if constituency and not district:
        # same constituency name in any district
        return storage.list_candidates(constituency_name=constituency)
    scope = _scope_ids(storage, district, constituency)
    if scope is None:
        return []
    district_id, constituency_id = scope
    return storage.list_candidates(district_id=district_id, constituency_id=constituency_id)


def add_candidate(
    storage: Storage,
    data: CandidateCreate,
    images: Optional[ImageStore] = None,
    image: Optional[Tuple[bytes, Optional[str], Optional[str]]] = None,
) -> Candidate:
    """
    Register a candidate in a constituency.

    Args:
        data: candidate form fields
        images: image store, required when an image is given
        image: optional (data, content_type, filename) of an uploaded picture

    Returns:
        The stored candidate with its assigned id and a zero tally
    """
    missing = [f for f in ("name", "party", "district", "constituency") if not getattr(data, f)]
    if missing:
        raise ValidationFailedError(
            f"Missing required fields: {', '.join(missing)}", details={"missing": missing}
        )
    district_rec, constituency_rec = resolve_constituency(storage, data.district, data.constituency)

    image_url = None
    if image is not None:
        if images is None:
            raise ValidationFailedError("Image uploads are not configured")
        content, content_type, filename = image
        image_url = images.save(content, content_type, filename)

    candidate = Candidate(
        id="",
        name=data.name,
        party=data.party,
        party_leader=data.party_leader or None,
        district=district_rec.name,
        constituency=constituency_rec.name,
        district_id=district_rec.id,
        constituency_id=constituency_rec.id,
        symbol=data.symbol or DEFAULT_SYMBOL,
        image_url=image_url,
        vote_count=0,
    )
    created = storage.insert_candidate(candidate)
    logger.info(f"Candidate {created.name} ({created.party}) added to {created.constituency}")
    return created


# ------------------------------
# Results
# ------------------------------
def results_order(candidate: Candidate):
    # highest tally first; equal tallies by name, then id, so the order is stable
    return -candidate.vote_count, candidate.name.lower(), candidate.id


def get_results(
    storage: Storage, district: Optional[str] = None, constituency: Optional[str] = None
) -> List[Candidate]:
    return sorted(list_candidates(storage, district, constituency), key=results_order)


def audit_tallies(storage: Storage) -> List[TallyMismatch]:
    """Compare every candidate's tally with the vote records that reference it."""
    recorded = storage.count_votes_by_candidate()
    mismatches = []
    for candidate in storage.list_candidates():
        count = recorded.get(candidate.id, 0)
        if count != candidate.vote_count:
            mismatches.append(
                TallyMismatch(
                    candidate_id=candidate.id,
                    name=candidate.name,
                    vote_count=candidate.vote_count,
                    recorded_votes=count,
                )
            )
    if mismatches:
        logger.error(f"Tally audit found {len(mismatches)} mismatched candidate(s)")
    return mismatches
