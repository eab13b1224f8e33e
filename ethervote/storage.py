# ethervote/storage.py
"""
Storage interface and the in-memory implementation.

The in-memory store keeps everything in dicts guarded by a single lock. It
is selected explicitly with STORAGE_BACKEND=memory (tests, demos); nothing
in the service falls back to it when MongoDB is unreachable.
"""
import logging
import threading
import uuid
from abc import ABC, abstractmethod
from collections import Counter
from datetime import datetime, timezone
from typing import Dict, List, Optional

from .errors import AlreadyVotedError, DuplicateIdentifierError, NotFoundError
from .models import Candidate, Constituency, District, VoteRecord, Voter

logger = logging.getLogger(__name__)


class Storage(ABC):
    """Persistence operations the services depend on."""

    name = "abstract"

    def setup(self) -> None:
        """Create indexes or other server-side structures. No-op by default."""

    def ping(self) -> None:
        """Raise ExternalServiceUnavailableError when the backend is unreachable."""

    def close(self) -> None:
        pass

    # --- Reference data ---
    @abstractmethod
    def add_district(self, name: str, constituencies: List[str]) -> District:
        pass

    @abstractmethod
    def list_districts(self) -> List[District]:
        pass

    @abstractmethod
    def find_district(self, name: str) -> Optional[District]:
        pass

    @abstractmethod
    def find_constituency(self, district_id: str, name: str) -> Optional[Constituency]:
        pass

    # --- Voters ---
    @abstractmethod
    def insert_voter(self, voter: Voter) -> Voter:
        """
        Save a new voter.

        Raises:
            DuplicateIdentifierError: email or voter id already registered
        """

    @abstractmethod
    def get_voter(self, voter_id: str) -> Optional[Voter]:
        """Look a voter up by external voter id."""

    @abstractmethod
    def get_voter_by_id(self, record_id: str) -> Optional[Voter]:
        pass

    @abstractmethod
    def get_voter_by_email(self, email: str) -> Optional[Voter]:
        pass

    # --- Candidates ---
    @abstractmethod
    def insert_candidate(self, candidate: Candidate) -> Candidate:
        pass

    @abstractmethod
    def get_candidate(self, candidate_id: str) -> Optional[Candidate]:
        pass

    @abstractmethod
    def list_candidates(
        self,
        district_id: Optional[str] = None,
        constituency_id: Optional[str] = None,
        constituency_name: Optional[str] = None,
    ) -> List[Candidate]:
        """All filters are optional and combine with AND."""

    # --- Votes ---
    @abstractmethod
    def record_vote(self, vote: VoteRecord) -> VoteRecord:
        """
        Atomically: check the voter has not voted, insert the vote record,
        increment the candidate's tally by one and set the voter's flag.
        Either all four effects happen or none.

        Raises:
            NotFoundError: voter or candidate does not exist
            AlreadyVotedError: the voter's flag is already set
            TransactionAbortedError: the atomic step failed
        """

    @abstractmethod
    def get_vote_for_voter(self, voter_id: str) -> Optional[VoteRecord]:
        pass

    @abstractmethod
    def count_votes_by_candidate(self) -> Dict[str, int]:
        pass

    # --- Sessions ---
    @abstractmethod
    def revoke_token(self, jti: str, expires_at: datetime) -> None:
        pass

    @abstractmethod
    def is_token_revoked(self, jti: str) -> bool:
        pass


def _new_id() -> str:
    return uuid.uuid4().hex


class MemoryStorage(Storage):
    name = "memory"

    def __init__(self):
        self._lock = threading.RLock()
        self._districts: Dict[str, District] = {}
        self._constituencies: Dict[str, Constituency] = {}
        self._voters: Dict[str, Voter] = {}
        self._candidates: Dict[str, Candidate] = {}
        self._votes: Dict[str, VoteRecord] = {}
        self._revoked: Dict[str, datetime] = {}

    def add_district(self, name: str, constituencies: List[str]) -> District:
        with self._lock:
            if self.find_district(name) is not None:
                raise DuplicateIdentifierError("district", name)
            district = District(id=_new_id(), name=name, constituencies=list(constituencies))
            self._districts[district.id] = district
            for constituency_name in constituencies:
                constituency = Constituency(id=_new_id(), name=constituency_name, district_id=district.id)
                self._constituencies[constituency.id] = constituency
            return district.model_copy(deep=True)

    def list_districts(self) -> List[District]:
        with self._lock:
            return [d.model_copy(deep=True) for d in self._districts.values()]

    def find_district(self, name: str) -> Optional[District]:
        with self._lock:
            for district in self._districts.values():
                if district.name == name:
                    return district.model_copy(deep=True)
        return None

    def find_constituency(self, district_id: str, name: str) -> Optional[Constituency]:
        with self._lock:
            for constituency in self._constituencies.values():
                if constituency.district_id == district_id and constituency.name == name:
                    return constituency.model_copy()
        return None

    def insert_voter(self, voter: Voter) -> Voter:
        with self._lock:
            for existing in self._voters.values():
                if existing.email.lower() == voter.email.lower():
                    raise DuplicateIdentifierError("email", voter.email)
                if existing.voter_id == voter.voter_id:
                    raise DuplicateIdentifierError("voter_id", voter.voter_id)
            stored = voter.model_copy(update={"id": voter.id or _new_id()})
            self._voters[stored.id] = stored
            return stored.model_copy()

    def get_voter(self, voter_id: str) -> Optional[Voter]:
        with self._lock:
            for voter in self._voters.values():
                if voter.voter_id == voter_id:
                    return voter.model_copy()
        return None

    def get_voter_by_id(self, record_id: str) -> Optional[Voter]:
        with self._lock:
            voter = self._voters.get(record_id)
            return voter.model_copy() if voter else None

    def get_voter_by_email(self, email: str) -> Optional[Voter]:
        with self._lock:
            for voter in self._voters.values():
                if voter.email.lower() == email.lower():
                    return voter.model_copy()
        return None

    def insert_candidate(self, candidate: Candidate) -> Candidate:
        with self._lock:
            stored = candidate.model_copy(update={"id": candidate.id or _new_id()})
            self._candidates[stored.id] = stored
            return stored.model_copy()

    def get_candidate(self, candidate_id: str) -> Optional[Candidate]:
        with self._lock:
            candidate = self._candidates.get(candidate_id)
            return candidate.model_copy() if candidate else None

    def list_candidates(
        self,
        district_id: Optional[str] = None,
        constituency_id: Optional[str] = None,
        constituency_name: Optional[str] = None,
    ) -> List[Candidate]:
        with self._lock:
            return [
                c.model_copy()
                for c in self._candidates.values()
                if (district_id is None or c.district_id == district_id)
                and (constituency_id is None or c.constituency_id == constituency_id)
                and (constituency_name is None or c.constituency == constituency_name)
            ]

    def record_vote(self, vote: VoteRecord) -> VoteRecord:
        with self._lock:
            # All checks happen before the first mutation, so a failure leaves nothing behind
            voter = next((v for v in self._voters.values() if v.voter_id == vote.voter_id), None)
            if voter is None:
                raise NotFoundError("Voter", vote.voter_id)
            if voter.has_voted:
                raise AlreadyVotedError(vote.voter_id)
            candidate = self._candidates.get(vote.candidate_id)
            if candidate is None:
                raise NotFoundError("Candidate", vote.candidate_id)

            stored = vote.model_copy(update={"id": _new_id()})
            self._votes[stored.id] = stored
            self._candidates[candidate.id] = candidate.model_copy(update={"vote_count": candidate.vote_count + 1})
            self._voters[voter.id] = voter.model_copy(update={"has_voted": True})
            logger.info(f"Vote {stored.id} recorded for voter {vote.voter_id}")
            return stored.model_copy()

    def get_vote_for_voter(self, voter_id: str) -> Optional[VoteRecord]:
        with self._lock:
            for vote in self._votes.values():
                if vote.voter_id == voter_id:
                    return vote.model_copy()
        return None

    def count_votes_by_candidate(self) -> Dict[str, int]:
        with self._lock:
            return dict(Counter(v.candidate_id for v in self._votes.values()))

    def revoke_token(self, jti: str, expires_at: datetime) -> None:
        with self._lock:
            now = datetime.now(timezone.utc)
            # drop entries whose tokens have expired anyway
            self._revoked = {k: exp for k, exp in self._revoked.items() if exp > now}
            self._revoked[jti] = expires_at

    def is_token_revoked(self, jti: str) -> bool:
        with self._lock:
            return jti in self._revoked
