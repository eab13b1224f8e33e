# ethervote/storage_mongo.py
import functools
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ASCENDING, MongoClient, ReturnDocument
from pymongo.errors import ConnectionFailure, DuplicateKeyError, PyMongoError

from .errors import (
    AlreadyVotedError,
    DuplicateIdentifierError,
    EtherVoteError,
    ExternalServiceUnavailableError,
    NotFoundError,
    TransactionAbortedError,
)
from .models import Candidate, Constituency, District, VoteRecord, Voter
from .storage import Storage

logger = logging.getLogger(__name__)

DISTRICTS = "districts"
CONSTITUENCIES = "constituencies"
CANDIDATES = "candidates"
VOTERS = "voters"
VOTES = "votes"
REVOKED_TOKENS = "revoked_tokens"


def _object_id(value: str, kind: str) -> ObjectId:
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        raise NotFoundError(kind, str(value))


def _to_record(doc: Dict[str, Any]) -> Dict[str, Any]:
    # MongoDB _id becomes the string id used everywhere else
    doc = dict(doc)
    doc["id"] = str(doc.pop("_id"))
    return doc


def _duplicate_field(error: DuplicateKeyError) -> str:
    key_pattern = (error.details or {}).get("keyPattern") or {}
    if key_pattern:
        return next(iter(key_pattern))
    return "email" if "email" in str(error) else "voter_id"


def _reports_unavailable(method):
    """Surface a lost connection as ExternalServiceUnavailableError."""

    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        try:
            return method(self, *args, **kwargs)
        except ConnectionFailure as e:
            logger.error(f"MongoDB unreachable during {method.__name__}: {e}")
            raise ExternalServiceUnavailableError("MongoDB", str(e))

    return wrapper


class MongoStorage(Storage):
    name = "mongo"

    def __init__(self, client: MongoClient, db_name: str, use_transactions: bool = True):
        """
        Wrap a MongoDB database.

        Args:
            client: pymongo client (connects lazily)
            db_name: database holding the EtherVote collections
            use_transactions: run the vote step in a multi-document transaction
                (needs a replica set); otherwise claim-then-compensate
        """
        self.client = client
        self.db = client[db_name]
        self.use_transactions = use_transactions
        self.districts = self.db[DISTRICTS]
        self.constituencies = self.db[CONSTITUENCIES]
        self.candidates = self.db[CANDIDATES]
        self.voters = self.db[VOTERS]
        self.votes = self.db[VOTES]
        self.revoked_tokens = self.db[REVOKED_TOKENS]

    @classmethod
    def from_settings(cls, settings) -> "MongoStorage":
        client = MongoClient(
            settings.mongo_uri, serverSelectionTimeoutMS=settings.mongo_timeout_ms, tz_aware=True
        )
        return cls(client, settings.mongo_db, use_transactions=settings.mongo_use_transactions)

    def setup(self) -> None:
        """Create unique indexes; they back the duplicate checks below."""
        try:
            self.districts.create_index("name", unique=True)
            self.constituencies.create_index([("district_id", ASCENDING), ("name", ASCENDING)], unique=True)
            self.candidates.create_index([("district_id", ASCENDING), ("constituency_id", ASCENDING)])
            self.voters.create_index("email", unique=True)
            self.voters.create_index("voter_id", unique=True)
            self.votes.create_index("voter_id", unique=True)
            self.votes.create_index("candidate_id")
            self.revoked_tokens.create_index("expires_at", expireAfterSeconds=0)
            logger.info(f"MongoDB indexes ready on database {self.db.name}")
        except ConnectionFailure as e:
            logger.error(f"Failed to connect to MongoDB: {e}")
            raise ExternalServiceUnavailableError("MongoDB", str(e))

    def ping(self) -> None:
        try:
            self.client.admin.command("ping")
        except ConnectionFailure as e:
            raise ExternalServiceUnavailableError("MongoDB", str(e))

    def close(self) -> None:
        self.client.close()
        logger.info("MongoDB connection closed")

    # ------------------------------
    # Reference data
    # ------------------------------
    @_reports_unavailable
    def add_district(self, name: str, constituencies: List[str]) -> District:
        try:
            result = self.districts.insert_one({"name": name})
        except DuplicateKeyError:
            raise DuplicateIdentifierError("district", name)
        district_id = str(result.inserted_id)
        if constituencies:
            self.constituencies.insert_many(
                [{"name": c, "district_id": district_id} for c in constituencies]
            )
        return District(id=district_id, name=name, constituencies=list(constituencies))

    def _with_constituencies(self, doc: Dict[str, Any]) -> District:
        district_id = str(doc["_id"])
        names = [c["name"] for c in self.constituencies.find({"district_id": district_id}).sort("_id", ASCENDING)]
        return District(id=district_id, name=doc["name"], constituencies=names)

    @_reports_unavailable
    def list_districts(self) -> List[District]:
        return [self._with_constituencies(doc) for doc in self.districts.find({}).sort("_id", ASCENDING)]

    @_reports_unavailable
    def find_district(self, name: str) -> Optional[District]:
        doc = self.districts.find_one({"name": name})
        return self._with_constituencies(doc) if doc else None

    @_reports_unavailable
    def find_constituency(self, district_id: str, name: str) -> Optional[Constituency]:
        doc = self.constituencies.find_one({"district_id": district_id, "name": name})
        return Constituency(**_to_record(doc)) if doc else None

    # ------------------------------
    # Voters
    # ------------------------------
    def _voter_from_doc(self, doc: Optional[Dict[str, Any]]) -> Optional[Voter]:
        if not doc:
            return None
        record = _to_record(doc)
        hashed_password = record.pop("hashed_password", "")
        voter = Voter(**record)
        voter.hashed_password = hashed_password
        return voter

    @_reports_unavailable
    def insert_voter(self, voter: Voter) -> Voter:
        doc = voter.model_dump(exclude={"id"})
        # hashed_password is excluded from dumps so it never leaks into responses
        doc["hashed_password"] = voter.hashed_password
        try:
            result = self.voters.insert_one(doc)
        except DuplicateKeyError as e:
            field = _duplicate_field(e)
            logger.warning(f"Voter with {field} already exists")
            raise DuplicateIdentifierError(field, getattr(voter, field, ""))
        return voter.model_copy(update={"id": str(result.inserted_id)})

    @_reports_unavailable
    def get_voter(self, voter_id: str) -> Optional[Voter]:
        return self._voter_from_doc(self.voters.find_one({"voter_id": voter_id}))

    @_reports_unavailable
    def get_voter_by_id(self, record_id: str) -> Optional[Voter]:
        try:
            oid = ObjectId(record_id)
        except (InvalidId, TypeError):
            return None
        return self._voter_from_doc(self.voters.find_one({"_id": oid}))

    @_reports_unavailable
    def get_voter_by_email(self, email: str) -> Optional[Voter]:
        return self._voter_from_doc(self.voters.find_one({"email": email}))

    # ------------------------------
    # Candidates
    # ------------------------------
    @_reports_unavailable
    def insert_candidate(self, candidate: Candidate) -> Candidate:
        result = self.candidates.insert_one(candidate.model_dump(exclude={"id"}))
        return candidate.model_copy(update={"id": str(result.inserted_id)})

    @_reports_unavailable
    def get_candidate(self, candidate_id: str) -> Optional[Candidate]:
        try:
            oid = ObjectId(candidate_id)
        except (InvalidId, TypeError):
            return None
        doc = self.candidates.find_one({"_id": oid})
        return Candidate(**_to_record(doc)) if doc else None

    @_reports_unavailable
    def list_candidates(
        self,
        district_id: Optional[str] = None,
        constituency_id: Optional[str] = None,
        constituency_name: Optional[str] = None,
    ) -> List[Candidate]:
        query: Dict[str, Any] = {}
        if district_id is not None:
            query["district_id"] = district_id
        if constituency_id is not None:
            query["constituency_id"] = constituency_id
        if constituency_name is not None:
            query["constituency"] = constituency_name
        return [Candidate(**_to_record(doc)) for doc in self.candidates.find(query)]

    # ------------------------------
    # Votes
    # ------------------------------
    def _claim_voter(self, voter_id: str, session=None) -> None:
        # compare-and-swap on the flag: only one concurrent submission can win
        claimed = self.voters.find_one_and_update(
            {"voter_id": voter_id, "has_voted": False},
            {"$set": {"has_voted": True}},
            session=session,
        )
        if claimed is None:
            if self.voters.find_one({"voter_id": voter_id}, session=session) is None:
                raise NotFoundError("Voter", voter_id)
            raise AlreadyVotedError(voter_id)

    def _increment_tally(self, candidate_oid: ObjectId, candidate_id: str, session=None) -> None:
        updated = self.candidates.find_one_and_update(
            {"_id": candidate_oid},
            {"$inc": {"vote_count": 1}},
            session=session,
            return_document=ReturnDocument.AFTER,
        )
        if updated is None:
            raise NotFoundError("Candidate", candidate_id)

    def _insert_vote(self, vote: VoteRecord, session=None) -> VoteRecord:
        result = self.votes.insert_one(vote.model_dump(exclude={"id"}), session=session)
        return vote.model_copy(update={"id": str(result.inserted_id)})

    def _apply_vote(self, vote: VoteRecord, candidate_oid: ObjectId, session) -> VoteRecord:
        self._claim_voter(vote.voter_id, session=session)
        self._increment_tally(candidate_oid, vote.candidate_id, session=session)
        return self._insert_vote(vote, session=session)

    def _apply_vote_compensating(self, vote: VoteRecord, candidate_oid: ObjectId) -> VoteRecord:
        self._claim_voter(vote.voter_id)
        incremented = False
        try:
            self._increment_tally(candidate_oid, vote.candidate_id)
            incremented = True
            return self._insert_vote(vote)
        except (EtherVoteError, PyMongoError):
            # undo in reverse order; the claim was never visible as a vote
            if incremented:
                try:
                    self.candidates.update_one({"_id": candidate_oid}, {"$inc": {"vote_count": -1}})
                except PyMongoError as undo_error:
                    logger.error(
                        f"Tally drift: candidate {vote.candidate_id} keeps an extra vote "
                        f"after a failed vote by {vote.voter_id}: {undo_error}"
                    )
            try:
                self.voters.update_one({"voter_id": vote.voter_id}, {"$set": {"has_voted": False}})
            except PyMongoError as undo_error:
                logger.error(
                    f"Voter {vote.voter_id} left marked as voted without a vote record: {undo_error}"
                )
            raise

    def record_vote(self, vote: VoteRecord) -> VoteRecord:
        candidate_oid = _object_id(vote.candidate_id, "Candidate")
        try:
            if self.use_transactions:
                # with_transaction retries transient write conflicts, so a losing
                # concurrent submission re-reads the flag and fails with AlreadyVoted
                with self.client.start_session() as session:
                    stored = session.with_transaction(
                        lambda s: self._apply_vote(vote, candidate_oid, s)
                    )
            else:
                stored = self._apply_vote_compensating(vote, candidate_oid)
        except DuplicateKeyError:
            # unique index on votes.voter_id
            raise AlreadyVotedError(vote.voter_id)
        except ConnectionFailure as e:
            logger.error(f"MongoDB unreachable while recording vote for {vote.voter_id}: {e}")
            raise ExternalServiceUnavailableError("MongoDB", str(e))
        except PyMongoError as e:
            logger.error(f"Vote transaction aborted for {vote.voter_id}: {e}")
            raise TransactionAbortedError("Vote could not be recorded; no changes were made.")
        logger.info(f"Vote {stored.id} recorded for voter {vote.voter_id}")
        return stored

    @_reports_unavailable
    def get_vote_for_voter(self, voter_id: str) -> Optional[VoteRecord]:
        doc = self.votes.find_one({"voter_id": voter_id})
        return VoteRecord(**_to_record(doc)) if doc else None

    @_reports_unavailable
    def count_votes_by_candidate(self) -> Dict[str, int]:
        pipeline = [
            {"$group": {"_id": "$candidate_id", "count": {"$sum": 1}}},
        ]
        return {row["_id"]: row["count"] for row in self.votes.aggregate(pipeline)}

    # ------------------------------
    # Sessions
    # ------------------------------
    @_reports_unavailable
    def revoke_token(self, jti: str, expires_at: datetime) -> None:
        self.revoked_tokens.update_one(
            {"_id": jti}, {"$set": {"expires_at": expires_at}}, upsert=True
        )

    @_reports_unavailable
    def is_token_revoked(self, jti: str) -> bool:
        return self.revoked_tokens.find_one({"_id": jti}) is not None
