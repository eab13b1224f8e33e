"""
Vote submission.

submit_vote resolves the voter's district and constituency, checks the
chosen candidate stands there, obtains a transaction reference and hands
the vote to Storage.record_vote, which performs the flag check, vote insert,
tally increment and flag update as one atomic step. At most one vote record
is ever created per voter.
"""
import logging
from typing import Optional

from .crud import resolve_constituency
from .errors import AlreadyVotedError, NotFoundError
from .ledger import TransactionSigner
from .models import VoteRecord
from .schemas import VoteStatus
from .storage import Storage

logger = logging.getLogger(__name__)


def submit_vote(
    storage: Storage,
    signer: TransactionSigner,
    voter_id: str,
    candidate_id: str,
    tx_ref: Optional[str] = None,
) -> VoteRecord:
    voter = storage.get_voter(voter_id)
    if voter is None:
        raise NotFoundError("Voter", voter_id)
    # fast path only; the authoritative check is inside record_vote
    if voter.has_voted:
        logger.warning(f"Voter {voter_id} attempted to vote again")
        raise AlreadyVotedError(voter_id)

    district, constituency = resolve_constituency(storage, voter.district, voter.constituency)

    candidate = storage.get_candidate(candidate_id)
    if candidate is None:
        raise NotFoundError("Candidate", candidate_id)
    if candidate.district_id != district.id or candidate.constituency_id != constituency.id:
        # ballots only list local candidates; anything else is treated as unknown
        logger.warning(f"Voter {voter_id} chose candidate {candidate_id} outside {constituency.name}")
        raise NotFoundError("Candidate", f"{candidate_id} in {constituency.name}")

    if not tx_ref:
        tx_ref = signer.sign_vote(voter_id, candidate_id)

    vote = VoteRecord(
        voter_id=voter_id,
        candidate_id=candidate_id,
        district_id=district.id,
        constituency_id=constituency.id,
        transaction_hash=tx_ref,
    )
    try:
        return storage.record_vote(vote)
    except AlreadyVotedError:
        logger.warning(f"Concurrent duplicate vote rejected for voter {voter_id}")
        raise


def voting_status(storage: Storage, voter_id: str) -> VoteStatus:
    voter = storage.get_voter(voter_id)
    if voter is None:
        raise NotFoundError("Voter", voter_id)
    vote = storage.get_vote_for_voter(voter_id) if voter.has_voted else None
    return VoteStatus(
        voter_id=voter_id,
        has_voted=voter.has_voted,
        vote=vote.model_dump() if vote else None,
    )
