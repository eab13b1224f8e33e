from fastapi import APIRouter, Depends

from ..dependencies import get_current_voter, get_signer, get_storage
from ..ledger import TransactionSigner
from ..models import Voter
from ..schemas import VoteCreate, VoteOut, VoteStatus
from ..storage import Storage
from ..voting import submit_vote, voting_status

vote_router = APIRouter(prefix="/vote", tags=["Vote"])


# ------------------------------
# ✅ CAST VOTE API
# ------------------------------
@vote_router.post("/cast", response_model=VoteOut)
def cast_vote(
    vote: VoteCreate,
    voter: Voter = Depends(get_current_voter),
    storage: Storage = Depends(get_storage),
    signer: TransactionSigner = Depends(get_signer),
):
    """
    Casts the authenticated voter's single vote. The transaction hash from the
    wallet step is optional; the configured ledger supplies one when missing.
    """
    return submit_vote(storage, signer, voter.voter_id, vote.candidate_id, vote.transaction_hash)


# ------------------------------
# ✅ CHECK IF USER HAS ALREADY VOTED
# ------------------------------
@vote_router.get("/status", response_model=VoteStatus)
def check_vote(voter: Voter = Depends(get_current_voter), storage: Storage = Depends(get_storage)):
    return voting_status(storage, voter.voter_id)
