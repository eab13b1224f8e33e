from datetime import datetime
from pydantic import BaseModel, ConfigDict, EmailStr, Field
from typing import Optional

from .models import Candidate, VoteRecord

WALLET_ADDRESS_PATTERN = r"^0x[0-9a-fA-F]{40}$"


class VoterBase(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1)
    voter_id: str = Field(..., min_length=1, max_length=64)
    district: str = Field(..., min_length=1)
    constituency: str = Field(..., min_length=1)
    email: EmailStr
    phone: str = Field(..., min_length=3, max_length=32)
    wallet_address: str = Field(..., pattern=WALLET_ADDRESS_PATTERN)


class VoterCreate(VoterBase):
    password: str = Field(..., min_length=6)


class VoterOut(VoterBase):
    id: str
    has_voted: bool
    role: str
    created_at: datetime


class TokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"
    voter: VoterOut


class CandidateCreate(BaseModel):
    """Admin form data. Required fields are checked by the service so the
    caller gets one message naming every missing field."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = ""
    party: str = ""
    party_leader: Optional[str] = None
    district: str = ""
    constituency: str = ""
    symbol: Optional[str] = None


class CandidateOut(Candidate):
    pass


class VoteCreate(BaseModel):
    candidate_id: str = Field(..., min_length=1)
    # Reference from the wallet step; the server asks its ledger for one when omitted
    transaction_hash: Optional[str] = Field(default=None, min_length=1, max_length=256)


class VoteOut(VoteRecord):
    pass


class VoteStatus(BaseModel):
    voter_id: str
    has_voted: bool
    vote: Optional[VoteOut] = None


class TallyMismatch(BaseModel):
    candidate_id: str
    name: str
    vote_count: int
    recorded_votes: int


class MessageOut(BaseModel):
    message: str
