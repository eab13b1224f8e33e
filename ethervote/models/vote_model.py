from datetime import datetime, timezone
from pydantic import BaseModel, Field


class VoteRecord(BaseModel):
    id: str = ""
    voter_id: str
    candidate_id: str
    district_id: str
    constituency_id: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    transaction_hash: str  # opaque reference from the ledger step, not a real signature
