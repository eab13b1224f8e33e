from datetime import datetime, timezone
from pydantic import BaseModel, Field
from typing import Optional


class Candidate(BaseModel):
    id: str
    name: str
    party: str
    party_leader: Optional[str] = None
    district: str
    constituency: str
    district_id: str
    constituency_id: str
    symbol: str
    image_url: Optional[str] = None
    vote_count: int = Field(default=0, ge=0)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
