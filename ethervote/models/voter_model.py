from datetime import datetime, timezone
from pydantic import BaseModel, Field
from typing import Literal

Role = Literal["voter", "admin"]


class Voter(BaseModel):
    id: str
    name: str
    voter_id: str
    district: str
    constituency: str
    email: str
    phone: str
    wallet_address: str
    has_voted: bool = False
    role: Role = "voter"
    hashed_password: str = Field(default="", exclude=True, repr=False)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"
