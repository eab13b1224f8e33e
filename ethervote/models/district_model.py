from pydantic import BaseModel, Field
from typing import List


class District(BaseModel):
    id: str
    name: str = Field(..., examples=["Central District"])
    constituencies: List[str] = Field(default_factory=list)


class Constituency(BaseModel):
    id: str
    name: str = Field(..., examples=["North Central"])
    district_id: str
