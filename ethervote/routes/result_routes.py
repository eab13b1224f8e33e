from fastapi import APIRouter, Depends, Query
from typing import List, Optional

from ..crud import audit_tallies, get_results
from ..dependencies import get_storage, require_admin
from ..models import Voter
from ..schemas import CandidateOut, TallyMismatch
from ..storage import Storage

router = APIRouter(prefix="/results", tags=["Results"])


@router.get("", response_model=List[CandidateOut])
def results(
    district: Optional[str] = Query(None),
    constituency: Optional[str] = Query(None),
    storage: Storage = Depends(get_storage),
):
    return get_results(storage, district, constituency)


@router.get("/audit", response_model=List[TallyMismatch])
def audit(storage: Storage = Depends(get_storage), admin: Voter = Depends(require_admin)):
    """Candidates whose tally differs from the number of recorded votes."""
    return audit_tallies(storage)
