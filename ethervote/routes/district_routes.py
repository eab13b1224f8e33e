from fastapi import APIRouter, Depends
from typing import List

from ..crud import list_districts
from ..dependencies import get_storage
from ..models import District
from ..storage import Storage

router = APIRouter(prefix="/districts", tags=["Districts"])


@router.get("", response_model=List[District])
def get_districts(storage: Storage = Depends(get_storage)):
    return list_districts(storage)
