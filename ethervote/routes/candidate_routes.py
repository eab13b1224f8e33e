from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from typing import List, Optional

from ..crud import add_candidate, list_candidates
from ..dependencies import get_image_store, get_storage, require_admin
from ..images import ImageStore, decode_base64_image
from ..models import Voter
from ..schemas import CandidateCreate, CandidateOut
from ..storage import Storage

router = APIRouter(prefix="/candidates", tags=["Candidates"])


@router.get("", response_model=List[CandidateOut])
def get_candidates(
    district: Optional[str] = Query(None),
    constituency: Optional[str] = Query(None),
    storage: Storage = Depends(get_storage),
):
    return list_candidates(storage, district, constituency)


@router.post("", response_model=CandidateOut, status_code=201)
def create_candidate(
    name: str = Form(""),
    party: str = Form(""),
    party_leader: Optional[str] = Form(None),
    district: str = Form(""),
    constituency: str = Form(""),
    symbol: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    image_base64: Optional[str] = Form(None),
    storage: Storage = Depends(get_storage),
    images: ImageStore = Depends(get_image_store),
    admin: Voter = Depends(require_admin),
):
    data = CandidateCreate(
        name=name,
        party=party,
        party_leader=party_leader,
        district=district,
        constituency=constituency,
        symbol=symbol,
    )

    upload = None
    if image is not None and image.filename:
        # one byte past the limit is enough for ImageStore.save to reject it
        upload = (image.file.read(images.max_bytes + 1), image.content_type, image.filename)
    elif image_base64:
        content, content_type = decode_base64_image(image_base64)
        upload = (content, content_type, None)

    return add_candidate(storage, data, images=images, image=upload)
