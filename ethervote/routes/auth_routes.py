from fastapi import APIRouter, Depends, Form
from typing import Any, Dict

from ..config import Settings
from ..crud import authenticate, register_voter
from ..dependencies import get_current_voter, get_settings, get_storage, get_token_payload
from ..models import Voter
from ..schemas import MessageOut, TokenOut, VoterCreate, VoterOut
from ..security import create_access_token, token_expiry
from ..storage import Storage

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post("/register", response_model=VoterOut, status_code=201)
def register(data: VoterCreate, storage: Storage = Depends(get_storage)):
    return register_voter(storage, data)


@router.post("/login", response_model=TokenOut)
def login(
    email: str = Form(...),
    password: str = Form(...),
    storage: Storage = Depends(get_storage),
    settings: Settings = Depends(get_settings),
):
    voter = authenticate(storage, email, password)
    token = create_access_token(
        {"sub": voter.id, "email": voter.email, "role": voter.role},
        settings.secret_key,
        settings.access_token_expire_minutes,
    )
    return {"access_token": token, "token_type": "bearer", "voter": voter}


@router.get("/me", response_model=VoterOut)
def me(voter: Voter = Depends(get_current_voter)):
    return voter


@router.post("/logout", response_model=MessageOut)
def logout(
    payload: Dict[str, Any] = Depends(get_token_payload),
    storage: Storage = Depends(get_storage),
):
    storage.revoke_token(payload["jti"], token_expiry(payload))
    return {"message": "You have been logged out successfully"}
