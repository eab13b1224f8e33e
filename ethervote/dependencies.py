from typing import Any, Dict, Optional

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer

from .config import Settings
from .errors import ForbiddenError, InvalidCredentialsError
from .images import ImageStore
from .ledger import TransactionSigner
from .models import Voter
from .security import decode_access_token
from .storage import Storage

# auto_error=False so a missing token goes through the same error envelope
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_storage(request: Request) -> Storage:
    return request.app.state.storage


def get_signer(request: Request) -> TransactionSigner:
    return request.app.state.signer


def get_image_store(request: Request) -> ImageStore:
    return request.app.state.images


def get_token_payload(
    token: Optional[str] = Depends(oauth2_scheme),
    settings: Settings = Depends(get_settings),
    storage: Storage = Depends(get_storage),
) -> Dict[str, Any]:
    if not token:
        raise InvalidCredentialsError("Not authenticated")
    payload = decode_access_token(token, settings.secret_key)
    if storage.is_token_revoked(payload["jti"]):
        raise InvalidCredentialsError("Token has been revoked.")
    return payload


def get_current_voter(
    payload: Dict[str, Any] = Depends(get_token_payload),
    storage: Storage = Depends(get_storage),
) -> Voter:
    voter = storage.get_voter_by_id(payload["sub"])
    if voter is None:
        raise InvalidCredentialsError("Voter not found.")
    return voter


def require_admin(voter: Voter = Depends(get_current_voter)) -> Voter:
    if not voter.is_admin:
        raise ForbiddenError()
    return voter
