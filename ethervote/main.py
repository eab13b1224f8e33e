# ethervote/main.py
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from . import __version__
from .config import IMAGE_ROUTE, Settings, get_settings
from .database import build_storage
from .errors import EtherVoteError, ExternalServiceUnavailableError, ValidationFailedError
from .images import ImageStore
from .ledger import TransactionSigner, build_signer
from .routes.auth_routes import router as auth_router
from .routes.candidate_routes import router as candidate_router
from .routes.district_routes import router as district_router
from .routes.result_routes import router as result_router
from .routes.vote_routes import vote_router
from .seed import seed_database
from .storage import Storage

logger = logging.getLogger(__name__)


# ==============================================================================
# SECTION 1: ERROR HANDLERS
# ==============================================================================
async def handle_ethervote_error(request: Request, exc: EtherVoteError):
    if exc.retryable:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected: {exc.category}")
    return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(exc.to_dict()), headers=exc.headers)


async def handle_request_validation(request: Request, exc: RequestValidationError):
    fields = [".".join(str(p) for p in err.get("loc", ()) if p != "body") for err in exc.errors()]
    error = ValidationFailedError(f"Invalid or missing fields: {', '.join(f for f in fields if f)}")
    body = error.to_dict()
    body["errors"] = jsonable_encoder(exc.errors())
    return JSONResponse(status_code=error.status_code, content=body)


# ==============================================================================
# SECTION 2: FASTAPI APPLICATION
# ==============================================================================
def create_app(
    settings: Optional[Settings] = None,
    storage: Optional[Storage] = None,
    signer: Optional[TransactionSigner] = None,
    images: Optional[ImageStore] = None,
) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(level=settings.log_level)

    storage = storage or build_storage(settings)
    signer = signer or build_signer(settings)
    images = images or ImageStore.from_settings(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        storage.setup()
        if settings.seed_on_startup:
            seed_database(storage, settings)
        logger.info(f"EtherVote started (storage={storage.name}, ledger={signer.name})")
        yield
        storage.close()

    app = FastAPI(title="EtherVote - Voter Registration and Balloting API", version=__version__, lifespan=lifespan)
    app.state.settings = settings
    app.state.storage = storage
    app.state.signer = signer
    app.state.images = images

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(EtherVoteError, handle_ethervote_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation)

    app.include_router(auth_router)
    app.include_router(district_router)
    app.include_router(candidate_router)
    app.include_router(vote_router)
    app.include_router(result_router)
    # the directory is created on first upload
    app.mount(IMAGE_ROUTE, StaticFiles(directory=settings.upload_dir, check_dir=False), name="candidate_photos")

    @app.get("/health", tags=["General"])
    def health_check():
        try:
            storage.ping()
        except ExternalServiceUnavailableError as e:
            return JSONResponse(status_code=503, content={"status": "unhealthy", "storage": storage.name, "detail": e.message})
        return {"status": "healthy", "storage": storage.name, "ledger": signer.name}

    @app.get("/", tags=["General"])
    def read_root():
        return {"message": "Welcome to the EtherVote API"}

    @app.get("/favicon.ico", include_in_schema=False)
    async def favicon():
        return Response(status_code=204)

    return app


app = create_app()
