"""FastAPI application entrypoint. No business logic; only wiring, middleware and error rendering."""

from dotenv import load_dotenv

load_dotenv()

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.deps import build_auth_service
from app.api.v1 import router as v1_router
from app.api.v1.auth import optional_auth
from app.core.config import settings
from app.core.database import SessionLocal, init_db, is_sqlite_url
from app.core.errors import AuthError, InvalidInputError
from app.schemas.auth import TokenPayload
from app.stores.sql import SqlUserStore

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    """Create the embedded schema, bootstrap the first admin and drop expired tokens."""
    if is_sqlite_url(settings.DATABASE_URL):
        init_db()
    db = SessionLocal()
    try:
        service = build_auth_service(SqlUserStore(db), settings)
        service.bootstrap_initial_admin()
        if settings.TOKEN_CLEANUP_ON_STARTUP:
            service.cleanup_expired_tokens()
            service.cleanup_expired_verification_tokens()
    finally:
        db.close()
    yield


app = FastAPI(
    title="Inboxdesk API",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    # Credentials (the refresh cookie) require an explicit origin.
    allow_origins=[settings.FRONTEND_URL],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AuthError)
async def auth_error_handler(_request: Request, exc: AuthError) -> JSONResponse:
    """Render every auth error as {detail, code} with its status."""
    content: dict[str, str] = {"detail": exc.message, "code": exc.code}
    if isinstance(exc, InvalidInputError) and exc.field:
        content["field"] = exc.field
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    if exc.status_code >= 500:
        logger.error("Request failed", extra={"error_kind": exc.code})
    return JSONResponse(status_code=exc.status_code, content=content, headers=headers)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
    """Missing or mistyped request fields are a 400, like any other invalid input."""
    errors = exc.errors()
    field = None
    if errors:
        loc = [str(part) for part in errors[0].get("loc", ()) if part not in ("body", "query", "path")]
        field = ".".join(loc) or None
    content: dict[str, str] = {
        "detail": f"Invalid or missing field: {field}" if field else "Invalid request",
        "code": InvalidInputError.code,
    }
    if field:
        content["field"] = field
    return JSONResponse(status_code=400, content=content)


app.include_router(v1_router, prefix=settings.API_PREFIX)


@app.get("/")
def root(
    principal: Annotated[TokenPayload | None, Depends(optional_auth)],
) -> dict[str, str | bool]:
    """Root route; minimal payload for discovery. Tells callers whether their token is usable."""
    return {"message": "Inboxdesk API", "authenticated": principal is not None}
