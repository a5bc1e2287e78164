"""
TripMatch Discovery API - itinerary discovery and matching for travel companions

- Paginated candidate search for one of the caller's itineraries
- Accept/reject gated by a daily quota (premium users unlimited)
- Mutual accepts materialize exactly one connection per user pair
"""
import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from .config import settings
from .discovery.session import DiscoverySession, SessionRegistry
from .middleware.auth import get_registry, require_auth
from .models.user import UserProfile
from .schemas.request import SearchRequest
from .schemas.response import (
    AcceptResponse,
    CandidateResponse,
    ConnectionsResponse,
    ErrorResponse,
    QuotaResponse,
    RejectResponse,
)
from .utils.errors import InvalidInputError, StoreError

# Configure logging
handlers: List[logging.Handler] = [logging.StreamHandler()]
if settings.log_file:
    handlers.append(logging.FileHandler(settings.log_file, mode='a'))
logging.basicConfig(
    level=settings.log_level.upper(),
    format='%(asctime)s - %(levelname)s - %(message)s',
    handlers=handlers
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.registry = SessionRegistry.from_settings(settings)
    yield


app = FastAPI(
    title="TripMatch Discovery API",
    description="Itinerary discovery and matching for travel companions",
    version="1.0.0",
    lifespan=lifespan
)

allowed_origins_list = [origin.strip() for origin in settings.allowed_origins.split(",")]
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "X-User-Id"],
)

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
}


def _http_error(status_code: int, error: str, message: str, details: Optional[Dict[str, Any]] = None) -> HTTPException:
    return HTTPException(
        status_code=status_code,
        detail={
            "error": error,
            "message": message,
            "details": details or {}
        }
    )


def _store_unavailable(e: StoreError) -> HTTPException:
    logger.error(f"Store failure: {e.message}")
    return _http_error(503, "StoreUnavailable", "The service is temporarily unavailable. Please try again.",
                       {"original_error": e.message})


def _active_session(registry: SessionRegistry, user: UserProfile) -> DiscoverySession:
    session = registry.get_session(user)
    if session is None:
        raise _http_error(404, "NoActiveSearch", "Select one of your itineraries to start searching")
    return session


@app.get("/")
async def root():
    """Health check endpoint"""
    return {"status": "ok", "message": "TripMatch Discovery API is running"}


@app.get("/health")
async def health():
    """Health check endpoint"""
    return {"status": "healthy"}


@app.post("/discovery/search", response_model=CandidateResponse, responses=ERROR_RESPONSES)
async def search(
    request: SearchRequest,
    user: UserProfile = Depends(require_auth),
    registry: SessionRegistry = Depends(get_registry)
):
    """
    Start a discovery session for one of the caller's itineraries

    Replaces any previous session of the caller. A failed first page is
    reported in `error` with an empty result rather than as an HTTP error.
    """
    try:
        itinerary = await registry.itineraries.get(request.itinerary_id)
    except StoreError as e:
        raise _store_unavailable(e)

    if itinerary is None or itinerary.owner_uid != user.uid:
        raise _http_error(404, "NotFound", "Itinerary not found")

    session = registry.new_session(user)
    try:
        error = await session.search(itinerary)
    except InvalidInputError as e:
        raise _http_error(400, "ValidationError", e.message, e.details)

    return CandidateResponse(current=session.current(), has_more=session.cursor.has_more, error=error)


@app.get("/discovery/current", response_model=CandidateResponse, responses=ERROR_RESPONSES)
async def current(
    user: UserProfile = Depends(require_auth),
    registry: SessionRegistry = Depends(get_registry)
):
    """Current candidate of the caller's session"""
    session = _active_session(registry, user)
    return CandidateResponse(current=session.current(), has_more=session.cursor.has_more)


@app.post("/discovery/advance", response_model=CandidateResponse, responses=ERROR_RESPONSES)
async def advance(
    user: UserProfile = Depends(require_auth),
    registry: SessionRegistry = Depends(get_registry)
):
    """Skip to the next candidate without counting an action"""
    session = _active_session(registry, user)
    next_candidate = await session.advance()
    return CandidateResponse(current=next_candidate, has_more=session.cursor.has_more)


@app.post("/discovery/accept", response_model=AcceptResponse, responses=ERROR_RESPONSES)
async def accept(
    user: UserProfile = Depends(require_auth),
    registry: SessionRegistry = Depends(get_registry)
):
    """
    Like the current candidate

    A mutual like returns status "matched" with the connection. Errors come
    back as status "error" with an error_kind; only "match_setup_failed"
    moves on to the next candidate.
    """
    session = _active_session(registry, user)
    try:
        outcome = await session.accept()
    except InvalidInputError as e:
        raise _http_error(400, "ValidationError", e.message, e.details)

    return AcceptResponse(
        status=outcome.status,
        connection=outcome.connection,
        error_kind=outcome.error_kind,
        message=outcome.message,
        next=session.current()
    )


@app.post("/discovery/reject", response_model=RejectResponse, responses=ERROR_RESPONSES)
async def reject(
    user: UserProfile = Depends(require_auth),
    registry: SessionRegistry = Depends(get_registry)
):
    """Pass on the current candidate"""
    session = _active_session(registry, user)
    try:
        outcome = await session.reject()
    except InvalidInputError as e:
        raise _http_error(400, "ValidationError", e.message, e.details)

    return RejectResponse(status=outcome.status, message=outcome.message, next=session.current())


@app.get("/discovery/quota", response_model=QuotaResponse, responses=ERROR_RESPONSES)
async def quota(
    user: UserProfile = Depends(require_auth),
    registry: SessionRegistry = Depends(get_registry)
):
    """Caller's daily quota"""
    tracker = registry.quota
    return QuotaResponse(
        has_reached_limit=tracker.has_reached_limit(user),
        remaining_today=tracker.remaining(user),
        daily_limit=tracker.daily_limit,
        is_premium=tracker.is_premium(user)
    )


@app.get("/connections", response_model=ConnectionsResponse, responses=ERROR_RESPONSES)
async def list_connections(
    user: UserProfile = Depends(require_auth),
    registry: SessionRegistry = Depends(get_registry)
):
    """Connections the caller belongs to"""
    try:
        connections = await registry.connections.list_for_user(user.uid)
    except StoreError as e:
        raise _store_unavailable(e)
    return ConnectionsResponse(connections=connections)


@app.post("/connections/{connection_id}/read", responses=ERROR_RESPONSES)
async def mark_connection_read(
    connection_id: str,
    user: UserProfile = Depends(require_auth),
    registry: SessionRegistry = Depends(get_registry)
):
    """Reset the caller's unread count on a connection"""
    try:
        connection = await registry.connections.get(connection_id)
    except InvalidInputError as e:
        raise _http_error(400, "ValidationError", e.message, e.details)
    except StoreError as e:
        raise _store_unavailable(e)

    if connection is None or user.uid not in connection.users:
        raise _http_error(404, "NotFound", "Connection not found")

    await registry.connections.mark_read(connection_id, user.uid)
    return {"message": "Marked as read"}
