"""
Feed API endpoints.

One feed session per reader. The client opens a session, reports its
scroll position and renders the returned window. Every response passes
through the failure envelope.

Nothing here waits on hydration: when no card is ready the window ends
in the loading card and the client polls again.
"""

import logging
from functools import lru_cache
from typing import Annotated, Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from tiktorah.config import settings
from tiktorah.feed.engine import FeedEngine
from tiktorah.feed.scroller import FeedScroller
from tiktorah.models.card import Card, card_payload
from tiktorah.models.failure import (
    ApiResponse,
    FailureKind,
    create_known_failure,
    create_refusal,
    create_success,
)
from tiktorah.models.pool import CardPool
from tiktorah.models.preferences import FeedPreferences, has_enabled_preferences
from tiktorah.models.user_content import CommentRecord, MemeRecord
from tiktorah.services.catalog import build_comment_cards, build_meme_cards
from tiktorah.services.catalog_store import CatalogStore
from tiktorah.services.hydration import CardHydrator
from tiktorah.services.sefaria import SefariaClient, SefariaError
from tiktorah.services.sessions import FeedSession, FeedSessionRegistry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/feed", tags=["feed"])


# =============================================================================
# DEPENDENCIES
# =============================================================================


@lru_cache
def get_catalog_store() -> CatalogStore:
    """Process-wide catalog store."""
    return CatalogStore(SefariaClient())


@lru_cache
def get_registry() -> FeedSessionRegistry:
    """Process-wide session registry."""
    return FeedSessionRegistry(
        hydrator_factory=lambda: CardHydrator(SefariaClient()),
        max_sessions=settings.max_sessions,
        target_size=settings.target_ready_size,
        buffer_ahead=settings.display_buffer_ahead,
        hydration_timeout=settings.hydration_timeout_seconds,
    )


RegistryDep = Annotated[FeedSessionRegistry, Depends(get_registry)]
CatalogDep = Annotated[CatalogStore, Depends(get_catalog_store)]


# =============================================================================
# MODELS
# =============================================================================


class CardResponse(BaseModel):
    """A card as shown to the client."""

    kind: str
    id: str
    title: str
    description: str = ""
    payload: dict[str, Any] = Field(default_factory=dict)


class CreateSessionRequest(BaseModel):
    """Request to open a feed session."""

    preferences: FeedPreferences = Field(default_factory=FeedPreferences)
    memes: list[MemeRecord] = Field(default_factory=list)
    comments: list[CommentRecord] = Field(default_factory=list)


class SessionResponse(BaseModel):
    """An open feed session."""

    session_id: str
    enabled_kinds: list[str]
    has_enabled_content: bool


class ScrollRequest(BaseModel):
    """Reader's current position in the displayed window."""

    index: int = Field(ge=0)


class WindowResponse(BaseModel):
    """Displayed cards after a scroll."""

    session_id: str
    current_index: int
    cards: list[CardResponse]
    loading: bool


class QueueResponse(BaseModel):
    """Ready-queue snapshot."""

    session_id: str
    ready: list[CardResponse]
    is_ready: bool
    preparing: int
    epoch: int


class PreferencesResponse(BaseModel):
    """Result of a preference change."""

    session_id: str
    state: str
    added: list[str]
    removed: list[str]
    enabled_kinds: list[str]


class ClosedResponse(BaseModel):
    session_id: str
    closed: bool = True


def card_to_response(card: Card) -> CardResponse:
    return CardResponse(
        kind=card.kind.value,
        id=card.id,
        title=card.title,
        description=card.description,
        payload=card_payload(card),
    )


def _kinds(engine: FeedEngine) -> list[str]:
    return [kind.value for kind in engine.enabled_kinds]


def _window(session: FeedSession, scroller: FeedScroller) -> WindowResponse:
    return WindowResponse(
        session_id=session.id,
        current_index=scroller.current_index,
        cards=[card_to_response(card) for card in scroller.cards],
        loading=scroller.is_loading,
    )


# =============================================================================
# ROUTES
# =============================================================================


@router.post("/sessions", response_model=ApiResponse[SessionResponse])
async def create_session(
    request: CreateSessionRequest,
    registry: RegistryDep,
    catalog: CatalogDep,
) -> ApiResponse[Any]:
    """
    Open a feed session.

    The catalog is only loaded when a catalog-backed preference is on.
    """
    prefs = request.preferences
    if not has_enabled_preferences(prefs):
        return create_refusal(FailureKind.NO_CONTENT_ENABLED, "at least one preference enabled")

    needs_catalog = prefs.texts or prefs.categories or prefs.commentaries or prefs.topics
    pool: CardPool | None = None
    if needs_catalog:
        try:
            pool = await catalog.get_pool()
        except SefariaError as e:
            logger.warning("CATALOG_UNAVAILABLE", extra={"error": str(e)})
            return create_known_failure(FailureKind.EXTERNAL_API_ERROR, str(e))

    session = registry.create(
        pool,
        prefs,
        meme_cards=build_meme_cards(request.memes),
        comment_cards=build_comment_cards(request.comments),
    )
    return create_success(
        SessionResponse(
            session_id=session.id,
            enabled_kinds=_kinds(session.engine),
            has_enabled_content=session.engine.has_enabled_content(),
        )
    )


@router.post("/sessions/{session_id}/scroll", response_model=ApiResponse[WindowResponse])
async def scroll(
    session_id: str,
    request: ScrollRequest,
    registry: RegistryDep,
) -> ApiResponse[Any]:
    """
    Move the reader and return the displayed window.

    Returns a refusal when nothing is enabled and a known failure when
    the window is waiting on a feed that has nothing left to prepare.
    """
    session = registry.get(session_id)
    engine = session.engine
    if not engine.has_enabled_content():
        return create_refusal(FailureKind.NO_CONTENT_ENABLED, "at least one kind with content")

    scroller = session.scroller
    scroller.scroll_to(request.index)

    if scroller.is_loading and engine.preparing_count == 0 and not engine.is_ready():
        logger.info("FEED_EXHAUSTED", extra={"session_id": session_id})
        return create_known_failure(FailureKind.EMPTY_RESULT, "No cards left to prepare")

    return create_success(_window(session, scroller))


@router.get("/sessions/{session_id}/queue", response_model=ApiResponse[QueueResponse])
async def get_queue(session_id: str, registry: RegistryDep) -> ApiResponse[Any]:
    """Snapshot of the session's ready queue."""
    session = registry.get(session_id)
    engine = session.engine
    return create_success(
        QueueResponse(
            session_id=session.id,
            ready=[card_to_response(card) for card in engine.get_ready_queue()],
            is_ready=engine.is_ready(),
            preparing=engine.preparing_count,
            epoch=engine.epoch,
        )
    )


@router.put("/sessions/{session_id}/preferences", response_model=ApiResponse[PreferencesResponse])
async def update_preferences(
    session_id: str,
    preferences: FeedPreferences,
    registry: RegistryDep,
) -> ApiResponse[Any]:
    """
    Apply new preferences to a session.

    The displayed window restarts from the top.
    """
    session = registry.get(session_id)
    # Reset first so a prune notification refills the new window
    session.scroller.reset()
    decision = session.engine.on_preferences_change(preferences)

    if decision is None:
        return create_known_failure(FailureKind.INVALID_INPUT, "Session is not initialized")

    # An unchanged kind set sends no notification
    session.scroller.pull()

    return create_success(
        PreferencesResponse(
            session_id=session.id,
            state=decision.state.value,
            added=sorted(kind.value for kind in decision.added),
            removed=sorted(kind.value for kind in decision.removed),
            enabled_kinds=_kinds(session.engine),
        )
    )


@router.delete("/sessions/{session_id}", response_model=ApiResponse[ClosedResponse])
async def close_session(session_id: str, registry: RegistryDep) -> ApiResponse[Any]:
    """Close a session and cancel its hydrations."""
    await registry.close(session_id)
    return create_success(ClosedResponse(session_id=session_id))
