"""
Feed sessions, one explicitly constructed engine per reader.

The registry owns each session's engine and scroller. Nothing is shared
between sessions except the read-only card pool.
"""

import logging
import uuid
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from tiktorah.config import DISPLAY_BUFFER_AHEAD, TARGET_READY_QUEUE_SIZE
from tiktorah.feed.engine import FeedEngine
from tiktorah.feed.scroller import FeedScroller
from tiktorah.models.card import CommentCard, MemeCard
from tiktorah.models.failure import SessionLimitError, SessionNotFoundError
from tiktorah.models.pool import CardPool
from tiktorah.models.preferences import FeedPreferences
from tiktorah.services.hydration import Hydrator

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class FeedSession:
    """A reader's engine and display window."""

    id: str
    engine: FeedEngine
    scroller: FeedScroller


class FeedSessionRegistry:
    """
    In-memory session registry.

    Args:
        hydrator_factory: Builds the hydrator for a new session
        max_sessions: Cap on open sessions
        target_size: Ready + preparing cap per session
        buffer_ahead: Scroller lookahead per session
        hydration_timeout: Optional per-hydration timeout in seconds
    """

    def __init__(
        self,
        hydrator_factory: Callable[[], Hydrator],
        max_sessions: int = 1000,
        target_size: int = TARGET_READY_QUEUE_SIZE,
        buffer_ahead: int = DISPLAY_BUFFER_AHEAD,
        hydration_timeout: float | None = None,
    ) -> None:
        self._hydrator_factory = hydrator_factory
        self.max_sessions = max_sessions
        self.target_size = target_size
        self.buffer_ahead = buffer_ahead
        self.hydration_timeout = hydration_timeout
        self._sessions: dict[str, FeedSession] = {}

    def create(
        self,
        pool: CardPool | None,
        preferences: FeedPreferences,
        meme_cards: Iterable[MemeCard] = (),
        comment_cards: Iterable[CommentCard] = (),
    ) -> FeedSession:
        """
        Open a session and start filling its ready queue.

        Raises:
            SessionLimitError: If max_sessions are already open
        """
        if len(self._sessions) >= self.max_sessions:
            raise SessionLimitError(self.max_sessions)

        engine = FeedEngine(
            self._hydrator_factory(),
            target_size=self.target_size,
            hydration_timeout=self.hydration_timeout,
        )
        engine.initialize(pool, meme_cards, comment_cards, preferences)
        scroller = FeedScroller(engine, buffer_ahead=self.buffer_ahead)
        scroller.attach()

        session = FeedSession(id=uuid.uuid4().hex, engine=engine, scroller=scroller)
        self._sessions[session.id] = session
        logger.info(
            "SESSION_CREATED",
            extra={
                "session_id": session.id,
                "enabled_kinds": [k.value for k in engine.enabled_kinds],
                "open_sessions": len(self._sessions),
            },
        )
        return session

    def get(self, session_id: str) -> FeedSession:
        """
        Look up an open session.

        Raises:
            SessionNotFoundError: If no session has this id
        """
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    async def close(self, session_id: str) -> None:
        """
        Close a session and cancel its hydrations.

        Raises:
            SessionNotFoundError: If no session has this id
        """
        session = self._sessions.pop(session_id, None)
        if session is None:
            raise SessionNotFoundError(session_id)
        session.scroller.detach()
        await session.engine.aclose()
        logger.info(
            "SESSION_CLOSED",
            extra={"session_id": session_id, "open_sessions": len(self._sessions)},
        )

    async def close_all(self) -> None:
        for session_id in list(self._sessions):
            await self.close(session_id)

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions
