"""
Feed Scroller: consumer-side glue between a display and the engine.

Keeps the list of displayed cards and the reader's position, pulling
from the engine's ready queue to stay `buffer_ahead` cards ahead.

Fast scroll: when nothing is ready, the loading sentinel is appended to
the end of the list (never inserted mid-stream). When the engine later
reports a ready card, the trailing sentinel is replaced by real cards so
earlier positions never move.

A pool smaller than the window wraps: once a kind is exhausted its cards
are reused, so the same card can appear again further down the list.
"""

import logging
from collections.abc import Callable

from tiktorah.config import DISPLAY_BUFFER_AHEAD
from tiktorah.feed.engine import FeedEngine
from tiktorah.models.card import LOADING_CARD, Card, CardKey, CardKind

logger = logging.getLogger(__name__)


class FeedScroller:
    """
    Displayed-card window for one reader.

    Usage:
        scroller = FeedScroller(engine)
        scroller.attach()
        scroller.scroll_to(0)
        cards = scroller.cards
    """

    def __init__(self, engine: FeedEngine, buffer_ahead: int = DISPLAY_BUFFER_AHEAD) -> None:
        if buffer_ahead < 1:
            raise ValueError(f"buffer_ahead must be at least 1, got {buffer_ahead}")
        self._engine = engine
        self.buffer_ahead = buffer_ahead
        self._cards: list[Card] = []
        self._current_index = 0
        self._pulling = False
        self._unsubscribe: Callable[[], None] | None = None

    @property
    def cards(self) -> tuple[Card, ...]:
        return tuple(self._cards)

    @property
    def current_index(self) -> int:
        return self._current_index

    @property
    def is_loading(self) -> bool:
        """True if the list currently ends in the loading sentinel."""
        return bool(self._cards) and self._cards[-1].kind is CardKind.LOADING

    def attach(self) -> None:
        """Subscribe to the engine and pull once."""
        if self._unsubscribe is None:
            self._unsubscribe = self._engine.subscribe(self._on_queue_change)
        self.pull()

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def scroll_to(self, index: int) -> tuple[Card, ...]:
        """Move the reader to `index` and top up the window."""
        if index < 0:
            raise ValueError(f"index must be non-negative, got {index}")
        self._current_index = index
        self.pull()
        return self.cards

    def reset(self) -> None:
        """Forget displayed cards (after a preference change)."""
        self._cards.clear()
        self._current_index = 0

    def pull(self) -> int:
        """
        Pull ready cards until the window is `buffer_ahead` cards ahead.

        Returns:
            Number of cards added to the display
        """
        if self._pulling:
            return 0
        self._pulling = True
        try:
            return self._pull()
        finally:
            self._pulling = False

    def _pull(self) -> int:
        real = [card for card in self._cards if card.kind is not CardKind.LOADING]
        ahead = len(real) - self._current_index - 1
        needed = self.buffer_ahead - ahead
        if needed <= 0:
            return 0

        pulled: list[Card] = []
        for _ in range(needed):
            card = self._engine.shift_card()
            if card is None:
                break
            pulled.append(card)
            self._engine.on_card_displayed()

        # Reused cards may come back in a later pull; only one pull is deduplicated
        batch: set[CardKey] = set()
        fresh: list[Card] = []
        for card in pulled:
            if card.key not in batch:
                batch.add(card.key)
                fresh.append(card)

        if not fresh:
            if not self.is_loading:
                self._cards.append(LOADING_CARD)
                logger.debug("LOADING_CARD_SHOWN", extra={"index": self._current_index})
            return 0

        self._cards = real + fresh
        logger.debug(
            "CARDS_PULLED",
            extra={"added": len(fresh), "displayed": len(self._cards), "needed": needed},
        )
        return len(fresh)

    def _on_queue_change(self, queue: tuple[Card, ...]) -> None:
        self.pull()
