"""
Feed Engine — per-session scheduling of feed cards.

Selects the next card, hydrates it in the background, keeps a bounded
lookahead of ready cards and reconciles that lookahead when preferences
change. Consumers never block: a pull returns a ready card or None.

One engine is constructed per session and passed to its consumers.
There is no module-level engine.

INVARIANTS:
- len(ready) + len(preparing) <= target_size.
- A card key is in at most one of {seen, preparing, ready}, except that
  a card stays seen after it is displayed.
- Enabled kinds = kinds whose preference flag is on AND whose pool is
  non-empty, in preference-mapping order.
- Listeners receive an immutable tuple, never the live queue.
"""

import logging
import random
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass

from tiktorah.config import TARGET_READY_QUEUE_SIZE
from tiktorah.feed.pipeline import PreparationPipeline
from tiktorah.feed.ready_queue import ReadyQueue
from tiktorah.feed.reconciler import (
    PreferenceReconciler,
    ReconcileDecision,
    ReconcileState,
)
from tiktorah.feed.seen import SeenTracker
from tiktorah.feed.selector import TypeSelector
from tiktorah.models.card import Card, CardKey, CardKind, CommentCard, MemeCard
from tiktorah.models.pool import CardPool
from tiktorah.models.preferences import (
    DEFAULT_FEED_PREFERENCES,
    FeedPreferences,
    normalize_preferences,
    preferred_kinds,
)
from tiktorah.services.hydration import Hydrator

logger = logging.getLogger(__name__)

FeedListener = Callable[[tuple[Card, ...]], None]


@dataclass(frozen=True, slots=True)
class FeedSnapshot:
    """Point-in-time copy of engine state."""

    ready: tuple[Card, ...]
    preparing: frozenset[CardKey]
    seen: Mapping[CardKind, frozenset[str]]
    enabled_kinds: tuple[CardKind, ...]
    cursor: int
    epoch: int
    reconcile_state: ReconcileState


class FeedEngine:
    """
    Scheduling engine for one feed session.

    Usage:
        engine = FeedEngine(CardHydrator(client))
        engine.initialize(pool, memes, comments, preferences)
        unsubscribe = engine.subscribe(on_queue_change)
        card = engine.shift_card()
        if card is not None:
            engine.on_card_displayed()

    Synchronous methods that start hydrations must be called while an
    event loop is running.
    """

    def __init__(
        self,
        hydrator: Hydrator,
        target_size: int = TARGET_READY_QUEUE_SIZE,
        hydration_timeout: float | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._seen = SeenTracker()
        self._ready = ReadyQueue()
        self._selector = TypeSelector(self._seen, self._is_busy, rng)
        self._pipeline = PreparationPipeline(
            self._selector,
            self._seen,
            self._ready,
            hydrator,
            target_size,
            on_ready=self._notify,
            is_enabled=self._is_enabled,
            hydration_timeout=hydration_timeout,
        )
        self._reconciler = PreferenceReconciler()
        self._listeners: list[FeedListener] = []
        self._preferences = DEFAULT_FEED_PREFERENCES
        self._initialized = False

    # =========================================================================
    # Consumer API
    # =========================================================================

    def initialize(
        self,
        pool: CardPool | None,
        meme_cards: Iterable[MemeCard] = (),
        comment_cards: Iterable[CommentCard] = (),
        preferences: FeedPreferences | dict[str, object] | None = None,
    ) -> None:
        """
        Load the pool and start filling the ready queue.

        Any previous session state is discarded. Subscribers are not
        notified; they hear about cards as hydrations complete.
        """
        base = pool if pool is not None else CardPool.empty()
        self._selector.pool = base.with_user_content(meme_cards, comment_cards)
        self._preferences = normalize_preferences(preferences)

        self._seen.clear()
        self._pipeline.reset()
        self._ready.clear()
        self._selector.set_enabled(self._compute_enabled(), reset_cursor=True)
        self._initialized = True

        logger.info(
            "FEED_INITIALIZED",
            extra={
                "pool": self._selector.pool.sizes(),
                "enabled_kinds": [k.value for k in self.enabled_kinds],
            },
        )
        self.fill_ready_queue()

    def on_preferences_change(
        self, preferences: FeedPreferences | dict[str, object]
    ) -> ReconcileDecision | None:
        """
        Apply new preferences.

        Returns:
            The reconcile decision, or None if the engine is not initialized
        """
        if not self._initialized:
            return None
        self._preferences = normalize_preferences(preferences)
        return self._reconcile()

    def refresh_pool(
        self,
        pool: CardPool,
        meme_cards: Iterable[MemeCard] | None = None,
        comment_cards: Iterable[CommentCard] | None = None,
    ) -> ReconcileDecision | None:
        """
        Swap in an upstream pool without resetting the session.

        Meme and comment candidates are kept unless replacements are given.
        A kind whose pool goes from empty to non-empty counts as newly
        enabled.
        """
        if not self._initialized:
            return None
        current = self._selector.pool
        memes = current.get(CardKind.MEME) if meme_cards is None else tuple(meme_cards)
        comments = (
            current.get(CardKind.COMMENT) if comment_cards is None else tuple(comment_cards)
        )
        self._selector.pool = pool.with_kind(CardKind.MEME, memes).with_kind(
            CardKind.COMMENT, comments
        )
        return self._reconcile()

    def on_card_displayed(self) -> None:
        """Demand signal: one refill pass per displayed card."""
        if not self._initialized:
            return
        self.fill_ready_queue()

    def get_ready_queue(self) -> list[Card]:
        return list(self._ready.snapshot())

    def shift_card(self) -> Card | None:
        """
        Pop the head of the ready queue, or None if it is empty.

        The card counts as displayed and joins its kind's seen set.
        Subscribers are not notified.
        """
        card = self._ready.shift()
        if card is not None:
            self._seen.mark_seen(card.key)
        return card

    def subscribe(self, listener: FeedListener) -> Callable[[], None]:
        """Register a listener; returns a function that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def has_enabled_content(self) -> bool:
        return bool(self._selector.enabled_kinds)

    def is_ready(self) -> bool:
        return self._initialized and len(self._ready) > 0

    # =========================================================================
    # Scheduling
    # =========================================================================

    def fill_ready_queue(self) -> int:
        """Start hydrations for every free slot. Returns the number started."""
        if not self._selector.enabled_kinds:
            logger.debug("FILL_SKIPPED_NO_ENABLED_KINDS")
            return 0
        return self._pipeline.fill()

    def pick_next_card(self) -> Card | None:
        return self._selector.pick_next_card()

    # =========================================================================
    # Introspection and lifecycle
    # =========================================================================

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def preferences(self) -> FeedPreferences:
        return self._preferences

    @property
    def enabled_kinds(self) -> tuple[CardKind, ...]:
        return self._selector.enabled_kinds

    @property
    def epoch(self) -> int:
        return self._pipeline.epoch

    @property
    def target_size(self) -> int:
        return self._pipeline.target_size

    @property
    def preparing_count(self) -> int:
        return len(self._pipeline.preparing)

    def snapshot(self) -> FeedSnapshot:
        return FeedSnapshot(
            ready=self._ready.snapshot(),
            preparing=self._pipeline.preparing,
            seen=self._seen.snapshot(),
            enabled_kinds=self._selector.enabled_kinds,
            cursor=self._selector.cursor,
            epoch=self._pipeline.epoch,
            reconcile_state=self._reconciler.state,
        )

    async def wait_idle(self) -> None:
        """Wait until no hydration is outstanding."""
        await self._pipeline.wait_idle()

    async def aclose(self) -> None:
        """Cancel outstanding hydrations and drop listeners."""
        self._listeners.clear()
        await self._pipeline.aclose()
        self._initialized = False

    # =========================================================================
    # Internals
    # =========================================================================

    def _compute_enabled(self) -> list[CardKind]:
        pool = self._selector.pool
        return [kind for kind in preferred_kinds(self._preferences) if pool.has_cards(kind)]

    def _reconcile(self) -> ReconcileDecision:
        return self._reconciler.apply(
            self._selector.enabled_kinds,
            self._compute_enabled(),
            on_full_reset=self._full_reset,
            on_partial_prune=self._partial_prune,
        )

    def _full_reset(self, decision: ReconcileDecision) -> None:
        self._seen.clear()
        self._pipeline.reset()
        self._ready.clear()
        self._selector.set_enabled(self._compute_enabled(), reset_cursor=True)
        self.fill_ready_queue()
        self._notify()

    def _partial_prune(self, decision: ReconcileDecision) -> None:
        self._selector.set_enabled(self._compute_enabled())
        removed = self._ready.prune(lambda card: card.kind not in decision.removed)
        logger.debug("READY_QUEUE_PRUNED", extra={"removed": [c.id for c in removed]})
        self.fill_ready_queue()
        self._notify()

    def _is_busy(self, key: CardKey) -> bool:
        return self._pipeline.is_preparing(key) or self._ready.contains(key)

    def _is_enabled(self, kind: CardKind) -> bool:
        return kind in self._selector.enabled_kinds

    def _notify(self) -> None:
        queue = self._ready.snapshot()
        for listener in list(self._listeners):
            try:
                listener(queue)
            except Exception:
                logger.exception("LISTENER_FAILED", extra={"listener": repr(listener)})
