"""
Type Selector — which card to prepare next.

Selection is two-level:
1. Kind: round robin over the enabled kinds.
2. Card: uniformly random among the kind's candidates.

Candidates of a kind are its pool cards that are not seen, not preparing
and not already in the ready queue. When a kind has no candidates its
seen set is cleared and candidates are recomputed (seen cards are reused).
If a kind still has none, the next kind is tried; each enabled kind is
tried at most once per pick.

A kind whose seen cards all failed hydration is not reset: it waits until
one of its cards is displayed, or until a full reset clears the seen set.

INVARIANTS:
- The cursor advances exactly once per pick, whatever the outcome.
- A card that is preparing or ready is never picked.
- A failed card is not picked again before its kind's next reset.
"""

import logging
import random
from collections.abc import Callable, Sequence

from tiktorah.feed.seen import SeenTracker
from tiktorah.models.card import Card, CardKey, CardKind
from tiktorah.models.pool import CardPool

logger = logging.getLogger(__name__)


class TypeSelector:
    """
    Round-robin kind selection with random card choice.

    Args:
        seen: Session seen tracker
        is_busy: True for card keys currently preparing or ready
        rng: Random source; inject a seeded one for reproducible tests
    """

    def __init__(
        self,
        seen: SeenTracker,
        is_busy: Callable[[CardKey], bool],
        rng: random.Random | None = None,
    ) -> None:
        self._seen = seen
        self._is_busy = is_busy
        self._rng = rng or random.Random()
        self.pool = CardPool.empty()
        self._enabled: tuple[CardKind, ...] = ()
        self._cursor = 0

    @property
    def enabled_kinds(self) -> tuple[CardKind, ...]:
        return self._enabled

    @property
    def cursor(self) -> int:
        return self._cursor

    def set_enabled(self, kinds: Sequence[CardKind], reset_cursor: bool = False) -> None:
        """Replace the enabled kinds, keeping the cursor in range."""
        self._enabled = tuple(kinds)
        if reset_cursor or not self._enabled:
            self._cursor = 0
        else:
            self._cursor %= len(self._enabled)

    def pick_next_card(self) -> Card | None:
        """
        Pick the next card to prepare.

        Returns None only if no enabled kind has a candidate.
        """
        if not self._enabled:
            return None

        start = self._cursor
        self._cursor = (self._cursor + 1) % len(self._enabled)

        for offset in range(len(self._enabled)):
            kind = self._enabled[(start + offset) % len(self._enabled)]
            card = self._pick_from_kind(kind)
            if card is not None:
                logger.debug(
                    "CARD_PICKED",
                    extra={"kind": kind.value, "card_id": card.id, "cursor": start},
                )
                return card
            logger.debug("KIND_HAS_NO_CANDIDATES", extra={"kind": kind.value})

        logger.debug("NO_CANDIDATES", extra={"enabled_kinds": [k.value for k in self._enabled]})
        return None

    def _pick_from_kind(self, kind: CardKind) -> Card | None:
        pool = self.pool.get(kind)
        if not pool:
            return None

        candidates = self._candidates(pool)

        if not candidates:
            if not self._seen.can_reuse(kind):
                # Nothing was displayed since the last reset, only failures
                return None
            self._seen.clear_kind(kind)
            candidates = self._candidates(pool)
            logger.debug(
                "SEEN_RESET",
                extra={"kind": kind.value, "pool_size": len(pool), "candidates": len(candidates)},
            )

        if not candidates:
            return None

        return self._rng.choice(candidates)

    def _candidates(self, pool: Sequence[Card]) -> list[Card]:
        return [
            card
            for card in pool
            if not self._is_busy(card.key) and not self._seen.is_seen(card.key)
        ]
