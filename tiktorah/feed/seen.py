"""
Seen tracking: which cards this session has already used up.

A card is seen once it has been displayed, or once its hydration failed.
Seen ids are excluded from selection until their kind runs out of
candidates, at which point the kind's seen set is cleared and cards are
reused.

Failed ids are also noted separately, only so the selector can tell a
kind that was actually displayed from one whose every card failed. That
note is part of the seen state and is cleared with it.
"""

from collections.abc import Mapping
from types import MappingProxyType

from tiktorah.models.card import POOL_KINDS, CardKey, CardKind


class SeenTracker:
    """Per-kind seen sets."""

    def __init__(self) -> None:
        self._seen: dict[CardKind, set[str]] = {kind: set() for kind in POOL_KINDS}
        self._failed: dict[CardKind, set[str]] = {kind: set() for kind in POOL_KINDS}

    def mark_seen(self, key: CardKey) -> None:
        kind, card_id = key
        self._seen.setdefault(kind, set()).add(card_id)
        self._failed.get(kind, set()).discard(card_id)

    def mark_failed(self, key: CardKey) -> None:
        """Record a failed card as seen."""
        kind, card_id = key
        self._seen.setdefault(kind, set()).add(card_id)
        self._failed.setdefault(kind, set()).add(card_id)

    def is_seen(self, key: CardKey) -> bool:
        kind, card_id = key
        return card_id in self._seen.get(kind, ())

    def is_failed(self, key: CardKey) -> bool:
        kind, card_id = key
        return card_id in self._failed.get(kind, ())

    def can_reuse(self, kind: CardKind) -> bool:
        """True if at least one seen card of the kind was displayed rather than failed."""
        return bool(self._seen.get(kind, set()) - self._failed.get(kind, set()))

    def seen_ids(self, kind: CardKind) -> frozenset[str]:
        return frozenset(self._seen.get(kind, ()))

    def clear_kind(self, kind: CardKind) -> None:
        """Exhaustion reset for one kind."""
        self._seen.get(kind, set()).clear()
        self._failed.get(kind, set()).clear()

    def clear(self) -> None:
        for kind in self._seen:
            self.clear_kind(kind)

    def snapshot(self) -> Mapping[CardKind, frozenset[str]]:
        return MappingProxyType({kind: frozenset(ids) for kind, ids in self._seen.items()})
