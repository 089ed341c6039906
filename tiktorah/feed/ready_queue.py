"""
FIFO buffer of hydrated cards awaiting display.

Order reflects hydration completion, not selection order.
"""

from collections import deque
from collections.abc import Callable

from tiktorah.models.card import Card, CardKey


class ReadyQueue:
    """FIFO of hydrated cards with O(1) membership by card key."""

    def __init__(self) -> None:
        self._cards: deque[Card] = deque()
        self._keys: set[CardKey] = set()

    def push(self, card: Card) -> None:
        if card.key in self._keys:
            raise ValueError(f"Card '{card.id}' is already in the ready queue")
        self._cards.append(card)
        self._keys.add(card.key)

    def shift(self) -> Card | None:
        """Remove and return the head, or None if empty."""
        if not self._cards:
            return None
        card = self._cards.popleft()
        self._keys.discard(card.key)
        return card

    def prune(self, keep: Callable[[Card], bool]) -> list[Card]:
        """
        Drop cards failing `keep`, preserving the order of the rest.

        Returns the removed cards.
        """
        kept: deque[Card] = deque()
        removed: list[Card] = []
        for card in self._cards:
            (kept if keep(card) else removed).append(card)
        self._cards = kept
        self._keys = {card.key for card in kept}
        return removed

    def clear(self) -> None:
        self._cards.clear()
        self._keys.clear()

    def contains(self, key: CardKey) -> bool:
        return key in self._keys

    def snapshot(self) -> tuple[Card, ...]:
        return tuple(self._cards)

    def __len__(self) -> int:
        return len(self._cards)
