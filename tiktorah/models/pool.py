"""
Card Pool — per-kind candidate cards supplied by the catalog.

INVARIANT: The pool is read-only. Upstream changes replace the pool
wholesale; the engine holds a reference and never copies or edits it.

INVARIANT: Loading placeholders never appear in a pool.
"""

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from tiktorah.models.card import POOL_KINDS, Card, CardKind, CommentCard, MemeCard


@dataclass(frozen=True, slots=True)
class CardPool:
    """
    Immutable mapping from card kind to its ordered candidates.

    Usage:
        pool = CardPool.from_cards(catalog_cards)
        pool = pool.with_user_content(memes, comments)
        for card in pool.get(CardKind.TEXT):
            ...
    """

    _cards: Mapping[CardKind, tuple[Card, ...]] = field(
        default_factory=lambda: MappingProxyType({})
    )

    def __post_init__(self) -> None:
        for kind, cards in self._cards.items():
            if kind not in POOL_KINDS:
                raise ValueError(f"Kind '{kind.value}' cannot appear in a card pool")
            for card in cards:
                if card.kind is not kind:
                    raise ValueError(
                        f"Card '{card.id}' of kind '{card.kind.value}' "
                        f"filed under '{kind.value}'"
                    )

    @classmethod
    def from_cards(cls, cards: Iterable[Card]) -> "CardPool":
        """Group cards by kind, keeping their order."""
        grouped: dict[CardKind, list[Card]] = {}
        for card in cards:
            grouped.setdefault(card.kind, []).append(card)
        return cls(_cards=MappingProxyType({k: tuple(v) for k, v in grouped.items()}))

    @classmethod
    def empty(cls) -> "CardPool":
        return cls()

    def with_kind(self, kind: CardKind, cards: Iterable[Card]) -> "CardPool":
        """Return a new pool with one kind's candidates replaced."""
        updated = dict(self._cards)
        updated[kind] = tuple(cards)
        return CardPool(_cards=MappingProxyType(updated))

    def with_user_content(
        self,
        memes: Iterable[MemeCard],
        comments: Iterable[CommentCard],
    ) -> "CardPool":
        """Return a new pool with meme and comment candidates replaced."""
        return self.with_kind(CardKind.MEME, memes).with_kind(CardKind.COMMENT, comments)

    def get(self, kind: CardKind) -> tuple[Card, ...]:
        """Candidates for a kind (empty if the kind has none)."""
        return self._cards.get(kind, ())

    def has_cards(self, kind: CardKind) -> bool:
        return bool(self._cards.get(kind))

    def sizes(self) -> dict[str, int]:
        """Candidate count per pool kind, for logging."""
        return {kind.value: len(self.get(kind)) for kind in POOL_KINDS}

    def __iter__(self) -> Iterator[Card]:
        for kind in POOL_KINDS:
            yield from self.get(kind)

    def __len__(self) -> int:
        return sum(len(cards) for cards in self._cards.values())
