"""
Card Hydration — per-kind preparation contract.

Hydration attaches a kind-specific payload (an excerpt) to a card, or
checks that an already-complete card is still displayable.

CONTRACT (per kind):
- text, commentary: fetch excerpt by title. No excerpt → REJECT.
- topic:            fetch excerpt by slug. No excerpt → ACCEPT without it.
- genre:            fetch excerpt for its first book, if any. Always ACCEPT.
- author:           no call. Reject if slug or title missing.
- meme:             no call. Reject without image, citation text or caption.
- comment:          no call. Reject without citation and citation text.

The topic/text asymmetry is deliberate: topic cards already carry a
validated description and were shown without excerpts before.

Rejections raise HydrationError. Source failures propagate for text and
commentary (the pipeline treats them as rejections) and are absorbed for
topic and genre, which accept without an excerpt.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import replace
from typing import Protocol

from tiktorah.models.card import (
    AuthorCard,
    Card,
    CommentCard,
    Excerpt,
    GenreCard,
    MemeCard,
    TextCard,
    TopicCard,
)
from tiktorah.models.failure import HydrationError
from tiktorah.services.sefaria import SefariaError

logger = logging.getLogger(__name__)


class ExcerptSource(Protocol):
    """Anything that can look up passages for cards."""

    async def fetch_text_excerpt(self, title: str) -> Excerpt | None: ...

    async def fetch_topic_excerpt(self, slug: str) -> Excerpt | None: ...


class Hydrator(Protocol):
    """
    Prepares one card for display.

    Returns the hydrated card. Returning None or raising rejects the card.
    """

    async def hydrate(self, card: Card) -> Card | None: ...


def is_displayable_meme(card: MemeCard) -> bool:
    return bool(card.image_url or card.citation_text or card.caption)


def is_displayable_comment(card: CommentCard) -> bool:
    return bool(card.citation and card.citation_text)


def is_complete_author(card: AuthorCard) -> bool:
    return bool(card.slug and card.title)


class CardHydrator:
    """Hydrates cards against an ExcerptSource following the per-kind contract."""

    def __init__(self, source: ExcerptSource) -> None:
        self.source = source

    async def hydrate(self, card: Card) -> Card:
        """
        Hydrate a card.

        Raises:
            HydrationError: If the card must be skipped
            SefariaError: If a text/commentary excerpt could not be fetched
        """
        # CommentaryCard subclasses TextCard and shares its contract
        if isinstance(card, TextCard):
            return await self._hydrate_text(card)
        if isinstance(card, TopicCard):
            return await self._hydrate_topic(card)
        if isinstance(card, GenreCard):
            return await self._hydrate_genre(card)
        if isinstance(card, AuthorCard):
            return _require(card, is_complete_author(card), "author missing slug or title")
        if isinstance(card, MemeCard):
            return _require(card, is_displayable_meme(card), "meme has nothing to display")
        if isinstance(card, CommentCard):
            return _require(card, is_displayable_comment(card), "comment missing citation")
        raise HydrationError(card.id, f"kind '{card.kind.value}' cannot be hydrated")

    async def _hydrate_text(self, card: TextCard) -> TextCard:
        excerpt = await self.source.fetch_text_excerpt(card.title)
        if excerpt is None:
            raise HydrationError(card.id, "no excerpt available")
        return replace(card, excerpt=excerpt)

    async def _hydrate_topic(self, card: TopicCard) -> TopicCard:
        excerpt = await self._optional_excerpt(
            card, self.source.fetch_topic_excerpt, card.slug
        )
        return replace(card, excerpt=excerpt) if excerpt else card

    async def _hydrate_genre(self, card: GenreCard) -> GenreCard:
        if not card.first_book_title:
            return card
        excerpt = await self._optional_excerpt(
            card, self.source.fetch_text_excerpt, card.first_book_title
        )
        return replace(card, excerpt=excerpt) if excerpt else card

    async def _optional_excerpt(
        self,
        card: Card,
        fetch: Callable[[str], Awaitable[Excerpt | None]],
        key: str,
    ) -> Excerpt | None:
        try:
            return await fetch(key)
        except SefariaError as e:
            logger.debug(
                "OPTIONAL_EXCERPT_UNAVAILABLE",
                extra={"card_id": card.id, "kind": card.kind.value, "reason": str(e)},
            )
            return None


def _require(card: Card, valid: bool, reason: str) -> Card:
    if not valid:
        raise HydrationError(card.id, reason)
    return card
