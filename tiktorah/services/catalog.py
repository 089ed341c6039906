"""
Catalog → Card Pool.

Builds the per-kind candidate pool from the catalog's table of contents
and topic list, and builds meme/comment cards from user content records.

INVARIANTS:
- Only items with a valid description become cards (non-blank, at least
  MIN_DESCRIPTION_CHARS after stripping). Items without one are dropped.
- Building is deterministic: same catalog → same pool, same order.
- No network access. Fetching the catalog is the caller's concern.
"""

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import Any

from tiktorah.config import MIN_DESCRIPTION_CHARS
from tiktorah.models.card import (
    AuthorCard,
    Card,
    CommentaryCard,
    CommentCard,
    GenreCard,
    MemeCard,
    TextCard,
    TopicCard,
)
from tiktorah.models.pool import CardPool
from tiktorah.models.user_content import CommentRecord, MemeRecord
from tiktorah.services.hydration import is_displayable_meme

logger = logging.getLogger(__name__)

# Category name marking a text as commentary on another work
COMMENTARY_CATEGORY = "Commentary"

TORAH_PORTIONS_SLUG = "torah-portions"


@dataclass(frozen=True, slots=True)
class TopicCategories:
    """Display-category lookup tables for topic cards."""

    categories: dict[str, str]
    topic_to_category: dict[str, str]

    @classmethod
    def from_json(cls, data: dict[str, Any] | None) -> "TopicCategories":
        data = data or {}
        return cls(
            categories=dict(data.get("categories") or {}),
            topic_to_category=dict(data.get("topicToCategory") or {}),
        )


@dataclass(frozen=True, slots=True)
class _IndexEntry:
    item: dict[str, Any]
    path: tuple[str, ...]

    @property
    def is_text(self) -> bool:
        return bool(self.item.get("title"))


def has_valid_description(value: object) -> bool:
    """True for strings with real content (placeholders rejected)."""
    return isinstance(value, str) and len(value.strip()) >= MIN_DESCRIPTION_CHARS


def first_valid_description(*sources: object) -> str | None:
    for source in sources:
        if isinstance(source, str) and has_valid_description(source):
            return source
    return None


def primary_title(titles: Iterable[dict[str, Any]] | None, lang: str, default: str) -> str:
    """Primary title in a language, else any title in it, else default."""
    titles = [t for t in (titles or []) if isinstance(t, dict) and t.get("lang") == lang]
    for title in titles:
        if title.get("primary"):
            return title.get("text", default)
    return titles[0].get("text", default) if titles else default


def _flatten_index(
    items: Iterable[dict[str, Any]],
    path: tuple[str, ...] = (),
) -> Iterator[_IndexEntry]:
    for item in items:
        if item.get("title"):
            yield _IndexEntry(item, path)
        elif item.get("category"):
            yield _IndexEntry(item, path)
            yield from _flatten_index(item.get("contents") or [], (*path, item["category"]))


def find_first_book(contents: Iterable[dict[str, Any]] | None) -> str | None:
    """First book title found depth-first in a category's contents."""
    for item in contents or []:
        if item.get("title"):
            return item["title"]
        found = find_first_book(item.get("contents"))
        if found:
            return found
    return None


def _genre_card(entry: _IndexEntry, description: str) -> GenreCard:
    category = entry.item.get("category") or ""
    return GenreCard(
        id=f"genre-{category}-{'-'.join(entry.path)}",
        title=category or "Unknown Category",
        description=description,
        category=category,
        parent_categories=entry.path,
        first_book_title=find_first_book(entry.item.get("contents")),
    )


def _text_card(entry: _IndexEntry, description: str) -> TextCard:
    title = entry.item["title"]
    categories = tuple(entry.item.get("categories") or entry.path)
    if COMMENTARY_CATEGORY in categories or COMMENTARY_CATEGORY in entry.path:
        return CommentaryCard(
            id=f"commentary-{title}",
            title=title,
            description=description,
            categories=categories,
            he_title=entry.item.get("heTitle") or "",
        )
    return TextCard(
        id=f"text-{title}",
        title=title,
        description=description,
        categories=categories,
        he_title=entry.item.get("heTitle") or "",
    )


def _property_value(topic: dict[str, Any], name: str) -> Any:
    prop = (topic.get("properties") or {}).get(name) or {}
    return prop.get("value")


def _author_card(topic: dict[str, Any], description: str) -> AuthorCard:
    generation = _property_value(topic, "generation")
    has_wikidata = bool((topic.get("alt_ids") or {}).get("wikidata"))

    # Talmudic figures carry generation codes; biblical figures only a wikidata id
    if generation:
        display_type = "Talmudic Figures"
    elif has_wikidata:
        display_type = "Biblical Figures"
    else:
        display_type = "Author"

    image = topic.get("image") or {}
    return AuthorCard(
        id=f"author-{topic['slug']}",
        slug=topic["slug"],
        title=primary_title(topic.get("titles"), "en", "Unknown"),
        description=description,
        he_title=primary_title(topic.get("titles"), "he", ""),
        display_type=display_type,
        generation=generation,
        num_sources=topic.get("numSources"),
        image_uri=image.get("image_uri"),
        image_caption=(image.get("image_caption") or {}).get("en"),
        wiki_link=_property_value(topic, "enWikiLink"),
        jewish_encyclopedia_link=_property_value(topic, "jeLink"),
    )


def topic_display_type(topic: dict[str, Any], title: str, lookup: TopicCategories) -> str:
    """Display category of a topic card."""
    if topic.get("parasha"):
        return lookup.categories.get(TORAH_PORTIONS_SLUG, "Torah Portions")

    toc_category = (topic.get("alt_ids") or {}).get("_temp_toc_id")
    if toc_category:
        return toc_category

    slug = topic.get("slug", "")
    if slug in lookup.topic_to_category:
        return lookup.topic_to_category[slug]
    if slug in lookup.categories:
        return lookup.categories[slug]

    if topic.get("isTopLevelDisplay"):
        return title

    return "Topic"


def _topic_card(topic: dict[str, Any], description: str, lookup: TopicCategories) -> TopicCard:
    title = primary_title(topic.get("titles"), "en", "Unknown")
    return TopicCard(
        id=f"topic-{topic['slug']}",
        slug=topic["slug"],
        title=title,
        description=description,
        he_title=primary_title(topic.get("titles"), "he", ""),
        display_type=topic_display_type(topic, title, lookup),
        num_sources=topic.get("numSources"),
        wiki_link=_property_value(topic, "enWikiLink"),
    )


def build_card_pool(
    index: Iterable[dict[str, Any]],
    topics: Iterable[dict[str, Any]],
    topic_categories: dict[str, Any] | None = None,
) -> CardPool:
    """
    Build the catalog card pool.

    Args:
        index: Table of contents (nested categories and books)
        topics: Topic list; person topics become author cards
        topic_categories: Optional display-category lookup tables

    Returns:
        CardPool with genre, text, commentary, author and topic candidates
    """
    lookup = TopicCategories.from_json(topic_categories)
    cards: list[Card] = []
    dropped = 0

    for entry in _flatten_index(index):
        description = first_valid_description(
            entry.item.get("enDesc"), entry.item.get("enShortDesc")
        )
        if description is None:
            dropped += 1
            continue
        if entry.is_text:
            cards.append(_text_card(entry, description))
        else:
            cards.append(_genre_card(entry, description))

    for topic in topics:
        if not topic.get("slug"):
            dropped += 1
            continue
        en_description = (topic.get("description") or {}).get("en")
        if topic.get("subclass") == "person":
            description = first_valid_description(en_description)
            if description is None:
                dropped += 1
                continue
            cards.append(_author_card(topic, description))
        else:
            description = first_valid_description(
                en_description, (topic.get("categoryDescription") or {}).get("en")
            )
            if description is None:
                dropped += 1
                continue
            cards.append(_topic_card(topic, description, lookup))

    pool = CardPool.from_cards(cards)
    logger.info("CATALOG_POOL_BUILT", extra={"sizes": pool.sizes(), "dropped": dropped})
    return pool


def build_meme_cards(records: Iterable[MemeRecord]) -> list[MemeCard]:
    """
    Build meme cards from user content records.

    Records with nothing to display are dropped.
    """
    cards: list[MemeCard] = []
    for record in records:
        caption = record.caption
        card = MemeCard(
            id=f"meme-{record.id}",
            title=(caption or "").strip() or "Meme",
            description=record.citation_text or caption or "User meme",
            image_url=record.image_url or None,
            caption=caption,
            owner_display_name=record.owner_display_name or "User",
            owner_profile_link=record.owner_profile_link,
            citation=record.citation,
            citation_text=record.citation_text,
            citation_category=record.citation_category,
            meme_link=record.meme_link,
        )
        if is_displayable_meme(card):
            cards.append(card)
    return cards


def build_comment_cards(records: Iterable[CommentRecord]) -> list[CommentCard]:
    """Build comment cards from user content records."""
    return [
        CommentCard(
            id=f"comment-{record.id}",
            title="Comment",
            citation=record.citation,
            citation_text=record.citation_text,
            citation_category=record.citation_category,
            text_before=record.text_before,
            text_after=record.text_after,
            owner_display_name=record.owner_display_name or "User",
            owner_profile_link=record.owner_profile_link,
        )
        for record in records
    ]
