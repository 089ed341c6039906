"""
Feed cards, the tagged variant shown one at a time in the feed.

Every card carries a kind, an identifier unique within its kind's pool,
a display title and a description. Kind-specific payload lives on the
subclasses; some of it (excerpts) is only populated after hydration.

INVARIANT: Cards are immutable. Hydration produces a new card via
dataclasses.replace, so a card held by a listener never changes under it.
"""

from dataclasses import dataclass, fields
from enum import Enum
from typing import ClassVar


class CardKind(str, Enum):
    """Kinds of feed card."""

    GENRE = "genre"
    TEXT = "text"
    COMMENTARY = "commentary"
    AUTHOR = "author"
    TOPIC = "topic"
    MEME = "meme"
    COMMENT = "comment"
    LOADING = "loading"


# Kinds that can appear in a pool (LOADING is presentation-only)
POOL_KINDS: tuple[CardKind, ...] = (
    CardKind.GENRE,
    CardKind.TEXT,
    CardKind.COMMENTARY,
    CardKind.AUTHOR,
    CardKind.TOPIC,
    CardKind.MEME,
    CardKind.COMMENT,
)

# Engine-wide identity of a card: ids are only unique within a kind
CardKey = tuple[CardKind, str]


@dataclass(frozen=True, slots=True)
class Excerpt:
    """A short passage attached to a card during hydration."""

    ref: str
    text: str
    categories: tuple[str, ...] = ()
    category: str | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class Card:
    """
    Base feed card.

    Attributes:
        id: Stable identifier, unique within the card's kind
        title: Display title
        description: Validated description text (may be empty for user content)
    """

    kind: ClassVar[CardKind]

    id: str
    title: str
    description: str = ""

    @property
    def key(self) -> CardKey:
        """Identity used for seen/preparing/ready bookkeeping."""
        return (self.kind, self.id)


@dataclass(frozen=True, slots=True, kw_only=True)
class GenreCard(Card):
    """A catalog category, optionally previewed through its first book."""

    kind: ClassVar[CardKind] = CardKind.GENRE

    category: str = ""
    parent_categories: tuple[str, ...] = ()
    first_book_title: str | None = None
    excerpt: Excerpt | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class TextCard(Card):
    """A single book from the catalog."""

    kind: ClassVar[CardKind] = CardKind.TEXT

    categories: tuple[str, ...] = ()
    he_title: str = ""
    excerpt: Excerpt | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class CommentaryCard(TextCard):
    """A commentary work; hydrated exactly like a text."""

    kind: ClassVar[CardKind] = CardKind.COMMENTARY


@dataclass(frozen=True, slots=True, kw_only=True)
class AuthorCard(Card):
    """A person topic. Complete as built; no hydration call."""

    kind: ClassVar[CardKind] = CardKind.AUTHOR

    slug: str
    he_title: str = ""
    display_type: str | None = None
    generation: str | None = None
    num_sources: int | None = None
    image_uri: str | None = None
    image_caption: str | None = None
    wiki_link: str | None = None
    jewish_encyclopedia_link: str | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class TopicCard(Card):
    """A non-person topic, previewed through its first source."""

    kind: ClassVar[CardKind] = CardKind.TOPIC

    slug: str
    he_title: str = ""
    display_type: str | None = None
    num_sources: int | None = None
    wiki_link: str | None = None
    excerpt: Excerpt | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class MemeCard(Card):
    """User-uploaded meme. Arrives pre-hydrated."""

    kind: ClassVar[CardKind] = CardKind.MEME

    image_url: str | None = None
    caption: str | None = None
    owner_display_name: str | None = None
    owner_profile_link: str | None = None
    citation: str | None = None
    citation_text: str | None = None
    citation_category: str | None = None
    meme_link: str | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class CommentCard(Card):
    """User comment on a cited passage. Arrives pre-hydrated."""

    kind: ClassVar[CardKind] = CardKind.COMMENT

    citation: str | None = None
    citation_text: str | None = None
    citation_category: str | None = None
    text_before: str | None = None
    text_after: str | None = None
    owner_display_name: str | None = None
    owner_profile_link: str | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class LoadingCard(Card):
    """Placeholder shown while the ready queue is empty."""

    kind: ClassVar[CardKind] = CardKind.LOADING


LOADING_CARD = LoadingCard(id="__loading__", title="")

_COMMON_FIELDS = frozenset({"id", "title", "description"})


def card_payload(card: Card) -> dict[str, object]:
    """
    Kind-specific fields of a card as plain data.

    Excludes the common fields (id, title, description) and converts
    tuples and nested excerpts into JSON-friendly values.
    """
    payload: dict[str, object] = {}
    for field in fields(card):
        if field.name in _COMMON_FIELDS:
            continue
        value = getattr(card, field.name)
        if isinstance(value, Excerpt):
            value = {
                "ref": value.ref,
                "text": value.text,
                "categories": list(value.categories),
                "category": value.category,
            }
        elif isinstance(value, tuple):
            value = list(value)
        payload[field.name] = value
    return payload
