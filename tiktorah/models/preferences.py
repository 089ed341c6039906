"""
Feed preferences: which kinds of card the user wants to see.

A preference flag may enable more than one card kind: the "topics" flag
turns on both topic and author cards.
"""

from pydantic import BaseModel, ConfigDict

from tiktorah.models.card import CardKind


class FeedPreferences(BaseModel):
    """User-facing feed toggles. Missing flags default to enabled."""

    model_config = ConfigDict(frozen=True)

    texts: bool = True
    categories: bool = True
    commentaries: bool = True
    topics: bool = True
    memes: bool = True
    comments: bool = True


DEFAULT_FEED_PREFERENCES = FeedPreferences()

# Preference flag → card kinds it enables. Iteration order is the
# round-robin order of enabled kinds.
PREFERENCE_KINDS: dict[str, tuple[CardKind, ...]] = {
    "categories": (CardKind.GENRE,),
    "texts": (CardKind.TEXT,),
    "commentaries": (CardKind.COMMENTARY,),
    "topics": (CardKind.TOPIC, CardKind.AUTHOR),
    "memes": (CardKind.MEME,),
    "comments": (CardKind.COMMENT,),
}


def normalize_preferences(value: dict[str, object] | FeedPreferences | None) -> FeedPreferences:
    """Fill missing flags from the defaults."""
    if value is None:
        return DEFAULT_FEED_PREFERENCES
    if isinstance(value, FeedPreferences):
        return value
    return FeedPreferences.model_validate(value)


def preferred_kinds(preferences: FeedPreferences) -> list[CardKind]:
    """Kinds switched on by the preference flags, in round-robin order."""
    kinds: list[CardKind] = []
    for flag, flag_kinds in PREFERENCE_KINDS.items():
        if getattr(preferences, flag):
            kinds.extend(flag_kinds)
    return kinds


def has_enabled_preferences(preferences: FeedPreferences) -> bool:
    """True if at least one flag is on, regardless of pool contents."""
    return any(getattr(preferences, flag) for flag in PREFERENCE_KINDS)
