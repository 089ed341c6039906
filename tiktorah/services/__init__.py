"""
Tiktorah services.

Catalog access and card hydration for the feed. Sessions live in
tiktorah.services.sessions, which depends on the feed engine.
"""

from tiktorah.services.catalog import (
    build_card_pool,
    build_comment_cards,
    build_meme_cards,
)
from tiktorah.services.catalog_store import CatalogStore
from tiktorah.services.hydration import (
    CardHydrator,
    ExcerptSource,
    Hydrator,
    is_complete_author,
    is_displayable_comment,
    is_displayable_meme,
)
from tiktorah.services.sefaria import SefariaClient, SefariaError

__all__ = [
    "CardHydrator",
    "CatalogStore",
    "ExcerptSource",
    "Hydrator",
    "SefariaClient",
    "SefariaError",
    "build_card_pool",
    "build_comment_cards",
    "build_meme_cards",
    "is_complete_author",
    "is_displayable_comment",
    "is_displayable_meme",
]
