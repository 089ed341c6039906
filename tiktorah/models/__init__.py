from tiktorah.models.card import (
    LOADING_CARD,
    POOL_KINDS,
    AuthorCard,
    Card,
    CardKey,
    CardKind,
    CommentaryCard,
    CommentCard,
    Excerpt,
    GenreCard,
    LoadingCard,
    MemeCard,
    TextCard,
    TopicCard,
    card_payload,
)
from tiktorah.models.failure import (
    STANDARD_MESSAGES,
    STANDARD_SUGGESTIONS,
    ApiResponse,
    FailureDetail,
    FailureKind,
    HydrationError,
    KnownError,
    OutcomeType,
    SessionLimitError,
    SessionNotFoundError,
    create_known_failure,
    create_refusal,
    create_success,
    create_unknown_failure,
    finalize_response,
)
from tiktorah.models.pool import CardPool
from tiktorah.models.preferences import (
    DEFAULT_FEED_PREFERENCES,
    PREFERENCE_KINDS,
    FeedPreferences,
    has_enabled_preferences,
    normalize_preferences,
    preferred_kinds,
)
from tiktorah.models.user_content import CommentRecord, MemeRecord

__all__ = [
    # Cards
    "LOADING_CARD",
    "POOL_KINDS",
    "AuthorCard",
    "Card",
    "CardKey",
    "CardKind",
    "CommentCard",
    "CommentaryCard",
    "Excerpt",
    "GenreCard",
    "LoadingCard",
    "MemeCard",
    "TextCard",
    "TopicCard",
    "card_payload",
    # Pool
    "CardPool",
    # Preferences
    "DEFAULT_FEED_PREFERENCES",
    "PREFERENCE_KINDS",
    "FeedPreferences",
    "has_enabled_preferences",
    "normalize_preferences",
    "preferred_kinds",
    # User content
    "CommentRecord",
    "MemeRecord",
    # Failure envelope
    "STANDARD_MESSAGES",
    "STANDARD_SUGGESTIONS",
    "ApiResponse",
    "FailureDetail",
    "FailureKind",
    "HydrationError",
    "KnownError",
    "OutcomeType",
    "SessionLimitError",
    "SessionNotFoundError",
    "create_known_failure",
    "create_refusal",
    "create_success",
    "create_unknown_failure",
    "finalize_response",
]
