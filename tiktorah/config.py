from pydantic_settings import BaseSettings, SettingsConfigDict

# =============================================================================
# FEED SCHEDULING LIMITS
# =============================================================================

# Combined ready + preparing cards per session (backpressure cap)
TARGET_READY_QUEUE_SIZE = 5

# Cards the presentation layer keeps ahead of the visible position
DISPLAY_BUFFER_AHEAD = 5


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(env_file=".env")

    app_name: str = "Tiktorah"
    debug: bool = False

    sefaria_base_url: str = "https://www.sefaria.org"
    http_timeout_seconds: float = 30.0

    # None keeps hydration unbounded: a hung call holds its slot until it returns.
    # Set to a positive value to treat slow hydrations as skipped cards.
    hydration_timeout_seconds: float | None = None

    target_ready_size: int = TARGET_READY_QUEUE_SIZE
    display_buffer_ahead: int = DISPLAY_BUFFER_AHEAD

    max_sessions: int = 1000


settings = Settings()


# =============================================================================
# CONTENT VALIDATION
# =============================================================================

# Descriptions shorter than this are treated as placeholders
MIN_DESCRIPTION_CHARS = 10

# Excerpts combine segments until roughly three lines of text
MIN_EXCERPT_CHARS = 120

# Upper bound on segments merged into one excerpt
MAX_EXCERPT_SEGMENTS = 5
