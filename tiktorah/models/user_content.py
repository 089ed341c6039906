"""
User content records: memes and comments submitted by readers.

Records arrive with the storage layer's camelCase field names. Only the
id is required; a record without one cannot become a card.
"""

from pydantic import BaseModel, ConfigDict, Field


class _UserRecord(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str | int
    citation: str | None = None
    citation_text: str | None = Field(default=None, alias="citationText")
    citation_category: str | None = Field(default=None, alias="citationCategory")
    owner_display_name: str | None = Field(default=None, alias="ownerDisplayName")
    owner_profile_link: str | None = Field(default=None, alias="ownerProfileLink")


class MemeRecord(_UserRecord):
    """A reader's meme: an image and/or caption tied to a citation."""

    caption: str | None = None
    image_url: str | None = Field(default=None, alias="imageUrl")
    meme_link: str | None = Field(default=None, alias="memeLink")


class CommentRecord(_UserRecord):
    """A reader's comment on a passage."""

    text_before: str | None = Field(default=None, alias="textBefore")
    text_after: str | None = Field(default=None, alias="textAfter")
