"""
Sefaria API client.

Fetches the catalog (table of contents and topics) and the passages used
to hydrate text, commentary, genre and topic cards.

Endpoints:
    /api/index                  table of contents (catalog)
    /api/topics                 all topics (catalog)
    /api/texts/{ref}            passage text
    /api/v2/index/{title}       book schema, used to locate a first section
    /api/v2/topics/{slug}       topic with its source refs

Transport failures raise SefariaError. A missing or unreadable passage is
not an error here: excerpt helpers return None and the hydration layer
decides whether that rejects the card.
"""

import logging
from typing import Any
from urllib.parse import quote

import httpx

from tiktorah.config import settings
from tiktorah.models.card import Excerpt
from tiktorah.services.excerpts import excerpt_from_payload, first_ref_in_schema

logger = logging.getLogger(__name__)


class SefariaError(Exception):
    """Raised when the Sefaria API cannot be reached or answers with an error."""

    pass


class SefariaClient:
    """
    Async client for the Sefaria public API.

    Satisfies the ExcerptSource protocol used by card hydration.
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """
        Initialize the Sefaria client.

        Args:
            base_url: API root. Defaults to settings.sefaria_base_url.
            timeout: Request timeout in seconds. Defaults to settings.http_timeout_seconds.
            client: Optional shared httpx client for connection reuse
        """
        self.base_url = (base_url or settings.sefaria_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.http_timeout_seconds
        self._client = client

    async def _get_json(self, url: str, params: dict[str, Any] | None = None) -> Any:
        """
        GET a JSON document.

        Raises:
            SefariaError: On transport failure, non-2xx status, or invalid JSON
        """
        try:
            if self._client is not None:
                response = await self._client.get(url, params=params)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.get(url, params=params)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            raise SefariaError(f"Sefaria request failed: HTTP {e.response.status_code}") from e
        except httpx.RequestError as e:
            raise SefariaError(f"Sefaria request failed: {e}") from e
        except ValueError as e:
            raise SefariaError(f"Sefaria returned invalid JSON for {url}") from e

    # -------------------------------------------------------------------------
    # Catalog
    # -------------------------------------------------------------------------

    async def fetch_index(self) -> list[dict[str, Any]]:
        """Fetch the full table of contents."""
        payload = await self._get_json(f"{self.base_url}/api/index")
        if not isinstance(payload, list):
            raise SefariaError("Unexpected table of contents payload")
        return payload

    async def fetch_topics(self) -> list[dict[str, Any]]:
        """Fetch all topics."""
        payload = await self._get_json(f"{self.base_url}/api/topics")
        if not isinstance(payload, list):
            raise SefariaError("Unexpected topics payload")
        return payload

    # -------------------------------------------------------------------------
    # Passages
    # -------------------------------------------------------------------------

    async def fetch_text(self, ref: str) -> dict[str, Any] | None:
        """
        Fetch a passage payload.

        Returns None when the server rejects the reference (unknown ref, or a
        complex book that has no book-level text).

        Raises:
            SefariaError: If the server cannot be reached
        """
        url = f"{self.base_url}/api/texts/{quote(ref, safe='')}"
        try:
            payload = await self._get_json(url, params={"context": 0})
        except SefariaError as e:
            if isinstance(e.__cause__, httpx.HTTPStatusError):
                logger.debug("TEXT_FETCH_REJECTED", extra={"ref": ref, "reason": str(e)})
                return None
            raise

        if not isinstance(payload, dict):
            return None

        error = payload.get("error")
        if isinstance(error, str) and "complex" in error:
            logger.debug("TEXT_FETCH_COMPLEX_BOOK", extra={"ref": ref})
            return None

        return payload

    async def fetch_first_section_ref(self, title: str) -> str | None:
        """
        Look up the first readable section of a book.

        Returns None if the book index is unavailable or has no usable section.
        """
        url = f"{self.base_url}/api/v2/index/{quote(title, safe='')}"
        try:
            payload = await self._get_json(url)
        except SefariaError as e:
            logger.warning("INDEX_FETCH_FAILED", extra={"title": title, "reason": str(e)})
            return None

        if not isinstance(payload, dict):
            return None

        for name in ("firstSectionRef", "first_section_ref"):
            ref = payload.get(name)
            if isinstance(ref, str) and ref.strip():
                return ref

        schema = payload.get("schema")
        if isinstance(schema, dict):
            return first_ref_in_schema(schema, title)

        return None

    async def fetch_text_excerpt(self, title: str) -> Excerpt | None:
        """
        Fetch an excerpt for a book title or reference.

        Tries the reference directly; if the server rejects it, resolves the
        book's first section and fetches that instead.

        Returns:
            Excerpt, or None if no readable text was found

        Raises:
            SefariaError: If the server cannot be reached
        """
        query_ref = title.strip()
        if not query_ref:
            return None

        payload = await self.fetch_text(query_ref)
        if payload is None:
            section_ref = await self.fetch_first_section_ref(query_ref)
            if section_ref is None:
                return None
            payload = await self.fetch_text(section_ref)
            if payload is None:
                return None

        return excerpt_from_payload(payload, fallback_ref=query_ref)

    async def fetch_topic_first_ref(self, slug: str) -> str | None:
        """
        First "about" source reference of a topic.

        Raises:
            SefariaError: If the topic cannot be fetched
        """
        url = f"{self.base_url}/api/v2/topics/{quote(slug, safe='')}"
        payload = await self._get_json(url, params={"with_refs": 1})
        if not isinstance(payload, dict):
            return None

        about = (payload.get("refs") or {}).get("about") or {}
        refs = about.get("refs") or []
        if refs and isinstance(refs[0], dict):
            first_ref = refs[0].get("ref")
            if isinstance(first_ref, str):
                return first_ref
        return None

    async def fetch_topic_excerpt(self, slug: str) -> Excerpt | None:
        """
        Fetch an excerpt from a topic's first source.

        Raises:
            SefariaError: If the server cannot be reached
        """
        ref = await self.fetch_topic_first_ref(slug)
        if ref is None:
            return None
        return await self.fetch_text_excerpt(ref)
