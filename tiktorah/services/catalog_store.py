"""
Catalog store holding the process-wide card pool.

The pool is built once from the Sefaria catalog on first use and then
shared read-only by every session. Syncing or versioning the catalog is
not handled here: `set_pool` replaces it wholesale.
"""

import asyncio
import logging

from tiktorah.models.pool import CardPool
from tiktorah.services.catalog import build_card_pool
from tiktorah.services.sefaria import SefariaClient

logger = logging.getLogger(__name__)


class CatalogStore:
    """Lazily loaded, shared CardPool."""

    def __init__(self, client: SefariaClient | None = None) -> None:
        self.client = client or SefariaClient()
        self._pool: CardPool | None = None
        self._lock = asyncio.Lock()

    @property
    def loaded(self) -> bool:
        return self._pool is not None

    async def get_pool(self) -> CardPool:
        """
        Return the pool, loading it on first call.

        Concurrent first calls share one load.

        Raises:
            SefariaError: If the catalog cannot be fetched
        """
        if self._pool is not None:
            return self._pool
        async with self._lock:
            if self._pool is None:
                index = await self.client.fetch_index()
                topics = await self.client.fetch_topics()
                self._pool = build_card_pool(index, topics)
                logger.info("CATALOG_LOADED", extra={"cards": len(self._pool)})
            return self._pool

    def set_pool(self, pool: CardPool) -> None:
        """Replace the pool (tests, or an upstream refresh)."""
        self._pool = pool
