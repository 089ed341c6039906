"""Tests for the feed API endpoints."""

from typing import Any

import httpx
import pytest
import respx
from httpx import ASGITransport, AsyncClient

from tiktorah.api.feed import get_catalog_store, get_registry
from tiktorah.main import app
from tiktorah.models.card import GenreCard, TextCard
from tiktorah.models.pool import CardPool
from tiktorah.services.catalog_store import CatalogStore
from tiktorah.services.sefaria import SefariaClient
from tiktorah.services.sessions import FeedSessionRegistry

BASE = "https://sefaria.test"

ONLY_MEMES = {
    "texts": False,
    "categories": False,
    "commentaries": False,
    "topics": False,
    "memes": True,
    "comments": False,
}


def _pool() -> CardPool:
    return CardPool.from_cards(
        [
            *[TextCard(id=f"text-{i}", title=f"Text {i}") for i in range(10)],
            *[GenreCard(id=f"genre-{i}", title=f"Genre {i}") for i in range(10)],
        ]
    )


@pytest.fixture
def registry(hydrator_factory) -> FeedSessionRegistry:
    return FeedSessionRegistry(
        lambda: hydrator_factory(auto=True, fail_ids={"meme-bad"}),
        target_size=3,
        buffer_ahead=2,
    )


@pytest.fixture
def catalog() -> CatalogStore:
    store = CatalogStore(SefariaClient(base_url=BASE))
    store.set_pool(_pool())
    return store


@pytest.fixture
async def client(registry: FeedSessionRegistry, catalog: CatalogStore):
    """Async test client with an in-memory registry and catalog."""
    app.dependency_overrides[get_registry] = lambda: registry
    app.dependency_overrides[get_catalog_store] = lambda: catalog

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
    await registry.close_all()


async def _open(client: AsyncClient, body: dict[str, Any] | None = None) -> str:
    response = await client.post("/feed/sessions", json=body or {})
    assert response.status_code == 200
    data = response.json()
    assert data["outcome"] == "success"
    return data["data"]["session_id"]


class TestCreateSession:
    async def test_create(self, client: AsyncClient) -> None:
        response = await client.post("/feed/sessions", json={})

        assert response.status_code == 200
        data = response.json()
        assert data["outcome"] == "success"
        assert data["data"]["enabled_kinds"] == ["genre", "text"]
        assert data["data"]["has_enabled_content"] is True

    async def test_all_preferences_off_is_refused(self, client: AsyncClient) -> None:
        body = {"preferences": {**ONLY_MEMES, "memes": False}}

        response = await client.post("/feed/sessions", json=body)

        data = response.json()
        assert data["outcome"] == "refusal"
        assert data["failure"]["kind"] == "no_content_enabled"

    @pytest.mark.parametrize("field", ["memes", "comments"])
    async def test_user_record_without_id_is_invalid(
        self, client: AsyncClient, registry: FeedSessionRegistry, field: str
    ) -> None:
        body = {"preferences": ONLY_MEMES, field: [{"caption": "hello there"}]}

        response = await client.post("/feed/sessions", json=body)

        assert response.status_code == 422
        assert len(registry) == 0

    async def test_user_content_only_skips_catalog(self, registry: FeedSessionRegistry) -> None:
        """With only memes on, a broken catalog is never touched."""
        broken = CatalogStore(SefariaClient(base_url=BASE))
        app.dependency_overrides[get_registry] = lambda: registry
        app.dependency_overrides[get_catalog_store] = lambda: broken

        body = {
            "preferences": ONLY_MEMES,
            "memes": [{"id": "m1", "imageUrl": "https://img.test/1.png"}],
        }
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.post("/feed/sessions", json=body)

        app.dependency_overrides.clear()
        await registry.close_all()

        data = response.json()
        assert data["outcome"] == "success"
        assert data["data"]["enabled_kinds"] == ["meme"]
        assert not broken.loaded

    @respx.mock
    async def test_catalog_unavailable(self, registry: FeedSessionRegistry) -> None:
        respx.get(f"{BASE}/api/index").mock(return_value=httpx.Response(503))
        app.dependency_overrides[get_registry] = lambda: registry
        app.dependency_overrides[get_catalog_store] = lambda: CatalogStore(
            SefariaClient(base_url=BASE)
        )

        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.post("/feed/sessions", json={})

        app.dependency_overrides.clear()

        data = response.json()
        assert data["outcome"] == "known_failure"
        assert data["failure"]["kind"] == "external_api_error"
        assert len(registry) == 0


class TestScroll:
    async def test_window_after_hydration(
        self, client: AsyncClient, registry: FeedSessionRegistry
    ) -> None:
        session_id = await _open(client)
        await registry.get(session_id).engine.wait_idle()

        response = await client.post(f"/feed/sessions/{session_id}/scroll", json={"index": 0})

        data = response.json()
        assert data["outcome"] == "success"
        window = data["data"]
        assert window["loading"] is False
        assert window["current_index"] == 0
        assert len(window["cards"]) == 3
        assert len({card["id"] for card in window["cards"]}) == 3
        assert {card["kind"] for card in window["cards"]} <= {"genre", "text"}

    async def test_scroll_pulls_ahead(
        self, client: AsyncClient, registry: FeedSessionRegistry
    ) -> None:
        session_id = await _open(client)
        await registry.get(session_id).engine.wait_idle()

        response = await client.post(f"/feed/sessions/{session_id}/scroll", json={"index": 2})

        window = response.json()["data"]
        assert window["current_index"] == 2
        assert len(window["cards"]) == 5

    async def test_cards_carry_payload(
        self, client: AsyncClient, registry: FeedSessionRegistry
    ) -> None:
        session_id = await _open(client)
        await registry.get(session_id).engine.wait_idle()

        response = await client.post(f"/feed/sessions/{session_id}/scroll", json={"index": 0})

        card = response.json()["data"]["cards"][0]
        assert "excerpt" in card["payload"]

    async def test_negative_index_rejected(self, client: AsyncClient) -> None:
        session_id = await _open(client)

        response = await client.post(f"/feed/sessions/{session_id}/scroll", json={"index": -1})

        assert response.status_code == 422

    async def test_exhausted_feed(
        self, client: AsyncClient, registry: FeedSessionRegistry
    ) -> None:
        """Every candidate failed hydration: the client is told, not left loading."""
        body = {"preferences": ONLY_MEMES, "memes": [{"id": "bad", "caption": "x"}]}
        session_id = await _open(client, body)
        await registry.get(session_id).engine.wait_idle()

        response = await client.post(f"/feed/sessions/{session_id}/scroll", json={"index": 0})

        data = response.json()
        assert data["outcome"] == "known_failure"
        assert data["failure"]["kind"] == "empty_result"

    async def test_nothing_enabled_is_refused(self, client: AsyncClient) -> None:
        """Preferences on but every enabled pool is empty."""
        session_id = await _open(client, {"preferences": ONLY_MEMES})

        response = await client.post(f"/feed/sessions/{session_id}/scroll", json={"index": 0})

        data = response.json()
        assert data["outcome"] == "refusal"
        assert data["failure"]["kind"] == "no_content_enabled"

    async def test_unknown_session(self, client: AsyncClient) -> None:
        response = await client.post("/feed/sessions/missing/scroll", json={"index": 0})

        assert response.status_code == 404
        data = response.json()
        assert data["outcome"] == "known_failure"
        assert data["failure"]["kind"] == "not_found"


class TestQueue:
    async def test_queue_snapshot(
        self, client: AsyncClient, registry: FeedSessionRegistry
    ) -> None:
        session_id = await _open(client)
        await registry.get(session_id).engine.wait_idle()

        response = await client.get(f"/feed/sessions/{session_id}/queue")

        data = response.json()["data"]
        assert data["is_ready"] is True
        assert len(data["ready"]) == 3
        assert data["preparing"] == 0
        assert data["epoch"] == registry.get(session_id).engine.epoch


class TestPreferences:
    async def test_removing_a_kind_prunes(
        self, client: AsyncClient, registry: FeedSessionRegistry
    ) -> None:
        session_id = await _open(client)
        await registry.get(session_id).engine.wait_idle()

        response = await client.put(
            f"/feed/sessions/{session_id}/preferences", json={"categories": False}
        )

        data = response.json()["data"]
        assert data["state"] == "partial_prune"
        assert data["removed"] == ["genre"]
        assert data["added"] == []
        assert data["enabled_kinds"] == ["text"]

        await registry.get(session_id).engine.wait_idle()
        queue = (await client.get(f"/feed/sessions/{session_id}/queue")).json()["data"]
        assert {card["kind"] for card in queue["ready"]} == {"text"}

    async def test_adding_a_kind_resets(
        self, client: AsyncClient, registry: FeedSessionRegistry
    ) -> None:
        session_id = await _open(client, {"preferences": {"categories": False}})
        await registry.get(session_id).engine.wait_idle()
        epoch = registry.get(session_id).engine.epoch

        response = await client.put(
            f"/feed/sessions/{session_id}/preferences", json={"categories": True}
        )

        data = response.json()["data"]
        assert data["state"] == "full_reset"
        assert data["added"] == ["genre"]
        assert data["enabled_kinds"] == ["genre", "text"]

        queue = (await client.get(f"/feed/sessions/{session_id}/queue")).json()["data"]
        assert queue["epoch"] == epoch + 1

    async def test_unchanged(self, client: AsyncClient) -> None:
        session_id = await _open(client)

        response = await client.put(f"/feed/sessions/{session_id}/preferences", json={})

        assert response.json()["data"]["state"] == "idle"

    async def test_unchanged_keeps_window_filled(
        self, client: AsyncClient, registry: FeedSessionRegistry
    ) -> None:
        """An idle change restarts the window from ready cards, not from loading."""
        session_id = await _open(client)
        session = registry.get(session_id)
        await session.engine.wait_idle()
        await client.post(f"/feed/sessions/{session_id}/scroll", json={"index": 0})
        await session.engine.wait_idle()

        await client.put(f"/feed/sessions/{session_id}/preferences", json={})

        assert session.scroller.current_index == 0
        assert not session.scroller.is_loading
        assert len(session.scroller.cards) == 3


class TestClose:
    async def test_close(self, client: AsyncClient) -> None:
        session_id = await _open(client)

        response = await client.delete(f"/feed/sessions/{session_id}")

        assert response.json()["data"] == {"session_id": session_id, "closed": True}
        missing = await client.get(f"/feed/sessions/{session_id}/queue")
        assert missing.status_code == 404
