import asyncio
from collections.abc import Awaitable, Callable

import pytest

from tiktorah.models.card import Card
from tiktorah.models.failure import HydrationError


class GatedHydrator:
    """
    Hydrator whose calls complete only when the test releases them.

    With auto=True every call completes immediately. Card ids in
    fail_ids raise HydrationError; ids in none_ids return None.
    """

    def __init__(
        self,
        auto: bool = False,
        fail_ids: set[str] | None = None,
        none_ids: set[str] | None = None,
    ) -> None:
        self.auto = auto
        self.fail_ids = fail_ids or set()
        self.none_ids = none_ids or set()
        self.calls: list[Card] = []
        self._pending: list[tuple[Card, asyncio.Event]] = []

    async def hydrate(self, card: Card) -> Card | None:
        self.calls.append(card)
        if not self.auto:
            gate = asyncio.Event()
            self._pending.append((card, gate))
            await gate.wait()
        if card.id in self.fail_ids:
            raise HydrationError(card.id, "fake failure")
        if card.id in self.none_ids:
            return None
        return card

    @property
    def call_ids(self) -> list[str]:
        return [card.id for card in self.calls]

    @property
    def pending_ids(self) -> list[str]:
        return [card.id for card, _ in self._pending]

    def release(self, card_id: str) -> None:
        """Complete the oldest pending call for a card id."""
        for i, (card, gate) in enumerate(self._pending):
            if card.id == card_id:
                del self._pending[i]
                gate.set()
                return
        raise AssertionError(f"No pending hydration for {card_id}")

    def release_all(self) -> None:
        pending, self._pending = self._pending, []
        for _, gate in pending:
            gate.set()


async def _settle() -> None:
    """Let scheduled tasks and their wakeups run."""
    for _ in range(20):
        await asyncio.sleep(0)


@pytest.fixture
def hydrator() -> GatedHydrator:
    """Hydrator that holds every call until released."""
    return GatedHydrator()


@pytest.fixture
def instant_hydrator() -> GatedHydrator:
    """Hydrator that accepts every card immediately."""
    return GatedHydrator(auto=True)


@pytest.fixture
def hydrator_factory() -> type[GatedHydrator]:
    return GatedHydrator


@pytest.fixture
def settle() -> Callable[[], Awaitable[None]]:
    return _settle
