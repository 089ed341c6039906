"""
Preparation Pipeline — background hydration into the ready queue.

Each preparation attempt picks a card, marks it preparing and hydrates
it in an asyncio task. All bookkeeping runs on the event loop; the
hydration await is the only suspension point.

INVARIANTS:
- len(ready) + len(preparing) <= target_size at all times (backpressure).
- A card key is in at most one of {preparing, ready}.
- Every attempt captures the epoch at start. A completion from an older
  epoch is discarded without touching current state.
- A failed card is marked seen, so it is not retried before its kind is
  reset. One replacement attempt is made through the normal selection path.
"""

import asyncio
import logging
from collections.abc import Callable

from tiktorah.feed.ready_queue import ReadyQueue
from tiktorah.feed.seen import SeenTracker
from tiktorah.feed.selector import TypeSelector
from tiktorah.models.card import Card, CardKey, CardKind
from tiktorah.models.failure import HydrationError
from tiktorah.services.hydration import Hydrator

logger = logging.getLogger(__name__)


class PreparationPipeline:
    """
    Fills the ready queue up to the target size.

    Args:
        selector: Chooses which card to prepare
        seen: Receives failed cards
        ready: Destination for hydrated cards
        hydrator: Per-kind hydration
        target_size: Backpressure cap on ready + preparing cards
        on_ready: Called after a card enters the ready queue
        is_enabled: False for kinds switched off while a card was in flight
        hydration_timeout: Seconds before a hydration counts as failed (None: no limit)
    """

    def __init__(
        self,
        selector: TypeSelector,
        seen: SeenTracker,
        ready: ReadyQueue,
        hydrator: Hydrator,
        target_size: int,
        on_ready: Callable[[], None],
        is_enabled: Callable[[CardKind], bool],
        hydration_timeout: float | None = None,
    ) -> None:
        if target_size < 1:
            raise ValueError(f"target_size must be at least 1, got {target_size}")
        self._selector = selector
        self._seen = seen
        self._ready = ready
        self._hydrator = hydrator
        self.target_size = target_size
        self._on_ready = on_ready
        self._is_enabled = is_enabled
        self._hydration_timeout = hydration_timeout

        self._preparing: set[CardKey] = set()
        self._tasks: set[asyncio.Task[None]] = set()
        self._epoch = 0

    @property
    def epoch(self) -> int:
        return self._epoch

    @property
    def preparing(self) -> frozenset[CardKey]:
        return frozenset(self._preparing)

    def is_preparing(self, key: CardKey) -> bool:
        return key in self._preparing

    def available_slots(self) -> int:
        return self.target_size - len(self._ready) - len(self._preparing)

    def fill(self) -> int:
        """
        Start preparation attempts for every free slot.

        Stops early when no enabled kind has a candidate.

        Returns:
            Number of attempts started
        """
        needed = self.available_slots()
        started = 0
        for _ in range(needed):
            if not self.prepare_next():
                break
            started += 1
        logger.debug(
            "FILL_READY_QUEUE",
            extra={
                "ready": len(self._ready),
                "preparing": len(self._preparing),
                "needed": needed,
                "started": started,
            },
        )
        return started

    def prepare_next(self) -> bool:
        """
        Pick one card and start hydrating it.

        Must be called from a running event loop.

        Returns:
            False if no card could be picked
        """
        card = self._selector.pick_next_card()
        if card is None:
            return False

        self._preparing.add(card.key)
        task = asyncio.get_running_loop().create_task(self._prepare(card, self._epoch))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return True

    def reset(self) -> None:
        """
        Start a new epoch.

        In-flight hydrations keep running but their results will be discarded.
        """
        self._epoch += 1
        self._preparing.clear()

    async def wait_idle(self) -> None:
        """Wait until no attempt, including replacements, is outstanding."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def aclose(self) -> None:
        """Cancel outstanding attempts (session teardown)."""
        self.reset()
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    async def _hydrate(self, card: Card) -> Card | None:
        if self._hydration_timeout is None:
            return await self._hydrator.hydrate(card)
        return await asyncio.wait_for(self._hydrator.hydrate(card), self._hydration_timeout)

    async def _prepare(self, card: Card, epoch: int) -> None:
        try:
            hydrated = await self._hydrate(card)
        except TimeoutError:
            self._fail(card, epoch, "HYDRATION_TIMED_OUT", "timed out")
            return
        except HydrationError as e:
            self._fail(card, epoch, "HYDRATION_REJECTED", e.reason)
            return
        except Exception as e:
            # Any failure skips the card; nothing is surfaced to the consumer
            self._fail(card, epoch, "HYDRATION_FAILED", f"{type(e).__name__}: {e}")
            return

        if hydrated is None:
            self._fail(card, epoch, "HYDRATION_REJECTED", "no result")
            return

        if not self._is_current(card, epoch):
            return

        self._preparing.discard(card.key)

        if not self._is_enabled(card.kind):
            logger.debug(
                "HYDRATED_CARD_DROPPED",
                extra={"card_id": card.id, "kind": card.kind.value},
            )
            self._replace()
            return

        self._ready.push(hydrated)
        logger.debug(
            "HYDRATION_SUCCEEDED",
            extra={"card_id": card.id, "kind": card.kind.value, "ready": len(self._ready)},
        )
        self._on_ready()

    def _fail(self, card: Card, epoch: int, event: str, reason: str) -> None:
        if not self._is_current(card, epoch):
            return
        logger.warning(event, extra={"card_id": card.id, "kind": card.kind.value, "reason": reason})
        self._preparing.discard(card.key)
        self._seen.mark_failed(card.key)
        self._replace()

    def _is_current(self, card: Card, epoch: int) -> bool:
        if epoch != self._epoch:
            logger.debug(
                "STALE_HYDRATION_DISCARDED",
                extra={"card_id": card.id, "started_epoch": epoch, "epoch": self._epoch},
            )
            return False
        return True

    def _replace(self) -> None:
        if self.available_slots() > 0:
            self.prepare_next()
