"""
Preference Reconciler.

State machine: IDLE → (FULL_RESET | PARTIAL_PRUNE) → IDLE.

- Any kind newly turned on → FULL_RESET.
- Otherwise, any kind turned off → PARTIAL_PRUNE.
- Otherwise → stay IDLE (pool refreshed in place, no kind change).

The reconciler decides; the engine performs the transition through the
handler it passes in.
"""

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import Enum

from tiktorah.models.card import CardKind

logger = logging.getLogger(__name__)


class ReconcileState(str, Enum):
    IDLE = "idle"
    FULL_RESET = "full_reset"
    PARTIAL_PRUNE = "partial_prune"


@dataclass(frozen=True, slots=True)
class ReconcileDecision:
    """Outcome of one preference change."""

    state: ReconcileState
    added: frozenset[CardKind]
    removed: frozenset[CardKind]


def decide(old: Iterable[CardKind], new: Iterable[CardKind]) -> ReconcileDecision:
    """Classify a change of enabled kinds. Pure."""
    old_set = frozenset(old)
    new_set = frozenset(new)
    added = new_set - old_set
    removed = old_set - new_set

    if added:
        state = ReconcileState.FULL_RESET
    elif removed:
        state = ReconcileState.PARTIAL_PRUNE
    else:
        state = ReconcileState.IDLE
    return ReconcileDecision(state=state, added=added, removed=removed)


class PreferenceReconciler:
    """Tracks the reconcile state across preference changes."""

    def __init__(self) -> None:
        self._state = ReconcileState.IDLE
        self.last_decision: ReconcileDecision | None = None

    @property
    def state(self) -> ReconcileState:
        return self._state

    def apply(
        self,
        old: Iterable[CardKind],
        new: Iterable[CardKind],
        on_full_reset: Callable[[ReconcileDecision], None],
        on_partial_prune: Callable[[ReconcileDecision], None],
    ) -> ReconcileDecision:
        """
        Decide and run the matching transition.

        The state reads FULL_RESET or PARTIAL_PRUNE while the handler runs
        and is IDLE again once it returns, even if it raises.
        """
        decision = decide(old, new)
        self.last_decision = decision

        if decision.state is ReconcileState.IDLE:
            logger.debug("PREFERENCES_UNCHANGED")
            return decision

        log_extra = {
            "added": sorted(k.value for k in decision.added),
            "removed": sorted(k.value for k in decision.removed),
        }
        self._state = decision.state
        try:
            if decision.state is ReconcileState.FULL_RESET:
                logger.info("FULL_RESET", extra=log_extra)
                on_full_reset(decision)
            else:
                logger.info("PARTIAL_PRUNE", extra=log_extra)
                on_partial_prune(decision)
        finally:
            self._state = ReconcileState.IDLE
        return decision
