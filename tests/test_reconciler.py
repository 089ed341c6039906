"""Tests for the Preference Reconciler state machine."""

import pytest

from tiktorah.feed.reconciler import PreferenceReconciler, ReconcileState, decide
from tiktorah.models.card import CardKind

TEXT = CardKind.TEXT
GENRE = CardKind.GENRE
TOPIC = CardKind.TOPIC
AUTHOR = CardKind.AUTHOR


class TestDecide:
    def test_newly_enabled_kind_is_full_reset(self) -> None:
        decision = decide([TEXT], [TEXT, GENRE])

        assert decision.state is ReconcileState.FULL_RESET
        assert decision.added == frozenset({GENRE})

    def test_swap_is_full_reset(self) -> None:
        """Adding wins over removing."""
        decision = decide([TEXT], [GENRE])

        assert decision.state is ReconcileState.FULL_RESET
        assert decision.removed == frozenset({TEXT})

    def test_disabled_kind_is_partial_prune(self) -> None:
        decision = decide([TEXT, GENRE], [TEXT])

        assert decision.state is ReconcileState.PARTIAL_PRUNE
        assert decision.removed == frozenset({GENRE})

    def test_topics_flag_removes_two_kinds(self) -> None:
        decision = decide([TEXT, AUTHOR, TOPIC], [TEXT])

        assert decision.removed == frozenset({AUTHOR, TOPIC})

    def test_unchanged_is_idle(self) -> None:
        decision = decide([GENRE, TEXT], [TEXT, GENRE])

        assert decision.state is ReconcileState.IDLE
        assert not decision.added and not decision.removed


class TestPreferenceReconciler:
    def test_runs_full_reset_handler(self) -> None:
        reconciler = PreferenceReconciler()
        calls: list[str] = []

        reconciler.apply(
            [TEXT],
            [TEXT, GENRE],
            on_full_reset=lambda d: calls.append("reset"),
            on_partial_prune=lambda d: calls.append("prune"),
        )

        assert calls == ["reset"]

    def test_runs_partial_prune_handler(self) -> None:
        reconciler = PreferenceReconciler()
        calls: list[str] = []

        reconciler.apply(
            [TEXT, GENRE],
            [TEXT],
            on_full_reset=lambda d: calls.append("reset"),
            on_partial_prune=lambda d: calls.append("prune"),
        )

        assert calls == ["prune"]

    def test_idle_runs_nothing(self) -> None:
        reconciler = PreferenceReconciler()
        calls: list[str] = []

        decision = reconciler.apply(
            [TEXT],
            [TEXT],
            on_full_reset=lambda d: calls.append("reset"),
            on_partial_prune=lambda d: calls.append("prune"),
        )

        assert calls == []
        assert reconciler.last_decision == decision

    def test_state_during_and_after_handler(self) -> None:
        """The state names the transition while it runs, then returns to idle."""
        reconciler = PreferenceReconciler()
        observed: list[ReconcileState] = []

        reconciler.apply(
            [TEXT],
            [TEXT, GENRE],
            on_full_reset=lambda d: observed.append(reconciler.state),
            on_partial_prune=lambda d: None,
        )

        assert observed == [ReconcileState.FULL_RESET]
        assert reconciler.state is ReconcileState.IDLE

    def test_returns_to_idle_when_handler_raises(self) -> None:
        reconciler = PreferenceReconciler()

        def boom(_decision) -> None:
            raise RuntimeError("handler failed")

        with pytest.raises(RuntimeError):
            reconciler.apply([TEXT, GENRE], [TEXT], on_full_reset=boom, on_partial_prune=boom)

        assert reconciler.state is ReconcileState.IDLE
