"""
Tiktorah feed scheduling.

Per-session engine that selects, hydrates and buffers feed cards, plus
the scroller that consumes it.
"""

from tiktorah.feed.engine import FeedEngine, FeedListener, FeedSnapshot
from tiktorah.feed.pipeline import PreparationPipeline
from tiktorah.feed.ready_queue import ReadyQueue
from tiktorah.feed.reconciler import (
    PreferenceReconciler,
    ReconcileDecision,
    ReconcileState,
    decide,
)
from tiktorah.feed.scroller import FeedScroller
from tiktorah.feed.seen import SeenTracker
from tiktorah.feed.selector import TypeSelector

__all__ = [
    "FeedEngine",
    "FeedListener",
    "FeedSnapshot",
    "FeedScroller",
    "PreparationPipeline",
    "PreferenceReconciler",
    "ReadyQueue",
    "ReconcileDecision",
    "ReconcileState",
    "SeenTracker",
    "TypeSelector",
    "decide",
]
