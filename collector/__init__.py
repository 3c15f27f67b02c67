# =============================================================================
# TELETRADE COLLECTOR
# Module: collector/__init__.py
# Purpose: Signal feed intake and dedup gate
# =============================================================================
#
# STRICT SEPARATION:
# This package only fetches the feed, selects the latest signal and decides
# whether it is new. It does NOT touch subscriber ledgers or the chain.
#
# =============================================================================

from .client import SignalFeedClient
from .normalizer import normalize_sample, pick_latest, latest_price, price_lookup
from .gate import (
    FeedSnapshot,
    InMemoryStateStore,
    SchedulerState,
    SignalGate,
    StateStore,
)

__all__ = [
    "SignalFeedClient",
    "normalize_sample",
    "pick_latest",
    "latest_price",
    "price_lookup",
    "FeedSnapshot",
    "InMemoryStateStore",
    "SchedulerState",
    "SignalGate",
    "StateStore",
]
