# =============================================================================
# TELETRADE COLLECTOR
# Module: collector/gate.py
# Purpose: Signal dedup gate (single-slot "last accepted signal")
# =============================================================================
#
# The gate holds exactly ONE last-accepted key, not a history. Only a
# candidate whose key equals that key is dropped. If the feed falls back
# to an older signal after a newer one was accepted, the older key differs
# from the slot and the signal is accepted again.
#
# COMMIT ORDER:
# commit() persists the new key BEFORE fan-out to subscribers starts. A
# crash mid-fan-out never re-delivers the signal on restart (at most once
# for fan-out; some subscribers may silently miss it).
#
# =============================================================================

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from typing import Any, Dict, Optional

from collector.client import SignalFeedClient
from collector.normalizer import pick_latest
from paper_trader.models import Signal

logger = logging.getLogger(__name__)


# =============================================================================
# SCHEDULER STATE
# =============================================================================


@dataclass(frozen=True)
class SchedulerState:
    """
    Process-wide poll state, threaded through each cycle.

    Only last_accepted_key and admin_subscriber_id are persisted;
    consecutive_failures lives for the process lifetime.
    """
    last_accepted_key: Optional[str] = None
    admin_subscriber_id: Optional[str] = None
    consecutive_failures: int = 0

    def with_key(self, key: str) -> "SchedulerState":
        return replace(self, last_accepted_key=key)

    def with_failure(self) -> "SchedulerState":
        return replace(self, consecutive_failures=self.consecutive_failures + 1)

    def with_success(self) -> "SchedulerState":
        return replace(self, consecutive_failures=0)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "lastAcceptedSignalKey": self.last_accepted_key,
            "adminSubscriberId": self.admin_subscriber_id,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "SchedulerState":
        if not isinstance(data, dict):
            return cls()
        key = data.get("lastAcceptedSignalKey")
        admin = data.get("adminSubscriberId")
        return cls(
            last_accepted_key=str(key) if key else None,
            admin_subscriber_id=str(admin) if admin else None,
        )


class StateStore(ABC):
    """Persistence for SchedulerState. Single writer assumed."""

    @abstractmethod
    def load(self) -> SchedulerState:
        """Return the persisted state (empty state if none)."""

    @abstractmethod
    def save(self, state: SchedulerState) -> None:
        """Persist state durably."""


class InMemoryStateStore(StateStore):
    """StateStore kept in process memory (tests, dry runs)."""

    def __init__(self, state: Optional[SchedulerState] = None):
        self._state = state or SchedulerState()
        self.saves = 0

    def load(self) -> SchedulerState:
        return self._state

    def save(self, state: SchedulerState) -> None:
        self._state = state
        self.saves += 1


# =============================================================================
# FEED SNAPSHOT
# =============================================================================


@dataclass(frozen=True)
class FeedSnapshot:
    """One fetched feed document plus its selected latest signal."""
    document: Dict[str, Any]
    latest: Optional[Signal]


# =============================================================================
# SIGNAL GATE
# =============================================================================


class SignalGate:
    """
    Fetch, select and deduplicate the latest feed signal.

    fetch_latest() -> Signal | None      (raises FeedUnavailable)
    is_new(candidate, last_key) -> bool
    commit(candidate, state) -> SchedulerState (persisted)
    """

    def __init__(self, client: SignalFeedClient, feed_key: str, store: StateStore):
        self.client = client
        self.feed_key = feed_key
        self.store = store

    def fetch_snapshot(self) -> FeedSnapshot:
        """
        Fetch the feed and select the latest signal.

        Raises:
            FeedUnavailable: propagated from the client
        """
        document = self.client.fetch()
        latest = pick_latest(document, self.feed_key)
        if latest is None:
            logger.info("Feed has no usable signal")
        return FeedSnapshot(document=document, latest=latest)

    def fetch_latest(self) -> Optional[Signal]:
        return self.fetch_snapshot().latest

    @staticmethod
    def is_new(candidate: Optional[Signal], last_key: Optional[str]) -> bool:
        """Pure equality check of the candidate's dedup key against last_key."""
        if candidate is None:
            return False
        return candidate.dedup_key != last_key

    def commit(self, candidate: Signal, state: SchedulerState) -> SchedulerState:
        """
        Record candidate as the last accepted signal and persist it.

        Returns:
            The new state (with last_accepted_key = candidate.dedup_key)
        """
        # Re-read so fields written by other processes (admin) survive
        persisted = self.store.load().with_key(candidate.dedup_key)
        self.store.save(persisted)
        logger.info(f"Signal accepted: {candidate.dedup_key}")
        return replace(
            state,
            last_accepted_key=persisted.last_accepted_key,
            admin_subscriber_id=persisted.admin_subscriber_id,
        )
