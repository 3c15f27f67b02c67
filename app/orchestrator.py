# =============================================================================
# TELETRADE - POLL SCHEDULER
# =============================================================================
#
# Single-threaded, timer-driven loop:
#
#   IDLE -> FETCHING -> DISPATCHING -> IDLE   (forever)
#
# FETCHING
#   feed fails       -> IDLE, next delay = min(base * 2^(n-1), max)
#   not new / none   -> IDLE, next delay = poll interval
# DISPATCHING
#   commit dedup key FIRST, then fan out to subscribers sequentially
#
# The backoff counter resets after every successful fetch.
# There is no cancellation: a slow remote call just delays the next cycle.
#
# =============================================================================

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from app.dispatch import DispatchResult, SignalDispatcher
from collector.gate import SchedulerState, SignalGate
from paper_trader.models import Signal
from shared.enums import PollState
from shared.errors import FeedUnavailable
from shared.logging_config import AuditLogger

logger = logging.getLogger(__name__)


@dataclass
class CycleResult:
    """Result of one poll cycle."""
    next_delay_s: float
    fetched: bool = False
    accepted: Optional[Signal] = None
    results: List[DispatchResult] = field(default_factory=list)
    error: Optional[str] = None


class PollScheduler:
    """
    Drives SignalGate and SignalDispatcher on a fixed interval.

    The SchedulerState value is threaded through each cycle and persisted
    through the gate's store; nothing is kept in module globals.
    """

    def __init__(
        self,
        gate: SignalGate,
        dispatcher: SignalDispatcher,
        interval_s: float,
        backoff_base_s: float,
        backoff_max_s: float,
        state: Optional[SchedulerState] = None,
        audit: Optional[AuditLogger] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.gate = gate
        self.dispatcher = dispatcher
        self.interval_s = interval_s
        self.backoff_base_s = backoff_base_s
        self.backoff_max_s = backoff_max_s
        self.state = state if state is not None else gate.store.load()
        self.audit = audit
        self._sleep = sleep
        self.poll_state = PollState.IDLE

    def failure_delay(self, failures: int) -> float:
        """Capped exponential delay after `failures` consecutive failed fetches."""
        if failures <= 0:
            return self.interval_s
        return min(self.backoff_base_s * (2 ** (failures - 1)), self.backoff_max_s)

    def _fail(self, error: str) -> CycleResult:
        self.state = self.state.with_failure()
        delay = self.failure_delay(self.state.consecutive_failures)
        self.poll_state = PollState.IDLE
        logger.warning(
            f"Poll failed ({self.state.consecutive_failures} in a row): {error}; "
            f"retrying in {delay:.0f}s"
        )
        return CycleResult(next_delay_s=delay, error=error)

    def run_cycle(self) -> CycleResult:
        """
        Run one fetch (and, for a new signal, one dispatch).

        Returns:
            CycleResult including the delay before the next cycle
        """
        self.poll_state = PollState.FETCHING
        try:
            candidate = self.gate.fetch_latest()
        except FeedUnavailable as e:
            return self._fail(str(e))

        self.state = self.state.with_success()

        if not self.gate.is_new(candidate, self.state.last_accepted_key):
            self.poll_state = PollState.IDLE
            if candidate is not None:
                logger.debug(f"No new signal (latest {candidate.dedup_key})")
            return CycleResult(next_delay_s=self.interval_s, fetched=True)

        self.poll_state = PollState.DISPATCHING
        self.state = self.gate.commit(candidate, self.state)
        if self.audit is not None:
            self.audit.log_event("SIGNAL_ACCEPTED", {
                "dedup_key": candidate.dedup_key,
                "signal": candidate.to_dict(),
            })

        cycle = CycleResult(next_delay_s=self.interval_s, fetched=True, accepted=candidate)
        try:
            cycle.results = self.dispatcher.dispatch(candidate)
        except Exception as e:
            # Key is already committed; this signal is not retried
            logger.error(f"Dispatch of {candidate.dedup_key} aborted: {e}")
            cycle.error = str(e)

        self.poll_state = PollState.IDLE
        return cycle

    def run_forever(self, max_cycles: Optional[int] = None) -> None:
        """
        Loop run_cycle / sleep until interrupted.

        Args:
            max_cycles: Stop after this many cycles (None = never)
        """
        logger.info(
            f"Poll loop started: interval={self.interval_s:.0f}s "
            f"last_key={self.state.last_accepted_key}"
        )
        cycles = 0
        while max_cycles is None or cycles < max_cycles:
            try:
                result = self.run_cycle()
            except Exception as e:
                logger.exception(f"Unexpected poll error: {e}")
                result = self._fail(str(e))
            cycles += 1
            if max_cycles is not None and cycles >= max_cycles:
                break
            self._sleep(result.next_delay_s)
