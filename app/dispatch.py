# =============================================================================
# TELETRADE - SIGNAL DISPATCHER
# =============================================================================
#
# Fan-out of one accepted signal to every subscriber, sequentially.
#
# PER SUBSCRIBER (auto-trade on):
# 1. No allocation fraction -> allocation prompt, skip
# 2. Close opposite positions at the signal's entry price
# 3. Size collateral = floor(balance * allocation * 100) / 100, open
# 4. Persist the subscriber
# 5. Encrypt {symbol, side, entry, time, auto} and post it on-chain,
#    signed by the subscriber, operator as counterparty
# 6. Recap message
#
# ISOLATION:
# Each subscriber is handled inside its own try block. A failure for one
# subscriber (bad key, store error, submission failure, dead chat) never
# stops the next. There is no transaction across the paper ledger and the
# remote ledger: a failed submission after a successful open is NOT
# rolled back.
#
# =============================================================================

import logging
import time
from dataclasses import dataclass
from typing import Callable, List, Optional

from app.stores import JsonSubscriberStore
from notifications.messages import (
    ALLOCATION_CHOICES,
    render_allocation_prompt,
    render_monitoring,
    render_recap,
)
from notifications.telegram import Notifier
from onchain.envelope import encode_payload
from onchain.keys import LedgerAccount
from onchain.submitter import LedgerSubmitter
from onchain.variants import SubmissionMetadata
from paper_trader.ledger import apply_signal
from paper_trader.models import Signal, SubscriberAccount
from shared.best_effort import attempt_best_effort
from shared.enums import DispatchOutcome
from shared.errors import SubmissionFailed

logger = logging.getLogger(__name__)


@dataclass
class DispatchResult:
    """Outcome of one signal for one subscriber."""
    subscriber_id: str
    outcome: DispatchOutcome
    realized_pnl: float = 0.0
    used_collateral: float = 0.0
    tx_hash: Optional[str] = None
    error: Optional[str] = None


class SignalDispatcher:
    """Applies an accepted signal to every subscriber."""

    def __init__(
        self,
        subscribers: JsonSubscriberStore,
        submitter: LedgerSubmitter,
        notifier: Notifier,
        operator: LedgerAccount,
        signal_key: bytes,
        aad: bytes,
        clock: Callable[[], float] = time.time,
    ):
        self.subscribers = subscribers
        self.submitter = submitter
        self.notifier = notifier
        self.operator = operator
        self.signal_key = signal_key
        self.aad = aad
        self._clock = clock

    def _notify(self, subscriber_id: str, text: str, buttons=None) -> None:
        attempt_best_effort(
            lambda: self.notifier.send(subscriber_id, text, buttons),
            f"notify {subscriber_id}",
        )

    def broadcast_monitoring(self, signal: Signal) -> int:
        """Send the signal line to every monitoring subscriber. Returns count."""
        sent = 0
        for account in self.subscribers.load().values():
            if not account.monitoring_enabled:
                continue
            self._notify(account.subscriber_id, render_monitoring(signal))
            sent += 1
        return sent

    def dispatch(self, signal: Signal) -> List[DispatchResult]:
        """
        Fan out signal to all auto-trading subscribers.

        Never raises for a single subscriber's failure.
        """
        self.broadcast_monitoring(signal)

        results: List[DispatchResult] = []
        for account in self.subscribers.load().values():
            if not account.auto_trade_enabled:
                continue
            try:
                result = self._dispatch_one(account, signal)
            except Exception as e:
                logger.error(f"Dispatch failed for {account.subscriber_id}: {e}")
                result = DispatchResult(account.subscriber_id, DispatchOutcome.FAILED, error=str(e))
            results.append(result)

        opened = sum(1 for r in results if r.outcome is DispatchOutcome.OPENED)
        logger.info(f"Dispatched {signal.dedup_key}: {opened}/{len(results)} opened")
        return results

    def _dispatch_one(self, account: SubscriberAccount, signal: Signal) -> DispatchResult:
        subscriber_id = account.subscriber_id

        if not account.allocation_fraction:
            self._notify(subscriber_id, render_allocation_prompt(), ALLOCATION_CHOICES)
            return DispatchResult(subscriber_id, DispatchOutcome.SKIPPED_NO_ALLOCATION)

        signer = LedgerAccount.from_hex(account.signing_key)

        realized, opened = apply_signal(account, signal, now=self._clock())
        self.subscribers.save(account)

        result = DispatchResult(
            subscriber_id=subscriber_id,
            outcome=DispatchOutcome.OPENED if opened.ok else DispatchOutcome.SKIPPED_INSUFFICIENT_BALANCE,
            realized_pnl=realized,
            used_collateral=opened.used_collateral,
        )

        envelope = encode_payload(self.signal_key, signal.to_payload(auto=True), self.aad)
        metadata = SubmissionMetadata(counterparty=self.operator.address, timestamp=int(self._clock()))
        try:
            result.tx_hash = self.submitter.submit(envelope, signer, metadata)
        except SubmissionFailed as e:
            logger.error(f"On-chain post failed for {subscriber_id}: {e.reason}")
            result.error = e.reason

        self._notify(subscriber_id, render_recap(signal, account, realized, opened, result.tx_hash))
        return result
