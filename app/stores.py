# =============================================================================
# TELETRADE - JSON STORES
# =============================================================================
#
# Two single-document JSON stores under DATA_DIR:
#   state.json   {"lastAcceptedSignalKey": ..., "adminSubscriberId": ...}
#   users.json   {subscriber_id: {address, signing_key, ...}, ...}
#
# SINGLE WRITER:
# One scheduler process owns both files. Writes are atomic (temp file +
# os.replace) so a crash never leaves a half-written document, but
# concurrent writers would race and are not supported.
#
# =============================================================================

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional

from collector.gate import SchedulerState, StateStore
from onchain.keys import LedgerAccount
from paper_trader.models import SubscriberAccount

logger = logging.getLogger(__name__)


def _read_json(path: Path) -> Any:
    """Read a JSON document; None if missing or unreadable."""
    if not path.exists():
        return None
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        logger.warning(f"{path.name} not readable, starting empty: {e}")
        return None


def _write_json_atomic(path: Path, data: Any) -> None:
    """Write data to path via a temp file in the same directory."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=str(path.parent), suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        os.replace(tmp, str(path))
    except Exception:
        try:
            os.unlink(tmp)
        except OSError:
            pass
        raise


# =============================================================================
# SCHEDULER STATE
# =============================================================================


class JsonStateStore(StateStore):
    """SchedulerState persisted as state.json."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self) -> SchedulerState:
        return SchedulerState.from_dict(_read_json(self.path))

    def save(self, state: SchedulerState) -> None:
        _write_json_atomic(self.path, state.to_dict())


# =============================================================================
# SUBSCRIBERS
# =============================================================================


class JsonSubscriberStore:
    """
    Subscriber accounts persisted as users.json.

    Every load sanitizes the records; unusable records are dropped from
    the returned mapping but left untouched on disk until overwritten.
    """

    def __init__(self, path: Path, default_leverage: int = 5, start_balance: float = 10_000.0):
        self.path = Path(path)
        self.default_leverage = default_leverage
        self.start_balance = start_balance

    def _raw(self) -> Dict[str, Any]:
        data = _read_json(self.path)
        return data if isinstance(data, dict) else {}

    def load(self) -> Dict[str, SubscriberAccount]:
        """All usable accounts, keyed by subscriber id, in document order."""
        accounts: Dict[str, SubscriberAccount] = {}
        for subscriber_id, record in self._raw().items():
            account = SubscriberAccount.from_dict(
                subscriber_id, record, self.default_leverage, self.start_balance
            )
            if account is None:
                logger.warning(f"Skipping unusable subscriber record: {subscriber_id}")
                continue
            accounts[str(subscriber_id)] = account
        return accounts

    def get(self, subscriber_id: str) -> Optional[SubscriberAccount]:
        return self.load().get(str(subscriber_id))

    def save(self, account: SubscriberAccount) -> None:
        """Persist one account (read-modify-write of the whole document)."""
        data = self._raw()
        data[account.subscriber_id] = account.to_dict()
        _write_json_atomic(self.path, data)

    def ensure(self, subscriber_id: str, operator: Optional[LedgerAccount] = None) -> SubscriberAccount:
        """
        Return the subscriber's account, enrolling it if needed.

        A new subscriber gets a fresh Ed25519 account, auto-trade on,
        monitoring off, default leverage, starting balance, no allocation.
        When operator is given the record is bound to the operator's
        account (admin).

        Args:
            subscriber_id: Chat id
            operator: Operator account for the admin record, else None
        """
        subscriber_id = str(subscriber_id)
        account = self.get(subscriber_id)

        if account is None:
            ledger_account = operator or LedgerAccount.generate()
            account = SubscriberAccount(
                subscriber_id=subscriber_id,
                address=ledger_account.address,
                signing_key=ledger_account.private_key_hex,
                leverage=self.default_leverage,
                paper_balance=self.start_balance,
            )
            logger.info(f"Enrolled subscriber {subscriber_id} -> {account.address}")

        if operator is not None:
            account.address = operator.address
            account.signing_key = operator.private_key_hex
            account.is_admin = True
            account.auto_trade_enabled = True
            account.monitoring_enabled = True

        self.save(account)
        return account
