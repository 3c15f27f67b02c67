# =============================================================================
# TELETRADE - PAPER TRADING DATA MODELS
# =============================================================================
#
# Signal and Position are IMMUTABLE (frozen=True): a signal never changes
# once accepted, and a position is only ever replaced on close.
# SubscriberAccount is the mutable per-subscriber ledger document.
#
# PAPER TRADING ONLY:
# Positions are simulated and settled in a virtual USDC balance.
#
# =============================================================================

import logging
import math
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from shared.enums import Side
from shared.errors import InsufficientBalance

logger = logging.getLogger(__name__)

MIN_LEVERAGE = 1
MAX_LEVERAGE = 100


def render_price(value: float) -> str:
    """Render a price the way the feed does: integral values without '.0'."""
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def parse_observed_at(observed_at: str) -> float:
    """
    Parse an ISO-8601 feed timestamp into epoch seconds.

    Unparseable timestamps sort as the oldest possible (0.0).
    """
    text = str(observed_at or "").strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text).timestamp()
    except ValueError:
        return 0.0


@dataclass(frozen=True)
class Signal:
    """
    A directional trade recommendation for one symbol.

    observed_at is kept exactly as the feed rendered it; it is part of the
    dedup key.
    """
    symbol: str
    side: Side
    entry_price: float
    stop_loss: float
    take_profit: float
    observed_at: str

    def __post_init__(self):
        if self.entry_price <= 0:
            raise ValueError(f"entry_price must be positive, got {self.entry_price}")
        # Normalize symbol casing without breaking immutability
        object.__setattr__(self, "symbol", str(self.symbol).upper())

    @property
    def dedup_key(self) -> str:
        """Identity of the signal: symbol, observed_at, side, entry price."""
        return f"{self.symbol}-{self.observed_at}-{self.side.value}-{render_price(self.entry_price)}"

    @property
    def observed_ts(self) -> float:
        return parse_observed_at(self.observed_at)

    def to_payload(self, auto: bool = True) -> Dict[str, Any]:
        """Plaintext body that gets encrypted into the on-chain envelope."""
        return {
            "symbol": self.symbol,
            "side": self.side.value,
            "entry": self.entry_price,
            "time": self.observed_at,
            "auto": auto,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "symbol": self.symbol,
            "side": self.side.value,
            "entry_price": self.entry_price,
            "stop_loss": self.stop_loss,
            "take_profit": self.take_profit,
            "observed_at": self.observed_at,
        }


@dataclass(frozen=True)
class Position:
    """
    A simulated leveraged position.

    leverage is captured at open time; later leverage changes on the
    account never touch an open position.
    """
    symbol: str
    side: Side
    entry_price: float
    leverage: int
    collateral: float
    opened_at: float  # epoch seconds

    @property
    def notional(self) -> float:
        return self.collateral * self.leverage

    def to_dict(self) -> Dict[str, Any]:
        return {
            "symbol": self.symbol,
            "side": self.side.value,
            "entry_price": self.entry_price,
            "leverage": self.leverage,
            "collateral": self.collateral,
            "opened_at": self.opened_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Optional["Position"]:
        """Create a Position from a stored record; None if the record is unusable."""
        side = Side.parse(data.get("side"))
        if side is None:
            return None
        try:
            return cls(
                symbol=str(data["symbol"]).upper(),
                side=side,
                entry_price=float(data.get("entry_price", data.get("entry", 0.0))),
                leverage=max(MIN_LEVERAGE, int(data.get("leverage", MIN_LEVERAGE))),
                collateral=max(0.0, float(data.get("collateral", 0.0))),
                opened_at=float(data.get("opened_at", data.get("ts", time.time()))),
            )
        except (KeyError, TypeError, ValueError, OverflowError):
            return None


@dataclass
class OpenResult:
    """Outcome of an open attempt. Pure value: nothing is raised."""
    ok: bool
    used_collateral: float = 0.0
    reason: Optional[str] = None

    def raise_for_status(self) -> None:
        if not self.ok:
            raise InsufficientBalance(self.reason or "Insufficient paper balance")


@dataclass
class SubscriberAccount:
    """
    One subscriber's paper ledger plus the settings the core reads.

    Invariant: paper_balance >= 0.
    """
    subscriber_id: str
    address: str
    signing_key: str
    auto_trade_enabled: bool = True
    monitoring_enabled: bool = False
    leverage: int = 5
    paper_balance: float = 10_000.0
    positions: List[Position] = field(default_factory=list)
    allocation_fraction: Optional[float] = None
    is_admin: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the persisted subscriber-store record."""
        return {
            "address": self.address,
            "signing_key": self.signing_key,
            "auto_trade_enabled": self.auto_trade_enabled,
            "monitoring_enabled": self.monitoring_enabled,
            "leverage": self.leverage,
            "paper_balance": self.paper_balance,
            "positions": [p.to_dict() for p in self.positions],
            "allocation_fraction": self.allocation_fraction,
            "is_admin": self.is_admin,
        }

    @classmethod
    def from_dict(
        cls,
        subscriber_id: str,
        data: Any,
        default_leverage: int = 5,
        start_balance: float = 10_000.0,
    ) -> Optional["SubscriberAccount"]:
        """
        Sanitize a stored record into an account.

        Records without a 0x address or a signing key are rejected (None).
        Out-of-range values are clamped or replaced by defaults.
        """
        if not isinstance(data, dict):
            return None
        address = data.get("address")
        signing_key = data.get("signing_key")
        if not isinstance(address, str) or not address.startswith("0x"):
            return None
        if not isinstance(signing_key, str) or not signing_key:
            return None

        try:
            leverage = max(MIN_LEVERAGE, min(MAX_LEVERAGE, int(float(data.get("leverage")))))
        except (TypeError, ValueError, OverflowError):
            leverage = default_leverage

        try:
            balance = float(data.get("paper_balance"))
            if not math.isfinite(balance):
                raise ValueError
            balance = max(0.0, balance)
        except (TypeError, ValueError):
            balance = start_balance

        allocation = data.get("allocation_fraction")
        try:
            allocation = float(allocation) if allocation is not None else None
        except (TypeError, ValueError):
            allocation = None
        if allocation is not None and not (0.0 < allocation <= 1.0):
            allocation = None

        raw_positions = data.get("positions")
        positions = []
        if isinstance(raw_positions, list):
            for raw in raw_positions:
                position = Position.from_dict(raw) if isinstance(raw, dict) else None
                if position is None:
                    logger.warning(f"Dropping unreadable position for {subscriber_id}: {raw!r}")
                    continue
                positions.append(position)

        return cls(
            subscriber_id=str(subscriber_id),
            address=address,
            signing_key=signing_key,
            auto_trade_enabled=bool(data.get("auto_trade_enabled")),
            monitoring_enabled=bool(data.get("monitoring_enabled")),
            leverage=leverage,
            paper_balance=balance,
            positions=positions,
            allocation_fraction=allocation,
            is_admin=bool(data.get("is_admin")),
        )
