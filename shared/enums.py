# =============================================================================
# TELETRADE - SHARED ENUMS
# =============================================================================
#
# These enums define the shared vocabulary across the system.
# Values are the exact strings used in the signal feed and in the
# persisted subscriber / scheduler documents.
#
# =============================================================================

from enum import Enum
from typing import Optional


class Side(Enum):
    """Direction of a signal or paper position."""
    LONG = "LONG"
    SHORT = "SHORT"

    @property
    def direction(self) -> int:
        """+1 for LONG, -1 for SHORT (sign applied to PnL)."""
        return 1 if self is Side.LONG else -1

    def opposite(self) -> "Side":
        return Side.SHORT if self is Side.LONG else Side.LONG

    @classmethod
    def parse(cls, raw: object) -> Optional["Side"]:
        """
        Parse a feed/store value into a Side.

        Args:
            raw: Any value; compared case-insensitively after stripping

        Returns:
            Side, or None if the value is not LONG/SHORT
        """
        text = str(raw or "").strip().upper()
        try:
            return cls(text)
        except ValueError:
            return None


class PollState(Enum):
    """
    States of the poll scheduler.

    IDLE -> FETCHING -> DISPATCHING -> IDLE, forever.
    FETCHING returns straight to IDLE when the feed fails or the
    candidate is not new.
    """
    IDLE = "IDLE"
    FETCHING = "FETCHING"
    DISPATCHING = "DISPATCHING"


class AptosNetwork(Enum):
    """Ledger network selection."""
    MAINNET = "mainnet"
    TESTNET = "testnet"
    DEVNET = "devnet"
    CUSTOM = "custom"


class DispatchOutcome(Enum):
    """What happened to one subscriber for one accepted signal."""
    OPENED = "OPENED"
    SKIPPED_NO_ALLOCATION = "SKIPPED_NO_ALLOCATION"
    SKIPPED_INSUFFICIENT_BALANCE = "SKIPPED_INSUFFICIENT_BALANCE"
    FAILED = "FAILED"
