# =============================================================================
# TELETRADE - PAPER TRADING MODULE
# =============================================================================
#
# PAPER TRADING ONLY - NO LIVE EXECUTION
#
# Simulated leveraged positions per subscriber, settled in a virtual
# USDC balance. NO real orders are placed. NO funds are at risk.
#
# CONTENTS:
# - models.py   Signal, Position, SubscriberAccount (+ sanitizing)
# - ledger.py   Pure open / close / flip / mark-to-market arithmetic
#
# =============================================================================

"""
Paper Trading Module - position ledger for simulated leveraged trades.

WARNING:
    This module does NOT execute real trades.
"""

from paper_trader.models import OpenResult, Position, Signal, SubscriberAccount
from paper_trader.ledger import (
    apply_signal,
    close_all,
    close_opposite_positions,
    mark_to_market,
    open_position,
    position_pnl,
    size_collateral,
    truncate_cents,
)

__version__ = "0.1.0"
__status__ = "PAPER_ONLY"

__all__ = [
    "OpenResult",
    "Position",
    "Signal",
    "SubscriberAccount",
    "apply_signal",
    "close_all",
    "close_opposite_positions",
    "mark_to_market",
    "open_position",
    "position_pnl",
    "size_collateral",
    "truncate_cents",
]
