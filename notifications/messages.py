# =============================================================================
# MESSAGE RENDERING
# =============================================================================
#
# Plain functions from domain values to HTML message text.
# No I/O here; delivery is the Notifier's job.
#
# =============================================================================
from typing import List, Optional, Tuple

from paper_trader.models import OpenResult, Signal, SubscriberAccount, render_price
from shared.enums import Side

NL = chr(10)
I_GREEN = chr(0x1F7E2)
I_RED = chr(0x1F534)
I_BLUE = chr(0x1F535)
I_ANTENNA = chr(0x1F4E1)
I_EXCHANGE = chr(0x1F4B1)
I_CHECK = chr(0x2705)
I_WARN = chr(0x26A0) + chr(0xFE0F)
I_CHAIN = chr(0x1F517)

ALLOCATION_CHOICES: List[Tuple[str, str]] = [
    ("25% of balance", "alloc:0.25"),
    ("50% of balance", "alloc:0.5"),
]


def side_label(side: Side) -> str:
    icon = I_GREEN if side is Side.LONG else I_RED
    return f"{icon} {side.value}"


def render_signal_line(signal: Signal) -> str:
    """e.g. '<green> LONG BTC @ 100' + newline + '<blue> 2025-01-01T10:00:00Z'."""
    return (
        f"{side_label(signal.side)} {signal.symbol} @ {render_price(signal.entry_price)}"
        + NL + f"{I_BLUE} {signal.observed_at}"
    )


def render_monitoring(signal: Signal) -> str:
    return f"{I_ANTENNA} Bot is monitoring signals..." + NL + "<b>Latest signal</b>" + NL + render_signal_line(signal)


def render_allocation_prompt() -> str:
    return "Please select your position size before auto-trading:"


def _signed(amount: float) -> str:
    return f"{'+' if amount >= 0 else ''}{amount:.2f}"


def render_recap(
    signal: Signal,
    account: SubscriberAccount,
    realized: float,
    result: OpenResult,
    tx_hash: Optional[str] = None,
) -> str:
    """Per-subscriber recap after a signal was applied."""
    lines = []
    if realized:
        lines.append(f"{I_EXCHANGE} Realized P&L on {signal.symbol}: {_signed(realized)} USDC")

    if result.ok:
        lines.append(
            f"{I_CHECK} PAPER {side_label(signal.side)} {signal.symbol} @ {render_price(signal.entry_price)}"
        )
        lines.append(f"Collateral: {result.used_collateral:.2f} USDC | Leverage: {account.leverage}x")
        lines.append(f"{I_BLUE} {signal.observed_at}")
        lines.append(f"New paper balance: {account.paper_balance:.2f} USDC")
    else:
        lines.append(f"{I_WARN} Skipped trade: {result.reason}")

    if tx_hash:
        lines.append(f"{I_CHAIN} On-chain: <code>{tx_hash}</code>")
    return NL.join(lines)
