# =============================================================================
# TELETRADE - PAPER POSITION LEDGER
# =============================================================================
#
# Pure functions over one SubscriberAccount. No I/O, no clock reads except
# the open timestamp (injectable).
#
# PnL FORMULA (linear, no margin/liquidation model):
#   notional     = collateral * leverage
#   price_change = (close_price - entry) / entry
#   pnl          = notional * price_change * (+1 LONG | -1 SHORT)
#
# On close the account is credited collateral + pnl, floored at 0.
# Losses beyond the posted collateral are capped there: no negative
# balance, no margin call.
#
# =============================================================================

import logging
import time
from decimal import Decimal, ROUND_DOWN
from typing import Callable, List, Mapping, Optional, Tuple, Union

from paper_trader.models import OpenResult, Position, Signal, SubscriberAccount
from shared.enums import Side

logger = logging.getLogger(__name__)

PriceLookup = Union[Callable[[str], Optional[float]], Mapping[str, float]]

INSUFFICIENT_BALANCE_REASON = "Insufficient paper balance"

_CENT = Decimal("0.01")


# =============================================================================
# HELPERS
# =============================================================================


def truncate_cents(amount: float) -> float:
    """Round down to 2 decimals (truncation, not banker's rounding)."""
    return float(Decimal(repr(float(amount))).quantize(_CENT, rounding=ROUND_DOWN))


def _resolve_price(price_lookup: PriceLookup, symbol: str) -> Optional[float]:
    if callable(price_lookup):
        price = price_lookup(symbol)
    else:
        price = price_lookup.get(symbol)
    if price is None:
        return None
    try:
        price = float(price)
    except (TypeError, ValueError):
        return None
    return price if price > 0 else None


def position_pnl(position: Position, close_price: float) -> Optional[float]:
    """
    PnL of a position at close_price.

    Returns:
        PnL, or None when the position's entry price is not positive
        (treated as "no price" rather than dividing by zero)
    """
    if position.entry_price <= 0:
        return None
    price_change = (close_price - position.entry_price) / position.entry_price
    return position.notional * price_change * position.side.direction


def size_collateral(account: SubscriberAccount) -> float:
    """Collateral for the next open: balance x allocation, truncated to cents."""
    if not account.allocation_fraction:
        return 0.0
    return truncate_cents(account.paper_balance * account.allocation_fraction)


# =============================================================================
# OPEN / CLOSE
# =============================================================================


def open_position(
    account: SubscriberAccount,
    signal: Signal,
    requested_collateral: float,
    now: Optional[float] = None,
) -> OpenResult:
    """
    Open a paper position for signal.

    used = floor(min(requested, balance) * 100) / 100. The account is
    debited by used and a Position is appended with the account's current
    leverage.

    Returns:
        OpenResult(ok=True, used_collateral=used) or
        OpenResult(ok=False, reason=...) when used <= 0
    """
    clamped = max(0.0, min(float(requested_collateral), account.paper_balance))
    used = truncate_cents(clamped)
    if used <= 0:
        return OpenResult(ok=False, reason=INSUFFICIENT_BALANCE_REASON)

    account.paper_balance = max(0.0, account.paper_balance - used)
    account.positions.append(
        Position(
            symbol=signal.symbol,
            side=signal.side,
            entry_price=signal.entry_price,
            leverage=account.leverage,
            collateral=used,
            opened_at=time.time() if now is None else now,
        )
    )
    logger.debug(
        f"{account.subscriber_id}: opened {signal.side.value} {signal.symbol} "
        f"@ {signal.entry_price} collateral={used:.2f} lev={account.leverage}x"
    )
    return OpenResult(ok=True, used_collateral=used)


def _settle(account: SubscriberAccount, position: Position, close_price: float) -> Optional[float]:
    """Credit collateral + pnl (floored at 0). None if the position cannot be priced."""
    pnl = position_pnl(position, close_price)
    if pnl is None:
        return None
    account.paper_balance = max(0.0, account.paper_balance + position.collateral + pnl)
    return pnl


def close_opposite_positions(
    account: SubscriberAccount,
    symbol: str,
    new_side: Side,
    close_price: float,
) -> float:
    """
    Close every position on symbol whose side differs from new_side.

    Same-side positions stay open; nothing is merged or pyramided.

    Returns:
        Total realized PnL of the closed positions
    """
    symbol = symbol.upper()
    keep: List[Position] = []
    realized = 0.0

    for position in account.positions:
        if position.symbol != symbol or position.side == new_side:
            keep.append(position)
            continue
        pnl = _settle(account, position, close_price)
        if pnl is None:
            logger.warning(
                f"{account.subscriber_id}: cannot price {position.symbol} "
                f"(entry={position.entry_price}); leaving open"
            )
            keep.append(position)
            continue
        realized += pnl

    account.positions = keep
    return realized


def close_all(account: SubscriberAccount, price_lookup: PriceLookup) -> float:
    """
    Close every position whose symbol has a current price.

    Positions without a resolvable price are left open, never force-closed
    at a stale price.

    Returns:
        Total realized PnL
    """
    keep: List[Position] = []
    realized = 0.0

    for position in account.positions:
        price = _resolve_price(price_lookup, position.symbol)
        pnl = _settle(account, position, price) if price is not None else None
        if pnl is None:
            keep.append(position)
            continue
        realized += pnl

    account.positions = keep
    return realized


def mark_to_market(account: SubscriberAccount, price_lookup: PriceLookup) -> float:
    """
    Unrealized PnL across all open positions. Does not mutate the account.

    Positions whose symbol has no current price contribute 0.
    """
    unrealized = 0.0
    for position in account.positions:
        price = _resolve_price(price_lookup, position.symbol)
        if price is None:
            continue
        pnl = position_pnl(position, price)
        if pnl is not None:
            unrealized += pnl
    return unrealized


def apply_signal(
    account: SubscriberAccount,
    signal: Signal,
    now: Optional[float] = None,
) -> Tuple[float, OpenResult]:
    """
    Flip-on-signal: close opposite positions at the signal's entry price,
    then open the new side sized by the account's allocation fraction.

    Returns:
        (realized_pnl, open_result)
    """
    realized = close_opposite_positions(account, signal.symbol, signal.side, signal.entry_price)
    result = open_position(account, signal, size_collateral(account), now=now)
    return realized, result
