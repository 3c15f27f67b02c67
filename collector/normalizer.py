# =============================================================================
# TELETRADE COLLECTOR
# Module: collector/normalizer.py
# Purpose: Turn a raw feed document into Signals and prices
# =============================================================================
#
# SELECTION RULE:
# Only the LAST sample of each symbol is consulted. Across symbols, the
# sample with the most recent `time` wins. Ties keep feed iteration order
# (first seen wins), which is not guaranteed stable across feed renders.
#
# FAIL-CLOSED:
# A last-sample with an unknown side or a non-positive entry price is
# skipped (logged), never turned into a Signal.
#
# =============================================================================

import logging
from typing import Any, Dict, List, Mapping, Optional

from paper_trader.models import Signal, parse_observed_at
from shared.enums import Side

logger = logging.getLogger(__name__)


def _as_float(raw: Any, default: float = 0.0) -> float:
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return default
    return value if value == value else default  # NaN -> default


def _symbol_series(document: Mapping[str, Any], feed_key: str) -> Dict[str, List[Any]]:
    section = document.get(feed_key) if isinstance(document, Mapping) else None
    if not isinstance(section, Mapping):
        return {}
    return {
        str(symbol): samples
        for symbol, samples in section.items()
        if isinstance(samples, list) and samples
    }


def normalize_sample(symbol: str, sample: Any) -> Optional[Signal]:
    """
    Convert one feed sample into a Signal.

    Returns:
        Signal, or None if the sample is unusable
    """
    if not isinstance(sample, Mapping):
        return None
    side = Side.parse(sample.get("signal"))
    entry = _as_float(sample.get("entry_price"))
    if side is None or entry <= 0:
        logger.warning(
            f"Skipping unusable sample for {symbol}: "
            f"signal={sample.get('signal')!r} entry_price={sample.get('entry_price')!r}"
        )
        return None
    return Signal(
        symbol=symbol,
        side=side,
        entry_price=entry,
        stop_loss=max(0.0, _as_float(sample.get("stop_loss"))),
        take_profit=max(0.0, _as_float(sample.get("take_profit"))),
        observed_at=str(sample.get("time", "")),
    )


def pick_latest(document: Mapping[str, Any], feed_key: str) -> Optional[Signal]:
    """
    Select the single most recent signal across all symbols.

    Args:
        document: Raw feed JSON
        feed_key: Top-level key holding symbol -> samples

    Returns:
        Latest Signal, or None when no symbol has a usable sample
        ("no signal" is a valid outcome, not an error)
    """
    latest: Optional[Signal] = None
    latest_ts = float("-inf")

    for symbol, samples in _symbol_series(document, feed_key).items():
        candidate = normalize_sample(symbol, samples[-1])
        if candidate is None:
            continue
        ts = candidate.observed_ts
        if ts > latest_ts:
            latest, latest_ts = candidate, ts

    return latest


def latest_price(document: Mapping[str, Any], feed_key: str, symbol: str) -> Optional[float]:
    """Last entry_price for symbol, or None if absent or not positive."""
    series = _symbol_series(document, feed_key)
    samples = series.get(symbol) or series.get(symbol.upper())
    if not samples or not isinstance(samples[-1], Mapping):
        return None
    price = _as_float(samples[-1].get("entry_price"))
    return price if price > 0 else None


def price_lookup(document: Mapping[str, Any], feed_key: str) -> Dict[str, float]:
    """Symbol -> latest positive price, for mark-to-market and close-all."""
    prices = {}
    for symbol in _symbol_series(document, feed_key):
        price = latest_price(document, feed_key, symbol)
        if price is not None:
            prices[symbol.upper()] = price
    return prices


__all__ = [
    "normalize_sample",
    "pick_latest",
    "latest_price",
    "price_lookup",
    "parse_observed_at",
]
