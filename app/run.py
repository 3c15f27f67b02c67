# =============================================================================
# TELETRADE - CLI
# =============================================================================
#
# USAGE:
#   python -m app --once                      # one poll cycle
#   python -m app --loop                      # poll forever
#   python -m app --status                    # balances, positions, unrealized PnL
#   python -m app --close-all SUBSCRIBER_ID   # close every priceable position
#   python -m app --enroll SUBSCRIBER_ID [--admin] [--allocation 0.25] [--leverage 5]
#
# EXIT CODES:
#   0  success
#   1  command failed (unknown subscriber, feed down for --close-all)
#   2  configuration error (nothing was run)
#
# PAPER TRADING ONLY:
# Positions are simulated. Only the encrypted signal record goes on-chain.
#
# =============================================================================

import argparse
import logging
import sys
from dataclasses import dataclass
from typing import List, Optional

from app.dispatch import SignalDispatcher
from app.identity import designate_admin, enroll, resolve_identity
from app.orchestrator import PollScheduler
from app.stores import JsonStateStore, JsonSubscriberStore
from collector.client import SignalFeedClient
from collector.gate import SignalGate
from collector.normalizer import price_lookup
from notifications.telegram import Notifier, build_notifier
from onchain.aptos_client import AptosRestClient, resolve_node_url
from onchain.envelope import derive_signal_key
from onchain.keys import LedgerAccount
from onchain.submitter import LedgerSubmitter
from paper_trader.ledger import close_all, mark_to_market
from shared.config import Settings, load_settings
from shared.errors import ConfigurationError, FeedUnavailable, LedgerRequestError
from shared.logging_config import AuditLogger, setup_logging

logger = logging.getLogger(__name__)


BANNER = """
================================================================================
 TELETRADE - SIGNAL FEED -> PAPER LEDGER -> ON-CHAIN RECORD
================================================================================
                 PAPER TRADING ONLY - NO REAL ORDERS
================================================================================
"""


# =============================================================================
# WIRING
# =============================================================================


@dataclass
class Runtime:
    """Every long-lived collaborator, built once from Settings."""
    settings: Settings
    operator: LedgerAccount
    state_store: JsonStateStore
    subscribers: JsonSubscriberStore
    gate: SignalGate
    dispatcher: SignalDispatcher
    scheduler: PollScheduler
    notifier: Notifier
    ledger: AptosRestClient


def build_runtime(settings: Settings, audit: Optional[AuditLogger] = None) -> Runtime:
    """
    Build the runtime from settings.

    Raises:
        ConfigurationError: operator key or envelope key is malformed
    """
    operator = LedgerAccount.from_hex(settings.operator_private_key)
    signal_key = derive_signal_key(settings.signal_key_hex, operator.private_key_bytes)

    state_store = JsonStateStore(settings.state_path)
    subscribers = JsonSubscriberStore(
        settings.subscribers_path,
        default_leverage=settings.default_leverage,
        start_balance=settings.paper_start_balance,
    )

    client = AptosRestClient(
        resolve_node_url(settings.network, settings.node_url),
        timeout=settings.ledger_timeout_s,
        wait_timeout=settings.ledger_timeout_s,
    )
    submitter = LedgerSubmitter(
        client,
        settings.module_addr,
        operator,
        max_attempts=settings.ledger_max_attempts,
        backoff_base_s=settings.ledger_backoff_base_s,
        agent_max_leverage=settings.agent_max_leverage,
        audit=audit,
    )

    gate = SignalGate(
        SignalFeedClient(settings.feed_url, timeout=settings.feed_timeout_s),
        settings.feed_key,
        state_store,
    )
    notifier = build_notifier(settings.telegram_bot_token)
    dispatcher = SignalDispatcher(
        subscribers,
        submitter,
        notifier,
        operator,
        signal_key,
        settings.signal_aad.encode("utf-8"),
    )

    # Admin record is re-bound to the operator account once per session
    state = state_store.load()
    if state.admin_subscriber_id is not None:
        identity = resolve_identity(state.admin_subscriber_id, state.admin_subscriber_id)
        enroll(subscribers, identity, operator)

    scheduler = PollScheduler(
        gate,
        dispatcher,
        interval_s=settings.poll_interval_s,
        backoff_base_s=settings.backoff_base_s,
        backoff_max_s=settings.backoff_max_s,
        state=state,
        audit=audit,
    )

    logger.info(f"Operator {operator.address} on {settings.network.value}")
    return Runtime(
        settings=settings,
        operator=operator,
        state_store=state_store,
        subscribers=subscribers,
        gate=gate,
        dispatcher=dispatcher,
        scheduler=scheduler,
        notifier=notifier,
        ledger=client,
    )


# =============================================================================
# CLI COMMANDS
# =============================================================================


def cmd_run_once(runtime: Runtime) -> int:
    """Run one poll cycle and print what happened."""
    result = runtime.scheduler.run_cycle()
    if result.error and not result.fetched:
        print(f"Feed unavailable: {result.error}")
        return 0
    if result.accepted is None:
        print("No new signal")
        return 0

    print(f"Accepted: {result.accepted.dedup_key}")
    for r in result.results:
        line = f"  {r.subscriber_id}: {r.outcome.value}"
        if r.used_collateral:
            line += f" | collateral {r.used_collateral:.2f}"
        if r.realized_pnl:
            line += f" | realized {r.realized_pnl:+.2f}"
        if r.tx_hash:
            line += f" | tx {r.tx_hash}"
        if r.error:
            line += f" | error: {r.error}"
        print(line)
    return 0


def cmd_loop(runtime: Runtime) -> int:
    try:
        runtime.scheduler.run_forever()
    except KeyboardInterrupt:
        logger.info("Poll loop stopped")
    return 0


def _apt_balance(runtime: Runtime, address: str) -> str:
    try:
        return f"{runtime.ledger.get_apt_balance(address):.4f} APT"
    except LedgerRequestError as e:
        logger.warning(f"APT balance for {address} unavailable: {e}")
        return "unavailable"


def cmd_status(runtime: Runtime) -> int:
    """Balances, positions and mark-to-market PnL for every subscriber."""
    prices = {}
    try:
        snapshot = runtime.gate.fetch_snapshot()
        prices = price_lookup(snapshot.document, runtime.settings.feed_key)
    except FeedUnavailable as e:
        print(f"Feed unavailable, unrealized PnL not priced: {e}")

    state = runtime.state_store.load()
    print(f"\n[STATUS] last accepted signal: {state.last_accepted_key or '-'}")
    try:
        print(f"Ledger: {runtime.settings.network.value} (chain id {runtime.ledger.chain_id()})")
    except LedgerRequestError as e:
        print(f"Ledger unreachable: {e}")

    accounts = runtime.subscribers.load()
    if not accounts:
        print("No subscribers")
        return 0

    for account in accounts.values():
        allocation = (
            f"{round(account.allocation_fraction * 100)}%" if account.allocation_fraction else "not set"
        )
        print(f"\n{account.subscriber_id}{' (admin)' if account.is_admin else ''}  {account.address}")
        print(f"  Balance:    {account.paper_balance:.2f} USDC")
        print(f"  Gas:        {_apt_balance(runtime, account.address)}")
        print(f"  Leverage:   {account.leverage}x | Size: {allocation}")
        print(f"  Auto-trade: {'on' if account.auto_trade_enabled else 'off'} | "
              f"Monitoring: {'on' if account.monitoring_enabled else 'off'}")
        for p in account.positions:
            print(f"  {p.side.value:<5} {p.symbol} @ {p.entry_price} collateral {p.collateral:.2f} x{p.leverage}")
        print(f"  Unrealized: {mark_to_market(account, prices):+.2f} USDC")
    print()
    return 0


def cmd_close_all(runtime: Runtime, subscriber_id: str) -> int:
    """Close every position of one subscriber at the feed's latest prices."""
    account = runtime.subscribers.get(subscriber_id)
    if account is None:
        print(f"Unknown subscriber: {subscriber_id}")
        return 1

    try:
        snapshot = runtime.gate.fetch_snapshot()
    except FeedUnavailable as e:
        print(f"Feed unavailable, nothing closed: {e}")
        return 1

    realized = close_all(account, price_lookup(snapshot.document, runtime.settings.feed_key))
    runtime.subscribers.save(account)

    print(f"Realized P&L: {realized:+.2f} USDC")
    print(f"Paper balance: {account.paper_balance:.2f} USDC")
    if account.positions:
        print(f"Still open (no current price): {len(account.positions)}")
    return 0


def cmd_enroll(
    runtime: Runtime,
    subscriber_id: str,
    admin: bool = False,
    allocation: Optional[float] = None,
    leverage: Optional[int] = None,
) -> int:
    """Create or refresh a subscriber; optionally designate admin and set sizing."""
    state = runtime.state_store.load()
    if admin:
        state = designate_admin(runtime.state_store, subscriber_id)
        if state.admin_subscriber_id != str(subscriber_id):
            print(f"Admin already designated: {state.admin_subscriber_id}")

    identity = resolve_identity(subscriber_id, state.admin_subscriber_id)
    account = enroll(runtime.subscribers, identity, runtime.operator)

    if allocation is not None or leverage is not None:
        if allocation is not None:
            account.allocation_fraction = allocation
        if leverage is not None:
            account.leverage = leverage
        runtime.subscribers.save(account)

    print(f"{type(identity).__name__} {account.subscriber_id}: {account.address}")
    return 0


# =============================================================================
# ARGUMENT PARSER
# =============================================================================


def _allocation(raw: str) -> float:
    value = float(raw)
    if not 0.0 < value <= 1.0:
        raise argparse.ArgumentTypeError("allocation must be in (0, 1]")
    return value


def _leverage(raw: str) -> int:
    value = int(raw)
    if not 1 <= value <= 100:
        raise argparse.ArgumentTypeError("leverage must be between 1 and 100")
    return value


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="python -m app",
        description="Teletrade signal poller (paper trading + on-chain signal record)",
        epilog="Note: positions are simulated; no real orders are placed.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    mode_group = parser.add_mutually_exclusive_group(required=True)
    mode_group.add_argument("--once", action="store_true", help="Run one poll cycle")
    mode_group.add_argument("--loop", action="store_true", help="Poll forever")
    mode_group.add_argument("--status", action="store_true", help="Show subscriber balances and positions")
    mode_group.add_argument("--close-all", metavar="SUBSCRIBER_ID", help="Close all positions of a subscriber")
    mode_group.add_argument("--enroll", metavar="SUBSCRIBER_ID", help="Create or refresh a subscriber")

    parser.add_argument("--admin", action="store_true", help="With --enroll: designate this subscriber as admin")
    parser.add_argument("--allocation", type=_allocation, help="With --enroll: position size as balance fraction")
    parser.add_argument("--leverage", type=_leverage, help="With --enroll: leverage 1-100")
    parser.add_argument("--quiet", "-q", action="store_true", help="Suppress banner output")
    return parser


# =============================================================================
# MAIN
# =============================================================================


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point.

    Returns:
        Exit code
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if (args.admin or args.allocation is not None or args.leverage is not None) and not args.enroll:
        parser.error("--admin/--allocation/--leverage require --enroll")

    try:
        settings = load_settings()
    except ConfigurationError as e:
        setup_logging(file_output=False)
        logger.error(f"Configuration error: {e}")
        return 2

    setup_logging(level=getattr(logging, settings.log_level, logging.INFO))

    if not args.quiet:
        print(BANNER)

    audit = AuditLogger()
    try:
        runtime = build_runtime(settings, audit=audit)

        if args.once:
            return cmd_run_once(runtime)
        elif args.loop:
            return cmd_loop(runtime)
        elif args.status:
            return cmd_status(runtime)
        elif args.close_all:
            return cmd_close_all(runtime, args.close_all)
        elif args.enroll:
            return cmd_enroll(runtime, args.enroll, args.admin, args.allocation, args.leverage)
        parser.print_help()
        return 1
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return 2
    finally:
        audit.close()


if __name__ == "__main__":
    sys.exit(main())
