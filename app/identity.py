# =============================================================================
# TELETRADE - SUBSCRIBER IDENTITY
# =============================================================================
#
# Identity = Admin(subscriber_id) | Regular(subscriber_id)
#
# Resolved ONCE per session from the persisted adminSubscriberId, then
# passed around. Nothing else compares ids to decide admin-ness.
#
# The admin record is always bound to the operator's ledger account; a
# regular subscriber keeps its own generated account.
#
# =============================================================================

from dataclasses import dataclass
from typing import Optional, Union

from app.stores import JsonSubscriberStore
from collector.gate import SchedulerState, StateStore
from onchain.keys import LedgerAccount
from paper_trader.models import SubscriberAccount


@dataclass(frozen=True)
class Admin:
    subscriber_id: str


@dataclass(frozen=True)
class Regular:
    subscriber_id: str


Identity = Union[Admin, Regular]


def resolve_identity(subscriber_id: str, admin_subscriber_id: Optional[str]) -> Identity:
    subscriber_id = str(subscriber_id)
    if admin_subscriber_id is not None and subscriber_id == str(admin_subscriber_id):
        return Admin(subscriber_id)
    return Regular(subscriber_id)


def designate_admin(state_store: StateStore, subscriber_id: str) -> SchedulerState:
    """
    Persist subscriber_id as the admin.

    Only the first designation sticks; later calls return the state
    unchanged.
    """
    state = state_store.load()
    if state.admin_subscriber_id is not None:
        return state
    new_state = SchedulerState(
        last_accepted_key=state.last_accepted_key,
        admin_subscriber_id=str(subscriber_id),
        consecutive_failures=state.consecutive_failures,
    )
    state_store.save(new_state)
    return new_state


def enroll(
    subscribers: JsonSubscriberStore,
    identity: Identity,
    operator: LedgerAccount,
) -> SubscriberAccount:
    """Create or refresh the subscriber record for identity."""
    if isinstance(identity, Admin):
        return subscribers.ensure(identity.subscriber_id, operator=operator)
    return subscribers.ensure(identity.subscriber_id)
