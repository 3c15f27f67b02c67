# =============================================================================
# TELETRADE - SHARED MODULE
# =============================================================================
#
# Shared utilities used by every other package. No business logic lives here.
#
# CONTENTS:
# - Enums (shared type definitions)
# - Error taxonomy
# - Settings loader
# - Logging utilities (operational + audit)
# - Best-effort helper
#
# =============================================================================

from .enums import Side, PollState, AptosNetwork, DispatchOutcome
from .errors import (
    TeletradeError,
    FeedUnavailable,
    InsufficientBalance,
    SubmissionFailed,
    ConfigurationError,
    LedgerRequestError,
)
from .best_effort import attempt_best_effort
from .logging_config import setup_logging, AuditLogger

__all__ = [
    "Side",
    "PollState",
    "AptosNetwork",
    "DispatchOutcome",
    "TeletradeError",
    "FeedUnavailable",
    "InsufficientBalance",
    "SubmissionFailed",
    "ConfigurationError",
    "LedgerRequestError",
    "attempt_best_effort",
    "setup_logging",
    "AuditLogger",
]
