# =============================================================================
# TELETRADE - ERROR TAXONOMY
# =============================================================================
#
# FeedUnavailable      transient; the scheduler backs off and retries next cycle
# InsufficientBalance  terminal for one open attempt; reported to the subscriber
# SubmissionFailed     terminal for one signal/subscriber pair; logged only
# ConfigurationError   fatal at startup; the process must not proceed
#
# LedgerRequestError is internal to the on-chain submitter: one failed remote
# call. It only ever leaves the submitter wrapped as SubmissionFailed.
#
# =============================================================================


class TeletradeError(Exception):
    """Base class for all errors raised by this project."""


class FeedUnavailable(TeletradeError):
    """Signal feed could not be fetched or parsed (network, non-2xx, bad JSON)."""


class InsufficientBalance(TeletradeError):
    """Clamped collateral for a new paper position is zero or less."""


class SubmissionFailed(TeletradeError):
    """Every call variant was rejected by the remote ledger."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class ConfigurationError(TeletradeError):
    """Missing or malformed configuration."""


class LedgerRequestError(TeletradeError):
    """A single remote ledger call failed."""

    def __init__(self, message: str, status_code: int = 0):
        super().__init__(message)
        self.status_code = status_code
