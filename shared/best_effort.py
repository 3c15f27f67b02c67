# =============================================================================
# TELETRADE - BEST-EFFORT HELPER
# =============================================================================
#
# Some remote operations are warm-ups whose failure must never abort the
# caller (agent registration, user linking, notification delivery).
# They all go through attempt_best_effort so the intentional swallow is
# visible at the call site.
#
# =============================================================================

import logging
from typing import Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def attempt_best_effort(op: Callable[[], T], description: str) -> Optional[T]:
    """
    Run op, logging and discarding any exception it raises.

    Args:
        op: Zero-argument callable
        description: Short label used in the warning log line

    Returns:
        op's return value, or None if it raised
    """
    try:
        return op()
    except Exception as e:
        logger.warning(f"Best-effort '{description}' failed (ignored): {e}")
        return None
