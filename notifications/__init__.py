# =============================================================================
# TELETRADE - NOTIFICATIONS
# =============================================================================

from notifications.telegram import (
    LoggingNotifier,
    Notifier,
    RecordingNotifier,
    TelegramNotifier,
    build_notifier,
)
from notifications.messages import (
    ALLOCATION_CHOICES,
    render_allocation_prompt,
    render_monitoring,
    render_recap,
    render_signal_line,
)

__all__ = [
    "LoggingNotifier",
    "Notifier",
    "RecordingNotifier",
    "TelegramNotifier",
    "build_notifier",
    "ALLOCATION_CHOICES",
    "render_allocation_prompt",
    "render_monitoring",
    "render_recap",
    "render_signal_line",
]
