# =============================================================================
# TELEGRAM NOTIFICATIONS
# =============================================================================
#
# Delivery to subscribers via the Telegram Bot API (sendMessage).
# Every subscriber id is a Telegram chat id.
#
# Delivery is fire-and-forget: send() returns False on any failure and
# never raises, so a dead chat never blocks the poll cycle.
#
# =============================================================================
import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Tuple

import requests

logger = logging.getLogger(__name__)

TELEGRAM_API_BASE = "https://api.telegram.org/bot{token}"
DEFAULT_TIMEOUT = 10
MAX_MESSAGE_LENGTH = 4096


class Notifier(ABC):
    """Outbound message channel to one subscriber."""

    @abstractmethod
    def send(self, subscriber_id: str, text: str, buttons: Optional[List[Tuple[str, str]]] = None) -> bool:
        """
        Deliver text to a subscriber.

        Args:
            subscriber_id: Chat id
            text: HTML-formatted message
            buttons: Optional inline buttons as (label, callback_data)

        Returns:
            True if delivered
        """


class LoggingNotifier(Notifier):
    """Notifier that only logs (no bot token configured, dry runs)."""

    def send(self, subscriber_id: str, text: str, buttons: Optional[List[Tuple[str, str]]] = None) -> bool:
        logger.info(f"[notify {subscriber_id}] {text}")
        return True


class RecordingNotifier(Notifier):
    """Notifier that keeps every message in memory, grouped by subscriber."""

    def __init__(self):
        self.messages: Dict[str, List[str]] = {}

    def send(self, subscriber_id: str, text: str, buttons: Optional[List[Tuple[str, str]]] = None) -> bool:
        self.messages.setdefault(str(subscriber_id), []).append(text)
        return True


class TelegramNotifier(Notifier):
    """Telegram Bot API notifier."""

    def __init__(
        self,
        token: str,
        timeout: int = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        if not token:
            raise ValueError("Telegram bot token is required")
        self.base_url = TELEGRAM_API_BASE.format(token=token)
        self.timeout = timeout
        self.session = session or requests.Session()

    def send(self, subscriber_id: str, text: str, buttons: Optional[List[Tuple[str, str]]] = None) -> bool:
        payload = {
            "chat_id": subscriber_id,
            "text": text[:MAX_MESSAGE_LENGTH],
            "parse_mode": "HTML",
            "disable_web_page_preview": True,
        }
        if buttons:
            payload["reply_markup"] = {
                "inline_keyboard": [[{"text": label, "callback_data": data}] for label, data in buttons]
            }

        try:
            resp = self.session.post(f"{self.base_url}/sendMessage", json=payload, timeout=self.timeout)
            if resp.ok:
                logger.debug(f"Telegram: message sent to {subscriber_id}")
                return True
            logger.warning(f"Telegram API error for {subscriber_id}: {resp.status_code} {resp.text[:100]}")
            return False
        except requests.exceptions.Timeout:
            logger.warning(f"Telegram: timeout sending to {subscriber_id}")
            return False
        except requests.RequestException as e:
            logger.warning(f"Telegram: send to {subscriber_id} failed: {e}")
            return False


def build_notifier(token: Optional[str]) -> Notifier:
    """TelegramNotifier when a token is configured, LoggingNotifier otherwise."""
    if token:
        return TelegramNotifier(token)
    logger.info("Telegram not configured; notifications go to the log")
    return LoggingNotifier()
