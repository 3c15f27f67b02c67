# =============================================================================
# TELETRADE COLLECTOR
# Module: collector/client.py
# Purpose: HTTP client for the hourly signal feed
# =============================================================================
#
# DESIGN:
# - One GET per poll cycle; no retries here. A failed fetch surfaces as
#   FeedUnavailable and the poll scheduler backs off the next cycle.
# - Explicit timeout on every request.
#
# FEED CONTRACT:
# {
#   "<feed_key>": {
#       "BTC": [ {"time": ISO-8601, "entry_price": ..., "signal": "LONG",
#                 "stop_loss": ..., "take_profit": ...}, ... ],
#       ...
#   }
# }
#
# =============================================================================

import logging
from typing import Any, Dict, Optional

import requests

from shared.errors import FeedUnavailable

logger = logging.getLogger(__name__)


class SignalFeedClient:
    """
    HTTP client for the signal feed.

    Returns the raw decoded JSON document; interpretation lives in
    collector.normalizer.
    """

    DEFAULT_TIMEOUT = 8  # seconds

    def __init__(
        self,
        url: str,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize the feed client.

        Args:
            url: Feed URL (GET)
            timeout: Request timeout in seconds
            session: Optional requests session (injected in tests)
        """
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.setdefault("Accept", "application/json")

    def fetch(self) -> Dict[str, Any]:
        """
        Fetch the current feed document.

        Returns:
            Decoded JSON object

        Raises:
            FeedUnavailable: network error, non-2xx status, or malformed JSON
        """
        logger.debug(f"Fetching signal feed: {self.url}")
        try:
            response = self.session.get(self.url, timeout=self.timeout)
        except requests.RequestException as e:
            raise FeedUnavailable(f"Signal feed request failed: {e}") from e

        if not response.ok:
            raise FeedUnavailable(f"Signal feed HTTP {response.status_code}")

        try:
            document = response.json()
        except ValueError as e:
            raise FeedUnavailable(f"Signal feed returned malformed JSON: {e}") from e

        if not isinstance(document, dict):
            raise FeedUnavailable(
                f"Signal feed returned {type(document).__name__}, expected an object"
            )
        return document
