# =============================================================================
# TELETRADE - LOGGING CONFIGURATION
# =============================================================================
#
# Operational logs: console + one timestamped file per process under logs/.
# Audit logs: JSON lines under logs/audit/, one record per accepted signal
# and per ledger submission, each carrying a hash of its details.
#
# =============================================================================

import hashlib
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional


LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _get_project_root() -> Path:
    """Project root (this file is at shared/logging_config.py)."""
    return Path(__file__).parent.parent


def _get_log_dir(base_dir: Optional[Path] = None) -> Path:
    return (base_dir or _get_project_root()) / "logs"


# =============================================================================
# LOGGING SETUP
# =============================================================================

def setup_logging(
    level: int = logging.INFO,
    console_output: bool = True,
    file_output: bool = True,
    base_dir: Optional[Path] = None,
) -> Optional[Path]:
    """
    Configure the root logger.

    Args:
        level: Logging level
        console_output: Whether to log to console
        file_output: Whether to log to a file under logs/
        base_dir: Directory that holds logs/ (defaults to project root)

    Returns:
        Path of the log file, or None if file output is disabled
    """
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    root = logging.getLogger()
    root.setLevel(level)

    # Remove existing handlers to avoid duplicates
    root.handlers.clear()

    if console_output:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        root.addHandler(console_handler)

    log_file = None
    if file_output:
        log_dir = _get_log_dir(base_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_file = log_dir / f"teletrade_{timestamp}.log"

        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    # requests/urllib3 are chatty at DEBUG
    logging.getLogger("urllib3").setLevel(max(level, logging.WARNING))

    root.info("Logging initialized")
    if log_file is not None:
        root.info(f"Log file: {log_file}")
    return log_file


# =============================================================================
# AUDIT LOGGING
# =============================================================================

class AuditLogger:
    """
    JSON-lines audit trail.

    Audit records are:
    - Always written to file (independent of the operational log level)
    - One JSON object per line
    - Hashed (SHA-256 over the canonical JSON of the details)
    """

    def __init__(self, base_dir: Optional[Path] = None):
        self._audit_dir = _get_log_dir(base_dir) / "audit"
        self._audit_dir.mkdir(parents=True, exist_ok=True)

        timestamp = datetime.now().strftime("%Y%m%d")
        self.audit_file = self._audit_dir / f"audit_{timestamp}.jsonl"

        self.logger = logging.getLogger(f"audit.{id(self)}")
        self.logger.setLevel(logging.INFO)
        self.logger.propagate = False
        self.logger.handlers.clear()

        handler = logging.FileHandler(self.audit_file, encoding="utf-8")
        handler.setFormatter(logging.Formatter("%(message)s"))
        self.logger.addHandler(handler)

    @staticmethod
    def _compute_hash(data: Dict[str, Any]) -> str:
        """SHA-256 over sorted-key, whitespace-free JSON."""
        serialized = json.dumps(data, sort_keys=True, separators=(",", ":"), default=str)
        return hashlib.sha256(serialized.encode("utf-8")).hexdigest()

    def log_event(self, event_type: str, details: Dict[str, Any]) -> None:
        """
        Append one audit record.

        Args:
            event_type: e.g. SIGNAL_ACCEPTED, LEDGER_SUBMITTED, LEDGER_FAILED
            details: JSON-serializable details
        """
        record = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "event": event_type,
            "details": details,
            "details_hash": self._compute_hash(details),
        }
        self.logger.info(json.dumps(record, ensure_ascii=False, default=str))

    def close(self) -> None:
        for handler in list(self.logger.handlers):
            handler.close()
            self.logger.removeHandler(handler)
