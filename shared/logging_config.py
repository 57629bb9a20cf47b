# =============================================================================
# POLYMARKET APPROVALS - LOGGING CONFIGURATION
# =============================================================================
#
# Operational logs and audit records are STRICTLY SEPARATED.
# - Operational logs: module loggers under the root, console + logs/tool/
# - Audit records:    "audit.approvals" logger tree, JSON lines (one child per file)
#
# Audit records NEVER contain approval tokens or credentials.
# Tokens are referenced by fingerprint only.
#
# =============================================================================

import hashlib
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Union


# =============================================================================
# LOG DIRECTORIES (relative to project root)
# =============================================================================

def _get_project_root() -> Path:
    """Get the project root directory."""
    # This file is at shared/logging_config.py
    return Path(__file__).parent.parent


def _get_log_dir() -> Path:
    return _get_project_root() / "logs" / "tool"


LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


# =============================================================================
# LOGGING SETUP
# =============================================================================

def setup_logging(
    level: int = logging.INFO,
    console_output: bool = True,
    file_output: bool = True,
    log_dir: Optional[Union[str, Path]] = None,
) -> Optional[Path]:
    """
    Configure the root logger for the tool.

    Args:
        level: Logging level
        console_output: Whether to log to console (stderr)
        file_output: Whether to log to a timestamped file
        log_dir: Directory for log files. Defaults to logs/tool/

    Returns:
        Path of the log file, or None if file output is disabled
    """
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

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
        directory = Path(log_dir) if log_dir else _get_log_dir()
        directory.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_file = directory / f"tool_{timestamp}.log"

        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    root.info("Logging initialized")
    if log_file:
        root.info(f"Log file: {log_file}")
    return log_file


# =============================================================================
# AUDIT LOGGING
# =============================================================================

class AuditLogger:
    """
    Logger for audit-grade records of approval lifecycle events.

    Audit records are:
    - JSON lines, one per event
    - Hashed (SHA-256 of the details) for traceability
    - Written to a dedicated file only when a directory is given;
      otherwise they propagate to the normal logging handlers

    Each audit file gets its own child logger of "audit.approvals", so
    creating another AuditLogger never detaches an existing file.
    """

    LOGGER_NAME = "audit.approvals"

    def __init__(self, audit_dir: Optional[Union[str, Path]] = None):
        self.audit_file: Optional[Path] = None

        if audit_dir is None:
            self.logger = logging.getLogger(self.LOGGER_NAME)
            self.logger.setLevel(logging.INFO)
            return

        directory = Path(audit_dir)
        directory.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d")
        self.audit_file = (directory / f"audit_approvals_{timestamp}.jsonl").resolve()

        file_key = hashlib.sha256(str(self.audit_file).encode("utf-8")).hexdigest()[:12]
        self.logger = logging.getLogger(f"{self.LOGGER_NAME}.file_{file_key}")
        self.logger.setLevel(logging.INFO)
        self.logger.propagate = False

        # One handler per file, shared by every instance writing to it
        already_attached = any(
            isinstance(h, logging.FileHandler) and Path(h.baseFilename).resolve() == self.audit_file
            for h in self.logger.handlers
        )
        if not already_attached:
            handler = logging.FileHandler(self.audit_file, encoding="utf-8")
            handler.setFormatter(logging.Formatter("%(message)s"))
            self.logger.addHandler(handler)

    @staticmethod
    def _compute_hash(data: dict) -> str:
        """
        Compute SHA-256 hash of event details for traceability.

        Args:
            data: Dictionary to hash

        Returns:
            Hex-encoded SHA-256 hash
        """
        # Serialize deterministically (sorted keys, no whitespace)
        serialized = json.dumps(data, sort_keys=True, separators=(',', ':'), default=str)
        return hashlib.sha256(serialized.encode('utf-8')).hexdigest()

    def log_event(self, event_type: str, details: Dict[str, Any]) -> Dict[str, Any]:
        """
        Log an audit event.

        Args:
            event_type: PROPOSE / RESUME / CANCEL
            details: Event details as a dictionary

        Returns:
            The record that was logged
        """
        record = {
            "timestamp": datetime.now().isoformat(),
            "event": event_type,
            "details": details,
            "details_hash": self._compute_hash(details),
        }
        self.logger.info(json.dumps(record, ensure_ascii=False, default=str))
        return record
