"""
Ledger and monitoring configuration - environment driven, process lifetime only.
The file-agent scan scope is additionally mutable at runtime through ScanConfig.
"""

import os
import threading
from typing import Dict, List, Any

from .errors import ConfigValidationError

# Proof-of-work difficulty: number of leading '0' hex characters per block hash
LEDGER_DIFFICULTY = int(os.getenv("LEDGER_DIFFICULTY", "2"))

# Debug flag (exposes /docs and /redoc)
DEBUG = os.getenv("DEBUG", "true").lower() == "true"

# Heartbeat / agent scheduling (seconds)
HEARTBEAT_ENABLED = os.getenv("HEARTBEAT_ENABLED", "true").lower() == "true"
INTEGRITY_INTERVAL_SEC = float(os.getenv("INTEGRITY_INTERVAL_SEC", "60"))
NETWORK_INTERVAL_SEC = float(os.getenv("NETWORK_INTERVAL_SEC", "60"))
ACCOUNT_INTERVAL_SEC = float(os.getenv("ACCOUNT_INTERVAL_SEC", "60"))
SEAL_INTERVAL_SEC = float(os.getenv("SEAL_INTERVAL_SEC", "60"))
SEAL_OFFSET_SEC = float(os.getenv("SEAL_OFFSET_SEC", "5"))  # first seal lags the first polls

# File integrity scope (defaults; runtime copy lives in ScanConfig)
INTEGRITY_ROOTS = [r for r in os.getenv("INTEGRITY_ROOTS", "").split(os.pathsep) if r.strip()]
INTEGRITY_EXCLUDE_DIRS = [
    d.strip() for d in os.getenv(
        "INTEGRITY_EXCLUDE_DIRS", "node_modules,.git,.vscode,dist,build,.vs"
    ).split(",") if d.strip()
]

# Host commands consumed by the network and account agents
NETSTAT_COMMAND = os.getenv("NETSTAT_COMMAND", "netstat -ano")
USERS_COMMAND = os.getenv("USERS_COMMAND", "net user")
ADMINS_COMMAND = os.getenv("ADMINS_COMMAND", "net localgroup administrators")
COMMAND_TIMEOUT_SEC = float(os.getenv("COMMAND_TIMEOUT_SEC", "15"))

# Version string
VERSION = "1.0.0"


def _clean_entries(field: str, entries) -> List[str]:
    """Trim entries and drop blanks. Rejects non-lists and non-string entries."""
    if not isinstance(entries, (list, tuple)):
        raise ConfigValidationError(field, f"'{field}' must be an array of strings")

    cleaned = []
    for entry in entries:
        if not isinstance(entry, str):
            raise ConfigValidationError(field, f"'{field}' must be an array of strings")
        if entry.strip():
            cleaned.append(entry.strip())
    return cleaned


class ScanConfig:
    """Runtime-mutable scan scope for the file integrity agent."""

    def __init__(self, roots: List[str] = None, exclude_dirs: List[str] = None,
                 interval_sec: float = None):
        self._lock = threading.Lock()
        self._roots = list(INTEGRITY_ROOTS if roots is None else roots)
        self._exclude_dirs = list(INTEGRITY_EXCLUDE_DIRS if exclude_dirs is None else exclude_dirs)
        self.interval_sec = INTEGRITY_INTERVAL_SEC if interval_sec is None else interval_sec

    @property
    def roots(self) -> List[str]:
        with self._lock:
            return list(self._roots)

    @property
    def exclude_dirs(self) -> List[str]:
        with self._lock:
            return list(self._exclude_dirs)

    def set_roots(self, roots) -> List[str]:
        """
        Replace the scanned roots.

        Raises:
            ConfigValidationError: if no non-empty root remains. Existing roots are kept.
        """
        cleaned = _clean_entries("roots", roots)
        if not cleaned:
            raise ConfigValidationError("roots", "At least one non-empty root path is required")

        with self._lock:
            self._roots = cleaned
        return list(cleaned)

    def set_exclude_dirs(self, exclude_dirs) -> List[str]:
        """Replace the excluded directory names. An empty list is allowed."""
        cleaned = _clean_entries("excludeDirs", exclude_dirs)
        with self._lock:
            self._exclude_dirs = cleaned
        return list(cleaned)

    def to_dict(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "intervalMs": int(self.interval_sec * 1000),
                "roots": list(self._roots),
                "excludeDirs": list(self._exclude_dirs),
            }


def debug_enabled():
    """Check if debug mode is enabled."""
    return os.getenv("DEBUG", "true").lower() == "true"


def is_heartbeat_enabled():
    """Check if the agent/seal timers should start with the API."""
    return HEARTBEAT_ENABLED


def get_difficulty():
    """Get the proof-of-work difficulty."""
    return LEDGER_DIFFICULTY


def get_agent_intervals() -> Dict[str, float]:
    """Poll interval per monitored domain, in seconds."""
    return {
        "files": INTEGRITY_INTERVAL_SEC,
        "network": NETWORK_INTERVAL_SEC,
        "accounts": ACCOUNT_INTERVAL_SEC,
    }


def validate_heartbeat_config():
    """Validate scheduling configuration and return any issues."""
    issues = []

    if LEDGER_DIFFICULTY < 0:
        issues.append("LEDGER_DIFFICULTY must be >= 0")

    for name, value in (
        ("INTEGRITY_INTERVAL_SEC", INTEGRITY_INTERVAL_SEC),
        ("NETWORK_INTERVAL_SEC", NETWORK_INTERVAL_SEC),
        ("ACCOUNT_INTERVAL_SEC", ACCOUNT_INTERVAL_SEC),
        ("SEAL_INTERVAL_SEC", SEAL_INTERVAL_SEC),
    ):
        if value <= 0:
            issues.append(f"{name} must be > 0")

    if SEAL_OFFSET_SEC < 0:
        issues.append("SEAL_OFFSET_SEC must be >= 0")

    if COMMAND_TIMEOUT_SEC <= 0:
        issues.append("COMMAND_TIMEOUT_SEC must be > 0")

    return issues
