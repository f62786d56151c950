"""
Security events - the unit of observation recorded in the ledger.
Events are created by agents or by the intake boundary and are immutable.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .errors import EventValidationError

SEVERITIES = ("info", "low", "medium", "high")


def utc_now_iso() -> str:
    """Current time as ISO-8601 UTC with millisecond precision, e.g. 2024-01-01T00:00:00.000Z"""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class SecurityEvent:
    """One classified observation about host state."""
    type: str
    source: str
    severity: str = "info"
    message: str = ""
    timestamp: str = field(default_factory=utc_now_iso)
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        # Field order is part of the block hash input
        return {
            "type": self.type,
            "source": self.source,
            "severity": self.severity,
            "message": self.message,
            "timestamp": self.timestamp,
            "details": self.details,
        }


def _require_non_empty(name: str, value: Any):
    if not isinstance(value, str) or not value.strip():
        raise EventValidationError(name, f'Field "{name}" is required and must be a non-empty string')


def _require_optional_string(name: str, value: Any):
    if value is not None and not isinstance(value, str):
        raise EventValidationError(name, f'Field "{name}", if provided, must be a string')


def _require_utf8(name: str, value: Any):
    if value is None:
        return
    try:
        json.dumps(value, ensure_ascii=False, default=str).encode("utf-8")
    except UnicodeEncodeError:
        raise EventValidationError(name, f'Field "{name}" must be valid UTF-8 text')


def build_event(type: Any, source: Any, severity: Any = None, message: Any = None,
                details: Any = None) -> SecurityEvent:
    """
    Validate raw intake fields and build an event.

    Args:
        type: Event discriminator, non-empty string
        source: Producer identifier, non-empty string
        severity: Optional string, defaults to "info"
        message: Optional string, defaults to ""
        details: Optional mapping (not an array), defaults to {}

    Raises:
        EventValidationError: with the offending field name and reason
    """
    _require_non_empty("type", type)
    _require_non_empty("source", source)
    _require_optional_string("severity", severity)
    _require_optional_string("message", message)

    if details is not None and not isinstance(details, dict):
        raise EventValidationError("details", 'Field "details", if provided, must be an object')

    for name, value in (("type", type), ("source", source), ("severity", severity),
                        ("message", message), ("details", details)):
        _require_utf8(name, value)

    return SecurityEvent(
        type=type,
        source=source,
        severity=severity if severity is not None else "info",
        message=message if message is not None else "",
        details=dict(details) if details is not None else {},
    )


def agent_event(type: str, source: str, severity: str, message: str,
                details: Optional[Dict[str, Any]] = None,
                timestamp: Optional[str] = None) -> SecurityEvent:
    """Build an agent-produced event. Severity must be one of SEVERITIES."""
    if severity not in SEVERITIES:
        raise ValueError(f"Invalid severity: {severity}")
    return SecurityEvent(
        type=type,
        source=source,
        severity=severity,
        message=message,
        timestamp=timestamp or utc_now_iso(),
        details=details or {},
    )
