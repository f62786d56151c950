"""
Baseline-diff agent interface shared by the file, network and account monitors.

An agent polls a snapshot of its domain, compares it with the last successful
snapshot (its baseline), turns the difference into events and hands them to the
emit sink.
"""

import threading
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Mapping, Optional

from ..core.errors import SnapshotError
from ..core.events import SecurityEvent, agent_event, utc_now_iso
from util.logging import logger

EmitFn = Callable[[SecurityEvent], None]


class BaselineDiffAgent(ABC):
    """
    Abstract base class for the monitoring agents.

    Subclasses implement snapshot() plus the baseline and diff event builders.
    Baseline state is owned by the instance and guarded by a poll lock, so a manual
    poll and a timer tick never interleave on one agent.
    """

    domain: str = ""           # files | network | accounts
    source: str = ""           # producer name stamped on every event
    check_error_type: str = ""
    check_error_message: str = ""

    def __init__(self, emit: EmitFn):
        self.emit = emit
        self._baseline: Optional[Mapping[str, Any]] = None
        self._lock = threading.Lock()

    @abstractmethod
    def snapshot(self) -> Mapping[str, Any]:
        """Return the complete current state of the domain or raise SnapshotError."""

    @abstractmethod
    def baseline_events(self, current: Mapping[str, Any], now: str) -> List[SecurityEvent]:
        """Events for the poll that establishes the baseline."""

    @abstractmethod
    def diff_events(self, baseline: Mapping[str, Any], current: Mapping[str, Any],
                    now: str) -> List[SecurityEvent]:
        """Events describing what changed since the baseline. Empty if nothing did."""

    def is_enabled(self) -> bool:
        return True

    def collection_error_events(self, current: Mapping[str, Any], now: str) -> List[SecurityEvent]:
        """Per-item collection failures inside an otherwise successful snapshot."""
        return []

    def next_baseline(self, current: Mapping[str, Any]) -> Mapping[str, Any]:
        return current

    def is_empty(self, snapshot: Mapping[str, Any]) -> bool:
        return not snapshot

    @property
    def has_baseline(self) -> bool:
        """An empty baseline counts as none: the next poll records a fresh one."""
        return self._baseline is not None and not self.is_empty(self._baseline)

    @property
    def baseline(self) -> Optional[Mapping[str, Any]]:
        return self._baseline

    def reset(self):
        """Forget the baseline; the next successful poll re-establishes it."""
        with self._lock:
            self._baseline = None

    def event(self, type: str, severity: str, message: str, details: Dict[str, Any] = None,
              timestamp: str = None) -> SecurityEvent:
        return agent_event(type, self.source, severity, message, details, timestamp)

    def poll(self) -> List[SecurityEvent]:
        """
        Run one poll and emit its events in order.

        Collection failures become events; nothing propagates to the scheduler.

        Returns:
            The emitted events
        """
        with self._lock:
            if not self.is_enabled():
                logger.log_agent_poll(self.domain, "skipped", 0)
                return []

            events = self._poll_locked()
            for event in events:
                self.emit(event)
            return events

    def _poll_locked(self) -> List[SecurityEvent]:
        now = utc_now_iso()

        try:
            current = self.snapshot()
        except SnapshotError as e:
            # Baseline untouched: a transient failure must not erase history
            logger.log_agent_poll(self.domain, "error", 1, {"reason": str(e)})
            return [self.event(self.check_error_type, "high", self.check_error_message, {}, now)]

        events = list(self.collection_error_events(current, now))

        if not self.has_baseline:
            events.extend(self.baseline_events(current, now))
            status = "baseline"
        else:
            changes = self.diff_events(self._baseline, current, now)
            events.extend(changes)
            status = "changed" if changes else "unchanged"

        self._baseline = self.next_baseline(current)
        logger.log_agent_poll(self.domain, status, len(events), {"keys": len(current)})
        return events
