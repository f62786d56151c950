"""
Event coordinator - owns the pending-event queue, the agents and the schedule that
drains the queue into the ledger.

The queue and the seal use disjoint locks: enqueueing never waits for proof-of-work.
"""

import threading
from collections import deque
from typing import Any, Deque, Dict, List, Optional

from .block import HashedBlock, ProofOfWorkSealer
from .config import (
    SEAL_INTERVAL_SEC,
    SEAL_OFFSET_SEC,
    ScanConfig,
    get_agent_intervals,
    validate_heartbeat_config,
)
from .errors import EmptyQueueError
from .events import SecurityEvent, build_event
from .heartbeat import Heartbeat
from .ledger import Ledger
from ..agents.accounts import AccountAgent
from ..agents.agent import BaselineDiffAgent
from ..agents.file_integrity import FileIntegrityAgent
from ..agents.network import NetworkAgent
from util.logging import logger

DOMAINS = ("files", "network", "accounts")


class EventCoordinator:
    """
    One ledger, one pending queue and one agent per monitored domain.

    Everything is instance state, so independently configured coordinators can live
    side by side (tests create one per case).
    """

    def __init__(self, ledger: Ledger = None, scan_config: ScanConfig = None,
                 agents: Dict[str, BaselineDiffAgent] = None, heartbeat: Heartbeat = None,
                 difficulty: int = None):
        self.ledger = ledger or Ledger(ProofOfWorkSealer(difficulty))
        self.scan_config = scan_config or ScanConfig()
        self.heartbeat = heartbeat or Heartbeat()

        self._queue: Deque[SecurityEvent] = deque()
        self._queue_lock = threading.Lock()
        self._seal_lock = threading.Lock()

        if agents is None:
            agents = {
                "files": FileIntegrityAgent(self.enqueue, self.scan_config),
                "network": NetworkAgent(self.enqueue),
                "accounts": AccountAgent(self.enqueue),
            }
        self.agents = agents

    # -- queue -----------------------------------------------------------

    def enqueue(self, event: SecurityEvent) -> SecurityEvent:
        """Append an event at the tail of the pending queue."""
        with self._queue_lock:
            self._queue.append(event)
        return event

    def enqueue_event(self, type: Any, source: Any, severity: Any = None, message: Any = None,
                      details: Any = None) -> SecurityEvent:
        """
        Validate and queue an externally received event.

        Raises:
            EventValidationError: nothing is queued
        """
        event = build_event(type, source, severity, message, details)
        return self.enqueue(event)

    def list_pending(self) -> Dict[str, Any]:
        with self._queue_lock:
            events = list(self._queue)
        return {"count": len(events), "events": events}

    def _detach_pending(self) -> List[SecurityEvent]:
        with self._queue_lock:
            events = list(self._queue)
            self._queue.clear()
        return events

    # -- sealing ---------------------------------------------------------

    def drain_and_seal(self) -> Optional[HashedBlock]:
        """
        Seal every pending event into one new block.

        Only one seal runs at a time. Events enqueued while mining stay queued for
        the next seal. If sealing fails the detached events go back to the head of
        the queue, ahead of anything enqueued meanwhile, and the error propagates.

        Returns:
            The new block, or None if the queue was empty
        """
        with self._seal_lock:
            events = self._detach_pending()
            if not events:
                return None
            try:
                return self.ledger.append(tuple(events))
            except Exception as e:
                with self._queue_lock:
                    self._queue.extendleft(reversed(events))
                logger.log_seal_failed(len(events), str(e))
                raise

    def seal_now(self) -> HashedBlock:
        """
        Force an immediate drain-and-seal.

        Raises:
            EmptyQueueError: nothing was pending
        """
        block = self.drain_and_seal()
        if block is None:
            raise EmptyQueueError()
        return block

    # -- ledger views ----------------------------------------------------

    def get_chain(self) -> Dict[str, Any]:
        chain = self.ledger.chain
        return {"length": len(chain), "chain": chain}

    def verify_chain(self) -> Dict[str, Any]:
        chain = self.ledger.chain
        return {"valid": self.ledger.verify(chain), "length": len(chain)}

    # -- agents ----------------------------------------------------------

    def trigger_poll(self, domain: str = "all") -> List[SecurityEvent]:
        """
        Poll one agent (or all of them) outside the timer.

        Raises:
            ValueError: unknown domain
        """
        if domain == "all":
            domains = [d for d in DOMAINS if d in self.agents]
        elif domain in self.agents:
            domains = [domain]
        else:
            raise ValueError(f"Unknown monitoring domain: {domain}")

        events = []
        for name in domains:
            events.extend(self.agents[name].poll())
        return events

    def get_monitoring_config(self) -> Dict[str, Any]:
        return self.scan_config.to_dict()

    def set_roots(self, roots) -> Dict[str, Any]:
        """Raises ConfigValidationError and keeps the current roots on rejection."""
        cleaned = self.scan_config.set_roots(roots)
        logger.log_config_change("roots", cleaned)
        return self.get_monitoring_config()

    def set_excluded_dirs(self, exclude_dirs) -> Dict[str, Any]:
        cleaned = self.scan_config.set_exclude_dirs(exclude_dirs)
        logger.log_config_change("excludeDirs", cleaned)
        return self.get_monitoring_config()

    # -- scheduling ------------------------------------------------------

    def _scheduled_seal(self):
        block = self.drain_and_seal()
        if block is not None:
            logger.info(f"Auto-mined block {block.index} from pending events ({block.hash})")

    def schedule(self, intervals: Dict[str, float] = None, seal_interval: float = None,
                 seal_offset: float = None):
        """
        Register one poll task per agent and the offset seal task on the heartbeat.

        Raises:
            ValueError: the environment scheduling configuration is invalid
        """
        issues = validate_heartbeat_config()
        if issues:
            raise ValueError(f"Heartbeat configuration invalid: {issues}")

        intervals = intervals or get_agent_intervals()
        for name, agent in self.agents.items():
            self.heartbeat.register_task(f"poll_{name}", intervals.get(name, SEAL_INTERVAL_SEC), agent.poll)

        self.heartbeat.register_task(
            "seal",
            seal_interval or SEAL_INTERVAL_SEC,
            self._scheduled_seal,
            initial_delay_sec=SEAL_OFFSET_SEC if seal_offset is None else seal_offset,
        )

    def start(self):
        if not self.heartbeat.list_tasks():
            self.schedule()
        self.heartbeat.start()

    def stop(self):
        self.heartbeat.stop()
