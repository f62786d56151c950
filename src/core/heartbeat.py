"""
Heartbeat - cooperative periodic scheduler for agent polls and ledger sealing.

Each due task runs in its own daemon worker thread, so a slow host command or a
long proof-of-work never delays the other tasks. A task whose previous run is still
in flight is skipped for that tick.
"""

import time
import threading
from typing import Callable, Dict, List

from util.logging import logger


class Heartbeat:
    """Registry of periodic tasks plus the loop that fires them."""

    def __init__(self, tick_sec: float = 0.1):
        self.tasks: Dict[str, Dict] = {}  # task_name -> {func, interval, last_run, next_run, ...}
        self.tick_sec = tick_sec
        self.running = False
        self.shutdown_event = threading.Event()
        self._thread = None
        self._lock = threading.Lock()

    def register_task(self, name: str, interval_sec: float, func: Callable,
                      initial_delay_sec: float = 0.0):
        """
        Register a task to be executed periodically.

        Args:
            name: Unique task identifier (re-registering replaces the task)
            interval_sec: How often to run this task in seconds
            func: Function to call
            initial_delay_sec: Delay before the first run, counted from start()
        """
        if not callable(func):
            raise ValueError(f"Task function must be callable: {func}")

        if interval_sec <= 0:
            raise ValueError(f"Interval must be > 0 seconds: {interval_sec}")

        if initial_delay_sec < 0:
            raise ValueError(f"Initial delay must be >= 0 seconds: {initial_delay_sec}")

        with self._lock:
            self.tasks[name] = {
                "func": func,
                "interval": interval_sec,
                "initial_delay": initial_delay_sec,
                "last_run": None,
                "next_run": None,
                "in_flight": False,
                "runs": 0,
                "failures": 0,
            }

        logger.info(f"Registered heartbeat task '{name}' (every {interval_sec}s)")

    def unregister_task(self, name: str):
        """Remove a task from the registry."""
        with self._lock:
            removed = self.tasks.pop(name, None)
        if removed is not None:
            logger.info(f"Unregistered heartbeat task '{name}'")

    def list_tasks(self) -> List[str]:
        """Return list of registered task names."""
        with self._lock:
            return list(self.tasks.keys())

    def start(self):
        """Start the scheduling loop in a background thread."""
        if self.running:
            raise RuntimeError("Heartbeat already running")

        now = time.monotonic()
        with self._lock:
            for task_info in self.tasks.values():
                task_info["next_run"] = now + task_info["initial_delay"]

        self.running = True
        self.shutdown_event.clear()
        self._thread = threading.Thread(target=self._loop, name="heartbeat", daemon=True)
        self._thread.start()

        logger.info(f"Starting heartbeat loop with tasks: {self.list_tasks()}")

    def stop(self, timeout: float = 2.0):
        """Stop the scheduling loop. In-flight task threads are left to finish."""
        if not self.running:
            logger.info("Heartbeat not running")
            return

        self.running = False
        self.shutdown_event.set()

        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

        logger.info("Heartbeat stopped")

    def _loop(self):
        while self.running and not self.shutdown_event.is_set():
            with self._lock:
                due = [(name, info) for name, info in self.tasks.items()
                       if self.should_run_task(name, info)]
                for _, info in due:
                    info["in_flight"] = True

            for name, info in due:
                worker = threading.Thread(
                    target=self._run_isolated,
                    args=(name, info),
                    name=f"heartbeat-{name}",
                    daemon=True
                )
                worker.start()

            self.shutdown_event.wait(self.tick_sec)

    def _run_isolated(self, name: str, task_info: Dict):
        # Error isolation - log the failure, keep the schedule
        try:
            self.run_task(name, task_info)
        except RuntimeError as e:
            logger.error(str(e))

    def should_run_task(self, name: str, task_info: Dict) -> bool:
        """Check if a task should run this cycle."""
        if task_info.get("in_flight"):
            return False

        next_run = task_info.get("next_run")
        if next_run is not None:
            return time.monotonic() >= next_run

        if task_info["last_run"] is None:
            return True  # Run immediately if never run

        elapsed = time.monotonic() - task_info["last_run"]
        return elapsed >= task_info["interval"]

    def run_task(self, name: str, task_info: Dict):
        """Execute a task and record timing."""
        start_time = time.monotonic()

        try:
            task_info["func"]()
        except Exception as e:
            end_time = time.monotonic()
            with self._lock:
                task_info["failures"] = task_info.get("failures", 0) + 1
            logger.log_heartbeat_task(name, start_time, end_time, status="failed",
                                      details={"error": str(e)})
            raise RuntimeError(f"Task '{name}' failed after {end_time - start_time:.2f}s: {e}") from e
        else:
            end_time = time.monotonic()
            with self._lock:
                task_info["runs"] = task_info.get("runs", 0) + 1
            logger.log_heartbeat_task(name, start_time, end_time)
        finally:
            # Schedule relative to the start of this run
            with self._lock:
                task_info["last_run"] = start_time
                task_info["next_run"] = start_time + task_info["interval"]
                task_info["in_flight"] = False

    def reset_task(self, name: str):
        """Reset a task's schedule to force execution on the next tick."""
        with self._lock:
            if name in self.tasks:
                self.tasks[name]["last_run"] = None
                self.tasks[name]["next_run"] = None
        logger.info(f"Reset heartbeat task '{name}' (will run immediately)")

    def get_status(self):
        """Return current heartbeat status for monitoring."""
        with self._lock:
            return {
                "status": "running" if self.running else "stopped",
                "tasks": {
                    name: {
                        "interval_sec": info["interval"],
                        "last_run": info["last_run"],
                        "next_run": info["next_run"],
                        "in_flight": info["in_flight"],
                        "runs": info["runs"],
                        "failures": info["failures"],
                    }
                    for name, info in self.tasks.items()
                }
            }
