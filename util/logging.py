"""
Structured operation logging for the ledger, the monitoring agents and the heartbeat.
"""

import logging
from typing import Any, Dict, List


class StructuredLogger:
    """Structured logger for ledger, agent and scheduler operations."""

    def __init__(self, name: str = "security_ledger"):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(logging.INFO)

        # Create handler if not already set
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)

    def log_operation(self, operation: str, status: str, details: Dict[str, Any] = None,
                      level: int = logging.INFO):
        """Log a structured operation."""
        message = f"Operation: {operation}, Status: {status}"
        if details:
            message += f", Details: {details}"

        self.logger.log(level, message)

    def log_block_sealed(self, index: int, block_hash: str, nonce: int, event_count: int):
        """Log a newly mined block."""
        self.log_operation("ledger.seal", "success", {
            "index": index,
            "hash": block_hash,
            "nonce": nonce,
            "event_count": event_count
        })

    def log_seal_failed(self, requeued: int, error: str):
        """Log a seal that raised; its events were put back on the queue."""
        self.log_operation("ledger.seal", "failed", {
            "requeued": requeued,
            "error": error
        }, level=logging.ERROR)

    def log_chain_verification(self, valid: bool, length: int, failed_index: int = None,
                               reason: str = None):
        """Log a full-chain verification result. Tampering is logged as a warning."""
        details = {"length": length}
        if failed_index is not None:
            details["failed_index"] = failed_index
            details["reason"] = reason

        if valid:
            self.log_operation("ledger.verify", "valid", details, level=logging.DEBUG)
        else:
            self.log_operation("ledger.verify", "invalid", details, level=logging.WARNING)

    def log_agent_poll(self, agent: str, status: str, event_count: int, details: Dict[str, Any] = None):
        """Log the outcome of one agent poll (baseline, changed, unchanged, error, skipped)."""
        log_details = {"event_count": event_count}
        if details:
            log_details.update(details)

        level = logging.WARNING if status == "error" else logging.INFO
        self.log_operation(f"agent.{agent}", status, log_details, level=level)

    def log_heartbeat_task(self, task_name: str, start_time: float, end_time: float,
                           status: str = "success", details: Dict[str, Any] = None):
        """Log heartbeat task execution."""
        duration_ms = round((end_time - start_time) * 1000, 2)
        log_details = {"duration_ms": duration_ms}
        if details:
            log_details.update(details)
        elif status == "success":
            log_details["message"] = f"Heartbeat task '{task_name}' completed in {duration_ms}ms"
        elif status == "failed":
            log_details["message"] = f"Heartbeat task '{task_name}' failed after {duration_ms}ms"

        level = logging.ERROR if status == "failed" else logging.DEBUG
        self.log_operation(f"heartbeat.{task_name}", status, log_details, level=level)

    def log_validation_error(self, operation: str, errors: List[Any]):
        """Log rejected input with truncated messages."""
        sanitized_errors = [str(error)[:100] for error in errors]
        self.log_operation(f"{operation}.validation", "rejected", {
            "errors": sanitized_errors,
            "error_count": len(sanitized_errors)
        }, level=logging.WARNING)

    def log_config_change(self, field: str, values: List[str]):
        """Log a runtime scan-scope update."""
        self.log_operation("config.update", "success", {"field": field, "values": values})

    # Standard logging methods for compatibility
    def info(self, message: str) -> None:
        """Log an info message."""
        self.logger.info(message)

    def warning(self, message: str) -> None:
        """Log a warning message."""
        self.logger.warning(message)

    def error(self, message: str) -> None:
        """Log an error message."""
        self.logger.error(message)

    def debug(self, message: str) -> None:
        """Log a debug message."""
        self.logger.debug(message)


# Global logger instance
logger = StructuredLogger()
