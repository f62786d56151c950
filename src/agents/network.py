"""
Network agent - listening TCP sockets and bound UDP sockets, decoded from
`netstat -ano` style output.
"""

from typing import Any, Dict, List, Mapping

from .agent import BaselineDiffAgent, EmitFn
from .host import CommandRunner, run_command
from ..core.config import NETSTAT_COMMAND
from ..core.errors import SnapshotError
from ..core.events import SecurityEvent


def parse_netstat(output: str) -> Dict[str, Dict[str, Any]]:
    """
    Decode netstat output into `PROTO:address:port` -> listener descriptor.

    Only TCP rows in LISTENING state and UDP rows are kept. The last ':' in the local
    address separates the port, so bracketed IPv6 addresses decode too.

    Raises:
        SnapshotError: the output has no "Proto" header row
    """
    lines = output.splitlines()
    if not any(line.strip().startswith("Proto") for line in lines):
        raise SnapshotError("netstat output has no header row")

    ports: Dict[str, Dict[str, Any]] = {}
    for line in lines:
        parts = line.split()
        if not parts or parts[0] not in ("TCP", "UDP"):
            continue

        proto = parts[0]
        if proto == "TCP":
            if len(parts) < 5 or parts[3] != "LISTENING":
                continue
            pid = parts[4]
        else:
            if len(parts) < 4:
                continue
            pid = parts[3]

        local_address, _, port = parts[1].rpartition(":")
        if not local_address or not port:
            continue

        key = f"{proto}:{local_address}:{port}"
        ports[key] = {"proto": proto, "localAddress": local_address, "port": port, "pid": pid}

    return ports


class NetworkAgent(BaselineDiffAgent):
    domain = "network"
    source = "net-agent"
    check_error_type = "network_check_error"
    check_error_message = "Failed to read current listening ports"

    def __init__(self, emit: EmitFn, runner: CommandRunner = run_command,
                 command: str = NETSTAT_COMMAND):
        super().__init__(emit)
        self.runner = runner
        self.command = command

    def snapshot(self) -> Dict[str, Dict[str, Any]]:
        return parse_netstat(self.runner(self.command))

    def baseline_events(self, current: Mapping[str, Any], now: str) -> List[SecurityEvent]:
        return [self.event(
            "network_baseline", "info", "Initial listening ports baseline recorded",
            {"listening": list(current.values())}, now
        )]

    def diff_events(self, baseline: Mapping[str, Any], current: Mapping[str, Any],
                    now: str) -> List[SecurityEvent]:
        new_listening = [value for key, value in current.items() if key not in baseline]
        closed = [value for key, value in baseline.items() if key not in current]

        if not new_listening and not closed:
            return []

        return [self.event(
            "network_port_change", "medium", "Changes in listening network ports detected",
            {"newListening": new_listening, "closed": closed}, now
        )]
