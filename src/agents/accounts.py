"""
Account agent - local users and administrators group membership, decoded from
`net user` and `net localgroup administrators` style output.
"""

import re
from typing import FrozenSet, List, Mapping

from .agent import BaselineDiffAgent, EmitFn
from .host import CommandRunner, run_command
from ..core.config import ADMINS_COMMAND, USERS_COMMAND
from ..core.errors import SnapshotError
from ..core.events import SecurityEvent

SEPARATOR = re.compile(r"^-{3,}$")
FOOTER = "The command"


def _listing_lines(output: str, what: str) -> List[str]:
    """Non-blank lines between the dashed separator and the footer."""
    lines = [line.strip() for line in output.splitlines()]
    for i, line in enumerate(lines):
        if SEPARATOR.match(line):
            body = []
            for entry in lines[i + 1:]:
                if entry.startswith(FOOTER):
                    break
                if entry:
                    body.append(entry)
            return body
    raise SnapshotError(f"{what} output has no separator line")


def parse_net_user(output: str) -> FrozenSet[str]:
    """User names, laid out in whitespace-separated columns."""
    users = set()
    for line in _listing_lines(output, "net user"):
        users.update(line.split())
    return frozenset(users)


def parse_net_localgroup(output: str) -> FrozenSet[str]:
    """Group members, one per line. Names may contain spaces (DOMAIN\\Domain Admins)."""
    return frozenset(_listing_lines(output, "net localgroup"))


class AccountAgent(BaselineDiffAgent):
    domain = "accounts"
    source = "identity-agent"
    check_error_type = "account_check_error"
    check_error_message = "Failed to read local users or administrators"

    def __init__(self, emit: EmitFn, runner: CommandRunner = run_command,
                 users_command: str = USERS_COMMAND, admins_command: str = ADMINS_COMMAND):
        super().__init__(emit)
        self.runner = runner
        self.users_command = users_command
        self.admins_command = admins_command

    def snapshot(self) -> Mapping[str, FrozenSet[str]]:
        # Both sets or neither: a failure in either command fails the snapshot
        users = parse_net_user(self.runner(self.users_command))
        admins = parse_net_localgroup(self.runner(self.admins_command))
        return {"users": users, "admins": admins}

    def is_empty(self, snapshot: Mapping[str, FrozenSet[str]]) -> bool:
        return not snapshot["users"] and not snapshot["admins"]

    def baseline_events(self, current: Mapping[str, FrozenSet[str]], now: str) -> List[SecurityEvent]:
        return [self.event(
            "account_baseline", "info", "Initial local accounts baseline recorded",
            {"users": sorted(current["users"]), "admins": sorted(current["admins"])}, now
        )]

    def diff_events(self, baseline: Mapping[str, FrozenSet[str]],
                    current: Mapping[str, FrozenSet[str]], now: str) -> List[SecurityEvent]:
        details = {
            "newUsers": sorted(current["users"] - baseline["users"]),
            "removedUsers": sorted(baseline["users"] - current["users"]),
            "newAdmins": sorted(current["admins"] - baseline["admins"]),
            "removedAdmins": sorted(baseline["admins"] - current["admins"]),
        }

        if not any(details.values()):
            return []

        return [self.event(
            "account_membership_change", "high", "Changes in local users or administrators detected",
            details, now
        )]
