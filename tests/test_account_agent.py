"""
Account agent tests - net user / net localgroup decoding and membership diffs.
"""

import pytest

from src.agents.accounts import AccountAgent, parse_net_localgroup, parse_net_user
from src.core.errors import SnapshotError

USERS = """
User accounts for \\\\DESKTOP-7Q2K

-------------------------------------------------------------------------------
Administrator            DefaultAccount           Guest
alice                    WDAGUtilityAccount
The command completed successfully.

"""

ADMINS = """Alias name     administrators
Comment        Administrators have complete and unrestricted access to the computer/domain

Members

-------------------------------------------------------------------------------
Administrator
alice
The command completed successfully.
"""


EMPTY_USERS = """
User accounts for \\\\DESKTOP-7Q2K

-------------------------------------------------------------------------------
The command completed successfully.
"""

EMPTY_ADMINS = """Alias name     administrators

Members

-------------------------------------------------------------------------------
The command completed successfully.
"""


def users_with(*extra):
    return USERS.replace("WDAGUtilityAccount", "WDAGUtilityAccount " + " ".join(extra))


def admins_with(*extra):
    return ADMINS.replace("alice\n", "alice\n" + "".join(f"{n}\n" for n in extra))


class CommandTable:
    """Answers each command from a list of outputs per poll."""

    def __init__(self, polls):
        self.polls = list(polls)
        self.current = None

    def next_poll(self):
        self.current = self.polls.pop(0)

    def __call__(self, command):
        result = self.current[command]
        if isinstance(result, Exception):
            raise result
        return result


class TestParsers:

    def test_parse_net_user_columns(self):
        assert parse_net_user(USERS) == {
            "Administrator", "DefaultAccount", "Guest", "alice", "WDAGUtilityAccount"
        }

    def test_header_with_dash_is_not_a_separator(self):
        users = parse_net_user(USERS)
        assert "\\\\DESKTOP-7Q2K" not in users

    def test_parse_net_localgroup_lines(self):
        text = ADMINS.replace("alice\n", "alice\nCORP\\Domain Admins\n")
        assert parse_net_localgroup(text) == {"Administrator", "alice", "CORP\\Domain Admins"}

    @pytest.mark.parametrize("parser", [parse_net_user, parse_net_localgroup])
    def test_missing_separator_is_a_failure(self, parser):
        with pytest.raises(SnapshotError, match="separator"):
            parser("System error 5 has occurred.\n\nAccess is denied.\n")


class TestAccountAgent:

    @pytest.fixture
    def make_agent(self):
        def factory(polls):
            table = CommandTable(polls)
            emitted = []
            agent = AccountAgent(emitted.append, runner=table,
                                 users_command="net user",
                                 admins_command="net localgroup administrators")

            def poll():
                table.next_poll()
                return agent.poll()

            return agent, poll, emitted
        return factory

    def test_baseline_add_remove_converge(self, make_agent):
        base = {"net user": USERS, "net localgroup administrators": ADMINS}
        added = {"net user": users_with("mallory"),
                 "net localgroup administrators": admins_with("mallory")}
        agent, poll, emitted = make_agent([base, added, base, base])

        first = poll()
        assert [e.type for e in first] == ["account_baseline"]
        assert first[0].severity == "info"
        assert first[0].details["admins"] == ["Administrator", "alice"]
        assert "alice" in first[0].details["users"]

        second = poll()
        assert [e.type for e in second] == ["account_membership_change"]
        assert second[0].severity == "high"
        assert second[0].details == {
            "newUsers": ["mallory"], "removedUsers": [],
            "newAdmins": ["mallory"], "removedAdmins": [],
        }

        third = poll()
        assert third[0].details == {
            "newUsers": [], "removedUsers": ["mallory"],
            "newAdmins": [], "removedAdmins": ["mallory"],
        }

        assert poll() == []
        assert len(emitted) == 3

    def test_admin_promotion_only(self, make_agent):
        base = {"net user": USERS, "net localgroup administrators": ADMINS}
        promoted = {"net user": USERS, "net localgroup administrators": admins_with("Guest")}
        agent, poll, _ = make_agent([base, promoted])

        poll()
        events = poll()

        assert events[0].details["newAdmins"] == ["Guest"]
        assert events[0].details["newUsers"] == []

    def test_either_command_failing_keeps_both_baselines(self, make_agent):
        base = {"net user": USERS, "net localgroup administrators": ADMINS}
        broken = {"net user": users_with("mallory"),
                  "net localgroup administrators": SnapshotError("exit 2")}
        agent, poll, _ = make_agent([base, broken, base])

        poll()
        baseline = agent.baseline

        events = poll()
        assert [e.type for e in events] == ["account_check_error"]
        assert events[0].details == {}
        assert agent.baseline is baseline

        assert poll() == []

    def test_empty_first_snapshot_is_not_a_baseline(self, make_agent):
        empty = {"net user": EMPTY_USERS, "net localgroup administrators": EMPTY_ADMINS}
        base = {"net user": USERS, "net localgroup administrators": ADMINS}
        agent, poll, _ = make_agent([empty, base, base])

        first = poll()
        assert [e.type for e in first] == ["account_baseline"]
        assert first[0].details == {"users": [], "admins": []}
        assert not agent.has_baseline

        assert [e.type for e in poll()] == ["account_baseline"]
        assert poll() == []
