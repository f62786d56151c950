"""
Scan scope configuration and scheduling config validation tests.
"""

from unittest.mock import patch

import pytest

from src.core import config
from src.core.config import ScanConfig, validate_heartbeat_config
from src.core.errors import ConfigValidationError


@pytest.fixture
def scan_config():
    return ScanConfig(roots=["/srv/app"], exclude_dirs=[".git"], interval_sec=30)


class TestScanConfigRoots:

    def test_set_roots_trims_and_drops_blanks(self, scan_config):
        assert scan_config.set_roots(["  /etc ", "", "   ", "/opt"]) == ["/etc", "/opt"]
        assert scan_config.roots == ["/etc", "/opt"]

    @pytest.mark.parametrize("roots", [[], ["", "   "], ["\t"]])
    def test_empty_roots_rejected_and_unchanged(self, scan_config, roots):
        with pytest.raises(ConfigValidationError, match="At least one non-empty root"):
            scan_config.set_roots(roots)

        assert scan_config.roots == ["/srv/app"]

    @pytest.mark.parametrize("roots", [None, "/etc", {"a": 1}, ["/etc", 5]])
    def test_non_string_lists_rejected(self, scan_config, roots):
        with pytest.raises(ConfigValidationError) as exc_info:
            scan_config.set_roots(roots)

        assert exc_info.value.field == "roots"
        assert scan_config.roots == ["/srv/app"]

    def test_roots_property_returns_copy(self, scan_config):
        scan_config.roots.append("/tmp")
        assert scan_config.roots == ["/srv/app"]


class TestScanConfigExcludes:

    def test_set_exclude_dirs(self, scan_config):
        assert scan_config.set_exclude_dirs([" node_modules ", "", "dist"]) == ["node_modules", "dist"]

    def test_empty_excludes_allowed(self, scan_config):
        assert scan_config.set_exclude_dirs([]) == []
        assert scan_config.exclude_dirs == []

    def test_non_list_rejected(self, scan_config):
        with pytest.raises(ConfigValidationError) as exc_info:
            scan_config.set_exclude_dirs("node_modules")
        assert exc_info.value.field == "excludeDirs"
        assert scan_config.exclude_dirs == [".git"]

    def test_to_dict(self, scan_config):
        assert scan_config.to_dict() == {
            "intervalMs": 30000,
            "roots": ["/srv/app"],
            "excludeDirs": [".git"],
        }

    def test_defaults_from_environment_config(self):
        with patch.object(config, "INTEGRITY_ROOTS", ["/data"]), \
             patch.object(config, "INTEGRITY_EXCLUDE_DIRS", ["build"]):
            scan = ScanConfig()
        assert scan.roots == ["/data"]
        assert scan.exclude_dirs == ["build"]


class TestValidateHeartbeatConfig:

    def test_defaults_are_valid(self):
        assert validate_heartbeat_config() == []

    def test_reports_bad_values(self):
        with patch.object(config, "SEAL_INTERVAL_SEC", 0), \
             patch.object(config, "LEDGER_DIFFICULTY", -1):
            issues = validate_heartbeat_config()

        assert "SEAL_INTERVAL_SEC must be > 0" in issues
        assert "LEDGER_DIFFICULTY must be >= 0" in issues
