"""
File integrity agent - content digests of every file under the configured roots.
"""

import hashlib
import os
import stat
from typing import Dict, List, Mapping, Optional

from .agent import BaselineDiffAgent, EmitFn
from ..core.config import ScanConfig
from ..core.errors import SnapshotError
from ..core.events import SecurityEvent
from util.logging import logger

CHUNK_SIZE = 64 * 1024


def printable_path(path: str) -> str:
    """Path as UTF-8-safe text; undecodable filename bytes become \\xNN escapes."""
    return os.fsencode(path).decode("utf-8", "backslashreplace")


class FileSnapshot(dict):
    """path -> SHA-256 hex digest, plus the paths that could not be read."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.unreadable: List[str] = []


def compute_file_hash(path: str) -> Optional[str]:
    """SHA-256 of the file's bytes, or None if it cannot be read."""
    digest = hashlib.sha256()
    try:
        with open(path, "rb") as f:
            for chunk in iter(lambda: f.read(CHUNK_SIZE), b""):
                digest.update(chunk)
    except OSError:
        return None
    return digest.hexdigest()


class FileIntegrityAgent(BaselineDiffAgent):
    domain = "files"
    source = "file-agent"
    check_error_type = "file_integrity_check_error"
    check_error_message = "Failed to scan configured root directories"

    def __init__(self, emit: EmitFn, scan_config: ScanConfig):
        super().__init__(emit)
        self.scan_config = scan_config

    def is_enabled(self) -> bool:
        # Nothing to scan until at least one root is configured
        return bool(self.scan_config.roots)

    def snapshot(self) -> FileSnapshot:
        excludes = set(self.scan_config.exclude_dirs)
        files = FileSnapshot()

        for root in self.scan_config.roots:
            root_path = os.path.abspath(root)
            try:
                st = os.stat(root_path)
            except OSError as e:
                raise SnapshotError(f"Cannot access root {root_path}: {e}") from e

            if stat.S_ISREG(st.st_mode):
                self._hash_into(root_path, files)
            elif stat.S_ISDIR(st.st_mode):
                self._walk(root_path, excludes, files)

        return files

    def _walk(self, path: str, excludes: set, files: FileSnapshot):
        if os.path.basename(path) in excludes:
            return

        try:
            with os.scandir(path) as it:
                entries = sorted(it, key=lambda e: e.name)
        except OSError as e:
            logger.warning(f"Skipping unreadable directory {path}: {e}")
            return

        for entry in entries:
            if entry.is_dir(follow_symlinks=False):
                self._walk(entry.path, excludes, files)
            elif entry.is_file(follow_symlinks=False):
                self._hash_into(entry.path, files)

    def _hash_into(self, path: str, files: FileSnapshot):
        digest = compute_file_hash(path)
        if digest is None:
            files.unreadable.append(printable_path(path))
        else:
            files[printable_path(path)] = digest

    def collection_error_events(self, current: FileSnapshot, now: str) -> List[SecurityEvent]:
        return [
            self.event("file_integrity_error", "high", f"Unable to read file: {path}",
                       {"path": path}, now)
            for path in getattr(current, "unreadable", [])
        ]

    def baseline_events(self, current: Mapping[str, str], now: str) -> List[SecurityEvent]:
        return [self.event(
            "file_integrity_baseline", "info",
            f"Baseline hashes recorded for {len(current)} files",
            {"files": dict(sorted(current.items()))}, now
        )]

    def diff_events(self, baseline: Mapping[str, str], current: Mapping[str, str],
                    now: str) -> List[SecurityEvent]:
        events = []

        # Removed files are dropped from the baseline without an event
        for path in sorted(set(current) - set(baseline)):
            events.append(self.event(
                "file_integrity_baseline", "info", f"Baseline hash recorded for {path}",
                {"path": path, "hash": current[path]}, now
            ))

        for path in sorted(set(current) & set(baseline)):
            if current[path] != baseline[path]:
                events.append(self.event(
                    "file_integrity_change", "high", f"File content changed: {path}",
                    {"path": path, "oldHash": baseline[path], "newHash": current[path]}, now
                ))

        return events

    def next_baseline(self, current: FileSnapshot) -> Dict[str, str]:
        baseline = dict(current)
        previous = self._baseline or {}
        # Unreadable files keep their last known digest
        for path in getattr(current, "unreadable", []):
            if path in previous:
                baseline[path] = previous[path]
        return baseline
