"""Durable run metadata store backed by a dotenv file.

The store is the one piece of process-wide mutable state in the harness.
Only the lifecycle's global setup/teardown and the browser manager write to
it, and every write replaces a single key without touching the others.
Writes take an exclusive ``fcntl`` lock so concurrent worker lanes do not
interleave rewrites of the file.
"""

from __future__ import annotations

import fcntl
import logging
import threading
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterator

from dotenv import dotenv_values, set_key

from scenariokit.constants import (
    META_BROWSER_VERSION,
    META_COMPLETED_TIME,
    META_STARTED_TIME,
)

logger = logging.getLogger(__name__)

WRITABLE_KEYS = frozenset({META_STARTED_TIME, META_COMPLETED_TIME, META_BROWSER_VERSION})


class RunMetadataStore:
    """Key/value store persisted to a ``.env``-style file.

    Parameters
    ----------
    path : Path
        File holding the metadata. Created on first write.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()

    @contextmanager
    def _exclusive(self) -> Iterator[None]:
        """Hold the in-process and cross-process write locks."""
        lock_path = self.path.with_name(self.path.name + ".lock")
        lock_path.parent.mkdir(parents=True, exist_ok=True)

        with self._lock:
            with open(lock_path, "w") as lock_file:
                fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX)
                try:
                    yield
                finally:
                    fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)

    def set(self, key: str, value: str) -> None:
        """Write one key, replacing any previous value for it.

        Parameters
        ----------
        key : str
            Metadata key; must be one of the documented run keys
        value : str
            Value to store

        Raises
        ------
        KeyError
            If the key is not a documented run metadata key
        """
        if key not in WRITABLE_KEYS:
            raise KeyError(f"Unsupported run metadata key: {key}")

        with self._exclusive():
            self.path.touch(exist_ok=True)
            set_key(str(self.path), key, value)

        logger.debug(f"Updated run metadata {self.path}: {key}={value}")

    def get(self, key: str) -> str | None:
        """Read one key, or None when absent."""
        return self.read_all().get(key)

    def read_all(self) -> dict[str, str]:
        """Return every key in the store."""
        if not self.path.exists():
            return {}
        return {k: v for k, v in dotenv_values(self.path).items() if v is not None}

    def record_started(self, when: datetime | None = None) -> str:
        """Record the run start time and return the stored value."""
        return self._record_time(META_STARTED_TIME, when)

    def record_completed(self, when: datetime | None = None) -> str:
        """Record the run completion time and return the stored value."""
        return self._record_time(META_COMPLETED_TIME, when)

    def record_browser_version(self, version: str) -> None:
        self.set(META_BROWSER_VERSION, version)

    def _record_time(self, key: str, when: datetime | None) -> str:
        stamp = (when or datetime.now()).strftime("%Y-%m-%d %H:%M:%S")
        self.set(key, stamp)
        return stamp
