"""Unit tests for RunMetadataStore."""

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from pathlib import Path

import pytest

from scenariokit.constants import META_BROWSER_VERSION, META_COMPLETED_TIME, META_STARTED_TIME
from scenariokit.run_metadata import RunMetadataStore


class TestRunMetadataStore:
    """Test durable update-by-key writes."""

    def test_record_times_use_fixed_format(self, tmp_path: Path) -> None:
        """Test timestamp format and round trip with embedded spaces."""
        store = RunMetadataStore(tmp_path / ".env")

        stamp = store.record_started(datetime(2026, 3, 1, 9, 30, 5))

        assert stamp == "2026-03-01 09:30:05"
        assert store.get(META_STARTED_TIME) == "2026-03-01 09:30:05"

    def test_set_preserves_other_keys(self, tmp_path: Path) -> None:
        """Test that each write only replaces its own key."""
        env_file = tmp_path / ".env"
        env_file.write_text("CLIENT_ID=abc\nBASE_URL=https://github.com\n")
        store = RunMetadataStore(env_file)

        store.record_browser_version("120.0")
        store.record_browser_version("121.0")

        assert store.read_all() == {
            "CLIENT_ID": "abc",
            "BASE_URL": "https://github.com",
            META_BROWSER_VERSION: "121.0",
        }

    def test_unknown_key_rejected(self, tmp_path: Path) -> None:
        """Test that only run metadata keys are writable."""
        store = RunMetadataStore(tmp_path / ".env")

        with pytest.raises(KeyError, match="CLIENT_SECRET"):
            store.set("CLIENT_SECRET", "leak")

    def test_missing_file_reads_empty(self, tmp_path: Path) -> None:
        """Test reading before the first write."""
        store = RunMetadataStore(tmp_path / "nested" / ".env")

        assert store.read_all() == {}
        assert store.get(META_COMPLETED_TIME) is None

    def test_concurrent_writes_keep_every_key(self, tmp_path: Path) -> None:
        """Test that parallel writers never drop each other's keys."""
        store = RunMetadataStore(tmp_path / ".env")
        writers = [
            lambda: store.record_started(),
            lambda: store.record_completed(),
            lambda: store.record_browser_version("120.0"),
        ] * 5

        with ThreadPoolExecutor(max_workers=6) as pool:
            for future in [pool.submit(writer) for writer in writers]:
                future.result()

        assert set(store.read_all()) == {
            META_STARTED_TIME,
            META_COMPLETED_TIME,
            META_BROWSER_VERSION,
        }
