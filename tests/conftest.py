"""Pytest configuration and fixtures for scenariokit tests."""

import dataclasses
import os
import sys
from collections.abc import Callable, Generator
from pathlib import Path
from typing import Any

import pytest

project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from scenariokit.config import ConfigLoader, Settings  # noqa: E402
from scenariokit.constants import LANE_ENV_VAR  # noqa: E402
from scenariokit.run_metadata import RunMetadataStore  # noqa: E402
from tests.fakes.fake_playwright import FakePlaywrightFactory  # noqa: E402


@pytest.fixture(autouse=True)
def clean_lane_env() -> Generator[None, None, None]:
    """Ensure unit tests never run as a worker lane.

    Yields
    ------
    None
        Control back to the test with SCENARIOKIT_LANE unset
    """
    original_lane = os.environ.pop(LANE_ENV_VAR, None)

    yield

    if original_lane is not None:
        os.environ[LANE_ENV_VAR] = original_lane
    else:
        os.environ.pop(LANE_ENV_VAR, None)


@pytest.fixture
def make_settings(tmp_path: Path) -> Callable[..., Settings]:
    """Build Settings rooted in a temporary directory.

    Returns
    -------
    Callable[..., Settings]
        Factory accepting Settings field overrides
    """
    environ = {
        "RUN_METADATA_FILE": str(tmp_path / "run.env"),
        "EVIDENCE_DIR": str(tmp_path / "evidence"),
        "DOWNLOAD_DIR": str(tmp_path / "downloads"),
        "FIXTURES_DIR": str(tmp_path / "fixtures"),
        "CLIENT_ID": "client-id",
        "CLIENT_SECRET": "client-secret",
        "OAUTH_API_URL": "https://auth.example.test",
        "TRANSACTION_API_URL": "https://api.example.test",
        "BASE_URL": "https://app.example.test",
    }
    base = ConfigLoader().load_settings(
        config_path=str(tmp_path / "missing.yaml"), environ=environ
    )

    def factory(**overrides: Any) -> Settings:
        return dataclasses.replace(base, **overrides)

    return factory


@pytest.fixture
def settings(make_settings: Callable[..., Settings]) -> Settings:
    return make_settings()


@pytest.fixture
def metadata_store(settings: Settings) -> RunMetadataStore:
    return RunMetadataStore(settings.run_metadata_file)


@pytest.fixture
def playwright_factory() -> FakePlaywrightFactory:
    return FakePlaywrightFactory()
