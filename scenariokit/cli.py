"""CLI entry point for scenariokit."""

from __future__ import annotations

import logging
import os
import sys
from typing import Callable

import fire

from scenariokit.config import ConfigLoader, Settings
from scenariokit.constants import (
    CONFIG_ENV_VAR,
    DEBUG_ENV_VAR,
    META_BROWSER_VERSION,
    META_COMPLETED_TIME,
    META_STARTED_TIME,
)
from scenariokit.exceptions import ConfigurationError
from scenariokit.lifecycle import LifecycleOrchestrator
from scenariokit.logging import LaneFormatter, StreamRoutingFilter
from scenariokit.run_metadata import RunMetadataStore
from scenariokit.runner import DEFAULT_FEATURE_PATHS, DEFAULT_REPORT_DIR, ParallelRunner

logger = logging.getLogger(__name__)

METADATA_KEYS = (META_STARTED_TIME, META_COMPLETED_TIME, META_BROWSER_VERSION)


class ScenarioKitCLI:
    """Command-line interface for running scenarios in parallel lanes.

    Parameters
    ----------
    settings_loader : Callable[[str | None], Settings] | None
        Loads settings from an optional config path. Defaults to
        ``ConfigLoader().load_settings``.
    runner_factory : Callable[..., ParallelRunner]
        Builds the parallel runner
    """

    def __init__(
        self,
        settings_loader: Callable[[str | None], Settings] | None = None,
        runner_factory: Callable[..., ParallelRunner] = ParallelRunner,
    ) -> None:
        self._settings_loader = settings_loader or (
            lambda path: ConfigLoader().load_settings(config_path=path)
        )
        self._runner_factory = runner_factory

    def run(
        self,
        *paths: str,
        workers: int | None = None,
        tags: str | None = None,
        config: str | None = None,
        report_dir: str = str(DEFAULT_REPORT_DIR),
    ) -> None:
        """Run feature files across worker lanes.

        Parameters
        ----------
        *paths : str
            Feature files or directories (default: features)
        workers : int | None
            Number of lanes; defaults to the configured ``workers``
        tags : str | None
            behave tag expression forwarded to every lane
        config : str | None
            YAML config file; exported to lanes via SCENARIOKIT_CONFIG
        report_dir : str
            Directory for per-lane JSON reports
        """
        if config is not None:
            os.environ[CONFIG_ENV_VAR] = config

        settings = self._settings_loader(config)
        lane_count = settings.workers if workers is None else int(workers)

        runner = self._runner_factory(
            orchestrator=LifecycleOrchestrator(settings=settings),
            workers=lane_count,
            tags=tags,
            report_dir=report_dir,
        )
        exit_code = runner.run(paths or DEFAULT_FEATURE_PATHS)

        if exit_code != 0:
            sys.exit(exit_code)

    def metadata(self, config: str | None = None) -> None:
        """Print the run metadata recorded by the last run."""
        settings = self._settings_loader(config)
        store = RunMetadataStore(settings.run_metadata_file)
        values = store.read_all()

        recorded = [(key, values[key]) for key in METADATA_KEYS if values.get(key)]
        if not recorded:
            print(f"No run metadata recorded in {settings.run_metadata_file}")
            return

        print(f"Run metadata ({settings.run_metadata_file}):")
        print(f"{'Key':<24} {'Value'}")
        print("-" * 50)
        for key, value in recorded:
            print(f"{key:<24} {value}")


def handle_configuration_error(error: ConfigurationError, debug_mode: bool) -> None:
    """Print a configuration error and exit with status 2.

    Raises
    ------
    ConfigurationError
        Re-raised if debug mode is enabled
    """
    if debug_mode:
        raise error

    print(f"Configuration error: {error}", file=sys.stderr)
    sys.exit(2)


def configure_logging(level: int = logging.INFO) -> None:
    """Install lane-aware stdout/stderr handlers on the root logger."""
    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(LaneFormatter("%(message)s"))
    stdout_handler.addFilter(StreamRoutingFilter("stdout"))

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setFormatter(LaneFormatter("%(message)s"))
    stderr_handler.addFilter(StreamRoutingFilter("stderr"))

    logging.basicConfig(level=level, handlers=[stdout_handler, stderr_handler], force=True)


def main() -> None:
    """Entry point for the Fire CLI with graceful error handling."""
    configure_logging()
    debug_mode = os.environ.get(DEBUG_ENV_VAR) == "1"

    try:
        fire.Fire(ScenarioKitCLI())
    except ConfigurationError as e:
        handle_configuration_error(e, debug_mode)
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        sys.exit(130)


if __name__ == "__main__":
    main()
