"""Worker-lane parallel runner over behave.

behave executes scenarios sequentially inside one process, so parallelism
is provided by lanes: every scenario is expanded to a ``file:line``
location, locations are dealt round-robin into lanes, and each lane runs
as its own ``behave`` subprocess. Nothing is shared between lanes except
the run metadata store.
"""

from __future__ import annotations

import logging
import os
import subprocess
import sys
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, Mapping, Sequence

from behave.parser import ParserError, parse_file

from scenariokit.constants import LANE_ENV_VAR
from scenariokit.exceptions import ConfigurationError
from scenariokit.lifecycle import LifecycleOrchestrator

logger = logging.getLogger(__name__)

DEFAULT_FEATURE_PATHS = ("features",)
DEFAULT_REPORT_DIR = Path("reports")


@dataclass
class LaneResult:
    """Outcome of one worker lane."""

    lane: int
    locations: list[str] = field(default_factory=list)
    returncode: int = 0
    report_path: Path | None = None

    @property
    def passed(self) -> bool:
        return self.returncode == 0


def discover_feature_files(paths: Iterable[str | Path]) -> list[Path]:
    """Expand files and directories into a sorted list of feature files.

    Raises
    ------
    ConfigurationError
        If a path does not exist
    """
    found: list[Path] = []

    for raw in paths:
        path = Path(raw)
        if path.is_dir():
            found.extend(sorted(path.rglob("*.feature")))
        elif path.is_file():
            found.append(path)
        else:
            raise ConfigurationError(f"Feature path not found: {path}")

    return found


def collect_locations(feature_files: Iterable[Path]) -> list[str]:
    """Return one ``file:line`` location per scenario, outline rows included.

    Raises
    ------
    ConfigurationError
        If a feature file cannot be parsed
    """
    locations: list[str] = []

    for feature_file in feature_files:
        try:
            feature = parse_file(str(feature_file))
        except ParserError as e:
            raise ConfigurationError(f"Failed to parse {feature_file}: {e}") from e

        if feature is None:
            continue

        for scenario in feature.walk_scenarios():
            locations.append(f"{feature_file}:{scenario.line}")

    return locations


def partition(locations: Sequence[str], workers: int) -> list[list[str]]:
    """Deal locations round-robin into at most ``workers`` non-empty lanes."""
    if workers < 1:
        raise ConfigurationError(f"workers must be at least 1, got {workers}")

    lanes: list[list[str]] = [[] for _ in range(min(workers, len(locations)))]
    for index, location in enumerate(locations):
        lanes[index % len(lanes)].append(location)
    return lanes


class ParallelRunner:
    """Runs feature files across concurrent behave lanes.

    Global setup and teardown happen once, in this process, around all
    lanes. Each lane is marked with ``SCENARIOKIT_LANE`` so its own hooks
    skip the run-level work.

    Parameters
    ----------
    orchestrator : LifecycleOrchestrator
        Performs global setup and teardown for the run
    workers : int
        Number of lanes
    tags : str | None
        behave tag expression passed to every lane unchanged
    report_dir : Path
        Directory receiving ``lane-<n>.json`` reports
    process_runner : Callable
        Runs one lane command; ``subprocess.run`` signature
    environ : Mapping[str, str] | None
        Base environment for lanes
    """

    def __init__(
        self,
        orchestrator: LifecycleOrchestrator,
        workers: int,
        tags: str | None = None,
        report_dir: Path = DEFAULT_REPORT_DIR,
        process_runner: Callable[..., subprocess.CompletedProcess] = subprocess.run,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self.orchestrator = orchestrator
        self.workers = workers
        self.tags = tags
        self.report_dir = Path(report_dir)
        self.process_runner = process_runner
        self.environ = dict(os.environ if environ is None else environ)

    def build_command(self, lane: int, locations: Sequence[str]) -> list[str]:
        report_path = self.report_dir / f"lane-{lane}.json"
        command = [
            sys.executable,
            "-m",
            "behave",
            *locations,
            "-f",
            "json.pretty",
            "-o",
            str(report_path),
            "-f",
            "progress",
        ]
        if self.tags:
            command.extend(["--tags", self.tags])
        return command

    def run_lane(self, lane: int, locations: list[str]) -> LaneResult:
        """Run one lane to completion and return its outcome."""
        env = dict(self.environ)
        env[LANE_ENV_VAR] = str(lane)
        command = self.build_command(lane, locations)

        logger.info(f"Lane {lane}: running {len(locations)} scenario(s)")
        logger.debug(f"Lane {lane} command: {' '.join(command)}")

        try:
            completed = self.process_runner(command, env=env, check=False)
            returncode = completed.returncode
        except OSError as e:
            logger.error(f"Lane {lane} failed to start: {e}")
            returncode = 1

        status = "passed" if returncode == 0 else f"failed (exit {returncode})"
        logger.info(f"Lane {lane}: {status}")

        return LaneResult(
            lane=lane,
            locations=list(locations),
            returncode=returncode,
            report_path=self.report_dir / f"lane-{lane}.json",
        )

    def run(self, paths: Iterable[str | Path] = DEFAULT_FEATURE_PATHS) -> int:
        """Run every scenario under ``paths``.

        Returns
        -------
        int
            0 when every lane passed, 1 otherwise
        """
        locations = collect_locations(discover_feature_files(paths))
        if not locations:
            logger.warning("No scenarios found, nothing to run")
            return 0

        lanes = partition(locations, self.workers)
        self.report_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"Running {len(locations)} scenario(s) across {len(lanes)} lane(s)")

        self.orchestrator.global_setup()
        try:
            with ThreadPoolExecutor(max_workers=len(lanes)) as pool:
                results = list(pool.map(self.run_lane, range(1, len(lanes) + 1), lanes))
        finally:
            self.orchestrator.global_teardown()

        failed = [result.lane for result in results if not result.passed]
        if failed:
            logger.error(f"Failed lanes: {', '.join(map(str, failed))}")
            return 1

        logger.info("All lanes passed")
        return 0
