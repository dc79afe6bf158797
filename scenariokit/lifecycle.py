"""Lifecycle orchestration behind the behave hooks.

The orchestrator implements the run protocol::

    NOT_STARTED -> GLOBAL_SETUP -> RUNNING -> GLOBAL_TEARDOWN -> DONE

and, while RUNNING, the per-scenario setup/teardown pair. Every scenario
gets a fresh ``ScenarioWorld``; teardown always releases what setup
acquired and never changes the scenario's pass/fail status.
"""

from __future__ import annotations

import logging
import os
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Mapping

from scenariokit.config import get_settings
from scenariokit.constants import LANE_ENV_VAR, MEDIA_PNG, MEDIA_TEXT, ScenarioKind
from scenariokit.evidence import strip_ansi
from scenariokit.exceptions import PreconditionError
from scenariokit.logging import EvidenceLogHandler
from scenariokit.run_metadata import RunMetadataStore
from scenariokit.world import ScenarioWorld

if TYPE_CHECKING:
    from behave.model import Scenario
    from behave.runner import Context

    from scenariokit.config import Settings

logger = logging.getLogger(__name__)

FAILED_STATUSES = frozenset(
    {"failed", "error", "hook_error", "cleanup_error", "undefined"}
)


class RunPhase(Enum):
    """Phases of one test run."""

    NOT_STARTED = "not_started"
    GLOBAL_SETUP = "global_setup"
    RUNNING = "running"
    GLOBAL_TEARDOWN = "global_teardown"
    DONE = "done"


def status_name(scenario: Any) -> str:
    status = getattr(scenario, "status", None)
    return str(getattr(status, "name", status))


def is_failed(scenario: Any) -> bool:
    return status_name(scenario) in FAILED_STATUSES


def embed_in_report(context: Any, media_type: str, data: bytes) -> bool:
    """Embed data in the behave report through ``context.attach``.

    Returns False, after logging, when the running behave or its
    formatters cannot take the embedding.
    """
    try:
        context.attach(media_type, data)
    except Exception as e:
        logger.warning(f"Failed to embed {media_type} in the behave report: {e}")
        return False
    return True


def failure_message(scenario: Any) -> str | None:
    """Return the first failing step's message with ANSI codes stripped.

    The cleaned message is written back to the step so reports render the
    plain text as well.
    """
    steps = getattr(scenario, "all_steps", None) or getattr(scenario, "steps", [])
    for step in steps:
        message = getattr(step, "error_message", None)
        if message and status_name(step) in FAILED_STATUSES:
            cleaned = strip_ansi(message)
            step.error_message = cleaned
            return cleaned

    message = getattr(scenario, "error_message", None)
    return strip_ansi(message) if message else None


class LifecycleOrchestrator:
    """Coordinates global and per-scenario setup and teardown.

    Parameters
    ----------
    settings : Settings | None
        Harness settings; loaded with ``get_settings()`` when omitted
    metadata_store : RunMetadataStore | None
        Durable run metadata store; defaults to the configured file
    world_factory : Callable
        Builds a ``ScenarioWorld`` for each scenario
    environ : Mapping[str, str] | None
        Environment used to detect worker lanes
    """

    def __init__(
        self,
        settings: "Settings | None" = None,
        metadata_store: RunMetadataStore | None = None,
        world_factory: Callable[..., ScenarioWorld] = ScenarioWorld,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.metadata_store = metadata_store or RunMetadataStore(
            self.settings.run_metadata_file
        )
        self.world_factory = world_factory
        environ = os.environ if environ is None else environ
        self.lane = environ.get(LANE_ENV_VAR)
        self.phase = RunPhase.NOT_STARTED

    @property
    def is_lane(self) -> bool:
        """True when this process is a worker lane of the parallel runner."""
        return bool(self.lane)

    # ------------------------------------------------------------------
    # Global phases
    # ------------------------------------------------------------------

    def global_setup(self) -> str | None:
        """Log the run banner and record the run start time, exactly once.

        Returns
        -------
        str | None
            Recorded start time, or None if the store could not be written

        Raises
        ------
        PreconditionError
            If global setup already ran
        """
        if self.phase is not RunPhase.NOT_STARTED:
            raise PreconditionError(f"Global setup already ran (phase={self.phase.value})")

        self.phase = RunPhase.GLOBAL_SETUP
        logger.info("Test execution started")
        logger.info(f"Base URL: {self.settings.base_url}")
        logger.info(
            f"Browser: {self.settings.browser.value}, headless: {self.settings.headless}, "
            f"workers: {self.settings.workers}"
        )

        started: str | None = None
        try:
            started = self.metadata_store.record_started()
            logger.info(f"Test started time: {started}")
        except OSError as e:
            logger.error(f"Failed to record run start time: {e}")

        self.phase = RunPhase.RUNNING
        return started

    def global_teardown(self) -> str | None:
        """Record the run completion time, exactly once."""
        if self.phase is not RunPhase.RUNNING:
            raise PreconditionError(
                f"Global teardown requires a running run (phase={self.phase.value})"
            )

        self.phase = RunPhase.GLOBAL_TEARDOWN
        completed: str | None = None
        try:
            completed = self.metadata_store.record_completed()
            logger.info(f"Test completed time: {completed}")
        except OSError as e:
            logger.error(f"Failed to record run completion time: {e}")

        self.phase = RunPhase.DONE
        logger.info("Test execution completed")
        return completed

    # ------------------------------------------------------------------
    # behave hooks
    # ------------------------------------------------------------------

    def before_all(self, context: "Context") -> None:
        """GlobalSetup; worker lanes leave it to the parallel runner."""
        context.settings = self.settings

        if self.is_lane:
            logger.info(f"Worker lane {self.lane} started (pid {os.getpid()})")
            self.phase = RunPhase.RUNNING
            return

        self.global_setup()

    def before_scenario(self, context: "Context", scenario: "Scenario") -> ScenarioWorld:
        """ScenarioSetup: fresh world, tag classification, resources, seed data.

        Release of everything the world may acquire is registered before
        acquisition starts, so a failed launch is still cleaned up by
        ``after_scenario``.
        """
        if self.phase is not RunPhase.RUNNING:
            raise PreconditionError(
                f"Scenario setup outside a running run (phase={self.phase.value})"
            )

        world = self.world_factory(
            self.settings,
            scenario_name=scenario.name,
            metadata_store=self.metadata_store,
        )
        context.world = world
        world.kind = ScenarioKind.classify(getattr(scenario, "effective_tags", scenario.tags))
        logger.info(f"Starting scenario: {scenario.name} ({world.kind.value})")

        handler = EvidenceLogHandler(world.evidence)
        handler.install()
        context.evidence_handler = handler

        world.resources.register(
            "rest", world, lambda owner: owner.dispose_rest(), label="rest-session"
        )
        world.resources.register(
            "browser", world.browser_manager, lambda manager: manager.close(), label="browser-session"
        )

        lane = f", lane {self.lane}" if self.is_lane else ""
        world.attach_clean(f"This scenario runs in process {os.getpid()}{lane}")

        if world.kind is ScenarioKind.WEB:
            self.acquire_browser(world)

        world.seed_unique_data()
        return world

    def acquire_browser(self, world: ScenarioWorld) -> None:
        """Launch, create session, create page and bind it to the world."""
        manager = world.browser_manager
        manager.launch()
        manager.create_session()
        manager.create_page()
        world.bind_page()

    def after_scenario(self, context: "Context", scenario: "Scenario") -> None:
        """ScenarioTeardown: evidence, release, destroy. Never raises."""
        world: ScenarioWorld | None = getattr(context, "world", None)
        logger.info(f"Scenario: {scenario.name} - Status: {status_name(scenario)}")

        if world is None:
            logger.warning(f"No scenario world found for '{scenario.name}', nothing to tear down")
            return

        if is_failed(scenario):
            try:
                self.capture_failure_evidence(context, world, scenario)
            except Exception as e:
                logger.error(f"Failed to capture failure evidence: {e}", exc_info=True)

        try:
            failed = world.release_resources()
            if failed:
                logger.warning(f"Resources not released cleanly: {', '.join(failed)}")
        except Exception as e:
            logger.error(f"Unexpected error releasing resources: {e}", exc_info=True)

        handler = getattr(context, "evidence_handler", None)
        if handler is not None:
            try:
                handler.uninstall()
            except Exception as e:
                logger.error(f"Failed to remove evidence log handler: {e}", exc_info=True)

        try:
            world.destroy()
        except Exception as e:
            logger.error(f"Unexpected error destroying scenario world: {e}", exc_info=True)

        try:
            world.evidence.flush(self.settings.evidence_dir)
        except OSError as e:
            logger.warning(f"Failed to write evidence for '{scenario.name}': {e}")

    def capture_failure_evidence(
        self, context: "Context", world: ScenarioWorld, scenario: "Scenario"
    ) -> None:
        """Attach the cleaned failure message and one full-page screenshot.

        Both go to the scenario's evidence record and are embedded in the
        behave report (the JSON formatter stores them as step embeddings).
        """
        message = failure_message(scenario)
        if message:
            world.attach(message, MEDIA_TEXT)
            embed_in_report(context, MEDIA_TEXT, message.encode("utf-8"))

        page = world.page
        if page is None or not self.settings.screenshot_on_failure:
            return

        screenshot = page.screenshot(full_page=True, type="png")
        world.attach(screenshot, MEDIA_PNG)
        embed_in_report(context, MEDIA_PNG, screenshot)

    def after_all(self, context: "Context") -> None:
        """GlobalTeardown; worker lanes leave it to the parallel runner."""
        if self.is_lane:
            self.phase = RunPhase.DONE
            logger.info(f"Worker lane {self.lane} finished")
            return

        self.global_teardown()
