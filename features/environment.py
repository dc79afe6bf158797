"""Behave environment hooks for scenariokit scenarios.

The hooks are thin: all lifecycle work lives in
``scenariokit.lifecycle.LifecycleOrchestrator``.
"""

import logging

from behave.model import Scenario
from behave.runner import Context

from scenariokit.lifecycle import LifecycleOrchestrator

logger = logging.getLogger(__name__)


def before_all(context: Context) -> None:
    """Create the orchestrator and run global setup."""
    context.config.setup_logging(format="%(levelname)s %(name)s: %(message)s")
    context.orchestrator = LifecycleOrchestrator()
    context.orchestrator.before_all(context)


def before_scenario(context: Context, scenario: Scenario) -> None:
    """Give the scenario a fresh world and, for web scenarios, a browser."""
    context.orchestrator.before_scenario(context, scenario)


def after_scenario(context: Context, scenario: Scenario) -> None:
    """Capture failure evidence and release everything the scenario owned."""
    context.orchestrator.after_scenario(context, scenario)


def after_all(context: Context) -> None:
    """Record run completion."""
    orchestrator = getattr(context, "orchestrator", None)
    if orchestrator is None:
        logger.warning("No lifecycle orchestrator found, skipping global teardown")
        return
    orchestrator.after_all(context)
