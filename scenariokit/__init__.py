"""scenariokit - behave/Playwright harness with per-scenario isolation."""

__version__ = "0.1.0"
