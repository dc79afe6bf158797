"""Logging handler mirroring page-object logs into scenario evidence."""

import logging
from typing import TYPE_CHECKING

from scenariokit.constants import MEDIA_TEXT

if TYPE_CHECKING:
    from scenariokit.evidence import EvidenceRecord

logger = logging.getLogger(__name__)

PAGE_LOGGER_NAME = "scenariokit.pages"


class EvidenceLogHandler(logging.Handler):
    """Logging handler that appends records to a scenario's evidence.

    Installed on the page-object logger for the lifetime of one scenario,
    so ``scenario_log`` messages end up next to the scenario's screenshots.

    Parameters
    ----------
    evidence : EvidenceRecord
        Evidence channel of the running scenario
    """

    def __init__(self, evidence: "EvidenceRecord", level: int = logging.INFO) -> None:
        super().__init__(level)
        self.evidence = evidence
        self._previous_level: int | None = None
        self.setFormatter(logging.Formatter("%(message)s"))

    def emit(self, record: logging.LogRecord) -> None:
        """Emit log record to the evidence channel.

        Parameters
        ----------
        record : logging.LogRecord
            Log record to emit
        """
        try:
            self.evidence.attach_clean(self.format(record), MEDIA_TEXT)
        except RuntimeError as e:
            logger.debug("Evidence closed, dropping log record: %s", e)

    def install(self, logger_name: str = PAGE_LOGGER_NAME) -> None:
        target = logging.getLogger(logger_name)
        self._previous_level = target.level
        if target.level == logging.NOTSET or target.level > self.level:
            target.setLevel(self.level)
        target.addHandler(self)

    def uninstall(self, logger_name: str = PAGE_LOGGER_NAME) -> None:
        """Remove the handler and restore the logger level ``install`` changed."""
        target = logging.getLogger(logger_name)
        target.removeHandler(self)
        if self._previous_level is not None:
            target.setLevel(self._previous_level)
            self._previous_level = None
