"""Logging formatters and filters for lane-aware console output."""

import logging
import os

from scenariokit.constants import LANE_ENV_VAR


class LaneFormatter(logging.Formatter):
    """Logging formatter that prepends the worker lane when running in one."""

    def __init__(self, fmt: str | None = None, lane: str | None = None) -> None:
        super().__init__(fmt)
        self.lane = lane if lane is not None else os.environ.get(LANE_ENV_VAR)

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with a lane prefix if present.

        Parameters
        ----------
        record : logging.LogRecord
            Log record to format

        Returns
        -------
        str
            Formatted log message with optional lane prefix
        """
        msg = super().format(record)
        lane = getattr(record, "lane", None) or self.lane

        if lane:
            return f"[lane {lane}] {msg}"

        return msg


class StreamRoutingFilter(logging.Filter):
    """Route records below WARNING to stdout and the rest to stderr.

    Parameters
    ----------
    stream : str
        "stdout" or "stderr"; the handler this filter is attached to
    """

    def __init__(self, stream: str) -> None:
        super().__init__()
        self.stream = stream

    def filter(self, record: logging.LogRecord) -> bool:
        is_error = record.levelno >= logging.WARNING
        return is_error if self.stream == "stderr" else not is_error
