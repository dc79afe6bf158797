"""Logging helpers for scenariokit."""

from scenariokit.logging.formatters import LaneFormatter, StreamRoutingFilter
from scenariokit.logging.handlers import EvidenceLogHandler

__all__ = ["EvidenceLogHandler", "LaneFormatter", "StreamRoutingFilter"]
