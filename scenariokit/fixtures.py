"""YAML fixture loading and resource URL templating for API scenarios."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any, Mapping

import yaml

from scenariokit.exceptions import FixtureError

logger = logging.getLogger(__name__)

FIXTURE_FOLDERS = {"request": "apiRequests", "response": "apiResponses"}
FIXTURE_SUFFIXES = (".yml", ".yaml")
_PLACEHOLDER_RE = re.compile(r"\{(\w+)\}")


class FixtureLoader:
    """Reads request/response payloads keyed by scenario name.

    Fixture files live under ``<root>/apiRequests`` and
    ``<root>/apiResponses``. Each top-level key is a scenario name mapping
    to a JSON-shaped payload.

    Parameters
    ----------
    root : Path
        Directory containing the fixture folders
    """

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    def resolve_file(self, content_type: str, file_name: str) -> Path:
        """Locate a fixture file for a content type.

        Raises
        ------
        FixtureError
            If the content type is unknown or no matching file exists
        """
        normalized = content_type.strip().lower()
        if normalized not in FIXTURE_FOLDERS:
            raise FixtureError(
                f'Invalid type "{content_type}". Must be "request" or "response".'
            )

        folder = self.root / FIXTURE_FOLDERS[normalized]
        for suffix in FIXTURE_SUFFIXES:
            candidate = folder / f"{file_name}{suffix}"
            if candidate.exists():
                return candidate

        raise FixtureError(f"Fixture file not found: {folder / file_name}.yml")

    def load(self, content_type: str, file_name: str, scenario_name: str) -> Any:
        """Parse a fixture file and return the payload for one scenario.

        Parameters
        ----------
        content_type : str
            "request" or "response"
        file_name : str
            File name without extension
        scenario_name : str
            Top-level key to select

        Returns
        -------
        Any
            Freshly parsed payload (safe to mutate)

        Raises
        ------
        FixtureError
            If the file is missing, unreadable, not valid YAML or lacks the
            scenario key
        """
        file_path = self.resolve_file(content_type, file_name)

        try:
            content = file_path.read_text(encoding="utf-8")
        except OSError as e:
            raise FixtureError(f"Failed to read YAML file: {file_path}: {e}") from e

        try:
            parsed = yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise FixtureError(f"Failed to parse YAML file: {file_path}: {e}") from e

        if not isinstance(parsed, dict) or parsed.get(scenario_name) is None:
            available = list(parsed.keys()) if isinstance(parsed, dict) else []
            raise FixtureError(
                f'Scenario "{scenario_name}" not found in file: {file_path}. '
                f"Available scenarios: {', '.join(map(str, available)) or 'none'}"
            )

        logger.debug(f"Loaded {content_type} fixture '{scenario_name}' from {file_path}")
        return parsed[scenario_name]


def resolve_placeholders(template: str, values: Mapping[str, Any]) -> str:
    """Replace ``{key}`` placeholders with values from the scratch map.

    Raises
    ------
    FixtureError
        If a placeholder has no value (missing, None or empty string)
    """

    def replace(match: re.Match[str]) -> str:
        key = match.group(1)
        value = values.get(key)
        if value is None or value == "":
            raise FixtureError(f"Value for placeholder {key} not found in test data.")
        return str(value)

    return _PLACEHOLDER_RE.sub(replace, template)
