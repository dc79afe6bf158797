"""Per-scenario evidence channel and on-disk artifact storage."""

from __future__ import annotations

import logging
import re
import shutil
import threading
from dataclasses import dataclass
from pathlib import Path

from rich.text import Text

from scenariokit.constants import MEDIA_JSON, MEDIA_PNG, MEDIA_TEXT

logger = logging.getLogger(__name__)

EXTENSIONS = {MEDIA_TEXT: "txt", MEDIA_JSON: "json", MEDIA_PNG: "png"}


def strip_ansi(text: str) -> str:
    """Remove terminal control sequences from text."""
    return Text.from_ansi(text).plain


def slugify(name: str) -> str:
    """Turn a scenario name into a filesystem-safe directory name."""
    slug = re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")
    return slug or "scenario"


@dataclass(frozen=True)
class Attachment:
    """One piece of evidence attached to a scenario."""

    payload: str | bytes
    media_type: str
    name: str


class EvidenceRecord:
    """Append-only evidence channel for one scenario.

    Accepts ``(payload, media_type)`` pairs while the scenario runs and
    writes them to a scenario-specific directory when flushed.

    Parameters
    ----------
    scenario_name : str
        Human readable scenario name
    scenario_id : str
        Unique scenario identifier, used to keep directories distinct
    """

    def __init__(self, scenario_name: str, scenario_id: str) -> None:
        self.scenario_name = scenario_name
        self.scenario_id = scenario_id
        self.attachments: list[Attachment] = []
        self._lock = threading.Lock()
        self._closed = False

    def attach(
        self,
        payload: str | bytes,
        media_type: str = MEDIA_TEXT,
        name: str | None = None,
    ) -> Attachment:
        """Append an attachment.

        Parameters
        ----------
        payload : str | bytes
            Text (plain or JSON-as-text) or binary image data
        media_type : str
            Media type of the payload
        name : str | None
            Optional short label used in the artifact file name

        Returns
        -------
        Attachment
            The stored attachment

        Raises
        ------
        RuntimeError
            If the record was already flushed
        """
        with self._lock:
            if self._closed:
                raise RuntimeError(
                    f"Evidence for scenario '{self.scenario_name}' is already closed"
                )
            label = name or f"attachment-{len(self.attachments) + 1}"
            attachment = Attachment(payload=payload, media_type=media_type, name=label)
            self.attachments.append(attachment)

        logger.debug(f"Attached {media_type} evidence '{label}' to {self.scenario_name}")
        return attachment

    def attach_clean(self, text: str, media_type: str = MEDIA_TEXT) -> Attachment:
        """Attach text with terminal control codes stripped."""
        return self.attach(strip_ansi(text), media_type)

    def by_media_type(self, media_type: str) -> list[Attachment]:
        return [a for a in self.attachments if a.media_type == media_type]

    def flush(self, base_dir: Path) -> Path | None:
        """Write attachments to disk and close the record.

        Parameters
        ----------
        base_dir : Path
            Root directory for scenario evidence

        Returns
        -------
        Path | None
            Directory the evidence was written to, or None if there was
            nothing to write
        """
        with self._lock:
            self._closed = True
            attachments = list(self.attachments)

        if not attachments:
            return None

        scenario_dir = Path(base_dir) / f"{slugify(self.scenario_name)}-{self.scenario_id[:8]}"
        if scenario_dir.exists():
            shutil.rmtree(scenario_dir)
        scenario_dir.mkdir(parents=True, exist_ok=True)

        for index, attachment in enumerate(attachments, start=1):
            extension = EXTENSIONS.get(attachment.media_type, "bin")
            file_path = scenario_dir / f"{index:02d}-{slugify(attachment.name)}.{extension}"

            if isinstance(attachment.payload, bytes):
                file_path.write_bytes(attachment.payload)
            else:
                file_path.write_text(attachment.payload, encoding="utf-8")

        logger.debug(f"Wrote {len(attachments)} evidence files to {scenario_dir}")
        return scenario_dir
