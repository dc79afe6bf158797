"""Base page object over the scenario's browser manager.

Every element operation first waits for its target to become visible,
bounded by the configured element timeout, then acts. Visibility checks
return a boolean; actions raise ``ElementTimeoutError`` when the wait runs
out.
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Iterator

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import Locator
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError
from pypdf import PdfReader
from pypdf.errors import PdfReadError

from scenariokit.constants import VISIBILITY_CHECK_TIMEOUT_MS
from scenariokit.exceptions import ElementTimeoutError

if TYPE_CHECKING:
    from playwright.sync_api import Page

    from scenariokit.browser import BrowserManager
    from scenariokit.config import Settings

logger = logging.getLogger(__name__)

Target = str | Locator

PDF_MAGIC = b"%PDF-"


class BasePage:
    """Common element operations shared by all page objects.

    The active page is always read from the browser manager, so a tab
    switch made through one page object is seen by every other one.

    Parameters
    ----------
    browser_manager : BrowserManager
        Manager owning the scenario's page
    settings : Settings
        Harness settings (base URL, element timeout, directories)
    """

    path: str = ""

    def __init__(self, browser_manager: "BrowserManager", settings: "Settings") -> None:
        self.browser_manager = browser_manager
        self.settings = settings
        self.base_url = settings.base_url

    @property
    def page(self) -> "Page":
        return self.browser_manager.get_page()

    def scenario_log(self, message: str = "") -> None:
        """Log a message that is mirrored into the scenario's evidence."""
        logger.info(message)

    @contextmanager
    def _timeout_guard(self, description: str) -> Iterator[None]:
        try:
            yield
        except PlaywrightTimeoutError as e:
            raise ElementTimeoutError(f"Timed out waiting to {description}") from e

    def locator(self, target: Target) -> Locator:
        if isinstance(target, str):
            return self.page.locator(target)
        return target

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def navigate(self, path: str | None = None) -> None:
        """Go to ``base_url`` plus ``path`` (the page's own path by default)."""
        url = f"{self.base_url}{self.path if path is None else path}"
        logger.info(f"Navigating to {url}")
        self.page.goto(url)

    def navigate_to_url(self, url: str) -> None:
        logger.info(f"Navigating to {url}")
        self.page.goto(url)

    def wait_for_page_load(self) -> None:
        with self._timeout_guard("load page"):
            self.page.wait_for_load_state("domcontentloaded")
            self.page.wait_for_load_state("networkidle")

    # ------------------------------------------------------------------
    # Element operations
    # ------------------------------------------------------------------

    def wait_for_visible(self, target: Target, timeout: float | None = None) -> Locator:
        """Wait until the target is visible and return its locator.

        Parameters
        ----------
        target : str | Locator
            Selector or locator
        timeout : float | None
            Milliseconds to wait; defaults to the configured element timeout

        Returns
        -------
        Locator
            The visible element's locator

        Raises
        ------
        ElementTimeoutError
            If the element is not visible in time
        """
        locator = self.locator(target)
        wait_ms = self.settings.element_timeout_ms if timeout is None else timeout

        try:
            locator.wait_for(state="visible", timeout=wait_ms)
        except PlaywrightTimeoutError as e:
            raise ElementTimeoutError(
                f"Element not visible after {wait_ms}ms: {target}"
            ) from e

        return locator

    def is_visible(self, target: Target, timeout: float = VISIBILITY_CHECK_TIMEOUT_MS) -> bool:
        """Return whether the target becomes visible within ``timeout`` ms."""
        try:
            self.locator(target).wait_for(state="visible", timeout=timeout)
            return True
        except PlaywrightTimeoutError:
            return False

    def click(self, target: Target) -> None:
        locator = self.wait_for_visible(target)
        with self._timeout_guard(f"click {target}"):
            locator.click()

    def fill(self, target: Target, text: str) -> None:
        locator = self.wait_for_visible(target)
        with self._timeout_guard(f"fill {target}"):
            locator.fill(text)

    def get_text(self, target: Target) -> str:
        locator = self.wait_for_visible(target)
        with self._timeout_guard(f"read text of {target}"):
            return locator.text_content() or ""

    def hover(self, target: Target) -> None:
        locator = self.wait_for_visible(target)
        with self._timeout_guard(f"hover over {target}"):
            locator.hover()

    def scroll_to(self, target: Target) -> None:
        locator = self.locator(target)
        with self._timeout_guard(f"scroll to {target}"):
            locator.scroll_into_view_if_needed(timeout=self.settings.element_timeout_ms)

    def highlight(self, target: Target) -> None:
        locator = self.wait_for_visible(target)
        locator.highlight()

    def take_screenshot(self, name: str) -> bytes:
        """Capture the viewport to a timestamped file and return the PNG bytes."""
        screenshot_dir = self.settings.evidence_dir / "screenshots"
        screenshot_dir.mkdir(parents=True, exist_ok=True)
        file_path = screenshot_dir / f"{name}-{int(time.time() * 1000)}.png"
        return self.page.screenshot(path=str(file_path))

    # ------------------------------------------------------------------
    # Tabs
    # ------------------------------------------------------------------

    def click_and_switch_to_new_tab(self, target: Target) -> "Page":
        """Click an element that opens a new tab and make that tab active."""
        locator = self.wait_for_visible(target)
        logger.debug(f"Switching tab from {self.page.url}")

        with self._timeout_guard(f"open a new tab from {target}"):
            with self.page.context.expect_page() as page_info:
                locator.click()
            new_page = page_info.value

        new_page.bring_to_front()
        return self.browser_manager.switch_to_page(new_page)

    def close_tab_and_switch_to_parent(self) -> "Page":
        """Close the active tab and return to the first tab of the context."""
        current = self.page
        context = current.context
        current.close()

        parent = context.pages[0]
        parent.bring_to_front()
        return self.browser_manager.switch_to_page(parent)

    # ------------------------------------------------------------------
    # Downloads
    # ------------------------------------------------------------------

    def download_and_validate(self, target: Target, expected_content: str) -> bool:
        """Download a file by clicking ``target`` and check its content.

        Returns False (and logs the reason) when the download fails, the
        file is empty or the expected text is not found.
        """
        download_dir = Path(self.settings.download_dir)
        download_dir.mkdir(parents=True, exist_ok=True)

        try:
            locator = self.wait_for_visible(target)
            with self.page.expect_download() as download_info:
                locator.click()
            download = download_info.value

            suggested = download.suggested_filename or (
                f"downloaded-file-{int(time.time() * 1000)}"
            )
            target_path = download_dir / suggested
            if target_path.exists():
                target_path.unlink()
            download.save_as(target_path)
        except (PlaywrightError, ElementTimeoutError, OSError) as e:
            self.scenario_log(f"Download and validation failed due to exception: {e}")
            return False

        if not target_path.exists() or target_path.stat().st_size == 0:
            self.scenario_log(
                f"Download completed but file not found or empty: {target_path}"
            )
            return False

        validated = self.validate_file_content(target_path, expected_content)
        if validated:
            self.scenario_log(f"Download and validation succeeded for file: {suggested}")
        else:
            self.scenario_log(
                f"Downloaded file found but content validation failed for: {suggested}"
            )
        return validated

    def validate_file_content(self, file_path: Path, expected_content: str) -> bool:
        """Case-insensitive check that a downloaded file's text contains a value.

        PDF files are searched through the text extracted from every page;
        other files through their UTF-8 decoded content.
        """
        if not file_path.exists():
            self.scenario_log(f"File not found for validation: {file_path}")
            return False

        if not expected_content or not expected_content.strip():
            self.scenario_log("No expected content provided for validation")
            return False

        try:
            text = read_file_text(file_path)
        except (OSError, PdfReadError) as e:
            self.scenario_log(f"Failed to read/validate file: {e}")
            return False

        found = expected_content.strip().lower() in text.lower()
        if not found:
            self.scenario_log(f"Expected content not found in file: {file_path.name}")
        return found


def is_pdf(file_path: Path) -> bool:
    if file_path.suffix.lower() == ".pdf":
        return True
    with open(file_path, "rb") as f:
        return f.read(len(PDF_MAGIC)) == PDF_MAGIC


def read_file_text(file_path: Path) -> str:
    """Return the searchable text of a file, page by page for PDFs."""
    if is_pdf(file_path):
        reader = PdfReader(file_path)
        return " ".join(page.extract_text() or "" for page in reader.pages)
    return file_path.read_bytes().decode("utf-8", errors="ignore")
